import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_container(tmp_path: Path, name: str = "crediario.db", notifier=None):
    from crediario.application.container import build_container

    return build_container(tmp_path / name, notifier=notifier)
