import json
import logging
from contextlib import contextmanager
from datetime import date
from pathlib import Path

from crediario.application.container import bootstrap
from crediario.logging_config import REPORTS_LOGGER, STORE_LOGGER, setup_logging

TODAY = date(2024, 3, 15)


@contextmanager
def bare_logging():
    """Runs the block with no handlers on root and the two channels, then puts pytest's back."""
    loggers = [logging.getLogger(), logging.getLogger(STORE_LOGGER), logging.getLogger(REPORTS_LOGGER)]
    saved = [(lg, lg.handlers[:], lg.level) for lg in loggers]
    for lg in loggers:
        lg.handlers.clear()
    try:
        yield
    finally:
        for lg, handlers, level in saved:
            for h in lg.handlers:
                h.close()
            lg.handlers[:] = handlers
            lg.setLevel(level)


def _json_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def test_setup_logging_twice_adds_no_handlers(tmp_path: Path):
    logs = tmp_path / "logs"
    root = logging.getLogger()
    store = logging.getLogger(STORE_LOGGER)

    with bare_logging():
        setup_logging(logs)
        counts = (len(root.handlers), len(store.handlers))
        setup_logging(logs)

        assert counts == (2, 1)
        assert (len(root.handlers), len(store.handlers)) == counts


def test_store_channel_writes_json_to_its_own_file(tmp_path: Path):
    logs = tmp_path / "logs"

    with bare_logging():
        setup_logging(logs)
        logging.getLogger(STORE_LOGGER).info("customer_added id=%s", "c1")
        logging.getLogger(REPORTS_LOGGER).info("report_exported format=%s", "json")
        logging.getLogger("crediario.other").error("boom")

    [store_line] = _json_lines(logs / "store.log")
    assert store_line["logger"] == STORE_LOGGER
    assert store_line["level"] == "INFO"
    assert store_line["message"] == "customer_added id=c1"

    assert [r["message"] for r in _json_lines(logs / "reports.log")] == ["report_exported format=json"]
    assert [r["message"] for r in _json_lines(logs / "errors.log")] == ["boom"]
    app_messages = [r["message"] for r in _json_lines(logs / "app.log")]
    assert app_messages == ["customer_added id=c1", "report_exported format=json", "boom"]


def test_bootstrap_builds_a_working_app_under_home_override(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CREDIARIO_HOME", str(tmp_path / "home"))

    with bare_logging():
        paths, app = bootstrap()
        app.customers.add_customer("Maria", 100, TODAY)
        app.close()

    assert paths.base_dir == tmp_path / "home"
    assert paths.db_path.exists()
    assert any(r["message"].startswith("app_started") for r in _json_lines(paths.logs_dir / "app.log"))
    assert any(r["message"].startswith("customer_added") for r in _json_lines(paths.logs_dir / "store.log"))
