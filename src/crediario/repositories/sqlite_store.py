from __future__ import annotations

import json
import logging
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from crediario.domain.errors import StorageError

log = logging.getLogger(__name__)


class SqliteKeyValueStore:
    """JSON payloads keyed by slot name, one row per slot.

    Reads and writes never raise: a failed load returns ``None`` so callers fall
    back to their initial state, a failed save returns ``False`` and leaves the
    caller's in-memory state alone.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def init_db(self) -> None:
        self.run_migrations()

    def _current_version(self, cur: sqlite3.Cursor) -> int:
        cur.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'")
        if cur.fetchone() is None:
            return 0
        cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        return int(cur.fetchone()[0])

    def run_migrations(self) -> None:
        migrations = [
            (1, self._migration_v1_slots),
        ]

        conn = self._conn()
        try:
            cur = conn.cursor()
            current_version = self._current_version(cur)
            pending = [(v, migration) for v, migration in migrations if v > current_version]
            if not pending:
                return

            # Only a database with pending migrations is copied aside.
            backup_path = self._create_pre_migration_backup()
            try:
                cur.execute("BEGIN")
                cur.execute(
                    "CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
                )
                for version, migration in pending:
                    migration(cur)
                    cur.execute(
                        "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                        (version,),
                    )
                conn.commit()
            except Exception as exc:
                conn.rollback()
                self._restore_pre_migration_backup(backup_path)
                raise StorageError(
                    "Database migration failed. Original database restored from automatic backup."
                ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_slots(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_slots (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )

    # ---------- Slots ----------
    def load_all(self, key: str) -> Optional[Any]:
        try:
            conn = self._conn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT payload FROM kv_slots WHERE key = ?", (key,))
                row = cur.fetchone()
            finally:
                conn.close()
        except sqlite3.Error:
            log.exception("slot_load_failed key=%s", key)
            return None

        if not row:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            log.exception("slot_payload_corrupt key=%s", key)
            return None

    def save_all(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            log.exception("slot_encode_failed key=%s", key)
            return False

        try:
            conn = self._conn()
            try:
                cur = conn.cursor()
                cur.execute(
                    """
                    INSERT INTO kv_slots (key, payload, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at
                    """,
                    (key, payload, datetime.now().replace(microsecond=0).isoformat(sep=" ")),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            log.exception("slot_save_failed key=%s", key)
            return False
        return True

