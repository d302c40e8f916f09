"""Persistent store backed by SQLite — survives process restarts.

Drop-in replacement for MemoryStore when the CLI or sidecar needs
durability.  Values are JSON documents in a single key-value table,
partitioned by namespace so several planners can share one file.

Usage:
    store = SqliteStore("default", db_path="~/.campus-planner/planner.db")
    # Same API as MemoryStore: get_tasks, save_tasks, get_settings, ...
"""

from __future__ import annotations
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from .store import SETTINGS_KEY, TASKS_KEY, default_settings

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at REAL NOT NULL DEFAULT (julianday('now')),
    PRIMARY KEY (namespace, key)
);
"""


class SqliteStore:
    """Persistent task/settings store."""

    __slots__ = ("_namespace", "_db")

    def __init__(self, namespace: str = "default", *, db_path: str | Path = "planner.db") -> None:
        self._namespace = namespace
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.executescript(_SCHEMA)

    @property
    def namespace(self) -> str:
        return self._namespace

    def _read(self, key: str) -> Any:
        try:
            row = self._db.execute(
                "SELECT value FROM kv WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            ).fetchone()
            return json.loads(row[0]) if row else None
        except (sqlite3.Error, json.JSONDecodeError):
            logger.error("Error reading %s from storage", key, exc_info=True)
            return None

    def _write(self, key: str, value: Any) -> bool:
        try:
            self._db.execute(
                "INSERT OR REPLACE INTO kv (namespace, key, value, updated_at) "
                "VALUES (?, ?, ?, julianday('now'))",
                (self._namespace, key, json.dumps(value, ensure_ascii=False)),
            )
            self._db.commit()
            return True
        except (sqlite3.Error, TypeError, ValueError):
            logger.error("Error saving %s to storage", key, exc_info=True)
            return False

    def get_tasks(self) -> list[dict]:
        tasks = self._read(TASKS_KEY)
        return tasks if isinstance(tasks, list) else []

    def save_tasks(self, tasks: list[dict]) -> bool:
        return self._write(TASKS_KEY, list(tasks))

    def get_settings(self) -> dict[str, Any]:
        settings = self._read(SETTINGS_KEY)
        return settings if isinstance(settings, dict) else default_settings()

    def save_settings(self, settings: dict[str, Any]) -> bool:
        return self._write(SETTINGS_KEY, dict(settings))

    def clear_all(self) -> bool:
        try:
            self._db.execute("DELETE FROM kv WHERE namespace = ?", (self._namespace,))
            self._db.commit()
            return True
        except sqlite3.Error:
            logger.error("Error clearing storage", exc_info=True)
            return False

    def close(self) -> None:
        self._db.close()

    @property
    def size(self) -> int:
        return len(self.get_tasks())

    def list_namespaces(self) -> list[str]:
        """List all namespaces in the database."""
        rows = self._db.execute("SELECT DISTINCT namespace FROM kv").fetchall()
        return [r[0] for r in rows]
