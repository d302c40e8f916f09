"""Store — local key-value persistence for tasks and settings.

Design goals:
  - Two keys only: the task list and the settings object
  - Callers get copies, so mutating a returned list never edits the store
  - Reads never raise: missing or unreadable data falls back to defaults
"""

from __future__ import annotations
import copy
from typing import Any

TASKS_KEY = "campusLifePlannerTasks"
SETTINGS_KEY = "campusLifePlannerSettings"

DEFAULT_SETTINGS: dict[str, Any] = {
    "timeUnit": "minutes",
    "weeklyCap": 40,
    "reduceMotion": False,
}


def default_settings() -> dict[str, Any]:
    return dict(DEFAULT_SETTINGS)


class MemoryStore:
    """In-process store.  Contents vanish with the process."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def get_tasks(self) -> list[dict]:
        return copy.deepcopy(self._data.get(TASKS_KEY, []))

    def save_tasks(self, tasks: list[dict]) -> bool:
        self._data[TASKS_KEY] = copy.deepcopy(list(tasks))
        return True

    def get_settings(self) -> dict[str, Any]:
        stored = self._data.get(SETTINGS_KEY)
        return dict(stored) if stored is not None else default_settings()

    def save_settings(self, settings: dict[str, Any]) -> bool:
        self._data[SETTINGS_KEY] = dict(settings)
        return True

    def clear_all(self) -> bool:
        self._data.clear()
        return True

    def close(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._data.get(TASKS_KEY, []))

    def dump(self) -> dict[str, Any]:
        """Return a copy of everything stored (for debugging)."""
        return copy.deepcopy(self._data)
