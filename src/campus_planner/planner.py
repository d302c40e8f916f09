"""Planner — task state on top of a store, the search engine and validators.

Usage:
    from campus_planner import Planner

    planner = Planner()                   # in-memory store
    planner.add_task({"title": "Read chapter 3", "date": "2024-05-06",
                      "duration": "45", "tag": "Study"})

    result = planner.filter_tasks("chapter")
    result.count                          # 1
    planner.highlight_task(planner.filtered_tasks[0])["title"]
    # 'Read <mark>chapter</mark> 3'
"""

from __future__ import annotations
import datetime
import json
import logging
import random
import re
import time
from collections import Counter
from typing import Any, Mapping

from .search import CompileError, compile_pattern, highlight, task_matches
from .store import MemoryStore, default_settings
from .types import FilterResult
from .validators import (
    FieldValidationError,
    ImportStructureError,
    validate_all,
    validate_import_data,
)

logger = logging.getLogger(__name__)

DEFAULT_SORT = "date-desc"
SORT_FIELDS = ("date", "title", "duration")
WEEKDAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def _now_iso() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _due(task: Mapping[str, Any]) -> datetime.date | None:
    try:
        return datetime.date.fromisoformat(str(task.get("dueDate", "")))
    except ValueError:
        return None


def _minutes(task: Mapping[str, Any]) -> float:
    d = task.get("duration")
    return float(d) if isinstance(d, (int, float)) and not isinstance(d, bool) else 0.0


def _sunday_on_or_before(day: datetime.date) -> datetime.date:
    # date.weekday(): Monday == 0
    return day - datetime.timedelta(days=(day.weekday() + 1) % 7)


class Planner:
    """Owns the task list, the filtered view and the active search pattern."""

    def __init__(self, store: Any = None) -> None:
        self.store = store if store is not None else MemoryStore()
        self.tasks: list[dict] = self.store.get_tasks()
        self.settings: dict[str, Any] = self.store.get_settings()
        self.filtered_tasks: list[dict] = list(self.tasks)
        self.search_pattern: re.Pattern | None = None
        self.sort_by = DEFAULT_SORT

    # ------------------------------------------------------------------
    # Task CRUD
    # ------------------------------------------------------------------

    @staticmethod
    def generate_id() -> str:
        return f"task_{int(time.time() * 1000)}_{random.randrange(10000)}"

    def add_task(self, form: Mapping[str, Any]) -> dict:
        """Validate a form and append the new task.

        Raises FieldValidationError with the per-field messages when the
        form is rejected; nothing is stored in that case.
        """
        self._check(form)
        now = _now_iso()
        task = {
            "id": self.generate_id(),
            **self._fields(form),
            "createdAt": now,
            "updatedAt": now,
        }
        self.tasks.append(task)
        self._reset_view()
        self.save()
        return task

    def update_task(self, task_id: str, form: Mapping[str, Any]) -> dict | None:
        task = self.get_task(task_id)
        if task is None:
            return None
        self._check(form)
        task.update(self._fields(form))
        task["updatedAt"] = _now_iso()
        self._reset_view()
        self.save()
        return task

    def delete_task(self, task_id: str) -> bool:
        for i, t in enumerate(self.tasks):
            if t.get("id") == task_id:
                del self.tasks[i]
                self._reset_view()
                self.save()
                return True
        return False

    def get_task(self, task_id: str) -> dict | None:
        return next((t for t in self.tasks if t.get("id") == task_id), None)

    @staticmethod
    def _check(form: Mapping[str, Any]) -> None:
        result = validate_all(form)
        if not result.valid:
            raise FieldValidationError(result.errors)

    @staticmethod
    def _fields(form: Mapping[str, Any]) -> dict:
        notes = form.get("notes")
        return {
            "title": str(form["title"]).strip(),
            "dueDate": str(form["date"]),
            "duration": float(form["duration"]),
            "tag": str(form["tag"]).strip().lower(),
            "notes": str(notes).strip() if notes else "",
        }

    def _reset_view(self) -> None:
        self.filtered_tasks = list(self.tasks)

    # ------------------------------------------------------------------
    # Sorting and searching
    # ------------------------------------------------------------------

    def sort_tasks(self, sort_by: str = DEFAULT_SORT) -> list[dict]:
        """Sort the filtered view in place, e.g. ``"title-asc"``."""
        field, _, order = sort_by.partition("-")
        if field not in SORT_FIELDS or order not in ("asc", "desc"):
            raise ValueError(f"Unknown sort order: {sort_by!r}")

        if field == "date":
            key = lambda t: _due(t) or datetime.date.min
        elif field == "title":
            key = lambda t: str(t.get("title", "")).lower()
        else:
            key = _minutes

        self.sort_by = sort_by
        self.filtered_tasks.sort(key=key, reverse=(order == "desc"))
        return self.filtered_tasks

    def filter_tasks(self, pattern: str | None, case_sensitive: bool = False) -> FilterResult:
        """Keep tasks whose title, tag, notes or due date match the pattern.

        An empty pattern clears the filter.  An invalid one is reported in
        the result and leaves the current view as it was.
        """
        if not pattern:
            self.search_pattern = None
            self._reset_view()
            self.sort_tasks(self.sort_by)
            return FilterResult(success=True, count=len(self.tasks))

        try:
            matcher = compile_pattern(pattern, case_sensitive)
        except CompileError as e:
            return FilterResult(success=False, error=str(e))

        self.search_pattern = matcher
        self.filtered_tasks = [t for t in self.tasks if task_matches(matcher, t)]
        self.sort_tasks(self.sort_by)
        return FilterResult(success=True, count=len(self.filtered_tasks))

    def highlight_task(self, task: Mapping[str, Any]) -> dict[str, str]:
        """Escaped title and tag markup with the active pattern's matches marked."""
        return {
            "title": highlight(self.search_pattern, task.get("title", "")),
            "tag": highlight(self.search_pattern, task.get("tag", "")),
        }

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_weekly_hours(self, today: datetime.date | None = None) -> float:
        """Hours due in the Sunday-started week containing today."""
        start = _sunday_on_or_before(today or datetime.date.today())
        end = start + datetime.timedelta(days=7)
        minutes = sum(
            _minutes(t) for t in self.tasks
            if (d := _due(t)) is not None and start <= d < end
        )
        return minutes / 60

    def get_stats(self, today: datetime.date | None = None) -> dict[str, Any]:
        today = today or datetime.date.today()
        total_minutes = sum(_minutes(t) for t in self.tasks)

        tag_counts = Counter(t.get("tag") for t in self.tasks if t.get("tag"))
        top = tag_counts.most_common(1)

        week_ago = today - datetime.timedelta(days=7)
        recent = sum(1 for t in self.tasks if (d := _due(t)) is not None and d >= week_ago)

        raw_weekly = self.get_weekly_hours(today)
        weekly = round(raw_weekly, 1)
        cap = float(self.settings.get("weeklyCap", 0) or 0)
        if cap > 0:
            cap_pct = min(raw_weekly / cap * 100, 100.0)
        else:
            cap_pct = 100.0 if raw_weekly > 0 else 0.0

        remaining = cap - weekly
        if remaining > 0:
            status = "under"
            message = f"You have {remaining:.1f} hours remaining this week."
        else:
            status = "over"
            message = f"You are {abs(remaining):.1f} hours over your weekly cap!"

        return {
            "totalTasks": len(self.tasks),
            "totalHours": round(total_minutes / 60, 1),
            "topTag": top[0][0] if top else "None",
            "recentTasks": recent,
            "weeklyHours": weekly,
            "capPercentage": cap_pct,
            "capTarget": self.settings.get("weeklyCap"),
            "capStatus": status,
            "capMessage": message,
        }

    def get_activity_data(self, today: datetime.date | None = None) -> list[dict[str, Any]]:
        """Tasks due per weekday over the next seven days."""
        today = today or datetime.date.today()
        counts = dict.fromkeys(WEEKDAYS, 0)
        for t in self.tasks:
            d = _due(t)
            if d is not None and 0 <= (d - today).days < 7:
                counts[WEEKDAYS[(d.weekday() + 1) % 7]] += 1
        return [{"day": day, "count": counts[day]} for day in WEEKDAYS]

    def format_duration(self, minutes: float) -> str:
        if self.settings.get("timeUnit") == "hours":
            return f"{minutes / 60:.2f} hrs"
        return f"{minutes:g} min"

    # ------------------------------------------------------------------
    # Settings, import/export
    # ------------------------------------------------------------------

    def update_settings(self, **changes: Any) -> dict[str, Any]:
        self.settings = {**self.settings, **changes}
        self.store.save_settings(self.settings)
        return self.settings

    def import_tasks(self, data: Any) -> int:
        """Replace every task with imported records.

        Raises ImportStructureError and leaves existing tasks untouched
        when the data is malformed.
        """
        result = validate_import_data(data)
        if not result.valid:
            raise ImportStructureError(result.message)
        self.tasks = [dict(t) for t in data]
        self._reset_view()
        self.save()
        logger.info("Imported %d tasks", len(self.tasks))
        return len(self.tasks)

    def export_tasks(self) -> str:
        return json.dumps(self.tasks, indent=2, ensure_ascii=False)

    def clear_all_data(self) -> None:
        self.tasks = []
        self.filtered_tasks = []
        self.search_pattern = None
        self.settings = default_settings()
        self.store.clear_all()
        logger.info("Cleared all planner data")

    def save(self) -> bool:
        return self.store.save_tasks(self.tasks)
