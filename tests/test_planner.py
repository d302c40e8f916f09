"""Tests for the planner — CRUD, sort, filter, stats, import/export."""

import datetime
import json
import re
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from campus_planner import FieldValidationError, ImportStructureError, MemoryStore, Planner

# Wednesday; its week starts Sunday 2024-05-05
TODAY = datetime.date(2024, 5, 8)


def _form(**overrides):
    form = {"title": "Read chapter 3", "date": "2024-05-06", "duration": "45", "tag": "Study"}
    form.update(overrides)
    return form


def _record(id, title, due, minutes, tag, notes=""):
    return {
        "id": id, "title": title, "dueDate": due, "duration": minutes, "tag": tag,
        "notes": notes, "createdAt": "2024-05-01T00:00:00.000Z",
        "updatedAt": "2024-05-01T00:00:00.000Z",
    }


@pytest.fixture
def planner():
    p = Planner(MemoryStore())
    p.import_tasks([
        _record("a", "Lab report", "2024-05-06", 60, "study", "bring goggles"),
        _record("b", "gym session", "2024-05-10", 120, "study"),
        _record("c", "Read novel", "2024-04-20", 30, "read"),
        _record("d", "Algebra exam", "2024-05-12", 90, "math"),
    ])
    return p


# ── CRUD ─────────────────────────────────────────────────────────────

def test_add_task_normalizes_fields():
    p = Planner()
    task = p.add_task(_form(tag="Study", notes="  ch. 3 only  "))
    assert re.fullmatch(r"task_\d+_\d{1,4}", task["id"])
    assert task["tag"] == "study"
    assert task["duration"] == 45.0
    assert task["notes"] == "ch. 3 only"
    assert task["dueDate"] == "2024-05-06"
    assert task["createdAt"] == task["updatedAt"]
    assert task["createdAt"].endswith("Z")
    assert p.get_task(task["id"]) is task


def test_add_task_rejects_invalid_form():
    p = Planner()
    with pytest.raises(FieldValidationError) as info:
        p.add_task(_form(title="the the", date="2024-02-30"))
    assert info.value.errors == {
        "title": 'Duplicate word detected: "the"',
        "date": "Invalid date (e.g., February 30th)",
    }
    assert p.tasks == []


def test_update_task(planner):
    task = planner.update_task("a", _form(title="Lab report v2", duration="15"))
    assert task["title"] == "Lab report v2"
    assert task["duration"] == 15.0
    assert task["createdAt"] == "2024-05-01T00:00:00.000Z"
    assert task["updatedAt"] != task["createdAt"]


def test_update_unknown_task(planner):
    assert planner.update_task("zzz", _form()) is None


def test_update_task_validates(planner):
    with pytest.raises(FieldValidationError):
        planner.update_task("a", _form(tag="123"))
    assert planner.get_task("a")["tag"] == "study"


def test_delete_task(planner):
    assert planner.delete_task("a")
    assert planner.get_task("a") is None
    assert not planner.delete_task("a")
    assert len(planner.filtered_tasks) == 3


def test_tasks_persist_in_store():
    store = MemoryStore()
    Planner(store).add_task(_form())
    assert len(Planner(store).tasks) == 1


# ── Sorting ──────────────────────────────────────────────────────────

def test_sort_by_title_ignores_case(planner):
    titles = [t["title"] for t in planner.sort_tasks("title-asc")]
    assert titles == ["Algebra exam", "gym session", "Lab report", "Read novel"]


def test_sort_by_duration_desc(planner):
    assert [t["id"] for t in planner.sort_tasks("duration-desc")] == ["b", "d", "a", "c"]


def test_sort_by_date(planner):
    assert [t["id"] for t in planner.sort_tasks("date-asc")] == ["c", "a", "b", "d"]
    assert [t["id"] for t in planner.sort_tasks("date-desc")] == ["d", "b", "a", "c"]


def test_sort_unknown_order(planner):
    with pytest.raises(ValueError):
        planner.sort_tasks("priority-asc")
    assert planner.sort_by == "date-desc"


# ── Filtering ────────────────────────────────────────────────────────

def test_filter_matches_any_field(planner):
    result = planner.filter_tasks("goggles|exam")
    assert result.success
    assert result.count == 2
    assert {t["id"] for t in planner.filtered_tasks} == {"a", "d"}


def test_filter_by_due_date(planner):
    assert planner.filter_tasks(r"^2024-05-1\d").count == 2


def test_filter_case_sensitivity(planner):
    assert planner.filter_tasks("lab").count == 1
    assert planner.filter_tasks("lab", case_sensitive=True).count == 0


def test_filter_keeps_sort_order(planner):
    planner.sort_tasks("duration-asc")
    planner.filter_tasks("study")
    assert [t["id"] for t in planner.filtered_tasks] == ["a", "b"]


def test_filter_invalid_pattern_keeps_view(planner):
    planner.filter_tasks("exam")
    result = planner.filter_tasks("(")
    assert not result.success
    assert result.error.startswith("Invalid regex: ")
    assert [t["id"] for t in planner.filtered_tasks] == ["d"]


def test_empty_pattern_clears_filter(planner):
    planner.filter_tasks("exam")
    result = planner.filter_tasks("")
    assert result.success
    assert result.count == 4
    assert planner.search_pattern is None
    assert len(planner.filtered_tasks) == 4


def test_highlight_task(planner):
    planner.filter_tasks("lab|stud")
    marked = planner.highlight_task(planner.get_task("a"))
    assert marked == {"title": "<mark>Lab</mark> report", "tag": "<mark>stud</mark>y"}


def test_highlight_task_without_pattern_escapes():
    p = Planner()
    assert p.highlight_task({"title": "<b>x</b>", "tag": "a"})["title"] == "&lt;b&gt;x&lt;/b&gt;"


# ── Stats ────────────────────────────────────────────────────────────

def test_weekly_hours(planner):
    # 2024-05-06 and 2024-05-10 fall in the week of Sunday 2024-05-05
    assert planner.get_weekly_hours(TODAY) == 3.0


def test_stats_under_cap(planner):
    stats = planner.get_stats(TODAY)
    assert stats["totalTasks"] == 4
    assert stats["totalHours"] == 5.0
    assert stats["topTag"] == "study"
    assert stats["recentTasks"] == 3
    assert stats["weeklyHours"] == 3.0
    assert stats["capTarget"] == 40
    assert stats["capPercentage"] == pytest.approx(7.5)
    assert stats["capStatus"] == "under"
    assert stats["capMessage"] == "You have 37.0 hours remaining this week."


def test_stats_over_cap(planner):
    planner.update_settings(weeklyCap=2)
    stats = planner.get_stats(TODAY)
    assert stats["capPercentage"] == 100.0
    assert stats["capStatus"] == "over"
    assert stats["capMessage"] == "You are 1.0 hours over your weekly cap!"


def test_stats_empty():
    stats = Planner().get_stats(TODAY)
    assert stats["totalTasks"] == 0
    assert stats["topTag"] == "None"
    assert stats["capPercentage"] == 0.0


def test_activity_data(planner):
    activity = {row["day"]: row["count"] for row in planner.get_activity_data(TODAY)}
    assert list(activity) == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert activity == {"Sun": 1, "Mon": 0, "Tue": 0, "Wed": 0, "Thu": 0, "Fri": 1, "Sat": 0}


def test_format_duration():
    p = Planner()
    assert p.format_duration(45) == "45 min"
    assert p.format_duration(12.5) == "12.5 min"
    p.update_settings(timeUnit="hours")
    assert p.format_duration(90) == "1.50 hrs"


# ── Import / export ──────────────────────────────────────────────────

def test_import_rejects_malformed_without_partial_merge(planner):
    with pytest.raises(ImportStructureError, match="index 1"):
        planner.import_tasks([_record("x", "ok", "2024-01-01", 5, "a"), {"id": "y"}])
    assert len(planner.tasks) == 4


def test_export_round_trips(planner):
    exported = json.loads(planner.export_tasks())
    assert exported == planner.tasks


def test_clear_all_data(planner):
    planner.update_settings(weeklyCap=10)
    planner.filter_tasks("exam")
    planner.clear_all_data()
    assert planner.tasks == []
    assert planner.filtered_tasks == []
    assert planner.search_pattern is None
    assert planner.settings["weeklyCap"] == 40
    assert planner.store.get_tasks() == []


def test_cap_percentage_uses_unrounded_hours():
    p = Planner()
    p.import_tasks([_record("a", "Essay", "2024-05-06", 56, "write")])
    p.update_settings(weeklyCap=1)
    stats = p.get_stats(TODAY)
    assert stats["weeklyHours"] == 0.9
    assert stats["capPercentage"] == pytest.approx(56 / 60 * 100)
