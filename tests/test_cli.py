"""Tests for the CLI, run in-process against a temporary SQLite store."""

import io
import json
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from campus_planner.cli import main

FORM = {"title": "Read chapter 3", "date": "2024-05-06", "duration": "45", "tag": "Study"}


@pytest.fixture
def run(tmp_path, monkeypatch, capsys):
    db = str(tmp_path / "planner.db")

    def _run(*argv, stdin=""):
        monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
        code = 0
        try:
            main(["--db", db, *argv])
        except SystemExit as e:
            code = e.code
        out, err = capsys.readouterr()
        return code, out, err

    return _run


def test_add_then_search_highlight(run):
    code, out, _ = run("add", stdin=json.dumps(FORM))
    assert code == 0
    assert json.loads(out)["tag"] == "study"

    code, out, _ = run("search", "chapter", "--highlight")
    result = json.loads(out)
    assert result["count"] == 1
    assert result["tasks"][0]["highlight"]["title"] == "Read <mark>chapter</mark> 3"


def test_add_invalid_reports_fields(run):
    code, out, err = run("add", stdin=json.dumps({**FORM, "tag": "123"}))
    assert code == 1
    assert "tag: Tag can only contain letters, spaces, and hyphens" in err


def test_search_invalid_regex(run):
    code, _, err = run("search", "[a-")
    assert code == 1
    assert err.startswith("Invalid regex: ")


def test_validate_field(run):
    code, out, _ = run("validate-field", "date", "2024-02-30")
    assert code == 1
    assert json.loads(out) == {"valid": False, "message": "Invalid date (e.g., February 30th)"}


def test_validate_form(run):
    code, out, _ = run("validate", stdin=json.dumps(FORM))
    assert code == 0
    assert json.loads(out) == {"valid": True, "errors": {}}


def test_import_export_and_delete(run):
    record = {"id": "1", "title": "x", "dueDate": "2024-01-01", "duration": 5, "tag": "a",
              "createdAt": "t", "updatedAt": "t"}
    code, _, err = run("import", stdin=json.dumps([record]))
    assert code == 0
    assert "Imported 1 tasks" in err

    code, out, _ = run("export")
    assert json.loads(out) == [record]

    assert run("delete", "1")[0] == 0
    code, _, err = run("delete", "1")
    assert code == 1
    assert "No task with id 1" in err


def test_import_malformed(run):
    code, _, err = run("import", stdin=json.dumps([{"id": "1"}]))
    assert code == 1
    assert "Task at index 0 is missing valid title" in err


def test_bad_json_on_stdin(run):
    code, _, err = run("validate", stdin="{nope")
    assert code == 1
    assert err.startswith("Invalid JSON on stdin")


def test_stats_and_clear(run):
    run("add", stdin=json.dumps(FORM))
    code, out, _ = run("stats")
    stats = json.loads(out)
    assert stats["totalTasks"] == 1
    assert len(stats["activity"]) == 7

    assert run("clear")[0] == 0
    assert json.loads(run("list")[1]) == []


# ── Config handling ──────────────────────────────────────────────────

def test_bad_config_value_reports_error(run, tmp_path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("campus_planner:\n  time_unit: days\n")
    code, _, err = run("--config", str(cfg), "list")
    assert code == 1
    assert "time_unit must be one of" in err


def test_missing_config_file(run, tmp_path):
    code, _, err = run("--config", str(tmp_path / "nope.yaml"), "list")
    assert code == 1
    assert "nope.yaml" in err


def test_malformed_config_yaml(run, tmp_path):
    cfg = tmp_path / "broken.yaml"
    cfg.write_text("campus_planner: [unclosed\n")
    code, _, err = run("--config", str(cfg), "list")
    assert code == 1
    assert err.strip()


def test_namespace_flag_overrides_config(run, tmp_path):
    cfg = tmp_path / "planner.yaml"
    cfg.write_text("campus_planner:\n  store:\n    namespace: shared\n")

    assert run("--config", str(cfg), "--namespace", "mine", "add", stdin=json.dumps(FORM))[0] == 0
    assert len(json.loads(run("--namespace", "mine", "list")[1])) == 1
    assert json.loads(run("--namespace", "shared", "list")[1]) == []

    assert run("--config", str(cfg), "add", stdin=json.dumps(FORM))[0] == 0
    assert len(json.loads(run("--namespace", "shared", "list")[1])) == 1
