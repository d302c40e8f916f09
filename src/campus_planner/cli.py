"""CLI interface for campus-planner — designed to be called by a UI shell.

Usage:
    # Add a task (stdin: JSON form, stdout: stored task)
    echo '{"title":"Read","date":"2024-05-06","duration":"45","tag":"study"}' | \
        python -m campus_planner.cli add

    # Regex search with highlighted titles/tags
    python -m campus_planner.cli search 'study|review' --highlight

    # Live validation of one field
    python -m campus_planner.cli validate-field date 2024-02-30

    # Bulk import (stdin: JSON array of tasks)
    python -m campus_planner.cli import < tasks.json

All state is persisted in SQLite so tasks survive across calls.
"""

from __future__ import annotations
import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml

from .config import create_planner, load_from_yaml
from .planner import DEFAULT_SORT, Planner
from .store_sqlite import SqliteStore
from .validators import (
    VALIDATORS,
    FieldValidationError,
    validate_all,
    validate_field,
)

DEFAULT_DB = os.environ.get(
    "CAMPUS_PLANNER_DB",
    str(Path.home() / ".campus-planner" / "planner.db"),
)


class CommandError(Exception):
    """User-facing failure; printed to stderr, exit status 1."""


def _build_planner(args: argparse.Namespace) -> Planner:
    if args.config:
        cfg = load_from_yaml(args.config)
        if cfg["store_backend"] == "memory":
            # A one-shot process needs the sqlite store to keep anything
            cfg = {**cfg, "store_backend": "sqlite", "store_path": args.db}
        if args.namespace is not None:
            cfg = {**cfg, "store_namespace": args.namespace}
        return create_planner(cfg)
    return Planner(SqliteStore(args.namespace or "default", db_path=args.db))


def _read_json() -> Any:
    raw = sys.stdin.read()
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CommandError(f"Invalid JSON on stdin: {e}") from e


def _read_form() -> dict:
    form = _read_json()
    if not isinstance(form, dict):
        raise CommandError("Expected a JSON object on stdin")
    return form


def _emit(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_add(planner: Planner, args: argparse.Namespace) -> None:
    """Add a task from a JSON form on stdin."""
    _emit(planner.add_task(_read_form()))


def cmd_update(planner: Planner, args: argparse.Namespace) -> None:
    """Update a task from a JSON form on stdin."""
    task = planner.update_task(args.id, _read_form())
    if task is None:
        raise CommandError(f"No task with id {args.id}")
    _emit(task)


def cmd_delete(planner: Planner, args: argparse.Namespace) -> None:
    if not planner.delete_task(args.id):
        raise CommandError(f"No task with id {args.id}")
    sys.stderr.write(f"Deleted {args.id}\n")


def cmd_list(planner: Planner, args: argparse.Namespace) -> None:
    _emit(planner.sort_tasks(args.sort))


def cmd_search(planner: Planner, args: argparse.Namespace) -> None:
    """Filter tasks with a regex; optionally attach highlighted markup."""
    planner.sort_tasks(args.sort)
    result = planner.filter_tasks(args.pattern, args.case_sensitive)
    if not result.success:
        raise CommandError(result.error)

    tasks = planner.filtered_tasks
    if args.highlight:
        tasks = [{**t, "highlight": planner.highlight_task(t)} for t in tasks]
    _emit({"count": result.count, "tasks": tasks})


def cmd_validate(planner: Planner, args: argparse.Namespace) -> None:
    """Validate a JSON form on stdin; exit 1 when invalid."""
    result = validate_all(_read_form())
    _emit(dataclasses.asdict(result))
    if not result.valid:
        sys.exit(1)


def cmd_validate_field(planner: Planner, args: argparse.Namespace) -> None:
    result = validate_field(args.field, args.value)
    _emit(dataclasses.asdict(result))
    if not result.valid:
        sys.exit(1)


def cmd_import(planner: Planner, args: argparse.Namespace) -> None:
    """Replace all tasks with a JSON array from stdin."""
    count = planner.import_tasks(_read_json())
    sys.stderr.write(f"Imported {count} tasks\n")


def cmd_export(planner: Planner, args: argparse.Namespace) -> None:
    sys.stdout.write(planner.export_tasks())
    sys.stdout.write("\n")


def cmd_stats(planner: Planner, args: argparse.Namespace) -> None:
    stats = planner.get_stats()
    stats["activity"] = planner.get_activity_data()
    _emit(stats)


def cmd_clear(planner: Planner, args: argparse.Namespace) -> None:
    planner.clear_all_data()
    sys.stderr.write("Cleared all tasks and settings\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campus-planner",
        description="Task planner with regex search and field validation",
    )
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite store path")
    parser.add_argument(
        "--namespace", default=None,
        help="Store namespace (default: \"default\"; overrides store.namespace from --config)",
    )
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("add", help="Add a task (JSON form on stdin)")
    p = sub.add_parser("update", help="Update a task (JSON form on stdin)")
    p.add_argument("id")
    p = sub.add_parser("delete", help="Delete a task")
    p.add_argument("id")
    p = sub.add_parser("list", help="List tasks")
    p.add_argument("--sort", default=DEFAULT_SORT, help="e.g. date-asc, title-desc")
    p = sub.add_parser("search", help="Filter tasks by regex")
    p.add_argument("pattern")
    p.add_argument("--case-sensitive", action="store_true")
    p.add_argument("--highlight", action="store_true", help="Attach <mark> markup")
    p.add_argument("--sort", default=DEFAULT_SORT)
    sub.add_parser("validate", help="Validate a form (JSON on stdin)")
    p = sub.add_parser("validate-field", help="Validate a single field")
    p.add_argument("field", choices=sorted(VALIDATORS))
    p.add_argument("value")
    sub.add_parser("import", help="Import tasks (JSON array on stdin)")
    sub.add_parser("export", help="Export tasks as JSON")
    sub.add_parser("stats", help="Totals, weekly cap and activity")
    sub.add_parser("clear", help="Delete all tasks and settings")
    return parser


COMMANDS = {
    "add": cmd_add,
    "update": cmd_update,
    "delete": cmd_delete,
    "list": cmd_list,
    "search": cmd_search,
    "validate": cmd_validate,
    "validate-field": cmd_validate_field,
    "import": cmd_import,
    "export": cmd_export,
    "stats": cmd_stats,
    "clear": cmd_clear,
}


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    planner: Planner | None = None
    try:
        planner = _build_planner(args)
        COMMANDS[args.command](planner, args)
    except FieldValidationError as e:
        for field, message in e.errors.items():
            sys.stderr.write(f"{field}: {message}\n")
        sys.exit(1)
    except (CommandError, ValueError, OSError, yaml.YAMLError) as e:
        sys.stderr.write(f"{e}\n")
        sys.exit(1)
    finally:
        if planner is not None:
            planner.store.close()


if __name__ == "__main__":
    main()
