"""HTTP sidecar server for campus-planner.

Runs as a lightweight stdlib HTTP server on localhost so a browser UI or
desktop shell can reach the search and validation engine without
spawning a process per keystroke.

Endpoints:
    GET  /health           — Health check
    GET  /tasks            — Current (filtered, sorted) task view
    POST /tasks            — Add a task            {"form": {...}}
    POST /search           — Filter tasks          {"pattern", "case_sensitive", "sort"}
    POST /highlight        — Highlight one string  {"pattern", "case_sensitive", "text"}
    POST /validate         — Validate a form       {"form": {...}}
    POST /validate-field   — Validate one field    {"field", "value"}
    POST /validate-import  — Structural check      {"data": [...]}
    POST /import           — Replace all tasks     {"data": [...]}
    POST /clear            — Delete all data

All endpoints expect/return JSON.
"""

from __future__ import annotations
import dataclasses
import json
import logging
import os
from http.server import HTTPServer, BaseHTTPRequestHandler
from pathlib import Path
from typing import Any

from .planner import DEFAULT_SORT, Planner
from .search import compile_pattern, highlight
from .store_sqlite import SqliteStore
from .validators import (
    VALIDATORS,
    FieldValidationError,
    validate_all,
    validate_field,
    validate_import_data,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("CAMPUS_PLANNER_PORT", "18792"))
DEFAULT_DB = os.environ.get(
    "CAMPUS_PLANNER_DB",
    str(Path.home() / ".campus-planner" / "planner.db"),
)


class PlannerHTTPServer(HTTPServer):
    """HTTPServer that carries the planner its handlers work on."""

    def __init__(self, address: tuple[str, int], planner: Planner) -> None:
        super().__init__(address, PlannerHandler)
        self.planner = planner


def _pattern(body: dict[str, Any]) -> str:
    pattern = body.get("pattern") or ""
    if not isinstance(pattern, str):
        raise ValueError("pattern must be a string")
    return pattern


def _form(body: dict[str, Any]) -> dict[str, Any]:
    form = body.get("form") or {}
    if not isinstance(form, dict):
        raise ValueError("form must be a JSON object")
    return form


class PlannerHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the planner sidecar."""

    server: PlannerHTTPServer

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(length).decode("utf-8")
        body = json.loads(raw) if raw else {}
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        return body

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        planner = self.server.planner
        if self.path == "/health":
            self._respond(200, {"status": "ok", "tasks": len(planner.tasks)})
        elif self.path == "/tasks":
            self._respond(200, {"tasks": planner.filtered_tasks})
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        planner = self.server.planner
        try:
            body = self._read_json()

            if self.path == "/tasks":
                self._respond(201, {"task": planner.add_task(_form(body))})

            elif self.path == "/search":
                if "sort" in body:
                    planner.sort_tasks(body["sort"])
                result = planner.filter_tasks(_pattern(body), bool(body.get("case_sensitive")))
                if not result.success:
                    self._respond(400, {"error": result.error})
                    return
                self._respond(200, {
                    "count": result.count,
                    "tasks": [
                        {**t, "highlight": planner.highlight_task(t)}
                        for t in planner.filtered_tasks
                    ],
                })

            elif self.path == "/highlight":
                pattern = _pattern(body)
                matcher = compile_pattern(pattern, bool(body.get("case_sensitive"))) if pattern else None
                self._respond(200, {"markup": highlight(matcher, body.get("text", ""))})

            elif self.path == "/validate":
                self._respond(200, dataclasses.asdict(validate_all(_form(body))))

            elif self.path == "/validate-field":
                field = body.get("field")
                if field not in VALIDATORS:
                    self._respond(400, {"error": f"unknown field: {field}"})
                    return
                self._respond(200, dataclasses.asdict(validate_field(field, body.get("value"))))

            elif self.path == "/validate-import":
                self._respond(200, dataclasses.asdict(validate_import_data(body.get("data"))))

            elif self.path == "/import":
                count = planner.import_tasks(body.get("data"))
                self._respond(200, {"status": "imported", "count": count})

            elif self.path == "/clear":
                planner.clear_all_data()
                self._respond(200, {"status": "cleared"})

            else:
                self._respond(404, {"error": "not found"})

        except FieldValidationError as e:
            self._respond(400, {"errors": e.errors})
        except ValueError as e:
            self._respond(400, {"error": str(e)})
        except Exception as e:
            logger.exception("Unhandled error on %s", self.path)
            self._respond(500, {"error": str(e)})


def make_server(planner: Planner, host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> PlannerHTTPServer:
    """Bind the sidecar without starting it (port 0 picks a free port)."""
    return PlannerHTTPServer((host, port), planner)


def serve(port: int = DEFAULT_PORT, db_path: str = DEFAULT_DB, namespace: str = "default") -> None:
    """Start the planner HTTP sidecar."""
    planner = Planner(SqliteStore(namespace, db_path=db_path))
    planner.sort_tasks(DEFAULT_SORT)
    server = make_server(planner, port=port)
    print(f"campus-planner sidecar listening on http://127.0.0.1:{server.server_port}")
    print(f"  store db: {db_path} (namespace {namespace})")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()
        planner.store.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="campus-planner HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--db", default=DEFAULT_DB)
    parser.add_argument("--namespace", default="default")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    serve(port=args.port, db_path=args.db, namespace=args.namespace)
