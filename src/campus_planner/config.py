"""YAML/dict config loader for campus-planner.

Supports loading from a YAML file or a plain dict (for embedding in a
larger app config).

Example YAML:

    campus_planner:
      weekly_cap: 40
      time_unit: minutes        # "minutes" or "hours"
      reduce_motion: false
      search:
        case_sensitive: false
        debounce_ms: 200
      store:
        backend: sqlite         # "memory" or "sqlite"
        path: ~/.campus-planner/planner.db
        namespace: default
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Callable

from .debounce import Debouncer
from .planner import Planner
from .store import DEFAULT_SETTINGS, MemoryStore
from .store_sqlite import SqliteStore
from .types import FilterResult

TIME_UNITS = ("minutes", "hours")


class ConfigError(ValueError):
    """Raised for config values that cannot be used."""


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "campus_planner" key or flat
    if "campus_planner" in data:
        data = data["campus_planner"] or {}

    search = data.get("search") or {}
    store = data.get("store") or {}

    time_unit = data.get("time_unit", DEFAULT_SETTINGS["timeUnit"])
    if time_unit not in TIME_UNITS:
        raise ConfigError(f"time_unit must be one of {TIME_UNITS}, got {time_unit!r}")

    weekly_cap = data.get("weekly_cap", DEFAULT_SETTINGS["weeklyCap"])
    if isinstance(weekly_cap, bool) or not isinstance(weekly_cap, (int, float)) or weekly_cap < 0:
        raise ConfigError(f"weekly_cap must be a non-negative number, got {weekly_cap!r}")

    backend = store.get("backend", "memory")
    if backend not in ("memory", "sqlite"):
        raise ConfigError(f"store.backend must be 'memory' or 'sqlite', got {backend!r}")

    return {
        "weekly_cap": weekly_cap,
        "time_unit": time_unit,
        "reduce_motion": bool(data.get("reduce_motion", DEFAULT_SETTINGS["reduceMotion"])),
        "case_sensitive": bool(search.get("case_sensitive", False)),
        "debounce_ms": int(search.get("debounce_ms", 200)),
        "store_backend": backend,
        "store_path": store.get("path", "planner.db"),
        "store_namespace": store.get("namespace", "default"),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path) as f:
        return load_config(yaml.safe_load(f))


def create_planner(config: dict[str, Any]) -> Planner:
    """Create a Planner on the configured store with configured settings."""
    cfg = load_config(config) if "store_backend" not in config else config

    if cfg["store_backend"] == "sqlite":
        store = SqliteStore(cfg["store_namespace"], db_path=cfg["store_path"])
    else:
        store = MemoryStore()

    planner = Planner(store)
    planner.update_settings(
        weeklyCap=cfg["weekly_cap"],
        timeUnit=cfg["time_unit"],
        reduceMotion=cfg["reduce_motion"],
    )
    return planner


def create_live_search(
    planner: Planner,
    config: dict[str, Any],
    on_result: Callable[[FilterResult], None],
) -> Debouncer:
    """Debounced search-as-you-type bound to a planner.

    ``schedule(pattern)`` on every keystroke; after the configured pause
    the planner is filtered with the configured case sensitivity and
    ``on_result`` receives the outcome.
    """
    cfg = load_config(config) if "store_backend" not in config else config
    case_sensitive = cfg["case_sensitive"]

    def run(pattern: str) -> None:
        on_result(planner.filter_tasks(pattern, case_sensitive))

    return Debouncer(run, delay=cfg["debounce_ms"] / 1000)
