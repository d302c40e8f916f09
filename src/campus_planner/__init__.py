"""Campus planner — regex task search and field validation for a local task list."""

from .search import (
    CompileError,
    compile_pattern,
    matches_any,
    task_matches,
    find_all_spans,
    highlight,
    escape_html,
)
from .validators import (
    VALIDATORS,
    FieldValidationError,
    ImportStructureError,
    validate_field,
    validate_all,
    validate_import_data,
)
from .planner import Planner
from .store import MemoryStore
from .store_sqlite import SqliteStore
from .debounce import Debouncer
from .config import create_planner, create_live_search, load_config, load_from_yaml
from .types import (
    MatchSpan,
    FieldValidationResult,
    FormValidationResult,
    ImportValidationResult,
    FilterResult,
)

__all__ = [
    "CompileError", "compile_pattern", "matches_any", "task_matches",
    "find_all_spans", "highlight", "escape_html",
    "VALIDATORS", "FieldValidationError", "ImportStructureError",
    "validate_field", "validate_all", "validate_import_data",
    "Planner",
    "MemoryStore", "SqliteStore",
    "Debouncer",
    "create_planner", "create_live_search", "load_config", "load_from_yaml",
    "MatchSpan", "FieldValidationResult", "FormValidationResult",
    "ImportValidationResult", "FilterResult",
]
__version__ = "0.1.0"
