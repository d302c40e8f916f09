"""Field validation for task forms and bulk imports.

Each field rule is a pure function ``value -> FieldValidationResult``.
``VALIDATORS`` maps field names to rules so a form layer can re-check a
single field on every keystroke; ``validate_all`` runs the whole form.

Usage:
    validate_date("2024-02-30")
    # FieldValidationResult(valid=False, message='Invalid date (e.g., February 30th)')

    result = validate_all({"title": "Read", "date": "2024-01-01",
                           "duration": "30", "tag": "study"})
    result.valid   # True
"""

from __future__ import annotations
import datetime
import math
import re
from collections.abc import Mapping
from typing import Any, Callable

from .types import FieldValidationResult, FormValidationResult, ImportValidationResult

# Shape patterns.  All are applied with fullmatch; re.ASCII keeps \d to 0-9.
TITLE_PATTERN = re.compile(r"\S(?:.*\S)?")
DATE_PATTERN = re.compile(r"\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])", re.ASCII)
DURATION_PATTERN = re.compile(r"(0|[1-9]\d*)(\.\d{1,2})?", re.ASCII)
TAG_PATTERN = re.compile(r"[A-Za-z]+(?:[ -][A-Za-z]+)*")
DUPLICATE_WORD_PATTERN = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)
_CONSECUTIVE_SPACE = re.compile(r"\s{2,}")

TITLE_MESSAGE = "Title cannot have leading or trailing spaces, and must not be empty"
DATE_MESSAGE = "Date must be in YYYY-MM-DD format"
DURATION_MESSAGE = "Duration must be a positive number with up to 2 decimal places"
TAG_MESSAGE = "Tag can only contain letters, spaces, and hyphens"

MAX_DURATION_MINUTES = 1440
MAX_TAG_LENGTH = 30

_OK = FieldValidationResult(True, "")


class FieldValidationError(ValueError):
    """Raised when a task write is refused because form fields are invalid."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class ImportStructureError(ValueError):
    """Raised when imported task data is structurally malformed."""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _fail(message: str) -> FieldValidationResult:
    return FieldValidationResult(False, message)


# ------------------------------------------------------------------
# Field rules
# ------------------------------------------------------------------

def validate_title(value: Any) -> FieldValidationResult:
    text = _as_text(value)
    if not text.strip():
        return _fail("Title is required")
    if not TITLE_PATTERN.fullmatch(text):
        return _fail(TITLE_MESSAGE)
    if _CONSECUTIVE_SPACE.search(text):
        return _fail("Title cannot contain consecutive spaces")
    return _OK


def validate_date(value: Any) -> FieldValidationResult:
    """YYYY-MM-DD that names a real calendar day."""
    text = _as_text(value)
    if not text.strip():
        return _fail("Date is required")
    if not DATE_PATTERN.fullmatch(text):
        return _fail(DATE_MESSAGE)

    year, month, day = (int(p) for p in text.split("-"))
    if year < datetime.MINYEAR:
        return _fail("Invalid date")
    try:
        datetime.date(year, month, day)
    except ValueError:
        return _fail("Invalid date (e.g., February 30th)")
    return _OK


def validate_duration(value: Any) -> FieldValidationResult:
    """Minutes, up to two decimals, at most one day."""
    text = _as_text(value)
    if not text.strip():
        return _fail("Duration is required")
    if not DURATION_PATTERN.fullmatch(text):
        return _fail(DURATION_MESSAGE)

    minutes = float(text)
    # Unreachable while DURATION_PATTERN has no sign.
    if minutes < 0:
        return _fail("Duration must be positive")
    if minutes > MAX_DURATION_MINUTES:
        return _fail(f"Duration cannot exceed {MAX_DURATION_MINUTES} minutes (24 hours)")
    return _OK


def validate_tag(value: Any) -> FieldValidationResult:
    text = _as_text(value)
    if not text.strip():
        return _fail("Tag is required")
    if not TAG_PATTERN.fullmatch(text):
        return _fail(TAG_MESSAGE)
    if len(text) > MAX_TAG_LENGTH:
        return _fail(f"Tag cannot exceed {MAX_TAG_LENGTH} characters")
    return _OK


def validate_duplicate_words(value: Any) -> FieldValidationResult:
    """Reject a word repeated back to back, ignoring case."""
    text = _as_text(value)
    if not text:
        return _OK
    m = DUPLICATE_WORD_PATTERN.search(text)
    if m:
        return _fail(f'Duplicate word detected: "{m.group(1)}"')
    return _OK


VALIDATORS: dict[str, Callable[[Any], FieldValidationResult]] = {
    "title": validate_title,
    "date": validate_date,
    "duration": validate_duration,
    "tag": validate_tag,
    "duplicate_words": validate_duplicate_words,
}


def validate_field(field: str, value: Any) -> FieldValidationResult:
    """Run a single rule by name.  Unknown names raise KeyError."""
    return VALIDATORS[field](value)


# ------------------------------------------------------------------
# Aggregators
# ------------------------------------------------------------------

def validate_all(data: Mapping[str, Any]) -> FormValidationResult:
    """Validate a task form.

    Every field is checked; the duplicate-word rule only runs once the
    title itself is well formed and reports under the ``title`` key.
    """
    errors: dict[str, str] = {}

    title = validate_title(data.get("title"))
    if not title.valid:
        errors["title"] = title.message
    else:
        dup = validate_duplicate_words(data.get("title"))
        if not dup.valid:
            errors["title"] = dup.message

    for name in ("date", "duration", "tag"):
        result = VALIDATORS[name](data.get(name))
        if not result.valid:
            errors[name] = result.message

    return FormValidationResult(valid=not errors, errors=errors)


def _non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and bool(v)


def _valid_minutes(v: Any) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    return not math.isnan(v) and v >= 0


def validate_import_data(data: Any) -> ImportValidationResult:
    """Structural check for a bulk import; stops at the first bad record.

    Business rules (date shape, duration limits) are not re-run here,
    only what storage and rendering depend on.
    """
    if not isinstance(data, (list, tuple)):
        return ImportValidationResult(False, "Data must be an array")

    for i, task in enumerate(data):
        if not isinstance(task, Mapping):
            return ImportValidationResult(False, f"Task at index {i} is not an object")
        for key in ("id", "title", "dueDate"):
            if not _non_empty_str(task.get(key)):
                return ImportValidationResult(False, f"Task at index {i} is missing valid {key}")
        if not _valid_minutes(task.get("duration")):
            return ImportValidationResult(False, f"Task at index {i} has invalid duration")
        if not _non_empty_str(task.get("tag")):
            return ImportValidationResult(False, f"Task at index {i} is missing valid tag")
        if not task.get("createdAt") or not task.get("updatedAt"):
            return ImportValidationResult(False, f"Task at index {i} is missing timestamps")

    return ImportValidationResult(True, "Data is valid")
