"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class MatchSpan:
    """One match occurrence inside a single field's text."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class FieldValidationResult:
    """Outcome of validating one field."""
    valid: bool
    message: str = ""      # "" when valid


@dataclass(slots=True)
class FormValidationResult:
    """Outcome of validating a whole task form."""
    valid: bool
    errors: dict[str, str] = field(default_factory=dict)  # field → message


@dataclass(slots=True)
class ImportValidationResult:
    """Outcome of the structural check on bulk-imported tasks."""
    valid: bool
    message: str


@dataclass(slots=True)
class FilterResult:
    """Outcome of applying a search pattern to the task list."""
    success: bool
    count: int = 0
    error: str | None = None   # "Invalid regex: ..." on failure
