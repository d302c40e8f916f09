"""Pattern matching — compile user regexes, scan task fields, highlight hits.

Matchers are plain ``re.Pattern`` objects.  Every scan passes an explicit
start position, so nothing about a scan lives on the matcher and the same
matcher can serve any number of independent scans.

Usage:
    matcher = compile_pattern("study|review")
    matches_any(matcher, "Review notes")           # True
    highlight(matcher, "Review <b>notes</b>")
    # '<mark>Review</mark> &lt;b&gt;notes&lt;/b&gt;'
"""

from __future__ import annotations
import html
import logging
import re
from typing import Any, Mapping

from .types import MatchSpan

logger = logging.getLogger(__name__)

_MARK_OPEN = "<mark>"
_MARK_CLOSE = "</mark>"

# Task fields scanned by a search, in the order they are tried
SEARCH_FIELDS: tuple[str, ...] = ("title", "tag", "notes", "dueDate")

# Shown next to the search box as a cheat sheet
SEARCH_EXAMPLES: list[dict[str, str]] = [
    {"pattern": r"^@homework", "description": "Tasks starting with @homework"},
    {"pattern": r"study|review", "description": 'Tasks containing "study" OR "review"'},
    {"pattern": r"\d{2}:\d{2}", "description": "Tasks with time patterns (14:30)"},
    {"pattern": r"\b(\w+)\s+\1\b", "description": "Detect duplicate words (back-reference)"},
    {"pattern": r"(?=.*exam)(?=.*math)", "description": 'Tasks with both "exam" AND "math" (lookahead)'},
]


class CompileError(ValueError):
    """Raised when a search pattern is not a valid regular expression."""

    def __init__(self, diagnostic: str) -> None:
        self.diagnostic = diagnostic   # native re.error message, untouched
        super().__init__(f"Invalid regex: {diagnostic}")


def compile_pattern(pattern: str, case_sensitive: bool = False) -> re.Pattern:
    """Compile a user pattern into a reusable matcher.

    Raises CompileError on invalid syntax.  The empty pattern means
    "no filter" and is the caller's business, not this function's.
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise CompileError(str(e)) from e


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def matches_any(matcher: re.Pattern, text: Any) -> bool:
    """True if the matcher finds at least one occurrence anywhere in text."""
    return matcher.search(_as_text(text)) is not None


def task_matches(matcher: re.Pattern, task: Mapping[str, Any]) -> bool:
    """A task is kept when any of its searchable fields matches."""
    return any(matches_any(matcher, task.get(f)) for f in SEARCH_FIELDS)


def find_all_spans(matcher: re.Pattern, text: Any) -> list[MatchSpan]:
    """Every non-overlapping match, left to right.

    A zero-length match moves the scan one character past its start;
    the skipped character counts as unmatched text.
    """
    text = _as_text(text)
    spans: list[MatchSpan] = []
    pos = 0
    limit = len(text)
    while pos <= limit:
        m = matcher.search(text, pos)
        if m is None:
            break
        start, end = m.span()
        spans.append(MatchSpan(start, end))
        pos = end if end > start else start + 1
    return spans


def escape_html(text: Any) -> str:
    """Encode markup-significant characters (& < > " ')."""
    return html.escape(_as_text(text), quote=True)


def highlight(matcher: re.Pattern | None, text: Any) -> str:
    """Escape text and wrap every match in <mark>…</mark>.

    Never raises: if scanning fails the escaped, unmarked text is returned.
    """
    text = _as_text(text)
    if matcher is None or not text:
        return escape_html(text)

    try:
        spans = find_all_spans(matcher, text)
    except Exception:
        logger.debug("highlight scan failed for %r", matcher.pattern, exc_info=True)
        return escape_html(text)

    parts: list[str] = []
    last = 0
    for span in spans:
        if span.start > last:
            parts.append(escape_html(text[last:span.start]))
        if span.end > span.start:
            parts.append(_MARK_OPEN + escape_html(text[span.start:span.end]) + _MARK_CLOSE)
        last = max(last, span.end)
    if last < len(text):
        parts.append(escape_html(text[last:]))
    return "".join(parts)


def strip_marks(markup: str) -> str:
    """Remove highlight markers, leaving the escaped text."""
    return markup.replace(_MARK_OPEN, "").replace(_MARK_CLOSE, "")
