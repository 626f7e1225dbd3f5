"""Text normalisation utilities."""
from __future__ import annotations

import re

_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_HORIZONTAL_RUNS_RE = re.compile(r"[ \t]{2,}")


def normalize_text(text: str, *, collapse_spaces: bool = False) -> str:
    """Collapse 3+ newlines to a blank line and trim surrounding whitespace."""

    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    if collapse_spaces:
        normalized = _HORIZONTAL_RUNS_RE.sub(" ", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()
