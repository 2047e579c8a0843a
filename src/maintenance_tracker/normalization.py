"""Utilities to normalize free-text spreadsheet cells."""

from __future__ import annotations

import re
from typing import Any, Optional

CANONICAL_SEPARATOR = " / "

_MISSING_PLACEHOLDERS = frozenset({"-", "n/a", "sem descrição"})

_WHITESPACE_PATTERN = re.compile(r"\s{2,}")


def clean_cell_text(value: Any) -> str:
    """Render a cell as trimmed text with internal whitespace collapsed."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return _WHITESPACE_PATTERN.sub(" ", text)


def is_missing_text(value: Any) -> bool:
    text = clean_cell_text(value)
    return not text or text.casefold() in _MISSING_PLACEHOLDERS


def normalize_responsible(value: Any, separator: Optional[str] = None) -> str:
    """Join the people named in a cell with the canonical separator."""
    text = clean_cell_text(value)
    if not separator or separator == CANONICAL_SEPARATOR:
        return text
    names = [
        name.strip()
        for token in text.split(separator)
        for name in token.split(CANONICAL_SEPARATOR.strip())
    ]
    return CANONICAL_SEPARATOR.join(name for name in names if name)


def split_responsible(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [name.strip() for name in value.split(CANONICAL_SEPARATOR) if name.strip()]
