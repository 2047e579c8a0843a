"""Read spreadsheet files into header-keyed rows with native cell types."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)


class SpreadsheetError(ValueError):
    """Raised when a workbook cannot be turned into import rows."""


def read_workbook(
    path: Path, *, sheet: Optional[str] = None
) -> tuple[list[str], list[dict[str, Any]]]:
    """Return the headers and data rows of the first (or named) worksheet.

    Cell values keep the types openpyxl gives them (numbers, strings,
    ``datetime``, ``time``), which the import normalizer relies on. Empty
    cells become ``""``; fully empty rows are skipped.
    """
    try:
        workbook = openpyxl.load_workbook(Path(path), read_only=True, data_only=True)
    except (OSError, KeyError, ValueError, InvalidFileException, zipfile.BadZipFile) as exc:
        raise SpreadsheetError(f"Could not open workbook {path}: {exc}") from exc

    try:
        if sheet is not None:
            if sheet not in workbook.sheetnames:
                raise SpreadsheetError(f"Worksheet {sheet!r} not found in {path}")
            worksheet = workbook[sheet]
        else:
            worksheet = workbook[workbook.sheetnames[0]]
        raw_rows = list(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not raw_rows:
        raise SpreadsheetError(f"Workbook {path} is empty")

    headers = _headers(raw_rows[0])
    rows: list[dict[str, Any]] = []
    for values in raw_rows[1:]:
        if all(value is None or (isinstance(value, str) and not value.strip()) for value in values):
            continue
        padded = list(values) + [None] * (len(headers) - len(values))
        rows.append(
            {header: ("" if value is None else value) for header, value in zip(headers, padded)}
        )

    if not rows:
        raise SpreadsheetError(f"Workbook {path} has no data rows")
    logger.info("Read %d rows with %d columns from %s", len(rows), len(headers), path)
    return headers, rows


def _headers(values: tuple[Any, ...]) -> list[str]:
    headers: list[str] = []
    for position, value in enumerate(values, start=1):
        text = str(value).strip() if value is not None else ""
        if not text or text in headers:
            text = f"Coluna {position}"
        headers.append(text)
    return headers
