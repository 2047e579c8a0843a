"""Parsing helpers for loosely typed spreadsheet date, time and duration cells.

Spreadsheet readers surface the same logical value in several shapes: a
``datetime`` for date cells, a ``time`` or a pre-1970 ``datetime`` for
time-only cells, a float day fraction when the cell is unformatted, or plain
text typed by a person. Everything here takes one of those raw values and
returns either a parsed result or ``None``; callers pick the fallback.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from .models import DateFormat

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
MINUTES_PER_DAY = 1440

# Day zero of the spreadsheet serial date system (with the 1900 leap-year bug).
SERIAL_EPOCH = date(1899, 12, 30)

# Values stored before this year are time-only cells anchored to the serial epoch.
TIME_ONLY_YEAR_LIMIT = 1970

PORTUGUESE_MONTHS: dict[str, int] = {
    "jan": 1,
    "fev": 2,
    "mar": 3,
    "abr": 4,
    "mai": 5,
    "jun": 6,
    "jul": 7,
    "ago": 8,
    "set": 9,
    "out": 10,
    "nov": 11,
    "dez": 12,
}

_DATE_SPLIT_PATTERN = re.compile(r"[/\-.\s]+")
_CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
_DURATION_PATTERN = re.compile(r"^\s*(\d+):(\d{1,2})")


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_date(value: Any, fmt: DateFormat = DateFormat.DMY) -> Optional[date]:
    """Parse a date cell using the given layout; return ``None`` when unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_number(value):
        if value < 1:
            return None
        return SERIAL_EPOCH + timedelta(days=int(value))
    if not isinstance(value, str) or not value.strip():
        return None

    parts = [part for part in _DATE_SPLIT_PATTERN.split(value.strip()) if part]
    if len(parts) < 3:
        logger.debug("Date %r does not have three parts", value)
        return None
    first, second, third = parts[:3]

    try:
        if fmt is DateFormat.DMON_Y:
            month = PORTUGUESE_MONTHS.get(second.lower()[:3])
            if month is None:
                return None
            day, year = int(first), int(third)
        elif fmt is DateFormat.MDY:
            month, day, year = int(first), int(second), int(third)
        elif fmt is DateFormat.YMD:
            year, month, day = int(first), int(second), int(third)
        else:
            day, month, year = int(first), int(second), int(third)
    except ValueError:
        logger.debug("Date %r has non-numeric parts for %s", value, fmt.value)
        return None

    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        logger.debug("Date %r is not a valid calendar date", value)
        return None


def carries_calendar_date(value: Any) -> bool:
    """True for date values that are real dates rather than time-only sentinels."""
    return isinstance(value, date) and value.year >= TIME_ONLY_YEAR_LIMIT


def parse_time_of_day(value: Any) -> Optional[timedelta]:
    """Offset from midnight, in whole minutes, for a time-only cell.

    Day fractions are multiplied out rather than reduced modulo one day, so
    ``1.0`` (24:00) and longer ``[h]:mm`` values land on the following day.
    Seconds are rounded first: a fraction within half a second of a full day
    is read as the next midnight.
    """
    if _is_number(value):
        total_seconds = round(value * SECONDS_PER_DAY)
        if total_seconds < 0:
            return None
        return timedelta(minutes=total_seconds // 60)
    if isinstance(value, timedelta):
        if value < timedelta(0):
            return None
        return timedelta(minutes=int(value.total_seconds() // 60))
    if isinstance(value, str):
        match = _CLOCK_PATTERN.search(value)
        if not match:
            return None
        return timedelta(hours=int(match.group(1)), minutes=int(match.group(2)))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return timedelta(hours=value.hour, minutes=value.minute)
    if isinstance(value, time):
        return timedelta(hours=value.hour, minutes=value.minute)
    return None


def combine_with_reference(value: Any, reference: date) -> datetime:
    """Turn a start/end cell into an absolute timestamp anchored to the reference date."""
    midnight = datetime.combine(reference, time())
    if is_empty_cell(value):
        return midnight

    if isinstance(value, datetime) and value.year >= TIME_ONLY_YEAR_LIMIT:
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value.replace(second=0, microsecond=0)
    if isinstance(value, date) and not isinstance(value, datetime):
        if value.year >= TIME_ONLY_YEAR_LIMIT:
            return datetime.combine(value, time())
        return midnight

    offset = parse_time_of_day(value)
    if offset is None:
        logger.debug("Could not read a time from %r; using midnight", value)
        return midnight
    return midnight + offset


def parse_duration_minutes(value: Any) -> Optional[int]:
    """Read a duration cell as whole minutes."""
    if _is_number(value):
        return round(value * MINUTES_PER_DAY)
    if isinstance(value, timedelta):
        return round(value.total_seconds() / 60)
    if isinstance(value, str):
        match = _DURATION_PATTERN.match(value)
        if not match:
            return None
        return int(match.group(1)) * 60 + int(match.group(2))
    if isinstance(value, datetime):
        if value.year >= TIME_ONLY_YEAR_LIMIT:
            return None
        return value.hour * 60 + value.minute
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    return None


def duration_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


def format_duration(minutes: int) -> str:
    """Render minutes as ``H:MM``."""
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}:{mins:02d}"


def minutes_from_display(text: Optional[str]) -> int:
    """Minutes from a stored ``H:MM`` string or decimal hours; 0 if unreadable."""
    if not text:
        return 0
    text = text.strip()
    if ":" in text:
        hours, _, minutes = text.partition(":")
        try:
            return int(hours) * 60 + int(minutes or 0)
        except ValueError:
            return 0
    try:
        return round(float(text.replace(",", ".")) * 60)
    except ValueError:
        return 0
