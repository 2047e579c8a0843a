"""Normalization of spreadsheet rows into activity records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from .config import TrackerSettings
from .models import Activity, ActivityStatus, Criticality, ImportMapping, Recurrence
from .normalization import clean_cell_text, is_missing_text, normalize_responsible
from .timeparse import (
    carries_calendar_date,
    combine_with_reference,
    duration_between,
    format_duration,
    is_empty_cell,
    parse_date,
    parse_duration_minutes,
)

logger = logging.getLogger(__name__)

WRAPAROUND_CORRECTION = timedelta(hours=1)


def batch_prefix(batch_id: str) -> str:
    """Id prefix shared by every activity created by one import batch."""
    return f"imported_{batch_id}_"


def normalize(
    rows: Iterable[Mapping[str, Any]],
    mapping: ImportMapping,
    batch_id: str,
    *,
    today: date,
    settings: Optional[TrackerSettings] = None,
) -> list[Activity]:
    """Convert raw rows to activities, dropping rows without a description."""
    settings = settings or TrackerSettings()
    activities: list[Activity] = []
    for index, row in enumerate(rows):
        activity = normalize_row(row, mapping, batch_id, index, today=today, settings=settings)
        if activity is None:
            logger.debug("Row %d of batch %s has no description; skipped", index, batch_id)
            continue
        activities.append(activity)
    return activities


def normalize_row(
    row: Mapping[str, Any],
    mapping: ImportMapping,
    batch_id: str,
    index: int,
    *,
    today: date,
    settings: TrackerSettings,
) -> Optional[Activity]:
    description = _cell(row, mapping.description)
    if is_missing_text(description):
        return None

    reference = resolve_reference_date(row, mapping, today)
    start = combine_with_reference(_cell(row, mapping.start_time), reference)
    end = resolve_end_time(row, mapping, start, reference, settings.default_duration)

    return Activity(
        id=f"{batch_prefix(batch_id)}{index}",
        start_time=start,
        end_time=end,
        duration=format_duration(duration_between(start, end)),
        description=clean_cell_text(description),
        mp_id=clean_cell_text(_cell(row, mapping.mp_id)),
        tag=clean_cell_text(_cell(row, mapping.tag)) or settings.default_tag,
        activity_type=settings.default_activity_type,
        recurrence=Recurrence.NONE,
        area=clean_cell_text(_cell(row, mapping.area)),
        shift=clean_cell_text(_cell(row, mapping.shift)),
        company=settings.company,
        responsible=normalize_responsible(
            _cell(row, mapping.responsible), mapping.responsible_separator
        ),
        supervisor=clean_cell_text(_cell(row, mapping.supervisor)),
        criticality=Criticality.parse(_cell(row, mapping.criticality)),
        status=ActivityStatus.OPEN,
    )


def resolve_reference_date(
    row: Mapping[str, Any], mapping: ImportMapping, today: date
) -> date:
    """Pick the calendar day the row's clock times belong to."""
    raw_date = _cell(row, mapping.date)
    if not is_empty_cell(raw_date):
        parsed = parse_date(raw_date, mapping.date_format)
        if parsed is not None:
            return parsed
        logger.debug("Unreadable date %r; trying the start time column", raw_date)

    raw_start = _cell(row, mapping.start_time)
    if carries_calendar_date(raw_start):
        return raw_start.date() if isinstance(raw_start, datetime) else raw_start
    return today


def resolve_end_time(
    row: Mapping[str, Any],
    mapping: ImportMapping,
    start: datetime,
    reference: date,
    default_duration: timedelta,
) -> datetime:
    """Derive the end from an explicit duration, an end column, or the default."""
    end: Optional[datetime] = None

    raw_duration = _cell(row, mapping.duration)
    if not is_empty_cell(raw_duration):
        minutes = parse_duration_minutes(raw_duration)
        if minutes is not None:
            end = start + timedelta(minutes=minutes)
        else:
            logger.debug("Unreadable duration %r; falling back to end time", raw_duration)

    if end is None:
        raw_end = _cell(row, mapping.end_time)
        if is_empty_cell(raw_end):
            end = start + default_duration
        else:
            end = combine_with_reference(raw_end, reference)

    if end <= start:
        end = start + WRAPAROUND_CORRECTION
    return end


def _cell(row: Mapping[str, Any], header: Optional[str]) -> Any:
    if not header:
        return None
    return row.get(header)
