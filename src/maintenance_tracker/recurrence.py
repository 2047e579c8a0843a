"""Expansion of recurring activities into future occurrences."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Union

from dateutil.relativedelta import relativedelta

from .models import Activity, ActivityStatus, Recurrence
from .timeparse import duration_between, format_duration

logger = logging.getLogger(__name__)

MAX_RECURRENCES = 365

_STEPS: dict[Recurrence, relativedelta] = {
    Recurrence.DAILY: relativedelta(days=1),
    Recurrence.WEEKLY: relativedelta(days=7),
    Recurrence.BIWEEKLY: relativedelta(days=15),
    Recurrence.MONTHLY: relativedelta(months=1),
    Recurrence.QUARTERLY: relativedelta(months=3),
    Recurrence.SEMIANNUAL: relativedelta(months=6),
}


def next_occurrence(current: datetime, recurrence: Recurrence) -> datetime:
    """Advance ``current`` by one calendar step of ``recurrence``."""
    step = _STEPS.get(Recurrence(recurrence))
    if step is None:
        raise ValueError(f"{recurrence!r} has no recurrence step")
    # relativedelta clamps the day when the target month is shorter.
    return current + step


def expand(
    template: Activity,
    limit: Union[date, datetime],
    *,
    max_instances: int = MAX_RECURRENCES,
) -> list[Activity]:
    """Generate the occurrences of ``template`` that start on or before ``limit``.

    The template itself is not part of the result and is never modified.
    Occurrences are returned in start order with ids derived from the
    template id (``<template id>_1``, ``<template id>_2``, ...). A plain date
    limit includes the whole of that day.
    """
    recurrence = Recurrence(template.recurrence)
    if recurrence is Recurrence.NONE:
        return []
    if not isinstance(limit, datetime):
        limit = datetime.combine(limit, time.max)

    span = template.end_time - template.start_time
    duration = format_duration(duration_between(template.start_time, template.end_time))

    generated: list[Activity] = []
    cursor = next_occurrence(template.start_time, recurrence)
    while cursor <= limit and len(generated) < max_instances:
        generated.append(
            template.copy(
                id=f"{template.id}_{len(generated) + 1}",
                start_time=cursor,
                end_time=cursor + span,
                duration=duration,
                status=ActivityStatus.OPEN,
                actual_start=None,
                actual_end=None,
            )
        )
        cursor = next_occurrence(cursor, recurrence)

    logger.debug(
        "Expanded %s (%s) into %d occurrences up to %s",
        template.id,
        recurrence.value,
        len(generated),
        limit.isoformat(),
    )
    return generated
