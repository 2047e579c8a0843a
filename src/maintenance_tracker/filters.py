"""Filtering and ordering of activity lists."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import Activity

ALL = "all"


@dataclass(slots=True)
class ActivityFilter:
    shift: Optional[str] = None
    responsible: Optional[str] = None
    supervisor: Optional[str] = None
    mp_id: Optional[str] = None
    only_mine_for: Optional[str] = None

    def matches(self, activity: Activity) -> bool:
        if not _equals(self.shift, activity.shift):
            return False
        if not _equals(self.responsible, activity.responsible):
            return False
        if not _equals(self.supervisor, activity.supervisor):
            return False
        if not _equals(self.mp_id, activity.mp_id):
            return False
        if self.only_mine_for:
            name = self.only_mine_for.casefold()
            if name not in activity.responsible.casefold() and name not in activity.supervisor.casefold():
                return False
        return True


def filter_activities(
    activities: Iterable[Activity], flt: Optional[ActivityFilter] = None
) -> list[Activity]:
    if flt is None:
        return list(activities)
    return [activity for activity in activities if flt.matches(activity)]


def sort_by_deadline(activities: Iterable[Activity]) -> list[Activity]:
    return sorted(activities, key=lambda activity: (activity.end_time, activity.id))


def _equals(expected: Optional[str], actual: str) -> bool:
    return not expected or expected == ALL or expected == actual
