"""Manpower and status reporting for CLI and API output."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .db import database_connection, fetch_activities
from .filters import ActivityFilter, filter_activities
from .models import Activity, ActivityStatus
from .normalization import split_responsible


@dataclass(slots=True)
class ManpowerRow:
    activity: Activity
    headcount: int
    duration_minutes: int

    @property
    def man_minutes(self) -> int:
        return self.duration_minutes * self.headcount


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def print_manpower(self, flt: Optional[ActivityFilter] = None) -> None:
        with database_connection(self.db_path) as conn:
            activities = filter_activities(fetch_activities(conn), flt)
        if not activities:
            print("No activities match the selected filters.")
            return

        rows = manpower_rows(activities)
        print(f"Activities: {len(rows)}")
        print("-" * 60)
        for row in rows:
            label = row.activity.tag or row.activity.id
            people = row.activity.responsible or "-"
            print(
                f"  {label[:14]:<14} {people[:28]:<28} "
                f"{row.headcount:>2} x {row.activity.duration:>6} = {format_hhmm(row.man_minutes)}"
            )
        print("-" * 60)
        print(f"Total man-hours: {format_hhmm(total_man_minutes(rows))}")
        print()
        print("By status:")
        for status, count in status_counts(activities).items():
            print(f"  {status.value:<24} {count}")


def manpower_rows(activities: Iterable[Activity]) -> list[ManpowerRow]:
    return [
        ManpowerRow(
            activity=activity,
            headcount=len(split_responsible(activity.responsible)),
            duration_minutes=activity.duration_minutes,
        )
        for activity in activities
    ]


def total_man_minutes(rows: Iterable[ManpowerRow]) -> int:
    return sum(row.man_minutes for row in rows)


def status_counts(activities: Iterable[Activity]) -> dict[ActivityStatus, int]:
    counts = Counter(activity.status for activity in activities)
    return {status: counts.get(status, 0) for status in ActivityStatus}


def format_hhmm(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours:02d}:{mins:02d}"
