"""Configuration models and helpers for the maintenance tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(slots=True)
class TrackerSettings:
    """Defaults applied when generating and importing activities."""

    max_recurrences: int = 365
    default_duration: timedelta = timedelta(hours=1)
    default_tag: str = "SEM TAG"
    default_activity_type: str = "PLANO"
    company: str = "FOSPAR"
    rejection_warning_ratio: float = 0.5

    @classmethod
    def from_values(
        cls,
        max_recurrences: int | None = None,
        default_duration_minutes: float | None = None,
        company: str | None = None,
    ) -> "TrackerSettings":
        defaults = cls()
        return cls(
            max_recurrences=(
                max_recurrences if max_recurrences is not None else defaults.max_recurrences
            ),
            default_duration=(
                timedelta(minutes=default_duration_minutes)
                if default_duration_minutes is not None
                else defaults.default_duration
            ),
            company=company if company is not None else defaults.company,
        )
