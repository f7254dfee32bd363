"""Per-user analytics built on top of the activity time engine."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from .config import EngineSettings
from .db import fetch_events
from .engine import ActivityTimeEstimator, AttributeTimeAggregator, DailyBreakdown
from .models import EditorEvent, EventAttribute

PERIODS: tuple[str, ...] = ("today", "7d", "30d")
DEFAULT_PERIOD = "7d"


def resolve_period(period: Optional[str]) -> str:
    return period if period in PERIODS else DEFAULT_PERIOD


def period_start(period: Optional[str], now: datetime) -> datetime:
    """Return the UTC midnight where a reporting period begins."""
    midnight = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    resolved = resolve_period(period)
    if resolved == "today":
        return midnight
    if resolved == "30d":
        return midnight - timedelta(days=30)
    return midnight - timedelta(days=7)


def trailing_window_start(now: datetime, minutes: int) -> Optional[datetime]:
    """Start of the last ``minutes`` minutes before ``now``.

    Windows reaching past the earliest representable datetime are open-ended.
    """
    try:
        return now - timedelta(minutes=max(minutes, 0))
    except OverflowError:
        return None


def minutes_since(
    events: Iterable[EditorEvent],
    now: datetime,
    minutes: int,
    settings: Optional[EngineSettings] = None,
) -> int:
    """Active minutes over the last ``minutes`` minutes up to ``now``."""
    start = trailing_window_start(now, minutes)
    return ActivityTimeEstimator(settings).estimate(events, start, now)


@dataclass(slots=True)
class AnalyticsReport:
    period: str
    start: datetime
    end: datetime
    language: dict[str, int]
    workspace: dict[str, int]
    platform: dict[str, int]
    time_series: list[DailyBreakdown]

    @property
    def total_minutes(self) -> int:
        return sum(self.language.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "language": self.language,
            "workspace": self.workspace,
            "platform": self.platform,
            "time_series": [
                {"date": entry.date.isoformat(), "data": entry.breakdown}
                for entry in self.time_series
            ],
            "total_minutes": self.total_minutes,
        }


class AnalyticsCalculator:
    """Compute language, workspace and platform breakdowns for one window."""

    def __init__(
        self,
        events: Iterable[EditorEvent],
        start_time: datetime,
        end_time: datetime,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self._events = tuple(events)
        self.start_time = start_time
        self.end_time = end_time
        self._aggregator = AttributeTimeAggregator(settings)

    @classmethod
    def for_user(
        cls,
        conn: sqlite3.Connection,
        user_id: int,
        start_time: datetime,
        end_time: datetime,
        settings: Optional[EngineSettings] = None,
    ) -> "AnalyticsCalculator":
        events = fetch_events(conn, user_id, start_time, end_time)
        return cls(events, start_time, end_time, settings)

    def time_by_language(self) -> dict[str, int]:
        return self._time_by(EventAttribute.LANGUAGE)

    def time_by_workspace(self) -> dict[str, int]:
        return self._time_by(EventAttribute.PROJECT)

    def time_by_platform(self) -> dict[str, int]:
        return self._time_by(EventAttribute.PLATFORM)

    def time_series_by_language(self) -> list[DailyBreakdown]:
        return self._aggregator.time_series_by_attribute(
            self._events, self.start_time, self.end_time, EventAttribute.LANGUAGE
        )

    def report(self, period: str) -> AnalyticsReport:
        return AnalyticsReport(
            period=period,
            start=self.start_time,
            end=self.end_time,
            language=self.time_by_language(),
            workspace=self.time_by_workspace(),
            platform=self.time_by_platform(),
            time_series=self.time_series_by_language(),
        )

    def _time_by(self, attribute: EventAttribute) -> dict[str, int]:
        return self._aggregator.breakdown_by_attribute(
            self._events, self.start_time, self.end_time, attribute
        )
