"""Active coding time estimation from sparse editor events.

Both estimators walk the events of a time window in chronological order and
count the gap between two consecutive events as active time when it does not
exceed the idle timeout. Longer gaps are treated as breaks and contribute
nothing. A fixed credit is added after the final event to account for the
activity that followed the last recorded signal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from .config import EngineSettings
from .models import AttributeSelector, EditorEvent

logger = logging.getLogger(__name__)

UNKNOWN_ATTRIBUTE = "Unknown"

_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True, slots=True)
class DailyBreakdown:
    """Active minutes per attribute value for one calendar day."""

    date: date
    breakdown: dict[str, int] = field(default_factory=dict)


def select_window(
    events: Iterable[EditorEvent],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
) -> list[EditorEvent]:
    """Return the events inside the inclusive window, oldest first.

    A missing bound leaves that side of the window open. The input is never
    modified; the result is a new list.
    """
    _require_aware(window_start, "window_start")
    _require_aware(window_end, "window_end")
    selected: list[EditorEvent] = []
    for event in events:
        _require_aware(event.timestamp, "event timestamp")
        if window_start is not None and event.timestamp < window_start:
            continue
        if window_end is not None and event.timestamp > window_end:
            continue
        selected.append(event)
    selected.sort(key=lambda event: event.timestamp)
    return selected


def to_minutes(value: timedelta) -> int:
    """Floor a duration to whole minutes."""
    return value // _MINUTE


class ActivityTimeEstimator:
    """Estimate the total active minutes of an event stream."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or EngineSettings()

    def estimate(
        self,
        events: Iterable[EditorEvent],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> int:
        ordered = select_window(events, window_start, window_end)
        if not ordered:
            return 0
        if len(ordered) == 1:
            return to_minutes(self.settings.single_event_credit)

        active = timedelta(0)
        for previous, current in zip(ordered, ordered[1:]):
            gap = current.timestamp - previous.timestamp
            if gap <= self.settings.idle_timeout:
                active += gap

        total = active + self.settings.last_event_credit
        logger.debug(
            "Estimated %s of activity from %d events", total, len(ordered)
        )
        return to_minutes(total)


class AttributeTimeAggregator:
    """Break active time down by an event attribute and by calendar day."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or EngineSettings()

    def breakdown_by_attribute(
        self,
        events: Iterable[EditorEvent],
        window_start: Optional[datetime],
        window_end: Optional[datetime],
        attribute: AttributeSelector,
    ) -> dict[str, int]:
        ordered = select_window(events, window_start, window_end)
        return self._breakdown(ordered, attribute)

    def time_series_by_attribute(
        self,
        events: Iterable[EditorEvent],
        window_start: datetime,
        window_end: datetime,
        attribute: AttributeSelector,
        tz: tzinfo = timezone.utc,
    ) -> list[DailyBreakdown]:
        """Return one breakdown per calendar day of the window, oldest first.

        Days are taken in ``tz``. Every day of the range is present; days
        without events carry an empty breakdown. Gaps are only measured
        between events of the same day.
        """
        if window_start is None or window_end is None:
            raise ValueError("a time series needs both window bounds")
        ordered = select_window(events, window_start, window_end)

        events_by_day: dict[date, list[EditorEvent]] = {}
        for event in ordered:
            day = event.timestamp.astimezone(tz).date()
            events_by_day.setdefault(day, []).append(event)

        series: list[DailyBreakdown] = []
        for day in _date_range(
            window_start.astimezone(tz).date(), window_end.astimezone(tz).date()
        ):
            daily_events = events_by_day.get(day, [])
            series.append(DailyBreakdown(day, self._breakdown(daily_events, attribute)))
        return series

    def _breakdown(
        self, ordered: Sequence[EditorEvent], attribute: AttributeSelector
    ) -> dict[str, int]:
        if not ordered:
            return {}
        if len(ordered) == 1:
            key = normalize_attribute(attribute(ordered[0]))
            return {key: to_minutes(self.settings.last_event_credit)}

        totals: dict[str, timedelta] = {}
        for previous, current in zip(ordered, ordered[1:]):
            gap = current.timestamp - previous.timestamp
            if gap > self.settings.idle_timeout:
                continue
            key = normalize_attribute(attribute(previous))
            totals[key] = totals.get(key, timedelta(0)) + gap

        last_key = normalize_attribute(attribute(ordered[-1]))
        totals[last_key] = (
            totals.get(last_key, timedelta(0)) + self.settings.last_event_credit
        )

        minutes = {key: to_minutes(value) for key, value in totals.items()}
        return {key: value for key, value in minutes.items() if value > 0}


def normalize_attribute(value: Optional[str]) -> str:
    if value is None or not value.strip():
        return UNKNOWN_ATTRIBUTE
    return value


def _date_range(first: date, last: date) -> list[date]:
    days = (last - first).days
    return [first + timedelta(days=offset) for offset in range(days + 1)]


def _require_aware(value: Optional[datetime], label: str) -> None:
    if value is not None and value.tzinfo is None:
        raise ValueError(f"{label} must be timezone-aware: {value!r}")
