"""Interval merge and uptime calculation.

Every uptime figure CronGuard reports (monitor analytics, public status
pages, badges, status groups and daily history bars) comes from
``calculate_uptime``. Given a monitor's incidents and a time window it:

1. clamps every incident to the window, discarding those that do not
   overlap it (an ongoing incident extends to the window end),
2. sorts the clamped intervals by start,
3. merges overlapping or touching intervals into maximal disjoint spans,
4. sums the merged downtime,
5. reports ``(window - downtime) / window * 100`` clamped to [0, 100].

All functions in this module are pure: they never read the clock or the
database, so identical inputs always give identical results.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field


# Rolling windows reported by the analytics endpoint, in display order.
ROLLING_WINDOWS: Dict[str, timedelta] = {
    "last_24h": timedelta(hours=24),
    "last_7d": timedelta(days=7),
    "last_30d": timedelta(days=30),
    "last_90d": timedelta(days=90),
}

ALL_TIME = "all_time"

DEFAULT_HISTORY_DAYS = 90


@dataclass(frozen=True)
class IncidentSpan:
    """An incident as seen by the calculator.

    Attributes:
        start: When the incident started.
        end: When it was resolved, or None while it is still ongoing.
    """
    start: datetime
    end: Optional[datetime] = None


@dataclass(frozen=True, order=True)
class Interval:
    """A half-open downtime interval ``[start, end)``."""
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class UptimeStats(BaseModel):
    """Uptime over a single window.

    Attributes:
        uptime_percent: Percentage of the window without downtime, 0-100.
        downtime: Total merged downtime inside the window.
    """
    uptime_percent: float = Field(default=100.0, ge=0.0, le=100.0)
    downtime: timedelta = Field(default=timedelta(0))

    @property
    def downtime_ms(self) -> int:
        return int(self.downtime.total_seconds() * 1000)


class IncidentStatistics(BaseModel):
    """Aggregate figures over a monitor's whole incident history."""
    total: int = Field(default=0, description="Number of raw incidents")
    merged_periods: int = Field(default=0, description="Number of merged downtime periods")
    total_downtime: timedelta = Field(default=timedelta(0))
    average_duration: timedelta = Field(default=timedelta(0))


class DailyUptime(BaseModel):
    """Uptime for one UTC calendar day."""
    day: date
    uptime_percent: float = Field(..., ge=0.0, le=100.0)


def spans_from_incidents(incidents: Iterable) -> List[IncidentSpan]:
    """Convert incident rows into calculator input.

    Rows are anything exposing ``started_at`` and ``resolved_at``. Rows with
    no start time cannot be placed on the timeline and are dropped here so
    the calculator only ever sees well-formed spans.
    """
    spans = []
    for incident in incidents:
        started_at = getattr(incident, "started_at", None)
        if started_at is None:
            continue
        spans.append(IncidentSpan(start=started_at, end=getattr(incident, "resolved_at", None)))
    return spans


def clamp_to_window(
    incidents: Iterable[IncidentSpan],
    window_start: datetime,
    window_end: datetime,
) -> List[Interval]:
    """Clamp incidents to ``[window_start, window_end)``.

    An incident without an end is treated as ending at ``window_end``.
    Incidents left with no positive width after clamping are discarded.
    """
    intervals = []
    for incident in incidents:
        incident_end = incident.end if incident.end is not None else window_end
        clamped_start = max(incident.start, window_start)
        clamped_end = min(incident_end, window_end)
        if clamped_start < clamped_end:
            intervals.append(Interval(start=clamped_start, end=clamped_end))
    return intervals


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Merge overlapping or touching intervals.

    Returns:
        Pairwise disjoint intervals sorted by start. Two intervals where one
        ends exactly when the next starts are merged into one.
    """
    merged: List[Interval] = []
    for interval in sorted(intervals, key=lambda i: i.start):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(start=last.start, end=max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def total_duration(intervals: Iterable[Interval]) -> timedelta:
    """Sum the durations of ``intervals``."""
    return sum((interval.duration for interval in intervals), timedelta(0))


def calculate_uptime(
    incidents: Iterable[IncidentSpan],
    window_start: datetime,
    window_end: datetime,
) -> UptimeStats:
    """Compute uptime over ``[window_start, window_end)``.

    A zero-width or inverted window reports 100% uptime and no downtime
    instead of raising, since windows are derived from clocks and creation
    dates that may disagree slightly.
    """
    total_period = window_end - window_start
    if total_period <= timedelta(0):
        return UptimeStats(uptime_percent=100.0, downtime=timedelta(0))

    merged = merge_intervals(clamp_to_window(incidents, window_start, window_end))
    downtime = total_duration(merged)

    uptime = ((total_period - downtime) / total_period) * 100
    return UptimeStats(
        uptime_percent=max(0.0, min(100.0, uptime)),
        downtime=downtime,
    )


def effective_window_start(period: timedelta, created_at: datetime, now: datetime) -> datetime:
    """Start of a rolling window, never earlier than the monitor's creation."""
    return max(now - period, created_at)


def rolling_uptime(
    incidents: Sequence[IncidentSpan],
    created_at: datetime,
    now: datetime,
    windows: Optional[Dict[str, timedelta]] = None,
) -> Dict[str, UptimeStats]:
    """Uptime for each rolling window plus all time, ending at ``now``."""
    windows = ROLLING_WINDOWS if windows is None else windows
    stats = {
        name: calculate_uptime(incidents, effective_window_start(period, created_at, now), now)
        for name, period in windows.items()
    }
    stats[ALL_TIME] = calculate_uptime(incidents, created_at, now)
    return stats


def incident_statistics(incidents: Sequence[IncidentSpan], now: datetime) -> IncidentStatistics:
    """Totals over the full incident history.

    Incidents are merged without clamping; ongoing ones run until ``now``
    and rows that end before they start are skipped. The average is taken
    over merged periods rather than raw incidents, so overlapping incidents
    count once.
    """
    intervals = (
        Interval(start=incident.start, end=incident.end if incident.end is not None else now)
        for incident in incidents
    )
    merged = merge_intervals(i for i in intervals if i.start < i.end)
    total_downtime = total_duration(merged)
    average = total_downtime / len(merged) if merged else timedelta(0)
    return IncidentStatistics(
        total=len(incidents),
        merged_periods=len(merged),
        total_downtime=total_downtime,
        average_duration=average,
    )


def daily_uptime_history(
    incidents: Sequence[IncidentSpan],
    created_at: datetime,
    now: datetime,
    days: int = DEFAULT_HISTORY_DAYS,
) -> List[DailyUptime]:
    """Per-day uptime for the last ``days`` UTC calendar days, oldest first.

    Days that ended before the monitor was created are omitted. The first
    day is measured from ``created_at`` and the current day up to ``now``.
    """
    today = now.astimezone(timezone.utc).date()
    history = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)
        if day_end <= created_at:
            continue

        stats = calculate_uptime(incidents, max(day_start, created_at), min(day_end, now))
        history.append(DailyUptime(day=day, uptime_percent=round(stats.uptime_percent, 2)))
    return history
