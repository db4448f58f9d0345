"""Property-based tests for daily uptime history.

This module verifies that for arbitrary incidents, creation times and
clock readings:
1. History holds at most the requested number of days, oldest first
2. No day ends before the monitor was created
3. Every bar is a percentage rounded to two decimals
4. A day fully covered by one incident reports 0%
"""

from datetime import datetime, time, timedelta, timezone

from hypothesis import given, settings, strategies as st

from cronguard.services.uptime import IncidentSpan, daily_uptime_history


EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)
HORIZON_MINUTES = 60 * 24 * 120


def minutes(n: int) -> datetime:
    return EPOCH + timedelta(minutes=n)


@st.composite
def incident_spans(draw) -> IncidentSpan:
    start = draw(st.integers(min_value=0, max_value=HORIZON_MINUTES))
    length = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=60 * 72)))
    return IncidentSpan(start=minutes(start), end=None if length is None else minutes(start + length))


@st.composite
def created_and_now(draw):
    created = draw(st.integers(min_value=0, max_value=HORIZON_MINUTES))
    age = draw(st.integers(min_value=0, max_value=HORIZON_MINUTES))
    return minutes(created), minutes(created + age)


class TestDailyHistoryProperties:
    """Structural properties of daily_uptime_history."""

    @given(
        spans=st.lists(incident_spans(), max_size=20),
        times=created_and_now(),
        days=st.integers(min_value=1, max_value=90),
    )
    @settings(max_examples=100)
    def test_days_ordered_and_bounded(self, spans, times, days):
        created_at, now = times

        history = daily_uptime_history(spans, created_at, now, days=days)

        assert len(history) <= days
        assert [d.day for d in history] == sorted(d.day for d in history)
        if history:
            assert history[-1].day == now.date()

    @given(
        spans=st.lists(incident_spans(), max_size=20),
        times=created_and_now(),
    )
    @settings(max_examples=100)
    def test_no_day_before_creation(self, spans, times):
        created_at, now = times

        for entry in daily_uptime_history(spans, created_at, now):
            day_end = datetime.combine(entry.day, time.min, tzinfo=timezone.utc) + timedelta(days=1)
            assert day_end > created_at

    @given(
        spans=st.lists(incident_spans(), max_size=20),
        times=created_and_now(),
    )
    @settings(max_examples=100)
    def test_values_are_rounded_percentages(self, spans, times):
        created_at, now = times

        for entry in daily_uptime_history(spans, created_at, now):
            assert 0.0 <= entry.uptime_percent <= 100.0
            assert round(entry.uptime_percent, 2) == entry.uptime_percent

    @given(day_offset=st.integers(min_value=1, max_value=60))
    @settings(max_examples=50)
    def test_fully_covered_day_is_zero(self, day_offset):
        created_at = EPOCH
        day_start = EPOCH + timedelta(days=day_offset)
        now = day_start + timedelta(days=2)
        incident = IncidentSpan(start=day_start - timedelta(hours=1), end=day_start + timedelta(days=1, hours=1))

        history = daily_uptime_history([incident], created_at, now)
        by_day = {entry.day: entry.uptime_percent for entry in history}

        assert by_day[day_start.date()] == 0.0
