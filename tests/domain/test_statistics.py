"""Tests for session aggregation and calendar bucketing."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from devflow.domain.statistics import (
    TimeRange,
    average_seconds,
    daily_totals,
    elapsed_seconds,
    resolve_time_range,
    round_half_up,
    seconds_to_hours,
    start_of_week,
    total_hours,
    weekly_totals,
)

pytestmark = pytest.mark.unit

TZ = timezone(timedelta(hours=8))


def at(year, month, day, hour=0, minute=0, second=0):
    return datetime(year, month, day, hour, minute, second, tzinfo=TZ)


class TestRounding:
    def test_half_rounds_up_not_to_even(self):
        assert round_half_up(2.5) == Decimal("3")
        assert round_half_up(3.5) == Decimal("4")

    def test_two_decimals(self):
        assert round_half_up(1.005, 2) == Decimal("1.01")

    def test_average_of_nothing_is_zero(self):
        assert average_seconds(0, 0) == 0

    def test_average_rounds_half_up(self):
        # (10 + 11) / 2 = 10.5
        assert average_seconds(21, 2) == 11

    def test_average_rounds_down_below_half(self):
        # 100 / 3 = 33.33
        assert average_seconds(100, 3) == 33

    def test_seconds_to_hours(self):
        assert seconds_to_hours(5400) == 1.5
        assert seconds_to_hours(0) == 0.0


class TestElapsedSeconds:
    def test_truncates_fractional_seconds(self):
        start = at(2026, 10, 14, 9)
        assert elapsed_seconds(start, start + timedelta(seconds=59, microseconds=999_999)) == 59

    def test_never_negative(self):
        start = at(2026, 10, 14, 9)
        assert elapsed_seconds(start, start - timedelta(seconds=5)) == 0


class TestTotalHours:
    def test_empty_is_zero(self):
        assert total_hours([]) == 0

    def test_rounds_to_nearest_hour(self):
        start = at(2026, 10, 14, 9)
        spans = [
            (start, start + timedelta(minutes=50)),
            (start, start + timedelta(minutes=40)),
        ]
        # 90 minutes -> 1.5h -> 2
        assert total_hours(spans) == 2

    def test_under_half_hour_rounds_to_zero(self):
        start = at(2026, 10, 14, 9)
        assert total_hours([(start, start + timedelta(minutes=29))]) == 0


class TestDailyTotals:
    def test_every_day_present_with_zeros(self):
        buckets = daily_totals([], date(2026, 10, 8), 7)
        assert [b.start for b in buckets] == [date(2026, 10, 8) + timedelta(days=i) for i in range(7)]
        assert all(b.total_sessions == 0 and b.total_seconds == 0 for b in buckets)

    def test_samples_land_on_their_local_day(self):
        samples = [
            (at(2026, 10, 13, 23, 59), 60),
            (at(2026, 10, 14, 0, 1), 120),
            (at(2026, 10, 14, 18), 30),
        ]
        buckets = daily_totals(samples, date(2026, 10, 13), 2)
        assert (buckets[0].total_sessions, buckets[0].total_seconds) == (1, 60)
        assert (buckets[1].total_sessions, buckets[1].total_seconds) == (2, 150)

    def test_samples_outside_window_ignored(self):
        samples = [(at(2026, 10, 1), 60), (at(2026, 10, 20), 60)]
        buckets = daily_totals(samples, date(2026, 10, 13), 2)
        assert sum(b.total_sessions for b in buckets) == 0


class TestWeeklyTotals:
    def test_start_of_week_is_monday(self):
        assert start_of_week(date(2026, 10, 14)) == date(2026, 10, 12)
        assert start_of_week(date(2026, 10, 12)) == date(2026, 10, 12)
        assert start_of_week(date(2026, 10, 18)) == date(2026, 10, 12)

    def test_weeks_span_monday_to_sunday(self):
        buckets = weekly_totals([], date(2026, 10, 5), 2)
        assert [(b.start, b.end) for b in buckets] == [
            (date(2026, 10, 5), date(2026, 10, 11)),
            (date(2026, 10, 12), date(2026, 10, 18)),
        ]

    def test_samples_bucketed_by_week(self):
        samples = [
            (at(2026, 10, 11, 22), 100),  # Sunday, first week
            (at(2026, 10, 12, 8), 200),  # Monday, second week
            (at(2026, 10, 18, 23), 300),  # Sunday, second week
        ]
        buckets = weekly_totals(samples, date(2026, 10, 5), 2)
        assert buckets[0].total_seconds == 100
        assert (buckets[1].total_sessions, buckets[1].total_seconds) == (2, 500)


class TestResolveTimeRange:
    NOW = at(2026, 10, 14, 9, 30)  # Wednesday

    def test_today(self):
        assert resolve_time_range(TimeRange.TODAY, self.NOW) == (at(2026, 10, 14), at(2026, 10, 15))

    def test_yesterday(self):
        assert resolve_time_range(TimeRange.YESTERDAY, self.NOW) == (at(2026, 10, 13), at(2026, 10, 14))

    def test_this_week(self):
        assert resolve_time_range(TimeRange.THIS_WEEK, self.NOW) == (at(2026, 10, 12), at(2026, 10, 19))

    def test_last_week(self):
        assert resolve_time_range(TimeRange.LAST_WEEK, self.NOW) == (at(2026, 10, 5), at(2026, 10, 12))

    def test_this_month(self):
        assert resolve_time_range(TimeRange.THIS_MONTH, self.NOW) == (at(2026, 10, 1), at(2026, 11, 1))

    def test_last_month(self):
        assert resolve_time_range(TimeRange.LAST_MONTH, self.NOW) == (at(2026, 9, 1), at(2026, 10, 1))

    def test_month_ranges_cross_year_boundary(self):
        january = at(2027, 1, 10)
        assert resolve_time_range(TimeRange.LAST_MONTH, january) == (at(2026, 12, 1), at(2027, 1, 1))
        december = at(2026, 12, 10)
        assert resolve_time_range(TimeRange.THIS_MONTH, december) == (at(2026, 12, 1), at(2027, 1, 1))

    def test_custom_passes_bounds_through(self):
        start, end = at(2026, 10, 1), at(2026, 10, 3)
        assert resolve_time_range(TimeRange.CUSTOM, self.NOW, start, end) == (start, end)

    def test_custom_requires_both_bounds(self):
        with pytest.raises(ValueError, match="required"):
            resolve_time_range(TimeRange.CUSTOM, self.NOW, at(2026, 10, 1), None)

    def test_custom_rejects_inverted_bounds(self):
        with pytest.raises(ValueError, match="earlier"):
            resolve_time_range(TimeRange.CUSTOM, self.NOW, at(2026, 10, 3), at(2026, 10, 1))
