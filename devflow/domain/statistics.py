"""Session aggregation and calendar bucketing.

Pure domain functions for the statistics engine.
No DB access, fully deterministic: callers pass in "now".

Rounding policy:
- durations and elapsed times are whole seconds, truncated toward zero
- averages in seconds are rounded half-up to an integer
- hour totals are rounded half-up (to whole hours or to 2 decimals)
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

SECONDS_PER_HOUR = 3600


class TimeRange(StrEnum):
    """Predefined calendar ranges for range analytics."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    CUSTOM = "custom"


@dataclass
class PeriodTotal:
    """Completed-session totals for one calendar bucket."""

    start: date
    end: date
    total_sessions: int = 0
    total_seconds: int = 0


def round_half_up(value: Decimal | int | float, ndigits: int = 0) -> Decimal:
    """Round with ties away from zero (Python's round() uses banker's rounding)."""
    quantum = Decimal(1).scaleb(-ndigits)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds between two instants, never negative."""
    return max(0, int((end - start).total_seconds()))


def average_seconds(total_seconds: int, count: int) -> int:
    """Mean duration rounded half-up; 0 when there is nothing to average."""
    if count <= 0:
        return 0
    return int(round_half_up(Decimal(total_seconds) / Decimal(count)))


def seconds_to_hours(seconds: int, ndigits: int = 2) -> float:
    return float(round_half_up(Decimal(seconds) / SECONDS_PER_HOUR, ndigits))


def total_hours(intervals: Iterable[tuple[datetime, datetime]]) -> int:
    """Sum of (end - start) over intervals, in hours rounded to a whole hour."""
    seconds = sum((end - start).total_seconds() for start, end in intervals)
    return int(round_half_up(Decimal(str(seconds)) / SECONDS_PER_HOUR))


def start_of_day(day: date, tz) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def start_of_week(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def daily_totals(
    samples: Iterable[tuple[datetime, int]],
    first_day: date,
    days: int,
) -> list[PeriodTotal]:
    """Bucket (start_time, duration_seconds) samples into consecutive days.

    Every day in the window is returned, empty days with zero totals.
    Samples outside the window are ignored.
    """
    buckets = [
        PeriodTotal(start=first_day + timedelta(days=i), end=first_day + timedelta(days=i))
        for i in range(days)
    ]
    for started_at, duration in samples:
        index = (started_at.date() - first_day).days
        if 0 <= index < days:
            buckets[index].total_sessions += 1
            buckets[index].total_seconds += duration
    return buckets


def weekly_totals(
    samples: Iterable[tuple[datetime, int]],
    first_week_start: date,
    weeks: int,
) -> list[PeriodTotal]:
    """Bucket samples into consecutive Monday-to-Sunday weeks."""
    buckets = []
    for i in range(weeks):
        monday = first_week_start + timedelta(weeks=i)
        buckets.append(PeriodTotal(start=monday, end=monday + timedelta(days=6)))

    for started_at, duration in samples:
        index = (start_of_week(started_at.date()) - first_week_start).days // 7
        if 0 <= index < weeks:
            buckets[index].total_sessions += 1
            buckets[index].total_seconds += duration
    return buckets


def _first_of_previous_month(day: date) -> date:
    if day.month == 1:
        return date(day.year - 1, 12, 1)
    return date(day.year, day.month - 1, 1)


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def resolve_time_range(
    range_type: TimeRange,
    now: datetime,
    custom_start: datetime | None = None,
    custom_end: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Return the half-open [start, end) interval for a range, in now's timezone.

    Raises:
        ValueError: CUSTOM without both bounds, or with start >= end
    """
    tz = now.tzinfo
    today = now.date()

    if range_type == TimeRange.CUSTOM:
        if custom_start is None or custom_end is None:
            raise ValueError("Both startDate and endDate are required for a custom range.")
        if custom_start >= custom_end:
            raise ValueError("startDate must be earlier than endDate.")
        return custom_start, custom_end

    if range_type == TimeRange.TODAY:
        first, last = today, today + timedelta(days=1)
    elif range_type == TimeRange.YESTERDAY:
        first, last = today - timedelta(days=1), today
    elif range_type == TimeRange.THIS_WEEK:
        first = start_of_week(today)
        last = first + timedelta(weeks=1)
    elif range_type == TimeRange.LAST_WEEK:
        last = start_of_week(today)
        first = last - timedelta(weeks=1)
    elif range_type == TimeRange.THIS_MONTH:
        first = today.replace(day=1)
        last = _first_of_next_month(first)
    elif range_type == TimeRange.LAST_MONTH:
        last = today.replace(day=1)
        first = _first_of_previous_month(last)
    else:
        raise ValueError(f"Unsupported time range: {range_type}")

    return start_of_day(first, tz), start_of_day(last, tz)
