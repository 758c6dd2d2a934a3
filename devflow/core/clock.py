"""Process-wide time source.

All timestamps (project audit fields, session start/end, elapsed time and
calendar ranges) are produced in one fixed UTC offset taken from settings.
Services receive a Clock instead of calling datetime.now() directly so tests
can control time.
"""

from datetime import datetime, timedelta, timezone
from functools import lru_cache

from devflow.core.config import get_settings


class Clock:
    """Fixed-offset clock."""

    def __init__(self, utc_offset_hours: float = 0.0):
        self.tz = timezone(timedelta(hours=utc_offset_hours))

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, value: datetime | None) -> datetime | None:
        """Express a stored timestamp in the configured offset.

        SQLite drops tzinfo on write, so naive values read back are wall-clock
        times that were generated in this offset.
        """
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)


@lru_cache
def get_clock() -> Clock:
    """Return the clock built from the configured offset."""
    return Clock(get_settings().utc_offset_hours)
