from __future__ import annotations

from datetime import datetime, time, timezone as dt_timezone


class TimezoneUtils:
    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def end_of_day(value: datetime) -> datetime:
        """Stretch a date-only upper bound to the last microsecond of that day."""
        if isinstance(value, datetime) and value.time() != time(0, 0):
            return value
        return datetime.combine(value, time(23, 59, 59, 999999), tzinfo=getattr(value, 'tzinfo', None))
