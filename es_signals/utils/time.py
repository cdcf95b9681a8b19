"""Time utilities (exchange-local trading clock)."""

from datetime import datetime, time, timezone
from typing import Tuple


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize to naive UTC; naive inputs are assumed to already be UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time; raises ValueError on malformed input."""
    hour_s, minute_s = value.strip().split(":", 1)
    return time(int(hour_s), int(minute_s))


def minute_of_day(value: datetime | time) -> int:
    return value.hour * 60 + value.minute


def in_window(local_now: datetime, window: Tuple[time, time]) -> bool:
    """True when start <= now < end, compared as minute-of-day."""
    start, end = window
    current = minute_of_day(local_now)
    return minute_of_day(start) <= current < minute_of_day(end)
