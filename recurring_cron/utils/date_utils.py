"""Date manipulation utilities"""

import calendar
import time
from datetime import datetime, timezone

_PROCESS_STARTED = time.monotonic()


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    """Same date with the time of day zeroed"""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def duration_ms(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() * 1000


def process_uptime_seconds() -> float:
    return time.monotonic() - _PROCESS_STARTED
