"""Epoch-millisecond date arithmetic"""

import time
from datetime import datetime, timezone

MS_PER_DAY = 86_400_000

MONTHLY_INTERVAL_DAYS = 30
DAILY_INTERVAL_DAYS = 1


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds"""
    return int(time.time() * 1000)


def interval_days(interval: str | None) -> int:
    """Days between installments; anything but "monthly" is spaced daily"""
    return MONTHLY_INTERVAL_DAYS if interval == "monthly" else DAILY_INTERVAL_DAYS


def add_days_ms(timestamp_ms: int, days: int) -> int:
    """Shift an epoch-ms timestamp by a whole number of days"""
    return timestamp_ms + days * MS_PER_DAY


def to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime"""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
