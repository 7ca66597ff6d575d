"""
Timezone helpers for usage accounting.

Ledger timestamps, bucket boundaries and alert windows are all computed in
UTC. Naive datetimes coming from storage (SQLite drops tzinfo) are treated as
UTC rather than local time.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get current UTC time with timezone awareness.

    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC datetime.

    Args:
        dt: Datetime object (naive values are assumed to already be UTC)

    Returns:
        datetime: UTC datetime with timezone info, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(dt: datetime) -> datetime:
    """Midnight UTC of the day containing ``dt``."""
    utc_dt = ensure_utc(dt)
    return utc_dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(dt: datetime) -> datetime:
    """Midnight UTC of the first day of the month containing ``dt``."""
    return start_of_day(dt).replace(day=1)


def elapsed_ms(start: float, end: float) -> int:
    """Milliseconds between two ``time.perf_counter()`` readings."""
    return max(0, int(round((end - start) * 1000)))
