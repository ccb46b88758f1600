from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from foodexpiry.config.settings import settings


def utc_now() -> datetime:
    """
    Get current UTC datetime as a timezone-aware datetime.

    Returns:
        datetime: Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def naive_utc_now() -> datetime:
    """
    Get current UTC datetime as a naive datetime (no timezone info).
    This is the form stored in DateTime columns, which don't keep timezone info.

    Returns:
        datetime: Current UTC datetime without timezone info
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Convert a datetime object to naive UTC (no timezone info).

    Args:
        dt: Datetime object to convert; naive values are assumed to be UTC

    Returns:
        datetime: Naive UTC datetime
    """
    if dt.tzinfo is None:
        return dt
    utc_dt = dt.astimezone(timezone.utc)
    return utc_dt.replace(tzinfo=None)


def local_today(now: Optional[datetime] = None, zone: Optional[str] = None) -> date:
    """
    Calendar date of ``now`` in the configured timezone.

    Expiration dates carry no time component, so "today" must be taken in the
    zone users live in rather than in UTC.

    Args:
        now: Instant to convert; naive values are assumed to be UTC. Defaults to now.
        zone: IANA timezone name. Defaults to ``settings.TIMEZONE``.
    """
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(zone or settings.TIMEZONE)).date()
