"""Date/time helpers for preferred and confirmed appointment slots."""
from __future__ import annotations
from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == 'UTC':
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f'Unknown timezone {name}')


def combine_preferred_slot(preferred_date: date, preferred_time: time, tz_name: Optional[str] = None) -> datetime:
    """Interpret the customer's preferred date + time in the portal's local timezone.

    Returns the same instant as a UTC-aware datetime.
    """
    local = datetime.combine(preferred_date, preferred_time.replace(tzinfo=None), tzinfo=resolve_timezone(tz_name))
    return local.astimezone(timezone.utc)


def local_today(tz_name: Optional[str] = None) -> date:
    return datetime.now(resolve_timezone(tz_name)).date()


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Naive values (SQLite) are stored as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    value = as_utc(dt)
    if value is None:
        return None
    return value.isoformat().replace('+00:00', 'Z')


__all__ = ['resolve_timezone', 'combine_preferred_slot', 'local_today', 'as_utc', 'iso_utc']
