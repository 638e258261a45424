"""Date/time helpers shared by services and response factories."""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the form stored in the database)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_time_zone(value: Optional[str]) -> Optional[ZoneInfo]:
    if not value:
        return None
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def local_now(time_zone: str) -> datetime:
    """Current wall-clock time in ``time_zone`` as a naive datetime."""
    return datetime.now(ZoneInfo(time_zone)).replace(tzinfo=None)


def local_to_utc(value: datetime, time_zone: str) -> datetime:
    """Interpret a naive wall-clock datetime in ``time_zone`` and return naive UTC."""
    aware = value.replace(tzinfo=ZoneInfo(time_zone))
    return aware.astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(value: datetime, time_zone: str) -> datetime:
    aware = value.replace(tzinfo=timezone.utc)
    return aware.astimezone(ZoneInfo(time_zone)).replace(tzinfo=None)


def format_medium_date(value: date) -> str:
    """Format like ``Jan 5, 2024``."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_time_description(value: datetime) -> str:
    """Format like ``9:30 AM``."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_date_time_description(value: datetime) -> str:
    return f"{format_medium_date(value.date())} at {format_time_description(value)}"


def format_report_date_time(value: datetime) -> str:
    """Report column format, e.g. ``2024-01-05 9:30``."""
    return f"{value.strftime('%Y-%m-%d')} {value.hour}:{value.minute:02d}"
