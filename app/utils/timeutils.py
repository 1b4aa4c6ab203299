"""Time helpers for the fixed Asia/Tokyo business timezone.

Japan has no daylight saving time, so a fixed UTC+9 offset is exact and every
local day is 24 hours long.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

JST = timezone(timedelta(hours=9), name='JST')
ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes (as stored in the database) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_db_datetime(value: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form used for storage"""
    return ensure_aware(value).astimezone(timezone.utc).replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    """Serialize as ISO-8601 UTC with a trailing Z"""
    return ensure_aware(value).astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp that carries an offset or 'Z'.

    Raises ValueError for malformed or naive input.
    """
    if not isinstance(value, str) or not value:
        raise ValueError("Invalid datetime")
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError("Datetime must include a timezone offset")
    return parsed


def parse_hhmm(value: str) -> Tuple[int, int]:
    """Parse "HH:MM" into (hours, minutes)"""
    hours, minutes = value.split(':')
    return int(hours), int(minutes)


def local_date(value: datetime) -> date:
    """Calendar date of an instant in JST"""
    return ensure_aware(value).astimezone(JST).date()


def start_of_day_jst(value: datetime) -> datetime:
    """Midnight JST of the day containing ``value``"""
    return datetime.combine(local_date(value), time(0, 0), tzinfo=JST)


def at_local_time(day: date, hours: int, minutes: int) -> datetime:
    """Instant for HH:MM JST on ``day``; 24:00 rolls over to the next midnight"""
    return datetime.combine(day, time(0, 0), tzinfo=JST) + timedelta(hours=hours, minutes=minutes)


def format_date_jst(value: datetime) -> str:
    """Human-readable JST date, e.g. 2026/3/5"""
    local = ensure_aware(value).astimezone(JST)
    return f"{local.year}/{local.month}/{local.day}"


def format_time_jst(value: datetime) -> str:
    """Human-readable JST time, e.g. 09:30"""
    return ensure_aware(value).astimezone(JST).strftime('%H:%M')
