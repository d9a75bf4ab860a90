"""
Time helpers for the mastery engine.

All engine arithmetic happens in UTC. Calendar days (streaks, decay) are UTC
dates. Some drivers return naive datetimes for timezone-aware columns
(SQLite), so every value read back from the database goes through as_utc.
"""

from datetime import date, datetime, time, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_day(dt: Optional[datetime]) -> Optional[date]:
    """Calendar day (UTC) of a timestamp."""
    aware = as_utc(dt)
    return aware.date() if aware is not None else None


def start_of_day(day: date) -> datetime:
    """UTC midnight of the given day."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def later_of(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    """The later of two optional timestamps, compared in UTC."""
    a, b = as_utc(a), as_utc(b)
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)
