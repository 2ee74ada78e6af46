"""
Time helpers.

All timestamps produced by the game (validated_at, updated_at, recorded_at) are
timezone-aware UTC datetimes, so records written from the API and the CLI compare
and serialize the same way.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_unix(seconds: int | float) -> datetime:
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc)


def parse_date(value: str | date) -> date:
    """Parse an ISO `YYYY-MM-DD` string (dates pass through unchanged)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())
