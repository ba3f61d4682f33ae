"""
Time helpers — UTC normalization and fractional ages used by scoring and popularity.
"""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator

SECONDS_PER_DAY = 86400.0


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def age_days(published_at: datetime, now: datetime) -> float:
    """Fractional days between published_at and now (negative if in the future)."""
    return (ensure_utc(now) - ensure_utc(published_at)).total_seconds() / SECONDS_PER_DAY


# Datetime field type that is always timezone-aware UTC after validation.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
