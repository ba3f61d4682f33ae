"""Shared utilities for time handling."""

from .time import UtcDatetime, age_days, ensure_utc, utc_now

__all__ = [
    "UtcDatetime",
    "age_days",
    "ensure_utc",
    "utc_now",
]
