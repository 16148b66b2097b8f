"""
risqlab: UTC Calendar Utilities

Crypto markets trade every day, so the calendar here is a plain UTC day
calendar. All daily slots are UTC dates; the current UTC day is always
treated as incomplete and excluded from daily series.

Key responsibilities:
- Provide the current UTC date/time in one place so tests can pin it
- Enumerate the expected daily slots in a recovery window
- Floor timestamps to day and hour boundaries

External dependencies:
- datetime: Standard library date arithmetic only

Database tables accessed:
- None (pure calendar logic)

Thread safety: Thread-safe (stateless)

Author: risqlab Team
Created: 2025-11-26
Last Modified: 2025-11-26
Status: Development
Version: v0.1.0
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import List


def utc_now() -> datetime:
    """Return the current time as a naive UTC datetime.

    The store keeps ``timestamp without time zone`` columns in UTC, so
    naive datetimes are used throughout.
    """

    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    """Return the current UTC calendar date."""

    return utc_now().date()


def expected_daily_dates(today: date, window_days: int) -> List[date]:
    """Return the daily slots ``today - 1`` back to ``today - window_days``.

    The list is ordered newest first and always has exactly
    ``window_days`` entries; today itself is never expected.
    """

    return [today - timedelta(days=offset) for offset in range(1, window_days + 1)]


def start_of_day(day: date) -> datetime:
    """Return the 00:00:00 timestamp for ``day``."""

    return datetime.combine(day, time.min)


def floor_to_hour(ts: datetime) -> datetime:
    """Truncate ``ts`` to the start of its hour."""

    return ts.replace(minute=0, second=0, microsecond=0)


def from_epoch_millis(value: float) -> datetime:
    """Convert a provider epoch-milliseconds value to a naive UTC datetime."""

    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).replace(tzinfo=None)


__all__ = [
    "utc_now",
    "utc_today",
    "expected_daily_dates",
    "start_of_day",
    "floor_to_hour",
    "from_epoch_millis",
]
