"""risqlab – gap detection for daily time series.

Pure functions used by the backfill scheduler:

- :func:`detect_gaps` compares the expected daily slots of the recovery
  window against the dates present per table.
- :func:`required_lookback_days` turns the oldest gap into the span of a
  single provider call.
- :func:`aggregate_daily` / :func:`aggregate_hourly` reduce a provider
  series to one observation per UTC day or hour, discarding the current
  (incomplete) day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Mapping, Optional, Set

from risqlab.core.time import expected_daily_dates, floor_to_hour, start_of_day
from risqlab.data_ingestion.types import DailyObservation, HistoricalSeries


@dataclass(frozen=True)
class GapReport:
    """Missing daily slots for one asset.

    Attributes:
        missing: Missing dates per watched table.
        oldest_missing: Oldest missing date across all tables, or
            ``None`` when the asset is complete.
    """

    missing: Dict[str, Set[date]]
    oldest_missing: Optional[date]

    @property
    def has_gaps(self) -> bool:
        return self.oldest_missing is not None

    @property
    def total_missing(self) -> int:
        return sum(len(dates) for dates in self.missing.values())


def detect_gaps(
    present_by_table: Mapping[str, Set[date]],
    today: date,
    recovery_window_days: int,
) -> GapReport:
    """Return the missing slots per table within the recovery window."""

    expected = set(expected_daily_dates(today, recovery_window_days))
    missing: Dict[str, Set[date]] = {}
    for table, present in present_by_table.items():
        missing[table] = expected - set(present)

    all_missing = set().union(*missing.values()) if missing else set()
    oldest = min(all_missing) if all_missing else None
    return GapReport(missing=missing, oldest_missing=oldest)


def required_lookback_days(
    today: date,
    oldest_missing: Optional[date],
    *,
    buffer_days: int,
    minimum_call_span_days: int,
    recovery_window_days: int,
) -> int:
    """Return how many days of history one provider call must cover.

    The span reaches the oldest gap plus a buffer, clamped to
    ``[minimum_call_span_days, recovery_window_days]``.
    """

    if oldest_missing is None:
        return minimum_call_span_days
    days = math.ceil((start_of_day(today) - start_of_day(oldest_missing)).total_seconds() / 86400)
    return max(minimum_call_span_days, min(days + buffer_days, recovery_window_days))


def _aggregate(
    series: HistoricalSeries,
    today: date,
    bucket: Callable[[datetime], datetime],
) -> List[DailyObservation]:
    caps = {ts: value for ts, value in series.market_caps}
    volumes = {ts: value for ts, value in series.volumes}

    buckets: Dict[datetime, DailyObservation] = {}
    for ts, price in sorted(series.prices, key=lambda p: p[0]):
        if ts.date() >= today:
            continue
        key = bucket(ts)
        # Later points overwrite earlier ones: last point of the bucket wins.
        buckets[key] = DailyObservation(
            timestamp=key,
            price=price,
            market_cap=caps.get(ts, 0.0),
            volume=volumes.get(ts, 0.0),
        )

    return [buckets[key] for key in sorted(buckets)]


def aggregate_daily(series: HistoricalSeries, today: date) -> List[DailyObservation]:
    """One observation per UTC day (last point wins), oldest first."""

    return _aggregate(series, today, lambda ts: start_of_day(ts.date()))


def aggregate_hourly(series: HistoricalSeries, today: date) -> List[DailyObservation]:
    """One observation per UTC hour (last point wins), oldest first."""

    return _aggregate(series, today, floor_to_hour)


__all__ = [
    "GapReport",
    "detect_gaps",
    "required_lookback_days",
    "aggregate_daily",
    "aggregate_hourly",
]
