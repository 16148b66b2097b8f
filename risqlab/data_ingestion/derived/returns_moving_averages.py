"""Derived daily log returns and moving averages from ``ohlc``.

This module computes, per asset:

- Day-over-day log returns into ``crypto_log_returns``.
- Simple moving averages of the daily close into
  ``crypto_moving_averages``, with a window that grows from the minimum
  to the target length as history accumulates.

Only closes strictly before the current (incomplete) UTC day are used.
Existing rows are never recomputed: keys already present are skipped and
inserts ignore conflicts, so running the calculator twice writes nothing
the second time.
"""

from __future__ import annotations

import math
import time
from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_today
from risqlab.core.windows import trailing_slice, window_days
from risqlab.data_ingestion.config import ReturnsSettings
from risqlab.data_ingestion.derived.storage import DerivedStorage
from risqlab.data_ingestion.derived.types import (
    DailyClosePrice,
    LogReturnRecord,
    MovingAverageRecord,
)
from risqlab.data_ingestion.types import Asset


logger = get_logger(__name__)


def compute_log_returns(crypto_id: int, closes: Sequence[DailyClosePrice]) -> List[LogReturnRecord]:
    """Return a log return for every close after the first.

    Each return is taken against the immediately preceding close in the
    sequence; a pair with a non-positive price yields no row.
    """

    records: List[LogReturnRecord] = []
    for previous, current in zip(closes, closes[1:]):
        if previous.close <= 0 or current.close <= 0:
            continue
        records.append(
            LogReturnRecord(
                crypto_id=crypto_id,
                day=current.day,
                log_return=math.log(current.close / previous.close),
                price_current=current.close,
                price_previous=previous.close,
            )
        )
    return records


def compute_moving_averages(
    crypto_id: int,
    closes: Sequence[DailyClosePrice],
    *,
    minimum_window_days: int,
    default_window_days: int,
) -> List[MovingAverageRecord]:
    """Return one moving average per date with enough trailing closes."""

    prices = np.asarray([c.close for c in closes], dtype=float)
    records: List[MovingAverageRecord] = []
    for i, close in enumerate(closes):
        length = window_days(i + 1, minimum_window_days, default_window_days)
        if length is None:
            continue
        records.append(
            MovingAverageRecord(
                crypto_id=crypto_id,
                day=close.day,
                window_days=length,
                moving_average=float(prices[trailing_slice(i, length)].mean()),
            )
        )
    return records


def compute_returns_and_moving_averages_for_asset(
    asset: Asset,
    *,
    storage: DerivedStorage,
    settings: ReturnsSettings,
    today: date,
) -> ItemOutcome:
    """Backfill missing log returns and moving averages for one asset."""

    closes = storage.get_daily_closes(asset.crypto_id, today)
    positive = [c for c in closes if c.close > 0]
    if len(positive) < settings.minimum_data_points:
        return ItemOutcome.skipped(
            asset.symbol, f"only {len(positive)} positive closes (< {settings.minimum_data_points})"
        )

    existing_returns = storage.get_log_return_dates(asset.crypto_id)
    new_returns = [
        r for r in compute_log_returns(asset.crypto_id, closes) if r.day not in existing_returns
    ]

    existing_averages = storage.get_moving_average_keys(asset.crypto_id)
    new_averages = [
        m
        for m in compute_moving_averages(
            asset.crypto_id,
            positive,
            minimum_window_days=settings.minimum_window_days,
            default_window_days=settings.default_window_days,
        )
        if (m.day, m.window_days) not in existing_averages
    ]

    written = 0
    if new_returns:
        written += storage.insert_log_returns(new_returns)
    if new_averages:
        written += storage.insert_moving_averages(new_averages)

    if written == 0:
        return ItemOutcome.skipped(asset.symbol, "already up to date")

    logger.debug(
        "%s: %d log return(s), %d moving average(s) inserted",
        asset.symbol,
        len(new_returns),
        len(new_averages),
    )
    return ItemOutcome.success(asset.symbol, rows_written=written)


def compute_returns_and_moving_averages(
    *,
    storage: DerivedStorage,
    settings: Optional[ReturnsSettings] = None,
    today: Optional[date] = None,
) -> RunSummary:
    """Batch variant over every asset with enough daily closes."""

    settings = settings or ReturnsSettings()
    today = today or utc_today()
    summary = RunSummary(stage="log returns and moving averages")
    started = time.monotonic()

    assets = storage.list_assets_with_closes(settings.minimum_data_points, today)
    logger.info("Computing log returns and moving averages for %d asset(s)", len(assets))

    for asset in assets:
        try:
            outcome = compute_returns_and_moving_averages_for_asset(
                asset, storage=storage, settings=settings, today=today
            )
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Failed to compute log returns/moving averages for %s", asset.symbol)
            outcome = ItemOutcome.error(asset.symbol, str(exc))
        summary.record(outcome)

    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


__all__ = [
    "compute_log_returns",
    "compute_moving_averages",
    "compute_returns_and_moving_averages_for_asset",
    "compute_returns_and_moving_averages",
]
