"""risqlab – gap-aware historical backfill of raw price series.

Two passes share the same provider endpoint:

1. Daily pass. A cheap set-based query flags assets missing yesterday's
   slot in ``ohlc`` or ``market_data``. Only flagged assets get a
   detailed gap scan over the recovery window and then exactly one
   provider call long enough to reach their oldest gap. The fetched
   series is aggregated per UTC day and each table only receives the
   dates missing from it.
2. Hourly pass. Assets with too few ``market_data`` rows in the trailing
   window are refetched with a span short enough for hourly granularity
   and only ``market_data`` is filled in.

A failure for one asset is recorded in the run summary and the loop
moves on; re-running is always safe.
"""

from __future__ import annotations

import time
from datetime import date, timedelta
from typing import Callable, List, Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import start_of_day, utc_today
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient, CoinGeckoClientError
from risqlab.data_ingestion.config import BackfillSettings
from risqlab.data_ingestion.gaps import (
    aggregate_daily,
    aggregate_hourly,
    detect_gaps,
    required_lookback_days,
)
from risqlab.data_ingestion.pacing import CallPacer
from risqlab.data_ingestion.storage import WATCHED_TABLES, MarketDataStorage
from risqlab.data_ingestion.types import Asset, DailyClose, DailyObservation, RawPricePoint


logger = get_logger(__name__)


def _raw_point(crypto_id: int, obs: DailyObservation) -> RawPricePoint:
    return RawPricePoint(
        crypto_id=crypto_id,
        timestamp=obs.timestamp,
        price_usd=obs.price,
        circulating_supply=obs.market_cap / obs.price,
        volume_24h_usd=obs.volume,
    )


def backfill_asset(
    asset: Asset,
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: BackfillSettings,
    today: date,
    pacer: CallPacer,
) -> ItemOutcome:
    """Detect and repair missing daily slots for a single asset."""

    if not asset.coingecko_id:
        return ItemOutcome.skipped(asset.symbol, "no external id")

    window_start = today - timedelta(days=settings.recovery_window_days)
    window_end = today - timedelta(days=1)
    present = {
        table: storage.get_present_dates(table, asset.crypto_id, window_start, window_end)
        for table in WATCHED_TABLES
    }
    report = detect_gaps(present, today, settings.recovery_window_days)
    if not report.has_gaps:
        return ItemOutcome.skipped(asset.symbol, "no gaps in recovery window")

    lookback = required_lookback_days(
        today,
        report.oldest_missing,
        buffer_days=settings.buffer_days,
        minimum_call_span_days=settings.minimum_call_span_days,
        recovery_window_days=settings.recovery_window_days,
    )
    logger.debug(
        "%s: %d ohlc gap(s), %d market_data gap(s), fetching days=%d",
        asset.symbol,
        len(report.missing["ohlc"]),
        len(report.missing["market_data"]),
        lookback,
    )

    pacer.wait()
    try:
        series = client.get_historical_series(asset.coingecko_id, lookback)
    except CoinGeckoClientError as exc:
        return ItemOutcome.error(asset.symbol, str(exc))

    daily = aggregate_daily(series, today)

    closes = [
        DailyClose(
            crypto_id=asset.crypto_id,
            timestamp=obs.timestamp,
            close=obs.price,
            volume=obs.volume,
            market_cap=obs.market_cap,
        )
        for obs in daily
        if obs.day in report.missing["ohlc"] and obs.price > 0
    ]
    points = [
        _raw_point(asset.crypto_id, obs)
        for obs in daily
        if obs.day in report.missing["market_data"] and obs.price > 0 and obs.market_cap > 0
    ]

    written = 0
    if closes:
        written += storage.upsert_daily_closes(closes)
    if points:
        written += storage.insert_backfill_points(points)

    logger.debug(
        "%s: inserted %d ohlc and %d market_data rows", asset.symbol, len(closes), len(points)
    )
    return ItemOutcome.success(asset.symbol, rows_written=written)


def run_daily_backfill(
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: Optional[BackfillSettings] = None,
    today: Optional[date] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Run the daily gap detection and backfill over all flagged assets."""

    settings = settings or BackfillSettings()
    today = today or utc_today()
    summary = RunSummary(stage="daily backfill")
    started = time.monotonic()

    flagged = storage.find_assets_missing_day(today - timedelta(days=1))
    if not flagged:
        logger.info("All assets are up to date; no fetch needed")
    else:
        logger.info("%d asset(s) missing yesterday's slot; scanning for gaps", len(flagged))

    pacer = CallPacer(settings.api_delay_seconds, sleep=sleep)
    for asset in flagged:
        try:
            outcome = backfill_asset(
                asset,
                client=client,
                storage=storage,
                settings=settings,
                today=today,
                pacer=pacer,
            )
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Backfill failed for %s", asset.symbol)
            outcome = ItemOutcome.error(asset.symbol, str(exc))
        summary.record(outcome)

    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


def hourly_backfill_asset(
    asset: Asset,
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: BackfillSettings,
    today: date,
    pacer: CallPacer,
) -> ItemOutcome:
    """Fill ``market_data`` for one asset at hourly resolution."""

    if not asset.coingecko_id:
        return ItemOutcome.skipped(asset.symbol, "no external id")

    pacer.wait()
    try:
        series = client.get_historical_series(asset.coingecko_id, settings.hourly_window_days)
    except CoinGeckoClientError as exc:
        return ItemOutcome.error(asset.symbol, str(exc))

    points: List[RawPricePoint] = [
        _raw_point(asset.crypto_id, obs)
        for obs in aggregate_hourly(series, today)
        if obs.price > 0 and obs.market_cap > 0
    ]
    if not points:
        return ItemOutcome.skipped(asset.symbol, "no valid hourly points")

    written = storage.insert_backfill_points(points)
    if written == 0:
        return ItemOutcome.skipped(asset.symbol, "hourly points already stored")
    return ItemOutcome.success(asset.symbol, rows_written=written)


def run_hourly_backfill(
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: Optional[BackfillSettings] = None,
    today: Optional[date] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Refetch sparse assets at hourly resolution (``market_data`` only)."""

    settings = settings or BackfillSettings()
    today = today or utc_today()
    summary = RunSummary(stage="hourly backfill")
    started = time.monotonic()

    since = start_of_day(today - timedelta(days=settings.hourly_window_days))
    sparse = storage.find_assets_below_entry_threshold(since, settings.hourly_entry_threshold)
    logger.info(
        "%d asset(s) below %d market_data entries in the last %d days",
        len(sparse),
        settings.hourly_entry_threshold,
        settings.hourly_window_days,
    )

    pacer = CallPacer(settings.api_delay_seconds, sleep=sleep)
    for asset in sparse:
        try:
            outcome = hourly_backfill_asset(
                asset,
                client=client,
                storage=storage,
                settings=settings,
                today=today,
                pacer=pacer,
            )
        except Exception as exc:  # pragma: no cover - defensive
            logger.exception("Hourly backfill failed for %s", asset.symbol)
            outcome = ItemOutcome.error(asset.symbol, str(exc))
        summary.record(outcome)

    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


__all__ = [
    "backfill_asset",
    "run_daily_backfill",
    "hourly_backfill_asset",
    "run_hourly_backfill",
]
