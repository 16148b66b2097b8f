"""Unit tests for the gap-aware daily and hourly backfill.

A small in-memory storage stands in for ``MarketDataStorage`` and a
``MagicMock`` for the CoinGecko client.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Set
from unittest.mock import MagicMock

from risqlab.core.results import OutcomeStatus
from risqlab.data_ingestion.backfill import run_daily_backfill, run_hourly_backfill
from risqlab.data_ingestion.coingecko_client import CoinGeckoClientError
from risqlab.data_ingestion.config import BackfillSettings
from risqlab.data_ingestion.types import Asset, DailyClose, HistoricalSeries, RawPricePoint

TODAY = date(2025, 3, 10)
SETTINGS = BackfillSettings(recovery_window_days=5, api_delay_seconds=0.25)


class _StubStorage:
    def __init__(self, assets: List[Asset], present: Dict[str, Set[date]]) -> None:
        self.assets = assets
        self.present = present
        self.closes: List[DailyClose] = []
        self.points: List[RawPricePoint] = []
        self.sparse: List[Asset] = []

    def find_assets_missing_day(self, day: date) -> List[Asset]:
        if all(day in dates for dates in self.present.values()):
            return []
        return list(self.assets)

    def get_present_dates(self, table: str, crypto_id: int, start: date, end: date) -> Set[date]:
        return {d for d in self.present[table] if start <= d <= end}

    def upsert_daily_closes(self, closes) -> int:  # type: ignore[no-untyped-def]
        closes = list(closes)
        self.closes.extend(closes)
        return len(closes)

    def insert_backfill_points(self, points) -> int:  # type: ignore[no-untyped-def]
        stored = {(p.crypto_id, p.timestamp) for p in self.points}
        fresh = [p for p in points if (p.crypto_id, p.timestamp) not in stored]
        self.points.extend(fresh)
        return len(fresh)

    def find_assets_below_entry_threshold(self, since: datetime, threshold: int) -> List[Asset]:
        return list(self.sparse)


def _series(days: List[date]) -> HistoricalSeries:
    stamps = [datetime.combine(d, datetime.min.time()) + timedelta(hours=12) for d in days]
    return HistoricalSeries(
        prices=[(ts, 10.0) for ts in stamps],
        market_caps=[(ts, 10_000.0) for ts in stamps],
        volumes=[(ts, 500.0) for ts in stamps],
    )


BTC = Asset(crypto_id=1, symbol="BTC", name="Bitcoin", coingecko_id="bitcoin")
ETH = Asset(crypto_id=2, symbol="ETH", name="Ethereum", coingecko_id="ethereum")
WINDOW = {TODAY - timedelta(days=i) for i in range(1, 6)}


def test_up_to_date_system_makes_no_provider_call() -> None:
    storage = _StubStorage([BTC], {"ohlc": set(WINDOW), "market_data": set(WINDOW)})
    client = MagicMock()

    summary = run_daily_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)

    client.get_historical_series.assert_not_called()
    assert summary.outcomes == []


def test_each_table_only_receives_its_missing_dates() -> None:
    ohlc_present = WINDOW - {date(2025, 3, 9)}
    md_present = WINDOW - {date(2025, 3, 9), date(2025, 3, 6)}
    storage = _StubStorage([BTC], {"ohlc": ohlc_present, "market_data": md_present})
    client = MagicMock()
    client.get_historical_series.return_value = _series(
        [TODAY - timedelta(days=i) for i in range(0, 7)]
    )

    summary = run_daily_backfill(
        client=client, storage=storage, settings=SETTINGS, today=TODAY, sleep=lambda s: None
    )

    # Oldest gap is 4 days back; +2 buffer = 6, clamped to the 5 day window.
    client.get_historical_series.assert_called_once_with("bitcoin", 5)
    assert [c.timestamp.date() for c in storage.closes] == [date(2025, 3, 9)]
    assert sorted(p.timestamp.date() for p in storage.points) == [date(2025, 3, 6), date(2025, 3, 9)]
    assert all(p.circulating_supply == 1_000.0 for p in storage.points)
    assert all(p.timestamp.hour == 0 for p in storage.points)
    assert summary.succeeded == 1
    assert summary.rows_written == 3


def test_provider_error_is_recorded_and_loop_continues() -> None:
    storage = _StubStorage([BTC, ETH], {"ohlc": set(), "market_data": set()})
    client = MagicMock()
    client.get_historical_series.side_effect = [
        CoinGeckoClientError("rate limited"),
        _series([TODAY - timedelta(days=1)]),
    ]
    sleeps: List[float] = []

    summary = run_daily_backfill(
        client=client, storage=storage, settings=SETTINGS, today=TODAY, sleep=sleeps.append
    )

    assert [o.status for o in summary.outcomes] == [OutcomeStatus.ERROR, OutcomeStatus.SUCCESS]
    assert summary.outcomes[0].key == "BTC"
    assert sleeps == [0.25]


def test_asset_without_external_id_is_skipped() -> None:
    no_id = Asset(crypto_id=3, symbol="NEW", name="New")
    storage = _StubStorage([no_id], {"ohlc": set(), "market_data": set()})
    client = MagicMock()

    summary = run_daily_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)

    client.get_historical_series.assert_not_called()
    assert summary.skipped == 1


def test_zero_market_cap_points_are_not_written_to_market_data() -> None:
    storage = _StubStorage([BTC], {"ohlc": set(), "market_data": set()})
    yesterday = datetime(2025, 3, 9, 12)
    client = MagicMock()
    client.get_historical_series.return_value = HistoricalSeries(
        prices=[(yesterday, 10.0)], market_caps=[(yesterday, 0.0)], volumes=[]
    )

    run_daily_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)

    assert len(storage.closes) == 1
    assert storage.points == []


def test_hourly_backfill_writes_market_data_only() -> None:
    storage = _StubStorage([], {"ohlc": set(), "market_data": set()})
    storage.sparse = [ETH]
    stamps = [datetime(2025, 3, 9, h, 30) for h in range(3)]
    client = MagicMock()
    client.get_historical_series.return_value = HistoricalSeries(
        prices=[(ts, 2_000.0) for ts in stamps],
        market_caps=[(ts, 2_000_000.0) for ts in stamps],
        volumes=[(ts, 1.0) for ts in stamps],
    )

    summary = run_hourly_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)

    client.get_historical_series.assert_called_once_with("ethereum", 90)
    assert [p.timestamp for p in storage.points] == [datetime(2025, 3, 9, h) for h in range(3)]
    assert storage.closes == []
    assert summary.rows_written == 3


def test_hourly_rerun_on_unchanged_data_writes_nothing() -> None:
    storage = _StubStorage([], {"ohlc": set(), "market_data": set()})
    storage.sparse = [ETH]
    stamps = [datetime(2025, 3, 9, h, 30) for h in range(3)]
    client = MagicMock()
    client.get_historical_series.return_value = HistoricalSeries(
        prices=[(ts, 2_000.0) for ts in stamps],
        market_caps=[(ts, 2_000_000.0) for ts in stamps],
        volumes=[(ts, 1.0) for ts in stamps],
    )

    first = run_hourly_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)
    second = run_hourly_backfill(client=client, storage=storage, settings=SETTINGS, today=TODAY)

    assert first.rows_written == 3
    assert second.rows_written == 0
    assert second.skipped == 1
    assert second.outcomes[0].status is OutcomeStatus.SKIPPED
