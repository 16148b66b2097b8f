"""Integration test for the market data store against PostgreSQL.

Requires a reachable database with ``alembic upgrade head`` applied.
Validates that:

- Snapshot upserts never overwrite a stored price with zero.
- Daily closes are visible to the gap detector's presence query.
- Backfill inserts leave existing snapshot rows untouched.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

import pytest

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.data_ingestion.storage import MarketDataStorage
from risqlab.data_ingestion.types import DailyClose, MarketSnapshotEntry, RawPricePoint


@pytest.mark.integration
class TestMarketDataStore:
    def test_zero_guard_and_presence(self) -> None:
        db_manager = DatabaseManager(get_config())
        storage = MarketDataStorage(db_manager=db_manager)
        symbol = f"T{uuid.uuid4().hex[:8].upper()}"
        ts = datetime(2025, 3, 9)

        crypto_id = storage.upsert_asset(
            MarketSnapshotEntry(
                coingecko_id=symbol.lower(),
                symbol=symbol,
                name="Integration Test Coin",
                price_usd=2.0,
                circulating_supply=10.0,
                volume_24h_usd=5.0,
                percent_changes={},
            )
        )
        try:
            storage.upsert_snapshot_points(
                [RawPricePoint(crypto_id, ts, price_usd=2.0, circulating_supply=10.0, volume_24h_usd=5.0)]
            )
            storage.upsert_snapshot_points(
                [RawPricePoint(crypto_id, ts, price_usd=0.0, circulating_supply=10.0, volume_24h_usd=5.0)]
            )
            storage.insert_backfill_points(
                [RawPricePoint(crypto_id, ts, price_usd=3.0, circulating_supply=10.0, volume_24h_usd=5.0)]
            )
            storage.upsert_daily_closes(
                [DailyClose(crypto_id, ts, close=2.0, volume=5.0, market_cap=20.0)]
            )

            with db_manager.get_connection() as conn:
                cursor = conn.cursor()
                try:
                    cursor.execute(
                        "SELECT price_usd FROM market_data WHERE crypto_id = %s AND timestamp = %s",
                        (crypto_id, ts),
                    )
                    (price,) = cursor.fetchone()
                finally:
                    cursor.close()
            assert float(price) == pytest.approx(2.0)

            for table in ("ohlc", "market_data"):
                present = storage.get_present_dates(table, crypto_id, date(2025, 3, 1), date(2025, 3, 9))
                assert present == {date(2025, 3, 9)}
        finally:
            with db_manager.get_connection() as conn:
                cursor = conn.cursor()
                try:
                    cursor.execute("DELETE FROM ohlc WHERE crypto_id = %s", (crypto_id,))
                    cursor.execute("DELETE FROM market_data WHERE crypto_id = %s", (crypto_id,))
                    cursor.execute("DELETE FROM cryptocurrencies WHERE id = %s", (crypto_id,))
                    conn.commit()
                finally:
                    cursor.close()
            db_manager.close_all()
