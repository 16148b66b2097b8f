"""Unit tests for the snapshot, metadata and Fear & Greed ingestion stages."""

from __future__ import annotations

import logging
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from risqlab.core.results import OutcomeStatus
from risqlab.data_ingestion.coingecko_client import CoinGeckoClientError
from risqlab.data_ingestion.coinmarketcap_client import CoinMarketCapClientError
from risqlab.data_ingestion.config import MetadataSettings, SnapshotSettings
from risqlab.data_ingestion.fear_greed import ingest_fear_and_greed, missing_fear_greed_days
from risqlab.data_ingestion.market_snapshot import ingest_market_snapshot
from risqlab.data_ingestion.metadata import ingest_asset_metadata
from risqlab.data_ingestion.types import (
    Asset,
    AssetMetadata,
    FearGreedPoint,
    MarketSnapshotEntry,
)


def _entry(symbol: str, price: float = 1.0) -> MarketSnapshotEntry:
    return MarketSnapshotEntry(
        coingecko_id=symbol.lower(),
        symbol=symbol,
        name=symbol,
        price_usd=price,
        circulating_supply=1_000.0,
        volume_24h_usd=10.0,
        percent_changes={"24h": 1.5},
    )


class TestMarketSnapshot:
    def test_all_points_share_one_fetch_timestamp(self) -> None:
        client = MagicMock()
        client.get_market_snapshot.side_effect = [[_entry("BTC"), _entry("ETH")], [_entry("SOL")]]
        storage = MagicMock()
        storage.upsert_asset.side_effect = [1, 2, 3]
        storage.upsert_snapshot_points.side_effect = lambda points: len(points)

        summary = ingest_market_snapshot(
            client=client,
            storage=storage,
            settings=SnapshotSettings(pages=2, page_size=2),
            fetched_at=datetime(2025, 3, 10, 12, 0, 0, 123456),
            sleep=lambda s: None,
        )

        written = [p for call in storage.upsert_snapshot_points.call_args_list for p in call.args[0]]
        assert {p.timestamp for p in written} == {datetime(2025, 3, 10, 12, 0, 0)}
        assert [p.crypto_id for p in written] == [1, 2, 3]
        assert summary.succeeded == 3

    def test_failed_page_does_not_stop_later_pages(self) -> None:
        client = MagicMock()
        client.get_market_snapshot.side_effect = [CoinGeckoClientError("HTTP 429"), [_entry("SOL")]]
        storage = MagicMock()
        storage.upsert_asset.return_value = 7
        storage.upsert_snapshot_points.return_value = 1

        summary = ingest_market_snapshot(
            client=client,
            storage=storage,
            settings=SnapshotSettings(pages=2, page_size=1),
            sleep=lambda s: None,
        )

        assert summary.errors == 1
        assert summary.outcomes[0].key == "page 1"
        assert summary.succeeded == 1


class TestAssetMetadata:
    def test_metadata_saved_and_exclusions_summarised(self, caplog: pytest.LogCaptureFixture) -> None:
        assets = [
            Asset(crypto_id=1, symbol="USDT", name="Tether", coingecko_id="tether"),
            Asset(crypto_id=2, symbol="LDO", name="Lido DAO", coingecko_id="lido-dao"),
        ]
        storage = MagicMock()
        storage.list_assets_with_external_id.return_value = assets
        client = MagicMock()
        client.get_asset_metadata.side_effect = [
            AssetMetadata(categories=["Stablecoins"]),
            AssetMetadata(categories=["Liquid Staking Governance Tokens"]),
        ]

        with caplog.at_level(logging.WARNING):
            summary = ingest_asset_metadata(
                client=client,
                storage=storage,
                settings=MetadataSettings(api_delay_seconds=0),
            )

        assert summary.succeeded == 2
        assert storage.save_metadata.call_count == 2
        assert "Liquid Staking Governance Tokens" in caplog.text

    def test_asset_without_external_id_is_skipped(self) -> None:
        storage = MagicMock()
        storage.list_assets_with_external_id.return_value = [Asset(crypto_id=5, symbol="NEW", name="New")]
        client = MagicMock()

        summary = ingest_asset_metadata(client=client, storage=storage)

        assert summary.skipped == 1
        client.get_asset_metadata.assert_not_called()

    def test_provider_error_is_recorded(self) -> None:
        storage = MagicMock()
        storage.list_assets_with_external_id.return_value = [
            Asset(crypto_id=1, symbol="BTC", name="Bitcoin", coingecko_id="bitcoin")
        ]
        client = MagicMock()
        client.get_asset_metadata.side_effect = CoinGeckoClientError("HTTP 404")

        summary = ingest_asset_metadata(client=client, storage=storage)

        assert summary.outcomes[0].status is OutcomeStatus.ERROR
        storage.save_metadata.assert_not_called()


class TestFearAndGreed:
    def test_missing_days_bounds(self) -> None:
        today = date(2025, 3, 10)
        assert missing_fear_greed_days(None, today, 730) == 730
        assert missing_fear_greed_days(date(2025, 3, 10), today, 730) == 1
        assert missing_fear_greed_days(date(2025, 3, 1), today, 730) == 9
        assert missing_fear_greed_days(date(2020, 1, 1), today, 730) == 730

    def test_readings_are_upserted(self) -> None:
        storage = MagicMock()
        storage.get_latest_fear_greed_date.return_value = date(2025, 3, 7)
        storage.upsert_fear_greed.return_value = 3
        client = MagicMock()
        client.get_fear_and_greed.return_value = [
            FearGreedPoint(timestamp=datetime(2025, 3, d), value=40 + d) for d in (7, 8, 9)
        ]

        summary = ingest_fear_and_greed(client=client, storage=storage, today=date(2025, 3, 10))

        client.get_fear_and_greed.assert_called_once_with(3)
        assert summary.rows_written == 3

    def test_provider_error_is_recorded(self) -> None:
        storage = MagicMock()
        storage.get_latest_fear_greed_date.return_value = None
        client = MagicMock()
        client.get_fear_and_greed.side_effect = CoinMarketCapClientError("bad key")

        summary = ingest_fear_and_greed(client=client, storage=storage, today=date(2025, 3, 10))

        assert summary.errors == 1
        storage.upsert_fear_greed.assert_not_called()
