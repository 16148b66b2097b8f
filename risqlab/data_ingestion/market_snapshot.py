"""risqlab – top-N market snapshot ingestion.

Fetches the paginated market snapshot and records one ``market_data`` row
per asset, all sharing the same fetch timestamp so the index engine sees
a consistent cross-section. Assets are created on first sight (keyed by
upper-cased symbol) and enriched on later fetches.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, List, Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_now
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient, CoinGeckoClientError
from risqlab.data_ingestion.config import SnapshotSettings
from risqlab.data_ingestion.pacing import CallPacer
from risqlab.data_ingestion.storage import MarketDataStorage
from risqlab.data_ingestion.types import MarketSnapshotEntry, RawPricePoint


logger = get_logger(__name__)


def snapshot_point(crypto_id: int, entry: MarketSnapshotEntry, fetched_at: datetime) -> RawPricePoint:
    return RawPricePoint(
        crypto_id=crypto_id,
        timestamp=fetched_at,
        price_usd=entry.price_usd,
        circulating_supply=entry.circulating_supply,
        volume_24h_usd=entry.volume_24h_usd,
        percent_changes=dict(entry.percent_changes),
        market_cap_rank=entry.market_cap_rank,
        total_supply=entry.total_supply,
        max_supply=entry.max_supply,
        fully_diluted_valuation=entry.fully_diluted_valuation,
    )


def ingest_market_snapshot(
    *,
    client: CoinGeckoClient,
    storage: MarketDataStorage,
    settings: Optional[SnapshotSettings] = None,
    fetched_at: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Fetch every snapshot page and persist assets plus price points.

    A failed page is recorded as an error and the remaining pages are
    still fetched.
    """

    settings = settings or SnapshotSettings()
    fetched_at = (fetched_at or utc_now()).replace(microsecond=0)
    summary = RunSummary(stage="market snapshot")
    started = time.monotonic()
    logger.info("Fetch timestamp: %s", fetched_at)

    pacer = CallPacer(settings.page_delay_seconds, sleep=sleep)
    for page in range(1, settings.pages + 1):
        pacer.wait()
        try:
            entries = client.get_market_snapshot(page, settings.page_size)
        except CoinGeckoClientError as exc:
            summary.record(ItemOutcome.error(f"page {page}", str(exc)))
            continue

        points: List[RawPricePoint] = []
        stored: List[str] = []
        for entry in entries:
            try:
                crypto_id = storage.upsert_asset(entry)
            except Exception as exc:  # pragma: no cover - defensive
                logger.exception("Failed to upsert asset %s", entry.symbol)
                summary.record(ItemOutcome.error(entry.symbol, str(exc)))
                continue
            points.append(snapshot_point(crypto_id, entry, fetched_at))
            stored.append(entry.symbol)

        written = storage.upsert_snapshot_points(points)
        for symbol in stored:
            summary.record(ItemOutcome.success(symbol, rows_written=1))
        logger.info("Page %d/%d: stored %d price points", page, settings.pages, written)

    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


__all__ = ["ingest_market_snapshot", "snapshot_point"]
