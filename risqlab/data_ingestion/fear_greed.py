"""risqlab – Fear & Greed index backfill.

The provider returns the latest ``limit`` daily readings in one call, so
the limit is sized to the number of days since the newest stored reading
(between 1 and the backfill cap). Readings are upserted by timestamp.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_today
from risqlab.data_ingestion.coinmarketcap_client import (
    CoinMarketCapClient,
    CoinMarketCapClientError,
)
from risqlab.data_ingestion.config import FearGreedSettings
from risqlab.data_ingestion.storage import MarketDataStorage


logger = get_logger(__name__)


def missing_fear_greed_days(latest: Optional[date], today: date, max_backfill_days: int) -> int:
    """Return the ``limit`` to request, in ``[1, max_backfill_days]``."""

    if latest is None:
        return max_backfill_days
    return min(max((today - latest).days, 1), max_backfill_days)


def ingest_fear_and_greed(
    *,
    client: CoinMarketCapClient,
    storage: MarketDataStorage,
    settings: Optional[FearGreedSettings] = None,
    today: Optional[date] = None,
) -> RunSummary:
    settings = settings or FearGreedSettings()
    today = today or utc_today()
    summary = RunSummary(stage="fear and greed")
    started = time.monotonic()

    limit = missing_fear_greed_days(storage.get_latest_fear_greed_date(), today, settings.max_backfill_days)
    logger.info("Fetching Fear & Greed readings with limit=%d", limit)

    try:
        points = client.get_fear_and_greed(limit)
    except CoinMarketCapClientError as exc:
        summary.record(ItemOutcome.error("fear_and_greed", str(exc)))
    else:
        written = storage.upsert_fear_greed(points)
        summary.record(ItemOutcome.success("fear_and_greed", rows_written=written))

    summary.duration_seconds = time.monotonic() - started
    summary.log(logger)
    return summary


__all__ = ["ingest_fear_and_greed", "missing_fear_greed_days"]
