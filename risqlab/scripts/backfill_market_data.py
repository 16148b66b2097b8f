"""Detect and fill gaps in the daily price history.

The daily pass checks the last two years of ``ohlc`` and ``market_data``
for every asset with a CoinGecko id and refetches only what is missing.
The hourly pass refetches assets with too few recent ``market_data``
rows at hourly resolution.

Examples
--------

    # Daily gaps, then sparse assets at hourly resolution
    python -m risqlab.scripts.backfill_market_data

    # Daily gaps only
    python -m risqlab.scripts.backfill_market_data --skip-hourly

    # Hourly pass only
    python -m risqlab.scripts.backfill_market_data --hourly-only
"""

from __future__ import annotations

import argparse
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.backfill import run_daily_backfill, run_hourly_backfill
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient
from risqlab.data_ingestion.storage import MarketDataStorage


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Backfill missing daily and hourly market data")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--skip-hourly", action="store_true", help="Run the daily pass only")
    group.add_argument("--hourly-only", action="store_true", help="Run the hourly pass only")
    args = parser.parse_args(argv)

    config = get_config()
    client = CoinGeckoClient.from_config(config.coingecko)
    db_manager = DatabaseManager(config)
    storage = MarketDataStorage(db_manager=db_manager)
    try:
        if not args.hourly_only:
            run_daily_backfill(client=client, storage=storage)
        if not args.skip_hourly:
            run_hourly_backfill(client=client, storage=storage)
    finally:
        client.close()
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
