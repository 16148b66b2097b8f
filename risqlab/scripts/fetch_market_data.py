"""Fetch the current market snapshot from CoinGecko.

Stores (or enriches) every listed asset in ``cryptocurrencies`` and one
``market_data`` row per asset, all stamped with the same fetch time.

Examples
--------

    # Default: 2 pages of 250 assets
    python -m risqlab.scripts.fetch_market_data

    # Only the top 100
    python -m risqlab.scripts.fetch_market_data --pages 1 --page-size 100
"""

from __future__ import annotations

import argparse
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient
from risqlab.data_ingestion.config import SnapshotSettings
from risqlab.data_ingestion.market_snapshot import ingest_market_snapshot
from risqlab.data_ingestion.storage import MarketDataStorage


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Fetch the CoinGecko market snapshot")
    parser.add_argument("--pages", type=int, default=2, help="Number of pages to fetch (default: 2)")
    parser.add_argument("--page-size", type=int, default=250, help="Assets per page (default: 250)")
    args = parser.parse_args(argv)

    config = get_config()
    client = CoinGeckoClient.from_config(config.coingecko)
    db_manager = DatabaseManager(config)
    try:
        ingest_market_snapshot(
            client=client,
            storage=MarketDataStorage(db_manager=db_manager),
            settings=SnapshotSettings(pages=args.pages, page_size=args.page_size),
        )
    finally:
        client.close()
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
