"""Fetch descriptive metadata (categories, links) for every known asset.

Categories drive the stablecoin / wrapped / staked exclusions used by
the index and portfolio engines, so this should run before the index
is first computed and whenever new assets appear.

Examples
--------

    python -m risqlab.scripts.fetch_metadata
"""

from __future__ import annotations

import argparse
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient
from risqlab.data_ingestion.config import MetadataSettings
from risqlab.data_ingestion.metadata import ingest_asset_metadata
from risqlab.data_ingestion.storage import MarketDataStorage


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Fetch CoinGecko asset metadata")
    parser.add_argument(
        "--delay",
        type=float,
        default=MetadataSettings().api_delay_seconds,
        help="Seconds to wait between provider calls",
    )
    args = parser.parse_args(argv)

    config = get_config()
    client = CoinGeckoClient.from_config(config.coingecko)
    db_manager = DatabaseManager(config)
    try:
        ingest_asset_metadata(
            client=client,
            storage=MarketDataStorage(db_manager=db_manager),
            settings=MetadataSettings(api_delay_seconds=args.delay),
        )
    finally:
        client.close()
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
