"""Fetch the CoinMarketCap Fear & Greed index for the missing days.

Examples
--------

    python -m risqlab.scripts.fetch_fear_and_greed
"""

from __future__ import annotations

import argparse
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.coinmarketcap_client import CoinMarketCapClient
from risqlab.data_ingestion.fear_greed import ingest_fear_and_greed
from risqlab.data_ingestion.storage import MarketDataStorage


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Fetch the Fear & Greed index")
    parser.parse_args(argv)

    config = get_config()
    client = CoinMarketCapClient.from_config(config.coinmarketcap)
    db_manager = DatabaseManager(config)
    try:
        ingest_fear_and_greed(client=client, storage=MarketDataStorage(db_manager=db_manager))
    finally:
        client.close()
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
