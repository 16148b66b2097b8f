"""Compute the market-cap weighted index for every missing timestamp.

On first run the divisor is anchored on the earliest market snapshot;
after that only timestamps without an ``index_history`` row are
computed.

Examples
--------

    python -m risqlab.scripts.calculate_index
"""

from __future__ import annotations

import argparse
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.index import IndexEngine, IndexSettings, IndexStorage


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    defaults = IndexSettings()
    parser = argparse.ArgumentParser(description="Calculate the market-cap weighted index")
    parser.add_argument("--index-name", type=str, default=defaults.index_name, help="Index name")
    parser.add_argument(
        "--max-constituents",
        type=int,
        default=defaults.max_constituents,
        help="Number of constituents (default: %(default)s)",
    )
    args = parser.parse_args(argv)

    settings = IndexSettings(index_name=args.index_name, max_constituents=args.max_constituents)
    db_manager = DatabaseManager(get_config())
    try:
        IndexEngine(storage=IndexStorage(db_manager=db_manager), settings=settings).run()
    finally:
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
