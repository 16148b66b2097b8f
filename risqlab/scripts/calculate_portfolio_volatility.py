"""Compute daily index portfolio volatility for every missing date.

Examples
--------

    python -m risqlab.scripts.calculate_portfolio_volatility
"""

from __future__ import annotations

import argparse
from datetime import date
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.portfolio import PortfolioStorage, PortfolioVolatilityEngine, PortfolioVolatilitySettings


logger = get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - CLI validation
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def main(argv: Optional[list[str]] = None) -> None:
    defaults = PortfolioVolatilitySettings()
    parser = argparse.ArgumentParser(description="Calculate index portfolio volatility")
    parser.add_argument("--as-of", dest="as_of", type=_parse_date, help="Treat this date as today")
    parser.add_argument("--index-name", type=str, default=defaults.index_name, help="Index name")
    args = parser.parse_args(argv)

    settings = PortfolioVolatilitySettings(index_name=args.index_name)
    db_manager = DatabaseManager(get_config())
    try:
        engine = PortfolioVolatilityEngine(storage=PortfolioStorage(db_manager=db_manager), settings=settings)
        engine.run(args.as_of)
    finally:
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
