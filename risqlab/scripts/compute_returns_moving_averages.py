"""Compute daily log returns and moving averages from stored closes.

Only missing ``(asset, date)`` rows are written, so the script can be
re-run at any time.

Examples
--------

    python -m risqlab.scripts.compute_returns_moving_averages

    # Recompute as if today were 2025-06-01
    python -m risqlab.scripts.compute_returns_moving_averages --as-of 2025-06-01
"""

from __future__ import annotations

import argparse
from datetime import date
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.data_ingestion.derived.returns_moving_averages import compute_returns_and_moving_averages
from risqlab.data_ingestion.derived.storage import DerivedStorage


logger = get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - CLI validation
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Compute crypto_log_returns and crypto_moving_averages")
    parser.add_argument(
        "--as-of",
        dest="as_of",
        type=_parse_date,
        help="Treat this date as today; only earlier days are computed (YYYY-MM-DD)",
    )
    args = parser.parse_args(argv)

    db_manager = DatabaseManager(get_config())
    try:
        compute_returns_and_moving_averages(storage=DerivedStorage(db_manager=db_manager), today=args.as_of)
    finally:
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
