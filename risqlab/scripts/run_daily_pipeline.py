"""Run the full daily batch pipeline.

Examples
--------

    # Snapshot, backfills, derived data, index, risk, portfolio volatility
    python -m risqlab.scripts.run_daily_pipeline

    # Also refresh metadata and the Fear & Greed index
    python -m risqlab.scripts.run_daily_pipeline --with-metadata --with-fear-greed
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.logging import get_logger
from risqlab.pipeline.tasks import DailyPipelineOptions, run_daily_pipeline


logger = get_logger(__name__)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the daily risqlab pipeline")
    parser.add_argument("--with-metadata", action="store_true", help="Refresh asset metadata")
    parser.add_argument("--with-fear-greed", action="store_true", help="Fetch the Fear & Greed index")
    parser.add_argument("--skip-hourly", action="store_true", help="Skip the hourly backfill")
    args = parser.parse_args(argv)

    options = DailyPipelineOptions(
        include_metadata=args.with_metadata,
        include_hourly_backfill=not args.skip_hourly,
        include_fear_greed=args.with_fear_greed,
    )
    summaries = run_daily_pipeline(get_config(), options=options)
    if any(s.errors for s in summaries):
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
