"""Compute rolling per-asset risk metrics.

Fills ``crypto_volatility``, ``crypto_var``, ``crypto_distribution_stats``,
``crypto_beta`` and ``crypto_sml`` from ``crypto_log_returns``. Beta and
SML need the index history; run ``calculate_index`` first.

Examples
--------

    python -m risqlab.scripts.compute_risk_metrics

    # Use a non-zero daily risk-free rate in the SML
    python -m risqlab.scripts.compute_risk_metrics --risk-free-rate 0.0001
"""

from __future__ import annotations

import argparse
from datetime import date
from typing import Optional

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.risk import RiskMetricsEngine, RiskSettings, RiskStorage


logger = get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - CLI validation
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Compute per-asset risk metrics")
    parser.add_argument("--as-of", dest="as_of", type=_parse_date, help="Treat this date as today")
    parser.add_argument(
        "--risk-free-rate",
        type=float,
        default=0.0,
        help="Daily risk-free rate used by the SML (default: 0)",
    )
    parser.add_argument(
        "--benchmark",
        type=str,
        default=RiskSettings().benchmark_index_name,
        help="Index used as the beta benchmark",
    )
    args = parser.parse_args(argv)

    settings = RiskSettings(risk_free_rate=args.risk_free_rate, benchmark_index_name=args.benchmark)
    db_manager = DatabaseManager(get_config())
    try:
        engine = RiskMetricsEngine(storage=RiskStorage(db_manager=db_manager), settings=settings)
        engine.run(args.as_of)
    finally:
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
