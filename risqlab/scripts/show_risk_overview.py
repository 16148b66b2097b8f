"""risqlab – risk inspection CLI.

Read-only views over the computed tables: index levels, portfolio
volatility, per-asset risk metrics, volatility rankings and pairwise
return correlation.

Examples
--------

    # Latest index level and its top constituents
    python -m risqlab.scripts.show_risk_overview index --limit 10

    # Index levels over a range
    python -m risqlab.scripts.show_risk_overview index --from 2025-01-01 --to 2025-01-31

    # Latest portfolio volatility and constituents
    python -m risqlab.scripts.show_risk_overview portfolio

    # Latest metrics for one asset, or one metric's history
    python -m risqlab.scripts.show_risk_overview asset BTC
    python -m risqlab.scripts.show_risk_overview asset BTC --metric crypto_var \
        --from 2025-01-01 --to 2025-03-31

    # 20 most (or least) volatile assets
    python -m risqlab.scripts.show_risk_overview ranking --least

    # 90-day correlation of two assets
    python -m risqlab.scripts.show_risk_overview correlation BTC ETH
"""

from __future__ import annotations

import argparse
from dataclasses import asdict
from datetime import date, timedelta
from typing import Any, Optional, Sequence

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.core.time import utc_today
from risqlab.data_ingestion.storage import MarketDataStorage
from risqlab.index import IndexSettings, IndexStorage
from risqlab.portfolio import PortfolioStorage
from risqlab.risk import RiskMetric, RiskMetricsEngine, RiskStorage


logger = get_logger(__name__)


def _parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date string for CLI arguments."""

    try:
        return date.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - CLI validation
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def _format_record(record: Any) -> str:
    fields = asdict(record)
    return ", ".join(
        f"{key}={value:.6f}" if isinstance(value, float) else f"{key}={value}"
        for key, value in fields.items()
        if key != "crypto_id"
    )


def _range(args: argparse.Namespace, default_days: int = 30) -> tuple[date, date]:
    end = args.to_date or utc_today()
    start = args.from_date or end - timedelta(days=default_days)
    return start, end


def show_index(db_manager: DatabaseManager, args: argparse.Namespace) -> None:
    storage = IndexStorage(db_manager=db_manager)
    if args.from_date or args.to_date:
        start, end = _range(args)
        history = storage.get_history(args.index_name, start, end)
        print(f"{args.index_name}: {len(history)} level(s) between {start} and {end}")
        for h in history:
            print(f"  {h.timestamp}  level={h.index_level:.4f}  constituents={h.number_of_constituents}")
        return

    latest = storage.get_latest(args.index_name)
    if latest is None or latest.history_id is None:
        print(f"No history for index {args.index_name!r}")
        return
    print(f"{args.index_name} at {latest.timestamp}: level={latest.index_level:.4f}")
    print(f"  total_market_cap={latest.total_market_cap:.2f} divisor={latest.divisor:.6f}")
    print("\nTop constituents:")
    for c in storage.get_constituents(latest.history_id)[: max(1, args.limit)]:
        print(f"  {c.rank_position:>3} {c.symbol}: weight={c.weight_in_index:.4f}%")


def show_portfolio(db_manager: DatabaseManager, args: argparse.Namespace) -> None:
    storage = PortfolioStorage(db_manager=db_manager)
    config_id = storage.get_active_config_id(args.index_name)
    if args.from_date or args.to_date:
        start, end = _range(args)
        for r in storage.get_history(config_id, start, end):
            print(
                f"  {r.day}  annualized={r.annualized_volatility:.4%}  "
                f"window={r.window_days}  constituents={r.num_constituents}"
            )
        return

    latest = storage.get_latest(config_id)
    if latest is None or latest.record_id is None:
        print("No portfolio volatility computed yet")
        return
    print(
        f"Portfolio volatility on {latest.day}: daily={latest.daily_volatility:.6f} "
        f"annualized={latest.annualized_volatility:.4%} ({latest.num_constituents} constituents, "
        f"{latest.window_days} day window)"
    )
    print("\nConstituents:")
    for c in storage.get_constituents(latest.record_id)[: max(1, args.limit)]:
        print(f"  {c.symbol}: weight={c.weight:.6f} annualized={c.annualized_volatility:.4%}")


def show_asset(db_manager: DatabaseManager, args: argparse.Namespace) -> None:
    asset = MarketDataStorage(db_manager=db_manager).get_asset_by_symbol(args.symbol)
    if asset is None:
        print(f"Unknown asset {args.symbol!r}")
        return
    storage = RiskStorage(db_manager=db_manager)

    if args.metric:
        metric = RiskMetric(args.metric)
        start, end = _range(args, default_days=90)
        history = storage.get_history(metric, asset.crypto_id, start, end, args.window)
        print(f"{asset.symbol} {metric.value}: {len(history)} row(s) between {start} and {end}")
        for record in history:
            print(f"  {_format_record(record)}")
        return

    print(f"Latest risk metrics for {asset.symbol} ({asset.name}):")
    for metric in RiskMetric:
        record = storage.get_latest(metric, asset.crypto_id, args.window)
        print(f"  {metric.value}: {_format_record(record) if record is not None else 'n/a'}")


def show_ranking(db_manager: DatabaseManager, args: argparse.Namespace) -> None:
    storage = RiskStorage(db_manager=db_manager)
    ranking = storage.get_volatility_ranking(
        limit=args.limit, most_volatile=not args.least, window_days=args.window or 90
    )
    label = "Least" if args.least else "Most"
    print(f"{label} volatile assets:")
    for r in ranking:
        print(f"  {r.symbol}: {r.annualized_volatility:.4%} ({r.day}, {r.window_days}d)")


def show_correlation(db_manager: DatabaseManager, args: argparse.Namespace) -> None:
    assets = MarketDataStorage(db_manager=db_manager)
    a = assets.get_asset_by_symbol(args.symbol_a)
    b = assets.get_asset_by_symbol(args.symbol_b)
    if a is None or b is None:
        print(f"Unknown asset in {args.symbol_a!r}, {args.symbol_b!r}")
        return
    engine = RiskMetricsEngine(storage=RiskStorage(db_manager=db_manager))
    window = args.window or 90
    rho = engine.return_correlation(a.crypto_id, b.crypto_id, window_days=window)
    print(f"Correlation {a.symbol}/{b.symbol} over {window} days: {rho:.4f}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect computed index and risk data")
    sub = parser.add_subparsers(dest="view", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--from", dest="from_date", type=_parse_date, help="Start date (YYYY-MM-DD)")
        p.add_argument("--to", dest="to_date", type=_parse_date, help="End date (YYYY-MM-DD)")
        p.add_argument("--limit", type=int, default=20, help="Rows to display (default: 20)")
        p.add_argument("--window", type=int, help="Restrict to one window length in days")
        p.add_argument("--index-name", type=str, default=IndexSettings().index_name, help="Index name")

    p_index = sub.add_parser("index", help="Index level and constituents")
    add_common(p_index)
    p_index.set_defaults(handler=show_index)

    p_portfolio = sub.add_parser("portfolio", help="Index portfolio volatility")
    add_common(p_portfolio)
    p_portfolio.set_defaults(handler=show_portfolio)

    p_asset = sub.add_parser("asset", help="Per-asset risk metrics")
    p_asset.add_argument("symbol")
    p_asset.add_argument("--metric", choices=[m.value for m in RiskMetric], help="Show one metric's history")
    add_common(p_asset)
    p_asset.set_defaults(handler=show_asset)

    p_ranking = sub.add_parser("ranking", help="Assets ranked by annualised volatility")
    p_ranking.add_argument("--least", action="store_true", help="Least volatile first")
    add_common(p_ranking)
    p_ranking.set_defaults(handler=show_ranking)

    p_corr = sub.add_parser("correlation", help="Correlation of two assets' log returns")
    p_corr.add_argument("symbol_a")
    p_corr.add_argument("symbol_b")
    add_common(p_corr)
    p_corr.set_defaults(handler=show_correlation)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the show_risk_overview CLI."""

    args = build_parser().parse_args(argv)
    db_manager = DatabaseManager(get_config())
    try:
        args.handler(db_manager, args)
    finally:
        db_manager.close_all()


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
