"""risqlab – daily pipeline tasks.

This module chains the batch stages in dependency order:

    market snapshot -> metadata (optional) -> daily backfill
    -> hourly backfill -> returns / moving averages -> index
    -> risk metrics -> portfolio volatility

Every stage is idempotent, so re-running the pipeline for the same day
only fills whatever is still missing. A stage that raises is logged and
recorded as a failed summary; the remaining stages still run. Missing
configuration is the exception: it aborts the pipeline before any work
is done.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Tuple

from risqlab.core.config import ConfigurationError, RisqlabConfig
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_today
from risqlab.data_ingestion.backfill import run_daily_backfill, run_hourly_backfill
from risqlab.data_ingestion.coingecko_client import CoinGeckoClient
from risqlab.data_ingestion.coinmarketcap_client import CoinMarketCapClient
from risqlab.data_ingestion.derived.returns_moving_averages import compute_returns_and_moving_averages
from risqlab.data_ingestion.derived.storage import DerivedStorage
from risqlab.data_ingestion.fear_greed import ingest_fear_and_greed
from risqlab.data_ingestion.market_snapshot import ingest_market_snapshot
from risqlab.data_ingestion.metadata import ingest_asset_metadata
from risqlab.data_ingestion.storage import MarketDataStorage
from risqlab.index import IndexEngine, IndexStorage
from risqlab.portfolio import PortfolioStorage, PortfolioVolatilityEngine
from risqlab.risk import RiskMetricsEngine, RiskStorage
from risqlab.universe import ExclusionPolicy


logger = get_logger(__name__)

Stage = Tuple[str, Callable[[], RunSummary]]


@dataclass
class DailyPipelineOptions:
    """Switches for the optional pipeline stages."""

    include_metadata: bool = False
    include_hourly_backfill: bool = True
    include_fear_greed: bool = False


def run_stage(name: str, stage: Callable[[], RunSummary]) -> RunSummary:
    """Run one stage, converting an unexpected failure into a summary.

    Raises:
        ConfigurationError: Propagated unchanged.
    """

    logger.info("Starting stage: %s", name)
    started = time.monotonic()
    try:
        return stage()
    except ConfigurationError:
        raise
    except Exception as exc:
        logger.exception("Stage %s failed", name)
        summary = RunSummary(stage=name)
        summary.record(ItemOutcome.error(name, str(exc)))
        summary.duration_seconds = time.monotonic() - started
        return summary


def build_daily_stages(
    *,
    db_manager: DatabaseManager,
    coingecko: CoinGeckoClient,
    coinmarketcap: Optional[CoinMarketCapClient] = None,
    options: Optional[DailyPipelineOptions] = None,
    policy: Optional[ExclusionPolicy] = None,
    today: Optional[date] = None,
) -> List[Stage]:
    """Return the ordered ``(name, callable)`` stages of the daily run."""

    options = options or DailyPipelineOptions()
    policy = policy or ExclusionPolicy()
    today = today or utc_today()

    market = MarketDataStorage(db_manager=db_manager)
    derived = DerivedStorage(db_manager=db_manager)

    stages: List[Stage] = [
        ("market snapshot", lambda: ingest_market_snapshot(client=coingecko, storage=market)),
    ]
    if options.include_metadata:
        stages.append(
            ("asset metadata", lambda: ingest_asset_metadata(client=coingecko, storage=market, policy=policy))
        )
    if options.include_fear_greed and coinmarketcap is not None:
        stages.append(
            ("fear and greed", lambda: ingest_fear_and_greed(client=coinmarketcap, storage=market, today=today))
        )
    stages.append(("daily backfill", lambda: run_daily_backfill(client=coingecko, storage=market, today=today)))
    if options.include_hourly_backfill:
        stages.append(
            ("hourly backfill", lambda: run_hourly_backfill(client=coingecko, storage=market, today=today))
        )
    stages.extend(
        [
            (
                "returns and moving averages",
                lambda: compute_returns_and_moving_averages(storage=derived, today=today),
            ),
            (
                "index",
                lambda: IndexEngine(storage=IndexStorage(db_manager=db_manager), policy=policy).run(),
            ),
            (
                "risk metrics",
                lambda: RiskMetricsEngine(storage=RiskStorage(db_manager=db_manager)).run(today),
            ),
            (
                "portfolio volatility",
                lambda: PortfolioVolatilityEngine(
                    storage=PortfolioStorage(db_manager=db_manager), policy=policy
                ).run(today),
            ),
        ]
    )
    return stages


def run_stages(stages: List[Stage]) -> List[RunSummary]:
    summaries = [run_stage(name, stage) for name, stage in stages]
    failed = [s.stage for s in summaries if s.errors]
    if failed:
        logger.warning("Pipeline finished with errors in: %s", ", ".join(failed))
    else:
        logger.info("Pipeline finished: %d stage(s) clean", len(summaries))
    return summaries


def run_daily_pipeline(
    config: RisqlabConfig,
    *,
    db_manager: Optional[DatabaseManager] = None,
    options: Optional[DailyPipelineOptions] = None,
    today: Optional[date] = None,
) -> List[RunSummary]:
    """Run every daily stage against the configured store.

    Raises:
        ConfigurationError: If a required provider credential is missing.
    """

    options = options or DailyPipelineOptions()
    # Resolve credentials first so a missing key fails before any work.
    coingecko = CoinGeckoClient.from_config(config.coingecko)
    coinmarketcap = (
        CoinMarketCapClient.from_config(config.coinmarketcap) if options.include_fear_greed else None
    )
    owns_db = db_manager is None
    db = db_manager or DatabaseManager(config)

    try:
        stages = build_daily_stages(
            db_manager=db,
            coingecko=coingecko,
            coinmarketcap=coinmarketcap,
            options=options,
            today=today,
        )
        return run_stages(stages)
    finally:
        coingecko.close()
        if coinmarketcap is not None:
            coinmarketcap.close()
        if owns_db:
            db.close_all()


__all__ = [
    "DailyPipelineOptions",
    "run_stage",
    "build_daily_stages",
    "run_stages",
    "run_daily_pipeline",
]
