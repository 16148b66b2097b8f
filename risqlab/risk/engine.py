"""risqlab – Risk Metrics Engine orchestration.

This module defines :class:`RiskMetricsEngine`, which backfills every
per-asset risk table from stored log returns:

- realised volatility (``crypto_volatility``)
- historical VaR/CVaR (``crypto_var``)
- skewness and kurtosis (``crypto_distribution_stats``)
- beta/alpha against the index benchmark (``crypto_beta``)
- security market line deviation (``crypto_sml``)

Dates are walked oldest first so windows grow with history. Keys already
present are skipped and inserts ignore conflicts, so a rerun over
unchanged inputs writes nothing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_today
from risqlab.data_ingestion.types import Asset
from risqlab.risk.config import RiskSettings
from risqlab.risk.metrics import (
    benchmark_returns,
    returns_by_day,
    rolling_beta_and_sml,
    rolling_distribution,
    rolling_var,
    rolling_volatility,
)
from risqlab.risk.statistics import pearson_correlation
from risqlab.risk.storage import RiskStorage
from risqlab.risk.types import RiskMetric


logger = get_logger(__name__)


@dataclass
class RiskMetricsEngine:
    """Backfill rolling per-asset risk metrics.

    Attributes:
        storage: Storage helper for log returns and the risk tables.
        settings: Window and benchmark parameters.
    """

    storage: RiskStorage
    settings: RiskSettings = field(default_factory=RiskSettings)

    def load_benchmark(self, today: date) -> Dict[date, float]:
        """Return daily benchmark log returns keyed by date.

        Empty when the benchmark index has not been computed yet; beta
        and SML are then skipped until it exists.
        """

        levels = self.storage.get_benchmark_levels(self.settings.benchmark_index_name, today)
        benchmark = returns_by_day(benchmark_returns(levels))
        if not benchmark:
            logger.info(
                "No benchmark returns for index %r yet; beta and SML will be skipped",
                self.settings.benchmark_index_name,
            )
        return benchmark

    def _insert_missing(self, metric: RiskMetric, crypto_id: int, records: List[Any]) -> int:
        if not records:
            return 0
        existing = self.storage.get_existing_keys(metric, crypto_id)
        fresh = [r for r in records if (r.day, r.window_days) not in existing]
        if not fresh:
            return 0
        return self.storage.insert_records(metric, fresh)

    def compute_for_asset(
        self,
        asset: Asset,
        benchmark: Dict[date, float],
        today: date,
    ) -> ItemOutcome:
        """Backfill every risk metric for one asset."""

        s = self.settings
        returns = self.storage.get_log_returns(asset.crypto_id, today)
        if len(returns) < s.minimum_data_points:
            return ItemOutcome.skipped(
                asset.symbol, f"only {len(returns)} log returns (< {s.minimum_data_points})"
            )

        written = 0
        written += self._insert_missing(
            RiskMetric.VOLATILITY,
            asset.crypto_id,
            rolling_volatility(
                asset.crypto_id,
                returns,
                minimum=s.minimum_data_points,
                maximum=s.default_window_days,
                periods_per_year=s.annualization_periods,
            ),
        )
        written += self._insert_missing(
            RiskMetric.VAR,
            asset.crypto_id,
            rolling_var(
                asset.crypto_id,
                returns,
                minimum=s.minimum_data_points,
                maximum=s.var_max_window_days,
            ),
        )
        written += self._insert_missing(
            RiskMetric.DISTRIBUTION,
            asset.crypto_id,
            rolling_distribution(
                asset.crypto_id,
                returns,
                minimum=s.minimum_data_points,
                maximum=s.default_window_days,
            ),
        )

        if benchmark:
            betas, smls = rolling_beta_and_sml(
                asset.crypto_id,
                returns,
                benchmark,
                minimum=s.minimum_data_points,
                maximum=s.default_window_days,
                risk_free_rate=s.risk_free_rate,
            )
            written += self._insert_missing(RiskMetric.BETA, asset.crypto_id, betas)
            written += self._insert_missing(RiskMetric.SML, asset.crypto_id, smls)

        if written == 0:
            return ItemOutcome.skipped(asset.symbol, "already up to date")
        return ItemOutcome.success(asset.symbol, rows_written=written)

    def run(self, today: Optional[date] = None) -> RunSummary:
        """Backfill risk metrics for every asset with enough log returns."""

        today = today or utc_today()
        summary = RunSummary(stage="risk metrics")
        started = time.monotonic()

        benchmark = self.load_benchmark(today)
        assets = self.storage.list_assets_with_returns(self.settings.minimum_data_points, today)
        logger.info("Computing risk metrics for %d asset(s)", len(assets))

        for asset in assets:
            try:
                outcome = self.compute_for_asset(asset, benchmark, today)
            except Exception as exc:  # pragma: no cover - defensive
                logger.exception("Failed to compute risk metrics for %s", asset.symbol)
                outcome = ItemOutcome.error(asset.symbol, str(exc))
            summary.record(outcome)

        summary.duration_seconds = time.monotonic() - started
        summary.log(logger)
        return summary

    def return_correlation(
        self,
        crypto_a: int,
        crypto_b: int,
        *,
        window_days: int = 90,
        today: Optional[date] = None,
    ) -> float:
        """Correlation of two assets' log returns over the trailing window.

        Returns ``0.0`` when fewer than two common dates exist.
        """

        today = today or utc_today()
        aligned = self.storage.get_aligned_returns(
            crypto_a, crypto_b, today - timedelta(days=window_days)
        )
        if len(aligned) < 2:
            return 0.0
        return pearson_correlation([a for _, a, _ in aligned], [b for _, _, b in aligned])


__all__ = ["RiskMetricsEngine"]
