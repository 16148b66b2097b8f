"""risqlab – Portfolio Volatility Engine orchestration.

This module defines :class:`PortfolioVolatilityEngine`, which computes
the daily volatility of the market-cap weighted index portfolio using
the covariance model in :mod:`risqlab.portfolio.model`.

For each date with log returns but no stored result (newest first):

1. Candidate pool from the daily OHLC row: exclusions removed, liquidity
   floor applied, largest market caps first.
2. Constituents: the first ``max_constituents`` candidates with at
   least ``minimum_window_days`` log returns as of the date.
3. Trailing returns are loaded and fed to the model.
4. The result and its constituents are inserted unless already present.

Dates are independent: a skip or failure on one date does not stop the
others.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.core.time import utc_today
from risqlab.portfolio.config import PortfolioVolatilitySettings
from risqlab.portfolio.model import estimate_portfolio_volatility
from risqlab.portfolio.storage import PortfolioStorage
from risqlab.portfolio.types import ConstituentReturns, PortfolioVolatilityRecord
from risqlab.universe.exclusions import ExclusionPolicy
from risqlab.universe.selection import CandidateAsset, select_by_market_cap


logger = get_logger(__name__)


@dataclass
class PortfolioVolatilityEngine:
    """Compute and persist daily index portfolio volatility."""

    storage: PortfolioStorage
    settings: PortfolioVolatilitySettings = field(default_factory=PortfolioVolatilitySettings)
    policy: ExclusionPolicy = field(default_factory=ExclusionPolicy)

    def candidate_pool(self, day: date) -> List[CandidateAsset]:
        s = self.settings
        return select_by_market_cap(
            self.storage.load_candidates(day, s.min_volume_24h),
            policy=self.policy,
            min_volume_24h=s.min_volume_24h,
            limit=s.candidate_pool_size,
        )

    def select_constituents(self, pool: List[CandidateAsset], day: date) -> List[CandidateAsset]:
        """Largest candidates with enough return history, up to the cap."""

        s = self.settings
        counts = self.storage.count_log_returns([c.crypto_id for c in pool], day)
        selected: List[CandidateAsset] = []
        for candidate in pool:
            if len(selected) >= s.max_constituents:
                break
            available = counts.get(candidate.crypto_id, 0)
            if available >= s.minimum_window_days:
                selected.append(candidate)
            else:
                logger.debug("%s: only %d day(s) of returns on %s", candidate.symbol, available, day)
        return selected

    def compute_for_date(self, config_id: int, day: date) -> ItemOutcome:
        started = time.monotonic()
        key = day.isoformat()
        s = self.settings

        selected = self.select_constituents(self.candidate_pool(day), day)
        constituents = []
        for candidate in selected:
            points = self.storage.get_trailing_returns(candidate.crypto_id, day, s.default_window_days)
            if points:
                constituents.append(
                    ConstituentReturns(
                        crypto_id=candidate.crypto_id,
                        symbol=candidate.symbol,
                        market_cap=candidate.market_cap,
                        returns=tuple(value for _, value in points),
                        days=tuple(d for d, _ in points),
                    )
                )

        estimate, reason = estimate_portfolio_volatility(constituents, s)
        if estimate is None:
            return ItemOutcome.skipped(key, reason or "insufficient data")

        record = PortfolioVolatilityRecord(
            index_config_id=config_id,
            day=day,
            window_days=estimate.window_days,
            daily_volatility=estimate.daily_volatility,
            annualized_volatility=estimate.annualized_volatility,
            num_constituents=len(estimate.constituents),
            total_market_cap=estimate.total_market_cap,
            calculation_duration_ms=int((time.monotonic() - started) * 1000),
            constituents=list(estimate.constituents),
        )
        record_id = self.storage.insert_result(record)
        if record_id is None:
            return ItemOutcome.skipped(key, "already computed")

        logger.info(
            "%s: portfolio volatility %.2f%% annualized (%d constituents, %d day window)",
            key,
            estimate.annualized_volatility * 100.0,
            record.num_constituents,
            estimate.window_days,
        )
        return ItemOutcome.success(key, rows_written=1 + record.num_constituents)

    def run(self, today: Optional[date] = None) -> RunSummary:
        """Compute every missing date before ``today``.

        Raises:
            PortfolioConfigError: If the index has no active configuration.
        """

        today = today or utc_today()
        summary = RunSummary(stage="portfolio volatility")
        started = time.monotonic()

        config_id = self.storage.get_active_config_id(self.settings.index_name)
        missing = self.storage.get_missing_dates(config_id, today)
        logger.info("%d date(s) missing portfolio volatility", len(missing))

        for day in missing:
            try:
                outcome = self.compute_for_date(config_id, day)
            except Exception as exc:  # pragma: no cover - defensive
                logger.exception("Portfolio volatility failed for %s", day)
                outcome = ItemOutcome.error(day.isoformat(), str(exc))
            summary.record(outcome)

        summary.duration_seconds = time.monotonic() - started
        summary.log(logger)
        return summary


__all__ = ["PortfolioVolatilityEngine"]
