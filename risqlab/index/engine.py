"""risqlab – Index Engine orchestration.

This module defines :class:`IndexEngine`, which maintains a
market-cap weighted index:

1. Initialisation (UNINITIALIZED -> ACTIVE). The divisor is anchored
   once on the earliest market-data timestamp so that the total market
   cap of the selected constituents maps to ``base_level``. It never
   changes afterwards, which keeps the level continuous when
   constituents rotate.
2. Backfill. Every market-data timestamp at or after the base date that
   has no ``index_history`` row is computed, oldest first. A timestamp
   without a full constituent set fails on its own and the loop goes on.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

from risqlab.core.logging import get_logger
from risqlab.core.results import ItemOutcome, RunSummary
from risqlab.index.config import IndexSettings
from risqlab.index.storage import IndexStorage
from risqlab.index.types import (
    IndexConfigRecord,
    IndexConstituentRecord,
    IndexHistoryRecord,
    IndexState,
)
from risqlab.universe.exclusions import ExclusionPolicy
from risqlab.universe.selection import CandidateAsset, select_by_market_cap


logger = get_logger(__name__)


class IndexInitializationError(Exception):
    """Raised when the index divisor cannot be anchored."""


def compute_divisor(total_market_cap: float, base_level: float) -> float:
    return total_market_cap / base_level


def compute_index_level(total_market_cap: float, divisor: float) -> float:
    return total_market_cap / divisor


def build_constituents(selected: Sequence[CandidateAsset]) -> List[IndexConstituentRecord]:
    """Rank constituents and weight them by share of total market cap (percent)."""

    total = sum(c.market_cap for c in selected)
    return [
        IndexConstituentRecord(
            crypto_id=c.crypto_id,
            rank_position=rank,
            price_usd=float(c.price or 0.0),
            circulating_supply=float(c.circulating_supply or 0.0),
            weight_in_index=c.market_cap / total * 100.0,
            market_data_id=c.market_data_id,
            symbol=c.symbol,
        )
        for rank, c in enumerate(selected, start=1)
    ]


@dataclass
class IndexEngine:
    """Compute and persist index levels and constituents.

    Attributes:
        storage: Storage helper for index tables and market data.
        settings: Index parameters.
        policy: Categorical exclusion policy applied before ranking.
    """

    storage: IndexStorage
    settings: IndexSettings = field(default_factory=IndexSettings)
    policy: ExclusionPolicy = field(default_factory=ExclusionPolicy)

    def select_constituents(self, candidates: Sequence[CandidateAsset]) -> List[CandidateAsset]:
        return select_by_market_cap(
            candidates,
            policy=self.policy,
            min_volume_24h=self.settings.min_volume_24h,
            limit=self.settings.max_constituents,
        )

    def ensure_initialized(self) -> IndexConfigRecord:
        """Return the active configuration, anchoring its divisor if needed.

        Raises:
            IndexInitializationError: If there is no market data or no
                eligible constituent at the earliest timestamp.
        """

        s = self.settings
        config = self.storage.get_active_config(s.index_name)
        if config is not None and config.state(s.divisor_sentinel) is IndexState.ACTIVE:
            return config

        base_ts = self.storage.get_earliest_market_timestamp()
        if base_ts is None:
            raise IndexInitializationError("No market data available to anchor the divisor")

        selected = self.select_constituents(self.storage.load_candidates(base_ts))
        if not selected:
            raise IndexInitializationError(f"No eligible constituents at base timestamp {base_ts}")

        total = sum(c.market_cap for c in selected)
        divisor = compute_divisor(total, s.base_level)
        logger.info(
            "Anchoring %s divisor at %s: %d constituents, total market cap %.2f, divisor %.6f",
            s.index_name,
            base_ts,
            len(selected),
            total,
            divisor,
        )

        if config is not None:
            return self.storage.anchor_divisor(config.config_id, divisor, base_ts)
        return self.storage.create_config(
            s.index_name, s.base_level, divisor, base_ts, s.max_constituents
        )

    def compute_for_timestamp(self, config: IndexConfigRecord, ts: datetime) -> ItemOutcome:
        """Compute and store the index level at one timestamp."""

        started = time.monotonic()
        key = ts.isoformat(sep=" ")

        candidates = self.storage.load_candidates(ts)
        if not candidates:
            return ItemOutcome.error(key, "no market data at timestamp")

        selected = self.select_constituents(candidates)
        if len(selected) < self.settings.max_constituents:
            return ItemOutcome.error(
                key,
                f"only {len(selected)} eligible constituents (< {self.settings.max_constituents})",
            )

        total = sum(c.market_cap for c in selected)
        constituents = build_constituents(selected)
        history = IndexHistoryRecord(
            index_config_id=config.config_id,
            timestamp=ts,
            total_market_cap=total,
            index_level=compute_index_level(total, config.divisor),
            divisor=config.divisor,
            number_of_constituents=len(constituents),
            calculation_duration_ms=int((time.monotonic() - started) * 1000),
        )
        self.storage.save_index_point(history, constituents)
        logger.debug("%s level at %s: %.4f", config.index_name, key, history.index_level)
        return ItemOutcome.success(key, rows_written=1 + len(constituents))

    def run(self) -> RunSummary:
        """Initialise if needed, then backfill every missing timestamp.

        Raises:
            IndexInitializationError: If the divisor cannot be anchored or
                the active configuration has no base date.
        """

        summary = RunSummary(stage=f"index {self.settings.index_name}")
        started = time.monotonic()

        config = self.ensure_initialized()
        if config.base_date is None:
            raise IndexInitializationError(
                f"Active configuration {config.config_id} of {config.index_name} has no base date"
            )
        missing = self.storage.get_missing_timestamps(config.config_id, config.base_date)
        logger.info("%d timestamp(s) missing from %s history", len(missing), config.index_name)

        for ts in missing:
            try:
                outcome = self.compute_for_timestamp(config, ts)
            except Exception as exc:  # pragma: no cover - defensive
                logger.exception("Index computation failed at %s", ts)
                outcome = ItemOutcome.error(ts.isoformat(sep=" "), str(exc))
            summary.record(outcome)

        summary.duration_seconds = time.monotonic() - started
        summary.log(logger)
        return summary


__all__ = [
    "IndexEngine",
    "IndexInitializationError",
    "compute_divisor",
    "compute_index_level",
    "build_constituents",
]
