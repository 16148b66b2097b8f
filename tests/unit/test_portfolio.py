"""Unit tests for the portfolio covariance model and engine."""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from risqlab.portfolio.config import PortfolioVolatilitySettings
from risqlab.portfolio.engine import PortfolioVolatilityEngine
from risqlab.portfolio.model import (
    covariance_matrix,
    estimate_portfolio_volatility,
    market_cap_weights,
    misaligned_symbols,
    portfolio_variance,
    weights_sum_to_one,
)
from risqlab.portfolio.storage import PortfolioConfigError
from risqlab.portfolio.types import ConstituentReturns, PortfolioVolatilityRecord
from risqlab.universe.selection import CandidateAsset

SMALL = PortfolioVolatilitySettings(
    min_constituents=2,
    minimum_window_days=2,
    max_constituents=2,
    candidate_pool_size=5,
    min_volume_24h=0.0,
)
A = (0.01, -0.02, 0.015)
B = (0.02, -0.01, 0.01)


class TestModel:
    def test_weights_proportional_to_market_cap(self) -> None:
        weights = market_cap_weights([3.0, 1.0])

        assert weights.tolist() == [0.75, 0.25]
        assert weights_sum_to_one(weights, 1e-6)

    def test_non_positive_total_market_cap(self) -> None:
        with pytest.raises(ValueError):
            market_cap_weights([0.0, 0.0])

    def test_covariance_of_two_assets(self) -> None:
        cov = covariance_matrix([A, B])

        assert cov.shape == (2, 2)
        assert cov[0, 1] == pytest.approx(cov[1, 0])
        assert cov[0, 1] == pytest.approx(2.5833333e-4)

    def test_ragged_series_rejected(self) -> None:
        with pytest.raises(ValueError):
            covariance_matrix([[0.01, 0.02], [0.01]])

    def test_single_observation_rejected(self) -> None:
        with pytest.raises(ValueError):
            covariance_matrix([[0.01], [0.02]])

    def test_variance_of_equal_weight_pair(self) -> None:
        variance = portfolio_variance(np.array([0.5, 0.5]), covariance_matrix([A, B]))
        assert variance == pytest.approx(2.7708333e-4)

    def test_estimate(self) -> None:
        estimate, reason = estimate_portfolio_volatility(
            [
                ConstituentReturns(crypto_id=1, symbol="A", market_cap=100.0, returns=A),
                ConstituentReturns(crypto_id=2, symbol="B", market_cap=100.0, returns=B),
            ],
            SMALL,
        )

        assert reason is None
        assert estimate is not None
        assert estimate.window_days == 3
        assert estimate.daily_volatility == pytest.approx(math.sqrt(2.7708333e-4), rel=1e-6)
        assert estimate.annualized_volatility == pytest.approx(estimate.daily_volatility * math.sqrt(365))
        assert estimate.total_market_cap == 200.0
        assert sum(c.weight for c in estimate.constituents) == pytest.approx(1.0)

    def test_short_history_constituent_is_dropped_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        constituents = [
            ConstituentReturns(crypto_id=1, symbol="A", market_cap=100.0, returns=A),
            ConstituentReturns(crypto_id=2, symbol="B", market_cap=100.0, returns=B),
            ConstituentReturns(crypto_id=3, symbol="C", market_cap=100.0, returns=(0.01, 0.02)),
        ]

        with caplog.at_level(logging.WARNING):
            estimate, _ = estimate_portfolio_volatility(constituents, SMALL)

        assert estimate is not None
        assert estimate.excluded_symbols == ("C",)
        assert len(estimate.constituents) == 2
        assert "'C'" in caplog.text

    def test_too_few_constituents(self) -> None:
        estimate, reason = estimate_portfolio_volatility(
            [ConstituentReturns(crypto_id=1, symbol="A", market_cap=1.0, returns=A)], SMALL
        )

        assert estimate is None
        assert reason is not None and "constituents" in reason

    def test_window_below_minimum(self) -> None:
        estimate, reason = estimate_portfolio_volatility(
            [
                ConstituentReturns(crypto_id=1, symbol="A", market_cap=1.0, returns=(0.01,)),
                ConstituentReturns(crypto_id=2, symbol="B", market_cap=1.0, returns=(0.02,)),
            ],
            SMALL,
        )

        assert estimate is None
        assert reason is not None and "window" in reason

    def test_windows_ending_on_different_dates_are_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        days = (date(2025, 3, 7), date(2025, 3, 8), date(2025, 3, 9))
        stale = (date(2025, 3, 6), date(2025, 3, 7), date(2025, 3, 8))
        constituents = [
            ConstituentReturns(crypto_id=1, symbol="A", market_cap=100.0, returns=A, days=days),
            ConstituentReturns(crypto_id=2, symbol="B", market_cap=100.0, returns=B, days=stale),
        ]

        with caplog.at_level(logging.WARNING):
            estimate, _ = estimate_portfolio_volatility(constituents, SMALL)

        assert estimate is not None
        assert misaligned_symbols(constituents, 3) == ["B"]
        assert "'B'" in caplog.text

    def test_aligned_windows_are_not_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        days = (date(2025, 3, 7), date(2025, 3, 8), date(2025, 3, 9))
        constituents = [
            ConstituentReturns(crypto_id=1, symbol="A", market_cap=100.0, returns=A, days=days),
            ConstituentReturns(crypto_id=2, symbol="B", market_cap=100.0, returns=B, days=days),
        ]

        with caplog.at_level(logging.WARNING):
            estimate_portfolio_volatility(constituents, SMALL)

        assert misaligned_symbols(constituents, 3) == []
        assert "different dates" not in caplog.text


def _candidate(crypto_id: int, symbol: str, market_cap: float, categories=()) -> CandidateAsset:  # type: ignore[no-untyped-def]
    return CandidateAsset(
        crypto_id=crypto_id,
        symbol=symbol,
        market_cap=market_cap,
        volume_24h=1e9,
        categories=tuple(categories),
    )


class _StubPortfolioStorage:
    def __init__(self) -> None:
        self.returns: Dict[int, List[float]] = {1: list(A), 2: list(B), 3: [0.01], 4: list(A)}
        self.lag: Dict[int, int] = {}
        self.records: List[PortfolioVolatilityRecord] = []
        self.config_id: Optional[int] = 7

    def get_active_config_id(self, index_name: str) -> int:
        if self.config_id is None:
            raise PortfolioConfigError(index_name)
        return self.config_id

    def get_missing_dates(self, config_id: int, before: date) -> List[date]:
        done = {r.day for r in self.records}
        return [d for d in (date(2025, 3, 9), date(2025, 3, 8)) if d not in done]

    def load_candidates(self, day: date, min_volume_24h: float) -> List[CandidateAsset]:
        return [
            _candidate(4, "USDT", 900.0, categories=["Stablecoins"]),
            _candidate(1, "A", 300.0),
            _candidate(3, "C", 200.0),
            _candidate(2, "B", 100.0),
        ]

    def count_log_returns(self, crypto_ids: Sequence[int], as_of: date) -> Dict[int, int]:
        return {i: len(self.returns[i]) for i in crypto_ids}

    def get_trailing_returns(self, crypto_id: int, as_of: date, limit: int) -> List[Tuple[date, float]]:
        values = self.returns[crypto_id][-limit:]
        end = as_of - timedelta(days=self.lag.get(crypto_id, 0))
        return [(end - timedelta(days=len(values) - 1 - i), v) for i, v in enumerate(values)]

    def insert_result(self, record: PortfolioVolatilityRecord) -> Optional[int]:
        if any(r.day == record.day for r in self.records):
            return None
        self.records.append(record)
        return len(self.records)


class TestEngine:
    def test_constituents_skip_excluded_and_short_history(self) -> None:
        storage = _StubPortfolioStorage()
        engine = PortfolioVolatilityEngine(storage=storage, settings=SMALL)

        summary = engine.run(today=date(2025, 3, 10))

        assert summary.succeeded == 2
        assert summary.rows_written == 6
        record = storage.records[0]
        assert [c.crypto_id for c in record.constituents] == [1, 2]
        assert record.constituents[0].weight == pytest.approx(0.75)
        assert record.index_config_id == 7

    def test_existing_result_is_skipped(self) -> None:
        storage = _StubPortfolioStorage()
        engine = PortfolioVolatilityEngine(storage=storage, settings=SMALL)
        engine.compute_for_date(7, date(2025, 3, 9))

        outcome = engine.compute_for_date(7, date(2025, 3, 9))

        assert outcome.reason == "already computed"

    def test_missing_config_raises(self) -> None:
        storage = _StubPortfolioStorage()
        storage.config_id = None

        with pytest.raises(PortfolioConfigError):
            PortfolioVolatilityEngine(storage=storage, settings=SMALL).run(today=date(2025, 3, 10))

    def test_constituent_with_stale_returns_is_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        storage = _StubPortfolioStorage()
        storage.lag[2] = 1
        engine = PortfolioVolatilityEngine(storage=storage, settings=SMALL)

        with caplog.at_level(logging.WARNING):
            outcome = engine.compute_for_date(7, date(2025, 3, 9))

        assert outcome.rows_written == 3
        assert "different dates" in caplog.text
        assert "'B'" in caplog.text
