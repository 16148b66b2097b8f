"""Unit tests for rolling risk metrics and the RiskMetricsEngine."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Dict, List, Set, Tuple

import pytest

from risqlab.data_ingestion.types import Asset
from risqlab.risk.config import RiskSettings
from risqlab.risk.engine import RiskMetricsEngine
from risqlab.risk.metrics import (
    benchmark_returns,
    returns_by_day,
    rolling_beta_and_sml,
    rolling_distribution,
    rolling_var,
    rolling_volatility,
)
from risqlab.risk.types import DailyReturn, RiskMetric

START = date(2025, 1, 1)
MARKET = [0.01, -0.02, 0.015, 0.005, -0.01, 0.02, -0.005, 0.012, -0.008, 0.003]


def _returns(values: List[float]) -> List[DailyReturn]:
    return [DailyReturn(day=START + timedelta(days=i + 1), value=v) for i, v in enumerate(values)]


def _levels(values: List[float]) -> List[Tuple[date, float]]:
    levels = [(START, 100.0)]
    for i, v in enumerate(values):
        levels.append((START + timedelta(days=i + 1), levels[-1][1] * math.exp(v)))
    return levels


def test_benchmark_returns_from_levels() -> None:
    out = benchmark_returns([(START, 100.0), (START + timedelta(days=1), 110.0)])
    assert out == [DailyReturn(day=START + timedelta(days=1), value=pytest.approx(math.log(1.1)))]


def test_volatility_windows_grow_then_cap() -> None:
    records = rolling_volatility(1, _returns(MARKET), minimum=7, maximum=8, periods_per_year=365)

    assert [r.window_days for r in records] == [7, 8, 8, 8]
    assert records[0].annualized_volatility == pytest.approx(records[0].daily_volatility * math.sqrt(365))


def test_var_records_carry_window_summary() -> None:
    (record, *_) = rolling_var(1, _returns(MARKET), minimum=7, maximum=365)

    window = MARKET[:7]
    assert record.window_days == 7
    assert record.min_return == min(window)
    assert record.max_return == max(window)
    assert record.cvar_99 <= record.var_99 <= record.var_95


class TestBetaAndSml:
    def test_beta_of_scaled_market_is_scale(self) -> None:
        benchmark = returns_by_day(_returns(MARKET))
        betas, smls = rolling_beta_and_sml(
            1, _returns([2 * m for m in MARKET]), benchmark, minimum=7, maximum=90, risk_free_rate=0.0
        )

        assert len(betas) == 4
        assert all(b.beta == pytest.approx(2.0) for b in betas)
        assert all(not s.is_overvalued for s in smls)

    def test_return_below_line_is_overvalued(self) -> None:
        benchmark = returns_by_day(_returns(MARKET))
        _, smls = rolling_beta_and_sml(
            1,
            _returns([2 * m - 0.01 for m in MARKET]),
            benchmark,
            minimum=7,
            maximum=90,
            risk_free_rate=0.0,
        )

        sml = smls[-1]
        assert sml.is_overvalued
        assert sml.alpha == pytest.approx(sml.actual_return - sml.expected_return)
        assert sml.alpha == pytest.approx(-0.01)

    def test_only_common_dates_are_used(self) -> None:
        benchmark = returns_by_day(_returns(MARKET[:5]))
        betas, _ = rolling_beta_and_sml(
            1, _returns(MARKET), benchmark, minimum=7, maximum=90, risk_free_rate=0.0
        )
        assert betas == []


class _StubRiskStorage:
    def __init__(self, returns: List[DailyReturn], levels: List[Tuple[date, float]]) -> None:
        self.returns = returns
        self.levels = levels
        self.rows: Dict[RiskMetric, List[Any]] = {m: [] for m in RiskMetric}

    def list_assets_with_returns(self, minimum_points: int, before: date) -> List[Asset]:
        return [Asset(crypto_id=1, symbol="ETH", name="Ethereum")]

    def get_log_returns(self, crypto_id: int, before: date) -> List[DailyReturn]:
        return list(self.returns)

    def get_benchmark_levels(self, index_name: str, before: date) -> List[Tuple[date, float]]:
        return list(self.levels)

    def get_existing_keys(self, metric: RiskMetric, crypto_id: int) -> Set[Tuple[date, int]]:
        return {(r.day, r.window_days) for r in self.rows[metric]}

    def insert_records(self, metric: RiskMetric, records: List[Any]) -> int:
        self.rows[metric].extend(records)
        return len(records)


class TestRiskMetricsEngine:
    def test_without_benchmark_beta_and_sml_are_skipped(self) -> None:
        storage = _StubRiskStorage(_returns(MARKET), levels=[])
        engine = RiskMetricsEngine(storage=storage, settings=RiskSettings())

        summary = engine.run(today=date(2025, 2, 1))

        assert summary.rows_written == 12
        assert storage.rows[RiskMetric.BETA] == []
        assert storage.rows[RiskMetric.SML] == []

    def test_benchmark_enables_beta_and_rerun_is_idempotent(self) -> None:
        storage = _StubRiskStorage(_returns([2 * m for m in MARKET]), levels=_levels(MARKET))
        engine = RiskMetricsEngine(storage=storage, settings=RiskSettings())

        first = engine.run(today=date(2025, 2, 1))
        second = engine.run(today=date(2025, 2, 1))

        assert first.rows_written == 20
        assert storage.rows[RiskMetric.BETA][-1].beta == pytest.approx(2.0)
        assert second.rows_written == 0
        assert second.skipped == 1

    def test_too_few_returns_is_skipped(self) -> None:
        storage = _StubRiskStorage(_returns(MARKET[:3]), levels=[])
        engine = RiskMetricsEngine(storage=storage)

        summary = engine.run(today=date(2025, 2, 1))

        assert summary.skipped == 1


def test_zero_series_has_zero_var_and_dispersion() -> None:
    records = rolling_var(1, _returns([0.0] * 8), minimum=7, maximum=365)

    for r in records:
        assert (r.var_95, r.cvar_95, r.var_99, r.cvar_99, r.std_dev) == (0.0, 0.0, 0.0, 0.0, 0.0)


def test_flat_non_zero_returns_never_yield_nan_moments() -> None:
    records = rolling_distribution(1, _returns([0.01] * 10), minimum=7, maximum=90)

    assert [(r.skewness, r.kurtosis) for r in records] == [(0.0, 0.0)] * 4


def test_constant_non_zero_benchmark_produces_no_beta_or_sml() -> None:
    benchmark = returns_by_day(_returns([0.01] * 10))
    betas, smls = rolling_beta_and_sml(
        1, _returns(MARKET), benchmark, minimum=7, maximum=90, risk_free_rate=0.0
    )

    assert betas == []
    assert smls == []
