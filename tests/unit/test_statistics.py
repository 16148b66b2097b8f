"""Unit tests for the return-distribution statistics."""

from __future__ import annotations

import math

import pytest

from risqlab.risk.statistics import (
    annualize,
    capm_expected_return,
    distribution_moments,
    fit_against_benchmark,
    is_flat,
    pearson_correlation,
    sample_std,
    value_at_risk,
)


RETURNS = [-0.05, -0.03, -0.01, 0.01, 0.03]


class TestValueAtRisk:
    def test_linear_quantile_in_return_space(self) -> None:
        var_95, cvar_95 = value_at_risk(RETURNS, 0.95)
        var_99, cvar_99 = value_at_risk(RETURNS, 0.99)

        assert var_95 == pytest.approx(-0.046)
        assert var_99 == pytest.approx(-0.0492)
        assert cvar_95 == pytest.approx(-0.05)
        assert cvar_99 == pytest.approx(-0.05)

    def test_cvar_is_never_above_var(self) -> None:
        returns = [0.02, -0.01, 0.005, -0.04, 0.0, 0.01, -0.02, 0.03, -0.005, 0.015]
        var, cvar = value_at_risk(returns, 0.95)
        assert cvar <= var

    def test_flat_series_has_zero_var(self) -> None:
        assert value_at_risk([0.0] * 10, 0.95) == (0.0, 0.0)

    @pytest.mark.parametrize("confidence", [0.0, 1.0, 1.5])
    def test_confidence_out_of_range(self, confidence: float) -> None:
        with pytest.raises(ValueError):
            value_at_risk(RETURNS, confidence)

    def test_empty_series(self) -> None:
        with pytest.raises(ValueError):
            value_at_risk([], 0.95)


def test_sample_std_uses_n_minus_one() -> None:
    assert sample_std([1.0, 3.0]) == pytest.approx(math.sqrt(2.0))
    assert sample_std([1.0]) == 0.0


def test_annualize_by_square_root_of_periods() -> None:
    assert annualize(0.02, 365) == pytest.approx(0.02 * math.sqrt(365))


def test_moments_of_flat_series_are_zero() -> None:
    assert distribution_moments([0.01] * 30) == (0.0, 0.0)


def test_symmetric_series_has_no_skew() -> None:
    skewness, _ = distribution_moments(RETURNS + [0.05])
    assert skewness == pytest.approx(0.0, abs=1e-12)


class TestBenchmarkFit:
    def test_linear_relation(self) -> None:
        market = [0.01, -0.02, 0.015, 0.005, -0.01]
        asset = [2 * m + 0.001 for m in market]

        fit = fit_against_benchmark(asset, market)

        assert fit is not None
        assert fit.beta == pytest.approx(2.0)
        assert fit.alpha == pytest.approx(0.001)
        assert fit.correlation == pytest.approx(1.0)
        assert fit.r_squared == pytest.approx(1.0)

    def test_flat_benchmark_has_no_beta(self) -> None:
        assert fit_against_benchmark([0.01, 0.02, -0.01], [0.0, 0.0, 0.0]) is None

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            fit_against_benchmark([0.01, 0.02], [0.01])


def test_capm_expected_return() -> None:
    assert capm_expected_return(1.5, 0.01, 0.0) == pytest.approx(0.015)
    assert capm_expected_return(0.0, 0.01, 0.002) == pytest.approx(0.002)


def test_pearson_correlation_undefined_is_zero() -> None:
    assert pearson_correlation([0.01, 0.01, 0.01], [0.02, -0.01, 0.0]) == 0.0
    assert pearson_correlation([0.01, 0.02], [0.02, 0.04]) == pytest.approx(1.0)


class TestFlatWindows:
    """Constant non-zero windows carry rounding noise rather than exact zero spread."""

    def test_constant_non_zero_series_is_flat(self) -> None:
        assert is_flat([0.01] * 30)
        assert is_flat([0.1 + 0.2] * 7 + [0.3])
        assert not is_flat([0.01, 0.0100001])

    def test_moments_of_constant_non_zero_window(self) -> None:
        skewness, kurtosis = distribution_moments([0.01] * 30)

        assert (skewness, kurtosis) == (0.0, 0.0)

    def test_constant_non_zero_benchmark_has_no_beta(self) -> None:
        asset = [0.01 * (i % 3) for i in range(30)]

        assert fit_against_benchmark(asset, [0.01] * 30) is None

    def test_constant_asset_has_zero_correlation(self) -> None:
        market = [0.01, -0.02, 0.015, 0.005, -0.01]
        fit = fit_against_benchmark([0.003] * 5, market)

        assert fit is not None
        assert fit.correlation == 0.0
        assert fit.beta == pytest.approx(0.0, abs=1e-12)

    def test_constant_non_zero_series_has_zero_pearson_correlation(self) -> None:
        assert pearson_correlation([0.01] * 30, [0.01 * (i % 3) for i in range(30)]) == 0.0
