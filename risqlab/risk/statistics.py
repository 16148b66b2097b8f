"""risqlab – return-distribution statistics.

Pure numerical helpers shared by the risk metrics engine and the read
queries. All inputs are daily log returns; all variances use the sample
(n-1) denominator.

Historical VaR uses linear interpolation between order statistics
(``numpy.quantile`` with ``method="linear"``) at quantile
``1 - confidence``. VaR is expressed in return space, so a loss shows up
as a negative number. CVaR is the mean of all returns at or below VaR.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import stats


def as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation; ``0.0`` for fewer than two values."""

    arr = as_array(values)
    if arr.size < 2:
        return 0.0
    return float(np.std(arr, ddof=1))


FLAT_TOLERANCE = 1e-12


def is_flat(values: Sequence[float]) -> bool:
    """True when ``values`` has no meaningful dispersion.

    Identical inputs can still yield a standard deviation of order 1e-18
    after floating-point summation, so dispersion is compared against a
    tolerance scaled by the magnitude of the mean.
    """

    arr = as_array(values)
    if arr.size < 2:
        return True
    scale = max(1.0, abs(float(arr.mean())))
    return float(np.std(arr, ddof=1)) <= FLAT_TOLERANCE * scale


def annualize(daily_volatility: float, periods_per_year: int) -> float:
    return daily_volatility * math.sqrt(periods_per_year)


def value_at_risk(returns: Sequence[float], confidence: float) -> Tuple[float, float]:
    """Return ``(var, cvar)`` of ``returns`` at ``confidence``.

    Raises:
        ValueError: If ``returns`` is empty or ``confidence`` is not in (0, 1).
    """

    arr = as_array(returns)
    if arr.size == 0:
        raise ValueError("Cannot compute VaR of an empty return series")
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"Confidence must be in (0, 1), got {confidence}")

    var = float(np.quantile(arr, 1.0 - confidence, method="linear"))
    tail = arr[arr <= var]
    # With interpolation the minimum is always <= var, so the tail is never empty.
    cvar = float(tail.mean())
    return var, cvar


def distribution_moments(returns: Sequence[float]) -> Tuple[float, float]:
    """Return bias-corrected ``(skewness, excess_kurtosis)``.

    A window with no dispersion has no defined shape; it is reported as
    ``(0.0, 0.0)`` rather than NaN.
    """

    arr = as_array(returns)
    if arr.size < 4 or is_flat(arr):
        return 0.0, 0.0
    skewness = float(stats.skew(arr, bias=False))
    kurtosis = float(stats.kurtosis(arr, fisher=True, bias=False))
    if not (math.isfinite(skewness) and math.isfinite(kurtosis)):
        return 0.0, 0.0
    return skewness, kurtosis


@dataclass(frozen=True)
class BenchmarkFit:
    """Least-squares fit of asset returns against benchmark returns."""

    beta: float
    alpha: float
    correlation: float
    r_squared: float


def fit_against_benchmark(
    asset_returns: Sequence[float],
    benchmark_returns: Sequence[float],
) -> Optional[BenchmarkFit]:
    """Regress asset returns on benchmark returns.

    Returns ``None`` when the benchmark has no variance over the window
    (beta is undefined).

    Raises:
        ValueError: If the two series have different lengths.
    """

    a = as_array(asset_returns)
    m = as_array(benchmark_returns)
    if a.shape != m.shape:
        raise ValueError(f"Series length mismatch: {a.size} vs {m.size}")
    if a.size < 2:
        return None

    cov = np.cov(a, m, ddof=1)
    var_m = float(cov[1, 1])
    var_a = float(cov[0, 0])
    if is_flat(m):
        return None

    beta = float(cov[0, 1]) / var_m
    alpha = float(a.mean()) - beta * float(m.mean())
    if is_flat(a):
        correlation = 0.0
    else:
        correlation = float(cov[0, 1]) / math.sqrt(var_a * var_m)
    return BenchmarkFit(
        beta=beta,
        alpha=alpha,
        correlation=correlation,
        r_squared=correlation * correlation,
    )


def capm_expected_return(beta: float, market_return: float, risk_free_rate: float) -> float:
    """Expected return on the security market line."""

    return risk_free_rate + beta * (market_return - risk_free_rate)


def pearson_correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """Correlation of two aligned series; ``0.0`` when undefined."""

    x = as_array(a)
    y = as_array(b)
    if x.size < 2 or x.size != y.size:
        return 0.0
    if is_flat(x) or is_flat(y):
        return 0.0
    return float(np.corrcoef(x, y)[0, 1])


__all__ = [
    "sample_std",
    "is_flat",
    "annualize",
    "value_at_risk",
    "distribution_moments",
    "BenchmarkFit",
    "fit_against_benchmark",
    "capm_expected_return",
    "pearson_correlation",
]
