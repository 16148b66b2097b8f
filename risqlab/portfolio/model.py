"""risqlab – portfolio volatility model.

Pure functions for the market-cap weighted covariance model:

    sigma_p = sqrt(w' S w)

where ``w`` are market-cap weights summing to one and ``S`` is the sample
covariance matrix of the constituents' aligned trailing log returns.
Alignment is positional: every series is truncated to its most recent
``window`` observations, so the return on index ``i`` of each series is
treated as the same day. When the dates of the returns are known, series
whose window covers different days than the first constituent are
reported with a warning.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from risqlab.core.logging import get_logger
from risqlab.core.windows import window_days
from risqlab.portfolio.config import PortfolioVolatilitySettings
from risqlab.portfolio.types import (
    ConstituentReturns,
    PortfolioConstituentVolatility,
    PortfolioEstimate,
)
from risqlab.risk.statistics import annualize, sample_std


logger = get_logger(__name__)


def market_cap_weights(market_caps: Sequence[float]) -> np.ndarray:
    """Return weights proportional to ``market_caps``.

    Raises:
        ValueError: If the total market cap is not positive.
    """

    caps = np.asarray(market_caps, dtype=float)
    total = float(caps.sum())
    if total <= 0.0:
        raise ValueError(f"Total market cap must be positive, got {total}")
    return caps / total


def weights_sum_to_one(weights: np.ndarray, tolerance: float) -> bool:
    return abs(float(weights.sum()) - 1.0) <= tolerance


def covariance_matrix(series: Sequence[Sequence[float]]) -> np.ndarray:
    """Sample covariance matrix with one row per asset.

    Raises:
        ValueError: If the series are ragged or shorter than two observations.
    """

    matrix = np.asarray(series, dtype=float)
    if matrix.ndim != 2:
        raise ValueError("Return series must all have the same length")
    if matrix.shape[1] < 2:
        raise ValueError("At least two observations are needed for a covariance matrix")
    return np.atleast_2d(np.cov(matrix, ddof=1))


def portfolio_variance(weights: np.ndarray, covariance: np.ndarray) -> float:
    return float(weights @ covariance @ weights)


def misaligned_symbols(constituents: Sequence[ConstituentReturns], window: int) -> List[str]:
    """Symbols whose last ``window`` return dates differ from the first dated constituent."""

    dated = [c for c in constituents if c.days]
    if not dated:
        return []
    reference = dated[0].days[-window:]
    return [c.symbol for c in dated[1:] if c.days[-window:] != reference]


def estimate_portfolio_volatility(
    constituents: Sequence[ConstituentReturns],
    settings: PortfolioVolatilitySettings,
) -> Tuple[Optional[PortfolioEstimate], Optional[str]]:
    """Run the covariance model on ``constituents``.

    Returns ``(estimate, None)`` on success or ``(None, reason)`` when the
    inputs do not support a result.
    """

    if len(constituents) < settings.min_constituents:
        return None, f"only {len(constituents)} constituents (< {settings.min_constituents})"

    longest = max(len(c.returns) for c in constituents)
    window = window_days(longest, settings.minimum_window_days, settings.default_window_days)
    if window is None:
        return None, f"window of {longest} days (< {settings.minimum_window_days})"

    eligible: List[ConstituentReturns] = []
    excluded: List[str] = []
    for c in constituents:
        if len(c.returns) >= window:
            eligible.append(c)
        else:
            excluded.append(c.symbol)
    if excluded:
        logger.warning("Dropping %d constituent(s) with < %d returns: %s", len(excluded), window, excluded)
    if len(eligible) < settings.min_constituents:
        return None, (
            f"only {len(eligible)} constituents with {window} days of returns "
            f"(< {settings.min_constituents})"
        )

    misaligned = misaligned_symbols(eligible, window)
    if misaligned:
        logger.warning("Return windows of %s cover different dates than the first constituent", misaligned)

    series = [c.returns[-window:] for c in eligible]
    weights = market_cap_weights([c.market_cap for c in eligible])
    if not weights_sum_to_one(weights, settings.weight_tolerance):
        logger.warning("Portfolio weights sum to %.10f instead of 1", float(weights.sum()))

    covariance = covariance_matrix(series)
    variance = portfolio_variance(weights, covariance)
    # Floating-point noise can push a near-zero variance slightly negative.
    daily = math.sqrt(max(variance, 0.0))

    periods = settings.annualization_periods
    rows = tuple(
        PortfolioConstituentVolatility(
            crypto_id=c.crypto_id,
            weight=float(w),
            daily_volatility=sample_std(s),
            annualized_volatility=annualize(sample_std(s), periods),
            market_cap=c.market_cap,
            symbol=c.symbol,
        )
        for c, w, s in zip(eligible, weights, series)
    )
    estimate = PortfolioEstimate(
        window_days=window,
        daily_volatility=daily,
        annualized_volatility=annualize(daily, periods),
        total_market_cap=float(sum(c.market_cap for c in eligible)),
        constituents=rows,
        excluded_symbols=tuple(excluded),
    )
    return estimate, None


__all__ = [
    "market_cap_weights",
    "weights_sum_to_one",
    "covariance_matrix",
    "portfolio_variance",
    "misaligned_symbols",
    "estimate_portfolio_volatility",
]
