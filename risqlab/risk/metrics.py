"""risqlab – rolling risk metrics over daily log returns.

Each function walks an asset's chronological return sequence and emits
one record per date that has enough trailing history. Window lengths
follow :func:`risqlab.core.windows.window_days`: they grow with the
available history and are capped at the configured maximum.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from risqlab.core.windows import trailing_slice, window_days
from risqlab.risk.statistics import (
    annualize,
    capm_expected_return,
    distribution_moments,
    fit_against_benchmark,
    sample_std,
    value_at_risk,
)
from risqlab.risk.types import (
    BetaRecord,
    DailyReturn,
    DistributionRecord,
    SmlRecord,
    VarRecord,
    VolatilityRecord,
)


def benchmark_returns(levels: Sequence[Tuple[date, float]]) -> List[DailyReturn]:
    """Log returns of a daily index level series (oldest first)."""

    out: List[DailyReturn] = []
    for (_, previous), (day, current) in zip(levels, levels[1:]):
        if previous > 0 and current > 0:
            out.append(DailyReturn(day=day, value=math.log(current / previous)))
    return out


def rolling_volatility(
    crypto_id: int,
    returns: Sequence[DailyReturn],
    *,
    minimum: int,
    maximum: int,
    periods_per_year: int,
) -> List[VolatilityRecord]:
    values = np.asarray([r.value for r in returns], dtype=float)
    records: List[VolatilityRecord] = []
    for i, r in enumerate(returns):
        length = window_days(i + 1, minimum, maximum)
        if length is None:
            continue
        window = values[trailing_slice(i, length)]
        daily = sample_std(window)
        records.append(
            VolatilityRecord(
                crypto_id=crypto_id,
                day=r.day,
                window_days=length,
                daily_volatility=daily,
                annualized_volatility=annualize(daily, periods_per_year),
                mean_return=float(window.mean()),
            )
        )
    return records


def rolling_var(
    crypto_id: int,
    returns: Sequence[DailyReturn],
    *,
    minimum: int,
    maximum: int,
) -> List[VarRecord]:
    values = np.asarray([r.value for r in returns], dtype=float)
    records: List[VarRecord] = []
    for i, r in enumerate(returns):
        length = window_days(i + 1, minimum, maximum)
        if length is None:
            continue
        window = values[trailing_slice(i, length)]
        var_95, cvar_95 = value_at_risk(window, 0.95)
        var_99, cvar_99 = value_at_risk(window, 0.99)
        records.append(
            VarRecord(
                crypto_id=crypto_id,
                day=r.day,
                window_days=length,
                var_95=var_95,
                var_99=var_99,
                cvar_95=cvar_95,
                cvar_99=cvar_99,
                mean_return=float(window.mean()),
                std_dev=sample_std(window),
                min_return=float(window.min()),
                max_return=float(window.max()),
            )
        )
    return records


def rolling_distribution(
    crypto_id: int,
    returns: Sequence[DailyReturn],
    *,
    minimum: int,
    maximum: int,
) -> List[DistributionRecord]:
    values = np.asarray([r.value for r in returns], dtype=float)
    records: List[DistributionRecord] = []
    for i, r in enumerate(returns):
        length = window_days(i + 1, minimum, maximum)
        if length is None:
            continue
        window = values[trailing_slice(i, length)]
        skewness, kurtosis = distribution_moments(window)
        records.append(
            DistributionRecord(
                crypto_id=crypto_id,
                day=r.day,
                window_days=length,
                skewness=skewness,
                kurtosis=kurtosis,
                mean_return=float(window.mean()),
                std_dev=sample_std(window),
            )
        )
    return records


def rolling_beta_and_sml(
    crypto_id: int,
    returns: Sequence[DailyReturn],
    benchmark: Mapping[date, float],
    *,
    minimum: int,
    maximum: int,
    risk_free_rate: float,
) -> Tuple[List[BetaRecord], List[SmlRecord]]:
    """Regress asset returns on benchmark returns over trailing windows.

    Only dates present in both series are used. Windows where the
    benchmark has no variance produce no record.
    """

    aligned = [(r.day, r.value, benchmark[r.day]) for r in returns if r.day in benchmark]
    asset_values = np.asarray([a for _, a, _ in aligned], dtype=float)
    market_values = np.asarray([m for _, _, m in aligned], dtype=float)

    betas: List[BetaRecord] = []
    smls: List[SmlRecord] = []
    for i, (day, _, _) in enumerate(aligned):
        length = window_days(i + 1, minimum, maximum)
        if length is None:
            continue
        window = trailing_slice(i, length)
        fit = fit_against_benchmark(asset_values[window], market_values[window])
        if fit is None:
            continue

        betas.append(
            BetaRecord(
                crypto_id=crypto_id,
                day=day,
                window_days=length,
                beta=fit.beta,
                alpha=fit.alpha,
                r_squared=fit.r_squared,
                correlation=fit.correlation,
            )
        )

        market_return = float(market_values[window].mean())
        actual = float(asset_values[window].mean())
        expected = capm_expected_return(fit.beta, market_return, risk_free_rate)
        smls.append(
            SmlRecord(
                crypto_id=crypto_id,
                day=day,
                window_days=length,
                beta=fit.beta,
                expected_return=expected,
                actual_return=actual,
                alpha=actual - expected,
                is_overvalued=actual < expected,
                market_return=market_return,
            )
        )

    return betas, smls


def returns_by_day(returns: Sequence[DailyReturn]) -> Dict[date, float]:
    return {r.day: r.value for r in returns}


__all__ = [
    "benchmark_returns",
    "rolling_volatility",
    "rolling_var",
    "rolling_distribution",
    "rolling_beta_and_sml",
    "returns_by_day",
]
