"""risqlab – Risk Metrics Engine record types.

One frozen dataclass per derived table. Every record is keyed by
``(crypto_id, day, window_days)`` where ``window_days`` is the number of
observations actually used.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class RiskMetric(str, Enum):
    """Derived per-asset risk tables, by name."""

    VOLATILITY = "crypto_volatility"
    VAR = "crypto_var"
    DISTRIBUTION = "crypto_distribution_stats"
    BETA = "crypto_beta"
    SML = "crypto_sml"


@dataclass(frozen=True)
class DailyReturn:
    day: date
    value: float


@dataclass(frozen=True)
class VolatilityRecord:
    crypto_id: int
    day: date
    window_days: int
    daily_volatility: float
    annualized_volatility: float
    mean_return: float


@dataclass(frozen=True)
class VarRecord:
    """Historical VaR/CVaR over a trailing window.

    VaR and CVaR are expressed as log returns; losses are negative.
    """

    crypto_id: int
    day: date
    window_days: int
    var_95: float
    var_99: float
    cvar_95: float
    cvar_99: float
    mean_return: float
    std_dev: float
    min_return: float
    max_return: float


@dataclass(frozen=True)
class DistributionRecord:
    crypto_id: int
    day: date
    window_days: int
    skewness: float
    kurtosis: float
    mean_return: float
    std_dev: float


@dataclass(frozen=True)
class BetaRecord:
    crypto_id: int
    day: date
    window_days: int
    beta: float
    alpha: float
    r_squared: float
    correlation: float


@dataclass(frozen=True)
class SmlRecord:
    """Position of an asset relative to the security market line.

    An asset whose actual return falls below the CAPM expected return
    plots under the line and is flagged as overvalued.
    """

    crypto_id: int
    day: date
    window_days: int
    beta: float
    expected_return: float
    actual_return: float
    alpha: float
    is_overvalued: bool
    market_return: float


@dataclass(frozen=True)
class VolatilityRanking:
    """Latest annualised volatility of an asset, for top-N rankings."""

    crypto_id: int
    symbol: str
    name: str
    day: date
    window_days: int
    annualized_volatility: float


__all__ = [
    "RiskMetric",
    "DailyReturn",
    "VolatilityRecord",
    "VarRecord",
    "DistributionRecord",
    "BetaRecord",
    "SmlRecord",
    "VolatilityRanking",
]
