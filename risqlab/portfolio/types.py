"""risqlab – Portfolio Volatility Engine core types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class ConstituentReturns:
    """Trailing log returns of one selected asset, oldest first.

    ``days`` holds the date of each return when known.
    """

    crypto_id: int
    symbol: str
    market_cap: float
    returns: Tuple[float, ...]
    days: Tuple[date, ...] = ()


@dataclass(frozen=True)
class PortfolioConstituentVolatility:
    """Row of ``portfolio_volatility_constituents``."""

    crypto_id: int
    weight: float
    daily_volatility: float
    annualized_volatility: float
    market_cap: float
    symbol: Optional[str] = None


@dataclass(frozen=True)
class PortfolioEstimate:
    """Output of the covariance model for one date.

    Attributes:
        window_days: Number of aligned return observations used.
        daily_volatility: ``sqrt(w' S w)``.
        annualized_volatility: Daily volatility scaled to a year.
        total_market_cap: Sum of the constituents' market caps.
        constituents: Per-asset weights and individual volatilities.
        excluded_symbols: Assets dropped for having less history than
            the effective window.
    """

    window_days: int
    daily_volatility: float
    annualized_volatility: float
    total_market_cap: float
    constituents: Tuple[PortfolioConstituentVolatility, ...]
    excluded_symbols: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PortfolioVolatilityRecord:
    """Row of ``portfolio_volatility``."""

    index_config_id: int
    day: date
    window_days: int
    daily_volatility: float
    annualized_volatility: float
    num_constituents: int
    total_market_cap: float
    calculation_duration_ms: int
    record_id: Optional[int] = None
    constituents: List[PortfolioConstituentVolatility] = field(default_factory=list)


__all__ = [
    "ConstituentReturns",
    "PortfolioConstituentVolatility",
    "PortfolioEstimate",
    "PortfolioVolatilityRecord",
]
