"""risqlab – Portfolio Volatility Engine.

Daily volatility of the market-cap weighted index portfolio from the
sample covariance matrix of its constituents' log returns.
"""

from .config import PortfolioVolatilitySettings
from .engine import PortfolioVolatilityEngine
from .model import estimate_portfolio_volatility
from .storage import PortfolioConfigError, PortfolioStorage
from .types import (
    ConstituentReturns,
    PortfolioConstituentVolatility,
    PortfolioEstimate,
    PortfolioVolatilityRecord,
)

__all__ = [
    "PortfolioVolatilitySettings",
    "PortfolioVolatilityEngine",
    "estimate_portfolio_volatility",
    "PortfolioConfigError",
    "PortfolioStorage",
    "ConstituentReturns",
    "PortfolioConstituentVolatility",
    "PortfolioEstimate",
    "PortfolioVolatilityRecord",
]
