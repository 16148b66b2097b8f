"""risqlab – Portfolio Volatility Engine configuration."""

from __future__ import annotations

from pydantic import BaseModel


class PortfolioVolatilitySettings(BaseModel):
    """Parameters of the index portfolio volatility model.

    Attributes:
        index_name: Index whose active configuration the results are
            attached to.
        default_window_days: Target length of the return window.
        minimum_window_days: Shortest usable window; also the history an
            asset needs to be considered at all.
        max_constituents: Cap on the number of assets in the covariance
            matrix.
        candidate_pool_size: Number of top market-cap assets considered
            before the history filter.
        min_volume_24h: Liquidity floor in USD (stricter than the index).
        min_constituents: Fewest assets for which a result is produced.
        annualization_periods: Periods per year for annualisation.
        weight_tolerance: Allowed deviation of the weight sum from 1.
    """

    index_name: str = "CoinRisqLab 80"
    default_window_days: int = 90
    minimum_window_days: int = 7
    max_constituents: int = 40
    candidate_pool_size: int = 80
    min_volume_24h: float = 2_000_000.0
    min_constituents: int = 10
    annualization_periods: int = 365
    weight_tolerance: float = 1e-6
