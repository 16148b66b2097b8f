"""risqlab – Risk Metrics Engine configuration."""

from __future__ import annotations

from pydantic import BaseModel


class RiskSettings(BaseModel):
    """Parameters for the per-asset rolling risk metrics.

    Attributes:
        minimum_data_points: Log returns needed before the first window
            of any metric is produced.
        var_max_window_days: Cap on the VaR/CVaR window.
        default_window_days: Cap on the volatility, distribution, beta
            and SML windows.
        annualization_periods: Periods per year used to annualise daily
            volatility (crypto trades every day).
        risk_free_rate: Daily risk-free log return used on the security
            market line.
        benchmark_index_name: Index whose daily levels form the market
            benchmark for beta and SML.
    """

    minimum_data_points: int = 7
    var_max_window_days: int = 365
    default_window_days: int = 90
    annualization_periods: int = 365
    risk_free_rate: float = 0.0
    benchmark_index_name: str = "CoinRisqLab 80"
