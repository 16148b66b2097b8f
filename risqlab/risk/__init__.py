"""risqlab – Risk Metrics Engine package.

Rolling per-asset risk statistics computed from daily log returns:
volatility, historical VaR/CVaR, skewness/kurtosis, beta/alpha against
the index benchmark and security market line deviation.
"""

from __future__ import annotations

from risqlab.risk.config import RiskSettings
from risqlab.risk.engine import RiskMetricsEngine
from risqlab.risk.storage import RiskStorage
from risqlab.risk.types import RiskMetric

__all__ = ["RiskSettings", "RiskMetricsEngine", "RiskStorage", "RiskMetric"]
