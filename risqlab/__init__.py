"""risqlab – top-level package exports.

This module re-exports the batch engines for convenience.
"""

# Index
from risqlab.index.engine import IndexEngine, IndexInitializationError
from risqlab.index.storage import IndexStorage

# Risk metrics
from risqlab.risk.engine import RiskMetricsEngine
from risqlab.risk.storage import RiskStorage

# Portfolio volatility
from risqlab.portfolio.engine import PortfolioVolatilityEngine
from risqlab.portfolio.storage import PortfolioConfigError, PortfolioStorage
