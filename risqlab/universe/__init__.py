"""risqlab – asset universe package.

Categorical exclusion policy and market-cap ranked selection shared by
the index and portfolio volatility engines.
"""

from __future__ import annotations

from risqlab.universe.exclusions import ExclusionPolicy, ExclusionReason, ExclusionVerdict
from risqlab.universe.selection import CandidateAsset, select_by_market_cap

__all__ = [
    "ExclusionPolicy",
    "ExclusionReason",
    "ExclusionVerdict",
    "CandidateAsset",
    "select_by_market_cap",
]
