"""risqlab – market-cap ranked constituent selection.

Shared by the index engine and the portfolio volatility engine. Filters
are applied in a fixed order: categorical exclusions, then the liquidity
floor, then a market-cap descending sort, then the size cap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from risqlab.universe.exclusions import ExclusionPolicy


@dataclass(frozen=True)
class CandidateAsset:
    """An asset eligible for ranking at one point in time.

    ``price``, ``circulating_supply`` and ``market_data_id`` are only
    known when the candidate comes from ``market_data``.
    """

    crypto_id: int
    symbol: str
    market_cap: float
    volume_24h: float
    categories: Tuple[str, ...] = ()
    price: Optional[float] = None
    circulating_supply: Optional[float] = None
    market_data_id: Optional[int] = None


def select_by_market_cap(
    candidates: Iterable[CandidateAsset],
    *,
    policy: ExclusionPolicy,
    min_volume_24h: float,
    limit: int,
) -> List[CandidateAsset]:
    """Return at most ``limit`` candidates, largest market cap first."""

    kept = [
        c
        for c in candidates
        if not policy.is_excluded(c.categories) and c.volume_24h >= min_volume_24h
    ]
    # Ties broken by id so the selection is deterministic.
    kept.sort(key=lambda c: (-c.market_cap, c.crypto_id))
    return kept[:limit]


__all__ = ["CandidateAsset", "select_by_market_cap"]
