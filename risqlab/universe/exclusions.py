"""risqlab – categorical exclusion policy.

Stablecoins, wrapped tokens and staking derivatives duplicate the market
cap of some other asset and are kept out of the index and of the
portfolio volatility universe. Exclusion is a function of an asset's
category tags only, never of its price action.

Matching is a case-insensitive substring test of each keyword against
each tag. Substring matching can over-reach (for example "Liquid Staking
Governance Tokens" matches "staking"), so a tag that matches a keyword
but is not in :attr:`ExclusionPolicy.known_categories` is reported as
ambiguous for review. Ambiguous tags still exclude the asset.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel, Field


class ExclusionReason(str, Enum):
    """Why an asset is excluded; values are the labels shown in reports."""

    STABLECOIN = "Stablecoin"
    WRAPPED = "Wrapped Token"
    STAKED = "Staked"


DEFAULT_KEYWORDS: Dict[ExclusionReason, List[str]] = {
    ExclusionReason.STABLECOIN: ["stablecoin"],
    ExclusionReason.WRAPPED: ["wrapped"],
    ExclusionReason.STAKED: ["staking", "staked"],
}

DEFAULT_KNOWN_CATEGORIES: List[str] = [
    "Stablecoins",
    "USD Stablecoin",
    "EUR Stablecoin",
    "Fiat-backed Stablecoin",
    "Crypto-backed Stablecoin",
    "Algorithmic Stablecoin",
    "Yield-Bearing Stablecoins",
    "Bridged Stablecoins",
    "Wrapped-Tokens",
    "Wrapped Tokens",
    "Liquid Staking",
    "Liquid Staking Tokens",
    "Liquid Staked ETH",
    "Liquid Staked SOL",
    "Liquid Restaking Tokens",
    "Staking Pool",
]


@dataclass(frozen=True)
class ExclusionVerdict:
    """Result of classifying one asset's category tags.

    Attributes:
        reasons: Matched exclusion reasons, in declaration order.
        ambiguous_categories: Tags that matched a keyword without being a
            known exclusion category.
    """

    reasons: Tuple[ExclusionReason, ...]
    ambiguous_categories: Tuple[str, ...]

    @property
    def excluded(self) -> bool:
        return bool(self.reasons)

    @property
    def label(self) -> str:
        return ", ".join(reason.value for reason in self.reasons)


class ExclusionPolicy(BaseModel):
    """Configurable keyword groups used to exclude assets by category."""

    keywords: Dict[ExclusionReason, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_KEYWORDS.items()}
    )
    known_categories: List[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_CATEGORIES))

    def classify(self, categories: Sequence[str]) -> ExclusionVerdict:
        known = {c.lower() for c in self.known_categories}
        reasons: List[ExclusionReason] = []
        ambiguous: List[str] = []

        for reason in ExclusionReason:
            needles = [k.lower() for k in self.keywords.get(reason, [])]
            for category in categories:
                lowered = category.lower()
                if any(needle in lowered for needle in needles):
                    if reason not in reasons:
                        reasons.append(reason)
                    if lowered not in known and category not in ambiguous:
                        ambiguous.append(category)

        return ExclusionVerdict(reasons=tuple(reasons), ambiguous_categories=tuple(ambiguous))

    def is_excluded(self, categories: Sequence[str]) -> bool:
        return self.classify(categories).excluded


__all__ = [
    "ExclusionReason",
    "ExclusionVerdict",
    "ExclusionPolicy",
    "DEFAULT_KEYWORDS",
    "DEFAULT_KNOWN_CATEGORIES",
]
