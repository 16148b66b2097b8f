"""risqlab – market data ingestion record types.

In-memory representations of provider payloads and of the raw rows
persisted in ``cryptocurrencies``, ``market_data``, ``ohlc`` and
``cryptocurrency_metadata``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Asset:
    """A tracked cryptocurrency.

    Attributes:
        crypto_id: Internal identifier (``cryptocurrencies.id``).
        symbol: Upper-cased ticker, the natural dedup key.
        name: Display name.
        coingecko_id: External provider identifier, if known.
        image_url: Optional logo URL.
    """

    crypto_id: int
    symbol: str
    name: str
    coingecko_id: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class MarketSnapshotEntry:
    """One asset from a paginated top-N market snapshot."""

    coingecko_id: str
    symbol: str
    name: str
    price_usd: float
    circulating_supply: float
    volume_24h_usd: float
    percent_changes: Dict[str, Optional[float]]
    market_cap_rank: Optional[int] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    fully_diluted_valuation: Optional[float] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class HistoricalSeries:
    """Provider time series for one asset.

    Each list holds ``(timestamp, value)`` pairs with naive UTC
    timestamps, in provider order.
    """

    prices: List[Tuple[datetime, float]]
    market_caps: List[Tuple[datetime, float]]
    volumes: List[Tuple[datetime, float]]


@dataclass(frozen=True)
class DailyObservation:
    """Aggregated observation for a single UTC day (or hour)."""

    timestamp: datetime
    price: float
    market_cap: float
    volume: float

    @property
    def day(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class RawPricePoint:
    """A row of ``market_data`` to be written.

    ``price_usd``, ``circulating_supply`` and ``volume_24h_usd`` are
    zero-guarded on upsert: an existing non-zero value survives a later
    zero.
    """

    crypto_id: int
    timestamp: datetime
    price_usd: float
    circulating_supply: float
    volume_24h_usd: float
    percent_changes: Dict[str, Optional[float]] = field(default_factory=dict)
    market_cap_rank: Optional[int] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    fully_diluted_valuation: Optional[float] = None


@dataclass(frozen=True)
class DailyClose:
    """A row of ``ohlc``; open, high, low and close all carry the daily price."""

    crypto_id: int
    timestamp: datetime
    close: float
    volume: float
    market_cap: float


@dataclass(frozen=True)
class AssetMetadata:
    """Descriptive enrichment for an asset."""

    categories: List[str]
    description: Optional[str] = None
    image_url: Optional[str] = None
    website: Optional[str] = None
    whitepaper: Optional[str] = None
    twitter: Optional[str] = None
    reddit: Optional[str] = None
    telegram: Optional[str] = None
    github: Optional[str] = None
    platform: Optional[str] = None
    genesis_date: Optional[date] = None


@dataclass(frozen=True)
class FearGreedPoint:
    """One daily reading of the market Fear & Greed index."""

    timestamp: datetime
    value: int
    classification: Optional[str] = None


PERCENT_CHANGE_PERIODS: Tuple[str, ...] = ("1h", "24h", "7d", "14d", "30d", "200d", "1y")


__all__ = [
    "Asset",
    "MarketSnapshotEntry",
    "HistoricalSeries",
    "DailyObservation",
    "RawPricePoint",
    "DailyClose",
    "AssetMetadata",
    "FearGreedPoint",
    "PERCENT_CHANGE_PERIODS",
]
