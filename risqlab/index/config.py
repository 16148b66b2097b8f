"""risqlab – Index Engine configuration."""

from __future__ import annotations

from pydantic import BaseModel


class IndexSettings(BaseModel):
    """Parameters of a market-cap weighted index.

    Attributes:
        index_name: Name of the index; one active configuration exists
            per name.
        base_level: Index level at the base date.
        max_constituents: Exact number of constituents required for a
            level to be computed.
        min_volume_24h: Liquidity floor in USD of 24h volume.
        divisor_sentinel: Divisor value marking a configuration whose
            divisor has not been anchored yet.
    """

    index_name: str = "CoinRisqLab 80"
    base_level: float = 100.0
    max_constituents: int = 80
    min_volume_24h: float = 200_000.0
    divisor_sentinel: float = 1.0
