"""risqlab – Index Engine core types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class IndexState(str, Enum):
    """Lifecycle of an index configuration.

    - UNINITIALIZED: no active configuration, or its divisor still holds
      the sentinel value.
    - ACTIVE: the divisor is anchored and levels can be computed.
    """

    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"


@dataclass(frozen=True)
class IndexConfigRecord:
    """Row of ``index_config``."""

    config_id: int
    index_name: str
    base_level: float
    divisor: float
    base_date: Optional[datetime]
    max_constituents: int
    is_active: bool

    def state(self, divisor_sentinel: float) -> IndexState:
        if self.is_active and self.divisor != divisor_sentinel:
            return IndexState.ACTIVE
        return IndexState.UNINITIALIZED


@dataclass(frozen=True)
class IndexHistoryRecord:
    """Row of ``index_history``: the index level at one timestamp."""

    index_config_id: int
    timestamp: datetime
    total_market_cap: float
    index_level: float
    divisor: float
    number_of_constituents: int
    calculation_duration_ms: int
    history_id: Optional[int] = None


@dataclass(frozen=True)
class IndexConstituentRecord:
    """Row of ``index_constituents``; ``weight_in_index`` is a percentage."""

    crypto_id: int
    rank_position: int
    price_usd: float
    circulating_supply: float
    weight_in_index: float
    market_data_id: Optional[int] = None
    symbol: Optional[str] = None


__all__ = [
    "IndexState",
    "IndexConfigRecord",
    "IndexHistoryRecord",
    "IndexConstituentRecord",
]
