"""risqlab – derived daily series record types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DailyClosePrice:
    """A single daily close used as input for derived series."""

    day: date
    close: float


@dataclass(frozen=True)
class LogReturnRecord:
    """Row of ``crypto_log_returns``: ``ln(price_current / price_previous)``."""

    crypto_id: int
    day: date
    log_return: float
    price_current: float
    price_previous: float


@dataclass(frozen=True)
class MovingAverageRecord:
    """Row of ``crypto_moving_averages``.

    ``window_days`` is the number of closes actually averaged.
    """

    crypto_id: int
    day: date
    window_days: int
    moving_average: float

    @property
    def num_observations(self) -> int:
        return self.window_days


__all__ = ["DailyClosePrice", "LogReturnRecord", "MovingAverageRecord"]
