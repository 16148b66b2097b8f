"""risqlab – rolling window sizing policy.

Every rolling statistic in the pipeline (moving averages, VaR, volatility,
beta, portfolio volatility) uses the same rule: a window grows with the
available history from a configured minimum up to a configured maximum
and then stays fixed at that maximum.
"""

from __future__ import annotations

from typing import Optional


def window_days(available: int, minimum: int, maximum: int) -> Optional[int]:
    """Return the window length to use given ``available`` observations.

    Returns ``None`` when fewer than ``minimum`` observations exist,
    otherwise ``min(available, maximum)``.

    Raises:
        ValueError: If ``minimum`` is not positive or exceeds ``maximum``.
    """

    if minimum < 1 or minimum > maximum:
        raise ValueError(f"Invalid window bounds: minimum={minimum}, maximum={maximum}")
    if available < minimum:
        return None
    return min(available, maximum)


def trailing_slice(index: int, length: int) -> slice:
    """Return the slice of ``length`` items ending at ``index`` inclusive."""

    return slice(index - length + 1, index + 1)


__all__ = ["window_days", "trailing_slice"]
