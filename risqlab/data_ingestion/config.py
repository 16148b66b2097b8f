"""risqlab – ingestion stage parameters.

Pydantic models holding the tunable parameters of the ingestion stages.
Defaults reflect the production cadence; tests construct smaller values
explicitly.
"""

from __future__ import annotations

from pydantic import BaseModel


class BackfillSettings(BaseModel):
    """Parameters for the gap detector and historical backfill.

    Attributes:
        recovery_window_days: Number of past daily slots that must be
            present; older gaps are never repaired.
        buffer_days: Extra days added to the look-back of a fetch.
        minimum_call_span_days: Smallest look-back requested from the
            provider.
        api_delay_seconds: Pause between successive provider calls.
        hourly_window_days: Span of the supplementary sub-daily pass.
            Must stay at or below 90 so the provider returns hourly data.
        hourly_entry_threshold: Assets with fewer ``market_data`` rows
            than this in the hourly window are refetched at hourly
            resolution.
    """

    recovery_window_days: int = 730
    buffer_days: int = 2
    minimum_call_span_days: int = 3
    api_delay_seconds: float = 0.25
    hourly_window_days: int = 90
    hourly_entry_threshold: int = 500


class SnapshotSettings(BaseModel):
    """Parameters for the paginated market snapshot."""

    pages: int = 2
    page_size: int = 250
    page_delay_seconds: float = 1.0


class MetadataSettings(BaseModel):
    """Parameters for asset metadata enrichment."""

    api_delay_seconds: float = 0.1


class ReturnsSettings(BaseModel):
    """Parameters for log returns and moving averages.

    Attributes:
        minimum_data_points: Distinct daily closes an asset needs before
            anything is derived for it.
        minimum_window_days: Smallest moving-average window.
        default_window_days: Target (maximum) moving-average window.
    """

    minimum_data_points: int = 7
    minimum_window_days: int = 7
    default_window_days: int = 90


class FearGreedSettings(BaseModel):
    """Parameters for the Fear & Greed backfill."""

    max_backfill_days: int = 730


__all__ = [
    "BackfillSettings",
    "SnapshotSettings",
    "MetadataSettings",
    "ReturnsSettings",
    "FearGreedSettings",
]
