"""Unit tests for daily gap detection and provider series aggregation."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from risqlab.data_ingestion.gaps import (
    aggregate_daily,
    aggregate_hourly,
    detect_gaps,
    required_lookback_days,
)
from risqlab.data_ingestion.types import HistoricalSeries

TODAY = date(2025, 3, 10)


def _lookback(oldest):  # type: ignore[no-untyped-def]
    return required_lookback_days(
        TODAY,
        oldest,
        buffer_days=2,
        minimum_call_span_days=3,
        recovery_window_days=730,
    )


class TestDetectGaps:
    def test_empty_tables_miss_whole_window(self) -> None:
        report = detect_gaps({"ohlc": set(), "market_data": set()}, TODAY, 730)

        assert len(report.missing["ohlc"]) == 730
        assert len(report.missing["market_data"]) == 730
        assert report.oldest_missing == TODAY - timedelta(days=730)
        assert _lookback(report.oldest_missing) == 730

    def test_only_yesterday_missing_uses_minimum_span(self) -> None:
        full = {TODAY - timedelta(days=i) for i in range(2, 731)}
        report = detect_gaps({"ohlc": full, "market_data": full}, TODAY, 730)

        assert report.oldest_missing == TODAY - timedelta(days=1)
        assert report.total_missing == 2
        assert _lookback(report.oldest_missing) == 3

    def test_complete_asset_has_no_gaps(self) -> None:
        full = {TODAY - timedelta(days=i) for i in range(1, 731)}
        report = detect_gaps({"ohlc": full, "market_data": full}, TODAY, 730)

        assert not report.has_gaps
        assert report.oldest_missing is None

    def test_per_table_gaps_are_independent(self) -> None:
        full = {TODAY - timedelta(days=i) for i in range(1, 31)}
        report = detect_gaps(
            {"ohlc": full - {date(2025, 3, 1)}, "market_data": full},
            TODAY,
            30,
        )

        assert report.missing["ohlc"] == {date(2025, 3, 1)}
        assert report.missing["market_data"] == set()

    def test_dates_outside_window_are_ignored(self) -> None:
        present = {TODAY - timedelta(days=i) for i in range(1, 11)} | {date(2020, 1, 1)}
        report = detect_gaps({"ohlc": present}, TODAY, 10)

        assert not report.has_gaps


def test_lookback_adds_buffer_to_oldest_gap() -> None:
    assert _lookback(TODAY - timedelta(days=10)) == 12


class TestAggregation:
    def _series(self) -> HistoricalSeries:
        points = [
            datetime(2025, 3, 8, 0, 5),
            datetime(2025, 3, 8, 23, 55),
            datetime(2025, 3, 9, 12, 0),
            datetime(2025, 3, 10, 1, 0),
        ]
        prices = [(ts, 100.0 + i) for i, ts in enumerate(points)]
        caps = [(ts, 1_000.0 * (100.0 + i)) for i, ts in enumerate(points)]
        volumes = [(ts, 50.0 + i) for i, ts in enumerate(points)]
        return HistoricalSeries(prices=prices, market_caps=caps, volumes=volumes)

    def test_daily_last_point_wins_and_today_is_excluded(self) -> None:
        daily = aggregate_daily(self._series(), TODAY)

        assert [obs.day for obs in daily] == [date(2025, 3, 8), date(2025, 3, 9)]
        first = daily[0]
        assert first.timestamp == datetime(2025, 3, 8)
        assert first.price == 101.0
        assert first.market_cap == 101_000.0
        assert first.volume == 51.0

    def test_hourly_keeps_one_point_per_hour(self) -> None:
        hourly = aggregate_hourly(self._series(), TODAY)

        assert [obs.timestamp for obs in hourly] == [
            datetime(2025, 3, 8, 0),
            datetime(2025, 3, 8, 23),
            datetime(2025, 3, 9, 12),
        ]

    def test_missing_market_cap_defaults_to_zero(self) -> None:
        ts = datetime(2025, 3, 9, 12)
        series = HistoricalSeries(prices=[(ts, 10.0)], market_caps=[], volumes=[])

        (obs,) = aggregate_daily(series, TODAY)

        assert obs.market_cap == 0.0
        assert obs.volume == 0.0
