"""Unit tests for derived log returns and moving averages."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import List, Set, Tuple

import pytest

from risqlab.data_ingestion.config import ReturnsSettings
from risqlab.data_ingestion.derived.returns_moving_averages import (
    compute_log_returns,
    compute_moving_averages,
    compute_returns_and_moving_averages,
)
from risqlab.data_ingestion.derived.types import DailyClosePrice
from risqlab.data_ingestion.types import Asset


def _closes(prices: List[float], start: date = date(2025, 1, 1)) -> List[DailyClosePrice]:
    return [DailyClosePrice(day=start + timedelta(days=i), close=p) for i, p in enumerate(prices)]


def test_log_returns_chain_consecutive_closes() -> None:
    records = compute_log_returns(1, _closes([100.0, 110.0, 121.0]))

    assert [r.day for r in records] == [date(2025, 1, 2), date(2025, 1, 3)]
    assert records[0].log_return == pytest.approx(math.log(1.1))
    assert records[1].log_return == pytest.approx(math.log(1.1))
    assert records[1].price_previous == 110.0


def test_moving_average_window_grows_to_target() -> None:
    records = compute_moving_averages(
        1, _closes([100.0, 110.0, 121.0]), minimum_window_days=2, default_window_days=90
    )

    assert [(r.day, r.window_days) for r in records] == [
        (date(2025, 1, 2), 2),
        (date(2025, 1, 3), 3),
    ]
    assert records[0].moving_average == pytest.approx(105.0)
    assert records[1].moving_average == pytest.approx(331.0 / 3)


def test_moving_average_caps_at_default_window() -> None:
    records = compute_moving_averages(
        1, _closes([1.0, 2.0, 3.0, 4.0]), minimum_window_days=2, default_window_days=2
    )

    assert records[-1].window_days == 2
    assert records[-1].moving_average == pytest.approx(3.5)


class _StubDerivedStorage:
    def __init__(self, closes: List[DailyClosePrice]) -> None:
        self.closes = closes
        self.return_dates: Set[date] = set()
        self.average_keys: Set[Tuple[date, int]] = set()

    def list_assets_with_closes(self, minimum: int, today: date) -> List[Asset]:
        return [Asset(crypto_id=1, symbol="BTC", name="Bitcoin")]

    def get_daily_closes(self, crypto_id: int, today: date) -> List[DailyClosePrice]:
        return [c for c in self.closes if c.day < today]

    def get_log_return_dates(self, crypto_id: int) -> Set[date]:
        return set(self.return_dates)

    def get_moving_average_keys(self, crypto_id: int) -> Set[Tuple[date, int]]:
        return set(self.average_keys)

    def insert_log_returns(self, records) -> int:  # type: ignore[no-untyped-def]
        self.return_dates.update(r.day for r in records)
        return len(records)

    def insert_moving_averages(self, records) -> int:  # type: ignore[no-untyped-def]
        self.average_keys.update((r.day, r.window_days) for r in records)
        return len(records)


def test_second_run_writes_nothing() -> None:
    storage = _StubDerivedStorage(_closes([float(p) for p in range(100, 110)]))
    settings = ReturnsSettings(minimum_data_points=7, minimum_window_days=7, default_window_days=90)
    today = date(2025, 2, 1)

    first = compute_returns_and_moving_averages(storage=storage, settings=settings, today=today)
    second = compute_returns_and_moving_averages(storage=storage, settings=settings, today=today)

    # 9 returns plus moving averages on days 7..10.
    assert first.rows_written == 9 + 4
    assert second.rows_written == 0
    assert second.skipped == 1


def test_asset_with_too_few_closes_is_skipped() -> None:
    storage = _StubDerivedStorage(_closes([1.0, 2.0, 3.0]))

    summary = compute_returns_and_moving_averages(
        storage=storage, settings=ReturnsSettings(), today=date(2025, 2, 1)
    )

    assert summary.skipped == 1
    assert summary.rows_written == 0


def test_non_positive_close_yields_no_return_on_either_side() -> None:
    records = compute_log_returns(1, _closes([100.0, 0.0, 121.0, 133.1]))

    assert [r.day for r in records] == [date(2025, 1, 4)]
    assert records[0].log_return == pytest.approx(math.log(1.1))
    assert records[0].price_previous == 121.0


def test_zero_close_in_store_breaks_the_return_chain() -> None:
    prices = [100.0 + i for i in range(10)]
    prices[4] = 0.0
    storage = _StubDerivedStorage(_closes(prices))

    compute_returns_and_moving_averages(
        storage=storage, settings=ReturnsSettings(), today=date(2025, 2, 1)
    )

    assert date(2025, 1, 5) not in storage.return_dates
    assert date(2025, 1, 6) not in storage.return_dates
    assert len(storage.return_dates) == 7
