"""Unit tests for UTC calendar helpers and the rolling window policy."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from risqlab.core.time import (
    expected_daily_dates,
    floor_to_hour,
    from_epoch_millis,
    start_of_day,
)
from risqlab.core.windows import trailing_slice, window_days


def test_expected_daily_dates_excludes_today_and_is_newest_first() -> None:
    today = date(2025, 3, 10)

    dates = expected_daily_dates(today, 3)

    assert dates == [date(2025, 3, 9), date(2025, 3, 8), date(2025, 3, 7)]


def test_expected_daily_dates_has_window_length() -> None:
    assert len(expected_daily_dates(date(2025, 3, 10), 730)) == 730


def test_floor_helpers() -> None:
    ts = datetime(2025, 3, 10, 14, 37, 12, 500)

    assert floor_to_hour(ts) == datetime(2025, 3, 10, 14, 0)
    assert start_of_day(ts.date()) == datetime(2025, 3, 10, 0, 0)


def test_from_epoch_millis_is_naive_utc() -> None:
    ts = from_epoch_millis(1_700_000_000_000)

    assert ts.tzinfo is None
    assert ts == datetime(2023, 11, 14, 22, 13, 20)


class TestWindowDays:
    def test_below_minimum_is_none(self) -> None:
        assert window_days(6, 7, 90) is None

    def test_grows_with_history(self) -> None:
        assert window_days(7, 7, 90) == 7
        assert window_days(45, 7, 90) == 45

    def test_capped_at_maximum(self) -> None:
        assert window_days(400, 7, 90) == 90

    @pytest.mark.parametrize("minimum,maximum", [(0, 90), (100, 90)])
    def test_invalid_bounds_raise(self, minimum: int, maximum: int) -> None:
        with pytest.raises(ValueError):
            window_days(10, minimum, maximum)


def test_trailing_slice_ends_at_index() -> None:
    values = list(range(10))

    assert values[trailing_slice(6, 3)] == [4, 5, 6]
