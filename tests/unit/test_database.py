"""
risqlab: Tests for Database Connection Management

Test suite for ``risqlab.core.database``. Covers:
- Connection string construction
- Connection release and rollback
- Row shape and numeric conversion helpers
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from risqlab.core.config import DatabaseConfig, RisqlabConfig
from risqlab.core.database import (
    DatabaseManager,
    MalformedRowError,
    expect_row,
    to_float,
    to_optional_float,
)


class TestDatabaseManagerUnit:
    """Unit-level tests for DatabaseManager internals."""

    def test_create_connection_string(self) -> None:
        """Connection string should embed host, port, db name, user, and password."""

        db_config = DatabaseConfig(
            host="testhost",
            port=5433,
            name="testdb",
            user="testuser",
            password="testpass",
        )

        conn_str = DatabaseManager._create_connection_string(db_config)

        assert "host=testhost" in conn_str
        assert "port=5433" in conn_str
        assert "dbname=testdb" in conn_str
        assert "user=testuser" in conn_str
        assert "password=testpass" in conn_str

    def test_connection_is_rolled_back_and_returned(self) -> None:
        """Uncommitted work must never leak back into the pool."""

        manager = DatabaseManager(RisqlabConfig())
        fake_pool = MagicMock()
        conn = MagicMock()
        fake_pool.getconn.return_value = conn
        manager._pool = fake_pool

        with pytest.raises(RuntimeError):
            with manager.get_connection():
                raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        fake_pool.putconn.assert_called_once_with(conn)

    def test_close_all_resets_pool(self) -> None:
        manager = DatabaseManager(RisqlabConfig())
        fake_pool = MagicMock()
        manager._pool = fake_pool

        manager.close_all()

        fake_pool.closeall.assert_called_once()
        assert manager._pool is None


class TestRowHelpers:
    def test_expect_row_accepts_exact_width(self) -> None:
        assert expect_row((1, "BTC"), 2, "cryptocurrencies") == (1, "BTC")

    @pytest.mark.parametrize("row", [None, (1,), (1, 2, 3)])
    def test_expect_row_rejects_wrong_shape(self, row) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(MalformedRowError):
            expect_row(row, 2, "cryptocurrencies")

    def test_to_float_accepts_decimal_and_int(self) -> None:
        assert to_float(Decimal("1.5"), "x") == 1.5
        assert to_float(3, "x") == 3.0

    @pytest.mark.parametrize("value", [None, "1.0", True])
    def test_to_float_rejects_non_numeric(self, value) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(MalformedRowError):
            to_float(value, "x")

    def test_to_optional_float_maps_null(self) -> None:
        assert to_optional_float(None, "x") is None
        assert to_optional_float(2, "x") == 2.0
