"""Unit tests for the table cleanup script."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from risqlab.scripts.clean_data import main, tables_for_groups, truncate_tables


def test_overlapping_groups_are_deduplicated() -> None:
    tables = tables_for_groups(["index", "market"])

    assert tables == ["index_constituents", "index_history", "index_config", "market_data"]


def test_truncate_executes_one_statement_per_table() -> None:
    cursor = MagicMock()
    conn = MagicMock()
    conn.cursor.return_value = cursor
    db_manager = MagicMock()
    db_manager.get_connection.return_value.__enter__.return_value = conn

    truncate_tables(db_manager, ["crypto_var", "crypto_beta"])

    statements = [call.args[0] for call in cursor.execute.call_args_list]
    assert statements == [
        "TRUNCATE TABLE crypto_var RESTART IDENTITY CASCADE",
        "TRUNCATE TABLE crypto_beta RESTART IDENTITY CASCADE",
    ]
    conn.commit.assert_called_once()
    cursor.close.assert_called_once()


def test_without_confirmation_nothing_is_touched(capsys: pytest.CaptureFixture[str]) -> None:
    with patch("risqlab.scripts.clean_data.DatabaseManager") as manager_cls:
        main(["risk_metrics"])

    manager_cls.assert_not_called()
    assert "Would truncate: crypto_sml" in capsys.readouterr().out


def test_unknown_group_is_rejected() -> None:
    with pytest.raises(SystemExit):
        main(["everything"])
