"""Truncate groups of derived or raw tables.

Each group lists its tables children first. Truncation cascades to
referencing tables (clearing ``index_config`` also clears portfolio
volatility). Nothing is touched unless ``--yes`` is passed.

Groups
------

* ``index``: index constituents, history and configuration (the divisor
  is re-anchored on the next index run).
* ``market``: index constituents and history plus ``market_data``.
* ``risk_metrics``: SML, beta, VaR and distribution statistics.
* ``volatility``: portfolio volatility, per-asset volatility and log
  returns.

Examples
--------

    python -m risqlab.scripts.clean_data risk_metrics --yes
    python -m risqlab.scripts.clean_data index volatility --yes
"""

from __future__ import annotations

import argparse
from typing import Dict, List, Optional, Sequence, Tuple

from risqlab.core.config import get_config
from risqlab.core.database import DatabaseManager
from risqlab.core.logging import get_logger


logger = get_logger(__name__)

TABLE_GROUPS: Dict[str, Tuple[str, ...]] = {
    "index": ("index_constituents", "index_history", "index_config"),
    "market": ("index_constituents", "index_history", "market_data"),
    "risk_metrics": ("crypto_sml", "crypto_beta", "crypto_var", "crypto_distribution_stats"),
    "volatility": (
        "portfolio_volatility_constituents",
        "portfolio_volatility",
        "crypto_volatility",
        "crypto_log_returns",
    ),
}


def tables_for_groups(groups: Sequence[str]) -> List[str]:
    """Tables of ``groups`` in truncation order, without duplicates."""

    tables: List[str] = []
    for group in groups:
        for table in TABLE_GROUPS[group]:
            if table not in tables:
                tables.append(table)
    return tables


def truncate_tables(db_manager: DatabaseManager, tables: Sequence[str]) -> None:
    """Truncate ``tables`` in one transaction."""

    with db_manager.get_connection() as conn:
        cursor = conn.cursor()
        try:
            for table in tables:
                # Table names come from TABLE_GROUPS only.
                cursor.execute(f"TRUNCATE TABLE {table} RESTART IDENTITY CASCADE")
                logger.info("Truncated %s", table)
            conn.commit()
        finally:
            cursor.close()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Truncate groups of risqlab tables")
    parser.add_argument("groups", nargs="+", choices=sorted(TABLE_GROUPS), help="Table groups to clean")
    parser.add_argument("--yes", action="store_true", help="Confirm the truncation")
    args = parser.parse_args(argv)

    tables = tables_for_groups(args.groups)
    if not args.yes:
        print("Would truncate: " + ", ".join(tables))
        print("Re-run with --yes to confirm.")
        return

    db_manager = DatabaseManager(get_config())
    try:
        truncate_tables(db_manager, tables)
    finally:
        db_manager.close_all()
    logger.info("Cleaned %d table(s) for group(s) %s", len(tables), ", ".join(args.groups))


if __name__ == "__main__":  # pragma: no cover - manual CLI entry
    main()
