"""risqlab – Risk Metrics Engine storage helpers.

All five per-asset risk tables share the key ``(crypto_id, date,
window_days)`` and differ only in their value columns, so reads and
writes are driven by a per-metric column map instead of one hand-written
statement per table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Type

from risqlab.core.database import DatabaseManager, expect_row, to_float
from risqlab.core.logging import get_logger
from risqlab.core.time import start_of_day
from risqlab.data_ingestion.storage import row_to_asset
from risqlab.data_ingestion.types import Asset
from risqlab.risk.types import (
    BetaRecord,
    DailyReturn,
    DistributionRecord,
    RiskMetric,
    SmlRecord,
    VarRecord,
    VolatilityRanking,
    VolatilityRecord,
)


logger = get_logger(__name__)


_VALUE_COLUMNS: Dict[RiskMetric, Tuple[str, ...]] = {
    RiskMetric.VOLATILITY: ("daily_volatility", "annualized_volatility", "mean_return"),
    RiskMetric.VAR: (
        "var_95",
        "var_99",
        "cvar_95",
        "cvar_99",
        "mean_return",
        "std_dev",
        "min_return",
        "max_return",
    ),
    RiskMetric.DISTRIBUTION: ("skewness", "kurtosis", "mean_return", "std_dev"),
    RiskMetric.BETA: ("beta", "alpha", "r_squared", "correlation"),
    RiskMetric.SML: (
        "beta",
        "expected_return",
        "actual_return",
        "alpha",
        "is_overvalued",
        "market_return",
    ),
}

_RECORD_TYPES: Dict[RiskMetric, Type[Any]] = {
    RiskMetric.VOLATILITY: VolatilityRecord,
    RiskMetric.VAR: VarRecord,
    RiskMetric.DISTRIBUTION: DistributionRecord,
    RiskMetric.BETA: BetaRecord,
    RiskMetric.SML: SmlRecord,
}


def _row_to_record(metric: RiskMetric, row: Sequence[Any]) -> Any:
    columns = _VALUE_COLUMNS[metric]
    crypto_id, day, window, *values = expect_row(row, 3 + len(columns), metric.value)
    fields: Dict[str, Any] = {}
    for column, value in zip(columns, values):
        if column == "is_overvalued":
            fields[column] = bool(value)
        else:
            fields[column] = to_float(value, f"{metric.value}.{column}")
    return _RECORD_TYPES[metric](
        crypto_id=int(crypto_id),
        day=day,
        window_days=int(window),
        **fields,
    )


@dataclass
class RiskStorage:
    """Persistence helper for the per-asset risk tables."""

    db_manager: DatabaseManager

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def list_assets_with_returns(self, minimum_points: int, before: date) -> List[Asset]:
        sql = """
            SELECT c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            FROM cryptocurrencies c
            JOIN crypto_log_returns lr ON lr.crypto_id = c.id
            WHERE lr.date < %s
            GROUP BY c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            HAVING COUNT(*) >= %s
            ORDER BY c.id
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (before, minimum_points))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_asset(row) for row in rows]

    def get_log_returns(self, crypto_id: int, before: date) -> List[DailyReturn]:
        sql = """
            SELECT date, log_return
            FROM crypto_log_returns
            WHERE crypto_id = %s AND date < %s
            ORDER BY date ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, before))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        out: List[DailyReturn] = []
        for row in rows:
            day, value = expect_row(row, 2, "crypto_log_returns")
            out.append(DailyReturn(day=day, value=to_float(value, "crypto_log_returns.log_return")))
        return out

    def get_benchmark_levels(self, index_name: str, before: date) -> List[Tuple[date, float]]:
        """Return the last index level of each UTC day before ``before``."""

        sql = """
            SELECT DISTINCT ON (h.timestamp::date) h.timestamp::date, h.index_level
            FROM index_history h
            JOIN index_config ic ON ic.id = h.index_config_id
            WHERE ic.index_name = %s
              AND ic.is_active = TRUE
              AND h.timestamp < %s
            ORDER BY h.timestamp::date ASC, h.timestamp DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name, start_of_day(before)))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [
            (row[0], to_float(row[1], "index_history.index_level"))
            for row in (expect_row(r, 2, "index_history") for r in rows)
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def get_existing_keys(self, metric: RiskMetric, crypto_id: int) -> Set[Tuple[date, int]]:
        sql = f"SELECT date, window_days FROM {metric.value} WHERE crypto_id = %s"
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id,))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {(row[0], int(row[1])) for row in rows}

    def insert_records(self, metric: RiskMetric, records: Iterable[Any]) -> int:
        """Insert records, ignoring keys that already exist.

        Returns the number of rows actually inserted.
        """

        columns = _VALUE_COLUMNS[metric]
        column_list = ", ".join(("crypto_id", "date", "window_days", *columns, "num_observations"))
        placeholders = ", ".join(["%s"] * (len(columns) + 4))
        sql = f"""
            INSERT INTO {metric.value} ({column_list})
            VALUES ({placeholders})
            ON CONFLICT (crypto_id, date, window_days) DO NOTHING
        """

        inserted = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for record in records:
                    values = [getattr(record, column) for column in columns]
                    cursor.execute(
                        sql,
                        (record.crypto_id, record.day, record.window_days, *values, record.window_days),
                    )
                    inserted += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return inserted

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def _select_columns(self, metric: RiskMetric) -> str:
        return ", ".join(("crypto_id", "date", "window_days", *_VALUE_COLUMNS[metric]))

    def get_latest(
        self,
        metric: RiskMetric,
        crypto_id: int,
        window_days: Optional[int] = None,
    ) -> Optional[Any]:
        """Return the most recent record of ``metric`` for an asset, if any."""

        sql = f"""
            SELECT {self._select_columns(metric)}
            FROM {metric.value}
            WHERE crypto_id = %s
              AND (%s IS NULL OR window_days = %s)
            ORDER BY date DESC, window_days DESC
            LIMIT 1
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, window_days, window_days))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return _row_to_record(metric, row)

    def get_history(
        self,
        metric: RiskMetric,
        crypto_id: int,
        start_date: date,
        end_date: date,
        window_days: Optional[int] = None,
    ) -> List[Any]:
        """Return records of ``metric`` for an asset between two dates, oldest first."""

        sql = f"""
            SELECT {self._select_columns(metric)}
            FROM {metric.value}
            WHERE crypto_id = %s
              AND date BETWEEN %s AND %s
              AND (%s IS NULL OR window_days = %s)
            ORDER BY date ASC, window_days ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, start_date, end_date, window_days, window_days))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [_row_to_record(metric, row) for row in rows]

    def get_volatility_ranking(
        self,
        *,
        limit: int = 20,
        most_volatile: bool = True,
        window_days: int = 90,
    ) -> List[VolatilityRanking]:
        """Rank assets by their latest annualised volatility."""

        direction = "DESC" if most_volatile else "ASC"
        sql = f"""
            SELECT latest.crypto_id, c.symbol, c.name, latest.date,
                   latest.window_days, latest.annualized_volatility
            FROM (
                SELECT DISTINCT ON (crypto_id)
                    crypto_id, date, window_days, annualized_volatility
                FROM crypto_volatility
                WHERE window_days = %s
                ORDER BY crypto_id, date DESC
            ) latest
            JOIN cryptocurrencies c ON c.id = latest.crypto_id
            ORDER BY latest.annualized_volatility {direction}
            LIMIT %s
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (window_days, limit))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        ranking: List[VolatilityRanking] = []
        for row in rows:
            crypto_id, symbol, name, day, window, annualized = expect_row(row, 6, "crypto_volatility")
            ranking.append(
                VolatilityRanking(
                    crypto_id=int(crypto_id),
                    symbol=str(symbol),
                    name=str(name),
                    day=day,
                    window_days=int(window),
                    annualized_volatility=to_float(annualized, "crypto_volatility.annualized_volatility"),
                )
            )
        return ranking

    def get_aligned_returns(
        self,
        crypto_a: int,
        crypto_b: int,
        start_date: date,
    ) -> List[Tuple[date, float, float]]:
        """Return log returns of two assets on their common dates since ``start_date``."""

        sql = """
            SELECT a.date, a.log_return, b.log_return
            FROM crypto_log_returns a
            JOIN crypto_log_returns b ON b.date = a.date AND b.crypto_id = %s
            WHERE a.crypto_id = %s
              AND a.date >= %s
            ORDER BY a.date ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_b, crypto_a, start_date))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [
            (row[0], to_float(row[1], "log_return"), to_float(row[2], "log_return"))
            for row in (expect_row(r, 3, "crypto_log_returns") for r in rows)
        ]


__all__ = ["RiskStorage"]
