"""risqlab – Portfolio Volatility Engine storage helpers.

Reads daily OHLC cross-sections and log returns, and persists results
into ``portfolio_volatility`` and ``portfolio_volatility_constituents``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from risqlab.core.database import DatabaseManager, MalformedRowError, expect_row, to_float
from risqlab.core.logging import get_logger
from risqlab.core.time import start_of_day
from risqlab.portfolio.types import PortfolioConstituentVolatility, PortfolioVolatilityRecord
from risqlab.universe.selection import CandidateAsset


logger = get_logger(__name__)


class PortfolioConfigError(Exception):
    """Raised when no active index configuration exists."""


def _row_to_ohlc_candidate(row: Sequence[Any]) -> CandidateAsset:
    crypto_id, symbol, categories, volume, market_cap = expect_row(row, 5, "ohlc")
    if categories is not None and not isinstance(categories, list):
        raise MalformedRowError(f"cryptocurrency_metadata.categories: expected list, got {categories!r}")
    return CandidateAsset(
        crypto_id=int(crypto_id),
        symbol=str(symbol),
        market_cap=to_float(market_cap, "ohlc.market_cap"),
        volume_24h=to_float(volume or 0, "ohlc.volume"),
        categories=tuple(str(c) for c in (categories or [])),
    )


def _row_to_record(row: Sequence[Any]) -> PortfolioVolatilityRecord:
    (
        record_id,
        config_id,
        day,
        window,
        daily,
        annualized,
        n_constituents,
        total_market_cap,
        duration_ms,
    ) = expect_row(row, 9, "portfolio_volatility")
    return PortfolioVolatilityRecord(
        record_id=int(record_id),
        index_config_id=int(config_id),
        day=day,
        window_days=int(window),
        daily_volatility=to_float(daily, "portfolio_volatility.daily_volatility"),
        annualized_volatility=to_float(annualized, "portfolio_volatility.annualized_volatility"),
        num_constituents=int(n_constituents),
        total_market_cap=to_float(total_market_cap, "portfolio_volatility.total_market_cap"),
        calculation_duration_ms=int(duration_ms or 0),
    )


_RECORD_COLUMNS = """
    id, index_config_id, date, window_days, daily_volatility, annualized_volatility,
    num_constituents, total_market_cap, calculation_duration_ms
"""


@dataclass
class PortfolioStorage:
    """Persistence helper for portfolio volatility results."""

    db_manager: DatabaseManager

    def get_active_config_id(self, index_name: str) -> int:
        """Return the id of the active configuration of ``index_name``.

        Raises:
            PortfolioConfigError: If the index has no active configuration.
        """

        sql = "SELECT id FROM index_config WHERE index_name = %s AND is_active = TRUE LIMIT 1"
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name,))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            raise PortfolioConfigError(f"No active index configuration named {index_name!r}")
        return int(row[0])

    def get_missing_dates(self, config_id: int, before: date) -> List[date]:
        """Log-return dates before ``before`` with no result yet, newest first."""

        sql = """
            SELECT DISTINCT clr.date
            FROM crypto_log_returns clr
            WHERE clr.date < %s
              AND clr.date NOT IN (
                  SELECT date FROM portfolio_volatility WHERE index_config_id = %s
              )
            ORDER BY clr.date DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (before, config_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row[0] for row in rows]

    def load_candidates(self, day: date, min_volume_24h: float) -> List[CandidateAsset]:
        """Assets with a positive market cap in the daily OHLC row of ``day``."""

        sql = """
            SELECT o.crypto_id, c.symbol, m.categories, o.volume, o.market_cap
            FROM ohlc o
            JOIN cryptocurrencies c ON c.id = o.crypto_id
            LEFT JOIN cryptocurrency_metadata m ON m.crypto_id = c.id
            WHERE o.timestamp = %s
              AND o.market_cap > 0
              AND o.volume >= %s
            ORDER BY o.market_cap DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (start_of_day(day), min_volume_24h))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [_row_to_ohlc_candidate(row) for row in rows]

    def count_log_returns(self, crypto_ids: Sequence[int], as_of: date) -> Dict[int, int]:
        if not crypto_ids:
            return {}
        sql = """
            SELECT crypto_id, COUNT(*)
            FROM crypto_log_returns
            WHERE crypto_id = ANY(%s) AND date <= %s
            GROUP BY crypto_id
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (list(crypto_ids), as_of))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {int(crypto_id): int(count) for crypto_id, count in rows}

    def get_trailing_returns(self, crypto_id: int, as_of: date, limit: int) -> List[Tuple[date, float]]:
        """Up to ``limit`` most recent ``(date, log_return)`` pairs on or before ``as_of``, oldest first."""

        sql = """
            SELECT date, log_return
            FROM crypto_log_returns
            WHERE crypto_id = %s AND date <= %s
            ORDER BY date DESC
            LIMIT %s
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, as_of, limit))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        values = [(row[0], to_float(row[1], "crypto_log_returns.log_return")) for row in rows]
        values.reverse()
        return values

    def insert_result(self, record: PortfolioVolatilityRecord) -> Optional[int]:
        """Insert a result and its constituents in one transaction.

        Returns the new ``portfolio_volatility.id`` or ``None`` when a row
        for the same configuration and date already exists.
        """

        parent_sql = """
            INSERT INTO portfolio_volatility (
                index_config_id, date, window_days, daily_volatility, annualized_volatility,
                num_constituents, total_market_cap, calculation_duration_ms
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (index_config_id, date) DO NOTHING
            RETURNING id
        """
        constituent_sql = """
            INSERT INTO portfolio_volatility_constituents (
                portfolio_volatility_id, crypto_id, weight, daily_volatility,
                annualized_volatility, market_cap
            ) VALUES (%s, %s, %s, %s, %s, %s)
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    parent_sql,
                    (
                        record.index_config_id,
                        record.day,
                        record.window_days,
                        record.daily_volatility,
                        record.annualized_volatility,
                        record.num_constituents,
                        record.total_market_cap,
                        record.calculation_duration_ms,
                    ),
                )
                row = cursor.fetchone()
                if row is None:
                    conn.commit()
                    return None
                record_id = int(row[0])
                for c in record.constituents:
                    cursor.execute(
                        constituent_sql,
                        (
                            record_id,
                            c.crypto_id,
                            c.weight,
                            c.daily_volatility,
                            c.annualized_volatility,
                            c.market_cap,
                        ),
                    )
                conn.commit()
            finally:
                cursor.close()
        return record_id

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def get_latest(self, config_id: int) -> Optional[PortfolioVolatilityRecord]:
        sql = f"""
            SELECT {_RECORD_COLUMNS}
            FROM portfolio_volatility
            WHERE index_config_id = %s
            ORDER BY date DESC
            LIMIT 1
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (config_id,))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return _row_to_record(row)

    def get_history(self, config_id: int, start_date: date, end_date: date) -> List[PortfolioVolatilityRecord]:
        sql = f"""
            SELECT {_RECORD_COLUMNS}
            FROM portfolio_volatility
            WHERE index_config_id = %s AND date BETWEEN %s AND %s
            ORDER BY date ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (config_id, start_date, end_date))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [_row_to_record(row) for row in rows]

    def get_constituents(self, record_id: int) -> List[PortfolioConstituentVolatility]:
        """Constituents of one result, largest weight first."""

        sql = """
            SELECT pvc.crypto_id, c.symbol, pvc.weight, pvc.daily_volatility,
                   pvc.annualized_volatility, pvc.market_cap
            FROM portfolio_volatility_constituents pvc
            JOIN cryptocurrencies c ON c.id = pvc.crypto_id
            WHERE pvc.portfolio_volatility_id = %s
            ORDER BY pvc.weight DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (record_id,))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        result: List[PortfolioConstituentVolatility] = []
        for row in rows:
            crypto_id, symbol, weight, daily, annualized, market_cap = expect_row(
                row, 6, "portfolio_volatility_constituents"
            )
            result.append(
                PortfolioConstituentVolatility(
                    crypto_id=int(crypto_id),
                    symbol=str(symbol),
                    weight=to_float(weight, "portfolio_volatility_constituents.weight"),
                    daily_volatility=to_float(daily, "portfolio_volatility_constituents.daily_volatility"),
                    annualized_volatility=to_float(
                        annualized, "portfolio_volatility_constituents.annualized_volatility"
                    ),
                    market_cap=to_float(market_cap, "portfolio_volatility_constituents.market_cap"),
                )
            )
        return result


__all__ = ["PortfolioStorage", "PortfolioConfigError"]
