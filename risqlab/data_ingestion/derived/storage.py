"""risqlab – storage helpers for log returns and moving averages.

Inserts use ``ON CONFLICT DO NOTHING`` on the natural key so the
existence check and the insert of one key are a single statement; the
returned counts only include rows actually inserted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Set, Tuple

from risqlab.core.database import DatabaseManager, expect_row, to_float
from risqlab.core.logging import get_logger
from risqlab.core.time import start_of_day
from risqlab.data_ingestion.derived.types import (
    DailyClosePrice,
    LogReturnRecord,
    MovingAverageRecord,
)
from risqlab.data_ingestion.storage import row_to_asset
from risqlab.data_ingestion.types import Asset


logger = get_logger(__name__)


@dataclass
class DerivedStorage:
    """Persistence helper for ``crypto_log_returns`` and ``crypto_moving_averages``."""

    db_manager: DatabaseManager

    def list_assets_with_closes(self, minimum_points: int, before: date) -> List[Asset]:
        """Return assets with at least ``minimum_points`` distinct positive closes before ``before``."""

        sql = """
            SELECT c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            FROM cryptocurrencies c
            JOIN ohlc o ON o.crypto_id = c.id
            WHERE o.timestamp < %s
              AND o.close > 0
            GROUP BY c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            HAVING COUNT(DISTINCT o.timestamp::date) >= %s
            ORDER BY c.id
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (start_of_day(before), minimum_points))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_asset(row) for row in rows]

    def get_daily_closes(self, crypto_id: int, before: date) -> List[DailyClosePrice]:
        """Return one close per date before ``before``, oldest first.

        When a date holds several rows the latest one of the day is used.
        Non-positive closes are returned as stored so that callers can
        skip the return pairs that touch them.
        """

        sql = """
            SELECT DISTINCT ON (o.timestamp::date) o.timestamp::date, o.close
            FROM ohlc o
            WHERE o.crypto_id = %s
              AND o.timestamp < %s
            ORDER BY o.timestamp::date ASC, o.timestamp DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, start_of_day(before)))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        closes: List[DailyClosePrice] = []
        for row in rows:
            day, close = expect_row(row, 2, "ohlc")
            closes.append(DailyClosePrice(day=day, close=to_float(close, "ohlc.close")))
        return closes

    def get_log_return_dates(self, crypto_id: int) -> Set[date]:
        sql = "SELECT date FROM crypto_log_returns WHERE crypto_id = %s"
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id,))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {row[0] for row in rows}

    def get_moving_average_keys(self, crypto_id: int) -> Set[Tuple[date, int]]:
        sql = "SELECT date, window_days FROM crypto_moving_averages WHERE crypto_id = %s"
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id,))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {(row[0], int(row[1])) for row in rows}

    def insert_log_returns(self, records: Iterable[LogReturnRecord]) -> int:
        sql = """
            INSERT INTO crypto_log_returns (
                crypto_id, date, log_return, price_current, price_previous
            ) VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (crypto_id, date) DO NOTHING
        """
        inserted = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for r in records:
                    cursor.execute(
                        sql,
                        (r.crypto_id, r.day, r.log_return, r.price_current, r.price_previous),
                    )
                    inserted += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return inserted

    def insert_moving_averages(self, records: Iterable[MovingAverageRecord]) -> int:
        sql = """
            INSERT INTO crypto_moving_averages (
                crypto_id, date, window_days, moving_average, num_observations
            ) VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (crypto_id, date, window_days) DO NOTHING
        """
        inserted = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for r in records:
                    cursor.execute(
                        sql,
                        (r.crypto_id, r.day, r.window_days, r.moving_average, r.num_observations),
                    )
                    inserted += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return inserted


__all__ = ["DerivedStorage"]
