"""risqlab – Index Engine storage helpers.

Wraps ``index_config``, ``index_history`` and ``index_constituents`` and
the ``market_data`` cross-section queries the engine consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Sequence

from risqlab.core.database import (
    DatabaseManager,
    MalformedRowError,
    expect_row,
    to_float,
)
from risqlab.core.logging import get_logger
from risqlab.core.time import start_of_day
from risqlab.index.types import IndexConfigRecord, IndexConstituentRecord, IndexHistoryRecord
from risqlab.universe.selection import CandidateAsset


logger = get_logger(__name__)


def _row_to_config(row: Sequence[Any]) -> IndexConfigRecord:
    config_id, name, base_level, divisor, base_date, max_constituents, is_active = expect_row(
        row, 7, "index_config"
    )
    return IndexConfigRecord(
        config_id=int(config_id),
        index_name=str(name),
        base_level=to_float(base_level, "index_config.base_level"),
        divisor=to_float(divisor, "index_config.divisor"),
        base_date=base_date,
        max_constituents=int(max_constituents),
        is_active=bool(is_active),
    )


def _row_to_history(row: Sequence[Any]) -> IndexHistoryRecord:
    (
        history_id,
        config_id,
        ts,
        total_market_cap,
        index_level,
        divisor,
        n_constituents,
        duration_ms,
    ) = expect_row(row, 8, "index_history")
    return IndexHistoryRecord(
        history_id=int(history_id),
        index_config_id=int(config_id),
        timestamp=ts,
        total_market_cap=to_float(total_market_cap, "index_history.total_market_cap"),
        index_level=to_float(index_level, "index_history.index_level"),
        divisor=to_float(divisor, "index_history.divisor"),
        number_of_constituents=int(n_constituents),
        calculation_duration_ms=int(duration_ms or 0),
    )


def row_to_candidate(row: Sequence[Any]) -> CandidateAsset:
    market_data_id, crypto_id, symbol, price, supply, volume, categories = expect_row(
        row, 7, "market_data"
    )
    if categories is not None and not isinstance(categories, list):
        raise MalformedRowError(f"cryptocurrency_metadata.categories: expected list, got {categories!r}")
    price_f = to_float(price, "market_data.price_usd")
    supply_f = to_float(supply, "market_data.circulating_supply")
    return CandidateAsset(
        crypto_id=int(crypto_id),
        symbol=str(symbol),
        market_cap=price_f * supply_f,
        volume_24h=to_float(volume or 0, "market_data.volume_24h_usd"),
        categories=tuple(str(c) for c in (categories or [])),
        price=price_f,
        circulating_supply=supply_f,
        market_data_id=int(market_data_id),
    )


@dataclass
class IndexStorage:
    """Persistence helper for index configuration, levels and constituents."""

    db_manager: DatabaseManager

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def get_active_config(self, index_name: str) -> Optional[IndexConfigRecord]:
        sql = """
            SELECT id, index_name, base_level, divisor, base_date, max_constituents, is_active
            FROM index_config
            WHERE index_name = %s AND is_active = TRUE
            LIMIT 1
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name,))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return _row_to_config(row)

    def create_config(
        self,
        index_name: str,
        base_level: float,
        divisor: float,
        base_date: datetime,
        max_constituents: int,
    ) -> IndexConfigRecord:
        sql = """
            INSERT INTO index_config (
                index_name, base_level, divisor, base_date, max_constituents, is_active
            ) VALUES (%s, %s, %s, %s, %s, TRUE)
            RETURNING id, index_name, base_level, divisor, base_date, max_constituents, is_active
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name, base_level, divisor, base_date, max_constituents))
                row = cursor.fetchone()
                conn.commit()
            finally:
                cursor.close()
        return _row_to_config(row)

    def anchor_divisor(self, config_id: int, divisor: float, base_date: datetime) -> IndexConfigRecord:
        sql = """
            UPDATE index_config
            SET divisor = %s, base_date = %s, is_active = TRUE, updated_at = NOW()
            WHERE id = %s
            RETURNING id, index_name, base_level, divisor, base_date, max_constituents, is_active
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (divisor, base_date, config_id))
                row = cursor.fetchone()
                conn.commit()
            finally:
                cursor.close()
        return _row_to_config(row)

    # ------------------------------------------------------------------
    # Market cross-sections
    # ------------------------------------------------------------------

    def get_earliest_market_timestamp(self) -> Optional[datetime]:
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT MIN(timestamp) FROM market_data")
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return row[0]

    def get_missing_timestamps(self, config_id: int, since: datetime) -> List[datetime]:
        """Market-data timestamps at or after ``since`` with no history row, oldest first."""

        sql = """
            SELECT DISTINCT md.timestamp
            FROM market_data md
            WHERE md.timestamp >= %s
              AND NOT EXISTS (
                  SELECT 1 FROM index_history h
                  WHERE h.index_config_id = %s AND h.timestamp = md.timestamp
              )
            ORDER BY md.timestamp ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (since, config_id))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row[0] for row in rows]

    def load_candidates(self, ts: datetime) -> List[CandidateAsset]:
        """Return every asset with a positive market cap at exactly ``ts``."""

        sql = """
            SELECT md.id, c.id, c.symbol, md.price_usd, md.circulating_supply,
                   md.volume_24h_usd, m.categories
            FROM market_data md
            JOIN cryptocurrencies c ON c.id = md.crypto_id
            LEFT JOIN cryptocurrency_metadata m ON m.crypto_id = c.id
            WHERE md.timestamp = %s
              AND md.price_usd * md.circulating_supply > 0
            ORDER BY md.price_usd * md.circulating_supply DESC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (ts,))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_candidate(row) for row in rows]

    # ------------------------------------------------------------------
    # Index points
    # ------------------------------------------------------------------

    def save_index_point(
        self,
        history: IndexHistoryRecord,
        constituents: Sequence[IndexConstituentRecord],
    ) -> int:
        """Upsert a history row and replace its constituents atomically.

        Returns the ``index_history.id``.
        """

        history_sql = """
            INSERT INTO index_history (
                index_config_id, timestamp, total_market_cap, index_level,
                divisor, number_of_constituents, calculation_duration_ms
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (index_config_id, timestamp) DO UPDATE SET
                total_market_cap = EXCLUDED.total_market_cap,
                index_level = EXCLUDED.index_level,
                divisor = EXCLUDED.divisor,
                number_of_constituents = EXCLUDED.number_of_constituents,
                calculation_duration_ms = EXCLUDED.calculation_duration_ms
            RETURNING id
        """
        constituent_sql = """
            INSERT INTO index_constituents (
                index_history_id, crypto_id, market_data_id, rank_position,
                price_usd, circulating_supply, weight_in_index
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """

        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    history_sql,
                    (
                        history.index_config_id,
                        history.timestamp,
                        history.total_market_cap,
                        history.index_level,
                        history.divisor,
                        history.number_of_constituents,
                        history.calculation_duration_ms,
                    ),
                )
                history_id = int(expect_row(cursor.fetchone(), 1, "index_history")[0])
                cursor.execute(
                    "DELETE FROM index_constituents WHERE index_history_id = %s",
                    (history_id,),
                )
                for c in constituents:
                    cursor.execute(
                        constituent_sql,
                        (
                            history_id,
                            c.crypto_id,
                            c.market_data_id,
                            c.rank_position,
                            c.price_usd,
                            c.circulating_supply,
                            c.weight_in_index,
                        ),
                    )
                conn.commit()
            finally:
                cursor.close()
        return history_id

    # ------------------------------------------------------------------
    # Read queries
    # ------------------------------------------------------------------

    def get_history(self, index_name: str, start_date: date, end_date: date) -> List[IndexHistoryRecord]:
        """Return index levels of the active configuration between two dates."""

        sql = """
            SELECT h.id, h.index_config_id, h.timestamp, h.total_market_cap, h.index_level,
                   h.divisor, h.number_of_constituents, h.calculation_duration_ms
            FROM index_history h
            JOIN index_config ic ON ic.id = h.index_config_id
            WHERE ic.index_name = %s
              AND ic.is_active = TRUE
              AND h.timestamp >= %s
              AND h.timestamp < %s
            ORDER BY h.timestamp ASC
        """
        end_exclusive = start_of_day(end_date + timedelta(days=1))
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name, start_of_day(start_date), end_exclusive))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [_row_to_history(row) for row in rows]

    def get_latest(self, index_name: str) -> Optional[IndexHistoryRecord]:
        sql = """
            SELECT h.id, h.index_config_id, h.timestamp, h.total_market_cap, h.index_level,
                   h.divisor, h.number_of_constituents, h.calculation_duration_ms
            FROM index_history h
            JOIN index_config ic ON ic.id = h.index_config_id
            WHERE ic.index_name = %s AND ic.is_active = TRUE
            ORDER BY h.timestamp DESC
            LIMIT 1
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (index_name,))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return _row_to_history(row)

    def get_constituents(self, history_id: int) -> List[IndexConstituentRecord]:
        sql = """
            SELECT ic.crypto_id, ic.rank_position, ic.price_usd, ic.circulating_supply,
                   ic.weight_in_index, ic.market_data_id, c.symbol
            FROM index_constituents ic
            JOIN cryptocurrencies c ON c.id = ic.crypto_id
            WHERE ic.index_history_id = %s
            ORDER BY ic.rank_position ASC
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (history_id,))
                rows = cursor.fetchall()
            finally:
                cursor.close()

        out: List[IndexConstituentRecord] = []
        for row in rows:
            crypto_id, rank, price, supply, weight, md_id, symbol = expect_row(row, 7, "index_constituents")
            out.append(
                IndexConstituentRecord(
                    crypto_id=int(crypto_id),
                    rank_position=int(rank),
                    price_usd=to_float(price, "index_constituents.price_usd"),
                    circulating_supply=to_float(supply, "index_constituents.circulating_supply"),
                    weight_in_index=to_float(weight, "index_constituents.weight_in_index"),
                    market_data_id=int(md_id) if md_id is not None else None,
                    symbol=str(symbol),
                )
            )
        return out


__all__ = ["IndexStorage", "row_to_candidate"]
