"""risqlab – raw market data storage helpers.

This module wraps the SQL used by the ingestion stages against the raw
tables: ``cryptocurrencies``, ``market_data``, ``ohlc``,
``cryptocurrency_metadata`` and ``fear_and_greed``.

``market_data`` upserts are zero-guarded on ``price_usd``,
``circulating_supply`` and ``volume_24h_usd``: a non-zero value already
stored is never replaced by a zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from psycopg2.extras import Json

from risqlab.core.database import DatabaseManager, MalformedRowError, expect_row
from risqlab.core.logging import get_logger
from risqlab.core.time import start_of_day
from risqlab.data_ingestion.types import (
    Asset,
    AssetMetadata,
    DailyClose,
    FearGreedPoint,
    MarketSnapshotEntry,
    RawPricePoint,
)


logger = get_logger(__name__)

# Tables whose daily slots are checked by the gap detector.
WATCHED_TABLES = ("ohlc", "market_data")


def row_to_asset(row) -> Asset:  # type: ignore[no-untyped-def]
    crypto_id, symbol, name, coingecko_id, image_url = expect_row(row, 5, "cryptocurrencies")
    if crypto_id is None or not symbol:
        raise MalformedRowError(f"cryptocurrencies: incomplete row {row!r}")
    return Asset(
        crypto_id=int(crypto_id),
        symbol=str(symbol),
        name=str(name or symbol),
        coingecko_id=coingecko_id,
        image_url=image_url,
    )


@dataclass
class MarketDataStorage:
    """Persistence helper for assets and raw price series."""

    db_manager: DatabaseManager

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def upsert_asset(self, entry: MarketSnapshotEntry) -> int:
        """Create or enrich the asset identified by ``entry.symbol``.

        The external id is only filled when still unknown; the image URL
        is always refreshed. Returns ``cryptocurrencies.id``.
        """

        sql = """
            INSERT INTO cryptocurrencies (symbol, name, coingecko_id, image_url)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (symbol) DO UPDATE SET
                coingecko_id = COALESCE(cryptocurrencies.coingecko_id, EXCLUDED.coingecko_id),
                image_url = EXCLUDED.image_url
            RETURNING id
        """

        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (entry.symbol, entry.name, entry.coingecko_id, entry.image_url))
                row = expect_row(cursor.fetchone(), 1, "cryptocurrencies")
                conn.commit()
            finally:
                cursor.close()
        return int(row[0])

    def list_assets_with_external_id(self) -> List[Asset]:
        sql = """
            SELECT id, symbol, name, coingecko_id, image_url
            FROM cryptocurrencies
            WHERE coingecko_id IS NOT NULL
            ORDER BY id
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql)
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_asset(row) for row in rows]

    def get_asset_by_symbol(self, symbol: str) -> Optional[Asset]:
        sql = """
            SELECT id, symbol, name, coingecko_id, image_url
            FROM cryptocurrencies
            WHERE symbol = %s
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (symbol.upper(),))
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return row_to_asset(row)

    def find_assets_missing_day(self, day: date) -> List[Asset]:
        """Return assets lacking a row for ``day`` in any watched table.

        This is the cheap pass of the gap detector: one set-based query,
        so a fully current store costs no external calls.
        """

        sql = """
            SELECT c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            FROM cryptocurrencies c
            WHERE c.coingecko_id IS NOT NULL
              AND (
                NOT EXISTS (
                    SELECT 1 FROM ohlc o
                    WHERE o.crypto_id = c.id
                      AND o.timestamp >= %s AND o.timestamp < %s
                )
                OR NOT EXISTS (
                    SELECT 1 FROM market_data md
                    WHERE md.crypto_id = c.id
                      AND md.timestamp >= %s AND md.timestamp < %s
                )
              )
            ORDER BY c.id
        """
        start = start_of_day(day)
        end = start + timedelta(days=1)
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (start, end, start, end))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_asset(row) for row in rows]

    def find_assets_below_entry_threshold(self, since: datetime, threshold: int) -> List[Asset]:
        """Return assets with fewer than ``threshold`` market_data rows since ``since``."""

        sql = """
            SELECT c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            FROM cryptocurrencies c
            LEFT JOIN market_data md
              ON md.crypto_id = c.id AND md.timestamp >= %s
            WHERE c.coingecko_id IS NOT NULL
            GROUP BY c.id, c.symbol, c.name, c.coingecko_id, c.image_url
            HAVING COUNT(md.crypto_id) < %s
            ORDER BY c.id
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (since, threshold))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return [row_to_asset(row) for row in rows]

    # ------------------------------------------------------------------
    # Daily slot presence
    # ------------------------------------------------------------------

    def get_present_dates(self, table: str, crypto_id: int, start: date, end: date) -> Set[date]:
        """Return the distinct dates in ``[start, end]`` with a row in ``table``."""

        if table not in WATCHED_TABLES:
            raise ValueError(f"Unsupported table for gap detection: {table}")

        sql = f"""
            SELECT DISTINCT timestamp::date
            FROM {table}
            WHERE crypto_id = %s
              AND timestamp >= %s
              AND timestamp < %s
        """
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql, (crypto_id, start_of_day(start), start_of_day(end) + timedelta(days=1)))
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {row[0] for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_snapshot_points(self, points: Iterable[RawPricePoint]) -> int:
        """Upsert snapshot rows into ``market_data``.

        Every field is refreshed except that a zero price, supply or
        volume never replaces a stored non-zero value.
        Returns the number of rows inserted or changed.
        """

        sql = """
            INSERT INTO market_data (
                crypto_id, timestamp, price_usd, circulating_supply, volume_24h_usd,
                percent_change_1h, percent_change_24h, percent_change_7d, percent_change_14d,
                percent_change_30d, percent_change_200d, percent_change_1y,
                market_cap_rank, total_supply, max_supply, fully_diluted_valuation
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (crypto_id, timestamp) DO UPDATE SET
                price_usd = CASE WHEN EXCLUDED.price_usd = 0
                    THEN market_data.price_usd ELSE EXCLUDED.price_usd END,
                circulating_supply = CASE WHEN EXCLUDED.circulating_supply = 0
                    THEN market_data.circulating_supply ELSE EXCLUDED.circulating_supply END,
                volume_24h_usd = CASE WHEN EXCLUDED.volume_24h_usd = 0
                    THEN market_data.volume_24h_usd ELSE EXCLUDED.volume_24h_usd END,
                percent_change_1h = EXCLUDED.percent_change_1h,
                percent_change_24h = EXCLUDED.percent_change_24h,
                percent_change_7d = EXCLUDED.percent_change_7d,
                percent_change_14d = EXCLUDED.percent_change_14d,
                percent_change_30d = EXCLUDED.percent_change_30d,
                percent_change_200d = EXCLUDED.percent_change_200d,
                percent_change_1y = EXCLUDED.percent_change_1y,
                market_cap_rank = EXCLUDED.market_cap_rank,
                total_supply = EXCLUDED.total_supply,
                max_supply = EXCLUDED.max_supply,
                fully_diluted_valuation = EXCLUDED.fully_diluted_valuation
            WHERE (
                market_data.price_usd, market_data.circulating_supply, market_data.volume_24h_usd,
                market_data.percent_change_1h, market_data.percent_change_24h,
                market_data.percent_change_7d, market_data.percent_change_14d,
                market_data.percent_change_30d, market_data.percent_change_200d,
                market_data.percent_change_1y, market_data.market_cap_rank,
                market_data.total_supply, market_data.max_supply,
                market_data.fully_diluted_valuation
            ) IS DISTINCT FROM (
                EXCLUDED.price_usd, EXCLUDED.circulating_supply, EXCLUDED.volume_24h_usd,
                EXCLUDED.percent_change_1h, EXCLUDED.percent_change_24h,
                EXCLUDED.percent_change_7d, EXCLUDED.percent_change_14d,
                EXCLUDED.percent_change_30d, EXCLUDED.percent_change_200d,
                EXCLUDED.percent_change_1y, EXCLUDED.market_cap_rank,
                EXCLUDED.total_supply, EXCLUDED.max_supply,
                EXCLUDED.fully_diluted_valuation
            )
        """

        count = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for p in points:
                    pc = p.percent_changes
                    cursor.execute(
                        sql,
                        (
                            p.crypto_id,
                            p.timestamp,
                            p.price_usd,
                            p.circulating_supply,
                            p.volume_24h_usd,
                            pc.get("1h"),
                            pc.get("24h"),
                            pc.get("7d"),
                            pc.get("14d"),
                            pc.get("30d"),
                            pc.get("200d"),
                            pc.get("1y"),
                            p.market_cap_rank,
                            p.total_supply,
                            p.max_supply,
                            p.fully_diluted_valuation,
                        ),
                    )
                    count += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return count

    def insert_backfill_points(self, points: Iterable[RawPricePoint]) -> int:
        """Insert historical rows into ``market_data``.

        On conflict a stored non-zero price, supply or volume is kept;
        only zero placeholders are filled in.

        Returns the number of rows inserted or filled in.
        """

        sql = """
            INSERT INTO market_data (
                crypto_id, timestamp, price_usd, circulating_supply, volume_24h_usd
            ) VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (crypto_id, timestamp) DO UPDATE SET
                price_usd = CASE WHEN market_data.price_usd = 0
                    THEN EXCLUDED.price_usd ELSE market_data.price_usd END,
                circulating_supply = CASE WHEN market_data.circulating_supply = 0
                    THEN EXCLUDED.circulating_supply ELSE market_data.circulating_supply END,
                volume_24h_usd = CASE WHEN market_data.volume_24h_usd = 0
                    THEN EXCLUDED.volume_24h_usd ELSE market_data.volume_24h_usd END
            WHERE (market_data.price_usd = 0 AND EXCLUDED.price_usd <> 0)
               OR (market_data.circulating_supply = 0 AND EXCLUDED.circulating_supply <> 0)
               OR (market_data.volume_24h_usd = 0 AND EXCLUDED.volume_24h_usd <> 0)
        """

        count = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for p in points:
                    cursor.execute(
                        sql,
                        (p.crypto_id, p.timestamp, p.price_usd, p.circulating_supply, p.volume_24h_usd),
                    )
                    count += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return count

    def upsert_daily_closes(self, closes: Iterable[DailyClose]) -> int:
        """Write daily close rows into ``ohlc`` (open=high=low=close).

        Returns the number of rows inserted or changed.
        """

        sql = """
            INSERT INTO ohlc (crypto_id, timestamp, open, high, low, close, volume, market_cap)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (crypto_id, timestamp) DO UPDATE SET
                open = EXCLUDED.open,
                high = EXCLUDED.high,
                low = EXCLUDED.low,
                close = EXCLUDED.close,
                volume = EXCLUDED.volume,
                market_cap = EXCLUDED.market_cap
            WHERE (ohlc.close, ohlc.volume, ohlc.market_cap)
                IS DISTINCT FROM (EXCLUDED.close, EXCLUDED.volume, EXCLUDED.market_cap)
        """

        count = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for c in closes:
                    cursor.execute(
                        sql,
                        (c.crypto_id, c.timestamp, c.close, c.close, c.close, c.close, c.volume, c.market_cap),
                    )
                    count += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return count

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def save_metadata(self, crypto_id: int, metadata: AssetMetadata) -> None:
        sql = """
            INSERT INTO cryptocurrency_metadata (
                crypto_id, categories, description, website, whitepaper,
                twitter, reddit, telegram, github, platform, genesis_date, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (crypto_id) DO UPDATE SET
                categories = EXCLUDED.categories,
                description = EXCLUDED.description,
                website = EXCLUDED.website,
                whitepaper = EXCLUDED.whitepaper,
                twitter = EXCLUDED.twitter,
                reddit = EXCLUDED.reddit,
                telegram = EXCLUDED.telegram,
                github = EXCLUDED.github,
                platform = EXCLUDED.platform,
                genesis_date = EXCLUDED.genesis_date,
                updated_at = NOW()
        """

        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    sql,
                    (
                        crypto_id,
                        Json(list(metadata.categories)),
                        metadata.description,
                        metadata.website,
                        metadata.whitepaper,
                        metadata.twitter,
                        metadata.reddit,
                        metadata.telegram,
                        metadata.github,
                        metadata.platform,
                        metadata.genesis_date,
                    ),
                )
                if metadata.image_url:
                    cursor.execute(
                        "UPDATE cryptocurrencies SET image_url = %s WHERE id = %s",
                        (metadata.image_url, crypto_id),
                    )
                conn.commit()
            finally:
                cursor.close()

    def get_categories_by_asset(self) -> Dict[int, List[str]]:
        sql = "SELECT crypto_id, categories FROM cryptocurrency_metadata"
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(sql)
                rows = cursor.fetchall()
            finally:
                cursor.close()
        return {int(crypto_id): list(categories or []) for crypto_id, categories in rows}

    # ------------------------------------------------------------------
    # Fear & Greed
    # ------------------------------------------------------------------

    def get_latest_fear_greed_date(self) -> Optional[date]:
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT MAX(timestamp)::date FROM fear_and_greed")
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            return None
        return row[0]

    def upsert_fear_greed(self, points: Iterable[FearGreedPoint]) -> int:
        sql = """
            INSERT INTO fear_and_greed (timestamp, value, classification)
            VALUES (%s, %s, %s)
            ON CONFLICT (timestamp) DO UPDATE SET
                value = EXCLUDED.value,
                classification = EXCLUDED.classification
            WHERE (fear_and_greed.value, fear_and_greed.classification)
                IS DISTINCT FROM (EXCLUDED.value, EXCLUDED.classification)
        """
        count = 0
        with self.db_manager.get_connection() as conn:
            cursor = conn.cursor()
            try:
                for p in points:
                    cursor.execute(sql, (p.timestamp, p.value, p.classification))
                    count += cursor.rowcount
                conn.commit()
            finally:
                cursor.close()
        return count


__all__ = ["MarketDataStorage", "WATCHED_TABLES", "row_to_asset"]
