"""
risqlab: Database Connection Management

This module provides connection pooling and convenience helpers for
connecting to the risqlab PostgreSQL store. It uses psycopg2's
``SimpleConnectionPool`` with a thin wrapper that exposes a context
manager for acquiring connections.

Key responsibilities:
- Maintain a connection pool for the store
- Provide a context manager to acquire/release connections safely
- Encapsulate connection string construction from configuration
- Validate row shapes read back from SQL before they become records

External dependencies:
- psycopg2-binary: PostgreSQL client and connection pooling

Database tables accessed:
- None directly (this module is infrastructure only)

Thread safety: Thread-safe under normal psycopg2 pool usage. A single
DatabaseManager is created by each entrypoint and passed explicitly to
the storage classes that need it.

Author: risqlab Team
Created: 2025-11-24
Last Modified: 2025-12-02
Status: Development
Version: v0.2.0
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Generator, Optional, Sequence

from psycopg2 import pool
from psycopg2.extensions import connection as PsycopgConnection

from risqlab.core.config import DatabaseConfig, RisqlabConfig
from risqlab.core.logging import get_logger

# ============================================================================
# Module Setup
# ============================================================================

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Raised when a database connection or operation fails."""


class MalformedRowError(DatabaseError):
    """Raised when a row read from the store does not have the expected shape."""


class DatabaseManager:
    """Manage the connection pool for the risqlab store.

    Typical usage::

        from risqlab.core.config import get_config
        from risqlab.core.database import DatabaseManager

        db = DatabaseManager(get_config())
        with db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            result = cursor.fetchone()
            cursor.close()

    Attributes:
        config: risqlab configuration instance.
        _pool: Connection pool for the store.
    """

    def __init__(self, config: RisqlabConfig) -> None:
        """Initialise the database manager with configuration.

        Args:
            config: Loaded risqlab configuration.
        """

        self.config = config
        self._pool: Optional[pool.SimpleConnectionPool] = None
        logger.info("DatabaseManager initialised")

    # ======================================================================
    # Internal helpers
    # ======================================================================

    @staticmethod
    def _create_connection_string(db_config: DatabaseConfig) -> str:
        """Build a PostgreSQL connection string from configuration.

        Args:
            db_config: Database configuration.

        Returns:
            A DSN string suitable for psycopg2.
        """

        return (
            f"host={db_config.host} "
            f"port={db_config.port} "
            f"dbname={db_config.name} "
            f"user={db_config.user} "
            f"password={db_config.password}"
        )

    def _get_or_create_pool(self) -> pool.SimpleConnectionPool:
        """Return the existing pool or create a new one.

        Raises:
            DatabaseError: If the pool cannot be created.
        """

        if self._pool is not None:
            return self._pool

        db_config = self.config.database
        dsn = self._create_connection_string(db_config)
        try:
            new_pool = pool.SimpleConnectionPool(
                minconn=1,
                maxconn=db_config.pool_size,
                dsn=dsn,
            )
        except Exception as exc:  # pragma: no cover - connection errors
            logger.error(f"Failed to create connection pool: {exc}")
            raise DatabaseError("Failed to create database connection pool") from exc

        self._pool = new_pool
        logger.info("Created connection pool for database '%s'", db_config.name)
        return new_pool

    # ======================================================================
    # Public context managers
    # ======================================================================

    @contextmanager
    def get_connection(self) -> Generator[PsycopgConnection, None, None]:
        """Yield a connection to the store.

        Uncommitted work is rolled back before the connection is returned
        to the pool, so a failure half-way through a multi-statement write
        leaves nothing behind.

        Raises:
            DatabaseError: If a connection cannot be acquired.
        """

        pool_obj = self._get_or_create_pool()
        try:
            conn = pool_obj.getconn()
        except Exception as exc:  # pragma: no cover - connection errors
            logger.error(f"Failed to acquire database connection: {exc}")
            raise DatabaseError("Failed to acquire database connection") from exc

        try:
            yield conn
        finally:
            conn.rollback()
            pool_obj.putconn(conn)

    # ======================================================================
    # Lifecycle
    # ======================================================================

    def close_all(self) -> None:
        """Close the connection pool."""

        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("Closed database connection pool")


# ============================================================================
# Row helpers
# ============================================================================


def expect_row(row: Optional[Sequence[Any]], width: int, table: str) -> Sequence[Any]:
    """Return ``row`` after checking it has exactly ``width`` columns.

    Raises:
        MalformedRowError: If the row is missing or has the wrong arity.
    """

    if row is None or len(row) != width:
        got = "None" if row is None else str(len(row))
        raise MalformedRowError(f"{table}: expected {width} columns, got {got}")
    return row


def to_float(value: Any, field: str) -> float:
    """Convert a non-null numeric column to ``float``.

    psycopg2 returns ``NUMERIC`` columns as :class:`~decimal.Decimal`;
    both that and plain numbers are accepted.

    Raises:
        MalformedRowError: If the value is null or not numeric.
    """

    if value is None:
        raise MalformedRowError(f"{field}: unexpected NULL")
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise MalformedRowError(f"{field}: expected number, got {type(value).__name__}")
    return float(value)


def to_optional_float(value: Any, field: str) -> Optional[float]:
    """Like :func:`to_float` but maps NULL to ``None``."""

    if value is None:
        return None
    return to_float(value, field)


__all__ = [
    "DatabaseError",
    "MalformedRowError",
    "DatabaseManager",
    "expect_row",
    "to_float",
    "to_optional_float",
]
