"""assets and raw market data

Revision ID: 0001
Revises: None
Create Date: 2025-11-24

This migration creates the raw ingestion tables:

- cryptocurrencies
- market_data
- ohlc
- cryptocurrency_metadata
- fear_and_greed
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create raw market data tables and indexes."""

    # cryptocurrencies
    op.create_table(
        "cryptocurrencies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("symbol", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("coingecko_id", sa.String(length=200), nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("symbol", name="uq_cryptocurrencies_symbol"),
    )

    # market_data
    op.create_table(
        "market_data",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime, nullable=False),
        sa.Column("price_usd", sa.Float, nullable=False),
        sa.Column("circulating_supply", sa.Float, nullable=False, server_default="0"),
        sa.Column("volume_24h_usd", sa.Float, nullable=False, server_default="0"),
        sa.Column("percent_change_1h", sa.Float, nullable=True),
        sa.Column("percent_change_24h", sa.Float, nullable=True),
        sa.Column("percent_change_7d", sa.Float, nullable=True),
        sa.Column("percent_change_14d", sa.Float, nullable=True),
        sa.Column("percent_change_30d", sa.Float, nullable=True),
        sa.Column("percent_change_200d", sa.Float, nullable=True),
        sa.Column("percent_change_1y", sa.Float, nullable=True),
        sa.Column("market_cap_rank", sa.Integer, nullable=True),
        sa.Column("total_supply", sa.Float, nullable=True),
        sa.Column("max_supply", sa.Float, nullable=True),
        sa.Column("fully_diluted_valuation", sa.Float, nullable=True),
        sa.UniqueConstraint("crypto_id", "timestamp", name="uq_market_data_crypto_timestamp"),
    )

    # ohlc
    op.create_table(
        "ohlc",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime, nullable=False),
        sa.Column("open", sa.Float, nullable=False),
        sa.Column("high", sa.Float, nullable=False),
        sa.Column("low", sa.Float, nullable=False),
        sa.Column("close", sa.Float, nullable=False),
        sa.Column("volume", sa.Float, nullable=True),
        sa.Column("market_cap", sa.Float, nullable=True),
        sa.UniqueConstraint("crypto_id", "timestamp", name="uq_ohlc_crypto_timestamp"),
    )

    # cryptocurrency_metadata
    op.create_table(
        "cryptocurrency_metadata",
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("categories", postgresql.JSONB, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("website", sa.Text, nullable=True),
        sa.Column("whitepaper", sa.Text, nullable=True),
        sa.Column("twitter", sa.Text, nullable=True),
        sa.Column("reddit", sa.Text, nullable=True),
        sa.Column("telegram", sa.Text, nullable=True),
        sa.Column("github", sa.Text, nullable=True),
        sa.Column("platform", sa.String(length=100), nullable=True),
        sa.Column("genesis_date", sa.Date, nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # fear_and_greed
    op.create_table(
        "fear_and_greed",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime, nullable=False),
        sa.Column("value", sa.Integer, nullable=False),
        sa.Column("classification", sa.String(length=50), nullable=False),
        sa.UniqueConstraint("timestamp", name="uq_fear_and_greed_timestamp"),
    )

    # Helpful indexes
    op.create_index("idx_market_data_timestamp", "market_data", ["timestamp"])
    op.create_index("idx_ohlc_timestamp", "ohlc", ["timestamp"])
    op.create_index("idx_cryptocurrencies_coingecko_id", "cryptocurrencies", ["coingecko_id"])


def downgrade() -> None:
    """Drop raw market data tables and indexes."""

    op.drop_index("idx_cryptocurrencies_coingecko_id", table_name="cryptocurrencies")
    op.drop_index("idx_ohlc_timestamp", table_name="ohlc")
    op.drop_index("idx_market_data_timestamp", table_name="market_data")

    op.drop_table("fear_and_greed")
    op.drop_table("cryptocurrency_metadata")
    op.drop_table("ohlc")
    op.drop_table("market_data")
    op.drop_table("cryptocurrencies")
