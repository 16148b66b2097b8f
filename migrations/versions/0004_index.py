"""market-cap weighted index

Revision ID: 0004
Revises: 0003
Create Date: 2025-11-25

This migration creates the index tables:

- index_config
- index_history
- index_constituents
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0004"
down_revision: Union[str, None] = "0003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create index tables and indexes."""

    # index_config
    op.create_table(
        "index_config",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("index_name", sa.String(length=100), nullable=False),
        sa.Column("base_level", sa.Float, nullable=False, server_default="100"),
        sa.Column("divisor", sa.Float, nullable=False, server_default="1"),
        sa.Column("base_date", sa.DateTime, nullable=True),
        sa.Column("max_constituents", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    # One active configuration per index name.
    op.create_index(
        "uq_index_config_active_name",
        "index_config",
        ["index_name"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # index_history
    op.create_table(
        "index_history",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "index_config_id",
            sa.Integer,
            sa.ForeignKey("index_config.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime, nullable=False),
        sa.Column("total_market_cap", sa.Float, nullable=False),
        sa.Column("index_level", sa.Float, nullable=False),
        sa.Column("divisor", sa.Float, nullable=False),
        sa.Column("number_of_constituents", sa.Integer, nullable=False),
        sa.Column("calculation_duration_ms", sa.Integer, nullable=True),
        sa.UniqueConstraint("index_config_id", "timestamp", name="uq_index_history_config_timestamp"),
    )

    # index_constituents
    op.create_table(
        "index_constituents",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "index_history_id",
            sa.BigInteger,
            sa.ForeignKey("index_history.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("market_data_id", sa.BigInteger, nullable=True),
        sa.Column("rank_position", sa.Integer, nullable=False),
        sa.Column("price_usd", sa.Float, nullable=False),
        sa.Column("circulating_supply", sa.Float, nullable=False),
        sa.Column("weight_in_index", sa.Float, nullable=False),
    )

    op.create_index("idx_index_history_timestamp", "index_history", ["timestamp"])
    op.create_index("idx_index_constituents_history", "index_constituents", ["index_history_id"])


def downgrade() -> None:
    """Drop index tables and indexes."""

    op.drop_index("idx_index_constituents_history", table_name="index_constituents")
    op.drop_index("idx_index_history_timestamp", table_name="index_history")
    op.drop_index("uq_index_config_active_name", table_name="index_config")

    op.drop_table("index_constituents")
    op.drop_table("index_history")
    op.drop_table("index_config")
