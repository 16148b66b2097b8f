"""index portfolio volatility

Revision ID: 0005
Revises: 0004
Create Date: 2025-11-26

This migration creates the portfolio volatility tables:

- portfolio_volatility
- portfolio_volatility_constituents
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0005"
down_revision: Union[str, None] = "0004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create portfolio volatility tables and indexes."""

    # portfolio_volatility
    op.create_table(
        "portfolio_volatility",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "index_config_id",
            sa.Integer,
            sa.ForeignKey("index_config.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("window_days", sa.Integer, nullable=False),
        sa.Column("daily_volatility", sa.Float, nullable=False),
        sa.Column("annualized_volatility", sa.Float, nullable=False),
        sa.Column("num_constituents", sa.Integer, nullable=False),
        sa.Column("total_market_cap", sa.Float, nullable=False),
        sa.Column("calculation_duration_ms", sa.Integer, nullable=True),
        sa.UniqueConstraint("index_config_id", "date", name="uq_portfolio_volatility_config_date"),
    )

    # portfolio_volatility_constituents
    op.create_table(
        "portfolio_volatility_constituents",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "portfolio_volatility_id",
            sa.BigInteger,
            sa.ForeignKey("portfolio_volatility.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weight", sa.Float, nullable=False),
        sa.Column("daily_volatility", sa.Float, nullable=False),
        sa.Column("annualized_volatility", sa.Float, nullable=False),
        sa.Column("market_cap", sa.Float, nullable=False),
        sa.UniqueConstraint(
            "portfolio_volatility_id", "crypto_id", name="uq_portfolio_volatility_constituents_key"
        ),
    )

    op.create_index("idx_portfolio_volatility_date", "portfolio_volatility", ["date"])


def downgrade() -> None:
    """Drop portfolio volatility tables and indexes."""

    op.drop_index("idx_portfolio_volatility_date", table_name="portfolio_volatility")

    op.drop_table("portfolio_volatility_constituents")
    op.drop_table("portfolio_volatility")
