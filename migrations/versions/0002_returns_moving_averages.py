"""log returns and moving averages

Revision ID: 0002
Revises: 0001
Create Date: 2025-11-24

This migration creates the derived daily series:

- crypto_log_returns
- crypto_moving_averages
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create derived return tables and indexes."""

    # crypto_log_returns
    op.create_table(
        "crypto_log_returns",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("log_return", sa.Float, nullable=False),
        sa.Column("price_current", sa.Float, nullable=False),
        sa.Column("price_previous", sa.Float, nullable=False),
        sa.UniqueConstraint("crypto_id", "date", name="uq_crypto_log_returns_crypto_date"),
    )

    # crypto_moving_averages
    op.create_table(
        "crypto_moving_averages",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("window_days", sa.Integer, nullable=False),
        sa.Column("moving_average", sa.Float, nullable=False),
        sa.Column("num_observations", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "crypto_id", "date", "window_days", name="uq_crypto_moving_averages_key"
        ),
    )

    op.create_index("idx_crypto_log_returns_date", "crypto_log_returns", ["date"])
    op.create_index("idx_crypto_moving_averages_date", "crypto_moving_averages", ["date"])


def downgrade() -> None:
    """Drop derived return tables and indexes."""

    op.drop_index("idx_crypto_moving_averages_date", table_name="crypto_moving_averages")
    op.drop_index("idx_crypto_log_returns_date", table_name="crypto_log_returns")

    op.drop_table("crypto_moving_averages")
    op.drop_table("crypto_log_returns")
