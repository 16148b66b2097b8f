"""per-asset risk metrics

Revision ID: 0003
Revises: 0002
Create Date: 2025-11-25

This migration creates the rolling risk metric tables. Every table is
keyed by (crypto_id, date, window_days):

- crypto_volatility
- crypto_var
- crypto_distribution_stats
- crypto_beta
- crypto_sml
"""

from __future__ import annotations

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0003"
down_revision: Union[str, None] = "0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _key_columns() -> List[sa.Column]:
    return [
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "crypto_id",
            sa.Integer,
            sa.ForeignKey("cryptocurrencies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("window_days", sa.Integer, nullable=False),
    ]


def _create_metric_table(name: str, *value_columns: sa.Column) -> None:
    op.create_table(
        name,
        *_key_columns(),
        *value_columns,
        sa.Column("num_observations", sa.Integer, nullable=False),
        sa.UniqueConstraint("crypto_id", "date", "window_days", name=f"uq_{name}_key"),
    )
    op.create_index(f"idx_{name}_date", name, ["date"])


def upgrade() -> None:
    """Create risk metric tables and indexes."""

    _create_metric_table(
        "crypto_volatility",
        sa.Column("daily_volatility", sa.Float, nullable=False),
        sa.Column("annualized_volatility", sa.Float, nullable=False),
        sa.Column("mean_return", sa.Float, nullable=False),
    )
    _create_metric_table(
        "crypto_var",
        sa.Column("var_95", sa.Float, nullable=False),
        sa.Column("var_99", sa.Float, nullable=False),
        sa.Column("cvar_95", sa.Float, nullable=False),
        sa.Column("cvar_99", sa.Float, nullable=False),
        sa.Column("mean_return", sa.Float, nullable=False),
        sa.Column("std_dev", sa.Float, nullable=False),
        sa.Column("min_return", sa.Float, nullable=False),
        sa.Column("max_return", sa.Float, nullable=False),
    )
    _create_metric_table(
        "crypto_distribution_stats",
        sa.Column("skewness", sa.Float, nullable=False),
        sa.Column("kurtosis", sa.Float, nullable=False),
        sa.Column("mean_return", sa.Float, nullable=False),
        sa.Column("std_dev", sa.Float, nullable=False),
    )
    _create_metric_table(
        "crypto_beta",
        sa.Column("beta", sa.Float, nullable=False),
        sa.Column("alpha", sa.Float, nullable=False),
        sa.Column("r_squared", sa.Float, nullable=False),
        sa.Column("correlation", sa.Float, nullable=False),
    )
    _create_metric_table(
        "crypto_sml",
        sa.Column("beta", sa.Float, nullable=False),
        sa.Column("expected_return", sa.Float, nullable=False),
        sa.Column("actual_return", sa.Float, nullable=False),
        sa.Column("alpha", sa.Float, nullable=False),
        sa.Column("is_overvalued", sa.Boolean, nullable=False),
        sa.Column("market_return", sa.Float, nullable=False),
    )


def downgrade() -> None:
    """Drop risk metric tables and indexes."""

    for name in (
        "crypto_sml",
        "crypto_beta",
        "crypto_distribution_stats",
        "crypto_var",
        "crypto_volatility",
    ):
        op.drop_index(f"idx_{name}_date", table_name=name)
        op.drop_table(name)
