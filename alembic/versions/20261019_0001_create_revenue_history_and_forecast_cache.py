"""create revenue_observations and forecast_cache_entries tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "revenue_observations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "project_id",
            sa.String(length=255),
            nullable=False,
            comment="Dashboard project identifier scraped from the page URL",
        ),
        sa.Column("granularity", sa.String(length=16), nullable=False, comment="daily | weekly | monthly"),
        sa.Column("observation_date", sa.Date(), nullable=False),
        sa.Column("revenue", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_revenue_observations"),
        sa.UniqueConstraint(
            "project_id",
            "granularity",
            "observation_date",
            name="uq_revenue_observations_project_granularity_date",
        ),
    )
    op.create_index("ix_revenue_observations_project_id", "revenue_observations", ["project_id"], unique=False)
    op.create_index(
        "ix_revenue_observations_project_granularity",
        "revenue_observations",
        ["project_id", "granularity"],
        unique=False,
    )

    op.create_table(
        "forecast_cache_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("cache_key", sa.String(length=255), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("cached_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_forecast_cache_entries"),
        sa.UniqueConstraint("cache_key", name="uq_forecast_cache_entries_cache_key"),
    )
    op.create_index("ix_forecast_cache_entries_expires_at", "forecast_cache_entries", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_forecast_cache_entries_expires_at", table_name="forecast_cache_entries")
    op.drop_table("forecast_cache_entries")
    op.drop_index("ix_revenue_observations_project_granularity", table_name="revenue_observations")
    op.drop_index("ix_revenue_observations_project_id", table_name="revenue_observations")
    op.drop_table("revenue_observations")
