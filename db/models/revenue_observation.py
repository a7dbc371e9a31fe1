"""
db/models/revenue_observation.py

Accumulated revenue history scraped from the analytics dashboard.
One row per project, granularity and observation date.
"""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Date, Float, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

UPSERT_COLUMNS = ("project_id", "granularity", "observation_date")


class RevenueObservation(Base, TimestampMixin):
    """
    A single revenue data point for a dashboard project.

    The unique constraint on ``(project_id, granularity, observation_date)``
    drives merge-by-date semantics: storing a date that already exists
    overwrites its revenue (last write wins) instead of inserting a duplicate.
    Daily, weekly and monthly series of the same project are kept apart.
    """

    __tablename__ = "revenue_observations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Dashboard project identifier scraped from the page URL",
    )
    granularity: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="daily | weekly | monthly",
    )
    observation_date: Mapped[date] = mapped_column(Date, nullable=False)
    revenue: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint(*UPSERT_COLUMNS, name="uq_revenue_observations_project_granularity_date"),
        Index("ix_revenue_observations_project_id", "project_id"),
        Index("ix_revenue_observations_project_granularity", "project_id", "granularity"),
    )

    def __repr__(self) -> str:
        return (
            f"<RevenueObservation project={self.project_id!r} "
            f"granularity={self.granularity} date={self.observation_date} "
            f"revenue={self.revenue}>"
        )
