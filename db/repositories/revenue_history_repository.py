"""
db/repositories/revenue_history_repository.py

Persistence layer for accumulated dashboard revenue history.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.revenue_observation import UPSERT_COLUMNS, RevenueObservation
from db.repositories.dialects import upsert_insert
from db.repositories.errors import HistoryPersistenceError
from forecast.normalizer import clean_series
from forecast.types import Granularity, Observation

_DEFAULT_BATCH_SIZE = 500


class RevenueHistoryRepository:
    """
    Repository for merging and reading a project's revenue series.

    Merge semantics: storing an observation for a date that already exists
    in the same ``(project_id, granularity)`` series overwrites its revenue.
    Dates not present in the new batch are left untouched, so repeated
    scrapes of overlapping windows accumulate a longer history.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def merge_observations(
        self,
        project_id: str,
        granularity: Granularity | str,
        observations: Iterable[Any],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Upsert observations into the project's series.

        Parameters
        ----------
        project_id:
            Dashboard project identifier.
        granularity:
            Series granularity the observations belong to.
        observations:
            Raw observations (mappings or ``Observation`` instances).
            Malformed rows are dropped; duplicate dates keep the last value.
        batch_size:
            Maximum rows per INSERT statement.

        Returns
        -------
        int
            Number of rows written (inserted + updated).
        """
        resolved = Granularity.parse(granularity)
        if resolved is None:
            raise ValueError(f"Unknown granularity: {granularity!r}")

        cleaned = clean_series(observations)
        if not cleaned:
            return 0

        now = datetime.now(timezone.utc)
        size = max(1, batch_size)
        written = 0
        try:
            for start in range(0, len(cleaned), size):
                chunk = cleaned[start : start + size]
                payloads = [
                    {
                        "id": uuid.uuid4(),
                        "project_id": project_id,
                        "granularity": resolved.value,
                        "observation_date": obs.date,
                        "revenue": obs.revenue,
                        "created_at": now,
                        "updated_at": now,
                    }
                    for obs in chunk
                ]
                stmt = upsert_insert(self._session, RevenueObservation).values(payloads)
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(UPSERT_COLUMNS),
                    set_={
                        "revenue": stmt.excluded.revenue,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                self._session.execute(stmt)
                written += len(payloads)
        except SQLAlchemyError as exc:
            raise HistoryPersistenceError(
                f"Failed to merge revenue history for project '{project_id}': {exc}"
            ) from exc
        return written

    def delete_project(self, project_id: str) -> int:
        """Remove every stored observation of a project. Returns rows deleted."""
        try:
            result = self._session.execute(
                delete(RevenueObservation).where(RevenueObservation.project_id == project_id)
            )
        except SQLAlchemyError as exc:
            raise HistoryPersistenceError(
                f"Failed to delete revenue history for project '{project_id}': {exc}"
            ) from exc
        return int(result.rowcount or 0)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_series(
        self,
        project_id: str,
        granularity: Granularity | str | None = None,
    ) -> list[Observation]:
        """
        Return the merged series ordered by date.

        When ``granularity`` is ``None`` the granularity with the most stored
        rows is used. Returns an empty list when the project has no history.
        """
        resolved = Granularity.parse(granularity) if granularity is not None else None
        if granularity is not None and resolved is None:
            raise ValueError(f"Unknown granularity: {granularity!r}")

        try:
            if resolved is None:
                resolved = self._dominant_granularity(project_id)
                if resolved is None:
                    return []

            stmt = (
                select(RevenueObservation.observation_date, RevenueObservation.revenue)
                .where(
                    RevenueObservation.project_id == project_id,
                    RevenueObservation.granularity == resolved.value,
                )
                .order_by(RevenueObservation.observation_date)
            )
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise HistoryPersistenceError(
                f"Failed to load revenue history for project '{project_id}': {exc}"
            ) from exc

        return [
            Observation(date=_as_date(row.observation_date), revenue=float(row.revenue), granularity=resolved)
            for row in rows
        ]

    def count_by_granularity(self, project_id: str) -> dict[Granularity, int]:
        stmt = (
            select(RevenueObservation.granularity, func.count())
            .where(RevenueObservation.project_id == project_id)
            .group_by(RevenueObservation.granularity)
        )
        try:
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise HistoryPersistenceError(
                f"Failed to count revenue history for project '{project_id}': {exc}"
            ) from exc

        counts: dict[Granularity, int] = {}
        for value, count in rows:
            parsed = Granularity.parse(value)
            if parsed is not None:
                counts[parsed] = int(count)
        return counts

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dominant_granularity(self, project_id: str) -> Granularity | None:
        counts = self.count_by_granularity(project_id)
        if not counts:
            return None
        # Ties resolve to the finer granularity.
        order = [Granularity.DAILY, Granularity.WEEKLY, Granularity.MONTHLY]
        return max(order, key=lambda g: (counts.get(g, 0), -order.index(g)))


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
