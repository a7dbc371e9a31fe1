"""
db/repositories/forecast_cache_repository.py

TTL cache of serialized forecast results, stored in ``forecast_cache_entries``.

The caller controls commit/rollback; this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.forecast_cache_entry import ForecastCacheEntry
from db.repositories.dialects import upsert_insert
from db.repositories.errors import CachePersistenceError


class ForecastCacheRepository:
    """
    Key/value store with per-entry expiry.

    Expired entries behave exactly like missing ones: :meth:`get` deletes
    them and reports a miss. :meth:`purge_expired` sweeps the rest.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, key: str, *, now: datetime) -> dict[str, Any] | None:
        now = _as_utc(now)
        try:
            entry = self._session.scalars(
                select(ForecastCacheEntry)
                .where(ForecastCacheEntry.cache_key == key)
                .execution_options(populate_existing=True)
            ).first()
            if entry is None:
                return None
            if _as_utc(entry.expires_at) <= now:
                self._session.delete(entry)
                self._session.flush()
                return None
        except SQLAlchemyError as exc:
            raise CachePersistenceError(f"Failed to read cache entry '{key}': {exc}") from exc
        return dict(entry.payload)

    def set(
        self,
        key: str,
        payload: dict[str, Any],
        *,
        ttl_seconds: int,
        now: datetime,
    ) -> None:
        """
        Store ``payload`` under ``key`` for ``ttl_seconds``, replacing any
        existing entry.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")

        cached_at = _as_utc(now)
        expires_at = cached_at + timedelta(seconds=ttl_seconds)
        stmt = upsert_insert(self._session, ForecastCacheEntry).values(
            id=uuid.uuid4(),
            cache_key=key,
            payload=payload,
            cached_at=cached_at,
            expires_at=expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["cache_key"],
            set_={
                "payload": stmt.excluded.payload,
                "cached_at": stmt.excluded.cached_at,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        try:
            self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise CachePersistenceError(f"Failed to write cache entry '{key}': {exc}") from exc

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""
        stmt = delete(ForecastCacheEntry).where(ForecastCacheEntry.cache_key.startswith(prefix, autoescape=True))
        return self._execute_delete(stmt, f"invalidate prefix '{prefix}'")

    def purge_expired(self, now: datetime) -> int:
        stmt = delete(ForecastCacheEntry).where(ForecastCacheEntry.expires_at <= _as_utc(now))
        return self._execute_delete(stmt, "purge expired entries")

    def clear_all(self) -> int:
        return self._execute_delete(delete(ForecastCacheEntry), "clear cache")

    def _execute_delete(self, stmt: Any, action: str) -> int:
        try:
            result = self._session.execute(stmt, execution_options={"synchronize_session": False})
        except SQLAlchemyError as exc:
            raise CachePersistenceError(f"Failed to {action}: {exc}") from exc
        return int(result.rowcount or 0)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored value is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
