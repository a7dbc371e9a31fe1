"""
db/models/forecast_cache_entry.py

TTL cache for derived forecast payloads.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ForecastCacheEntry(Base):
    """
    One cached JSON payload, valid until ``expires_at``.

    Columns
    -------
    cache_key   – unique lookup key (e.g. ``forecast:<project>:<granularity>:<date>``).
    payload     – serialized result as produced by the engine.
    cached_at   – UTC time the entry was written.
    expires_at  – UTC time after which the entry is treated as missing.
    """

    __tablename__ = "forecast_cache_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    cache_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    cached_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        Index("ix_forecast_cache_entries_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<ForecastCacheEntry key={self.cache_key!r} expires_at={self.expires_at}>"
