"""
db/session.py

Engine, session factory and session scopes for the revenue history store.

Nothing connects at import time: the engine is built on first use, so tests
can run against SQLite through dependency overrides.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings, get_database_settings


def create_db_engine(settings: DatabaseSettings | None = None) -> Engine:
    """
    Build a pooled PostgreSQL engine from *settings* (environment by default).
    """

    resolved = settings or get_database_settings()
    if not resolved.url.startswith("postgresql"):
        raise RuntimeError(f"Unsupported database URL scheme {resolved.url.split(':', 1)[0]!r}.")

    return create_engine(
        resolved.url,
        echo=resolved.echo,
        pool_size=resolved.pool_size,
        max_overflow=resolved.max_overflow,
        pool_recycle=resolved.pool_recycle_seconds,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def _session_maker() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    return _session_maker()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for scripts and background jobs.

    Services commit their own work; anything left uncommitted when the block
    raises is rolled back.
    """
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    with session_scope() as db:
        yield db
