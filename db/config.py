"""
db/config.py

Environment-driven database configuration shared by the API, Alembic and
the CLI scripts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = (".env", ".env.local")

_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
_POSTGRES_SCHEMES = ("postgres://", "postgresql://")
_PSYCOPG_SCHEME = "postgresql+psycopg://"


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    """``KEY=VALUE`` (optionally quoted) to a pair; comments and junk to ``None``."""
    text = raw_line.strip()
    if text.startswith("#"):
        return None
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        return None
    return key.strip(), value.strip().strip('"').strip("'")


def load_env_files() -> None:
    """
    Load ``.env`` then ``.env.local`` from the project root into
    ``os.environ``. Variables already set in the process are left alone.
    """

    for name in ENV_FILES:
        path = PROJECT_ROOT / name
        if not path.is_file():
            continue
        pairs = filter(None, map(_parse_env_line, path.read_text(encoding="utf-8").splitlines()))
        for key, value in pairs:
            os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    """Rewrite ``postgres://`` style URLs to the psycopg 3 driver form."""

    for scheme in _POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return _PSYCOPG_SCHEME + url.removeprefix(scheme)
    return url


def _env_value(name: str) -> str | None:
    return (os.getenv(name) or "").strip() or None


def resolve_database_url() -> str:
    """
    Pick the database URL: ``DATABASE_URL``, else ``CLOUD_DATABASE_URL`` when
    ``ENVIRONMENT`` names a deployed stage, else ``LOCAL_DATABASE_URL``.

    Raises
    ------
    RuntimeError
        When none of them is set.
    """

    load_env_files()

    is_cloud = (_env_value("ENVIRONMENT") or "local").lower() in _CLOUD_ENVIRONMENTS
    candidates = [_env_value("DATABASE_URL")]
    if is_cloud:
        candidates.append(_env_value("CLOUD_DATABASE_URL"))
    candidates.append(_env_value("LOCAL_DATABASE_URL"))

    for candidate in candidates:
        if candidate:
            return normalize_postgres_url(candidate)
    raise RuntimeError(
        "Database URL missing: set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
    )


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Engine pool settings for the revenue history store.
    """

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800


def _env_count(name: str, default: int, minimum: int) -> int:
    raw = _env_value(name)
    if raw is None or not raw.lstrip("-").isdigit():
        return default
    return max(minimum, int(raw))


def get_database_settings() -> DatabaseSettings:
    """
    Resolve the URL and pool settings (``SQL_ECHO``, ``DB_POOL_SIZE``,
    ``DB_MAX_OVERFLOW``, ``DB_POOL_RECYCLE``).
    """

    return DatabaseSettings(
        url=resolve_database_url(),
        echo=(_env_value("SQL_ECHO") or "").lower() in {"1", "true", "yes", "on"},
        pool_size=_env_count("DB_POOL_SIZE", 5, minimum=1),
        max_overflow=_env_count("DB_MAX_OVERFLOW", 10, minimum=0),
        pool_recycle_seconds=_env_count("DB_POOL_RECYCLE", 1800, minimum=-1),
    )
