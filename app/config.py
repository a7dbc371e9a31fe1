"""
app/config.py

Application settings read from the environment (and project ``.env`` files).
Each settings group is a frozen dataclass behind an ``lru_cache`` getter;
tests clear the getter cache after patching the environment.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import TypeVar

from db.config import load_env_files

T = TypeVar("T")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _env(name: str) -> str | None:
    """Stripped value of *name*, or ``None`` when unset or blank."""
    _load_env_once()
    value = (os.getenv(name) or "").strip()
    return value or None


def _env_parsed(name: str, parse: Callable[[str], T], default: T) -> T:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    return _env_parsed(name, lambda raw: raw.lower() in _TRUTHY, default)


def _get_int_env(name: str, default: int) -> int:
    return _env_parsed(name, int, default)


def _get_float_env(name: str, default: float) -> float:
    return _env_parsed(name, float, default)


def _get_str_env(name: str, default: str) -> str:
    return _env(name) or default


def _get_optional_str_env(name: str) -> str | None:
    return _env(name)


@dataclass(frozen=True)
class ForecastSettings:
    """
    Forecast engine defaults applied by the service layer.

    ``variance_override`` is a percent: 0 keeps the computed variance,
    10-50 pins the confidence width. Requests may supply their own value.
    """

    variance_override: float = 0.0
    cache_ttl_seconds: int = 43200
    forecasting_enabled: bool = True


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class SearchAdsSettings:
    """
    Apple Search Ads connector settings.
    """

    enabled: bool = True
    client_id: str | None = None
    client_secret: str | None = None
    org_id: str | None = None
    token_url: str = "https://appleid.apple.com/auth/oauth2/token"
    api_base_url: str = "https://api.searchads.apple.com/api/v5"
    page_limit: int = 1000
    token_expiry_buffer_seconds: int = 60

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.org_id)


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Background job settings.
    """

    enabled: bool = True
    cache_purge_interval_minutes: int = 60


@lru_cache(maxsize=1)
def get_forecast_settings() -> ForecastSettings:
    """
    Return cached forecast settings from environment variables.
    """

    return ForecastSettings(
        variance_override=_get_float_env("FORECAST_VARIANCE_OVERRIDE", 0.0),
        cache_ttl_seconds=max(1, _get_int_env("FORECAST_CACHE_TTL_SECONDS", 43200)),
        forecasting_enabled=_get_bool_env("FORECASTING_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_search_ads_settings() -> SearchAdsSettings:
    """
    Return Search Ads connector settings from environment variables.
    """

    return SearchAdsSettings(
        enabled=_get_bool_env("SEARCH_ADS_ENABLED", True),
        client_id=_get_optional_str_env("SEARCH_ADS_CLIENT_ID"),
        client_secret=_get_optional_str_env("SEARCH_ADS_CLIENT_SECRET"),
        org_id=_get_optional_str_env("SEARCH_ADS_ORG_ID"),
        token_url=_get_str_env("SEARCH_ADS_TOKEN_URL", "https://appleid.apple.com/auth/oauth2/token"),
        api_base_url=_get_str_env("SEARCH_ADS_API_BASE_URL", "https://api.searchads.apple.com/api/v5"),
        page_limit=min(1000, max(1, _get_int_env("SEARCH_ADS_PAGE_LIMIT", 1000))),
        token_expiry_buffer_seconds=max(0, _get_int_env("SEARCH_ADS_TOKEN_EXPIRY_BUFFER_SECONDS", 60)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return background scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        cache_purge_interval_minutes=max(1, _get_int_env("FORECAST_CACHE_PURGE_INTERVAL_MINUTES", 60)),
    )
