"""
app/services/forecast_service.py

Coordinates revenue history persistence, the forecast cache and the engine.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any

from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from app.config import ForecastSettings, get_forecast_settings
from app.logging_utils import log_event
from app.scraping.parsing.dashboard_parsers import DashboardParsingLayer
from app.scraping.types import ParsedRevenueTable
from db.repositories.errors import StorageError
from db.repositories.forecast_cache_repository import ForecastCacheRepository
from db.repositories.revenue_history_repository import RevenueHistoryRepository
from forecast.aggregators import resolve_variance_override
from forecast.normalizer import clean_series, resolve_granularity
from forecast.orchestrator import ForecastOrchestrator
from forecast.types import Granularity

logger = logging.getLogger(__name__)


class ForecastingDisabledError(RuntimeError):
    """
    Raised when forecasting is switched off via FORECASTING_ENABLED.
    """


class ProjectHistoryNotFoundError(LookupError):
    """
    Raised when a project has no stored revenue history.
    """


class InsufficientHistoryError(ValueError):
    """
    Raised when stored history is too short to forecast.
    """


class DashboardParseError(ValueError):
    """
    Raised when no revenue series can be found in a dashboard page.
    """


@dataclass(frozen=True)
class ProjectForecast:
    """
    Serialized forecast for a stored project plus cache provenance.
    """

    project_id: str
    granularity: Granularity
    payload: dict[str, Any]
    cached: bool


@dataclass(frozen=True)
class HistoryMergeResult:
    project_id: str
    granularity: Granularity | None
    rows_written: int


class ForecastService:
    """
    Service-layer entry points for forecasting.

    The engine itself is pure; this class adds persistence (merge-by-date
    history), a TTL cache keyed by project, granularity, evaluation date and
    variance setting, and commit/rollback handling.
    """

    def __init__(
        self,
        *,
        settings: ForecastSettings,
        orchestrator: ForecastOrchestrator | None = None,
    ) -> None:
        self._settings = settings
        self._orchestrator = orchestrator or ForecastOrchestrator()

    # ------------------------------------------------------------------
    # Stateless
    # ------------------------------------------------------------------

    def forecast_series(
        self,
        series: Iterable[Any],
        granularity: Granularity | str | None = None,
        *,
        now: date | datetime,
        variance_override: float | None = None,
    ) -> dict[str, Any] | None:
        """
        Run the engine over a caller-supplied series; ``None`` when it is too short.
        """

        self._ensure_enabled()
        result = self._orchestrator.generate_forecast(
            series,
            granularity,
            now=now,
            variance_override=self._variance_for(variance_override),
        )
        return result.to_json_dict() if result is not None else None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record_history(
        self,
        *,
        db: Session,
        project_id: str,
        observations: Iterable[Any],
        granularity: Granularity | str | None = None,
    ) -> HistoryMergeResult:
        """
        Merge observations into the project's stored series.

        Granularity resolution follows the engine: an explicit value, then the
        row tags, then spacing. Cached forecasts of the project are dropped.
        """

        cleaned = clean_series(observations)
        if not cleaned:
            return HistoryMergeResult(project_id=project_id, granularity=None, rows_written=0)

        resolved = resolve_granularity(cleaned, granularity)
        history = RevenueHistoryRepository(db)
        cache = ForecastCacheRepository(db)
        try:
            written = history.merge_observations(project_id, resolved, cleaned)
            cache.invalidate_prefix(_project_cache_prefix(project_id))
            db.commit()
        except StorageError:
            db.rollback()
            logger.exception("Failed to merge revenue history project=%s", project_id)
            raise

        log_event(
            logger,
            logging.INFO,
            "revenue_history_merged",
            project_id=project_id,
            granularity=resolved.value,
            rows_written=written,
        )
        return HistoryMergeResult(project_id=project_id, granularity=resolved, rows_written=written)

    def record_dashboard_html(
        self,
        *,
        db: Session,
        project_id: str | None,
        html: str,
        page_url: str | None = None,
    ) -> tuple[ParsedRevenueTable, HistoryMergeResult]:
        """
        Parse a dashboard page and merge its revenue series.

        ``project_id`` falls back to the id in ``page_url``.
        """

        resolved_project = project_id or DashboardParsingLayer.extract_project_id(page_url)
        if not resolved_project:
            raise DashboardParseError("No project id supplied or found in the page URL.")

        soup = BeautifulSoup(html, "html.parser")
        parsed = DashboardParsingLayer.parse_revenue_series(soup)
        if parsed is None:
            raise DashboardParseError("No revenue series found in the dashboard page.")

        merged = self.record_history(
            db=db,
            project_id=resolved_project,
            observations=parsed.observations,
            granularity=parsed.granularity,
        )
        return parsed, merged

    # ------------------------------------------------------------------
    # Cached project forecast
    # ------------------------------------------------------------------

    def get_project_forecast(
        self,
        *,
        db: Session,
        project_id: str,
        now: datetime,
        granularity: Granularity | str | None = None,
        variance_override: float | None = None,
    ) -> ProjectForecast:
        """
        Forecast a stored project, serving from the cache when possible.

        Raises
        ------
        ProjectHistoryNotFoundError
            The project has no stored history.
        InsufficientHistoryError
            Fewer than three valid observations are stored.
        """

        self._ensure_enabled()
        now = _as_utc(now)
        history = RevenueHistoryRepository(db)
        series = history.get_series(project_id, granularity)
        if not series:
            raise ProjectHistoryNotFoundError(f"No revenue history stored for project '{project_id}'.")

        resolved = series[0].granularity or resolve_granularity(series, granularity)
        variance = self._variance_for(variance_override)
        key = forecast_cache_key(project_id, resolved, now.date(), variance)

        cache = ForecastCacheRepository(db)
        try:
            cached = cache.get(key, now=now)
            if cached is not None:
                db.commit()
                logger.info("Forecast cache hit project=%s key=%s", project_id, key)
                return ProjectForecast(project_id=project_id, granularity=resolved, payload=cached, cached=True)

            result = self._orchestrator.generate_forecast(
                series,
                resolved,
                now=now.date(),
                variance_override=variance,
            )
            if result is None:
                db.commit()
                raise InsufficientHistoryError(
                    f"Project '{project_id}' has fewer than 3 valid observations."
                )

            payload = result.to_json_dict()
            cache.set(key, payload, ttl_seconds=self._settings.cache_ttl_seconds, now=now)
            db.commit()
        except StorageError:
            db.rollback()
            logger.exception("Forecast cache failure project=%s key=%s", project_id, key)
            raise

        logger.info("Forecast cache miss project=%s key=%s", project_id, key)
        return ProjectForecast(project_id=project_id, granularity=resolved, payload=payload, cached=False)

    def clear_cache(self, *, db: Session) -> int:
        cache = ForecastCacheRepository(db)
        try:
            removed = cache.clear_all()
            db.commit()
        except StorageError:
            db.rollback()
            raise
        logger.info("Forecast cache cleared entries=%s", removed)
        return removed

    def purge_expired(self, *, db: Session, now: datetime) -> int:
        cache = ForecastCacheRepository(db)
        try:
            removed = cache.purge_expired(_as_utc(now))
            db.commit()
        except StorageError:
            db.rollback()
            raise
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_enabled(self) -> None:
        if not self._settings.forecasting_enabled:
            raise ForecastingDisabledError("Forecasting is disabled (FORECASTING_ENABLED=false).")

    def _variance_for(self, requested: float | None) -> float | None:
        """
        Effective override in percent; a request value wins over the configured default.
        """

        if requested is not None:
            return requested
        return self._settings.variance_override or None


def forecast_cache_key(
    project_id: str,
    granularity: Granularity,
    as_of: date,
    variance_override: float | None,
) -> str:
    fraction = resolve_variance_override(variance_override)
    variance_part = f"v{round(fraction * 100)}" if fraction is not None else "auto"
    return f"{_project_cache_prefix(project_id)}{granularity.value}:{as_of.isoformat()}:{variance_part}"


def _project_cache_prefix(project_id: str) -> str:
    return f"forecast:{project_id}:"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@lru_cache(maxsize=1)
def get_forecast_service() -> ForecastService:
    """
    Build and cache the forecast service with env-driven settings.
    """

    return ForecastService(settings=get_forecast_settings())
