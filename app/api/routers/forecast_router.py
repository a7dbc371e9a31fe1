"""
app/api/routers/forecast_router.py

Forecast, revenue history and cache endpoints.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.schemas.forecast import (
    CacheClearResponse,
    DashboardHTMLRequest,
    DashboardIngestResponse,
    ForecastRequest,
    ForecastResponse,
    HistoryMergeResponse,
    ProjectForecastResponse,
    RevenueHistoryRequest,
)
from app.services.forecast_service import (
    DashboardParseError,
    ForecastingDisabledError,
    ForecastService,
    InsufficientHistoryError,
    ProjectHistoryNotFoundError,
    get_forecast_service,
)
from db.repositories.errors import StorageError
from db.session import get_db
from forecast.types import Granularity

logger = logging.getLogger(__name__)

router = APIRouter(tags=["forecast"])


def _storage_failure(exc: StorageError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Storage failure: {exc}",
    )


def _disabled(exc: ForecastingDisabledError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.post("/forecasts", response_model=ForecastResponse)
def create_forecast(
    body: ForecastRequest,
    forecast_service: ForecastService = Depends(get_forecast_service),
) -> ForecastResponse:
    """
    Run the engine over the posted series without touching storage.

    Raises HTTP 422 when fewer than three valid observations are supplied.
    """

    now = body.now or datetime.now(tz=timezone.utc).date()
    try:
        payload = forecast_service.forecast_series(
            [item.model_dump() for item in body.series],
            body.granularity,
            now=now,
            variance_override=body.variance_override,
        )
    except ForecastingDisabledError as exc:
        raise _disabled(exc) from exc

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="At least 3 valid observations are required to forecast.",
        )
    return ForecastResponse(granularity=Granularity(payload["granularity"]), forecast=payload)


@router.post("/projects/{project_id}/revenue-history", response_model=HistoryMergeResponse)
def merge_revenue_history(
    project_id: str,
    body: RevenueHistoryRequest,
    db: Session = Depends(get_db),
    forecast_service: ForecastService = Depends(get_forecast_service),
) -> HistoryMergeResponse:
    """
    Merge observations into the project's stored series (last write wins per date).
    """

    try:
        result = forecast_service.record_history(
            db=db,
            project_id=project_id,
            observations=[item.model_dump() for item in body.observations],
            granularity=body.granularity,
        )
    except StorageError as exc:
        raise _storage_failure(exc) from exc

    return HistoryMergeResponse(
        project_id=result.project_id,
        granularity=result.granularity,
        rows_written=result.rows_written,
    )


@router.post("/projects/{project_id}/revenue-history/html", response_model=DashboardIngestResponse)
def merge_dashboard_html(
    project_id: str,
    body: DashboardHTMLRequest,
    db: Session = Depends(get_db),
    forecast_service: ForecastService = Depends(get_forecast_service),
) -> DashboardIngestResponse:
    """
    Parse a captured dashboard page and merge its revenue series.

    Raises HTTP 400 when the page holds no recognizable revenue series.
    """

    try:
        parsed, result = forecast_service.record_dashboard_html(
            db=db,
            project_id=project_id,
            html=body.html,
            page_url=body.page_url,
        )
    except DashboardParseError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        raise _storage_failure(exc) from exc

    return DashboardIngestResponse(
        project_id=result.project_id,
        granularity=result.granularity,
        rows_written=result.rows_written,
        points_parsed=len(parsed.observations),
    )


@router.get("/projects/{project_id}/forecast", response_model=ProjectForecastResponse)
def get_project_forecast(
    project_id: str,
    granularity: Granularity | None = Query(default=None),
    variance_override: float | None = Query(default=None, description="Percent, 10-50; 0 = auto"),
    db: Session = Depends(get_db),
    forecast_service: ForecastService = Depends(get_forecast_service),
) -> ProjectForecastResponse:
    """
    Forecast the project's stored history, served from the cache when fresh.

    Raises HTTP 404 when no history is stored and HTTP 422 when it is too short.
    """

    try:
        result = forecast_service.get_project_forecast(
            db=db,
            project_id=project_id,
            now=datetime.now(tz=timezone.utc),
            granularity=granularity,
            variance_override=variance_override,
        )
    except ForecastingDisabledError as exc:
        raise _disabled(exc) from exc
    except ProjectHistoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InsufficientHistoryError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except StorageError as exc:
        raise _storage_failure(exc) from exc

    return ProjectForecastResponse(
        project_id=result.project_id,
        granularity=result.granularity,
        cached=result.cached,
        forecast=result.payload,
    )


@router.delete("/cache", response_model=CacheClearResponse)
def clear_forecast_cache(
    db: Session = Depends(get_db),
    forecast_service: ForecastService = Depends(get_forecast_service),
) -> CacheClearResponse:
    try:
        removed = forecast_service.clear_cache(db=db)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    return CacheClearResponse(removed=removed)
