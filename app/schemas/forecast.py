"""
app/schemas/forecast.py

Request and response schemas for forecast and revenue history operations.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from forecast.types import Granularity


class ObservationPayload(BaseModel):
    """
    One raw revenue observation. Values are validated by the engine, which
    drops malformed rows instead of rejecting the request.
    """

    model_config = ConfigDict(extra="ignore")

    date: Any = None
    revenue: Any = None
    granularity: Any = None


class ForecastRequest(BaseModel):
    series: list[ObservationPayload] = Field(default_factory=list)
    granularity: Granularity | None = None
    now: date | None = Field(default=None, description="Evaluation date; defaults to today (UTC)")
    variance_override: float | None = Field(
        default=None,
        description="Confidence width in percent (10-50); 0 means automatic",
    )


class ForecastResponse(BaseModel):
    granularity: Granularity
    forecast: dict[str, Any]


class RevenueHistoryRequest(BaseModel):
    observations: list[ObservationPayload] = Field(default_factory=list)
    granularity: Granularity | None = None


class DashboardHTMLRequest(BaseModel):
    html: str = Field(..., min_length=1)
    page_url: str | None = None


class HistoryMergeResponse(BaseModel):
    project_id: str
    granularity: Granularity | None = None
    rows_written: int = Field(..., ge=0)


class DashboardIngestResponse(HistoryMergeResponse):
    points_parsed: int = Field(..., ge=0)


class ProjectForecastResponse(BaseModel):
    project_id: str
    granularity: Granularity
    cached: bool
    forecast: dict[str, Any]


class CacheClearResponse(BaseModel):
    removed: int = Field(..., ge=0)
