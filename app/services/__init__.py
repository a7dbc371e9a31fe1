"""
app/services package marker.
"""

from app.services.forecast_service import (
    DashboardParseError,
    ForecastingDisabledError,
    ForecastService,
    InsufficientHistoryError,
    ProjectHistoryNotFoundError,
    get_forecast_service,
)
from app.services.keyword_roi_service import KeywordROIService, get_keyword_roi_service

__all__ = [
    "DashboardParseError",
    "ForecastingDisabledError",
    "ForecastService",
    "InsufficientHistoryError",
    "ProjectHistoryNotFoundError",
    "get_forecast_service",
    "KeywordROIService",
    "get_keyword_roi_service",
]
