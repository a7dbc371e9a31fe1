"""
app/schemas package marker.
"""

from app.schemas.forecast import (
    CacheClearResponse,
    DashboardHTMLRequest,
    DashboardIngestResponse,
    ForecastRequest,
    ForecastResponse,
    HistoryMergeResponse,
    ObservationPayload,
    ProjectForecastResponse,
    RevenueHistoryRequest,
)
from app.schemas.keyword_roi import (
    ConnectionCheckResponse,
    KeywordRevenuePayload,
    KeywordROIRequest,
    KeywordROIResponse,
    KeywordROIRowResponse,
    KeywordROISummaryResponse,
)

__all__ = [
    "CacheClearResponse",
    "ConnectionCheckResponse",
    "DashboardHTMLRequest",
    "DashboardIngestResponse",
    "ForecastRequest",
    "ForecastResponse",
    "HistoryMergeResponse",
    "KeywordRevenuePayload",
    "KeywordROIRequest",
    "KeywordROIResponse",
    "KeywordROIRowResponse",
    "KeywordROISummaryResponse",
    "ObservationPayload",
    "ProjectForecastResponse",
    "RevenueHistoryRequest",
]
