"""
app/schemas/keyword_roi.py

Schemas for keyword ROI and Search Ads connection endpoints.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class KeywordRevenuePayload(BaseModel):
    keyword: str = Field(..., min_length=1)
    revenue: float = Field(..., ge=0)


class KeywordROIRequest(BaseModel):
    """
    Either ``keywords`` or the attribution page ``html`` must be supplied.
    The date range falls back to the page URL query or the page's range label.
    """

    keywords: list[KeywordRevenuePayload] | None = None
    html: str | None = None
    page_url: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class KeywordROIRowResponse(BaseModel):
    keyword: str
    revenue: float
    spend: float | None = None
    roi: float | None = None
    rating: str | None = None
    match_type: str | None = None
    matched_keyword: str | None = None


class KeywordROISummaryResponse(BaseModel):
    total_revenue: float
    total_spend: float
    overall_roi: float | None = None
    matched_keywords: int = Field(..., ge=0)
    total_keywords: int = Field(..., ge=0)
    match_rate: float = Field(..., ge=0, le=1)


class KeywordROIResponse(BaseModel):
    start_date: date
    end_date: date
    rows: list[KeywordROIRowResponse]
    summary: KeywordROISummaryResponse


class ConnectionCheckResponse(BaseModel):
    success: bool
    message: str
