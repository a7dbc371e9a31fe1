"""
app/api/routers/keyword_roi_router.py

Keyword ROI and Search Ads connection endpoints.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup
from fastapi import APIRouter, Depends, HTTPException, status

from app.connectors.base import ConnectorRequestError
from app.connectors.search_ads_connector import (
    SearchAdsAuthError,
    SearchAdsConfigurationError,
    SearchAdsConnector,
)
from app.domain.keyword_roi import DateRange, KeywordRevenue
from app.schemas.keyword_roi import (
    ConnectionCheckResponse,
    KeywordROIRequest,
    KeywordROIResponse,
    KeywordROIRowResponse,
    KeywordROISummaryResponse,
)
from app.scraping.parsing.dashboard_parsers import DashboardParsingLayer
from app.services.keyword_roi_service import (
    KeywordROIService,
    get_keyword_roi_service,
    get_search_ads_connector,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["keyword-roi"])


def _resolve_inputs(body: KeywordROIRequest) -> tuple[list[KeywordRevenue], DateRange]:
    soup = BeautifulSoup(body.html, "html.parser") if body.html else None

    if body.keywords is not None:
        keywords = [KeywordRevenue(keyword=k.keyword, revenue=k.revenue) for k in body.keywords]
    elif soup is not None:
        keywords = DashboardParsingLayer.extract_keywords(DashboardParsingLayer.find_attribution_table(soup))
    else:
        raise ValueError("Provide either 'keywords' or the attribution page 'html'.")

    if body.start_date and body.end_date:
        date_range = DateRange(start=body.start_date, end=body.end_date)
    else:
        date_range = DashboardParsingLayer.extract_date_range(soup, body.page_url)
    if date_range is None:
        raise ValueError("No date range supplied or found on the page.")
    if date_range.start > date_range.end:
        raise ValueError("start_date must not be after end_date.")
    return keywords, date_range


@router.post("/keyword-roi", response_model=KeywordROIResponse)
def keyword_roi(
    body: KeywordROIRequest,
    roi_service: KeywordROIService = Depends(get_keyword_roi_service),
) -> KeywordROIResponse:
    """
    Join attribution revenue with Search Ads spend for the date range.

    Raises HTTP 400 for missing inputs, 503 when Search Ads is not
    configured, 502 when the Search Ads API fails.
    """

    try:
        keywords, date_range = _resolve_inputs(body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        rows, summary = roi_service.analyze(keywords, date_range)
    except SearchAdsConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except SearchAdsAuthError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ConnectorRequestError as exc:
        logger.error("Search Ads report failed error=%s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return KeywordROIResponse(
        start_date=date_range.start,
        end_date=date_range.end,
        rows=[
            KeywordROIRowResponse(
                keyword=row.keyword,
                revenue=row.revenue,
                spend=row.spend,
                roi=row.roi,
                rating=row.rating,
                match_type=row.match_type,
                matched_keyword=row.matched_keyword,
            )
            for row in rows
        ],
        summary=KeywordROISummaryResponse(
            total_revenue=summary.total_revenue,
            total_spend=summary.total_spend,
            overall_roi=summary.overall_roi,
            matched_keywords=summary.matched_keywords,
            total_keywords=summary.total_keywords,
            match_rate=summary.match_rate,
        ),
    )


@router.get("/search-ads/connection", response_model=ConnectionCheckResponse)
def search_ads_connection(
    connector: SearchAdsConnector = Depends(get_search_ads_connector),
) -> ConnectionCheckResponse:
    result = connector.test_connection()
    return ConnectionCheckResponse(success=result.success, message=result.message)
