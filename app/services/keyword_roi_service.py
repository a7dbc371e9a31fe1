"""
app/services/keyword_roi_service.py

Joins keyword attribution revenue with Search Ads spend.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import lru_cache

from app.config import get_external_http_settings, get_search_ads_settings
from app.connectors.search_ads_connector import SearchAdsConnector
from app.domain.keyword_roi import (
    DateRange,
    KeywordRevenue,
    KeywordROIRow,
    KeywordROISummary,
    KeywordSpend,
)
from app.services.keyword_matching import match_keyword

logger = logging.getLogger(__name__)

GOOD_ROI_THRESHOLD = 2.0
MODERATE_ROI_THRESHOLD = 1.0


def rate_roi(roi: float | None) -> str | None:
    if roi is None:
        return None
    if roi >= GOOD_ROI_THRESHOLD:
        return "good"
    if roi >= MODERATE_ROI_THRESHOLD:
        return "moderate"
    return "poor"


class KeywordROIService:
    """
    Builds per-keyword ROI rows and a table-level summary.

    The connector is only needed for :meth:`analyze`; the row and summary
    builders work on already-fetched spend data.
    """

    def __init__(self, *, connector: SearchAdsConnector | None = None) -> None:
        self._connector = connector

    def build_rows(
        self,
        keywords: Sequence[KeywordRevenue],
        spend: Mapping[str, KeywordSpend],
    ) -> list[KeywordROIRow]:
        rows: list[KeywordROIRow] = []
        for item in keywords:
            match = match_keyword(item.keyword, spend)
            if match is None:
                rows.append(
                    KeywordROIRow(
                        keyword=item.keyword,
                        revenue=item.revenue,
                        spend=None,
                        roi=None,
                        rating=None,
                        match_type=None,
                    )
                )
                continue

            amount = match.value.spend
            roi = item.revenue / amount if amount > 0 else None
            rows.append(
                KeywordROIRow(
                    keyword=item.keyword,
                    revenue=item.revenue,
                    spend=amount,
                    roi=roi,
                    rating=rate_roi(roi),
                    match_type=match.match_type,
                    matched_keyword=match.keyword,
                )
            )
        return rows

    @staticmethod
    def summarize(rows: Sequence[KeywordROIRow]) -> KeywordROISummary:
        total_revenue = sum(row.revenue for row in rows)
        matched = [row for row in rows if row.match_type is not None]
        total_spend = sum(row.spend or 0.0 for row in matched)
        return KeywordROISummary(
            total_revenue=total_revenue,
            total_spend=total_spend,
            overall_roi=total_revenue / total_spend if total_spend > 0 else None,
            matched_keywords=len(matched),
            total_keywords=len(rows),
            match_rate=len(matched) / len(rows) if rows else 0.0,
        )

    def analyze(
        self,
        keywords: Sequence[KeywordRevenue],
        date_range: DateRange,
    ) -> tuple[list[KeywordROIRow], KeywordROISummary]:
        """
        Fetch spend for ``date_range`` and join it with ``keywords``.

        Raises the connector's configuration/auth/request errors unchanged.
        """

        if self._connector is None:
            raise RuntimeError("KeywordROIService was built without a Search Ads connector.")

        spend = self._connector.fetch_keyword_spend(date_range)
        rows = self.build_rows(keywords, spend)
        summary = self.summarize(rows)
        logger.info(
            "Keyword ROI computed keywords=%s matched=%s overall_roi=%s",
            summary.total_keywords,
            summary.matched_keywords,
            summary.overall_roi,
        )
        return rows, summary


@lru_cache(maxsize=1)
def get_search_ads_connector() -> SearchAdsConnector:
    """
    Build and cache the process-wide Search Ads connector (shares its token cache).
    """

    return SearchAdsConnector(
        settings=get_search_ads_settings(),
        http_settings=get_external_http_settings(),
    )


def get_keyword_roi_service() -> KeywordROIService:
    return KeywordROIService(connector=get_search_ads_connector())
