"""
app/domain/keyword_roi.py

Domain models for keyword attribution and Search Ads spend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class KeywordRevenue:
    """
    One row of the dashboard's keyword attribution table.
    """

    keyword: str
    revenue: float


@dataclass(frozen=True)
class KeywordSpend:
    """
    Search Ads totals for one keyword over the requested date range.
    """

    spend: float = 0.0
    impressions: int = 0
    taps: int = 0
    installs: int = 0


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive reporting window.
    """

    start: date
    end: date


@dataclass(frozen=True)
class ConnectionCheckResult:
    success: bool
    message: str


@dataclass(frozen=True)
class KeywordROIRow:
    """
    Attribution revenue joined with ad spend for one keyword.

    ``roi`` and ``rating`` are ``None`` when the keyword has no matched
    spend or the spend is zero.
    """

    keyword: str
    revenue: float
    spend: float | None
    roi: float | None
    rating: str | None
    match_type: str | None
    matched_keyword: str | None = None


@dataclass(frozen=True)
class KeywordROISummary:
    total_revenue: float
    total_spend: float
    overall_roi: float | None
    matched_keywords: int
    total_keywords: int
    match_rate: float


def normalize_keyword(keyword: str) -> str:
    """Lookup form of a keyword: lower-cased, trimmed, inner whitespace collapsed."""
    return " ".join(keyword.lower().split())
