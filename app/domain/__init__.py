"""
app/domain package marker.
"""

from app.domain.keyword_roi import (
    ConnectionCheckResult,
    DateRange,
    KeywordRevenue,
    KeywordROIRow,
    KeywordROISummary,
    KeywordSpend,
    normalize_keyword,
)

__all__ = [
    "ConnectionCheckResult",
    "DateRange",
    "KeywordRevenue",
    "KeywordROIRow",
    "KeywordROISummary",
    "KeywordSpend",
    "normalize_keyword",
]
