"""
tests/test_keyword_roi.py

Keyword matching and ROI aggregation for the Search Ads join.
"""

from __future__ import annotations

from datetime import date

import pytest

from app.domain.keyword_roi import DateRange, KeywordRevenue, KeywordSpend, normalize_keyword
from app.services.keyword_matching import dice_similarity, match_keyword
from app.services.keyword_roi_service import KeywordROIService, rate_roi


class TestNormalizeKeyword:
    def test_collapses_case_and_whitespace(self) -> None:
        assert normalize_keyword("  Meditation\tAPP  ") == "meditation app"


class TestMatching:
    def test_exact_match_ignores_case(self) -> None:
        match = match_keyword("Meditation App", {"meditation app": 1, "meditation": 2})

        assert match.match_type == "exact"
        assert match.value == 1
        assert match.score == 1.0

    def test_containment_match(self) -> None:
        match = match_keyword("meditation app", {"meditation apps": "x"})

        assert match.match_type == "contains"
        assert match.keyword == "meditation apps"
        assert match.score == pytest.approx(14 / 15)

    def test_short_fragment_is_not_a_match(self) -> None:
        assert match_keyword("cat", {"cat photo editor pro": 500.0}) is None
        assert match_keyword("sleep sounds", {"sleep": 1.0, "sleep sounds app": 2.0}) is None

    def test_best_containing_candidate_wins(self) -> None:
        candidates = {
            "white noise sleep sounds app": 1.0,
            "white noise sleep sound": 2.0,
        }
        match = match_keyword("white noise sleep sounds", candidates)

        assert match.match_type == "contains"
        assert match.keyword == "white noise sleep sound"
        assert match.score == pytest.approx(23 / 24)

    def test_similarity_match(self) -> None:
        match = match_keyword("meditation music", {"meditaton music": 7, "running": 1})

        assert match.match_type == "similar"
        assert match.value == 7
        assert match.score >= 0.85

    def test_no_match(self) -> None:
        assert match_keyword("sleep sounds", {"meditation music": 1}) is None

    def test_empty_keyword(self) -> None:
        assert match_keyword("   ", {"anything": 1}) is None

    def test_dice_similarity(self) -> None:
        assert dice_similarity("night", "night") == 1.0
        assert dice_similarity("a", "ab") == 0.0
        assert dice_similarity("night", "nacht") == pytest.approx(0.25)


class TestRating:
    @pytest.mark.parametrize(
        "roi, expected",
        [(None, None), (0.5, "poor"), (1.0, "moderate"), (1.99, "moderate"), (2.0, "good"), (7.5, "good")],
    )
    def test_rate_roi(self, roi, expected) -> None:
        assert rate_roi(roi) == expected


class _StubConnector:
    def __init__(self, spend: dict[str, KeywordSpend]) -> None:
        self.spend = spend
        self.requested: list[DateRange] = []

    def fetch_keyword_spend(self, date_range: DateRange) -> dict[str, KeywordSpend]:
        self.requested.append(date_range)
        return self.spend


@pytest.fixture()
def spend() -> dict[str, KeywordSpend]:
    return {
        "meditation app": KeywordSpend(spend=100.0, impressions=1000, taps=50, installs=10),
        "sleep sounds": KeywordSpend(spend=100.0),
        "running": KeywordSpend(spend=0.0),
    }


@pytest.fixture()
def keywords() -> list[KeywordRevenue]:
    return [
        KeywordRevenue("Meditation App", 300.0),
        KeywordRevenue("sleep sound", 50.0),
        KeywordRevenue("yoga", 10.0),
    ]


class TestKeywordROIService:
    def test_build_rows(self, keywords, spend) -> None:
        rows = KeywordROIService().build_rows(keywords, spend)

        meditation, sleep, yoga = rows
        assert meditation.match_type == "exact"
        assert meditation.roi == pytest.approx(3.0)
        assert meditation.rating == "good"

        assert sleep.match_type == "contains"
        assert sleep.matched_keyword == "sleep sounds"
        assert sleep.roi == pytest.approx(0.5)
        assert sleep.rating == "poor"

        assert yoga.match_type is None
        assert yoga.spend is None
        assert yoga.roi is None

    def test_zero_spend_has_no_roi(self, spend) -> None:
        rows = KeywordROIService().build_rows([KeywordRevenue("running", 40.0)], spend)

        assert rows[0].match_type == "exact"
        assert rows[0].spend == 0.0
        assert rows[0].roi is None
        assert rows[0].rating is None

    def test_summary(self, keywords, spend) -> None:
        rows = KeywordROIService().build_rows(keywords, spend)
        summary = KeywordROIService.summarize(rows)

        assert summary.total_revenue == pytest.approx(360.0)
        assert summary.total_spend == pytest.approx(200.0)
        assert summary.overall_roi == pytest.approx(1.8)
        assert summary.matched_keywords == 2
        assert summary.total_keywords == 3
        assert summary.match_rate == pytest.approx(2 / 3)

    def test_empty_summary(self) -> None:
        summary = KeywordROIService.summarize([])
        assert summary.overall_roi is None
        assert summary.match_rate == 0.0

    def test_analyze_uses_connector(self, keywords, spend) -> None:
        connector = _StubConnector(spend)
        window = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))

        rows, summary = KeywordROIService(connector=connector).analyze(keywords, window)

        assert connector.requested == [window]
        assert len(rows) == 3
        assert summary.matched_keywords == 2

    def test_analyze_without_connector(self, keywords) -> None:
        window = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))
        with pytest.raises(RuntimeError):
            KeywordROIService().analyze(keywords, window)
