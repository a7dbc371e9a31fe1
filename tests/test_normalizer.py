"""
tests/test_normalizer.py

Series normalization: validation, ordering, de-duplication and
granularity resolution.
"""

from __future__ import annotations

import copy
import math
from datetime import date, datetime

import pytest

from forecast.normalizer import (
    clean_series,
    detect_granularity,
    normalize_series,
    parse_observation_date,
    parse_revenue,
    resolve_granularity,
)
from forecast.types import Granularity, Observation


class TestParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2026-02-01", date(2026, 2, 1)),
            ("2026-02-01T13:45:00Z", date(2026, 2, 1)),
            (date(2026, 2, 1), date(2026, 2, 1)),
            (datetime(2026, 2, 1, 23, 59), date(2026, 2, 1)),
            ("02/01/2026", None),
            ("", None),
            (None, None),
            (20260201, None),
        ],
    )
    def test_parse_observation_date(self, raw: object, expected: date | None) -> None:
        assert parse_observation_date(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (100, 100.0),
            (12.5, 12.5),
            ("42.10", 42.1),
            (0, 0.0),
            (-1, None),
            (True, None),
            (math.nan, None),
            (math.inf, None),
            ("abc", None),
            (None, None),
        ],
    )
    def test_parse_revenue(self, raw: object, expected: float | None) -> None:
        assert parse_revenue(raw) == expected


class TestCleanSeries:
    def test_drops_malformed_rows(self) -> None:
        raw = [
            {"date": "2026-01-01", "revenue": 10},
            {"date": "not-a-date", "revenue": 10},
            {"date": "2026-01-02", "revenue": None},
            {"date": "2026-01-03", "revenue": -5},
            "garbage",
            {"date": "2026-01-04", "revenue": "7.5"},
        ]
        cleaned = clean_series(raw)
        assert [o.date for o in cleaned] == [date(2026, 1, 1), date(2026, 1, 4)]
        assert cleaned[1].revenue == pytest.approx(7.5)

    def test_sorts_ascending(self) -> None:
        raw = [
            {"date": "2026-01-03", "revenue": 3},
            {"date": "2026-01-01", "revenue": 1},
            {"date": "2026-01-02", "revenue": 2},
        ]
        assert [o.revenue for o in clean_series(raw)] == [1.0, 2.0, 3.0]

    def test_duplicate_date_keeps_last_occurrence(self) -> None:
        raw = [
            {"date": "2026-01-01", "revenue": 1},
            {"date": "2026-01-01", "revenue": 9},
        ]
        cleaned = clean_series(raw)
        assert len(cleaned) == 1
        assert cleaned[0].revenue == 9.0

    def test_input_is_not_mutated(self) -> None:
        raw = [
            {"date": "2026-01-03", "revenue": 3},
            {"date": "2026-01-01", "revenue": 1},
        ]
        snapshot = copy.deepcopy(raw)
        clean_series(raw)
        assert raw == snapshot

    def test_none_input(self) -> None:
        assert clean_series(None) == []

    def test_observation_instances_pass_through(self) -> None:
        obs = Observation(date(2026, 1, 1), 5.0, Granularity.DAILY)
        assert clean_series([obs]) == [obs]

    def test_negative_observation_instance_dropped(self) -> None:
        assert clean_series([Observation(date(2026, 1, 1), -5.0)]) == []


class TestNormalizeSeries:
    @pytest.mark.parametrize("size", [0, 1, 2])
    def test_short_series_returns_none(self, size: int) -> None:
        raw = [{"date": f"2026-01-0{i + 1}", "revenue": 1} for i in range(size)]
        assert normalize_series(raw) is None

    def test_three_points_is_enough(self) -> None:
        raw = [{"date": f"2026-01-0{i + 1}", "revenue": 1} for i in range(3)]
        assert normalize_series(raw) is not None

    def test_normalization_is_idempotent(self) -> None:
        raw = [
            {"date": "2026-01-05", "revenue": 5},
            {"date": "2026-01-01", "revenue": 1},
            {"date": "2026-01-03", "revenue": 3},
            {"date": "2026-01-03", "revenue": 4},
        ]
        once = normalize_series(raw)
        assert once is not None
        twice = normalize_series(once)
        assert twice == once

        as_dicts = [o.as_dict() for o in once]
        assert normalize_series(as_dicts) == once


class TestGranularity:
    @staticmethod
    def _series(gap_days: int) -> list[Observation]:
        start = date(2026, 1, 1)
        return [
            Observation(date.fromordinal(start.toordinal() + i * gap_days), 1.0)
            for i in range(3)
        ]

    @pytest.mark.parametrize(
        "gap, expected",
        [
            (1, Granularity.DAILY),
            (5, Granularity.DAILY),
            (6, Granularity.WEEKLY),
            (7, Granularity.WEEKLY),
            (28, Granularity.MONTHLY),
            (31, Granularity.MONTHLY),
        ],
    )
    def test_detect_from_spacing(self, gap: int, expected: Granularity) -> None:
        assert detect_granularity(self._series(gap)) is expected

    def test_explicit_value_wins(self) -> None:
        assert resolve_granularity(self._series(1), "monthly") is Granularity.MONTHLY

    def test_invalid_explicit_value_is_ignored(self) -> None:
        assert resolve_granularity(self._series(7), "fortnightly") is Granularity.WEEKLY

    def test_row_tag_beats_inference(self) -> None:
        series = [
            Observation(date(2026, 1, 1), 1.0, Granularity.MONTHLY),
            Observation(date(2026, 1, 2), 1.0, Granularity.MONTHLY),
            Observation(date(2026, 1, 3), 1.0, Granularity.MONTHLY),
        ]
        assert resolve_granularity(series) is Granularity.MONTHLY
