"""
tests/test_forecast_components.py

Unit tests for the building blocks of the forecasting engine: calendar
helpers, reducers, classifiers, seasonality and the JSON output contract.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from forecast.aggregators import (
    computed_monthly_variance,
    month_to_date_total,
    population_std_dev,
    recent_daily_average,
    resolve_variance_override,
    trailing_month_totals,
    yoy_growth_ratio,
)
from forecast.classifier import ConfidenceClassifier, classify_data_quality
from forecast.orchestrator import calculate_forecasts
from forecast.patterns import analyze_daily_patterns, generate_insight
from forecast.periods import days_in_month, months_between, same_day_last_year, shift_month
from forecast.schema import MonthlyForecastResult, PatternAnalysis, parse_forecast_result
from forecast.types import Granularity, Observation


def _days(start: date, count: int, revenue) -> list[Observation]:
    out = []
    for offset in range(count):
        day = start + timedelta(days=offset)
        value = revenue(day) if callable(revenue) else revenue
        out.append(Observation(day, float(value)))
    return out


def _months(start_year: int, start_month: int, values: list[float]) -> list[Observation]:
    out = []
    for offset, value in enumerate(values):
        year, month = shift_month(start_year, start_month, offset)
        out.append(Observation(date(year, month, 1), value))
    return out


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


class TestPeriods:
    @pytest.mark.parametrize(
        "year, month, offset, expected",
        [
            (2026, 1, -1, (2025, 12)),
            (2026, 12, 1, (2027, 1)),
            (2026, 3, -14, (2025, 1)),
            (2026, 6, 0, (2026, 6)),
        ],
    )
    def test_shift_month(self, year, month, offset, expected) -> None:
        assert shift_month(year, month, offset) == expected

    def test_days_in_month_leap_year(self) -> None:
        assert days_in_month(2024, 2) == 29
        assert days_in_month(2026, 2) == 28

    def test_same_day_last_year_clamps_leap_day(self) -> None:
        assert same_day_last_year(date(2024, 2, 29)) == date(2023, 2, 28)

    def test_months_between_ignores_day_of_month(self) -> None:
        assert months_between(date(2026, 2, 10), date(2026, 2, 28)) == 0
        assert months_between(date(2026, 2, 1), date(2025, 3, 31)) == 11
        assert months_between(date(2026, 1, 1), date(2025, 12, 1)) == 1


# ---------------------------------------------------------------------------
# Reducers
# ---------------------------------------------------------------------------


class TestAggregators:
    def test_population_std_dev(self) -> None:
        assert population_std_dev([1.0, 3.0]) == pytest.approx(1.0)
        assert population_std_dev([5.0]) == 0.0

    def test_month_to_date_ignores_future_points(self) -> None:
        series = _days(date(2026, 2, 1), 20, 10.0)
        assert month_to_date_total(series, date(2026, 2, 10)) == pytest.approx(100.0)

    def test_recent_daily_average_excludes_today(self) -> None:
        series = _days(date(2026, 2, 1), 10, lambda d: 1000.0 if d.day == 10 else 10.0)
        assert recent_daily_average(series, 15, date(2026, 2, 10)) == pytest.approx(10.0)

    def test_recent_daily_average_without_prior_points(self) -> None:
        series = _days(date(2026, 2, 10), 3, 10.0)
        assert recent_daily_average(series, 15, date(2026, 2, 10)) == 0.0

    def test_trailing_months_skip_zero_months(self) -> None:
        series = _months(2025, 8, [100.0, 0.0, 300.0, 400.0])
        totals = trailing_month_totals(series, date(2026, 1, 15))
        assert totals == [400.0, 300.0, 100.0]

    def test_yoy_growth_ratio(self) -> None:
        series = _months(2024, 1, [100.0] * 12 + [150.0] * 12)
        assert yoy_growth_ratio(series, date(2025, 12, 15)) == pytest.approx(1.5)

    def test_yoy_growth_includes_current_month(self) -> None:
        series = (
            _days(date(2024, 1, 1), 366, 100.0)
            + _days(date(2025, 1, 1), 365, 200.0)
            + _days(date(2026, 1, 1), 41, 400.0)
        )
        # Mar 2025 - Feb 10 2026 against Mar 2024 - Feb 2025.
        recent = 306 * 200.0 + 31 * 400.0 + 10 * 400.0
        previous = 306 * 100.0 + 59 * 200.0
        assert yoy_growth_ratio(series, date(2026, 2, 10)) == pytest.approx(recent / previous)
        assert recent / previous == pytest.approx(1.8302, abs=1e-4)

    def test_yoy_growth_defaults_without_prior_year(self) -> None:
        series = _months(2025, 1, [100.0] * 12)
        assert yoy_growth_ratio(series, date(2025, 12, 15)) == 1.0

    def test_variance_capped(self) -> None:
        series = _months(2025, 12, [100.0, 10000.0])
        assert computed_monthly_variance(series, date(2026, 2, 1)) == pytest.approx(0.5)

    def test_variance_default_for_single_month(self) -> None:
        series = _months(2026, 1, [100.0])
        assert computed_monthly_variance(series, date(2026, 2, 1)) == pytest.approx(0.2)

    @pytest.mark.parametrize(
        "value, expected",
        [
            (30, 0.3),
            ("25", 0.25),
            (10, 0.1),
            (50, 0.5),
            (0, None),
            (None, None),
            (9.9, None),
            (50.1, None),
            (float("nan"), None),
            ("wide", None),
        ],
    )
    def test_resolve_variance_override(self, value, expected) -> None:
        resolved = resolve_variance_override(value)
        if expected is None:
            assert resolved is None
        else:
            assert resolved == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------


class TestClassifiers:
    @pytest.mark.parametrize(
        "days_remaining, expected",
        [(0, "high"), (5, "high"), (6, "medium"), (15, "medium"), (16, "lower"), (30, "lower")],
    )
    def test_confidence_tiers(self, days_remaining, expected) -> None:
        assert ConfidenceClassifier().classify(days_remaining) == expected

    @pytest.mark.parametrize(
        "points, granularity, expected",
        [
            (10, Granularity.DAILY, "limited"),
            (15, Granularity.DAILY, "adequate"),
            (30, Granularity.DAILY, "ideal"),
            (3, Granularity.WEEKLY, "limited"),
            (4, Granularity.WEEKLY, "adequate"),
            (12, Granularity.WEEKLY, "ideal"),
            (3, Granularity.MONTHLY, "adequate"),
            (12, Granularity.MONTHLY, "ideal"),
        ],
    )
    def test_data_quality(self, points, granularity, expected) -> None:
        assert classify_data_quality(points, granularity) == expected


# ---------------------------------------------------------------------------
# Seasonality
# ---------------------------------------------------------------------------


class TestPatterns:
    def test_renewal_day_insight(self) -> None:
        series = _days(date(2026, 1, 1), 59, lambda d: 1000.0 if d.day == 1 else 100.0)
        patterns = analyze_daily_patterns(series)

        assert patterns.best_day == 1
        assert patterns.by_day[1].is_high
        assert generate_insight(patterns) == (
            "Day 1 of month typically 7.7x average (likely renewal day)"
        )

    def test_best_day_insight(self) -> None:
        series = _days(date(2026, 1, 1), 31, lambda d: 500.0 if d.day == 15 else 100.0)
        patterns = analyze_daily_patterns(series)

        assert patterns.best_day == 15
        assert generate_insight(patterns) == "Day 15 performs 4.4x above average"

    def test_weak_weekend_insight(self) -> None:
        series = _days(date(2026, 1, 1), 31, lambda d: 50.0 if d.weekday() >= 5 else 100.0)
        patterns = analyze_daily_patterns(series)

        assert patterns.weekend_vs_weekday == pytest.approx(0.5)
        assert generate_insight(patterns) == "Weekend revenue is 50% lower than weekdays"

    def test_strong_weekend_insight(self) -> None:
        patterns = PatternAnalysis(
            by_day={},
            weekend_avg=150.0,
            weekday_avg=100.0,
            weekend_vs_weekday=1.5,
        )
        assert generate_insight(patterns) == "Weekend revenue is 50% higher than weekdays"

    def test_weekday_only_series_has_no_ratio(self) -> None:
        # 2026-01-05 .. 2026-01-09 is Monday to Friday.
        series = _days(date(2026, 1, 5), 5, 100.0)
        patterns = analyze_daily_patterns(series)
        assert patterns.weekend_vs_weekday is None
        assert generate_insight(patterns) is None

    def test_empty_series(self) -> None:
        assert analyze_daily_patterns([]) is None
        assert generate_insight(None) is None


# ---------------------------------------------------------------------------
# Output contract
# ---------------------------------------------------------------------------


class TestResultContract:
    @pytest.fixture()
    def daily_result(self):
        series = [o.as_dict() for o in _days(date(2026, 1, 1), 41, 100.0)]
        return calculate_forecasts(series, now=date(2026, 2, 10))

    def test_camel_case_keys(self, daily_result) -> None:
        payload = daily_result.to_json_dict()

        assert payload["granularity"] == "daily"
        assert payload["asOf"] == "2026-02-10"
        assert {"currentMonth", "nextMonth", "ytd", "fullYear", "patterns", "insight"} <= set(payload)
        assert {"dataPoints", "dataQuality", "variance", "varianceSource"} <= set(payload)

        current = payload["currentMonth"]
        assert "mtdActual" in current
        assert "daysRemaining" in current
        assert "vsLastYear" in current
        assert "vsMoM" in current
        assert "basedOn" in current
        assert "calcDetails" in current

        assert "byDay" in payload["patterns"]
        assert "1" in payload["patterns"]["byDay"]
        assert "isHigh" in payload["patterns"]["byDay"]["1"]

    def test_json_payload_round_trips(self, daily_result) -> None:
        payload = daily_result.to_json_dict()
        assert parse_forecast_result(payload) == daily_result

    def test_discriminator_selects_monthly_model(self) -> None:
        series = [o.as_dict() for o in _months(2025, 3, [1000.0] * 11)]
        result = calculate_forecasts(series, now=date(2026, 2, 10))

        rebuilt = parse_forecast_result(result.to_json_dict())
        assert isinstance(rebuilt, MonthlyForecastResult)
        assert rebuilt.patterns is None
