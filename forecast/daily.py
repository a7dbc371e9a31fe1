"""
forecast/daily.py

Daily/weekly forecast pipeline.

Projections combine month-to-date actuals with a short rolling average of
recent per-day revenue. Weekly series use the same formulas with each
weekly point spread over its seven days.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, datetime

from forecast.aggregators import (
    month_to_date_total,
    month_total,
    monthly_variance,
    recent_daily_average,
    yoy_growth_ratio,
    year_to_date_total,
)
from forecast.base import (
    NEXT_PERIOD_BAND_MULTIPLIER,
    BaseForecastPipeline,
    confidence_band,
    pct_delta,
)
from forecast.classifier import ConfidenceClassifier
from forecast.patterns import analyze_daily_patterns, generate_insight
from forecast.periods import as_date, days_in_month, month_name, same_day_last_year, shift_month
from forecast.schema import (
    CurrentPeriodForecast,
    DailyForecastResult,
    NextPeriodForecast,
    PatternAnalysis,
    YearToDateComparison,
)
from forecast.types import MIN_FORECAST_POINTS, Granularity, Observation

RECENT_WINDOW_DAYS = 15
DAYS_PER_YEAR = 365


class DailyForecastPipeline(BaseForecastPipeline):
    """
    Forecast pipeline for daily and weekly series.

    Current month::

        projected = mtd_actual + recent_daily_average × days_remaining

    Next month: the larger of ``recent_daily_average × days_in_next_month``
    and ``same month last year × yoy_growth_ratio``. Taking the larger
    estimate biases toward not under-forecasting a growing product.
    """

    result_model = DailyForecastResult

    def __init__(
        self,
        granularity: Granularity = Granularity.DAILY,
        classifier: ConfidenceClassifier | None = None,
    ) -> None:
        if granularity is Granularity.MONTHLY:
            raise ValueError("DailyForecastPipeline handles daily or weekly series only.")
        super().__init__(classifier)
        self.granularity = granularity

    @property
    def days_per_point(self) -> int:
        return 7 if self.granularity is Granularity.WEEKLY else 1

    @property
    def window_size(self) -> int:
        """Number of trailing points averaged; covers about 15 days."""
        return math.ceil(RECENT_WINDOW_DAYS / self.days_per_point)

    def _window_label(self) -> str:
        if self.granularity is Granularity.WEEKLY:
            return f"{self.window_size}-week"
        return f"{self.window_size}-day"

    def _daily_rate(self, series: Sequence[Observation], today: date) -> float:
        return recent_daily_average(
            series,
            self.window_size,
            today,
            days_per_point=self.days_per_point,
        )

    # ------------------------------------------------------------------
    # Projectors
    # ------------------------------------------------------------------

    def forecast_current_period(
        self,
        series: Sequence[Observation],
        now: date | datetime,
        *,
        variance_override: object = None,
    ) -> CurrentPeriodForecast | None:
        if len(series) < MIN_FORECAST_POINTS:
            return None

        today = as_date(now)
        month_days = days_in_month(today.year, today.month)
        days_remaining = month_days - today.day

        mtd_actual = month_to_date_total(series, today)
        daily_avg = self._daily_rate(series, today)
        remaining_forecast = daily_avg * days_remaining
        projected = mtd_actual + remaining_forecast

        variance = monthly_variance(series, today, variance_override=variance_override)
        low, high = confidence_band(projected, variance)

        last_year_same_month = month_total(series, today.month, today.year - 1)
        prev_year, prev_month = shift_month(today.year, today.month, -1)
        previous_month = month_total(series, prev_month, prev_year)

        return CurrentPeriodForecast(
            name=month_name(today.month),
            year=today.year,
            projected=projected,
            low=low,
            high=high,
            mtd_actual=mtd_actual,
            days_remaining=days_remaining,
            vs_last_year=pct_delta(projected, last_year_same_month),
            vs_mom=pct_delta(projected, previous_month),
            confidence=self._classifier.classify(days_remaining),
            based_on=f"Month-to-date actuals + {self._window_label()} average",
            calc_details={
                "method": "mtd_plus_recent_average",
                "recentDailyAvg": daily_avg,
                "remainingForecast": remaining_forecast,
                "daysInMonth": month_days,
                "variance": variance,
                "lastYearSameMonth": last_year_same_month,
                "previousMonth": previous_month,
            },
        )

    def forecast_next_period(
        self,
        series: Sequence[Observation],
        now: date | datetime,
        *,
        variance_override: object = None,
    ) -> NextPeriodForecast | None:
        if len(series) < MIN_FORECAST_POINTS:
            return None

        today = as_date(now)
        next_year, next_month = shift_month(today.year, today.month, 1)
        next_month_days = days_in_month(next_year, next_month)

        daily_avg = self._daily_rate(series, today)
        trend_estimate = daily_avg * next_month_days

        last_year_total = month_total(series, next_month, next_year - 1)
        growth = yoy_growth_ratio(series, today)
        seasonal_estimate = last_year_total * growth if last_year_total > 0 else None

        if seasonal_estimate is not None and seasonal_estimate > trend_estimate:
            projected = seasonal_estimate
            method = "last_year_growth"
            based_on = f"{month_name(next_month)} {next_year - 1} × {growth:.2f} YoY growth"
        else:
            projected = trend_estimate
            method = "recent_average"
            based_on = f"Recent {self._window_label()} average"

        variance = monthly_variance(series, today, variance_override=variance_override)
        low, high = confidence_band(projected, variance * NEXT_PERIOD_BAND_MULTIPLIER)

        return NextPeriodForecast(
            name=month_name(next_month),
            year=next_year,
            projected=projected,
            low=low,
            high=high,
            confidence="lower",
            based_on=based_on,
            calc_details={
                "method": method,
                "recentDailyAvg": daily_avg,
                "trendEstimate": trend_estimate,
                "lastYearTotal": last_year_total,
                "yoyGrowth": growth,
                "seasonalEstimate": seasonal_estimate,
                "variance": variance,
            },
        )

    def year_to_date_comparison(
        self,
        series: Sequence[Observation],
        now: date | datetime,
    ) -> YearToDateComparison | None:
        if len(series) < MIN_FORECAST_POINTS:
            return None

        today = as_date(now)
        current = year_to_date_total(series, today.year, today)
        last_year = year_to_date_total(series, today.year - 1, same_day_last_year(today))
        return YearToDateComparison(
            current=current,
            last_year=last_year,
            pct_change=pct_delta(current, last_year),
            as_of=today,
            current_year=today.year,
            last_year_label=today.year - 1,
        )

    def extrapolate_full_year(
        self,
        series: Sequence[Observation],
        now: date,
        ytd_current: float,
    ) -> float | None:
        if ytd_current <= 0:
            return None
        days_elapsed = now.timetuple().tm_yday
        return ytd_current / days_elapsed * DAYS_PER_YEAR

    # ------------------------------------------------------------------
    # Seasonality
    # ------------------------------------------------------------------

    def analyze_patterns(self, series: Sequence[Observation]) -> PatternAnalysis | None:
        if self.granularity is not Granularity.DAILY:
            return None
        return analyze_daily_patterns(series)

    def generate_insight(self, patterns: PatternAnalysis | None) -> str | None:
        return generate_insight(patterns)
