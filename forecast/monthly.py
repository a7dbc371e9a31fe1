"""
forecast/monthly.py

Monthly forecast pipeline.

Works on month-level buckets: each observation is one month's revenue and
the current month's bucket holds the partial month-to-date total.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime

from forecast.aggregators import (
    month_total,
    monthly_variance,
    recent_monthly_average,
    yoy_growth_ratio,
)
from forecast.base import (
    NEXT_PERIOD_BAND_MULTIPLIER,
    BaseForecastPipeline,
    confidence_band,
    pct_delta,
)
from forecast.periods import as_date, days_in_month, month_name, shift_month
from forecast.schema import (
    CurrentPeriodForecast,
    MonthlyForecastResult,
    NextPeriodForecast,
    YearToDateComparison,
)
from forecast.types import MIN_FORECAST_POINTS, Granularity, Observation

# The partial month is extrapolated only while more days than this remain.
EXTRAPOLATE_MIN_DAYS_REMAINING = 5
MONTHS_PER_YEAR = 12


class MonthlyForecastPipeline(BaseForecastPipeline):
    """
    Forecast pipeline for monthly series.

    Current month: ``partial / day_of_month × days_in_month`` while more
    than five days remain, otherwise the partial total as-is. Next month
    follows the same larger-of-two policy as the daily pipeline, with the
    recent six-month average as the trend estimate. Seasonality is not
    analyzed at this resolution.
    """

    granularity = Granularity.MONTHLY
    result_model = MonthlyForecastResult

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
        partial = month_total(series, today.month, today.year)

        if days_remaining > EXTRAPOLATE_MIN_DAYS_REMAINING:
            projected = partial / today.day * month_days
            method = "run_rate"
        else:
            projected = partial
            method = "partial_actual"

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
            mtd_actual=partial,
            days_remaining=days_remaining,
            vs_last_year=pct_delta(projected, last_year_same_month),
            vs_mom=pct_delta(projected, previous_month),
            confidence=self._classifier.classify(days_remaining),
            based_on="Month-to-date run rate" if method == "run_rate" else "Month-to-date actual",
            calc_details={
                "method": method,
                "partialMonthRevenue": partial,
                "dayOfMonth": today.day,
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

        trend_estimate = recent_monthly_average(series, today)
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
            based_on = "Recent 6-month average"

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
                "recentMonthlyAvg": trend_estimate,
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
        """
        Month-bucketed YTD comparison.

        This year counts January through the current (partial) month. Last
        year counts the completed months before the same month plus that
        month's total prorated by the elapsed fraction of the month.
        """
        if len(series) < MIN_FORECAST_POINTS:
            return None

        today = as_date(now)
        last = today.year - 1
        current = sum(month_total(series, m, today.year) for m in range(1, today.month + 1))
        elapsed_fraction = today.day / days_in_month(last, today.month)
        last_year = sum(month_total(series, m, last) for m in range(1, today.month))
        last_year += month_total(series, today.month, last) * min(1.0, elapsed_fraction)

        return YearToDateComparison(
            current=current,
            last_year=last_year,
            pct_change=pct_delta(current, last_year),
            as_of=today,
            current_year=today.year,
            last_year_label=last,
        )

    def extrapolate_full_year(
        self,
        series: Sequence[Observation],
        now: date,
        ytd_current: float,
    ) -> float | None:
        if ytd_current <= 0:
            return None
        months_elapsed = (now.month - 1) + now.day / days_in_month(now.year, now.month)
        return ytd_current / months_elapsed * MONTHS_PER_YEAR
