"""
forecast/base.py

Abstract base class for the forecast pipelines.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date, datetime
from operator import attrgetter

from forecast.aggregators import (
    monthly_variance,
    resolve_variance_override,
    year_total,
)
from forecast.classifier import ConfidenceClassifier, classify_data_quality
from forecast.periods import as_date
from forecast.schema import (
    CurrentPeriodForecast,
    DailyForecastResult,
    FullYearForecast,
    MonthlyForecastResult,
    NextPeriodForecast,
    PatternAnalysis,
    YearToDateComparison,
)
from forecast.types import MIN_FORECAST_POINTS, Granularity, Observation

NEXT_PERIOD_BAND_MULTIPLIER = 1.5
FULL_YEAR_BAND = 0.15


def confidence_band(projected: float, width: float) -> tuple[float, float]:
    """``projected × (1 ± width)`` with the low side floored at zero."""
    return max(0.0, projected * (1 - width)), projected * (1 + width)


def pct_delta(value: float, baseline: float) -> float | None:
    """Percent change of *value* over *baseline*; ``None`` for a zero baseline."""
    if baseline <= 0:
        return None
    return (value - baseline) / baseline * 100


class BaseForecastPipeline(ABC):
    """
    Contract for forecast pipelines.

    A pipeline receives a normalized series (sorted, one observation per
    date) and produces the four published forecasts. Every public method
    takes the evaluation date *now* explicitly and returns ``None`` instead
    of raising when the series is too short.

    No I/O, no logging, and no side effects are permitted inside a
    pipeline, and the input series is never mutated.
    """

    granularity: Granularity
    result_model: type[DailyForecastResult] | type[MonthlyForecastResult]

    def __init__(self, classifier: ConfidenceClassifier | None = None) -> None:
        self._classifier = classifier or ConfidenceClassifier()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def forecast(
        self,
        series: Sequence[Observation],
        *,
        now: date | datetime,
        variance_override: object = None,
    ) -> DailyForecastResult | MonthlyForecastResult | None:
        """
        Run every projector over *series* and assemble the result record.

        Parameters
        ----------
        series:
            Normalized observations. A defensive sorted copy is taken.
        now:
            Evaluation date ("today").
        variance_override:
            Optional fixed confidence width in percent (10-50). ``0``,
            ``None`` or an invalid value selects the historical variance.

        Returns
        -------
        ForecastResult | None
            ``None`` when the series holds fewer than the minimum points.
        """
        if len(series) < MIN_FORECAST_POINTS:
            return None

        ordered = sorted(series, key=attrgetter("date"))
        today = as_date(now)
        ytd = self.year_to_date_comparison(ordered, today)
        patterns = self.analyze_patterns(ordered)
        override = resolve_variance_override(variance_override)

        return self.result_model(
            granularity=self.granularity.value,
            current_month=self.forecast_current_period(
                ordered, today, variance_override=variance_override
            ),
            next_month=self.forecast_next_period(
                ordered, today, variance_override=variance_override
            ),
            ytd=ytd,
            full_year=self.full_year_forecast(ordered, today, ytd=ytd),
            patterns=patterns,
            insight=self.generate_insight(patterns),
            as_of=today,
            data_points=len(ordered),
            data_quality=classify_data_quality(len(ordered), self.granularity),
            variance=monthly_variance(ordered, today, variance_override=variance_override),
            variance_source="override" if override is not None else "auto",
        )

    @abstractmethod
    def forecast_current_period(
        self,
        series: Sequence[Observation],
        now: date | datetime,
        *,
        variance_override: object = None,
    ) -> CurrentPeriodForecast | None:
        """Project the final revenue of the current calendar month."""

    @abstractmethod
    def forecast_next_period(
        self,
        series: Sequence[Observation],
        now: date | datetime,
        *,
        variance_override: object = None,
    ) -> NextPeriodForecast | None:
        """Project the revenue of the upcoming calendar month."""

    @abstractmethod
    def year_to_date_comparison(
        self,
        series: Sequence[Observation],
        now: date | datetime,
    ) -> YearToDateComparison | None:
        """Compare this year's revenue to date with the same span last year."""

    @abstractmethod
    def extrapolate_full_year(
        self,
        series: Sequence[Observation],
        now: date,
        ytd_current: float,
    ) -> float | None:
        """Run-rate full-year estimate used when there is no prior-year data."""

    def analyze_patterns(self, series: Sequence[Observation]) -> PatternAnalysis | None:
        return None

    def generate_insight(self, patterns: PatternAnalysis | None) -> str | None:
        return None

    def full_year_forecast(
        self,
        series: Sequence[Observation],
        now: date | datetime,
        *,
        ytd: YearToDateComparison | None = None,
    ) -> FullYearForecast | None:
        """
        Project this calendar year's total revenue.

        With prior-year history the projection applies the year-to-date
        growth rate to last year's total, so the full-year percent change
        always equals the YTD percent change. Without it, the YTD run rate
        is extrapolated over the year. The band is a fixed ±15 %.
        """
        if len(series) < MIN_FORECAST_POINTS:
            return None

        today = as_date(now)
        if ytd is None:
            ytd = self.year_to_date_comparison(series, today)
        if ytd is None:
            return None

        last_year_total = year_total(series, today.year - 1)

        if ytd.pct_change is not None and last_year_total > 0:
            growth_rate = ytd.pct_change / 100
            projected = last_year_total * (1 + growth_rate)
            based_on = f"{today.year - 1} total × YTD growth"
            confidence = "medium"
        else:
            extrapolated = self.extrapolate_full_year(series, today, ytd.current)
            if extrapolated is None:
                return None
            projected = extrapolated
            growth_rate = None
            based_on = f"{today.year} YTD run rate"
            confidence = "lower"

        low, high = confidence_band(projected, FULL_YEAR_BAND)
        return FullYearForecast(
            year=today.year,
            projected=projected,
            low=low,
            high=high,
            confidence=confidence,
            based_on=based_on,
            last_year_total=last_year_total if last_year_total > 0 else None,
            pct_change=pct_delta(projected, last_year_total),
            growth_rate=growth_rate,
            calc_details={
                "ytdCurrent": ytd.current,
                "ytdLastYear": ytd.last_year,
                "lastYearTotal": last_year_total,
                "bandPct": FULL_YEAR_BAND * 100,
            },
        )
