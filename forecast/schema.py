"""
forecast/schema.py

Output contract of the forecasting engine.

The result is a tagged union discriminated by ``granularity``: the
daily/weekly pipeline produces :class:`DailyForecastResult`, the monthly
pipeline :class:`MonthlyForecastResult`. Both serialize to camelCase JSON
(``currentMonth``, ``basedOn``, ``calcDetails`` ...) through
:meth:`ForecastModel.to_json_dict`.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

ConfidenceTier = Literal["high", "medium", "lower"]
DataQuality = Literal["limited", "adequate", "ideal"]
CalcDetails = dict[str, Union[float, int, str, None]]


class ForecastModel(BaseModel):
    """Base for every engine output model."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Projection(ForecastModel):
    """Fields common to every projected figure."""

    projected: float
    low: float
    high: float
    confidence: ConfidenceTier
    based_on: str | None = None
    calc_details: CalcDetails = Field(default_factory=dict)


class CurrentPeriodForecast(Projection):
    name: str
    year: int
    mtd_actual: float
    days_remaining: int
    vs_last_year: float | None = None
    vs_mom: float | None = Field(default=None, alias="vsMoM")


class NextPeriodForecast(Projection):
    name: str
    year: int


class YearToDateComparison(ForecastModel):
    current: float
    last_year: float
    pct_change: float | None = None
    as_of: date
    current_year: int
    last_year_label: int


class FullYearForecast(Projection):
    year: int
    last_year_total: float | None = None
    pct_change: float | None = None
    growth_rate: float | None = None


class DayPattern(ForecastModel):
    average: float
    relative: float
    is_high: bool
    is_low: bool


class PatternAnalysis(ForecastModel):
    by_day: dict[int, DayPattern]
    weekend_avg: float
    weekday_avg: float
    weekend_vs_weekday: float | None = None
    best_day: int | None = None
    worst_day: int | None = None


class _ForecastResultBase(ForecastModel):
    current_month: CurrentPeriodForecast | None = None
    next_month: NextPeriodForecast | None = None
    ytd: YearToDateComparison | None = None
    full_year: FullYearForecast | None = None
    insight: str | None = None
    as_of: date
    data_points: int
    data_quality: DataQuality
    variance: float
    variance_source: Literal["auto", "override"]


class DailyForecastResult(_ForecastResultBase):
    """Result of the daily/weekly pipeline."""

    granularity: Literal["daily", "weekly"]
    patterns: PatternAnalysis | None = None


class MonthlyForecastResult(_ForecastResultBase):
    """Result of the monthly pipeline; seasonality needs daily data."""

    granularity: Literal["monthly"] = "monthly"
    patterns: None = None


ForecastResult = Annotated[
    Union[DailyForecastResult, MonthlyForecastResult],
    Field(discriminator="granularity"),
]

forecast_result_adapter: TypeAdapter[ForecastResult] = TypeAdapter(ForecastResult)


def parse_forecast_result(payload: dict[str, Any]) -> DailyForecastResult | MonthlyForecastResult:
    """Rebuild a result from its JSON form (e.g. a cache entry)."""
    return forecast_result_adapter.validate_python(payload)
