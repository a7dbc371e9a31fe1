"""
forecast/patterns.py

Day-of-month and weekday/weekend seasonality for daily series.

The output is informational only: it feeds the insight sentence shown next
to the forecast and never changes a projection.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from forecast.aggregators import mean
from forecast.periods import is_weekend
from forecast.schema import DayPattern, PatternAnalysis
from forecast.types import Observation

HIGH_RELATIVE_THRESHOLD = 1.1
LOW_RELATIVE_THRESHOLD = 0.9
RENEWAL_DAY_THRESHOLD = 1.5
BEST_DAY_THRESHOLD = 1.3
WEEKEND_LOW_RATIO = 0.7
WEEKEND_HIGH_RATIO = 1.3


def analyze_daily_patterns(series: Sequence[Observation]) -> PatternAnalysis | None:
    """
    Bucket revenue by day of month and by weekday vs weekend.

    Each day-of-month bucket reports its mean relative to the overall mean.
    Returns ``None`` for an empty series.
    """

    if not series:
        return None

    by_day_of_month: dict[int, list[float]] = defaultdict(list)
    weekday: list[float] = []
    weekend: list[float] = []
    for observation in series:
        by_day_of_month[observation.date.day].append(observation.revenue)
        if is_weekend(observation.date):
            weekend.append(observation.revenue)
        else:
            weekday.append(observation.revenue)

    overall_avg = mean([o.revenue for o in series])

    by_day: dict[int, DayPattern] = {}
    for day in sorted(by_day_of_month):
        avg = mean(by_day_of_month[day])
        relative = avg / overall_avg if overall_avg > 0 else 1.0
        by_day[day] = DayPattern(
            average=avg,
            relative=relative,
            is_high=relative > HIGH_RELATIVE_THRESHOLD,
            is_low=relative < LOW_RELATIVE_THRESHOLD,
        )

    weekend_avg = mean(weekend)
    weekday_avg = mean(weekday)
    weekend_vs_weekday: float | None = None
    if weekend and weekday and weekday_avg > 0:
        weekend_vs_weekday = weekend_avg / weekday_avg

    best_day = max(by_day, key=lambda d: by_day[d].relative)
    worst_day = min(by_day, key=lambda d: by_day[d].relative)

    return PatternAnalysis(
        by_day=by_day,
        weekend_avg=weekend_avg,
        weekday_avg=weekday_avg,
        weekend_vs_weekday=weekend_vs_weekday,
        best_day=best_day,
        worst_day=worst_day,
    )


def generate_insight(patterns: PatternAnalysis | None) -> str | None:
    """
    Pick at most one insight sentence, by priority:

    1. day 1 runs well above average (renewal day),
    2. the best day of month runs well above average,
    3. weekends are markedly weaker or stronger than weekdays.
    """

    if patterns is None:
        return None

    first_day = patterns.by_day.get(1)
    if first_day is not None and first_day.relative > RENEWAL_DAY_THRESHOLD:
        return (
            f"Day 1 of month typically {first_day.relative:.1f}x average "
            "(likely renewal day)"
        )

    if patterns.best_day is not None:
        best = patterns.by_day[patterns.best_day]
        if best.relative > BEST_DAY_THRESHOLD:
            return f"Day {patterns.best_day} performs {best.relative:.1f}x above average"

    ratio = patterns.weekend_vs_weekday
    if ratio is not None:
        if ratio < WEEKEND_LOW_RATIO:
            return f"Weekend revenue is {round((1 - ratio) * 100)}% lower than weekdays"
        if ratio > WEEKEND_HIGH_RATIO:
            return f"Weekend revenue is {round((ratio - 1) * 100)}% higher than weekdays"

    return None
