"""
forecast/aggregators.py

Pure reducers over a sorted revenue series.

Every function that depends on "today" receives it as *now*; nothing in
this module reads the clock. Months are addressed 1-based (January == 1).

Zero-revenue months are treated as missing data, not as genuine zero
months, in every trailing-month statistic below.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime

from forecast.periods import as_date, months_between, shift_month
from forecast.types import Observation

DEFAULT_MONTHLY_VARIANCE = 0.2
MAX_MONTHLY_VARIANCE = 0.5
TRAILING_MONTHS = 6
GROWTH_WINDOW_MONTHS = 12

VARIANCE_OVERRIDE_MIN_PCT = 10.0
VARIANCE_OVERRIDE_MAX_PCT = 50.0


# ---------------------------------------------------------------------------
# Basic statistics
# ---------------------------------------------------------------------------


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


# ---------------------------------------------------------------------------
# Period totals
# ---------------------------------------------------------------------------


def monthly_totals(series: Sequence[Observation]) -> dict[tuple[int, int], float]:
    """Revenue summed per ``(year, month)`` bucket."""
    totals: dict[tuple[int, int], float] = defaultdict(float)
    for observation in series:
        totals[(observation.date.year, observation.date.month)] += observation.revenue
    return dict(totals)


def month_total(series: Sequence[Observation], month: int, year: int) -> float:
    """Sum of revenue for observations dated in *month* of *year*."""
    return sum(
        o.revenue
        for o in series
        if o.date.year == year and o.date.month == month
    )


def month_to_date_total(series: Sequence[Observation], now: date | datetime) -> float:
    """Revenue in the current calendar month on or before *now*."""
    today = as_date(now)
    return sum(
        o.revenue
        for o in series
        if o.date.year == today.year and o.date.month == today.month and o.date <= today
    )


def year_to_date_total(series: Sequence[Observation], year: int, through: date) -> float:
    """Revenue dated in *year* on or before *through*."""
    return sum(o.revenue for o in series if o.date.year == year and o.date <= through)


def year_total(series: Sequence[Observation], year: int) -> float:
    return sum(o.revenue for o in series if o.date.year == year)


def trailing_month_totals(
    series: Sequence[Observation],
    now: date | datetime,
    months: int = TRAILING_MONTHS,
    *,
    skip_zero: bool = True,
) -> list[float]:
    """
    Totals of the *months* complete calendar months before *now*'s month,
    most recent first. Zero months are dropped when *skip_zero* is set.
    """

    today = as_date(now)
    totals = monthly_totals(series)
    result: list[float] = []
    for offset in range(1, months + 1):
        key = shift_month(today.year, today.month, -offset)
        total = totals.get(key, 0.0)
        if skip_zero and total <= 0:
            continue
        result.append(total)
    return result


# ---------------------------------------------------------------------------
# Averages and growth
# ---------------------------------------------------------------------------


def recent_daily_average(
    series: Sequence[Observation],
    window_size: int,
    now: date | datetime,
    *,
    days_per_point: int = 1,
) -> float:
    """
    Mean per-day revenue of the last *window_size* observations strictly
    before *now*.

    Today's own observation is excluded because the day is still partial.
    *days_per_point* converts coarser points into a per-day rate (7 for a
    weekly series).
    """

    today = as_date(now)
    prior = sorted((o for o in series if o.date < today), key=lambda o: o.date)
    if not prior or window_size <= 0:
        return 0.0
    window = prior[-window_size:]
    return mean([o.revenue / max(1, days_per_point) for o in window])


def recent_monthly_average(series: Sequence[Observation], now: date | datetime) -> float:
    """
    Mean of up to the last six complete months' totals, skipping empty months.
    """

    return mean(trailing_month_totals(series, now, TRAILING_MONTHS))


def yoy_growth_ratio(series: Sequence[Observation], now: date | datetime) -> float:
    """
    Revenue of the last twelve months (current month included) over the
    twelve months before them.

    Returns 1.0 (no growth) when either window has no revenue.
    """

    today = as_date(now)
    recent = previous = 0.0
    for (year, month), total in monthly_totals(series).items():
        months_ago = months_between(today, date(year, month, 1))
        if 0 <= months_ago < GROWTH_WINDOW_MONTHS:
            recent += total
        elif GROWTH_WINDOW_MONTHS <= months_ago < 2 * GROWTH_WINDOW_MONTHS:
            previous += total

    if recent <= 0 or previous <= 0:
        return 1.0
    return recent / previous


# ---------------------------------------------------------------------------
# Variance
# ---------------------------------------------------------------------------


def resolve_variance_override(value: object) -> float | None:
    """
    Convert a settings override (percent) into a fraction.

    ``0``/``None`` means automatic; values outside 10..50 are ignored and
    also mean automatic.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        pct = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(pct) or pct == 0:
        return None
    if pct < VARIANCE_OVERRIDE_MIN_PCT or pct > VARIANCE_OVERRIDE_MAX_PCT:
        return None
    return pct / 100.0


def computed_monthly_variance(series: Sequence[Observation], now: date | datetime) -> float:
    """
    Coefficient of variation of the trailing non-zero monthly totals,
    capped at 0.5; 0.2 when fewer than two months qualify.
    """

    totals = trailing_month_totals(series, now, TRAILING_MONTHS)
    if len(totals) < 2:
        return DEFAULT_MONTHLY_VARIANCE
    avg = mean(totals)
    if avg <= 0:
        return DEFAULT_MONTHLY_VARIANCE
    return min(population_std_dev(totals) / avg, MAX_MONTHLY_VARIANCE)


def monthly_variance(
    series: Sequence[Observation],
    now: date | datetime,
    *,
    variance_override: object = None,
) -> float:
    """
    Confidence width as a fraction of the projection.

    An active *variance_override* bypasses the historical computation.
    """

    override = resolve_variance_override(variance_override)
    if override is not None:
        return override
    return computed_monthly_variance(series, now)
