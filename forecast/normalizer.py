"""
forecast/normalizer.py

Series normalization: validation, defensive sort, de-duplication and
granularity detection.

Scraped data is expected to be noisy, so malformed rows are dropped rather
than reported. Nothing here raises on bad input.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from forecast.types import MIN_FORECAST_POINTS, Granularity, Observation

MONTHLY_GAP_DAYS = 28
WEEKLY_GAP_DAYS = 6


def parse_observation_date(value: Any) -> date | None:
    """
    Parse an observation date.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings. A time
    component on a string (``2026-02-01T00:00:00Z``) is ignored.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_revenue(value: Any) -> float | None:
    """
    Parse a revenue amount; ``None`` for anything non-numeric, non-finite
    or negative.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    elif isinstance(value, str):
        try:
            amount = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(amount) or amount < 0:
        return None
    return amount


def _coerce(item: Any) -> Observation | None:
    if isinstance(item, Observation):
        if parse_revenue(item.revenue) is None:
            return None
        return item
    if not isinstance(item, Mapping):
        return None

    observed_on = parse_observation_date(item.get("date"))
    revenue = parse_revenue(item.get("revenue"))
    if observed_on is None or revenue is None:
        return None
    return Observation(
        date=observed_on,
        revenue=revenue,
        granularity=Granularity.parse(item.get("granularity")),
    )


def clean_series(raw: Iterable[Any] | None) -> list[Observation]:
    """
    Return the valid observations of *raw*, sorted by date, one per date.

    When a date repeats, the later occurrence in *raw* wins. The input is
    never mutated.
    """

    if raw is None:
        return []

    by_date: dict[date, Observation] = {}
    for item in list(raw):
        observation = _coerce(item)
        if observation is None:
            continue
        by_date[observation.date] = observation
    return [by_date[key] for key in sorted(by_date)]


def normalize_series(raw: Iterable[Any] | None) -> list[Observation] | None:
    """
    Normalize *raw* into a sorted series, or ``None`` when fewer than
    :data:`MIN_FORECAST_POINTS` valid observations remain.
    """

    series = clean_series(raw)
    if len(series) < MIN_FORECAST_POINTS:
        return None
    return series


def detect_granularity(series: list[Observation]) -> Granularity:
    """
    Infer granularity from the spacing of the first two points.

    gap >= 28 days is monthly, gap >= 6 days is weekly, anything else daily.
    """

    if len(series) < 2:
        return Granularity.DAILY

    gap = (series[1].date - series[0].date).days
    if gap >= MONTHLY_GAP_DAYS:
        return Granularity.MONTHLY
    if gap >= WEEKLY_GAP_DAYS:
        return Granularity.WEEKLY
    return Granularity.DAILY


def resolve_granularity(
    series: list[Observation],
    explicit: Granularity | str | None = None,
) -> Granularity:
    """
    Pick the granularity to forecast with.

    Priority: a valid *explicit* value, then the tag carried by the first
    tagged observation, then :func:`detect_granularity`.
    """

    parsed = Granularity.parse(explicit)
    if parsed is not None:
        return parsed

    for observation in series:
        if observation.granularity is not None:
            return observation.granularity

    return detect_granularity(series)
