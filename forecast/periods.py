"""
forecast/periods.py

Calendar arithmetic used by the aggregators and projectors.
No clock access: every helper works on the dates it is given.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime


def as_date(value: date | datetime) -> date:
    """Reduce a datetime evaluation instant to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """
    Return ``(year, month)`` moved by *offset* calendar months.

    *month* is 1-based.
    """

    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def months_between(later: date, earlier: date) -> int:
    """Whole calendar months from *earlier*'s month to *later*'s month."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def same_day_last_year(value: date) -> date:
    """
    The same month/day one year earlier; Feb 29 maps to Feb 28.
    """

    day = min(value.day, days_in_month(value.year - 1, value.month))
    return date(value.year - 1, value.month, day)


def month_name(month: int) -> str:
    return calendar.month_name[month]


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5
