"""
forecast/types.py

Core value types shared by every stage of the forecasting engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class Granularity(str, Enum):
    """
    Time resolution of the observations in a revenue series.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: object) -> "Granularity | None":
        """
        Coerce *value* into a granularity, returning ``None`` when unknown.
        """

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Observation:
    """
    One revenue data point.

    ``revenue`` is a non-negative amount in the dashboard's single implicit
    currency. ``granularity`` is the optional tag attached by the scraper.
    """

    date: date
    revenue: float
    granularity: Granularity | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "revenue": self.revenue,
            "granularity": self.granularity.value if self.granularity else None,
        }


# Minimum number of valid points before any forecast is attempted.
MIN_FORECAST_POINTS = 3
