"""
forecast/classifier.py

Maps forecast inputs onto discrete confidence and data-quality labels.
No forecasting logic, no I/O, no side effects.
"""

from __future__ import annotations

from forecast.types import Granularity


class ConfidenceClassifier:
    """
    Maps the number of days left in the current month to a confidence tier.

    Thresholds (class-level constants, easily overridden by subclasses):

        days remaining  |  label
        ----------------|---------
        <= 5            |  high
        <= 15           |  medium
        > 15            |  lower
    """

    HIGH_MAX_DAYS_REMAINING: int = 5
    MEDIUM_MAX_DAYS_REMAINING: int = 15

    def classify(self, days_remaining: int) -> str:
        """
        Classify *days_remaining* into ``"high"``, ``"medium"`` or ``"lower"``.

        Notes
        -----
        * Fewer remaining days means more of the month is already actual
          revenue, so the tier can only improve as the month progresses.
        """
        if days_remaining <= self.HIGH_MAX_DAYS_REMAINING:
            return "high"
        if days_remaining <= self.MEDIUM_MAX_DAYS_REMAINING:
            return "medium"
        return "lower"


# (stable, ideal) point counts per granularity.
_DATA_QUALITY_THRESHOLDS: dict[Granularity, tuple[int, int]] = {
    Granularity.DAILY: (15, 30),
    Granularity.WEEKLY: (4, 12),
    Granularity.MONTHLY: (3, 12),
}


def classify_data_quality(points: int, granularity: Granularity) -> str:
    """
    Label how much history backs a forecast.

    ``"limited"`` below the stable threshold, ``"ideal"`` at or above the
    ideal threshold, ``"adequate"`` in between.
    """

    stable, ideal = _DATA_QUALITY_THRESHOLDS[granularity]
    if points < stable:
        return "limited"
    if points >= ideal:
        return "ideal"
    return "adequate"
