"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from forecast.types import Granularity, Observation


@dataclass(frozen=True)
class ParsedRevenueTable:
    """
    Revenue series lifted from a dashboard chart table.

    Every observation carries the granularity detected from the header
    spacing.
    """

    observations: list[Observation] = field(default_factory=list)
    granularity: Granularity = Granularity.DAILY

    def as_records(self) -> list[dict[str, object]]:
        return [observation.as_dict() for observation in self.observations]
