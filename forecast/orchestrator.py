"""
forecast/orchestrator.py

Coordinates the forecast engine: normalize → resolve granularity → pipeline.
Contains no forecasting math.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from forecast.base import BaseForecastPipeline
from forecast.classifier import ConfidenceClassifier
from forecast.daily import DailyForecastPipeline
from forecast.monthly import MonthlyForecastPipeline
from forecast.normalizer import normalize_series, resolve_granularity
from forecast.schema import DailyForecastResult, MonthlyForecastResult
from forecast.types import Granularity

logger = logging.getLogger(__name__)


class ForecastOrchestrator:
    """
    Thin coordinator that wires together the forecast engine.

    Each call to :meth:`generate_forecast` executes in order:

    1. Normalize the raw series (drop malformed rows, sort, de-duplicate).
    2. Resolve the granularity (explicit, row tag, or inferred spacing).
    3. Dispatch to the daily/weekly or the monthly pipeline.

    The orchestrator holds no per-call state and is safe to share.

    Parameters
    ----------
    classifier:
        Optional confidence classifier shared by every pipeline.
    """

    def __init__(self, classifier: ConfidenceClassifier | None = None) -> None:
        classifier = classifier or ConfidenceClassifier()
        self._pipelines: dict[Granularity, BaseForecastPipeline] = {
            Granularity.DAILY: DailyForecastPipeline(Granularity.DAILY, classifier),
            Granularity.WEEKLY: DailyForecastPipeline(Granularity.WEEKLY, classifier),
            Granularity.MONTHLY: MonthlyForecastPipeline(classifier),
        }

    def pipeline_for(self, granularity: Granularity) -> BaseForecastPipeline:
        return self._pipelines[granularity]

    def generate_forecast(
        self,
        series: Iterable[Any] | None,
        granularity: Granularity | str | None = None,
        *,
        now: date | datetime,
        variance_override: object = None,
    ) -> DailyForecastResult | MonthlyForecastResult | None:
        """
        Run the forecast engine over one revenue series.

        Parameters
        ----------
        series:
            Raw observations (``{"date", "revenue", "granularity"?}``
            mappings or :class:`~forecast.types.Observation` instances).
            May be empty or malformed.
        granularity:
            Optional explicit granularity; invalid values are ignored.
        now:
            Evaluation date supplied by the caller.
        variance_override:
            Confidence width override in percent (``0`` = auto, 10-50).

        Returns
        -------
        ForecastResult | None
            ``None`` when fewer than three valid observations remain.
        """
        normalized = normalize_series(series)
        if normalized is None:
            logger.debug("Forecast skipped: fewer than 3 valid observations")
            return None

        resolved = resolve_granularity(normalized, granularity)
        return self.pipeline_for(resolved).forecast(
            normalized,
            now=now,
            variance_override=variance_override,
        )


_default_orchestrator = ForecastOrchestrator()


def calculate_forecasts(
    series: Iterable[Any] | None,
    granularity: Granularity | str | None = None,
    *,
    now: date | datetime,
    variance_override: object = None,
) -> DailyForecastResult | MonthlyForecastResult | None:
    """
    Top-level engine entry point; see :meth:`ForecastOrchestrator.generate_forecast`.
    """

    return _default_orchestrator.generate_forecast(
        series,
        granularity,
        now=now,
        variance_override=variance_override,
    )
