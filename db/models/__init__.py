"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.forecast_cache_entry import ForecastCacheEntry
from db.models.revenue_observation import RevenueObservation

__all__ = [
    "RevenueObservation",
    "ForecastCacheEntry",
]
