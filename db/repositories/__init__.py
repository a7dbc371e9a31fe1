"""
Repository layer exports.
"""

from db.repositories.errors import CachePersistenceError, HistoryPersistenceError, StorageError
from db.repositories.forecast_cache_repository import ForecastCacheRepository
from db.repositories.revenue_history_repository import RevenueHistoryRepository

__all__ = [
    "RevenueHistoryRepository",
    "ForecastCacheRepository",
    "StorageError",
    "HistoryPersistenceError",
    "CachePersistenceError",
]
