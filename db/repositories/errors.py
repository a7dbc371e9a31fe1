"""
db/repositories/errors.py

Repository-layer exceptions for revenue history and forecast cache storage.
"""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for persistence failures."""


class HistoryPersistenceError(StorageError):
    """Raised when revenue history cannot be read or merged."""


class CachePersistenceError(StorageError):
    """Raised when the forecast cache cannot be read or written."""
