"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.search_ads_connector import (
    SearchAdsAuthError,
    SearchAdsConfigurationError,
    SearchAdsConnector,
    validate_credentials,
)

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "SearchAdsAuthError",
    "SearchAdsConfigurationError",
    "SearchAdsConnector",
    "validate_credentials",
]
