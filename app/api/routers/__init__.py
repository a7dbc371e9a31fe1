"""
app/api/routers package marker.
"""

from app.api.routers.forecast_router import router as forecast_router
from app.api.routers.keyword_roi_router import router as keyword_roi_router

__all__ = [
    "forecast_router",
    "keyword_roi_router",
]
