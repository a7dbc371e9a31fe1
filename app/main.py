"""
app/main.py

FastAPI entry point: startup validation, lifespan wiring and health check.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from pydantic import BaseModel
from sqlalchemy import inspect, text

import db.models  # noqa: F401  registers ORM tables on Base.metadata
from app.api.routers import forecast_router, keyword_roi_router
from app.config import get_forecast_settings, get_scheduler_settings, get_search_ads_settings
from app.connectors.search_ads_connector import validate_credentials
from app.logging_utils import configure_logging
from app.scheduler.jobs import build_scheduler
from db.base import Base
from db.config import resolve_database_url
from db.session import get_engine, session_scope

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    forecasting_enabled: bool
    search_ads_configured: bool


def _configuration_problems() -> list[str]:
    """
    Collect every configuration problem so one restart can fix them all.
    """

    problems: list[str] = []
    try:
        resolve_database_url()
    except RuntimeError as exc:
        problems.append(str(exc))

    search_ads = get_search_ads_settings()
    # Credentials are optional; half-filled ones are not.
    if search_ads.enabled and search_ads.client_id:
        problems.extend(
            f"Search Ads: {problem}"
            for problem in validate_credentials(
                search_ads.client_id,
                search_ads.client_secret,
                search_ads.org_id,
            )
        )
    return problems


def _verify_database() -> None:
    """
    Fail startup when the database is unreachable or a mapped table is absent.
    Migrations are never applied here.
    """

    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc
    logger.info("Database connectivity confirmed")

    existing = set(inspect(get_engine()).get_table_names())
    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        logger.critical("Missing tables %s; run 'alembic upgrade head'", ", ".join(missing))
        raise RuntimeError(f"Database schema is missing tables: {', '.join(missing)}.")
    logger.info("Database schema validated")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_database()

    scheduler = build_scheduler() if get_scheduler_settings().enabled else None
    if scheduler is not None:
        scheduler.start()
        logger.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=True)
            logger.info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Build the API application.

    Raises
    ------
    RuntimeError
        When the environment is misconfigured.
    """

    problems = _configuration_problems()
    if problems:
        raise RuntimeError(
            "Startup validation failed:\n" + "\n".join(f"  - {problem}" for problem in problems)
        )
    configure_logging()

    application = FastAPI(title="Revenue Insights API", version="1.0.0", lifespan=_lifespan)
    application.include_router(forecast_router)
    application.include_router(keyword_roi_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        search_ads = get_search_ads_settings()
        return HealthResponse(
            status="ok",
            forecasting_enabled=get_forecast_settings().forecasting_enabled,
            search_ads_configured=search_ads.enabled and search_ads.is_configured,
        )

    return application


app = create_app()
