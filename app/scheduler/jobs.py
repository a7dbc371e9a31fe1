"""
app/scheduler/jobs.py

APScheduler-based background jobs.

Schedule (all times UTC)
--------------------------
  purge_forecast_cache: every FORECAST_CACHE_PURGE_INTERVAL_MINUTES (default 60)

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_scheduler_settings
from app.services.forecast_service import get_forecast_service
from db.repositories.errors import StorageError
from db.session import session_scope

logger = logging.getLogger(__name__)


def purge_forecast_cache() -> None:
    """
    Delete expired forecast cache entries. Failures are logged, never raised,
    so one bad run does not unschedule the job.
    """
    logger.info("Scheduler: purge_forecast_cache starting")
    with session_scope() as db:
        try:
            removed = get_forecast_service().purge_expired(db=db, now=datetime.now(tz=timezone.utc))
        except StorageError as exc:
            logger.warning("Scheduler: purge_forecast_cache failed: %s", exc)
            return
    logger.info("Scheduler: purge_forecast_cache complete removed=%s", removed)


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        purge_forecast_cache,
        trigger="interval",
        minutes=settings.cache_purge_interval_minutes,
        id="purge_forecast_cache",
        name="Purge expired forecast cache entries",
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=600,
    )

    return scheduler
