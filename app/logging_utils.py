"""
app/logging_utils.py

Process-wide logging setup and structured event lines for ingestion and
forecast workflows.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(default_level: str = "INFO") -> None:
    """
    Configure root logging once per process.

    ``LOG_LEVEL`` wins over ``default_level``; unknown level names fall back
    to INFO.
    """

    level_name = os.getenv("LOG_LEVEL", default_level).strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    ``None`` fields are omitted. Dates and other non-JSON values are
    rendered with ``str``.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
