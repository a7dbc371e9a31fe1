"""
Run the revenue forecast from CLI.

Input is a JSON file (a list of observations, or an object with a
``series`` list) or a captured dashboard HTML page. The forecast is printed
as JSON. With ``--project`` the observations are first merged into the
project's stored history and the forecast is computed from that history.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup

from app.config import ForecastSettings, get_forecast_settings
from app.logging_utils import configure_logging
from app.scraping.parsing.dashboard_parsers import DashboardParsingLayer
from app.services.forecast_service import (
    ForecastingDisabledError,
    ForecastService,
    InsufficientHistoryError,
    ProjectHistoryNotFoundError,
)
from forecast.types import Granularity


def _load_series(path: Path) -> tuple[list[Any], Granularity | None]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".html", ".htm"}:
        parsed = DashboardParsingLayer.parse_revenue_series(BeautifulSoup(text, "html.parser"))
        if parsed is None:
            raise ValueError(f"No revenue series found in {path}.")
        return parsed.as_records(), parsed.granularity

    payload = json.loads(text)
    if isinstance(payload, dict):
        return list(payload.get("series") or []), Granularity.parse(payload.get("granularity"))
    if isinstance(payload, list):
        return payload, None
    raise ValueError(f"{path} must hold a JSON list or an object with a 'series' list.")


def _parse_now(raw: str | None) -> date:
    if raw is None:
        return datetime.now(tz=timezone.utc).date()
    return date.fromisoformat(raw)


def main() -> int:
    parser = argparse.ArgumentParser(description="Forecast revenue from a series or dashboard page.")
    parser.add_argument("input", type=Path, help="JSON series file or dashboard HTML file.")
    parser.add_argument(
        "--granularity",
        choices=[g.value for g in Granularity],
        default=None,
        help="Override the detected granularity.",
    )
    parser.add_argument("--now", default=None, help="Evaluation date YYYY-MM-DD (default: today UTC).")
    parser.add_argument(
        "--variance-override",
        type=float,
        default=None,
        help="Confidence width in percent (10-50); 0 = automatic.",
    )
    parser.add_argument("--project", default=None, help="Merge into this project's stored history first.")
    parser.add_argument("--page-url", default=None, help="Dashboard page URL (project id fallback).")
    args = parser.parse_args()

    configure_logging("WARNING")

    try:
        series, detected = _load_series(args.input)
        now = _parse_now(args.now)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    granularity = Granularity.parse(args.granularity) or detected
    settings = get_forecast_settings()
    project_id = args.project or DashboardParsingLayer.extract_project_id(args.page_url)

    try:
        if project_id:
            payload = _forecast_project(settings, project_id, series, granularity, now, args.variance_override)
        else:
            service = ForecastService(settings=settings)
            payload = service.forecast_series(series, granularity, now=now, variance_override=args.variance_override)
    except ForecastingDisabledError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 3

    if payload is None:
        print("error: at least 3 valid observations are required to forecast.", file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2))
    return 0


def _forecast_project(
    settings: ForecastSettings,
    project_id: str,
    series: list[Any],
    granularity: Granularity | None,
    now: date,
    variance_override: float | None,
) -> dict[str, Any] | None:
    from db.session import session_scope

    service = ForecastService(settings=settings)
    evaluated_at = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    with session_scope() as db:
        merged = service.record_history(db=db, project_id=project_id, observations=series, granularity=granularity)
        try:
            result = service.get_project_forecast(
                db=db,
                project_id=project_id,
                now=evaluated_at,
                granularity=merged.granularity,
                variance_override=variance_override,
            )
        except (ProjectHistoryNotFoundError, InsufficientHistoryError):
            return None
    return result.payload


if __name__ == "__main__":
    raise SystemExit(main())
