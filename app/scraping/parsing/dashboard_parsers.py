"""
BeautifulSoup-based parsing layer for subscription analytics dashboard pages.

The dashboard renders its revenue chart data as a table whose header cells
are dates (``Jan 25 '26``) and whose rows are metrics. Keyword attribution
pages render a plain keyword/revenue table.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup, Tag

from app.domain.keyword_roi import DateRange, KeywordRevenue
from app.logging_utils import log_event
from app.scraping.types import ParsedRevenueTable
from forecast.types import Granularity, Observation

logger = logging.getLogger(__name__)

SHORT_YEAR_REGEX = re.compile(r"^([A-Za-z]{3})\s+(\d{1,2})\s+'(\d{2})$")
DATE_RANGE_REGEX = re.compile(
    r"([A-Za-z]{3}\s+\d{1,2}\s+'\d{2})\s*[-–—]\s*([A-Za-z]{3}\s+\d{1,2}\s+'\d{2})"
)
ASSIGNMENT_REGEX = re.compile(r"^\s*window\.[A-Za-z_$][\w$]*\s*=\s*(.+?);?\s*$", re.DOTALL)
PROJECT_PATH_REGEX = re.compile(r"/projects/([^/?#]+)")
CURRENCY_STRIP_REGEX = re.compile(r"[$,\s]")

DATE_PATTERNS = [
    "%b %d, %Y",
    "%b %d %Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%Y-%m-%d",
    "%m/%d/%Y",
]
SUMMARY_COLUMN_MARKERS = ("average", "total", "sum")
ATTRIBUTION_HEADER_MARKERS = ("keyword", "campaign", "source", "attribution")

EMBEDDED_SEARCH_DEPTH = 8
EMBEDDED_MIN_POINTS = 10
EMBEDDED_DATE_KEYS = ("date", "timestamp", "day", "x", "time")
EMBEDDED_VALUE_KEYS = ("revenue", "amount", "value", "y", "total")
EMBEDDED_CONTAINER_KEYS = {"data", "chartdata", "revenuedata", "values", "series", "points", "rows"}


class DashboardParsingLayer:
    """
    Deterministic parser utilities for dashboard HTML documents.
    """

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------

    @staticmethod
    def parse_dashboard_date(text: str | None) -> date | None:
        """
        Parse a dashboard date label.

        Supports ``Jan 25 '26`` (two-digit years below 50 are 20xx, others
        19xx), ``Jan 25, 2026``, ``January 25 2026``, ISO ``YYYY-MM-DD`` and
        ``MM/DD/YYYY``.
        """

        if not text:
            return None
        compact = re.sub(r"\s+", " ", text).strip()

        match = SHORT_YEAR_REGEX.match(compact)
        if match is not None:
            month, day, short_year = match.groups()
            year = 2000 + int(short_year) if int(short_year) < 50 else 1900 + int(short_year)
            compact = f"{month} {day}, {year}"

        for pattern in DATE_PATTERNS:
            try:
                return datetime.strptime(compact, pattern).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def parse_currency_value(text: str | None) -> float | None:
        if not text:
            return None
        cleaned = CURRENCY_STRIP_REGEX.sub("", text)
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None

    @classmethod
    def detect_header_granularity(cls, headers: list[str]) -> Granularity:
        """
        Infer granularity from the first two date headers after the label column.

        28-31 days apart is monthly, 6-8 days weekly, anything else daily.
        """

        dates = [parsed for parsed in (cls.parse_dashboard_date(h) for h in headers[1:]) if parsed]
        if len(dates) < 2:
            return Granularity.DAILY

        gap = abs((dates[1] - dates[0]).days)
        if 28 <= gap <= 31:
            return Granularity.MONTHLY
        if 6 <= gap <= 8:
            return Granularity.WEEKLY
        return Granularity.DAILY

    # ------------------------------------------------------------------
    # Revenue chart
    # ------------------------------------------------------------------

    @classmethod
    def parse_revenue_table(cls, soup: BeautifulSoup) -> ParsedRevenueTable | None:
        """
        Return the revenue series of the first table that yields one.
        """

        for index, table in enumerate(soup.find_all("table")):
            parsed = cls._parse_single_table(table)
            if parsed is not None:
                log_event(
                    logger,
                    logging.INFO,
                    "dashboard_revenue_table_parsed",
                    table_index=index,
                    points=len(parsed.observations),
                    granularity=parsed.granularity.value,
                )
                return parsed
        return None

    @classmethod
    def parse_revenue_series(cls, soup: BeautifulSoup) -> ParsedRevenueTable | None:
        """
        Table first, then JSON embedded in ``<script>`` tags.
        """

        parsed = cls.parse_revenue_table(soup)
        if parsed is not None:
            return parsed

        embedded = cls.extract_embedded_series(soup)
        if not embedded:
            return None
        granularity = _spacing_granularity(embedded)
        return ParsedRevenueTable(
            observations=[
                Observation(date=o.date, revenue=o.revenue, granularity=granularity) for o in embedded
            ],
            granularity=granularity,
        )

    @classmethod
    def _parse_single_table(cls, table: Tag) -> ParsedRevenueTable | None:
        header_cells = table.select("thead th, thead td")
        if len(header_cells) < 2:
            header_cells = table.find_all("th")

        rows = table.select("tbody tr")
        if not rows:
            rows = table.find_all("tr")
            if rows and rows[0].find("th") is not None:
                rows = rows[1:]

        if len(header_cells) < 2 or not rows:
            return None

        headers = [cls._clean_text(cell.get_text(" ", strip=True)) for cell in header_cells]
        granularity = cls.detect_header_granularity(headers)

        revenue_row = cls._find_revenue_row(rows)
        if revenue_row is None:
            return None

        cells = revenue_row.find_all(["td", "th"])
        if not cells:
            return None

        first_cell_text = cls._clean_text(cells[0].get_text(" ", strip=True))
        first_cell_is_data = "$" in first_cell_text or first_cell_text.isdigit()
        start_index = 0 if first_cell_is_data else 1
        header_offset = 0 if cls.parse_dashboard_date(headers[0]) else 1

        observations: list[Observation] = []
        for cell_index in range(start_index, len(cells)):
            header_index = cell_index - start_index + header_offset
            if header_index >= len(headers):
                break

            label = headers[header_index]
            if any(marker in label.lower() for marker in SUMMARY_COLUMN_MARKERS):
                continue

            observed_on = cls.parse_dashboard_date(label)
            revenue = cls.parse_currency_value(cells[cell_index].get_text(" ", strip=True))
            if observed_on is None or revenue is None:
                continue
            observations.append(Observation(date=observed_on, revenue=revenue, granularity=granularity))

        if not observations:
            return None
        return ParsedRevenueTable(observations=observations, granularity=granularity)

    @classmethod
    def _find_revenue_row(cls, rows: Iterable[Tag]) -> Tag | None:
        """
        An explicitly labelled revenue row wins; otherwise the first row
        holding currency values.
        """

        currency_row: Tag | None = None
        for row in rows:
            row_text = cls._clean_text(row.get_text(" ", strip=True))
            if "revenue" in row_text.lower():
                return row
            if currency_row is None and "$" in row_text:
                currency_row = row
        return currency_row

    # ------------------------------------------------------------------
    # Embedded JSON
    # ------------------------------------------------------------------

    @classmethod
    def extract_embedded_series(cls, soup: BeautifulSoup) -> list[Observation]:
        """
        Look for a chart series serialized into the page's scripts.

        Candidates are ``__NEXT_DATA__``, ``application/json`` blocks and
        ``window.X = {...}`` assignments. The first array of more than ten
        objects with date-like and value-like keys is normalized.
        """

        for script in soup.find_all("script"):
            payload = cls._script_payload(script)
            if payload is None:
                continue
            found = _find_series(payload, depth=0)
            if found is None:
                continue
            observations = _normalize_embedded(found)
            if observations:
                log_event(
                    logger,
                    logging.INFO,
                    "dashboard_embedded_series_found",
                    script_id=script.get("id"),
                    points=len(observations),
                )
                return observations
        return []

    @staticmethod
    def _script_payload(script: Tag) -> Any:
        text = script.string or script.get_text()
        if not text or not text.strip():
            return None

        script_type = (script.get("type") or "").lower()
        candidates = []
        if script.get("id") == "__NEXT_DATA__" or "json" in script_type:
            candidates.append(text)
        else:
            match = ASSIGNMENT_REGEX.match(text)
            if match is not None:
                candidates.append(match.group(1))

        for candidate in candidates:
            try:
                return json.loads(candidate)
            except ValueError:
                continue
        return None

    # ------------------------------------------------------------------
    # Attribution
    # ------------------------------------------------------------------

    @classmethod
    def find_attribution_table(cls, soup: BeautifulSoup) -> Tag | None:
        for table in soup.find_all("table"):
            headers = [th.get_text(" ", strip=True).lower() for th in table.find_all("th")]
            if any(marker in header for header in headers for marker in ATTRIBUTION_HEADER_MARKERS):
                return table
        return None

    @classmethod
    def extract_keywords(cls, table: Tag | None) -> list[KeywordRevenue]:
        """
        Read ``(keyword, revenue)`` pairs from the first two cells of each body row.
        """

        if table is None:
            return []

        rows = table.select("tbody tr") or [row for row in table.find_all("tr") if row.find("td")]
        keywords: list[KeywordRevenue] = []
        for row in rows:
            cells = row.find_all("td")
            if len(cells) < 2:
                continue
            keyword = cls._clean_text(cells[0].get_text(" ", strip=True))
            revenue = cls.parse_currency_value(cells[1].get_text(" ", strip=True))
            if keyword and revenue is not None:
                keywords.append(KeywordRevenue(keyword=keyword, revenue=revenue))
        return keywords

    @classmethod
    def extract_date_range(cls, soup: BeautifulSoup | None, url: str | None = None) -> DateRange | None:
        """
        Reporting window from the URL query, else from a ``Jul 11 '20 - Feb 03 '26``
        label on the page.
        """

        if url:
            query = parse_qs(urlparse(url).query)
            start_raw = _first_param(query, ("start_date", "startDate", "from"))
            end_raw = _first_param(query, ("end_date", "endDate", "to"))
            if start_raw and end_raw:
                start = cls.parse_dashboard_date(start_raw)
                end = cls.parse_dashboard_date(end_raw)
                if start and end:
                    return DateRange(start=start, end=end)

        if soup is None:
            return None
        for node in soup.find_all(string=DATE_RANGE_REGEX):
            match = DATE_RANGE_REGEX.search(str(node))
            if match is None:
                continue
            start = cls.parse_dashboard_date(match.group(1))
            end = cls.parse_dashboard_date(match.group(2))
            if start and end:
                return DateRange(start=start, end=end)
        return None

    @staticmethod
    def extract_project_id(url: str | None) -> str | None:
        if not url:
            return None
        parsed = urlparse(url)
        match = PROJECT_PATH_REGEX.search(parsed.path)
        if match is not None:
            return match.group(1)
        query = parse_qs(parsed.query)
        return _first_param(query, ("project", "project_id"))

    @staticmethod
    def _clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _first_param(query: dict[str, list[str]], names: tuple[str, ...]) -> str | None:
    for name in names:
        values = query.get(name)
        if values and values[0].strip():
            return values[0].strip()
    return None


def _find_series(node: Any, *, depth: int) -> list[Any] | None:
    if depth > EMBEDDED_SEARCH_DEPTH or not isinstance(node, (dict, list)):
        return None

    if isinstance(node, list):
        if len(node) > EMBEDDED_MIN_POINTS and isinstance(node[0], dict):
            keys = node[0].keys()
            if any(k in keys for k in EMBEDDED_DATE_KEYS) and any(k in keys for k in EMBEDDED_VALUE_KEYS):
                return node
        return None

    # Likely containers first, then everything else.
    ordered = sorted(node.items(), key=lambda item: not _is_container_key(item[0]))
    for _key, value in ordered:
        found = _find_series(value, depth=depth + 1)
        if found is not None:
            return found
    return None


def _is_container_key(key: Any) -> bool:
    lowered = str(key).lower()
    return lowered in EMBEDDED_CONTAINER_KEYS or "data" in lowered


def _normalize_embedded(items: list[Any]) -> list[Observation]:
    observations: list[Observation] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        observed_on = _embedded_date(next((item[k] for k in EMBEDDED_DATE_KEYS if item.get(k)), None))
        raw_revenue = next((item[k] for k in EMBEDDED_VALUE_KEYS if item.get(k) is not None), 0)
        if isinstance(raw_revenue, str):
            revenue = DashboardParsingLayer.parse_currency_value(raw_revenue)
        elif isinstance(raw_revenue, (int, float)) and not isinstance(raw_revenue, bool):
            revenue = float(raw_revenue)
        else:
            revenue = None
        if observed_on is None or revenue is None:
            continue
        observations.append(Observation(date=observed_on, revenue=revenue))
    return observations


def _embedded_date(value: Any) -> date | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds.
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        parsed = DashboardParsingLayer.parse_dashboard_date(value)
        if parsed is not None:
            return parsed
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _spacing_granularity(observations: list[Observation]) -> Granularity:
    ordered = sorted(observations, key=lambda o: o.date)
    if len(ordered) < 2:
        return Granularity.DAILY
    gap = (ordered[1].date - ordered[0].date).days
    if 28 <= gap <= 31:
        return Granularity.MONTHLY
    if 6 <= gap <= 8:
        return Granularity.WEEKLY
    return Granularity.DAILY
