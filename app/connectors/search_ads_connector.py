"""
app/connectors/search_ads_connector.py

Apple Search Ads connector: OAuth client-credentials token exchange and
keyword-level spend reports.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from app.config import ExternalHTTPSettings, SearchAdsSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.domain.keyword_roi import ConnectionCheckResult, DateRange, KeywordSpend, normalize_keyword

logger = logging.getLogger(__name__)

CLIENT_ID_PREFIX = "SEARCHADS."
MIN_CLIENT_SECRET_LENGTH = 10
TOKEN_SCOPE = "searchadsorg"


class SearchAdsAuthError(ConnectorRequestError):
    """
    Raised when the OAuth token exchange fails or returns no token.
    """


class SearchAdsConfigurationError(RuntimeError):
    """
    Raised when Search Ads credentials are missing or malformed.
    """


def validate_credentials(
    client_id: str | None,
    client_secret: str | None,
    org_id: str | int | None,
) -> list[str]:
    """
    Check credential formats without contacting the API.

    Returns
    -------
    list[str]
        Human-readable problems; empty when the credentials look valid.
    """

    problems: list[str] = []
    if not client_id or not str(client_id).strip():
        problems.append("Client ID is required.")
    elif not str(client_id).strip().startswith(CLIENT_ID_PREFIX):
        problems.append(f"Client ID must start with '{CLIENT_ID_PREFIX}'.")

    if not client_secret or len(str(client_secret).strip()) < MIN_CLIENT_SECRET_LENGTH:
        problems.append(f"Client secret must be at least {MIN_CLIENT_SECRET_LENGTH} characters.")

    org_text = str(org_id).strip() if org_id is not None else ""
    if not org_text:
        problems.append("Organization ID is required.")
    elif not org_text.isdigit():
        problems.append("Organization ID must be numeric.")

    return problems


class SearchAdsConnector(BaseConnector):
    """
    Connector for the Apple Search Ads Campaign Management API (v5).

    Access tokens are cached in memory until ``token_expiry_buffer_seconds``
    before they expire. Report requests page through results until the
    reported ``totalResults`` is exhausted.
    """

    def __init__(
        self,
        *,
        settings: SearchAdsSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(source="search_ads", http_settings=http_settings, session=session)
        self._settings = settings
        self._clock = clock
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_configured(self) -> None:
        if not self._settings.enabled:
            raise SearchAdsConfigurationError("Search Ads integration is disabled.")
        problems = validate_credentials(
            self._settings.client_id,
            self._settings.client_secret,
            self._settings.org_id,
        )
        if problems:
            raise SearchAdsConfigurationError(" ".join(problems))

    def get_access_token(self) -> str:
        """
        Return a cached access token, exchanging client credentials when the
        cached one is missing or about to expire.
        """

        self.ensure_configured()
        now = self._clock()
        if self._access_token and now < self._token_expires_at:
            return self._access_token

        try:
            payload = self._request_json(
                method="POST",
                url=self._settings.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                form_data={
                    "grant_type": "client_credentials",
                    "client_id": str(self._settings.client_id),
                    "client_secret": str(self._settings.client_secret),
                    "scope": TOKEN_SCOPE,
                },
            )
        except ConnectorRequestError as exc:
            raise SearchAdsAuthError(
                "Failed to get Search Ads access token.",
                status_code=exc.status_code,
            ) from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise SearchAdsAuthError("Token response did not contain an access token.")

        try:
            expires_in = float(payload.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0.0

        self._access_token = str(token)
        self._token_expires_at = now + expires_in - self._settings.token_expiry_buffer_seconds
        logger.info("Search Ads access token refreshed expires_in=%s", expires_in)
        return self._access_token

    def clear_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    def fetch_keyword_spend(self, date_range: DateRange) -> dict[str, KeywordSpend]:
        """
        Fetch keyword-level spend for ``date_range``.

        Parameters
        ----------
        date_range:
            Inclusive reporting window.

        Returns
        -------
        dict[str, KeywordSpend]
            Keyed by normalized keyword. When a keyword appears in several
            rows (e.g. per country) the totals are summed.
        """

        token = self.get_access_token()
        limit = self._settings.page_limit
        offset = 0
        spend_by_keyword: dict[str, KeywordSpend] = {}

        while True:
            payload = self._request_json(
                method="POST",
                url=f"{self._settings.api_base_url}/reports/campaigns/keywords",
                headers=self._api_headers(token),
                json_body=self._report_body(date_range, offset=offset, limit=limit),
            )
            rows = _report_rows(payload)
            for row in rows:
                parsed = parse_report_row(row)
                if parsed is None:
                    continue
                keyword, spend = parsed
                spend_by_keyword[keyword] = _combine(spend_by_keyword.get(keyword), spend)

            total_results = _total_results(payload)
            offset += limit
            if not rows or total_results is None or offset >= total_results:
                break

        logger.info(
            "Search Ads keyword report fetched start=%s end=%s keywords=%s",
            date_range.start,
            date_range.end,
            len(spend_by_keyword),
        )
        return spend_by_keyword

    def test_connection(self) -> ConnectionCheckResult:
        try:
            token = self.get_access_token()
            self._request(
                method="GET",
                url=f"{self._settings.api_base_url}/campaigns",
                headers=self._api_headers(token),
            )
        except SearchAdsConfigurationError as exc:
            return ConnectionCheckResult(success=False, message=str(exc))
        except SearchAdsAuthError as exc:
            return ConnectionCheckResult(success=False, message=str(exc))
        except ConnectorRequestError as exc:
            if exc.status_code is not None:
                return ConnectionCheckResult(success=False, message=f"API error: {exc.status_code}")
            return ConnectionCheckResult(success=False, message=str(exc))
        return ConnectionCheckResult(success=True, message="Connected successfully")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _api_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "X-AP-Context": f"orgId={self._settings.org_id}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _report_body(date_range: DateRange, *, offset: int, limit: int) -> dict[str, Any]:
        return {
            "startTime": date_range.start.isoformat(),
            "endTime": date_range.end.isoformat(),
            "selector": {
                "orderBy": [{"field": "localSpend", "sortOrder": "DESCENDING"}],
                "pagination": {"offset": offset, "limit": limit},
            },
            "groupBy": ["countryOrRegion"],
            "timeZone": "UTC",
            "returnRowTotals": True,
            "returnRecordsWithNoMetrics": False,
        }


# ---------------------------------------------------------------------------
# Report payload helpers
# ---------------------------------------------------------------------------


def parse_report_row(row: Any) -> tuple[str, KeywordSpend] | None:
    """
    Extract ``(normalized keyword, KeywordSpend)`` from one report row.

    Spend comes from ``total.localSpend.amount``, falling back to the first
    ``granularity`` bucket. Rows without a keyword are skipped.
    """

    if not isinstance(row, dict):
        return None
    metadata = row.get("metadata") if isinstance(row.get("metadata"), dict) else {}
    keyword = metadata.get("keyword") or metadata.get("keywordText")
    if not isinstance(keyword, str) or not keyword.strip():
        return None

    total = row.get("total") if isinstance(row.get("total"), dict) else {}
    amount = _spend_amount(total)
    if amount is None:
        buckets = row.get("granularity")
        if isinstance(buckets, list) and buckets and isinstance(buckets[0], dict):
            amount = _spend_amount(buckets[0])

    return normalize_keyword(keyword), KeywordSpend(
        spend=_to_float(amount),
        impressions=_to_int(total.get("impressions")),
        taps=_to_int(total.get("taps")),
        installs=_to_int(total.get("installs")),
    )


def _spend_amount(container: dict[str, Any]) -> Any:
    local_spend = container.get("localSpend")
    if isinstance(local_spend, dict) and local_spend.get("amount") not in (None, ""):
        return local_spend["amount"]
    return None


def _report_rows(payload: Any) -> list[Any]:
    if not isinstance(payload, dict):
        return []
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    reporting = data.get("reportingDataResponse") if isinstance(data.get("reportingDataResponse"), dict) else {}
    rows = reporting.get("row")
    return rows if isinstance(rows, list) else []


def _total_results(payload: Any) -> int | None:
    if not isinstance(payload, dict):
        return None
    pagination = payload.get("pagination")
    if not isinstance(pagination, dict):
        return None
    return _to_int(pagination.get("totalResults")) if pagination.get("totalResults") is not None else None


def _combine(existing: KeywordSpend | None, new: KeywordSpend) -> KeywordSpend:
    if existing is None:
        return new
    return KeywordSpend(
        spend=existing.spend + new.spend,
        impressions=existing.impressions + new.impressions,
        taps=existing.taps + new.taps,
        installs=existing.installs + new.installs,
    )


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0
