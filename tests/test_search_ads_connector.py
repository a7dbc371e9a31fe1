"""
tests/test_search_ads_connector.py

Apple Search Ads connector against a scripted fake HTTP session.

Coverage
--------
* Credential format validation.
* Token exchange, in-memory caching and refresh.
* Retry on retryable status codes, fail fast on others.
* Keyword report paging and per-keyword aggregation.
* Connection check messages.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest
import requests

from app.config import ExternalHTTPSettings, SearchAdsSettings
from app.connectors.base import ConnectorRequestError, RequestThrottle, RetryPolicy
from app.connectors.search_ads_connector import (
    SearchAdsAuthError,
    SearchAdsConfigurationError,
    SearchAdsConnector,
    parse_report_row,
    validate_credentials,
)
from app.domain.keyword_roi import DateRange

TOKEN_URL = "https://auth.example.com/token"
API_BASE = "https://ads.example.com/api/v5"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeSession:
    def __init__(self, responses: list[FakeResponse]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> FakeResponse:
        self.calls.append(kwargs)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {kwargs.get('method')} {kwargs.get('url')}")
        return self._responses.pop(0)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def _token(expires_in: int = 3600) -> FakeResponse:
    return FakeResponse(200, {"access_token": "tok-1", "expires_in": expires_in})


def _report(rows: list[dict[str, Any]], total: int | None) -> FakeResponse:
    payload: dict[str, Any] = {"data": {"reportingDataResponse": {"row": rows}}}
    if total is not None:
        payload["pagination"] = {"totalResults": total, "startIndex": 0}
    return FakeResponse(200, payload)


def _row(keyword: str, amount: str, impressions: int = 0, taps: int = 0, installs: int = 0) -> dict[str, Any]:
    return {
        "metadata": {"keyword": keyword, "keywordId": 1},
        "total": {
            "localSpend": {"amount": amount, "currency": "USD"},
            "impressions": impressions,
            "taps": taps,
            "installs": installs,
        },
    }


@pytest.fixture()
def settings() -> SearchAdsSettings:
    return SearchAdsSettings(
        enabled=True,
        client_id="SEARCHADS.abc-123",
        client_secret="super-secret-value",
        org_id="123456",
        token_url=TOKEN_URL,
        api_base_url=API_BASE,
        page_limit=2,
        token_expiry_buffer_seconds=60,
    )


def _http(max_retries: int = 0) -> ExternalHTTPSettings:
    return ExternalHTTPSettings(
        timeout_seconds=1.0,
        max_retries=max_retries,
        backoff_initial_seconds=0.0,
        backoff_multiplier=1.0,
        rate_limit_per_second=0.0,
    )


def _connector(settings, responses, *, clock=None, max_retries=0):
    session = FakeSession(responses)
    connector = SearchAdsConnector(
        settings=settings,
        http_settings=_http(max_retries),
        session=session,
        clock=clock or FakeClock(),
    )
    return connector, session


WINDOW = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestValidateCredentials:
    def test_valid(self) -> None:
        assert validate_credentials("SEARCHADS.abc", "0123456789", "42") == []

    def test_every_problem_reported(self) -> None:
        problems = validate_credentials("abc", "short", "org-1")
        assert len(problems) == 3

    def test_missing_values(self) -> None:
        problems = validate_credentials(None, None, None)
        assert "Client ID is required." in problems
        assert "Organization ID is required." in problems


class TestAccessToken:
    def test_token_exchange_posts_form(self, settings) -> None:
        connector, session = _connector(settings, [_token()])

        assert connector.get_access_token() == "tok-1"

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == TOKEN_URL
        assert call["data"]["grant_type"] == "client_credentials"
        assert call["data"]["client_id"] == "SEARCHADS.abc-123"
        assert call["data"]["scope"] == "searchadsorg"

    def test_token_is_cached_until_buffer(self, settings) -> None:
        clock = FakeClock(1_000.0)
        connector, session = _connector(
            settings,
            [_token(3600), FakeResponse(200, {"access_token": "tok-2", "expires_in": 3600})],
            clock=clock,
        )

        assert connector.get_access_token() == "tok-1"
        clock.now = 1_000.0 + 3600 - 61
        assert connector.get_access_token() == "tok-1"
        assert len(session.calls) == 1

        clock.now = 1_000.0 + 3600 - 60
        assert connector.get_access_token() == "tok-2"
        assert len(session.calls) == 2

    def test_clear_token_forces_refresh(self, settings) -> None:
        connector, session = _connector(settings, [_token(), _token()])
        connector.get_access_token()
        connector.clear_token()
        connector.get_access_token()
        assert len(session.calls) == 2

    def test_rejected_credentials(self, settings) -> None:
        connector, _ = _connector(settings, [FakeResponse(401, {"error": "invalid_client"})])

        with pytest.raises(SearchAdsAuthError) as excinfo:
            connector.get_access_token()
        assert excinfo.value.status_code == 401

    def test_response_without_token(self, settings) -> None:
        connector, _ = _connector(settings, [FakeResponse(200, {"expires_in": 3600})])
        with pytest.raises(SearchAdsAuthError):
            connector.get_access_token()

    def test_disabled_connector(self, settings) -> None:
        disabled = SearchAdsSettings(**{**settings.__dict__, "enabled": False})
        connector, session = _connector(disabled, [])

        with pytest.raises(SearchAdsConfigurationError):
            connector.get_access_token()
        assert session.calls == []


class TestRetries:
    def test_retryable_status_then_success(self, settings) -> None:
        connector, session = _connector(
            settings,
            [FakeResponse(503, {}), FakeResponse(429, {}), _token()],
            max_retries=2,
        )
        assert connector.get_access_token() == "tok-1"
        assert len(session.calls) == 3

    def test_retries_exhausted(self, settings) -> None:
        connector, session = _connector(
            settings,
            [FakeResponse(500, {}), FakeResponse(500, {})],
            max_retries=1,
        )
        with pytest.raises(SearchAdsAuthError) as excinfo:
            connector.get_access_token()
        assert excinfo.value.status_code == 500
        assert len(session.calls) == 2

    def test_invalid_json_body(self, settings) -> None:
        connector, _ = _connector(settings, [_token(), FakeResponse(200, None)])
        with pytest.raises(ConnectorRequestError):
            connector.fetch_keyword_spend(WINDOW)


class TestKeywordReport:
    def test_pages_until_total_results(self, settings) -> None:
        connector, session = _connector(
            settings,
            [
                _token(),
                _report([_row("Meditation App", "10.50", 100, 10, 2), _row("sleep sounds", "4")], total=3),
                _report([_row("meditation  app", "1.50", 50, 5, 1)], total=3),
            ],
        )

        spend = connector.fetch_keyword_spend(WINDOW)

        assert set(spend) == {"meditation app", "sleep sounds"}
        meditation = spend["meditation app"]
        assert meditation.spend == pytest.approx(12.0)
        assert meditation.impressions == 150
        assert meditation.taps == 15
        assert meditation.installs == 3

        report_calls = session.calls[1:]
        assert [c["json"]["selector"]["pagination"]["offset"] for c in report_calls] == [0, 2]
        assert report_calls[0]["url"] == f"{API_BASE}/reports/campaigns/keywords"
        assert report_calls[0]["json"]["startTime"] == "2026-01-01"
        assert report_calls[0]["json"]["endTime"] == "2026-01-31"
        assert report_calls[0]["headers"]["Authorization"] == "Bearer tok-1"
        assert report_calls[0]["headers"]["X-AP-Context"] == "orgId=123456"

    def test_stops_on_empty_page(self, settings) -> None:
        connector, session = _connector(settings, [_token(), _report([], total=10)])
        assert connector.fetch_keyword_spend(WINDOW) == {}
        assert len(session.calls) == 2

    def test_stops_without_pagination(self, settings) -> None:
        connector, session = _connector(
            settings, [_token(), _report([_row("a", "1"), _row("b", "2")], total=None)]
        )
        assert set(connector.fetch_keyword_spend(WINDOW)) == {"a", "b"}
        assert len(session.calls) == 2


class TestParseReportRow:
    def test_granularity_bucket_fallback(self) -> None:
        row = {
            "metadata": {"keywordText": "Calm"},
            "total": {"impressions": "12"},
            "granularity": [{"localSpend": {"amount": "3.25"}}],
        }
        keyword, spend = parse_report_row(row)
        assert keyword == "calm"
        assert spend.spend == pytest.approx(3.25)
        assert spend.impressions == 12

    def test_row_without_keyword(self) -> None:
        assert parse_report_row({"metadata": {}, "total": {}}) is None
        assert parse_report_row("row") is None


class TestConnectionCheck:
    def test_success(self, settings) -> None:
        connector, session = _connector(settings, [_token(), FakeResponse(200, {"data": []})])

        result = connector.test_connection()

        assert result.success is True
        assert result.message == "Connected successfully"
        assert session.calls[1]["method"] == "GET"
        assert session.calls[1]["url"] == f"{API_BASE}/campaigns"

    def test_api_error_status(self, settings) -> None:
        connector, _ = _connector(settings, [_token(), FakeResponse(403, {})])

        result = connector.test_connection()

        assert result.success is False
        assert result.message == "API error: 403"

    def test_misconfigured(self) -> None:
        connector, _ = _connector(SearchAdsSettings(client_id="bad"), [])

        result = connector.test_connection()

        assert result.success is False
        assert "SEARCHADS." in result.message


class TestRetryPolicy:
    def test_backoff_grows_geometrically(self) -> None:
        policy = RetryPolicy(max_retries=3, backoff_initial_seconds=0.5, backoff_multiplier=2.0)
        assert [policy.delay_for(n) for n in range(3)] == [0.5, 1.0, 2.0]

    def test_disabled_throttle_never_sleeps(self, monkeypatch) -> None:
        def fail_sleep(_: float) -> None:
            raise AssertionError("throttle slept")

        monkeypatch.setattr("app.connectors.base.time.sleep", fail_sleep)
        throttle = RequestThrottle(0.0)
        throttle.wait()
        throttle.wait()
