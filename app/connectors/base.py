"""
app/connectors/base.py

Shared HTTP mechanics for outbound API connectors: request throttling,
retry with exponential backoff, and JSON decoding.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import requests

from app.config import ExternalHTTPSettings
from app.domain.keyword_roi import ConnectionCheckResult

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ConnectorRequestError(RuntimeError):
    """
    Raised when an upstream call fails for good.

    ``status_code`` carries the last HTTP status when one was received.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times a request is re-sent and how long to wait in between.
    """

    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0

    @classmethod
    def from_settings(cls, settings: ExternalHTTPSettings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            backoff_initial_seconds=settings.backoff_initial_seconds,
            backoff_multiplier=settings.backoff_multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1`` (0-based attempt)."""
        return self.backoff_initial_seconds * (self.backoff_multiplier**attempt)


class RequestThrottle:
    """
    Keeps at least ``1 / per_second`` seconds between consecutive requests.
    A non-positive rate disables throttling.
    """

    def __init__(self, per_second: float) -> None:
        self._interval = 1.0 / per_second if per_second > 0 else 0.0
        self._last_sent = 0.0

    def wait(self) -> None:
        if self._interval <= 0:
            return
        remaining = self._interval - (time.monotonic() - self._last_sent)
        if remaining > 0:
            time.sleep(remaining)
        self._last_sent = time.monotonic()


class BaseConnector(ABC):
    """
    Base class for authenticated connectors to an external HTTP API.

    Subclasses build URLs and payloads; this class sends them. Statuses in
    :data:`RETRYABLE_STATUS_CODES`, timeouts and connection errors are
    retried per the :class:`RetryPolicy`; any other HTTP error fails
    immediately.
    """

    source: str

    def __init__(
        self,
        *,
        source: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.source = source
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._retry = RetryPolicy.from_settings(http_settings)
        self._throttle = RequestThrottle(http_settings.rate_limit_per_second)

    @abstractmethod
    def test_connection(self) -> ConnectionCheckResult:
        """
        Probe the upstream API with the configured credentials. Never raises.
        """

    def _request_json(self, *, method: str, url: str, **options: Any) -> Any:
        """
        :meth:`_request` and decode the body as JSON.
        """

        response = self._request(method=method, url=url, **options)
        try:
            return response.json()
        except ValueError as exc:
            raise ConnectorRequestError(
                f"{self.source}: response was not valid JSON.",
                status_code=response.status_code,
            ) from exc

    def _request(
        self,
        *,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        form_data: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Send one logical request, retrying transient failures.

        Parameters
        ----------
        json_body:
            Serialized as the JSON request body.
        form_data:
            Sent as ``application/x-www-form-urlencoded``.

        Raises
        ------
        ConnectorRequestError
            On a non-retryable HTTP status or once retries are exhausted.
        """

        last_error: Exception | None = None
        last_status: int | None = None
        attempts = self._retry.max_retries + 1

        for attempt in range(attempts):
            self._throttle.wait()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=headers,
                    json=json_body,
                    data=form_data,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error, last_status = exc, None
            else:
                if response.status_code < 400:
                    return response
                last_status = response.status_code
                last_error = requests.HTTPError(f"HTTP {last_status}", response=response)
                if last_status not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "%s request rejected status=%s method=%s url=%s",
                        self.source,
                        last_status,
                        method,
                        url,
                    )
                    raise ConnectorRequestError(
                        f"{self.source}: request rejected (HTTP {last_status}).",
                        status_code=last_status,
                    ) from last_error

            if attempt + 1 >= attempts:
                break
            delay = self._retry.delay_for(attempt)
            logger.warning(
                "%s request retry %s/%s in %.2fs url=%s error=%s",
                self.source,
                attempt + 1,
                self._retry.max_retries,
                delay,
                url,
                last_error,
            )
            time.sleep(delay)

        logger.error("%s request gave up after %s attempts url=%s", self.source, attempts, url)
        raise ConnectorRequestError(
            f"{self.source}: request failed after {attempts} attempts.",
            status_code=last_status,
        ) from last_error
