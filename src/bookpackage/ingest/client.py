"""Async HTTP client for the Door43 content service.

Every request goes through ``retry_with_backoff``. A single attempt maps the
response onto the error taxonomy:

- 429 -> RateLimitedError (always retried, up to the rate-limit ceiling)
- 5xx, timeouts, connection failures -> TransientNetworkError
- 404 -> NotFoundError (never retried)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from bookpackage.config import Settings
from bookpackage.errors import (
    InvalidRecordError,
    NotFoundError,
    RateLimitedError,
    TransientNetworkError,
)
from bookpackage.ingest.retry import RetryPolicy, Sleep, retry_with_backoff

logger = logging.getLogger(__name__)


class Door43Client:
    """Thin wrapper over ``httpx.AsyncClient`` with retry and fixed headers.

    Args:
        settings: Base URL, credentials and retry budget
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
        sleep: Awaitable used between retries
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or Settings()
        self.policy = RetryPolicy(
            max_attempts=self.settings.max_retries,
            base_delay=self.settings.backoff_base,
            rate_limit_ceiling=self.settings.rate_limit_retries,
        )
        self._sleep = sleep
        self._http = httpx.AsyncClient(
            headers=self.headers(),
            timeout=self.settings.timeout,
            transport=transport,
            follow_redirects=True,
        )
        self.request_count = 0

    def headers(self) -> dict[str, str]:
        headers = {
            "User-Agent": self.settings.user_agent,
            "Content-Type": "application/json",
        }
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    async def _attempt(
        self, method: str, url: str, params: dict[str, Any] | None
    ) -> httpx.Response:
        self.request_count += 1
        try:
            response = await self._http.request(method, url, params=params)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(url, f"timeout ({type(e).__name__})") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(url, f"{type(e).__name__}: {e}") from e

        if response.status_code == 429:
            raise RateLimitedError(url, response.headers.get("Retry-After"))
        if response.status_code >= 500:
            raise TransientNetworkError(url, f"HTTP {response.status_code}")
        return response

    async def request(
        self, method: str, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Issue a request with retry; returns any non-retryable response."""
        return await retry_with_backoff(
            lambda: self._attempt(method, url, params),
            self.policy,
            description=f"{method} {url}",
            sleep=self._sleep,
        )

    async def get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET returning a successful response.

        Raises:
            NotFoundError: For 404
            TransientNetworkError: For any other non-success status
            ExhaustedRetriesError: When retries run out
        """
        response = await self.request("GET", url, params)
        if response.status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if response.is_error:
            raise TransientNetworkError(url, f"HTTP {response.status_code}")
        return response

    async def get_json(
        self, url: str, params: dict[str, Any] | None = None
    ) -> Any | None:
        """GET and decode JSON; None when the resource does not exist.

        Raises:
            InvalidRecordError: The body is not JSON (e.g. a maintenance page)
        """
        try:
            response = await self.get(url, params)
        except NotFoundError:
            logger.debug(f"404 for {url}")
            return None
        try:
            return response.json()
        except ValueError as e:
            raise InvalidRecordError(
                f"Non-JSON response from {url}", "response"
            ) from e

    async def exists(self, url: str) -> bool:
        """HEAD probe; True only for a 2xx answer."""
        response = await self.request("HEAD", url)
        return response.is_success

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "Door43Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
