"""
Base API Client - Common HTTP request pattern with retry, rate limiting, and circuit breaker.

Shared by the external content providers (news, video):
- Rate limiting (configurable interval between requests)
- Retry on transient errors (429, 5xx, network) via tenacity
- Circuit breaker for fault tolerance
- Typed errors instead of ``None`` so providers can decide to fall back

Status mapping:
    2xx         -> parsed JSON
    429         -> RateLimitError (Retry-After honored)
    5xx         -> ServiceUnavailableError
    other 4xx   -> UpstreamError (not retried)
    bad JSON    -> ParseError
    transport   -> NetworkError
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from typing_extensions import Self

from civic_search.core.async_utils import CircuitBreaker
from civic_search.core.exceptions import (
    NetworkError,
    ParseError,
    RateLimitError,
    ServiceUnavailableError,
    UpstreamError,
    get_retry_delay,
    is_retryable_error,
)

logger = logging.getLogger(__name__)

RETRY_DELAY = 0.5  # seconds


class BaseAPIClient:
    """
    Base class for external API clients.

    Subclasses set ``_service_name`` and call ``_get_json``.

    Example:
        class MyClient(BaseAPIClient):
            _service_name = "MyAPI"

            def __init__(self):
                super().__init__(base_url="https://api.example.com", min_interval=0.1)

            async def get_item(self, item_id: str) -> dict:
                return await self._get_json(f"/items/{item_id}")
    """

    _service_name: str = "API"
    _MAX_RETRIES: int = 2

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 5.0,
        min_interval: float = 0.0,
        headers: dict[str, str] | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize base client.

        Args:
            base_url: Base URL for the API (optional, can pass full URLs)
            timeout: Request timeout in seconds
            min_interval: Minimum seconds between requests (rate limiting)
            headers: Default headers for all requests
            circuit_breaker: Optional circuit breaker. If None, a default one is
                             created (threshold=5, recovery=30s).
            max_retries: Retries after the first attempt (default: _MAX_RETRIES)
            transport: Optional httpx transport (httpx.MockTransport in tests)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._min_interval = min_interval
        self._last_request_time = 0.0
        self._max_retries = self._MAX_RETRIES if max_retries is None else max(0, max_retries)
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers or {},
            transport=transport,
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=30.0)

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def _rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        if self._min_interval <= 0:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.monotonic()

    def _build_url(self, url: str) -> str:
        """Build full URL from path or full URL."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self._base_url}{url}"

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        GET ``url`` and return the decoded JSON object.

        Transient failures are retried with exponential backoff; a 429 waits
        for its Retry-After instead. The last error is re-raised once retries
        are exhausted. An open circuit breaker is never retried.
        """
        full_url = self._build_url(url)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=self._retry_wait,
            retry=retry_if_exception(is_retryable_error),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    logger.warning(f"{self._service_name}: retry {number - 1}/{self._max_retries} for {full_url}")
                return await self._request_once(full_url, params=params, headers=headers)
        raise AssertionError("unreachable")  # pragma: no cover

    def _retry_wait(self, retry_state: RetryCallState) -> float:
        """Seconds to sleep before the next attempt, never longer than the request timeout."""
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitError):
            delay = min(get_retry_delay(error, retry_state.attempt_number - 1), self._timeout)
            logger.warning(f"{self._service_name}: rate limited (429), waiting {delay:.1f}s")
            return delay
        backoff = wait_exponential(multiplier=RETRY_DELAY, min=RETRY_DELAY, max=RETRY_DELAY * 4)
        return backoff(retry_state)

    async def _request_once(
        self,
        url: str,
        *,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> dict[str, Any]:
        await self._rate_limit()
        async with self._circuit_breaker:
            try:
                response = await self._client.get(url, params=params, headers=headers or {})
            except httpx.RequestError as e:
                raise NetworkError(f"{self._service_name} request failed: {e}") from e
            self._raise_for_status(response)
            return self._parse_json(response)

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 429:
            raise RateLimitError(
                f"{self._service_name}: rate limited (429)",
                retry_after=self._get_retry_after(response),
            )
        if status >= 500:
            raise ServiceUnavailableError(response.reason_phrase or "server error", service=self._service_name)
        raise UpstreamError(self._service_name, status, response.reason_phrase)

    def _parse_json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise ParseError(str(e), source=self._service_name) from e
        if not isinstance(payload, dict):
            raise ParseError(f"expected a JSON object, got {type(payload).__name__}", source=self._service_name)
        return payload

    @staticmethod
    def _get_retry_after(response: httpx.Response, default: float = 1.0) -> float:
        """Extract Retry-After from response headers."""
        try:
            return float(response.headers.get("Retry-After", default))
        except (ValueError, TypeError):
            return default

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
