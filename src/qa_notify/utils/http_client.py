"""Retrying aiohttp client used by the webhook channel."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol, Self

import aiohttp

from qa_notify.notifications.base.retry import CircuitBreaker, backoff_delay

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Response:
    """HTTP response reduced to what callers inspect."""

    status: int
    body: Mapping[str, object]
    headers: Mapping[str, str]

    @property
    def ok(self) -> bool:
        """2xx and 3xx count as success."""
        return 200 <= self.status < 400


class HTTPClient(Protocol):
    """What channels need from an HTTP client."""

    async def post_with_retry(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        ...


class HTTPRequestError(Exception):
    """Raised when a request ends without a successful response."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status: int | None = status


class AIOHTTPClient:
    """POST client with timeouts, exponential backoff and a per-host circuit breaker.

    Retries timeouts, connection errors, 429 and 5xx responses. Other 4xx
    responses fail immediately.

    Example:
        >>> async with AIOHTTPClient() as client:
        ...     response = await client.post_with_retry(url, {"message": "hi"})
    """

    def __init__(
        self,
        *,
        max_retries: int = 3,
        max_backoff_seconds: float = 30.0,
        timeout_seconds: float = 10.0,
        circuit_breaker_threshold: int = 10,
        circuit_breaker_cooldown_seconds: float = 60.0,
    ) -> None:
        """Initialize the client.

        Args:
            max_retries: Retries after the first attempt
            max_backoff_seconds: Cap on a single backoff delay
            timeout_seconds: Per-request timeout
            circuit_breaker_threshold: Consecutive failures before a URL is short-circuited
            circuit_breaker_cooldown_seconds: Seconds before a trial request
        """
        self._max_retries: int = max_retries
        self._max_backoff_seconds: float = max_backoff_seconds
        self._timeout_seconds: float = timeout_seconds
        self._circuit_breaker_threshold: int = circuit_breaker_threshold
        self._circuit_breaker_cooldown_seconds: float = circuit_breaker_cooldown_seconds
        self._circuit_breakers: dict[str, CircuitBreaker] = {}
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> Self:
        _ = await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def open(self) -> aiohttp.ClientSession:
        """Create the underlying session if needed and return it."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
                json_serialize=json.dumps,
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _breaker_for(self, url: str) -> CircuitBreaker:
        breaker = self._circuit_breakers.get(url)
        if breaker is None:
            breaker = CircuitBreaker(
                name=url,
                failure_threshold=self._circuit_breaker_threshold,
                recovery_timeout=self._circuit_breaker_cooldown_seconds,
            )
            self._circuit_breakers[url] = breaker
        return breaker

    async def post(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send one POST request.

        Raises:
            TimeoutError: If the request exceeds the timeout
            ValueError: If the URL is malformed
            aiohttp.ClientError: For connection issues
        """
        session = await self.open()

        try:
            async with asyncio.timeout(self._timeout_seconds):
                async with session.post(url, json=payload, headers=headers) as response:
                    body: Mapping[str, object]
                    try:
                        body = await response.json()  # pyright: ignore[reportAny] # aiohttp returns Any
                    except (aiohttp.ContentTypeError, ValueError):
                        body = {}
                    return Response(status=response.status, body=body, headers=dict(response.headers))
        except aiohttp.InvalidURL as exc:
            raise ValueError(f"Malformed URL: {url}") from exc

    async def post_with_retry(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """POST with retries and circuit breaking.

        Returns:
            The first successful response

        Raises:
            CircuitBreakerError: If the URL's circuit is open
            HTTPRequestError: If the final attempt gets an error status
            TimeoutError: If the final attempt times out
            aiohttp.ClientError: If the final attempt fails to connect
        """
        breaker = self._breaker_for(url)
        breaker.before_call()

        for attempt in range(self._max_retries + 1):
            is_last = attempt == self._max_retries
            try:
                response = await self.post(url, payload, headers=headers)
            except (TimeoutError, aiohttp.ClientError) as exc:
                if is_last:
                    breaker.record_failure()
                    raise
                delay = backoff_delay(attempt, 2.0, self._max_backoff_seconds, jitter=True)
                logger.warning(
                    "Request to %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                    url, exc, delay, attempt + 1, self._max_retries + 1,
                )
                await asyncio.sleep(delay)
                continue

            if response.ok:
                breaker.record_success()
                logger.debug("Request to %s succeeded (status=%d)", url, response.status)
                return response

            if not self._is_retryable_status(response.status):
                breaker.record_failure()
                raise HTTPRequestError(
                    f"Client error {response.status} from {url} (non-retryable)",
                    status=response.status,
                )

            if is_last:
                breaker.record_failure()
                raise HTTPRequestError(
                    f"Server error {response.status} from {url} after {attempt + 1} attempts",
                    status=response.status,
                )

            delay = self._retry_after(response) or backoff_delay(
                attempt, 2.0, self._max_backoff_seconds, jitter=True
            )
            logger.warning(
                "Status %d from %s, retrying in %.1fs (attempt %d/%d)",
                response.status, url, delay, attempt + 1, self._max_retries + 1,
            )
            await asyncio.sleep(delay)

        raise HTTPRequestError(f"All retry attempts exhausted for {url}")

    def _retry_after(self, response: Response) -> float | None:
        if response.status != 429:
            return None
        value = response.headers.get("Retry-After") or response.headers.get("retry-after")
        try:
            return min(float(value), self._max_backoff_seconds) if value else None
        except ValueError:
            return None

    @staticmethod
    def _is_retryable_status(status: int) -> bool:
        return status == 429 or status >= 500
