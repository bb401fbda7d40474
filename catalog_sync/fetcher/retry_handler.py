"""Retrying fetch client with exponential backoff and 429 awareness."""

import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from catalog_sync.errors import FetchExhausted, RateLimited, TransientNetworkError
from catalog_sync.fetcher.http_client import AsyncHTTPClient
from catalog_sync.monitoring.logger import StructuredLogger


def calculate_backoff_delay(
    retry_number: int,
    initial_delay: float = 1.0,
    multiplier: float = 2.0,
    max_delay: float = 30.0,
) -> float:
    """
    Calculate the exponential backoff delay before a retry.

    Formula: min(initial_delay * multiplier ** (retry_number - 1), max_delay)

    Args:
        retry_number: Retry number (1-indexed; the first retry is 1)
        initial_delay: Delay before the first retry in seconds
        multiplier: Growth factor between consecutive retries
        max_delay: Maximum delay cap in seconds

    Returns:
        Delay in seconds
    """
    exponential_delay = initial_delay * (multiplier ** (retry_number - 1))
    return min(exponential_delay, max_delay)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds (``"5"``) and HTTP-dates. Returns None when the
    header is missing or unparseable; dates in the past yield 0.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when is None:
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        seconds = (when - (now or datetime.now(timezone.utc))).total_seconds()
    return max(0.0, seconds)


class RetryingFetchClient:
    """
    Resilient GET with exponential backoff.

    Every non-2xx response and every transport error (timeouts, connection
    resets) counts against the same budget of ``max_retries`` attempts.
    A 429 uses a different delay policy only: the server's ``Retry-After``
    when present, otherwise ``max(rate_limit_delay, backoff)``.

    The client holds no state across calls beyond its configuration.
    """

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 30.0,
        multiplier: float = 2.0,
        rate_limit_delay: float = 5.0,
        max_retry_after: float = 60.0,
        request_delay: float = 0.0,
        sleeper: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Initialize the fetch client.

        Args:
            http_client: Makes HTTP requests with timeouts
            max_retries: Total attempts per request before FetchExhausted
            initial_delay: Delay before the first retry
            max_delay: Backoff cap
            multiplier: Backoff growth factor
            rate_limit_delay: Delay after a 429 that carries no Retry-After
            max_retry_after: Cap applied to server-directed delays
            request_delay: Pacing delay before every request, retries included
            sleeper: Async sleep function (default: asyncio.sleep)
            logger: Optional structured logger for retry warnings
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got: {max_retries}")
        self.http_client = http_client
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.multiplier = multiplier
        self.rate_limit_delay = rate_limit_delay
        self.max_retry_after = max_retry_after
        self.request_delay = request_delay
        self._sleep = sleeper
        self.logger = logger

    def retry_delay(self, retry_number: int, error: TransientNetworkError) -> float:
        """Delay before ``retry_number`` given the error that triggered it."""
        backoff = calculate_backoff_delay(
            retry_number, self.initial_delay, self.multiplier, self.max_delay
        )
        if isinstance(error, RateLimited):
            if error.retry_after is not None:
                return min(error.retry_after, self.max_retry_after)
            return max(self.rate_limit_delay, backoff)
        return backoff

    async def fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        GET ``url`` until a 2xx response arrives or the budget is spent.

        Raises:
            FetchExhausted: After ``max_retries`` consecutive failures
        """
        last_error: Optional[TransientNetworkError] = None

        for attempt in range(1, self.max_retries + 1):
            if self.request_delay > 0:
                await self._sleep(self.request_delay)

            try:
                return await self._attempt(url, params)
            except TransientNetworkError as e:
                last_error = e

            if attempt >= self.max_retries:
                break

            delay = self.retry_delay(attempt, last_error)
            if self.logger:
                self.logger.fetch_retry(
                    url=url,
                    attempt=attempt,
                    max_attempts=self.max_retries,
                    delay=delay,
                    status=last_error.status_code,
                    error=str(last_error),
                )
            await self._sleep(delay)

        raise FetchExhausted(url, self.max_retries, last_error)

    async def _attempt(self, url: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        """Single request; failures are normalized to TransientNetworkError."""
        try:
            response = await self.http_client.get(url, params=params)
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{type(e).__name__}: {e}") from e

        if response.status_code == 429:
            raise RateLimited(
                "HTTP 429: Too Many Requests",
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if not response.is_success:
            raise TransientNetworkError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response
