"""Feed fetching with retry, backoff and rate-limit handling."""

from .feed_client import FeedClient
from .http_client import AsyncHTTPClient
from .retry_handler import RetryingFetchClient, calculate_backoff_delay, parse_retry_after

__all__ = [
    "AsyncHTTPClient",
    "FeedClient",
    "RetryingFetchClient",
    "calculate_backoff_delay",
    "parse_retry_after",
]
