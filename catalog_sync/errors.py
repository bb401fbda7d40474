"""Exception taxonomy for the sync engine."""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync engine errors."""


class TransientNetworkError(SyncError):
    """Network failure or non-2xx response that may succeed on retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimited(TransientNetworkError):
    """Feed answered 429; ``retry_after`` is the server-directed delay, if any."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class FetchExhausted(SyncError):
    """Raised once the retry budget for a single request is spent."""

    def __init__(self, url: str, attempts: int, last_error: Optional[Exception] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed after {attempts} attempts: {last_error or 'unknown error'} ({url})"
        )


class FeedPayloadError(SyncError):
    """Feed answered 2xx with a body that is not a valid page."""


class CatalogStoreError(SyncError):
    """Catalog store rejected an operation."""


class HandleConflictError(CatalogStoreError):
    """A create would reuse a handle that already exists in the catalog."""

    def __init__(self, handle: str):
        super().__init__(f"Handle already in use: {handle}")
        self.handle = handle


class BatchUpsertError(SyncError):
    """Upsert of a reconciled batch failed; the whole batch is counted as errors."""

    def __init__(self, offset: int, cause: Exception):
        super().__init__(f"Upsert failed for batch at offset {offset}: {cause}")
        self.offset = offset
        self.cause = cause


class ProbeFailure(SyncError):
    """Total-count probe failed; the run aborts before any task is generated."""


class AlreadyRunningError(SyncError):
    """A trigger arrived while a run is in progress."""
