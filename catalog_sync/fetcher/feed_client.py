"""Client for the paginated ``limit``/``skip`` product feed."""

from typing import List, Tuple

from pydantic import ValidationError

from catalog_sync.errors import FeedPayloadError
from catalog_sync.fetcher.retry_handler import RetryingFetchClient
from catalog_sync.models.data_models import BatchTask, ExternalItem, FeedPage


class FeedClient:
    """
    Reads the remote feed through a RetryingFetchClient.

    A batch task larger than ``page_size`` is fetched as consecutive pages
    and concatenated; a short page ends the batch early. Entries that fail
    validation are dropped and counted, the rest of their page is kept.
    """

    def __init__(self, fetcher: RetryingFetchClient, feed_url: str, page_size: int = 20):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got: {page_size}")
        self.fetcher = fetcher
        self.feed_url = feed_url
        self.page_size = page_size

    async def fetch_page(self, limit: int, skip: int) -> FeedPage:
        """
        Fetch and validate one page.

        Raises:
            FetchExhausted: Retry budget spent
            FeedPayloadError: 2xx response that is not a feed page
        """
        response = await self.fetcher.fetch(self.feed_url, params={"limit": limit, "skip": skip})
        try:
            payload = response.json()
        except ValueError as e:
            raise FeedPayloadError(f"Invalid JSON at skip={skip}: {e}") from e
        try:
            return FeedPage.model_validate(payload)
        except ValidationError as e:
            raise FeedPayloadError(f"Invalid feed page at skip={skip}: {e}") from e

    async def probe_total(self) -> int:
        """
        Total item count reported by the feed, using a one-item page.

        Raises:
            FeedPayloadError: The page carries no usable ``total``
        """
        page = await self.fetch_page(limit=1, skip=0)
        if page.total is None:
            raise FeedPayloadError("Feed page has no total")
        if page.total < 0:
            raise FeedPayloadError(f"Feed reported a negative total: {page.total}")
        return page.total

    async def fetch_batch(self, task: BatchTask) -> List[ExternalItem]:
        """Fetch every valid item in ``[task.offset, task.offset + task.size)``."""
        items, _ = await self.fetch_batch_counting(task)
        return items

    async def fetch_batch_counting(self, task: BatchTask) -> Tuple[List[ExternalItem], int]:
        """Fetch a batch and report how many feed entries were rejected as invalid."""
        items: List[ExternalItem] = []
        rejected = 0
        skip = task.offset
        end = task.offset + task.size

        while skip < end:
            limit = min(self.page_size, end - skip)
            page = await self.fetch_page(limit=limit, skip=skip)
            items.extend(page.items[:limit])
            rejected += page.rejected
            if page.received < limit:
                break
            skip += limit

        return items, rejected
