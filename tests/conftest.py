"""Pytest configuration and shared fixtures."""

import random

import pytest

from catalog_sync.models.config import SyncConfig
from catalog_sync.models.data_models import ExternalItem
from catalog_sync.monitoring.logger import StructuredLogger


class RecordingSleeper:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(scope="session")
def deterministic_seed():
    """Set a fixed random seed for deterministic test results."""
    random.seed(42)
    return 42


@pytest.fixture
def sleeper():
    return RecordingSleeper()


@pytest.fixture
def logger():
    return StructuredLogger(name="catalog_sync.tests", level="DEBUG")


@pytest.fixture
def make_item():
    """Factory for feed items with sensible defaults."""

    def _make(external_id: int, title: str = None, category: str = "beauty", **kwargs) -> ExternalItem:
        return ExternalItem(
            id=external_id,
            title=title if title is not None else f"Product {external_id}",
            category=category,
            price=kwargs.pop("price", 9.99),
            description=kwargs.pop("description", f"Description {external_id}"),
            thumbnail=kwargs.pop("thumbnail", f"https://cdn.test/{external_id}/thumb.webp"),
            images=kwargs.pop("images", [f"https://cdn.test/{external_id}/1.webp"]),
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_config():
    """Provide a sample configuration for testing."""
    return SyncConfig(
        feed_url="http://feed.test/products",
        page_size=20,
        batch_size=3,
        worker_count=2,
        safe_max_items=5000,
        max_retries=3,
        initial_backoff=0.5,
        max_backoff=4.0,
        backoff_multiplier=2.0,
        log_level="DEBUG",
    )
