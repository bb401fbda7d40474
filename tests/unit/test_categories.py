"""Unit tests for CategoryResolver."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from catalog_sync.errors import CatalogStoreError
from catalog_sync.models.data_models import CategoryInput
from catalog_sync.store.memory import InMemoryCatalogStore
from catalog_sync.sync.categories import CategoryResolver, display_name


@pytest.fixture
def store():
    return InMemoryCatalogStore()


class TestCategoryResolver:

    @pytest.mark.asyncio
    async def test_creates_missing_categories(self, store):
        resolver = CategoryResolver(store)

        mapping, created = await resolver.resolve_counting({"beauty", "home decoration"})

        assert set(mapping) == {"beauty", "home-decoration"}
        assert created == 2
        names = {c.slug: c.name for c in store.categories()}
        assert names == {"beauty": "Beauty", "home-decoration": "Home decoration"}

    @pytest.mark.asyncio
    async def test_existing_category_triggers_no_creation(self, store):
        await store.create_categories([CategoryInput(name="Beauty", slug="beauty")])
        store.create_categories = AsyncMock(wraps=store.create_categories)
        resolver = CategoryResolver(store)

        mapping = await resolver.resolve({"beauty"})

        assert mapping == {"beauty": store.categories()[0].id}
        store.create_categories.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_complement_is_created_in_one_request(self, store):
        await store.create_categories([CategoryInput(name="Beauty", slug="beauty")])
        store.create_categories = AsyncMock(wraps=store.create_categories)
        resolver = CategoryResolver(store)

        mapping, created = await resolver.resolve_counting({"beauty", "groceries", "furniture"})

        assert set(mapping) == {"beauty", "groceries", "furniture"}
        assert created == 2
        store.create_categories.assert_awaited_once()
        requested = store.create_categories.await_args.args[0]
        assert {c.slug for c in requested} == {"groceries", "furniture"}

    @pytest.mark.asyncio
    async def test_names_sharing_a_slug_resolve_once(self, store):
        resolver = CategoryResolver(store)

        mapping, created = await resolver.resolve_counting({"Home Decoration", "home-decoration"})

        assert list(mapping) == ["home-decoration"]
        assert created == 1

    @pytest.mark.asyncio
    async def test_blank_names_are_ignored(self, store):
        store.list_categories_by_slug = AsyncMock(wraps=store.list_categories_by_slug)
        resolver = CategoryResolver(store)

        assert await resolver.resolve({"", "   ", "!!!"}) == {}
        store.list_categories_by_slug.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_resolution_creates_once(self, store):
        """The same missing slug discovered by many workers is created exactly once."""
        store.create_categories = AsyncMock(wraps=store.create_categories)
        resolver = CategoryResolver(store)

        results = await asyncio.gather(*[
            resolver.resolve_counting({"fragrances", f"category {i}"}) for i in range(5)
        ])

        fragrance_ids = {mapping["fragrances"] for mapping, _ in results}
        assert len(fragrance_ids) == 1
        assert sum(created for _, created in results) == 6
        requested_slugs = [
            c.slug
            for call in store.create_categories.await_args_list
            for c in call.args[0]
        ]
        assert requested_slugs.count("fragrances") == 1

    @pytest.mark.asyncio
    async def test_category_created_elsewhere_is_not_counted(self, store):
        await store.create_categories([CategoryInput(name="Beauty", slug="beauty")])
        # lookup misses a slug another process inserted just before creation
        store.list_categories_by_slug = AsyncMock(return_value=[])
        resolver = CategoryResolver(store)

        mapping, created = await resolver.resolve_counting({"beauty", "groceries"})

        assert set(mapping) == {"beauty", "groceries"}
        assert mapping["beauty"] == "pcat_0001"
        assert created == 1

    @pytest.mark.asyncio
    async def test_failed_creation_leaves_names_unmapped(self, store, logger, caplog):
        await store.create_categories([CategoryInput(name="Beauty", slug="beauty")])
        store.create_categories = AsyncMock(side_effect=CatalogStoreError("store down"))
        resolver = CategoryResolver(store, logger=logger)

        with caplog.at_level("WARNING", logger="catalog_sync.tests"):
            mapping, created = await resolver.resolve_counting({"beauty", "groceries"})

        assert set(mapping) == {"beauty"}
        assert created == 0
        assert any("category_create_failed" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_result_restricted_to_requested_names(self, store):
        await store.create_categories([
            CategoryInput(name="Beauty", slug="beauty"),
            CategoryInput(name="Groceries", slug="groceries"),
        ])
        resolver = CategoryResolver(store)

        assert set(await resolver.resolve({"beauty"})) == {"beauty"}


def test_display_name():
    assert display_name("kitchen accessories") == "Kitchen accessories"
    assert display_name(" beauty ") == "Beauty"
    assert display_name("") == ""
