"""Category name to catalog category id resolution."""

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple

from catalog_sync.models.data_models import CategoryInput
from catalog_sync.monitoring.logger import StructuredLogger
from catalog_sync.store.base import CatalogStore
from catalog_sync.sync.slug import slugify


def display_name(name: str) -> str:
    """Category display name: feed name with its first letter capitalised."""
    name = name.strip()
    return name[:1].upper() + name[1:]


class CategoryResolver:
    """
    Maps category names to catalog category ids, creating missing ones.

    One resolver is shared by every worker of a run. Resolution is
    serialized through an asyncio lock so two workers discovering the same
    missing slug issue a single creation; the store's idempotent
    ``create_categories`` covers resolvers in other processes.
    """

    def __init__(self, store: CatalogStore, logger: Optional[StructuredLogger] = None):
        self.store = store
        self.logger = logger
        self._lock = asyncio.Lock()

    async def resolve(self, names: Iterable[str]) -> Dict[str, str]:
        """Return ``slug -> category_id`` for ``names``; unresolvable names are absent."""
        mapping, _ = await self.resolve_counting(names)
        return mapping

    async def resolve_counting(self, names: Iterable[str]) -> Tuple[Dict[str, str], int]:
        """
        Resolve ``names`` and report how many categories this call created.

        A failed creation request is logged and leaves the affected slugs
        out of the mapping; callers link nothing for them.
        """
        slug_to_name: Dict[str, str] = {}
        for name in names:
            if not name or not name.strip():
                continue
            slug = slugify(name)
            if slug:
                slug_to_name.setdefault(slug, name)

        if not slug_to_name:
            return {}, 0

        async with self._lock:
            existing = await self.store.list_categories_by_slug(set(slug_to_name))
            mapping = {category.slug: category.id for category in existing}

            missing: List[CategoryInput] = [
                CategoryInput(name=display_name(name), slug=slug)
                for slug, name in slug_to_name.items()
                if slug not in mapping
            ]
            if not missing:
                return self._restrict(mapping, slug_to_name), 0

            try:
                result = await self.store.create_categories(missing)
            except Exception as e:
                if self.logger:
                    self.logger.category_create_failed(
                        slugs=[category.slug for category in missing], error=str(e)
                    )
                return self._restrict(mapping, slug_to_name), 0

            for category in result.categories:
                mapping[category.slug] = category.id

        return self._restrict(mapping, slug_to_name), len(result.created_ids)

    @staticmethod
    def _restrict(mapping: Dict[str, str], wanted: Dict[str, str]) -> Dict[str, str]:
        return {slug: category_id for slug, category_id in mapping.items() if slug in wanted}
