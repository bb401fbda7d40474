"""Catalog store interface required by the sync engine."""

from typing import Dict, List, Protocol, Set

from catalog_sync.models.data_models import (
    CatalogRecord,
    CategoryCreateResult,
    CategoryInput,
    CategoryRecord,
    ProductCreate,
    ProductUpdate,
    UpsertResult,
)


class CatalogStore(Protocol):
    """
    Catalog-side collaborator.

    ``create_categories`` must be idempotent by slug: creating a slug that
    already exists returns the existing category instead of a duplicate.
    """

    async def list_handles(self, candidates: Set[str]) -> Set[str]:
        """Subset of ``candidates`` already used as product handles."""
        ...

    async def list_by_external_ids(self, external_ids: Set[str]) -> Dict[str, CatalogRecord]:
        """Existing records keyed by their ``metadata["external_id"]``."""
        ...

    async def upsert(
        self,
        creates: List[ProductCreate],
        updates: List[ProductUpdate],
    ) -> UpsertResult:
        """Create new records and apply field updates in one call."""
        ...

    async def list_categories_by_slug(self, slugs: Set[str]) -> List[CategoryRecord]:
        """Existing categories whose slug is in ``slugs``."""
        ...

    async def create_categories(self, inputs: List[CategoryInput]) -> CategoryCreateResult:
        """Create the given categories; report which ids were newly inserted."""
        ...
