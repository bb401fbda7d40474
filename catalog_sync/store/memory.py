"""In-memory catalog store with optional JSON snapshots."""

import itertools
import json
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from catalog_sync.errors import CatalogStoreError, HandleConflictError
from catalog_sync.models.data_models import (
    CatalogRecord,
    CategoryCreateResult,
    CategoryInput,
    CategoryRecord,
    ProductCreate,
    ProductUpdate,
    UpsertResult,
)

UPDATABLE_FIELDS = frozenset({
    "title",
    "description",
    "thumbnail",
    "images",
    "metadata",
    "price_amount",
    "currency_code",
    "status",
})


class InMemoryCatalogStore:
    """
    Catalog store kept in process memory.

    Enforces the catalog invariants: handles are unique, an external id
    belongs to at most one record and is never moved to another, and
    category creation is idempotent by slug. ``upsert`` validates the whole
    payload before applying any of it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, CatalogRecord] = {}
        self._by_handle: Dict[str, str] = {}
        self._by_external_id: Dict[str, str] = {}
        self._categories: Dict[str, CategoryRecord] = {}  # slug -> record
        self._product_ids = itertools.count(1)
        self._category_ids = itertools.count(1)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> List[CatalogRecord]:
        with self._lock:
            return list(self._records.values())

    def categories(self) -> List[CategoryRecord]:
        with self._lock:
            return list(self._categories.values())

    def get_by_handle(self, handle: str) -> Optional[CatalogRecord]:
        with self._lock:
            record_id = self._by_handle.get(handle)
            return self._records.get(record_id) if record_id else None

    async def list_handles(self, candidates: Set[str]) -> Set[str]:
        with self._lock:
            return {handle for handle in candidates if handle in self._by_handle}

    async def list_by_external_ids(self, external_ids: Set[str]) -> Dict[str, CatalogRecord]:
        with self._lock:
            return {
                external_id: self._records[self._by_external_id[external_id]]
                for external_id in external_ids
                if external_id in self._by_external_id
            }

    async def upsert(
        self,
        creates: List[ProductCreate],
        updates: List[ProductUpdate],
    ) -> UpsertResult:
        with self._lock:
            self._validate(creates, updates)

            result = UpsertResult()
            for create in creates:
                record = CatalogRecord(id=f"prod_{next(self._product_ids):06d}", **asdict(create))
                self._records[record.id] = record
                self._by_handle[record.handle] = record.id
                if record.external_id is not None:
                    self._by_external_id[record.external_id] = record.id
                result.created_ids.append(record.id)

            for update in updates:
                record = self._records[update.id]
                self._records[update.id] = replace(record, **update.fields)
                result.updated_ids.append(update.id)

            return result

    def _validate(self, creates: List[ProductCreate], updates: List[ProductUpdate]) -> None:
        new_handles: Set[str] = set()
        new_external_ids: Set[str] = set()
        for create in creates:
            if create.handle in self._by_handle or create.handle in new_handles:
                raise HandleConflictError(create.handle)
            new_handles.add(create.handle)

            external_id = create.metadata.get("external_id")
            if external_id is not None:
                if external_id in self._by_external_id or external_id in new_external_ids:
                    raise CatalogStoreError(f"External id already linked: {external_id}")
                new_external_ids.add(external_id)

        for update in updates:
            record = self._records.get(update.id)
            if record is None:
                raise CatalogStoreError(f"Unknown product id: {update.id}")
            unknown = set(update.fields) - UPDATABLE_FIELDS
            if unknown:
                raise CatalogStoreError(f"Fields not updatable: {sorted(unknown)}")
            metadata = update.fields.get("metadata", {})
            if "external_id" in metadata and metadata["external_id"] != record.external_id:
                raise CatalogStoreError(
                    f"External id of {update.id} cannot change from "
                    f"{record.external_id} to {metadata['external_id']}"
                )

    async def list_categories_by_slug(self, slugs: Set[str]) -> List[CategoryRecord]:
        with self._lock:
            return [self._categories[slug] for slug in slugs if slug in self._categories]

    async def create_categories(self, inputs: List[CategoryInput]) -> CategoryCreateResult:
        with self._lock:
            result = CategoryCreateResult()
            for category in inputs:
                record = self._categories.get(category.slug)
                if record is None:
                    record = CategoryRecord(
                        id=f"pcat_{next(self._category_ids):04d}",
                        slug=category.slug,
                        name=category.name,
                    )
                    self._categories[category.slug] = record
                    result.created_ids.append(record.id)
                result.categories.append(record)
            return result

    def to_dict(self) -> Dict:
        with self._lock:
            return {
                "products": [asdict(record) for record in self._records.values()],
                "categories": [asdict(category) for category in self._categories.values()],
            }

    @classmethod
    def from_dict(cls, data: Dict) -> "InMemoryCatalogStore":
        store = cls()
        for raw in data.get("categories", []):
            category = CategoryRecord(**raw)
            store._categories[category.slug] = category
        for raw in data.get("products", []):
            record = CatalogRecord(**raw)
            store._records[record.id] = record
            store._by_handle[record.handle] = record.id
            if record.external_id is not None:
                store._by_external_id[record.external_id] = record.id
        store._product_ids = itertools.count(_next_sequence(store._records, "prod_"))
        store._category_ids = itertools.count(
            _next_sequence({c.id: c for c in store._categories.values()}, "pcat_")
        )
        return store

    def save(self, path: Union[str, Path]) -> None:
        """Write a JSON snapshot, creating parent directories as needed."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "InMemoryCatalogStore":
        """Load a snapshot written by ``save``; a missing file yields an empty store."""
        input_path = Path(path)
        if not input_path.exists():
            return cls()
        with open(input_path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))


def _next_sequence(ids: Dict[str, object], prefix: str) -> int:
    numbers = [
        int(key[len(prefix):])
        for key in ids
        if key.startswith(prefix) and key[len(prefix):].isdigit()
    ]
    return max(numbers, default=0) + 1
