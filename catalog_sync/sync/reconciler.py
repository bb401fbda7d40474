"""Create/update reconciliation of feed batches against the catalog."""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from catalog_sync.errors import BatchUpsertError
from catalog_sync.models.data_models import (
    CatalogRecord,
    ExternalItem,
    ProductCreate,
    ProductUpdate,
    ReconcilePlan,
)
from catalog_sync.store.base import CatalogStore
from catalog_sync.sync.slug import slugify


def handle_base(item: ExternalItem) -> str:
    """Candidate handle for ``item``; titles with no usable characters fall back to the id."""
    return slugify(item.title) or f"product-{item.external_id}"


def free_handle(base: str, *unavailable: Set[str]) -> str:
    """First of ``base``, ``base-1``, ``base-2``, ... not in any ``unavailable`` set."""
    handle = base
    suffix = 0
    while any(handle in taken for taken in unavailable):
        suffix += 1
        handle = f"{base}-{suffix}"
    return handle


def mutable_fields(item: ExternalItem, currency_code: str = "usd") -> Dict[str, Any]:
    """Fields rewritten on every sync of ``item``."""
    metadata: Dict[str, Any] = {"external_id": str(item.external_id)}
    if item.brand is not None:
        metadata["brand"] = item.brand
    return {
        "title": item.title,
        "description": item.description,
        "thumbnail": item.thumbnail,
        "images": list(item.images),
        "metadata": metadata,
        "price_amount": round(item.price * 100),
        "currency_code": currency_code,
    }


def plan_batch(
    items: Iterable[ExternalItem],
    existing_by_external_id: Mapping[str, CatalogRecord],
    existing_handles: Set[str],
    category_map: Mapping[str, str],
    currency_code: str = "usd",
) -> ReconcilePlan:
    """
    Decide create versus update for every item of a batch.

    Items already linked to a record by external id are updates; their
    handle and category links are left as they are in the catalog. New
    items get the first free handle among ``slug``, ``slug-1``, ... that is
    neither in ``existing_handles`` nor already chosen for this batch, and
    are linked to their category when ``category_map`` has its slug.
    Repeated external ids within the batch keep the first occurrence.
    """
    plan = ReconcilePlan()
    seen_ids: Set[str] = set()
    batch_handles: Set[str] = set()

    for item in items:
        external_id = str(item.external_id)
        if external_id in seen_ids:
            plan.duplicates_skipped += 1
            continue
        seen_ids.add(external_id)

        fields = mutable_fields(item, currency_code)
        record = existing_by_external_id.get(external_id)
        if record is not None:
            plan.to_update.append(ProductUpdate(id=record.id, fields=fields))
            continue

        handle = free_handle(handle_base(item), batch_handles, existing_handles)
        batch_handles.add(handle)

        category_id = category_map.get(slugify(item.category)) if item.category else None
        plan.to_create.append(
            ProductCreate(
                handle=handle,
                category_ids=[category_id] if category_id else [],
                **fields,
            )
        )

    return plan


class HandleRegistry:
    """Handles chosen for new records during the current run, shared by all workers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._claimed: Set[str] = set()

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._claimed)

    def claim_all(self, handles: Iterable[str]) -> bool:
        """Claim every handle, or none if another worker got one first."""
        handles = set(handles)
        with self._lock:
            if handles & self._claimed:
                return False
            self._claimed |= handles
            return True

    def __contains__(self, handle: str) -> bool:
        with self._lock:
            return handle in self._claimed

    def __len__(self) -> int:
        with self._lock:
            return len(self._claimed)


@dataclass
class ReconcileOutcome:
    """Counts written by one reconciled batch."""
    created: int = 0
    updated: int = 0
    duplicates_skipped: int = 0


class BatchReconciler:
    """
    Looks up existing records, plans the batch and submits one upsert.

    Handles picked for new records are checked against the catalog store
    (suffixed candidates included) and claimed in the run-wide registry
    before the upsert is sent.
    """

    def __init__(
        self,
        store: CatalogStore,
        registry: Optional[HandleRegistry] = None,
        currency_code: str = "usd",
    ):
        self.store = store
        self.registry = registry if registry is not None else HandleRegistry()
        self.currency_code = currency_code

    async def plan(self, items: List[ExternalItem], category_map: Mapping[str, str]) -> ReconcilePlan:
        """Build a plan whose new handles are free in the store and claimed for this run."""
        external_ids = {str(item.external_id) for item in items}
        existing = await self.store.list_by_external_ids(external_ids)

        bases = {handle_base(item) for item in items if str(item.external_id) not in existing}
        taken = await self.store.list_handles(bases) if bases else set()
        checked = set(bases)

        while True:
            plan = plan_batch(
                items,
                existing,
                taken | self.registry.snapshot(),
                category_map,
                self.currency_code,
            )
            unchecked = set(plan.handles) - checked
            if unchecked:
                found = await self.store.list_handles(unchecked)
                checked |= unchecked
                if found:
                    taken |= found
                    continue
            if self.registry.claim_all(plan.handles):
                return plan

    async def reconcile(
        self,
        items: List[ExternalItem],
        category_map: Mapping[str, str],
        offset: int = 0,
    ) -> ReconcileOutcome:
        """
        Plan and upsert one batch.

        Raises:
            BatchUpsertError: The store rejected the upsert
        """
        if not items:
            return ReconcileOutcome()

        plan = await self.plan(items, category_map)
        if plan.is_empty:
            return ReconcileOutcome(duplicates_skipped=plan.duplicates_skipped)

        try:
            result = await self.store.upsert(plan.to_create, plan.to_update)
        except Exception as e:
            raise BatchUpsertError(offset, e) from e

        return ReconcileOutcome(
            created=len(result.created_ids),
            updated=len(result.updated_ids),
            duplicates_skipped=plan.duplicates_skipped,
        )
