"""Core data models for the catalog sync engine."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


class ExternalItem(BaseModel):
    """Product as served by the remote feed.

    ``external_id`` is the feed's own numeric identity and the idempotency
    key for reconciliation. Optional fields sent as ``null`` take their
    defaults.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id: int = Field(validation_alias=AliasChoices("id", "external_id"))
    title: str
    description: str = ""
    price: float = 0.0
    category: str = ""
    thumbnail: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    brand: Optional[str] = None

    @field_validator('description', 'category', mode='before')
    @classmethod
    def null_as_empty_text(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('price', mode='before')
    @classmethod
    def null_as_zero_price(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator('images', mode='before')
    @classmethod
    def null_as_no_images(cls, v: Any) -> Any:
        return [] if v is None else v


class FeedPage(BaseModel):
    """One ``limit``/``skip`` page of the feed.

    Items are validated one by one: an invalid entry is dropped and counted
    in ``rejected`` instead of failing the page. ``total`` is None when the
    feed did not report it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[ExternalItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "products"),
    )
    total: Optional[int] = None
    skip: int = 0
    limit: int = 0
    rejected: int = 0

    @model_validator(mode='before')
    @classmethod
    def drop_invalid_items(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        key = "items" if "items" in data else "products"
        raw_items = data.get(key)
        if not isinstance(raw_items, list):
            return data

        valid = []
        for raw in raw_items:
            try:
                valid.append(ExternalItem.model_validate(raw))
            except ValidationError:
                continue
        return {**data, key: valid, "rejected": len(raw_items) - len(valid)}

    @property
    def received(self) -> int:
        """Entries the feed sent, valid or not."""
        return len(self.items) + self.rejected


class RunState(Enum):
    """Orchestrator states."""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchTask:
    """Contiguous slice ``[offset, offset + size)`` of the feed's item space."""
    offset: int
    size: int


@dataclass(frozen=True)
class CategoryInput:
    """Category to be created; the slug is derived from the raw feed name."""
    name: str
    slug: str


@dataclass
class CategoryRecord:
    """Catalog-side category."""
    id: str
    slug: str
    name: str = ""


@dataclass
class CatalogRecord:
    """Catalog-side product entity."""
    id: str
    handle: str
    title: str
    description: str = ""
    thumbnail: Optional[str] = None
    images: List[str] = field(default_factory=list)
    category_ids: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    price_amount: Optional[int] = None  # minor units
    currency_code: str = "usd"
    status: str = "published"

    @property
    def external_id(self) -> Optional[str]:
        return self.metadata.get("external_id")


@dataclass
class ProductCreate:
    """Create payload for a product that has no catalog record yet."""
    handle: str
    title: str
    description: str = ""
    thumbnail: Optional[str] = None
    images: List[str] = field(default_factory=list)
    category_ids: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    price_amount: Optional[int] = None
    currency_code: str = "usd"
    status: str = "published"


@dataclass
class ProductUpdate:
    """Mutable-field update for an existing catalog record."""
    id: str
    fields: Dict[str, Any]


@dataclass
class ReconcilePlan:
    """Create/update decision for one batch."""
    to_create: List[ProductCreate] = field(default_factory=list)
    to_update: List[ProductUpdate] = field(default_factory=list)
    duplicates_skipped: int = 0

    @property
    def handles(self) -> List[str]:
        return [create.handle for create in self.to_create]

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_update


@dataclass
class UpsertResult:
    """Identifiers written by a catalog upsert call."""
    created_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)


@dataclass
class CategoryCreateResult:
    """Categories returned for a creation request.

    ``categories`` holds one record per requested slug; ``created_ids``
    only the ones this call actually inserted.
    """
    categories: List[CategoryRecord] = field(default_factory=list)
    created_ids: List[str] = field(default_factory=list)


@dataclass
class BatchResult:
    """Outcome of one batch task, merged into the run statistics."""
    offset: int
    size: int
    items: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    categories_created: int = 0
    failed: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class SyncStats:
    """Immutable run summary."""
    items_processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    categories_created: int = 0
    batches_processed: int = 0
    batches_failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class RunStatus:
    """Process-lifetime run status for polling callers."""
    is_running: bool = False
    last_run_at: Optional[str] = None  # ISO-8601 UTC
    last_status: RunState = RunState.IDLE
    last_error: Optional[str] = None
    last_duration: Optional[float] = None
    stats: Optional[SyncStats] = None


@dataclass
class SyncReport:
    """Complete result of a single orchestrator run."""
    status: RunState
    started_at: str
    finished_at: str
    duration_seconds: float
    total_items: int
    task_count: int
    worker_count: int
    stats: SyncStats
    timed_out: bool = False
    error: Optional[str] = None
