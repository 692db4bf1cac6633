"""
Sync Schemas
Run states, page payloads and the run summary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING_CATEGORIES = "syncing_categories"
    LOADING_CATEGORY_MAP = "loading_category_map"
    SYNCING_PRODUCTS = "syncing_products"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExitCode(IntEnum):
    OK = 0
    FAILED = 1
    CONFIGURATION = 2
    CANCELLED = 130


@dataclass
class CatalogPage:
    """One page of a WooCommerce collection."""
    number: int
    records: list[dict[str, Any]]
    total_hint: Optional[int] = None

    def __len__(self) -> int:
        return len(self.records)


class SyncResult:
    """Result of a catalog sync run."""

    def __init__(self):
        self.state = SyncState.IDLE
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None
        self.categories_synced = 0
        self.pages_fetched = 0
        self.products_seen = 0
        self.products_admitted = 0
        self.products_processed = 0
        self.total_hint: Optional[int] = None
        self.images_written = 0
        self.category_links_written = 0
        self.failed_product_batches: list[int] = []
        self.failed_image_batches: list[int] = []
        self.failed_link_batches: list[int] = []
        self.rejected: list[dict] = []
        self.error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == SyncState.COMPLETED

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "categories_synced": self.categories_synced,
            "pages_fetched": self.pages_fetched,
            "products_seen": self.products_seen,
            "products_admitted": self.products_admitted,
            "products_processed": self.products_processed,
            "total_hint": self.total_hint,
            "rejected": len(self.rejected),
            "images_written": self.images_written,
            "category_links_written": self.category_links_written,
            "failed_product_batches": self.failed_product_batches,
            "failed_image_batches": self.failed_image_batches,
            "failed_link_batches": self.failed_link_batches,
            "error": self.error,
        }


@dataclass
class WebhookResult:
    topic: str
    wc_product_id: Optional[int] = None
    action: str = "ignored"  # upserted | deactivated | ignored
    images_written: int = 0
    category_links_written: int = 0
    warnings: list[str] = field(default_factory=list)
