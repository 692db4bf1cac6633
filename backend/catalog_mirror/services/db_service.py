"""
Database Service
Supabase persistence for the mirrored catalog:
- Categories (keyed by wc_category_id)
- Products (keyed by wc_product_id)
- Product images (keyed by wc_image_id)
- Product/category links (keyed by the pair)
"""

import logging
from datetime import datetime, timezone

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from catalog_mirror.core.config import Settings
from catalog_mirror.core.errors import StoreConnectionError, StoreWriteError

logger = logging.getLogger(__name__)

# PostgREST caps unbounded selects; read in slices of this size
READ_PAGE_SIZE = 1000


class CatalogStore:
    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogStore":
        return cls(create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY))

    def _execute(self, query, context: str):
        """Run a PostgREST query, translating failures into store errors."""
        try:
            return query.execute()
        except APIError as e:
            raise StoreWriteError(
                f"{context}: {e.message or e}",
                code=e.code,
                details=e.details,
            ) from e
        except httpx.TransportError as e:
            raise StoreConnectionError(f"{context}: {e}") from e

    # ==================== CATEGORY OPERATIONS ====================

    def upsert_categories(self, rows: list[dict]) -> int:
        if not rows:
            return 0
        result = self._execute(
            self.client.table("categories").upsert(rows, on_conflict="wc_category_id"),
            "upsert categories",
        )
        return len(result.data) if result.data else len(rows)

    def list_category_ids(self) -> list[dict]:
        """All (id, wc_category_id) pairs."""
        rows: list[dict] = []
        start = 0
        while True:
            result = self._execute(
                self.client.table("categories")
                .select("id, wc_category_id")
                .order("id")
                .range(start, start + READ_PAGE_SIZE - 1),
                "list categories",
            )
            batch = result.data or []
            rows.extend(batch)
            if len(batch) < READ_PAGE_SIZE:
                return rows
            start += READ_PAGE_SIZE

    # ==================== PRODUCT OPERATIONS ====================

    def upsert_products(self, rows: list[dict]) -> list[dict]:
        """Upsert products; returns the written rows with their local ids."""
        if not rows:
            return []
        now = datetime.now(timezone.utc).isoformat()
        data = [{**row, "updated_at": now} for row in rows]
        result = self._execute(
            self.client.table("products").upsert(data, on_conflict="wc_product_id"),
            "upsert products",
        )
        return [
            {"id": row["id"], "wc_product_id": row["wc_product_id"]}
            for row in (result.data or [])
        ]

    def mark_product_inactive(self, wc_product_id: int) -> int:
        """Soft delete. Returns the number of rows touched."""
        result = self._execute(
            self.client.table("products")
            .update({
                "is_active": False,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("wc_product_id", wc_product_id),
            "deactivate product",
        )
        return len(result.data or [])

    # ==================== CHILD ROW OPERATIONS ====================

    def upsert_images(self, rows: list[dict]) -> int:
        if not rows:
            return 0
        self._execute(
            self.client.table("product_images").upsert(rows, on_conflict="wc_image_id"),
            "upsert product images",
        )
        return len(rows)

    def upsert_category_links(self, rows: list[dict]) -> int:
        if not rows:
            return 0
        self._execute(
            self.client.table("product_categories_map").upsert(
                rows, on_conflict="product_id,category_id"
            ),
            "upsert product category links",
        )
        return len(rows)

    # ==================== HEALTH ====================

    def ping(self) -> None:
        """Raise a StoreError if the products table cannot be read."""
        self._execute(
            self.client.table("products").select("id").limit(1),
            "ping",
        )
