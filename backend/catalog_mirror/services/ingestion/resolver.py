"""
Reference Resolver
Translates WooCommerce ids into local Supabase ids.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from catalog_mirror.schemas.product import NormalizedProduct

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """
    Holds the remote category id -> local id map for one run.

    The map is loaded once, after categories are synced, and only read
    afterwards. Product id maps are built per batch and handed back to the
    caller; nothing product-related is kept here.
    """

    def __init__(self, store):
        self.store = store
        self._category_map: Optional[dict[int, Any]] = None

    @property
    def category_map(self) -> Mapping[int, Any]:
        if self._category_map is None:
            raise RuntimeError("Category map not loaded; call build_category_map() first")
        return self._category_map

    def build_category_map(self) -> Mapping[int, Any]:
        """Single read of the store's categories."""
        rows = self.store.list_category_ids()
        self._category_map = {
            row["wc_category_id"]: row["id"]
            for row in rows
            if row.get("wc_category_id") is not None
        }
        logger.info("Loaded %d local categories", len(self._category_map))
        return self._category_map

    def resolve_product_categories(self, product: NormalizedProduct) -> list[Any]:
        """Local ids of the product's known categories; unknown ones are dropped."""
        category_map = self.category_map
        local_ids = []
        for wc_category_id in product.category_ids:
            local_id = category_map.get(wc_category_id)
            if local_id is None:
                logger.debug(
                    "Product %s references unknown category %s, skipping link",
                    product.wc_product_id,
                    wc_category_id,
                )
                continue
            if local_id not in local_ids:
                local_ids.append(local_id)
        return local_ids

    @staticmethod
    def resolve_product_local_ids(rows: Iterable[Mapping[str, Any]]) -> dict[int, Any]:
        """Remote product id -> local id from a product upsert result."""
        return {
            row["wc_product_id"]: row["id"]
            for row in rows
            if row.get("wc_product_id") is not None and row.get("id") is not None
        }
