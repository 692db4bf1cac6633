# conftest.py - Shared fixtures for all tests
import itertools

import pytest

from catalog_mirror.core.errors import RemoteCatalogError, StoreConnectionError, StoreWriteError
from catalog_mirror.schemas.sync import CatalogPage


def make_product(product_id, **overrides):
    """A WooCommerce product payload as returned by /wc/v3/products."""
    product = {
        "id": product_id,
        "name": f"Product {product_id}",
        "slug": f"product-{product_id}",
        "type": "simple",
        "status": "publish",
        "description": "<p>Description</p>",
        "short_description": "Short",
        "sku": f"SKU-{product_id}",
        "price": "10.00",
        "regular_price": "12.00",
        "sale_price": "10.00",
        "on_sale": True,
        "stock_quantity": 3,
        "stock_status": "instock",
        "manage_stock": True,
        "date_modified_gmt": "2024-05-01T12:30:00",
        "categories": [],
        "images": [],
    }
    product.update(overrides)
    return product


def make_category(category_id, **overrides):
    category = {
        "id": category_id,
        "name": f"Category {category_id}",
        "slug": f"category-{category_id}",
        "description": "",
        "image": None,
    }
    category.update(overrides)
    return category


class FakeCatalogClient:
    """Serves scripted pages; page N is the Nth list given."""

    def __init__(self, product_pages=None, category_pages=None, total_hint=None):
        self.product_pages = list(product_pages or [])
        self.category_pages = list(category_pages or [])
        self.total_hint = total_hint
        self.product_calls = []
        self.category_calls = []
        self.product_errors = {}  # page -> list of exceptions to raise first
        self.category_error = None

    def _page(self, pages, page):
        if page <= len(pages):
            return list(pages[page - 1])
        return []

    def fetch_categories_page(self, page, per_page=100):
        self.category_calls.append((page, per_page))
        if self.category_error:
            raise self.category_error
        return CatalogPage(number=page, records=self._page(self.category_pages, page))

    def fetch_products_page(self, page, per_page=50):
        self.product_calls.append((page, per_page))
        pending = self.product_errors.get(page)
        if pending:
            raise pending.pop(0)
        return CatalogPage(
            number=page,
            records=self._page(self.product_pages, page),
            total_hint=self.total_hint if page == 1 else None,
        )


class InMemoryCatalogStore:
    """Upsert-by-key tables with sequential local ids."""

    def __init__(self):
        self.categories = {}  # wc_category_id -> row
        self.products = {}  # wc_product_id -> row
        self.images = {}  # wc_image_id -> row
        self.links = {}  # (product_id, category_id) -> row
        self._ids = itertools.count(1)
        self.calls = []
        self.fail_product_batches = set()  # wc_product_ids that trigger a write error
        self.fail_images = False
        self.fail_links = False
        self.fail_categories = False
        self.fail_list_categories = False
        self.disconnected = False

    def _check(self, op):
        self.calls.append(op)
        if self.disconnected:
            raise StoreConnectionError(f"{op}: connection refused")

    def _upsert(self, table, key, row):
        existing = table.get(key)
        local_id = existing["id"] if existing else f"L{next(self._ids)}"
        table[key] = {**row, "id": local_id}
        return table[key]

    def upsert_categories(self, rows):
        self._check("upsert_categories")
        if self.fail_categories:
            raise StoreWriteError("categories rejected", code="23505")
        for row in rows:
            self._upsert(self.categories, row["wc_category_id"], row)
        return len(rows)

    def list_category_ids(self):
        self._check("list_category_ids")
        if self.fail_list_categories:
            raise StoreWriteError("permission denied", code="42501")
        return [
            {"id": row["id"], "wc_category_id": row["wc_category_id"]}
            for row in self.categories.values()
        ]

    def upsert_products(self, rows):
        self._check("upsert_products")
        if any(row["wc_product_id"] in self.fail_product_batches for row in rows):
            raise StoreWriteError("value too long for type", code="22001")
        written = [self._upsert(self.products, row["wc_product_id"], row) for row in rows]
        return [{"id": row["id"], "wc_product_id": row["wc_product_id"]} for row in written]

    def mark_product_inactive(self, wc_product_id):
        self._check("mark_product_inactive")
        row = self.products.get(wc_product_id)
        if row is None:
            return 0
        row["is_active"] = False
        return 1

    def upsert_images(self, rows):
        self._check("upsert_images")
        if self.fail_images:
            raise StoreWriteError("images rejected", code="23503")
        for row in rows:
            assert "product_wc_id" not in row
            assert row["product_id"] in {p["id"] for p in self.products.values()}
            self._upsert(self.images, row["wc_image_id"], row)
        return len(rows)

    def upsert_category_links(self, rows):
        self._check("upsert_category_links")
        if self.fail_links:
            raise StoreWriteError("links rejected", code="23503")
        for row in rows:
            self.links[(row["product_id"], row["category_id"])] = dict(row)
        return len(rows)

    def counts(self):
        return {
            "categories": len(self.categories),
            "products": len(self.products),
            "images": len(self.images),
            "links": len(self.links),
        }


@pytest.fixture
def store():
    return InMemoryCatalogStore()


@pytest.fixture
def remote_error():
    return RemoteCatalogError("WooCommerce GET products", status_code=503, body="Service Unavailable")
