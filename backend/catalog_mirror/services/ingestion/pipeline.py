"""
Catalog Sync Pipeline
Orchestrates a full WooCommerce -> Supabase catalog sync.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from catalog_mirror.core.errors import (
    CatalogMirrorError,
    RemoteCatalogError,
    StoreConnectionError,
    StoreError,
)
from catalog_mirror.schemas.product import NormalizedProduct
from catalog_mirror.schemas.sync import CatalogPage, SyncResult, SyncState
from catalog_mirror.services.woocommerce_client import PageFetcher, iter_pages
from .normalizer import ProductNormalizer
from .resolver import ReferenceResolver

logger = logging.getLogger(__name__)


class SyncCancelled(CatalogMirrorError):
    """The cancel event was set between two pages."""


class CatalogSyncPipeline:
    """
    Full catalog sync.

    Pipeline stages:
    1. Sync categories - drain every category page, upsert once
    2. Load category map - remote category id -> local id
    3. Sync products - page by page: normalize, upsert products, then
       upsert images and category links with the returned local ids

    Category and map failures end the run. A failed batch write only loses
    its own page; pages already written stay written.
    """

    def __init__(
        self,
        client,
        store,
        normalizer: ProductNormalizer = None,
        resolver: ReferenceResolver = None,
        products_page_size: int = 50,
        categories_page_size: int = 100,
        fetch_retries: int = 2,
        fetch_retry_delay: float = 2.0,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.store = store
        self.normalizer = normalizer or ProductNormalizer()
        self.resolver = resolver or ReferenceResolver(store)
        self.products_page_size = products_page_size
        self.categories_page_size = categories_page_size
        self.fetch_retries = max(0, fetch_retries)
        self.fetch_retry_delay = fetch_retry_delay
        self.cancel_event = cancel_event
        self._sleep = sleep
        self.state = SyncState.IDLE

    def run(self) -> SyncResult:
        """
        Run one full sync. Never raises for sync errors; check `result.state`.
        """
        result = SyncResult()
        result.started_at = datetime.now(timezone.utc)
        logger.info("Starting full catalog sync")

        try:
            self._enter(SyncState.SYNCING_CATEGORIES, result)
            result.categories_synced = self.sync_categories()

            self._enter(SyncState.LOADING_CATEGORY_MAP, result)
            self.resolver.build_category_map()

            self._enter(SyncState.SYNCING_PRODUCTS, result)
            self.sync_products(result)

            self._enter(SyncState.COMPLETED, result)
            logger.info(
                "Catalog sync completed: %d of %s products processed, %d rejected",
                result.products_processed,
                result.total_hint if result.total_hint is not None else "?",
                len(result.rejected),
            )
        except SyncCancelled:
            self._enter(SyncState.CANCELLED, result)
            result.error = "cancelled"
            logger.warning("Catalog sync cancelled after %d pages", result.pages_fetched)
        except CatalogMirrorError as e:
            failed_in = self.state
            self._enter(SyncState.FAILED, result)
            result.error = str(e)
            logger.error("Catalog sync failed during %s: %s", failed_in.value, e, exc_info=True)
        finally:
            result.finished_at = datetime.now(timezone.utc)

        return result

    def _enter(self, state: SyncState, result: SyncResult) -> None:
        self.state = state
        result.state = state

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelled("cancelled")

    # ==================== CATEGORIES ====================

    def sync_categories(self) -> int:
        """Drain every category page, then write them all at once."""
        rows = []
        for page in self._pages(self.client.fetch_categories_page, self.categories_page_size):
            for raw in page.records:
                row = self.normalizer.normalize_category(raw)
                if row is None:
                    logger.warning("Skipping category without a valid id: %r", raw)
                    continue
                rows.append(row.model_dump())

        # Last occurrence wins if a category shows up on two pages
        rows = list({row["wc_category_id"]: row for row in rows}.values())
        self.store.upsert_categories(rows)
        logger.info("%d categories synced", len(rows))
        return len(rows)

    # ==================== PRODUCTS ====================

    def sync_products(self, result: SyncResult) -> None:
        def fetch_page(page: int, per_page: int) -> CatalogPage:
            logger.info("Fetching products page %d", page)
            return self.client.fetch_products_page(page, per_page)

        for page in self._pages(fetch_page, self.products_page_size):
            result.pages_fetched += 1
            if page.number == 1:
                result.total_hint = page.total_hint
            if not page.records:
                break
            self.process_page(page, result)

    def process_page(self, page: CatalogPage, result: SyncResult) -> None:
        """Write one page. Only StoreConnectionError escapes."""
        result.products_seen += len(page.records)

        admitted, rejected = self.normalizer.normalize_batch(page.records)
        for rejection in rejected:
            entry = rejection.to_dict()
            result.rejected.append(entry)
            logger.warning(
                "Skipping product %s (%r): %s [%s]",
                entry["remote_id"],
                entry["name"],
                entry["reason"],
                entry["field"],
            )

        # Last occurrence wins if WooCommerce repeats a product on one page
        admitted = list({p.wc_product_id: p for p in admitted}.values())
        result.products_admitted += len(admitted)

        if not admitted:
            logger.warning("Page %d: no valid products", page.number)
            return

        try:
            written = self.store.upsert_products([p.to_row() for p in admitted])
        except StoreConnectionError:
            raise
        except StoreError as e:
            result.failed_product_batches.append(page.number)
            logger.error(
                "Page %d: product upsert failed (code=%s): %s",
                page.number, e.code, e.message,
            )
            return

        result.products_processed += len(admitted)
        logger.info(
            "Page %d saved. Processed %d of %s",
            page.number,
            result.products_processed,
            result.total_hint if result.total_hint is not None else "?",
        )

        # Page-local: local ids only exist once this page's upsert returned
        local_ids = self.resolver.resolve_product_local_ids(written)
        self._write_images(page.number, admitted, local_ids, result)
        self._write_category_links(page.number, admitted, local_ids, result)

    def _write_images(
        self,
        page_number: int,
        products: list[NormalizedProduct],
        local_ids: dict,
        result: SyncResult,
    ) -> None:
        rows = {}
        for product in products:
            product_id = local_ids.get(product.wc_product_id)
            if product_id is None:
                continue
            for image in product.image_rows():
                image.pop("product_wc_id")
                rows[image["wc_image_id"]] = {**image, "product_id": product_id}

        if not rows:
            return
        try:
            result.images_written += self.store.upsert_images(list(rows.values()))
        except StoreConnectionError:
            raise
        except StoreError as e:
            result.failed_image_batches.append(page_number)
            logger.error(
                "Page %d: image upsert failed (code=%s): %s",
                page_number, e.code, e.message,
            )

    def _write_category_links(
        self,
        page_number: int,
        products: list[NormalizedProduct],
        local_ids: dict,
        result: SyncResult,
    ) -> None:
        rows = []
        for product in products:
            product_id = local_ids.get(product.wc_product_id)
            if product_id is None:
                continue
            for category_id in self.resolver.resolve_product_categories(product):
                rows.append({"product_id": product_id, "category_id": category_id})

        if not rows:
            return
        try:
            result.category_links_written += self.store.upsert_category_links(rows)
        except StoreConnectionError:
            raise
        except StoreError as e:
            result.failed_link_batches.append(page_number)
            logger.error(
                "Page %d: category link upsert failed (code=%s): %s",
                page_number, e.code, e.message,
            )

    # ==================== PAGINATION ====================

    def _pages(self, fetch: PageFetcher, per_page: int) -> Iterator[CatalogPage]:
        """Pages until the first empty one, with a cancel check before each fetch."""

        def fetch_with_retry(page: int, size: int) -> CatalogPage:
            self._check_cancelled()
            attempt = 0
            while True:
                try:
                    return fetch(page, size)
                except RemoteCatalogError as e:
                    if attempt >= self.fetch_retries:
                        raise
                    attempt += 1
                    delay = self.fetch_retry_delay * attempt
                    logger.warning(
                        "Fetching page %d failed (%s), retry %d/%d in %.1fs",
                        page, e, attempt, self.fetch_retries, delay,
                    )
                    self._sleep(delay)

        return iter_pages(fetch_with_retry, per_page)
