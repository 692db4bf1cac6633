"""
Webhook Service
Applies single-product WooCommerce webhook deltas to the store.

Signature checks happen in the HTTP layer before a payload gets here.
"""

import logging
from collections.abc import Mapping
from typing import Any

from catalog_mirror.core.errors import StoreConnectionError, StoreError, WebhookPayloadError
from catalog_mirror.schemas.product import Rejected, RejectionReason
from catalog_mirror.schemas.sync import WebhookResult
from catalog_mirror.services.ingestion.normalizer import ProductNormalizer
from catalog_mirror.services.ingestion.resolver import ReferenceResolver

logger = logging.getLogger(__name__)

UPSERT_TOPICS = ("product.created", "product.updated", "product.restored")
DELETE_TOPIC = "product.deleted"


class WebhookService:
    """
    product.created / product.updated: same checks and write order as the
    bulk sync, for one product. product.deleted: mark inactive, keep the row.
    """

    def __init__(
        self,
        store,
        normalizer: ProductNormalizer = None,
        resolver: ReferenceResolver = None,
    ):
        self.store = store
        self.normalizer = normalizer or ProductNormalizer()
        self.resolver = resolver or ReferenceResolver(store)

    def handle(self, topic: str, payload: Any) -> WebhookResult:
        if topic == DELETE_TOPIC:
            return self._deactivate(topic, payload)
        if topic in UPSERT_TOPICS:
            return self._upsert(topic, payload)

        logger.info("Ignoring webhook topic %s", topic)
        return WebhookResult(topic=topic)

    def _deactivate(self, topic: str, payload: Any) -> WebhookResult:
        wc_product_id = payload.get("id") if isinstance(payload, Mapping) else None
        if not isinstance(wc_product_id, int) or isinstance(wc_product_id, bool):
            raise WebhookPayloadError(RejectionReason.INVALID_ID.value, "id")

        touched = self.store.mark_product_inactive(wc_product_id)
        result = WebhookResult(topic=topic, wc_product_id=wc_product_id, action="deactivated")
        if not touched:
            result.warnings.append(f"product {wc_product_id} not found locally")
        logger.info("Product %s marked inactive", wc_product_id)
        return result

    def _upsert(self, topic: str, payload: Any) -> WebhookResult:
        normalized = self.normalizer.normalize(payload)
        if isinstance(normalized, Rejected):
            logger.warning(
                "Webhook product %s rejected: %s [%s]",
                normalized.remote_id, normalized.reason.value, normalized.field,
            )
            raise WebhookPayloadError(normalized.reason.value, normalized.field)

        product = normalized.product
        written = self.store.upsert_products([product.to_row()])
        product_id = self.resolver.resolve_product_local_ids(written).get(product.wc_product_id)

        result = WebhookResult(topic=topic, wc_product_id=product.wc_product_id, action="upserted")
        if product_id is None:
            result.warnings.append("product upsert returned no local id; children skipped")
            return result

        images = [
            {**{k: v for k, v in row.items() if k != "product_wc_id"}, "product_id": product_id}
            for row in product.image_rows()
        ]
        try:
            result.images_written = self.store.upsert_images(images)
        except StoreConnectionError:
            raise
        except StoreError as e:
            result.warnings.append(f"images: {e}")
            logger.error("Webhook product %s: image upsert failed: %s", product.wc_product_id, e)

        try:
            self.resolver.build_category_map()
            links = [
                {"product_id": product_id, "category_id": category_id}
                for category_id in self.resolver.resolve_product_categories(product)
            ]
            result.category_links_written = self.store.upsert_category_links(links)
        except StoreConnectionError:
            raise
        except StoreError as e:
            result.warnings.append(f"category links: {e}")
            logger.error(
                "Webhook product %s: category link upsert failed: %s", product.wc_product_id, e
            )

        logger.info("Webhook product %s synced", product.wc_product_id)
        return result
