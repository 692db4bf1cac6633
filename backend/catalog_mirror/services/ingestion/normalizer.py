"""
Product Normalizer
Validates and cleans raw WooCommerce records before they reach the store.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from catalog_mirror.schemas.product import (
    Admitted,
    CategoryRow,
    NormalizedImage,
    NormalizedProduct,
    NormalizeResult,
    ProductType,
    Rejected,
    RejectionReason,
    StockStatus,
)


class ProductNormalizer:
    """
    Turns one raw WooCommerce product into `Admitted` or `Rejected`.

    Never raises for bad input. Hard rejections are limited to a missing
    SKU, an unknown product type and an unreadable modification time;
    everything else is defaulted.
    """

    PRICE_FIELDS = ("price", "regular_price", "sale_price")

    def normalize(self, raw: Any) -> NormalizeResult:
        """
        Steps:
        1. Require a non-blank SKU and an integer id
        2. Keep well-formed images and category references
        3. Default text fields, parse prices and stock quantity
        4. Check product type and stock status
        5. Parse the GMT modification time
        6. Derive is_active from status
        """
        if not isinstance(raw, Mapping):
            return Rejected(reason=RejectionReason.INVALID_RECORD)

        remote_id = raw.get("id")
        name = self._text(raw.get("name"))

        def reject(reason: RejectionReason, field: str) -> Rejected:
            return Rejected(reason=reason, field=field, remote_id=remote_id, name=name)

        sku = raw.get("sku")
        if not isinstance(sku, str) or not sku.strip():
            return reject(RejectionReason.MISSING_SKU, "sku")

        if not _is_int(remote_id):
            return reject(RejectionReason.INVALID_ID, "id")

        images = self._normalize_images(raw.get("images"))
        category_ids = self._normalize_category_refs(raw.get("categories"))

        product_type = self._normalize_type(raw.get("type"))
        if product_type is None:
            return reject(RejectionReason.INVALID_TYPE, "type")

        raw_modified = raw.get("date_modified_gmt")
        modified_at = self._parse_timestamp(raw_modified)
        if modified_at is None and not _is_blank(raw_modified):
            return reject(RejectionReason.INVALID_TIMESTAMP, "date_modified_gmt")

        status = self._text(raw.get("status"))
        prices = {f: self._normalize_price(raw.get(f)) for f in self.PRICE_FIELDS}

        try:
            product = NormalizedProduct(
                wc_product_id=remote_id,
                name=name,
                slug=self._text(raw.get("slug")),
                type=product_type,
                status=status,
                is_active=status == "publish",
                description=self._text(raw.get("description")),
                short_description=self._text(raw.get("short_description")),
                sku=sku.strip(),
                on_sale=bool(raw.get("on_sale") or False),
                stock_quantity=self._normalize_stock_quantity(raw.get("stock_quantity")),
                stock_status=self._normalize_stock_status(raw.get("stock_status")),
                manage_stock=bool(raw.get("manage_stock") or False),
                wc_modified_at_gmt=modified_at,
                category_ids=category_ids,
                images=images,
                **prices,
            )
        except ValidationError:
            return reject(RejectionReason.INVALID_RECORD, "product")

        return Admitted(product=product)

    def normalize_batch(self, records: list[Any]) -> tuple[list[NormalizedProduct], list[Rejected]]:
        """Partition a page of raw records into admitted products and rejections."""
        admitted: list[NormalizedProduct] = []
        rejected: list[Rejected] = []
        for raw in records:
            result = self.normalize(raw)
            if isinstance(result, Admitted):
                admitted.append(result.product)
            else:
                rejected.append(result)
        return admitted, rejected

    def normalize_category(self, raw: Any) -> Optional[CategoryRow]:
        """Category row for a raw WooCommerce category, None without an integer id."""
        if not isinstance(raw, Mapping) or not _is_int(raw.get("id")):
            return None

        image = raw.get("image")
        image_url = None
        if isinstance(image, Mapping) and isinstance(image.get("src"), str):
            image_url = image["src"] or None

        return CategoryRow(
            wc_category_id=raw["id"],
            name=self._text(raw.get("name")),
            slug=self._text(raw.get("slug")),
            description=self._text(raw.get("description")),
            image_url=image_url,
        )

    def _text(self, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    def _normalize_images(self, images: Any) -> list[NormalizedImage]:
        """Drop malformed entries one by one; the product survives."""
        if not isinstance(images, list):
            return []

        cleaned = []
        for image in images:
            if not isinstance(image, Mapping) or not _is_int(image.get("id")):
                continue
            position = image.get("position")
            cleaned.append(
                NormalizedImage(
                    wc_image_id=image["id"],
                    src_url=self._text(image.get("src")),
                    alt_text=self._text(image.get("alt")),
                    position=position if _is_int(position) else 0,
                )
            )
        return cleaned

    def _normalize_category_refs(self, categories: Any) -> list[int]:
        if not isinstance(categories, list):
            return []

        ids = []
        seen = set()
        for category in categories:
            if not isinstance(category, Mapping) or not _is_int(category.get("id")):
                continue
            if category["id"] not in seen:
                ids.append(category["id"])
                seen.add(category["id"])
        return ids

    def _normalize_price(self, price: Any) -> float:
        """Decimal strings to float. Anything unusable or negative becomes 0.0."""
        if price is None or isinstance(price, bool):
            return 0.0

        if isinstance(price, (int, float)):
            value = float(price)
        elif isinstance(price, str):
            try:
                value = float(Decimal(price.strip()))
            except (InvalidOperation, ValueError):
                return 0.0
        else:
            return 0.0

        if not math.isfinite(value) or value < 0:
            return 0.0
        return value

    def _normalize_stock_quantity(self, quantity: Any) -> Optional[int]:
        """None means WooCommerce does not track stock for the product."""
        if quantity is None or isinstance(quantity, bool):
            return None

        if isinstance(quantity, int):
            return quantity

        if isinstance(quantity, float):
            return int(quantity) if math.isfinite(quantity) else None

        if isinstance(quantity, str):
            try:
                return int(quantity.strip())
            except ValueError:
                pass
            try:
                value = Decimal(quantity.strip())
            except InvalidOperation:
                return None
            return int(value) if value.is_finite() else None

        return None

    def _normalize_type(self, product_type: Any) -> Optional[ProductType]:
        if product_type is None or product_type == "":
            return ProductType.SIMPLE
        try:
            return ProductType(product_type)
        except ValueError:
            return None

    def _normalize_stock_status(self, status: Any) -> StockStatus:
        if isinstance(status, StockStatus):
            return status
        try:
            return StockStatus(status)
        except ValueError:
            return StockStatus.OUT_OF_STOCK

    def _parse_timestamp(self, value: Any) -> Optional[datetime]:
        """
        WooCommerce sends `date_modified_gmt` without an offset; it is UTC.
        Values that carry an offset are converted to UTC.
        """
        if not isinstance(value, str) or not value.strip():
            return None

        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
