"""
Product Schemas
Pydantic models for catalog records on their way from WooCommerce to Supabase.
"""

from pydantic import BaseModel, Field
from typing import Any, Optional, Union
from datetime import datetime
from enum import Enum


class StockStatus(str, Enum):
    IN_STOCK = "instock"
    OUT_OF_STOCK = "outofstock"
    ON_BACKORDER = "onbackorder"


class ProductType(str, Enum):
    SIMPLE = "simple"
    VARIABLE = "variable"
    BUNDLE = "bundle"
    VARIATION = "variation"
    GROUPED = "grouped"
    EXTERNAL = "external"


class RejectionReason(str, Enum):
    INVALID_RECORD = "invalid_record"
    INVALID_ID = "invalid_id"
    MISSING_SKU = "missing_sku"
    INVALID_TYPE = "invalid_type"
    INVALID_TIMESTAMP = "invalid_timestamp"


class NormalizedImage(BaseModel):
    """One product image, still keyed by the remote product."""
    wc_image_id: int
    src_url: str = ""
    alt_text: str = ""
    position: int = 0


class NormalizedProduct(BaseModel):
    """A WooCommerce product that passed every sanitizer check."""
    wc_product_id: int
    name: str = ""
    slug: str = ""
    type: ProductType = ProductType.SIMPLE
    status: str = ""
    is_active: bool = False
    description: str = ""
    short_description: str = ""
    sku: str
    price: float = Field(default=0.0, ge=0.0)
    regular_price: float = Field(default=0.0, ge=0.0)
    sale_price: float = Field(default=0.0, ge=0.0)
    on_sale: bool = False
    stock_quantity: Optional[int] = None  # None = stock not tracked
    stock_status: StockStatus = StockStatus.OUT_OF_STOCK
    manage_stock: bool = False
    wc_modified_at_gmt: Optional[datetime] = None  # None when WooCommerce sends no timestamp
    # Remote category ids, order kept, duplicates removed
    category_ids: list[int] = Field(default_factory=list)
    images: list[NormalizedImage] = Field(default_factory=list)

    def to_row(self) -> dict:
        """Row for the `products` table (children go to their own tables)."""
        return {
            "wc_product_id": self.wc_product_id,
            "name": self.name,
            "slug": self.slug,
            "type": self.type.value,
            "status": self.status,
            "is_active": self.is_active,
            "description": self.description,
            "short_description": self.short_description,
            "sku": self.sku,
            "price": self.price,
            "regular_price": self.regular_price,
            "sale_price": self.sale_price,
            "on_sale": self.on_sale,
            "stock_quantity": self.stock_quantity,
            "stock_status": self.stock_status.value,
            "manage_stock": self.manage_stock,
            "wc_modified_at_gmt": (
                self.wc_modified_at_gmt.isoformat() if self.wc_modified_at_gmt else None
            ),
        }

    def image_rows(self) -> list[dict]:
        """
        Image rows referencing the product by its remote id.

        `product_wc_id` is swapped for the local `product_id` once the
        product upsert has returned.
        """
        return [
            {
                "wc_image_id": image.wc_image_id,
                "product_wc_id": self.wc_product_id,
                "src_url": image.src_url,
                "alt_text": image.alt_text,
                "position": image.position,
            }
            for image in self.images
        ]


class CategoryRow(BaseModel):
    """Row for the `categories` table."""
    wc_category_id: int
    name: str = ""
    slug: str = ""
    description: str = ""
    image_url: Optional[str] = None


class Admitted(BaseModel):
    product: NormalizedProduct


class Rejected(BaseModel):
    reason: RejectionReason
    field: Optional[str] = None
    remote_id: Any = None
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "remote_id": self.remote_id,
            "name": self.name,
            "reason": self.reason.value,
            "field": self.field,
        }


NormalizeResult = Union[Admitted, Rejected]
