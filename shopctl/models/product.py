"""Product catalogue models."""

import re
from typing import List, Optional

from pydantic import Field

from .base import ShopifyResource

# https://cdn.shopify.com/s/files/1/0716/7497/products/soap-dish.jpg?v=1605121789 -> soap-dish.jpg
_IMAGE_FILE = re.compile(r"^(?:https?://[^/]+)?[^?]*/([^/?]*)(?:\?.*)?$")


class ProductOption(ShopifyResource):
    name: str = ""
    position: Optional[int] = None
    values: List[str] = Field(default_factory=list)


class ProductVariant(ShopifyResource):
    id: Optional[int] = None
    position: Optional[int] = None
    option1: Optional[str] = None
    option2: Optional[str] = None
    option3: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[str] = None
    compare_at_price: Optional[str] = None
    inventory_policy: Optional[str] = None
    fulfillment_service: Optional[str] = None
    requires_shipping: Optional[bool] = None
    taxable: Optional[bool] = None
    barcode: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: Optional[str] = None
    status: Optional[str] = None


class ProductImage(ShopifyResource):
    id: Optional[int] = None
    src: Optional[str] = None
    alt: Optional[str] = None
    position: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def handle(self) -> Optional[str]:
        """File name of the image on the CDN, without query string."""
        match = _IMAGE_FILE.match(self.src or "")
        return match.group(1) if match and match.group(1) else None


class Product(ShopifyResource):
    """Catalogue product with its options, variants and images."""

    id: Optional[int] = None
    handle: str
    title: Optional[str] = None
    body_html: Optional[str] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    tags: Optional[str] = None
    status: Optional[str] = None
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    options: List[ProductOption] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    images: List[ProductImage] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return f"products/{self.handle}"

    def image_key(self, image: ProductImage) -> Optional[str]:
        return f"{self.key}/{image.handle}" if image.handle else None

    @property
    def has_variants(self) -> bool:
        """False for the single ``Title: Default Title`` option of a plain product."""
        if not self.options:
            return False
        first = self.options[0]
        return (
            len(self.options) > 1
            or first.name != "Title"
            or (first.values[:1] or [None])[0] != "Default Title"
        )
