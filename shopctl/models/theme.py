"""Theme and asset models."""

from typing import List, Optional

from pydantic import Field, model_validator

from .base import ShopifyResource, handle_name


class AssetVersion(ShopifyResource):
    """One historical revision of an asset."""

    version: int
    created_at: Optional[str] = None


class Asset(ShopifyResource):
    """A single file within a theme."""

    key: str
    checksum: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    public_url: Optional[str] = None
    theme_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    versions: List[AssetVersion] = Field(default_factory=list)

    # Version chosen by a time filtered pull; None means the current one
    version: Optional[int] = None


class Theme(ShopifyResource):
    """Shopify theme; only one theme has role ``main`` at a time."""

    id: int
    name: str
    role: str = "unpublished"
    handle: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    theme_store_id: Optional[int] = None
    assets: List[Asset] = Field(default_factory=list)

    @model_validator(mode="after")
    def derive_handle(self) -> "Theme":
        if not self.handle:
            self.handle = handle_name(self.name)
        return self

    @property
    def is_main(self) -> bool:
        return self.role == "main"
