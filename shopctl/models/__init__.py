"""Data models for the Shopify store CLI.

This package contains Pydantic models for the Shopify entities the CLI
mirrors locally, plus the handle and timestamp helpers they share.
"""

from .base import ShopifyResource, handle_name, parse_timestamp, format_timestamp, EPOCH
from .theme import Theme, Asset, AssetVersion
from .content import Page, Blog, Article, Menu, MenuItem, ScriptTag, Redirect, draft_key
from .product import Product, ProductImage, ProductOption, ProductVariant

__all__ = [
    # Base model and helpers
    "ShopifyResource",
    "handle_name",
    "parse_timestamp",
    "format_timestamp",
    "EPOCH",

    # Themes
    "Theme",
    "Asset",
    "AssetVersion",

    # Content
    "Page",
    "Blog",
    "Article",
    "Menu",
    "MenuItem",
    "ScriptTag",
    "Redirect",
    "draft_key",

    # Products
    "Product",
    "ProductImage",
    "ProductOption",
    "ProductVariant",
]
