"""Utility modules for the Shopify store CLI.

This package contains helpers for authentication, retry logic and git
integration.
"""

from .auth import ShopifyAuth
from .retry import RetryManager

__all__ = [
    "ShopifyAuth",
    "RetryManager",
]
