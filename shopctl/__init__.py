"""Shopify store CLI package.

A command-line tool that mirrors a Shopify store's themes and content
into a local directory and pushes local edits back.
"""

__version__ = "0.1.0"
__description__ = "Command-line tool for syncing Shopify stores with local files"

# Re-export main classes for convenience
from .client import ShopifyClient
from .config import ConfigManager, Profile
from .render import OutputFormatter
from .store import ShopifyStore
from .utils.auth import ShopifyAuth
from .utils.retry import RetryManager
from .exceptions import (
    ShopCtlError,
    ConfigError,
    ValidationError,
    FileOperationError,
    ThemeOperationError,
    MaxRetriesExceededError,
    BatchOperationError,
    APIError,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    ServerError,
    RateLimitError,
    RedirectError,
)

__all__ = [
    "__version__",
    "__description__",
    "ShopifyClient",
    "ConfigManager",
    "Profile",
    "OutputFormatter",
    "ShopifyStore",
    "ShopifyAuth",
    "RetryManager",
    "ShopCtlError",
    "ConfigError",
    "ValidationError",
    "FileOperationError",
    "ThemeOperationError",
    "MaxRetriesExceededError",
    "BatchOperationError",
    "APIError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "ServerError",
    "RateLimitError",
    "RedirectError",
]
