"""Authentication utilities for the Shopify Admin API.

Credentials are resolved once when the client is constructed and turned
into the header set attached to every request.
"""

import base64
from typing import Dict, Optional

from ..exceptions import ConfigError


class ShopifyAuth:
    """Builds authentication headers for Shopify Admin API requests.

    Private apps authenticate with HTTP basic auth (``key:password``);
    custom apps send an ``X-Shopify-Access-Token``. A storefront token is
    passed along when configured.
    """

    def __init__(
        self,
        key: Optional[str] = None,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        storefront_token: Optional[str] = None,
    ) -> None:
        if not access_token and not (key and password):
            raise ConfigError("Either an access token or an API key and password are required")

        self.key = key
        self.password = password
        self.access_token = access_token
        self.storefront_token = storefront_token
        self._headers = self._build_headers()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "*/*"}
        if self.key and self.password:
            credentials = base64.b64encode(f"{self.key}:{self.password}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {credentials}"
        if self.access_token:
            headers["X-Shopify-Access-Token"] = self.access_token
        if self.storefront_token:
            headers["X-Shopify-Storefront-Access-Token"] = self.storefront_token
        return headers

    def get_headers(self) -> Dict[str, str]:
        """Get a fresh copy of the authentication headers."""
        return dict(self._headers)
