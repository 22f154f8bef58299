"""Shopify Admin API client.

This module provides the transport used by every resource accessor:
authentication headers, an in-process response cache, retry handling for
rate limits, server errors and store redirects, and response decoding.
The REST endpoints for each resource kind sit on top of ``request``.
"""

import json
import logging
from typing import Dict, Any, Optional
from urllib.parse import quote, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .cache import MISS, ResponseCache
from .config import DEFAULT_API_VERSION, Profile
from .utils.auth import ShopifyAuth
from .utils.retry import RetryManager
from .exceptions import (
    APIError,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    ServerError,
    RateLimitError,
    RedirectError,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 250


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def collection_path(path: str) -> str:
    """Listing path of the collection a resource path belongs to.

    >>> collection_path("/admin/pages/5.json")
    '/admin/pages.json'
    """
    base = path.split("?", 1)[0]
    if base.endswith(".json"):
        base = base[: -len(".json")]
    head, _, last = base.rpartition("/")
    if last.isdigit() and head:
        base = head
    return base + ".json"


def _host_from_location(location: str) -> Optional[str]:
    """Extract the host a 302 points at, with or without a scheme."""
    if not location:
        return None
    parsed = urlparse(location if "//" in location else f"//{location}")
    return parsed.netloc or None


class ShopifyClient:
    """Client for Shopify Admin API operations."""

    def __init__(
        self,
        profile: Optional[Profile] = None,
        host: Optional[str] = None,
        key: Optional[str] = None,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        storefront_token: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: int = 30,
        max_retries: int = 10,
        cache_ttl: float = 1.0,
        cache: Optional[ResponseCache] = None,
    ) -> None:
        """Initialize the API client.

        Args:
            profile: Configuration profile; direct arguments are used without one
            host: Store domain (if profile not provided)
            key: Private app API key (if profile not provided)
            password: Private app password (if profile not provided)
            access_token: Admin API access token (if profile not provided)
            storefront_token: Storefront API token (if profile not provided)
            api_version: Admin API version used in every endpoint path
            timeout: Request timeout in seconds
            max_retries: Retry attempts for transient failures
            cache_ttl: Default freshness window for cached GET responses
            cache: Response cache to use; a private one is created if omitted

        Raises:
            ValueError: If no store host is configured
            ConfigError: If no usable credentials are configured
        """
        if profile:
            host = profile.host
            key = profile.key
            password = profile.password
            access_token = profile.access_token
            storefront_token = profile.storefront_token
            api_version = profile.api_version
            timeout = profile.timeout
            max_retries = profile.max_retries
            cache_ttl = profile.cache_ttl

        if not host:
            raise ValueError("Either profile or host must be provided")

        self.host = host
        self.api_version = api_version
        self.timeout = timeout
        self.cache_ttl = cache_ttl

        self.auth = ShopifyAuth(
            key=key,
            password=password,
            access_token=access_token,
            storefront_token=storefront_token,
        )
        self.retry_manager = RetryManager(max_retries=max_retries)
        self.cache = cache if cache is not None else ResponseCache()

        self.session = requests.Session()
        self._configure_session()

    def _configure_session(self) -> None:
        """Configure the requests session with connection pooling."""
        retry_strategy = Retry(
            total=0,  # We handle retries ourselves
            connect=2,
            read=2,
            backoff_factor=0.5,
            redirect=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=10, pool_maxsize=20)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @property
    def base_path(self) -> str:
        return f"/admin/api/{self.api_version}"

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"https://{self.host}{path}"

    def _status_line(self, method: str, path: str, response: requests.Response) -> str:
        status = f"{response.status_code} {response.reason or ''}".strip()
        return f"{method} {path} ({status})"

    def _error_data(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text or None

    def _check_status(self, method: str, path: str, response: requests.Response) -> None:
        """Convert error statuses into exceptions.

        Raises:
            RateLimitError: On 429
            ServerError: On 5xx
            APIError: On any other 4xx except 404
        """
        status = response.status_code
        message = self._status_line(method, path, response)

        if status == 429:
            raise RateLimitError(
                message,
                status_code=status,
                response_data=self._error_data(response),
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 500:
            raise ServerError(message, status_code=status, response_data=self._error_data(response))
        if status < 400 or status == 404:
            return

        logger.error(message)
        error_data = self._error_data(response)
        if status in (400, 422):
            raise BadRequestError(message, status_code=status, response_data=error_data)
        if status == 401:
            raise UnauthorizedError(message, status_code=status, response_data=error_data)
        if status == 403:
            raise ForbiddenError(message, status_code=status, response_data=error_data)
        raise APIError(message, status_code=status, response_data=error_data)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Decode a body by its declared content type."""
        content_type = response.headers.get("Content-Type", "")
        if "application/json" in content_type:
            return response.json() if response.content else None
        if "text" in content_type:
            return response.text
        return response.content

    def _handle_response(self, method: str, path: str, response: requests.Response) -> Any:
        """Handle API response and convert errors to appropriate exceptions.

        Returns:
            Decoded body, or None for 404

        Raises:
            RedirectError: On 302, after the client has switched to the new host
            APIError: For various HTTP error conditions
        """
        if response.status_code == 302:
            location = response.headers.get("Location", "")
            new_host = _host_from_location(location)
            if new_host:
                self.host = new_host
            raise RedirectError(
                self._status_line(method, f"{self.host}{path}", response),
                status_code=302,
                location=location,
            )

        if response.status_code == 404:
            logger.debug("NOT FOUND: %s %s", method, path)
            return None

        self._check_status(method, path, response)

        body = self._decode(response)
        if method == "GET" and response.status_code == 200:
            self.cache.set(method, path, body)
        return body

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        max_ttl: Optional[float] = None,
    ) -> Any:
        """Make an API request with caching, retry logic and error handling.

        Args:
            method: HTTP method
            path: Path below the store host (or an absolute URL)
            body: JSON payload
            max_ttl: Serve a cached GET response younger than this many seconds

        Returns:
            Decoded response body, or None when the resource does not exist

        Raises:
            APIError: For non-retryable API errors
            MaxRetriesExceededError: When transient failures persist
        """
        method = method.upper()
        if method == "GET":
            cached = self.cache.get(method, path, max_ttl)
            if cached is not MISS:
                logger.debug("CACHED: %s %s", method, path)
                return cached

        def make_request() -> Any:
            headers = self.auth.get_headers()
            data = None
            if body is not None:
                headers["Content-Type"] = "application/json"
                data = json.dumps(body)

            logger.debug("%s %s", method, path)
            response = self.session.request(
                method=method,
                url=self._url(path),
                headers=headers,
                data=data,
                timeout=self.timeout,
                allow_redirects=False,
            )
            logger.debug("%s %s", response.status_code, response.reason)
            return self._handle_response(method, path, response)

        try:
            return self.retry_manager.execute_with_retry(make_request, f"{method} {path}")
        finally:
            if method != "GET":
                # listings of the collection are stale too
                self.cache.invalidate(path)
                self.cache.invalidate_prefix(collection_path(path))

    def get(self, path: str, max_ttl: Optional[float] = None) -> Any:
        return self.request("GET", path, max_ttl=self.cache_ttl if max_ttl is None else max_ttl)

    def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, body)

    def put(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def download(self, url: str) -> Optional[bytes]:
        """Fetch a public file (e.g. a CDN asset) without credentials.

        Returns:
            Raw bytes, or None when the file does not exist
        """
        def fetch() -> Optional[bytes]:
            logger.debug("GET %s", url)
            response = self.session.get(url, timeout=self.timeout)
            if response.status_code == 404:
                return None
            self._check_status("GET", url, response)
            return response.content

        return self.retry_manager.execute_with_retry(fetch, f"GET {url}")

    def _list_path(self, resource: str, since_id: int = 0) -> str:
        path = f"{self.base_path}/{resource}.json?limit={PAGE_SIZE}"
        if since_id > 0:
            path += f"&since_id={since_id}"
        return path

    # Themes API methods
    def get_themes(self) -> Dict[str, Any]:
        return self.get(f"{self.base_path}/themes.json")

    def get_theme(self, theme_id: int) -> Optional[Dict[str, Any]]:
        return self.get(f"{self.base_path}/themes/{theme_id}.json")

    def create_theme(self, name: str, src: Optional[str] = None, role: str = "unpublished") -> Dict[str, Any]:
        """Create a theme, optionally from a zip archive URL."""
        theme: Dict[str, Any] = {"name": name, "role": role}
        if src:
            theme["src"] = src
        return self.post(f"{self.base_path}/themes.json", {"theme": theme})

    def update_theme(self, theme_id: int, name: Optional[str] = None, role: Optional[str] = None) -> Dict[str, Any]:
        theme: Dict[str, Any] = {"id": theme_id}
        if name:
            theme["name"] = name
        if role:
            theme["role"] = role
        return self.put(f"{self.base_path}/themes/{theme_id}.json", {"theme": theme})

    def delete_theme(self, theme_id: int) -> Any:
        return self.delete(f"{self.base_path}/themes/{theme_id}.json")

    # Assets API methods
    def get_assets(self, theme_id: int) -> Dict[str, Any]:
        return self.get(f"{self.base_path}/themes/{theme_id}/assets.json")

    def get_asset(self, theme_id: int, key: str, version: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Get one asset with its value, optionally at a historical version."""
        path = f"{self.base_path}/themes/{theme_id}/assets.json?asset[key]={quote(key)}"
        if version:
            path += f"&asset[version]={version}"
        return self.get(path)

    def get_asset_versions(self, theme_id: int, key: str) -> Optional[Dict[str, Any]]:
        return self.get(f"{self.base_path}/themes/{theme_id}/assets/versions.json?asset[key]={quote(key)}")

    def update_asset(
        self,
        theme_id: int,
        key: str,
        value: Optional[str] = None,
        attachment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or replace an asset.

        Args:
            theme_id: Theme ID
            key: Asset key (path within the theme)
            value: Text content
            attachment: Base64 encoded binary content
        """
        asset: Dict[str, Any] = {"key": key}
        if attachment is not None:
            asset["attachment"] = attachment
        else:
            asset["value"] = value or ""
        return self.put(f"{self.base_path}/themes/{theme_id}/assets.json", {"asset": asset})

    def delete_asset(self, theme_id: int, key: str) -> Any:
        return self.delete(f"{self.base_path}/themes/{theme_id}/assets.json?asset[key]={quote(key)}")

    # Redirects API methods
    def get_redirects(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("redirects", since_id))

    def create_redirect(self, path: str, target: str) -> Dict[str, Any]:
        return self.post(f"{self.base_path}/redirects.json", {"redirect": {"path": path, "target": target}})

    def update_redirect(self, redirect_id: int, path: Optional[str] = None, target: Optional[str] = None) -> Dict[str, Any]:
        redirect: Dict[str, Any] = {"id": redirect_id}
        if path:
            redirect["path"] = path
        if target:
            redirect["target"] = target
        return self.put(f"{self.base_path}/redirects/{redirect_id}.json", {"redirect": redirect})

    def delete_redirect(self, redirect_id: int) -> Any:
        return self.delete(f"{self.base_path}/redirects/{redirect_id}.json")

    # Script tags API methods
    def get_script_tags(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("script_tags", since_id))

    def create_script_tag(self, src: str, event: str = "onload", display_scope: Optional[str] = None) -> Dict[str, Any]:
        script_tag: Dict[str, Any] = {"src": src, "event": event or "onload"}
        if display_scope:
            script_tag["display_scope"] = display_scope
        return self.post(f"{self.base_path}/script_tags.json", {"script_tag": script_tag})

    def update_script_tag(
        self,
        script_tag_id: int,
        src: Optional[str] = None,
        event: Optional[str] = None,
        display_scope: Optional[str] = None,
    ) -> Dict[str, Any]:
        script_tag: Dict[str, Any] = {"id": script_tag_id}
        if src:
            script_tag["src"] = src
        if event:
            script_tag["event"] = event
        if display_scope:
            script_tag["display_scope"] = display_scope
        return self.put(f"{self.base_path}/script_tags/{script_tag_id}.json", {"script_tag": script_tag})

    def delete_script_tag(self, script_tag_id: int) -> Any:
        return self.delete(f"{self.base_path}/script_tags/{script_tag_id}.json")

    # Pages API methods
    def get_pages(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("pages", since_id))

    def create_page(self, page: Dict[str, Any]) -> Dict[str, Any]:
        return self.post(f"{self.base_path}/pages.json", {"page": page})

    def update_page(self, page_id: int, page: Dict[str, Any]) -> Dict[str, Any]:
        return self.put(f"{self.base_path}/pages/{page_id}.json", {"page": page})

    def delete_page(self, page_id: int) -> Any:
        return self.delete(f"{self.base_path}/pages/{page_id}.json")

    # Blogs and articles API methods
    def get_blogs(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("blogs", since_id))

    def create_blog(self, blog: Dict[str, Any]) -> Dict[str, Any]:
        return self.post(f"{self.base_path}/blogs.json", {"blog": blog})

    def get_articles(self, blog_id: int, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path(f"blogs/{blog_id}/articles", since_id))

    def create_article(self, blog_id: int, article: Dict[str, Any]) -> Dict[str, Any]:
        return self.post(f"{self.base_path}/blogs/{blog_id}/articles.json", {"article": article})

    def update_article(self, blog_id: int, article_id: int, article: Dict[str, Any]) -> Dict[str, Any]:
        return self.put(f"{self.base_path}/blogs/{blog_id}/articles/{article_id}.json", {"article": article})

    def delete_article(self, blog_id: int, article_id: int) -> Any:
        return self.delete(f"{self.base_path}/blogs/{blog_id}/articles/{article_id}.json")

    # Products API methods
    def get_products(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("products", since_id))

    # Menus API methods
    def get_menus(self, since_id: int = 0) -> Dict[str, Any]:
        return self.get(self._list_path("menus", since_id))

    def get_menu(self, menu_id: int) -> Optional[Dict[str, Any]]:
        return self.get(f"{self.base_path}/menus/{menu_id}.json")

    def get_stats(self) -> Dict[str, Any]:
        """Get cache and retry statistics for this client."""
        return {
            "host": self.host,
            "cache": self.cache.get_stats(),
            "retry": self.retry_manager.get_metrics(),
        }
