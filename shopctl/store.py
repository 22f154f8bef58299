"""Resource accessors for a Shopify store.

Every collection is listed with max-id pagination: pages of 250 items are
requested with ``since_id`` set to the highest id seen so far, and listing
stops at the first short page. Accessors return pydantic models carrying
the storage keys the sync handlers use.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Union

from .client import PAGE_SIZE, ShopifyClient
from .exceptions import APIError, ThemeOperationError
from .models import (
    Article,
    Asset,
    AssetVersion,
    Blog,
    Menu,
    Page,
    Product,
    Redirect,
    ScriptTag,
    Theme,
    handle_name,
)

logger = logging.getLogger(__name__)

ThemeRef = Union[Theme, str, int, None]


def paginate(fetch: Callable[[int], Optional[Dict[str, Any]]], resource_key: str) -> List[Dict[str, Any]]:
    """Collect every item of a max-id paginated collection.

    Args:
        fetch: Called with the highest id seen so far (0 for the first page)
        resource_key: Key of the item list in each response (e.g. ``pages``)

    Returns:
        All items, in the order they were returned
    """
    items: List[Dict[str, Any]] = []
    since_id = 0
    while True:
        data = fetch(since_id) or {}
        page = data.get(resource_key) or []
        items.extend(page)
        if len(page) < PAGE_SIZE:
            break

        next_since_id = max((item.get("id") or 0 for item in items), default=0)
        if next_since_id <= since_id:
            logger.warning("Pagination of %s did not advance past id %s", resource_key, since_id)
            break
        since_id = next_since_id
    return items


class ShopifyStore:
    """Typed access to the store's themes and online store content."""

    def __init__(self, client: ShopifyClient, max_workers: int = 8) -> None:
        self.client = client
        self.max_workers = max_workers

    @property
    def host(self) -> str:
        return self.client.host

    # Themes
    def list_themes(self) -> List[Theme]:
        data = self.client.get_themes() or {}
        return [Theme(**theme) for theme in data.get("themes", [])]

    def get_theme(self, name: ThemeRef = None) -> Optional[Theme]:
        """Find a theme.

        Args:
            name: None for the published theme, a numeric id, a handle or a display name

        Returns:
            The matching theme, or None
        """
        if isinstance(name, Theme):
            return name

        themes = self.list_themes()
        if name is None or name == "":
            return next((t for t in themes if t.is_main), None)

        wanted = str(name).strip()
        if wanted.isdigit():
            match = next((t for t in themes if t.id == int(wanted)), None)
            if match:
                return match

        handle = handle_name(wanted)
        return next((t for t in themes if t.handle == handle), None)

    def create_theme(self, name: str, src: Optional[str] = None) -> Theme:
        """Create an unpublished theme unless one with this name exists."""
        existing = self.get_theme(name)
        if existing:
            return existing

        logger.info('CREATE Theme: "%s"', name)
        data = self.client.create_theme(name, src=src) or {}
        if "theme" not in data:
            raise ThemeOperationError(f'Theme "{name}" could not be created', theme_name=name, operation="create")
        return Theme(**data["theme"])

    def delete_theme(self, name: ThemeRef) -> bool:
        """Delete a theme by name.

        Returns:
            False when there was no such theme

        Raises:
            ThemeOperationError: If the theme is the published one
        """
        theme = self.get_theme(name) if name else None
        if theme is None:
            return False
        if theme.is_main:
            raise ThemeOperationError(
                f'Theme "{theme.name}" is currently published; cannot delete',
                theme_name=theme.name,
                operation="delete",
            )

        logger.info('DELETE Theme: "%s"', theme.name)
        self.client.delete_theme(theme.id)
        return True

    def publish_theme(self, name: ThemeRef) -> Theme:
        """Make a theme the published one.

        Raises:
            ThemeOperationError: If the theme does not exist
        """
        theme = self.get_theme(name) if name else None
        if theme is None:
            raise ThemeOperationError(f'Theme "{name}" not found', theme_name=str(name), operation="publish")
        if theme.is_main:
            logger.info('Theme "%s" is already published', theme.name)
            return theme

        logger.info("PUBLISHING: %s", theme.name)
        data = self.client.update_theme(theme.id, theme.name, "main") or {}
        return Theme(**data["theme"]) if "theme" in data else theme

    # Assets
    def list_assets(self, theme: ThemeRef = None, include_versions: bool = False) -> Optional[Theme]:
        """List a theme's assets.

        ``X`` is dropped when ``X.liquid`` also exists, since the rendered file
        is derived from the template.

        Returns:
            The theme with ``assets`` populated, or None if it does not exist
        """
        theme = self.get_theme(theme)
        if theme is None:
            return None

        data = self.client.get_assets(theme.id) or {}
        assets = {item["key"]: Asset(**item) for item in data.get("assets", [])}
        for key in list(assets):
            if f"{key}.liquid" in assets:
                del assets[key]

        theme = theme.model_copy()
        theme.assets = list(assets.values())

        if include_versions:
            self._load_versions(theme)
        return theme

    def _load_versions(self, theme: Theme) -> None:
        pending = [asset for asset in theme.assets if not asset.versions]
        if not pending:
            return

        def fetch(asset: Asset) -> List[AssetVersion]:
            data = self.client.get_asset_versions(theme.id, asset.key) or {}
            return [AssetVersion(**v) for v in data.get("versions", [])]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(fetch, asset): asset for asset in pending}
            for future in as_completed(futures):
                asset = futures[future]
                try:
                    asset.versions = future.result()
                except APIError as e:
                    logger.warning("No version history for %s: %s", asset.key, e)
                    asset.versions = []

    # Redirects and script tags
    def list_redirects(self) -> List[Redirect]:
        return [Redirect(**item) for item in paginate(self.client.get_redirects, "redirects")]

    def list_script_tags(self) -> List[ScriptTag]:
        return [ScriptTag(**item) for item in paginate(self.client.get_script_tags, "script_tags")]

    # Pages
    def list_pages(self) -> List[Page]:
        return [Page(**item) for item in paginate(self.client.get_pages, "pages")]

    # Blogs
    def list_blogs(self) -> List[Blog]:
        return [Blog(**item) for item in paginate(self.client.get_blogs, "blogs")]

    def list_articles(self, blog: Blog) -> Blog:
        """Return a copy of ``blog`` with its articles listed."""
        items = paginate(lambda since_id: self.client.get_articles(blog.id, since_id), "articles")
        blog = blog.model_copy()
        blog.articles = [Article(**item) for item in items]
        return blog

    def list_blog_articles(self) -> List[Blog]:
        return [self.list_articles(blog) for blog in self.list_blogs()]

    def create_blog(self, title: str) -> Optional[Blog]:
        logger.info("CREATE blogs/%s", handle_name(title))
        data = self.client.create_blog({"title": title}) or {}
        return Blog(**data["blog"]) if "blog" in data else None

    # Products
    def list_products(self) -> List[Product]:
        return [Product(**item) for item in paginate(self.client.get_products, "products")]

    # Menus
    def list_menus(self) -> List[Menu]:
        return [Menu(**item) for item in paginate(self.client.get_menus, "menus")]

    def get_menu(self, menu: Menu) -> Menu:
        """Fetch a menu with its full item tree."""
        data = self.client.get_menu(menu.id) or {}
        if "menu" not in data:
            return menu
        return Menu(**{**menu.model_dump(), **data["menu"]})
