"""Online store content models: pages, blogs, articles, menus, script tags and redirects."""

from typing import List, Optional

from pydantic import Field

from .base import ShopifyResource


def draft_key(handle: str, published_at: Optional[str]) -> str:
    """Storage key for publishable content: ``handle`` or ``drafts/handle``."""
    return handle if published_at else f"drafts/{handle}"


class Page(ShopifyResource):
    """Online store page."""

    id: Optional[int] = None
    handle: str
    title: Optional[str] = None
    body_html: Optional[str] = None
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def key(self) -> str:
        return draft_key(self.handle, self.published_at)

    @property
    def path(self) -> str:
        """Location relative to the store directory, without extension."""
        return f"pages/{self.key}"


class Article(ShopifyResource):
    """Blog article."""

    id: Optional[int] = None
    blog_id: Optional[int] = None
    handle: str
    title: Optional[str] = None
    body_html: Optional[str] = None
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def key(self) -> str:
        return draft_key(self.handle, self.published_at)


class Blog(ShopifyResource):
    """Blog with its articles once they have been listed."""

    id: Optional[int] = None
    handle: str
    title: Optional[str] = None
    updated_at: Optional[str] = None
    articles: List[Article] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return self.handle

    @property
    def path(self) -> str:
        return f"blogs/{self.handle}"

    def article_path(self, article: Article) -> str:
        return f"{self.path}/{article.key}"


class MenuItem(ShopifyResource):
    """Navigation link; items nest to form the menu tree."""

    title: str = ""
    type: Optional[str] = None
    subject: Optional[str] = None
    subject_id: Optional[int] = None
    items: List["MenuItem"] = Field(default_factory=list)


class Menu(ShopifyResource):
    """Navigation menu."""

    id: Optional[int] = None
    handle: str
    title: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[MenuItem] = Field(default_factory=list)

    @property
    def key(self) -> str:
        return self.handle

    @property
    def path(self) -> str:
        return f"menus/{self.handle}"


class ScriptTag(ShopifyResource):
    """Storefront script tag; identified by ``src``."""

    id: Optional[int] = None
    src: str
    event: Optional[str] = "onload"
    display_scope: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Redirect(ShopifyResource):
    """URL redirect; identified by ``path``. The API keeps no timestamps for it."""

    id: Optional[int] = None
    path: str
    target: str


MenuItem.model_rebuild()
