"""Resource kind dispatch.

Each resource kind maps to one handler exposing ``list_keys``, ``pull``
and ``push``. Commands pick kinds explicitly per invocation.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Union

from ..store import ShopifyStore
from .assets import AssetSync
from .blogs import BlogSync
from .files import LocalFileIndex
from .menus import MenuSync
from .pages import PageSync
from .products import ProductSync
from .redirects import RedirectSync
from .report import SyncOptions, SyncReport
from .script_tags import ScriptTagSync

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Resource kinds in the order they are synced."""

    ASSETS = "assets"
    MENUS = "menus"
    PAGES = "pages"
    BLOGS = "blogs"
    REDIRECTS = "redirects"
    SCRIPTS = "scripts"
    PRODUCTS = "products"


class ResourceHandler(Protocol):
    kind: str

    def list_keys(self, options: SyncOptions) -> List[str]: ...

    def pull(self, options: SyncOptions) -> SyncReport: ...

    def push(self, options: SyncOptions) -> SyncReport: ...


HANDLER_TYPES = {
    ResourceKind.ASSETS: AssetSync,
    ResourceKind.MENUS: MenuSync,
    ResourceKind.PAGES: PageSync,
    ResourceKind.BLOGS: BlogSync,
    ResourceKind.REDIRECTS: RedirectSync,
    ResourceKind.SCRIPTS: ScriptTagSync,
    ResourceKind.PRODUCTS: ProductSync,
}


def resolve_kinds(kinds: Optional[Iterable[Union[str, ResourceKind]]] = None) -> List[ResourceKind]:
    """Normalize requested kinds; nothing requested means every kind.

    Raises:
        ValueError: For an unknown kind
    """
    requested = {ResourceKind(k) for k in kinds or ()}
    return [kind for kind in ResourceKind if not requested or kind in requested]


class SyncRegistry:
    """Handlers for every resource kind, sharing one store and file index."""

    def __init__(self, store: ShopifyStore, files: Optional[LocalFileIndex] = None) -> None:
        self.store = store
        self.files = files or LocalFileIndex()
        self.handlers: Dict[ResourceKind, ResourceHandler] = {
            kind: handler_type(store, self.files) for kind, handler_type in HANDLER_TYPES.items()
        }

    def get(self, kind: Union[str, ResourceKind]) -> ResourceHandler:
        return self.handlers[ResourceKind(kind)]

    @property
    def assets(self) -> AssetSync:
        return self.handlers[ResourceKind.ASSETS]

    def list_keys(self, kinds: Iterable[Union[str, ResourceKind]], options: SyncOptions) -> Dict[ResourceKind, List[str]]:
        return {kind: self.get(kind).list_keys(options) for kind in resolve_kinds(kinds)}

    def pull(self, kinds: Iterable[Union[str, ResourceKind]], options: SyncOptions) -> List[SyncReport]:
        """Pull the requested kinds, in sync order."""
        reports = []
        for kind in resolve_kinds(kinds):
            logger.debug("Pulling %s", kind.value)
            reports.append(self.get(kind).pull(options))
        return reports

    def push(self, kinds: Iterable[Union[str, ResourceKind]], options: SyncOptions) -> List[SyncReport]:
        """Push the requested kinds, in sync order."""
        reports = []
        for kind in resolve_kinds(kinds):
            logger.debug("Pushing %s", kind.value)
            reports.append(self.get(kind).push(options))
        return reports
