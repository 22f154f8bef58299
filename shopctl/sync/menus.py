"""Navigation menus, rendered to Markdown.

Menus are pull-only: the Markdown form drops the item types, so it
cannot be turned back into menu items.
"""

import logging
import re
from functools import partial
from typing import Dict, List, Optional

from ..models import Menu, MenuItem
from ..store import ShopifyStore
from .files import LocalFileIndex, delete_file, md5_bytes, md5_file, save_file
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

MENUS_DIR = "menus"

_URL_SUBJECT = re.compile(r"^(?:https?:|mailto:)?/", re.IGNORECASE)
_COLLECTION_TYPES = ("blog", "collection", "page", "product")


def format_link(item: MenuItem, article_blogs: Dict[int, str]) -> str:
    """Render one menu item as a Markdown link where its target is known."""
    title = item.title
    subject = item.subject or ""
    if _URL_SUBJECT.match(subject):
        return f"[{title}]({subject})"
    if item.type in _COLLECTION_TYPES:
        return f"[{title}](/{item.type}s/{subject})"
    if item.type == "shop_policy":
        return f"[{title}](/policies/{subject})"
    if item.type == "article":
        blog = article_blogs.get(item.subject_id) if item.subject_id is not None else None
        if blog:
            return f"[{title}](/blogs/{blog}/{subject})"
    return title


def render_items(items: List[MenuItem], article_blogs: Dict[int, str], indent: str = "") -> List[str]:
    lines = []
    for item in items:
        lines.append(f"{indent}- {format_link(item, article_blogs)}")
        lines.extend(render_items(item.items, article_blogs, indent + "  "))
    return lines


def render_menu(menu: Menu, article_blogs: Optional[Dict[int, str]] = None) -> str:
    """Markdown for a menu: a title heading followed by a nested bullet list."""
    lines = [f"# {menu.title or menu.handle}"]
    lines.extend(render_items(menu.items, article_blogs or {}))
    return "\n".join(lines)


def _has_articles(items: List[MenuItem]) -> bool:
    return any(item.type == "article" or _has_articles(item.items) for item in items)


class MenuSync:
    """Write navigation menus to ``<output>/menus`` as Markdown."""

    kind = "menus"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [menu.path for menu in self.store.list_menus()]

    def _article_blogs(self) -> Dict[int, str]:
        """Map article ids to the handle of the blog holding them."""
        return {
            article.id: blog.handle
            for blog in self.store.list_blog_articles()
            for article in blog.articles
            if article.id is not None
        }

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        menus = self.store.list_menus()
        if options.filtered:
            menus = options.select_updated(menus)

        details = [self.store.get_menu(menu) for menu in menus]
        article_blogs = self._article_blogs() if any(_has_articles(m.items) for m in details) else {}

        local_files = self.files.list_files(options.output_dir, [MENUS_DIR])
        tasks = []
        for menu in details:
            relative = f"{menu.path}.md"
            local_files.discard(relative)
            text = render_menu(menu, article_blogs)
            path = options.output_dir / relative
            if options.force or md5_file(path) != md5_bytes(text):
                tasks.append(SyncTask("save", relative, partial(save_file, path, text)))
            else:
                report.record("skip", relative)

        if not options.filtered:
            for relative in sorted(local_files):
                tasks.append(SyncTask("delete", relative, partial(delete_file, options.output_dir / relative)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def push(self, options: SyncOptions) -> SyncReport:
        logger.warning("Menus are pull-only; nothing pushed")
        return SyncReport(self.kind, dry_run=options.dry_run)
