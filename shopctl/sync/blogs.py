"""Blog article pull and push.

Articles are stored per blog under ``blogs/<blog-handle>/`` using the same
JSON plus HTML pair as pages, with unpublished articles in ``drafts/``.
"""

import logging
from functools import partial
from typing import List, Optional

from ..models import Blog, handle_name
from ..store import ShopifyStore
from .compare import is_same
from .files import LocalFileIndex, delete_file
from .pages import (
    DRAFTS,
    PAGES_IGNORE_ATTRIBUTES,
    PAGES_IGNORE_ATTRIBUTES_EXT,
    apply_publish_state,
    local_keys,
    read_sidecar,
    save_sidecar_tasks,
    sidecar_files,
)
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

BLOGS_DIR = "blogs"

BLOGS_IGNORE_ATTRIBUTES = PAGES_IGNORE_ATTRIBUTES + ["body_html", "blog_id"]


class BlogSync:
    """Mirror blog articles between the store and ``<output>/blogs``."""

    kind = "blogs"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [
            f"{blog.article_path(article)}.html"
            for blog in self.store.list_blog_articles()
            for article in blog.articles
        ]

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        tasks = []
        for blog in self.store.list_blog_articles():
            articles = blog.articles
            if options.filtered:
                articles = options.select_updated(articles)

            local_files = self.files.list_files(options.output_dir, [blog.path])
            for article in articles:
                path = blog.article_path(article)
                local_files.discard(f"{path}.json")
                local_files.discard(f"{path}.html")
                json_data, html = sidecar_files(article, BLOGS_IGNORE_ATTRIBUTES)
                saves = save_sidecar_tasks(options.output_dir / path, path, json_data, html, options)
                if not saves:
                    report.record("skip", path)
                tasks.extend(saves)

            if not options.filtered:
                for relative in sorted(local_files):
                    tasks.append(SyncTask("delete", relative, partial(delete_file, options.output_dir / relative)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def _local_blog_handles(self, options: SyncOptions) -> List[str]:
        blogs_dir = options.output_dir / BLOGS_DIR
        if not blogs_dir.is_dir():
            return []
        return sorted(p.name for p in blogs_dir.iterdir() if p.is_dir() and not p.name.startswith("."))

    def _resolve_blog(self, local_handle: str, remote: dict, options: SyncOptions) -> Optional[Blog]:
        """The remote blog for a local directory, created when missing."""
        handle = handle_name(local_handle)
        blog = remote.get(handle)
        if blog is not None:
            return self.store.list_articles(blog)
        if options.dry_run:
            logger.info("CREATE blogs/%s", handle)
            return Blog(handle=handle)
        return self.store.create_blog(local_handle)

    def push(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        handles = self._local_blog_handles(options)
        if not handles:
            logger.warning("No local blog directories below %s; skipping blog push", options.output_dir / BLOGS_DIR)
            return report

        remote = {blog.handle: blog for blog in self.store.list_blogs()}
        tasks = []
        for local_handle in handles:
            blog = self._resolve_blog(local_handle, remote, options)
            if blog is None:
                continue
            tasks.extend(self._article_tasks(blog, local_handle, report, options))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def _article_tasks(self, blog: Blog, local_handle: str, report: SyncReport, options: SyncOptions) -> List[SyncTask]:
        client = self.store.client
        blog_dir = options.output_dir / BLOGS_DIR / local_handle
        prefix = f"{BLOGS_DIR}/{local_handle}"
        keys = local_keys(self.files.list_files(options.output_dir, [prefix], suffix=".json"), prefix)
        tasks = []

        for article in blog.articles:
            handle = article.handle
            draft = f"{DRAFTS}/{handle}"
            name = f"{blog.path}/{handle}"
            if handle not in keys and draft not in keys:
                tasks.append(SyncTask("delete", name, partial(client.delete_article, blog.id, article.id)))
                continue

            published = handle in keys
            detail = read_sidecar(blog_dir / f"{handle if published else draft}.json") or {}
            apply_publish_state(detail, published)
            detail["id"] = article.id
            detail["blog_id"] = blog.id
            detail["handle"] = handle
            keys.discard(handle)
            keys.discard(draft)

            remote = article.to_payload()
            remote["published"] = bool(article.published_at)
            remote["body_html"] = remote.get("body_html") or ""
            if options.force or not is_same(remote, detail, PAGES_IGNORE_ATTRIBUTES_EXT):
                tasks.append(SyncTask("update", name, partial(client.update_article, blog.id, article.id, detail)))
            else:
                report.record("skip", name)

        for key in sorted(keys):
            is_draft = key.startswith(DRAFTS + "/")
            handle = handle_name(key.split("/", 1)[1] if is_draft else key)
            if is_draft and handle in keys:
                continue
            detail = read_sidecar(blog_dir / f"{key}.json") or {}
            detail.pop("id", None)
            apply_publish_state(detail, not is_draft)
            detail["handle"] = handle
            tasks.append(SyncTask("create", f"{blog.path}/{key}", partial(client.create_article, blog.id, detail)))

        return tasks
