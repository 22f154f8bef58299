"""Page pull and push.

Each page is stored as ``pages/<handle>.json`` holding its metadata and
``pages/<handle>.html`` holding the body. Unpublished pages live under
``pages/drafts/``. When a handle exists in both places the published copy
wins.
"""

import json
import logging
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from ..exceptions import FileOperationError
from ..models import ShopifyResource
from ..store import ShopifyStore
from .compare import canonical_json, is_same, strip_attributes
from .files import LocalFileIndex, delete_file, md5_bytes, md5_file, read_file, save_file
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

PAGES_DIR = "pages"
DRAFTS = "drafts"

PAGES_IGNORE_ATTRIBUTES = ["id", "key", "handle", "shop_id", "admin_graphql_api_id"]
PAGES_IGNORE_ATTRIBUTES_EXT = PAGES_IGNORE_ATTRIBUTES + ["published_at", "created_at", "updated_at", "deleted_at"]


def sidecar_files(resource: ShopifyResource, ignore: Iterable[str]) -> tuple:
    """Split a resource into its JSON metadata and HTML body."""
    data = strip_attributes(resource.to_payload(), ignore)
    html = getattr(resource, "body_html", None) or ""
    data["body_html"] = {"file": f"{resource.handle}.html"}
    return canonical_json(data), html


def read_sidecar(json_path: Path) -> Optional[Dict[str, Any]]:
    """Read a JSON sidecar and inline the body from its HTML file."""
    raw = read_file(json_path)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise FileOperationError(f"Invalid JSON in {json_path}: {e}", file_path=str(json_path), operation="read")

    body = data.get("body_html")
    if isinstance(body, dict) and body.get("file"):
        html = read_file(json_path.parent / body["file"])
        data["body_html"] = html if isinstance(html, str) else ""
    return data


def apply_publish_state(detail: Dict[str, Any], published: bool) -> Dict[str, Any]:
    """Set the resolved published flag; drafts lose their publish date."""
    detail["published"] = published
    if not published:
        detail.pop("published_at", None)
    return detail


def local_keys(files: Set[str], prefix: str) -> Set[str]:
    """``drafts/about`` style keys of the ``.json`` sidecars below ``prefix``."""
    keys = set()
    for relative in files:
        if relative.endswith(".json") and relative.startswith(prefix + "/"):
            keys.add(relative[len(prefix) + 1:-len(".json")])
    return keys


def save_sidecar_tasks(
    base: Path,
    relative: str,
    json_data: str,
    html: str,
    options: SyncOptions,
) -> List[SyncTask]:
    """Tasks writing a sidecar pair, or none when both files are current."""
    json_path = base.with_name(base.name + ".json")
    html_path = base.with_name(base.name + ".html")
    if not options.force and md5_file(json_path) == md5_bytes(json_data) and md5_file(html_path) == md5_bytes(html):
        logger.debug("SKIP: %s.html", relative)
        return []

    def write() -> None:
        save_file(json_path, json_data)
        save_file(html_path, html)

    return [SyncTask("save", f"{relative}.html", write)]


class PageSync:
    """Mirror online store pages between the store and ``<output>/pages``."""

    kind = "pages"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [f"{page.path}.html" for page in self.store.list_pages()]

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        pages = self.store.list_pages()
        if options.filtered:
            pages = options.select_updated(pages)

        local_files = self.files.list_files(options.output_dir, [PAGES_DIR])
        tasks = []
        for page in pages:
            local_files.discard(f"{page.path}.json")
            local_files.discard(f"{page.path}.html")
            json_data, html = sidecar_files(page, PAGES_IGNORE_ATTRIBUTES)
            saves = save_sidecar_tasks(options.output_dir / page.path, page.path, json_data, html, options)
            if not saves:
                report.record("skip", page.path)
            tasks.extend(saves)

        if not options.filtered:
            for relative in sorted(local_files):
                tasks.append(SyncTask("delete", relative, partial(delete_file, options.output_dir / relative)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def push(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        pages_dir = options.output_dir / PAGES_DIR
        if not pages_dir.is_dir():
            logger.warning("No local %s directory; skipping page push", pages_dir)
            return report

        client = self.store.client
        keys = local_keys(self.files.list_files(options.output_dir, [PAGES_DIR], suffix=".json"), PAGES_DIR)
        tasks = []
        for page in self.store.list_pages():
            handle = page.handle
            draft = f"{DRAFTS}/{handle}"
            if handle not in keys and draft not in keys:
                tasks.append(SyncTask("delete", page.path, partial(client.delete_page, page.id)))
                continue

            published = handle in keys
            detail = read_sidecar(pages_dir / f"{handle if published else draft}.json") or {}
            apply_publish_state(detail, published)
            detail["handle"] = handle
            detail["id"] = page.id
            keys.discard(handle)
            keys.discard(draft)

            remote = page.to_payload()
            remote["published"] = bool(page.published_at)
            remote["body_html"] = remote.get("body_html") or ""
            if options.force or not is_same(remote, detail, PAGES_IGNORE_ATTRIBUTES_EXT):
                tasks.append(SyncTask("update", f"pages/{handle}", partial(client.update_page, page.id, detail)))
            else:
                report.record("skip", page.path)

        for key in sorted(keys):
            detail = read_sidecar(pages_dir / f"{key}.json") or {}
            detail.pop("id", None)
            handle = key.split("/", 1)[1] if key.startswith(DRAFTS + "/") else key
            # a draft only counts when there is no published copy
            if key.startswith(DRAFTS + "/") and handle in keys:
                continue
            apply_publish_state(detail, not key.startswith(DRAFTS + "/"))
            detail["handle"] = handle
            tasks.append(SyncTask("create", f"pages/{key}", partial(client.create_page, detail)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)
