"""Theme asset pull and push.

Assets live below ``<output>/theme`` in the standard theme directories.
"""

import base64
import json
import logging
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import List, Optional

from ..exceptions import ThemeOperationError
from ..models import EPOCH, Asset, Theme, parse_timestamp
from ..store import ShopifyStore
from .compare import canonical_json, is_asset_same
from .files import LocalFileIndex, delete_file, read_file, save_file
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

THEME_DIR = "theme"
THEME_DIRS = ("assets", "layout", "sections", "templates", "config", "locales", "snippets")

# The settings data is validated against the schema, so these go last and in order
ORDERED_UPLOADS = ("config/settings_schema.json", "config/settings_data.json")


def effective_created_at(asset: Asset, version: int, created_at: Optional[str]) -> datetime:
    """Creation time of an asset version.

    The first version reports when it was opened, not when the file was
    copied into the theme, so the asset's own creation time is used.
    """
    value = asset.created_at if version == 1 else created_at
    return parse_timestamp(value) or EPOCH


def resolve_versions(assets: List[Asset], created_before: datetime) -> List[Asset]:
    """Pin each asset to its newest version at or before ``created_before``.

    Assets with no such version whose current revision is newer than the
    cutoff did not exist yet and are dropped.
    """
    resolved = []
    for asset in assets:
        candidates = [
            v.version
            for v in asset.versions
            if effective_created_at(asset, v.version, v.created_at) <= created_before
        ]
        asset = asset.model_copy(update={"version": max(candidates) if candidates else None})
        updated_at = parse_timestamp(asset.updated_at) or EPOCH
        if asset.version or updated_at <= created_before:
            resolved.append(asset)
    return resolved


def encode_upload(data) -> dict:
    """Split local content into the ``value`` or base64 ``attachment`` field."""
    if isinstance(data, str):
        return {"value": data}
    return {"attachment": base64.b64encode(data).decode("ascii")}


class AssetSync:
    """Mirror theme assets between the store and ``<output>/theme``."""

    kind = "assets"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    @staticmethod
    def theme_dir(options: SyncOptions) -> Path:
        return options.output_dir / THEME_DIR

    def _require_theme(self, name: Optional[str], include_versions: bool = False) -> Theme:
        theme = self.store.list_assets(name, include_versions=include_versions)
        if theme is None:
            raise ThemeOperationError(f'Theme "{name or "main"}" not found', theme_name=name, operation="sync")
        return theme

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [asset.key for asset in self._require_theme(options.theme).assets]

    def download(self, theme: Theme, asset: Asset, path: Path) -> None:
        """Fetch one asset and write it locally."""
        client = self.store.client
        if asset.public_url and not asset.version:
            data = client.download(asset.public_url)
            if data is not None:
                save_file(path, data)
            return

        detail = client.get_asset(theme.id, asset.key, asset.version) or {}
        payload = detail.get("asset") or {}
        if payload.get("value") is not None:
            data = payload["value"]
            if asset.key.endswith(".json"):
                try:
                    data = canonical_json(json.loads(data))
                except ValueError:
                    logger.warning("Keeping %s as returned: not valid JSON", asset.key)
            save_file(path, data)
        elif payload.get("attachment"):
            save_file(path, base64.b64decode(payload["attachment"]))
        else:
            logger.warning("No content returned for %s", asset.key)

    def upload(self, theme_id: int, theme_dir: Path, key: str) -> None:
        data = read_file(theme_dir / key)
        if data is None:
            logger.debug("SKIP: %s vanished before upload", key)
            return
        self.store.client.update_asset(theme_id, key, **encode_upload(data))

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        theme_dir = self.theme_dir(options)
        theme = self._require_theme(options.theme, include_versions=options.filtered)

        assets = theme.assets
        if options.filtered:
            assets = resolve_versions(assets, options.created_before)

        local_files = self.files.list_files(theme_dir, THEME_DIRS)
        tasks = []
        for asset in assets:
            path = theme_dir / asset.key
            local_files.discard(asset.key)
            if options.force or asset.version or not is_asset_same(path, asset.checksum, asset.updated_at, asset.size):
                tasks.append(SyncTask("save", asset.key, partial(self.download, theme, asset, path)))
            else:
                logger.debug("SKIP: %s", asset.key)
                report.record("skip", asset.key)

        # historical pulls only reconstruct; they never remove newer local state
        if not options.filtered:
            for key in sorted(local_files):
                tasks.append(SyncTask("delete", key, partial(delete_file, theme_dir / key)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def push(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        theme_dir = self.theme_dir(options)
        if not theme_dir.is_dir():
            logger.warning("No local %s directory; skipping asset push", theme_dir)
            return report

        if options.theme and not options.dry_run:
            self.store.create_theme(options.theme)
        theme = self._require_theme(options.theme)

        local_files = self.files.list_files(theme_dir, THEME_DIRS)
        remote_keys = {asset.key for asset in theme.assets}
        uploads = set(local_files)
        deletes = []
        for asset in theme.assets:
            if asset.key in local_files:
                path = theme_dir / asset.key
                if not options.force and is_asset_same(path, asset.checksum, asset.updated_at, asset.size):
                    uploads.discard(asset.key)
                    report.record("skip", asset.key)
            elif not self.files.is_ignored(theme_dir, asset.key):
                deletes.append(asset.key)

        def upload_task(key: str) -> SyncTask:
            action = "update" if key in remote_keys else "create"
            return SyncTask(action, key, partial(self.upload, theme.id, theme_dir, key))

        run_batch(
            [upload_task(key) for key in sorted(uploads) if key not in ORDERED_UPLOADS],
            report, options.dry_run, options.max_workers,
        )
        for key in ORDERED_UPLOADS:
            if key in uploads:
                run_batch([upload_task(key)], report, options.dry_run, max_workers=1)

        run_batch(
            [SyncTask("delete", key, partial(self.store.client.delete_asset, theme.id, key)) for key in sorted(deletes)],
            report, options.dry_run, options.max_workers,
        )
        return report
