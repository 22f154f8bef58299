"""Script tags, kept in ``scripts.csv``."""

import logging
from functools import partial
from typing import Dict, List

from ..models import ScriptTag
from ..store import ShopifyStore
from .files import LocalFileIndex, md5_bytes, md5_file, read_file, save_file
from .redirects import read_csv, write_csv
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

SCRIPTS_FILE = "scripts.csv"
SCRIPTS_HEADER = ["src", "event", "scope"]


class ScriptTagSync:
    """Mirror the store's script tags to ``<output>/scripts.csv``."""

    kind = "scripts"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [f"<script src={s.src}>" for s in self.store.list_script_tags()]

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        scripts = self.store.list_script_tags()
        if options.filtered:
            scripts = options.select_updated(scripts)

        text = write_csv(SCRIPTS_HEADER, [[s.src, s.event or "", s.display_scope or ""] for s in scripts])
        path = options.output_dir / SCRIPTS_FILE
        if not options.force and md5_file(path) == md5_bytes(text):
            report.record("skip", SCRIPTS_FILE)
            return report

        return run_batch(
            [SyncTask("save", SCRIPTS_FILE, partial(save_file, path, text))],
            report, options.dry_run, max_workers=1,
        )

    def push(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        text = read_file(options.output_dir / SCRIPTS_FILE)
        if not isinstance(text, str):
            logger.warning("No local %s; skipping script tag push", SCRIPTS_FILE)
            return report

        client = self.store.client
        remaining: Dict[str, ScriptTag] = {s.src: s for s in self.store.list_script_tags()}
        creates, updates = [], []
        for row in read_csv(text):
            if not row or "/" not in row[0]:
                continue
            src = row[0]
            event = row[1] if len(row) > 1 and row[1] else "onload"
            scope = row[2] if len(row) > 2 and row[2] else None
            name = f"ScriptTag: {src} {event} ({scope or 'default'})"

            existing = remaining.pop(src, None)
            if existing is None:
                creates.append(SyncTask("create", name, partial(client.create_script_tag, src, event, scope)))
            elif options.force or existing.event != event or (scope and existing.display_scope != scope):
                updates.append(SyncTask("update", name, partial(client.update_script_tag, existing.id, src, event, scope)))

        deletes = [
            SyncTask("delete", f"ScriptTag: {s.src}", partial(client.delete_script_tag, s.id))
            for s in remaining.values()
        ]
        for batch in (creates, updates, deletes):
            run_batch(batch, report, options.dry_run, options.max_workers)
        return report
