"""URL redirects, kept in ``redirects.csv``."""

import csv
import io
import logging
from functools import partial
from typing import Dict, List, Sequence

from ..models import Redirect
from ..store import ShopifyStore
from .files import LocalFileIndex, md5_bytes, md5_file, read_file, save_file
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

REDIRECTS_FILE = "redirects.csv"
REDIRECTS_HEADER = ["Redirect from", "Redirect to"]


def write_csv(header: Sequence[str], rows: List[Sequence[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def read_csv(text: str) -> List[List[str]]:
    """Rows of a CSV table without its header row."""
    rows = list(csv.reader(io.StringIO(text)))
    return [[cell.strip() for cell in row] for row in rows[1:]]


class RedirectSync:
    """Mirror the store's redirects to ``<output>/redirects.csv``."""

    kind = "redirects"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        return [f"{r.path} (302) => {r.target}" for r in self.store.list_redirects()]

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        if options.filtered:
            logger.debug("SKIP: redirects carry no timestamps")
            return report

        redirects = self.store.list_redirects()
        text = write_csv(REDIRECTS_HEADER, [[r.path, r.target] for r in redirects])
        path = options.output_dir / REDIRECTS_FILE
        if not options.force and md5_file(path) == md5_bytes(text):
            report.record("skip", REDIRECTS_FILE)
            return report

        return run_batch(
            [SyncTask("save", REDIRECTS_FILE, partial(save_file, path, text))],
            report, options.dry_run, max_workers=1,
        )

    def push(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        text = read_file(options.output_dir / REDIRECTS_FILE)
        if not isinstance(text, str):
            logger.warning("No local %s; skipping redirect push", REDIRECTS_FILE)
            return report

        client = self.store.client
        remaining: Dict[str, Redirect] = {r.path: r for r in self.store.list_redirects()}
        creates, updates = [], []
        for row in read_csv(text):
            if len(row) < 2 or not row[0].startswith("/") or not row[1]:
                continue
            path, target = row[0], row[1]
            existing = remaining.pop(path, None)
            if existing is None:
                creates.append(SyncTask("create", f"302: {path} => {target}", partial(client.create_redirect, path, target)))
            elif options.force or existing.target != target:
                updates.append(SyncTask(
                    "update", f"302: {path} => {target}",
                    partial(client.update_redirect, existing.id, path, target),
                ))

        deletes = [
            SyncTask("delete", f"302: {r.path}", partial(client.delete_redirect, r.id))
            for r in remaining.values()
        ]
        for batch in (creates, updates, deletes):
            run_batch(batch, report, options.dry_run, options.max_workers)
        return report
