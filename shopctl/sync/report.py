"""Sync options, per-kind reports and the batch runner.

Every create, update, delete or save in a batch runs to completion.
Failures are logged and collected on the report instead of cancelling
sibling actions; ``SyncReport.raise_for_failures`` turns them into a
``BatchOperationError`` once the batch has finished.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from ..exceptions import BatchOperationError
from ..models import EPOCH, parse_timestamp

logger = logging.getLogger(__name__)

ACTION_LABELS = {
    "save": "SAVING:",
    "create": "CREATE",
    "update": "UPDATE",
    "delete": "DELETE",
}


@dataclass
class SyncOptions:
    """Options shared by every pull and push."""

    output_dir: Path = Path(".")
    theme: Optional[str] = None
    force: bool = False
    dry_run: bool = False
    created_before: Optional[datetime] = None
    max_workers: int = 8

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)

    @property
    def filtered(self) -> bool:
        """Whether this is a historical pull limited by creation time."""
        return self.created_before is not None

    def select_updated(self, items: Iterable[Any]) -> List[Any]:
        """Items whose last update is at or before the creation-time filter."""
        if self.created_before is None:
            return list(items)
        return [item for item in items if (parse_timestamp(item.updated_at) or EPOCH) <= self.created_before]


class SyncTask(NamedTuple):
    """One action of a batch."""

    action: str
    name: str
    run: Callable[[], Any]


@dataclass
class SyncReport:
    """What a pull or push did for one resource kind."""

    kind: str
    saved: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False

    def record(self, action: str, name: str) -> None:
        {
            "save": self.saved,
            "create": self.created,
            "update": self.updated,
            "delete": self.deleted,
            "skip": self.skipped,
        }[action].append(name)

    @property
    def changed(self) -> int:
        return len(self.saved) + len(self.created) + len(self.updated) + len(self.deleted)

    def merge(self, other: "SyncReport") -> "SyncReport":
        self.saved.extend(other.saved)
        self.created.extend(other.created)
        self.updated.extend(other.updated)
        self.deleted.extend(other.deleted)
        self.skipped.extend(other.skipped)
        self.failures.extend(other.failures)
        return self

    def summary(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "saved": len(self.saved),
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
            "skipped": len(self.skipped),
            "failed": len(self.failures),
        }

    def raise_for_failures(self) -> None:
        """Raise ``BatchOperationError`` if any action failed."""
        if not self.failures:
            return
        raise BatchOperationError(
            f"{len(self.failures)} {self.kind} action(s) failed",
            successful_operations=self.changed,
            failed_operations=len(self.failures),
            failures=self.failures,
        )


def raise_for_failures(reports: Iterable[SyncReport]) -> None:
    """Raise one ``BatchOperationError`` covering every failed action in ``reports``."""
    reports = list(reports)
    failures = [dict(f, kind=r.kind) for r in reports for f in r.failures]
    if not failures:
        return
    raise BatchOperationError(
        f"{len(failures)} sync action(s) failed",
        successful_operations=sum(r.changed for r in reports),
        failed_operations=len(failures),
        failures=failures,
    )


def run_batch(
    tasks: Sequence[SyncTask],
    report: SyncReport,
    dry_run: bool = False,
    max_workers: int = 8,
) -> SyncReport:
    """Run a batch of independent actions concurrently.

    Args:
        tasks: Actions to run
        report: Report that receives successes and failures
        dry_run: Log and record the actions without running them
        max_workers: Number of worker threads

    Returns:
        The updated report
    """
    if not tasks:
        return report

    for task in tasks:
        logger.info("%s %s", ACTION_LABELS.get(task.action, task.action.upper()), task.name)

    if dry_run:
        for task in tasks:
            report.record(task.action, task.name)
        return report

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(task.run): task for task in tasks}
        for future in as_completed(futures):
            task = futures[future]
            try:
                future.result()
            except Exception as e:
                logger.error("Failed to %s %s: %s", task.action, task.name, e)
                report.failures.append({"action": task.action, "name": task.name, "error": str(e)})
            else:
                report.record(task.action, task.name)

    return report
