"""Synchronisation between a Shopify store and a local directory.

Each resource kind has a handler with ``pull`` and ``push``; the registry
dispatches to them, the change set module reconstructs history and the
watcher pushes theme edits as they happen.
"""

from .changesets import ChangeBucket, ChangeKey, ChangeSet, get_change_sets
from .files import LocalFileIndex
from .history import replay
from .registry import ResourceKind, SyncRegistry, resolve_kinds
from .report import SyncOptions, SyncReport, raise_for_failures
from .watcher import LiveSyncWatcher

__all__ = [
    "ChangeBucket",
    "ChangeKey",
    "ChangeSet",
    "get_change_sets",
    "LocalFileIndex",
    "replay",
    "ResourceKind",
    "SyncRegistry",
    "resolve_kinds",
    "SyncOptions",
    "SyncReport",
    "raise_for_failures",
    "LiveSyncWatcher",
]
