"""Replay of a change set into a git repository.

Each bucket becomes one filtered pull followed by a commit dated at the
bucket time. A final full pull brings the tree to the current state.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..models import EPOCH, Theme, format_timestamp, parse_timestamp
from ..utils.git import GitRepo
from .changesets import ChangeBucket, ChangeSet
from .registry import ResourceKind, SyncRegistry, resolve_kinds
from .report import SyncOptions, SyncReport

logger = logging.getLogger(__name__)

COMMIT_MESSAGE = "Sync with Shopify @ {}"


def themes_for_bucket(bucket: ChangeBucket, target: Theme) -> List[int]:
    """Guess which themes a bucket's asset changes should be pulled from.

    Changes on the target itself always count. Changes on other themes only
    count while they predate the target, when those themes were the place
    the work happened.
    """
    target_created = parse_timestamp(target.created_at) or EPOCH
    theme_ids = []
    for change in bucket.changes:
        if not change.is_asset or change.theme_id in theme_ids:
            continue
        if change.theme_handle == target.handle or bucket.at < target_created:
            theme_ids.append(change.theme_id)
    return theme_ids


def replay_bucket(
    registry: SyncRegistry,
    bucket: ChangeBucket,
    target: Theme,
    options: SyncOptions,
    kinds: List[ResourceKind],
) -> List[SyncReport]:
    """Pull the store as it was at the end of ``bucket``."""
    bucket_options = replace(options, created_before=bucket.latest, force=False, dry_run=False)
    reports = []
    if ResourceKind.ASSETS in kinds:
        for theme_id in themes_for_bucket(bucket, target):
            reports.append(registry.assets.pull(replace(bucket_options, theme=str(theme_id))))
    for kind in kinds:
        if kind in (ResourceKind.ASSETS, ResourceKind.REDIRECTS):
            continue
        reports.append(registry.get(kind).pull(bucket_options))
    return reports


def replay(
    registry: SyncRegistry,
    change_set: ChangeSet,
    target: Theme,
    options: SyncOptions,
    git: GitRepo,
    kinds: Optional[Iterable[str]] = None,
) -> List[SyncReport]:
    """Commit one snapshot per bucket, then the current state.

    Returns:
        Reports of every pull, for the caller to check for failures
    """
    selected = resolve_kinds(kinds)
    reports: List[SyncReport] = []
    for bucket in change_set:
        logger.info("REPLAY: %s (%d changes)", bucket.key, len(bucket.changes))
        reports.extend(replay_bucket(registry, bucket, target, options, selected))
        git.commit_all(COMMIT_MESSAGE.format(bucket.key), commit_date=bucket.key)

    reports.extend(registry.pull(selected, replace(options, theme=str(target.id), created_before=None)))
    now = format_timestamp(datetime.now(timezone.utc))
    git.commit_all(COMMIT_MESSAGE.format(now))
    return reports
