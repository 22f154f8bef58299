"""Change set reconstruction.

The Admin API keeps no edit history, only per-resource update times and
per-asset version times. A change set groups those timestamps into
buckets and then merges neighbouring buckets, approximating the sequence
of commits a developer would have made. Which ancestor themes contributed
to a theme is a best-effort guess: themes from the same theme store
lineage created no later than the target are assumed to be earlier
working copies of it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Set, Tuple

from ..exceptions import ThemeOperationError
from ..models import EPOCH, Asset, Theme, format_timestamp, parse_timestamp
from ..store import ShopifyStore
from .assets import effective_created_at
from .registry import ResourceKind, resolve_kinds

logger = logging.getLogger(__name__)

MERGE_WINDOW = timedelta(seconds=60)


class ChangeKey(NamedTuple):
    """One change to one resource.

    Assets carry the theme they belong to and, when known, the version.
    Other resources are identified by their local path (or ``src`` for
    script tags).
    """

    key: str
    theme_id: Optional[int] = None
    theme_handle: Optional[str] = None
    version: Optional[int] = None

    @property
    def is_asset(self) -> bool:
        return self.theme_id is not None

    @property
    def identity(self) -> Tuple[Optional[str], str]:
        """What two changes must share to be edits of the same resource."""
        return (self.theme_handle, self.key)

    def __str__(self) -> str:
        text = self.key
        if self.is_asset:
            text = f"{self.theme_id}~{self.theme_handle}~{text}"
        if self.version is not None:
            text = f"{text}@{self.version}"
        return text


@dataclass
class ChangeBucket:
    """Changes sharing one bucket time; ``latest`` is the newest time merged in."""

    at: datetime
    changes: List[ChangeKey] = field(default_factory=list)
    latest: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.latest is None:
            self.latest = self.at

    @property
    def key(self) -> str:
        return format_timestamp(self.at)

    @property
    def identities(self) -> Set[Tuple[Optional[str], str]]:
        return {change.identity for change in self.changes}

    def theme_ids(self) -> List[int]:
        seen: List[int] = []
        for change in self.changes:
            if change.is_asset and change.theme_id not in seen:
                seen.append(change.theme_id)
        return seen


class ChangeSet:
    """Chronological buckets of resource changes."""

    def __init__(self) -> None:
        self._buckets: Dict[datetime, ChangeBucket] = {}

    def add(self, timestamp: Any, change: ChangeKey) -> None:
        """Bucket a change; unparseable timestamps land on the epoch."""
        at = parse_timestamp(timestamp) or EPOCH
        at = at.replace(microsecond=at.microsecond // 1000 * 1000)
        bucket = self._buckets.get(at)
        if bucket is None:
            bucket = self._buckets[at] = ChangeBucket(at)
        bucket.changes.append(change)

    def __iter__(self) -> Iterator[ChangeBucket]:
        return iter(sorted(self._buckets.values(), key=lambda b: b.at))

    def __len__(self) -> int:
        return len(self._buckets)

    def __getitem__(self, at: datetime) -> ChangeBucket:
        return self._buckets[at]

    def keys(self) -> List[datetime]:
        return sorted(self._buckets)

    def identifiers(self) -> Set[str]:
        return {str(change) for bucket in self._buckets.values() for change in bucket.changes}

    def merge_adjacent(self, window: timedelta = MERGE_WINDOW) -> "ChangeSet":
        """Fold each bucket into its predecessor when they are close in time.

        Two buckets merge when the later one starts within ``window`` of the
        newest change already in the earlier one, and no resource changed in
        both. The earlier key is kept.
        """
        merged: List[ChangeBucket] = []
        for bucket in self:
            if merged:
                previous = merged[-1]
                if bucket.at - previous.latest <= window and not (previous.identities & bucket.identities):
                    previous.changes.extend(bucket.changes)
                    previous.latest = max(previous.latest, bucket.latest)
                    continue
            merged.append(ChangeBucket(bucket.at, list(bucket.changes), bucket.latest))

        self._buckets = {bucket.at: bucket for bucket in merged}
        return self

    def to_dict(self) -> Dict[str, List[str]]:
        return {bucket.key: [str(change) for change in bucket.changes] for bucket in self}


def is_ancestor(theme: Theme, target: Theme) -> bool:
    """Whether ``theme`` may have contributed history to ``target``."""
    if theme.id == target.id:
        return True
    if theme.theme_store_id != target.theme_store_id:
        return False
    return (parse_timestamp(theme.created_at) or EPOCH) <= (parse_timestamp(target.created_at) or EPOCH)


def ancestor_assets(theme: Theme, target_created: datetime) -> List[Asset]:
    """Assets and versions of an ancestor theme that predate the target theme."""
    assets = []
    for asset in theme.assets:
        if (parse_timestamp(asset.created_at) or EPOCH) > target_created:
            continue
        if asset.versions:
            # version 1 is dated by when the asset was copied in, which is checked above
            versions = [
                v for v in asset.versions
                if v.version == 1 or (parse_timestamp(v.created_at) or EPOCH) <= target_created
            ]
            if not versions:
                continue
            asset = asset.model_copy(update={"versions": versions})
        assets.append(asset)
    return assets


def add_theme_changes(change_set: ChangeSet, theme: Theme, assets: Iterable[Asset]) -> None:
    for asset in assets:
        if not asset.versions:
            change_set.add(asset.updated_at, ChangeKey(asset.key, theme.id, theme.handle))
        for v in asset.versions:
            change_set.add(
                effective_created_at(asset, v.version, v.created_at),
                ChangeKey(asset.key, theme.id, theme.handle, v.version),
            )


def get_change_sets(
    store: ShopifyStore,
    theme_name: Optional[str],
    kinds: Optional[Iterable[str]] = None,
) -> ChangeSet:
    """Reconstruct the change history of a theme and the store content.

    Args:
        store: Resource accessors
        theme_name: Target theme (None for the published one)
        kinds: Resource kinds to include; every kind when omitted

    Raises:
        ThemeOperationError: If the theme does not exist
    """
    target = store.get_theme(theme_name)
    if target is None:
        raise ThemeOperationError(f'Theme "{theme_name or "main"}" not found', theme_name=theme_name, operation="init")

    selected = resolve_kinds(kinds)
    target_created = parse_timestamp(target.created_at) or EPOCH
    change_set = ChangeSet()

    if ResourceKind.ASSETS in selected:
        for theme in store.list_themes():
            if not is_ancestor(theme, target):
                continue
            detailed = store.list_assets(theme, include_versions=True)
            assets = detailed.assets if theme.id == target.id else ancestor_assets(detailed, target_created)
            logger.debug("History from theme %s: %d assets", theme.handle, len(assets))
            add_theme_changes(change_set, theme, assets)

    if ResourceKind.MENUS in selected:
        for menu in store.list_menus():
            change_set.add(menu.updated_at, ChangeKey(menu.path))
    if ResourceKind.PAGES in selected:
        for page in store.list_pages():
            change_set.add(page.updated_at, ChangeKey(f"{page.path}.html"))
    if ResourceKind.BLOGS in selected:
        for blog in store.list_blog_articles():
            for article in blog.articles:
                change_set.add(article.updated_at, ChangeKey(f"{blog.article_path(article)}.html"))
    if ResourceKind.SCRIPTS in selected:
        for script in store.list_script_tags():
            change_set.add(script.updated_at, ChangeKey(script.src))
    # redirects carry no timestamps

    return change_set.merge_adjacent()
