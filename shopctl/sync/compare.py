"""Same-content predicates used to skip transfers that would change nothing."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..models import parse_timestamp
from .files import md5_file

logger = logging.getLogger(__name__)

# Local files may lag the remote update time by this much and still count as current
MTIME_TOLERANCE_SECONDS = 5 * 60


def canonical_json(value: Any) -> str:
    """Serialize JSON with stable key order and escaped forward slashes.

    Theme JSON files are stored in this form so that formatting-only
    differences never show up as changes.
    """
    return json.dumps(value, sort_keys=True, indent=2, ensure_ascii=False).replace("/", "\\/")


def compact_json_size(text: str) -> Optional[int]:
    """Byte size of ``text`` re-serialized the way the API stores JSON assets."""
    try:
        value = json.loads(text)
    except ValueError:
        return None
    compact = json.dumps(value, separators=(",", ":"), ensure_ascii=False).replace("/", "\\/")
    return len(compact.encode("utf-8"))


def is_asset_same(
    path: Union[str, Path],
    checksum: Optional[str] = None,
    updated_at: Optional[str] = None,
    size: Optional[Union[int, str]] = None,
) -> bool:
    """Decide whether a local file already holds the remote content.

    True when the remote checksum equals the local MD5. Otherwise the
    sizes must match (JSON files are measured in compact form) and, when
    the remote update time is known, the local file must not be older
    than it by more than the tolerance window. A missing file is never
    the same.
    """
    path = Path(path)
    if not path.is_file():
        return False

    if checksum and checksum == md5_file(path):
        return True

    if size is None:
        return False

    stat = path.stat()
    local_size: Optional[int] = stat.st_size
    if path.suffix == ".json":
        local_size = compact_json_size(path.read_text(encoding="utf-8", errors="replace")) or stat.st_size

    try:
        if local_size != int(size):
            return False
    except (TypeError, ValueError):
        return False

    remote_updated = parse_timestamp(updated_at)
    if remote_updated is None:
        return True
    return stat.st_mtime + MTIME_TOLERANCE_SECONDS >= remote_updated.timestamp()


def strip_attributes(data: Dict[str, Any], ignore: Iterable[str]) -> Dict[str, Any]:
    """Copy of ``data`` without the ignored attributes."""
    ignored = set(ignore)
    return {k: v for k, v in data.items() if k not in ignored}


def is_same(left: Dict[str, Any], right: Dict[str, Any], ignore: Iterable[str] = ()) -> bool:
    """Compare two resources by their canonical JSON, ignoring some attributes."""
    ignore = list(ignore)
    return canonical_json(strip_attributes(left, ignore)) == canonical_json(strip_attributes(right, ignore))
