"""Shared helpers for Shopify resource models."""

import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_NON_HANDLE_CHARS = re.compile(r"[^a-z0-9_-]+")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def handle_name(name: Any) -> str:
    """Derive a URL-safe handle from a display name.

    >>> handle_name("Café Dé!")
    'cafe_de'
    """
    value = unicodedata.normalize("NFD", str(name))
    value = _COMBINING_MARKS.sub("", value)
    value = value.lower().strip()
    value = _NON_HANDLE_CHARS.sub("_", value)
    return value.strip("_")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an API timestamp into an aware datetime, or None if it cannot be parsed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way change set keys are written (UTC, millisecond precision)."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class ShopifyResource(BaseModel):
    """Base model for Shopify entities.

    Unknown API attributes are kept so that local copies round-trip
    everything the store returns.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_payload(self, exclude: Iterable[str] = ()) -> dict:
        """Dump the resource as a plain dict without the given attributes."""
        return self.model_dump(exclude=set(exclude), exclude_none=False)
