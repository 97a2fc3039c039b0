"""Conversion between filesystem attributes and backend object metadata."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .interfaces import Stats

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .client import ObjectMetadata

# The backend keeps these as first-class object fields.
RESERVED_ATTRIBUTES = ("size", "etag", "created", "modified")


def encode_attributes(attributes: Mapping[str, Any]) -> dict[str, str]:
    """Return custom metadata for the given attributes.

    Reserved attributes are dropped and every other value is stored as its
    string form.

        >>> encode_attributes({"size": 3, "author": "ana", "rev": 2})
        {'author': 'ana', 'rev': '2'}

    """
    return {
        str(key): str(value)
        for key, value in attributes.items()
        if key not in RESERVED_ATTRIBUTES
    }


def stats_from_metadata(metadata: ObjectMetadata, *, is_directory: bool) -> Stats:
    """Normalise backend metadata into ``Stats``.

    Directories never report a size, even though their placeholder object
    has one.
    """
    return Stats(
        size=None if is_directory else int(metadata.size),
        created=_as_utc(metadata.created),
        modified=_as_utc(metadata.updated),
        etag=metadata.md5_hash or None,
        attributes={
            key: value
            for key, value in (metadata.custom_metadata or {}).items()
            if key not in RESERVED_ATTRIBUTES
        },
    )


def _as_utc(value: datetime | None) -> datetime | None:
    """Return timezone aware datetimes in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
