"""Capability surface consumed from object-store clients.

The filesystem layer only talks to a backend through ``ObjectStoreClient``:
metadata, uploads, deletion and prefix listing by key. Any object with these
coroutines works, which keeps wire protocols, authentication and retries out
of the reconciliation code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .payloads import BinaryPayload

OBJECT_NOT_FOUND = "storage/object-not-found"
UNAUTHORIZED = "storage/unauthorized"
UNSUPPORTED = "storage/unsupported"


class ObjectStoreError(Exception):
    """Error raised by object-store clients.

    ``code`` is a symbolic error code and ``status`` the HTTP status the
    backend answered with, when known.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
    ) -> None:
        """Initialise the error with optional code and status."""
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    @classmethod
    def not_found(cls, key: str) -> ObjectStoreError:
        """Return an error for a missing object."""
        return cls(f"Object not found: {key}", code=OBJECT_NOT_FOUND, status=404)

    @classmethod
    def forbidden(cls, key: str) -> ObjectStoreError:
        """Return an error for an object the caller may not access."""
        return cls(f"Access denied: {key}", code=UNAUTHORIZED, status=403)

    @classmethod
    def unsupported(cls, message: str) -> ObjectStoreError:
        """Return an error for a request the backend cannot serve."""
        return cls(message, code=UNSUPPORTED)

    @classmethod
    def missing_dependency(cls, package: str) -> ObjectStoreError:
        """Return an error indicating an optional package is unavailable."""
        return cls(f"Install the '{package}' package to use this object store")


@dataclass(frozen=True)
class ObjectMetadata:
    """Metadata reported by the backend for a single object."""

    key: str
    size: int
    created: datetime | None = None
    updated: datetime | None = None
    md5_hash: str | None = None
    custom_metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ListResult:
    """One delimiter listing under a prefix.

    ``items`` are full object keys directly under the prefix; ``prefixes`` are
    full keys of nested "directories" and end with the separator.
    """

    items: list[str] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Return True when the listing found nothing."""
        return not self.items and not self.prefixes


class ObjectStoreClient(Protocol):
    """Narrow async client surface required by ``ObjectStoreFileSystem``."""

    async def get_metadata(self, key: str) -> ObjectMetadata:
        """Return metadata for an object, failing when it is missing."""
        ...

    async def update_metadata(
        self,
        key: str,
        custom_metadata: Mapping[str, str],
    ) -> ObjectMetadata:
        """Replace the custom metadata of an existing object."""
        ...

    async def upload_data(self, key: str, payload: BinaryPayload) -> ObjectMetadata:
        """Store a payload at ``key``, overwriting any existing object."""
        ...

    async def upload_empty(self, key: str) -> ObjectMetadata:
        """Store a zero-length object at ``key``."""
        ...

    async def delete_object(self, key: str) -> None:
        """Delete the object at ``key``, failing when it is missing."""
        ...

    async def list_under_prefix(
        self,
        key: str,
        max_results: int | None = None,
    ) -> ListResult:
        """List items and nested prefixes directly under ``key``."""
        ...

    async def get_download_url(self, key: str) -> str:
        """Return an HTTP(S) URL serving the object's content."""
        ...
