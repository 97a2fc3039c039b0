"""In-memory object store.

Keeps objects in a dictionary and reproduces the object-store behaviours the
filesystem layer depends on: overwrite-on-upload, delimiter listings that
report a prefix's own placeholder as an item, base64 MD5 etags, and download
URLs. The URLs are served by an ``httpx.MockTransport`` so reads go through
the same HTTP path as against a real bucket.

Example:

    >>> store = InMemoryObjectStore()
    >>> fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import quote, unquote

import httpx

from .client import ListResult, ObjectMetadata, ObjectStoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .payloads import BinaryPayload

DEFAULT_BASE_URL = "http://objects.memory.invalid"
DELIMITER = "/"


@dataclass
class _StoredObject:
    """In-memory representation of an uploaded object."""

    data: bytes
    created: datetime
    updated: datetime
    custom_metadata: dict[str, str] = field(default_factory=dict)


class InMemoryObjectStore:
    """Dictionary-backed ``ObjectStoreClient``."""

    def __init__(self, *, base_url: str = DEFAULT_BASE_URL) -> None:
        """Initialise an empty store serving downloads under ``base_url``."""
        self._objects: dict[str, _StoredObject] = {}
        self._base_url = base_url.rstrip("/")

    @property
    def keys(self) -> list[str]:
        """Sorted keys of every stored object."""
        return sorted(self._objects)

    def get_bytes(self, key: str) -> bytes:
        """Return the raw content of an object."""
        stored = self._objects.get(key)
        if stored is None:
            raise ObjectStoreError.not_found(key)
        return stored.data

    async def get_metadata(self, key: str) -> ObjectMetadata:
        """Return metadata for an object."""
        stored = self._objects.get(key)
        if stored is None:
            raise ObjectStoreError.not_found(key)
        return self._metadata(key, stored)

    async def update_metadata(
        self,
        key: str,
        custom_metadata: Mapping[str, str],
    ) -> ObjectMetadata:
        """Replace the custom metadata of an object."""
        stored = self._objects.get(key)
        if stored is None:
            raise ObjectStoreError.not_found(key)
        stored.custom_metadata = dict(custom_metadata)
        stored.updated = _now()
        return self._metadata(key, stored)

    async def upload_data(self, key: str, payload: BinaryPayload) -> ObjectMetadata:
        """Store a payload, overwriting any existing object."""
        return self._store(key, payload.getvalue())

    async def upload_empty(self, key: str) -> ObjectMetadata:
        """Store a zero-length object."""
        return self._store(key, b"")

    async def delete_object(self, key: str) -> None:
        """Delete an object."""
        if self._objects.pop(key, None) is None:
            raise ObjectStoreError.not_found(key)

    async def list_under_prefix(
        self,
        key: str,
        max_results: int | None = None,
    ) -> ListResult:
        """List items and nested prefixes directly under ``key``."""
        items: list[str] = []
        prefixes: list[str] = []
        for candidate in sorted(self._objects):
            if not candidate.startswith(key):
                continue
            remainder = candidate[len(key) :]
            if DELIMITER in remainder:
                nested = key + remainder.split(DELIMITER, 1)[0] + DELIMITER
                if nested not in prefixes:
                    prefixes.append(nested)
            else:
                items.append(candidate)
            if max_results is not None and len(items) + len(prefixes) >= max_results:
                break
        return ListResult(items=items, prefixes=prefixes)

    async def get_download_url(self, key: str) -> str:
        """Return the URL serving an object's content."""
        return f"{self._base_url}/o/{quote(key, safe='')}"

    def transport(self) -> httpx.MockTransport:
        """Return an HTTP transport serving this store's download URLs."""

        def handler(request: httpx.Request) -> httpx.Response:
            prefix = "/o/"
            if request.method != "GET" or not request.url.path.startswith(prefix):
                return httpx.Response(status_code=400)
            key = unquote(request.url.raw_path.decode("ascii")[len(prefix) :])
            stored = self._objects.get(key)
            if stored is None:
                return httpx.Response(status_code=404)
            return httpx.Response(status_code=200, content=stored.data)

        return httpx.MockTransport(handler)

    def http_client(self) -> httpx.AsyncClient:
        """Return an async HTTP client wired to ``transport()``."""
        return httpx.AsyncClient(transport=self.transport())

    def _store(self, key: str, data: bytes) -> ObjectMetadata:
        now = _now()
        existing = self._objects.get(key)
        # Uploads replace content and custom metadata; creation time is kept.
        stored = _StoredObject(
            data=data,
            created=existing.created if existing else now,
            updated=now,
        )
        self._objects[key] = stored
        return self._metadata(key, stored)

    @staticmethod
    def _metadata(key: str, stored: _StoredObject) -> ObjectMetadata:
        digest = hashlib.md5(stored.data, usedforsecurity=False).digest()
        return ObjectMetadata(
            key=key,
            size=len(stored.data),
            created=stored.created,
            updated=stored.updated,
            md5_hash=base64.b64encode(digest).decode("ascii"),
            custom_metadata=dict(stored.custom_metadata),
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)
