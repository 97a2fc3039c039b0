"""Google Cloud Storage implementation of ``ObjectStoreClient``.

Firebase Storage buckets are plain Cloud Storage buckets, so the same client
serves both. ``google-cloud-storage`` is blocking; every call runs in
``asyncio.to_thread()`` to keep the event loop responsive.

Failures from ``google.api_core`` keep their integer ``code`` (the HTTP
status) and are classified by ``ErrorTranslator`` without special casing.

Example:

    >>> from f9_objectfs import GCSObjectStoreClient, ObjectStoreFileSystem
    >>> fs = ObjectStoreFileSystem(
    ...     "projects",
    ...     client_factory=lambda: GCSObjectStoreClient.from_connection_info(
    ...         {"bucket": "my-app.appspot.com", "project": "my-app"},
    ...     ),
    ... )

"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from .client import ListResult, ObjectMetadata, ObjectStoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .payloads import BinaryPayload

DEFAULT_URL_EXPIRATION = timedelta(minutes=15)
DELIMITER = "/"


class GCSObjectStoreClient:
    """Object-store client backed by a ``google.cloud.storage.Bucket``."""

    def __init__(
        self,
        bucket: Any,
        *,
        signed_urls: bool = True,
        url_expiration: timedelta = DEFAULT_URL_EXPIRATION,
    ) -> None:
        """Initialise the client.

        Args:
            bucket: ``google.cloud.storage.Bucket`` (or compatible object).
            signed_urls: Hand out V4 signed URLs; public URLs otherwise.
            url_expiration: Lifetime of signed URLs.

        """
        self._bucket = bucket
        self._signed_urls = signed_urls
        self._url_expiration = url_expiration

    @classmethod
    def from_connection_info(
        cls,
        connection_info: Mapping[str, Any],
    ) -> GCSObjectStoreClient:
        """Build a client from connection parameters.

        Recognised keys: ``bucket`` (required), ``project``,
        ``credentials_file``, ``signed_urls`` and ``url_expiration`` (seconds).

        Raises:
            ValueError: If the bucket name is missing.
            ObjectStoreError: If google-cloud-storage is not installed.

        """
        bucket_name = connection_info.get("bucket")
        if not bucket_name:
            message = "Missing 'bucket' in connection_info"
            raise ValueError(message)

        try:
            from google.cloud import storage  # type: ignore import-not-found
        except ImportError as exc:  # pragma: no cover
            raise ObjectStoreError.missing_dependency("google-cloud-storage") from exc

        project = connection_info.get("project")
        credentials_file = connection_info.get("credentials_file")
        if credentials_file:
            storage_client = storage.Client.from_service_account_json(
                str(credentials_file),
                project=project,
            )
        else:
            storage_client = storage.Client(project=project)

        signed_urls = connection_info.get("signed_urls", True)
        if isinstance(signed_urls, str):
            signed_urls = signed_urls.lower() == "true"
        expiration = connection_info.get("url_expiration")
        return cls(
            storage_client.bucket(str(bucket_name)),
            signed_urls=bool(signed_urls),
            url_expiration=timedelta(seconds=float(expiration))
            if expiration is not None
            else DEFAULT_URL_EXPIRATION,
        )

    async def get_metadata(self, key: str) -> ObjectMetadata:
        """Return metadata for an object."""
        return await asyncio.to_thread(self._get_metadata, key)

    async def update_metadata(
        self,
        key: str,
        custom_metadata: Mapping[str, str],
    ) -> ObjectMetadata:
        """Replace the custom metadata of an object."""
        return await asyncio.to_thread(self._update_metadata, key, dict(custom_metadata))

    async def upload_data(self, key: str, payload: BinaryPayload) -> ObjectMetadata:
        """Upload a payload, overwriting any existing object."""
        return await asyncio.to_thread(self._upload_data, key, payload)

    async def upload_empty(self, key: str) -> ObjectMetadata:
        """Upload a zero-length object."""
        return await asyncio.to_thread(self._upload_empty, key)

    async def delete_object(self, key: str) -> None:
        """Delete an object."""
        await asyncio.to_thread(self._bucket.blob(key).delete)

    async def list_under_prefix(
        self,
        key: str,
        max_results: int | None = None,
    ) -> ListResult:
        """List items and nested prefixes directly under ``key``."""
        return await asyncio.to_thread(self._list_under_prefix, key, max_results)

    async def get_download_url(self, key: str) -> str:
        """Return a signed or public download URL."""
        return await asyncio.to_thread(self._get_download_url, key)

    def _get_metadata(self, key: str) -> ObjectMetadata:
        blob = self._bucket.get_blob(key)
        if blob is None:
            raise ObjectStoreError.not_found(key)
        return _blob_to_metadata(blob)

    def _update_metadata(self, key: str, custom_metadata: dict[str, str]) -> ObjectMetadata:
        blob = self._bucket.get_blob(key)
        if blob is None:
            raise ObjectStoreError.not_found(key)
        # PATCH merges metadata keys; stale keys must be cleared explicitly.
        replacement: dict[str, str | None] = {
            name: None for name in (blob.metadata or {}) if name not in custom_metadata
        }
        replacement.update(custom_metadata)
        blob.metadata = replacement
        blob.patch()
        return _blob_to_metadata(blob)

    def _upload_data(self, key: str, payload: BinaryPayload) -> ObjectMetadata:
        blob = self._bucket.blob(key)
        with payload.open() as fh:
            blob.upload_from_file(fh, size=payload.size, rewind=True)
        return _blob_to_metadata(blob)

    def _upload_empty(self, key: str) -> ObjectMetadata:
        blob = self._bucket.blob(key)
        blob.upload_from_string(b"")
        return _blob_to_metadata(blob)

    def _list_under_prefix(self, key: str, max_results: int | None) -> ListResult:
        iterator = self._bucket.list_blobs(
            prefix=key,
            delimiter=DELIMITER,
            max_results=max_results,
        )
        # Prefixes are only populated once the pages have been consumed.
        items = [blob.name for blob in iterator]
        prefixes = sorted(getattr(iterator, "prefixes", None) or ())
        return ListResult(items=items, prefixes=prefixes)

    def _get_download_url(self, key: str) -> str:
        blob = self._bucket.blob(key)
        if self._signed_urls:
            return blob.generate_signed_url(
                version="v4",
                expiration=self._url_expiration,
                method="GET",
            )
        return blob.public_url


def _blob_to_metadata(blob: Any) -> ObjectMetadata:
    """Convert a ``Blob`` into ``ObjectMetadata``."""
    return ObjectMetadata(
        key=blob.name,
        size=int(blob.size or 0),
        created=getattr(blob, "time_created", None),
        updated=getattr(blob, "updated", None),
        md5_hash=getattr(blob, "md5_hash", None),
        custom_metadata={
            name: value
            for name, value in (getattr(blob, "metadata", None) or {}).items()
            if value is not None
        },
    )
