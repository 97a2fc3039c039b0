"""Hierarchical filesystem over a flat object store.

``ObjectStoreFileSystem`` maps logical paths to keys, emulates directories
with zero-byte placeholder objects, and funnels every backend failure through
an ``ErrorTranslator`` so callers only ever see ``FileSystemError``.

Key Features:
    - Directory emulation with placeholders and implicit (child-only) dirs
    - Concurrent file/directory resolution for ``head``
    - Streaming reads over HTTP with ``httpx``
    - Append emulated by read-then-rewrite (not atomic)
    - Lazy, single-flight provisioning of the repository root placeholder

Example:

    >>> import asyncio
    >>> from f9_objectfs import InMemoryObjectStore, ObjectStoreFileSystem
    >>>
    >>> async def main():
    ...     store = InMemoryObjectStore()
    ...     async with ObjectStoreFileSystem(
    ...         "projects",
    ...         client=store,
    ...         http_client=store.http_client(),
    ...     ) as fs:
    ...         await fs.mkdir("/docs")
    ...         await fs.write("/docs/readme.txt", b"Hello")
    ...         await fs.write("/docs/readme.txt", b", world", append=True)
    ...         print(await fs.read_bytes("/docs/readme.txt"))
    ...         print(await fs.list("/docs"))
    >>>
    >>> asyncio.run(main())
    b'Hello, world'
    ['/docs/readme.txt']

See Also:
    - AsyncFileSystem: Abstract interface
    - EntryResolver: File/directory resolution
    - GCSObjectStoreClient: Google Cloud Storage client

"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, BinaryIO, Callable

import httpx

from .client import ObjectStoreError
from .error_translation import ErrorTranslator
from .interfaces import (
    DEFAULT_CHUNK_SIZE,
    AsyncFileSystem,
    Capabilities,
    ChecksumAlgorithm,
    NoModificationAllowedError,
    NotFoundError,
    NotReadableError,
    PathLike,
    Stats,
    TypeMismatchError,
)
from .keys import KeyMapper
from .metadata import encode_attributes, stats_from_metadata
from .path_utils import join_paths, normalize_path
from .payloads import PayloadFactory, buffered_payload
from .resolver import EntryResolver
from .utils import coerce_to_bytes, compute_checksum_from_stream

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping
    from types import TracebackType

    from .client import ObjectStoreClient
    from .interfaces import EntryKind

logger = logging.getLogger(__name__)


class ObjectStoreFileSystem(AsyncFileSystem):
    """Filesystem adapter over an ``ObjectStoreClient``.

    The client is created on first use, either from the instance passed in
    or from ``client_factory``, and the repository root placeholder is
    created at the same time if it is missing.
    """

    def __init__(
        self,
        repository: str,
        *,
        client: ObjectStoreClient | None = None,
        client_factory: Callable[[], ObjectStoreClient] | None = None,
        http_client: httpx.AsyncClient | None = None,
        capabilities: Capabilities | None = None,
        payload_factory: PayloadFactory = buffered_payload,
        forbidden_as_not_found: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialise the filesystem.

        Args:
            repository: Key prefix under which every entry is stored.
            client: Ready object-store client.
            client_factory: Callable building the client lazily (used when
                ``client`` is not given).
            http_client: Client used to download file content. One is created
                and owned by the filesystem when omitted.
            capabilities: Feature flags for this variant.
            payload_factory: Builds upload payloads from byte parts.
            forbidden_as_not_found: Report permission failures on reads as
                missing entries.
            chunk_size: Default chunk size for streamed reads.

        Raises:
            ValueError: If neither a client nor a client factory is given.

        """
        if client is None and client_factory is None:
            message = "client or client_factory is required"
            raise ValueError(message)

        self._keys = KeyMapper(repository)
        self._translator = ErrorTranslator(
            self._keys.repository,
            forbidden_as_not_found=forbidden_as_not_found,
        )
        self._capabilities = capabilities or Capabilities()
        self._resolver = EntryResolver(
            self._keys,
            self._translator,
            supports_directories=self._capabilities.supports_directories,
        )
        self._payload_factory = payload_factory
        self._chunk_size = chunk_size

        if client is not None:
            self._client_factory: Callable[[], ObjectStoreClient] = lambda: client
        else:
            self._client_factory = client_factory  # type: ignore[assignment]
        self._client: ObjectStoreClient | None = None
        self._init_lock = asyncio.Lock()

        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def repository(self) -> str:
        """Repository key prefix."""
        return self._keys.repository

    @property
    def capabilities(self) -> Capabilities:
        """Feature flags for this filesystem."""
        return self._capabilities

    @property
    def is_ready(self) -> bool:
        """True once the backend client has been provisioned."""
        return self._client is not None

    async def __aenter__(self) -> ObjectStoreFileSystem:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this filesystem created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # Entries

    async def head(self, path: PathLike, *, kind: EntryKind | None = None) -> Stats:
        """Return stats for the file or directory at ``path``."""
        path_str = normalize_path(path)
        client = await self._get_client()
        return await self._resolver.resolve(client, path_str, kind=kind)

    async def patch(
        self,
        path: PathLike,
        attributes: Mapping[str, Any],
        *,
        is_directory: bool = False,
    ) -> None:
        """Replace the custom attributes of a file or directory placeholder."""
        path_str = normalize_path(path)
        client = await self._get_client()
        key = self._keys.to_key(path_str, is_directory)
        try:
            await client.update_metadata(key, encode_attributes(attributes))
        except Exception as exc:
            raise self._translator.translate(path_str, exc, write=True) from exc

    async def to_url(
        self,
        path: PathLike,
        *,
        is_directory: bool = False,
        method: str = "GET",
    ) -> str:
        """Return a download URL for a file.

        Raises:
            TypeMismatchError: If a directory URL is requested.
            NotReadableError: If a method other than GET is requested.

        """
        path_str = normalize_path(path)
        if is_directory:
            raise TypeMismatchError.not_a_file(self.repository, path_str)
        if method.upper() != "GET":
            unsupported = ObjectStoreError.unsupported(f'"{method}" is not supported')
            raise self._translator.translate(path_str, unsupported, write=False)

        client = await self._get_client()
        try:
            return await client.get_download_url(self._keys.to_key(path_str, False))
        except Exception as exc:
            raise self._translator.translate(path_str, exc, write=False) from exc

    # Files

    async def read(
        self,
        path: PathLike,
        *,
        chunk_size: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Open a file for streaming.

        The response status is checked before returning; the body is then
        consumed lazily and can only be iterated once.

        Raises:
            NotFoundError: If the object does not exist.
            NotReadableError: On any other status, transport failure or malformed
                download URL.

        """
        path_str = normalize_path(path)
        url = await self.to_url(path_str)
        http_client = self._get_http_client()
        try:
            request = http_client.build_request("GET", url)
            response = await http_client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NotReadableError(
                repository=self.repository,
                path=path_str,
                cause=exc,
            ) from exc

        if response.status_code != httpx.codes.OK:
            await response.aclose()
            logger.warning(
                "Download of %s rejected with status %s",
                path_str,
                response.status_code,
            )
            if response.status_code == httpx.codes.NOT_FOUND:
                raise NotFoundError(repository=self.repository, path=path_str)
            raise NotReadableError(
                repository=self.repository,
                path=path_str,
                message=f"{response.reason_phrase} ({response.status_code})",
            )

        return self._iter_body(response, path_str, chunk_size or self._chunk_size)

    async def _iter_body(
        self,
        response: httpx.Response,
        path: str,
        chunk_size: int,
    ) -> AsyncIterator[bytes]:
        """Yield the response body and close the response afterwards."""
        try:
            async for chunk in response.aiter_bytes(chunk_size):
                yield chunk
        except httpx.HTTPError as exc:
            raise NotReadableError(
                repository=self.repository,
                path=path,
                cause=exc,
            ) from exc
        finally:
            await response.aclose()

    async def write(
        self,
        path: PathLike,
        data: bytes | str | BinaryIO,
        *,
        append: bool = False,
        attributes: Mapping[str, Any] | None = None,
    ) -> Stats:
        """Write a file.

        Appending re-reads the current content and uploads it again ahead of
        ``data``; concurrent writers to the same path can lose data.

        Raises:
            NoModificationAllowedError: If the upload or metadata update fails,
                or append is requested on a backend without append support.

        """
        path_str = normalize_path(path)
        if append and not self._capabilities.supports_append:
            raise NoModificationAllowedError.append_not_supported(
                self.repository,
                path_str,
            )

        incoming = coerce_to_bytes(data)
        parts: list[bytes] = []
        if append:
            try:
                stream = await self.read(path_str)
                parts.extend([chunk async for chunk in stream])
            except NotFoundError:
                logger.debug("Append target %s missing; writing new file", path_str)
        parts.append(incoming)

        client = await self._get_client()
        key = self._keys.to_key(path_str, False)
        payload = self._payload_factory(parts)
        logger.debug("Uploading %d bytes to %s", payload.size, key)
        try:
            metadata = await client.upload_data(key, payload)
            if attributes:
                metadata = await client.update_metadata(
                    key,
                    encode_attributes(attributes),
                )
        except Exception as exc:
            raise self._translator.translate(path_str, exc, write=True) from exc
        finally:
            payload.close()
        return stats_from_metadata(metadata, is_directory=False)

    async def delete(self, path: PathLike) -> None:
        """Delete a file.

        Raises:
            NotFoundError: If no file exists at ``path``.

        """
        path_str = normalize_path(path)
        client = await self._get_client()
        try:
            await client.delete_object(self._keys.to_key(path_str, False))
        except Exception as exc:
            raise self._translator.translate(path_str, exc, write=True) from exc

    async def checksum(
        self,
        path: PathLike,
        *,
        algorithm: ChecksumAlgorithm = "sha256",
    ) -> str:
        """Compute a file checksum from its streamed content."""
        stream = await self.read(path)
        return await compute_checksum_from_stream(stream, algorithm)

    # Directories

    async def list(self, path: PathLike) -> list[str]:
        """Return the paths of a directory's immediate children.

        Nested directories come first, then files. The directory's own
        placeholder is never reported.
        """
        return [child for child, _ in await self._list_entries(normalize_path(path))]

    async def mkdir(self, path: PathLike) -> None:
        """Create a directory placeholder; repeated calls succeed."""
        path_str = normalize_path(path)
        self._require_directories(path_str)
        client = await self._get_client()
        key = self._keys.to_key(path_str, True)
        try:
            await client.upload_empty(key)
        except Exception as exc:
            raise self._translator.translate(path_str, exc, write=True) from exc
        logger.debug("Created directory placeholder %s", key)

    async def rmdir(self, path: PathLike, *, recursive: bool = False) -> None:
        """Remove a directory placeholder.

        Without ``recursive`` only the placeholder is deleted, and a directory
        that exists solely through its children cannot be removed. With
        ``recursive`` the children are deleted depth-first beforehand.
        The repository root is never removed; recursive removal of the root
        only clears its children.

        Raises:
            NotFoundError: If there is nothing to remove.
            NoModificationAllowedError: If the root is removed without
                ``recursive``.

        """
        path_str = normalize_path(path)
        self._require_directories(path_str)
        if path_str == "/":
            if not recursive:
                raise NoModificationAllowedError.root_not_removable(self.repository)
            await self._remove_children(path_str)
            return

        removed_children = False
        if recursive:
            removed_children = await self._remove_children(path_str)

        client = await self._get_client()
        try:
            await client.delete_object(self._keys.to_key(path_str, True))
        except Exception as exc:
            error = self._translator.translate(path_str, exc, write=True)
            if removed_children and isinstance(error, NotFoundError):
                return
            raise error from exc

    async def _remove_children(self, path: str) -> bool:
        """Delete everything below a directory; return True if anything was."""
        entries = await self._list_entries(path)
        for child, is_directory in entries:
            if is_directory:
                await self.rmdir(child, recursive=True)
            else:
                await self.delete(child)
        return bool(entries)

    async def _list_entries(self, path: str) -> list[tuple[str, bool]]:
        """List children as ``(path, is_directory)`` pairs."""
        client = await self._get_client()
        prefix = self._keys.to_key(path, True)
        try:
            listing = await client.list_under_prefix(prefix)
        except Exception as exc:
            raise self._translator.translate(path, exc, write=False) from exc

        entries: list[tuple[str, bool]] = []
        for key in listing.prefixes:
            if key == prefix:
                continue
            entries.append((join_paths(path, self._keys.child_name(key, True)), True))
        for key in listing.items:
            if key == prefix:
                continue
            entries.append((join_paths(path, self._keys.child_name(key, False)), False))
        logger.debug("Listed %d entries under %s", len(entries), prefix)
        return entries

    def _require_directories(self, path: str) -> None:
        if not self._capabilities.supports_directories:
            raise NoModificationAllowedError.directories_not_supported(
                self.repository,
                path,
            )

    # Provisioning

    async def _get_client(self) -> ObjectStoreClient:
        """Return the backend client, provisioning it on first use."""
        if self._client is not None:
            return self._client
        async with self._init_lock:
            if self._client is None:
                self._client = await self._provision()
        return self._client

    async def _provision(self) -> ObjectStoreClient:
        """Build the client and make sure the root placeholder exists.

        A failure to read the root placeholder other than absence is raised
        as-is, since it is not about any caller path. With
        ``forbidden_as_not_found`` a permission failure counts as absence, so
        the upload is attempted and its failure reported instead.
        """
        client = self._client_factory()
        root_key = self._keys.root_key
        try:
            await client.get_metadata(root_key)
        except Exception as exc:
            error = self._translator.translate("/", exc, write=False)
            if not isinstance(error, NotFoundError):
                raise
            logger.info("Creating repository root placeholder %s", root_key)
            try:
                await client.upload_empty(root_key)
            except Exception as upload_exc:
                raise self._translator.translate(
                    "/",
                    upload_exc,
                    write=True,
                ) from upload_exc
        logger.debug("Object store ready for repository %s", self.repository)
        return client

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True)
            self._owns_http_client = True
        return self._http_client

