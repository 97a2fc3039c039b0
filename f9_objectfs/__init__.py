"""Hierarchical filesystem abstraction over flat object stores.

This package presents files, directories, metadata and byte streams on top
of key/value object stores that have no notion of directories (Google Cloud
Storage, Firebase Storage, in-memory stores).

Core Components:
    - AsyncFileSystem: Abstract interface all filesystems implement
    - ObjectStoreFileSystem: Adapter over any ObjectStoreClient
    - EntryResolver: Decides whether a path is a file, a directory, or missing
    - ErrorTranslator: Maps backend failures onto the filesystem error kinds
    - GCSObjectStoreClient: Google Cloud Storage client
    - InMemoryObjectStore: Dictionary-backed client for tests and prototyping

Quick Start:

    >>> import asyncio
    >>> from f9_objectfs import resolve_filesystem
    >>>
    >>> async def main():
    ...     async with resolve_filesystem("memory://projects") as fs:
    ...         await fs.write("/notes/today.txt", b"Hello, world!")
    ...         return await fs.read_bytes("/notes/today.txt")
    >>>
    >>> asyncio.run(main())
    b'Hello, world!'

Exception Handling:

    >>> from f9_objectfs import NotFoundError
    >>> try:
    ...     await fs.head("/missing.txt")
    ... except NotFoundError as exc:
    ...     print(exc.kind, exc.path)
    ErrorKind.NOT_FOUND /missing.txt

Supported Operations:
    - head() - Resolve file or directory stats
    - read() / read_bytes() - Stream or load file contents
    - write() - Write files, optionally appending or attaching attributes
    - delete() - Remove files
    - mkdir() / rmdir() - Create and remove directories
    - list() - List directory children
    - patch() - Replace custom attributes
    - to_url() - Download URL for a file
    - exists() - Check existence
    - checksum() - Compute file checksums

"""

from .client import ListResult, ObjectMetadata, ObjectStoreClient, ObjectStoreError
from .error_translation import ErrorTranslator
from .factory import (
    FileSystemFactory,
    register_filesystem_factory,
    resolve_filesystem,
)
from .filesystem import ObjectStoreFileSystem
from .gcs import GCSObjectStoreClient
from .interfaces import (
    DEFAULT_CHUNK_SIZE,
    AsyncFileSystem,
    Capabilities,
    ChecksumAlgorithm,
    EntryKind,
    ErrorKind,
    FileSystemError,
    InvalidPathError,
    NoModificationAllowedError,
    NotFoundError,
    NotReadableError,
    PathLike,
    Stats,
    TypeMismatchError,
)
from .keys import KeyMapper
from .memory import InMemoryObjectStore
from .payloads import (
    BinaryPayload,
    BufferedPayload,
    PayloadFactory,
    SpooledPayload,
    buffered_payload,
    spooled_payload_factory,
)
from .resolver import EntryResolver

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "AsyncFileSystem",
    "BinaryPayload",
    "BufferedPayload",
    "Capabilities",
    "ChecksumAlgorithm",
    "EntryKind",
    "EntryResolver",
    "ErrorKind",
    "ErrorTranslator",
    "FileSystemError",
    "FileSystemFactory",
    "GCSObjectStoreClient",
    "InMemoryObjectStore",
    "InvalidPathError",
    "KeyMapper",
    "ListResult",
    "NoModificationAllowedError",
    "NotFoundError",
    "NotReadableError",
    "ObjectMetadata",
    "ObjectStoreClient",
    "ObjectStoreError",
    "ObjectStoreFileSystem",
    "PathLike",
    "PayloadFactory",
    "SpooledPayload",
    "Stats",
    "TypeMismatchError",
    "buffered_payload",
    "register_filesystem_factory",
    "resolve_filesystem",
    "spooled_payload_factory",
]
