"""Core interfaces and data structures for object-store backed filesystems."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath
from typing import TYPE_CHECKING, Any, BinaryIO, Literal, Union

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping
    from datetime import datetime

PathLike = Union[str, PurePath]
ChecksumAlgorithm = Literal["md5", "sha256", "sha512", "blake3"]
EntryKind = Literal["file", "directory"]

DEFAULT_CHUNK_SIZE = 64 * 1024


class ErrorKind(str, Enum):
    """Generic failure categories exposed to filesystem callers."""

    NOT_FOUND = "NotFound"
    NOT_READABLE = "NotReadable"
    NO_MODIFICATION_ALLOWED = "NoModificationAllowed"
    TYPE_MISMATCH = "TypeMismatch"
    INVALID_PATH = "InvalidPath"


class FileSystemError(RuntimeError):
    """Base exception for filesystem operations.

    Every error names the repository and logical path it concerns and keeps
    the backend failure that caused it, if any.
    """

    kind: ErrorKind = ErrorKind.NOT_READABLE
    default_message = "Operation failed"

    def __init__(
        self,
        *,
        repository: str,
        path: str,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        """Initialise the error with repository and path context."""
        if message is None:
            message = str(cause) if cause is not None and str(cause) else None
        self.message = message or self.default_message
        self.repository = repository
        self.path = path
        self.cause = cause
        super().__init__(f"{self.kind.value}: {self.message}: {repository}:{path}")


class NotFoundError(FileSystemError):
    """Raised when no file or directory exists at a path."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Path not found"


class NotReadableError(FileSystemError):
    """Raised when a read fails for a reason other than absence."""

    kind = ErrorKind.NOT_READABLE
    default_message = "Path is not readable"


class NoModificationAllowedError(FileSystemError):
    """Raised when a write, delete or metadata update fails."""

    kind = ErrorKind.NO_MODIFICATION_ALLOWED
    default_message = "Modification not allowed"

    @classmethod
    def append_not_supported(
        cls,
        repository: str,
        path: str,
    ) -> NoModificationAllowedError:
        """Return an error for append writes on a backend without append."""
        return cls(repository=repository, path=path, message="Append is not supported")

    @classmethod
    def directories_not_supported(
        cls,
        repository: str,
        path: str,
    ) -> NoModificationAllowedError:
        """Return an error for directory operations on a flat backend."""
        return cls(
            repository=repository,
            path=path,
            message="Directories are not supported",
        )

    @classmethod
    def root_not_removable(cls, repository: str) -> NoModificationAllowedError:
        """Return an error for removing the repository root."""
        return cls(
            repository=repository,
            path="/",
            message="The repository root cannot be removed",
        )


class TypeMismatchError(FileSystemError):
    """Raised when an operation targets the wrong kind of entry."""

    kind = ErrorKind.TYPE_MISMATCH
    default_message = "Entry type mismatch"

    @classmethod
    def not_a_file(cls, repository: str, path: str) -> TypeMismatchError:
        """Return an error for file-only operations requested on a directory."""
        return cls(repository=repository, path=path, message=f'"{path}" is not a file')


class InvalidPathError(FileSystemError):
    """Raised when a logical path cannot be normalised."""

    kind = ErrorKind.INVALID_PATH
    default_message = "Invalid path"

    def __init__(self, path: Any, *, message: str | None = None) -> None:
        """Create an invalid path error; no repository is involved yet."""
        super().__init__(repository="", path=str(path), message=message)

    @classmethod
    def empty_path_not_allowed(cls, path: Any) -> InvalidPathError:
        """Return an error when an operation targets an empty path."""
        return cls(path, message="Path cannot be empty")

    @classmethod
    def path_outside_root(cls, path: Any) -> InvalidPathError:
        """Return an error showing the path escapes the repository root."""
        return cls(path, message="Path escapes repository root")


@dataclass(frozen=True)
class Stats:
    """Backend-agnostic snapshot of an entry's metadata.

    ``size`` is ``None`` for directories. An instance with every field unset
    describes a directory that only exists through its children.
    """

    size: int | None = None
    created: datetime | None = None
    modified: datetime | None = None
    etag: str | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_directory(self) -> bool:
        """Return True when the stats describe a directory."""
        return self.size is None

    def as_dict(self) -> dict[str, Any]:
        """Return a flat JSON-serialisable representation."""
        result: dict[str, Any] = dict(self.attributes)
        if self.size is not None:
            result["size"] = self.size
        if self.created is not None:
            result["created"] = self.created.isoformat()
        if self.modified is not None:
            result["modified"] = self.modified.isoformat()
        if self.etag is not None:
            result["etag"] = self.etag
        return result


@dataclass(frozen=True)
class Capabilities:
    """Feature flags describing what a filesystem variant supports."""

    supports_directories: bool = True
    supports_append: bool = True
    supports_range_read: bool = False
    supports_range_write: bool = False


class AsyncFileSystem(ABC):
    """Asynchronous interface for hierarchical filesystems.

    Paths are logical, POSIX-style and relative to the repository root;
    implementations normalise them before use. Failures surface as
    ``FileSystemError`` subclasses only.
    """

    @property
    @abstractmethod
    def capabilities(self) -> Capabilities:
        """Feature flags for this filesystem."""

    @abstractmethod
    async def head(self, path: PathLike, *, kind: EntryKind | None = None) -> Stats:
        """Return stats for the file or directory at ``path``.

        Args:
            path: Logical path.
            kind: Restrict the lookup to files or directories.

        """

    @abstractmethod
    async def read(
        self,
        path: PathLike,
        *,
        chunk_size: int | None = None,
    ) -> AsyncIterator[bytes]:
        """Open a file and return its content as a single-pass byte stream.

        Without ``chunk_size`` the filesystem's default chunk size is used.
        """

    @abstractmethod
    async def write(
        self,
        path: PathLike,
        data: bytes | str | BinaryIO,
        *,
        append: bool = False,
        attributes: Mapping[str, Any] | None = None,
    ) -> Stats:
        """Write a file, replacing or appending to existing content.

        Args:
            path: Logical file path.
            data: New content.
            append: Keep existing content ahead of ``data``.
            attributes: Custom attributes stored alongside the file.

        Returns:
            Stats describing the written file.

        """

    @abstractmethod
    async def delete(self, path: PathLike) -> None:
        """Remove a file."""

    @abstractmethod
    async def mkdir(self, path: PathLike) -> None:
        """Create a directory; existing directories are left as they are."""

    @abstractmethod
    async def rmdir(self, path: PathLike, *, recursive: bool = False) -> None:
        """Remove a directory, optionally deleting its children first."""

    @abstractmethod
    async def list(self, path: PathLike) -> list[str]:
        """Return the logical paths of a directory's immediate children."""

    @abstractmethod
    async def patch(
        self,
        path: PathLike,
        attributes: Mapping[str, Any],
        *,
        is_directory: bool = False,
    ) -> None:
        """Replace the custom attributes of an entry."""

    @abstractmethod
    async def to_url(
        self,
        path: PathLike,
        *,
        is_directory: bool = False,
        method: str = "GET",
    ) -> str:
        """Return a URL from which the file can be retrieved."""

    async def read_bytes(self, path: PathLike) -> bytes:
        """Read a whole file into memory."""
        stream = await self.read(path)
        return b"".join([chunk async for chunk in stream])

    async def exists(self, path: PathLike) -> bool:
        """Return True when a file or directory exists at ``path``."""
        try:
            await self.head(path)
        except NotFoundError:
            return False
        return True
