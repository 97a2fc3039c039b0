"""Binary payloads handed to object-store uploads.

An upload is built from one or more byte parts (existing content first when
appending). Two representations exist: a single in-memory buffer, and a
spooled temporary file that behaves like a blob and spills to disk once it
outgrows a threshold. The filesystem receives a ``PayloadFactory`` at
construction time and never inspects which one it got.

Example:

    >>> payload = buffered_payload([b"Hello, ", b"world!"])
    >>> payload.size
    13
    >>> factory = spooled_payload_factory(max_size=1024)
    >>> with factory([b"abc"]).open() as fh:
    ...     fh.read()
    b'abc'

"""

from __future__ import annotations

import io
import tempfile
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, BinaryIO, Callable

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_SPOOL_THRESHOLD = 8 * 1024 * 1024


class BinaryPayload(ABC):
    """Immutable byte content ready for upload."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of bytes in the payload."""

    @abstractmethod
    def open(self) -> BinaryIO:
        """Return a fresh readable stream positioned at the start."""

    def getvalue(self) -> bytes:
        """Return the whole payload as bytes."""
        with self.open() as fh:
            return fh.read()

    def close(self) -> None:  # noqa: B027
        """Release resources held by the payload."""


class BufferedPayload(BinaryPayload):
    """Payload held in a single bytes buffer."""

    def __init__(self, data: bytes) -> None:
        """Wrap an existing buffer."""
        self._data = bytes(data)

    @property
    def size(self) -> int:
        """Number of bytes in the payload."""
        return len(self._data)

    def open(self) -> BinaryIO:
        """Return a stream over the buffer."""
        return io.BytesIO(self._data)

    def getvalue(self) -> bytes:
        """Return the buffer without copying through a stream."""
        return self._data


class SpooledPayload(BinaryPayload):
    """Payload written to a spooled temporary file."""

    def __init__(
        self,
        parts: Iterable[bytes],
        *,
        max_size: int = DEFAULT_SPOOL_THRESHOLD,
    ) -> None:
        """Spool the parts in order."""
        self._file = tempfile.SpooledTemporaryFile(max_size=max_size)  # noqa: SIM115
        size = 0
        for part in parts:
            self._file.write(part)
            size += len(part)
        self._size = size

    @property
    def size(self) -> int:
        """Number of bytes in the payload."""
        return self._size

    @property
    def rolled_to_disk(self) -> bool:
        """True once the payload outgrew its memory threshold."""
        return bool(getattr(self._file, "_rolled", False))

    def open(self) -> BinaryIO:
        """Return a non-closing view of the spooled file, rewound."""
        self._file.seek(0)
        return _NonClosingReader(self._file)

    def close(self) -> None:
        """Release the temporary file."""
        self._file.close()


class _NonClosingReader(io.RawIOBase):
    """Read-only view that leaves the underlying file open when closed."""

    def __init__(self, fh: BinaryIO) -> None:
        super().__init__()
        self._fh = fh

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self._fh.seek(offset, whence)

    def tell(self) -> int:
        return self._fh.tell()

    def readinto(self, buffer: bytearray) -> int:
        data = self._fh.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)


PayloadFactory = Callable[["Iterable[bytes]"], BinaryPayload]


def buffered_payload(parts: Iterable[bytes]) -> BufferedPayload:
    """Join parts into a single in-memory buffer."""
    return BufferedPayload(b"".join(parts))


def spooled_payload_factory(max_size: int = DEFAULT_SPOOL_THRESHOLD) -> PayloadFactory:
    """Return a factory building spooled payloads with the given threshold."""

    def _factory(parts: Iterable[bytes]) -> SpooledPayload:
        return SpooledPayload(parts, max_size=max_size)

    return _factory
