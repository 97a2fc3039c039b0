"""Shared helpers for data coercion and checksums.

Key utilities:
- Data type coercion (bytes, str, BinaryIO)
- Hasher factory for multiple algorithms
- Checksums over bytes and over async byte streams

Example usage:
    >>> from f9_objectfs.utils import coerce_to_bytes
    >>> coerce_to_bytes("Hello, world!")
    b'Hello, world!'
"""

from __future__ import annotations

import hashlib
import io
from typing import TYPE_CHECKING, Any, BinaryIO

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from .interfaces import ChecksumAlgorithm


def get_hasher(algorithm: ChecksumAlgorithm) -> Any:
    """Get a hasher instance for the specified algorithm.

    Args:
        algorithm: The checksum algorithm to use ('md5', 'sha256', 'sha512', 'blake3')

    Returns:
        A hasher instance with update() and hexdigest() methods

    Raises:
        ImportError: If blake3 is requested but not installed.
        ValueError: If algorithm is not supported.

    """
    if algorithm == "blake3":
        try:
            import blake3
        except ImportError as exc:
            message = "blake3 is not installed. Install it with: pip install blake3"
            raise ImportError(message) from exc
        return blake3.blake3()
    elif algorithm in ("md5", "sha256", "sha512"):
        return hashlib.new(algorithm)
    else:
        message = f"Unsupported checksum algorithm: {algorithm}"
        raise ValueError(message)


def coerce_to_bytes(data: bytes | bytearray | str | BinaryIO) -> bytes:
    """Coerce supported input types to raw bytes.

    Strings are UTF-8 encoded. File-like objects are read to the end and
    rewound when seekable.

    Raises:
        TypeError: If data type is not supported.

    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, bytearray):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")

    if hasattr(data, "read"):
        result = data.read()

        if hasattr(data, "seek"):
            try:
                data.seek(0)
            except (OSError, io.UnsupportedOperation):
                pass

        if isinstance(result, str):
            return result.encode("utf-8")
        if isinstance(result, (bytes, bytearray)):
            return bytes(result)
        message = f"Unsupported stream payload type: {type(result).__name__}"
        raise TypeError(message)

    message = f"Unsupported data type: {type(data).__name__}"
    raise TypeError(message)


def compute_checksum_from_bytes(
    payload: bytes,
    algorithm: ChecksumAlgorithm = "sha256",
) -> str:
    """Compute checksum of binary payload."""
    hasher = get_hasher(algorithm)
    hasher.update(payload)
    return hasher.hexdigest()


async def compute_checksum_from_stream(
    chunks: AsyncIterable[bytes],
    algorithm: ChecksumAlgorithm = "sha256",
) -> str:
    """Compute checksum of an async byte stream without buffering it.

    Args:
        chunks: Async iterable yielding byte chunks
        algorithm: Checksum algorithm to use

    Returns:
        Hexadecimal checksum string.

    """
    hasher = get_hasher(algorithm)
    async for chunk in chunks:
        hasher.update(chunk)
    return hasher.hexdigest()
