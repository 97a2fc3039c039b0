"""Path validation and normalization utilities.

Logical paths are POSIX-style and always absolute with respect to the
repository root: ``"/"`` is the root, ``"/docs/readme.txt"`` a file below it.
Normalisation happens once, before any key is derived, so the key mapper can
treat its input as already clean.

Key utilities:
- Empty/whitespace path validation
- Windows path normalization
- Traversal-safe normalisation and joining
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from .interfaces import InvalidPathError


def validate_not_empty(path: Any) -> None:
    """Validate that path is not empty or whitespace-only.

    Args:
        path: Path to validate

    Raises:
        InvalidPathError: If path is empty or whitespace.

    """
    path_str = str(path)
    if not path_str or path_str.strip() == "":
        raise InvalidPathError.empty_path_not_allowed(path)


def normalize_windows_path(path_str: str) -> str:
    """Normalize Windows backslashes to forward slashes.

    Example:

        >>> normalize_windows_path("dir\\subdir\\file.txt")
        'dir/subdir/file.txt'

    """
    return path_str.replace("\\", "/")


def normalize_path(path: str | PurePath) -> str:
    """Return the canonical absolute POSIX form of a logical path.

    Repeated separators and ``.`` segments are dropped and ``..`` segments are
    resolved. A ``..`` that would climb above the root is rejected.

    Example:

        >>> normalize_path("docs//./reports/../readme.txt")
        '/docs/readme.txt'
        >>> normalize_path("/")
        '/'

    Raises:
        InvalidPathError: If the path is empty or escapes the root.

    """
    path_str = path.as_posix() if isinstance(path, PurePath) else str(path)
    validate_not_empty(path_str)

    segments: list[str] = []
    for part in normalize_windows_path(path_str).split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not segments:
                raise InvalidPathError.path_outside_root(path)
            segments.pop()
            continue
        segments.append(part)
    return "/" + "/".join(segments)


def join_paths(parent: str | PurePath, name: str) -> str:
    """Join a child name onto a parent path and normalise the result.

    Example:

        >>> join_paths("/docs", "readme.txt")
        '/docs/readme.txt'
        >>> join_paths("/", "docs")
        '/docs'

    """
    parent_str = parent.as_posix() if isinstance(parent, PurePath) else str(parent)
    return normalize_path(f"{parent_str}/{name}")
