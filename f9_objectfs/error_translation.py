"""Translation of backend failures into filesystem errors.

Backends report failures in different shapes: symbolic codes such as
``"storage/object-not-found"``, ``google.api_core`` exceptions whose integer
``code`` is the HTTP status, or ``httpx`` errors carrying a response. The
translator reduces all of them to three outcomes:

- the object does not exist (``NotFoundError``),
- a write failed (``NoModificationAllowedError``),
- a read failed (``NotReadableError``).

Permission failures on reads are reported as absence by default, so callers
cannot probe for objects they are not allowed to see.
"""

from __future__ import annotations

from typing import Any

from .interfaces import (
    FileSystemError,
    NoModificationAllowedError,
    NotFoundError,
    NotReadableError,
)

NOT_FOUND_CODES = frozenset({"object-not-found", "bucket-not-found", "not-found"})
FORBIDDEN_CODES = frozenset({"unauthorized", "unauthenticated", "forbidden"})
NOT_FOUND_STATUSES = frozenset({404})
FORBIDDEN_STATUSES = frozenset({401, 403})


def error_code(error: Any) -> str | None:
    """Return the symbolic error code, without any ``service/`` namespace."""
    code = getattr(error, "code", None)
    if not isinstance(code, str) or not code:
        return None
    return code.rsplit("/", 1)[-1].lower()


def error_status(error: Any) -> int | None:
    """Return the HTTP status carried by an error, if any."""
    for attribute in ("status", "status_code", "code"):
        value = getattr(error, attribute, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


class ErrorTranslator:
    """Classify backend failures for a repository."""

    def __init__(self, repository: str, *, forbidden_as_not_found: bool = True) -> None:
        """Initialise the translator.

        Args:
            repository: Repository name attached to every translated error.
            forbidden_as_not_found: Report permission failures on reads as
                missing entries instead of unreadable ones.

        """
        self.repository = repository
        self.forbidden_as_not_found = forbidden_as_not_found

    def is_not_found(self, error: Any) -> bool:
        """Return True when the error denotes a missing object."""
        return (
            error_code(error) in NOT_FOUND_CODES
            or error_status(error) in NOT_FOUND_STATUSES
        )

    def is_forbidden(self, error: Any) -> bool:
        """Return True when the error denotes a permission failure."""
        return (
            error_code(error) in FORBIDDEN_CODES
            or error_status(error) in FORBIDDEN_STATUSES
        )

    def translate(
        self,
        path: str,
        error: BaseException | None,
        *,
        write: bool,
    ) -> FileSystemError:
        """Return the filesystem error matching a backend failure.

        Args:
            path: Logical path the failed call was made for.
            error: Backend exception; ``None`` means nothing was found.
            write: True when the failed call modifies the store.

        """
        if isinstance(error, FileSystemError):
            return error
        if error is None or self.is_not_found(error):
            return NotFoundError(repository=self.repository, path=path, cause=error)
        if write:
            return NoModificationAllowedError(
                repository=self.repository,
                path=path,
                cause=error,
            )
        if self.forbidden_as_not_found and self.is_forbidden(error):
            return NotFoundError(repository=self.repository, path=path, cause=error)
        return NotReadableError(repository=self.repository, path=path, cause=error)
