"""Resolution of logical paths to file or directory entries.

An object store has no directories, so a path can be observed three ways:

1. an object at the file key (a file),
2. a zero-byte placeholder at the directory key (an explicit directory),
3. objects below the directory key (an implicit directory).

The three lookups are independent and may disagree, so all of them are issued
concurrently, allowed to settle, and then inspected in that priority order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .client import ListResult, ObjectMetadata
from .interfaces import Stats
from .metadata import stats_from_metadata

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .client import ObjectStoreClient
    from .error_translation import ErrorTranslator
    from .interfaces import EntryKind
    from .keys import KeyMapper

logger = logging.getLogger(__name__)


class _Skipped:
    """Marker for lookups that were not issued."""

    def __repr__(self) -> str:
        return "<skipped>"


_SKIPPED = _Skipped()


async def _lookup(
    enabled: bool,
    call: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Issue a backend lookup, or return the skip marker when disabled."""
    if not enabled:
        return _SKIPPED
    return await call(*args, **kwargs)


class EntryResolver:
    """Determine whether a path is a file, a directory, or missing."""

    def __init__(
        self,
        keys: KeyMapper,
        translator: ErrorTranslator,
        *,
        supports_directories: bool = True,
    ) -> None:
        """Initialise the resolver.

        Args:
            keys: Key mapper of the repository being resolved against.
            translator: Error translator used for the final failure.
            supports_directories: Skip directory lookups entirely when False.

        """
        self._keys = keys
        self._translator = translator
        self._supports_directories = supports_directories

    async def resolve(
        self,
        client: ObjectStoreClient,
        path: str,
        *,
        kind: EntryKind | None = None,
    ) -> Stats:
        """Return stats for ``path``.

        Args:
            client: Provisioned object-store client.
            path: Normalised logical path.
            kind: Only consider files or only directories.

        Raises:
            NotFoundError: If nothing exists at ``path``.
            NotReadableError: If the lookups failed for another reason.

        """
        check_file = kind in (None, "file")
        check_directory = self._supports_directories and kind in (None, "directory")
        file_key = self._keys.to_key(path, False)
        directory_key = self._keys.to_key(path, True)

        file_result, directory_result, listing_result = await asyncio.gather(
            _lookup(check_file, client.get_metadata, file_key),
            _lookup(check_directory, client.get_metadata, directory_key),
            _lookup(
                check_directory,
                client.list_under_prefix,
                directory_key,
                max_results=1,
            ),
            return_exceptions=True,
        )
        for result in (file_result, directory_result, listing_result):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if isinstance(file_result, ObjectMetadata):
            logger.debug("Resolved %s as file %s", path, file_key)
            return stats_from_metadata(file_result, is_directory=False)
        if isinstance(directory_result, ObjectMetadata):
            logger.debug("Resolved %s as directory placeholder %s", path, directory_key)
            return stats_from_metadata(directory_result, is_directory=True)
        if isinstance(listing_result, ListResult) and not listing_result.is_empty():
            logger.debug("Resolved %s as implicit directory %s", path, directory_key)
            return Stats()

        if check_file:
            raise self._failure(path, file_result)
        if check_directory and isinstance(directory_result, Exception):
            raise self._failure(path, directory_result)
        raise self._failure(path, listing_result)

    def _failure(self, path: str, result: Any) -> Exception:
        """Translate a settled lookup result into the error to raise."""
        error = result if isinstance(result, Exception) else None
        translated = self._translator.translate(path, error, write=False)
        if error is not None and translated is not error:
            translated.__cause__ = error
        return translated
