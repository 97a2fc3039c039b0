"""Mapping between logical paths and object-store keys.

A key is the repository name followed by the normalised path. Directory keys
carry a trailing separator so that a directory placeholder and a file of the
same name never collide:

    >>> keys = KeyMapper("projects")
    >>> keys.to_key("/docs/readme.txt", False)
    'projects/docs/readme.txt'
    >>> keys.to_key("/docs", True)
    'projects/docs/'
    >>> keys.to_key("/", True)
    'projects/'

"""

from __future__ import annotations

from .path_utils import normalize_windows_path

SEPARATOR = "/"


class KeyMapper:
    """Derive object keys for a single repository."""

    def __init__(self, repository: str) -> None:
        """Bind the mapper to a repository prefix.

        Raises:
            ValueError: If the repository name is empty.

        """
        repository = normalize_windows_path(repository).strip(SEPARATOR)
        if not repository:
            message = "repository must be a non-empty key prefix"
            raise ValueError(message)
        self._repository = repository

    @property
    def repository(self) -> str:
        """Repository prefix shared by every key."""
        return self._repository

    @property
    def root_key(self) -> str:
        """Key of the repository root placeholder."""
        return self.to_key(SEPARATOR, True)

    def to_key(self, path: str, is_directory: bool) -> str:
        """Return the object key for a logical path."""
        if not path or path == SEPARATOR:
            key = self._repository
        else:
            relative = normalize_windows_path(path).strip(SEPARATOR)
            key = SEPARATOR.join((self._repository, relative))
        if is_directory:
            key += SEPARATOR
        return key

    @staticmethod
    def child_name(key: str, is_directory: bool) -> str:
        """Return the last logical segment of a key returned by a listing."""
        parts = key.split(SEPARATOR)
        if is_directory:
            return parts[-2]
        return parts[-1]
