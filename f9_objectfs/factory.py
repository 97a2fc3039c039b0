"""Filesystem factory for URI-based configuration.

This module builds ``ObjectStoreFileSystem`` instances from URI strings and
allows registration of custom schemes.

Supported URI Schemes:
    - gs://bucket/repository - Google Cloud Storage (also Firebase Storage)
    - memory://repository - In-memory object store

Common query parameters:
    - directories: "false" for a flat variant without directory emulation
    - append: "false" to reject appending writes
    - forbidden_as_not_found: "false" to report 401/403 reads as unreadable
    - spool_threshold: spool upload payloads to a temporary file above this
      many bytes instead of buffering them

Example:
    >>> from f9_objectfs.factory import resolve_filesystem
    >>> fs = resolve_filesystem("memory://projects")
    >>> fs = resolve_filesystem(
    ...     "gs://my-app.appspot.com/projects?project=my-app&url_expiration=300"
    ... )

"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import parse_qs, urlparse

from .filesystem import ObjectStoreFileSystem
from .interfaces import Capabilities
from .payloads import buffered_payload, spooled_payload_factory

if TYPE_CHECKING:
    from typing import TypeAlias

    from .interfaces import AsyncFileSystem

    # Type alias for filesystem factory functions
    FileSystemFactoryFunc: TypeAlias = Callable[
        [str, dict[str, Any]],
        AsyncFileSystem,
    ]

GCS_CONNECTION_KEYS = ("project", "credentials_file", "signed_urls", "url_expiration")


class FileSystemFactory:
    """Factory for creating filesystems from URI strings."""

    def __init__(self) -> None:
        """Initialize the factory with built-in URI scheme handlers."""
        self._factories: dict[str, Callable[[str, dict[str, Any]], Any]] = {
            "gs": self._create_gcs_filesystem,
            "memory": self._create_memory_filesystem,
        }

    def parse_uri(self, uri: str) -> tuple[str, str, dict[str, str]]:
        """Parse a URI into scheme, location, and query parameters.

        The location joins the network location and path without the
        leading slash, e.g. ``"bucket/repository"``.

        Raises:
            ValueError: If URI format is invalid

        """
        parsed = urlparse(uri)

        if not parsed.scheme:
            msg = f"Invalid URI: missing scheme in '{uri}'"
            raise ValueError(msg)

        location = f"{parsed.netloc}{parsed.path}".strip("/")
        if not location:
            msg = f"Invalid URI: missing path in '{uri}'"
            raise ValueError(msg)

        params: dict[str, str] = {}
        if parsed.query:
            parsed_params = parse_qs(parsed.query)
            params = {k: v[0] for k, v in parsed_params.items()}

        return parsed.scheme, location, params

    def resolve(self, uri: str) -> AsyncFileSystem:
        """Create a filesystem instance from a URI string.

        Raises:
            ValueError: If URI scheme is unsupported

        """
        scheme, location, params = self.parse_uri(uri)

        if scheme not in self._factories:
            supported = ", ".join(sorted(self._factories.keys()))
            msg = (
                f"Unsupported URI scheme: '{scheme}'. "
                f"Supported schemes: {supported}"
            )
            raise ValueError(msg)

        factory_func = self._factories[scheme]
        return factory_func(location, params)

    def register(
        self,
        scheme: str,
        factory_func: Callable[[str, dict[str, Any]], Any],
    ) -> None:
        """Register a custom filesystem factory for a URI scheme.

        Args:
            scheme: URI scheme to register (e.g., "s3", "azure")
            factory_func: Callable that takes (location, params) and returns
                an AsyncFileSystem

        """
        if not callable(factory_func):
            msg = "factory_func must be callable"
            raise TypeError(msg)
        self._factories[scheme] = factory_func

    def _create_gcs_filesystem(
        self,
        location: str,
        params: dict[str, Any],
    ) -> ObjectStoreFileSystem:
        """Create a Cloud Storage backed filesystem.

        URI format: gs://bucket/repository?project=my-app&credentials_file=/key.json

        The bucket client is only constructed when the filesystem is first
        used.
        """
        from .gcs import GCSObjectStoreClient

        if "/" not in location:
            msg = f"Invalid gs URI: expected bucket/repository, got '{location}'"
            raise ValueError(msg)
        bucket, repository = location.split("/", 1)

        connection_info: dict[str, Any] = {"bucket": bucket}
        for key in GCS_CONNECTION_KEYS:
            if key in params:
                connection_info[key] = params[key]

        return ObjectStoreFileSystem(
            repository,
            client_factory=partial(
                GCSObjectStoreClient.from_connection_info,
                connection_info,
            ),
            **self._common_options(params),
        )

    def _create_memory_filesystem(
        self,
        location: str,
        params: dict[str, Any],
    ) -> ObjectStoreFileSystem:
        """Create a filesystem over a fresh in-memory store.

        URI format: memory://repository?append=false
        """
        from .memory import InMemoryObjectStore

        store = InMemoryObjectStore()
        return ObjectStoreFileSystem(
            location,
            client=store,
            http_client=store.http_client(),
            **self._common_options(params),
        )

    @staticmethod
    def _common_options(params: dict[str, Any]) -> dict[str, Any]:
        """Translate shared query parameters into constructor options."""
        capabilities = Capabilities(
            supports_directories=_param_bool(params, "directories", default=True),
            supports_append=_param_bool(params, "append", default=True),
        )
        threshold = params.get("spool_threshold")
        return {
            "capabilities": capabilities,
            "payload_factory": spooled_payload_factory(int(threshold))
            if threshold is not None
            else buffered_payload,
            "forbidden_as_not_found": _param_bool(
                params,
                "forbidden_as_not_found",
                default=True,
            ),
        }


def _param_bool(params: dict[str, Any], name: str, *, default: bool) -> bool:
    """Read a boolean query parameter."""
    value = params.get(name)
    if value is None:
        return default
    return str(value).lower() == "true"


# Global default factory instance
_default_factory = FileSystemFactory()


def resolve_filesystem(uri: str) -> AsyncFileSystem:
    """Resolve a filesystem from a URI using the default factory.

    Example:
        >>> fs = resolve_filesystem("memory://projects")
        >>> fs = resolve_filesystem("gs://bucket/projects?signed_urls=false")

    """
    return _default_factory.resolve(uri)


def register_filesystem_factory(
    scheme: str,
    factory_func: Callable[[str, dict[str, Any]], Any],
) -> None:
    """Register a custom filesystem factory for a URI scheme.

    Example:
        >>> def my_s3_factory(location: str, params: dict) -> AsyncFileSystem:
        ...     return ObjectStoreFileSystem(location, client=S3Client(**params))
        >>> register_filesystem_factory("s3", my_s3_factory)

    """
    _default_factory.register(scheme, factory_func)
