"""Tests for lazy client provisioning and the repository root placeholder."""

from __future__ import annotations

import asyncio

import pytest

from f9_objectfs import (
    NoModificationAllowedError,
    ObjectStoreError,
    ObjectStoreFileSystem,
)
from tests.fakes import BackendError, FaultyObjectStore, SlowRootStore

# ruff: noqa: S101, PLR2004  # pytest assertions and magic numbers are ok in tests


class CountingFactory:
    """Client factory that counts how often it is invoked."""

    def __init__(self, store: FaultyObjectStore) -> None:
        self.store = store
        self.calls = 0

    def __call__(self) -> FaultyObjectStore:
        self.calls += 1
        return self.store


class TestProvisioning:
    """Tests for ObjectStoreFileSystem provisioning."""

    @pytest.mark.asyncio
    async def test_client_built_lazily(self) -> None:
        """Nothing touches the backend until the first operation."""
        store = FaultyObjectStore()
        factory = CountingFactory(store)
        fs = ObjectStoreFileSystem(
            "repo",
            client_factory=factory,
            http_client=store.http_client(),
        )

        assert factory.calls == 0
        assert store.calls == []

        await fs.write("/a.txt", b"x")

        assert factory.calls == 1
        assert fs.is_ready

    @pytest.mark.asyncio
    async def test_root_created_once_under_concurrency(self) -> None:
        """Concurrent first calls provision the root exactly once."""
        store = SlowRootStore()
        factory = CountingFactory(store)
        fs = ObjectStoreFileSystem(
            "repo",
            client_factory=factory,
            http_client=store.http_client(),
        )

        results = await asyncio.gather(*(fs.list("/") for _ in range(5)))

        assert results == [[]] * 5
        assert factory.calls == 1
        assert store.calls_to("get_metadata") == ["repo/"]
        assert store.calls_to("upload_empty") == ["repo/"]
        assert "repo/" in store.keys

    @pytest.mark.asyncio
    async def test_existing_root_is_kept(self) -> None:
        """An existing root placeholder is not uploaded again."""
        store = FaultyObjectStore()
        await store.upload_empty("repo/")
        store.calls.clear()
        fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

        await fs.list("/")

        assert store.calls_to("upload_empty") == []

    @pytest.mark.asyncio
    async def test_unexpected_root_failure_is_raised_as_is(self) -> None:
        """Failures other than absence escape untranslated and allow a retry."""
        store = FaultyObjectStore()
        failure = BackendError("backend down", status_code=500)
        store.fail("get_metadata", "repo/", failure)
        fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

        with pytest.raises(BackendError) as exc_info:
            await fs.list("/")

        assert exc_info.value is failure
        assert not fs.is_ready

        store.heal()
        assert await fs.list("/") == []
        assert fs.is_ready

    @pytest.mark.asyncio
    async def test_root_upload_failure(self) -> None:
        """A failed root upload is a modification error at the root."""
        store = FaultyObjectStore()
        store.fail("upload_empty", "repo/", BackendError(status_code=403))
        fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

        with pytest.raises(NoModificationAllowedError) as exc_info:
            await fs.write("/a.txt", b"x")

        assert exc_info.value.path == "/"
        assert store.calls_to("upload_data") == []

    @pytest.mark.asyncio
    async def test_forbidden_root_counts_as_missing(self) -> None:
        """A forbidden root lookup is treated as absence and uploaded."""
        store = FaultyObjectStore()
        store.fail("get_metadata", "repo/", ObjectStoreError.forbidden("repo/"))
        fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

        await fs.list("/")

        assert store.calls_to("upload_empty") == ["repo/"]
        assert fs.is_ready

    @pytest.mark.asyncio
    async def test_forbidden_root_upload_failure(self) -> None:
        """With the root forbidden, the failed upload is what gets reported."""
        store = FaultyObjectStore()
        store.fail("get_metadata", "repo/", ObjectStoreError.forbidden("repo/"))
        store.fail("upload_empty", "repo/", ObjectStoreError.forbidden("repo/"))
        fs = ObjectStoreFileSystem("repo", client=store, http_client=store.http_client())

        with pytest.raises(NoModificationAllowedError):
            await fs.list("/")

    @pytest.mark.asyncio
    async def test_forbidden_root_raised_when_reported(self) -> None:
        """Without the absence policy, a forbidden root escapes as-is."""
        store = FaultyObjectStore()
        failure = ObjectStoreError.forbidden("repo/")
        store.fail("get_metadata", "repo/", failure)
        fs = ObjectStoreFileSystem(
            "repo",
            client=store,
            http_client=store.http_client(),
            forbidden_as_not_found=False,
        )

        with pytest.raises(ObjectStoreError) as exc_info:
            await fs.list("/")

        assert exc_info.value is failure
        assert store.calls_to("upload_empty") == []
