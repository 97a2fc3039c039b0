"""Tests for the in-memory object store."""

from __future__ import annotations

import httpx
import pytest

from f9_objectfs import BufferedPayload, InMemoryObjectStore, ObjectStoreError

# ruff: noqa: S101, PLR2004  # pytest assertions and magic numbers are ok in tests


@pytest.fixture
def store() -> InMemoryObjectStore:
    """Provide an empty store."""
    return InMemoryObjectStore()


class TestInMemoryObjectStore:
    """Tests for InMemoryObjectStore."""

    @pytest.mark.asyncio
    async def test_missing_object(self, store: InMemoryObjectStore) -> None:
        """Lookups of missing objects fail with a not-found error."""
        with pytest.raises(ObjectStoreError) as exc_info:
            await store.get_metadata("repo/a")

        assert exc_info.value.code == "storage/object-not-found"
        with pytest.raises(ObjectStoreError):
            await store.delete_object("repo/a")
        with pytest.raises(ObjectStoreError):
            await store.update_metadata("repo/a", {})

    @pytest.mark.asyncio
    async def test_upload_resets_metadata_and_keeps_creation(
        self,
        store: InMemoryObjectStore,
    ) -> None:
        """Overwrites drop custom metadata but keep the creation time."""
        first = await store.upload_data("repo/a", BufferedPayload(b"one"))
        await store.update_metadata("repo/a", {"k": "v"})

        second = await store.upload_data("repo/a", BufferedPayload(b"two!"))

        assert second.created == first.created
        assert second.size == 4
        assert dict(second.custom_metadata) == {}

    @pytest.mark.asyncio
    async def test_etag_is_base64_md5(self, store: InMemoryObjectStore) -> None:
        """Etags follow the Cloud Storage md5Hash format."""
        metadata = await store.upload_data("repo/a", BufferedPayload(b"hello"))

        assert metadata.md5_hash == "XUFAKrxLKna5cZ2REBfFkg=="

    @pytest.mark.asyncio
    async def test_listing(self, store: InMemoryObjectStore) -> None:
        """Listings report direct items, including the prefix placeholder."""
        for key in ("repo/d/", "repo/d/a", "repo/d/e/b", "repo/d/e/c", "repo/dx"):
            await store.upload_empty(key)

        listing = await store.list_under_prefix("repo/d/")

        assert listing.items == ["repo/d/", "repo/d/a"]
        assert listing.prefixes == ["repo/d/e/"]

    @pytest.mark.asyncio
    async def test_listing_max_results(self, store: InMemoryObjectStore) -> None:
        """max_results bounds items and prefixes together."""
        for key in ("repo/d/a", "repo/d/b", "repo/d/e/c"):
            await store.upload_empty(key)

        listing = await store.list_under_prefix("repo/d/", max_results=1)

        assert len(listing.items) + len(listing.prefixes) == 1
        assert not listing.is_empty()

    @pytest.mark.asyncio
    async def test_download_transport(self, store: InMemoryObjectStore) -> None:
        """Download URLs are served by the store's transport."""
        await store.upload_data("repo/docs/a b.txt", BufferedPayload(b"content"))
        url = await store.get_download_url("repo/docs/a b.txt")

        async with store.http_client() as http_client:
            found = await http_client.get(url)
            missing = await http_client.get(await store.get_download_url("repo/nope"))
            rejected = await http_client.post(url)

        assert found.status_code == httpx.codes.OK
        assert found.content == b"content"
        assert missing.status_code == httpx.codes.NOT_FOUND
        assert rejected.status_code == httpx.codes.BAD_REQUEST
