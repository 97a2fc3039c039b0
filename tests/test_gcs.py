"""Tests for the Google Cloud Storage object-store client."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import httpx
import pytest

from f9_objectfs import (
    BufferedPayload,
    GCSObjectStoreClient,
    NotFoundError,
    ObjectStoreError,
    ObjectStoreFileSystem,
    SpooledPayload,
)
from tests.fakes import FakeBucket, GoogleNotFound

# ruff: noqa: S101, PLR2004  # pytest assertions and magic numbers are ok in tests


@pytest.fixture
def bucket() -> FakeBucket:
    """Provide an empty fake bucket."""
    return FakeBucket()


def _serve_bucket(bucket: FakeBucket) -> httpx.AsyncClient:
    """Return an HTTP client answering signed URLs from the bucket."""

    def handler(request: httpx.Request) -> httpx.Response:
        stored = bucket.objects.get(request.url.path.lstrip("/"))
        if stored is None:
            return httpx.Response(404)
        return httpx.Response(200, content=stored.data)  # type: ignore[attr-defined]

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGCSObjectStoreClient:
    """Tests for GCSObjectStoreClient against a fake bucket."""

    @pytest.mark.asyncio
    async def test_upload_and_metadata(self, bucket: FakeBucket) -> None:
        """Uploads are visible through metadata lookups."""
        client = GCSObjectStoreClient(bucket)

        uploaded = await client.upload_data("repo/a.txt", BufferedPayload(b"hello"))
        metadata = await client.get_metadata("repo/a.txt")

        assert uploaded.size == 5
        assert metadata.key == "repo/a.txt"
        assert metadata.size == 5
        assert metadata.md5_hash == "XUFAKrxLKna5cZ2REBfFkg=="
        assert metadata.created is not None
        assert dict(metadata.custom_metadata) == {}

    @pytest.mark.asyncio
    async def test_upload_spooled_payload(self, bucket: FakeBucket) -> None:
        """Spooled payloads are uploaded from their file view."""
        client = GCSObjectStoreClient(bucket)
        payload = SpooledPayload([b"abc", b"def"], max_size=2)

        await client.upload_data("repo/a.bin", payload)

        assert bucket.objects["repo/a.bin"].data == b"abcdef"  # type: ignore[attr-defined]
        payload.close()

    @pytest.mark.asyncio
    async def test_missing_metadata(self, bucket: FakeBucket) -> None:
        """Missing blobs raise a not-found store error."""
        client = GCSObjectStoreClient(bucket)

        with pytest.raises(ObjectStoreError) as exc_info:
            await client.get_metadata("repo/missing")

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_upload_empty_and_update_metadata(self, bucket: FakeBucket) -> None:
        """Placeholders accept custom metadata."""
        client = GCSObjectStoreClient(bucket)
        await client.upload_empty("repo/d/")

        metadata = await client.update_metadata("repo/d/", {"owner": "ana"})

        assert metadata.size == 0
        assert dict(metadata.custom_metadata) == {"owner": "ana"}
        stored = await client.get_metadata("repo/d/")
        assert dict(stored.custom_metadata) == {"owner": "ana"}

    @pytest.mark.asyncio
    async def test_update_metadata_replaces_keys(self, bucket: FakeBucket) -> None:
        """Keys missing from the new mapping are removed, not merged."""
        client = GCSObjectStoreClient(bucket)
        await client.upload_empty("repo/a")
        await client.update_metadata("repo/a", {"author": "ana", "rev": "1"})

        metadata = await client.update_metadata("repo/a", {"rev": "2"})

        assert dict(metadata.custom_metadata) == {"rev": "2"}
        stored = await client.get_metadata("repo/a")
        assert dict(stored.custom_metadata) == {"rev": "2"}

    @pytest.mark.asyncio
    async def test_update_metadata_missing(self, bucket: FakeBucket) -> None:
        """Updating a missing blob raises a not-found store error."""
        client = GCSObjectStoreClient(bucket)

        with pytest.raises(ObjectStoreError) as exc_info:
            await client.update_metadata("repo/missing", {"a": "b"})

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_delete(self, bucket: FakeBucket) -> None:
        """Deleting removes the blob; missing blobs propagate the SDK error."""
        client = GCSObjectStoreClient(bucket)
        await client.upload_empty("repo/a")

        await client.delete_object("repo/a")

        assert "repo/a" not in bucket.objects
        with pytest.raises(GoogleNotFound):
            await client.delete_object("repo/a")

    @pytest.mark.asyncio
    async def test_list_under_prefix(self, bucket: FakeBucket) -> None:
        """Listings split direct items from nested prefixes."""
        client = GCSObjectStoreClient(bucket)
        for key in ("repo/d/", "repo/d/a", "repo/d/z/b", "repo/d/e/c", "repo/x"):
            await client.upload_empty(key)

        listing = await client.list_under_prefix("repo/d/", max_results=10)

        assert listing.items == ["repo/d/", "repo/d/a"]
        assert listing.prefixes == ["repo/d/e/", "repo/d/z/"]
        assert bucket.list_calls[-1] == {
            "prefix": "repo/d/",
            "delimiter": "/",
            "max_results": 10,
        }

    @pytest.mark.asyncio
    async def test_signed_download_url(self, bucket: FakeBucket) -> None:
        """Signed URLs use V4 signing with the configured lifetime."""
        client = GCSObjectStoreClient(bucket, url_expiration=timedelta(minutes=5))

        url = await client.get_download_url("repo/a.txt")

        assert url.startswith("https://signed.example/repo/a.txt")
        assert bucket.signed_url_calls == [
            {"version": "v4", "expiration": timedelta(minutes=5), "method": "GET"},
        ]

    @pytest.mark.asyncio
    async def test_public_download_url(self, bucket: FakeBucket) -> None:
        """Public URLs are used when signing is disabled."""
        client = GCSObjectStoreClient(bucket, signed_urls=False)

        url = await client.get_download_url("repo/a.txt")

        assert url == "https://storage.googleapis.com/test-bucket/repo/a.txt"
        assert bucket.signed_url_calls == []


class TestFromConnectionInfo:
    """Tests for building clients from connection parameters."""

    def test_missing_bucket(self) -> None:
        """A bucket name is required."""
        with pytest.raises(ValueError, match="bucket"):
            GCSObjectStoreClient.from_connection_info({})

    def test_default_credentials(self) -> None:
        """Without a credentials file the ambient credentials are used."""
        with patch("google.cloud.storage.Client") as client_cls:
            GCSObjectStoreClient.from_connection_info(
                {"bucket": "my-app.appspot.com", "project": "my-app"},
            )

        client_cls.assert_called_once_with(project="my-app")
        client_cls.return_value.bucket.assert_called_once_with("my-app.appspot.com")

    def test_service_account_file(self) -> None:
        """A credentials file selects service-account authentication."""
        with patch("google.cloud.storage.Client") as client_cls:
            client = GCSObjectStoreClient.from_connection_info(
                {
                    "bucket": "b",
                    "credentials_file": "/secrets/key.json",
                    "signed_urls": "false",
                    "url_expiration": "60",
                },
            )

        client_cls.from_service_account_json.assert_called_once_with(
            "/secrets/key.json",
            project=None,
        )
        assert client._signed_urls is False
        assert client._url_expiration == timedelta(seconds=60)


class TestFileSystemOverGCS:
    """End-to-end tests of ObjectStoreFileSystem over a fake bucket."""

    @pytest.mark.asyncio
    async def test_round_trip(self, bucket: FakeBucket) -> None:
        """Files written through the filesystem are read back via signed URLs."""
        fs = ObjectStoreFileSystem(
            "repo",
            client=GCSObjectStoreClient(bucket),
            http_client=_serve_bucket(bucket),
        )

        await fs.mkdir("/docs")
        await fs.write("/docs/a.txt", b"hello", attributes={"author": "ana"})

        assert await fs.read_bytes("/docs/a.txt") == b"hello"
        assert await fs.list("/docs") == ["/docs/a.txt"]
        assert (await fs.head("/docs/a.txt")).attributes == {"author": "ana"}
        assert (await fs.head("/docs")).is_directory
        assert "repo/" in bucket.objects

    @pytest.mark.asyncio
    async def test_patch_replaces_attributes(self, bucket: FakeBucket) -> None:
        """Patching through the filesystem drops attributes not given."""
        fs = ObjectStoreFileSystem(
            "repo",
            client=GCSObjectStoreClient(bucket),
            http_client=_serve_bucket(bucket),
        )
        await fs.write("/a.txt", b"x", attributes={"author": "ana", "draft": "yes"})

        await fs.patch("/a.txt", {"author": "bo"})

        assert (await fs.head("/a.txt")).attributes == {"author": "bo"}

    @pytest.mark.asyncio
    async def test_sdk_not_found_translated(self, bucket: FakeBucket) -> None:
        """SDK not-found errors surface as NotFoundError."""
        fs = ObjectStoreFileSystem(
            "repo",
            client=GCSObjectStoreClient(bucket),
            http_client=_serve_bucket(bucket),
        )

        with pytest.raises(NotFoundError):
            await fs.delete("/missing")
        with pytest.raises(NotFoundError):
            await fs.read("/missing")
