# tests/unit/storage/test_unit_blob_stores.py — v2
"""Tests for the local, memory and S3 blob stores (S3 client mocked)."""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import pytest

from promptassembler.config.settings import Settings
from promptassembler.storage.base_blob_store import BlobNotFoundError, StorageError
from promptassembler.storage.blob_store_factory import create_blob_store
from promptassembler.storage.local_blob_store import LocalBlobStore
from promptassembler.storage.memory_blob_store import MemoryBlobStore
from promptassembler.storage.s3_blob_store import S3BlobStore


class TestLocalBlobStore:
    @pytest.mark.asyncio
    async def test_upload_and_download(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.upload("bucket", "a/b/file.md", "hello")
        assert await store.download("bucket", "a/b/file.md") == b"hello"
        assert (tmp_path / "bucket" / "a" / "b" / "file.md").exists()

    @pytest.mark.asyncio
    async def test_download_text(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.upload("bucket", "f.md", "héllo".encode("utf-8"))
        assert await store.download_text("bucket", "f.md") == "héllo"

    @pytest.mark.asyncio
    async def test_missing_blob(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        with pytest.raises(BlobNotFoundError):
            await store.download("bucket", "missing.md")

    @pytest.mark.asyncio
    async def test_exists(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        assert not await store.exists("bucket", "f.md")
        await store.upload("bucket", "f.md", "x")
        assert await store.exists("bucket", "f.md")

    @pytest.mark.asyncio
    async def test_no_upsert(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.upload("bucket", "f.md", "x")
        with pytest.raises(StorageError, match="already exists"):
            await store.upload("bucket", "f.md", "y", upsert=False)

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.upload("bucket", "a/f.md", "x")
        await store.delete("bucket", "a/f.md")
        assert not await store.exists("bucket", "a/f.md")
        await store.delete("bucket", "a/f.md")

    @pytest.mark.asyncio
    async def test_rejects_path_escape(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        with pytest.raises(StorageError, match="Invalid blob location"):
            await store.download("bucket", "../outside.md")


class TestMemoryBlobStore:
    @pytest.mark.asyncio
    async def test_roundtrip_and_missing(self):
        store = MemoryBlobStore()
        await store.upload("b", "/p/f.md", "x")
        assert await store.download("b", "p/f.md") == b"x"
        with pytest.raises(BlobNotFoundError):
            await store.download("b", "nope")

    @pytest.mark.asyncio
    async def test_delete(self):
        store = MemoryBlobStore()
        store.put("b", "p/f.md", "x")
        await store.delete("b", "/p/f.md")
        assert store.objects == {}
        await store.delete("b", "p/f.md")

    @pytest.mark.asyncio
    async def test_invalid_utf8(self):
        store = MemoryBlobStore()
        store.put("b", "bin", b"\xff\xfe")
        with pytest.raises(StorageError, match="not UTF-8"):
            await store.download_text("b", "bin")


@pytest.fixture
def mock_s3_store():
    """S3BlobStore with a dict-backed fake boto3 client."""
    storage: dict[tuple[str, str], bytes] = {}

    client_error = type("ClientError", (Exception,), {})
    no_such_key = type("NoSuchKey", (client_error,), {})

    def _error(code):
        err = client_error(code)
        err.response = {"Error": {"Code": code}}
        return err

    def put_object(Bucket, Key, Body, **kwargs):
        storage[(Bucket, Key)] = Body

    def get_object(Bucket, Key):
        if (Bucket, Key) not in storage:
            raise no_such_key("NoSuchKey")
        return {"Body": io.BytesIO(storage[(Bucket, Key)])}

    def head_object(Bucket, Key):
        if (Bucket, Key) not in storage:
            raise _error("404")

    def delete_object(Bucket, Key):
        storage.pop((Bucket, Key), None)

    mock_client = MagicMock()
    mock_client.put_object = put_object
    mock_client.delete_object = delete_object
    mock_client.get_object = get_object
    mock_client.head_object = head_object
    mock_client.exceptions = MagicMock()
    mock_client.exceptions.ClientError = client_error
    mock_client.exceptions.NoSuchKey = no_such_key

    with patch("promptassembler.storage.s3_blob_store.S3BlobStore.__init__", return_value=None):
        store = S3BlobStore.__new__(S3BlobStore)
        store._s3 = mock_client
        store._prefix = "prompts/"

    return store, storage


class TestS3BlobStore:
    @pytest.mark.asyncio
    async def test_upload_uses_prefix(self, mock_s3_store):
        store, storage = mock_s3_store
        await store.upload("bucket", "a/f.md", "hello")
        assert storage[("bucket", "prompts/a/f.md")] == b"hello"

    @pytest.mark.asyncio
    async def test_download(self, mock_s3_store):
        store, _ = mock_s3_store
        await store.upload("bucket", "f.md", b"data")
        assert await store.download("bucket", "f.md") == b"data"

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_s3_store):
        store, _ = mock_s3_store
        with pytest.raises(BlobNotFoundError):
            await store.download("bucket", "missing.md")

    @pytest.mark.asyncio
    async def test_exists(self, mock_s3_store):
        store, _ = mock_s3_store
        assert await store.exists("bucket", "f.md") is False
        await store.upload("bucket", "f.md", "x")
        assert await store.exists("bucket", "f.md") is True

    @pytest.mark.asyncio
    async def test_delete_uses_prefix(self, mock_s3_store):
        store, storage = mock_s3_store
        await store.upload("bucket", "a/f.md", "x")
        await store.delete("bucket", "a/f.md")
        assert ("bucket", "prompts/a/f.md") not in storage


class TestBlobStoreFactory:
    def test_local(self, tmp_path):
        settings = Settings(_env_file=None, blob_store="local", blob_store_root=tmp_path)
        assert isinstance(create_blob_store(settings), LocalBlobStore)

    def test_memory(self):
        settings = Settings(_env_file=None, blob_store="memory")
        assert isinstance(create_blob_store(settings), MemoryBlobStore)

    def test_s3(self):
        settings = Settings(_env_file=None, blob_store="s3", s3_region="eu-west-1")
        with patch("boto3.client") as client:
            store = create_blob_store(settings)
        assert isinstance(store, S3BlobStore)
        client.assert_called_once_with("s3", region_name="eu-west-1")
