# src/storage/memory_blob_store.py — v2
"""In-process blob store (BLOB_STORE=memory), mainly for tests."""

from __future__ import annotations

from promptassembler.storage.base_blob_store import (
    BaseBlobStore,
    BlobNotFoundError,
    StorageError,
)


class MemoryBlobStore(BaseBlobStore):
    """Blobs kept in a ``{(bucket, path): bytes}`` dict."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}

    def put(self, bucket: str, path: str, content: bytes | str) -> None:
        """Synchronous seeding helper."""
        body = content.encode("utf-8") if isinstance(content, str) else content
        self.objects[(bucket, path.lstrip("/"))] = body

    async def download(self, bucket: str, path: str) -> bytes:
        try:
            return self.objects[(bucket, path.lstrip("/"))]
        except KeyError:
            raise BlobNotFoundError(bucket, path) from None

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes | str,
        content_type: str = "text/markdown",
        upsert: bool = True,
    ) -> None:
        if not upsert and (bucket, path.lstrip("/")) in self.objects:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        self.put(bucket, path, content)

    async def exists(self, bucket: str, path: str) -> bool:
        return (bucket, path.lstrip("/")) in self.objects

    async def delete(self, bucket: str, path: str) -> None:
        self.objects.pop((bucket, path.lstrip("/")), None)
