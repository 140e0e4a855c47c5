# src/storage/base_blob_store.py — v2
"""Abstract blob store interface.

Content handled by the assembly core is always UTF-8 text (markdown or JSON);
backends deal in bytes and translate their native failures into StorageError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageError(Exception):
    """A blob or record could not be read or written."""


class BlobNotFoundError(StorageError):
    """The requested blob does not exist."""

    def __init__(self, bucket: str, path: str) -> None:
        super().__init__(f"Object not found: {bucket}/{path}")
        self.bucket = bucket
        self.path = path


class BaseBlobStore(ABC):
    """Unified interface for blob storage backends."""

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """Read a blob. Raises BlobNotFoundError if absent."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes | str,
        content_type: str = "text/markdown",
        upsert: bool = True,
    ) -> None:
        """Write a blob; with ``upsert=False`` an existing blob is an error."""

    @abstractmethod
    async def exists(self, bucket: str, path: str) -> bool:
        """Check whether a blob exists."""

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> None:
        """Remove a blob. Deleting an absent blob is not an error."""

    async def download_text(self, bucket: str, path: str) -> str:
        """Download and decode a UTF-8 blob."""
        data = await self.download(bucket, path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"Object {bucket}/{path} is not UTF-8 text: {e}") from e
