# src/storage/blob_store_factory.py — v1
"""Factory: instantiate the blob store backend from configuration."""

from __future__ import annotations

from promptassembler.config.settings import Settings
from promptassembler.storage.base_blob_store import BaseBlobStore
from promptassembler.storage.local_blob_store import LocalBlobStore
from promptassembler.storage.memory_blob_store import MemoryBlobStore


def create_blob_store(settings: Settings) -> BaseBlobStore:
    """Create the blob store selected by BLOB_STORE.

    Args:
        settings: Application settings.

    Returns:
        BaseBlobStore instance.

    Raises:
        ValueError: If the backend is not supported.
    """
    if settings.blob_store == "local":
        return LocalBlobStore(settings.blob_store_root)

    if settings.blob_store == "memory":
        return MemoryBlobStore()

    if settings.blob_store == "s3":
        from promptassembler.storage.s3_blob_store import S3BlobStore

        return S3BlobStore(
            prefix=settings.s3_prefix,
            region=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
        )

    raise ValueError(f"Unsupported blob store: {settings.blob_store!r}")
