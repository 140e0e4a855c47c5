# src/storage/s3_blob_store.py — v2
"""S3-compatible blob store (BLOB_STORE=s3).

Supports AWS S3, MinIO, and other S3-compatible storage. Each logical bucket
maps to the S3 bucket of the same name; an optional key prefix is prepended
to every path.
Requires 'boto3' package: pip install promptassembler[s3].
"""

from __future__ import annotations

import logging

from promptassembler.storage.base_blob_store import (
    BaseBlobStore,
    BlobNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class S3BlobStore(BaseBlobStore):
    """Read and write blobs in S3-compatible object storage."""

    def __init__(
        self,
        prefix: str = "",
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize S3 blob store.

        Args:
            prefix: Key prefix for all objects (e.g. "prompts/").
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
        """
        try:
            import boto3
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 blob store: pip install boto3"
            ) from e

        kwargs: dict = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

    def _key(self, path: str) -> str:
        return f"{self._prefix}{path.lstrip('/')}"

    @staticmethod
    def _error_code(exc: Exception) -> str:
        response = getattr(exc, "response", None) or {}
        return str(response.get("Error", {}).get("Code", ""))

    async def download(self, bucket: str, path: str) -> bytes:
        key = self._key(path)
        try:
            response = self._s3.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except self._s3.exceptions.NoSuchKey as e:
            raise BlobNotFoundError(bucket, path) from e
        except self._s3.exceptions.ClientError as e:
            if self._error_code(e) in _NOT_FOUND_CODES:
                raise BlobNotFoundError(bucket, path) from e
            raise StorageError(f"S3 read failed for s3://{bucket}/{key}: {e}") from e

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes | str,
        content_type: str = "text/markdown",
        upsert: bool = True,
    ) -> None:
        key = self._key(path)
        if not upsert and await self.exists(bucket, path):
            raise StorageError(f"Object already exists: s3://{bucket}/{key}")
        body = content.encode("utf-8") if isinstance(content, str) else content
        try:
            self._s3.put_object(
                Bucket=bucket, Key=key, Body=body, ContentType=content_type
            )
        except self._s3.exceptions.ClientError as e:
            raise StorageError(f"S3 write failed for s3://{bucket}/{key}: {e}") from e
        logger.debug("S3 write: s3://%s/%s (%d bytes)", bucket, key, len(body))

    async def exists(self, bucket: str, path: str) -> bool:
        try:
            self._s3.head_object(Bucket=bucket, Key=self._key(path))
            return True
        except self._s3.exceptions.ClientError as e:
            if self._error_code(e) in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"S3 head failed for {bucket}/{path}: {e}") from e

    async def delete(self, bucket: str, path: str) -> None:
        key = self._key(path)
        try:
            self._s3.delete_object(Bucket=bucket, Key=key)
        except self._s3.exceptions.ClientError as e:
            raise StorageError(f"S3 delete failed for s3://{bucket}/{key}: {e}") from e
        logger.debug("S3 delete: s3://%s/%s", bucket, key)
