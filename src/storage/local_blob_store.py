# src/storage/local_blob_store.py — v2
"""Local filesystem blob store (default BLOB_STORE=local).

Each bucket is a sub-directory of the configured root.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from promptassembler.storage.base_blob_store import (
    BaseBlobStore,
    BlobNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)


class LocalBlobStore(BaseBlobStore):
    """Store blobs as files under ``root/<bucket>/<path>``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    def _resolve(self, bucket: str, path: str) -> Path:
        """Resolve a bucket-relative path, refusing escapes from the root."""
        relative = PurePosixPath(path.lstrip("/"))
        if ".." in relative.parts or "/" in bucket or bucket in ("", ".", ".."):
            raise StorageError(f"Invalid blob location: {bucket}/{path}")
        return self._root / bucket / Path(*relative.parts)

    async def download(self, bucket: str, path: str) -> bytes:
        p = self._resolve(bucket, path)
        if not p.is_file():
            raise BlobNotFoundError(bucket, path)
        try:
            return p.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {bucket}/{path}: {e}") from e

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes | str,
        content_type: str = "text/markdown",
        upsert: bool = True,
    ) -> None:
        p = self._resolve(bucket, path)
        if not upsert and p.exists():
            raise StorageError(f"Object already exists: {bucket}/{path}")
        body = content.encode("utf-8") if isinstance(content, str) else content
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(body)
        except OSError as e:
            raise StorageError(f"Failed to write {bucket}/{path}: {e}") from e
        logger.debug("Local write: %s (%d bytes, %s)", p, len(body), content_type)

    async def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    async def delete(self, bucket: str, path: str) -> None:
        p = self._resolve(bucket, path)
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {bucket}/{path}: {e}") from e
        logger.debug("Local delete: %s", p)
