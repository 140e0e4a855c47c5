# src/storage/file_manager.py — v2
"""Persist an artifact to the content bucket and register it as a resource.

This is the single externally visible side effect of every assembly call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from promptassembler.core.models import ProjectResource
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore, StorageError
from promptassembler.storage.layout import PathContext, construct_storage_path

logger = logging.getLogger(__name__)


@dataclass
class UploadContext:
    """Everything needed to place, write and register one artifact."""

    path_context: PathContext
    content: str
    user_id: str | None = None
    mime_type: str = "text/markdown"
    description: dict[str, Any] = field(default_factory=dict)
    source_contribution_id: str | None = None
    step_name: str | None = None
    branch_key: str | None = None
    parallel_group: int | None = None

    @property
    def resource_type(self) -> str:
        return self.path_context.file_type.value


class FileManager:
    """Uploads content and registers the matching ProjectResource."""

    def __init__(
        self,
        blob_store: BaseBlobStore,
        repository: BaseRepository,
        bucket: str,
    ) -> None:
        self._blobs = blob_store
        self._repo = repository
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    async def upload_and_register(self, ctx: UploadContext) -> ProjectResource:
        """Write the content and insert its resource record.

        Raises:
            StorageError: If the path cannot be built, the upload fails, or
                the record cannot be registered. A failed registration
                removes the uploaded blob before raising.
        """
        pc = ctx.path_context
        try:
            location = construct_storage_path(pc)
        except ValueError as e:
            raise StorageError(f"Cannot construct storage path: {e}") from e

        body = ctx.content.encode("utf-8")
        await self._blobs.upload(
            self._bucket,
            location.full_path,
            body,
            content_type=ctx.mime_type,
            upsert=True,
        )

        description: dict[str, Any] = {"type": ctx.resource_type, **ctx.description}
        if pc.document_key:
            description.setdefault("document_key", pc.document_key)
        if ctx.step_name:
            description["step_name"] = ctx.step_name
        if ctx.branch_key:
            description["branch_key"] = ctx.branch_key
        if ctx.parallel_group is not None:
            description["parallel_group"] = ctx.parallel_group
        if pc.is_continuation:
            description["is_continuation"] = True
            description["turn_index"] = pc.turn_index

        resource = ProjectResource(
            project_id=pc.project_id,
            user_id=ctx.user_id,
            session_id=pc.session_id,
            stage_slug=pc.stage_slug,
            iteration_number=pc.iteration,
            resource_type=ctx.resource_type,
            file_name=location.file_name,
            storage_bucket=self._bucket,
            storage_path=location.storage_path,
            mime_type=ctx.mime_type,
            size_bytes=len(body),
            resource_description=description,
            source_contribution_id=ctx.source_contribution_id,
        )
        try:
            stored = await self._repo.insert_resource(resource)
        except Exception as e:
            await self._remove_orphan(location.full_path)
            if isinstance(e, StorageError):
                raise
            raise StorageError(f"Failed to register resource: {e}") from e

        logger.info(
            "Saved %s to %s/%s (%d bytes)",
            ctx.resource_type, self._bucket, location.full_path, len(body),
        )
        return stored

    async def _remove_orphan(self, path: str) -> None:
        """Delete an uploaded blob whose resource record was never written."""
        try:
            await self._blobs.delete(self._bucket, path)
        except StorageError as e:
            logger.error(
                "Failed to remove unregistered upload %s/%s: %s", self._bucket, path, e
            )
