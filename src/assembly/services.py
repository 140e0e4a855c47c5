# src/assembly/services.py — v1
"""Collaborators shared by every orchestrator, wired once per assembler."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from promptassembler.assembly.context_builder import (
    DEFAULT_DELIVERABLE_FORMAT,
    build_dynamic_context,
)
from promptassembler.assembly.gatherer import InputGatherer
from promptassembler.assembly.template_resolver import TemplateResolver
from promptassembler.core.errors import PersistError
from promptassembler.core.models import DynamicContext, Project, ProjectResource, Session, Stage
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore
from promptassembler.storage.file_manager import FileManager, UploadContext

logger = logging.getLogger(__name__)


@dataclass
class AssemblyServices:
    repository: BaseRepository
    blob_store: BaseBlobStore
    gatherer: InputGatherer
    templates: TemplateResolver
    file_manager: FileManager
    default_deliverable_format: str = DEFAULT_DELIVERABLE_FORMAT

    @classmethod
    def create(
        cls,
        repository: BaseRepository,
        blob_store: BaseBlobStore,
        content_bucket: str,
        default_deliverable_format: str = DEFAULT_DELIVERABLE_FORMAT,
    ) -> AssemblyServices:
        return cls(
            repository=repository,
            blob_store=blob_store,
            gatherer=InputGatherer(repository, blob_store),
            templates=TemplateResolver(repository, blob_store),
            file_manager=FileManager(blob_store, repository, content_bucket),
            default_deliverable_format=default_deliverable_format,
        )

    async def build_context(
        self, project: Project, session: Session, stage: Stage
    ) -> DynamicContext:
        return await build_dynamic_context(
            self.gatherer,
            project,
            session,
            stage,
            project.initial_user_prompt,
            session.iteration_count,
            self.default_deliverable_format,
        )

    async def persist(self, kind: str, ctx: UploadContext) -> ProjectResource:
        """Upload and register a prompt; the only side effect of an assembly call.

        Raises:
            PersistError: ``Failed to save <kind> prompt: <cause>``.
        """
        try:
            return await self.file_manager.upload_and_register(ctx)
        except Exception as e:
            logger.error("Failed to save %s prompt: %s", kind, e)
            raise PersistError(f"Failed to save {kind} prompt: {e}") from e
