# src/api/facade.py — v3
"""Public API facade — single entry point for prompt assembly.

Usage:
    from promptassembler.api.facade import create_assembler
    assembler = create_assembler(settings, repository)
    prompt = await assembler.assemble_seed_prompt(project, session, stage)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from promptassembler.assembly.continuation import ContinuationReconstructor
from promptassembler.assembly.continuation_prompt import assemble_continuation_prompt
from promptassembler.assembly.planner_prompt import assemble_planner_prompt
from promptassembler.assembly.renderer import render_prompt
from promptassembler.assembly.seed_prompt import assemble_seed_prompt
from promptassembler.assembly.services import AssemblyServices
from promptassembler.assembly.turn_prompt import assemble_turn_prompt
from promptassembler.config.settings import Settings
from promptassembler.core.models import (
    AssembledPrompt,
    DynamicContext,
    Job,
    Message,
    Project,
    Session,
    Stage,
)
from promptassembler.logging.context import clear_context, set_assembly_context
from promptassembler.logging.logger import setup_logging
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore
from promptassembler.storage.blob_store_factory import create_blob_store

logger = logging.getLogger(__name__)


class PromptAssembler:
    """Wires the repository, blob store and file manager once per process."""

    def __init__(self, services: AssemblyServices) -> None:
        self._services = services
        self._reconstructor = ContinuationReconstructor(
            services.repository, services.blob_store
        )

    @property
    def services(self) -> AssemblyServices:
        return self._services

    async def assemble_seed_prompt(
        self, project: Project, session: Session, stage: Stage, job: Job | None = None
    ) -> AssembledPrompt:
        try:
            return await assemble_seed_prompt(self._services, project, session, stage, job)
        finally:
            clear_context()

    async def assemble_planner_prompt(
        self, job: Job, project: Project, session: Session, stage: Stage
    ) -> AssembledPrompt:
        try:
            return await assemble_planner_prompt(self._services, job, project, session, stage)
        finally:
            clear_context()

    async def assemble_turn_prompt(
        self, job: Job, project: Project, session: Session, stage: Stage
    ) -> AssembledPrompt:
        try:
            return await assemble_turn_prompt(self._services, job, project, session, stage)
        finally:
            clear_context()

    async def assemble_continuation_prompt(
        self, job: Job, project: Project, session: Session, stage: Stage
    ) -> AssembledPrompt:
        try:
            return await assemble_continuation_prompt(
                self._services, job, project, session, stage
            )
        finally:
            clear_context()

    async def gather_continuation_inputs(self, root_contribution_id: str) -> list[Message]:
        """Ordered message history of a continued generation."""
        return await self._reconstructor.reconstruct(root_contribution_id)

    async def gather_context(
        self, project: Project, session: Session, stage: Stage
    ) -> DynamicContext:
        set_assembly_context(project.id, session.id, stage.slug)
        try:
            return await self._services.build_context(project, session, stage)
        finally:
            clear_context()

    def render(
        self,
        template_text: str,
        context: DynamicContext | Mapping[str, Any],
        system_overlay: Mapping[str, Any] | None = None,
        user_overlay: Mapping[str, Any] | None = None,
    ) -> str:
        return render_prompt(template_text, context, system_overlay, user_overlay)


def create_assembler(
    settings: Settings | None,
    repository: BaseRepository,
    blob_store: BaseBlobStore | None = None,
) -> PromptAssembler:
    """Build a PromptAssembler from settings.

    Args:
        settings: Global settings. Loaded from .env if None. Its LOG_*
            fields configure the ``promptassembler`` logger.
        repository: Record store backend.
        blob_store: Blob backend; created from settings when omitted.
    """
    settings = settings or Settings()
    setup_logging(
        settings.log_level,
        settings.log_format,
        str(settings.log_file) if settings.log_file else None,
        settings.log_rotation,
        settings.log_retention,
    )
    if blob_store is None:
        blob_store = create_blob_store(settings)
    services = AssemblyServices.create(
        repository=repository,
        blob_store=blob_store,
        content_bucket=settings.content_storage_bucket,
        default_deliverable_format=settings.default_deliverable_format,
    )
    logger.info(
        "Prompt assembler ready (blob_store=%s, bucket=%s)",
        settings.blob_store, settings.content_storage_bucket,
    )
    return PromptAssembler(services)
