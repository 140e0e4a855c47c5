# src/assembly/seed_prompt.py — v1
"""Seed prompt: the stage's default template rendered against its inputs."""

from __future__ import annotations

import logging

from promptassembler.assembly.payload import require_models, require_payload
from promptassembler.assembly.renderer import render_stage
from promptassembler.assembly.services import AssemblyServices
from promptassembler.core.models import AssembledPrompt, Job, Project, Session, Stage
from promptassembler.logging.context import set_assembly_context
from promptassembler.storage.file_manager import UploadContext
from promptassembler.storage.layout import FileType, PathContext

logger = logging.getLogger(__name__)


async def assemble_seed_prompt(
    services: AssemblyServices,
    project: Project,
    session: Session,
    stage: Stage,
    job: Job | None = None,
) -> AssembledPrompt:
    """Render and persist the seed prompt of a stage iteration."""
    set_assembly_context(project.id, session.id, stage.slug, job.id if job else None)
    require_models(session)
    if job is not None:
        require_payload(job)

    context = await services.build_context(project, session, stage)
    prompt = render_stage(stage, context, project.user_domain_overlay_values)

    resource = await services.persist(
        "seed",
        UploadContext(
            path_context=PathContext(
                project_id=project.id,
                session_id=session.id,
                iteration=session.iteration_count,
                stage_slug=stage.slug,
                file_type=FileType.SEED_PROMPT,
            ),
            content=prompt,
            user_id=project.user_id,
            description={"stage": stage.slug},
        ),
    )
    logger.info("Seed prompt assembled (%d chars)", len(prompt))
    return AssembledPrompt(prompt_content=prompt, source_prompt_resource_id=resource.id)
