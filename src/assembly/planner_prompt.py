# src/assembly/planner_prompt.py — v1
"""Planner prompt: asks a model to fill in the HeaderContext for a step group.

The rendered template receives the flattened source documents
(``<section>.<document_key>`` plus section flags) and an editable
``context_for_documents`` payload describing what each downstream document
needs.
"""

from __future__ import annotations

import logging
from typing import Any

from promptassembler.assembly.payload import (
    require_models,
    require_payload,
    require_recipe_step,
    require_string,
)
from promptassembler.assembly.renderer import render_stage
from promptassembler.assembly.services import AssemblyServices
from promptassembler.assembly.source_variables import flatten_source_documents
from promptassembler.core.errors import PreconditionError
from promptassembler.core.models import AssembledPrompt, Job, Project, Session, Stage
from promptassembler.logging.context import set_assembly_context
from promptassembler.recipe.models import ContextForDocument, ContextForDocumentsOutputs
from promptassembler.storage.file_manager import UploadContext
from promptassembler.storage.layout import FileType, PathContext

logger = logging.getLogger(__name__)

FILL_IN_INSTRUCTIONS = (
    "For each entry in 'documents', fill in every field of content_to_include "
    "with the alignment details the document generator needs. Keep every "
    "document_key and every content_to_include key exactly as given; only "
    "replace the values. Return the completed structure as the "
    "context_for_documents of your header_context output."
)


def context_for_documents_payload(entries: list[ContextForDocument]) -> dict[str, Any]:
    """Editable payload injected into the planner template."""
    return {
        "_instructions": FILL_IN_INSTRUCTIONS,
        "documents": [e.model_dump(mode="json") for e in entries],
    }


async def assemble_planner_prompt(
    services: AssemblyServices,
    job: Job,
    project: Project,
    session: Session,
    stage: Stage,
) -> AssembledPrompt:
    """Render and persist the planner prompt for a PLAN job."""
    set_assembly_context(project.id, session.id, stage.slug, job.id)
    require_models(session)
    payload = require_payload(job)
    recipe_step = require_recipe_step(stage)
    model_slug = require_string(payload, "model_slug")

    outputs = recipe_step.outputs
    if not isinstance(outputs, ContextForDocumentsOutputs) or not outputs.context_for_documents:
        raise PreconditionError(
            "PLAN job requires context_for_documents in recipe_step.outputs_required"
        )

    context = await services.build_context(project, session, stage)
    template = await services.templates.resolve(recipe_step, project, allow_inline=True)

    source_variables = flatten_source_documents(context.source_documents)
    variables = context.as_variables()
    variables["context_for_documents"] = context_for_documents_payload(
        outputs.context_for_documents
    )
    if outputs.header_context_artifact is not None:
        variables["header_context_artifact"] = outputs.header_context_artifact
    if outputs.system_materials is not None:
        variables["system_materials"] = outputs.system_materials

    prompt = render_stage(
        stage,
        variables,
        project.user_domain_overlay_values,
        template_text=template,
        source_variables=source_variables,
    )

    resource = await services.persist(
        "planner",
        UploadContext(
            path_context=PathContext(
                project_id=project.id,
                session_id=session.id,
                iteration=session.iteration_count,
                stage_slug=stage.slug,
                file_type=FileType.PLANNER_PROMPT,
                model_slug=model_slug,
                attempt_count=job.attempt_count,
            ),
            content=prompt,
            user_id=project.user_id,
            step_name=recipe_step.step_name or None,
            branch_key=recipe_step.branch_key,
            parallel_group=recipe_step.parallel_group,
            description={"stage": stage.slug},
        ),
    )
    logger.info("Planner prompt assembled for %s (%d chars)", model_slug, len(prompt))
    return AssembledPrompt(prompt_content=prompt, source_prompt_resource_id=resource.id)
