# src/assembly/turn_prompt.py — v1
"""Turn prompt: generates one document of an EXECUTE step.

The document's alignment details come from the planner's HeaderContext. The
recipe step's output contract names the keys each document needs; every one
of them must be present in the HeaderContext entry. Value types are never
checked.

Render context merge order (later wins):
  dynamic context -> document_specific_data -> content_to_include -> header_context
"""

from __future__ import annotations

import logging
from typing import Any

from promptassembler.assembly.header_context import load_header_context
from promptassembler.assembly.payload import (
    optional_string,
    require_inputs,
    require_models,
    require_payload,
    require_recipe_step,
    require_string,
)
from promptassembler.assembly.renderer import render_stage
from promptassembler.assembly.services import AssemblyServices
from promptassembler.core.errors import HeaderContextError, PreconditionError
from promptassembler.core.models import AssembledPrompt, HeaderContext, Job, Project, Session, Stage
from promptassembler.logging.context import set_assembly_context
from promptassembler.recipe.models import FilesToGenerateOutputs
from promptassembler.storage.file_manager import UploadContext
from promptassembler.storage.layout import FileType, PathContext

logger = logging.getLogger(__name__)


def alignment_for(
    header_context: HeaderContext,
    outputs: FilesToGenerateOutputs,
    document_key: str,
) -> dict[str, Any]:
    """Validated ``content_to_include`` for ``document_key``.

    Raises:
        HeaderContextError: No entry for the key, required keys missing, or
            the entry was never filled in.
    """
    entry = header_context.entry_for(document_key)
    if entry is None:
        raise HeaderContextError(
            f"No context_for_documents entry found for document_key '{document_key}' "
            "in header_context."
        )

    content = entry.content_to_include
    if content is not None and not isinstance(content, dict):
        raise HeaderContextError(
            f"content_to_include for document_key '{document_key}' must be an object."
        )
    content = content or {}

    required = outputs.required_keys_for(document_key)
    missing = [key for key in required if key not in content]
    if missing:
        raise HeaderContextError(
            f"content_to_include for document_key '{document_key}' is missing required "
            f"keys from recipe step: {', '.join(missing)}. "
            f"Required keys: {', '.join(required)}, "
            f"but header_context has keys: {', '.join(content) or '(none)'}."
        )

    if not content:
        raise HeaderContextError(
            f"content_to_include not filled in for document_key '{document_key}' "
            "in header_context."
        )
    return content


async def assemble_turn_prompt(
    services: AssemblyServices,
    job: Job,
    project: Project,
    session: Session,
    stage: Stage,
) -> AssembledPrompt:
    """Render and persist the prompt generating ``payload.document_key``."""
    set_assembly_context(project.id, session.id, stage.slug, job.id)
    require_models(session)
    payload = require_payload(job)
    inputs = require_inputs(payload)
    document_key = require_string(payload, "document_key")
    require_string(payload, "model_id")
    model_slug = require_string(payload, "model_slug")
    recipe_step = require_recipe_step(stage)
    source_contribution_id = optional_string(payload, "target_contribution_id")

    header_context_id = inputs.get("header_context_id")
    if recipe_step.requires_header_context and not isinstance(header_context_id, str):
        raise PreconditionError("Job payload inputs is missing 'header_context_id'.")

    outputs = recipe_step.outputs
    if not isinstance(outputs, FilesToGenerateOutputs):
        raise PreconditionError(
            f"Recipe step outputs_required must declare files_to_generate "
            f"for document_key '{document_key}'."
        )
    if outputs.file_for(document_key) is None:
        raise PreconditionError(
            f"No files_to_generate entry found with from_document_key '{document_key}' "
            "in recipe step."
        )

    header_context: HeaderContext | None = None
    alignment: dict[str, Any] = {}
    if isinstance(header_context_id, str) and header_context_id:
        header_context = await load_header_context(
            services.repository, services.blob_store, header_context_id
        )
        alignment = alignment_for(header_context, outputs, document_key)

    template = await services.templates.resolve(recipe_step, project, allow_inline=False)
    context = await services.build_context(project, session, stage)

    document_data = payload.get("document_specific_data")
    variables: dict[str, Any] = context.as_variables()
    if isinstance(document_data, dict):
        variables.update(document_data)
    variables.update(alignment)
    if header_context is not None:
        variables["header_context"] = header_context.model_dump(mode="json")

    prompt = render_stage(
        stage,
        variables,
        project.user_domain_overlay_values,
        template_text=template,
    )

    resource = await services.persist(
        "turn",
        UploadContext(
            path_context=PathContext(
                project_id=project.id,
                session_id=session.id,
                iteration=session.iteration_count,
                stage_slug=stage.slug,
                file_type=FileType.TURN_PROMPT,
                model_slug=model_slug,
                attempt_count=job.attempt_count,
                document_key=document_key,
            ),
            content=prompt,
            user_id=project.user_id,
            source_contribution_id=source_contribution_id,
            step_name=recipe_step.step_name or None,
            branch_key=recipe_step.branch_key,
            parallel_group=recipe_step.parallel_group,
            description={"stage": stage.slug, "document_key": document_key},
        ),
    )
    logger.info("Turn prompt assembled for document %s (%d chars)", document_key, len(prompt))
    return AssembledPrompt(prompt_content=prompt, source_prompt_resource_id=resource.id)
