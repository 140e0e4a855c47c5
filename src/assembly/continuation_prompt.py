# src/assembly/continuation_prompt.py — v1
"""Continuation prompt for a generation that stopped early or returned broken JSON.

The prompt carries the HeaderContext's system materials (when one is
available), one instruction, and the partial output, which always comes
last. JSON-shaped partial output that does not parse gets a corrective
"complete the JSON" instruction instead of a plain continue.
"""

from __future__ import annotations

import json
import logging

from promptassembler.assembly.header_context import load_header_context
from promptassembler.assembly.payload import (
    optional_string,
    require_inputs,
    require_models,
    require_payload,
    require_recipe_step,
    require_string,
)
from promptassembler.assembly.services import AssemblyServices
from promptassembler.core.errors import GatherError, PreconditionError
from promptassembler.core.models import AssembledPrompt, HeaderContext, Job, Project, Session, Stage
from promptassembler.logging.context import set_assembly_context
from promptassembler.storage.base_blob_store import StorageError
from promptassembler.storage.file_manager import UploadContext
from promptassembler.storage.layout import FileType, PathContext

logger = logging.getLogger(__name__)

CONTINUE_INSTRUCTION = (
    "Your previous response was cut off before it was finished. Continue "
    "exactly where it stops below. Do not repeat or summarise anything that "
    "is already written."
)
REPAIR_JSON_INSTRUCTION = (
    "Your previous response was meant to be a single JSON document but it is "
    "incomplete or malformed. Complete and repair the JSON shown below so "
    "that it parses, continuing from where it stops. Return only the JSON."
)


def looks_like_broken_json(text: str) -> bool:
    """True when ``text`` starts like a JSON document but does not parse."""
    stripped = text.strip()
    if not stripped.startswith(("{", "[")):
        return False
    try:
        json.loads(stripped)
    except json.JSONDecodeError:
        return True
    return False


def continuation_file_type(job_type: str | None) -> FileType:
    kind = (job_type or "").upper()
    if kind == "PLAN":
        return FileType.PLANNER_PROMPT
    if kind == "EXECUTE":
        return FileType.TURN_PROMPT
    return FileType.CONTINUATION_PROMPT


def build_continuation_text(partial: str, header_context: HeaderContext | None) -> str:
    parts: list[str] = []
    if header_context is not None and header_context.system_materials:
        materials = json.dumps(header_context.system_materials, indent=2, ensure_ascii=False)
        parts.append(f"## System Materials\n\n{materials}")
    instruction = REPAIR_JSON_INSTRUCTION if looks_like_broken_json(partial) else CONTINUE_INSTRUCTION
    parts.append(instruction)
    return "\n\n".join(parts) + "\n\n" + partial


async def assemble_continuation_prompt(
    services: AssemblyServices,
    job: Job,
    project: Project,
    session: Session,
    stage: Stage,
) -> AssembledPrompt:
    """Render and persist the prompt continuing ``payload.target_contribution_id``."""
    set_assembly_context(project.id, session.id, stage.slug, job.id)
    require_models(session)
    payload = require_payload(job)
    inputs = require_inputs(payload)
    recipe_step = require_recipe_step(stage)
    target_id = require_string(payload, "target_contribution_id")
    model_slug = require_string(payload, "model_slug")
    document_key = optional_string(payload, "document_key")

    job_type = job.job_type or payload.get("job_type") or recipe_step.job_type
    file_type = continuation_file_type(job_type if isinstance(job_type, str) else None)
    if file_type is FileType.TURN_PROMPT and not document_key:
        raise PreconditionError("Job payload is missing 'document_key'.")

    header_context_id = inputs.get("header_context_id")
    if recipe_step.requires_header_context and not isinstance(header_context_id, str):
        raise PreconditionError("Job payload inputs is missing 'header_context_id'.")

    header_context: HeaderContext | None = None
    if isinstance(header_context_id, str) and header_context_id:
        header_context = await load_header_context(
            services.repository, services.blob_store, header_context_id
        )

    target = await services.repository.get_contribution(target_id)
    if target is None or not target.has_storage_details:
        raise GatherError(f"Target contribution {target_id} not found or has no storage details.")
    try:
        partial = await services.blob_store.download_text(
            target.storage_bucket or "", target.full_path
        )
    except StorageError as e:
        logger.error("Partial output download failed for %s: %s", target_id, e)
        raise GatherError(
            f"Failed to download content for contribution {target_id}: {e}"
        ) from e

    prompt = build_continuation_text(partial, header_context)
    turn_index = job.attempt_count + 1

    resource = await services.persist(
        "continuation",
        UploadContext(
            path_context=PathContext(
                project_id=project.id,
                session_id=session.id,
                iteration=session.iteration_count,
                stage_slug=stage.slug,
                file_type=file_type,
                model_slug=model_slug,
                attempt_count=job.attempt_count,
                document_key=document_key,
                is_continuation=True,
                turn_index=turn_index,
            ),
            content=prompt,
            user_id=project.user_id,
            source_contribution_id=target_id,
            step_name=recipe_step.step_name or None,
            branch_key=recipe_step.branch_key,
            parallel_group=recipe_step.parallel_group,
            description={"stage": stage.slug, "continues": target_id},
        ),
    )
    logger.info("Continuation prompt assembled for %s (turn %d)", target_id, turn_index)
    return AssembledPrompt(prompt_content=prompt, source_prompt_resource_id=resource.id)
