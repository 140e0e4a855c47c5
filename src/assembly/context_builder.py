# src/assembly/context_builder.py — v1
"""Build the DynamicContext for one stage from project, session and gathered inputs.

Overlay precedence (lowest to highest, last writer wins per key):
  1. project-level overlay values (``Project.user_domain_overlay_values``)
  2. each stage-level overlay, in declaration order

Only OVERLAY_CONTEXT_KEYS are promoted onto the context; other keys are
left to the renderer's overlay layer.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from promptassembler.assembly.gatherer import InputGatherer
from promptassembler.core.errors import ContextBuildError
from promptassembler.core.models import DynamicContext, Project, Session, SourceDocument, Stage

logger = logging.getLogger(__name__)

OVERLAY_CONTEXT_KEYS: tuple[str, ...] = (
    "deployment_context",
    "reference_documents",
    "constraint_boundaries",
    "stakeholder_considerations",
    "deliverable_format",
)

DEFAULT_DELIVERABLE_FORMAT = "Standard markdown format."
DEFAULT_MODEL_LABEL = "AI Model"


def merge_overlays(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge overlay layers left to right; later layers win per key.

    ``None`` layers are skipped. Values are not deep-merged.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


def stage_overlay_layers(stage: Stage) -> list[dict[str, Any] | None]:
    return [o.overlay_values for o in stage.domain_specific_prompt_overlays]


def format_prior_outputs(documents: list[SourceDocument]) -> str:
    """Render gathered contributions as one markdown digest.

    Consecutive documents from the same source share a block header.
    """
    parts: list[str] = []
    current_block: tuple[str, str | None] | None = None
    for doc in documents:
        if doc.type != "document":
            continue
        block = (doc.metadata.display_name, doc.metadata.header)
        if block != current_block:
            header = doc.metadata.header or (
                f"### Contributions from {doc.metadata.display_name} Stage"
            )
            parts.append(f"{header}\n\n")
            current_block = block
        model = doc.metadata.model_name or DEFAULT_MODEL_LABEL
        parts.append(f"#### Contribution from {model}\n{doc.content}\n\n")
    return "".join(parts)


def format_prior_feedback(documents: list[SourceDocument]) -> str:
    """Render gathered feedback as one markdown digest."""
    parts: list[str] = []
    for doc in documents:
        if doc.type != "feedback":
            continue
        if doc.metadata.header:
            parts.append(f"{doc.metadata.header}\n---\n\n{doc.content}\n\n---\n")
        else:
            parts.append(
                f"---\n### User Feedback on Previous Stage: {doc.metadata.display_name}\n"
                f"---\n\n{doc.content}\n\n---\n"
            )
    return "".join(parts)


async def build_dynamic_context(
    gatherer: InputGatherer,
    project: Project,
    session: Session,
    stage: Stage,
    initial_prompt: str,
    iteration_number: int,
    default_deliverable_format: str = DEFAULT_DELIVERABLE_FORMAT,
) -> DynamicContext:
    """Gather inputs and assemble the dynamic context for a stage.

    Raises:
        ContextBuildError: Any failure while gathering inputs, with the
            original error chained.
    """
    recipe_step = stage.recipe_step
    rules = recipe_step.gatherable_rules if recipe_step is not None else []

    try:
        documents = await gatherer.gather(
            rules, session.id, iteration_number, project.user_id
        )
    except Exception as e:
        logger.error(
            "Failed to gather inputs for stage %s (project=%s, session=%s): %s",
            stage.slug, project.id, session.id, e,
        )
        raise ContextBuildError(
            f"Failed to gather inputs for prompt assembly: {e}"
        ) from e

    overlays = merge_overlays(project.user_domain_overlay_values, *stage_overlay_layers(stage))
    promoted = {key: overlays.get(key) for key in OVERLAY_CONTEXT_KEYS}
    if promoted["deliverable_format"] is None:
        promoted["deliverable_format"] = default_deliverable_format

    original_request = None
    if recipe_step is not None and recipe_step.has_task_isolation_strategy:
        original_request = initial_prompt

    return DynamicContext(
        user_objective=project.project_name,
        domain=project.domain_name,
        agent_count=len(session.selected_model_ids),
        context_description=initial_prompt,
        original_user_request=original_request,
        prior_stage_ai_outputs=format_prior_outputs(documents),
        prior_stage_user_feedback=format_prior_feedback(documents),
        source_documents=documents,
        recipe_step=recipe_step,
        **promoted,
    )
