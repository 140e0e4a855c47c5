# src/assembly/payload.py — v2
"""Precondition checks shared by the orchestrators.

Every check here runs before any I/O and raises PreconditionError.
"""

from __future__ import annotations

from typing import Any

from promptassembler.core.errors import PreconditionError
from promptassembler.core.models import Job, Session, Stage
from promptassembler.recipe.models import RecipeStep


def require_models(session: Session) -> None:
    if not session.selected_model_ids:
        raise PreconditionError("Session must have at least one selected model.")


def require_payload(job: Job) -> dict[str, Any]:
    """Return the job payload after the common shape checks."""
    payload = job.payload
    if not isinstance(payload, dict):
        raise PreconditionError("Job payload is missing or not a valid record.")
    if "step_info" in payload:
        raise PreconditionError("Legacy 'step_info' object found in job payload.")
    return payload


def require_string(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise PreconditionError(f"Job payload is missing '{key}'.")
    return value


def optional_string(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PreconditionError(f"Job payload {key} must be a string.")
    return value or None


def require_inputs(payload: dict[str, Any]) -> dict[str, Any]:
    inputs = payload.get("inputs")
    if not isinstance(inputs, dict):
        raise PreconditionError("Job payload inputs is missing or not a valid record.")
    return inputs


def require_recipe_step(stage: Stage) -> RecipeStep:
    if stage.recipe_step is None:
        raise PreconditionError("Stage context is missing recipe_step.")
    return stage.recipe_step
