# src/recipe/outputs.py — v1
"""Resolve a recipe step's ``outputs_required`` into one explicit variant.

Resolution order:
  1. list                                  -> LegacyArrayOutputs
  2. object with ``context_for_documents`` -> ContextForDocumentsOutputs
  3. any other object                      -> FilesToGenerateOutputs
  4. absent / unparseable                  -> None
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from promptassembler.recipe.models import (
    ContextForDocumentsOutputs,
    FilesToGenerateOutputs,
    LegacyArrayOutputs,
    OutputsRequired,
)

logger = logging.getLogger(__name__)


def parse_outputs_required(raw: Any) -> OutputsRequired | None:
    """Parse the raw output contract of a recipe step.

    Args:
        raw: The stored ``outputs_required`` value.

    Returns:
        The matching variant, or None when absent or malformed.
    """
    if raw is None:
        return None

    if isinstance(raw, list):
        return LegacyArrayOutputs(items=raw)

    if not isinstance(raw, dict):
        logger.warning("Ignoring outputs_required of type %s", type(raw).__name__)
        return None

    try:
        if "context_for_documents" in raw:
            return ContextForDocumentsOutputs(
                context_for_documents=raw.get("context_for_documents") or [],
                header_context_artifact=raw.get("header_context_artifact"),
                system_materials=raw.get("system_materials"),
            )
        return FilesToGenerateOutputs(
            files_to_generate=raw.get("files_to_generate") or [],
            documents=raw.get("documents") or [],
        )
    except ValidationError as exc:
        logger.warning("Malformed outputs_required ignored: %s", exc)
        return None
