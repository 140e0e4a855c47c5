# src/recipe/rule_parser.py — v1
"""Normalize a stage's raw input-requirement declaration into typed rules.

Accepted shapes:
  - a list of rule objects (``inputs_required`` on a recipe step);
  - an object with a ``sources`` list (older ``input_artifact_rules`` form).

Each rule object carries a ``type`` tag: ``document`` / ``contribution``
(prior AI output), ``feedback`` (user feedback on a prior stage) or
``header_context`` (a planner artifact). Malformed declarations never raise:
they yield no rules, and individually malformed entries are skipped.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from promptassembler.recipe.models import (
    ContributionRule,
    FeedbackRule,
    HeaderContextRule,
    SourceRule,
)

logger = logging.getLogger(__name__)

_CONTRIBUTION_TAGS = frozenset({"document", "contribution"})


def parse_input_rules(raw: Any) -> list[SourceRule]:
    """Parse a raw input-requirement declaration.

    Args:
        raw: The declaration as stored (list, dict with ``sources``, or None).

    Returns:
        Normalized rules in declaration order. Empty when ``raw`` is absent
        or malformed.
    """
    if raw is None:
        return []

    entries: Any = raw
    if isinstance(raw, dict):
        entries = raw.get("sources")

    if not isinstance(entries, list):
        logger.warning(
            "Ignoring malformed input rule declaration of type %s",
            type(raw).__name__,
        )
        return []

    rules: list[SourceRule] = []
    for position, entry in enumerate(entries):
        rule = _parse_rule(entry)
        if rule is None:
            logger.warning("Skipping malformed input rule at position %d: %r", position, entry)
            continue
        rules.append(rule)
    return rules


def _parse_rule(entry: Any) -> SourceRule | None:
    """Convert one raw rule object, or return None if it is not usable."""
    if not isinstance(entry, dict):
        return None

    tag = entry.get("type")
    fields = {
        "stage_slug": entry.get("stage_slug") or entry.get("slug"),
        "document_key": entry.get("document_key"),
        "required": entry.get("required", True) is not False,
    }

    try:
        if tag in _CONTRIBUTION_TAGS:
            return ContributionRule(
                **fields,
                multiple=bool(entry.get("multiple", False)),
                section_header=entry.get("section_header"),
            )
        if tag == "feedback":
            return FeedbackRule(
                **fields,
                multiple=bool(entry.get("multiple", False)),
                section_header=entry.get("section_header"),
            )
        if tag == "header_context":
            return HeaderContextRule(**fields)
    except ValidationError:
        return None

    return None
