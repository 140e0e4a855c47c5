# src/assembly/renderer.py — v1
"""Template renderer.

Grammar:
  - ``{{name}}`` / ``{{a.b}}``: placeholder.
  - ``{{#section:name}}...{{/section:name}}``: conditional section.

Placeholder lookup order: flattened source documents, the dynamic context,
then the merged overlays (system overlay first, user overlay wins). A
``None`` value falls through to the next layer. A line holding a placeholder
that resolves nowhere is deleted entirely. Substituted values are never
re-scanned, so rendering the same inputs twice gives identical output.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from promptassembler.assembly.context_builder import merge_overlays
from promptassembler.assembly.source_variables import flatten_source_documents
from promptassembler.core.errors import PreconditionError, RenderError
from promptassembler.core.models import DynamicContext, Stage

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")
SECTION = re.compile(
    r"\{\{#section:([\w.]+)\}\}\n?(.*?)\{\{/section:\1\}\}\n?",
    re.DOTALL,
)

STYLE_GUIDE_KEY = "style_guide_markdown"
ARTIFACTS_KEY = "expected_output_artifacts_json"

_MISSING = object()


def _has_section(template: str, name: str) -> bool:
    return f"{{{{#section:{name}}}}}" in template


def _is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return str(value)


class _Scope:
    """Layered variable lookup with dot-notation traversal."""

    def __init__(self, layers: list[Mapping[str, Any]]) -> None:
        self._layers = layers

    def get(self, name: str) -> Any:
        for layer in self._layers:
            value = _lookup(layer, name)
            if value is not _MISSING and value is not None:
                return value
        return _MISSING


def _lookup(layer: Mapping[str, Any], name: str) -> Any:
    if name in layer:
        return layer[name]
    if "." not in name:
        return _MISSING
    current: Any = layer
    for part in name.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif hasattr(current, "model_dump"):
            current = current.model_dump()
            if part not in current:
                return _MISSING
            current = current[part]
        else:
            return _MISSING
    return current


def _context_variables(context: DynamicContext | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(context, DynamicContext):
        return context.as_variables()
    variables = dict(context)
    variables.pop("source_documents", None)
    variables.pop("recipe_step", None)
    return variables


def _check_preconditions(template: str, overlays: Mapping[str, Any]) -> None:
    if not template or not template.strip():
        raise PreconditionError("Prompt template text is empty.")
    for key in (STYLE_GUIDE_KEY, ARTIFACTS_KEY):
        if _has_section(template, key) and not _is_truthy(overlays.get(key)):
            raise PreconditionError(
                f"Template requires '{key}' but no non-empty overlay value was provided."
            )


def _render_sections(template: str, scope: _Scope) -> str:
    def replace(match: re.Match[str]) -> str:
        value = scope.get(match.group(1))
        if value is not _MISSING and _is_truthy(value):
            return match.group(2)
        return ""

    previous = None
    text = template
    while previous != text:
        previous = text
        text = SECTION.sub(replace, text)
    return text


def _render_placeholders(text: str, scope: _Scope) -> str:
    lines: list[str] = []
    for line in text.splitlines(keepends=True):
        names = PLACEHOLDER.findall(line)
        if not names:
            lines.append(line)
            continue
        values = {name: scope.get(name) for name in names}
        unresolved = [n for n, v in values.items() if v is _MISSING]
        if unresolved:
            logger.debug("Dropping template line with unresolved %s", ", ".join(unresolved))
            continue
        lines.append(
            PLACEHOLDER.sub(lambda m: _stringify(values[m.group(1)]), line)
        )
    return "".join(lines)


def render_prompt(
    template_text: str,
    context: DynamicContext | Mapping[str, Any],
    system_overlay: Mapping[str, Any] | None = None,
    user_overlay: Mapping[str, Any] | None = None,
    source_variables: Mapping[str, Any] | None = None,
) -> str:
    """Render a template against a context and two overlay layers.

    Args:
        template_text: Template using the placeholder grammar.
        context: Dynamic context, or a plain mapping of variables.
        system_overlay: Stage default overlay values.
        user_overlay: Project overlay values; wins over ``system_overlay``.
        source_variables: Pre-flattened source variables. Derived from
            ``context.source_documents`` when omitted.

    Returns:
        The fully rendered prompt.

    Raises:
        PreconditionError: Empty template, or a required overlay is missing.
        RenderError: Any other failure while rendering.
    """
    overlays = merge_overlays(system_overlay, user_overlay)
    _check_preconditions(template_text, overlays)

    try:
        if source_variables is None:
            documents = context.source_documents if isinstance(context, DynamicContext) else []
            source_variables = flatten_source_documents(documents)
        scope = _Scope([source_variables, _context_variables(context), overlays])
        text = _render_sections(template_text, scope)
        return _render_placeholders(text, scope)
    except PreconditionError:
        raise
    except Exception as e:
        logger.error("Prompt rendering failed: %s", e)
        raise RenderError(f"Failed to render prompt: {e}") from e


def render_stage(
    stage: Stage,
    context: DynamicContext | Mapping[str, Any],
    user_overlay: Mapping[str, Any] | None,
    template_text: str | None = None,
    source_variables: Mapping[str, Any] | None = None,
) -> str:
    """Render a stage's prompt with its default overlay layering.

    The stage's first domain overlay is the system overlay; its
    ``expected_output_artifacts`` are exposed as
    ``expected_output_artifacts_json``. ``template_text`` defaults to the
    stage's system prompt.

    Raises:
        PreconditionError: No template text is available for the stage.
        RenderError: Rendering failed.
    """
    text = template_text if template_text is not None else stage.system_prompt_text
    if not text:
        raise PreconditionError(f"missing system prompt text for stage {stage.slug}")

    system_overlay: dict[str, Any] = {}
    if stage.domain_specific_prompt_overlays:
        system_overlay.update(stage.domain_specific_prompt_overlays[0].overlay_values or {})
    if stage.expected_output_artifacts:
        system_overlay[ARTIFACTS_KEY] = stage.expected_output_artifacts

    return render_prompt(text, context, system_overlay, user_overlay, source_variables)
