# src/recipe/models.py — v1
"""Recipe step models: typed source rules, output contracts, RecipeStep.

The raw ``inputs_required`` and ``outputs_required`` declarations are parsed
exactly once, when a RecipeStep is constructed; every consumer reads the
typed ``rules`` and ``outputs`` properties instead of re-inspecting JSON.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

# === SOURCE RULES ===


class ContributionRule(BaseModel):
    """Gather the latest AI contributions produced by a prior stage."""

    kind: Literal["contribution"] = "contribution"
    stage_slug: str
    document_key: str | None = None
    required: bool = True
    multiple: bool = False
    section_header: str | None = None


class FeedbackRule(BaseModel):
    """Gather the user's feedback on a prior stage's previous iteration."""

    kind: Literal["feedback"] = "feedback"
    stage_slug: str
    document_key: str | None = None
    required: bool = True
    multiple: bool = False
    section_header: str | None = None


class HeaderContextRule(BaseModel):
    """Declares that the step consumes a planner HeaderContext artifact."""

    kind: Literal["header_context"] = "header_context"
    stage_slug: str | None = None
    document_key: str | None = None
    required: bool = True


SourceRule = Union[ContributionRule, FeedbackRule, HeaderContextRule]
GatherableRule = Union[ContributionRule, FeedbackRule]


# === OUTPUT CONTRACTS ===


class ContextForDocument(BaseModel):
    """Per-document alignment payload emitted by a planning step."""

    model_config = ConfigDict(extra="allow")

    document_key: str
    content_to_include: Any = Field(default_factory=dict)


class FileToGenerate(BaseModel):
    """One file an execution step must produce."""

    model_config = ConfigDict(extra="allow")

    from_document_key: str
    template_filename: str | None = None


class OutputDocument(BaseModel):
    """Structural description of a document an execution step produces."""

    model_config = ConfigDict(extra="allow")

    document_key: str
    template_filename: str | None = None
    artifact_class: str | None = None
    file_type: str | None = None
    content_to_include: dict[str, Any] | None = None


class FilesToGenerateOutputs(BaseModel):
    """Execution contract: concrete documents and files to generate."""

    kind: Literal["files_to_generate"] = "files_to_generate"
    files_to_generate: list[FileToGenerate] = Field(default_factory=list)
    documents: list[OutputDocument] = Field(default_factory=list)

    def file_for(self, document_key: str) -> FileToGenerate | None:
        return next(
            (f for f in self.files_to_generate if f.from_document_key == document_key),
            None,
        )

    def required_keys_for(self, document_key: str) -> list[str]:
        """Keys the HeaderContext must supply for ``document_key``."""
        for doc in self.documents:
            if doc.document_key == document_key and doc.content_to_include:
                return list(doc.content_to_include.keys())
        return []


class ContextForDocumentsOutputs(BaseModel):
    """Planning contract: a HeaderContext with per-document alignment payloads."""

    kind: Literal["context_for_documents"] = "context_for_documents"
    context_for_documents: list[ContextForDocument] = Field(default_factory=list)
    header_context_artifact: dict[str, Any] | None = None
    system_materials: dict[str, Any] | None = None


class LegacyArrayOutputs(BaseModel):
    """Older array form: a bare list of output descriptors."""

    kind: Literal["legacy_array"] = "legacy_array"
    items: list[Any] = Field(default_factory=list)


OutputsRequired = Union[
    FilesToGenerateOutputs, ContextForDocumentsOutputs, LegacyArrayOutputs
]


# === RECIPE STEP ===


class RecipeStep(BaseModel):
    """Declarative description of one unit of pipeline work.

    Immutable once defined for a run.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = ""
    step_key: str = ""
    step_slug: str = ""
    step_name: str = ""
    job_type: str | None = None
    prompt_type: str | None = None
    prompt_template_id: str | None = None
    output_type: str | None = None
    branch_key: str | None = None
    parallel_group: int | None = None
    processing_strategy: dict[str, Any] | None = None
    inputs_required: Any = None
    outputs_required: Any = None

    _rules: list[SourceRule] = PrivateAttr(default_factory=list)
    _outputs: OutputsRequired | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        from promptassembler.recipe.outputs import parse_outputs_required
        from promptassembler.recipe.rule_parser import parse_input_rules

        self._rules = parse_input_rules(self.inputs_required)
        self._outputs = parse_outputs_required(self.outputs_required)

    @property
    def rules(self) -> list[SourceRule]:
        """Normalized input rules, in declaration order."""
        return list(self._rules)

    @property
    def gatherable_rules(self) -> list[GatherableRule]:
        """Rules the artifact gatherer executes (contributions and feedback)."""
        return [
            r for r in self._rules
            if isinstance(r, (ContributionRule, FeedbackRule))
        ]

    @property
    def outputs(self) -> OutputsRequired | None:
        return self._outputs

    @property
    def requires_header_context(self) -> bool:
        return any(isinstance(r, HeaderContextRule) for r in self._rules)

    @property
    def has_task_isolation_strategy(self) -> bool:
        """True when the step declares a multi-stage processing strategy."""
        strategy = self.processing_strategy or {}
        return strategy.get("type") == "task_isolation"
