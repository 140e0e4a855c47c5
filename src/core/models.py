# src/core/models.py — v2
"""Core domain models shared across the assembly engine.

Projects, sessions and stages describe *what* is being assembled; the record
types mirror rows of the document store; SourceDocument, DynamicContext,
HeaderContext and AssembledPrompt are the values flowing between the
gatherer, the renderer and the orchestrators.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from promptassembler.recipe.models import ContextForDocument, RecipeStep


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === PROJECT / SESSION / STAGE ===


class Project(BaseModel):
    """Stable identity for a unit of work."""

    id: str
    user_id: str
    project_name: str
    initial_user_prompt: str = ""
    selected_domain_id: str | None = None
    domain_name: str = ""
    user_domain_overlay_values: dict[str, Any] | None = None


class Session(BaseModel):
    """One execution of the pipeline against a Project."""

    id: str
    project_id: str
    selected_model_ids: list[str] = Field(default_factory=list)
    iteration_count: int = 1


class DomainOverlay(BaseModel):
    """A named set of key/value overrides applied during rendering."""

    overlay_values: dict[str, Any] | None = None
    description: str | None = None


class Stage(BaseModel):
    """A named pipeline phase carrying its recipe step and overlays."""

    id: str
    slug: str
    display_name: str = ""
    system_prompt_text: str | None = None
    domain_specific_prompt_overlays: list[DomainOverlay] = Field(default_factory=list)
    expected_output_artifacts: dict[str, Any] | None = None
    recipe_step: RecipeStep | None = None


# === DOCUMENT RELATIONSHIPS ===


class DocumentRelationships(BaseModel):
    """Links a persisted fragment to its root stage output.

    Persisted as the JSON bag ``{<stageSlug>: <rootId>, "isContinuation": true,
    "turnIndex": n}``; parsed into named fields here.
    """

    root_links: dict[str, str] = Field(default_factory=dict)
    is_continuation: bool = False
    turn_index: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_json_bag(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "root_links" in data:
            return data
        root_links: dict[str, str] = {}
        is_continuation = False
        turn_index: int | None = None
        for key, value in data.items():
            if key == "isContinuation":
                is_continuation = value is True
            elif key == "turnIndex":
                if isinstance(value, int) and not isinstance(value, bool):
                    turn_index = value
            elif isinstance(value, str):
                root_links[key] = value
        return {
            "root_links": root_links,
            "is_continuation": is_continuation,
            "turn_index": turn_index,
        }

    @model_serializer
    def _to_json_bag(self) -> dict[str, Any]:
        bag: dict[str, Any] = dict(self.root_links)
        if self.is_continuation:
            bag["isContinuation"] = True
        if self.turn_index is not None:
            bag["turnIndex"] = self.turn_index
        return bag

    def root_for(self, stage_slug: str) -> str | None:
        return self.root_links.get(stage_slug)


# === STORE RECORDS ===


class ContributionRecord(BaseModel):
    """A persisted unit of AI output (possibly one fragment of many)."""

    id: str
    session_id: str
    iteration_number: int = 1
    stage: str | None = None
    model_id: str | None = None
    model_name: str | None = None
    storage_bucket: str | None = None
    storage_path: str | None = None
    file_name: str | None = None
    contribution_type: str | None = None
    document_key: str | None = None
    is_latest_edit: bool = True
    document_relationships: DocumentRelationships | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_storage_details(self) -> bool:
        return bool(self.storage_bucket and self.storage_path)

    @property
    def full_path(self) -> str:
        """Storage path joined with the file name."""
        base = (self.storage_path or "").rstrip("/")
        if not self.file_name:
            return base
        return f"{base}/{self.file_name.lstrip('/')}"


class FeedbackRecord(BaseModel):
    """User feedback persisted against a stage iteration."""

    id: str
    session_id: str
    stage_slug: str
    iteration_number: int
    user_id: str
    storage_bucket: str
    storage_path: str
    file_name: str
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def full_path(self) -> str:
        return f"{self.storage_path.rstrip('/')}/{self.file_name.lstrip('/')}"


class SystemPromptRecord(BaseModel):
    """Prompt template row referenced by a recipe step."""

    id: str
    name: str = ""
    prompt_text: str | None = None
    document_template_id: str | None = None
    is_active: bool = True


class DocumentTemplateRecord(BaseModel):
    """Template-content row locating a template blob for a domain."""

    id: str
    domain_id: str
    name: str = ""
    storage_bucket: str
    storage_path: str
    file_name: str
    is_active: bool = True

    @property
    def full_path(self) -> str:
        return f"{self.storage_path.rstrip('/')}/{self.file_name.lstrip('/')}"


class ProjectResource(BaseModel):
    """Registration record for a persisted artifact (e.g. an assembled prompt)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    user_id: str | None = None
    session_id: str | None = None
    stage_slug: str | None = None
    iteration_number: int | None = None
    resource_type: str
    file_name: str
    storage_bucket: str
    storage_path: str
    mime_type: str = "text/markdown"
    size_bytes: int = 0
    resource_description: dict[str, Any] = Field(default_factory=dict)
    source_contribution_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


# === JOBS ===


class Job(BaseModel):
    """A queued unit of work; the payload stays a raw record until validated."""

    id: str
    job_type: str | None = None
    session_id: str | None = None
    stage_slug: str | None = None
    user_id: str | None = None
    attempt_count: int = 0
    payload: Any = None


# === ASSEMBLY VALUES ===


class Message(BaseModel):
    """Single message in a reconstructed conversation."""

    role: Literal["user", "assistant"]
    content: str
    id: str | None = None


class SourceDocumentMetadata(BaseModel):
    """Labels attached to a gathered document."""

    display_name: str
    header: str | None = None
    model_name: str | None = None
    document_key: str | None = None


class SourceDocument(BaseModel):
    """A gathered unit of prior output. Built fresh on every gather call."""

    id: str
    type: Literal["document", "feedback"]
    content: str
    metadata: SourceDocumentMetadata


class DynamicContext(BaseModel):
    """Everything the renderer may substitute for one prompt."""

    user_objective: str = ""
    domain: str = ""
    agent_count: int = 1
    context_description: str = ""
    original_user_request: str | None = None
    prior_stage_ai_outputs: str = ""
    prior_stage_user_feedback: str = ""
    deployment_context: Any = None
    reference_documents: Any = None
    constraint_boundaries: Any = None
    stakeholder_considerations: Any = None
    deliverable_format: Any = "Standard markdown format."
    source_documents: list[SourceDocument] = Field(default_factory=list)
    recipe_step: RecipeStep | None = None

    def as_variables(self) -> dict[str, Any]:
        """Scalar template variables (source documents and recipe step excluded)."""
        return self.model_dump(exclude={"source_documents", "recipe_step"})


class HeaderContext(BaseModel):
    """Planning artifact shared by a group of per-document generation steps."""

    model_config = ConfigDict(extra="allow")

    system_materials: dict[str, Any] = Field(default_factory=dict)
    header_context_artifact: dict[str, Any] | None = None
    context_for_documents: list[ContextForDocument] = Field(default_factory=list)

    def entry_for(self, document_key: str) -> ContextForDocument | None:
        return next(
            (d for d in self.context_for_documents if d.document_key == document_key),
            None,
        )


class AssembledPrompt(BaseModel):
    """Rendered prompt text plus the id of the persisted artifact holding it."""

    prompt_content: str
    source_prompt_resource_id: str
