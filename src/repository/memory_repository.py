# src/repository/memory_repository.py — v1
"""In-process record store.

Complete implementation of BaseRepository over plain lists, used by tests,
local runs and fixtures. ``from_dict`` loads a JSON fixture document of the
form ``{"stages": [...], "contributions": [...], "feedback": [...],
"system_prompts": [...], "document_templates": [...]}``.
"""

from __future__ import annotations

import logging
from typing import Any

from promptassembler.core.models import (
    ContributionRecord,
    DocumentTemplateRecord,
    FeedbackRecord,
    ProjectResource,
    Stage,
    SystemPromptRecord,
)
from promptassembler.repository.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MemoryRepository(BaseRepository):
    """Record store held entirely in memory."""

    def __init__(
        self,
        stages: list[Stage] | None = None,
        contributions: list[ContributionRecord] | None = None,
        feedback: list[FeedbackRecord] | None = None,
        system_prompts: list[SystemPromptRecord] | None = None,
        document_templates: list[DocumentTemplateRecord] | None = None,
    ) -> None:
        self.stages: list[Stage] = list(stages or [])
        self.contributions: list[ContributionRecord] = list(contributions or [])
        self.feedback: list[FeedbackRecord] = list(feedback or [])
        self.system_prompts: list[SystemPromptRecord] = list(system_prompts or [])
        self.document_templates: list[DocumentTemplateRecord] = list(
            document_templates or []
        )
        self.resources: list[ProjectResource] = []

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryRepository:
        """Build a repository from a fixture document."""
        return cls(
            stages=[Stage.model_validate(s) for s in data.get("stages", [])],
            contributions=[
                ContributionRecord.model_validate(c) for c in data.get("contributions", [])
            ],
            feedback=[FeedbackRecord.model_validate(f) for f in data.get("feedback", [])],
            system_prompts=[
                SystemPromptRecord.model_validate(p) for p in data.get("system_prompts", [])
            ],
            document_templates=[
                DocumentTemplateRecord.model_validate(t)
                for t in data.get("document_templates", [])
            ],
        )

    # --- Stages ---

    async def get_stage_display_names(self, slugs: list[str]) -> dict[str, str]:
        wanted = set(slugs)
        return {
            s.slug: s.display_name
            for s in self.stages
            if s.slug in wanted and s.display_name
        }

    # --- Contributions ---

    async def list_latest_contributions(
        self, session_id: str, iteration_number: int, stage_slug: str
    ) -> list[ContributionRecord]:
        rows = [
            c for c in self.contributions
            if c.session_id == session_id
            and c.iteration_number == iteration_number
            and c.stage == stage_slug
            and c.is_latest_edit
        ]
        return sorted(rows, key=lambda c: c.created_at)

    async def get_contribution(self, contribution_id: str) -> ContributionRecord | None:
        return next((c for c in self.contributions if c.id == contribution_id), None)

    async def list_fragments_for_root(
        self, stage_slug: str, root_id: str
    ) -> list[ContributionRecord]:
        return [
            c for c in self.contributions
            if c.document_relationships is not None
            and c.document_relationships.root_for(stage_slug) == root_id
        ]

    # --- Feedback ---

    async def get_feedback(
        self,
        session_id: str,
        stage_slug: str,
        iteration_number: int,
        user_id: str,
    ) -> FeedbackRecord | None:
        matches = [
            f for f in self.feedback
            if f.session_id == session_id
            and f.stage_slug == stage_slug
            and f.iteration_number == iteration_number
            and f.user_id == user_id
        ]
        if len(matches) > 1:
            logger.warning(
                "Multiple feedback rows for %s iteration %d; using the newest",
                stage_slug, iteration_number,
            )
        return max(matches, key=lambda f: f.created_at) if matches else None

    # --- Templates ---

    async def get_system_prompt(self, prompt_id: str) -> SystemPromptRecord | None:
        return next(
            (p for p in self.system_prompts if p.id == prompt_id and p.is_active),
            None,
        )

    async def get_document_template(
        self, template_id: str, domain_id: str | None
    ) -> DocumentTemplateRecord | None:
        return next(
            (
                t for t in self.document_templates
                if t.id == template_id and t.domain_id == domain_id and t.is_active
            ),
            None,
        )

    # --- Resources ---

    async def insert_resource(self, resource: ProjectResource) -> ProjectResource:
        self.resources.append(resource)
        logger.debug("Registered resource %s (%s)", resource.id, resource.resource_type)
        return resource
