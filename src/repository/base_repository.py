# src/repository/base_repository.py — v1
"""Abstract record-store interface.

The only structured-data dependency of the assembly core. Injected once at
the orchestrator boundary; the gatherer, reconstructor and template resolver
depend on this interface, never on a concrete client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from promptassembler.core.models import (
    ContributionRecord,
    DocumentTemplateRecord,
    FeedbackRecord,
    ProjectResource,
    SystemPromptRecord,
)


class BaseRepository(ABC):
    """Unified interface for record-store backends."""

    @abstractmethod
    async def get_stage_display_names(self, slugs: list[str]) -> dict[str, str]:
        """Map stage slugs to display names; unknown slugs are omitted."""

    @abstractmethod
    async def list_latest_contributions(
        self, session_id: str, iteration_number: int, stage_slug: str
    ) -> list[ContributionRecord]:
        """Latest-edit contributions for a stage iteration, oldest first."""

    @abstractmethod
    async def get_contribution(self, contribution_id: str) -> ContributionRecord | None:
        """Fetch one contribution by id."""

    @abstractmethod
    async def list_fragments_for_root(
        self, stage_slug: str, root_id: str
    ) -> list[ContributionRecord]:
        """Contributions whose relationships link ``root_id`` under ``stage_slug``."""

    @abstractmethod
    async def get_feedback(
        self,
        session_id: str,
        stage_slug: str,
        iteration_number: int,
        user_id: str,
    ) -> FeedbackRecord | None:
        """Fetch the single feedback record for a stage iteration."""

    @abstractmethod
    async def get_system_prompt(self, prompt_id: str) -> SystemPromptRecord | None:
        """Fetch an active system-prompt row."""

    @abstractmethod
    async def get_document_template(
        self, template_id: str, domain_id: str | None
    ) -> DocumentTemplateRecord | None:
        """Fetch the active document template with this id for a domain."""

    @abstractmethod
    async def insert_resource(self, resource: ProjectResource) -> ProjectResource:
        """Register a persisted artifact and return the stored record."""
