# src/assembly/template_resolver.py — v1
"""Resolve a recipe step's prompt template through explicit indirection.

    recipe_step.prompt_template_id
        -> SystemPromptRecord
            -> inline prompt_text            (only when allowed)
            -> document_template_id
                -> active DocumentTemplateRecord for the project's domain
                    -> blob download

No name- or pattern-based lookup is ever attempted.
"""

from __future__ import annotations

import logging

from promptassembler.core.errors import PreconditionError, TemplateResolutionError
from promptassembler.core.models import Project
from promptassembler.recipe.models import RecipeStep
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore, StorageError

logger = logging.getLogger(__name__)


class TemplateResolver:
    """Fetches template text for recipe steps."""

    def __init__(self, repository: BaseRepository, blob_store: BaseBlobStore) -> None:
        self._repo = repository
        self._blobs = blob_store

    async def resolve(
        self,
        recipe_step: RecipeStep,
        project: Project,
        allow_inline: bool = False,
    ) -> str:
        """Return the template text for ``recipe_step``.

        Args:
            recipe_step: Step carrying ``prompt_template_id``.
            project: Supplies the domain used to select the document template.
            allow_inline: Accept a system prompt's inline ``prompt_text``.

        Raises:
            PreconditionError: The step has no ``prompt_template_id``.
            TemplateResolutionError: Any link in the chain is missing, or the
                template blob cannot be downloaded.
        """
        template_id = recipe_step.prompt_template_id
        if not template_id:
            raise PreconditionError(
                f"Recipe step '{recipe_step.step_name or recipe_step.id}' "
                "is missing prompt_template_id."
            )

        prompt = await self._repo.get_system_prompt(template_id)
        if prompt is None:
            raise TemplateResolutionError(
                f"Failed to load system prompt for prompt_template_id '{template_id}': not found"
            )

        if prompt.document_template_id:
            return await self._download_document_template(prompt.document_template_id, project)

        if allow_inline and prompt.prompt_text:
            logger.debug("Using inline prompt text of system prompt %s", prompt.id)
            return prompt.prompt_text

        raise TemplateResolutionError(
            f"System prompt '{prompt.id}' is missing document_template_id. "
            "Prompts must resolve templates via document_template_id."
        )

    async def _download_document_template(self, template_id: str, project: Project) -> str:
        if not project.selected_domain_id:
            raise TemplateResolutionError(
                f"Project '{project.id}' is missing selected_domain_id. "
                "Template lookup requires domain_id."
            )

        row = await self._repo.get_document_template(template_id, project.selected_domain_id)
        if row is None:
            raise TemplateResolutionError(
                f"Failed to resolve document template '{template_id}' "
                f"for domain_id '{project.selected_domain_id}': not found"
            )

        try:
            return await self._blobs.download_text(row.storage_bucket, row.full_path)
        except StorageError as e:
            raise TemplateResolutionError(
                f"Failed to download prompt template '{row.full_path}' "
                f"from bucket '{row.storage_bucket}': {e}"
            ) from e
