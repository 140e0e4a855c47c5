# src/assembly/gatherer.py — v2
"""Artifact gatherer: resolve source rules into SourceDocuments.

Rules are executed one at a time, in declaration order. A required rule that
yields nothing, or whose content cannot be downloaded, aborts the whole call
with a GatherError; an optional rule that fails is logged and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from promptassembler.core.errors import GatherError
from promptassembler.core.models import ContributionRecord, SourceDocument, SourceDocumentMetadata
from promptassembler.recipe.models import ContributionRule, FeedbackRule, GatherableRule
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore, StorageError

logger = logging.getLogger(__name__)


def display_label(slug: str, display_names: dict[str, str]) -> str:
    """Human-readable stage label, falling back to the capitalized slug."""
    name = display_names.get(slug)
    if name:
        return name
    return slug[:1].upper() + slug[1:]


def feedback_iteration(iteration_number: int) -> int:
    """Feedback addresses the previous iteration's output (floored at 1)."""
    return max(iteration_number - 1, 1)


class InputGatherer:
    """Executes gatherable rules against a repository and a blob store."""

    def __init__(self, repository: BaseRepository, blob_store: BaseBlobStore) -> None:
        self._repo = repository
        self._blobs = blob_store

    async def gather(
        self,
        rules: Sequence[GatherableRule],
        session_id: str,
        iteration_number: int,
        user_id: str,
    ) -> list[SourceDocument]:
        """Resolve every rule into SourceDocuments.

        Args:
            rules: Contribution and feedback rules, in declaration order.
            session_id: Session whose artifacts are read.
            iteration_number: Current iteration.
            user_id: Owner of any feedback being read.

        Returns:
            Documents ordered by rule, then by retrieval order within a rule.

        Raises:
            GatherError: A required rule could not be satisfied.
        """
        if not rules:
            return []

        slugs = list(dict.fromkeys(r.stage_slug for r in rules))
        try:
            display_names = await self._repo.get_stage_display_names(slugs)
        except Exception as e:
            logger.warning("Could not resolve stage display names: %s", e)
            display_names = {}

        documents: list[SourceDocument] = []
        for rule in rules:
            label = display_label(rule.stage_slug, display_names)
            if isinstance(rule, ContributionRule):
                documents.extend(
                    await self._gather_contributions(rule, label, session_id, iteration_number)
                )
            elif isinstance(rule, FeedbackRule):
                doc = await self._gather_feedback(
                    rule, label, session_id, iteration_number, user_id
                )
                if doc is not None:
                    documents.append(doc)

        logger.debug("Gathered %d source documents from %d rules", len(documents), len(rules))
        return documents

    # --- Contributions ---

    async def _gather_contributions(
        self,
        rule: ContributionRule,
        label: str,
        session_id: str,
        iteration_number: int,
    ) -> list[SourceDocument]:
        try:
            rows = await self._repo.list_latest_contributions(
                session_id, iteration_number, rule.stage_slug
            )
        except Exception as e:
            if rule.required:
                raise GatherError(
                    f"Failed to retrieve REQUIRED AI contributions for stage '{label}'."
                ) from e
            logger.error("Failed to retrieve optional contributions for stage '%s': %s", label, e)
            return []

        if rule.document_key:
            rows = [r for r in rows if r.document_key == rule.document_key]

        if not rows:
            if rule.required:
                raise GatherError(f"Required contributions for stage '{label}' were not found.")
            logger.info("No optional contributions found for stage '%s'", label)
            return []

        documents: list[SourceDocument] = []
        for row in rows:
            content = await self._download_contribution(row, rule, label)
            if content is None:
                continue
            documents.append(
                SourceDocument(
                    id=row.id,
                    type="document",
                    content=content,
                    metadata=SourceDocumentMetadata(
                        display_name=label,
                        header=rule.section_header,
                        model_name=row.model_name,
                        document_key=row.document_key or rule.document_key,
                    ),
                )
            )
        return documents

    async def _download_contribution(
        self, row: ContributionRecord, rule: ContributionRule, label: str
    ) -> str | None:
        if not row.has_storage_details:
            if rule.required:
                raise GatherError(
                    f"REQUIRED Contribution {row.id} from stage '{label}' "
                    "is missing storage details."
                )
            logger.warning("Skipping contribution %s without storage details", row.id)
            return None

        try:
            return await self._blobs.download_text(row.storage_bucket or "", row.full_path)
        except StorageError as e:
            if rule.required:
                raise GatherError(
                    f"Failed to download REQUIRED content for contribution {row.id} "
                    f"from stage '{label}'. Original error: {e}"
                ) from e
            logger.error(
                "Failed to download optional contribution %s from stage '%s': %s",
                row.id, label, e,
            )
            return None

    # --- Feedback ---

    async def _gather_feedback(
        self,
        rule: FeedbackRule,
        label: str,
        session_id: str,
        iteration_number: int,
        user_id: str,
    ) -> SourceDocument | None:
        target_iteration = feedback_iteration(iteration_number)
        # One feedback record per stage and iteration; rule.document_key only labels it.
        try:
            record = await self._repo.get_feedback(
                session_id, rule.stage_slug, target_iteration, user_id
            )
        except Exception as e:
            if rule.required:
                raise GatherError(
                    f"Required feedback for stage '{label}' was not found."
                ) from e
            logger.error("Failed to retrieve optional feedback for stage '%s': %s", label, e)
            return None

        if record is None:
            if rule.required:
                raise GatherError(f"Required feedback for stage '{label}' was not found.")
            logger.info("No optional feedback for stage '%s' iteration %d", label, target_iteration)
            return None

        try:
            content = await self._blobs.download_text(record.storage_bucket, record.full_path)
        except StorageError as e:
            if rule.required:
                raise GatherError(
                    f"Failed to download REQUIRED feedback for stage '{label}' "
                    f"(slug: {rule.stage_slug}). Original error: {e}"
                ) from e
            logger.error("Failed to download optional feedback for stage '%s': %s", label, e)
            return None

        return SourceDocument(
            id=record.id,
            type="feedback",
            content=content,
            metadata=SourceDocumentMetadata(
                display_name=label,
                header=rule.section_header,
                document_key=rule.document_key,
            ),
        )
