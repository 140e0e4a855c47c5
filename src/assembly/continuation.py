# src/assembly/continuation.py — v1
"""Rebuild the conversation history of a generation continued across calls.

Ordering is total and deterministic: the root fragment first, then fragments
with a ``turn_index`` ascending, then fragments without one by creation time.
The seed prompt stored at the stage root opens the history; each fragment
becomes an assistant turn, separated by synthetic "Please continue." user
turns. The history always ends on an assistant turn.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from promptassembler.core.errors import ReconstructionError
from promptassembler.core.models import ContributionRecord, Message
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore, StorageError
from promptassembler.storage.layout import SEED_PROMPT_FILE, stage_root_from_path

logger = logging.getLogger(__name__)

CONTINUE_PROMPT = "Please continue."


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def order_fragments(
    root: ContributionRecord, fragments: list[ContributionRecord]
) -> list[ContributionRecord]:
    """Root first, then indexed fragments ascending, then unindexed by creation."""
    others = [f for f in fragments if f.id != root.id]
    indexed = [
        f for f in others
        if f.document_relationships is not None
        and f.document_relationships.turn_index is not None
    ]
    unindexed = [f for f in others if f not in indexed]
    indexed.sort(key=lambda f: (f.document_relationships.turn_index, _as_aware(f.created_at)))  # type: ignore[union-attr]
    unindexed.sort(key=lambda f: _as_aware(f.created_at))
    return [root, *indexed, *unindexed]


class ContinuationReconstructor:
    """Turns persisted fragments back into an ordered message list."""

    def __init__(self, repository: BaseRepository, blob_store: BaseBlobStore) -> None:
        self._repo = repository
        self._blobs = blob_store

    async def reconstruct(self, root_id: str) -> list[Message]:
        """Build the message history rooted at ``root_id``.

        Raises:
            ReconstructionError: The root is missing or invalid, or any
                download fails. No partial history is returned.
        """
        root = await self._repo.get_contribution(root_id)
        if root is None:
            raise ReconstructionError(f"Root contribution {root_id} not found")
        if not root.stage:
            raise ReconstructionError(f"Root contribution {root_id} has no stage information")
        if not root.storage_bucket or not root.storage_path:
            raise ReconstructionError(f"Root contribution {root_id} is missing storage details")

        fragments = await self._repo.list_fragments_for_root(root.stage, root_id)
        ordered = order_fragments(root, fragments)

        seed_path = f"{stage_root_from_path(root.storage_path)}/{SEED_PROMPT_FILE}"
        try:
            seed = await self._blobs.download_text(root.storage_bucket, seed_path)
        except StorageError as e:
            logger.error("Seed prompt download failed for root %s: %s", root_id, e)
            raise ReconstructionError(
                f"Failed to download seed prompt for root contribution {root_id}: {e}"
            ) from e

        messages = [Message(role="user", content=seed)]
        for position, fragment in enumerate(ordered):
            content = await self._download_fragment(fragment)
            messages.append(Message(role="assistant", content=content, id=fragment.id))
            if position < len(ordered) - 1:
                messages.append(Message(role="user", content=CONTINUE_PROMPT))

        logger.info(
            "Reconstructed %d messages from %d fragments of root %s",
            len(messages), len(ordered), root_id,
        )
        return messages

    async def _download_fragment(self, fragment: ContributionRecord) -> str:
        try:
            if not fragment.has_storage_details:
                raise StorageError("missing storage details")
            return await self._blobs.download_text(
                fragment.storage_bucket or "", fragment.full_path
            )
        except StorageError as e:
            logger.error("Fragment download failed for %s: %s", fragment.id, e)
            raise ReconstructionError(
                f"Failed to download content for chunk {fragment.id}: {e}"
            ) from e
