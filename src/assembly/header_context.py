# src/assembly/header_context.py — v1
"""Load a planner HeaderContext artifact from its contribution record."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from promptassembler.core.errors import HeaderContextError
from promptassembler.core.models import HeaderContext
from promptassembler.repository.base_repository import BaseRepository
from promptassembler.storage.base_blob_store import BaseBlobStore, StorageError

logger = logging.getLogger(__name__)

HEADER_CONTEXT_TYPE = "header_context"


async def load_header_context(
    repository: BaseRepository,
    blob_store: BaseBlobStore,
    contribution_id: str,
) -> HeaderContext:
    """Fetch, download and parse the HeaderContext stored by a planning step.

    Raises:
        HeaderContextError: The record is missing, of the wrong type, lacks
            storage details, or its content is not a valid HeaderContext.
    """
    record = await repository.get_contribution(contribution_id)
    if record is None:
        raise HeaderContextError(
            f"Header context contribution with id '{contribution_id}' not found."
        )
    if record.contribution_type != HEADER_CONTEXT_TYPE:
        raise HeaderContextError(
            f"Contribution '{contribution_id}' is not a header_context contribution "
            f"(found '{record.contribution_type}')."
        )
    if not record.has_storage_details or not record.file_name:
        raise HeaderContextError(
            f"Header context contribution '{contribution_id}' is missing storage details."
        )

    try:
        raw = await blob_store.download_text(record.storage_bucket or "", record.full_path)
    except StorageError as e:
        raise HeaderContextError(
            f"Failed to download header context file from storage: {e}"
        ) from e

    try:
        return HeaderContext.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("Header context %s is not parseable: %s", contribution_id, e)
        raise HeaderContextError(
            f"Failed to parse header context content as JSON: {e}"
        ) from e
