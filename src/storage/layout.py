# src/storage/layout.py — v3
"""Storage path conventions for assembled prompts and planner artifacts.

Stage root::

    {project_id}/session_{session_id[:8]}/iteration_{n}/{stage_dir}

where ``stage_dir`` is the numbered directory of a known stage
(``1_thesis`` .. ``5_paralysis``) or the slug itself. Seed prompts sit at the
stage root; every intermediate artifact lives under ``{stage_root}/_work/``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

WORK_DIR = "_work"
PROMPTS_DIR = "prompts"
CONTEXT_DIR = "context"
SEED_PROMPT_FILE = "seed_prompt.md"

STAGE_DIRECTORIES: dict[str, str] = {
    "thesis": "1_thesis",
    "antithesis": "2_antithesis",
    "synthesis": "3_synthesis",
    "parenthesis": "4_parenthesis",
    "paralysis": "5_paralysis",
}

_UNSAFE_CHARS = re.compile(r"[^a-z0-9._-]+")


class FileType(str, Enum):
    """Artifact kinds this core writes or locates."""

    SEED_PROMPT = "seed_prompt"
    PLANNER_PROMPT = "planner_prompt"
    TURN_PROMPT = "turn_prompt"
    CONTINUATION_PROMPT = "continuation_prompt"
    HEADER_CONTEXT = "header_context"


@dataclass(frozen=True)
class PathContext:
    """Identifiers needed to place one artifact."""

    project_id: str
    session_id: str
    iteration: int
    stage_slug: str
    file_type: FileType
    model_slug: str | None = None
    attempt_count: int = 0
    document_key: str | None = None
    is_continuation: bool = False
    turn_index: int | None = None


@dataclass(frozen=True)
class StoragePath:
    storage_path: str
    file_name: str

    @property
    def full_path(self) -> str:
        return f"{self.storage_path}/{self.file_name}"


def sanitize_for_path(value: str) -> str:
    """Lowercase and replace characters unsafe in object keys with '_'."""
    return _UNSAFE_CHARS.sub("_", value.strip().lower()).strip("_")


def stage_directory(stage_slug: str) -> str:
    return STAGE_DIRECTORIES.get(stage_slug, sanitize_for_path(stage_slug))


def stage_root(project_id: str, session_id: str, iteration: int, stage_slug: str) -> str:
    """Return the root directory of a stage iteration."""
    return (
        f"{project_id}/session_{session_id[:8]}/iteration_{iteration}/"
        f"{stage_directory(stage_slug)}"
    )


def stage_root_from_path(path: str) -> str:
    """Strip the ``/_work`` segment and everything below it from a stored path.

    Only a whole ``_work`` segment counts; ``_workers`` or ``_work2`` are
    ordinary directories.
    """
    path = path.rstrip("/")
    if path.endswith(f"/{WORK_DIR}"):
        return path[: -len(WORK_DIR) - 1]
    index = path.find(f"/{WORK_DIR}/")
    if index == -1:
        return path
    return path[:index]


def _continuation_part(ctx: PathContext) -> str:
    if not ctx.is_continuation:
        return ""
    return f"_continuation_{ctx.turn_index if ctx.turn_index is not None else 0}"


def construct_storage_path(ctx: PathContext) -> StoragePath:
    """Compute the storage directory and file name for an artifact.

    Raises:
        ValueError: If an identifier required by the file type is missing.
    """
    root = stage_root(ctx.project_id, ctx.session_id, ctx.iteration, ctx.stage_slug)

    if ctx.file_type is FileType.SEED_PROMPT:
        return StoragePath(root, SEED_PROMPT_FILE)

    if not ctx.model_slug:
        raise ValueError(f"model_slug is required for {ctx.file_type.value} paths")
    prefix = f"{sanitize_for_path(ctx.model_slug)}_{ctx.attempt_count}"
    continuation = _continuation_part(ctx)

    if ctx.file_type is FileType.HEADER_CONTEXT:
        return StoragePath(
            f"{root}/{WORK_DIR}/{CONTEXT_DIR}", f"{prefix}_header_context.json"
        )

    prompts_dir = f"{root}/{WORK_DIR}/{PROMPTS_DIR}"

    if ctx.file_type is FileType.PLANNER_PROMPT:
        return StoragePath(prompts_dir, f"{prefix}_planner{continuation}_prompt.md")

    if ctx.file_type is FileType.TURN_PROMPT:
        if not ctx.document_key:
            raise ValueError("document_key is required for turn_prompt paths")
        doc = sanitize_for_path(ctx.document_key)
        return StoragePath(prompts_dir, f"{prefix}_{doc}{continuation}_prompt.md")

    if ctx.file_type is FileType.CONTINUATION_PROMPT:
        doc = f"_{sanitize_for_path(ctx.document_key)}" if ctx.document_key else ""
        continuation = continuation or "_continuation_0"
        return StoragePath(prompts_dir, f"{prefix}{doc}{continuation}_prompt.md")

    raise ValueError(f"Unsupported file type: {ctx.file_type!r}")
