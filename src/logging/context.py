# src/logging/context.py — v2
"""Contextual logging support: attach project, session, stage and job ids to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per assembly call.
_project_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project_id", default=None
)
_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_stage_slug: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage_slug", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    project_id: str | None = None
    session_id: str | None = None
    stage_slug: str | None = None
    job_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        project_id=_project_id.get(),
        session_id=_session_id.get(),
        stage_slug=_stage_slug.get(),
        job_id=_job_id.get(),
    )


def set_assembly_context(
    project_id: str | None,
    session_id: str | None,
    stage_slug: str | None,
    job_id: str | None = None,
) -> None:
    """Set correlating identifiers (called on entry of every assembly call)."""
    _project_id.set(project_id)
    _session_id.set(session_id)
    _stage_slug.set(stage_slug)
    _job_id.set(job_id)


def clear_context() -> None:
    """Reset all context variables."""
    _project_id.set(None)
    _session_id.set(None)
    _stage_slug.set(None)
    _job_id.set(None)
