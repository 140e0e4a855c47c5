# src/core/errors.py — v1
"""Exception hierarchy for prompt assembly.

Two families: precondition failures (caller or data error, raised before any
I/O) and operational failures (store, network, parse, persistence), which are
logged where they occur and re-raised with a stable message prefix.
"""

from __future__ import annotations

PRECONDITION_PREFIX = "PRECONDITION_FAILED:"


class PromptAssemblyError(Exception):
    """Base class for every error raised by the assembly core."""


class PreconditionError(PromptAssemblyError):
    """Malformed input detected before any side effect.

    The message is always prefixed with ``PRECONDITION_FAILED:``.
    """

    def __init__(self, message: str) -> None:
        if not message.startswith(PRECONDITION_PREFIX):
            message = f"{PRECONDITION_PREFIX} {message}"
        super().__init__(message)


class GatherError(PromptAssemblyError):
    """A required input artifact could not be resolved or downloaded."""


class ContextBuildError(PromptAssemblyError):
    """Wraps any failure raised while gathering inputs for a context."""


class RenderError(PromptAssemblyError):
    """Template rendering failed; no partial output is produced."""


class TemplateResolutionError(PromptAssemblyError):
    """The recipe step's prompt template could not be resolved or fetched."""


class HeaderContextError(PromptAssemblyError):
    """The planner HeaderContext is missing, unreadable, or incomplete."""


class ReconstructionError(PromptAssemblyError):
    """A continued generation could not be rebuilt into a message history."""


class PersistError(PromptAssemblyError):
    """The assembled prompt could not be saved."""
