# tests/conftest.py — v3
"""Shared test fixtures for all unit and integration tests.

Provides a sample project/session/stage, an in-memory repository and blob
store pre-seeded with prior-stage artifacts, and wired AssemblyServices.
No external dependencies — all I/O is in memory.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from promptassembler.assembly.services import AssemblyServices
from promptassembler.core.models import (
    ContributionRecord,
    DocumentRelationships,
    DocumentTemplateRecord,
    DomainOverlay,
    FeedbackRecord,
    Job,
    Project,
    Session,
    Stage,
    SystemPromptRecord,
)
from promptassembler.logging.logger import ROOT_LOGGER_NAME
from promptassembler.recipe.models import RecipeStep
from promptassembler.repository.memory_repository import MemoryRepository
from promptassembler.storage.memory_blob_store import MemoryBlobStore

CONTENT_BUCKET = "dialectic-contributions"
BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_contribution(
    contribution_id: str,
    stage: str | None = "thesis",
    *,
    session_id: str = "sess-12345678-abcd",
    iteration: int = 1,
    model_name: str | None = "Model A",
    document_key: str | None = "business_case",
    relationships: dict | None = None,
    minutes: int = 0,
    storage_path: str = "proj-1/session_sess-123/iteration_1/1_thesis",
    contribution_type: str | None = "thesis",
    is_latest_edit: bool = True,
) -> ContributionRecord:
    """Contribution row stored under ``storage_path/<id>.md``."""
    return ContributionRecord(
        id=contribution_id,
        session_id=session_id,
        iteration_number=iteration,
        stage=stage,
        model_name=model_name,
        storage_bucket=CONTENT_BUCKET,
        storage_path=storage_path,
        file_name=f"{contribution_id}.md",
        document_key=document_key,
        contribution_type=contribution_type,
        is_latest_edit=is_latest_edit,
        document_relationships=(
            DocumentRelationships.model_validate(relationships) if relationships else None
        ),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


# === FIXTURES: Domain objects ===


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo setup_logging so handlers and levels don't leak between tests."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def project() -> Project:
    return Project(
        id="proj-1",
        user_id="user-1",
        project_name="Launch a bakery",
        initial_user_prompt="Plan a neighbourhood bakery.",
        selected_domain_id="domain-1",
        domain_name="Business Strategy",
        user_domain_overlay_values={"deliverable_format": "Bullet points."},
    )


@pytest.fixture
def session() -> Session:
    return Session(
        id="sess-12345678-abcd",
        project_id="proj-1",
        selected_model_ids=["model-a", "model-b"],
        iteration_count=1,
    )


@pytest.fixture
def seed_stage() -> Stage:
    """Antithesis stage reading thesis contributions."""
    return Stage(
        id="stage-2",
        slug="antithesis",
        display_name="Antithesis",
        system_prompt_text=(
            "Objective: {{user_objective}}\n"
            "Domain: {{domain}}\n"
            "{{prior_stage_ai_outputs}}\n"
            "Format: {{deliverable_format}}\n"
        ),
        domain_specific_prompt_overlays=[DomainOverlay(overlay_values={"tone": "critical"})],
        recipe_step=RecipeStep(
            id="step-seed",
            step_name="Seed",
            inputs_required=[
                {"type": "document", "stage_slug": "thesis", "document_key": "business_case"}
            ],
        ),
    )


@pytest.fixture
def planner_stage() -> Stage:
    return Stage(
        id="stage-1",
        slug="thesis",
        display_name="Thesis",
        recipe_step=RecipeStep(
            id="step-plan",
            step_name="Plan thesis documents",
            job_type="PLAN",
            prompt_template_id="sp-planner",
            inputs_required=[],
            outputs_required={
                "system_materials": {"agent_notes_to_self": "Keep it short."},
                "context_for_documents": [
                    {
                        "document_key": "business_case",
                        "content_to_include": {"market": "", "risks": []},
                    }
                ],
            },
        ),
    )


@pytest.fixture
def turn_stage() -> Stage:
    return Stage(
        id="stage-1",
        slug="thesis",
        display_name="Thesis",
        recipe_step=RecipeStep(
            id="step-exec",
            step_name="Generate business case",
            job_type="EXECUTE",
            prompt_template_id="sp-turn",
            branch_key="business_case",
            parallel_group=2,
            inputs_required=[{"type": "header_context", "stage_slug": "thesis"}],
            outputs_required={
                "files_to_generate": [
                    {"from_document_key": "business_case", "template_filename": "bc.md"}
                ],
                "documents": [
                    {
                        "document_key": "business_case",
                        "content_to_include": {"market": "", "risks": []},
                    }
                ],
            },
        ),
    )


@pytest.fixture
def turn_job() -> Job:
    return Job(
        id="job-turn",
        job_type="EXECUTE",
        attempt_count=0,
        payload={
            "document_key": "business_case",
            "model_id": "model-a",
            "model_slug": "model-a",
            "inputs": {"header_context_id": "hc-1"},
        },
    )


# === FIXTURES: Stores ===


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    store = MemoryBlobStore()
    root = "proj-1/session_sess-123/iteration_1/1_thesis"
    store.put(CONTENT_BUCKET, f"{root}/c-1.md", "Thesis by model A")
    store.put(CONTENT_BUCKET, f"{root}/c-2.md", "Thesis by model B")
    store.put(CONTENT_BUCKET, f"{root}/seed_prompt.md", "Original seed prompt")
    store.put(
        CONTENT_BUCKET,
        f"{root}/_work/context/hc-1.md",
        '{"system_materials": {"agent_notes_to_self": "Stay focused."},'
        ' "context_for_documents": [{"document_key": "business_case",'
        ' "content_to_include": {"market": "Local families", "risks": ["rent"]}}]}',
    )
    store.put("templates", "domain-1/planner.md", "PLAN\n{{context_for_documents}}\n")
    store.put(
        "templates",
        "domain-1/turn.md",
        "Write about {{market}}.\nNotes: {{header_context.system_materials.agent_notes_to_self}}\n",
    )
    return store


@pytest.fixture
def repository() -> MemoryRepository:
    header = make_contribution(
        "hc-1",
        contribution_type="header_context",
        document_key=None,
        storage_path="proj-1/session_sess-123/iteration_1/1_thesis/_work/context",
    )
    return MemoryRepository(
        stages=[
            Stage(id="stage-1", slug="thesis", display_name="Thesis"),
            Stage(id="stage-2", slug="antithesis", display_name="Antithesis"),
        ],
        contributions=[
            make_contribution("c-1", model_name="Model A", minutes=0),
            make_contribution("c-2", model_name="Model B", minutes=1),
            header,
        ],
        feedback=[
            FeedbackRecord(
                id="fb-1",
                session_id="sess-12345678-abcd",
                stage_slug="thesis",
                iteration_number=1,
                user_id="user-1",
                storage_bucket=CONTENT_BUCKET,
                storage_path="proj-1/session_sess-123/iteration_1/1_thesis",
                file_name="user_feedback_thesis.md",
            )
        ],
        system_prompts=[
            SystemPromptRecord(id="sp-planner", document_template_id="dt-planner"),
            SystemPromptRecord(id="sp-turn", document_template_id="dt-turn"),
            SystemPromptRecord(id="sp-inline", prompt_text="Inline {{user_objective}}"),
        ],
        document_templates=[
            DocumentTemplateRecord(
                id="dt-planner",
                domain_id="domain-1",
                storage_bucket="templates",
                storage_path="domain-1",
                file_name="planner.md",
            ),
            DocumentTemplateRecord(
                id="dt-turn",
                domain_id="domain-1",
                storage_bucket="templates",
                storage_path="domain-1/",
                file_name="/turn.md",
            ),
        ],
    )


@pytest.fixture
def services(repository: MemoryRepository, blob_store: MemoryBlobStore) -> AssemblyServices:
    return AssemblyServices.create(repository, blob_store, CONTENT_BUCKET)


@pytest.fixture
def contribution_factory():
    """Expose make_contribution to test modules."""
    return make_contribution
