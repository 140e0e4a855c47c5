# tests/integration/test_int_assembly_flow.py — v1
"""End-to-end assembly against a fixture repository and a local blob store.

Covers: api/facade.py, assembly/*, repository/memory_repository.py,
storage/local_blob_store.py, storage/file_manager.py
No external services required.
"""

from __future__ import annotations

import json

import pytest

from promptassembler.api.facade import create_assembler
from promptassembler.config.settings import Settings
from promptassembler.core.models import Job, Project, Session, Stage
from promptassembler.repository.memory_repository import MemoryRepository

BUCKET = "content"
STAGE_ROOT = "proj-9/session_abcdefgh/iteration_1/1_thesis"

FIXTURE = {
    "stages": [
        {"id": "st-1", "slug": "thesis", "display_name": "Thesis"},
        {"id": "st-2", "slug": "antithesis", "display_name": "Antithesis"},
    ],
    "contributions": [
        {
            "id": "root-1", "session_id": "abcdefgh-0001", "stage": "thesis",
            "model_name": "Model A", "storage_bucket": BUCKET, "storage_path": STAGE_ROOT,
            "file_name": "root-1.md", "document_key": "business_case",
            "created_at": "2025-01-01T10:00:00Z",
        },
        {
            "id": "frag-2", "session_id": "abcdefgh-0001", "stage": "thesis",
            "model_name": "Model A", "storage_bucket": BUCKET,
            "storage_path": f"{STAGE_ROOT}/_work/raw", "file_name": "frag-2.md",
            "is_latest_edit": False,
            "document_relationships": {"thesis": "root-1", "isContinuation": True, "turnIndex": 1},
            "created_at": "2025-01-01T10:05:00Z",
        },
        {
            "id": "hc-9", "session_id": "abcdefgh-0001", "stage": "thesis",
            "storage_bucket": BUCKET, "storage_path": f"{STAGE_ROOT}/_work/context",
            "file_name": "hc-9.json", "contribution_type": "header_context",
        },
    ],
    "system_prompts": [
        {"id": "sp-turn", "document_template_id": "dt-turn"},
        {"id": "sp-plan", "prompt_text": (
            "{{#section:thesis}}Drafts:\n{{thesis.business_case}}\n{{/section:thesis}}"
            "Fill in:\n{{context_for_documents}}\n"
        )},
    ],
    "document_templates": [
        {
            "id": "dt-turn", "domain_id": "dom-1", "storage_bucket": "templates",
            "storage_path": "dom-1", "file_name": "turn.md",
        }
    ],
}


@pytest.fixture
def store_root(tmp_path):
    def write(bucket: str, path: str, text: str) -> None:
        target = tmp_path / bucket / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")

    write(BUCKET, f"{STAGE_ROOT}/root-1.md", "First half of the business case")
    write(BUCKET, f"{STAGE_ROOT}/_work/raw/frag-2.md", "Second half")
    write(BUCKET, f"{STAGE_ROOT}/seed_prompt.md", "Seed for thesis")
    write(BUCKET, f"{STAGE_ROOT}/_work/context/hc-9.json", json.dumps({
        "system_materials": {"agent_notes_to_self": "Cite sources."},
        "context_for_documents": [
            {"document_key": "business_case", "content_to_include": {"audience": "Investors"}}
        ],
    }))
    write("templates", "dom-1/turn.md", "Audience: {{audience}}\nUnknown: {{nothing}}\n")
    return tmp_path


@pytest.fixture
def assembler(store_root):
    settings = Settings(
        _env_file=None, blob_store="local", blob_store_root=store_root,
        content_storage_bucket=BUCKET,
    )
    return create_assembler(settings, MemoryRepository.from_dict(FIXTURE))


@pytest.fixture
def project() -> Project:
    return Project(
        id="proj-9", user_id="u-1", project_name="Fund a robot startup",
        initial_user_prompt="Write a pitch.", selected_domain_id="dom-1",
        domain_name="Finance",
    )


@pytest.fixture
def session() -> Session:
    return Session(id="abcdefgh-0001", project_id="proj-9", selected_model_ids=["m-1"])


class TestAssemblyFlow:
    @pytest.mark.asyncio
    async def test_seed_prompt_written_to_disk(self, assembler, store_root, project, session):
        stage = Stage.model_validate({
            "id": "st-2", "slug": "antithesis", "display_name": "Antithesis",
            "system_prompt_text": "Critique for {{domain}}:\n{{prior_stage_ai_outputs}}\n",
            "recipe_step": {"inputs_required": [{"type": "document", "stage_slug": "thesis",
                                                "document_key": "business_case"}]},
        })
        result = await assembler.assemble_seed_prompt(project, session, stage)

        seed_file = store_root / BUCKET / "proj-9/session_abcdefgh/iteration_1/2_antithesis/seed_prompt.md"
        assert seed_file.read_text(encoding="utf-8") == result.prompt_content
        assert "Critique for Finance:" in result.prompt_content
        assert "First half of the business case" in result.prompt_content
        assert "Second half" not in result.prompt_content

    @pytest.mark.asyncio
    async def test_turn_prompt_from_header_context(self, assembler, store_root, project, session):
        stage = Stage.model_validate({
            "id": "st-1", "slug": "thesis", "display_name": "Thesis",
            "recipe_step": {
                "step_name": "Write business case", "job_type": "EXECUTE",
                "prompt_template_id": "sp-turn",
                "inputs_required": [{"type": "header_context", "stage_slug": "thesis"}],
                "outputs_required": {
                    "files_to_generate": [{"from_document_key": "business_case"}],
                    "documents": [{"document_key": "business_case",
                                   "content_to_include": {"audience": ""}}],
                },
            },
        })
        job = Job(id="j-1", job_type="EXECUTE", payload={
            "document_key": "business_case", "model_id": "m-1", "model_slug": "Model One",
            "inputs": {"header_context_id": "hc-9"},
        })
        result = await assembler.assemble_turn_prompt(job, project, session, stage)

        assert result.prompt_content == "Audience: Investors\n"
        prompt_file = store_root / BUCKET / STAGE_ROOT / "_work/prompts/model_one_0_business_case_prompt.md"
        assert prompt_file.read_text(encoding="utf-8") == "Audience: Investors\n"

    @pytest.mark.asyncio
    async def test_planner_prompt_with_source_variables(self, assembler, store_root, project, session):
        stage = Stage.model_validate({
            "id": "st-1", "slug": "thesis", "display_name": "Thesis",
            "recipe_step": {
                "step_name": "Plan", "job_type": "PLAN", "prompt_template_id": "sp-plan",
                "inputs_required": [{"type": "document", "stage_slug": "thesis",
                                     "document_key": "business_case"}],
                "outputs_required": {"context_for_documents": [
                    {"document_key": "business_case", "content_to_include": {"audience": ""}}
                ]},
            },
        })
        job = Job(id="j-plan", job_type="PLAN", payload={"model_slug": "m-1"})
        result = await assembler.assemble_planner_prompt(job, project, session, stage)

        assert result.prompt_content.startswith("Drafts:\nFirst half of the business case\nFill in:\n{")
        assert '"_instructions"' in result.prompt_content
        prompt_file = store_root / BUCKET / STAGE_ROOT / "_work/prompts/m-1_0_planner_prompt.md"
        assert prompt_file.read_text(encoding="utf-8") == result.prompt_content

    @pytest.mark.asyncio
    async def test_continuation_prompt(self, assembler, store_root, project, session):
        stage = Stage.model_validate({
            "id": "st-1", "slug": "thesis", "display_name": "Thesis",
            "recipe_step": {"step_name": "Write", "job_type": "EXECUTE"},
        })
        job = Job(id="j-cont", job_type="EXECUTE", attempt_count=0, payload={
            "target_contribution_id": "root-1", "model_slug": "m-1",
            "document_key": "business_case", "inputs": {"header_context_id": "hc-9"},
        })
        result = await assembler.assemble_continuation_prompt(job, project, session, stage)

        assert result.prompt_content.startswith("## System Materials")
        assert result.prompt_content.endswith("First half of the business case")
        prompt_file = (
            store_root / BUCKET / STAGE_ROOT
            / "_work/prompts/m-1_0_business_case_continuation_1_prompt.md"
        )
        assert prompt_file.exists()

    @pytest.mark.asyncio
    async def test_continuation_history(self, assembler):
        messages = await assembler.gather_continuation_inputs("root-1")
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Seed for thesis"),
            ("assistant", "First half of the business case"),
            ("user", "Please continue."),
            ("assistant", "Second half"),
        ]
