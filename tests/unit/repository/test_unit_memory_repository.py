# tests/unit/repository/test_unit_memory_repository.py — v1
"""Tests for repository/memory_repository.py."""

from __future__ import annotations

import pytest

from promptassembler.core.models import ProjectResource
from promptassembler.repository.memory_repository import MemoryRepository


class TestMemoryRepository:
    @pytest.mark.asyncio
    async def test_display_names(self, repository):
        names = await repository.get_stage_display_names(["thesis", "missing"])
        assert names == {"thesis": "Thesis"}

    @pytest.mark.asyncio
    async def test_latest_contributions_ordered_and_filtered(self, contribution_factory):
        make_contribution = contribution_factory
        repo = MemoryRepository(contributions=[
            make_contribution("late", minutes=5),
            make_contribution("early", minutes=1),
            make_contribution("old-edit", minutes=0, is_latest_edit=False),
            make_contribution("other-stage", stage="synthesis"),
            make_contribution("other-iter", iteration=2),
        ])
        rows = await repo.list_latest_contributions("sess-12345678-abcd", 1, "thesis")
        assert [r.id for r in rows] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_fragments_for_root(self, contribution_factory):
        make_contribution = contribution_factory
        repo = MemoryRepository(contributions=[
            make_contribution("root"),
            make_contribution("f1", relationships={"thesis": "root", "turnIndex": 1}),
            make_contribution("f2", relationships={"antithesis": "root"}),
        ])
        rows = await repo.list_fragments_for_root("thesis", "root")
        assert [r.id for r in rows] == ["f1"]

    @pytest.mark.asyncio
    async def test_feedback_lookup(self, repository):
        assert await repository.get_feedback("sess-12345678-abcd", "thesis", 1, "user-1")
        assert await repository.get_feedback("sess-12345678-abcd", "thesis", 1, "other") is None

    @pytest.mark.asyncio
    async def test_document_template_requires_domain(self, repository):
        assert await repository.get_document_template("dt-turn", "domain-1")
        assert await repository.get_document_template("dt-turn", "domain-2") is None

    @pytest.mark.asyncio
    async def test_inactive_system_prompt_hidden(self):
        repo = MemoryRepository.from_dict({
            "system_prompts": [{"id": "sp", "prompt_text": "x", "is_active": False}],
        })
        assert await repo.get_system_prompt("sp") is None

    @pytest.mark.asyncio
    async def test_insert_resource(self):
        repo = MemoryRepository()
        res = ProjectResource(
            project_id="p", resource_type="seed_prompt", file_name="f",
            storage_bucket="b", storage_path="p",
        )
        stored = await repo.insert_resource(res)
        assert stored is res
        assert repo.resources == [res]

    def test_from_dict(self):
        repo = MemoryRepository.from_dict({
            "stages": [{"id": "s1", "slug": "thesis", "display_name": "Thesis"}],
            "contributions": [{
                "id": "c",
                "session_id": "s",
                "stage": "thesis",
                "document_relationships": {"thesis": "c"},
            }],
        })
        assert repo.stages[0].slug == "thesis"
        assert repo.contributions[0].document_relationships.root_for("thesis") == "c"
