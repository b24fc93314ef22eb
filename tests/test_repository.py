"""Tests for BranchRepository against an in-memory SQLite database."""

import pytest
import pytest_asyncio
from pydantic import ValidationError

from branchweaver.database import build_engine, build_sessionmaker, init_models
from branchweaver.errors import BranchNotFoundError, InputError
from branchweaver.models import BranchStatus
from branchweaver.repository import BranchRepository, CreateBranchInput, UpdateBranchInput


@pytest_asyncio.fixture
async def repo():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_models(bind=engine)
    async with build_sessionmaker(engine)() as session:
        yield BranchRepository(session)
    await engine.dispose()


def _input(variation, work_id="w1", anchor_id="a1", alternative_id="alt-1"):
    return CreateBranchInput.from_variation(variation, work_id, anchor_id, alternative_id)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestCrud:

    async def test_create_from_variation(self, repo, variation):
        branch = await repo.create(_input(variation))
        assert branch.status == BranchStatus.generated
        assert branch.version == 1
        assert branch.premise["title"] == "Personal Consequences"
        assert branch.generation_params["variation_id"] == variation.id
        assert branch.generation_params["mood"] == "hopeful"
        assert len(branch.character_states) == 2
        assert branch.created_at is not None

    async def test_get_unknown_returns_none(self, repo):
        assert await repo.get("nope") is None

    async def test_update_bumps_version(self, repo, variation):
        branch = await repo.create(_input(variation))
        updated = await repo.update(branch.id, UpdateBranchInput(quality_score=0.8))
        assert updated.quality_score == 0.8
        assert updated.version == 2
        # fields not set in the update are left alone
        assert updated.premise["title"] == "Personal Consequences"

    async def test_update_unknown_raises(self, repo):
        with pytest.raises(BranchNotFoundError):
            await repo.update("nope", UpdateBranchInput(quality_score=0.5))

    async def test_update_input_bounds(self):
        with pytest.raises(ValidationError):
            UpdateBranchInput(quality_score=1.5)
        with pytest.raises(ValidationError):
            UpdateBranchInput(user_preference=0)

    async def test_delete(self, repo, variation):
        branch = await repo.create(_input(variation))
        await repo.delete(branch.id)
        assert await repo.get(branch.id) is None
        with pytest.raises(BranchNotFoundError):
            await repo.delete(branch.id)


# ---------------------------------------------------------------------------
# Queries and selection
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestSelection:

    async def test_only_one_selected_per_anchor(self, repo, variations):
        first = await repo.create(_input(variations[0]))
        second = await repo.create(_input(variations[1]))
        other_anchor = await repo.create(_input(variations[2], anchor_id="a2"))

        await repo.select_branch(first.id)
        await repo.select_branch(other_anchor.id)
        await repo.select_branch(second.id)

        assert (await repo.get(first.id)).status == BranchStatus.review
        assert (await repo.get_selected("a1")).id == second.id
        # other anchors are unaffected
        assert (await repo.get_selected("a2")).id == other_anchor.id

    async def test_update_status_routes_selection(self, repo, variations):
        first = await repo.create(_input(variations[0]))
        second = await repo.create(_input(variations[1]))
        await repo.update_status(first.id, BranchStatus.selected)
        await repo.update_status(second.id, BranchStatus.selected)
        assert (await repo.get(first.id)).status == BranchStatus.review

    async def test_update_status_plain(self, repo, variation):
        branch = await repo.create(_input(variation))
        assert (await repo.update_status(branch.id, BranchStatus.writing)).status == BranchStatus.writing

    async def test_list_by_anchor_and_work(self, repo, variations):
        await repo.create(_input(variations[0]))
        await repo.create(_input(variations[1]))
        await repo.create(_input(variations[2], work_id="w2", anchor_id="a2"))

        assert len(await repo.list_by_anchor("a1")) == 2
        assert len(await repo.list_by_work("w1")) == 2
        assert await repo.list_by_work("w1", status=BranchStatus.selected) == []

    async def test_count_by_status(self, repo, variations):
        first = await repo.create(_input(variations[0]))
        await repo.create(_input(variations[1]))
        await repo.select_branch(first.id)

        counts = await repo.count_by_status("w1")
        assert set(counts) == set(BranchStatus)
        assert counts[BranchStatus.selected] == 1
        assert counts[BranchStatus.generated] == 1
        assert counts[BranchStatus.complete] == 0


# ---------------------------------------------------------------------------
# Ratings and versions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestRatingsAndVersions:

    async def test_rate(self, repo, variation):
        branch = await repo.create(_input(variation))
        assert (await repo.rate(branch.id, 4)).user_preference == 4

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rate_out_of_range(self, repo, variation, rating):
        branch = await repo.create(_input(variation))
        with pytest.raises(InputError):
            await repo.rate(branch.id, rating)

    async def test_create_version(self, repo, variation):
        branch = await repo.create(_input(variation))
        await repo.select_branch(branch.id)
        version = await repo.create_version(
            branch.id,
            UpdateBranchInput(premise={"title": "Revised"}, status=BranchStatus.complete),
        )
        assert version.id != branch.id
        assert version.parent_branch_id == branch.id
        assert version.version == 2
        # a fork always starts over, whatever status the update carried
        assert version.status == BranchStatus.generated
        assert version.premise == {"title": "Revised"}
        assert version.trajectory == branch.trajectory

        versions = await repo.list_versions("a1", "alt-1")
        assert [v.version for v in versions] == [1, 2]

    async def test_delete_by_anchor(self, repo, variations):
        await repo.create(_input(variations[0]))
        await repo.create(_input(variations[1]))
        await repo.create(_input(variations[2], anchor_id="a2"))
        assert await repo.delete_by_anchor("a1") == 2
        assert await repo.list_by_anchor("a1") == []
        assert len(await repo.list_by_anchor("a2")) == 1
