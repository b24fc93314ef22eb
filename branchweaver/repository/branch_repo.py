"""
Branch repository.

CRUD and versioning for persisted branches on top of an ``AsyncSession``.
Every mutating call commits. Unknown ids raise ``BranchNotFoundError``.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from branchweaver.errors import BranchNotFoundError, InputError
from branchweaver.models import Branch, BranchStatus
from branchweaver.schemas import BranchVariation
from branchweaver.utils.logging_config import BranchAdapter, get_logger

logger = get_logger(__name__)


class CreateBranchInput(BaseModel):
    work_id: str
    anchor_event_id: str
    alternative_id: str
    premise: Dict[str, Any] = Field(default_factory=dict)
    trajectory: Dict[str, Any] = Field(default_factory=dict)
    character_states: List[Dict[str, Any]] = Field(default_factory=list)
    world_state: Dict[str, Any] = Field(default_factory=dict)
    generation_params: Optional[Dict[str, Any]] = None

    @classmethod
    def from_variation(
        cls,
        variation: BranchVariation,
        work_id: str,
        anchor_event_id: str,
        alternative_id: str,
        world_state: Optional[Dict[str, Any]] = None,
    ) -> "CreateBranchInput":
        return cls(
            work_id=work_id,
            anchor_event_id=anchor_event_id,
            alternative_id=alternative_id,
            premise=variation.premise.model_dump(mode="json"),
            trajectory=variation.trajectory.model_dump(mode="json"),
            character_states=[a.model_dump(mode="json") for a in variation.character_arcs],
            world_state=world_state or {},
            generation_params={
                "variation_id": variation.id,
                "consequence_type": variation.consequence_type.value,
                "mood": variation.mood.value,
                "complexity": variation.complexity.value,
                "estimated_chapters": variation.estimated_chapters,
                "theme_progression": variation.theme_progression,
            },
        )


class UpdateBranchInput(BaseModel):
    premise: Optional[Dict[str, Any]] = None
    trajectory: Optional[Dict[str, Any]] = None
    character_states: Optional[List[Dict[str, Any]]] = None
    world_state: Optional[Dict[str, Any]] = None
    status: Optional[BranchStatus] = None
    quality_score: Optional[float] = Field(default=None, ge=0, le=1)
    user_preference: Optional[int] = Field(default=None, ge=1, le=5)


class BranchRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _require(self, branch_id: str) -> Branch:
        branch = await self.get(branch_id)
        if branch is None:
            raise BranchNotFoundError(branch_id)
        return branch

    async def create(self, data: CreateBranchInput) -> Branch:
        branch = Branch(
            id=str(uuid.uuid4()),
            status=BranchStatus.generated,
            quality_score=0.0,
            version=1,
            **data.model_dump(),
        )
        self.session.add(branch)
        await self.session.commit()
        await self.session.refresh(branch)
        BranchAdapter(logger, branch.id).info(
            "Branch created",
            extra={"anchor_id": branch.anchor_event_id},
        )
        return branch

    async def get(self, branch_id: str) -> Optional[Branch]:
        result = await self.session.execute(select(Branch).where(Branch.id == branch_id))
        return result.scalar_one_or_none()

    async def update(self, branch_id: str, data: UpdateBranchInput) -> Branch:
        """Apply the fields set in ``data`` and bump the version."""
        branch = await self._require(branch_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(branch, field, value)
        branch.version += 1
        await self.session.commit()
        await self.session.refresh(branch)
        return branch

    async def delete(self, branch_id: str) -> None:
        branch = await self._require(branch_id)
        await self.session.delete(branch)
        await self.session.commit()

    async def list_by_anchor(self, anchor_event_id: str) -> List[Branch]:
        result = await self.session.execute(
            select(Branch).where(Branch.anchor_event_id == anchor_event_id).order_by(Branch.created_at, Branch.version)
        )
        return list(result.scalars().all())

    async def list_by_work(self, work_id: str, status: Optional[BranchStatus] = None) -> List[Branch]:
        query = select(Branch).where(Branch.work_id == work_id)
        if status is not None:
            query = query.where(Branch.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_selected(self, anchor_event_id: str) -> Optional[Branch]:
        result = await self.session.execute(
            select(Branch).where(
                Branch.anchor_event_id == anchor_event_id,
                Branch.status == BranchStatus.selected,
            )
        )
        return result.scalars().first()

    async def select_branch(self, branch_id: str) -> Branch:
        """Mark ``branch_id`` as the chosen path for its anchor.

        Any other branch of the same anchor that was selected goes back to
        ``review``, so at most one branch per anchor is ever selected.
        """
        branch = await self._require(branch_id)
        await self.session.execute(
            update(Branch)
            .where(
                Branch.anchor_event_id == branch.anchor_event_id,
                Branch.status == BranchStatus.selected,
                Branch.id != branch_id,
            )
            .values(status=BranchStatus.review)
        )
        branch.status = BranchStatus.selected
        await self.session.commit()
        await self.session.refresh(branch)
        BranchAdapter(logger, branch.id).info(
            "Branch selected",
            extra={"anchor_id": branch.anchor_event_id},
        )
        return branch

    async def update_status(self, branch_id: str, status: BranchStatus) -> Branch:
        if status == BranchStatus.selected:
            return await self.select_branch(branch_id)
        branch = await self._require(branch_id)
        branch.status = status
        await self.session.commit()
        await self.session.refresh(branch)
        return branch

    async def rate(self, branch_id: str, rating: int) -> Branch:
        if not 1 <= rating <= 5:
            raise InputError(f"Rating must be between 1 and 5, got {rating}")
        branch = await self._require(branch_id)
        branch.user_preference = rating
        await self.session.commit()
        await self.session.refresh(branch)
        return branch

    async def create_version(self, branch_id: str, data: UpdateBranchInput) -> Branch:
        """Fork a new record from ``branch_id`` with ``data`` applied on top."""
        existing = await self._require(branch_id)
        fields = {
            "work_id": existing.work_id,
            "anchor_event_id": existing.anchor_event_id,
            "alternative_id": existing.alternative_id,
            "premise": existing.premise,
            "trajectory": existing.trajectory,
            "character_states": existing.character_states,
            "world_state": existing.world_state,
            "generation_params": existing.generation_params,
            "quality_score": existing.quality_score,
            "user_preference": existing.user_preference,
        }
        fields.update(data.model_dump(exclude_unset=True, exclude={"status"}))
        version = Branch(
            id=str(uuid.uuid4()),
            parent_branch_id=existing.id,
            version=existing.version + 1,
            status=BranchStatus.generated,
            **fields,
        )
        self.session.add(version)
        await self.session.commit()
        await self.session.refresh(version)
        return version

    async def list_versions(self, anchor_event_id: str, alternative_id: str) -> List[Branch]:
        result = await self.session.execute(
            select(Branch)
            .where(Branch.anchor_event_id == anchor_event_id, Branch.alternative_id == alternative_id)
            .order_by(Branch.version)
        )
        return list(result.scalars().all())

    async def delete_by_anchor(self, anchor_event_id: str) -> int:
        result = await self.session.execute(delete(Branch).where(Branch.anchor_event_id == anchor_event_id))
        await self.session.commit()
        return result.rowcount

    async def count_by_status(self, work_id: str) -> Dict[BranchStatus, int]:
        counts = {status: 0 for status in BranchStatus}
        result = await self.session.execute(
            select(Branch.status, func.count()).where(Branch.work_id == work_id).group_by(Branch.status)
        )
        for status, count in result.all():
            counts[BranchStatus(status)] = count
        return counts
