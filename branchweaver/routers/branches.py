"""Branch generation, validation, refinement, comparison and record REST endpoints."""

from __future__ import annotations

import random
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from branchweaver.comparison import compare_multiple_branches, generate_multi_branch_report
from branchweaver.database import get_db
from branchweaver.errors import BranchNotFoundError, InputError
from branchweaver.models import Branch, BranchStatus
from branchweaver.refinement import (
    RefinementLoop,
    add_user_feedback,
    create_iteration_config,
    preset,
    start_conversation,
)
from branchweaver.repository import BranchRepository, CreateBranchInput, UpdateBranchInput
from branchweaver.schemas import (
    BranchVariation,
    ContextPackage,
    DeviationConfig,
    DeviationReport,
    FixWorkflow,
    FullValidationResult,
    IterationConfig,
    IterationResult,
    Mood,
    MultiBranchComparison,
    TieredValidationResult,
    WorkflowStatus,
    WorldRule,
    WorldRulesValidation,
)
from branchweaver.validation import (
    apply_deviation_config,
    default_deviation_config,
    generate_suggested_fixes,
    get_workflow_status,
    validate_all_dimensions,
    validate_tiered_traits,
    validate_world_rules,
)
from branchweaver.variation import apply_mood_preference, generate_variations

router = APIRouter()

# One loop per process so concurrent refinements of a lineage are serialized
refinement_loop = RefinementLoop()


def _http_error(e: InputError) -> HTTPException:
    if isinstance(e, BranchNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=422, detail=str(e))


# --- Request / response models ---

class GenerateRequest(BaseModel):
    context: ContextPackage
    count: Optional[int] = None
    mood_preference: Optional[Mood] = None
    seed: Optional[int] = None


class ValidateRequest(BaseModel):
    variation: BranchVariation
    context: ContextPackage
    deviation_config: Optional[DeviationConfig] = None
    custom_rules: List[WorldRule] = Field(default_factory=list)
    overrides: List[str] = Field(default_factory=list, description="Hard rule ids the user chose to override")


class ValidationReport(BaseModel):
    dimensions: FullValidationResult
    traits: List[TieredValidationResult]
    deviation: DeviationReport
    world_rules: WorldRulesValidation
    fixes: FixWorkflow
    status: WorkflowStatus
    can_select: bool


class RefineRequest(BaseModel):
    variation: BranchVariation
    context: ContextPackage
    feedback: List[str] = Field(default_factory=list)
    preset: Optional[str] = None
    config: Optional[IterationConfig] = None


class CompareRequest(BaseModel):
    branches: List[BranchVariation]


class CompareResponse(BaseModel):
    comparison: MultiBranchComparison
    report: str


class BranchResponse(BaseModel):
    id: str
    work_id: str
    anchor_event_id: str
    alternative_id: str
    status: BranchStatus
    version: int
    parent_branch_id: Optional[str] = None
    quality_score: float
    user_preference: Optional[int] = None
    premise: dict
    trajectory: dict


class RateRequest(BaseModel):
    rating: int


def _branch_response(branch: Branch) -> BranchResponse:
    return BranchResponse(
        id=branch.id,
        work_id=branch.work_id,
        anchor_event_id=branch.anchor_event_id,
        alternative_id=branch.alternative_id,
        status=branch.status,
        version=branch.version,
        parent_branch_id=branch.parent_branch_id,
        quality_score=branch.quality_score,
        user_preference=branch.user_preference,
        premise=branch.premise,
        trajectory=branch.trajectory,
    )


# --- Pipeline endpoints ---

@router.post("/branches/generate", response_model=List[BranchVariation])
async def generate_branches(request: GenerateRequest):
    """Generate candidate variations for the anchor in ``request.context``."""
    rng = random.Random(request.seed) if request.seed is not None else None
    try:
        variations = generate_variations(request.context, request.count, rng=rng)
    except InputError as e:
        raise _http_error(e)
    return apply_mood_preference(variations, request.mood_preference, rng=rng)


@router.post("/branches/validate", response_model=ValidationReport)
async def validate_branch(request: ValidateRequest):
    """
    Run every validator over one variation and build the fix workflow.
    ``can_select`` is false while any critical issue or rejected deviation remains.
    """
    variation, context = request.variation, request.context
    dimensions = validate_all_dimensions(variation, context)
    traits = [validate_tiered_traits(c, variation) for c in context.characters]
    deviation = apply_deviation_config(traits, request.deviation_config or default_deviation_config())
    world = validate_world_rules(variation, context.world, request.custom_rules, request.overrides)
    fixes = generate_suggested_fixes(traits, world)
    status = get_workflow_status(fixes)

    return ValidationReport(
        dimensions=dimensions,
        traits=traits,
        deviation=deviation,
        world_rules=world,
        fixes=fixes,
        status=status,
        can_select=status.can_proceed and world.acceptable and not deviation.rejected,
    )


@router.post("/branches/refine", response_model=IterationResult)
async def refine_branch(request: RefineRequest):
    conversation = start_conversation(request.variation.id, "Refine this branch")
    for message in request.feedback:
        conversation = add_user_feedback(conversation, message)
    try:
        config = request.config or (preset(request.preset) if request.preset else create_iteration_config())
    except InputError as e:
        raise _http_error(e)
    return await refinement_loop.run(request.variation, request.context, conversation, config)


@router.post("/branches/compare", response_model=CompareResponse)
async def compare_branches(request: CompareRequest):
    try:
        # Blocks on the pairwise thread pool
        comparison = await run_in_threadpool(compare_multiple_branches, request.branches)
    except InputError as e:
        raise _http_error(e)
    return CompareResponse(comparison=comparison, report=generate_multi_branch_report(comparison))


# --- Branch records ---

@router.post("/branches", response_model=BranchResponse)
async def create_branch(request: CreateBranchInput, db: AsyncSession = Depends(get_db)):
    branch = await BranchRepository(db).create(request)
    return _branch_response(branch)


@router.get("/branches/{branch_id}", response_model=BranchResponse)
async def get_branch(branch_id: str, db: AsyncSession = Depends(get_db)):
    branch = await BranchRepository(db).get(branch_id)
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    return _branch_response(branch)


@router.patch("/branches/{branch_id}", response_model=BranchResponse)
async def update_branch(branch_id: str, request: UpdateBranchInput, db: AsyncSession = Depends(get_db)):
    try:
        branch = await BranchRepository(db).update(branch_id, request)
    except InputError as e:
        raise _http_error(e)
    return _branch_response(branch)


@router.delete("/branches/{branch_id}")
async def delete_branch(branch_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await BranchRepository(db).delete(branch_id)
    except InputError as e:
        raise _http_error(e)
    return {"status": "deleted", "branch_id": branch_id}


@router.post("/branches/{branch_id}/select", response_model=BranchResponse)
async def select_branch(branch_id: str, db: AsyncSession = Depends(get_db)):
    try:
        branch = await BranchRepository(db).select_branch(branch_id)
    except InputError as e:
        raise _http_error(e)
    return _branch_response(branch)


@router.post("/branches/{branch_id}/rate", response_model=BranchResponse)
async def rate_branch(branch_id: str, request: RateRequest, db: AsyncSession = Depends(get_db)):
    try:
        branch = await BranchRepository(db).rate(branch_id, request.rating)
    except InputError as e:
        raise _http_error(e)
    return _branch_response(branch)


@router.post("/branches/{branch_id}/versions", response_model=BranchResponse)
async def create_branch_version(branch_id: str, request: UpdateBranchInput, db: AsyncSession = Depends(get_db)):
    try:
        branch = await BranchRepository(db).create_version(branch_id, request)
    except InputError as e:
        raise _http_error(e)
    return _branch_response(branch)


@router.get("/anchors/{anchor_id}/branches", response_model=List[BranchResponse])
async def list_anchor_branches(anchor_id: str, db: AsyncSession = Depends(get_db)):
    branches = await BranchRepository(db).list_by_anchor(anchor_id)
    return [_branch_response(b) for b in branches]


@router.get("/works/{work_id}/branch-counts")
async def branch_counts(work_id: str, db: AsyncSession = Depends(get_db)) -> Dict[str, int]:
    counts = await BranchRepository(db).count_by_status(work_id)
    return {status.value: count for status, count in counts.items()}
