"""
Refinement Schema Definitions

Conversation log, critiques, per-iteration results and loop configuration
for the user-directed refinement loop.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from branchweaver.schemas.branch_schemas import BranchVariation


# ─── Enums ────────────────────────────────────────────────────────────────────

class RefinementArea(str, Enum):
    character_depth = "character-depth"
    plot_coherence = "plot-coherence"
    theme_development = "theme-development"
    emotional_impact = "emotional-impact"
    dialogue_quality = "dialogue-quality"
    pacing = "pacing"
    world_building = "world-building"
    stakes_clarity = "stakes-clarity"


class MessageType(str, Enum):
    user_instruction = "user-instruction"
    user_feedback = "user-feedback"
    system_question = "system-question"
    refinement_confirmation = "refinement-confirmation"


class CritiqueSeverity(str, Enum):
    minor = "minor"
    moderate = "moderate"
    major = "major"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class StopReason(str, Enum):
    user_satisfied = "user-satisfied"
    max_iterations = "max-iterations"
    diminishing_returns = "diminishing-returns"
    cancelled = "cancelled"


# ─── Conversation ─────────────────────────────────────────────────────────────

class MessageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    focus_area: Optional[RefinementArea] = None
    iteration: Optional[int] = None
    applied: Optional[bool] = None


class ConversationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: MessageType
    content: str
    timestamp: float
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)


class RefinementConversation(BaseModel):
    """Append-only message log for one branch lineage.

    Only the pending/resolved instruction lists move; messages are never
    removed or rewritten.
    """
    model_config = ConfigDict(frozen=True)

    branch_id: str
    messages: List[ConversationMessage] = Field(default_factory=list)
    current_iteration: int = 1
    pending_instructions: List[str] = Field(default_factory=list)
    resolved_instructions: List[str] = Field(default_factory=list)


# ─── Refinement results ───────────────────────────────────────────────────────

class RefinementChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    area: RefinementArea
    description: str
    before: str
    after: str


class RefinementRequest(BaseModel):
    branch_id: str
    focus_areas: List[RefinementArea] = Field(default_factory=list)
    user_instructions: str = ""
    priority: Priority = Priority.medium


class Critique(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    aspect: RefinementArea
    severity: CritiqueSeverity
    observation: str
    suggestion: str
    examples: List[str] = Field(default_factory=list)


class CritiqueBasedRefinement(BaseModel):
    original: BranchVariation
    refined: BranchVariation
    critiques: List[Critique] = Field(default_factory=list)
    addressed_critiques: List[Critique] = Field(default_factory=list)
    changes: List[RefinementChange] = Field(default_factory=list)


class CritiqueComparison(BaseModel):
    resolved: List[Critique] = Field(default_factory=list)
    remaining: List[Critique] = Field(default_factory=list)
    new_issues: List[Critique] = Field(default_factory=list)


class RefinementResult(BaseModel):
    original: BranchVariation
    refined: BranchVariation
    changes: List[RefinementChange] = Field(default_factory=list)
    critiques: List[Critique] = Field(default_factory=list)
    iteration: int = 1
    score: float = Field(default=0.0, ge=0, le=1)
    user_satisfied: bool = False


class SatisfactionResult(BaseModel):
    satisfied: bool
    confidence: float = Field(..., ge=0, le=1)
    reason: str
    can_proceed: bool
    needs_more_work: bool
    suggestions: List[str] = Field(default_factory=list)


class SatisfactionProgress(BaseModel):
    progress: float = Field(..., ge=0, le=100)
    status: str = Field(..., description="starting | in-progress | nearly-there | complete")
    estimate: str


# ─── Loop ─────────────────────────────────────────────────────────────────────

class IterationConfig(BaseModel):
    max_iterations: int = 3
    stop_on_satisfaction: bool = True
    stop_on_diminishing_returns: bool = True
    min_improvement_threshold: float = Field(default=0.05, ge=0, le=1)

    @field_validator("max_iterations")
    @classmethod
    def _clamp_iterations(cls, value: int) -> int:
        return min(5, max(1, value))


class RefinementCheckpoint(BaseModel):
    """Everything needed to resume a loop exactly where it stopped."""
    model_config = ConfigDict(frozen=True)

    variation: BranchVariation
    conversation: RefinementConversation
    iteration: int = Field(default=0, ge=0, description="Completed iterations")
    previous_score: float = Field(..., ge=0, le=1)
    improvement_graph: List[float] = Field(default_factory=list)


class IterationResult(BaseModel):
    iterations: List[RefinementResult] = Field(default_factory=list)
    final_branch: BranchVariation
    conversation: RefinementConversation
    total_changes: int = 0
    stopped_reason: StopReason
    improvement_graph: List[float] = Field(default_factory=list)
    checkpoint: RefinementCheckpoint
