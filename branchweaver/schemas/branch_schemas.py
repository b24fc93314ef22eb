"""
Branch Schema Definitions

The central ``BranchVariation`` entity and its parts. Every model here is
frozen: the refinement loop never edits a variation in place, it builds a
new one with ``model_copy(update=...)`` so a variation shared by several
in-flight comparisons can never change under them.

Usage:
    from branchweaver.schemas import BranchVariation, Mood

    refined = variation.model_copy(update={"estimated_chapters": 6})
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ────────────────────────────────────────────────────────────────────

class ConsequenceScope(str, Enum):
    """How far a branch's effects reach"""
    personal = "personal"
    political = "political"
    cosmic = "cosmic"


class Mood(str, Enum):
    hopeful = "hopeful"
    tragic = "tragic"
    mixed = "mixed"
    dark = "dark"


class EndingType(str, Enum):
    hopeful = "hopeful"
    tragic = "tragic"
    bittersweet = "bittersweet"
    ambiguous = "ambiguous"
    open = "open"


class Complexity(str, Enum):
    simple = "simple"
    moderate = "moderate"
    complex = "complex"


class Growth(str, Enum):
    """Direction of a character arc"""
    positive = "positive"
    negative = "negative"
    neutral = "neutral"
    complex = "complex"


# ─── Models ───────────────────────────────────────────────────────────────────

class FrozenModel(BaseModel):
    """Base for immutable branch value objects."""
    model_config = ConfigDict(frozen=True, extra="forbid")


class BranchPremise(FrozenModel):
    """The pitch of a branch, derived once from an alternative outcome."""

    id: str
    title: str
    subtitle: Optional[str] = None
    hook: str = ""
    what_if: str = ""
    description: str = ""
    themes: List[str] = Field(default_factory=list, max_length=4)
    affected_characters: List[str] = Field(
        default_factory=list,
        description="Display names of affected characters",
    )
    immediate_consequences: List[str] = Field(default_factory=list)
    long_term_implications: List[str] = Field(default_factory=list)


class BranchTrajectory(FrozenModel):
    summary: str = ""
    key_events: List[str] = Field(default_factory=list)
    turning_points: List[str] = Field(default_factory=list)
    climax: str = ""
    resolution: str = ""
    ending_type: EndingType


class CharacterArcProjection(FrozenModel):
    character_id: str
    character_name: str
    starting_state: str = ""
    arc_description: str = ""
    ending_state: str = ""
    growth: Growth


class BranchVariation(FrozenModel):
    """One synthesized alternate continuation.

    ``id`` is stable across refinement iterations of the same lineage; a
    distinct sibling candidate gets a new id.
    """

    id: str
    premise: BranchPremise
    trajectory: BranchTrajectory
    consequence_type: ConsequenceScope
    theme_progression: List[str] = Field(default_factory=list, max_length=4)
    mood: Mood
    complexity: Complexity
    estimated_chapters: int = Field(..., ge=1)
    character_arcs: List[CharacterArcProjection] = Field(default_factory=list)


# ─── Premise distinctness ─────────────────────────────────────────────────────

class ThemeDistinctness(BaseModel):
    premise_id: str
    primary_theme: str
    theme_signature: List[str] = Field(default_factory=list, max_length=10)
    distinctness_score: float = Field(..., ge=0, le=1, description="1 = shares nothing with the others")
    similar_premises: List[str] = Field(default_factory=list)


# ─── Trajectory depth ─────────────────────────────────────────────────────────

class DepthLevel(str, Enum):
    shallow = "shallow"
    moderate = "moderate"
    deep = "deep"


class DetailLevel(str, Enum):
    summary = "summary"
    outline = "outline"
    detailed = "detailed"


class EventGranularity(str, Enum):
    major = "major"
    significant = "significant"
    all = "all"


class DepthFeedback(str, Enum):
    more_detail = "more-detail"
    less_detail = "less-detail"
    perfect = "perfect"


class TrajectoryDepth(FrozenModel):
    level: DepthLevel
    chapter_count: int = Field(..., ge=1)
    detail_level: DetailLevel
    event_granularity: EventGranularity


# ─── Theme progression ────────────────────────────────────────────────────────

class ThemeStage(str, Enum):
    introduction = "introduction"
    development = "development"
    climax = "climax"
    resolution = "resolution"


class ThemeArc(str, Enum):
    ascending = "ascending"
    descending = "descending"
    cyclical = "cyclical"
    linear = "linear"


class ThemeProgressionStage(FrozenModel):
    stage: ThemeStage
    theme: str
    expression: str
    events: List[str] = Field(default_factory=list)
    # character id -> how this stage of the theme touches them
    character_impact: Dict[str, str] = Field(default_factory=dict)


class ThemeProgression(FrozenModel):
    theme: str
    starting_expression: str
    stages: List[ThemeProgressionStage] = Field(default_factory=list)
    ending_expression: str
    arc: ThemeArc
