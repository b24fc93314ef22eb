"""
Comparison Schema Definitions

Pairwise and multi-branch comparison results. A ``MultiBranchComparison`` is
built once per request; adding a branch means rebuilding it.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from branchweaver.schemas.branch_schemas import BranchVariation, EndingType, Growth, Mood


# ─── Enums ────────────────────────────────────────────────────────────────────

class ComparisonDimension(str, Enum):
    premise_similarity = "premise-similarity"
    character_fates = "character-fates"
    theme_alignment = "theme-alignment"
    ending_contrast = "ending-contrast"
    emotional_arc = "emotional-arc"
    consequence_scope = "consequence-scope"
    narrative_structure = "narrative-structure"
    reader_experience = "reader-experience"


class FateDivergence(str, Enum):
    none = "none"
    minor = "minor"
    significant = "significant"
    complete = "complete"


# ─── Pairwise ─────────────────────────────────────────────────────────────────

class DimensionComparison(BaseModel):
    dimension: ComparisonDimension
    similarity: float = Field(..., ge=0, le=1, description="1 = identical")
    differences: List[str] = Field(default_factory=list)
    notable: List[str] = Field(default_factory=list)


class BranchComparison(BaseModel):
    branch_a_id: str
    branch_b_id: str
    dimensions: Dict[ComparisonDimension, DimensionComparison]
    overall_similarity: float = Field(..., ge=0, le=1)
    key_differences: List[str] = Field(default_factory=list)
    recommendation: str = ""


# ─── Character fates ──────────────────────────────────────────────────────────

class CharacterFateComparison(BaseModel):
    character_id: str
    character_name: str
    fate_similarity: float = Field(..., ge=0, le=1)
    fate_divergence: FateDivergence
    branch_a_state: str
    branch_b_state: str
    branch_a_growth: Growth
    branch_b_growth: Growth
    implications: List[str] = Field(default_factory=list)


class CharacterFateMatrix(BaseModel):
    characters: List[CharacterFateComparison] = Field(default_factory=list)
    overall_similarity: float = Field(..., ge=0, le=1)
    most_divergent: Optional[CharacterFateComparison] = None
    most_similar: Optional[CharacterFateComparison] = None
    summary: str = ""


class CharacterFatesAcrossBranches(BaseModel):
    # character id -> branch id -> ending state
    character_fates: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    # row/column order follows the input branch order
    divergence_heatmap: List[List[float]] = Field(default_factory=list)


# ─── Multi-branch ─────────────────────────────────────────────────────────────

class RankingCriteria(BaseModel):
    character_impact: float = Field(..., ge=0, le=1)
    thematic_depth: float = Field(..., ge=0, le=1)
    emotional_resonance: float = Field(..., ge=0, le=1)
    narrative_coherence: float = Field(..., ge=0, le=1)
    originality: float = Field(..., ge=0, le=1)


class BranchRanking(BaseModel):
    branch_id: str
    branch_name: str
    rank: int = Field(..., ge=1)
    score: float = Field(..., ge=0, le=1)
    criteria: RankingCriteria


class ConsensusAnalysis(BaseModel):
    most_popular_ending: str
    most_common_mood: str
    shared_themes: List[str] = Field(default_factory=list)
    divergent_aspects: List[str] = Field(default_factory=list)


class MultiBranchComparison(BaseModel):
    branches: List[BranchVariation]
    # canonical pair key (see comparison.dimensions.pair_key) -> comparison
    pairwise: Dict[str, BranchComparison] = Field(default_factory=dict)
    character_fates: CharacterFatesAcrossBranches
    rankings: List[BranchRanking] = Field(default_factory=list)
    consensus: ConsensusAnalysis
    unique_branches: List[BranchVariation] = Field(default_factory=list)
    similar_groups: List[List[BranchVariation]] = Field(default_factory=list)


# ─── Tree diagram ─────────────────────────────────────────────────────────────

class TreeNodeType(str, Enum):
    root = "root"
    branch = "branch"
    event = "event"
    climax = "climax"
    ending = "ending"


class TreeLayout(str, Enum):
    vertical = "vertical"
    horizontal = "horizontal"
    radial = "radial"


class TreeNodeMetadata(BaseModel):
    mood: Optional[Mood] = None
    ending_type: Optional[EndingType] = None
    chapter_count: Optional[int] = None


class TreeNode(BaseModel):
    id: str
    type: TreeNodeType
    label: str
    description: Optional[str] = None
    metadata: Optional[TreeNodeMetadata] = None
    children: List[TreeNode] = Field(default_factory=list)


class TreeDiagram(BaseModel):
    root: TreeNode
    branches: List[BranchVariation]
    layout: TreeLayout = TreeLayout.vertical
    depth: int = Field(..., ge=0, description="Edges on the longest root-to-leaf path")


class DivergencePoint(BaseModel):
    common_elements: List[str] = Field(default_factory=list)
    divergence_index: int = Field(..., ge=0)
    # one remainder per branch, in input order
    divergent_paths: List[List[str]] = Field(default_factory=list)


TreeNode.model_rebuild()
