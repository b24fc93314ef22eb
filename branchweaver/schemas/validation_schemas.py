"""
Validation Schema Definitions

Side-effect-free result objects produced by the validators, keyed by the
``BranchVariation.id`` they were computed for, plus the user-supplied
``DeviationConfig`` policy.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from branchweaver.schemas.branch_schemas import ConsequenceScope
from branchweaver.schemas.context_schemas import Significance


# ─── Enums ────────────────────────────────────────────────────────────────────

class ValidationDimension(str, Enum):
    character_consistency = "character-consistency"
    world_consistency = "world-consistency"
    plot_plausibility = "plot-plausibility"
    thematic_coherence = "thematic-coherence"
    tone_consistency = "tone-consistency"
    pacing_balance = "pacing-balance"
    stakes_clarity = "stakes-clarity"
    narrative_satisfaction = "narrative-satisfaction"


class TraitTier(str, Enum):
    """How resistant a character trait is to change"""
    core = "core"
    secondary = "secondary"
    minor = "minor"


class DeviationLevel(str, Enum):
    strict = "strict"
    moderate = "moderate"
    flexible = "flexible"
    creative = "creative"


class DeviationStatus(str, Enum):
    accepted = "accepted"
    rejected = "rejected"
    needs_justification = "needs-justification"


class RuleType(str, Enum):
    hard = "hard"
    soft = "soft"


class RuleImportance(str, Enum):
    critical = "critical"
    major = "major"
    minor = "minor"


class ViolationSeverity(str, Enum):
    warning = "warning"
    error = "error"
    critical = "critical"


class FixType(str, Enum):
    automatic = "automatic"
    semi_automatic = "semi-automatic"
    manual = "manual"


class IssueSeverity(str, Enum):
    minor = "minor"
    major = "major"
    critical = "critical"


# ─── Multi-dimensional validation ─────────────────────────────────────────────

class DimensionValidation(BaseModel):
    dimension: ValidationDimension
    score: float = Field(..., ge=0, le=1)
    passed: bool
    issues: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)


class FullValidationResult(BaseModel):
    branch_id: str
    dimensions: Dict[ValidationDimension, DimensionValidation]
    overall_score: float = Field(..., ge=0, le=1)
    passed: bool
    critical_failures: List[ValidationDimension] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# ─── Tiered traits ────────────────────────────────────────────────────────────

class TraitDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tier: TraitTier
    description: str
    examples: List[str] = Field(default_factory=list)


class TraitValidation(BaseModel):
    trait: str
    tier: TraitTier
    preserved: bool
    deviation: str = Field(default="none", description="none | minor | major")
    justification: Optional[str] = None


class TieredValidationResult(BaseModel):
    branch_id: str
    character_id: str
    character_name: str
    overall_score: float = Field(..., ge=0, le=1)
    traits: List[TraitValidation] = Field(default_factory=list)
    core_violations: List[TraitValidation] = Field(default_factory=list)
    secondary_violations: List[TraitValidation] = Field(default_factory=list)
    minor_violations: List[TraitValidation] = Field(default_factory=list)

    @property
    def all_violations(self) -> List[TraitValidation]:
        return [*self.core_violations, *self.secondary_violations, *self.minor_violations]


class TieredCheck(BaseModel):
    valid: bool
    critical_issues: List[str] = Field(default_factory=list)


# ─── Deviation control ────────────────────────────────────────────────────────

class DeviationOverrides(BaseModel):
    """Explicit user overrides; ``None`` means 'use the level default'."""

    allow_core_changes: Optional[bool] = None
    allow_secondary_changes: Optional[bool] = None
    allow_minor_changes: Optional[bool] = None
    require_justification: Optional[bool] = None


class CharacterDeviationRules(BaseModel):
    allowed_deviations: List[str] = Field(default_factory=list)
    protected_traits: List[str] = Field(default_factory=list)


class DeviationConfig(BaseModel):
    level: DeviationLevel = DeviationLevel.moderate
    user_overrides: DeviationOverrides = Field(default_factory=DeviationOverrides)
    character_specific: Dict[str, CharacterDeviationRules] = Field(default_factory=dict)


class DeviationPermissions(BaseModel):
    model_config = ConfigDict(frozen=True)

    allow_core_changes: bool
    allow_secondary_changes: bool
    allow_minor_changes: bool
    require_justification: bool


class DeviationResult(BaseModel):
    allowed: bool
    requires_justification: bool
    suggested_justification: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class DeviationDecision(BaseModel):
    character_id: str
    character_name: str
    status: DeviationStatus
    offending_traits: List[str] = Field(default_factory=list)
    reason: str = ""
    result: TieredValidationResult


class DeviationReport(BaseModel):
    decisions: List[DeviationDecision] = Field(default_factory=list)

    def _with_status(self, status: DeviationStatus) -> List[DeviationDecision]:
        return [d for d in self.decisions if d.status == status]

    @property
    def accepted(self) -> List[DeviationDecision]:
        return self._with_status(DeviationStatus.accepted)

    @property
    def rejected(self) -> List[DeviationDecision]:
        return self._with_status(DeviationStatus.rejected)

    @property
    def needs_justification(self) -> List[DeviationDecision]:
        return self._with_status(DeviationStatus.needs_justification)


# ─── World rules ──────────────────────────────────────────────────────────────

class WorldRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    type: RuleType
    importance: RuleImportance
    established_in: Optional[str] = None


class RuleViolation(BaseModel):
    rule: WorldRule
    violation: str
    severity: ViolationSeverity
    suggested_fix: Optional[str] = None


class HardRuleSummary(BaseModel):
    total: int
    violated: int
    violations: List[RuleViolation] = Field(default_factory=list)


class SoftRuleSummary(BaseModel):
    total: int
    bent: int
    broken: int
    violations: List[RuleViolation] = Field(default_factory=list)


class WorldRulesValidation(BaseModel):
    branch_id: str
    hard_rules: HardRuleSummary
    soft_rules: SoftRuleSummary
    acceptable: bool
    requires_justification: bool
    blocked_by: List[str] = Field(
        default_factory=list,
        description="Ids of the hard rules that make the branch unacceptable",
    )


# ─── Fix workflow ─────────────────────────────────────────────────────────────

class SuggestedFix(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue: str
    severity: IssueSeverity
    fix_type: FixType
    suggestion: str
    automatic_fix: Optional[str] = None
    alternatives: List[str] = Field(default_factory=list)


class FixWorkflow(BaseModel):
    """Outstanding and resolved consistency issues for one branch.

    Operations in ``branchweaver.validation.fix_workflow`` never edit a
    workflow in place; each returns a new one.
    """
    model_config = ConfigDict(frozen=True)

    branch_id: str
    issues: List[SuggestedFix] = Field(default_factory=list)
    applied_fixes: List[str] = Field(default_factory=list)

    @property
    def auto_fixable(self) -> List[SuggestedFix]:
        return [i for i in self.issues if i.fix_type == FixType.automatic]

    @property
    def needs_manual(self) -> List[SuggestedFix]:
        manual = [i for i in self.issues if i.fix_type == FixType.manual]
        semi = [i for i in self.issues if i.fix_type == FixType.semi_automatic]
        return manual + semi

    @property
    def remaining_issues(self) -> List[str]:
        return [i.issue for i in self.issues]


class WorkflowStatus(BaseModel):
    complete: bool
    has_critical: bool
    can_proceed: bool
    summary: str


# ─── Premise validation ───────────────────────────────────────────────────────

class PremiseDimension(str, Enum):
    plausibility = "plausibility"
    story_fit = "story-fit"
    interest = "interest"


class PremiseIssue(BaseModel):
    dimension: PremiseDimension
    severity: IssueSeverity
    message: str
    suggestion: Optional[str] = None


class PremiseValidation(BaseModel):
    premise_id: str
    overall_score: float = Field(..., ge=0, le=1)
    dimensions: Dict[PremiseDimension, float]
    issues: List[PremiseIssue] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# ─── Context-aware strictness ─────────────────────────────────────────────────
# Each allowance enum is declared strictest first; that order is what
# "more lenient" means when rules are combined.

class StrictnessLevel(str, Enum):
    strict = "strict"
    moderate = "moderate"
    flexible = "flexible"


class CharacterDeviationAllowance(str, Enum):
    none = "none"
    minor = "minor"
    significant = "significant"


class WorldRuleBreaking(str, Enum):
    none = "none"
    soft_only = "soft-only"
    any_with_justification = "any-with-justification"


class TimelineChanges(str, Enum):
    none = "none"
    future_only = "future-only"
    any = "any"


class ToneShift(str, Enum):
    none = "none"
    gradual = "gradual"
    any = "any"


class StrictnessFactors(BaseModel):
    anchor_significance: Significance
    consequence_type: ConsequenceScope
    established_canon_pages: int = Field(default=0, ge=0, description="Pages of story written so far")


class StrictnessRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    character_deviation: CharacterDeviationAllowance
    world_rule_breaking: WorldRuleBreaking
    timeline_changes: TimelineChanges
    tone_shift: ToneShift
