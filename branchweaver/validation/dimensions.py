"""
Multi-Dimensional Validator

Scores a ``BranchVariation`` on eight independent narrative-quality
dimensions. Every dimension starts at a baseline of 0.7 (stakes clarity
starts from its scope baseline instead) and applies fixed additive
adjustments, then clamps to [0, 1]. The aggregate score is the unweighted
mean of the eight.

The validator is pure: it never touches the variation and returns the same
result for the same inputs.
"""
from __future__ import annotations

from statistics import fmean
from typing import Callable, Dict, List

from branchweaver.schemas import (
    BranchVariation,
    Complexity,
    ConsequenceScope,
    ContextPackage,
    DimensionValidation,
    EndingType,
    FullValidationResult,
    Mood,
    StyleTone,
    ValidationDimension,
)
from branchweaver.utils.logging_config import get_logger
from branchweaver.utils.text_similarity import clamp, title_case

logger = get_logger(__name__)

BASELINE = 0.7
PASS_THRESHOLD = 0.5
CRITICAL_THRESHOLD = 0.4
RECOMMENDATION_THRESHOLD = 0.7


class _ScoreCard:
    """Accumulates adjustments, issues and strengths for one dimension."""

    def __init__(self, dimension: ValidationDimension, baseline: float = BASELINE):
        self.dimension = dimension
        self.score = baseline
        self.issues: List[str] = []
        self.strengths: List[str] = []

    def credit(self, amount: float, strength: str) -> None:
        self.score += amount
        self.strengths.append(strength)

    def debit(self, amount: float, issue: str) -> None:
        self.score -= amount
        self.issues.append(issue)

    def result(self) -> DimensionValidation:
        # rounding keeps 0.7 - 0.2 from landing just under the pass mark
        score = round(clamp(self.score), 4)
        return DimensionValidation(
            dimension=self.dimension,
            score=score,
            passed=score >= PASS_THRESHOLD,
            issues=self.issues,
            strengths=self.strengths,
        )


# ─── Dimension validators ─────────────────────────────────────────────────────

def validate_character_consistency(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.character_consistency)
    arcs = variation.character_arcs

    if not arcs:
        card.debit(0.3, "No character arcs defined")
    else:
        card.credit(0.1, f"{len(arcs)} character arcs projected")

    if all(a.starting_state and a.ending_state and a.arc_description for a in arcs):
        card.credit(0.1, "All character arcs are well-defined")
    else:
        card.debit(0.1, "Some character arcs lack definition")
    return card.result()


def validate_world_consistency(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.world_consistency)
    world = context.world

    if variation.consequence_type == ConsequenceScope.cosmic and len(world.themes) < 2:
        card.debit(0.1, "Cosmic consequences may not fit limited world building")

    conflict_names = [c.name.lower() for c in world.active_conflicts]
    if conflict_names and any(
        name in event.lower() for event in variation.trajectory.key_events for name in conflict_names
    ):
        card.credit(0.15, "Branch connects to existing conflicts")
    return card.result()


def validate_plot_plausibility(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.plot_plausibility)

    if len(variation.trajectory.key_events) >= 3:
        card.credit(0.1, "Clear progression of events")
    else:
        card.debit(0.1, "Event chain may be too short")

    if variation.premise.immediate_consequences:
        card.credit(0.1, "Immediate consequences defined")
    else:
        card.debit(0.15, "Lack of immediate consequences")
    return card.result()


def validate_thematic_coherence(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.thematic_coherence)
    progression = variation.theme_progression

    if progression:
        card.credit(0.15, f"{len(progression)} themes developed")
    else:
        card.debit(0.2, "No theme progression defined")

    world_themes = [t.name.lower() for t in context.world.themes]
    if any(wt in theme.lower() for theme in progression for wt in world_themes):
        card.credit(0.1, "Themes align with story themes")
    return card.result()


def tone_allows_mood(tone: StyleTone, mood: Mood) -> bool:
    if tone == StyleTone.dark:
        return mood in (Mood.dark, Mood.tragic)
    elif tone == StyleTone.light:
        return mood == Mood.hopeful
    elif tone == StyleTone.neutral:
        return mood == Mood.mixed
    elif tone == StyleTone.mixed:
        return True
    raise ValueError(f"Unhandled tone: {tone}")


def mood_compatible_endings(mood: Mood) -> List[EndingType]:
    """Endings that read as consistent with a mood (looser than generation)."""
    if mood == Mood.hopeful:
        return [EndingType.hopeful, EndingType.bittersweet]
    elif mood == Mood.tragic:
        return [EndingType.tragic, EndingType.ambiguous]
    elif mood == Mood.mixed:
        return [EndingType.bittersweet, EndingType.ambiguous, EndingType.open]
    elif mood == Mood.dark:
        return [EndingType.tragic, EndingType.ambiguous]
    raise ValueError(f"Unhandled mood: {mood}")


def validate_tone_consistency(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.tone_consistency)

    if tone_allows_mood(context.style.tone.primary, variation.mood):
        card.credit(0.15, "Mood aligns with narrative style")
    else:
        card.debit(0.1, "Mood may conflict with established tone")

    if variation.trajectory.ending_type in mood_compatible_endings(variation.mood):
        card.credit(0.1, "Ending type matches mood")
    return card.result()


def validate_pacing_balance(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.pacing_balance)
    chapters = variation.estimated_chapters

    if chapters >= len(variation.trajectory.key_events):
        card.credit(0.1, "Adequate chapters for event count")
    else:
        card.debit(0.1, "May need more chapters for events")

    if variation.complexity == Complexity.complex and chapters >= 6:
        card.credit(0.1, "Complexity matches scope")
    return card.result()


def scope_stakes_baseline(scope: ConsequenceScope) -> float:
    if scope == ConsequenceScope.personal:
        return 0.7
    elif scope == ConsequenceScope.political:
        return 0.8
    elif scope == ConsequenceScope.cosmic:
        return 0.9
    raise ValueError(f"Unhandled scope: {scope}")


def validate_stakes_clarity(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(
        ValidationDimension.stakes_clarity,
        baseline=scope_stakes_baseline(variation.consequence_type),
    )
    affected = variation.premise.affected_characters
    if affected:
        card.credit(0.1, f"Stakes involve {len(affected)} characters")
    else:
        card.debit(0.2, "No characters affected by stakes")
    return card.result()


def validate_narrative_satisfaction(variation: BranchVariation, context: ContextPackage) -> DimensionValidation:
    card = _ScoreCard(ValidationDimension.narrative_satisfaction)
    trajectory = variation.trajectory

    if trajectory.resolution:
        card.credit(0.15, "Resolution defined")
    else:
        card.debit(0.2, "Resolution unclear")

    if trajectory.climax:
        card.credit(0.1, "Climax established")

    if all(arc.ending_state for arc in variation.character_arcs):
        card.credit(0.1, "All character arcs have endings")
    return card.result()


DIMENSION_VALIDATORS: Dict[ValidationDimension, Callable[[BranchVariation, ContextPackage], DimensionValidation]] = {
    ValidationDimension.character_consistency: validate_character_consistency,
    ValidationDimension.world_consistency: validate_world_consistency,
    ValidationDimension.plot_plausibility: validate_plot_plausibility,
    ValidationDimension.thematic_coherence: validate_thematic_coherence,
    ValidationDimension.tone_consistency: validate_tone_consistency,
    ValidationDimension.pacing_balance: validate_pacing_balance,
    ValidationDimension.stakes_clarity: validate_stakes_clarity,
    ValidationDimension.narrative_satisfaction: validate_narrative_satisfaction,
}


# ─── Aggregate ────────────────────────────────────────────────────────────────

def validate_all_dimensions(variation: BranchVariation, context: ContextPackage) -> FullValidationResult:
    dimensions = {dim: validate(variation, context) for dim, validate in DIMENSION_VALIDATORS.items()}

    overall = fmean(d.score for d in dimensions.values())
    critical = [dim for dim, d in dimensions.items() if d.score < CRITICAL_THRESHOLD]

    result = FullValidationResult(
        branch_id=variation.id,
        dimensions=dimensions,
        overall_score=clamp(overall),
        passed=all(d.passed for d in dimensions.values()),
        critical_failures=critical,
        recommendations=generate_recommendations(dimensions),
    )
    logger.debug(
        "Validated dimensions",
        extra={"branch_id": variation.id, "score": result.overall_score},
    )
    return result


def generate_recommendations(dimensions: Dict[ValidationDimension, DimensionValidation]) -> List[str]:
    return [
        f"{title_case(dim.value)}: {d.issues[0]}"
        for dim, d in dimensions.items()
        if d.score < RECOMMENDATION_THRESHOLD and d.issues
    ]
