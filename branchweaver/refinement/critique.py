"""
Critique-based refinement.

Seven rule-based detectors look for shallow character arcs, thin plot
trajectories, missing themes, a weak climax, unclear long-term stakes,
pacing mismatch and thin world context. Critique ids are derived from the
aspect, so the same problem carries the same id across iterations and
``compare_critiques`` can tell resolved issues from new ones.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from branchweaver.schemas import (
    BranchVariation,
    ContextPackage,
    Critique,
    CritiqueBasedRefinement,
    CritiqueComparison,
    CritiqueSeverity,
    RefinementArea,
    RefinementChange,
)

SHALLOW_ARC_LENGTH = 50
RICH_PREMISE_LENGTH = 100


def critique_id(aspect: RefinementArea) -> str:
    return f"critique-{aspect.value}"


def severity_rank(severity: CritiqueSeverity) -> int:
    """Sort key: major first."""
    if severity == CritiqueSeverity.major:
        return 0
    elif severity == CritiqueSeverity.moderate:
        return 1
    elif severity == CritiqueSeverity.minor:
        return 2
    raise ValueError(f"Unhandled critique severity: {severity}")


def sort_critiques(critiques: Sequence[Critique]) -> List[Critique]:
    return sorted(critiques, key=lambda c: severity_rank(c.severity))


def _critique(
    aspect: RefinementArea,
    severity: CritiqueSeverity,
    observation: str,
    suggestion: str,
    examples: Optional[List[str]] = None,
) -> Critique:
    return Critique(
        id=critique_id(aspect),
        aspect=aspect,
        severity=severity,
        observation=observation,
        suggestion=suggestion,
        examples=examples or [],
    )


def generate_critiques(variation: BranchVariation, context: Optional[ContextPackage] = None) -> List[Critique]:
    """Run every detector and return the findings sorted major -> minor."""
    critiques = []
    trajectory = variation.trajectory

    shallow = [a.character_name for a in variation.character_arcs if len(a.arc_description) < SHALLOW_ARC_LENGTH]
    if shallow:
        critiques.append(_critique(
            RefinementArea.character_depth, CritiqueSeverity.moderate,
            f"{len(shallow)} character(s) have underdeveloped arcs",
            "Expand on internal conflicts and growth moments",
            shallow,
        ))

    if len(trajectory.key_events) < 3:
        critiques.append(_critique(
            RefinementArea.plot_coherence, CritiqueSeverity.major,
            "Plot trajectory lacks sufficient events",
            "Add intermediate complications and turning points",
        ))

    if not variation.theme_progression:
        critiques.append(_critique(
            RefinementArea.theme_development, CritiqueSeverity.major,
            "No theme progression defined",
            "Develop how themes evolve through the branch",
        ))

    climax = trajectory.climax.lower()
    if "emotional" not in climax and "confrontation" not in climax:
        critiques.append(_critique(
            RefinementArea.emotional_impact, CritiqueSeverity.moderate,
            "Climax may lack emotional resonance",
            "Heighten emotional stakes at the climax",
        ))

    if not variation.premise.long_term_implications:
        critiques.append(_critique(
            RefinementArea.stakes_clarity, CritiqueSeverity.moderate,
            "Long-term stakes not clearly established",
            "Define what happens if the branch succeeds or fails",
        ))

    expected_events = variation.estimated_chapters * 2
    if len(trajectory.key_events) < expected_events * 0.5:
        critiques.append(_critique(
            RefinementArea.pacing, CritiqueSeverity.minor,
            "Event density may be too low for planned chapter count",
            "Add more plot events or reduce chapter estimate",
        ))

    if len(variation.premise.description) <= RICH_PREMISE_LENGTH:
        critiques.append(_critique(
            RefinementArea.world_building, CritiqueSeverity.minor,
            "Limited world context in premise",
            "Expand on how the world state affects the branch",
        ))

    return sort_critiques(critiques)


def apply_critique_fix(
    variation: BranchVariation,
    critique: Critique,
) -> Tuple[BranchVariation, List[RefinementChange]]:
    """Apply the canned fix for one critique; an empty change list means nothing applied."""
    aspect = critique.aspect
    trajectory = variation.trajectory
    premise = variation.premise

    if aspect == RefinementArea.character_depth:
        changes = []
        arcs = []
        for arc in variation.character_arcs:
            if arc.character_name in critique.examples:
                new_arc = arc.model_copy(update={
                    "arc_description": f"{arc.arc_description} (enhanced: {critique.suggestion})",
                })
                changes.append(RefinementChange(
                    area=aspect,
                    description=f"Enhanced {arc.character_name}'s arc",
                    before=arc.arc_description,
                    after=new_arc.arc_description,
                ))
                arcs.append(new_arc)
            else:
                arcs.append(arc)
        return variation.model_copy(update={"character_arcs": arcs}), changes

    elif aspect == RefinementArea.plot_coherence:
        events = [
            "Complication: Unexpected obstacle arises",
            "Rising Action: Stakes intensify",
            *trajectory.key_events,
        ]
        refined = variation.model_copy(update={"trajectory": trajectory.model_copy(update={"key_events": events})})
        return refined, [RefinementChange(
            area=aspect,
            description=critique.suggestion,
            before=f"{len(trajectory.key_events)} events",
            after=f"{len(events)} events",
        )]

    elif aspect == RefinementArea.theme_development:
        if variation.theme_progression:
            return variation, []
        themes = ["primary-theme-development", "secondary-theme-exploration"]
        return variation.model_copy(update={"theme_progression": themes}), [RefinementChange(
            area=aspect,
            description=critique.suggestion,
            before="No themes",
            after="Primary and secondary themes defined",
        )]

    elif aspect == RefinementArea.emotional_impact:
        climax = f"{trajectory.climax} (with heightened emotional stakes)"
        refined = variation.model_copy(update={"trajectory": trajectory.model_copy(update={"climax": climax})})
        return refined, [RefinementChange(
            area=aspect, description=critique.suggestion, before=trajectory.climax, after=climax,
        )]

    elif aspect == RefinementArea.stakes_clarity:
        implications = [
            *premise.long_term_implications,
            "Success: Positive long-term outcome",
            "Failure: Negative consequences persist",
        ]
        refined = variation.model_copy(update={
            "premise": premise.model_copy(update={"long_term_implications": implications}),
        })
        return refined, [RefinementChange(
            area=aspect,
            description=critique.suggestion,
            before=f"{len(premise.long_term_implications)} implications",
            after=f"{len(implications)} implications",
        )]

    elif aspect == RefinementArea.pacing:
        chapters = max(3, variation.estimated_chapters - 1)
        if chapters == variation.estimated_chapters:
            return variation, []
        return variation.model_copy(update={"estimated_chapters": chapters}), [RefinementChange(
            area=aspect,
            description=critique.suggestion,
            before=f"{variation.estimated_chapters} chapters",
            after=f"{chapters} chapters",
        )]

    elif aspect == RefinementArea.world_building:
        description = f"{premise.description} (Context: {critique.suggestion})"
        refined = variation.model_copy(update={
            "premise": premise.model_copy(update={"description": description}),
        })
        return refined, [RefinementChange(
            area=aspect,
            description=critique.suggestion,
            before="Brief description",
            after="Expanded with world context",
        )]

    elif aspect == RefinementArea.dialogue_quality:
        # No detector emits dialogue critiques; dialogue is handled at writing time
        return variation, []

    raise ValueError(f"Unhandled refinement area: {aspect}")


def apply_critique_refinement(
    variation: BranchVariation,
    critiques: Sequence[Critique],
    limit: Optional[int] = None,
) -> CritiqueBasedRefinement:
    """Apply fixes in severity order, at most ``limit`` critiques when given."""
    refined = variation
    changes: List[RefinementChange] = []
    addressed: List[Critique] = []

    for critique in sort_critiques(critiques):
        if limit is not None and len(addressed) >= limit:
            break
        refined, applied = apply_critique_fix(refined, critique)
        if applied:
            changes.extend(applied)
            addressed.append(critique)

    return CritiqueBasedRefinement(
        original=variation,
        refined=refined,
        critiques=list(critiques),
        addressed_critiques=addressed,
        changes=changes,
    )


def compare_critiques(before: Sequence[Critique], after: Sequence[Critique]) -> CritiqueComparison:
    before_ids = {c.id for c in before}
    after_ids = {c.id for c in after}
    return CritiqueComparison(
        resolved=[c for c in before if c.id not in after_ids],
        remaining=[c for c in after if c.id in before_ids],
        new_issues=[c for c in after if c.id not in before_ids],
    )
