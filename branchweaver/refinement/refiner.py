"""
User-triggered branch refinement.

Eight area refiners, one per ``RefinementArea``. Each takes the current
variation and the user's instructions and returns a new variation plus the
``RefinementChange`` records describing what moved; an empty list means the
area had nothing to do. ``trigger_refinement`` runs the requested areas in
order and, when given a ``TextGenerator``, polishes the result.
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from branchweaver.schemas import (
    BranchVariation,
    ContextPackage,
    EndingType,
    Mood,
    RefinementArea,
    RefinementChange,
    RefinementRequest,
    RefinementResult,
)
from branchweaver.refinement.text_generation import TextGenerator
from branchweaver.utils.logging_config import BranchAdapter, get_logger
from branchweaver.utils.text_similarity import clamp
from branchweaver.variation.generator import MAX_THEME_PROGRESSION, complexity_base_chapters

_logger = get_logger(__name__)

AreaRefinement = Tuple[BranchVariation, List[RefinementChange]]

USER_THEME_PREFIX = "user-requested: "


# ─── Area refiners ────────────────────────────────────────────────────────────

def refine_character_depth(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    if not instructions:
        return variation, []
    known = {c.id for c in context.characters}
    arcs = []
    changes = []
    for arc in variation.character_arcs:
        if arc.character_id not in known:
            arcs.append(arc)
            continue
        new_arc = arc.model_copy(update={"arc_description": f"{arc.arc_description} (enhanced: {instructions})"})
        changes.append(RefinementChange(
            area=RefinementArea.character_depth,
            description=f"Enhanced arc for {arc.character_name}",
            before=arc.arc_description,
            after=new_arc.arc_description,
        ))
        arcs.append(new_arc)
    return variation.model_copy(update={"character_arcs": arcs}), changes


def refine_plot_coherence(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    setup = "Setup: Establishing context"
    events = variation.trajectory.key_events
    if "clearer" not in instructions.lower() or setup in events:
        return variation, []
    trajectory = variation.trajectory.model_copy(update={"key_events": [setup, *events]})
    return variation.model_copy(update={"trajectory": trajectory}), [RefinementChange(
        area=RefinementArea.plot_coherence,
        description="Added setup context",
        before="No explicit setup",
        after=setup,
    )]


def refine_theme_development(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    if not instructions:
        return variation, []
    # One user-requested entry at a time, inside the progression cap
    kept = [t for t in variation.theme_progression if not t.startswith(USER_THEME_PREFIX)]
    themes = [*kept[:MAX_THEME_PROGRESSION - 1], f"{USER_THEME_PREFIX}{instructions}"]
    return variation.model_copy(update={"theme_progression": themes}), [RefinementChange(
        area=RefinementArea.theme_development,
        description="Added user-requested theme emphasis",
        before=", ".join(variation.theme_progression),
        after=", ".join(themes),
    )]


def refine_emotional_impact(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    if not instructions:
        return variation, []
    climax = f"{variation.trajectory.climax} (heightened emotional impact: {instructions})"
    trajectory = variation.trajectory.model_copy(update={"climax": climax})
    return variation.model_copy(update={"trajectory": trajectory}), [RefinementChange(
        area=RefinementArea.emotional_impact,
        description="Enhanced climax emotional weight",
        before=variation.trajectory.climax,
        after=climax,
    )]


def refine_dialogue_quality(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    # Dialogue only exists once chapters are written; record the request
    if not instructions:
        return variation, []
    return variation, [RefinementChange(
        area=RefinementArea.dialogue_quality,
        description="Marked for dialogue enhancement",
        before="Standard dialogue",
        after=f"Enhanced dialogue: {instructions}",
    )]


def refine_pacing(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    lowered = instructions.lower()
    chapters = variation.estimated_chapters
    if "faster" in lowered:
        chapters = max(3, chapters - 1)
    elif "slower" in lowered:
        chapters += 1
    if chapters == variation.estimated_chapters:
        return variation, []
    return variation.model_copy(update={"estimated_chapters": chapters}), [RefinementChange(
        area=RefinementArea.pacing,
        description="Adjusted chapter count",
        before=f"{variation.estimated_chapters} chapters",
        after=f"{chapters} chapters",
    )]


def refine_world_building(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    if not instructions:
        return variation, []
    setting = context.world.setting or "the established world"
    description = f"{variation.premise.description} (World: {setting}; {instructions})"
    premise = variation.premise.model_copy(update={"description": description})
    return variation.model_copy(update={"premise": premise}), [RefinementChange(
        area=RefinementArea.world_building,
        description="Enhanced world details",
        before=variation.premise.description,
        after=description,
    )]


def refine_stakes_clarity(variation: BranchVariation, context: ContextPackage, instructions: str) -> AreaRefinement:
    if not instructions:
        return variation, []
    implications = [*variation.premise.long_term_implications, f"Clarified stakes: {instructions}"]
    premise = variation.premise.model_copy(update={"long_term_implications": implications})
    return variation.model_copy(update={"premise": premise}), [RefinementChange(
        area=RefinementArea.stakes_clarity,
        description="Added stakes clarification",
        before=f"{len(variation.premise.long_term_implications)} implications",
        after=f"Clarified: {instructions}",
    )]


def refine_area(
    variation: BranchVariation,
    context: ContextPackage,
    area: RefinementArea,
    instructions: str,
) -> AreaRefinement:
    if area == RefinementArea.character_depth:
        return refine_character_depth(variation, context, instructions)
    elif area == RefinementArea.plot_coherence:
        return refine_plot_coherence(variation, context, instructions)
    elif area == RefinementArea.theme_development:
        return refine_theme_development(variation, context, instructions)
    elif area == RefinementArea.emotional_impact:
        return refine_emotional_impact(variation, context, instructions)
    elif area == RefinementArea.dialogue_quality:
        return refine_dialogue_quality(variation, context, instructions)
    elif area == RefinementArea.pacing:
        return refine_pacing(variation, context, instructions)
    elif area == RefinementArea.world_building:
        return refine_world_building(variation, context, instructions)
    elif area == RefinementArea.stakes_clarity:
        return refine_stakes_clarity(variation, context, instructions)
    raise ValueError(f"Unhandled refinement area: {area}")


# ─── Orchestration ────────────────────────────────────────────────────────────

def _polish_prompt(variation: BranchVariation, instructions: str) -> str:
    t = variation.trajectory
    return (
        "Rewrite this story branch summary as two vivid sentences. Keep every plot fact.\n"
        f"Premise: {variation.premise.what_if}\n"
        f"Summary: {t.summary}\n"
        f"Key events: {'; '.join(t.key_events)}\n"
        f"Climax: {t.climax}\n"
        f"Resolution: {t.resolution}\n"
        f"Mood: {variation.mood.value}\n"
        f"Author notes: {instructions or 'none'}"
    )


async def trigger_refinement(
    variation: BranchVariation,
    context: ContextPackage,
    request: RefinementRequest,
    text_generator: Optional[TextGenerator] = None,
    timeout: Optional[float] = None,
) -> RefinementResult:
    """Apply every requested area refiner in order.

    The text generator call is bounded by ``timeout`` and raises
    ``asyncio.TimeoutError`` when it expires. ``user_satisfied`` is always
    False here; only the user decides that.
    """
    current = variation
    changes: List[RefinementChange] = []
    for area in request.focus_areas:
        current, area_changes = refine_area(current, context, area, request.user_instructions)
        changes.extend(area_changes)

    if text_generator is not None:
        summary = await asyncio.wait_for(
            text_generator.generate(_polish_prompt(current, request.user_instructions)),
            timeout=timeout,
        )
        if summary != current.trajectory.summary:
            changes.append(RefinementChange(
                area=RefinementArea.plot_coherence,
                description="Polished trajectory summary",
                before=current.trajectory.summary,
                after=summary,
            ))
            current = current.model_copy(update={
                "trajectory": current.trajectory.model_copy(update={"summary": summary}),
            })

    BranchAdapter(_logger, variation.id).debug(
        f"Refinement applied {len(changes)} changes",
        extra={"count": len(changes)},
    )
    return RefinementResult(
        original=variation,
        refined=current,
        changes=changes,
        score=calculate_branch_score(current),
    )


# ─── Scoring ──────────────────────────────────────────────────────────────────

def mood_ending_aligned(mood: Mood, ending: EndingType) -> bool:
    if mood == Mood.hopeful:
        return ending == EndingType.hopeful
    elif mood == Mood.tragic:
        return ending == EndingType.tragic
    elif mood == Mood.mixed:
        return ending in (EndingType.bittersweet, EndingType.ambiguous)
    elif mood == Mood.dark:
        return ending in (EndingType.tragic, EndingType.ambiguous)
    raise ValueError(f"Unhandled mood: {mood}")


def calculate_branch_score(variation: BranchVariation) -> float:
    """Composite quality score in [0, 1] used to measure refinement progress."""
    score = 0.5
    arcs = variation.character_arcs
    trajectory = variation.trajectory
    premise = variation.premise

    # Arc completeness
    if arcs:
        complete = sum(1 for a in arcs if a.starting_state and a.ending_state)
        score += 0.1 + (complete / len(arcs)) * 0.1

    # Theme count
    score += min(len(variation.theme_progression) * 0.05, 0.15)

    # Trajectory completeness
    if len(trajectory.key_events) >= 3:
        score += 0.1
    if trajectory.climax:
        score += 0.05
    if trajectory.resolution:
        score += 0.05

    # Premise quality
    if premise.affected_characters:
        score += 0.05
    if premise.immediate_consequences:
        score += 0.05
    if premise.long_term_implications:
        score += 0.05

    # Chapter count fits complexity
    expected = complexity_base_chapters(variation.complexity)
    score += 0.15 if abs(variation.estimated_chapters - expected) <= 1 else 0.05

    # Mood / ending alignment
    score += 0.15 if mood_ending_aligned(variation.mood, trajectory.ending_type) else 0.05

    return round(clamp(score), 4)
