"""
Theme progression.

Lays each theme of a branch over four stages (introduction, development,
climax, resolution) with stock events, a phrasing per stage and a per
character note of how that stage touches them. Phrasings are drawn from an
injectable ``random.Random``; everything else is fixed by the stage, the
branch mood and its consequence scope.
"""
from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

from branchweaver.schemas import (
    BranchVariation,
    ConsequenceScope,
    ContextPackage,
    Mood,
    ThemeArc,
    ThemeProgression,
    ThemeProgressionStage,
    ThemeStage,
)

SAME_ARC_WEIGHT = 0.3
SAME_ENDING_WEIGHT = 0.7


def stage_expressions(stage: ThemeStage, theme: str) -> Tuple[str, ...]:
    if stage == ThemeStage.introduction:
        return (f"The theme of {theme} is introduced subtly",
                f"{theme} emerges as a background concern",
                f"Early hints of {theme} appear")
    elif stage == ThemeStage.development:
        return (f"{theme} deepens through character choices",
                f"The complexity of {theme} is revealed",
                f"{theme} creates tension and conflict")
    elif stage == ThemeStage.climax:
        return (f"{theme} reaches its most intense expression",
                f"The core of {theme} is tested",
                f"{theme} drives the pivotal moment")
    elif stage == ThemeStage.resolution:
        return (f"{theme} finds its ultimate expression",
                f"The meaning of {theme} becomes clear",
                f"{theme} resolves or transforms")
    raise ValueError(f"Unhandled theme stage: {stage}")


def stage_events(stage: ThemeStage, theme: str) -> List[str]:
    if stage == ThemeStage.introduction:
        return [f"First hint of {theme} appears", f"Characters encounter {theme} indirectly"]
    elif stage == ThemeStage.development:
        return [f"{theme} creates complications",
                f"Characters must confront {theme}",
                f"The stakes related to {theme} escalate"]
    elif stage == ThemeStage.climax:
        return [f"{theme} drives the major confrontation", f"The true nature of {theme} is revealed"]
    elif stage == ThemeStage.resolution:
        return [f"{theme} reaches its conclusion", f"Final statement on {theme}"]
    raise ValueError(f"Unhandled theme stage: {stage}")


def character_impacts(stage: ThemeStage, theme: str) -> Tuple[str, ...]:
    if stage == ThemeStage.introduction:
        return (f"First awareness of {theme}",
                f"Subtle influence of {theme}",
                f"Unconscious reaction to {theme}")
    elif stage == ThemeStage.development:
        return (f"Growing engagement with {theme}",
                f"Personal stake in {theme} emerges",
                f"{theme} challenges their beliefs")
    elif stage == ThemeStage.climax:
        return (f"Defining moment for {theme}",
                f"Must choose regarding {theme}",
                f"{theme} tests their core")
    elif stage == ThemeStage.resolution:
        return (f"Final relationship to {theme} established",
                f"Learned from {theme}",
                f"{theme} becomes part of their story")
    raise ValueError(f"Unhandled theme stage: {stage}")


def ending_expressions(mood: Mood, theme: str) -> Tuple[str, ...]:
    if mood == Mood.hopeful:
        return (f"{theme} triumphs, bringing positive change",
                f"The meaning of {theme} is fulfilled",
                f"{theme} leads to growth and understanding")
    elif mood == Mood.tragic:
        return (f"{theme} ends in loss and sorrow",
                f"The cost of {theme} proves too high",
                f"{theme} reveals harsh truths")
    elif mood == Mood.mixed:
        return (f"{theme} resolves with both gain and loss",
                f"The complexity of {theme} is acknowledged",
                f"{theme} brings bittersweet understanding")
    elif mood == Mood.dark:
        return (f"{theme} deepens into something ominous",
                f"The shadow side of {theme} dominates",
                f"{theme} reveals uncomfortable truths")
    raise ValueError(f"Unhandled mood: {mood}")


def theme_arc(variation: BranchVariation) -> ThemeArc:
    if variation.mood == Mood.hopeful:
        return ThemeArc.ascending
    if variation.mood == Mood.tragic:
        return ThemeArc.descending
    if variation.consequence_type == ConsequenceScope.cosmic:
        return ThemeArc.cyclical
    return ThemeArc.linear


class ThemeProgressionBuilder:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def stage(self, stage: ThemeStage, theme: str, variation: BranchVariation) -> ThemeProgressionStage:
        impacts = character_impacts(stage, theme)
        impact: Dict[str, str] = {
            arc.character_id: self.rng.choice(impacts) for arc in variation.character_arcs
        }
        return ThemeProgressionStage(
            stage=stage,
            theme=theme,
            expression=self.rng.choice(stage_expressions(stage, theme)),
            events=stage_events(stage, theme),
            character_impact=impact,
        )

    def progression(self, theme: str, variation: BranchVariation, context: ContextPackage) -> ThemeProgression:
        world_theme = next((t for t in context.world.themes if t.name == theme), None)
        starting = world_theme.current_expression if world_theme else ""
        return ThemeProgression(
            theme=theme,
            starting_expression=starting or f"Introduction of {theme}",
            stages=[self.stage(s, theme, variation) for s in ThemeStage],
            ending_expression=self.rng.choice(ending_expressions(variation.mood, theme)),
            arc=theme_arc(variation),
        )


def implement_theme_progression(
    variation: BranchVariation,
    context: ContextPackage,
    rng: Optional[random.Random] = None,
) -> List[ThemeProgression]:
    builder = ThemeProgressionBuilder(rng)
    return [builder.progression(theme, variation, context) for theme in variation.theme_progression]


def compare_theme_progressions(
    first: Sequence[ThemeProgression],
    second: Sequence[ThemeProgression],
) -> float:
    """Mean similarity over the themes both sides share; 0.0 when they share none."""
    by_theme = {p.theme: p for p in second}
    total = 0.0
    compared = 0
    for progression in first:
        other = by_theme.get(progression.theme)
        if other is None:
            continue
        if progression.arc == other.arc:
            total += SAME_ARC_WEIGHT
        if progression.ending_expression == other.ending_expression:
            total += SAME_ENDING_WEIGHT
        compared += 1
    return round(total / compared, 4) if compared else 0.0
