"""
Variation Generator

Produces a small set of structurally distinct ``BranchVariation`` candidates
from a ``ContextPackage``. Candidate ``i`` takes scope ``i % 3`` and mood
``i % 4`` from fixed rotations, so successive candidates differ in both
reach and tone. The only randomness is the choice between equally valid
ending types and ending-state phrases, drawn from an injectable
``random.Random`` so tests can seed it.

Usage:
    from branchweaver.variation import VariationGenerator

    variations = VariationGenerator(random.Random(7)).generate(context, 4)
"""
from __future__ import annotations

import random
from typing import List, Optional, Sequence

from branchweaver.config import get_settings
from branchweaver.errors import InputError
from branchweaver.schemas import (
    BranchPremise,
    BranchTrajectory,
    BranchVariation,
    CharacterArcProjection,
    CharacterState,
    Complexity,
    ConsequenceScope,
    ContextPackage,
    EndingType,
    Growth,
    Mood,
    Significance,
)
from branchweaver.utils.logging_config import get_logger

logger = get_logger(__name__)

SCOPE_ROTATION = (ConsequenceScope.personal, ConsequenceScope.political, ConsequenceScope.cosmic)
MOOD_ROTATION = (Mood.hopeful, Mood.tragic, Mood.mixed, Mood.dark)

TURNING_POINTS = ("Point of no return", "Major revelation or shift", "Climactic confrontation")
MAX_THEME_PROGRESSION = 4


# ─── Enum dispatch ────────────────────────────────────────────────────────────

def significance_ceiling(significance: Significance) -> int:
    """Hard upper bound on candidates per anchor."""
    if significance == Significance.minor:
        return 2
    elif significance == Significance.moderate:
        return 3
    elif significance == Significance.major:
        return 4
    elif significance == Significance.critical:
        return 5
    raise ValueError(f"Unhandled significance: {significance}")


def ending_options(mood: Mood) -> List[EndingType]:
    if mood == Mood.hopeful:
        return [EndingType.hopeful]
    elif mood == Mood.tragic:
        return [EndingType.tragic]
    elif mood == Mood.dark:
        return [EndingType.tragic, EndingType.ambiguous]
    elif mood == Mood.mixed:
        return [EndingType.bittersweet, EndingType.ambiguous]
    raise ValueError(f"Unhandled mood: {mood}")


def growth_options(mood: Mood) -> List[Growth]:
    if mood == Mood.hopeful:
        return [Growth.positive]
    elif mood == Mood.tragic:
        return [Growth.negative]
    elif mood == Mood.dark:
        return [Growth.negative, Growth.complex]
    elif mood == Mood.mixed:
        return [Growth.complex]
    raise ValueError(f"Unhandled mood: {mood}")


def ending_state_phrases(growth: Growth) -> List[str]:
    if growth == Growth.positive:
        return ["fulfilled", "at peace", "triumphant", "wise"]
    elif growth == Growth.negative:
        return ["broken", "haunted", "defeated", "changed for worse"]
    elif growth == Growth.neutral:
        return ["different", "adapted", "resigned", "accepting"]
    elif growth == Growth.complex:
        return ["transformed", "conflicted", "enlightened but scarred", "evolved"]
    raise ValueError(f"Unhandled growth: {growth}")


def scope_key_events(scope: ConsequenceScope) -> List[str]:
    if scope == ConsequenceScope.personal:
        return [
            "Initial emotional response",
            "Personal relationships shift",
            "Internal struggle reaches peak",
            "Personal resolution or transformation",
        ]
    elif scope == ConsequenceScope.political:
        return [
            "Power dynamics shift",
            "Alliances form and break",
            "Conflicts escalate",
            "New order emerges",
        ]
    elif scope == ConsequenceScope.cosmic:
        return [
            "Ripple effects spread",
            "Larger forces take notice",
            "Scale of impact expands",
            "Fundamental changes occur",
        ]
    raise ValueError(f"Unhandled scope: {scope}")


def resolution_text(ending: EndingType, scope: ConsequenceScope) -> str:
    s = scope.value
    if ending == EndingType.hopeful:
        return f"The {s} challenges are overcome, leading to growth"
    elif ending == EndingType.tragic:
        return f"The {s} weight proves too much, leading to loss"
    elif ending == EndingType.bittersweet:
        return f"Victory comes at a cost in the {s} realm"
    elif ending == EndingType.ambiguous:
        return f"The {s} consequences remain unresolved"
    elif ending == EndingType.open:
        return f"New paths emerge from the {s} aftermath"
    raise ValueError(f"Unhandled ending type: {ending}")


def determine_complexity(significance: Significance, scope: ConsequenceScope) -> Complexity:
    if significance == Significance.critical or scope == ConsequenceScope.cosmic:
        return Complexity.complex
    if significance == Significance.major or scope == ConsequenceScope.political:
        return Complexity.moderate
    return Complexity.simple


def complexity_base_chapters(complexity: Complexity) -> int:
    if complexity == Complexity.simple:
        return 3
    elif complexity == Complexity.moderate:
        return 5
    elif complexity == Complexity.complex:
        return 8
    raise ValueError(f"Unhandled complexity: {complexity}")


def estimate_chapters(complexity: Complexity, character_count: int) -> int:
    return complexity_base_chapters(complexity) + character_count // 2


# ─── Generator ────────────────────────────────────────────────────────────────

class VariationGenerator:
    """Builds branch candidates for one context package at a time.

    Holds no state besides its random source; one instance may be reused
    across anchors.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate(
        self,
        context: ContextPackage,
        requested_count: Optional[int] = None,
    ) -> List[BranchVariation]:
        if requested_count is None:
            requested_count = get_settings().default_variation_count
        if requested_count < 1:
            raise InputError(f"requested_count must be at least 1, got {requested_count}")

        anchor = context.anchor
        ceiling = significance_ceiling(anchor.significance)
        final_count = min(requested_count, ceiling)
        if final_count < requested_count:
            logger.info(
                f"Clamped variation request from {requested_count} to {final_count}",
                extra={"anchor_id": anchor.id, "count": final_count},
            )

        variations = [self._build_variation(context, i) for i in range(final_count)]
        logger.info(
            "Generated variations",
            extra={"anchor_id": anchor.id, "count": len(variations)},
        )
        return variations

    def _build_variation(self, context: ContextPackage, index: int) -> BranchVariation:
        anchor = context.anchor
        scope = SCOPE_ROTATION[index % len(SCOPE_ROTATION)]
        mood = MOOD_ROTATION[index % len(MOOD_ROTATION)]
        complexity = determine_complexity(anchor.significance, scope)

        themes = [t.name for t in context.world.themes]
        themes.append(scope.value)

        return BranchVariation(
            id=f"branch-{anchor.id}-{index}",
            premise=self._build_premise(context, scope, mood),
            trajectory=self._build_trajectory(scope, mood),
            consequence_type=scope,
            theme_progression=themes[:MAX_THEME_PROGRESSION],
            mood=mood,
            complexity=complexity,
            estimated_chapters=estimate_chapters(complexity, len(context.characters)),
            character_arcs=self._build_arcs(context.characters, scope, mood),
        )

    def _build_premise(
        self,
        context: ContextPackage,
        scope: ConsequenceScope,
        mood: Mood,
    ) -> BranchPremise:
        anchor = context.anchor
        alternative = anchor.selected_alternative
        names_by_id = {c.id: c.name for c in context.characters}
        return BranchPremise(
            id=f"premise-{anchor.id}-{scope.value}",
            title=f"{scope.value.capitalize()} Consequences",
            subtitle=f"A {mood.value} variation",
            hook=f"What if the {anchor.type.value} led to {scope.value} consequences?",
            what_if=f"What if {alternative.description}?",
            description=alternative.description,
            themes=[scope.value, mood.value, anchor.type.value],
            affected_characters=[names_by_id.get(cid, cid) for cid in anchor.characters],
            immediate_consequences=list(alternative.consequences[:3]),
            long_term_implications=[],
        )

    def _build_trajectory(self, scope: ConsequenceScope, mood: Mood) -> BranchTrajectory:
        ending = self.rng.choice(ending_options(mood))
        return BranchTrajectory(
            summary=f"A {scope.value} journey with {mood.value} undertones",
            key_events=scope_key_events(scope),
            turning_points=list(TURNING_POINTS),
            climax=f"The {scope.value} consequences reach their peak",
            resolution=resolution_text(ending, scope),
            ending_type=ending,
        )

    def _build_arcs(
        self,
        characters: Sequence[CharacterState],
        scope: ConsequenceScope,
        mood: Mood,
    ) -> List[CharacterArcProjection]:
        arcs = []
        for char in characters:
            growth = self.rng.choice(growth_options(mood))
            arcs.append(
                CharacterArcProjection(
                    character_id=char.id,
                    character_name=char.name,
                    starting_state=char.current_state.emotional,
                    arc_description=(
                        f"{char.name} faces {scope.value} challenges that test their "
                        f"{char.personality or 'resolve'}"
                    ),
                    ending_state=self.rng.choice(ending_state_phrases(growth)),
                    growth=growth,
                )
            )
        return arcs


def generate_variations(
    context: ContextPackage,
    requested_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[BranchVariation]:
    return VariationGenerator(rng).generate(context, requested_count)
