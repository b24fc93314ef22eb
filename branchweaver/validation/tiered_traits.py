"""
Tiered Trait Validator

Character traits are split into three tiers by how resistant they should be
to change:

- core: values, primary motivation, moral alignment, identity
- secondary: personality, skills, relationships, goals
- minor: preferences, habits, surface behaviour

``validate_tiered_traits`` compares a character's established personality
against the arc a branch proposes for them and scores the result with the
tier weights in ``TIER_WEIGHTS``.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from branchweaver.schemas import (
    BranchVariation,
    CharacterArcProjection,
    CharacterState,
    Growth,
    TieredCheck,
    TieredValidationResult,
    TraitDefinition,
    TraitTier,
    TraitValidation,
)

TIER_WEIGHTS: Dict[TraitTier, float] = {
    TraitTier.core: 0.5,
    TraitTier.secondary: 0.3,
    TraitTier.minor: 0.2,
}

STANDARD_TRAITS: List[TraitDefinition] = [
    # Core: fundamental to identity
    TraitDefinition(name="core-values", tier=TraitTier.core,
                    description="Fundamental beliefs and principles",
                    examples=["honor", "family-first", "survival"]),
    TraitDefinition(name="primary-motivation", tier=TraitTier.core,
                    description="Main driving force",
                    examples=["revenge", "protection", "ambition"]),
    TraitDefinition(name="moral-alignment", tier=TraitTier.core,
                    description="Basic moral compass",
                    examples=["lawful-good", "chaotic-neutral", "evil"]),
    TraitDefinition(name="identity-foundation", tier=TraitTier.core,
                    description="Core sense of self",
                    examples=["hero", "villain", "outsider"]),
    # Secondary: may evolve
    TraitDefinition(name="personality-traits", tier=TraitTier.secondary,
                    description="Observable personality characteristics",
                    examples=["brave", "sarcastic", "anxious"]),
    TraitDefinition(name="skills-abilities", tier=TraitTier.secondary,
                    description="Talents and capabilities",
                    examples=["combat", "strategy", "magic"]),
    TraitDefinition(name="relationships", tier=TraitTier.secondary,
                    description="Important connections",
                    examples=["allies", "enemies", "mentors"]),
    TraitDefinition(name="goals-objectives", tier=TraitTier.secondary,
                    description="Current aims and objectives",
                    examples=["defeat villain", "find treasure", "save family"]),
    # Minor: surface level
    TraitDefinition(name="preferences", tier=TraitTier.minor,
                    description="Likes and dislikes",
                    examples=["favorite food", "hobbies", "aesthetic taste"]),
    TraitDefinition(name="habits", tier=TraitTier.minor,
                    description="Behavioral patterns",
                    examples=["speech patterns", "routines", "mannerisms"]),
    TraitDefinition(name="surface-behaviors", tier=TraitTier.minor,
                    description="Observable but changeable behaviors",
                    examples=["dress style", "speech formality", "posture"]),
    TraitDefinition(name="circumstantial", tier=TraitTier.minor,
                    description="Situation-dependent traits",
                    examples=["current mood", "temporary alliances", "recent wounds"]),
]

VALIDATED_CORE_TRAITS = ("core-values", "primary-motivation", "moral-alignment")
VALIDATED_SECONDARY_TRAITS = ("personality-traits", "skills-abilities", "relationships")
VALIDATED_MINOR_TRAITS = ("preferences", "habits")


def _find_arc(character: CharacterState, variation: BranchVariation) -> Optional[CharacterArcProjection]:
    return next((a for a in variation.character_arcs if a.character_id == character.id), None)


def _validate_core_trait(
    trait: str,
    character: CharacterState,
    arc: Optional[CharacterArcProjection],
) -> TraitValidation:
    # Without an established personality there is nothing to anchor core traits to
    personality = character.personality.lower()
    preserved = bool(personality) and (
        arc is None or arc.growth != Growth.negative or "stubborn" not in personality
    )
    return TraitValidation(
        trait=trait,
        tier=TraitTier.core,
        preserved=preserved,
        deviation="none" if preserved else "major",
        justification=None if preserved else "Arc conflicts with established personality",
    )


def _validate_secondary_trait(trait: str, arc: Optional[CharacterArcProjection]) -> TraitValidation:
    preserved = arc is None or arc.growth in (Growth.positive, Growth.complex)
    return TraitValidation(
        trait=trait,
        tier=TraitTier.secondary,
        preserved=preserved,
        deviation="none" if preserved else "minor",
        justification=None if preserved else "Character arc involves significant change",
    )


def _validate_minor_trait(trait: str) -> TraitValidation:
    return TraitValidation(trait=trait, tier=TraitTier.minor, preserved=True)


def validate_tiered_traits(character: CharacterState, variation: BranchVariation) -> TieredValidationResult:
    arc = _find_arc(character, variation)

    traits = [_validate_core_trait(t, character, arc) for t in VALIDATED_CORE_TRAITS]
    traits += [_validate_secondary_trait(t, arc) for t in VALIDATED_SECONDARY_TRAITS]
    traits += [_validate_minor_trait(t) for t in VALIDATED_MINOR_TRAITS]

    total_weight = sum(TIER_WEIGHTS[t.tier] for t in traits)
    preserved_weight = sum(TIER_WEIGHTS[t.tier] for t in traits if t.preserved)
    score = preserved_weight / total_weight if total_weight > 0 else 1.0

    def violations(tier: TraitTier) -> List[TraitValidation]:
        return [t for t in traits if t.tier == tier and not t.preserved]

    return TieredValidationResult(
        branch_id=variation.id,
        character_id=character.id,
        character_name=character.name,
        overall_score=min(1.0, max(0.0, score)),
        traits=traits,
        core_violations=violations(TraitTier.core),
        secondary_violations=violations(TraitTier.secondary),
        minor_violations=violations(TraitTier.minor),
    )


def check_tiered_validation(
    result: TieredValidationResult,
    allow_core_changes: bool = False,
    allow_secondary_changes: bool = True,
) -> TieredCheck:
    """Minor-tier violations are never critical."""
    issues = []
    if not allow_core_changes and result.core_violations:
        names = ", ".join(v.trait for v in result.core_violations)
        issues.append(f"Core trait violations for {result.character_name}: {names}")
    if not allow_secondary_changes and result.secondary_violations:
        names = ", ".join(v.trait for v in result.secondary_violations)
        issues.append(f"Secondary trait changes for {result.character_name}: {names}")
    return TieredCheck(valid=not issues, critical_issues=issues)


def trait_tier_description(tier: TraitTier) -> str:
    if tier == TraitTier.core:
        return "Fundamental to character identity - should never change without extreme justification"
    elif tier == TraitTier.secondary:
        return "Important characteristics - can evolve gradually with proper development"
    elif tier == TraitTier.minor:
        return "Surface-level traits - can change freely based on circumstances"
    raise ValueError(f"Unhandled trait tier: {tier}")
