"""
Context-aware strictness.

Picks how much a branch may deviate from canon. The chosen
``StrictnessLevel`` supplies base rules; the anchor's significance, the
branch's consequence scope and the amount of canon written so far each
propose adjustments. Adjustments can only loosen a rule: for every rule the
more lenient of the current and proposed value wins, leniency following the
declaration order of the allowance enums.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict

from branchweaver.schemas import (
    CharacterDeviationAllowance,
    ConsequenceScope,
    Significance,
    StrictnessFactors,
    StrictnessLevel,
    StrictnessRules,
    TimelineChanges,
    ToneShift,
    WorldRuleBreaking,
)

DEEP_CANON_PAGES = 200
ESTABLISHED_CANON_PAGES = 100


def base_rules(level: StrictnessLevel) -> StrictnessRules:
    if level == StrictnessLevel.strict:
        return StrictnessRules(
            character_deviation=CharacterDeviationAllowance.none,
            world_rule_breaking=WorldRuleBreaking.none,
            timeline_changes=TimelineChanges.none,
            tone_shift=ToneShift.none,
        )
    elif level == StrictnessLevel.moderate:
        return StrictnessRules(
            character_deviation=CharacterDeviationAllowance.minor,
            world_rule_breaking=WorldRuleBreaking.soft_only,
            timeline_changes=TimelineChanges.future_only,
            tone_shift=ToneShift.gradual,
        )
    elif level == StrictnessLevel.flexible:
        return StrictnessRules(
            character_deviation=CharacterDeviationAllowance.significant,
            world_rule_breaking=WorldRuleBreaking.any_with_justification,
            timeline_changes=TimelineChanges.any,
            tone_shift=ToneShift.any,
        )
    raise ValueError(f"Unhandled strictness level: {level}")


def significance_adjustment(significance: Significance) -> Dict[str, Enum]:
    if significance == Significance.critical:
        return {"character_deviation": CharacterDeviationAllowance.significant,
                "timeline_changes": TimelineChanges.any}
    elif significance == Significance.major:
        return {"character_deviation": CharacterDeviationAllowance.minor,
                "timeline_changes": TimelineChanges.future_only}
    elif significance == Significance.moderate:
        return {"character_deviation": CharacterDeviationAllowance.minor}
    elif significance == Significance.minor:
        return {"character_deviation": CharacterDeviationAllowance.none}
    raise ValueError(f"Unhandled significance: {significance}")


def consequence_adjustment(scope: ConsequenceScope) -> Dict[str, Enum]:
    if scope == ConsequenceScope.cosmic:
        return {"world_rule_breaking": WorldRuleBreaking.any_with_justification,
                "tone_shift": ToneShift.any}
    elif scope == ConsequenceScope.political:
        return {"character_deviation": CharacterDeviationAllowance.significant,
                "timeline_changes": TimelineChanges.any}
    elif scope == ConsequenceScope.personal:
        return {"character_deviation": CharacterDeviationAllowance.minor,
                "tone_shift": ToneShift.gradual}
    raise ValueError(f"Unhandled consequence scope: {scope}")


def canon_adjustment(pages: int) -> Dict[str, Enum]:
    if pages > DEEP_CANON_PAGES:
        return {"character_deviation": CharacterDeviationAllowance.none,
                "world_rule_breaking": WorldRuleBreaking.none}
    if pages > ESTABLISHED_CANON_PAGES:
        return {"character_deviation": CharacterDeviationAllowance.minor}
    return {"character_deviation": CharacterDeviationAllowance.significant}


def more_lenient(current: Enum, proposed: Enum) -> Enum:
    order = list(type(current))
    return proposed if order.index(proposed) > order.index(current) else current


def combine_rules(base: StrictnessRules, *adjustments: Dict[str, Enum]) -> StrictnessRules:
    combined = base.model_dump()
    for adjustment in adjustments:
        for field, proposed in adjustment.items():
            combined[field] = more_lenient(combined[field], proposed)
    return StrictnessRules(**combined)


def determine_strictness(level: StrictnessLevel, factors: StrictnessFactors) -> StrictnessRules:
    return combine_rules(
        base_rules(level),
        significance_adjustment(factors.anchor_significance),
        consequence_adjustment(factors.consequence_type),
        canon_adjustment(factors.established_canon_pages),
    )


def strictness_description(rules: StrictnessRules) -> str:
    if rules.character_deviation == CharacterDeviationAllowance.none:
        characters = "Characters must remain true to established traits"
    elif rules.character_deviation == CharacterDeviationAllowance.minor:
        characters = "Minor character developments allowed"
    else:
        characters = "Significant character changes possible"

    if rules.world_rule_breaking == WorldRuleBreaking.none:
        world = "World rules cannot be broken"
    elif rules.world_rule_breaking == WorldRuleBreaking.soft_only:
        world = "Only soft world rules can be bent"
    else:
        world = "World rules can be broken with justification"

    return f"{characters}. {world}."
