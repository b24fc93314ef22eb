"""
Premise Validator

Scores a ``BranchPremise`` before any variation is generated from it, on
three dimensions that each start at 0.7 and clamp to [0, 1]:

    plausibility   world rules and immediate consequences
    story fit      story themes, character motivations, active conflicts
    interest       affected characters, thematic range, long-term pull, hook

Overall score is 0.35 x plausibility + 0.35 x story fit + 0.30 x interest.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from branchweaver.schemas import (
    BranchPremise,
    CharacterState,
    IssueSeverity,
    PremiseDimension,
    PremiseIssue,
    PremiseValidation,
    WorldState,
)
from branchweaver.utils.text_similarity import clamp

BASELINE = 0.7

DIMENSION_WEIGHTS = {
    PremiseDimension.plausibility: 0.35,
    PremiseDimension.story_fit: 0.35,
    PremiseDimension.interest: 0.30,
}

HOOK_WORDS = (
    "what if", "imagine", "discover", "secret", "truth",
    "betrayal", "sacrifice", "love", "revenge", "power",
)
MIN_HOOK_LENGTH = 30


class _PremiseCard:
    """Running score, issues and strengths for one premise dimension."""

    def __init__(self, dimension: PremiseDimension):
        self.dimension = dimension
        self.score = BASELINE
        self.issues: List[PremiseIssue] = []
        self.strengths: List[str] = []

    def credit(self, amount: float, strength: str) -> None:
        self.score += amount
        self.strengths.append(strength)

    def debit(self, amount: float, severity: IssueSeverity, message: str, suggestion: Optional[str] = None) -> None:
        self.score -= amount
        self.issues.append(PremiseIssue(
            dimension=self.dimension, severity=severity, message=message, suggestion=suggestion,
        ))

    @property
    def final(self) -> float:
        return round(clamp(self.score), 4)


def _breaks_hard_rules(premise: BranchPremise, world: WorldState) -> bool:
    text = premise.description.lower()
    for rule in world.world_rules.hard_rules:
        if "impossible" in text:
            return True
        if "magic" in text and "magic" not in rule.lower():
            return True
    return False


def _unmotivated_character(premise: BranchPremise, characters: Sequence[CharacterState]) -> Optional[CharacterState]:
    """First affected character whose goal and obstacle the premise never touches."""
    by_name = {c.name: c for c in characters}
    text = premise.description.lower()
    for name in premise.affected_characters:
        character = by_name.get(name)
        if character is None:
            continue
        cues = [c.lower() for c in (character.current_state.goal, character.current_state.obstacle) if c]
        if cues and not any(cue in text for cue in cues):
            return character
    return None


def _touches_active_conflict(premise: BranchPremise, world: WorldState) -> bool:
    affected = set(premise.affected_characters)
    return any(affected & set(conflict.involved_parties) for conflict in world.active_conflicts)


def has_strong_hook(premise: BranchPremise) -> bool:
    what_if = premise.what_if.lower()
    return len(premise.what_if) > MIN_HOOK_LENGTH and any(word in what_if for word in HOOK_WORDS)


def validate_plausibility(premise: BranchPremise, world: WorldState) -> _PremiseCard:
    card = _PremiseCard(PremiseDimension.plausibility)

    if _breaks_hard_rules(premise, world):
        card.debit(
            0.25, IssueSeverity.critical,
            "Premise conflicts with established world rules",
            "Ensure premise respects established world mechanics",
        )
    else:
        card.credit(0.1, "Respects established world rules and constraints")

    if premise.immediate_consequences:
        card.credit(0.1, "Has clear immediate consequences")
    else:
        card.debit(
            0.05, IssueSeverity.minor,
            "No immediate consequences specified",
            "Add clear immediate consequences for better plausibility",
        )
    return card


def validate_story_fit(
    premise: BranchPremise,
    characters: Sequence[CharacterState],
    world: WorldState,
) -> _PremiseCard:
    card = _PremiseCard(PremiseDimension.story_fit)

    story_themes = [t.name.lower() for t in world.themes]
    overlap = [
        theme for theme in (t.lower() for t in premise.themes)
        if any(st in theme or theme in st for st in story_themes)
    ]
    if overlap:
        card.credit(0.15, f"Aligns with story themes: {', '.join(overlap)}")
    else:
        card.debit(
            0.1, IssueSeverity.minor,
            "Premise themes may not align well with story themes",
            "Consider connecting premise to established story themes",
        )

    unmotivated = _unmotivated_character(premise, characters)
    if unmotivated is not None:
        card.debit(
            0.15, IssueSeverity.major,
            "Premise may conflict with character motivations",
            f"Consider how this premise relates to {unmotivated.name}'s goal: {unmotivated.current_state.goal}",
        )
    else:
        card.credit(0.1, "Respects character motivations and goals")

    if _touches_active_conflict(premise, world):
        card.credit(0.1, "Connects to ongoing conflicts")
    return card


def validate_interest(premise: BranchPremise) -> _PremiseCard:
    card = _PremiseCard(PremiseDimension.interest)

    affected = len(premise.affected_characters)
    if affected == 0:
        card.debit(
            0.2, IssueSeverity.major,
            "No characters are affected by this premise",
            "Ensure the premise impacts at least one character meaningfully",
        )
    elif affected >= 2:
        card.credit(0.1, f"Affects multiple characters ({affected})")

    if len(premise.themes) < 2:
        card.debit(0.05, IssueSeverity.minor, "Limited thematic depth", "Consider exploring additional themes")
    else:
        card.credit(0.1, f"Rich thematic content ({len(premise.themes)} themes)")

    if premise.long_term_implications:
        card.credit(0.1, "Has compelling long-term implications")
    else:
        card.debit(
            0.05, IssueSeverity.minor,
            "No long-term implications explored",
            "Add long-term consequences to increase interest",
        )

    if has_strong_hook(premise):
        card.credit(0.15, "Strong narrative hook")
    else:
        card.debit(
            0.05, IssueSeverity.minor,
            "Narrative hook could be stronger",
            'Make the "what if" more specific and emotionally engaging',
        )
    return card


def premise_recommendations(issues: Sequence[PremiseIssue], strengths: Sequence[str]) -> List[str]:
    """Critical then major suggestions, closing with the top two strengths."""
    recommendations = []
    for severity, tag in ((IssueSeverity.critical, "CRITICAL"), (IssueSeverity.major, "MAJOR")):
        recommendations.extend(
            f"[{tag}] {issue.suggestion}"
            for issue in issues
            if issue.severity == severity and issue.suggestion
        )
    if strengths:
        recommendations.append(f"Strengths: {', '.join(strengths[:2])}")
    return recommendations


def validate_premise(
    premise: BranchPremise,
    characters: Sequence[CharacterState],
    world: WorldState,
) -> PremiseValidation:
    cards = [
        validate_plausibility(premise, world),
        validate_story_fit(premise, characters, world),
        validate_interest(premise),
    ]
    scores: Dict[PremiseDimension, float] = {card.dimension: card.final for card in cards}
    issues = [issue for card in cards for issue in card.issues]
    strengths = [strength for card in cards for strength in card.strengths]
    overall = sum(scores[dim] * weight for dim, weight in DIMENSION_WEIGHTS.items())

    return PremiseValidation(
        premise_id=premise.id,
        overall_score=round(clamp(overall), 4),
        dimensions=scores,
        issues=issues,
        strengths=strengths,
        recommendations=premise_recommendations(issues, strengths),
    )
