"""
Character fate comparison between branches.

A character that has an arc in only one of the two branches is compared as
similarity 0 with divergence ``complete``; absence is itself the most
divergent fate possible.
"""
from __future__ import annotations

from statistics import fmean
from typing import Dict, List, Optional, Sequence

from branchweaver.schemas import (
    BranchVariation,
    CharacterArcProjection,
    CharacterFateComparison,
    CharacterFateMatrix,
    CharacterFatesAcrossBranches,
    FateDivergence,
    Growth,
)
from branchweaver.utils.text_similarity import text_similarity, word_set

NOT_PRESENT = "N/A (not present)"

ANTONYMS = {
    "happy": ("sad", "broken", "defeated"),
    "fulfilled": ("empty", "broken", "lost"),
    "triumphant": ("defeated", "broken", "fallen"),
    "peace": ("haunted", "conflicted", "troubled"),
}


def growth_similarity(a: Growth, b: Growth) -> float:
    if a == b:
        return 1.0
    pair = {a, b}
    if pair == {Growth.positive, Growth.negative}:
        return 0.0
    if Growth.complex in pair and Growth.neutral in pair:
        return 0.7
    if Growth.neutral in pair:
        return 0.3
    # complex against positive or negative
    return 0.5


def state_similarity(state_a: str, state_b: str) -> float:
    words_a, words_b = word_set(state_a), word_set(state_b)
    if not words_a and not words_b:
        return 1.0
    similarity = text_similarity(state_a, state_b)
    for word, opposites in ANTONYMS.items():
        # Checked both ways so the score stays symmetric
        if word in words_a and words_b.intersection(opposites):
            similarity *= 0.3
        if word in words_b and words_a.intersection(opposites):
            similarity *= 0.3
    return similarity


def divergence_for(similarity: float) -> FateDivergence:
    if similarity >= 0.8:
        return FateDivergence.none
    elif similarity >= 0.5:
        return FateDivergence.minor
    elif similarity >= 0.2:
        return FateDivergence.significant
    return FateDivergence.complete


def _implications(arc_a: CharacterArcProjection, arc_b: CharacterArcProjection, divergence: FateDivergence) -> List[str]:
    name = arc_a.character_name
    if divergence == FateDivergence.none:
        implications = [f"{name}'s fate is consistent across branches"]
    elif divergence == FateDivergence.minor:
        implications = [f"{name} reaches similar endpoints through different paths"]
    elif divergence == FateDivergence.significant:
        implications = [
            f"{name}'s fate differs substantially between branches",
            f"Consider how {name}'s choices lead to different outcomes",
        ]
    elif divergence == FateDivergence.complete:
        implications = [f"{name} has completely different fates", "Major decision point for this character"]
    else:
        raise ValueError(f"Unhandled fate divergence: {divergence}")

    if arc_a.growth != arc_b.growth:
        implications.append(f"Character growth differs: {arc_a.growth.value} vs {arc_b.growth.value}")
    return implications


def compare_arcs(arc_a: CharacterArcProjection, arc_b: CharacterArcProjection) -> CharacterFateComparison:
    similarity = (
        growth_similarity(arc_a.growth, arc_b.growth) * 0.4
        + state_similarity(arc_a.ending_state, arc_b.ending_state) * 0.4
        + text_similarity(arc_a.arc_description, arc_b.arc_description) * 0.2
    )
    similarity = round(min(1.0, similarity), 4)
    divergence = divergence_for(similarity)
    return CharacterFateComparison(
        character_id=arc_a.character_id,
        character_name=arc_a.character_name,
        fate_similarity=similarity,
        fate_divergence=divergence,
        branch_a_state=arc_a.ending_state,
        branch_b_state=arc_b.ending_state,
        branch_a_growth=arc_a.growth,
        branch_b_growth=arc_b.growth,
        implications=_implications(arc_a, arc_b, divergence),
    )


def _absent_on_one_side(arc: CharacterArcProjection, present_in_a: bool) -> CharacterFateComparison:
    label = "A" if present_in_a else "B"
    return CharacterFateComparison(
        character_id=arc.character_id,
        character_name=arc.character_name,
        fate_similarity=0.0,
        fate_divergence=FateDivergence.complete,
        branch_a_state=arc.ending_state if present_in_a else NOT_PRESENT,
        branch_b_state=NOT_PRESENT if present_in_a else arc.ending_state,
        branch_a_growth=arc.growth if present_in_a else Growth.neutral,
        branch_b_growth=Growth.neutral if present_in_a else arc.growth,
        implications=[f"{arc.character_name} only appears in branch {label}"],
    )


def _fate_summary(comparisons: Sequence[CharacterFateComparison], overall: float) -> str:
    consistent = sum(1 for c in comparisons if c.fate_divergence == FateDivergence.none)
    divergent = len(comparisons) - consistent
    if overall > 0.8:
        return f"Character fates are highly consistent across branches ({consistent}/{len(comparisons)} identical)"
    elif overall > 0.5:
        return f"Some character fates diverge ({divergent} with notable differences)"
    return f"Character fates diverge significantly ({divergent} with major differences)"


def calculate_character_fate_similarity(branch_a: BranchVariation, branch_b: BranchVariation) -> CharacterFateMatrix:
    arcs_a = {arc.character_id: arc for arc in branch_a.character_arcs}
    arcs_b = {arc.character_id: arc for arc in branch_b.character_arcs}

    comparisons: List[CharacterFateComparison] = []
    # Union in first-seen order: A's characters, then B-only ones
    for cid in dict.fromkeys([*arcs_a, *arcs_b]):
        arc_a, arc_b = arcs_a.get(cid), arcs_b.get(cid)
        if arc_a is not None and arc_b is not None:
            comparisons.append(compare_arcs(arc_a, arc_b))
        elif arc_a is not None:
            comparisons.append(_absent_on_one_side(arc_a, present_in_a=True))
        else:
            comparisons.append(_absent_on_one_side(arc_b, present_in_a=False))

    overall = round(fmean(c.fate_similarity for c in comparisons), 4) if comparisons else 0.0

    most_divergent: Optional[CharacterFateComparison] = None
    most_similar: Optional[CharacterFateComparison] = None
    if comparisons:
        ordered = sorted(comparisons, key=lambda c: c.fate_similarity)
        if ordered[0].fate_similarity < 0.5:
            most_divergent = ordered[0]
        if ordered[-1].fate_similarity > 0.8:
            most_similar = ordered[-1]

    return CharacterFateMatrix(
        characters=comparisons,
        overall_similarity=overall,
        most_divergent=most_divergent,
        most_similar=most_similar,
        summary=_fate_summary(comparisons, overall),
    )


def compare_fates_across_branches(branches: Sequence[BranchVariation]) -> CharacterFatesAcrossBranches:
    """Per-character ending states by branch, plus an N x N fate-similarity heatmap."""
    fates: Dict[str, Dict[str, str]] = {}
    for branch in branches:
        for arc in branch.character_arcs:
            fates.setdefault(arc.character_id, {})[branch.id] = arc.ending_state

    n = len(branches)
    heatmap = [[1.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            similarity = calculate_character_fate_similarity(branches[i], branches[j]).overall_similarity
            heatmap[i][j] = heatmap[j][i] = similarity

    return CharacterFatesAcrossBranches(character_fates=fates, divergence_heatmap=heatmap)
