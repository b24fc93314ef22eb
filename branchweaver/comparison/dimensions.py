"""
Pairwise branch comparison across eight dimensions.

Every dimension formula is symmetric in its two arguments: set overlaps are
normalized by the larger set or by the union, never by one side's size, so
``compare_branches(a, b)`` and ``compare_branches(b, a)`` agree exactly.
Two empty collections count as identical.
"""
from __future__ import annotations

from statistics import fmean
from typing import Dict, Iterable, List

from branchweaver.schemas import (
    BranchComparison,
    BranchVariation,
    ComparisonDimension,
    ConsequenceScope,
    DimensionComparison,
    Mood,
)
from branchweaver.utils.text_similarity import jaccard, overlap_ratio, text_similarity


def pair_key(id_a: str, id_b: str) -> str:
    """Canonical key for an unordered pair of branch ids: ``min-max``."""
    first, second = sorted((id_a, id_b))
    return f"{first}-{second}"


def _set_similarity(a: Iterable[str], b: Iterable[str], by_union: bool = False) -> float:
    set_a, set_b = set(a), set(b)
    if not set_a and not set_b:
        return 1.0
    return jaccard(set_a, set_b) if by_union else overlap_ratio(set_a, set_b)


def _text_match(a: str, b: str) -> float:
    if a.strip().lower() == b.strip().lower():
        return 1.0
    return text_similarity(a, b)


def scope_weight(scope: ConsequenceScope) -> int:
    if scope == ConsequenceScope.personal:
        return 1
    elif scope == ConsequenceScope.political:
        return 2
    elif scope == ConsequenceScope.cosmic:
        return 3
    raise ValueError(f"Unhandled consequence scope: {scope}")


def _dimension(dim: ComparisonDimension, similarity: float, differences: List[str], notable: List[str]):
    return DimensionComparison(
        dimension=dim,
        similarity=round(min(1.0, max(0.0, similarity)), 4),
        differences=differences,
        notable=notable,
    )


# ─── Dimensions ───────────────────────────────────────────────────────────────

def compare_premise(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    differences, notable = [], []
    similarity = 0.0

    if a.consequence_type == b.consequence_type:
        similarity += 0.3
        notable.append(f"Both have {a.consequence_type.value} consequences")
    else:
        differences.append(
            f"Different consequence types: {a.consequence_type.value} vs {b.consequence_type.value}"
        )

    chars_a, chars_b = a.premise.affected_characters, b.premise.affected_characters
    similarity += _set_similarity(chars_a, chars_b) * 0.4
    common = set(chars_a) & set(chars_b)
    if common:
        notable.append(f"{len(common)} characters in common")

    similarity += _set_similarity(a.theme_progression, b.theme_progression) * 0.3
    return _dimension(ComparisonDimension.premise_similarity, similarity, differences, notable)


def compare_character_fates(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    """Share of characters whose growth matches; a character missing on one side is a mismatch."""
    differences, notable = [], []
    arcs_a = {arc.character_id: arc for arc in a.character_arcs}
    arcs_b = {arc.character_id: arc for arc in b.character_arcs}
    ids = sorted(set(arcs_a) | set(arcs_b))
    if not ids:
        return _dimension(ComparisonDimension.character_fates, 1.0, differences, notable)

    same = 0
    for cid in ids:
        arc_a, arc_b = arcs_a.get(cid), arcs_b.get(cid)
        if arc_a is None or arc_b is None:
            name = (arc_a or arc_b).character_name
            differences.append(f"{name}: present in only one branch")
        elif arc_a.growth == arc_b.growth:
            same += 1
        else:
            differences.append(f"{arc_a.character_name}: {arc_a.growth.value} vs {arc_b.growth.value}")

    diverging = len(ids) - same
    if diverging:
        notable.append(f"{diverging} character(s) with different outcomes")
    return _dimension(ComparisonDimension.character_fates, same / len(ids), differences, notable)


def compare_theme_alignment(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    differences, notable = [], []
    set_a, set_b = set(a.theme_progression), set(b.theme_progression)

    shared = sorted(set_a & set_b)
    if shared:
        notable.append(f"Common themes: {', '.join(shared[:3])}")
    only_a, only_b = sorted(set_a - set_b), sorted(set_b - set_a)
    if only_a:
        differences.append(f"{a.id} unique: {', '.join(only_a[:2])}")
    if only_b:
        differences.append(f"{b.id} unique: {', '.join(only_b[:2])}")

    similarity = _set_similarity(set_a, set_b, by_union=True)
    return _dimension(ComparisonDimension.theme_alignment, similarity, differences, notable)


def compare_ending_contrast(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    differences, notable = [], []
    similarity = 0.0
    end_a, end_b = a.trajectory.ending_type, b.trajectory.ending_type

    if end_a == end_b:
        similarity += 0.4
        notable.append(f"Both end {end_a.value}")
    else:
        differences.append(f"Different endings: {end_a.value} vs {end_b.value}")

    if a.mood == b.mood:
        similarity += 0.3
    else:
        differences.append(f"Different moods: {a.mood.value} vs {b.mood.value}")

    similarity += _text_match(a.trajectory.resolution, b.trajectory.resolution) * 0.3
    return _dimension(ComparisonDimension.ending_contrast, similarity, differences, notable)


def mood_progression(variation: BranchVariation) -> str:
    return f"{variation.mood.value}-to-{variation.trajectory.ending_type.value}"


def compare_emotional_arc(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    prog_a, prog_b = mood_progression(a), mood_progression(b)
    if prog_a == prog_b:
        return _dimension(ComparisonDimension.emotional_arc, 0.8, [], ["Similar emotional journey"])
    return _dimension(
        ComparisonDimension.emotional_arc, 0.3,
        [f"Different emotional arcs: {prog_a} vs {prog_b}"], [],
    )


def compare_consequence_scope(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    differences, notable = [], []
    if a.consequence_type == b.consequence_type:
        similarity = 0.9
        notable.append(f"Same scope: {a.consequence_type.value}")
    else:
        gap = abs(scope_weight(a.consequence_type) - scope_weight(b.consequence_type))
        similarity = 1 - gap / 3
        differences.append(f"Scope differs: {a.consequence_type.value} vs {b.consequence_type.value}")

    if len(a.premise.affected_characters) == len(b.premise.affected_characters):
        similarity = similarity * 0.5 + 0.5
    return _dimension(ComparisonDimension.consequence_scope, similarity, differences, notable)


def compare_narrative_structure(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    differences, notable = [], []
    chapter_gap = abs(a.estimated_chapters - b.estimated_chapters)
    event_gap = abs(len(a.trajectory.key_events) - len(b.trajectory.key_events))

    similarity = (1 - min(chapter_gap / 5, 1)) * 0.3
    similarity += (1 - min(event_gap / 5, 1)) * 0.3
    if a.complexity == b.complexity:
        similarity += 0.4
        notable.append(f"Same complexity: {a.complexity.value}")
    else:
        differences.append(f"Different complexity: {a.complexity.value} vs {b.complexity.value}")
    return _dimension(ComparisonDimension.narrative_structure, similarity, differences, notable)


def compare_reader_experience(a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    if a.mood == b.mood and a.trajectory.ending_type == b.trajectory.ending_type:
        return _dimension(ComparisonDimension.reader_experience, 0.9, [], ["Very similar reader experience"])
    if a.mood == b.mood:
        return _dimension(ComparisonDimension.reader_experience, 0.6, [], ["Similar emotional tone"])
    return _dimension(
        ComparisonDimension.reader_experience, 0.2,
        ["Distinctly different reading experiences"], [],
    )


def compare_dimension(dim: ComparisonDimension, a: BranchVariation, b: BranchVariation) -> DimensionComparison:
    if dim == ComparisonDimension.premise_similarity:
        return compare_premise(a, b)
    elif dim == ComparisonDimension.character_fates:
        return compare_character_fates(a, b)
    elif dim == ComparisonDimension.theme_alignment:
        return compare_theme_alignment(a, b)
    elif dim == ComparisonDimension.ending_contrast:
        return compare_ending_contrast(a, b)
    elif dim == ComparisonDimension.emotional_arc:
        return compare_emotional_arc(a, b)
    elif dim == ComparisonDimension.consequence_scope:
        return compare_consequence_scope(a, b)
    elif dim == ComparisonDimension.narrative_structure:
        return compare_narrative_structure(a, b)
    elif dim == ComparisonDimension.reader_experience:
        return compare_reader_experience(a, b)
    raise ValueError(f"Unhandled comparison dimension: {dim}")


# ─── Pair ─────────────────────────────────────────────────────────────────────

def comparison_recommendation(overall: float) -> str:
    if overall > 0.8:
        return "Branches are very similar - consider if both are needed"
    elif overall > 0.5:
        return "Branches offer moderate variety with some common elements"
    elif overall > 0.3:
        return "Branches provide good contrast and meaningful choices"
    return "Branches are very different - excellent for diverse experiences"


def compare_branches(a: BranchVariation, b: BranchVariation) -> BranchComparison:
    """Compare two branches on every dimension; ``overall_similarity`` is the unweighted mean."""
    dimensions: Dict[ComparisonDimension, DimensionComparison] = {
        dim: compare_dimension(dim, a, b) for dim in ComparisonDimension
    }
    overall = round(fmean(d.similarity for d in dimensions.values()), 4)

    key_differences: List[str] = []
    for d in dimensions.values():
        if d.similarity < 0.5:
            key_differences.extend(d.differences[:2])

    return BranchComparison(
        branch_a_id=a.id,
        branch_b_id=b.id,
        dimensions=dimensions,
        overall_similarity=overall,
        key_differences=list(dict.fromkeys(key_differences))[:5],
        recommendation=comparison_recommendation(overall),
    )


def mood_weight(mood: Mood) -> float:
    """Emotional-resonance criterion used by the ranking."""
    if mood == Mood.hopeful:
        return 0.9
    elif mood == Mood.tragic:
        return 0.8
    elif mood == Mood.mixed:
        return 1.0
    elif mood == Mood.dark:
        return 0.7
    raise ValueError(f"Unhandled mood: {mood}")
