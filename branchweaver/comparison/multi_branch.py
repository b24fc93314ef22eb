"""
Multi-Branch Comparator

Compares any number (>= 2) of finished branches:

1. every unordered pair through ``compare_branches``, fanned out over a
   thread pool (each pair is independent)
2. character fates across all branches
3. rankings, consensus, unique branches and similarity clusters, all
   reductions over the complete pairwise map

Pairs are stored under ``pair_key(a, b)``; nothing else is ever used to
look a pair up. Id sets whose pair keys would collide are rejected before
any comparison runs. Input branches are never modified.

Usage:
    result = compare_multiple_branches(variations)
    best = result.rankings[0]
"""
from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from itertools import combinations
from statistics import fmean
from typing import Dict, List, Optional, Sequence

from branchweaver.comparison.character_fates import compare_fates_across_branches
from branchweaver.comparison.dimensions import compare_branches, mood_weight, pair_key
from branchweaver.config import get_settings
from branchweaver.errors import InputError, InsufficientBranchesError
from branchweaver.schemas import (
    BranchComparison,
    BranchRanking,
    BranchVariation,
    ConsensusAnalysis,
    ConsequenceScope,
    EndingType,
    Mood,
    MultiBranchComparison,
    RankingCriteria,
)
from branchweaver.utils.logging_config import get_logger

logger = get_logger(__name__)

PairMap = Dict[str, BranchComparison]


def _similarities_for(branch_id: str, pairwise: PairMap) -> List[float]:
    return [
        c.overall_similarity for c in pairwise.values()
        if branch_id in (c.branch_a_id, c.branch_b_id)
    ]


def rank_branches(branches: Sequence[BranchVariation], pairwise: PairMap) -> List[BranchRanking]:
    """Score each branch on five criteria and assign unique ranks 1..N.

    Originality is 1 minus the mean similarity to every other branch. The
    sort is stable, so equal scores keep their input order.
    """
    scored = []
    for branch in branches:
        similarities = _similarities_for(branch.id, pairwise)
        criteria = RankingCriteria(
            character_impact=min(len(branch.character_arcs) / 5, 1.0),
            thematic_depth=min(len(branch.theme_progression) / 4, 1.0),
            emotional_resonance=mood_weight(branch.mood),
            narrative_coherence=0.8 if len(branch.trajectory.key_events) >= 3 else 0.5,
            originality=round(1 - (fmean(similarities) if similarities else 0.5), 4),
        )
        score = round(fmean(criteria.model_dump().values()), 4)
        scored.append((branch, score, criteria))

    scored.sort(key=lambda item: item[1], reverse=True)
    return [
        BranchRanking(
            branch_id=branch.id,
            branch_name=branch.premise.title,
            rank=position,
            score=score,
            criteria=criteria,
        )
        for position, (branch, score, criteria) in enumerate(scored, start=1)
    ]


def analyze_consensus(branches: Sequence[BranchVariation]) -> ConsensusAnalysis:
    endings = Counter(b.trajectory.ending_type.value for b in branches)
    moods = Counter(b.mood.value for b in branches)
    themes = Counter(t for b in branches for t in dict.fromkeys(b.theme_progression))

    half = len(branches) * 0.5
    divergent = []
    if len(endings) > 2:
        divergent.append("endings")
    if len(moods) > 2:
        divergent.append("moods")

    return ConsensusAnalysis(
        # most_common keeps first-seen order among equal counts
        most_popular_ending=endings.most_common(1)[0][0],
        most_common_mood=moods.most_common(1)[0][0],
        shared_themes=[t for t, count in themes.items() if count >= half],
        divergent_aspects=divergent,
    )


def find_unique_branches(
    branches: Sequence[BranchVariation],
    pairwise: PairMap,
    threshold: float,
) -> List[BranchVariation]:
    return [
        b for b in branches
        if not any(s > threshold for s in _similarities_for(b.id, pairwise))
    ]


def group_similar_branches(
    branches: Sequence[BranchVariation],
    pairwise: PairMap,
    threshold: float,
) -> List[List[BranchVariation]]:
    """Greedy single pass: each unassigned branch seeds a group and absorbs
    every later unassigned branch more similar to it than ``threshold``.
    Singleton groups are dropped."""
    groups = []
    assigned = set()
    for seed in branches:
        if seed.id in assigned:
            continue
        assigned.add(seed.id)
        group = [seed]
        for other in branches:
            if other.id in assigned:
                continue
            comparison = pairwise.get(pair_key(seed.id, other.id))
            if comparison is not None and comparison.overall_similarity > threshold:
                group.append(other)
                assigned.add(other.id)
        if len(group) > 1:
            groups.append(group)
    return groups


def compare_multiple_branches(
    branches: Sequence[BranchVariation],
    max_workers: Optional[int] = None,
    threshold: Optional[float] = None,
) -> MultiBranchComparison:
    if len(branches) < 2:
        raise InsufficientBranchesError(len(branches))
    ids = [b.id for b in branches]
    if len(set(ids)) != len(ids):
        raise InputError("Branch ids must be unique to compare branches")

    settings = get_settings()
    if max_workers is None:
        max_workers = settings.comparison_workers
    if threshold is None:
        threshold = settings.similarity_threshold

    pairs = list(combinations(branches, 2))
    keys = [pair_key(a.id, b.id) for a, b in pairs]
    if len(set(keys)) != len(keys):
        # e.g. ("x", "y-z") and ("x-y", "z") both key as "x-y-z"
        clashing = sorted(k for k, n in Counter(keys).items() if n > 1)
        raise InputError(f"Branch ids produce ambiguous pair keys: {', '.join(clashing)}")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(compare_branches, a, b) for a, b in pairs]
        # Every pair completes before any reduction below
        pairwise = {key: f.result() for key, f in zip(keys, futures)}

    result = MultiBranchComparison(
        branches=list(branches),
        pairwise=pairwise,
        character_fates=compare_fates_across_branches(branches),
        rankings=rank_branches(branches, pairwise),
        consensus=analyze_consensus(branches),
        unique_branches=find_unique_branches(branches, pairwise, threshold),
        similar_groups=group_similar_branches(branches, pairwise, threshold),
    )
    logger.info(
        f"Compared {len(branches)} branches",
        extra={"metadata": {
            "pairs": len(pairwise),
            "groups": len(result.similar_groups),
            "unique": len(result.unique_branches),
        }},
    )
    return result


def get_pairwise_comparison(
    result: MultiBranchComparison,
    branch_a_id: str,
    branch_b_id: str,
) -> Optional[BranchComparison]:
    return result.pairwise.get(pair_key(branch_a_id, branch_b_id))


def filter_branches(
    result: MultiBranchComparison,
    max_rank: Optional[int] = None,
    mood: Optional[Mood] = None,
    ending_type: Optional[EndingType] = None,
    consequence_type: Optional[ConsequenceScope] = None,
) -> List[BranchVariation]:
    """Branches matching every given criterion; ``max_rank=2`` keeps the top two."""
    ranks = {r.branch_id: r.rank for r in result.rankings}
    matched = []
    for branch in result.branches:
        if mood is not None and branch.mood != mood:
            continue
        if ending_type is not None and branch.trajectory.ending_type != ending_type:
            continue
        if consequence_type is not None and branch.consequence_type != consequence_type:
            continue
        if max_rank is not None and ranks.get(branch.id, max_rank + 1) > max_rank:
            continue
        matched.append(branch)
    return matched


def generate_multi_branch_report(result: MultiBranchComparison) -> str:
    consensus = result.consensus
    lines = [
        "# Multi-Branch Comparison Report",
        "",
        "## Overview",
        f"Total branches: {len(result.branches)}",
        f"Pairwise comparisons: {len(result.pairwise)}",
        "",
        "## Rankings",
    ]
    for r in result.rankings[:5]:
        lines.append(f"{r.rank}. {r.branch_name} (Score: {r.score * 100:.1f}%)")
    lines += [
        "",
        "## Consensus",
        f"Most common ending: {consensus.most_popular_ending}",
        f"Most common mood: {consensus.most_common_mood}",
        f"Shared themes: {', '.join(consensus.shared_themes) or 'None'}",
    ]
    if consensus.divergent_aspects:
        lines.append(f"Divergent aspects: {', '.join(consensus.divergent_aspects)}")
    lines.append("")

    if result.unique_branches:
        lines.append("## Unique Branches")
        lines.extend(f"- {b.premise.title}" for b in result.unique_branches)
        lines.append("")

    if result.similar_groups:
        lines.append("## Similar Branch Groups")
        for i, group in enumerate(result.similar_groups, start=1):
            lines.append(f"Group {i}: {', '.join(b.premise.title for b in group)}")

    return "\n".join(lines)
