"""
Theme-based premise distinctness.

Each premise gets a theme signature: its declared themes plus the themes
its description and immediate consequences hint at, deduplicated and capped
at ten entries. Two premises are similar when their signatures' Jaccard
similarity exceeds 0.5; a premise's distinctness is one minus its mean
similarity to every other premise.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from branchweaver.errors import InputError
from branchweaver.schemas import BranchPremise, ThemeDistinctness
from branchweaver.utils.text_similarity import jaccard

MAX_SIGNATURE = 10
SIMILAR_ABOVE = 0.5
DEFAULT_MIN_DISTINCTNESS = 0.3
GENERAL_THEME = "general"

# theme -> words in free text that hint at it
THEME_INDICATORS = (
    ("conflict", ("fight", "battle", "war", "struggle", "oppose", "clash")),
    ("transformation", ("change", "become", "transform", "grow", "evolve")),
    ("sacrifice", ("give", "lose", "sacrifice", "cost", "price")),
    ("betrayal", ("betray", "deceive", "lie", "traitor", "trust")),
    ("redemption", ("redeem", "save", "forgive", "atonement", "sorry")),
    ("power", ("power", "control", "strength", "dominate", "authority")),
    ("love", ("love", "heart", "romance", "care", "affection")),
    ("fate", ("fate", "destiny", "chance", "luck", "coincidence")),
    ("truth", ("truth", "secret", "reveal", "discover", "know")),
    ("identity", ("identity", "self", "who", "true", "real")),
)


def theme_indicators(text: str) -> List[str]:
    lowered = text.lower()
    return [theme for theme, words in THEME_INDICATORS if any(w in lowered for w in words)]


def theme_signature(premise: BranchPremise) -> List[str]:
    signature = [*premise.themes, *theme_indicators(premise.description)]
    for consequence in premise.immediate_consequences:
        signature.extend(theme_indicators(consequence))
    return list(dict.fromkeys(signature))[:MAX_SIGNATURE]


def primary_theme(premise: BranchPremise) -> str:
    return premise.themes[0] if premise.themes else GENERAL_THEME


def analyze_theme_distinctness(premises: Sequence[BranchPremise]) -> List[ThemeDistinctness]:
    signatures = {p.id: theme_signature(p) for p in premises}
    if len(signatures) != len(premises):
        raise InputError("Premise ids must be unique to compare their themes")

    results = []
    for premise in premises:
        similarities = {
            other_id: jaccard(signatures[premise.id], signature)
            for other_id, signature in signatures.items()
            if other_id != premise.id
        }
        mean = sum(similarities.values()) / len(similarities) if similarities else 0.0
        results.append(ThemeDistinctness(
            premise_id=premise.id,
            primary_theme=primary_theme(premise),
            theme_signature=signatures[premise.id],
            distinctness_score=round(1 - mean, 4),
            similar_premises=[pid for pid, s in similarities.items() if s > SIMILAR_ABOVE],
        ))
    return results


def ensure_distinctness(
    premises: Sequence[BranchPremise],
    min_distinctness: float = DEFAULT_MIN_DISTINCTNESS,
) -> List[BranchPremise]:
    """Keep the most distinct premises and drop the near-duplicates they shadow.

    Premises are visited most distinct first (ties keep input order). Each
    kept premise rejects the premises similar to it whose own distinctness
    is below ``min_distinctness``; similar premises that are still distinct
    from the set as a whole survive.
    """
    analysis = analyze_theme_distinctness(premises)
    by_id = {p.id: p for p in premises}
    scores: Dict[str, float] = {d.premise_id: d.distinctness_score for d in analysis}

    selected: List[BranchPremise] = []
    rejected = set()
    for d in sorted(analysis, key=lambda d: d.distinctness_score, reverse=True):
        if d.premise_id in rejected:
            continue
        selected.append(by_id[d.premise_id])
        rejected.update(pid for pid in d.similar_premises if scores[pid] < min_distinctness)

    return selected


def group_premises_by_theme(premises: Sequence[BranchPremise]) -> Dict[str, List[BranchPremise]]:
    groups: Dict[str, List[BranchPremise]] = {}
    for premise in premises:
        groups.setdefault(primary_theme(premise), []).append(premise)
    return groups
