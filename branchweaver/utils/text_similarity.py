"""Small lexical helpers shared by the validators and the comparator."""
from __future__ import annotations

from typing import Iterable, Set


def word_set(text: str) -> Set[str]:
    return {w for w in text.lower().split(" ") if w}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Intersection over union of two collections; 0 when both are empty."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def text_similarity(text_a: str, text_b: str) -> float:
    """Word-level Jaccard similarity of two strings."""
    return jaccard(word_set(text_a), word_set(text_b))


def overlap_ratio(a: Iterable[str], b: Iterable[str]) -> float:
    """Shared items normalized by the larger collection (symmetric)."""
    set_a, set_b = set(a), set(b)
    larger = max(len(set_a), len(set_b))
    if larger == 0:
        return 0.0
    return len(set_a & set_b) / larger


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def title_case(slug: str) -> str:
    """'plot-plausibility' -> 'Plot Plausibility'"""
    return " ".join(w[:1].upper() + w[1:] for w in slug.split("-"))
