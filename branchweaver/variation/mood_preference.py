"""User mood preference: filter generated variations or re-tone them to one mood."""
from __future__ import annotations

import random
from typing import List, Optional, Sequence

from branchweaver.schemas import BranchVariation, Mood
from branchweaver.variation.generator import ending_options, growth_options


def apply_mood_preference(
    variations: Sequence[BranchVariation],
    preference: Optional[Mood],
    allow_deviations: bool = False,
    deviation_probability: float = 0.0,
    rng: Optional[random.Random] = None,
) -> List[BranchVariation]:
    """Keep the variations matching ``preference`` (``None`` means any mood).

    With ``allow_deviations`` one non-matching variation is kept for variety
    with probability ``deviation_probability``. When nothing matches, the
    input is returned unchanged.
    """
    if preference is None:
        return list(variations)

    rng = rng or random.Random()
    preferred = [v for v in variations if v.mood == preference]
    others = [v for v in variations if v.mood != preference]

    if not preferred:
        return list(variations)

    if allow_deviations and others and rng.random() < deviation_probability:
        return preferred + [rng.choice(others)]
    return preferred


def mood_resolution_prefixes(mood: Mood) -> List[str]:
    if mood == Mood.hopeful:
        return ["Triumphantly", "With renewed hope", "Successfully"]
    elif mood == Mood.tragic:
        return ["Tragically", "In defeat", "With heavy hearts"]
    elif mood == Mood.dark:
        return ["In darkness", "With ominous portents", "Uncertainly"]
    elif mood == Mood.mixed:
        return ["With mixed results", "Bittersweet", "Complicated"]
    raise ValueError(f"Unhandled mood: {mood}")


def mood_ending_states(mood: Mood) -> List[str]:
    if mood == Mood.hopeful:
        return ["has found peace", "stands triumphant", "embraces a new beginning", "has grown beyond their past"]
    elif mood == Mood.tragic:
        return ["is broken by loss", "falls to darkness", "cannot escape their fate", "is lost to sorrow"]
    elif mood == Mood.dark:
        return ["survives but is changed", "bears the weight of choices", "walks a darker path", "accepts a grim reality"]
    elif mood == Mood.mixed:
        return ["has won and lost", "carries both joy and sorrow", "is wiser but scarred", "finds peace with complexity"]
    raise ValueError(f"Unhandled mood: {mood}")


def mood_description(mood: Mood) -> str:
    if mood == Mood.hopeful:
        return "An uplifting journey with positive outcomes"
    elif mood == Mood.tragic:
        return "A somber path leading to loss or sacrifice"
    elif mood == Mood.mixed:
        return "A complex journey with both joy and sorrow"
    elif mood == Mood.dark:
        return "A grim exploration of difficult choices"
    raise ValueError(f"Unhandled mood: {mood}")


def generate_mood_specific_variations(
    variations: Sequence[BranchVariation],
    mood: Mood,
    rng: Optional[random.Random] = None,
) -> List[BranchVariation]:
    """Re-tone every variation to ``mood``, keeping ending and growth paired with it."""
    rng = rng or random.Random()
    retoned = []
    for variation in variations:
        trajectory = variation.trajectory
        prefix = rng.choice(mood_resolution_prefixes(mood))
        new_trajectory = trajectory.model_copy(update={
            "ending_type": rng.choice(ending_options(mood)),
            "resolution": f"{prefix}, {trajectory.resolution.lower()}",
        })
        new_arcs = [
            arc.model_copy(update={
                "growth": rng.choice(growth_options(mood)),
                "ending_state": rng.choice(mood_ending_states(mood)),
            })
            for arc in variation.character_arcs
        ]
        retoned.append(variation.model_copy(update={
            "mood": mood,
            "trajectory": new_trajectory,
            "character_arcs": new_arcs,
        }))
    return retoned
