"""
Premise Transformer

Turns an ``AlternativeOutcome`` into a ``BranchPremise``: a title, hook,
"what if" question, inferred themes and the consequences it sets in motion.
The premise is derived once; refinements produce a new premise object.
"""
from __future__ import annotations

import random
import re
from typing import List, Optional, Sequence

from branchweaver.schemas import (
    AlternativeOutcome,
    AnchorDetails,
    AnchorType,
    BranchPremise,
    CharacterState,
)

TITLE_PREFIXES = ("The", "When", "If", "After", "Beyond")

# theme -> keywords that suggest it
THEME_KEYWORDS = (
    ("redemption", ("redeem", "save", "forgive", "atonement")),
    ("betrayal", ("betray", "deceive", "lie", "traitor")),
    ("sacrifice", ("sacrifice", "give up", "lose", "cost")),
    ("power", ("power", "control", "dominate", "rule")),
    ("love", ("love", "heart", "romance", "feelings")),
    ("revenge", ("revenge", "avenge", "payback", "retaliate")),
    ("identity", ("identity", "who", "become", "true self")),
    ("duty", ("duty", "responsibility", "obligation", "must")),
)

MAX_THEMES = 4
MAX_IMMEDIATE_CONSEQUENCES = 3
MAX_LONG_TERM_IMPLICATIONS = 4


def transform_to_premise(
    alternative: AlternativeOutcome,
    anchor: AnchorDetails,
    characters: Sequence[CharacterState],
    rng: Optional[random.Random] = None,
) -> BranchPremise:
    rng = rng or random.Random()
    names_by_id = {c.id: c.name for c in characters}

    return BranchPremise(
        id=alternative.id,
        title=_title(alternative, rng),
        subtitle=_subtitle(alternative, anchor),
        hook=f"{alternative.description}, setting off a chain of events that will reshape the story.",
        what_if=what_if_question(alternative.description),
        description=alternative.description,
        themes=infer_themes(alternative.description, anchor.type),
        affected_characters=[names_by_id.get(cid, cid) for cid in alternative.affected_characters],
        immediate_consequences=list(alternative.consequences[:MAX_IMMEDIATE_CONSEQUENCES]),
        long_term_implications=long_term_implications(alternative, anchor.type),
    )


def _title(alternative: AlternativeOutcome, rng: random.Random) -> str:
    prefix = rng.choice(TITLE_PREFIXES)
    key_phrase = " ".join(alternative.description.split(" ")[:5])
    return f"{prefix} {key_phrase[:1].upper()}{key_phrase[1:]}"


def _subtitle(alternative: AlternativeOutcome, anchor: AnchorDetails) -> str:
    if alternative.consequences:
        return f"Leading to: {alternative.consequences[0]}"
    return f"A {anchor.type.value} that changes everything"


def what_if_question(description: str) -> str:
    clean = re.sub(r"[.!?]$", "", description.strip())
    return f"What if {clean.lower()}?"


def infer_themes(description: str, anchor_type: AnchorType) -> List[str]:
    text = description.lower()
    themes = [theme for theme, keywords in THEME_KEYWORDS if any(kw in text for kw in keywords)]
    themes.append(anchor_type.value)
    # dict.fromkeys keeps first-seen order while de-duplicating
    return list(dict.fromkeys(themes))[:MAX_THEMES]


def _type_implications(anchor_type: AnchorType) -> List[str]:
    if anchor_type == AnchorType.decision:
        return ["Character paths diverge permanently", "New alliances form", "Old bonds are tested"]
    elif anchor_type == AnchorType.coincidence:
        return ["Fate takes an unexpected turn", "New opportunities arise", "Hidden connections revealed"]
    elif anchor_type == AnchorType.revelation:
        return ["Trust is fundamentally altered", "New information reshapes strategies", "Past events gain new meaning"]
    elif anchor_type == AnchorType.betrayal:
        return ["Loyalty becomes a rare commodity", "Vigilance increases", "Forgiveness becomes central theme"]
    elif anchor_type == AnchorType.sacrifice:
        return ["The cost of victory is remembered", "Debt of gratitude creates bonds", "Loss shapes future decisions"]
    elif anchor_type == AnchorType.encounter:
        return ["New dynamics enter the story", "Unexpected partnerships form", "Rivalries are established"]
    elif anchor_type == AnchorType.conflict:
        return ["Power structures shift", "Resources are redistributed", "New threats emerge"]
    elif anchor_type == AnchorType.transformation:
        return ["Characters must adapt to new reality", "Old skills become obsolete", "New strengths are discovered"]
    elif anchor_type == AnchorType.mystery:
        return ["The search for truth drives the plot", "Deception becomes more dangerous", "Knowledge becomes power"]
    raise ValueError(f"Unhandled anchor type: {anchor_type}")


def long_term_implications(alternative: AlternativeOutcome, anchor_type: AnchorType) -> List[str]:
    implications = [
        f"{consequence} will have lasting effects on the narrative"
        for consequence in alternative.consequences
    ]
    implications.extend(_type_implications(anchor_type))
    return implications[:MAX_LONG_TERM_IMPLICATIONS]
