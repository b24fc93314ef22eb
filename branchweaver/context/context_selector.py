"""
Adaptive context selection.

Each anchor type asks for different context: a decision needs the
decision-maker's state and stakes, a betrayal needs relationship history,
a mystery needs the known facts. ``select_context_for_anchor_type`` applies
the per-type strategy and assembles the ``ContextPackage`` consumed by the
generator and validators.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from branchweaver.schemas import (
    AnchorDetails,
    AnchorType,
    CharacterState,
    ContextPackage,
    NarrativeStyleProfile,
    WorldState,
)

MAX_DECISION_MAKERS = 3


@dataclass(frozen=True)
class TypeStrategy:
    focus_areas: List[str] = field(default_factory=list)
    required_context: List[str] = field(default_factory=list)
    optional_context: List[str] = field(default_factory=list)
    # decision-maker | all-involved | relationship-pairs
    character_importance: str = "all-involved"


def type_strategy(anchor_type: AnchorType) -> TypeStrategy:
    if anchor_type == AnchorType.decision:
        return TypeStrategy(
            ["character motivations", "stakes", "options", "consequences"],
            ["decision-maker state", "stakeholder interests", "available options"],
            ["past similar decisions", "cultural context", "time pressure"],
            "decision-maker",
        )
    elif anchor_type == AnchorType.coincidence:
        return TypeStrategy(
            ["timing", "external forces", "serendipity", "unforeseen consequences"],
            ["converging plot threads", "character locations", "timing factors"],
            ["probability factors", "fate/destiny themes", "ironic elements"],
            "all-involved",
        )
    elif anchor_type == AnchorType.revelation:
        return TypeStrategy(
            ["secret keeper", "reveal method", "emotional impact", "cascade effects"],
            ["who knows what", "revelation method", "character relationships"],
            ["foreshadowing", "symbolic elements", "dramatic irony"],
            "relationship-pairs",
        )
    elif anchor_type == AnchorType.betrayal:
        return TypeStrategy(
            ["betrayer motivation", "betrayed expectations", "trust dynamics", "fallout"],
            ["relationship history", "betrayer goals", "betrayed vulnerabilities"],
            ["redemption possibility", "sympathetic factors", "power dynamics"],
            "relationship-pairs",
        )
    elif anchor_type == AnchorType.sacrifice:
        return TypeStrategy(
            ["sacrifice value", "motivation", "recipient", "cost", "meaning"],
            ["what is sacrificed", "sacrificer state", "stakes involved"],
            ["symbolic significance", "historical parallels", "cultural meaning"],
            "decision-maker",
        )
    elif anchor_type == AnchorType.encounter:
        return TypeStrategy(
            ["character dynamics", "circumstances", "power balance", "immediate goals"],
            ["character states", "meeting context", "power dynamics"],
            ["fated/destined elements", "cultural clash", "past connections"],
            "relationship-pairs",
        )
    elif anchor_type == AnchorType.conflict:
        return TypeStrategy(
            ["opposing forces", "stakes", "resources", "resolution possibilities"],
            ["conflict parties", "conflict causes", "current advantages"],
            ["escalation potential", "mediation options", "long-term implications"],
            "all-involved",
        )
    elif anchor_type == AnchorType.transformation:
        return TypeStrategy(
            ["before state", "trigger", "change process", "after state", "acceptance"],
            ["character baseline", "transformation catalyst", "societal context"],
            ["symbolic elements", "support systems", "resistance factors"],
            "decision-maker",
        )
    elif anchor_type == AnchorType.mystery:
        return TypeStrategy(
            ["unknown element", "clues so far", "investigators", "possible explanations"],
            ["known facts", "active investigators", "stakeholder interests"],
            ["red herrings", "genre conventions", "reader knowledge"],
            "all-involved",
        )
    raise ValueError(f"Unhandled anchor type: {anchor_type}")


def select_context_for_anchor_type(
    anchor: AnchorDetails,
    characters: Sequence[CharacterState],
    world: WorldState,
    style: NarrativeStyleProfile,
) -> ContextPackage:
    strategy = type_strategy(anchor.type)

    involved = [c for c in characters if c.id in anchor.characters]
    if strategy.character_importance == "decision-maker":
        involved = involved[:MAX_DECISION_MAKERS]

    return ContextPackage(
        anchor=anchor,
        characters=involved,
        world=world,
        style=style,
        focus_areas=list(strategy.focus_areas),
        required_context=list(strategy.required_context),
        optional_context=list(strategy.optional_context),
        timeline_narrative=build_timeline_narrative(anchor, involved, world, style),
    )


def build_timeline_narrative(
    anchor: AnchorDetails,
    characters: Sequence[CharacterState],
    world: WorldState,
    style: NarrativeStyleProfile,
) -> str:
    parts = [
        f"ANCHOR EVENT: {anchor.title}",
        f"Type: {anchor.type.value} ({anchor.significance.value} significance)",
        f"Location: Page {anchor.page_number}",
        "",
        "DESCRIPTION:",
        anchor.description,
        "",
        "BRANCH POINT:",
        anchor.selected_alternative.description,
        "",
        "CHARACTER STATES:",
    ]
    for char in characters:
        parts.append(f"- {char.name} ({char.importance}): {char.current_state.emotional}")
        parts.append(f"  Goal: {char.current_state.goal}")
        parts.append(f"  Obstacle: {char.current_state.obstacle}")
    parts.append("")

    parts.append("WORLD CONTEXT:")
    parts.append(world.description)
    if world.active_conflicts:
        parts.append("Active Conflicts:")
        for conflict in world.active_conflicts[:2]:
            parts.append(f"- {conflict.name}: {conflict.description}")
    parts.append("")

    parts.append("NARRATIVE STYLE:")
    parts.append(f"Tone: {style.tone.primary.value} ({', '.join(style.tone.descriptors)})")
    parts.append(f"Pacing: {style.pacing.speed}, {style.pacing.chapter_structure}")

    return "\n".join(parts)
