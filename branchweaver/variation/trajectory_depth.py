"""
Adaptive trajectory depth.

How much of a branch to plan out: shallow (3 chapters, summary, major
events only), moderate (5, outline, events as generated) or deep (8,
detailed scene stubs, transitions between every pair of events). The level
follows the anchor's significance, is raised one step for cosmic scope and
again for complex branches, and a reader's explicit preference overrides
all of it.
"""
from __future__ import annotations

from typing import List, Optional

from branchweaver.schemas import (
    BranchTrajectory,
    BranchVariation,
    Complexity,
    ConsequenceScope,
    DepthFeedback,
    DepthLevel,
    DetailLevel,
    EventGranularity,
    Significance,
    TrajectoryDepth,
)

DEPTH_ORDER = (DepthLevel.shallow, DepthLevel.moderate, DepthLevel.deep)
SHALLOW_ARC_LIMIT = 3
TO_BE_DETERMINED = "[To be determined]"


def depth_config(level: DepthLevel) -> TrajectoryDepth:
    if level == DepthLevel.shallow:
        return TrajectoryDepth(level=level, chapter_count=3, detail_level=DetailLevel.summary,
                               event_granularity=EventGranularity.major)
    elif level == DepthLevel.moderate:
        return TrajectoryDepth(level=level, chapter_count=5, detail_level=DetailLevel.outline,
                               event_granularity=EventGranularity.significant)
    elif level == DepthLevel.deep:
        return TrajectoryDepth(level=level, chapter_count=8, detail_level=DetailLevel.detailed,
                               event_granularity=EventGranularity.all)
    raise ValueError(f"Unhandled depth level: {level}")


def _deepen(level: DepthLevel) -> DepthLevel:
    return DepthLevel.moderate if level == DepthLevel.shallow else DepthLevel.deep


def calculate_trajectory_depth(
    anchor_significance: Significance,
    consequence_type: ConsequenceScope,
    complexity: Complexity,
    user_preference: Optional[DepthLevel] = None,
) -> TrajectoryDepth:
    if user_preference is not None:
        return depth_config(user_preference)

    if anchor_significance == Significance.critical:
        level = DepthLevel.deep
    elif anchor_significance == Significance.major:
        level = DepthLevel.moderate
    elif anchor_significance in (Significance.moderate, Significance.minor):
        level = DepthLevel.shallow
    else:
        raise ValueError(f"Unhandled significance: {anchor_significance}")

    if consequence_type == ConsequenceScope.cosmic:
        level = _deepen(level)
    if complexity == Complexity.complex:
        level = _deepen(level)
    return depth_config(level)


def expand_events(events: List[str], depth: TrajectoryDepth) -> List[str]:
    if depth.event_granularity == EventGranularity.major:
        # First and last event carry the branch
        return list(events) if len(events) <= 2 else [events[0], events[-1]]
    if depth.event_granularity == EventGranularity.all:
        expanded = []
        for current, following in zip(events, events[1:]):
            expanded += [current, f"Transition: {current} leads to {following}"]
        return expanded + list(events[-1:])
    return list(events)


def expand_trajectory(trajectory: BranchTrajectory, depth: TrajectoryDepth) -> BranchTrajectory:
    return trajectory.model_copy(update={"key_events": expand_events(trajectory.key_events, depth)})


def generate_detailed_outline(variation: BranchVariation, depth: TrajectoryDepth) -> List[str]:
    """Markdown outline lines for the branch at the requested depth."""
    trajectory = variation.trajectory
    lines = [f"# {variation.premise.title}", "", "## Summary", trajectory.summary, "", "## Character Arcs"]

    arcs = variation.character_arcs
    if depth.level != DepthLevel.deep:
        arcs = arcs[:SHALLOW_ARC_LIMIT]
    for arc in arcs:
        lines += [
            f"### {arc.character_name}",
            f"- Start: {arc.starting_state}",
            f"- Arc: {arc.arc_description}",
            f"- End: {arc.ending_state}",
            "",
        ]

    lines.append("## Key Events")
    for i, event in enumerate(expand_events(trajectory.key_events, depth), start=1):
        if depth.detail_level == DetailLevel.detailed:
            lines += [
                f"### Event {i}: {event}",
                f"Setting: {TO_BE_DETERMINED}",
                f"Characters involved: {TO_BE_DETERMINED}",
                f"Emotional beat: {TO_BE_DETERMINED}",
                "",
            ]
        elif depth.detail_level == DetailLevel.outline:
            lines.append(f"{i}. {event}")
        else:
            lines.append(f"- {event}")

    if depth.level != DepthLevel.shallow:
        lines += ["", "## Turning Points"]
        lines.extend(f"- {point}" for point in trajectory.turning_points)

    lines += ["", "## Climax", trajectory.climax]
    if depth.level == DepthLevel.deep:
        lines += [
            "",
            "### Climax Details",
            "- Emotional intensity: High",
            f"- Stakes: {TO_BE_DETERMINED}",
            f"- Confrontation: {TO_BE_DETERMINED}",
        ]

    lines += ["", "## Resolution", f"Type: {trajectory.ending_type.value}", trajectory.resolution]
    return lines


def adjust_depth_from_feedback(current: TrajectoryDepth, feedback: DepthFeedback) -> TrajectoryDepth:
    idx = DEPTH_ORDER.index(current.level)
    if feedback == DepthFeedback.more_detail and idx < len(DEPTH_ORDER) - 1:
        return depth_config(DEPTH_ORDER[idx + 1])
    if feedback == DepthFeedback.less_detail and idx > 0:
        return depth_config(DEPTH_ORDER[idx - 1])
    return current
