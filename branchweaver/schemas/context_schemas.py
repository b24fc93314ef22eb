"""
Context Package Schema Definitions

Inputs assembled by upstream context-gathering code: the anchor event and
the chosen alternative, the states of the involved characters, a world state
snapshot and the narrative style profile of the source work.

Usage:
    from branchweaver.schemas import ContextPackage, AnchorDetails

    context = ContextPackage(anchor=anchor, characters=chars, world=world)
"""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── Enums ────────────────────────────────────────────────────────────────────

class AnchorType(str, Enum):
    """Narrative kind of a branch point"""
    decision = "decision"
    coincidence = "coincidence"
    revelation = "revelation"
    betrayal = "betrayal"
    sacrifice = "sacrifice"
    encounter = "encounter"
    conflict = "conflict"
    transformation = "transformation"
    mystery = "mystery"


class Significance(str, Enum):
    """How much of the story hangs on an anchor"""
    minor = "minor"
    moderate = "moderate"
    major = "major"
    critical = "critical"


class StyleTone(str, Enum):
    dark = "dark"
    light = "light"
    neutral = "neutral"
    mixed = "mixed"


# ─── Anchor ───────────────────────────────────────────────────────────────────

class AlternativeOutcome(BaseModel):
    """One of the outcomes an anchor could have had instead."""
    model_config = ConfigDict(frozen=True)

    id: str
    description: str
    consequences: List[str] = Field(default_factory=list)
    affected_characters: List[str] = Field(
        default_factory=list,
        description="Character ids touched by this outcome",
    )
    probability: Optional[float] = Field(default=None, ge=0, le=1)


class AnchorEvent(BaseModel):
    """Raw anchor event as stored by the analysis stage."""

    id: str
    title: str
    description: str = ""
    type: AnchorType
    significance: Significance
    page_number: int = 0
    alternatives: List[AlternativeOutcome] = Field(default_factory=list)
    characters: List[str] = Field(default_factory=list)


class AnchorDetails(BaseModel):
    """Anchor with the user's selected alternative resolved. Immutable."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    type: AnchorType
    significance: Significance
    page_number: int = 0
    selected_alternative: AlternativeOutcome
    all_alternatives: List[AlternativeOutcome] = Field(default_factory=list)
    characters: List[str] = Field(
        default_factory=list,
        description="Ids of the characters involved in the anchor",
    )


# ─── Characters ───────────────────────────────────────────────────────────────

class CharacterCurrentState(BaseModel):
    emotional: str = "Neutral"
    physical: str = "Healthy"
    location: str = "Unknown"
    goal: str = ""
    obstacle: str = ""


class CharacterKnowledge(BaseModel):
    known_facts: List[str] = Field(default_factory=list)
    suspected_facts: List[str] = Field(default_factory=list)
    unknown_facts: List[str] = Field(default_factory=list)


class CharacterRelationship(BaseModel):
    character_id: str
    character_name: str
    relationship_type: str
    dynamic: str = Field(default="", description="e.g. 'trusting but suspicious'")
    history: str = ""


class CharacterArcState(BaseModel):
    starting_point: str = "Beginning of story"
    current_point: str = ""
    potential_endings: List[str] = Field(default_factory=list)
    unresolved_issues: List[str] = Field(default_factory=list)


class CharacterState(BaseModel):
    """Full state of a character at the branch point."""

    id: str
    name: str
    aliases: List[str] = Field(default_factory=list)
    description: str = ""
    appearance: str = ""
    personality: str = Field(
        default="",
        description="Established personality; empty means not yet analyzed",
    )
    importance: Literal["major", "supporting", "minor"] = "supporting"
    current_state: CharacterCurrentState = Field(default_factory=CharacterCurrentState)
    knowledge: CharacterKnowledge = Field(default_factory=CharacterKnowledge)
    relationships: List[CharacterRelationship] = Field(default_factory=list)
    arc: CharacterArcState = Field(default_factory=CharacterArcState)


# ─── World ────────────────────────────────────────────────────────────────────

class ActiveConflict(BaseModel):
    name: str
    description: str = ""
    involved_parties: List[str] = Field(default_factory=list)
    stakes: str = ""
    current_status: str = "Ongoing"


class AvailableResource(BaseModel):
    name: str
    description: str = ""
    holder: str = ""
    limitations: List[str] = Field(default_factory=list)


class WorldRuleSet(BaseModel):
    hard_rules: List[str] = Field(
        default_factory=lambda: [
            "Physical laws of the world remain consistent",
            "Character abilities established so far remain valid",
            "Past events cannot be changed",
        ]
    )
    soft_rules: List[str] = Field(
        default_factory=lambda: [
            "Social hierarchies and power structures",
            "Cultural norms and traditions",
            "Political alliances and treaties",
        ]
    )
    breaking_soft_rules: List[str] = Field(default_factory=list)


class WorldTheme(BaseModel):
    name: str
    current_expression: str = ""
    potential_developments: List[str] = Field(default_factory=list)


class PlotThread(BaseModel):
    description: str
    importance: Literal["major", "minor"] = "minor"
    potential_resolutions: List[str] = Field(default_factory=list)


class WorldState(BaseModel):
    """Snapshot of the world at the branch point."""

    description: str = ""
    setting: str = ""
    time: str = ""
    key_facts: List[str] = Field(default_factory=list)
    active_conflicts: List[ActiveConflict] = Field(default_factory=list)
    available_resources: List[AvailableResource] = Field(default_factory=list)
    world_rules: WorldRuleSet = Field(default_factory=WorldRuleSet)
    themes: List[WorldTheme] = Field(default_factory=list)
    plot_threads: List[PlotThread] = Field(default_factory=list)


# ─── Style ────────────────────────────────────────────────────────────────────

class ToneProfile(BaseModel):
    primary: StyleTone = StyleTone.neutral
    descriptors: List[str] = Field(default_factory=list)


class PacingProfile(BaseModel):
    speed: Literal["fast", "moderate", "slow"] = "moderate"
    chapter_structure: Literal["scene-based", "continuous", "episodic"] = "scene-based"
    scene_length: Literal["short", "medium", "long"] = "medium"


class PerspectiveProfile(BaseModel):
    type: Literal["first-person", "third-person-limited", "third-person-omniscient"] = "third-person-limited"
    focus: Literal["single-protagonist", "ensemble", "rotating"] = "single-protagonist"


class DialogueProfile(BaseModel):
    frequency: Literal["sparse", "moderate", "heavy"] = "moderate"
    style: Literal["realistic", "stylized", "minimalist"] = "stylized"
    internal_monologue: Literal["frequent", "occasional", "rare"] = "occasional"


class GenreConventions(BaseModel):
    primary_genre: str = "General Fiction"
    subgenres: List[str] = Field(default_factory=list)
    common_tropes: List[str] = Field(default_factory=list)
    avoided_tropes: List[str] = Field(default_factory=list)


class EmotionalApproach(BaseModel):
    intensity: Literal["subtle", "moderate", "intense"] = "moderate"
    expression: Literal["show-dont-tell", "direct", "mixed"] = "mixed"
    catharsis_moments: Literal["frequent", "earned", "rare"] = "frequent"


class ThematicPreferences(BaseModel):
    preferred_themes: List[str] = Field(default_factory=list)
    avoided_themes: List[str] = Field(default_factory=list)
    moral_complexity: Literal["black-and-white", "gray", "deeply-complex"] = "gray"


class NarrativeStyleProfile(BaseModel):
    """Narrative style of the source work."""

    tone: ToneProfile = Field(default_factory=ToneProfile)
    pacing: PacingProfile = Field(default_factory=PacingProfile)
    perspective: PerspectiveProfile = Field(default_factory=PerspectiveProfile)
    dialogue: DialogueProfile = Field(default_factory=DialogueProfile)
    genre_conventions: GenreConventions = Field(default_factory=GenreConventions)
    emotional_approach: EmotionalApproach = Field(default_factory=EmotionalApproach)
    thematic_preferences: ThematicPreferences = Field(default_factory=ThematicPreferences)


# ─── Package ──────────────────────────────────────────────────────────────────

class ContextPackage(BaseModel):
    """Everything the generator and validators need about the branch point."""

    anchor: AnchorDetails
    characters: List[CharacterState] = Field(default_factory=list)
    world: WorldState = Field(default_factory=WorldState)
    style: NarrativeStyleProfile = Field(default_factory=NarrativeStyleProfile)

    focus_areas: List[str] = Field(default_factory=list)
    required_context: List[str] = Field(default_factory=list)
    optional_context: List[str] = Field(default_factory=list)
    timeline_narrative: str = ""
