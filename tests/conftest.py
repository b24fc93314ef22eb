"""Shared fixtures: a small two-character anchor and its context package."""

import os
import random

# Settings are cached on first use, so these must be set before any import
os.environ.setdefault("BRANCHWEAVER_LOG_FILE", "")
os.environ.setdefault("BRANCHWEAVER_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest

from branchweaver.context import extract_anchor_details
from branchweaver.schemas import (
    ActiveConflict,
    AlternativeOutcome,
    AnchorEvent,
    AnchorType,
    CharacterCurrentState,
    CharacterState,
    ContextPackage,
    NarrativeStyleProfile,
    Significance,
    WorldState,
    WorldTheme,
)
from branchweaver.variation import VariationGenerator


@pytest.fixture
def characters():
    return [
        CharacterState(
            id="c1",
            name="Aria",
            personality="brave and loyal to her sworn oath",
            importance="major",
            current_state=CharacterCurrentState(emotional="Determined", goal="Protect the realm"),
        ),
        CharacterState(
            id="c2",
            name="Bren",
            personality="stubborn and proud",
            current_state=CharacterCurrentState(emotional="Resentful", goal="Claim the throne"),
        ),
    ]


@pytest.fixture
def anchor_event():
    return AnchorEvent(
        id="a1",
        title="The Coronation",
        description="Aria is offered the crown before the assembled court.",
        type=AnchorType.decision,
        significance=Significance.major,
        page_number=42,
        characters=["c1", "c2"],
        alternatives=[
            AlternativeOutcome(
                id="alt-1",
                description="Aria refuses the crown out of duty to her oath",
                consequences=["Bren seizes the regency", "The court splits into factions"],
                affected_characters=["c1", "c2"],
            ),
            AlternativeOutcome(id="alt-2", description="Aria accepts the crown"),
        ],
    )


@pytest.fixture
def world():
    return WorldState(
        description="A kingdom on the edge of civil war.",
        setting="The northern kingdom of Vael",
        themes=[WorldTheme(name="duty")],
        active_conflicts=[ActiveConflict(name="Border war", description="Raids along the eastern march")],
    )


@pytest.fixture
def context(anchor_event, characters, world):
    return ContextPackage(
        anchor=extract_anchor_details(anchor_event, "alt-1"),
        characters=characters,
        world=world,
        style=NarrativeStyleProfile(),
    )


@pytest.fixture
def variations(context):
    return VariationGenerator(random.Random(7)).generate(context, 4)


@pytest.fixture
def variation(variations):
    """The personal/hopeful candidate."""
    return variations[0]
