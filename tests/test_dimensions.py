"""Tests for the eight-dimension quality validator."""

import pytest

from branchweaver.schemas import (
    NarrativeStyleProfile,
    StyleTone,
    ToneProfile,
    ValidationDimension,
)
from branchweaver.validation import generate_recommendations, validate_all_dimensions


def _thin(variation):
    """Strip a variation down to the bare minimum."""
    return variation.model_copy(update={
        "character_arcs": [],
        "theme_progression": [],
        "premise": variation.premise.model_copy(update={"immediate_consequences": [], "affected_characters": []}),
        "trajectory": variation.trajectory.model_copy(update={"key_events": ["One event"], "resolution": ""}),
    })


class TestGeneratedVariation:

    def test_scores(self, variation, context):
        result = validate_all_dimensions(variation, context)
        scores = {dim: d.score for dim, d in result.dimensions.items()}
        assert scores == {
            ValidationDimension.character_consistency: 0.9,
            ValidationDimension.world_consistency: 0.7,
            ValidationDimension.plot_plausibility: 0.9,
            ValidationDimension.thematic_coherence: 0.95,
            ValidationDimension.tone_consistency: 0.7,
            ValidationDimension.pacing_balance: 0.8,
            ValidationDimension.stakes_clarity: 0.8,
            ValidationDimension.narrative_satisfaction: 1.0,
        }
        assert result.overall_score == pytest.approx(0.84375)
        assert result.passed
        assert result.critical_failures == []
        assert result.recommendations == []

    def test_neutral_tone_flags_hopeful_mood(self, variation, context):
        tone = validate_all_dimensions(variation, context).dimensions[ValidationDimension.tone_consistency]
        assert tone.issues == ["Mood may conflict with established tone"]
        assert tone.strengths == ["Ending type matches mood"]

    def test_light_tone_fits_hopeful_mood(self, variation, context):
        light = context.model_copy(update={"style": NarrativeStyleProfile(tone=ToneProfile(primary=StyleTone.light))})
        tone = validate_all_dimensions(variation, light).dimensions[ValidationDimension.tone_consistency]
        assert tone.score == 0.95
        assert tone.issues == []

    def test_connection_to_active_conflict(self, variation, context):
        events = variation.trajectory.key_events + ["The border war reignites"]
        linked = variation.model_copy(update={"trajectory": variation.trajectory.model_copy(update={"key_events": events})})
        world = validate_all_dimensions(linked, context).dimensions[ValidationDimension.world_consistency]
        assert world.score == 0.85
        assert world.strengths == ["Branch connects to existing conflicts"]

    def test_pure(self, variation, context):
        assert validate_all_dimensions(variation, context) == validate_all_dimensions(variation, context)


class TestThinVariation:

    def test_fails_but_not_critical(self, variation, context):
        result = validate_all_dimensions(_thin(variation), context)
        plot = result.dimensions[ValidationDimension.plot_plausibility]
        assert plot.score == 0.45
        assert not plot.passed
        assert not result.passed
        assert result.critical_failures == []

    def test_boundary_scores_pass(self, variation, context):
        dims = validate_all_dimensions(_thin(variation), context).dimensions
        # 0.7 - 0.2 must land exactly on the pass mark
        assert dims[ValidationDimension.stakes_clarity].score == 0.5
        assert dims[ValidationDimension.stakes_clarity].passed
        assert dims[ValidationDimension.thematic_coherence].passed

    def test_recommendations_use_first_issue(self, variation, context):
        result = validate_all_dimensions(_thin(variation), context)
        assert "Plot Plausibility: Event chain may be too short" in result.recommendations
        assert "Character Consistency: No character arcs defined" in result.recommendations
        assert "Stakes Clarity: No characters affected by stakes" in result.recommendations
        assert result.recommendations == generate_recommendations(result.dimensions)
