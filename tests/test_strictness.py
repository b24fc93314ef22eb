"""Tests for context-aware strictness: base rules loosened by anchor, scope and canon size."""

import pytest

from branchweaver.schemas import (
    CharacterDeviationAllowance,
    ConsequenceScope,
    Significance,
    StrictnessFactors,
    StrictnessLevel,
    StrictnessRules,
    TimelineChanges,
    ToneShift,
    WorldRuleBreaking,
)
from branchweaver.validation import combine_rules, determine_strictness, strictness_description
from branchweaver.validation.strictness import base_rules, canon_adjustment, more_lenient


def _factors(significance=Significance.minor, scope=ConsequenceScope.personal, pages=0):
    return StrictnessFactors(
        anchor_significance=significance,
        consequence_type=scope,
        established_canon_pages=pages,
    )


def _rules(character, world, timeline, tone):
    return StrictnessRules(
        character_deviation=character,
        world_rule_breaking=world,
        timeline_changes=timeline,
        tone_shift=tone,
    )


# ---------------------------------------------------------------------------
# Combination
# ---------------------------------------------------------------------------

class TestMoreLenient:

    def test_later_member_wins(self):
        assert more_lenient(ToneShift.none, ToneShift.gradual) == ToneShift.gradual
        assert more_lenient(ToneShift.any, ToneShift.gradual) == ToneShift.any

    def test_equal_keeps_current(self):
        assert more_lenient(TimelineChanges.future_only, TimelineChanges.future_only) == TimelineChanges.future_only


class TestCombineRules:

    def test_adjustment_never_tightens(self):
        flexible = base_rules(StrictnessLevel.flexible)
        tightened = combine_rules(flexible, {"character_deviation": CharacterDeviationAllowance.none})
        assert tightened == flexible

    def test_later_adjustment_can_loosen_further(self):
        combined = combine_rules(
            base_rules(StrictnessLevel.strict),
            {"tone_shift": ToneShift.gradual},
            {"tone_shift": ToneShift.any},
        )
        assert combined.tone_shift == ToneShift.any
        assert combined.world_rule_breaking == WorldRuleBreaking.none


# ---------------------------------------------------------------------------
# determine_strictness
# ---------------------------------------------------------------------------

class TestDetermineStrictness:

    def test_strict_personal_deep_canon(self):
        rules = determine_strictness(StrictnessLevel.strict, _factors(pages=300))
        # Personal scope loosens characters and tone; deep canon cannot undo it
        assert rules == _rules(
            CharacterDeviationAllowance.minor,
            WorldRuleBreaking.none,
            TimelineChanges.none,
            ToneShift.gradual,
        )

    def test_moderate_critical_cosmic(self):
        rules = determine_strictness(
            StrictnessLevel.moderate,
            _factors(Significance.critical, ConsequenceScope.cosmic),
        )
        assert rules == _rules(
            CharacterDeviationAllowance.significant,
            WorldRuleBreaking.any_with_justification,
            TimelineChanges.any,
            ToneShift.any,
        )

    def test_strict_major_political(self):
        rules = determine_strictness(
            StrictnessLevel.strict,
            _factors(Significance.major, ConsequenceScope.political, pages=150),
        )
        assert rules == _rules(
            CharacterDeviationAllowance.significant,
            WorldRuleBreaking.none,
            TimelineChanges.any,
            ToneShift.none,
        )

    @pytest.mark.parametrize("significance", list(Significance))
    def test_flexible_stays_flexible(self, significance):
        rules = determine_strictness(StrictnessLevel.flexible, _factors(significance, pages=500))
        assert rules == base_rules(StrictnessLevel.flexible)

    def test_short_canon_allows_significant_character_change(self):
        rules = determine_strictness(StrictnessLevel.strict, _factors(pages=10))
        assert rules.character_deviation == CharacterDeviationAllowance.significant


class TestCanonAdjustment:

    @pytest.mark.parametrize("pages, expected", [
        (0, CharacterDeviationAllowance.significant),
        (100, CharacterDeviationAllowance.significant),
        (101, CharacterDeviationAllowance.minor),
        (200, CharacterDeviationAllowance.minor),
        (201, CharacterDeviationAllowance.none),
    ])
    def test_thresholds(self, pages, expected):
        assert canon_adjustment(pages)["character_deviation"] == expected

    def test_deep_canon_also_pins_world_rules(self):
        assert canon_adjustment(201)["world_rule_breaking"] == WorldRuleBreaking.none
        assert "world_rule_breaking" not in canon_adjustment(200)

    def test_negative_pages_rejected(self):
        with pytest.raises(ValueError):
            _factors(pages=-1)


class TestStrictnessDescription:

    def test_strict_base(self):
        assert strictness_description(base_rules(StrictnessLevel.strict)) == (
            "Characters must remain true to established traits. World rules cannot be broken."
        )

    def test_moderate_base(self):
        assert strictness_description(base_rules(StrictnessLevel.moderate)) == (
            "Minor character developments allowed. Only soft world rules can be bent."
        )

    def test_flexible_base(self):
        assert strictness_description(base_rules(StrictnessLevel.flexible)) == (
            "Significant character changes possible. World rules can be broken with justification."
        )
