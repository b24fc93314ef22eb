"""Tests for the tiered trait validator and the deviation controller.

Fixture characters:
- Aria: "brave and loyal", keeps her core traits under any arc
- Bren: "stubborn and proud", breaks core traits under a negative arc
"""

import random

import pytest

from branchweaver.schemas import (
    CharacterDeviationRules,
    CharacterState,
    DeviationConfig,
    DeviationLevel,
    DeviationOverrides,
    DeviationStatus,
    RuleType,
    TraitTier,
)
from branchweaver.validation import (
    TIER_WEIGHTS,
    apply_deviation_config,
    check_deviation_allowed,
    check_tiered_validation,
    default_deviation_config,
    deviation_level_description,
    resolve_deviation,
    rule_type_description,
    trait_tier_description,
    validate_tiered_traits,
)
from branchweaver.validation.deviation import suggested_justifications

CORE = ["core-values", "primary-motivation", "moral-alignment"]
SECONDARY = ["personality-traits", "skills-abilities", "relationships"]


def _traits(variations, characters):
    """(hopeful, tragic) results for Aria and Bren."""
    hopeful, tragic = variations[0], variations[1]
    aria, bren = characters
    return {
        "aria_hopeful": validate_tiered_traits(aria, hopeful),
        "aria_tragic": validate_tiered_traits(aria, tragic),
        "bren_hopeful": validate_tiered_traits(bren, hopeful),
        "bren_tragic": validate_tiered_traits(bren, tragic),
    }


# ---------------------------------------------------------------------------
# Tiered traits
# ---------------------------------------------------------------------------

class TestTieredTraits:

    def test_weights(self):
        assert TIER_WEIGHTS == {TraitTier.core: 0.5, TraitTier.secondary: 0.3, TraitTier.minor: 0.2}

    def test_positive_arc_preserves_everything(self, variations, characters):
        result = _traits(variations, characters)["bren_hopeful"]
        assert result.overall_score == 1.0
        assert result.all_violations == []
        assert len(result.traits) == 8

    def test_negative_arc_breaks_stubborn_core(self, variations, characters):
        result = _traits(variations, characters)["bren_tragic"]
        assert [v.trait for v in result.core_violations] == CORE
        assert [v.trait for v in result.secondary_violations] == SECONDARY
        assert result.minor_violations == []
        # only the two minor traits survive: 0.4 / 2.8
        assert result.overall_score == pytest.approx(0.4 / 2.8)

    def test_negative_arc_keeps_core_without_stubbornness(self, variations, characters):
        result = _traits(variations, characters)["aria_tragic"]
        assert result.core_violations == []
        assert len(result.secondary_violations) == 3

    def test_empty_personality_violates_core(self, variation):
        blank = CharacterState(id="c1", name="Aria")
        result = validate_tiered_traits(blank, variation)
        assert [v.trait for v in result.core_violations] == CORE
        assert result.secondary_violations == []

    def test_character_without_arc(self, variation):
        stranger = CharacterState(id="c9", name="Cass", personality="quiet")
        result = validate_tiered_traits(stranger, variation)
        assert result.overall_score == 1.0
        assert result.branch_id == variation.id


class TestCheckTieredValidation:

    def test_core_violations_are_critical(self, variations, characters):
        check = check_tiered_validation(_traits(variations, characters)["bren_tragic"])
        assert not check.valid
        assert check.critical_issues == [f"Core trait violations for Bren: {', '.join(CORE)}"]

    def test_core_allowed(self, variations, characters):
        check = check_tiered_validation(_traits(variations, characters)["bren_tragic"], allow_core_changes=True)
        assert check.valid

    def test_secondary_disallowed(self, variations, characters):
        check = check_tiered_validation(
            _traits(variations, characters)["aria_tragic"], allow_secondary_changes=False
        )
        assert not check.valid
        assert "Secondary trait changes for Aria" in check.critical_issues[0]


# ---------------------------------------------------------------------------
# Deviation controller
# ---------------------------------------------------------------------------

class TestCheckDeviationAllowed:

    def test_moderate_blocks_core(self):
        result = check_deviation_allowed(TraitTier.core, DeviationConfig(level=DeviationLevel.moderate))
        assert not result.allowed
        assert result.suggested_justification is None

    def test_moderate_allows_secondary_with_justification(self):
        result = check_deviation_allowed(
            TraitTier.secondary, DeviationConfig(level=DeviationLevel.moderate), rng=random.Random(1)
        )
        assert result.allowed
        assert result.requires_justification
        assert result.suggested_justification in suggested_justifications(TraitTier.secondary)

    def test_creative_core_warns(self):
        result = check_deviation_allowed(TraitTier.core, DeviationConfig(level=DeviationLevel.creative))
        assert result.allowed
        assert not result.requires_justification
        assert result.warnings

    def test_strict_blocks_secondary(self):
        result = check_deviation_allowed(TraitTier.secondary, DeviationConfig(level=DeviationLevel.strict))
        assert not result.allowed

    def test_user_override_beats_level(self):
        config = DeviationConfig(
            level=DeviationLevel.strict,
            user_overrides=DeviationOverrides(allow_core_changes=True),
        )
        assert check_deviation_allowed(TraitTier.core, config).allowed


class TestResolveDeviation:

    def test_default_config_is_moderate(self):
        assert default_deviation_config().level == DeviationLevel.moderate

    def test_core_break_rejected_under_moderate(self, variations, characters):
        decision = resolve_deviation(_traits(variations, characters)["bren_tragic"], default_deviation_config())
        assert decision.status == DeviationStatus.rejected
        assert decision.offending_traits == CORE

    def test_secondary_change_needs_justification(self, variations, characters):
        decision = resolve_deviation(
            _traits(variations, characters)["aria_tragic"], DeviationConfig(level=DeviationLevel.moderate)
        )
        assert decision.status == DeviationStatus.needs_justification
        assert decision.offending_traits == SECONDARY

    def test_creative_accepts_and_reports(self, variations, characters):
        decision = resolve_deviation(
            _traits(variations, characters)["bren_tragic"], DeviationConfig(level=DeviationLevel.creative)
        )
        assert decision.status == DeviationStatus.accepted
        assert decision.offending_traits == CORE + SECONDARY

    def test_clean_result_accepted(self, variations, characters):
        decision = resolve_deviation(_traits(variations, characters)["aria_hopeful"], default_deviation_config())
        assert decision.status == DeviationStatus.accepted
        assert decision.offending_traits == []
        assert decision.reason == "No trait violations"

    def test_protected_trait_vetoes_creative(self, variation):
        blank = CharacterState(id="c1", name="Aria")
        config = DeviationConfig(
            level=DeviationLevel.creative,
            character_specific={"c1": CharacterDeviationRules(protected_traits=["moral-alignment"])},
        )
        decision = resolve_deviation(validate_tiered_traits(blank, variation), config)
        assert decision.status == DeviationStatus.rejected
        assert decision.offending_traits == ["moral-alignment"]

    def test_allowed_deviations_whitelist_core(self, variations, characters):
        config = DeviationConfig(
            level=DeviationLevel.moderate,
            character_specific={"c2": CharacterDeviationRules(allowed_deviations=CORE)},
        )
        decision = resolve_deviation(_traits(variations, characters)["bren_tragic"], config)
        assert decision.status == DeviationStatus.needs_justification
        assert decision.offending_traits == SECONDARY


class TestApplyDeviationConfig:

    def test_report_buckets(self, variations, characters):
        traits = _traits(variations, characters)
        report = apply_deviation_config(
            [traits["aria_hopeful"], traits["aria_tragic"], traits["bren_tragic"]],
            default_deviation_config(),
        )
        assert [d.character_name for d in report.accepted] == ["Aria"]
        assert [d.character_name for d in report.needs_justification] == ["Aria"]
        assert [d.character_name for d in report.rejected] == ["Bren"]


class TestDescriptions:

    @pytest.mark.parametrize("describe,enum", [
        (trait_tier_description, TraitTier),
        (deviation_level_description, DeviationLevel),
        (rule_type_description, RuleType),
    ])
    def test_every_member_described(self, describe, enum):
        descriptions = [describe(member) for member in enum]
        assert all(descriptions)
        assert len(set(descriptions)) == len(descriptions)
