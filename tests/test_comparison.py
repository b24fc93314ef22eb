"""Tests for pairwise, character-fate and multi-branch comparison."""

import pytest

from branchweaver.comparison import (
    calculate_character_fate_similarity,
    compare_branches,
    compare_fates_across_branches,
    compare_multiple_branches,
    filter_branches,
    generate_multi_branch_report,
    get_pairwise_comparison,
    pair_key,
)
from branchweaver.comparison.character_fates import growth_similarity, state_similarity
from branchweaver.errors import InputError, InsufficientBranchesError
from branchweaver.schemas import (
    ComparisonDimension,
    FateDivergence,
    Growth,
    Mood,
)


def _twin(variation, new_id="twin"):
    """Same content under a different id."""
    return variation.model_copy(update={"id": new_id})


# ---------------------------------------------------------------------------
# Pairwise comparison
# ---------------------------------------------------------------------------

class TestPairKey:

    def test_order_independent(self):
        assert pair_key("b", "a") == pair_key("a", "b") == "a-b"


class TestCompareBranches:

    def test_identical_content_is_very_similar(self, variation):
        comparison = compare_branches(variation, _twin(variation))
        assert comparison.overall_similarity >= 0.9
        assert comparison.key_differences == []
        assert comparison.recommendation.startswith("Branches are very similar")
        assert len(comparison.dimensions) == 8

    def test_symmetric(self, variations):
        a, b = variations[0], variations[2]
        ab, ba = compare_branches(a, b), compare_branches(b, a)
        assert ab.overall_similarity == ba.overall_similarity
        for dim in ComparisonDimension:
            assert ab.dimensions[dim].similarity == ba.dimensions[dim].similarity

    def test_contrasting_moods(self, variations):
        comparison = compare_branches(variations[0], variations[1])
        assert comparison.dimensions[ComparisonDimension.reader_experience].similarity == 0.2
        assert comparison.dimensions[ComparisonDimension.character_fates].similarity == 0.0
        assert "Aria: positive vs negative" in comparison.key_differences
        assert len(comparison.key_differences) == 5

    def test_missing_character_counts_as_mismatch(self, variation):
        partial = _twin(variation).model_copy(update={"character_arcs": variation.character_arcs[:1]})
        fates = compare_branches(variation, partial).dimensions[ComparisonDimension.character_fates]
        assert fates.similarity == 0.5
        assert "Bren: present in only one branch" in fates.differences

    def test_empty_collections_compare_as_identical(self, variation):
        bare = variation.model_copy(update={"character_arcs": [], "theme_progression": []})
        comparison = compare_branches(bare, _twin(bare))
        assert comparison.dimensions[ComparisonDimension.character_fates].similarity == 1.0
        assert comparison.dimensions[ComparisonDimension.theme_alignment].similarity == 1.0


# ---------------------------------------------------------------------------
# Character fates
# ---------------------------------------------------------------------------

class TestCharacterFates:

    @pytest.mark.parametrize("a,b,expected", [
        (Growth.positive, Growth.positive, 1.0),
        (Growth.positive, Growth.negative, 0.0),
        (Growth.complex, Growth.neutral, 0.7),
        (Growth.neutral, Growth.positive, 0.3),
        (Growth.complex, Growth.negative, 0.5),
    ])
    def test_growth_similarity(self, a, b, expected):
        assert growth_similarity(a, b) == expected
        assert growth_similarity(b, a) == expected

    def test_antonyms_penalized_symmetrically(self):
        forward = state_similarity("fulfilled and happy", "broken and happy")
        assert forward == state_similarity("broken and happy", "fulfilled and happy")
        assert forward < 0.1

    def test_identical_arcs(self, variation):
        matrix = calculate_character_fate_similarity(variation, _twin(variation))
        assert matrix.overall_similarity == 1.0
        assert all(c.fate_divergence == FateDivergence.none for c in matrix.characters)
        assert matrix.most_similar is not None
        assert matrix.most_divergent is None

    def test_absent_character(self, variation):
        partial = variation.model_copy(update={"character_arcs": variation.character_arcs[:1]})
        matrix = calculate_character_fate_similarity(variation, partial)
        bren = matrix.characters[1]
        assert bren.fate_similarity == 0.0
        assert bren.fate_divergence == FateDivergence.complete
        assert bren.branch_b_state == "N/A (not present)"
        assert matrix.most_divergent == bren

    def test_heatmap(self, variations):
        across = compare_fates_across_branches(variations[:3])
        heatmap = across.divergence_heatmap
        assert [heatmap[i][i] for i in range(3)] == [1.0, 1.0, 1.0]
        assert heatmap[0][2] == heatmap[2][0]
        assert set(across.character_fates) == {"c1", "c2"}
        assert len(across.character_fates["c1"]) == 3


# ---------------------------------------------------------------------------
# Multi-branch
# ---------------------------------------------------------------------------

class TestCompareMultipleBranches:

    def test_needs_two_branches(self, variation):
        with pytest.raises(InsufficientBranchesError):
            compare_multiple_branches([variation])

    def test_duplicate_ids_rejected(self, variation):
        with pytest.raises(InputError):
            compare_multiple_branches([variation, variation])

    def test_colliding_pair_keys_rejected(self, variation):
        hyphenated = [variation.model_copy(update={"id": i}) for i in ("x", "y-z", "x-y", "z")]
        with pytest.raises(InputError, match="x-y-z"):
            compare_multiple_branches(hyphenated)

    def test_hyphenated_ids_without_collision(self, variations):
        renamed = [v.model_copy(update={"id": f"branch-{i}-alt"}) for i, v in enumerate(variations)]
        result = compare_multiple_branches(renamed)
        assert len(result.pairwise) == 6

    def test_every_pair_compared(self, variations):
        result = compare_multiple_branches(variations, max_workers=2)
        assert len(result.pairwise) == 6
        for key, comparison in result.pairwise.items():
            assert key == pair_key(comparison.branch_a_id, comparison.branch_b_id)

    def test_rankings(self, variations):
        rankings = compare_multiple_branches(variations).rankings
        assert sorted(r.rank for r in rankings) == [1, 2, 3, 4]
        scores = [r.score for r in rankings]
        assert scores == sorted(scores, reverse=True)

    def test_consensus(self, variations):
        consensus = compare_multiple_branches(variations).consensus
        assert "duty" in consensus.shared_themes
        assert "moods" in consensus.divergent_aspects

    def test_twins_grouped_and_not_unique(self, variations):
        original, other = variations[0], variations[1]
        twin = _twin(original)
        result = compare_multiple_branches([original, twin, other])

        assert [[b.id for b in g] for g in result.similar_groups] == [[original.id, "twin"]]
        assert [b.id for b in result.unique_branches] == [other.id]

    def test_pairwise_lookup_either_order(self, variations):
        result = compare_multiple_branches(variations)
        a, b = variations[0].id, variations[3].id
        assert get_pairwise_comparison(result, a, b) is get_pairwise_comparison(result, b, a)
        assert get_pairwise_comparison(result, a, "missing") is None

    def test_inputs_untouched(self, variations):
        snapshot = [v.model_copy() for v in variations]
        compare_multiple_branches(variations)
        assert variations == snapshot


class TestFilterAndReport:

    def test_filter_by_mood(self, variations):
        result = compare_multiple_branches(variations)
        assert [b.mood for b in filter_branches(result, mood=Mood.tragic)] == [Mood.tragic]

    def test_filter_by_rank(self, variations):
        result = compare_multiple_branches(variations)
        top = filter_branches(result, max_rank=2)
        assert {b.id for b in top} == {r.branch_id for r in result.rankings[:2]}

    def test_report(self, variations):
        report = generate_multi_branch_report(compare_multiple_branches(variations))
        assert report.startswith("# Multi-Branch Comparison Report")
        assert "Pairwise comparisons: 6" in report
        assert "## Rankings" in report
