"""Tests for the refinement conversation, critiques, area refiners and satisfaction."""

import asyncio

import pytest
from pydantic import ValidationError

from branchweaver.refinement import (
    add_system_question,
    add_user_feedback,
    apply_critique_refinement,
    build_refinement_request,
    calculate_branch_score,
    check_satisfaction,
    compare_critiques,
    conversation_summary,
    extract_focus_areas,
    generate_critiques,
    has_explicit_approval,
    mark_satisfied,
    refine_area,
    resolve_instruction,
    satisfaction_progress,
    start_conversation,
    trigger_refinement,
)
from branchweaver.refinement.text_generation import is_retryable
from branchweaver.schemas import (
    BranchVariation,
    CritiqueSeverity,
    MessageType,
    Priority,
    RefinementArea,
    RefinementRequest,
    RefinementResult,
)


class FixedGenerator:
    """Text generator that always answers with the same text."""

    def __init__(self, text="A polished summary.", delay=0.0):
        self.text = text
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.text


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

class TestConversation:
    """The log only grows; only pending/resolved move."""

    def test_start(self):
        conv = start_conversation("b1", "Make it darker")
        assert conv.messages[0].type == MessageType.user_instruction
        assert conv.messages[0].id == "msg-1"
        assert conv.pending_instructions == ["Make it darker"]
        assert conv.current_iteration == 1

    def test_adjustment_becomes_pending(self):
        conv = add_user_feedback(start_conversation("b1", "Make it darker"), "Slow the pacing")
        assert conv.pending_instructions == ["Make it darker", "Slow the pacing"]
        assert conv.messages[-1].id == "msg-2"

    def test_positive_feedback_is_confirmation(self):
        conv = add_user_feedback(start_conversation("b1", "Make it darker"), "Love it", kind="positive")
        assert conv.messages[-1].type == MessageType.refinement_confirmation
        assert conv.pending_instructions == ["Make it darker"]

    def test_functions_return_new_objects(self):
        original = start_conversation("b1", "Make it darker")
        add_user_feedback(original, "More")
        assert len(original.messages) == 1

    def test_resolve_instruction(self):
        conv = resolve_instruction(start_conversation("b1", "Make it darker"), "Make it darker")
        assert conv.pending_instructions == []
        assert conv.resolved_instructions == ["Make it darker"]

    def test_explicit_approval(self):
        conv = mark_satisfied(start_conversation("b1", "Make it darker"))
        assert has_explicit_approval(conv)
        assert conv.pending_instructions == []
        # system questions do not count as the user's last word
        assert has_explicit_approval(add_system_question(conv, "Anything else?"))
        assert not has_explicit_approval(add_user_feedback(conv, "Change the ending"))

    def test_focus_areas_tagged_and_keyword(self):
        conv = start_conversation("b1", "Deepen the character arcs", focus_area=RefinementArea.pacing)
        assert extract_focus_areas(conv) == [RefinementArea.pacing, RefinementArea.character_depth]

    def test_request_priority(self):
        conv = start_conversation("b1", "Raise the stakes")
        request = build_refinement_request(conv)
        assert request.priority == Priority.low
        assert request.focus_areas == [RefinementArea.stakes_clarity]
        assert build_refinement_request(add_user_feedback(conv, "More")).priority == Priority.high

    def test_summary(self):
        text = conversation_summary(start_conversation("b1", "Make it darker"))
        assert text.startswith("# Refinement Conversation Summary")
        assert "User: Make it darker" in text
        assert "Pending: 1" in text


# ---------------------------------------------------------------------------
# Critiques
# ---------------------------------------------------------------------------

class TestCritiques:

    def test_detectors_on_generated_variation(self, variation, context):
        critiques = generate_critiques(variation, context)
        assert [c.aspect for c in critiques] == [
            RefinementArea.emotional_impact,
            RefinementArea.stakes_clarity,
            RefinementArea.pacing,
            RefinementArea.world_building,
        ]
        assert critiques[0].id == "critique-emotional-impact"

    def test_major_sorted_first(self, variation):
        thin = variation.model_copy(update={
            "theme_progression": [],
            "trajectory": variation.trajectory.model_copy(update={"key_events": ["One event"]}),
        })
        severities = [c.severity for c in generate_critiques(thin)]
        assert severities[:2] == [CritiqueSeverity.major, CritiqueSeverity.major]
        assert severities == sorted(severities, key=["major", "moderate", "minor"].index)

    def test_apply_and_compare(self, variation, context):
        before = generate_critiques(variation, context)
        refinement = apply_critique_refinement(variation, before)
        assert len(refinement.addressed_critiques) == 4
        assert refinement.refined.estimated_chapters == variation.estimated_chapters - 1
        assert refinement.original == variation

        comparison = compare_critiques(before, generate_critiques(refinement.refined, context))
        assert {c.aspect for c in comparison.resolved} == {
            RefinementArea.emotional_impact,
            RefinementArea.stakes_clarity,
            RefinementArea.world_building,
        }
        assert [c.aspect for c in comparison.remaining] == [RefinementArea.pacing]
        assert comparison.new_issues == []

    def test_limit(self, variation, context):
        refinement = apply_critique_refinement(variation, generate_critiques(variation, context), limit=1)
        assert [c.aspect for c in refinement.addressed_critiques] == [RefinementArea.emotional_impact]


# ---------------------------------------------------------------------------
# Area refiners
# ---------------------------------------------------------------------------

class TestRefiners:

    def test_score_of_generated_variation(self, variation):
        assert calculate_branch_score(variation) == 1.0

    def test_pacing_faster(self, variation, context):
        refined, changes = refine_area(variation, context, RefinementArea.pacing, "make it faster")
        assert refined.estimated_chapters == variation.estimated_chapters - 1
        assert changes[0].before == "6 chapters"

    def test_plot_needs_clearer_instruction(self, variation, context):
        unchanged, changes = refine_area(variation, context, RefinementArea.plot_coherence, "more drama")
        assert unchanged is variation and changes == []
        refined, changes = refine_area(variation, context, RefinementArea.plot_coherence, "make it clearer")
        assert refined.trajectory.key_events[0] == "Setup: Establishing context"

    def test_world_building_uses_setting(self, variation, context):
        refined, _ = refine_area(variation, context, RefinementArea.world_building, "add snow")
        assert "(World: The northern kingdom of Vael; add snow)" in refined.premise.description

    def test_theme_development_appends_request(self, variation, context):
        refined, changes = refine_area(variation, context, RefinementArea.theme_development, "loyalty")
        assert refined.theme_progression == ["duty", "personal", "user-requested: loyalty"]
        assert changes[0].before == "duty, personal"

    def test_theme_development_stays_within_cap(self, variation, context):
        full = variation.model_copy(update={"theme_progression": ["duty", "personal", "honor", "exile"]})
        refined = full
        for instructions in ("loyalty", "grief", "mercy"):
            refined, _ = refine_area(refined, context, RefinementArea.theme_development, instructions)
        assert refined.theme_progression == ["duty", "personal", "honor", "user-requested: mercy"]
        # the copy is still a valid variation
        assert BranchVariation.model_validate(refined.model_dump()) == refined

    def test_theme_progression_cap_enforced_on_input(self, variation):
        data = variation.model_dump()
        data["theme_progression"] = ["a", "b", "c", "d", "e"]
        with pytest.raises(ValidationError):
            BranchVariation.model_validate(data)

    @pytest.mark.asyncio
    async def test_trigger_refinement_runs_requested_areas(self, variation, context):
        request = RefinementRequest(
            branch_id=variation.id,
            focus_areas=[RefinementArea.pacing, RefinementArea.stakes_clarity],
            user_instructions="faster please",
        )
        result = await trigger_refinement(variation, context, request)
        assert [c.area for c in result.changes] == [RefinementArea.pacing, RefinementArea.stakes_clarity]
        assert not result.user_satisfied
        assert result.original == variation

    @pytest.mark.asyncio
    async def test_text_generator_polishes_summary(self, variation, context):
        generator = FixedGenerator()
        result = await trigger_refinement(variation, context, RefinementRequest(branch_id=variation.id), generator)
        assert result.refined.trajectory.summary == "A polished summary."
        assert "Mood: hopeful" in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_text_generator_timeout(self, variation, context):
        slow = FixedGenerator(delay=1.0)
        with pytest.raises(asyncio.TimeoutError):
            await trigger_refinement(variation, context, RefinementRequest(branch_id=variation.id), slow, timeout=0.01)


class TestRetryClassification:

    @pytest.mark.parametrize("message,expected", [
        ("429 RESOURCE_EXHAUSTED", True),
        ("503 UNAVAILABLE: model overloaded", True),
        ("400 INVALID_ARGUMENT", False),
    ])
    def test_is_retryable(self, message, expected):
        assert is_retryable(Exception(message)) is expected


# ---------------------------------------------------------------------------
# Satisfaction
# ---------------------------------------------------------------------------

def _result(variation, iteration=1):
    return RefinementResult(original=variation, refined=variation, iteration=iteration, score=1.0)


class TestSatisfaction:

    def test_explicit_approval_reaches_threshold(self, variation):
        conv = mark_satisfied(start_conversation(variation.id, "Make it darker"))
        result = check_satisfaction(_result(variation), conv, explicit_approval=True)
        # 0.4 approval + 0.2 nothing pending + 0.25 * 0.4 sentiment
        assert result.confidence == pytest.approx(0.7)
        assert result.satisfied
        assert result.can_proceed

    def test_pending_negative_feedback_not_satisfied(self, variation):
        conv = start_conversation(variation.id, "Fix the pacing")
        result = check_satisfaction(_result(variation), conv)
        assert result.confidence == 0.0
        assert not result.satisfied
        assert result.needs_more_work
        assert result.suggestions

    def test_iteration_cap_allows_proceeding(self, variation):
        conv = start_conversation(variation.id, "Fix the pacing")
        result = check_satisfaction(_result(variation, iteration=5), conv)
        assert not result.satisfied
        assert result.can_proceed
        assert not result.needs_more_work

    def test_custom_threshold(self, variation):
        conv = resolve_instruction(start_conversation(variation.id, "Refine"), "Refine")
        assert check_satisfaction(_result(variation), conv, threshold=0.2).satisfied

    def test_progress(self):
        conv = start_conversation("b1", "Make it darker")
        progress = satisfaction_progress(conv, max_iterations=3)
        assert progress.status == "starting"
        assert progress.estimate == "1 item(s) still to address"

        done = resolve_instruction(conv, "Make it darker").model_copy(update={"current_iteration": 3})
        progress = satisfaction_progress(done, max_iterations=3)
        assert progress.progress == 75.0
        assert progress.status == "nearly-there"
        assert progress.estimate == "Ready for final review"
