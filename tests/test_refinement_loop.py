"""Tests for the iterative refinement loop.

Generated variations already score 1.0, so most stop-condition tests see a
flat score. ``_sparse`` strips a variation down to 0.65 so the score climbs
as critiques are fixed and the diminishing-returns stop can be pinned to an
exact iteration.
"""

import asyncio

import pytest

from branchweaver.errors import InputError
from branchweaver.refinement import (
    ITERATION_PRESETS,
    RefinementLoop,
    calculate_branch_score,
    create_iteration_config,
    mark_satisfied,
    preset,
    run_refinement_iterations,
    satisfaction_progress,
    start_conversation,
)
from branchweaver.schemas import EndingType, IterationConfig, RefinementArea, StopReason


class SlowGenerator:
    """Text generator that sleeps before answering."""

    def __init__(self, delay):
        self.delay = delay

    async def generate(self, prompt):
        await asyncio.sleep(self.delay)
        return "A slow summary."


class ConcurrencyTracker:
    """Records how many ``generate`` calls overlap."""

    def __init__(self):
        self.active = 0
        self.peak = 0

    async def generate(self, prompt):
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.01)
        self.active -= 1
        return "A tracked summary."


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestIterationConfig:

    def test_presets(self):
        assert ITERATION_PRESETS == ("quick", "standard", "thorough", "maximum")
        assert preset("quick").max_iterations == 1
        assert preset("thorough").min_improvement_threshold == 0.02
        assert not preset("maximum").stop_on_diminishing_returns

    def test_unknown_preset(self):
        with pytest.raises(InputError):
            preset("endless")

    def test_max_iterations_clamped(self):
        assert IterationConfig(max_iterations=12).max_iterations == 5
        assert IterationConfig(max_iterations=0).max_iterations == 1

    def test_defaults_from_settings(self):
        config = create_iteration_config()
        assert config.max_iterations == 3
        assert config.min_improvement_threshold == 0.05
        assert create_iteration_config(2, stop_on_satisfaction=False).stop_on_satisfaction is False


# ---------------------------------------------------------------------------
# Stop conditions
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestStopConditions:

    async def test_diminishing_returns_from_second_iteration(self, variation, context):
        result = await run_refinement_iterations(variation, context, config=preset("standard"))
        assert result.stopped_reason == StopReason.diminishing_returns
        assert [r.iteration for r in result.iterations] == [1, 2]
        assert result.improvement_graph == [1.0, 1.0, 1.0]

    async def test_max_iterations(self, variation, context):
        result = await run_refinement_iterations(variation, context, config=preset("maximum"))
        assert result.stopped_reason == StopReason.max_iterations
        assert len(result.iterations) == 5
        assert result.checkpoint.iteration == 5

    async def test_quick_runs_once(self, variation, context):
        result = await run_refinement_iterations(variation, context, config=preset("quick"))
        assert result.stopped_reason == StopReason.max_iterations
        assert len(result.iterations) == 1

    async def test_user_satisfied_wins(self, variation, context):
        conversation = mark_satisfied(start_conversation(variation.id, "Make it darker"))
        result = await run_refinement_iterations(variation, context, conversation, preset("standard"))
        assert result.stopped_reason == StopReason.user_satisfied
        assert len(result.iterations) == 1
        assert result.iterations[0].user_satisfied

    async def test_satisfaction_ignored_when_disabled(self, variation, context):
        conversation = mark_satisfied(start_conversation(variation.id, "Make it darker"))
        config = IterationConfig(max_iterations=2, stop_on_satisfaction=False, stop_on_diminishing_returns=False)
        result = await run_refinement_iterations(variation, context, conversation, config)
        assert result.stopped_reason == StopReason.max_iterations
        assert len(result.iterations) == 2

    async def test_pending_instructions_resolved(self, variation, context):
        result = await run_refinement_iterations(variation, context, config=preset("quick"))
        assert result.conversation.pending_instructions == []
        assert result.conversation.resolved_instructions == ["Refine this branch"]

    async def test_changes_accumulate(self, variation, context):
        result = await run_refinement_iterations(variation, context, config=preset("quick"))
        assert result.total_changes == len(result.iterations[0].changes) > 0
        assert result.final_branch.id == variation.id
        assert result.final_branch != variation
        # the input is never edited
        assert variation.estimated_chapters == 6


# ---------------------------------------------------------------------------
# Cancellation, timeouts and resume
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
class TestInterruption:

    async def test_cancel_before_start(self, variation, context):
        cancel = asyncio.Event()
        cancel.set()
        result = await RefinementLoop().run(variation, context, cancel_event=cancel)
        assert result.stopped_reason == StopReason.cancelled
        assert result.iterations == []
        assert result.final_branch == variation

    async def test_timeout_keeps_last_completed_variation(self, variation, context):
        loop = RefinementLoop(text_generator=SlowGenerator(delay=1.0))
        result = await loop.run(variation, context, config=preset("standard"), timeout=0.05)
        assert result.stopped_reason == StopReason.cancelled
        assert result.iterations == []
        assert result.final_branch == variation

    async def test_cancel_during_iteration(self, variation, context):
        loop = RefinementLoop(text_generator=SlowGenerator(delay=1.0))
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        result = await loop.run(variation, context, config=preset("standard"), cancel_event=cancel)
        assert result.stopped_reason == StopReason.cancelled
        assert result.final_branch == variation

    async def test_resume_from_checkpoint(self, variation, context):
        loop = RefinementLoop()
        first = await loop.run(
            variation, context, config=IterationConfig(max_iterations=2, stop_on_diminishing_returns=False)
        )
        assert first.stopped_reason == StopReason.max_iterations
        assert first.checkpoint.iteration == 2

        second = await loop.run(
            variation,
            context,
            config=IterationConfig(max_iterations=4, stop_on_diminishing_returns=False),
            checkpoint=first.checkpoint,
        )
        assert [r.iteration for r in second.iterations] == [3, 4]
        assert second.iterations[0].original == first.final_branch
        assert len(second.improvement_graph) == 5

    async def test_exhausted_checkpoint_does_nothing(self, variation, context):
        loop = RefinementLoop()
        first = await loop.run(variation, context, config=preset("quick"))
        again = await loop.run(variation, context, config=preset("quick"), checkpoint=first.checkpoint)
        assert again.stopped_reason == StopReason.max_iterations
        assert again.iterations == []


@pytest.mark.asyncio
class TestLineageLock:

    async def test_same_lineage_runs_serially(self, variation, context):
        tracker = ConcurrencyTracker()
        loop = RefinementLoop(text_generator=tracker)
        results = await asyncio.gather(
            loop.run(variation, context, config=preset("quick")),
            loop.run(variation, context, config=preset("quick")),
        )
        assert tracker.peak == 1
        assert all(r.final_branch.trajectory.summary == "A tracked summary." for r in results)

    async def test_different_lineages_overlap(self, variations, context):
        tracker = ConcurrencyTracker()
        loop = RefinementLoop(text_generator=tracker)
        await asyncio.gather(
            loop.run(variations[0], context, config=preset("quick")),
            loop.run(variations[1], context, config=preset("quick")),
        )
        assert tracker.peak == 2

    async def test_locks_released_after_runs(self, variation, context):
        loop = RefinementLoop()
        for i in range(50):
            lineage = variation.model_copy(update={"id": f"lineage-{i}"})
            await loop.run(lineage, context, config=preset("quick"))
        assert loop._locks == {}
        assert loop._lock_users == {}

    async def test_lock_kept_while_waiters_remain(self, variation, context):
        tracker = ConcurrencyTracker()
        loop = RefinementLoop(text_generator=tracker)
        first = asyncio.ensure_future(loop.run(variation, context, config=preset("quick")))
        second = asyncio.ensure_future(loop.run(variation, context, config=preset("quick")))
        await asyncio.sleep(0)
        assert set(loop._locks) == {variation.id}
        assert loop._lock_users[variation.id] == 2
        await asyncio.gather(first, second)
        assert loop._locks == {}

    async def test_lock_released_on_cancel(self, variation, context):
        cancel = asyncio.Event()
        cancel.set()
        loop = RefinementLoop()
        await loop.run(variation, context, cancel_event=cancel)
        assert loop._locks == {}


# ---------------------------------------------------------------------------
# Score progression on a weak branch
# ---------------------------------------------------------------------------

def _sparse(variation):
    """A branch that scores 0.65: only the climax and off-target chapters and ending."""
    return variation.model_copy(update={
        "character_arcs": [],
        "theme_progression": [],
        "estimated_chapters": 9,
        "premise": variation.premise.model_copy(update={
            "affected_characters": [],
            "immediate_consequences": [],
            "long_term_implications": [],
        }),
        "trajectory": variation.trajectory.model_copy(update={
            "key_events": ["One event"],
            "resolution": "",
            "ending_type": EndingType.tragic,
        }),
    })


THOROUGH_NO_SATISFACTION = IterationConfig(
    max_iterations=5,
    stop_on_satisfaction=False,
    stop_on_diminishing_returns=True,
    min_improvement_threshold=0.05,
)


@pytest.mark.asyncio
class TestScoreProgression:

    async def test_sparse_starting_score(self, variation):
        assert calculate_branch_score(_sparse(variation)) == 0.65

    async def test_one_critique_per_iteration(self, variation, context):
        loop = RefinementLoop(critiques_per_iteration=1)
        result = await loop.run(_sparse(variation), context, config=THOROUGH_NO_SATISFACTION)

        # plot events, then themes, then a climax rewrite that does not move the score
        assert result.improvement_graph == pytest.approx([0.65, 0.75, 0.85, 0.85])
        deltas = [b - a for a, b in zip(result.improvement_graph, result.improvement_graph[1:])]
        assert deltas == pytest.approx([0.1, 0.1, 0.0])
        assert result.stopped_reason == StopReason.diminishing_returns
        assert [r.iteration for r in result.iterations] == [1, 2, 3]
        assert [r.critiques[0].aspect for r in result.iterations] == [
            RefinementArea.plot_coherence,
            RefinementArea.theme_development,
            RefinementArea.emotional_impact,
        ]

    async def test_all_critiques_at_once(self, variation, context):
        result = await RefinementLoop().run(_sparse(variation), context, config=THOROUGH_NO_SATISFACTION)
        assert result.improvement_graph == pytest.approx([0.65, 0.9, 0.9])
        assert result.stopped_reason == StopReason.diminishing_returns
        assert len(result.iterations) == 2

    async def test_small_gain_below_threshold_stops(self, variation, context):
        strict = IterationConfig(
            max_iterations=5,
            stop_on_satisfaction=False,
            stop_on_diminishing_returns=True,
            min_improvement_threshold=0.2,
        )
        result = await RefinementLoop(critiques_per_iteration=1).run(_sparse(variation), context, config=strict)
        # the first iteration is never judged on improvement
        assert result.improvement_graph == pytest.approx([0.65, 0.75, 0.85])
        assert result.stopped_reason == StopReason.diminishing_returns


# ---------------------------------------------------------------------------
# Conversation counter across resumes
# ---------------------------------------------------------------------------

FIXED_THREE = dict(stop_on_satisfaction=False, stop_on_diminishing_returns=False)


@pytest.mark.asyncio
class TestResumeEquivalence:

    async def test_counter_matches_completed_iterations(self, variation, context):
        result = await RefinementLoop().run(variation, context, config=IterationConfig(max_iterations=3, **FIXED_THREE))
        assert result.checkpoint.iteration == 3
        assert result.conversation.current_iteration == 3

    async def test_split_run_matches_straight_run(self, variation, context):
        conversation = start_conversation(variation.id, "Refine this branch")
        loop = RefinementLoop(critiques_per_iteration=1)
        sparse = _sparse(variation)

        straight = await loop.run(
            sparse, context, conversation, IterationConfig(max_iterations=3, **FIXED_THREE)
        )
        first = await loop.run(
            sparse, context, conversation, IterationConfig(max_iterations=1, **FIXED_THREE)
        )
        assert first.conversation.current_iteration == 1
        resumed = await loop.run(
            sparse,
            context,
            config=IterationConfig(max_iterations=3, **FIXED_THREE),
            checkpoint=first.checkpoint,
        )

        assert resumed.conversation == straight.conversation
        assert resumed.final_branch == straight.final_branch
        assert resumed.improvement_graph == straight.improvement_graph
        assert satisfaction_progress(resumed.conversation, 3) == satisfaction_progress(straight.conversation, 3)
        assert [r.iteration for r in first.iterations + resumed.iterations] == [1, 2, 3]

    async def test_interrupted_iteration_does_not_advance_counter(self, variation, context):
        loop = RefinementLoop(text_generator=SlowGenerator(delay=1.0))
        result = await loop.run(variation, context, config=preset("standard"), timeout=0.05)
        assert result.stopped_reason == StopReason.cancelled
        assert result.conversation.current_iteration == 1
        assert result.checkpoint.iteration == 0
