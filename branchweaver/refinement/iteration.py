"""
Refinement Loop

Bounded state machine over refinement iterations. One iteration:

1. generate critiques for the current variation (major -> minor)
2. apply critique fixes, then the user's focus-area refiners
3. score the result with ``calculate_branch_score``
4. compare against the previous iteration's score

Stop conditions are checked in order: user satisfied, max iterations,
diminishing returns. Iteration 1 has no previous iteration, so the
diminishing-returns check starts at iteration 2.

Iterations of one lineage run strictly in order; ``RefinementLoop`` holds an
``asyncio.Lock`` per branch id so two concurrent runs for the same lineage
are serialized; a lineage's lock is released from the table once no run
holds or waits on it. Each completed iteration produces a
``RefinementCheckpoint``; once an iteration has committed, the checkpoint's
conversation has ``current_iteration`` equal to the completed count. Passing
it back to ``run`` continues exactly where
the previous run stopped.

Usage:
    loop = RefinementLoop()
    result = await loop.run(variation, context, conversation, preset("standard"))
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from branchweaver.config import get_settings
from branchweaver.errors import InputError
from branchweaver.refinement.conversation import (
    advance_iteration,
    build_refinement_request,
    has_explicit_approval,
    resolve_instruction,
    start_conversation,
)
from branchweaver.refinement.critique import apply_critique_refinement, generate_critiques
from branchweaver.refinement.refiner import calculate_branch_score, trigger_refinement
from branchweaver.refinement.satisfaction import check_satisfaction
from branchweaver.refinement.text_generation import TextGenerator
from branchweaver.schemas import (
    BranchVariation,
    ContextPackage,
    IterationConfig,
    IterationResult,
    RefinementCheckpoint,
    RefinementConversation,
    RefinementResult,
    StopReason,
)
from branchweaver.utils.logging_config import BranchAdapter, get_logger

_logger = get_logger(__name__)


class RefinementInterrupted(Exception):
    """Raised inside the loop when an iteration is cancelled or times out."""


def create_iteration_config(max_iterations: Optional[int] = None, **options) -> IterationConfig:
    settings = get_settings()
    if max_iterations is None:
        max_iterations = settings.refinement_max_iterations
    options.setdefault("min_improvement_threshold", settings.refinement_min_improvement)
    return IterationConfig(max_iterations=max_iterations, **options)


def preset(name: str) -> IterationConfig:
    if name == "quick":
        return IterationConfig(max_iterations=1, stop_on_satisfaction=True,
                               stop_on_diminishing_returns=False, min_improvement_threshold=0)
    elif name == "standard":
        return IterationConfig(max_iterations=3, stop_on_satisfaction=True,
                               stop_on_diminishing_returns=True, min_improvement_threshold=0.05)
    elif name == "thorough":
        return IterationConfig(max_iterations=5, stop_on_satisfaction=False,
                               stop_on_diminishing_returns=True, min_improvement_threshold=0.02)
    elif name == "maximum":
        return IterationConfig(max_iterations=5, stop_on_satisfaction=False,
                               stop_on_diminishing_returns=False, min_improvement_threshold=0)
    raise InputError(f"Unknown iteration preset: {name}")


ITERATION_PRESETS = ("quick", "standard", "thorough", "maximum")


async def _await_interruptible(
    coro,
    cancel_event: Optional[asyncio.Event],
    timeout: Optional[float],
):
    """Await ``coro`` unless ``cancel_event`` fires or ``timeout`` expires first."""
    task = asyncio.ensure_future(coro)
    waiters = {task}
    cancel_waiter = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    done, pending = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    for p in pending:
        p.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if task in done:
        # A timeout inside the text generator surfaces here as well
        try:
            return task.result()
        except asyncio.TimeoutError as e:
            raise RefinementInterrupted("text generation timed out") from e
    if cancel_waiter is not None and cancel_waiter in done:
        raise RefinementInterrupted("cancelled by caller")
    raise RefinementInterrupted("iteration timed out")


class RefinementLoop:
    """Runs refinement iterations for any number of branch lineages."""

    def __init__(
        self,
        text_generator: Optional[TextGenerator] = None,
        critiques_per_iteration: Optional[int] = None,
    ):
        self.text_generator = text_generator
        self.critiques_per_iteration = critiques_per_iteration
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _lineage_lock(self, branch_id: str):
        """Hold the lineage lock; the entry is dropped once nobody holds or waits on it."""
        lock = self._locks.setdefault(branch_id, asyncio.Lock())
        self._lock_users[branch_id] = self._lock_users.get(branch_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[branch_id] -= 1
            if self._lock_users[branch_id] == 0:
                del self._lock_users[branch_id]
                del self._locks[branch_id]

    async def _iterate(
        self,
        variation: BranchVariation,
        context: ContextPackage,
        conversation: RefinementConversation,
        iteration: int,
        timeout: Optional[float],
    ) -> RefinementResult:
        critiques = generate_critiques(variation, context)
        critiqued = apply_critique_refinement(variation, critiques, limit=self.critiques_per_iteration)

        request = build_refinement_request(conversation)
        result = await trigger_refinement(
            critiqued.refined,
            context,
            request,
            text_generator=self.text_generator,
            timeout=timeout,
        )
        return result.model_copy(update={
            "original": variation,
            "changes": [*critiqued.changes, *result.changes],
            "critiques": critiques,
            "iteration": iteration,
        })

    async def run(
        self,
        variation: BranchVariation,
        context: ContextPackage,
        conversation: Optional[RefinementConversation] = None,
        config: Optional[IterationConfig] = None,
        checkpoint: Optional[RefinementCheckpoint] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IterationResult:
        """Refine ``variation`` until a stop condition fires.

        With ``checkpoint``, ``variation`` and ``conversation`` are taken from
        the checkpoint and the iteration counter continues from it.
        ``timeout`` bounds each iteration. On cancellation or timeout the last
        fully completed variation is returned with ``stopped_reason`` set to
        ``cancelled``.
        """
        config = config or create_iteration_config()
        if timeout is None:
            timeout = get_settings().generation_timeout_seconds if self.text_generator else None

        if checkpoint is not None:
            current = checkpoint.variation
            conversation = checkpoint.conversation
            completed = checkpoint.iteration
            previous_score = checkpoint.previous_score
            graph = list(checkpoint.improvement_graph)
        else:
            current = variation
            conversation = conversation or start_conversation(variation.id, "Refine this branch")
            completed = 0
            previous_score = calculate_branch_score(variation)
            graph = [previous_score]

        log = BranchAdapter(_logger, current.id)
        iterations: List[RefinementResult] = []

        def finish(reason: StopReason) -> IterationResult:
            log.info(
                f"Refinement stopped: {reason.value}",
                extra={"iteration": completed, "stopped_reason": reason.value, "score": previous_score},
            )
            return IterationResult(
                iterations=iterations,
                final_branch=current,
                conversation=conversation,
                total_changes=sum(len(r.changes) for r in iterations),
                stopped_reason=reason,
                improvement_graph=graph,
                checkpoint=RefinementCheckpoint(
                    variation=current,
                    conversation=conversation,
                    iteration=completed,
                    previous_score=previous_score,
                    improvement_graph=graph,
                ),
            )

        async with self._lineage_lock(current.id):
            if completed >= config.max_iterations:
                return finish(StopReason.max_iterations)

            while True:
                if cancel_event is not None and cancel_event.is_set():
                    return finish(StopReason.cancelled)

                iteration = completed + 1
                # The conversation counter only moves once the iteration commits
                working = conversation
                if working.current_iteration < iteration:
                    working = advance_iteration(working)
                try:
                    result = await _await_interruptible(
                        self._iterate(current, context, working, iteration, timeout),
                        cancel_event,
                        timeout,
                    )
                except RefinementInterrupted as e:
                    log.warning(f"Iteration {iteration} interrupted: {e}", extra={"iteration": iteration})
                    return finish(StopReason.cancelled)

                # Commit the iteration
                conversation = working
                for instruction in list(conversation.pending_instructions):
                    conversation = resolve_instruction(conversation, instruction)
                explicit = has_explicit_approval(conversation)
                satisfaction = check_satisfaction(result, conversation, explicit_approval=explicit)
                result = result.model_copy(update={"user_satisfied": explicit or satisfaction.satisfied})

                iterations.append(result)
                current = result.refined
                improvement = result.score - previous_score
                previous_score = result.score
                graph.append(result.score)
                completed = iteration
                log.debug(
                    f"Iteration {iteration} complete",
                    extra={"iteration": iteration, "score": result.score},
                )

                if config.stop_on_satisfaction and result.user_satisfied:
                    return finish(StopReason.user_satisfied)
                if completed >= config.max_iterations:
                    return finish(StopReason.max_iterations)
                if (
                    config.stop_on_diminishing_returns
                    and iteration >= 2
                    and improvement < config.min_improvement_threshold
                ):
                    return finish(StopReason.diminishing_returns)


async def run_refinement_iterations(
    variation: BranchVariation,
    context: ContextPackage,
    conversation: Optional[RefinementConversation] = None,
    config: Optional[IterationConfig] = None,
    text_generator: Optional[TextGenerator] = None,
) -> IterationResult:
    return await RefinementLoop(text_generator).run(variation, context, conversation, config)
