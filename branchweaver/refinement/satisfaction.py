"""
User satisfaction inference.

When the user has not said so explicitly, satisfaction is inferred from a
weighted blend of signals:

    explicit approval          0.40
    no pending instructions    0.20
    three or more iterations   0.15
    conversation sentiment     0.25 x score

and compared against a threshold (0.7 by default).
"""
from __future__ import annotations

from typing import List, Optional, Set

from branchweaver.config import get_settings
from branchweaver.schemas import (
    MessageType,
    RefinementArea,
    RefinementConversation,
    RefinementResult,
    SatisfactionProgress,
    SatisfactionResult,
)
from branchweaver.utils.text_similarity import clamp

POSITIVE_WORDS = ("good", "great", "perfect", "excellent", "better", "improved", "satisfied", "happy")
NEGATIVE_WORDS = ("fix", "wrong", "bad", "issue", "problem", "change", "not", "dislike")

EXPLICIT_WEIGHT = 0.4
NO_PENDING_WEIGHT = 0.2
ITERATIONS_WEIGHT = 0.15
CONVERSATION_WEIGHT = 0.25

HARD_ITERATION_CAP = 5


def conversation_sentiment(conversation: RefinementConversation) -> float:
    """Lexical sentiment of the last five messages, penalizing repeated focus areas."""
    if not conversation.messages:
        return 0.0

    score = 0.0
    for msg in conversation.messages[-5:]:
        if msg.type == MessageType.refinement_confirmation:
            score += 0.3
        content = msg.content.lower()
        score += 0.1 * sum(1 for w in POSITIVE_WORDS if w in content)
        score -= 0.1 * sum(1 for w in NEGATIVE_WORDS if w in content)

    # Asking about the same area again means the last attempt did not land
    seen: Set[RefinementArea] = set()
    for msg in conversation.messages:
        area = msg.metadata.focus_area
        if area is None:
            continue
        if area in seen:
            score -= 0.1
        else:
            seen.add(area)

    return clamp(score)


def _improvement_suggestions(result: RefinementResult, conversation: RefinementConversation) -> List[str]:
    suggestions = []
    addressed = {c.area for c in result.changes}
    unaddressed = [a.value for a in RefinementArea if a not in addressed]
    if unaddressed:
        suggestions.append(f"Consider focusing on: {', '.join(unaddressed[:3])}")

    focus_areas = {m.metadata.focus_area for m in conversation.messages if m.metadata.focus_area}
    if len(focus_areas) > 3:
        suggestions.append("Many different areas addressed - consider if scope is clear")

    if result.iteration > 3 and not result.changes:
        suggestions.append("Recent iterations had no changes - may be ready for final approval")
    return suggestions


def check_satisfaction(
    result: RefinementResult,
    conversation: RefinementConversation,
    explicit_approval: bool = False,
    threshold: Optional[float] = None,
) -> SatisfactionResult:
    if threshold is None:
        threshold = get_settings().satisfaction_threshold

    confidence = 0.0
    signals = []

    if explicit_approval or result.user_satisfied:
        confidence += EXPLICIT_WEIGHT
        signals.append("Explicit user approval")

    if not conversation.pending_instructions:
        confidence += NO_PENDING_WEIGHT
        signals.append("No pending refinement requests")

    if result.iteration >= 3:
        confidence += ITERATIONS_WEIGHT
        signals.append("Multiple refinement cycles completed")

    sentiment = conversation_sentiment(conversation)
    confidence += sentiment * CONVERSATION_WEIGHT
    if sentiment > 0.5:
        signals.append("Positive conversation indicators")

    confidence = round(clamp(confidence), 4)
    satisfied = confidence >= threshold

    return SatisfactionResult(
        satisfied=satisfied,
        confidence=confidence,
        reason=", ".join(signals) or "Insufficient satisfaction signals",
        can_proceed=satisfied or result.iteration >= HARD_ITERATION_CAP,
        needs_more_work=not satisfied and result.iteration < HARD_ITERATION_CAP,
        suggestions=_improvement_suggestions(result, conversation) if not satisfied and confidence < 0.5 else [],
    )


def satisfaction_progress(conversation: RefinementConversation, max_iterations: int) -> SatisfactionProgress:
    iteration = conversation.current_iteration
    pending = len(conversation.pending_instructions)
    resolved = len(conversation.resolved_instructions)

    progress = (iteration / max(1, max_iterations)) * 50
    progress += min(resolved * 5, 30)
    progress += 20 if pending == 0 else 0
    progress = min(100.0, max(0.0, progress))

    if progress < 25:
        status = "starting"
    elif progress < 60:
        status = "in-progress"
    elif progress < 90:
        status = "nearly-there"
    else:
        status = "complete"

    if pending:
        estimate = f"{pending} item(s) still to address"
    elif iteration < 2:
        estimate = "Minimum iterations not yet reached"
    else:
        estimate = "Ready for final review"

    return SatisfactionProgress(progress=progress, status=status, estimate=estimate)
