"""
Refinement conversation log.

The conversation is the substrate the loop reads user intent and
satisfaction from. Every function returns a new ``RefinementConversation``;
messages are only ever appended, and only the pending/resolved instruction
lists move.
"""
from __future__ import annotations

import time
from typing import Dict, List, Literal, Optional

from branchweaver.schemas import (
    ConversationMessage,
    MessageMetadata,
    MessageType,
    Priority,
    RefinementArea,
    RefinementConversation,
    RefinementRequest,
    RefinementResult,
)

FeedbackKind = Literal["positive", "negative", "adjustment"]

# keyword in a message -> area it asks about
AREA_KEYWORDS = (
    ("character", RefinementArea.character_depth),
    ("plot", RefinementArea.plot_coherence),
    ("theme", RefinementArea.theme_development),
    ("emotion", RefinementArea.emotional_impact),
    ("dialogue", RefinementArea.dialogue_quality),
    ("pace", RefinementArea.pacing),
    ("world", RefinementArea.world_building),
    ("stake", RefinementArea.stakes_clarity),
)


def _message(
    conversation: Optional[RefinementConversation],
    type: MessageType,
    content: str,
    focus_area: Optional[RefinementArea] = None,
    iteration: Optional[int] = None,
    applied: Optional[bool] = None,
) -> ConversationMessage:
    # Sequential ids keep a persisted conversation stable across resumes
    seq = len(conversation.messages) + 1 if conversation else 1
    return ConversationMessage(
        id=f"msg-{seq}",
        type=type,
        content=content,
        timestamp=time.time(),
        metadata=MessageMetadata(focus_area=focus_area, iteration=iteration, applied=applied),
    )


def _append(conversation: RefinementConversation, message: ConversationMessage, **update) -> RefinementConversation:
    return conversation.model_copy(update={"messages": [*conversation.messages, message], **update})


def start_conversation(
    branch_id: str,
    initial_instruction: str,
    focus_area: Optional[RefinementArea] = None,
) -> RefinementConversation:
    first = _message(None, MessageType.user_instruction, initial_instruction, focus_area, iteration=1)
    return RefinementConversation(
        branch_id=branch_id,
        messages=[first],
        current_iteration=1,
        pending_instructions=[initial_instruction],
    )


def add_user_feedback(
    conversation: RefinementConversation,
    feedback: str,
    kind: FeedbackKind = "adjustment",
) -> RefinementConversation:
    """Positive feedback is a confirmation; adjustments become pending instructions."""
    msg_type = MessageType.refinement_confirmation if kind == "positive" else MessageType.user_feedback
    message = _message(conversation, msg_type, feedback, iteration=conversation.current_iteration)

    pending = conversation.pending_instructions
    if kind == "adjustment":
        pending = [*pending, feedback]
    return _append(conversation, message, pending_instructions=pending)


def add_system_question(
    conversation: RefinementConversation,
    question: str,
    focus_area: Optional[RefinementArea] = None,
) -> RefinementConversation:
    message = _message(
        conversation, MessageType.system_question, question, focus_area,
        iteration=conversation.current_iteration,
    )
    return _append(conversation, message)


def resolve_instruction(conversation: RefinementConversation, instruction: str) -> RefinementConversation:
    return conversation.model_copy(update={
        "pending_instructions": [i for i in conversation.pending_instructions if i != instruction],
        "resolved_instructions": [*conversation.resolved_instructions, instruction],
    })


def advance_iteration(conversation: RefinementConversation) -> RefinementConversation:
    return conversation.model_copy(update={"current_iteration": conversation.current_iteration + 1})


def extract_focus_areas(conversation: RefinementConversation) -> List[RefinementArea]:
    """Explicitly tagged areas plus areas named in message text, first-seen order."""
    areas: Dict[RefinementArea, None] = {}
    for message in conversation.messages:
        if message.metadata.focus_area:
            areas[message.metadata.focus_area] = None
        content = message.content.lower()
        for keyword, area in AREA_KEYWORDS:
            if keyword in content:
                areas[area] = None
    return list(areas)


def build_refinement_request(conversation: RefinementConversation) -> RefinementRequest:
    has_feedback = any(m.type == MessageType.user_feedback for m in conversation.messages)
    if has_feedback:
        priority = Priority.high
    elif conversation.current_iteration > 2:
        priority = Priority.medium
    else:
        priority = Priority.low

    return RefinementRequest(
        branch_id=conversation.branch_id,
        focus_areas=extract_focus_areas(conversation),
        user_instructions="\n\n".join(conversation.pending_instructions),
        priority=priority,
    )


def _message_prefix(msg_type: MessageType) -> str:
    if msg_type == MessageType.user_instruction:
        return "User:"
    elif msg_type == MessageType.user_feedback:
        return "Feedback:"
    elif msg_type == MessageType.system_question:
        return "System:"
    elif msg_type == MessageType.refinement_confirmation:
        return "Confirm:"
    raise ValueError(f"Unhandled message type: {msg_type}")


def conversation_summary(conversation: RefinementConversation) -> str:
    lines = [
        "# Refinement Conversation Summary",
        f"Branch: {conversation.branch_id}",
        f"Iterations: {conversation.current_iteration}",
        "",
    ]

    by_iteration: Dict[int, List[ConversationMessage]] = {}
    for msg in conversation.messages:
        by_iteration.setdefault(msg.metadata.iteration or 1, []).append(msg)

    for i in range(1, conversation.current_iteration + 1):
        messages = by_iteration.get(i)
        if not messages:
            continue
        lines.append(f"## Iteration {i}")
        lines.extend(f"{_message_prefix(m.type)} {m.content}" for m in messages)
        lines.append("")

    lines.append("## Status")
    lines.append(f"Pending: {len(conversation.pending_instructions)}")
    lines.append(f"Resolved: {len(conversation.resolved_instructions)}")
    return "\n".join(lines)


def has_explicit_approval(conversation: RefinementConversation) -> bool:
    """True when the user's most recent message is a confirmation."""
    for message in reversed(conversation.messages):
        if message.type == MessageType.system_question:
            continue
        return message.type == MessageType.refinement_confirmation
    return False


def is_user_satisfied(conversation: RefinementConversation) -> bool:
    for msg in conversation.messages[-3:]:
        if msg.type == MessageType.refinement_confirmation:
            return True
        if msg.type == MessageType.user_feedback:
            content = msg.content.lower()
            if any(w in content for w in ("good", "perfect", "satisfied")):
                return True
            if any(w in content for w in ("fix", "change", "wrong")):
                return False

    return not conversation.pending_instructions and conversation.current_iteration >= 2


def mark_satisfied(conversation: RefinementConversation, message: Optional[str] = None) -> RefinementConversation:
    confirmation = _message(
        conversation,
        MessageType.refinement_confirmation,
        message or "User satisfied with refinement",
        iteration=conversation.current_iteration,
    )
    return _append(conversation, confirmation, pending_instructions=[])


def request_satisfaction_check(conversation: RefinementConversation) -> RefinementConversation:
    return add_system_question(
        conversation,
        "Are you satisfied with the current refinement? (yes/no/more changes needed)",
    )


def conversation_from_result(result: RefinementResult) -> RefinementConversation:
    """Seed a conversation that records what an unattended refinement applied."""
    conversation = RefinementConversation(
        branch_id=result.original.id,
        current_iteration=result.iteration,
        resolved_instructions=[c.description for c in result.changes],
    )
    for change in result.changes:
        message = _message(
            conversation,
            MessageType.system_question,
            f"Applied: {change.description}",
            change.area,
            iteration=result.iteration,
            applied=True,
        )
        conversation = _append(conversation, message)
    return conversation
