from .conversation import (
    start_conversation,
    add_user_feedback,
    add_system_question,
    resolve_instruction,
    advance_iteration,
    extract_focus_areas,
    build_refinement_request,
    conversation_summary,
    has_explicit_approval,
    is_user_satisfied,
    mark_satisfied,
    request_satisfaction_check,
)
from .critique import generate_critiques, apply_critique_refinement, compare_critiques
from .refiner import refine_area, trigger_refinement, calculate_branch_score
from .satisfaction import check_satisfaction, satisfaction_progress
from .text_generation import TextGenerator, GeminiTextGenerator
from .iteration import (
    ITERATION_PRESETS,
    RefinementLoop,
    create_iteration_config,
    preset,
    run_refinement_iterations,
)

__all__ = [
    "start_conversation",
    "add_user_feedback",
    "add_system_question",
    "resolve_instruction",
    "advance_iteration",
    "extract_focus_areas",
    "build_refinement_request",
    "conversation_summary",
    "has_explicit_approval",
    "is_user_satisfied",
    "mark_satisfied",
    "request_satisfaction_check",
    "generate_critiques",
    "apply_critique_refinement",
    "compare_critiques",
    "refine_area",
    "trigger_refinement",
    "calculate_branch_score",
    "check_satisfaction",
    "satisfaction_progress",
    "TextGenerator",
    "GeminiTextGenerator",
    "ITERATION_PRESETS",
    "RefinementLoop",
    "create_iteration_config",
    "preset",
    "run_refinement_iterations",
]
