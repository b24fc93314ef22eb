from .anchor_details import extract_anchor_details, anchor_type_description
from .premise import transform_to_premise, infer_themes, what_if_question
from .premise_validator import validate_premise
from .theme_distinctness import analyze_theme_distinctness, ensure_distinctness, group_premises_by_theme
from .context_selector import select_context_for_anchor_type, build_timeline_narrative

__all__ = [
    "extract_anchor_details",
    "anchor_type_description",
    "transform_to_premise",
    "infer_themes",
    "what_if_question",
    "validate_premise",
    "analyze_theme_distinctness",
    "ensure_distinctness",
    "group_premises_by_theme",
    "select_context_for_anchor_type",
    "build_timeline_narrative",
]
