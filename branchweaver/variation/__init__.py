from .generator import (
    VariationGenerator,
    generate_variations,
    significance_ceiling,
    ending_options,
    growth_options,
    determine_complexity,
    estimate_chapters,
)
from .mood_preference import (
    apply_mood_preference,
    generate_mood_specific_variations,
    mood_description,
)
from .trajectory_depth import (
    calculate_trajectory_depth,
    expand_trajectory,
    generate_detailed_outline,
    adjust_depth_from_feedback,
)
from .theme_progression import implement_theme_progression, compare_theme_progressions

__all__ = [
    "VariationGenerator",
    "generate_variations",
    "significance_ceiling",
    "ending_options",
    "growth_options",
    "determine_complexity",
    "estimate_chapters",
    "apply_mood_preference",
    "generate_mood_specific_variations",
    "mood_description",
    "calculate_trajectory_depth",
    "expand_trajectory",
    "generate_detailed_outline",
    "adjust_depth_from_feedback",
    "implement_theme_progression",
    "compare_theme_progressions",
]
