from .dimensions import validate_all_dimensions, generate_recommendations
from .tiered_traits import (
    STANDARD_TRAITS,
    TIER_WEIGHTS,
    validate_tiered_traits,
    check_tiered_validation,
    trait_tier_description,
)
from .deviation import (
    base_permissions,
    check_deviation_allowed,
    resolve_deviation,
    apply_deviation_config,
    default_deviation_config,
    deviation_level_description,
)
from .world_rules import (
    STANDARD_HARD_RULES,
    STANDARD_SOFT_RULES,
    validate_world_rules,
    create_world_rule,
    rule_type_description,
)
from .strictness import determine_strictness, strictness_description, combine_rules
from .fix_workflow import (
    generate_suggested_fixes,
    apply_automatic_fixes,
    apply_fix,
    dismiss_issue,
    get_workflow_status,
    generate_fix_report,
)

__all__ = [
    "validate_all_dimensions",
    "generate_recommendations",
    "STANDARD_TRAITS",
    "TIER_WEIGHTS",
    "validate_tiered_traits",
    "check_tiered_validation",
    "trait_tier_description",
    "base_permissions",
    "check_deviation_allowed",
    "resolve_deviation",
    "apply_deviation_config",
    "default_deviation_config",
    "deviation_level_description",
    "STANDARD_HARD_RULES",
    "STANDARD_SOFT_RULES",
    "validate_world_rules",
    "create_world_rule",
    "rule_type_description",
    "determine_strictness",
    "strictness_description",
    "combine_rules",
    "generate_suggested_fixes",
    "apply_automatic_fixes",
    "apply_fix",
    "dismiss_issue",
    "get_workflow_status",
    "generate_fix_report",
]
