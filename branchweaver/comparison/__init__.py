from .dimensions import pair_key, compare_branches, compare_dimension
from .character_fates import calculate_character_fate_similarity, compare_fates_across_branches
from .multi_branch import (
    compare_multiple_branches,
    rank_branches,
    analyze_consensus,
    get_pairwise_comparison,
    filter_branches,
    generate_multi_branch_report,
)
from .tree_diagram import (
    generate_tree_diagram,
    to_mermaid_diagram,
    to_ascii_tree,
    generate_side_by_side_view,
    find_divergence_point,
)

__all__ = [
    "pair_key",
    "compare_branches",
    "compare_dimension",
    "calculate_character_fate_similarity",
    "compare_fates_across_branches",
    "compare_multiple_branches",
    "rank_branches",
    "analyze_consensus",
    "get_pairwise_comparison",
    "filter_branches",
    "generate_multi_branch_report",
    "generate_tree_diagram",
    "to_mermaid_diagram",
    "to_ascii_tree",
    "generate_side_by_side_view",
    "find_divergence_point",
]
