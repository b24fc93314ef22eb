"""
Tree diagrams for branch comparison.

The anchor is the root and each branch hangs off it as a chain:
branch -> key events in order -> climax -> ending. The tree renders as a
Mermaid flowchart, as an ASCII tree, or alongside a markdown table of the
branches' headline facts.

Usage:
    tree = generate_tree_diagram("The Coronation", variations)
    print(to_ascii_tree(tree))
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence

from branchweaver.schemas import (
    BranchVariation,
    DivergencePoint,
    TreeDiagram,
    TreeLayout,
    TreeNode,
    TreeNodeMetadata,
    TreeNodeType,
)

ROOT_ID = "root"
MAX_MERMAID_LABEL = 30

MERMAID_CLASSES = (
    "    classDef root fill:#f9f,stroke:#333,stroke-width:4px",
    "    classDef branch fill:#bbf,stroke:#333,stroke-width:2px",
    "    classDef climax fill:#fbb,stroke:#333,stroke-width:2px",
    "    classDef ending fill:#bfb,stroke:#333,stroke-width:2px",
)


def branch_node(branch: BranchVariation) -> TreeNode:
    trajectory = branch.trajectory
    ending = TreeNode(
        id=f"{branch.id}-ending",
        type=TreeNodeType.ending,
        label=trajectory.ending_type.value,
        description=trajectory.resolution,
        metadata=TreeNodeMetadata(
            mood=branch.mood,
            ending_type=trajectory.ending_type,
            chapter_count=branch.estimated_chapters,
        ),
    )
    tail = TreeNode(
        id=f"{branch.id}-climax",
        type=TreeNodeType.climax,
        label="Climax",
        description=trajectory.climax,
        children=[ending],
    )
    # Built back to front so each event owns the next one
    for idx in range(len(trajectory.key_events) - 1, -1, -1):
        tail = TreeNode(
            id=f"{branch.id}-event-{idx}",
            type=TreeNodeType.event,
            label=trajectory.key_events[idx],
            children=[tail],
        )

    return TreeNode(
        id=branch.id,
        type=TreeNodeType.branch,
        label=branch.premise.title,
        description=branch.premise.subtitle,
        metadata=TreeNodeMetadata(mood=branch.mood, chapter_count=branch.estimated_chapters),
        children=[tail],
    )


def tree_depth(node: TreeNode) -> int:
    if not node.children:
        return 0
    return 1 + max(tree_depth(child) for child in node.children)


def generate_tree_diagram(
    anchor_title: str,
    branches: Sequence[BranchVariation],
    layout: TreeLayout = TreeLayout.vertical,
) -> TreeDiagram:
    root = TreeNode(
        id=ROOT_ID,
        type=TreeNodeType.root,
        label=anchor_title,
        children=[branch_node(b) for b in branches],
    )
    return TreeDiagram(root=root, branches=list(branches), layout=layout, depth=tree_depth(root))


# ─── Renderers ────────────────────────────────────────────────────────────────

def mermaid_id(node_id: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", node_id)


def _mermaid_shape(node: TreeNode) -> str:
    label = node.label
    if len(label) > MAX_MERMAID_LABEL:
        label = label[:MAX_MERMAID_LABEL - 3] + "..."

    if node.type == TreeNodeType.branch:
        return f"{{{{{label}}}}}"
    elif node.type == TreeNodeType.climax:
        return f"(({label}))"
    elif node.type == TreeNodeType.ending:
        return f"[/{label}/]"
    elif node.type in (TreeNodeType.root, TreeNodeType.event):
        return f"[{label}]"
    raise ValueError(f"Unhandled tree node type: {node.type}")


def to_mermaid_diagram(tree: TreeDiagram) -> str:
    lines = ["graph TD"]

    def add(node: TreeNode, parent: Optional[TreeNode] = None) -> None:
        lines.append(f"    {mermaid_id(node.id)}{_mermaid_shape(node)}")
        if parent is not None:
            lines.append(f"    {mermaid_id(parent.id)} --> {mermaid_id(node.id)}")
        for child in node.children:
            add(child, node)

    add(tree.root)
    lines.extend(MERMAID_CLASSES)
    lines.append(f"    class {mermaid_id(tree.root.id)} root")
    return "\n".join(lines)


def to_ascii_tree(tree: TreeDiagram) -> str:
    lines = [tree.root.label]

    def render(node: TreeNode, prefix: str, last: bool) -> None:
        lines.append(f"{prefix}{'└── ' if last else '├── '}{node.label}")
        child_prefix = prefix + ("    " if last else "│   ")
        for i, child in enumerate(node.children):
            render(child, child_prefix, i == len(node.children) - 1)

    for i, child in enumerate(tree.root.children):
        render(child, "", i == len(tree.root.children) - 1)
    return "\n".join(lines)


def generate_side_by_side_view(branches: Sequence[BranchVariation]) -> str:
    headers = [f"Branch {i}: {b.premise.title}" for i, b in enumerate(branches, start=1)]
    rows = [
        ["Premise", *(b.premise.what_if for b in branches)],
        ["Mood", *(b.mood.value for b in branches)],
        ["Consequences", *(b.consequence_type.value for b in branches)],
        ["Ending", *(b.trajectory.ending_type.value for b in branches)],
        ["Chapters", *(str(b.estimated_chapters) for b in branches)],
        ["Characters", *(str(len(b.character_arcs)) for b in branches)],
        ["Themes", *(", ".join(b.theme_progression[:2]) for b in branches)],
    ]

    lines = [
        "# Branch Comparison",
        "",
        f"| Aspect | {' | '.join(headers)} |",
        "|--------|" + "|".join("--------" for _ in headers) + "|",
    ]
    lines.extend(f"| {' | '.join(row)} |" for row in rows)
    return "\n".join(lines)


def find_divergence_point(branches: Sequence[BranchVariation]) -> DivergencePoint:
    """Longest shared prefix of the branches' key events and what follows it."""
    if len(branches) < 2:
        common = list(branches[0].trajectory.key_events) if branches else []
        return DivergencePoint(common_elements=common, divergence_index=0)

    event_lists: List[List[str]] = [list(b.trajectory.key_events) for b in branches]
    shared = 0
    for column in zip(*event_lists):
        if any(event != column[0] for event in column):
            break
        shared += 1

    return DivergencePoint(
        common_elements=event_lists[0][:shared],
        divergence_index=shared,
        divergent_paths=[events[shared:] for events in event_lists],
    )
