"""Resolve an anchor event and the user's selected alternative."""
from __future__ import annotations

from branchweaver.errors import AlternativeNotFoundError
from branchweaver.schemas import AnchorDetails, AnchorEvent, AnchorType


def extract_anchor_details(anchor: AnchorEvent, selected_alternative_id: str) -> AnchorDetails:
    """Build immutable ``AnchorDetails`` for branch generation.

    Raises:
        AlternativeNotFoundError: the anchor has no alternative with that id.
    """
    selected = next(
        (a for a in anchor.alternatives if a.id == selected_alternative_id),
        None,
    )
    if selected is None:
        raise AlternativeNotFoundError(selected_alternative_id, anchor.id)

    return AnchorDetails(
        id=anchor.id,
        title=anchor.title,
        description=anchor.description,
        type=anchor.type,
        significance=anchor.significance,
        page_number=anchor.page_number,
        selected_alternative=selected,
        all_alternatives=list(anchor.alternatives),
        characters=list(anchor.characters),
    )


def anchor_type_description(anchor_type: AnchorType) -> str:
    if anchor_type == AnchorType.decision:
        return "A critical choice point where characters must decide between options"
    elif anchor_type == AnchorType.coincidence:
        return "An unexpected event that occurs by chance"
    elif anchor_type == AnchorType.revelation:
        return "A moment of discovery where hidden information is revealed"
    elif anchor_type == AnchorType.betrayal:
        return "An act of disloyalty or breaking trust"
    elif anchor_type == AnchorType.sacrifice:
        return "A moment where something valuable is given up"
    elif anchor_type == AnchorType.encounter:
        return "A significant meeting between characters"
    elif anchor_type == AnchorType.conflict:
        return "A clash between opposing forces or interests"
    elif anchor_type == AnchorType.transformation:
        return "A fundamental change in character or situation"
    elif anchor_type == AnchorType.mystery:
        return "An unexplained event that creates intrigue"
    raise ValueError(f"Unhandled anchor type: {anchor_type}")
