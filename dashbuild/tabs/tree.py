"""Single-pass grouping of path-tagged items into an ordered tree.

Shared by the tab resolver (blocks by tabgroup) and the navigation
builder (pages by nav group).
"""

import logging
from typing import Iterable, Mapping, Optional, TypeVar

from .schemas import GroupNode, ResolvedTree, TabPath, UngroupedPlacement

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_tree(
    entries: Iterable[tuple[Optional[TabPath], T]],
    labels: Optional[Mapping[str, str]] = None,
    placement: UngroupedPlacement = UngroupedPlacement.BEFORE,
) -> ResolvedTree[T]:
    """Group items by path, in input order.

    Nodes are created top-down the first time a segment is seen and reused
    afterwards, so sibling order is order of first appearance and a prefix
    path merges into the branch it names. Items without a path are kept
    apart as ungrouped root items.

    Args:
        entries: (path, item) pairs in authored order.
        labels: Optional segment label -> display label map.
        placement: Where ungrouped items go relative to top-level groups.
    """
    labels = labels or {}
    root: GroupNode[T] = GroupNode(label="")
    ungrouped: list[T] = []
    membership: dict[int, Optional[TabPath]] = {}
    inline_order: list = []

    for index, (path, item) in enumerate(entries):
        membership[index] = path
        if path is None:
            ungrouped.append(item)
            inline_order.append(item)
            continue

        top_is_new = path.segments[0] not in root.children
        node = root
        for segment in path.segments:
            node = node.child(segment)
            if node.display_label is None and segment in labels:
                node.display_label = labels[segment]
        node.add_item(item)
        if top_is_new:
            inline_order.append(root.children[path.segments[0]])

    logger.debug(
        f"Built tree: {len(root.children)} top-level groups, "
        f"{len(ungrouped)} ungrouped items"
    )
    return ResolvedTree(
        root=root,
        ungrouped=ungrouped,
        placement=UngroupedPlacement(placement),
        membership=membership,
        _inline_order=inline_order,
    )
