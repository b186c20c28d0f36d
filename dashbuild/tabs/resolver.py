"""Tab-tree resolver for page blocks."""

from typing import Mapping, Optional, Sequence

from ..blocks.schemas import BlockSpec
from .schemas import ResolvedTree, TabPath, UngroupedPlacement
from .tree import build_tree


def resolve_tabs(
    blocks: Sequence[BlockSpec],
    labels: Optional[Mapping[str, str]] = None,
    placement: UngroupedPlacement = UngroupedPlacement.BEFORE,
) -> ResolvedTree[BlockSpec]:
    """Build the nested tab tree for a page's blocks.

    The blocks are not modified; the tree holds references to them.
    """
    return build_tree(
        ((block.tabgroup, block) for block in blocks),
        labels=labels,
        placement=placement,
    )


def membership_by_id(
    blocks: Sequence[BlockSpec], tree: ResolvedTree[BlockSpec]
) -> dict[str, Optional[TabPath]]:
    """Map each block id to its tab path, None for root-level blocks."""
    return {
        block.id: tree.membership[index]
        for index, block in enumerate(blocks)
        if block.id is not None
    }
