"""Tab path and tab tree data models.

TabPath is the parsed, validated form of a ``"Parent/Child"`` tabgroup
string. GroupNode is the mutable tree node built during one resolver pass.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Iterator, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from ..config import TAB_PATH_SEPARATOR
from ..errors import ConfigError

T = TypeVar("T")


class TabPath(BaseModel):
    """Ordered, non-empty sequence of trimmed tab labels."""

    model_config = ConfigDict(frozen=True)

    segments: tuple[str, ...]

    @classmethod
    def parse(
        cls, raw: Union[None, str, Sequence[str], "TabPath", dict]
    ) -> Optional["TabPath"]:
        """Parse a tabgroup value into a TabPath.

        Args:
            raw: ``"A/B/C"``, a sequence of segments, an existing TabPath,
                a ``{"segments": [...]}`` dict, or None.

        Returns:
            TabPath, or None when ``raw`` is None.

        Raises:
            ConfigError: If the path is empty or contains an empty segment.
        """
        if raw is None:
            return None
        if isinstance(raw, TabPath):
            return raw
        if isinstance(raw, dict):
            raw = raw.get("segments", ())
        if isinstance(raw, str):
            parts = raw.split(TAB_PATH_SEPARATOR)
        else:
            parts = list(raw)

        segments = []
        for part in parts:
            if not isinstance(part, str):
                raise ConfigError(
                    f"Tab path segments must be strings, got {type(part).__name__}",
                    context={"tabgroup": repr(raw)},
                )
            label = part.strip()
            if not label:
                raise ConfigError(
                    f"Tab path {raw!r} contains an empty segment",
                    context={"tabgroup": repr(raw)},
                )
            segments.append(label)

        if not segments:
            raise ConfigError("Tab path must have at least one segment")
        return cls(segments=tuple(segments))

    @property
    def depth(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return TAB_PATH_SEPARATOR.join(self.segments)


class UngroupedPlacement(str, Enum):
    """Where root-level (ungrouped) items go relative to top-level groups."""

    BEFORE = "before"
    AFTER = "after"
    INLINE = "inline"


@dataclass
class GroupNode(Generic[T]):
    """One tab container.

    ``children`` is keyed by label and keeps first-insertion order, so
    sibling labels are unique by construction. ``entries`` interleaves
    child groups (at first appearance) and leaf items (at insertion).
    """

    label: str
    display_label: Optional[str] = None
    children: dict[str, "GroupNode[T]"] = field(default_factory=dict)
    items: list[T] = field(default_factory=list)
    entries: list[Union["GroupNode[T]", T]] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.display_label or self.label

    def child(self, label: str) -> "GroupNode[T]":
        """Get or create the child node with this label."""
        node = self.children.get(label)
        if node is None:
            node = GroupNode(label=label)
            self.children[label] = node
            self.entries.append(node)
        return node

    def add_item(self, item: T) -> None:
        self.items.append(item)
        self.entries.append(item)

    def walk(self) -> Iterator["GroupNode[T]"]:
        """Depth-first pre-order traversal of descendant nodes."""
        for node in self.children.values():
            yield node
            yield from node.walk()

    def item_count(self) -> int:
        return len(self.items) + sum(c.item_count() for c in self.children.values())


@dataclass
class ResolvedTree(Generic[T]):
    """Output of one tree-building pass."""

    root: GroupNode[T]
    ungrouped: list[T]
    placement: UngroupedPlacement = UngroupedPlacement.BEFORE
    # item position (in the input sequence) -> path, None for root
    membership: dict[int, Optional[TabPath]] = field(default_factory=dict)
    # root-level ordering of ungrouped items and top-level groups as authored
    _inline_order: list[Any] = field(default_factory=list, repr=False)

    @property
    def groups(self) -> list[GroupNode[T]]:
        return list(self.root.children.values())

    def ordered_entries(self) -> list[Union[GroupNode[T], T]]:
        """Root-level entries in emission order under the placement policy."""
        if self.placement == UngroupedPlacement.BEFORE:
            return [*self.ungrouped, *self.groups]
        if self.placement == UngroupedPlacement.AFTER:
            return [*self.groups, *self.ungrouped]
        return list(self._inline_order)
