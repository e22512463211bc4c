"""Domain models for a mind map document."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from functools import cached_property
from typing import TYPE_CHECKING, Any

from mindmap_core.config import DEFAULT_ROOT_TOPIC
from mindmap_core.models.geometry import Vector

if TYPE_CHECKING:
    from mindmap_core.core.tree.index import TreeIndex


class LayoutDirection(StrEnum):
    """Which side(s) of the root the subtrees are laid out on."""

    LEFT = "left"
    RIGHT = "right"
    SIDE = "side"


@dataclass(frozen=True)
class Node:
    """A single topic node; owns its children exclusively."""

    id: str
    topic: str
    children: tuple["Node", ...] = ()
    expanded: bool = True
    style: Mapping[str, Any] | None = None
    tags: tuple[str, ...] = ()
    icons: tuple[str, ...] = ()
    hyperlink: str | None = None
    branch_color: str | None = None
    direction: LayoutDirection | None = None
    note: str = ""

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def evolve(self, **changes: Any) -> "Node":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def iter_preorder(self) -> Iterator["Node"]:
        """Yield this node and all descendants in document order, without recursion."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class Arrow:
    """A free-form connection between two nodes anywhere in the tree."""

    id: str
    from_node_id: str
    to_node_id: str
    label: str | None = None
    bidirectional: bool = False
    control_point_offset1: Vector = field(default_factory=Vector)
    control_point_offset2: Vector = field(default_factory=Vector)
    style: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class Summary:
    """A labeled bracket over children start_index..end_index (inclusive) of one parent."""

    id: str
    parent_node_id: str
    start_index: int
    end_index: int
    label: str = ""
    style: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class Document:
    """One immutable snapshot of the whole mind map."""

    root: Node
    arrows: tuple[Arrow, ...] = ()
    summaries: tuple[Summary, ...] = ()
    direction: LayoutDirection = LayoutDirection.SIDE
    theme: str = "light"

    @classmethod
    def new(cls, topic: str = DEFAULT_ROOT_TOPIC, *, root_id: str = "root") -> "Document":
        """A document holding only a root node."""
        return cls(root=Node(id=root_id, topic=topic))

    @cached_property
    def index(self) -> "TreeIndex":
        """Flat id index over the tree, built once per snapshot."""
        from mindmap_core.core.tree.index import TreeIndex

        return TreeIndex.build(self.root)

    def evolve(self, **changes: Any) -> "Document":
        """Return a copy with the given fields replaced (the index is rebuilt lazily)."""
        return replace(self, **changes)

    def get_arrow(self, arrow_id: str) -> Arrow | None:
        return next((a for a in self.arrows if a.id == arrow_id), None)

    def get_summary(self, summary_id: str) -> Summary | None:
        return next((s for s in self.summaries if s.id == summary_id), None)
