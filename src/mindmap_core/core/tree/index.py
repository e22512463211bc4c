"""Flat id index over a node tree: lookup, ancestry and common-parent queries."""

from dataclasses import dataclass

from mindmap_core.errors import InvalidParentError, NodeNotFound
from mindmap_core.models.node import LayoutDirection, Node


@dataclass(frozen=True)
class IndexEntry:
    """Where a node sits in the tree."""

    node: Node
    parent_id: str | None
    position: int
    depth: int


class TreeIndex:
    """Precomputed id -> (node, parent, position, depth) mapping for one snapshot.

    Built once per snapshot with an explicit stack, so deep trees never hit the
    recursion limit and ancestry checks cost O(depth).
    """

    def __init__(self, root_id: str, entries: dict[str, IndexEntry]) -> None:
        self.root_id = root_id
        self._entries = entries

    @classmethod
    def build(cls, root: Node) -> "TreeIndex":
        """Index every node under root. Raises ValueError on duplicate ids."""
        entries: dict[str, IndexEntry] = {}
        stack: list[tuple[Node, str | None, int, int]] = [(root, None, 0, 0)]
        while stack:
            node, parent_id, position, depth = stack.pop()
            if node.id in entries:
                msg = f"Duplicate node id {node.id!r} in tree"
                raise ValueError(msg)
            entries[node.id] = IndexEntry(node, parent_id, position, depth)
            for i in range(len(node.children) - 1, -1, -1):
                stack.append((node.children[i], node.id, i, depth + 1))
        return cls(root.id, entries)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> list[str]:
        """All node ids in document (preorder) order."""
        return list(self._entries)

    def entry(self, node_id: str) -> IndexEntry:
        try:
            return self._entries[node_id]
        except KeyError:
            raise NodeNotFound(node_id) from None

    def get(self, node_id: str) -> Node:
        return self.entry(node_id).node

    def find(self, node_id: str) -> Node | None:
        entry = self._entries.get(node_id)
        return entry.node if entry else None

    def parent_id(self, node_id: str) -> str | None:
        return self.entry(node_id).parent_id

    def depth(self, node_id: str) -> int:
        return self.entry(node_id).depth

    def is_root(self, node_id: str) -> bool:
        return node_id == self.root_id

    def ancestors(self, node_id: str) -> list[Node]:
        """Ancestors of a node from the root down to its parent."""
        chain: list[Node] = []
        parent_id = self.entry(node_id).parent_id
        while parent_id is not None:
            entry = self._entries[parent_id]
            chain.append(entry.node)
            parent_id = entry.parent_id
        chain.reverse()
        return chain

    def is_ancestor(self, ancestor_id: str, node_id: str) -> bool:
        """Return True if ancestor_id is a strict ancestor of node_id.

        Walks upward from node_id, so the cost is proportional to its depth.
        """
        if ancestor_id not in self._entries:
            raise NodeNotFound(ancestor_id)
        parent_id = self.entry(node_id).parent_id
        while parent_id is not None:
            if parent_id == ancestor_id:
                return True
            parent_id = self._entries[parent_id].parent_id
        return False

    def descendant_ids(self, node_id: str) -> set[str]:
        """Ids of all strict descendants of a node."""
        return {n.id for n in self.get(node_id).iter_preorder()} - {node_id}

    def subtree_ids(self, node_id: str) -> set[str]:
        """The node's id together with all its descendant ids."""
        return {n.id for n in self.get(node_id).iter_preorder()}

    def siblings(self, node_id: str) -> tuple[Node, ...]:
        """Children of the node's parent, the node included (empty for the root)."""
        parent_id = self.entry(node_id).parent_id
        if parent_id is None:
            return ()
        return self._entries[parent_id].node.children

    def common_parent_range(self, node_ids: list[str] | tuple[str, ...]) -> tuple[str, int, int]:
        """Find the lowest parent whose children span all given nodes.

        Returns:
            (parent_id, start_index, end_index) where the indices bound the
            children of parent_id that contain the given nodes.

        Raises:
            InvalidParentError: if no nodes are given or the root is among them.
            NodeNotFound: if an id is not in the tree.
        """
        if not node_ids:
            msg = "No nodes selected"
            raise InvalidParentError(msg)

        chains: list[list[tuple[str, int]]] = []
        for node_id in node_ids:
            chain = self._parent_chain(node_id)
            if not chain:
                msg = "Cannot summarize the root node"
                raise InvalidParentError(msg)
            chains.append(chain)

        shared = 0
        shortest = min(len(c) for c in chains)
        while shared < shortest and all(c[shared][0] == chains[0][shared][0] for c in chains):
            shared += 1
        if shared == 0:
            msg = "Selected nodes do not share a common parent"
            raise InvalidParentError(msg)

        level = shared - 1
        indices = sorted(c[level][1] for c in chains)
        return chains[0][level][0], indices[0], indices[-1]

    def _parent_chain(self, node_id: str) -> list[tuple[str, int]]:
        """(ancestor id, index of the next node on the path) pairs from the root down."""
        chain: list[tuple[str, int]] = []
        entry = self.entry(node_id)
        while entry.parent_id is not None:
            chain.append((entry.parent_id, entry.position))
            entry = self._entries[entry.parent_id]
        chain.reverse()
        return chain


def assign_root_sides(root: Node, direction: LayoutDirection) -> dict[str, LayoutDirection]:
    """Decide which side of the root each root child is laid out on.

    In side mode a child's own direction hint wins; the rest alternate so the
    lighter side gets the next child, right first.
    """
    if direction is not LayoutDirection.SIDE:
        return {child.id: direction for child in root.children}

    sides: dict[str, LayoutDirection] = {}
    left = right = 0
    for child in root.children:
        side = child.direction
        if side not in (LayoutDirection.LEFT, LayoutDirection.RIGHT):
            side = LayoutDirection.RIGHT if right <= left else LayoutDirection.LEFT
        if side is LayoutDirection.RIGHT:
            right += 1
        else:
            left += 1
        sides[child.id] = side
    return sides
