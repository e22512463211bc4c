"""Structural edits over a document snapshot.

Every operation takes a Document and returns a new one; the input snapshot and
every node reachable from it are never modified. Unchanged subtrees are shared
between the old and the new snapshot, changed nodes are path-copied up to the
root. Validation happens before anything is built, so a raised error leaves
nothing half-done.

Arrows and summaries are kept consistent with the tree: removing a node drops
the arrows touching its subtree and the summaries owned by it, and summary
ranges follow insertions and removals among their parent's children.
"""

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

from mindmap_core.config import BRANCH_PALETTE, DEFAULT_NODE_TOPIC
from mindmap_core.core.tree.index import TreeIndex, assign_root_sides
from mindmap_core.errors import (
    ArrowNotFound,
    CycleError,
    InvalidRangeError,
    RootNodeError,
    SummaryNotFound,
)
from mindmap_core.models.geometry import Vector
from mindmap_core.models.node import Arrow, Document, LayoutDirection, Node, Summary

IdFactory = Callable[[], str]


def new_id() -> str:
    """Generate a fresh random id."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class AddResult:
    """Outcome of inserting a new node."""

    document: Document
    node_id: str
    parent_id: str
    index: int


@dataclass(frozen=True)
class RemoveResult:
    """Outcome of removing one or more subtrees."""

    document: Document
    node_ids: tuple[str, ...]
    removed_ids: frozenset[str]
    removed_arrow_ids: tuple[str, ...] = ()
    removed_summary_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class MoveResult:
    """Outcome of moving one node."""

    document: Document
    node_id: str
    old_parent_id: str
    new_parent_id: str
    old_index: int
    new_index: int
    changed: bool = True

    @property
    def is_reorder(self) -> bool:
        return self.old_parent_id == self.new_parent_id


@dataclass(frozen=True)
class MultiMoveResult:
    """Outcome of moving several nodes to one parent."""

    document: Document
    moves: tuple[MoveResult, ...]

    @property
    def changed(self) -> bool:
        return any(m.changed for m in self.moves)


# --- Internal helpers ---


def _fresh_id(index: TreeIndex, id_factory: IdFactory, taken: set[str] | None = None) -> str:
    while True:
        candidate = id_factory()
        if candidate not in index and (taken is None or candidate not in taken):
            return candidate


def _replace_in_tree(index: TreeIndex, node_id: str, new_node: Node) -> Node:
    """Install new_node in place of node_id and path-copy its ancestors. Returns the new root."""
    current = new_node
    entry = index.entry(node_id)
    while entry.parent_id is not None:
        parent = index.get(entry.parent_id)
        before, after = parent.children[: entry.position], parent.children[entry.position + 1 :]
        current = parent.evolve(children=(*before, current, *after))
        entry = index.entry(entry.parent_id)
    return current


def _with_children(
    index: TreeIndex, parent_id: str, children: tuple[Node, ...], **changes: Any
) -> Node:
    parent = index.get(parent_id)
    return _replace_in_tree(index, parent_id, parent.evolve(children=children, **changes))


def _branch_color_for(index: TreeIndex, parent_id: str) -> str | None:
    """Root children get a palette color no sibling uses, deeper nodes the nearest ancestor color.

    Once every palette color is taken, root children cycle through the palette.
    """
    parent = index.get(parent_id)
    if index.is_root(parent_id):
        used = {child.branch_color for child in parent.children}
        for color in BRANCH_PALETTE:
            if color not in used:
                return color
        return BRANCH_PALETTE[len(parent.children) % len(BRANCH_PALETTE)]
    if parent.branch_color is not None:
        return parent.branch_color
    for ancestor in reversed(index.ancestors(parent_id)):
        if ancestor.branch_color is not None:
            return ancestor.branch_color
    return None


def _direction_for(document: Document, parent_id: str) -> LayoutDirection | None:
    """New root children in side mode go to the lighter side."""
    if parent_id != document.root.id or document.direction is not LayoutDirection.SIDE:
        return None
    sides = assign_root_sides(document.root, document.direction).values()
    right = sum(1 for s in sides if s is LayoutDirection.RIGHT)
    left = len(document.root.children) - right
    return LayoutDirection.RIGHT if right <= left else LayoutDirection.LEFT


def _summaries_after_removal(
    summaries: tuple[Summary, ...], parent_id: str, position: int
) -> tuple[Summary, ...]:
    result: list[Summary] = []
    for s in summaries:
        if s.parent_node_id != parent_id or position > s.end_index:
            result.append(s)
        elif position < s.start_index:
            result.append(_shift(s, -1, -1))
        elif s.start_index == s.end_index:
            logger.debug("Dropping summary {}: its only child was removed", s.id)
        else:
            result.append(_shift(s, 0, -1))
    return tuple(result)


def _summaries_after_insert(
    summaries: tuple[Summary, ...], parent_id: str, position: int
) -> tuple[Summary, ...]:
    result: list[Summary] = []
    for s in summaries:
        if s.parent_node_id != parent_id or position > s.end_index:
            result.append(s)
        elif position <= s.start_index:
            result.append(_shift(s, 1, 1))
        else:
            result.append(_shift(s, 0, 1))
    return tuple(result)


def _shift(summary: Summary, start_delta: int, end_delta: int) -> Summary:
    return replace(
        summary,
        start_index=summary.start_index + start_delta,
        end_index=summary.end_index + end_delta,
    )


def _insert(
    document: Document, parent_id: str, node: Node, position: int | None
) -> tuple[Document, int]:
    """Insert node among parent's children at position (default end), expanding the parent."""
    index = document.index
    parent = index.get(parent_id)
    if position is None:
        position = len(parent.children)
    position = max(0, min(position, len(parent.children)))
    children = parent.children[:position] + (node,) + parent.children[position:]
    changes: dict[str, Any] = {"expanded": True} if not parent.expanded else {}
    root = _with_children(index, parent_id, children, **changes)
    summaries = _summaries_after_insert(document.summaries, parent_id, position)
    return document.evolve(root=root, summaries=summaries), position


def _detach(document: Document, node_id: str) -> tuple[Document, str, int]:
    """Remove node_id from its parent without touching arrows or summaries it owns."""
    index = document.index
    entry = index.entry(node_id)
    assert entry.parent_id is not None
    parent = index.get(entry.parent_id)
    children = parent.children[: entry.position] + parent.children[entry.position + 1 :]
    root = _with_children(index, entry.parent_id, children)
    summaries = _summaries_after_removal(document.summaries, entry.parent_id, entry.position)
    return document.evolve(root=root, summaries=summaries), entry.parent_id, entry.position


def _clone_with_fresh_ids(node: Node, index: TreeIndex, id_factory: IdFactory) -> Node:
    """Deep copy of a subtree where every node gets a new id."""
    taken: set[str] = set()
    built: dict[int, Node] = {}
    stack: list[tuple[Node, bool]] = [(node, False)]
    while stack:
        current, visited = stack.pop()
        if not visited:
            stack.append((current, True))
            stack.extend((child, False) for child in current.children)
            continue
        fresh = _fresh_id(index, id_factory, taken)
        taken.add(fresh)
        children = tuple(built.pop(id(child)) for child in current.children)
        built[id(current)] = current.evolve(id=fresh, children=children)
    return built[id(node)]


def _top_level(index: TreeIndex, node_ids: Iterable[str]) -> list[str]:
    """Dedupe, drop ids covered by an ancestor in the same set, and sort in document order."""
    unique = dict.fromkeys(node_ids)
    for node_id in unique:
        index.entry(node_id)
    top = [
        n for n in unique if not any(index.is_ancestor(other, n) for other in unique if other != n)
    ]
    order = {node_id: i for i, node_id in enumerate(index.ids())}
    return sorted(top, key=order.__getitem__)


# --- Node operations ---


def add_child(
    document: Document,
    parent_id: str,
    topic: str | None = None,
    *,
    index: int | None = None,
    id_factory: IdFactory = new_id,
    **payload: Any,
) -> AddResult:
    """Append a new node under parent_id (or insert it at index).

    A collapsed parent is expanded in the same snapshot.

    Args:
        document: Source snapshot.
        parent_id: Node to add the child to.
        topic: Text of the new node (default topic when None).
        index: Position among the parent's children (None = last).
        id_factory: Source of candidate ids; retried until unique.
        **payload: Extra node fields (style, tags, icons, hyperlink, note, ...).

    Returns:
        AddResult with the new snapshot and the id of the created node.

    Raises:
        NodeNotFound: if parent_id is absent.
    """
    tree = document.index
    tree.entry(parent_id)
    if "hyperlink" in payload:
        payload["hyperlink"] = payload["hyperlink"] or None
    node = Node(
        id=_fresh_id(tree, id_factory),
        topic=DEFAULT_NODE_TOPIC if topic is None else topic,
        branch_color=payload.pop("branch_color", None) or _branch_color_for(tree, parent_id),
        direction=payload.pop("direction", None) or _direction_for(document, parent_id),
        **payload,
    )
    new_document, position = _insert(document, parent_id, node, index)
    logger.debug("Added node {} under {} at {}", node.id, parent_id, position)
    return AddResult(new_document, node.id, parent_id, position)


def add_sibling(
    document: Document,
    reference_id: str,
    topic: str | None = None,
    *,
    id_factory: IdFactory = new_id,
    **payload: Any,
) -> AddResult:
    """Insert a new node right after reference_id among its parent's children.

    Raises:
        NodeNotFound: if reference_id is absent.
        RootNodeError: if reference_id is the root.
    """
    tree = document.index
    entry = tree.entry(reference_id)
    if entry.parent_id is None:
        raise RootNodeError(reference_id, "add a sibling to")
    return add_child(
        document,
        entry.parent_id,
        topic,
        index=entry.position + 1,
        id_factory=id_factory,
        **payload,
    )


def add_parent(
    document: Document,
    node_id: str,
    topic: str | None = None,
    *,
    id_factory: IdFactory = new_id,
) -> AddResult:
    """Wrap node_id in a new node that takes its place among the siblings.

    Raises:
        NodeNotFound: if node_id is absent.
        RootNodeError: if node_id is the root.
    """
    tree = document.index
    entry = tree.entry(node_id)
    if entry.parent_id is None:
        raise RootNodeError(node_id, "insert a parent above")
    child = entry.node
    wrapper = Node(
        id=_fresh_id(tree, id_factory),
        topic=DEFAULT_NODE_TOPIC if topic is None else topic,
        children=(child.evolve(direction=None),),
        branch_color=child.branch_color,
        direction=child.direction,
    )
    root = _replace_in_tree(tree, node_id, wrapper)
    logger.debug("Inserted parent {} above {}", wrapper.id, node_id)
    return AddResult(document.evolve(root=root), wrapper.id, entry.parent_id, entry.position)


def remove_node(document: Document, node_id: str) -> RemoveResult:
    """Remove a node and its whole subtree.

    Arrows with an endpoint in the subtree and summaries owned by a removed
    node are dropped; summaries on the parent are re-indexed.

    Raises:
        RootNodeError: if node_id is the root.
        NodeNotFound: if node_id is absent.
    """
    return remove_nodes(document, [node_id])


def remove_nodes(document: Document, node_ids: Iterable[str]) -> RemoveResult:
    """Remove several subtrees as one change. Ids inside another removed subtree are implied."""
    tree = document.index
    node_ids = list(node_ids)
    for node_id in node_ids:
        if tree.is_root(node_id):
            raise RootNodeError(node_id, "remove")
    top = _top_level(tree, node_ids)

    removed: set[str] = set()
    for node_id in top:
        removed |= tree.subtree_ids(node_id)

    # Detach from the last in document order so earlier positions stay valid.
    new_document = document
    for node_id in reversed(top):
        new_document, _, _ = _detach(new_document, node_id)

    removed_arrows = tuple(
        a.id for a in document.arrows if a.from_node_id in removed or a.to_node_id in removed
    )
    kept_summaries = tuple(s for s in new_document.summaries if s.parent_node_id not in removed)
    removed_summaries = tuple(
        s.id for s in document.summaries if s.id not in {k.id for k in kept_summaries}
    )
    new_document = new_document.evolve(
        arrows=tuple(a for a in document.arrows if a.id not in removed_arrows),
        summaries=kept_summaries,
    )
    logger.debug(
        "Removed {} node(s), {} arrow(s), {} summary(ies)",
        len(removed),
        len(removed_arrows),
        len(removed_summaries),
    )
    return RemoveResult(
        new_document,
        tuple(top),
        frozenset(removed),
        removed_arrows,
        removed_summaries,
    )


def check_move(document: Document, node_id: str, new_parent_id: str) -> None:
    """Validate that node_id may be placed under new_parent_id.

    Raises:
        NodeNotFound: if either id is absent.
        CycleError: on a self-move or a move under one of the node's descendants.
    """
    tree = document.index
    tree.entry(node_id)
    tree.entry(new_parent_id)
    if node_id == new_parent_id or tree.is_ancestor(node_id, new_parent_id):
        raise CycleError(node_id, new_parent_id)


def move_node(
    document: Document,
    node_id: str,
    new_parent_id: str,
    index: int | None = None,
) -> MoveResult:
    """Detach node_id (with its subtree, verbatim) and insert it under new_parent_id.

    ``index`` is a position among new_parent_id's children as they are before
    the move, clamped to the valid range (None = last). Moving a node to the
    slot it already occupies is a no-op reported with ``changed=False``. A
    collapsed target is expanded.

    Raises:
        NodeNotFound: if either id is absent.
        CycleError: if new_parent_id is node_id or one of its descendants.
    """
    check_move(document, node_id, new_parent_id)
    tree = document.index
    entry = tree.entry(node_id)
    assert entry.parent_id is not None
    old_parent_id, old_index = entry.parent_id, entry.position

    target_count = len(tree.get(new_parent_id).children)
    requested = target_count if index is None else max(0, min(index, target_count))
    new_index = requested
    if new_parent_id == old_parent_id and requested > old_index:
        new_index = requested - 1

    if new_parent_id == old_parent_id and new_index == old_index:
        return MoveResult(
            document, node_id, old_parent_id, new_parent_id, old_index, old_index, changed=False
        )

    detached, _, _ = _detach(document, node_id)
    moved, new_index = _insert(detached, new_parent_id, entry.node, new_index)
    logger.debug(
        "Moved {} from {}[{}] to {}[{}]",
        node_id,
        old_parent_id,
        old_index,
        new_parent_id,
        new_index,
    )
    return MoveResult(moved, node_id, old_parent_id, new_parent_id, old_index, new_index)


def move_nodes(
    document: Document,
    node_ids: Iterable[str],
    new_parent_id: str,
    index: int | None = None,
) -> MultiMoveResult:
    """Move several nodes under one parent, keeping their document order.

    The root and nodes already covered by a moved ancestor are skipped. All
    moves are validated before any is applied.
    """
    tree = document.index
    tree.entry(new_parent_id)
    candidates = [n for n in dict.fromkeys(node_ids) if not tree.is_root(n)]
    top = _top_level(tree, candidates)
    for node_id in top:
        check_move(document, node_id, new_parent_id)

    target_children = [c.id for c in tree.get(new_parent_id).children]
    position = len(target_children) if index is None else max(0, min(index, len(target_children)))
    # Moved nodes currently in front of the insertion point no longer count once detached.
    position -= sum(1 for n in top if n in target_children[:position])

    origins = {n: (tree.entry(n).parent_id, tree.entry(n).position) for n in top}
    current = document
    for node_id in reversed(top):
        current, _, _ = _detach(current, node_id)
    moves: list[MoveResult] = []
    for offset, node_id in enumerate(top):
        current, placed = _insert(current, new_parent_id, tree.get(node_id), position + offset)
        old_parent_id, old_index = origins[node_id]
        assert old_parent_id is not None
        moves.append(MoveResult(current, node_id, old_parent_id, new_parent_id, old_index, placed))

    if current.root == document.root:
        unchanged = tuple(
            replace(m, document=document, new_index=m.old_index, changed=False) for m in moves
        )
        return MultiMoveResult(document, unchanged)
    logger.debug("Moved {} node(s) under {}", len(moves), new_parent_id)
    return MultiMoveResult(current, tuple(moves))


def update_node(document: Document, node_id: str, **changes: Any) -> Document:
    """Replace fields on one node, returning the same snapshot if nothing differs.

    Raises:
        NodeNotFound: if node_id is absent.
    """
    if "children" in changes or "id" in changes:
        msg = "update_node cannot change a node's id or children"
        raise ValueError(msg)
    tree = document.index
    node = tree.get(node_id)
    if all(getattr(node, key) == value for key, value in changes.items()):
        return document
    root = _replace_in_tree(tree, node_id, node.evolve(**changes))
    return document.evolve(root=root)


def update_topic(document: Document, node_id: str, topic: str) -> Document:
    return update_node(document, node_id, topic=topic)


def set_style(document: Document, node_id: str, style: dict[str, Any] | None) -> Document:
    return update_node(document, node_id, style=style)


def set_tags(document: Document, node_id: str, tags: Iterable[str]) -> Document:
    return update_node(document, node_id, tags=tuple(tags))


def set_icons(document: Document, node_id: str, icons: Iterable[str]) -> Document:
    return update_node(document, node_id, icons=tuple(icons))


def set_hyperlink(document: Document, node_id: str, hyperlink: str | None) -> Document:
    return update_node(document, node_id, hyperlink=hyperlink or None)


def set_note(document: Document, node_id: str, note: str) -> Document:
    return update_node(document, node_id, note=note)


def set_expanded(document: Document, node_id: str, expanded: bool) -> Document:
    return update_node(document, node_id, expanded=expanded)


def set_direction(document: Document, direction: LayoutDirection) -> Document:
    if document.direction == direction:
        return document
    return document.evolve(direction=direction)


def paste_subtree(
    document: Document,
    parent_id: str,
    subtree: Node,
    *,
    id_factory: IdFactory = new_id,
) -> AddResult:
    """Append a deep copy of subtree under parent_id, giving every copied node a fresh id."""
    tree = document.index
    tree.entry(parent_id)
    clone = _clone_with_fresh_ids(subtree, tree, id_factory)
    new_document, position = _insert(document, parent_id, clone, None)
    logger.debug("Pasted copy {} of {} under {}", clone.id, subtree.id, parent_id)
    return AddResult(new_document, clone.id, parent_id, position)


# --- Arrows ---


def add_arrow(
    document: Document,
    from_node_id: str,
    to_node_id: str,
    *,
    label: str | None = None,
    bidirectional: bool = False,
    control_point_offset1: Vector | None = None,
    control_point_offset2: Vector | None = None,
    style: dict[str, Any] | None = None,
    id_factory: IdFactory = new_id,
) -> tuple[Document, Arrow]:
    """Connect two existing nodes with an arrow.

    Raises:
        NodeNotFound: if either endpoint is absent.
    """
    tree = document.index
    tree.entry(from_node_id)
    tree.entry(to_node_id)
    taken = {a.id for a in document.arrows}
    arrow = Arrow(
        id=_fresh_id(tree, id_factory, taken),
        from_node_id=from_node_id,
        to_node_id=to_node_id,
        label=label,
        bidirectional=bidirectional,
        control_point_offset1=control_point_offset1 or Vector(),
        control_point_offset2=control_point_offset2 or Vector(),
        style=style,
    )
    logger.debug("Added arrow {} from {} to {}", arrow.id, from_node_id, to_node_id)
    return document.evolve(arrows=(*document.arrows, arrow)), arrow


def remove_arrow(document: Document, arrow_id: str) -> Document:
    if document.get_arrow(arrow_id) is None:
        raise ArrowNotFound(arrow_id)
    return document.evolve(arrows=tuple(a for a in document.arrows if a.id != arrow_id))


def update_arrow(document: Document, arrow_id: str, **changes: Any) -> Document:
    """Replace fields on one arrow. Endpoints must exist if they are changed."""
    arrow = document.get_arrow(arrow_id)
    if arrow is None:
        raise ArrowNotFound(arrow_id)
    for key in ("from_node_id", "to_node_id"):
        if key in changes:
            document.index.entry(changes[key])
    if all(getattr(arrow, key) == value for key, value in changes.items()):
        return document
    updated = replace(arrow, **changes)
    arrows = tuple(updated if a.id == arrow_id else a for a in document.arrows)
    return document.evolve(arrows=arrows)


def update_arrow_control_points(
    document: Document, arrow_id: str, offset1: Vector, offset2: Vector
) -> Document:
    return update_arrow(
        document, arrow_id, control_point_offset1=offset1, control_point_offset2=offset2
    )


# --- Summaries ---


def add_summary(
    document: Document,
    parent_id: str,
    start_index: int,
    end_index: int,
    label: str = "",
    *,
    style: dict[str, Any] | None = None,
    id_factory: IdFactory = new_id,
) -> tuple[Document, Summary]:
    """Bracket children start_index..end_index (inclusive) of parent_id.

    Raises:
        NodeNotFound: if parent_id is absent.
        InvalidRangeError: if the range is reversed or outside the parent's children.
    """
    tree = document.index
    count = len(tree.get(parent_id).children)
    if not 0 <= start_index <= end_index < count:
        raise InvalidRangeError(parent_id, start_index, end_index, count)
    taken = {s.id for s in document.summaries}
    summary = Summary(
        id=_fresh_id(tree, id_factory, taken),
        parent_node_id=parent_id,
        start_index=start_index,
        end_index=end_index,
        label=label,
        style=style,
    )
    logger.debug("Added summary {} over {}[{}..{}]", summary.id, parent_id, start_index, end_index)
    return document.evolve(summaries=(*document.summaries, summary)), summary


def add_summary_for_nodes(
    document: Document,
    node_ids: Iterable[str],
    label: str = "",
    *,
    id_factory: IdFactory = new_id,
) -> tuple[Document, Summary]:
    """Summarize the children of the lowest common parent that span node_ids.

    Raises:
        InvalidParentError: if node_ids is empty or contains the root.
        NodeNotFound: if an id is absent.
    """
    parent_id, start, end = document.index.common_parent_range(list(node_ids))
    return add_summary(document, parent_id, start, end, label, id_factory=id_factory)


def remove_summary(document: Document, summary_id: str) -> Document:
    if document.get_summary(summary_id) is None:
        raise SummaryNotFound(summary_id)
    return document.evolve(summaries=tuple(s for s in document.summaries if s.id != summary_id))


def update_summary(document: Document, summary_id: str, *, label: str) -> Document:
    summary = document.get_summary(summary_id)
    if summary is None:
        raise SummaryNotFound(summary_id)
    if summary.label == label:
        return document
    updated = replace(summary, label=label)
    return document.evolve(
        summaries=tuple(updated if s.id == summary_id else s for s in document.summaries)
    )
