"""Drag-and-drop gesture tracking.

The drag manager only tracks the gesture and the current drop target; the
caller performs the actual move with the target returned by end_drag.
"""

from dataclasses import dataclass, replace

from loguru import logger

from mindmap_core.core.interaction.zoom_pan import IDENTITY, Transform
from mindmap_core.core.layout.engine import Layout
from mindmap_core.core.tree.index import TreeIndex
from mindmap_core.events import DragTargetChangedEvent, EventBus
from mindmap_core.models.geometry import Point
from mindmap_core.models.node import Document


@dataclass(frozen=True)
class DragState:
    """An in-progress drag."""

    node_id: str
    start: Point
    position: Point
    target_id: str | None = None


def find_drop_target(
    point: Point, dragged_id: str, layouts: Layout, index: TreeIndex
) -> str | None:
    """Return the id of the node under a canvas point that dragged_id may be dropped onto.

    The dragged node and its descendants are never targets: dropping there
    would create a cycle. Nodes laid out last are checked first.
    """
    for node_id, layout in reversed(layouts.items()):
        if node_id == dragged_id or node_id not in index:
            continue
        if not layout.bounds.contains(point):
            continue
        if dragged_id in index and index.is_ancestor(dragged_id, node_id):
            continue
        return node_id
    return None


class DragManager:
    """Tracks one drag at a time and publishes drop-target changes."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or EventBus()
        self._state: DragState | None = None

    @property
    def state(self) -> DragState | None:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state is not None

    @property
    def target_id(self) -> str | None:
        return self._state.target_id if self._state else None

    def start_drag(self, node_id: str, pointer: Point) -> None:
        """Begin dragging node_id; any previous drag is discarded."""
        self._state = DragState(node_id, pointer, pointer)
        logger.debug("Drag start {}", node_id)

    def update_drag(
        self,
        pointer: Point,
        layouts: Layout,
        document: Document,
        transform: Transform = IDENTITY,
    ) -> str | None:
        """Move the pointer (screen coordinates) and recompute the drop target.

        Returns:
            The current valid drop target, or None. Not dragging also gives None.
        """
        if self._state is None:
            return None
        canvas_point = transform.to_canvas(pointer)
        target = find_drop_target(canvas_point, self._state.node_id, layouts, document.index)
        changed = target != self._state.target_id
        self._state = replace(self._state, position=pointer, target_id=target)
        if changed:
            logger.debug("Drag target for {} is now {}", self._state.node_id, target)
            self.bus.publish(DragTargetChangedEvent(self._state.node_id, target))
        return target

    def end_drag(self) -> str | None:
        """Finish the drag, returning the last valid drop target (or None)."""
        if self._state is None:
            return None
        target = self._state.target_id
        self._reset()
        return target

    def cancel_drag(self) -> None:
        if self._state is not None:
            self._reset()

    def _reset(self) -> None:
        node_id, had_target = self._state.node_id, self._state.target_id is not None
        self._state = None
        if had_target:
            self.bus.publish(DragTargetChangedEvent(node_id, None))
