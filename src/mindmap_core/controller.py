"""The controller facade: one object per open mind map.

It owns the current document snapshot, the selection, the undo history, the
view transform and the drag gesture, and sequences the pure engines for each
user gesture. Every change to the document goes through ``_commit``, which
records a history entry pairing the document with the selection before and
after the change.
"""

from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from mindmap_core.config import MindMapConfig
from mindmap_core.core.history.manager import Checkpoint, HistoryManager
from mindmap_core.core.interaction import selection as sel
from mindmap_core.core.interaction.drag import DragManager
from mindmap_core.core.interaction.hit_test import Hit, HitKind, hit_test, nodes_in_rect
from mindmap_core.core.interaction.selection import SelectionManager
from mindmap_core.core.interaction.zoom_pan import ZoomPanManager
from mindmap_core.core.layout.engine import Layout, calculate_layout
from mindmap_core.core.layout.theme import LIGHT, THEMES, ThemeMetrics
from mindmap_core.core.snapshot import json_codec
from mindmap_core.core.tree import mutations
from mindmap_core.core.tree.mutations import IdFactory, MoveResult, MultiMoveResult, new_id
from mindmap_core.errors import ArrowNotFound, ClipboardEmpty, ReadOnlyError
from mindmap_core.events import (
    ArrowCreatedEvent,
    ArrowOperationEvent,
    BeginEditEvent,
    Callback,
    Channel,
    DocumentChangedEvent,
    EventBus,
    ExpandNodeEvent,
    FinishEditEvent,
    HyperlinkClickEvent,
    MindMapEvent,
    MoveNodeEvent,
    NodeOperationEvent,
    SummaryCreatedEvent,
    SummaryOperationEvent,
)
from mindmap_core.models.geometry import Point, Rect, Size, Vector
from mindmap_core.models.node import Document, LayoutDirection, Node
from mindmap_core.models.selection import SelectionState
from mindmap_core.protocols import TextMeasurer

ZOOM_STEP = 1.2


class MindMapController:
    """Facade over the mutation engine, layout, history and interaction state."""

    def __init__(
        self,
        document: Document | None = None,
        *,
        config: MindMapConfig | None = None,
        theme: ThemeMetrics | None = None,
        measurer: TextMeasurer | None = None,
        id_factory: IdFactory = new_id,
        bus: EventBus | None = None,
    ) -> None:
        self.config = config or MindMapConfig()
        self.bus = bus or EventBus()
        self._document = document or Document.new()
        self._theme = theme
        self._measurer = measurer
        self._id_factory = id_factory
        self._clipboard: Node | None = None
        self._layout_cache: tuple[Document, str | None, Layout] | None = None

        self.selection = SelectionManager(self.bus)
        self.history = HistoryManager(
            max_size=self.config.max_history_size, enabled=self.config.allow_undo
        )
        self.view = ZoomPanManager(
            min_scale=self.config.min_scale, max_scale=self.config.max_scale, bus=self.bus
        )
        self.drag = DragManager(self.bus)

    # --- State access ---

    @property
    def document(self) -> Document:
        return self._document

    @property
    def root(self) -> Node:
        return self._document.root

    @property
    def selected_node_ids(self) -> tuple[str, ...]:
        return self.selection.selected_node_ids

    @property
    def selected_arrow_id(self) -> str | None:
        return self.selection.state.selected_arrow_id

    @property
    def focused_node_id(self) -> str | None:
        return self.selection.focused_node_id

    @property
    def is_focus_mode(self) -> bool:
        return self.selection.focused_node_id is not None

    @property
    def theme(self) -> ThemeMetrics:
        return self._theme or THEMES.get(self._document.theme, LIGHT)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def get_node(self, node_id: str) -> Node:
        return self._document.index.get(node_id)

    def subscribe(self, channel: Channel, callback: Callback) -> Callable[[], None]:
        return self.bus.subscribe(channel, callback)

    # --- Internals ---

    def _check_writable(self, operation: str) -> None:
        if self.config.read_only:
            raise ReadOnlyError(operation)

    def _commit(
        self,
        label: str,
        document: Document,
        selection: SelectionState | None = None,
        events: Iterable[MindMapEvent] = (),
    ) -> bool:
        """Install a new snapshot, record it in history and publish events.

        Returns False, recording and publishing nothing, when neither the
        document nor the selection changed.
        """
        new_selection = selection if selection is not None else self.selection.state
        if document is self._document and new_selection == self.selection.state:
            return False
        before = Checkpoint(self._document, self.selection.state)
        self._document = document
        self.selection.apply(new_selection)
        self.history.record(before, Checkpoint(document, new_selection), label)
        logger.debug("Applied {}", label)
        for event in events:
            self.bus.publish(event)
        return True

    def _restore(self, checkpoint: Checkpoint, reason: str) -> None:
        self._document = checkpoint.document
        self.selection.apply(checkpoint.selection)
        self.drag.cancel_drag()
        self.bus.publish(DocumentChangedEvent(reason))

    def _target_node_id(self, node_id: str | None) -> str | None:
        return node_id if node_id is not None else self.selection.state.last_selected_id

    # --- Document lifecycle ---

    def refresh(self, document: Document) -> None:
        """Replace the whole document, e.g. after loading a file.

        History is cleared and the selection, focus and any drag are reset.
        """
        self._document = document
        self.history.clear()
        self.drag.cancel_drag()
        self.selection.apply(SelectionState())
        logger.debug("Document replaced, history cleared")
        self.bus.publish(DocumentChangedEvent("refresh"))

    def export_snapshot(self) -> dict[str, Any]:
        return json_codec.document_to_dict(self._document)

    def import_snapshot(self, data: dict[str, Any]) -> None:
        self.refresh(json_codec.document_from_dict(data))

    # --- Layout ---

    def layout(self) -> Layout:
        """Geometry of the visible nodes, rooted at the focused node in focus mode.

        The result is cached until the document or the focus changes.
        """
        focus = self.selection.focused_node_id
        cached = self._layout_cache
        if cached is not None and cached[0] is self._document and cached[1] == focus:
            return cached[2]
        root = self._document.root
        if focus is not None and focus in self._document.index:
            root = self._document.index.get(focus)
        layouts = calculate_layout(
            root, self.theme, self._document.direction, measurer=self._measurer
        )
        self._layout_cache = (self._document, focus, layouts)
        return layouts

    # --- Node operations ---

    def add_child(self, parent_id: str, topic: str | None = None, **payload: Any) -> str:
        """Append a new child and return its id.

        With no topic the new node gets the default topic, becomes the
        selection and an edit session is started on it.
        """
        self._check_writable("add_child")
        result = mutations.add_child(
            self._document, parent_id, topic, id_factory=self._id_factory, **payload
        )
        events: list[MindMapEvent] = [NodeOperationEvent("add_child", result.node_id, parent_id)]
        selection = None
        if topic is None:
            selection = sel.select_node(self.selection.state, result.node_id)
            events.append(BeginEditEvent(result.node_id))
        self._commit("add child", result.document, selection, events)
        return result.node_id

    def add_sibling(self, reference_id: str, topic: str | None = None, **payload: Any) -> str:
        """Insert a new node right after reference_id and return its id."""
        self._check_writable("add_sibling")
        result = mutations.add_sibling(
            self._document, reference_id, topic, id_factory=self._id_factory, **payload
        )
        events: list[MindMapEvent] = [
            NodeOperationEvent("add_sibling", result.node_id, result.parent_id)
        ]
        selection = None
        if topic is None:
            selection = sel.select_node(self.selection.state, result.node_id)
            events.append(BeginEditEvent(result.node_id))
        self._commit("add sibling", result.document, selection, events)
        return result.node_id

    def add_parent(self, node_id: str, topic: str | None = None) -> str:
        """Wrap node_id in a new node and return the new node's id."""
        self._check_writable("add_parent")
        result = mutations.add_parent(
            self._document, node_id, topic, id_factory=self._id_factory
        )
        event = NodeOperationEvent("add_parent", result.node_id, result.parent_id)
        self._commit("add parent", result.document, events=[event])
        return result.node_id

    def remove_node(self, node_id: str) -> set[str]:
        """Remove a node with its subtree. Returns every removed node id."""
        return self.remove_nodes([node_id])

    def remove_nodes(self, node_ids: Iterable[str]) -> set[str]:
        """Remove several subtrees as one undoable step.

        Removed ids leave the selection; focus on a removed node ends.
        """
        self._check_writable("remove")
        node_ids = list(node_ids)
        old_index = self._document.index
        result = mutations.remove_nodes(self._document, node_ids)
        selection = sel.prune_removed(
            self.selection.state, result.removed_ids, result.removed_arrow_ids
        )
        events = [
            NodeOperationEvent("remove", node_id, old_index.parent_id(node_id))
            for node_id in result.node_ids
        ]
        self._commit("remove", result.document, selection, events)
        return set(result.removed_ids)

    def remove_selected(self) -> set[str]:
        """Remove the selected nodes, skipping the root."""
        root_id = self._document.root.id
        targets = [n for n in self.selection.selected_node_ids if n != root_id]
        if not targets:
            return set()
        return self.remove_nodes(targets)

    def move_node(self, node_id: str, new_parent_id: str, index: int | None = None) -> MoveResult:
        """Move a node under new_parent_id; index counts the target's current children."""
        self._check_writable("move")
        result = mutations.move_node(self._document, node_id, new_parent_id, index)
        if result.changed:
            event = MoveNodeEvent(
                node_id,
                result.old_parent_id,
                result.new_parent_id,
                result.is_reorder,
                result.old_index,
                result.new_index,
            )
            self._commit("move", result.document, events=[event])
        return result

    def move_nodes(
        self, node_ids: Iterable[str], new_parent_id: str, index: int | None = None
    ) -> MultiMoveResult:
        self._check_writable("move")
        result = mutations.move_nodes(self._document, node_ids, new_parent_id, index)
        if result.changed:
            events = [
                MoveNodeEvent(
                    m.node_id,
                    m.old_parent_id,
                    m.new_parent_id,
                    m.is_reorder,
                    m.old_index,
                    m.new_index,
                )
                for m in result.moves
                if m.changed
            ]
            self._commit("move nodes", result.document, events=events)
        return result

    def _update(self, operation: str, node_id: str, document: Document) -> bool:
        parent_id = self._document.index.parent_id(node_id)
        return self._commit(
            operation.replace("_", " "),
            document,
            events=[NodeOperationEvent(operation, node_id, parent_id)],
        )

    def update_topic(self, node_id: str, topic: str) -> bool:
        self._check_writable("update_topic")
        return self._update(
            "update_topic", node_id, mutations.update_topic(self._document, node_id, topic)
        )

    def set_style(self, node_id: str, style: dict[str, Any] | None) -> bool:
        self._check_writable("set_style")
        return self._update(
            "set_style", node_id, mutations.set_style(self._document, node_id, style)
        )

    def set_tags(self, node_id: str, tags: Iterable[str]) -> bool:
        self._check_writable("set_tags")
        return self._update("set_tags", node_id, mutations.set_tags(self._document, node_id, tags))

    def set_icons(self, node_id: str, icons: Iterable[str]) -> bool:
        self._check_writable("set_icons")
        return self._update(
            "set_icons", node_id, mutations.set_icons(self._document, node_id, icons)
        )

    def set_hyperlink(self, node_id: str, hyperlink: str | None) -> bool:
        self._check_writable("set_hyperlink")
        return self._update(
            "set_hyperlink", node_id, mutations.set_hyperlink(self._document, node_id, hyperlink)
        )

    def set_note(self, node_id: str, note: str) -> bool:
        self._check_writable("set_note")
        return self._update("set_note", node_id, mutations.set_note(self._document, node_id, note))

    def set_branch_color(self, node_id: str, color: str | None) -> bool:
        self._check_writable("set_branch_color")
        document = mutations.update_node(self._document, node_id, branch_color=color)
        return self._update("set_branch_color", node_id, document)

    def set_expanded(self, node_id: str, expanded: bool) -> bool:
        """Expand or collapse a node. Setting the current state does nothing."""
        self._check_writable("set_expanded")
        document = mutations.set_expanded(self._document, node_id, expanded)
        label = "expand" if expanded else "collapse"
        return self._commit(label, document, events=[ExpandNodeEvent(node_id, expanded)])

    def toggle_expanded(self, node_id: str) -> bool:
        return self.set_expanded(node_id, not self.get_node(node_id).expanded)

    def set_layout_direction(self, direction: LayoutDirection) -> bool:
        self._check_writable("set_layout_direction")
        document = mutations.set_direction(self._document, direction)
        return self._commit(
            "layout direction", document, events=[DocumentChangedEvent("direction")]
        )

    # --- Topic editing ---

    def begin_edit(self, node_id: str | None = None) -> str | None:
        """Start an edit session on node_id (default: the last selected node)."""
        self._check_writable("begin_edit")
        target = self._target_node_id(node_id)
        if target is None:
            return None
        self._document.index.entry(target)
        self.bus.publish(BeginEditEvent(target))
        return target

    def finish_edit(self, node_id: str, text: str) -> bool:
        """Commit an edit session. Unchanged text records nothing."""
        self._check_writable("finish_edit")
        document = mutations.update_topic(self._document, node_id, text)
        changed = self._commit("edit topic", document)
        self.bus.publish(FinishEditEvent(node_id, text))
        return changed

    # --- Clipboard ---

    def copy_node(self, node_id: str | None = None) -> Node | None:
        """Put the subtree of node_id (default: the last selected node) on the clipboard."""
        target = self._target_node_id(node_id)
        if target is None:
            return None
        self._clipboard = self.get_node(target)
        logger.debug("Copied subtree {}", target)
        return self._clipboard

    def paste_node(self, parent_id: str | None = None) -> str:
        """Paste a fresh-id copy of the clipboard under parent_id and select it.

        Raises:
            ClipboardEmpty: if nothing was copied.
        """
        self._check_writable("paste")
        if self._clipboard is None:
            raise ClipboardEmpty
        target = self._target_node_id(parent_id) or self._document.root.id
        result = mutations.paste_subtree(
            self._document, target, self._clipboard, id_factory=self._id_factory
        )
        selection = sel.select_node(self.selection.state, result.node_id)
        event = NodeOperationEvent("paste", result.node_id, target)
        self._commit("paste", result.document, selection, [event])
        return result.node_id

    # --- Arrows ---

    def add_arrow(self, from_node_id: str, to_node_id: str, **options: Any) -> str:
        self._check_writable("add_arrow")
        document, arrow = mutations.add_arrow(
            self._document, from_node_id, to_node_id, id_factory=self._id_factory, **options
        )
        event = ArrowCreatedEvent(arrow.id, from_node_id, to_node_id)
        self._commit("add arrow", document, events=[event])
        return arrow.id

    def remove_arrow(self, arrow_id: str) -> None:
        self._check_writable("remove_arrow")
        document = mutations.remove_arrow(self._document, arrow_id)
        selection = sel.prune_removed(self.selection.state, (), (arrow_id,))
        event = ArrowOperationEvent("remove", arrow_id)
        self._commit("remove arrow", document, selection, [event])

    def update_arrow(self, arrow_id: str, **changes: Any) -> bool:
        self._check_writable("update_arrow")
        document = mutations.update_arrow(self._document, arrow_id, **changes)
        return self._commit(
            "update arrow", document, events=[ArrowOperationEvent("update", arrow_id)]
        )

    def update_arrow_control_points(self, arrow_id: str, offset1: Vector, offset2: Vector) -> bool:
        self._check_writable("update_arrow")
        document = mutations.update_arrow_control_points(
            self._document, arrow_id, offset1, offset2
        )
        return self._commit(
            "move arrow control points",
            document,
            events=[ArrowOperationEvent("control_points", arrow_id)],
        )

    def select_arrow(self, arrow_id: str | None) -> bool:
        if arrow_id is not None and self._document.get_arrow(arrow_id) is None:
            raise ArrowNotFound(arrow_id)
        return self.selection.select_arrow(arrow_id)

    # --- Summaries ---

    def add_summary(self, parent_id: str, start_index: int, end_index: int, label: str = "") -> str:
        self._check_writable("add_summary")
        document, summary = mutations.add_summary(
            self._document, parent_id, start_index, end_index, label, id_factory=self._id_factory
        )
        self._commit("add summary", document, events=[SummaryCreatedEvent(summary.id, parent_id)])
        return summary.id

    def create_summary_from_selection(self, label: str = "") -> str:
        """Summarize the children spanned by the selection under their common parent.

        Raises:
            InvalidParentError: if nothing is selected or the root is selected.
        """
        self._check_writable("add_summary")
        document, summary = mutations.add_summary_for_nodes(
            self._document, self.selection.selected_node_ids, label, id_factory=self._id_factory
        )
        event = SummaryCreatedEvent(summary.id, summary.parent_node_id)
        self._commit("add summary", document, events=[event])
        return summary.id

    def remove_summary(self, summary_id: str) -> None:
        self._check_writable("remove_summary")
        document = mutations.remove_summary(self._document, summary_id)
        event = SummaryOperationEvent("remove", summary_id)
        self._commit("remove summary", document, events=[event])

    def update_summary_label(self, summary_id: str, label: str) -> bool:
        self._check_writable("update_summary")
        document = mutations.update_summary(self._document, summary_id, label=label)
        event = SummaryOperationEvent("update", summary_id)
        return self._commit("update summary", document, events=[event])

    # --- Selection and focus ---

    def select_node(self, node_id: str) -> bool:
        self._document.index.entry(node_id)
        return self.selection.select(node_id)

    def add_to_selection(self, node_id: str) -> bool:
        self._document.index.entry(node_id)
        return self.selection.add(node_id)

    def remove_from_selection(self, node_id: str) -> bool:
        return self.selection.remove(node_id)

    def toggle_selection(self, node_id: str) -> bool:
        self._document.index.entry(node_id)
        return self.selection.toggle(node_id)

    def select_nodes(self, node_ids: Iterable[str]) -> bool:
        node_ids = list(node_ids)
        for node_id in node_ids:
            self._document.index.entry(node_id)
        return self.selection.select_many(node_ids)

    def clear_selection(self) -> bool:
        return self.selection.clear()

    def select_nodes_in_rect(self, rect: Rect) -> bool:
        """Batch-select every visible node whose box intersects a canvas rectangle."""
        return self.selection.select_many(nodes_in_rect(self.layout(), rect))

    def focus_node(self, node_id: str) -> bool:
        """Lay out only node_id's subtree until exit_focus_mode. The root is allowed."""
        return self.selection.focus(node_id, self._document.index)

    def exit_focus_mode(self) -> bool:
        return self.selection.exit_focus()

    # --- History ---

    def undo(self) -> bool:
        """Restore the document and selection from before the last change."""
        checkpoint = self.history.undo()
        if checkpoint is None:
            return False
        self._restore(checkpoint, "undo")
        return True

    def redo(self) -> bool:
        checkpoint = self.history.redo()
        if checkpoint is None:
            return False
        self._restore(checkpoint, "redo")
        return True

    # --- Pointer interaction ---

    def handle_tap(self, screen_point: Point, *, additive: bool = False) -> Hit:
        """Resolve a tap at a screen point and apply its effect.

        Hyperlink indicators publish a HyperlinkClickEvent, expand indicators
        toggle the node, node bodies select (or toggle when additive), arrows
        are selected and empty space clears the selection.
        """
        transform = self.view.transform
        hit = hit_test(
            transform.to_canvas(screen_point),
            self._document,
            self.layout(),
            self.theme,
            scale=transform.scale,
        )
        if hit.kind is HitKind.HYPERLINK:
            self.bus.publish(HyperlinkClickEvent(hit.node_id, hit.url))
        elif hit.kind is HitKind.EXPAND_TOGGLE:
            if not self.config.read_only:
                self.toggle_expanded(hit.node_id)
        elif hit.kind is HitKind.NODE:
            if additive:
                self.selection.toggle(hit.node_id)
            else:
                self.selection.select(hit.node_id)
        elif hit.kind is HitKind.ARROW:
            self.selection.select_arrow(hit.arrow_id)
        elif hit.kind is HitKind.EMPTY and not additive:
            self.selection.clear()
        return hit

    def start_drag(self, node_id: str, pointer: Point) -> bool:
        """Begin dragging node_id. Ignored when drag and drop is off or read-only."""
        if not self.config.enable_drag_drop or self.config.read_only:
            return False
        if self._document.index.is_root(node_id):
            return False
        self.drag.start_drag(node_id, pointer)
        return True

    def update_drag(self, pointer: Point) -> str | None:
        return self.drag.update_drag(pointer, self.layout(), self._document, self.view.transform)

    def end_drag(self) -> MoveResult | None:
        """Drop the dragged node onto the current target, appending it as the last child."""
        state = self.drag.state
        target = self.drag.end_drag()
        if state is None or target is None:
            return None
        if state.node_id not in self._document.index or target not in self._document.index:
            return None
        return self.move_node(state.node_id, target)

    def cancel_drag(self) -> None:
        self.drag.cancel_drag()

    # --- View ---

    def set_zoom(self, scale: float, focal_point: Point | None = None) -> bool:
        return self.view.set_scale(scale, focal_point)

    def zoom_in(self, focal_point: Point | None = None) -> bool:
        return self.view.zoom(ZOOM_STEP, focal_point)

    def zoom_out(self, focal_point: Point | None = None) -> bool:
        return self.view.zoom(1 / ZOOM_STEP, focal_point)

    def pan(self, delta: Vector) -> bool:
        return self.view.pan(delta)

    def center_on_node(self, node_id: str, viewport: Size) -> bool:
        """Pan so a visible node sits at the middle of the viewport."""
        placed = self.layout().get(node_id)
        if placed is None:
            self._document.index.entry(node_id)
            return False
        return self.view.center_on(placed.center, viewport)

    def reset_view(self) -> bool:
        return self.view.reset()

    # --- Keyboard ---

    def handle_key(self, key: str, *, ctrl: bool = False, shift: bool = False) -> bool:
        """Apply a keyboard shortcut. Returns True if the key was handled.

        Keys are named like ``"Tab"``, ``"Enter"``, ``"Delete"``, ``"F2"``,
        ``"Escape"``, ``"z"``. Ctrl stands for the platform's command modifier.
        """
        if not self.config.enable_keyboard_shortcuts:
            return False
        key = key.lower()
        target = self.selection.state.last_selected_id

        if ctrl:
            if key == "z" and not shift:
                return self.undo()
            if key == "y" or (key == "z" and shift):
                return self.redo()
            if key == "c" and target is not None:
                return self.copy_node(target) is not None
            if key == "v" and self._clipboard is not None:
                self.paste_node(target)
                return True
            if key in ("=", "+"):
                return self.zoom_in()
            if key == "-":
                return self.zoom_out()
            return False

        if key == "escape":
            if self.is_focus_mode:
                return self.exit_focus_mode()
            return self.clear_selection()
        if key == "tab" and target is not None:
            self.add_child(target)
            return True
        if key == "enter" and target is not None and target != self._document.root.id:
            self.add_sibling(target)
            return True
        if key in ("delete", "backspace"):
            return self._delete_selection()
        if key == "f2" and target is not None:
            return self.begin_edit(target) is not None
        if key == " " or key == "space":
            if target is not None and self.get_node(target).has_children:
                return self.toggle_expanded(target)
        return False

    def _delete_selection(self) -> bool:
        arrow_id = self.selection.state.selected_arrow_id
        if arrow_id is not None:
            self.remove_arrow(arrow_id)
            return True
        return bool(self.remove_selected())
