"""Selection and focus state machine.

The transition functions are pure: they take a SelectionState and return the
next one, returning the very same object when the call is a no-op. The
SelectionManager holds the current state and publishes one event per concern
that actually changed.
"""

from collections.abc import Iterable

from loguru import logger

from mindmap_core.core.tree.index import TreeIndex
from mindmap_core.events import EventBus, FocusChangedEvent, SelectArrowEvent, SelectNodesEvent
from mindmap_core.models.selection import SelectionState

# --- Transitions ---


def select_node(state: SelectionState, node_id: str) -> SelectionState:
    """Replace the selection with one node (and deselect any arrow)."""
    if state.selected_node_ids == (node_id,) and state.selected_arrow_id is None:
        return state
    return SelectionState((node_id,), None, state.focused_node_id)


def add_to_selection(state: SelectionState, node_id: str) -> SelectionState:
    if node_id in state.selected_node_ids:
        return state
    return state.with_nodes((*state.selected_node_ids, node_id))


def remove_from_selection(state: SelectionState, node_id: str) -> SelectionState:
    if node_id not in state.selected_node_ids:
        return state
    return state.with_nodes(tuple(i for i in state.selected_node_ids if i != node_id))


def toggle_selection(state: SelectionState, node_id: str) -> SelectionState:
    if node_id in state.selected_node_ids:
        return remove_from_selection(state, node_id)
    return add_to_selection(state, node_id)


def select_nodes(state: SelectionState, node_ids: Iterable[str]) -> SelectionState:
    """Replace the selection wholesale; duplicates keep their first position."""
    ids = tuple(dict.fromkeys(node_ids))
    if ids == state.selected_node_ids:
        return state
    return state.with_nodes(ids)


def clear_selection(state: SelectionState) -> SelectionState:
    if not state.selected_node_ids and state.selected_arrow_id is None:
        return state
    return SelectionState((), None, state.focused_node_id)


def select_arrow(state: SelectionState, arrow_id: str | None) -> SelectionState:
    """Select one arrow; node selection is cleared when an arrow is selected."""
    if arrow_id is None:
        return state if state.selected_arrow_id is None else state.with_arrow(None)
    if state.selected_arrow_id == arrow_id and not state.selected_node_ids:
        return state
    return SelectionState((), arrow_id, state.focused_node_id)


def enter_focus(state: SelectionState, node_id: str) -> SelectionState:
    """Focus a subtree; entering focus always clears the selection."""
    if state == SelectionState(focused_node_id=node_id):
        return state
    return SelectionState(focused_node_id=node_id)


def exit_focus(state: SelectionState) -> SelectionState:
    if state.focused_node_id is None:
        return state
    return state.with_focus(None)


def prune_removed(
    state: SelectionState, removed_ids: Iterable[str], removed_arrow_ids: Iterable[str] = ()
) -> SelectionState:
    """Drop references to nodes and arrows that no longer exist."""
    removed = frozenset(removed_ids)
    pruned = state.without_nodes(removed)
    if pruned.selected_arrow_id in set(removed_arrow_ids):
        pruned = pruned.with_arrow(None)
    return state if pruned == state else pruned


# --- Stateful manager ---


class SelectionManager:
    """Holds the current selection and notifies subscribers of changes."""

    def __init__(self, bus: EventBus | None = None, state: SelectionState | None = None) -> None:
        self.bus = bus or EventBus()
        self._state = state or SelectionState()

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def selected_node_ids(self) -> tuple[str, ...]:
        return self._state.selected_node_ids

    @property
    def focused_node_id(self) -> str | None:
        return self._state.focused_node_id

    def apply(self, new_state: SelectionState) -> bool:
        """Install new_state and publish one event per changed concern. True if anything changed."""
        old = self._state
        if new_state is old or new_state == old:
            return False
        self._state = new_state
        if new_state.selected_node_ids != old.selected_node_ids:
            self.bus.publish(SelectNodesEvent(new_state.selected_node_ids))
        if new_state.selected_arrow_id != old.selected_arrow_id:
            self.bus.publish(SelectArrowEvent(new_state.selected_arrow_id))
        if new_state.focused_node_id != old.focused_node_id:
            logger.debug("Focus {} -> {}", old.focused_node_id, new_state.focused_node_id)
            self.bus.publish(FocusChangedEvent(new_state.focused_node_id))
        return True

    def select(self, node_id: str) -> bool:
        return self.apply(select_node(self._state, node_id))

    def add(self, node_id: str) -> bool:
        return self.apply(add_to_selection(self._state, node_id))

    def remove(self, node_id: str) -> bool:
        return self.apply(remove_from_selection(self._state, node_id))

    def toggle(self, node_id: str) -> bool:
        return self.apply(toggle_selection(self._state, node_id))

    def select_many(self, node_ids: Iterable[str]) -> bool:
        return self.apply(select_nodes(self._state, node_ids))

    def clear(self) -> bool:
        return self.apply(clear_selection(self._state))

    def select_arrow(self, arrow_id: str | None) -> bool:
        return self.apply(select_arrow(self._state, arrow_id))

    def focus(self, node_id: str, index: TreeIndex | None = None) -> bool:
        """Enter focus mode on node_id.

        Raises:
            NodeNotFound: if an index is given and node_id is not in it.
        """
        if index is not None:
            index.entry(node_id)
        return self.apply(enter_focus(self._state, node_id))

    def exit_focus(self) -> bool:
        return self.apply(exit_focus(self._state))

    def prune(self, removed_ids: Iterable[str], removed_arrow_ids: Iterable[str] = ()) -> bool:
        return self.apply(prune_removed(self._state, removed_ids, removed_arrow_ids))
