"""Selection and focus state."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SelectionState:
    """What the user is looking at: selected nodes (in selection order), arrow and focus."""

    selected_node_ids: tuple[str, ...] = ()
    selected_arrow_id: str | None = None
    focused_node_id: str | None = None

    @property
    def last_selected_id(self) -> str | None:
        return self.selected_node_ids[-1] if self.selected_node_ids else None

    def with_nodes(self, node_ids: tuple[str, ...]) -> "SelectionState":
        return replace(self, selected_node_ids=node_ids)

    def with_arrow(self, arrow_id: str | None) -> "SelectionState":
        return replace(self, selected_arrow_id=arrow_id)

    def with_focus(self, node_id: str | None) -> "SelectionState":
        return replace(self, focused_node_id=node_id)

    def without_nodes(self, removed: set[str] | frozenset[str]) -> "SelectionState":
        """Drop every reference to the given node ids."""
        ids = tuple(i for i in self.selected_node_ids if i not in removed)
        focus = None if self.focused_node_id in removed else self.focused_node_id
        return replace(self, selected_node_ids=ids, focused_node_id=focus)
