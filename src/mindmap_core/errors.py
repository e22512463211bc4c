"""Errors raised by mind map operations.

All of them are recoverable: the operation that raises leaves the document and
selection exactly as they were.
"""


class MindMapError(Exception):
    """Base class for all mind map errors."""


class NodeNotFound(MindMapError, LookupError):
    """A referenced node id is absent from the current tree."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node {node_id!r} not found")
        self.node_id = node_id


class ArrowNotFound(MindMapError, LookupError):
    """A referenced arrow id is absent from the current document."""

    def __init__(self, arrow_id: str) -> None:
        super().__init__(f"Arrow {arrow_id!r} not found")
        self.arrow_id = arrow_id


class SummaryNotFound(MindMapError, LookupError):
    """A referenced summary id is absent from the current document."""

    def __init__(self, summary_id: str) -> None:
        super().__init__(f"Summary {summary_id!r} not found")
        self.summary_id = summary_id


class RootNodeError(MindMapError):
    """The operation is structurally forbidden on the root node."""

    def __init__(self, node_id: str, operation: str) -> None:
        super().__init__(f"Cannot {operation} the root node {node_id!r}")
        self.node_id = node_id
        self.operation = operation


class CycleError(MindMapError):
    """A move would place a node under itself or one of its descendants."""

    def __init__(self, node_id: str, new_parent_id: str) -> None:
        if node_id == new_parent_id:
            message = f"Cannot move node {node_id!r} under itself"
        else:
            message = f"Cannot move node {node_id!r} under its descendant {new_parent_id!r}"
        super().__init__(message)
        self.node_id = node_id
        self.new_parent_id = new_parent_id


class InvalidRangeError(MindMapError, ValueError):
    """Summary indices are out of bounds or reversed."""

    def __init__(self, parent_id: str, start_index: int, end_index: int, child_count: int) -> None:
        super().__init__(
            f"Invalid summary range [{start_index}, {end_index}] "
            f"for node {parent_id!r} with {child_count} children"
        )
        self.parent_id = parent_id
        self.start_index = start_index
        self.end_index = end_index
        self.child_count = child_count


class InvalidParentError(MindMapError, ValueError):
    """Nodes do not share a common parent suitable for a summary."""


class ClipboardEmpty(MindMapError):
    """Paste was requested before anything was copied."""

    def __init__(self) -> None:
        super().__init__("Nothing has been copied")


class ReadOnlyError(MindMapError):
    """A mutation was requested on a read-only mind map."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Cannot {operation}: the mind map is read-only")
        self.operation = operation
