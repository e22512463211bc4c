"""Fake collaborators and sample documents for testing the mind map core."""

import itertools
from typing import Any

from mindmap_core.events import MindMapEvent
from mindmap_core.models.geometry import TextMetrics
from mindmap_core.models.node import Document, Node


class FixedTextMeasurer:
    """Text measurer with a fixed advance per character and height per line.

    Ignores font size, weight and wrapping so that node sizes are easy to
    compute by hand. Records every measured string.
    """

    def __init__(self, char_width: float = 10.0, line_height: float = 20.0) -> None:
        self.char_width = char_width
        self.line_height = line_height
        self.calls: list[str] = []

    def measure(self, text: str, *, font_size: float, bold: bool, max_width: float) -> TextMetrics:
        """Return metrics for text split on newlines only."""
        self.calls.append(text)
        widths = [len(line) * self.char_width for line in text.split("\n")]
        return TextMetrics(
            width=max(widths),
            height=len(widths) * self.line_height,
            last_line_width=widths[-1],
            line_height=self.line_height,
        )


class RecordingSink:
    """Event subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[MindMapEvent] = []

    def __call__(self, event: MindMapEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        """Recorded events of one type, in order."""
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


class SequentialIds:
    """Deterministic id factory: n1, n2, ..."""

    def __init__(self, prefix: str = "n") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


def make_node(node_id: str, *children: Node, **fields: Any) -> Node:
    """Build a node whose topic defaults to its id upper-cased."""
    topic = fields.pop("topic", node_id.upper())
    return Node(id=node_id, topic=topic, children=children, **fields)


def sample_document() -> Document:
    """Seven-node document used across tests.

    root
    ├── a
    │   ├── a1
    │   └── a2
    │       └── a2x
    ├── b
    └── c
    """
    root = make_node(
        "root",
        make_node("a", make_node("a1"), make_node("a2", make_node("a2x"))),
        make_node("b"),
        make_node("c"),
        topic="Root",
    )
    return Document(root=root)
