"""Protocols for collaborators injected into the mind map core."""

from typing import Protocol, runtime_checkable

from mindmap_core.models.geometry import TextMetrics


@runtime_checkable
class TextMeasurer(Protocol):
    """Protocol for text measurement used by the layout engine."""

    def measure(self, text: str, *, font_size: float, bold: bool, max_width: float) -> TextMetrics:
        """Return the metrics of the text wrapped to at most max_width (<= 0 means no limit)."""
        ...
