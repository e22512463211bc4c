"""Mind map core: layout, tree editing, undo history and interaction state."""

from mindmap_core.config import MindMapConfig
from mindmap_core.controller import MindMapController
from mindmap_core.models.node import Arrow, Document, LayoutDirection, Node, Summary
from mindmap_core.protocols import TextMeasurer
from mindmap_core.storage import DocumentStore

__all__ = [
    "Arrow",
    "Document",
    "DocumentStore",
    "LayoutDirection",
    "MindMapConfig",
    "MindMapController",
    "Node",
    "Summary",
    "TextMeasurer",
]
