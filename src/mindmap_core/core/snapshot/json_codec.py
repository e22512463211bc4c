"""Convert document snapshots to and from plain JSON-compatible dicts.

Top-level shape::

    {"nodeData": {...}, "arrows": [...], "summaries": [...],
     "direction": "side", "theme": "light"}

Nodes nest their children under ``children``. Optional node fields are only
written when they differ from their defaults. Parsing also accepts the older
``hyperLink`` key, ``delta1``/``delta2`` arrow offsets and tag objects of the
form ``{"text": ...}``.
"""

import json
from typing import Any

from loguru import logger

from mindmap_core.core.layout.engine import Layout, canvas_bounds
from mindmap_core.core.tree.index import TreeIndex
from mindmap_core.models.geometry import Vector
from mindmap_core.models.node import Arrow, Document, LayoutDirection, Node, Summary

# --- Export ---


def node_to_dict(root: Node) -> dict[str, Any]:
    """Serialize a node and its subtree."""
    encoded: dict[int, dict[str, Any]] = {}
    stack: list[tuple[Node, bool]] = [(root, False)]
    while stack:
        node, visited = stack.pop()
        if not visited:
            stack.append((node, True))
            stack.extend((child, False) for child in node.children)
            continue
        data: dict[str, Any] = {
            "id": node.id,
            "topic": node.topic,
            "expanded": node.expanded,
            "children": [encoded.pop(id(child)) for child in node.children],
        }
        if node.style is not None:
            data["style"] = dict(node.style)
        if node.tags:
            data["tags"] = list(node.tags)
        if node.icons:
            data["icons"] = list(node.icons)
        if node.hyperlink is not None:
            data["hyperlink"] = node.hyperlink
        if node.branch_color is not None:
            data["branchColor"] = node.branch_color
        if node.direction is not None:
            data["direction"] = node.direction.value
        if node.note:
            data["note"] = node.note
        encoded[id(node)] = data
    return encoded[id(root)]


def _vector_to_dict(vector: Vector) -> dict[str, float]:
    return {"dx": vector.dx, "dy": vector.dy}


def arrow_to_dict(arrow: Arrow) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": arrow.id,
        "fromNodeId": arrow.from_node_id,
        "toNodeId": arrow.to_node_id,
        "bidirectional": arrow.bidirectional,
        "controlPointOffset1": _vector_to_dict(arrow.control_point_offset1),
        "controlPointOffset2": _vector_to_dict(arrow.control_point_offset2),
    }
    if arrow.label is not None:
        data["label"] = arrow.label
    if arrow.style is not None:
        data["style"] = dict(arrow.style)
    return data


def summary_to_dict(summary: Summary) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": summary.id,
        "parentNodeId": summary.parent_node_id,
        "startIndex": summary.start_index,
        "endIndex": summary.end_index,
        "label": summary.label,
    }
    if summary.style is not None:
        data["style"] = dict(summary.style)
    return data


def document_to_dict(document: Document) -> dict[str, Any]:
    """Serialize a whole snapshot."""
    return {
        "nodeData": node_to_dict(document.root),
        "arrows": [arrow_to_dict(a) for a in document.arrows],
        "summaries": [summary_to_dict(s) for s in document.summaries],
        "direction": document.direction.value,
        "theme": document.theme,
    }


def dumps(document: Document) -> str:
    """Serialize a snapshot to stable, pretty-printed JSON text."""
    data = document_to_dict(document)
    return json.dumps(data, sort_keys=True, indent=4, ensure_ascii=False) + "\n"


# --- Import ---


def _parse_node_direction(value: Any) -> LayoutDirection | None:
    if value is None:
        return None
    try:
        return LayoutDirection(value)
    except ValueError:
        logger.warning("Ignoring unknown node direction {!r}", value)
        return None


def _parse_layout_direction(value: Any) -> LayoutDirection:
    try:
        return LayoutDirection(value)
    except ValueError:
        logger.warning("Unknown layout direction {!r}, using side", value)
        return LayoutDirection.SIDE


def _parse_tags(raw: Any) -> tuple[str, ...]:
    tags: list[str] = []
    for tag in raw or ():
        tags.append(tag.get("text", "") if isinstance(tag, dict) else str(tag))
    return tuple(tags)


def node_from_dict(data: dict[str, Any]) -> Node:
    """Parse a node and its subtree.

    Raises:
        ValueError: if a node has no id.
    """
    built: dict[int, Node] = {}
    stack: list[tuple[dict[str, Any], bool]] = [(data, False)]
    while stack:
        raw, visited = stack.pop()
        children = raw.get("children") or []
        if not visited:
            if "id" not in raw:
                msg = f"Node without id: {raw.get('topic', '')!r}"
                raise ValueError(msg)
            stack.append((raw, True))
            stack.extend((child, False) for child in children)
            continue
        hyperlink = raw.get("hyperlink", raw.get("hyperLink"))
        built[id(raw)] = Node(
            id=str(raw["id"]),
            topic=raw.get("topic", ""),
            children=tuple(built.pop(id(child)) for child in children),
            expanded=bool(raw.get("expanded", True)),
            style=raw.get("style"),
            tags=_parse_tags(raw.get("tags")),
            icons=tuple(raw.get("icons") or ()),
            hyperlink=hyperlink,
            branch_color=raw.get("branchColor"),
            direction=_parse_node_direction(raw.get("direction")),
            note=raw.get("note") or "",
        )
    return built[id(data)]


def _parse_vector(raw: Any) -> Vector:
    if not raw:
        return Vector()
    return Vector(float(raw.get("dx", 0.0)), float(raw.get("dy", 0.0)))


def arrow_from_dict(data: dict[str, Any]) -> Arrow:
    return Arrow(
        id=str(data["id"]),
        from_node_id=data["fromNodeId"],
        to_node_id=data["toNodeId"],
        label=data.get("label"),
        bidirectional=bool(data.get("bidirectional", False)),
        control_point_offset1=_parse_vector(data.get("controlPointOffset1", data.get("delta1"))),
        control_point_offset2=_parse_vector(data.get("controlPointOffset2", data.get("delta2"))),
        style=data.get("style"),
    )


def summary_from_dict(data: dict[str, Any]) -> Summary:
    return Summary(
        id=str(data["id"]),
        parent_node_id=data["parentNodeId"],
        start_index=int(data["startIndex"]),
        end_index=int(data["endIndex"]),
        label=data.get("label") or "",
        style=data.get("style"),
    )


def document_from_dict(data: dict[str, Any]) -> Document:
    """Parse a whole snapshot.

    Arrows whose endpoints are missing and summaries whose parent or range is
    invalid are dropped with a warning, so the result always satisfies the
    document invariants.

    Raises:
        ValueError: if nodeData is missing, a node lacks an id, or ids repeat.
    """
    if "nodeData" not in data:
        msg = "Snapshot has no nodeData"
        raise ValueError(msg)
    root = node_from_dict(data["nodeData"])
    index = TreeIndex.build(root)

    arrows: list[Arrow] = []
    for raw in data.get("arrows") or ():
        arrow = arrow_from_dict(raw)
        if arrow.from_node_id not in index or arrow.to_node_id not in index:
            logger.warning("Dropping arrow {} with a missing endpoint", arrow.id)
            continue
        arrows.append(arrow)

    summaries: list[Summary] = []
    for raw in data.get("summaries") or ():
        summary = summary_from_dict(raw)
        parent = index.find(summary.parent_node_id)
        count = len(parent.children) if parent is not None else 0
        if not 0 <= summary.start_index <= summary.end_index < count:
            logger.warning("Dropping summary {} with an invalid parent or range", summary.id)
            continue
        summaries.append(summary)

    theme = data.get("theme") or "light"
    if isinstance(theme, dict):
        theme = theme.get("name") or "light"

    return Document(
        root=root,
        arrows=tuple(arrows),
        summaries=tuple(summaries),
        direction=_parse_layout_direction(data.get("direction", "side")),
        theme=str(theme),
    )


def loads(text: str) -> Document:
    return document_from_dict(json.loads(text))


# --- Geometry ---


def layout_to_dict(layouts: Layout) -> dict[str, Any]:
    """Plain-dict form of a layout, keyed by node id, plus the overall canvas bounds."""
    nodes = {
        node_id: {
            "x": placed.position.x,
            "y": placed.position.y,
            "width": placed.size.width,
            "height": placed.size.height,
            "depth": placed.depth,
            "side": placed.side,
        }
        for node_id, placed in layouts.items()
    }
    bounds = canvas_bounds(layouts)
    return {
        "nodes": nodes,
        "bounds": (
            None
            if bounds is None
            else {"x": bounds.left, "y": bounds.top, "width": bounds.width, "height": bounds.height}
        ),
    }
