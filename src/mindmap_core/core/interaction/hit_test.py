"""Resolve what a tap at a canvas point refers to."""

from dataclasses import dataclass
from enum import StrEnum

from mindmap_core.core.layout.arrows import arrow_curve, is_near_curve
from mindmap_core.core.layout.engine import (
    Layout,
    expand_indicator_bounds,
    hyperlink_indicator_bounds,
    summary_layout,
)
from mindmap_core.core.layout.theme import LIGHT, ThemeMetrics
from mindmap_core.models.geometry import Point, Rect
from mindmap_core.models.node import Document


class HitKind(StrEnum):
    HYPERLINK = "hyperlink"
    EXPAND_TOGGLE = "expand_toggle"
    NODE = "node"
    SUMMARY = "summary"
    ARROW = "arrow"
    EMPTY = "empty"


@dataclass(frozen=True)
class Hit:
    """The thing under a tap. EMPTY hits start a rectangular selection."""

    kind: HitKind
    node_id: str | None = None
    arrow_id: str | None = None
    summary_id: str | None = None
    url: str | None = None


EMPTY_HIT = Hit(HitKind.EMPTY)


def hit_test(
    point: Point,
    document: Document,
    layouts: Layout,
    theme: ThemeMetrics = LIGHT,
    *,
    scale: float = 1.0,
) -> Hit:
    """Find what is under a canvas point.

    Precedence: hyperlink indicator, expand indicator, node body, summary
    bracket, arrow curve, then empty space. Within one kind the item laid out
    or added last wins.
    """
    index = document.index
    visible = [
        (index.get(node_id), layout)
        for node_id, layout in reversed(layouts.items())
        if node_id in index
    ]

    for node, layout in visible:
        bounds = hyperlink_indicator_bounds(node, layout, theme)
        if bounds is not None and bounds.contains(point):
            return Hit(HitKind.HYPERLINK, node_id=node.id, url=node.hyperlink)

    for node, layout in visible:
        bounds = expand_indicator_bounds(node, layout, theme)
        if bounds is not None and bounds.contains(point):
            return Hit(HitKind.EXPAND_TOGGLE, node_id=node.id)

    for node, layout in visible:
        if layout.bounds.contains(point):
            return Hit(HitKind.NODE, node_id=node.id)

    for summary in reversed(document.summaries):
        placed = summary_layout(summary, index, layouts, theme)
        if placed is not None and placed.bracket.inflate(4.0 / scale).contains(point):
            return Hit(HitKind.SUMMARY, summary_id=summary.id)

    for arrow in reversed(document.arrows):
        curve = arrow_curve(arrow, layouts)
        if curve is not None and is_near_curve(point, curve, scale=scale):
            return Hit(HitKind.ARROW, arrow_id=arrow.id)

    return EMPTY_HIT


def nodes_in_rect(layouts: Layout, rect: Rect) -> list[str]:
    """Ids of visible nodes whose box intersects rect, in layout order."""
    return [node_id for node_id, layout in layouts.items() if layout.bounds.overlaps(rect)]
