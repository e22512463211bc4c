"""Layout engine: turn a node tree into absolute geometry for every visible node.

The root is placed at the origin. Children are stacked vertically beside their
parent, centered on the parent's vertical center, each one centered in a slot
as tall as its visible subtree so that neighbouring subtrees never overlap.
Collapsed nodes hide their descendants from the output entirely.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mindmap_core.core.layout.text import ApproximateTextMeasurer
from mindmap_core.core.layout.theme import LIGHT, ThemeMetrics
from mindmap_core.core.tree.index import TreeIndex, assign_root_sides
from mindmap_core.models.geometry import NodeLayout, Point, Rect, Size
from mindmap_core.models.node import LayoutDirection, Node, Summary
from mindmap_core.protocols import TextMeasurer

Layout = dict[str, NodeLayout]

_DEFAULT_MEASURER = ApproximateTextMeasurer()


def _style_value(style: Mapping[str, Any] | None, key: str) -> Any:
    return style.get(key) if style else None


def _is_bold(node: Node, depth: int) -> bool:
    weight = _style_value(node.style, "fontWeight")
    if weight is None:
        return depth == 0
    if isinstance(weight, str):
        return weight == "bold"
    # Numeric weights are indices w100..w900; w700 (index 6) and up are bold.
    return int(weight) >= 6


def measure_node(
    node: Node,
    depth: int,
    theme: ThemeMetrics = LIGHT,
    measurer: TextMeasurer | None = None,
) -> Size:
    """Compute the box size of one node.

    Text is wrapped at 35em of the node's font size. Icons follow the last
    text line when they fit, else wrap to a line of their own; tags flow on
    lines below the text. A ``width`` in the style overrides the computed
    width, still capped by the maximum box width.
    """
    measurer = measurer or _DEFAULT_MEASURER
    padding = theme.padding_for(depth)
    pad_x, pad_y = padding.horizontal * 2, padding.vertical * 2
    font_size = float(_style_value(node.style, "fontSize") or theme.font_size_for(depth))
    bold = _is_bold(node, depth)

    max_box_width = font_size * theme.max_width_em
    max_content_width = max(0.0, max_box_width - pad_x)

    text = measurer.measure(node.topic, font_size=font_size, bold=bold, max_width=max_content_width)

    inline_width = text.width
    extra_height = 0.0
    if node.icons:
        icons = measurer.measure("".join(node.icons), font_size=font_size, bold=bold, max_width=0)
        extras_width = theme.icon_margin + icons.width
        if text.last_line_width + extras_width <= max_content_width:
            inline_width = max(text.width, text.last_line_width + extras_width)
        else:
            inline_width = max(text.width, min(extras_width, max_content_width))
            extra_height = text.line_height

    tags_width = 0.0
    tag_lines = 0
    if node.tags:
        line_width = 0.0
        for tag in node.tags:
            tag_text = measurer.measure(tag, font_size=theme.tag_font_size, bold=False, max_width=0)
            tag_width = tag_text.width + theme.tag_padding_x + theme.tag_margin
            if line_width > 0 and line_width + tag_width > max_content_width:
                tags_width = max(tags_width, line_width - theme.tag_margin)
                line_width = 0.0
                tag_lines += 1
            line_width += tag_width
        if line_width > 0:
            tags_width = max(tags_width, line_width - theme.tag_margin)
            tag_lines += 1
        tags_width = min(tags_width, max_content_width)

    content_width = min(max_content_width, max(inline_width, tags_width))
    width = min(content_width + pad_x, max_box_width)

    content_height = text.height + extra_height
    if tag_lines:
        tag_line_height = theme.tag_font_size * 1.3 + theme.tag_padding_y
        content_height += tag_lines * (tag_line_height + theme.tag_margin_top)
    height = content_height + pad_y

    custom_width = _style_value(node.style, "width")
    if custom_width is not None:
        width = min(float(custom_width), max_box_width)

    return Size(width, height)


def calculate_layout(
    root: Node,
    theme: ThemeMetrics = LIGHT,
    direction: LayoutDirection = LayoutDirection.SIDE,
    *,
    measurer: TextMeasurer | None = None,
) -> Layout:
    """Compute the geometry of every visible node under root.

    Pass a focused node as root to lay out focus mode; it is then treated
    exactly like the document root.

    Args:
        root: Traversal root.
        theme: Spacing and sizing metrics.
        direction: Place subtrees left, right, or on both sides of the root.
        measurer: Text measurement; defaults to an approximate font-free measurer.

    Returns:
        Mapping from node id to NodeLayout, for visible nodes only.
    """
    measurer = measurer or _DEFAULT_MEASURER
    sizes, subtree_heights = _measure_visible(root, theme, measurer)

    layouts: Layout = {root.id: NodeLayout(root.id, Point(0.0, 0.0), sizes[root.id], 0, "right")}
    root_sides = assign_root_sides(root, direction)

    stack: list[tuple[Node, int]] = [(root, 0)]
    while stack:
        parent, depth = stack.pop()
        if not parent.expanded or not parent.children:
            continue
        parent_layout = layouts[parent.id]

        if depth == 0:
            groups = {
                side: [c for c in parent.children if root_sides[c.id] == side]
                for side in (LayoutDirection.LEFT, LayoutDirection.RIGHT)
            }
        else:
            groups = {LayoutDirection(parent_layout.side): list(parent.children)}

        gap_x, gap_y = theme.gaps_below(depth)
        parent_center_y = parent_layout.position.y + parent_layout.size.height / 2
        for side, children in groups.items():
            if not children:
                continue
            total = sum(subtree_heights[c.id] for c in children) + gap_y * (len(children) - 1)
            current_y = parent_center_y - total / 2
            for child in children:
                size = sizes[child.id]
                if side is LayoutDirection.LEFT:
                    x = parent_layout.position.x - gap_x - size.width
                else:
                    x = parent_layout.position.x + parent_layout.size.width + gap_x
                y = current_y + (subtree_heights[child.id] - size.height) / 2
                layouts[child.id] = NodeLayout(child.id, Point(x, y), size, depth + 1, side.value)
                current_y += subtree_heights[child.id] + gap_y
        stack.extend((child, depth + 1) for child in reversed(parent.children))

    return layouts


def _measure_visible(
    root: Node, theme: ThemeMetrics, measurer: TextMeasurer
) -> tuple[dict[str, Size], dict[str, float]]:
    """Sizes and visible-subtree heights of every visible node, computed bottom-up."""
    sizes: dict[str, Size] = {}
    heights: dict[str, float] = {}
    stack: list[tuple[Node, int, bool]] = [(root, 0, False)]
    while stack:
        node, depth, visited = stack.pop()
        visible_children = node.children if node.expanded else ()
        if not visited:
            sizes[node.id] = measure_node(node, depth, theme, measurer)
            stack.append((node, depth, True))
            stack.extend((child, depth + 1, False) for child in visible_children)
            continue
        height = sizes[node.id].height
        if visible_children:
            _, gap_y = theme.gaps_below(depth)
            gaps = gap_y * (len(visible_children) - 1)
            total = sum(heights[c.id] for c in visible_children) + gaps
            height = max(height, total)
        heights[node.id] = height
    return sizes, heights


def canvas_bounds(layouts: Layout) -> Rect | None:
    """Smallest rectangle containing every laid-out node."""
    bounds: Rect | None = None
    for layout in layouts.values():
        bounds = layout.bounds if bounds is None else bounds.union(layout.bounds)
    return bounds


# --- Auxiliary geometry ---


def expand_indicator_bounds(
    node: Node, layout: NodeLayout, theme: ThemeMetrics = LIGHT
) -> Rect | None:
    """Bounds of the expand/collapse toggle just outside the node's trailing edge.

    Only nodes with children get one, and never the traversal root.
    """
    if not node.children or layout.depth == 0:
        return None
    bounds = layout.bounds
    offset = theme.expand_indicator_padding + theme.expand_indicator_size / 2
    x = bounds.left - offset if layout.side == LayoutDirection.LEFT else bounds.right + offset
    size = theme.expand_indicator_size
    return Rect.from_center(Point(x, bounds.center.y), size, size)


def hyperlink_indicator_bounds(
    node: Node, layout: NodeLayout, theme: ThemeMetrics = LIGHT
) -> Rect | None:
    """Bounds of the link badge in the node's bottom-right corner, for nodes with a hyperlink."""
    if not node.hyperlink:
        return None
    bounds = layout.bounds
    inset = theme.hyperlink_indicator_size + theme.hyperlink_indicator_inset
    return Rect(
        bounds.right - inset,
        bounds.bottom - inset,
        theme.hyperlink_indicator_size,
        theme.hyperlink_indicator_size,
    )


def subtree_bounds(node: Node, layouts: Layout) -> Rect | None:
    """Union of the boxes of a node and its visible descendants."""
    bounds: Rect | None = None
    for descendant in node.iter_preorder():
        layout = layouts.get(descendant.id)
        if layout is None:
            continue
        bounds = layout.bounds if bounds is None else bounds.union(layout.bounds)
    return bounds


@dataclass(frozen=True)
class SummaryLayout:
    """Geometry of a summary bracket and where its label starts."""

    summary_id: str
    bracket: Rect
    label_anchor: Point
    side: str


def summary_layout(
    summary: Summary, index: TreeIndex, layouts: Layout, theme: ThemeMetrics = LIGHT
) -> SummaryLayout | None:
    """Place a summary's bracket beside the children it covers.

    Returns None when the parent is collapsed or hidden, or the range no longer
    matches its children.
    """
    parent = index.find(summary.parent_node_id)
    if parent is None or summary.parent_node_id not in layouts or not parent.expanded:
        return None
    if not 0 <= summary.start_index <= summary.end_index < len(parent.children):
        return None

    covered = parent.children[summary.start_index : summary.end_index + 1]
    bounds: Rect | None = None
    for child in covered:
        child_bounds = subtree_bounds(child, layouts)
        if child_bounds is not None:
            bounds = child_bounds if bounds is None else bounds.union(child_bounds)
    if bounds is None:
        return None

    side = layouts[covered[0].id].side
    width = theme.summary_bracket_width
    if side == LayoutDirection.LEFT:
        bracket = Rect(bounds.left - theme.summary_gap - width, bounds.top, width, bounds.height)
        anchor = Point(bracket.left - theme.summary_gap, bracket.center.y)
    else:
        bracket = Rect(bounds.right + theme.summary_gap, bounds.top, width, bounds.height)
        anchor = Point(bracket.right + theme.summary_gap, bracket.center.y)
    return SummaryLayout(summary.id, bracket, anchor, side)
