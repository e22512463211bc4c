"""Tests for node measurement and the mind map layout engine."""

import pytest

from mindmap_core.core.layout.engine import (
    calculate_layout,
    canvas_bounds,
    expand_indicator_bounds,
    hyperlink_indicator_bounds,
    measure_node,
    subtree_bounds,
    summary_layout,
)
from mindmap_core.core.layout.text import ApproximateTextMeasurer
from mindmap_core.core.layout.theme import DARK, LIGHT, get_theme
from mindmap_core.core.tree import mutations
from mindmap_core.models.geometry import Point, Size
from mindmap_core.models.node import Document, LayoutDirection, Summary
from tests.unit.fakes import FixedTextMeasurer, make_node


def _layout(document: Document, direction: LayoutDirection = LayoutDirection.SIDE) -> dict:
    return calculate_layout(document.root, LIGHT, direction, measurer=FixedTextMeasurer())


# --- measure_node ---


def test_measure_root_uses_root_padding() -> None:
    size = measure_node(make_node("root", topic="Root"), 0, LIGHT, FixedTextMeasurer())
    # 4 chars * 10 + 2 * 30 horizontal padding; one 20-unit line + 2 * 10 vertical padding
    assert size == Size(100.0, 40.0)


def test_measure_main_and_deep_nodes() -> None:
    measurer = FixedTextMeasurer()
    assert measure_node(make_node("a"), 1, LIGHT, measurer) == Size(60.0, 36.0)
    assert measure_node(make_node("a"), 2, LIGHT, measurer) == Size(16.0, 26.0)


def test_measure_multiline_topic() -> None:
    size = measure_node(make_node("x", topic="ab\nabcd"), 2, LIGHT, FixedTextMeasurer())
    assert size == Size(46.0, 46.0)


def test_measure_icons_inline() -> None:
    size = measure_node(make_node("x", topic="ab", icons=("!",)), 2, LIGHT, FixedTextMeasurer())
    # 20 text + 5 icon margin + 10 icon
    assert size.width == pytest.approx(35.0 + 6.0)


def test_measure_tags_add_a_line() -> None:
    plain = measure_node(make_node("x", topic="ab"), 2, LIGHT, FixedTextMeasurer())
    tagged = measure_node(make_node("x", topic="ab", tags=("t",)), 2, LIGHT, FixedTextMeasurer())
    assert tagged.height == pytest.approx(plain.height + 12 * 1.3 + 4 + 2)


def test_measure_custom_width_is_capped() -> None:
    node = make_node("x", topic="ab", style={"width": 10_000})
    size = measure_node(node, 2, LIGHT, FixedTextMeasurer())
    assert size.width == 14 * 35


def test_measure_with_default_measurer_wraps_long_text() -> None:
    long_topic = " ".join(["word"] * 60)
    size = measure_node(make_node("x", topic=long_topic), 2)
    assert size.width <= 14 * 35
    assert size.height > 14 * 1.3 * 2


def test_approximate_measurer_wraps_on_words() -> None:
    metrics = ApproximateTextMeasurer().measure(
        "aaaa bbbb cccc", font_size=10, bold=False, max_width=52
    )
    # Nine characters fit per line: "aaaa bbbb" then "cccc".
    assert metrics.height == pytest.approx(2 * 13.0)
    assert metrics.last_line_width == pytest.approx(4 * 5.6)


def test_get_theme() -> None:
    assert get_theme("dark") is DARK
    with pytest.raises(ValueError, match="neon"):
        get_theme("neon")


# --- calculate_layout ---


def test_root_is_placed_at_origin(document: Document) -> None:
    layouts = _layout(document)
    assert layouts["root"].position == Point(0.0, 0.0)
    assert layouts["root"].depth == 0


def test_side_layout_places_children_on_both_sides(document: Document) -> None:
    layouts = _layout(document)
    root = layouts["root"]
    assert layouts["a"].side == "right"
    assert layouts["b"].side == "left"
    assert layouts["c"].side == "right"
    assert layouts["a"].position.x == root.bounds.right + LIGHT.main_gap_x
    assert layouts["b"].bounds.right == root.position.x - LIGHT.main_gap_x


def test_deeper_nodes_inherit_side(document: Document) -> None:
    layouts = _layout(document)
    assert layouts["a2x"].side == "right"
    assert layouts["a1"].position.x == layouts["a"].bounds.right + 2 * LIGHT.node_gap_x


def test_left_layout(document: Document) -> None:
    layouts = _layout(document, LayoutDirection.LEFT)
    for node_id in ("a", "b", "c", "a1", "a2x"):
        assert layouts[node_id].side == "left"
        assert layouts[node_id].bounds.right < 0


def test_right_layout_children_stack_downward(document: Document) -> None:
    layouts = _layout(document, LayoutDirection.RIGHT)
    ys = [layouts[n].position.y for n in ("a", "b", "c")]
    assert ys == sorted(ys)
    for upper, lower in (("a", "b"), ("b", "c")):
        assert not layouts[upper].bounds.overlaps(layouts[lower].bounds)


def test_single_child_is_centered_on_parent() -> None:
    document = Document(root=make_node("root", make_node("a"), topic="Root"))
    layouts = _layout(document)
    assert layouts["a"].center.y == pytest.approx(layouts["root"].center.y)


def test_layout_is_deterministic(document: Document) -> None:
    assert _layout(document) == _layout(document)


def test_collapse_removes_exactly_the_descendants(document: Document) -> None:
    collapsed = mutations.set_expanded(document, "a", False)
    full = _layout(document)
    partial = _layout(collapsed)
    assert set(full) - set(partial) == {"a1", "a2", "a2x"}


def test_collapse_then_expand_restores_geometry(document: Document) -> None:
    collapsed = mutations.set_expanded(document, "a", False)
    restored = mutations.set_expanded(collapsed, "a", True)
    assert _layout(restored) == _layout(document)


def test_focused_subtree_is_laid_out_as_root(document: Document) -> None:
    layouts = calculate_layout(document.index.get("a"), measurer=FixedTextMeasurer())
    assert set(layouts) == {"a", "a1", "a2", "a2x"}
    assert layouts["a"].position == Point(0.0, 0.0)
    assert layouts["a"].depth == 0


def test_layout_of_deep_tree() -> None:
    node = make_node("n2000")
    for i in range(1999, -1, -1):
        node = make_node(f"n{i}", node)
    layouts = calculate_layout(node, measurer=FixedTextMeasurer())
    assert len(layouts) == 2001
    assert layouts["n2000"].depth == 2000


def test_canvas_bounds_cover_all_nodes(document: Document) -> None:
    layouts = _layout(document)
    bounds = canvas_bounds(layouts)
    for placed in layouts.values():
        assert bounds.contains(Point(placed.bounds.left, placed.bounds.top))
        assert bounds.contains(Point(placed.bounds.right, placed.bounds.bottom))
    assert canvas_bounds({}) is None


def test_subtree_bounds(document: Document) -> None:
    layouts = _layout(document)
    bounds = subtree_bounds(document.index.get("a"), layouts)
    assert bounds.left == layouts["a"].bounds.left
    assert bounds.right == layouts["a2x"].bounds.right


# --- Indicators and summaries ---


def test_expand_indicator_only_for_non_root_parents(document: Document) -> None:
    layouts = _layout(document)
    index = document.index
    assert expand_indicator_bounds(index.get("root"), layouts["root"]) is None
    assert expand_indicator_bounds(index.get("b"), layouts["b"]) is None
    toggle = expand_indicator_bounds(index.get("a"), layouts["a"])
    assert toggle.left > layouts["a"].bounds.right
    assert toggle.center.y == pytest.approx(layouts["a"].center.y)


def test_expand_indicator_on_left_side_sits_left() -> None:
    document = Document(
        root=make_node("root", make_node("a", make_node("a1")), topic="Root"),
        direction=LayoutDirection.LEFT,
    )
    layouts = _layout(document, LayoutDirection.LEFT)
    toggle = expand_indicator_bounds(document.index.get("a"), layouts["a"])
    assert toggle.right < layouts["a"].bounds.left


def test_hyperlink_indicator_in_bottom_right_corner() -> None:
    node = make_node("x", hyperlink="https://example.com")
    layouts = calculate_layout(node, measurer=FixedTextMeasurer())
    badge = hyperlink_indicator_bounds(node, layouts["x"])
    box = layouts["x"].bounds
    assert badge.right == pytest.approx(box.right - LIGHT.hyperlink_indicator_inset)
    assert badge.bottom == pytest.approx(box.bottom - LIGHT.hyperlink_indicator_inset)
    assert hyperlink_indicator_bounds(make_node("y"), layouts["x"]) is None


def test_summary_bracket_beside_covered_children(document: Document) -> None:
    summary = Summary("s", "a", 0, 1)
    layouts = _layout(document)
    placed = summary_layout(summary, document.index, layouts)
    covered = subtree_bounds(document.index.get("a"), layouts)
    assert placed.side == "right"
    assert placed.bracket.left == pytest.approx(covered.right + LIGHT.summary_gap)
    assert placed.bracket.top == pytest.approx(layouts["a1"].bounds.top)


def test_summary_hidden_when_parent_collapsed(document: Document) -> None:
    collapsed = mutations.set_expanded(document, "a", False)
    layouts = _layout(collapsed)
    assert summary_layout(Summary("s", "a", 0, 1), collapsed.index, layouts) is None
    assert summary_layout(Summary("s", "a", 0, 7), document.index, _layout(document)) is None
