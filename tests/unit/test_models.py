"""Tests for domain and geometry models."""

import pytest

from mindmap_core.models.geometry import Point, Rect, Vector
from mindmap_core.models.node import Arrow, Document, Node, Summary
from mindmap_core.models.selection import SelectionState
from tests.unit.fakes import make_node


def test_node_is_frozen() -> None:
    node = Node(id="a", topic="A")
    with pytest.raises(AttributeError):
        node.topic = "changed"  # type: ignore[misc]


def test_node_defaults() -> None:
    node = Node(id="a", topic="A")
    assert node.children == ()
    assert node.expanded
    assert node.style is None
    assert node.note == ""
    assert not node.has_children


def test_evolve_returns_copy() -> None:
    node = Node(id="a", topic="A")
    changed = node.evolve(topic="B")
    assert changed.topic == "B"
    assert node.topic == "A"


def test_iter_preorder(document: Document) -> None:
    assert [n.id for n in document.root.iter_preorder()] == document.index.ids()


def test_document_new() -> None:
    document = Document.new("Ideas")
    assert document.root == Node(id="root", topic="Ideas")
    assert Document.new(root_id="r").root.topic == "Central Topic"


def test_document_index_is_cached_per_snapshot(document: Document) -> None:
    assert document.index is document.index
    assert document.evolve(theme="dark").index is not document.index


def test_get_arrow_and_summary() -> None:
    arrow = Arrow("x", "a", "b")
    summary = Summary("s", "root", 0, 0)
    document = Document(
        root=make_node("root", make_node("a"), make_node("b")),
        arrows=(arrow,),
        summaries=(summary,),
    )
    assert document.get_arrow("x") is arrow
    assert document.get_arrow("y") is None
    assert document.get_summary("s") is summary
    assert document.get_summary("t") is None


def test_arrow_defaults_to_uncustomised_offsets() -> None:
    arrow = Arrow("x", "a", "b")
    assert arrow.control_point_offset1.is_zero
    assert arrow.control_point_offset2.is_zero
    assert not arrow.bidirectional


# --- Geometry ---


def test_point_and_vector_arithmetic() -> None:
    assert Point(1.0, 2.0) + Vector(3.0, 4.0) == Point(4.0, 6.0)
    assert Point(4.0, 6.0) - Point(1.0, 2.0) == Vector(3.0, 4.0)
    assert Point(0.0, 0.0).distance_to(Point(3.0, 4.0)) == 5.0
    assert Vector(1.0, -2.0).scaled(2.0) == Vector(2.0, -4.0)


def test_rect_helpers() -> None:
    rect = Rect.from_points(Point(10.0, 20.0), Point(0.0, 0.0))
    assert rect == Rect(0.0, 0.0, 10.0, 20.0)
    assert (rect.right, rect.bottom) == (10.0, 20.0)
    assert rect.center == Point(5.0, 10.0)
    assert rect.contains(Point(10.0, 20.0))
    assert not rect.contains(Point(10.1, 5.0))
    assert rect.overlaps(Rect(9.0, 19.0, 5.0, 5.0))
    assert not rect.overlaps(Rect(11.0, 0.0, 1.0, 1.0))
    assert rect.inflate(1.0) == Rect(-1.0, -1.0, 12.0, 22.0)
    assert rect.union(Rect(20.0, 30.0, 1.0, 1.0)) == Rect(0.0, 0.0, 21.0, 31.0)
    assert Rect.from_center(Point(5.0, 5.0), 4.0, 2.0) == Rect(3.0, 4.0, 4.0, 2.0)


# --- Selection state ---


def test_selection_state_helpers() -> None:
    state = SelectionState(("a", "b"), "x", "b")
    assert state.last_selected_id == "b"
    assert SelectionState().last_selected_id is None
    assert state.without_nodes({"b"}) == SelectionState(("a",), "x", None)
