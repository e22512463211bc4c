"""Tests for drag-and-drop gesture tracking."""

import pytest

from mindmap_core.core.interaction.drag import DragManager, find_drop_target
from mindmap_core.core.interaction.zoom_pan import Transform
from mindmap_core.core.layout.engine import Layout, calculate_layout
from mindmap_core.events import DragTargetChangedEvent, EventBus
from mindmap_core.models.geometry import Point, Vector
from mindmap_core.models.node import Document
from tests.unit.fakes import FixedTextMeasurer, RecordingSink


@pytest.fixture
def layouts(document: Document) -> Layout:
    return calculate_layout(document.root, measurer=FixedTextMeasurer())


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def drag(sink: RecordingSink) -> DragManager:
    bus = EventBus()
    bus.subscribe_all(sink)
    return DragManager(bus)


def test_find_drop_target(document: Document, layouts: Layout) -> None:
    index = document.index
    assert find_drop_target(layouts["c"].center, "a", layouts, index) == "c"
    assert find_drop_target(layouts["root"].center, "a2x", layouts, index) == "root"


def test_node_and_descendants_are_not_targets(document: Document, layouts: Layout) -> None:
    index = document.index
    assert find_drop_target(layouts["a"].center, "a", layouts, index) is None
    assert find_drop_target(layouts["a2x"].center, "a", layouts, index) is None
    assert find_drop_target(Point(-5000.0, 0.0), "a", layouts, index) is None


def test_drag_tracks_target_and_publishes_changes(
    drag: DragManager, sink: RecordingSink, document: Document, layouts: Layout
) -> None:
    drag.start_drag("b", Point(0.0, 0.0))
    assert drag.is_dragging
    assert drag.update_drag(layouts["c"].center, layouts, document) == "c"
    assert drag.update_drag(layouts["c"].center, layouts, document) == "c"
    assert sink.events == [DragTargetChangedEvent("b", "c")]
    assert drag.end_drag() == "c"
    assert not drag.is_dragging
    assert sink.events[-1] == DragTargetChangedEvent("b", None)


def test_update_converts_screen_to_canvas(
    drag: DragManager, document: Document, layouts: Layout
) -> None:
    transform = Transform(2.0, Vector(100.0, 0.0))
    screen = transform.to_screen(layouts["c"].center)
    drag.start_drag("b", screen)
    assert drag.update_drag(screen, layouts, document, transform) == "c"


def test_end_without_target(drag: DragManager, document: Document, layouts: Layout) -> None:
    drag.start_drag("b", Point(0.0, 0.0))
    drag.update_drag(Point(-5000.0, 0.0), layouts, document)
    assert drag.end_drag() is None


def test_not_dragging(drag: DragManager, document: Document, layouts: Layout) -> None:
    assert drag.update_drag(Point(0.0, 0.0), layouts, document) is None
    assert drag.end_drag() is None
    drag.cancel_drag()
    assert drag.state is None


def test_cancel_discards_target(
    drag: DragManager, sink: RecordingSink, document: Document, layouts: Layout
) -> None:
    drag.start_drag("b", Point(0.0, 0.0))
    drag.update_drag(layouts["c"].center, layouts, document)
    drag.cancel_drag()
    assert drag.target_id is None
    assert drag.end_drag() is None
    assert sink.events[-1] == DragTargetChangedEvent("b", None)
