"""Tests for markdown rendering of node trees."""

import pytest

from mindmap_core.core.tree import mutations
from mindmap_core.core.tree.markdown import render_subtree_as_markdown
from mindmap_core.errors import NodeNotFound
from mindmap_core.models.node import Document


def test_render_full_tree(document: Document) -> None:
    md = render_subtree_as_markdown(document)
    assert md == (
        "- Root\n"
        "    - A\n"
        "        - A1\n"
        "        - A2\n"
        "            - A2X\n"
        "    - B\n"
        "    - C\n"
    )


def test_render_subtree_with_depth_limit_shows_truncation(document: Document) -> None:
    """Nodes at the depth boundary with children show a truncation indicator."""
    md = render_subtree_as_markdown(document, max_depth=1)
    assert "    - ... (2 more children, id=a)\n" in md
    assert "A1" not in md
    # Leaf nodes at the boundary get no indicator
    assert "id=b" not in md


def test_render_subtree_from_node(document: Document) -> None:
    md = render_subtree_as_markdown(document, node_id="a2")
    assert md == "- A2\n    - A2X\n"


def test_render_unknown_node_raises(document: Document) -> None:
    with pytest.raises(NodeNotFound):
        render_subtree_as_markdown(document, node_id="missing")


def test_render_with_ids(document: Document) -> None:
    md = render_subtree_as_markdown(document, node_id="a2", include_ids=True)
    assert md == "- A2  `a2`\n    - A2X  `a2x`\n"


def test_render_notes_links_and_tags(document: Document) -> None:
    doc = mutations.set_note(document, "b", "first\nsecond")
    doc = mutations.set_hyperlink(doc, "b", "https://example.com")
    doc = mutations.set_tags(doc, "b", ["x", "y"])

    md = render_subtree_as_markdown(doc, node_id="b")
    assert md == "- B\n  <https://example.com>\n  #x #y\n  > first\n  > second\n"

    without_notes = render_subtree_as_markdown(doc, node_id="b", include_notes=False)
    assert "> first" not in without_notes


def test_render_multiline_topic_and_collapsed_marker(document: Document) -> None:
    doc = mutations.update_topic(document, "a", "line one\nline two")
    doc = mutations.set_expanded(doc, "a", False)

    md = render_subtree_as_markdown(doc, max_depth=1)
    assert "    - line one (collapsed)\n      line two\n" in md
