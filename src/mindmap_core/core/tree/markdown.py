"""Render node subtrees as markdown."""

import io

from mindmap_core.models.node import Document, Node


def render_subtree_as_markdown(
    document: Document,
    *,
    node_id: str | None = None,
    max_depth: int | None = None,
    include_notes: bool = True,
    include_ids: bool = False,
) -> str:
    """Render a node and its descendants as indented markdown.

    Args:
        document: The snapshot to render from.
        node_id: The node to start rendering from (None = root).
        max_depth: Max levels below the start node to include (None = unlimited).
        include_notes: Whether to include node notes.
        include_ids: Append each node's id to its line.

    Returns:
        Markdown string with bullet-list hierarchy.

    Raises:
        NodeNotFound: if node_id is not in the document.
    """
    start = document.index.get(node_id) if node_id is not None else document.root

    out = io.StringIO()
    stack: list[tuple[Node, int]] = [(start, 0)]
    while stack:
        node, relative_depth = stack.pop()
        indent = "    " * relative_depth

        # Write topic lines
        lines = node.topic.split("\n")
        suffix = f"  `{node.id}`" if include_ids else ""
        marker = "" if node.expanded or not node.children else " (collapsed)"
        out.write(f"{indent}- {lines[0]}{marker}{suffix}\n")
        for line in lines[1:]:
            out.write(f"{indent}  {line}\n")

        if node.hyperlink:
            out.write(f"{indent}  <{node.hyperlink}>\n")
        if node.tags:
            out.write(f"{indent}  " + " ".join(f"#{tag}" for tag in node.tags) + "\n")

        # Write notes
        if include_notes and node.note:
            for note_line in node.note.split("\n"):
                out.write(f"{indent}  > {note_line}\n")

        # Truncation indicator when children are cut off by max_depth
        if max_depth is not None and relative_depth == max_depth and node.children:
            child_indent = "    " * (relative_depth + 1)
            count = len(node.children)
            noun = "child" if count == 1 else "children"
            out.write(f"{child_indent}- ... ({count} more {noun}, id={node.id})\n")
            continue

        stack.extend((child, relative_depth + 1) for child in reversed(node.children))

    return out.getvalue()
