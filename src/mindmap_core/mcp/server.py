"""MCP server exposing mind map documents for reading and editing."""

import asyncio
import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from mindmap_core.config import DEFAULT_ROOT_TOPIC, LOG_FILE_ENV, resolve_document_directory
from mindmap_core.controller import MindMapController
from mindmap_core.core.snapshot.json_codec import layout_to_dict
from mindmap_core.core.tree.markdown import render_subtree_as_markdown
from mindmap_core.errors import MindMapError
from mindmap_core.models.node import Document
from mindmap_core.storage import DocumentStore


def _error(message: str) -> dict[str, Any]:
    return {"success": False, "error": message}


def _load(store: DocumentStore, document: str) -> Document | dict[str, Any]:
    """The parsed document, or an error dict."""
    try:
        loaded = store.try_load(document)
    except ValueError as e:
        return _error(f"Cannot read document '{document}': {e}")
    if loaded is None:
        return _error(f"Document '{document}' not found.")
    return loaded


def _apply(
    store: DocumentStore,
    document: str,
    action: Callable[[MindMapController], dict[str, Any]],
) -> dict[str, Any]:
    """Load a document, run one controller action and save it if the action succeeded."""
    loaded = _load(store, document)
    if isinstance(loaded, dict):
        return loaded
    controller = MindMapController(loaded)
    try:
        result = action(controller)
    except MindMapError as e:
        return _error(str(e))
    store.save(document, controller.document)
    return {"success": True, **result}


# --- Core functions (testable without MCP context) ---


def mindmap_list_documents(store: DocumentStore) -> dict[str, Any]:
    """List all documents in the document directory."""
    names = store.list_documents()
    return {"documents": names, "count": len(names)}


def mindmap_create_document(
    store: DocumentStore, *, document: str, topic: str = DEFAULT_ROOT_TOPIC
) -> dict[str, Any]:
    """Create a new document holding only a root node.

    Args:
        document: Name of the new document.
        topic: Root topic.
    """
    try:
        if store.exists(document):
            return _error(f"Document '{document}' already exists.")
        created = Document.new(topic)
        store.save(document, created)
    except ValueError as e:
        return _error(str(e))
    return {"success": True, "document": document, "root_id": created.root.id}


def mindmap_read(
    store: DocumentStore,
    *,
    document: str,
    node_id: str | None = None,
    max_depth: int | None = None,
    include_notes: bool = True,
) -> dict[str, Any]:
    """Read a document or a subtree as markdown with node ids.

    Args:
        document: Document name.
        node_id: Start node (None = root).
        max_depth: Max levels below the start node (None = unlimited).
        include_notes: Whether to include node notes.
    """
    loaded = _load(store, document)
    if isinstance(loaded, dict):
        return loaded
    try:
        markdown = render_subtree_as_markdown(
            loaded,
            node_id=node_id,
            max_depth=max_depth,
            include_notes=include_notes,
            include_ids=True,
        )
    except MindMapError as e:
        return _error(str(e))
    return {
        "document": document,
        "node_id": node_id or loaded.root.id,
        "node_count": len(loaded.index),
        "arrow_count": len(loaded.arrows),
        "summary_count": len(loaded.summaries),
        "markdown": markdown,
    }


def mindmap_add_node(
    store: DocumentStore,
    *,
    document: str,
    parent_id: str,
    topic: str,
    note: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Add a child node.

    Args:
        document: Document name.
        parent_id: Parent node ID.
        topic: Topic for the new node.
        note: Optional note text.
        index: Position among siblings (None = last).
    """

    def action(controller: MindMapController) -> dict[str, Any]:
        payload: dict[str, Any] = {"note": note} if note else {}
        node_id = controller.add_child(parent_id, topic, **payload)
        if index is not None:
            controller.move_node(node_id, parent_id, index)
        return {"node_id": node_id, "parent_id": parent_id}

    return _apply(store, document, action)


def mindmap_edit_node(
    store: DocumentStore,
    *,
    document: str,
    node_id: str,
    topic: str | None = None,
    note: str | None = None,
    hyperlink: str | None = None,
    tags: list[str] | None = None,
    expanded: bool | None = None,
) -> dict[str, Any]:
    """Edit a node's topic, note, hyperlink, tags or expanded state.

    Args:
        document: Document name.
        node_id: Node ID to edit.
        topic: New topic text.
        note: New note text.
        hyperlink: New hyperlink ("" removes it).
        tags: Replacement tag list.
        expanded: Expand (True) or collapse (False).
    """

    def action(controller: MindMapController) -> dict[str, Any]:
        changed = False
        if topic is not None:
            changed |= controller.update_topic(node_id, topic)
        if note is not None:
            changed |= controller.set_note(node_id, note)
        if hyperlink is not None:
            changed |= controller.set_hyperlink(node_id, hyperlink)
        if tags is not None:
            changed |= controller.set_tags(node_id, tags)
        if expanded is not None:
            changed |= controller.set_expanded(node_id, expanded)
        return {"node_id": node_id, "changed": changed}

    return _apply(store, document, action)


def mindmap_move_node(
    store: DocumentStore,
    *,
    document: str,
    node_id: str,
    new_parent_id: str,
    index: int | None = None,
) -> dict[str, Any]:
    """Move a node under a new parent.

    Args:
        document: Document name.
        node_id: Node to move.
        new_parent_id: Target parent.
        index: Position among the target's current children (None = last).
    """

    def action(controller: MindMapController) -> dict[str, Any]:
        result = controller.move_node(node_id, new_parent_id, index)
        return {
            "node_id": node_id,
            "changed": result.changed,
            "old_parent_id": result.old_parent_id,
            "new_parent_id": result.new_parent_id,
            "new_index": result.new_index,
        }

    return _apply(store, document, action)


def mindmap_remove_node(store: DocumentStore, *, document: str, node_id: str) -> dict[str, Any]:
    """Remove a node and its whole subtree.

    Args:
        document: Document name.
        node_id: Node to remove (not the root).
    """

    def action(controller: MindMapController) -> dict[str, Any]:
        removed = controller.remove_node(node_id)
        return {"removed_ids": sorted(removed), "count": len(removed)}

    return _apply(store, document, action)


def mindmap_layout(
    store: DocumentStore, *, document: str, focus_node_id: str | None = None
) -> dict[str, Any]:
    """Compute node geometry for a document, optionally in focus mode.

    Args:
        document: Document name.
        focus_node_id: Lay out only this node's subtree.
    """
    loaded = _load(store, document)
    if isinstance(loaded, dict):
        return loaded
    controller = MindMapController(loaded)
    if focus_node_id is not None:
        try:
            controller.focus_node(focus_node_id)
        except MindMapError as e:
            return _error(str(e))
    return {"document": document, **layout_to_dict(controller.layout())}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    store: DocumentStore
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the document directory on startup, creating it if needed."""
    directory = resolve_document_directory()
    directory.mkdir(parents=True, exist_ok=True)
    logger.info("Serving documents from {}", directory)
    yield ServerContext(store=DocumentStore(directory))


mcp_server = FastMCP(
    "mindmap",
    instructions="""\
Mind maps are trees of topics around one central root topic. Every node has
an id; reading a document returns markdown with each node's id in backticks.

## Workflow

1. List documents with mindmap_list_documents_tool.
2. Read a document with mindmap_read_tool to learn node ids.
3. Edit with the add/edit/move/remove tools, always passing ids you just read.

## Tips
- Use max_depth=2 or 3 on large maps.
- The root cannot be removed, and a node cannot move under its own subtree.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def mindmap_list_documents_tool(ctx: Context) -> dict[str, Any]:
    """List all mind map documents."""
    return mindmap_list_documents(_ctx(ctx).store)


@mcp_server.tool()
async def mindmap_create_document_tool(
    ctx: Context, document: str, topic: str = DEFAULT_ROOT_TOPIC
) -> dict[str, Any]:
    """Create a new mind map document holding only a root node.

    Args:
        document: Name of the new document.
        topic: Root topic.
    """
    async with _ctx(ctx).write_lock:
        return mindmap_create_document(_ctx(ctx).store, document=document, topic=topic)


@mcp_server.tool()
async def mindmap_read_tool(
    ctx: Context,
    document: str,
    node_id: str | None = None,
    max_depth: int | None = None,
    include_notes: bool = True,
) -> dict[str, Any]:
    """Read a mind map (or one subtree) as markdown, with node ids in backticks.

    Args:
        document: Document name.
        node_id: Start node (None = root).
        max_depth: Max levels below the start node (None = unlimited).
        include_notes: Whether to include node notes.
    """
    return mindmap_read(
        _ctx(ctx).store,
        document=document,
        node_id=node_id,
        max_depth=max_depth,
        include_notes=include_notes,
    )


@mcp_server.tool()
async def mindmap_add_node_tool(
    ctx: Context,
    document: str,
    parent_id: str,
    topic: str,
    note: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Add a child node under a parent.

    Args:
        document: Document name.
        parent_id: Parent node ID.
        topic: Topic for the new node.
        note: Optional note text.
        index: Position among siblings (None = last).
    """
    async with _ctx(ctx).write_lock:
        return mindmap_add_node(
            _ctx(ctx).store,
            document=document,
            parent_id=parent_id,
            topic=topic,
            note=note,
            index=index,
        )


@mcp_server.tool()
async def mindmap_edit_node_tool(
    ctx: Context,
    document: str,
    node_id: str,
    topic: str | None = None,
    note: str | None = None,
    hyperlink: str | None = None,
    tags: list[str] | None = None,
    expanded: bool | None = None,
) -> dict[str, Any]:
    """Edit a node's topic, note, hyperlink, tags or expanded state.

    Args:
        document: Document name.
        node_id: Node ID to edit.
        topic: New topic text.
        note: New note text.
        hyperlink: New hyperlink ("" removes it).
        tags: Replacement tag list.
        expanded: Expand (True) or collapse (False).
    """
    async with _ctx(ctx).write_lock:
        return mindmap_edit_node(
            _ctx(ctx).store,
            document=document,
            node_id=node_id,
            topic=topic,
            note=note,
            hyperlink=hyperlink,
            tags=tags,
            expanded=expanded,
        )


@mcp_server.tool()
async def mindmap_move_node_tool(
    ctx: Context,
    document: str,
    node_id: str,
    new_parent_id: str,
    index: int | None = None,
) -> dict[str, Any]:
    """Move a node under a new parent. Moving a node into its own subtree fails.

    Args:
        document: Document name.
        node_id: Node to move.
        new_parent_id: Target parent.
        index: Position among the target's current children (None = last).
    """
    async with _ctx(ctx).write_lock:
        return mindmap_move_node(
            _ctx(ctx).store,
            document=document,
            node_id=node_id,
            new_parent_id=new_parent_id,
            index=index,
        )


@mcp_server.tool()
async def mindmap_remove_node_tool(ctx: Context, document: str, node_id: str) -> dict[str, Any]:
    """Remove a node and its whole subtree. The root cannot be removed.

    Args:
        document: Document name.
        node_id: Node to remove.
    """
    async with _ctx(ctx).write_lock:
        return mindmap_remove_node(_ctx(ctx).store, document=document, node_id=node_id)


@mcp_server.tool()
async def mindmap_layout_tool(
    ctx: Context, document: str, focus_node_id: str | None = None
) -> dict[str, Any]:
    """Compute node positions and sizes for a document.

    Args:
        document: Document name.
        focus_node_id: Lay out only this node's subtree.
    """
    return mindmap_layout(_ctx(ctx).store, document=document, focus_node_id=focus_node_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from mindmap_core.logging_config import configure_logging

    log_file = os.environ.get(LOG_FILE_ENV)
    configure_logging(log_file=Path(log_file) if log_file else None)
    mcp_server.run(transport="stdio")
