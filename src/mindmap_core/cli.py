"""CLI for mind map documents (create, edit, render, MCP server)."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from loguru import logger

from mindmap_core.config import DEFAULT_ROOT_TOPIC, resolve_document_directory
from mindmap_core.controller import MindMapController
from mindmap_core.core.snapshot.json_codec import layout_to_dict
from mindmap_core.core.tree.markdown import render_subtree_as_markdown
from mindmap_core.errors import MindMapError
from mindmap_core.logging_config import configure_logging
from mindmap_core.models.node import Document, LayoutDirection
from mindmap_core.storage import DocumentStore

app = typer.Typer(help="Mind map documents: create, edit and lay out mind maps.")

T = TypeVar("T")

DirectoryOption = Annotated[
    Path | None,
    typer.Option("--dir", "-d", help="Document directory"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write debug logs here"),
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _open_store(directory: Path | None, *, create: bool = False) -> DocumentStore:
    """Open the document directory, raising typer.Exit if it doesn't exist."""
    path = directory or resolve_document_directory()
    if create:
        path.mkdir(parents=True, exist_ok=True)
    try:
        return DocumentStore(path)
    except ValueError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e


def _load(store: DocumentStore, name: str) -> Document:
    try:
        return store.load(name)
    except FileNotFoundError as e:
        logger.error("Document '{}' not found in {}", name, store.directory)
        raise typer.Exit(1) from e
    except ValueError as e:
        logger.error("Cannot read document '{}': {}", name, e)
        raise typer.Exit(1) from e


def _edit(directory: Path | None, name: str, action: Callable[[MindMapController], T]) -> T:
    """Load a document, apply one controller action and save the result."""
    store = _open_store(directory)
    controller = MindMapController(_load(store, name))
    try:
        result = action(controller)
    except MindMapError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    store.save(name, controller.document)
    return result


@app.command()
def new(
    name: str = typer.Argument(..., help="Document name"),
    topic: str = typer.Option(DEFAULT_ROOT_TOPIC, "--topic", "-t", help="Root topic"),
    directory: DirectoryOption = None,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing document"),
) -> None:
    """Create a document holding only a root node."""
    store = _open_store(directory, create=True)
    if store.exists(name) and not force:
        logger.error("Document '{}' already exists, use --force to overwrite", name)
        raise typer.Exit(1)
    store.save(name, Document.new(topic))
    typer.echo(f"Created {store.path_for(name)}")


@app.command(name="list")
def list_cmd(directory: DirectoryOption = None) -> None:
    """List all documents."""
    store = _open_store(directory)
    names = store.list_documents()
    typer.echo(f"{len(names)} documents:\n")
    for name in names:
        typer.echo(f"  {name}")


@app.command()
def show(
    name: str = typer.Argument(..., help="Document name"),
    node_id: Annotated[
        str | None,
        typer.Option("--node", "-n", help="Render only this node's subtree"),
    ] = None,
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    ids: bool = typer.Option(False, "--ids", help="Show node ids"),
    directory: DirectoryOption = None,
) -> None:
    """Render a document (or one subtree) as markdown."""
    document = _load(_open_store(directory), name)
    try:
        md = render_subtree_as_markdown(
            document, node_id=node_id, max_depth=max_depth, include_ids=ids
        )
    except MindMapError as e:
        logger.error("{}", e)
        raise typer.Exit(1) from e
    typer.echo(md, nl=False)


@app.command()
def add(
    name: str = typer.Argument(..., help="Document name"),
    node_id: str = typer.Argument(..., help="Parent node (or reference node with --sibling)"),
    topic: str = typer.Argument(..., help="Topic of the new node"),
    sibling: bool = typer.Option(False, "--sibling", "-s", help="Insert after node_id instead"),
    note: Annotated[str | None, typer.Option("--note", help="Note text")] = None,
    directory: DirectoryOption = None,
) -> None:
    """Add a node and print its id."""
    payload = {"note": note} if note else {}

    def action(controller: MindMapController) -> str:
        if sibling:
            return controller.add_sibling(node_id, topic, **payload)
        return controller.add_child(node_id, topic, **payload)

    typer.echo(_edit(directory, name, action))


@app.command()
def remove(
    name: str = typer.Argument(..., help="Document name"),
    node_id: str = typer.Argument(..., help="Node to remove with its subtree"),
    directory: DirectoryOption = None,
) -> None:
    """Remove a node and everything below it."""
    removed = _edit(directory, name, lambda c: c.remove_node(node_id))
    typer.echo(f"Removed {len(removed)} node(s)")


@app.command()
def move(
    name: str = typer.Argument(..., help="Document name"),
    node_id: str = typer.Argument(..., help="Node to move"),
    parent_id: str = typer.Argument(..., help="New parent"),
    index: Annotated[
        int | None,
        typer.Option("--index", "-i", help="Position among the parent's current children"),
    ] = None,
    directory: DirectoryOption = None,
) -> None:
    """Move a node under a new parent."""
    result = _edit(directory, name, lambda c: c.move_node(node_id, parent_id, index))
    if not result.changed:
        typer.echo("Already in place")
    else:
        typer.echo(f"Moved {node_id} under {parent_id} at {result.new_index}")


@app.command()
def rename(
    name: str = typer.Argument(..., help="Document name"),
    node_id: str = typer.Argument(..., help="Node to rename"),
    topic: str = typer.Argument(..., help="New topic"),
    directory: DirectoryOption = None,
) -> None:
    """Change a node's topic."""
    changed = _edit(directory, name, lambda c: c.update_topic(node_id, topic))
    typer.echo("Renamed" if changed else "Unchanged")


@app.command()
def layout(
    name: str = typer.Argument(..., help="Document name"),
    focus: Annotated[
        str | None,
        typer.Option("--focus", "-F", help="Lay out only this node's subtree"),
    ] = None,
    direction: Annotated[
        LayoutDirection | None,
        typer.Option("--direction", help="Override the document's layout direction"),
    ] = None,
    directory: DirectoryOption = None,
) -> None:
    """Print node geometry as JSON."""
    document = _load(_open_store(directory), name)
    if direction is not None:
        document = document.evolve(direction=direction)
    controller = MindMapController(document)
    if focus is not None:
        try:
            controller.focus_node(focus)
        except MindMapError as e:
            logger.error("{}", e)
            raise typer.Exit(1) from e
    typer.echo(json.dumps(layout_to_dict(controller.layout()), indent=2))


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from mindmap_core.mcp.server import run_mcp_server

    run_mcp_server()
