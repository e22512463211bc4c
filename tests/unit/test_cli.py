"""Tests for the mindmap CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mindmap_core.cli import app
from mindmap_core.models.node import Document
from mindmap_core.storage import DocumentStore
from tests.unit.fakes import sample_document

runner = CliRunner()


@pytest.fixture
def saved(tmp_path: Path) -> Path:
    """A document directory holding the sample map as 'm'."""
    DocumentStore(tmp_path).save("m", sample_document())
    return tmp_path


def _load(directory: Path, name: str = "m") -> Document:
    return DocumentStore(directory).load(name)


def _last_line(output: str) -> str:
    return output.strip().splitlines()[-1]


def test_new_creates_document(tmp_path: Path) -> None:
    directory = tmp_path / "maps"
    result = runner.invoke(app, ["new", "plans", "--topic", "Plans", "--dir", str(directory)])

    assert result.exit_code == 0, result.output
    assert "Created" in result.stdout
    assert _load(directory, "plans").root.topic == "Plans"


def test_new_refuses_to_overwrite_without_force(saved: Path) -> None:
    result = runner.invoke(app, ["new", "m", "--dir", str(saved)])
    assert result.exit_code == 1
    assert _load(saved).root.topic == "Root"

    result = runner.invoke(app, ["new", "m", "-t", "Again", "--force", "--dir", str(saved)])
    assert result.exit_code == 0
    assert _load(saved).root.topic == "Again"


def test_list_documents(saved: Path) -> None:
    runner.invoke(app, ["new", "other", "--dir", str(saved)])

    result = runner.invoke(app, ["list", "--dir", str(saved)])

    assert result.exit_code == 0
    assert "2 documents:" in result.stdout
    assert "  m" in result.stdout
    assert "  other" in result.stdout


def test_list_missing_directory_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["list", "--dir", str(tmp_path / "nope")])
    assert result.exit_code == 1


def test_show_renders_markdown(saved: Path) -> None:
    result = runner.invoke(app, ["show", "m", "--dir", str(saved)])

    assert result.exit_code == 0
    assert "- Root\n" in result.stdout
    assert "            - A2X\n" in result.stdout


def test_show_subtree_with_ids_and_depth(saved: Path) -> None:
    result = runner.invoke(
        app, ["show", "m", "--node", "a", "--max-depth", "1", "--ids", "--dir", str(saved)]
    )

    assert result.exit_code == 0
    assert "- A  `a`" in result.stdout
    assert "(1 more child, id=a2)" in result.stdout
    assert "A2X" not in result.stdout


def test_show_unknown_document_or_node_fails(saved: Path) -> None:
    assert runner.invoke(app, ["show", "nope", "--dir", str(saved)]).exit_code == 1
    assert runner.invoke(app, ["show", "m", "-n", "zzz", "--dir", str(saved)]).exit_code == 1


def test_add_child_prints_new_id(saved: Path) -> None:
    result = runner.invoke(app, ["add", "m", "b", "Beta child", "--note", "n", "--dir", str(saved)])

    assert result.exit_code == 0, result.output
    new_id = _last_line(result.stdout)
    node = _load(saved).index.get(new_id)
    assert node.topic == "Beta child"
    assert node.note == "n"
    assert _load(saved).index.parent_id(new_id) == "b"


def test_add_sibling(saved: Path) -> None:
    result = runner.invoke(app, ["add", "m", "a", "After A", "--sibling", "--dir", str(saved)])

    assert result.exit_code == 0
    new_id = _last_line(result.stdout)
    assert [c.id for c in _load(saved).root.children] == ["a", new_id, "b", "c"]


def test_add_sibling_of_root_fails(saved: Path) -> None:
    result = runner.invoke(app, ["add", "m", "root", "X", "-s", "--dir", str(saved)])
    assert result.exit_code == 1
    assert len(_load(saved).index) == 7


def test_remove(saved: Path) -> None:
    result = runner.invoke(app, ["remove", "m", "a", "--dir", str(saved)])

    assert result.exit_code == 0
    assert "Removed 4 node(s)" in result.stdout
    assert _load(saved).index.ids() == ["root", "b", "c"]


def test_remove_root_fails(saved: Path) -> None:
    result = runner.invoke(app, ["remove", "m", "root", "--dir", str(saved)])
    assert result.exit_code == 1


def test_move(saved: Path) -> None:
    result = runner.invoke(app, ["move", "m", "c", "a", "--index", "0", "--dir", str(saved)])

    assert result.exit_code == 0
    assert "Moved c under a at 0" in result.stdout
    assert [c.id for c in _load(saved).index.get("a").children] == ["c", "a1", "a2"]

    result = runner.invoke(app, ["move", "m", "c", "a", "-i", "0", "--dir", str(saved)])
    assert "Already in place" in result.stdout


def test_move_into_own_subtree_fails(saved: Path) -> None:
    result = runner.invoke(app, ["move", "m", "a", "a2x", "--dir", str(saved)])
    assert result.exit_code == 1


def test_rename(saved: Path) -> None:
    result = runner.invoke(app, ["rename", "m", "b", "Bee", "--dir", str(saved)])
    assert "Renamed" in result.stdout
    assert _load(saved).index.get("b").topic == "Bee"

    result = runner.invoke(app, ["rename", "m", "b", "Bee", "--dir", str(saved)])
    assert "Unchanged" in result.stdout


def _layout_json(output: str) -> dict:
    return json.loads(output[output.index("{") :])


def test_layout_prints_geometry(saved: Path) -> None:
    result = runner.invoke(app, ["layout", "m", "--dir", str(saved)])

    assert result.exit_code == 0, result.output
    data = _layout_json(result.stdout)
    assert set(data["nodes"]) == {"root", "a", "a1", "a2", "a2x", "b", "c"}
    assert data["nodes"]["root"]["x"] == 0.0
    assert data["nodes"]["b"]["side"] == "left"


def test_layout_focus_and_direction(saved: Path) -> None:
    result = runner.invoke(
        app, ["layout", "m", "--focus", "a", "--direction", "left", "--dir", str(saved)]
    )

    assert result.exit_code == 0, result.output
    data = _layout_json(result.stdout)
    assert set(data["nodes"]) == {"a", "a1", "a2", "a2x"}
    assert data["nodes"]["a1"]["side"] == "left"


def test_layout_unknown_focus_fails(saved: Path) -> None:
    result = runner.invoke(app, ["layout", "m", "-F", "zzz", "--dir", str(saved)])
    assert result.exit_code == 1
