"""Shared test fixtures."""

from pathlib import Path

import pytest

from mindmap_core.controller import MindMapController
from mindmap_core.models.node import Document
from mindmap_core.storage import DocumentStore
from tests.unit.fakes import FixedTextMeasurer, RecordingSink, SequentialIds, sample_document


@pytest.fixture
def document() -> Document:
    return sample_document()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def measurer() -> FixedTextMeasurer:
    return FixedTextMeasurer()


@pytest.fixture
def controller(
    document: Document, measurer: FixedTextMeasurer, ids: SequentialIds
) -> MindMapController:
    """Controller over the sample document with deterministic ids and text sizes."""
    return MindMapController(document, measurer=measurer, id_factory=ids)


@pytest.fixture
def recorder(controller: MindMapController) -> RecordingSink:
    """Records every event the controller publishes from now on."""
    sink = RecordingSink()
    controller.bus.subscribe_all(sink)
    return sink


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(tmp_path)
