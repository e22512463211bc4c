"""Tests for loguru sink setup."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from loguru import logger

from mindmap_core.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    yield
    logger.remove()


def test_default_level_hides_debug(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging()
    logger.debug("hidden detail")
    logger.info("Saved {}", "plans")
    err = capsys.readouterr().err
    assert "Saved plans" in err
    assert "hidden detail" not in err


def test_verbose_shows_debug(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(verbose=True)
    logger.debug("Moved {} under {}", "a", "b")
    assert "Moved a under b" in capsys.readouterr().err


def test_level_from_environment(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("MINDMAP_LOG_LEVEL", "warning")
    configure_logging()
    logger.info("quiet")
    logger.warning("Dropped arrow {}", "x")
    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "Dropped arrow x" in err


def test_log_file_records_debug(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log_file = tmp_path / "mindmap.log"
    configure_logging(log_file=log_file)
    logger.debug("Undo add child")
    logger.remove()

    assert "Undo add child" in log_file.read_text(encoding="utf-8")
    assert "Undo add child" not in capsys.readouterr().err
