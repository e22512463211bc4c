"""Configuration constants and validated settings for the mind map core."""

import os
from dataclasses import dataclass
from pathlib import Path

# Directory with document files. First directory which is found is used.
DOCUMENT_DIRECTORIES: list[Path] = [
    Path("~/.local/share/mindmap").expanduser(),
    Path("~/.mindmap").expanduser(),
    Path("/tmp/mindmap"),
]

# Overrides DOCUMENT_DIRECTORIES when set.
DOCUMENT_DIRECTORY_ENV: str = "MINDMAP_DIR"

DOCUMENT_SUFFIX: str = ".mindmap.json"

# Log level for stderr when not running verbose (DEBUG, INFO, WARNING, ...).
LOG_LEVEL_ENV: str = "MINDMAP_LOG_LEVEL"

# Debug log file for the MCP server.
LOG_FILE_ENV: str = "MINDMAP_LOG_FILE"

DEFAULT_MAX_HISTORY_SIZE: int = 50
DEFAULT_MIN_SCALE: float = 0.1
DEFAULT_MAX_SCALE: float = 5.0

DEFAULT_ROOT_TOPIC: str = "Central Topic"
DEFAULT_NODE_TOPIC: str = "New Topic"

# Colors handed out round-robin to children of the root.
BRANCH_PALETTE: tuple[str, ...] = (
    "#E74C3C",
    "#3498DB",
    "#2ECC71",
    "#F39C12",
    "#9B59B6",
    "#1ABC9C",
    "#E67E22",
    "#34495E",
)


def resolve_document_directory() -> Path:
    """Return the document directory: env override, else first existing candidate."""
    override = os.environ.get(DOCUMENT_DIRECTORY_ENV)
    if override:
        return Path(override).expanduser()
    for candidate in DOCUMENT_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DOCUMENT_DIRECTORIES[0]


@dataclass(frozen=True)
class MindMapConfig:
    """Construction-time settings for a mind map controller.

    Invalid values are rejected with ValueError, never clamped.
    """

    allow_undo: bool = True
    max_history_size: int = DEFAULT_MAX_HISTORY_SIZE
    min_scale: float = DEFAULT_MIN_SCALE
    max_scale: float = DEFAULT_MAX_SCALE
    enable_keyboard_shortcuts: bool = True
    enable_drag_drop: bool = True
    read_only: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.max_history_size, bool) or not isinstance(self.max_history_size, int):
            msg = f"max_history_size must be an integer, got {self.max_history_size!r}"
            raise ValueError(msg)
        if self.max_history_size < 1:
            msg = f"max_history_size must be positive, got {self.max_history_size}"
            raise ValueError(msg)
        if self.min_scale <= 0 or self.max_scale <= 0:
            msg = f"Zoom bounds must be positive, got {self.min_scale} and {self.max_scale}"
            raise ValueError(msg)
        if self.min_scale >= self.max_scale:
            msg = f"min_scale ({self.min_scale}) must be less than max_scale ({self.max_scale})"
            raise ValueError(msg)
