"""Undo/redo history over document and selection checkpoints."""

from collections import deque
from dataclasses import dataclass

from loguru import logger

from mindmap_core.config import DEFAULT_MAX_HISTORY_SIZE
from mindmap_core.models.node import Document
from mindmap_core.models.selection import SelectionState


@dataclass(frozen=True)
class Checkpoint:
    """A document snapshot paired with the selection the user had at that instant."""

    document: Document
    selection: SelectionState


@dataclass(frozen=True)
class _Entry:
    """One recorded change.

    Selection is captured on both sides because what the user had selected
    right after a change can differ from what is selected when the next change
    starts (selection itself is not recorded).
    """

    before: Checkpoint
    after: Checkpoint
    label: str


class HistoryManager:
    """Bounded undo/redo stacks.

    ``record`` pushes one entry and clears the redo stack. ``undo`` returns the
    checkpoint to restore (the state before the change) and ``redo`` the one to
    re-apply (the state after it); both return None when there is nothing to
    do or history is disabled, and never raise.
    """

    def __init__(self, *, max_size: int = DEFAULT_MAX_HISTORY_SIZE, enabled: bool = True) -> None:
        if max_size < 1:
            msg = f"History size must be positive, got {max_size}"
            raise ValueError(msg)
        self.max_size = max_size
        self.enabled = enabled
        self._past: deque[_Entry] = deque(maxlen=max_size)
        self._future: list[_Entry] = []

    @property
    def can_undo(self) -> bool:
        return self.enabled and bool(self._past)

    @property
    def can_redo(self) -> bool:
        return self.enabled and bool(self._future)

    @property
    def undo_label(self) -> str | None:
        return self._past[-1].label if self.can_undo else None

    @property
    def redo_label(self) -> str | None:
        return self._future[-1].label if self.can_redo else None

    def __len__(self) -> int:
        return len(self._past)

    def record(self, before: Checkpoint, after: Checkpoint, label: str = "") -> None:
        """Record a change from before to after. Does nothing while disabled."""
        if not self.enabled:
            return
        if len(self._past) == self.max_size:
            logger.debug("History full, dropping oldest entry {!r}", self._past[0].label)
        self._past.append(_Entry(before, after, label))
        self._future.clear()
        logger.debug("Recorded {!r} ({} undoable)", label, len(self._past))

    def undo(self) -> Checkpoint | None:
        if not self.can_undo:
            return None
        entry = self._past.pop()
        self._future.append(entry)
        logger.debug("Undo {!r}", entry.label)
        return entry.before

    def redo(self) -> Checkpoint | None:
        if not self.can_redo:
            return None
        entry = self._future.pop()
        self._past.append(entry)
        logger.debug("Redo {!r}", entry.label)
        return entry.after

    def clear(self) -> None:
        """Forget all undo and redo entries (e.g. after loading a new document)."""
        self._past.clear()
        self._future.clear()
