"""Typed events and per-concern publish/subscribe channels."""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from loguru import logger


class Channel(StrEnum):
    """Independent notification streams, so consumers only see what they care about."""

    TREE = "tree"
    SELECTION = "selection"
    DRAG = "drag"
    VIEW = "view"
    EDIT = "edit"


@dataclass(frozen=True)
class MindMapEvent:
    """Base class for all events."""

    channel: ClassVar[Channel] = Channel.TREE


@dataclass(frozen=True)
class NodeOperationEvent(MindMapEvent):
    """A node was created, removed or changed; operation names what happened."""

    operation: str
    node_id: str
    parent_id: str | None = None


@dataclass(frozen=True)
class MoveNodeEvent(MindMapEvent):
    """A node changed position; is_reorder is True when the parent stayed the same."""

    node_id: str
    old_parent_id: str
    new_parent_id: str
    is_reorder: bool
    old_index: int
    new_index: int


@dataclass(frozen=True)
class ExpandNodeEvent(MindMapEvent):
    """A node was expanded or collapsed."""

    node_id: str
    expanded: bool


@dataclass(frozen=True)
class ArrowCreatedEvent(MindMapEvent):
    """An arrow was added between two nodes."""

    arrow_id: str
    from_node_id: str
    to_node_id: str


@dataclass(frozen=True)
class ArrowOperationEvent(MindMapEvent):
    """An arrow was removed or changed."""

    operation: str
    arrow_id: str


@dataclass(frozen=True)
class SummaryCreatedEvent(MindMapEvent):
    """A summary bracket was added."""

    summary_id: str
    parent_node_id: str


@dataclass(frozen=True)
class SummaryOperationEvent(MindMapEvent):
    """A summary was removed or changed."""

    operation: str
    summary_id: str


@dataclass(frozen=True)
class DocumentChangedEvent(MindMapEvent):
    """The document was replaced wholesale, or restored by undo/redo."""

    reason: str


@dataclass(frozen=True)
class SelectNodesEvent(MindMapEvent):
    """The node selection changed; node_ids is the resulting ordered selection."""

    channel: ClassVar[Channel] = Channel.SELECTION
    node_ids: tuple[str, ...]


@dataclass(frozen=True)
class SelectArrowEvent(MindMapEvent):
    channel: ClassVar[Channel] = Channel.SELECTION
    arrow_id: str | None


@dataclass(frozen=True)
class FocusChangedEvent(MindMapEvent):
    channel: ClassVar[Channel] = Channel.SELECTION
    node_id: str | None


@dataclass(frozen=True)
class BeginEditEvent(MindMapEvent):
    """The user started editing a node's topic."""

    channel: ClassVar[Channel] = Channel.EDIT
    node_id: str


@dataclass(frozen=True)
class FinishEditEvent(MindMapEvent):
    """A topic edit was committed."""

    channel: ClassVar[Channel] = Channel.EDIT
    node_id: str
    new_topic: str


@dataclass(frozen=True)
class HyperlinkClickEvent(MindMapEvent):
    """A node's hyperlink indicator was activated."""

    channel: ClassVar[Channel] = Channel.EDIT
    node_id: str
    url: str


@dataclass(frozen=True)
class DragTargetChangedEvent(MindMapEvent):
    """The drop target under a drag changed (None = no valid target)."""

    channel: ClassVar[Channel] = Channel.DRAG
    node_id: str
    target_id: str | None


@dataclass(frozen=True)
class ViewChangedEvent(MindMapEvent):
    """Zoom or pan changed."""

    channel: ClassVar[Channel] = Channel.VIEW
    scale: float
    translate_x: float
    translate_y: float


Callback = Callable[[MindMapEvent], None]


class EventBus:
    """Synchronous publish/subscribe, one subscriber list per channel.

    Callbacks run in subscription order on the publishing call; an exception in
    a callback propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[Channel, list[Callback]] = defaultdict(list)

    def subscribe(self, channel: Channel, callback: Callback) -> Callable[[], None]:
        """Register callback on one channel. Returns a function that unsubscribes it."""
        self._subscribers[channel].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[channel]:
                self._subscribers[channel].remove(callback)

        return unsubscribe

    def subscribe_all(self, callback: Callback) -> Callable[[], None]:
        """Register callback on every channel."""
        handles = [self.subscribe(channel, callback) for channel in Channel]

        def unsubscribe() -> None:
            for handle in handles:
                handle()

        return unsubscribe

    def publish(self, event: MindMapEvent) -> None:
        logger.debug("Event {}", event)
        for callback in list(self._subscribers[event.channel]):
            callback(event)
