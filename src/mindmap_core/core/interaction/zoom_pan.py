"""Zoom and pan state mapping screen coordinates to canvas coordinates."""

from dataclasses import dataclass

from mindmap_core.config import DEFAULT_MAX_SCALE, DEFAULT_MIN_SCALE
from mindmap_core.events import EventBus, ViewChangedEvent
from mindmap_core.models.geometry import Point, Size, Vector


@dataclass(frozen=True)
class Transform:
    """screen = canvas * scale + translation."""

    scale: float = 1.0
    translation: Vector = Vector()

    def to_canvas(self, screen: Point) -> Point:
        return Point(
            (screen.x - self.translation.dx) / self.scale,
            (screen.y - self.translation.dy) / self.scale,
        )

    def to_screen(self, canvas: Point) -> Point:
        return Point(
            canvas.x * self.scale + self.translation.dx,
            canvas.y * self.scale + self.translation.dy,
        )


IDENTITY = Transform()


class ZoomPanManager:
    """Holds the view transform; scale is kept within [min_scale, max_scale]."""

    def __init__(
        self,
        *,
        min_scale: float = DEFAULT_MIN_SCALE,
        max_scale: float = DEFAULT_MAX_SCALE,
        bus: EventBus | None = None,
    ) -> None:
        if not 0 < min_scale < max_scale:
            msg = f"Invalid zoom bounds {min_scale}..{max_scale}"
            raise ValueError(msg)
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.bus = bus or EventBus()
        self._transform = IDENTITY

    @property
    def transform(self) -> Transform:
        return self._transform

    @property
    def scale(self) -> float:
        return self._transform.scale

    def _set(self, transform: Transform) -> bool:
        if transform == self._transform:
            return False
        self._transform = transform
        self.bus.publish(
            ViewChangedEvent(transform.scale, transform.translation.dx, transform.translation.dy)
        )
        return True

    def set_scale(self, scale: float, focal_point: Point | None = None) -> bool:
        """Zoom to scale, keeping the canvas point under focal_point (screen) in place."""
        scale = max(self.min_scale, min(scale, self.max_scale))
        focal = focal_point or Point(0.0, 0.0)
        anchor = self._transform.to_canvas(focal)
        translation = Vector(focal.x - anchor.x * scale, focal.y - anchor.y * scale)
        return self._set(Transform(scale, translation))

    def zoom(self, factor: float, focal_point: Point | None = None) -> bool:
        return self.set_scale(self._transform.scale * factor, focal_point)

    def pan(self, delta: Vector) -> bool:
        t = self._transform.translation
        return self._set(Transform(self._transform.scale, Vector(t.dx + delta.dx, t.dy + delta.dy)))

    def center_on(self, canvas_point: Point, viewport: Size) -> bool:
        """Pan so canvas_point appears at the middle of the viewport."""
        scale = self._transform.scale
        translation = Vector(
            viewport.width / 2 - canvas_point.x * scale,
            viewport.height / 2 - canvas_point.y * scale,
        )
        return self._set(Transform(scale, translation))

    def reset(self) -> bool:
        return self._set(IDENTITY)
