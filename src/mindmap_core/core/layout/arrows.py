"""Arrow geometry: control points, default curve shapes and curve hit-testing."""

import math
from dataclasses import dataclass

from mindmap_core.models.geometry import NodeLayout, Point, Rect, Vector
from mindmap_core.models.node import Arrow

CONTROL_POINT_RADIUS = 6.0
CONTROL_POINT_HIT_SLOP = 4.0
DEFAULT_STROKE_WIDTH = 2.0

# Endpoints closer than this get a C-shaped curve.
_CLOSE_DISTANCE = 150.0
_CLOSE_OFFSET = 200.0


@dataclass(frozen=True)
class ArrowCurve:
    """Cubic bezier from one node's anchor to another's."""

    arrow_id: str
    start: Point
    control1: Point
    control2: Point
    end: Point

    def point_at(self, t: float) -> Point:
        return bezier_point(self.start, self.control1, self.control2, self.end, t)

    @property
    def midpoint(self) -> Point:
        return self.point_at(0.5)

    @property
    def approximate_length(self) -> float:
        """Length of the control polygon, an upper bound of the curve length."""
        return (
            self.start.distance_to(self.control1)
            + self.control1.distance_to(self.control2)
            + self.control2.distance_to(self.end)
        )


def default_control_offsets(
    from_layout: NodeLayout, to_layout: NodeLayout
) -> tuple[Vector, Vector]:
    """Pick control-point offsets that give a readable curve between two nodes.

    Close nodes get a C-curve bulging 200 units sideways. Otherwise the curve
    leaves each box through the edge facing the other node, pushed out by 30%
    of the distance (clamped to 50..200) horizontally, vertically, or
    diagonally depending on the dominant axis.
    """
    from_bounds, to_bounds = from_layout.bounds, to_layout.bounds
    delta = to_bounds.center - from_bounds.center
    dx, dy = delta.dx, delta.dy
    distance = delta.length
    base = max(50.0, min(200.0, distance * 0.3))

    if distance < _CLOSE_DISTANCE:
        x = _CLOSE_OFFSET if dx >= 0 else -_CLOSE_OFFSET
        return Vector(x, 0.0), Vector(x, 0.0)

    if abs(dx) > abs(dy) * 1.5:
        sign = 1.0 if dx > 0 else -1.0
        return (
            Vector(sign * (from_bounds.width / 2 + base), 0.0),
            Vector(-sign * (to_bounds.width / 2 + base), 0.0),
        )

    if abs(dy) > abs(dx) * 1.5:
        sign = 1.0 if dy > 0 else -1.0
        return (
            Vector(0.0, sign * (from_bounds.height / 2 + base)),
            Vector(0.0, -sign * (to_bounds.height / 2 + base)),
        )

    angle = math.atan2(dy, dx)
    offset_x = base * 0.7 * (1 if dx > 0 else -1)
    offset_y = base * 0.7 * (1 if dy > 0 else -1)
    cos, sin = math.cos(angle), math.sin(angle)
    from_edge = Vector(from_bounds.width / 2 * cos, from_bounds.height / 2 * sin)
    to_edge = Vector(-to_bounds.width / 2 * cos, -to_bounds.height / 2 * sin)
    return (
        Vector(from_edge.dx + offset_x, from_edge.dy + offset_y),
        Vector(to_edge.dx - offset_x, to_edge.dy - offset_y),
    )


def arrow_curve(arrow: Arrow, layouts: dict[str, NodeLayout]) -> ArrowCurve | None:
    """Curve of an arrow in the current layout, or None if an endpoint is not visible.

    Offsets of (0, 0) on both ends mean "not customised" and fall back to
    default_control_offsets.
    """
    from_layout = layouts.get(arrow.from_node_id)
    to_layout = layouts.get(arrow.to_node_id)
    if from_layout is None or to_layout is None:
        return None
    offset1, offset2 = arrow.control_point_offset1, arrow.control_point_offset2
    if offset1.is_zero and offset2.is_zero:
        offset1, offset2 = default_control_offsets(from_layout, to_layout)
    start, end = from_layout.center, to_layout.center
    return ArrowCurve(arrow.id, start, start + offset1, end + offset2, end)


def control_point_bounds(
    arrow: Arrow, layouts: dict[str, NodeLayout], *, radius: float = CONTROL_POINT_RADIUS
) -> tuple[Rect, Rect] | None:
    """Handle rectangles around both control points of an arrow."""
    curve = arrow_curve(arrow, layouts)
    if curve is None:
        return None
    size = radius * 2
    return (
        Rect.from_center(curve.control1, size, size),
        Rect.from_center(curve.control2, size, size),
    )


def bezier_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    u = 1.0 - t
    a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
    return Point(
        a * p0.x + b * p1.x + c * p2.x + d * p3.x,
        a * p0.y + b * p1.y + c * p2.y + d * p3.y,
    )


def is_near_curve(
    point: Point,
    curve: ArrowCurve,
    *,
    scale: float = 1.0,
    stroke_width: float = DEFAULT_STROKE_WIDTH,
) -> bool:
    """Return True if point lies within the tap tolerance of the curve.

    The tolerance grows with stroke width and is expressed in screen pixels,
    so it shrinks in canvas units as the view zooms in.
    """
    threshold = max(10.0, min(20.0, stroke_width * 1.8 + 8.0)) / scale
    samples = int(max(32, min(180, curve.approximate_length / 10)))
    for i in range(samples + 1):
        if curve.point_at(i / samples).distance_to(point) < threshold:
            return True
    return False


def hit_control_point(
    point: Point, arrow: Arrow, layouts: dict[str, NodeLayout], *, scale: float = 1.0
) -> int | None:
    """Which control point (1 or 2) of the arrow is under point, if any."""
    curve = arrow_curve(arrow, layouts)
    if curve is None:
        return None
    threshold = (CONTROL_POINT_RADIUS + CONTROL_POINT_HIT_SLOP) / scale
    if curve.control1.distance_to(point) <= threshold:
        return 1
    if curve.control2.distance_to(point) <= threshold:
        return 2
    return None
