"""Geometry value types shared by layout, hit-testing and interaction."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    """A position in canvas or screen coordinates."""

    x: float
    y: float

    def __add__(self, other: "Vector") -> "Point":
        return Point(self.x + other.dx, self.y + other.dy)

    def __sub__(self, other: "Point") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y)

    def distance_to(self, other: "Point") -> float:
        return (self - other).length


@dataclass(frozen=True)
class Vector:
    """A 2D offset."""

    dx: float = 0.0
    dy: float = 0.0

    @property
    def length(self) -> float:
        return (self.dx * self.dx + self.dy * self.dy) ** 0.5

    @property
    def is_zero(self) -> bool:
        return self.dx == 0 and self.dy == 0

    def scaled(self, factor: float) -> "Vector":
        return Vector(self.dx * factor, self.dy * factor)


@dataclass(frozen=True)
class Size:
    """Width and height of a box."""

    width: float
    height: float


@dataclass(frozen=True)
class Insets:
    """Padding around a node's content."""

    horizontal: float
    vertical: float


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle."""

    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Rect":
        """Build the rectangle spanned by two corner points in any order."""
        left, right = sorted((a.x, b.x))
        top, bottom = sorted((a.y, b.y))
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def from_center(cls, center: Point, width: float, height: float) -> "Rect":
        return cls(center.x - width / 2, center.y - height / 2, width, height)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(self.left + self.width / 2, self.top + self.height / 2)

    def contains(self, point: Point) -> bool:
        """Return True if the point lies inside or on the edge of the rectangle."""
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    def overlaps(self, other: "Rect") -> bool:
        return (
            self.left <= other.right
            and other.left <= self.right
            and self.top <= other.bottom
            and other.top <= self.bottom
        )

    def inflate(self, delta: float) -> "Rect":
        return Rect(
            self.left - delta, self.top - delta, self.width + 2 * delta, self.height + 2 * delta
        )

    def union(self, other: "Rect") -> "Rect":
        left = min(self.left, other.left)
        top = min(self.top, other.top)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(left, top, right - left, bottom - top)


@dataclass(frozen=True)
class NodeLayout:
    """Computed geometry of one visible node."""

    node_id: str
    position: Point
    size: Size
    depth: int
    side: str = "right"

    @property
    def bounds(self) -> Rect:
        return Rect(self.position.x, self.position.y, self.size.width, self.size.height)

    @property
    def center(self) -> Point:
        return self.bounds.center


@dataclass(frozen=True)
class TextMetrics:
    """Measured size of a wrapped block of text."""

    width: float
    height: float
    last_line_width: float
    line_height: float
