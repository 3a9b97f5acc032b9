"""Vector math and ray intersection primitives used by the beam tracer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple


EPSILON = 1e-4


@dataclass(frozen=True)
class Vector:
    """Immutable 2D vector in board coordinates (y grows downwards)."""

    x: float
    y: float

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> "Vector":
        return Vector(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __neg__(self) -> "Vector":
        return Vector(-self.x, -self.y)

    def dot(self, other: "Vector") -> float:
        return self.x * other.x + self.y * other.y

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def normalized(self) -> "Vector":
        return normalize(self)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @staticmethod
    def from_radians(angle: float) -> "Vector":
        return Vector(math.cos(angle), math.sin(angle))

    @staticmethod
    def from_degrees(degrees: float) -> "Vector":
        return Vector.from_radians(math.radians(degrees))


@dataclass(frozen=True)
class Rect:
    """Axis aligned rectangle given by its top-left corner and size."""

    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def contains(self, point: Vector) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom


@dataclass(frozen=True)
class Intersection:
    """Forward hit of a ray: distance ``t`` along the ray and the hit point."""

    t: float
    point: Vector
    normal: Optional[Vector] = None


ZERO = Vector(0.0, 0.0)

# Boundary edges in order top, right, bottom, left. Each normal faces into the
# playable area.
_BOUNDARY_NORMALS = (
    Vector(0.0, 1.0),
    Vector(-1.0, 0.0),
    Vector(0.0, -1.0),
    Vector(1.0, 0.0),
)


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def normalize(vector: Vector) -> Vector:
    magnitude = vector.length()
    if magnitude < EPSILON:
        return ZERO
    return Vector(vector.x / magnitude, vector.y / magnitude)


def reflect(direction: Vector, normal: Vector) -> Vector:
    """Mirror ``direction`` about ``normal`` and renormalise the result."""

    projection = direction.dot(normal)
    return normalize(direction - normal * (2.0 * projection))


def nudge(point: Vector, direction: Vector, distance: float) -> Vector:
    return point + direction * distance


def point_along(origin: Vector, direction: Vector, t: float) -> Vector:
    return Vector(origin.x + direction.x * t, origin.y + direction.y * t)


def intersect_ray_segment(
    origin: Vector, direction: Vector, a: Vector, b: Vector
) -> Optional[Intersection]:
    """Nearest forward intersection of a ray with the finite segment ``a-b``."""

    edge = b - a
    denom = direction.x * edge.y - direction.y * edge.x
    if abs(denom) < EPSILON:
        return None

    offset = a - origin
    t = (offset.x * edge.y - offset.y * edge.x) / denom
    u = (offset.x * direction.y - offset.y * direction.x) / denom
    if t > EPSILON and 0.0 <= u <= 1.0:
        return Intersection(t=t, point=point_along(origin, direction, t))
    return None


def _slab(origin: float, direction: float, low: float, high: float) -> Optional[Tuple[float, float]]:
    if abs(direction) < EPSILON:
        # Parallel to this slab: either always inside it or never.
        if low <= origin <= high:
            return -math.inf, math.inf
        return None
    inverse = 1.0 / direction
    t_near = (low - origin) * inverse
    t_far = (high - origin) * inverse
    if t_near > t_far:
        t_near, t_far = t_far, t_near
    return t_near, t_far


def intersect_ray_rect(origin: Vector, direction: Vector, rect: Rect) -> Optional[Intersection]:
    """Slab test against the interior of ``rect``, reporting the entry face.

    A ray starting inside (or beyond) the rectangle has a non-positive entry
    distance and therefore does not intersect it.
    """

    x_range = _slab(origin.x, direction.x, rect.x, rect.right)
    if x_range is None:
        return None
    y_range = _slab(origin.y, direction.y, rect.y, rect.bottom)
    if y_range is None:
        return None

    tx_min, tx_max = x_range
    ty_min, ty_max = y_range
    if tx_min > ty_max or ty_min > tx_max:
        return None

    t_hit = max(tx_min, ty_min)
    if not math.isfinite(t_hit) or t_hit < EPSILON:
        return None
    return Intersection(t=t_hit, point=point_along(origin, direction, t_hit))


def intersect_ray_rect_boundary(
    origin: Vector, direction: Vector, rect: Rect
) -> Optional[Intersection]:
    """Hit against the four edges of ``rect`` including the edge normal."""

    corners = (
        Vector(rect.x, rect.y),
        Vector(rect.right, rect.y),
        Vector(rect.right, rect.bottom),
        Vector(rect.x, rect.bottom),
    )
    closest: Optional[Intersection] = None
    for index, normal in enumerate(_BOUNDARY_NORMALS):
        start = corners[index]
        end = corners[(index + 1) % 4]
        hit = intersect_ray_segment(origin, direction, start, end)
        if hit is not None and (closest is None or hit.t < closest.t):
            closest = Intersection(t=hit.t, point=hit.point, normal=normal)
    return closest


def intersect_ray_circle(
    origin: Vector, direction: Vector, center: Vector, radius: float
) -> Optional[Intersection]:
    """Smallest forward root of the ray/circle quadratic."""

    a = direction.dot(direction)
    if a < EPSILON:
        return None
    oc = origin - center
    b = 2.0 * oc.dot(direction)
    c = oc.dot(oc) - radius * radius
    discriminant = b * b - 4.0 * a * c
    if discriminant < 0.0:
        return None

    root = math.sqrt(discriminant)
    near = (-b - root) / (2.0 * a)
    far = (-b + root) / (2.0 * a)
    if near > EPSILON:
        t_hit = near
    elif far > EPSILON:
        t_hit = far
    else:
        return None
    return Intersection(t=t_hit, point=point_along(origin, direction, t_hit))


def segment_hits_circle(a: Vector, b: Vector, center: Vector, radius: float) -> bool:
    """True when the segment ``a-b`` (not its extension) touches the circle."""

    span = b - a
    span_length = span.length()
    if span_length < EPSILON:
        return False
    hit = intersect_ray_circle(a, span * (1.0 / span_length), center, radius)
    if hit is None:
        return False
    return hit.t <= span_length + EPSILON


def distance_to_segment(point: Vector, a: Vector, b: Vector) -> float:
    span = b - a
    span_sq = span.dot(span)
    if span_sq < EPSILON:
        return (point - a).length()
    t = clamp((point - a).dot(span) / span_sq, 0.0, 1.0)
    closest = point_along(a, span, t)
    return (point - closest).length()


__all__ = [
    "EPSILON",
    "Intersection",
    "Rect",
    "Vector",
    "clamp",
    "distance_to_segment",
    "intersect_ray_circle",
    "intersect_ray_rect",
    "intersect_ray_rect_boundary",
    "intersect_ray_segment",
    "normalize",
    "nudge",
    "reflect",
    "segment_hits_circle",
]
