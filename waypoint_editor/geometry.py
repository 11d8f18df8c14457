"""
Small 3D vector helpers.

Points and directions are plain (x, y, z) tuples with Y up, the same way the
rest of the editor passes positions around.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

Vec3 = Tuple[float, float, float]

UP: Vec3 = (0.0, 1.0, 0.0)
DOWN: Vec3 = (0.0, -1.0, 0.0)
FORWARD: Vec3 = (0.0, 0.0, 1.0)
RIGHT: Vec3 = (1.0, 0.0, 0.0)


def as_vec3(value: Iterable[float]) -> Vec3:
    x, y, z = value
    return (float(x), float(y), float(z))


def add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale(a: Vec3, s: float) -> Vec3:
    return (a[0] * s, a[1] * s, a[2] * s)


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def length(a: Vec3) -> float:
    return math.sqrt(dot(a, a))


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(a, b))


def normalized(a: Vec3) -> Vec3:
    n = length(a)
    if n == 0:
        return (0.0, 0.0, 0.0)
    return (a[0] / n, a[1] / n, a[2] / n)


def midpoint(a: Vec3, b: Vec3) -> Vec3:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2, (a[2] + b[2]) / 2)


def point_to_segment_distance(point: Vec3, start: Vec3, end: Vec3) -> Tuple[float, float]:
    """
    Distance from point to the segment start-end, and the clamped parameter t.

    A degenerate segment (start == end) measures distance to start with t = 0.
    """
    seg = sub(end, start)
    seg_len_sq = dot(seg, seg)
    if seg_len_sq == 0:
        return distance(point, start), 0.0

    t = max(0.0, min(1.0, dot(sub(point, start), seg) / seg_len_sq))
    closest = add(start, scale(seg, t))
    return distance(point, closest), t


@dataclass(frozen=True)
class Ray:
    """A picking ray from the host: origin plus (not necessarily unit) direction."""
    origin: Vec3
    direction: Vec3

    def point_at(self, t: float) -> Vec3:
        return add(self.origin, scale(normalized(self.direction), t))

    def intersect_horizontal_plane(self, height: float = 0.0) -> Optional[Vec3]:
        """Point where the ray crosses y == height going forward, or None."""
        d = normalized(self.direction)
        if abs(d[1]) < 1e-9:
            return None
        t = (height - self.origin[1]) / d[1]
        if t < 0:
            return None
        return self.point_at(t)
