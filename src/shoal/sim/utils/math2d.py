from __future__ import annotations

import math
from dataclasses import dataclass

from pygame.math import Vector2


def length2(vector: Vector2) -> float:
    return vector.x * vector.x + vector.y * vector.y


def safe_normalize(vector: Vector2) -> Vector2:
    magnitude_sq = length2(vector)
    if magnitude_sq == 0.0:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(vector.x * inv, vector.y * inv)


def angle_deg(a: Vector2, b: Vector2) -> float:
    """Unsigned angle between ``a`` and ``b`` in degrees, 0.0 if either is zero."""
    denom = math.sqrt(length2(a) * length2(b))
    if denom == 0.0:
        return 0.0
    cosine = (a.x * b.x + a.y * b.y) / denom
    return math.degrees(math.acos(max(-1.0, min(1.0, cosine))))


def heading_deg(vector: Vector2) -> float:
    """Signed heading from +x, counter-clockwise in a y-up frame."""
    if length2(vector) == 0.0:
        return 0.0
    return math.degrees(math.atan2(vector.y, vector.x))


@dataclass
class Boundary:
    min: Vector2
    max: Vector2

    @staticmethod
    def from_size(width: float, height: float) -> "Boundary":
        return Boundary(Vector2(0.0, 0.0), Vector2(float(width), float(height)))

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y

    def contains(self, point: Vector2) -> bool:
        return self.min.x <= point.x <= self.max.x and self.min.y <= point.y <= self.max.y

    def copy(self) -> "Boundary":
        return Boundary(Vector2(self.min), Vector2(self.max))
