from __future__ import annotations

import math
import random

from pygame.math import Vector2

from ..utils.math2d import Boundary


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_unit_circle(self) -> Vector2:
        angle = self._random.uniform(0, 2 * math.pi)
        vector = Vector2()
        vector.from_polar((1, math.degrees(angle)))
        return vector

    def next_point_in(self, boundary: Boundary) -> Vector2:
        # strictly inside: a zero draw would sit on the min edge
        x = boundary.min.x + (self._random.random() or 0.5) * boundary.width
        y = boundary.min.y + (self._random.random() or 0.5) * boundary.height
        return Vector2(x, y)
