from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2

from ..utils.math2d import heading_deg, safe_normalize


@dataclass(slots=True)
class Agent:
    id: int
    group_id: int
    position: Vector2 = field(default_factory=Vector2)
    velocity: Vector2 = field(default_factory=Vector2)

    @property
    def direction(self) -> Vector2:
        return safe_normalize(self.velocity)

    @property
    def angle(self) -> float:
        return heading_deg(self.velocity)

    @property
    def speed(self) -> float:
        return self.velocity.length()

    def frozen_copy(self) -> "Agent":
        return Agent(
            id=self.id,
            group_id=self.group_id,
            position=Vector2(self.position),
            velocity=Vector2(self.velocity),
        )
