from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import TickMetrics
from ..utils.math2d import Boundary


def create_metrics(
    tick: int,
    agents: Sequence[Agent],
    groups: int,
    neighbor_checks: int,
    boundary: Boundary,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    speed_sum = 0.0
    max_speed = 0.0
    out_of_bounds = 0
    heading_x = 0.0
    heading_y = 0.0
    pos_x = 0.0
    pos_y = 0.0
    for agent in agents:
        vel = agent.velocity
        speed = math.hypot(vel.x, vel.y)
        speed_sum += speed
        if speed > max_speed:
            max_speed = speed
        if speed > 0.0:
            heading_x += vel.x / speed
            heading_y += vel.y / speed
        pos_x += agent.position.x
        pos_y += agent.position.y
        if not boundary.contains(agent.position):
            out_of_bounds += 1

    if population == 0:
        return TickMetrics(
            tick=tick,
            population=0,
            groups=groups,
            neighbor_checks=neighbor_checks,
            average_speed=0.0,
            max_speed=0.0,
            out_of_bounds=0,
            polarization=0.0,
            centroid_x=0.0,
            centroid_y=0.0,
            tick_duration_ms=duration_ms,
        )
    return TickMetrics(
        tick=tick,
        population=population,
        groups=groups,
        neighbor_checks=neighbor_checks,
        average_speed=speed_sum / population,
        max_speed=max_speed,
        out_of_bounds=out_of_bounds,
        polarization=math.hypot(heading_x, heading_y) / population,
        centroid_x=pos_x / population,
        centroid_y=pos_y / population,
        tick_duration_ms=duration_ms,
    )
