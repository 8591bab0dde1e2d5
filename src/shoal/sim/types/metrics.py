from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    groups: int
    neighbor_checks: int
    average_speed: float
    max_speed: float
    out_of_bounds: int
    polarization: float
    centroid_x: float
    centroid_y: float
    tick_duration_ms: float = 0.0
