from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    groups: List[Dict[str, Any]]
    boundary: "SnapshotBoundary"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotBoundary:
    min_x: float
    min_y: float
    max_x: float
    max_y: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    seed: int
    update_mode: str
    config_version: str
