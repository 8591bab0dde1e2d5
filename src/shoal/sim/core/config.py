from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

UPDATE_MODES = ("sequential", "buffered")


@dataclass(slots=True)
class FlockParameters:
    cohesion: float = 0.2
    separation: float = 0.5
    alignment: float = 0.3
    friendliness: float = 1.0
    view_distance: float = 10.0
    min_separation_distance: float = 40.0
    max_speed: float = 60.0
    boundary_repel: tuple[float, float] = (10.0, 10.0)
    size: tuple[float, float] = (1.0, 1.0)
    color: tuple[float, float, float, float] = (0.1, 0.8, 0.3, 1.0)

    def copy(self) -> "FlockParameters":
        return FlockParameters(**self.as_dict())

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


PARAMETER_NAMES = tuple(f.name for f in fields(FlockParameters))


@dataclass
class GroupConfig:
    name: str = "default"
    count: int = 100
    params: FlockParameters = field(default_factory=FlockParameters)


@dataclass
class SimulationConfig:
    width: float = 1080.0
    height: float = 720.0
    time_step: float = 1.0 / 60.0
    seed: int = 42
    update_mode: str = "sequential"
    inclusive_bounds: bool = True
    config_version: str = "v1"
    groups: List[GroupConfig] = field(default_factory=lambda: [GroupConfig()])

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def coerce_parameter(name: str, value: Any) -> Any:
    if name not in PARAMETER_NAMES:
        raise ValueError(f"Unknown flock parameter: {name}")
    if name in ("boundary_repel", "size"):
        return _pair(value)
    if name == "color":
        return _color(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Expected a number for {name}, got {value!r}") from None


def _pair(value: Any) -> tuple[float, float]:
    if isinstance(value, (int, float)):
        return (float(value), float(value))
    try:
        first, second = value
        return (float(first), float(second))
    except (TypeError, ValueError):
        raise ValueError(f"Expected a number or a pair of numbers, got {value!r}") from None


def _color(value: Any) -> tuple[float, float, float, float]:
    try:
        channels = tuple(float(channel) for channel in value)
    except (TypeError, ValueError):
        raise ValueError(f"Expected an RGB or RGBA color, got {value!r}") from None
    if len(channels) == 3:
        return (channels[0], channels[1], channels[2], 1.0)
    if len(channels) == 4:
        return (channels[0], channels[1], channels[2], channels[3])
    raise ValueError(f"Expected an RGB or RGBA color, got {value!r}")


def _parameters(raw: Dict[str, Any], base: FlockParameters) -> FlockParameters:
    params = base.copy()
    for name, value in raw.items():
        setattr(params, name, coerce_parameter(name, value))
    return params


def load_config(raw: dict) -> SimulationConfig:
    defaults = _parameters(raw.get("defaults", {}), FlockParameters())
    groups: List[GroupConfig] = []
    for entry in raw.get("groups", []):
        entry = dict(entry)
        name = str(entry.pop("name"))
        count = int(entry.pop("count", GroupConfig.count))
        groups.append(GroupConfig(name=name, count=count, params=_parameters(entry, defaults)))
    if not groups:
        groups.append(GroupConfig(params=defaults))

    sim_values = {k: v for k, v in raw.items() if k not in {"defaults", "groups"}}
    config = SimulationConfig(groups=groups, **sim_values)
    if config.update_mode not in UPDATE_MODES:
        raise ValueError(f"Unknown update mode: {config.update_mode}")
    return config
