from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Mapping, Sequence

from .agent import Agent
from .config import FlockParameters, GroupConfig, SimulationConfig, UPDATE_MODES, coerce_parameter
from .rng import DeterministicRng
from ..systems import groups as group_system, metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotBoundary, SnapshotMetadata
from ..utils.math2d import Boundary

logger = logging.getLogger(__name__)


class Flock:
    """Owns every agent and per-group tunables, and advances them one tick at a time.

    Agents of all groups live in one ordered list. Group parameters are the
    ``FlockParameters`` objects held by ``config.groups``, so changes made
    through the setters are visible to whoever owns the config, and take
    effect on the next ``tick``.
    """

    def __init__(self, config: SimulationConfig):
        if config.update_mode not in UPDATE_MODES:
            raise ValueError(f"Unknown update mode: {config.update_mode}")
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self.set_boundary(Boundary.from_size(config.width, config.height))
        self._agents: List[Agent] = []
        self._group_configs: List[GroupConfig] = []
        self._group_index: Dict[str, int] = {}
        self._neighbor_agents: List[Agent] = []
        self._neighbor_weights: List[float] = []
        self._next_id = 0
        self._tick = 0
        self._metrics: TickMetrics | None = None
        for group_config in config.groups:
            self._register_group(group_config)
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def boundary(self) -> Boundary:
        return self._boundary

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def groups(self) -> Dict[str, FlockParameters]:
        return {group.name: group.params for group in self._group_configs}

    def group(self, name: str) -> FlockParameters:
        return self._group_configs[self._group_id(name)].params

    def count(self, group: str | None = None) -> int:
        if group is None:
            return len(self._agents)
        group_id = self._group_id(group)
        return sum(1 for agent in self._agents if agent.group_id == group_id)

    def add_group(self, name: str, count: int, params: FlockParameters | None = None) -> FlockParameters:
        if name in self._group_index:
            raise ValueError(f"Group already exists: {name}")
        if count < 0:
            raise ValueError(f"Agent count must be non-negative, got {count}")
        group_config = GroupConfig(name=name, count=0, params=params if params is not None else FlockParameters())
        self._config.groups.append(group_config)
        self._register_group(group_config)
        self.add_agents(count, name)
        logger.debug("added group %s with %d agents", name, count)
        return group_config.params

    def add_agents(self, count: int, group: str | None = None) -> None:
        if count < 0:
            raise ValueError(f"Agent count must be non-negative, got {count}")
        group_id = self._group_id(group)
        for _ in range(count):
            self._agents.append(self._spawn(group_id))
        self._group_configs[group_id].count += count

    def set_agent_count(self, count: int, group: str | None = None) -> None:
        if count < 0:
            raise ValueError(f"Agent count must be non-negative, got {count}")
        group_id = self._group_id(group)
        current = sum(1 for agent in self._agents if agent.group_id == group_id)
        self._neighbor_agents.clear()
        self._neighbor_weights.clear()
        if count > current:
            self.add_agents(count - current, self._group_configs[group_id].name)
        elif count < current:
            excess = current - count
            survivors: List[Agent] = []
            for agent in reversed(self._agents):
                if excess > 0 and agent.group_id == group_id:
                    excess -= 1
                    continue
                survivors.append(agent)
            survivors.reverse()
            self._agents[:] = survivors
            self._group_configs[group_id].count = count
        logger.debug("group %s resized from %d to %d agents", self._group_configs[group_id].name, current, count)

    def find_neighbors(self, agent: Agent) -> List[Agent]:
        """Every other agent within the view distance of ``agent``'s group.

        The returned list is scratch storage reused by the next query; copy
        it to keep it.
        """
        params = self._group_configs[agent.group_id].params
        return self._collect_neighbors(agent, self._agents, params.view_distance)

    def tick(self, dt: float) -> TickMetrics:
        start = perf_counter()
        inclusive = self._config.inclusive_bounds
        boundary = self._boundary
        if self._config.update_mode == "buffered":
            population: Sequence[Agent] = [agent.frozen_copy() for agent in self._agents]
        else:
            population = self._agents

        neighbor_checks = 0
        for index, agent in enumerate(self._agents):
            params = self._group_configs[agent.group_id].params
            probe = population[index]
            neighbors = self._collect_neighbors(probe, population, params.view_distance)
            neighbor_checks += len(neighbors)
            if group_system.neighbor_weights(agent, neighbors, params.friendliness, self._neighbor_weights):
                weights: List[float] | None = self._neighbor_weights
            else:
                weights = None

            steering.cohere(agent, params.cohesion, neighbors, weights)
            steering.separate(agent, params.separation, params.min_separation_distance, neighbors, weights)
            steering.align(agent, params.alignment, neighbors, weights)
            steering.constrain_bounds(agent, boundary, params.boundary_repel, inclusive)
            steering.constrain_speed(agent, params.max_speed)
            steering.integrate(agent, dt)

        self._neighbor_agents.clear()
        self._neighbor_weights.clear()
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self._tick,
            self._agents,
            len(self._group_configs),
            neighbor_checks,
            boundary,
            elapsed_ms,
        )
        self._tick += 1
        self._metrics = metrics
        return metrics

    def reset(self) -> None:
        self._agents.clear()
        self._neighbor_agents.clear()
        self._neighbor_weights.clear()
        self._rng.reset()
        self._next_id = 0
        self._tick = 0
        self._metrics = None
        self._bootstrap_population()

    def set_cohesion(self, value: float, group: str | None = None) -> None:
        self._set_parameter("cohesion", value, group)

    def set_separation(self, value: float, group: str | None = None) -> None:
        self._set_parameter("separation", value, group)

    def set_alignment(self, value: float, group: str | None = None) -> None:
        self._set_parameter("alignment", value, group)

    def set_friendliness(self, value: float, group: str | None = None) -> None:
        self._set_parameter("friendliness", value, group)

    def set_view_distance(self, value: float, group: str | None = None) -> None:
        self._set_parameter("view_distance", value, group)

    def set_min_separation_distance(self, value: float, group: str | None = None) -> None:
        self._set_parameter("min_separation_distance", value, group)

    def set_max_speed(self, value: float, group: str | None = None) -> None:
        self._set_parameter("max_speed", value, group)

    def set_boundary_repel(self, value: Sequence[float] | float, group: str | None = None) -> None:
        self._set_parameter("boundary_repel", value, group)

    def set_size(self, value: Sequence[float] | float, group: str | None = None) -> None:
        self._set_parameter("size", value, group)

    def set_color(self, value: Sequence[float], group: str | None = None) -> None:
        self._set_parameter("color", value, group)

    def update_parameters(self, values: Mapping[str, Any], group: str | None = None) -> None:
        coerced = {name: coerce_parameter(name, value) for name, value in values.items()}
        for params in self._select(group):
            for name, value in coerced.items():
                setattr(params, name, value)

    def set_boundary(self, boundary: Boundary) -> None:
        if boundary.min.x > boundary.max.x or boundary.min.y > boundary.max.y:
            raise ValueError(f"Boundary min must not exceed max, got {boundary.min} to {boundary.max}")
        self._boundary = boundary.copy()
        logger.debug(
            "boundary set to (%.1f, %.1f)-(%.1f, %.1f)",
            boundary.min.x,
            boundary.min.y,
            boundary.max.x,
            boundary.max.y,
        )

    def resize(self, width: float, height: float) -> None:
        self.set_boundary(Boundary.from_size(width, height))
        self._config.width = float(width)
        self._config.height = float(height)

    def snapshot(self, tick: int | None = None) -> Snapshot:
        tick = self._tick if tick is None else tick
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                tick, self._agents, len(self._group_configs), 0, self._boundary, 0.0
            )
        counts = group_system.group_counts(self._agents, len(self._group_configs))
        groups_payload = []
        for group_config, count in zip(self._group_configs, counts):
            payload = group_config.params.as_dict()
            payload["name"] = group_config.name
            payload["count"] = count
            groups_payload.append(payload)
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            groups=groups_payload,
            boundary=SnapshotBoundary(
                min_x=self._boundary.min.x,
                min_y=self._boundary.min.y,
                max_x=self._boundary.max.x,
                max_y=self._boundary.max.y,
            ),
            metadata=SnapshotMetadata(
                sim_dt=self._config.time_step,
                seed=self._config.seed,
                update_mode=self._config.update_mode,
                config_version=self._config.config_version,
            ),
        )

    def _register_group(self, group_config: GroupConfig) -> None:
        if group_config.name in self._group_index:
            raise ValueError(f"Group already exists: {group_config.name}")
        self._group_index[group_config.name] = len(self._group_configs)
        self._group_configs.append(group_config)

    def _bootstrap_population(self) -> None:
        for group_id, group_config in enumerate(self._group_configs):
            for _ in range(group_config.count):
                self._agents.append(self._spawn(group_id))

    def _spawn(self, group_id: int) -> Agent:
        params = self._group_configs[group_id].params
        position = self._rng.next_point_in(self._boundary)
        velocity = self._rng.next_unit_circle() * (self._rng.next_range(0.5, 1.0) * params.max_speed)
        agent = Agent(id=self._next_id, group_id=group_id, position=position, velocity=velocity)
        self._next_id += 1
        return agent

    def _group_id(self, name: str | None) -> int:
        if name is None:
            if not self._group_configs:
                raise KeyError("Flock has no groups")
            return 0
        try:
            return self._group_index[name]
        except KeyError:
            raise KeyError(f"Unknown group: {name}") from None

    def _select(self, group: str | None) -> List[FlockParameters]:
        if group is None:
            return [group_config.params for group_config in self._group_configs]
        return [self.group(group)]

    def _set_parameter(self, name: str, value: Any, group: str | None) -> None:
        value = coerce_parameter(name, value)
        for params in self._select(group):
            setattr(params, name, value)

    def _collect_neighbors(self, agent: Agent, population: Sequence[Agent], view_distance: float) -> List[Agent]:
        out = self._neighbor_agents
        out.clear()
        view_sq = view_distance * view_distance
        pos_x = agent.position.x
        pos_y = agent.position.y
        for other in population:
            if other is agent:
                continue
            offset_x = pos_x - other.position.x
            offset_y = pos_y - other.position.y
            if offset_x * offset_x + offset_y * offset_y <= view_sq:
                out.append(other)
        return out

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "group": agent.group_id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "angle": agent.angle,
            "speed": agent.speed,
        }

