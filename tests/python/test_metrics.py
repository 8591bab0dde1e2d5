from pygame.math import Vector2
from pytest import approx

from shoal.sim.core.agent import Agent
from shoal.sim.systems.groups import group_counts, neighbor_weights
from shoal.sim.systems.metrics import create_metrics
from shoal.sim.utils.math2d import Boundary


def _agent(agent_id, group_id, x, y, vx, vy):
    return Agent(id=agent_id, group_id=group_id, position=Vector2(x, y), velocity=Vector2(vx, vy))


def test_metrics_for_empty_population():
    metrics = create_metrics(3, [], 2, 0, Boundary.from_size(10, 10), 1.5)
    assert metrics.tick == 3
    assert metrics.population == 0
    assert metrics.polarization == 0.0
    assert metrics.tick_duration_ms == 1.5


def test_metrics_summarize_speed_heading_and_bounds():
    agents = [
        _agent(0, 0, 0.0, 0.0, 3.0, 4.0),
        _agent(1, 0, 20.0, 10.0, -3.0, -4.0),
        _agent(2, 1, 4.0, 2.0, 0.0, 0.0),
    ]

    metrics = create_metrics(0, agents, 2, 7, Boundary.from_size(10, 10), 0.0)

    assert metrics.average_speed == approx(10.0 / 3.0)
    assert metrics.max_speed == approx(5.0)
    assert metrics.out_of_bounds == 1
    assert metrics.polarization == approx(0.0)
    assert metrics.centroid_x == approx(8.0)
    assert metrics.centroid_y == approx(4.0)
    assert metrics.neighbor_checks == 7


def test_neighbor_weights_only_when_groups_mix():
    agent = _agent(0, 0, 0, 0, 0, 0)
    same = [_agent(1, 0, 1, 0, 0, 0), _agent(2, 0, 2, 0, 0, 0)]
    mixed = [_agent(1, 0, 1, 0, 0, 0), _agent(3, 1, 2, 0, 0, 0)]
    out = [9.0]

    assert neighbor_weights(agent, same, 0.1, out) is False
    assert out == []
    assert neighbor_weights(agent, mixed, 0.1, out) is True
    assert out == [1.0, 0.1]


def test_group_counts():
    agents = [_agent(i, group, 0, 0, 0, 0) for i, group in enumerate([0, 2, 2, 0, 2])]
    assert group_counts(agents, 3) == [2, 0, 3]
