from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from shoal.sim.core.agent import Agent
from shoal.sim.systems import steering
from shoal.sim.utils.math2d import Boundary


def _agent(x: float, y: float, vx: float = 0.0, vy: float = 0.0, agent_id: int = 0, group_id: int = 0) -> Agent:
    return Agent(id=agent_id, group_id=group_id, position=Vector2(x, y), velocity=Vector2(vx, vy))


def test_behaviors_are_noops_without_neighbors():
    agent = _agent(3.0, 4.0, 1.5, -2.5)

    steering.cohere(agent, 1.0, [])
    steering.separate(agent, 1.0, 10.0, [])
    steering.align(agent, 1.0, [])

    assert agent.velocity == Vector2(1.5, -2.5)


def test_cohere_steers_toward_mean_neighbor_position():
    agent = _agent(0.0, 0.0, 1.0, 0.0)
    neighbors = [_agent(10.0, 0.0, agent_id=1), _agent(0.0, 10.0, agent_id=2)]

    steering.cohere(agent, 0.5, neighbors)

    assert agent.velocity.x == approx(1.0 + 5.0 * 0.5)
    assert agent.velocity.y == approx(5.0 * 0.5)


def test_cohere_with_weights_scales_each_pull_over_neighbor_count():
    agent = _agent(0.0, 0.0)
    neighbors = [_agent(10.0, 0.0, agent_id=1), _agent(0.0, 10.0, agent_id=2)]

    steering.cohere(agent, 1.0, neighbors, [1.0, 0.0])

    assert agent.velocity.x == approx(5.0)
    assert agent.velocity.y == approx(0.0)


def test_lone_weighted_neighbor_is_attenuated():
    full = _agent(0.0, 0.0)
    faint = _agent(0.0, 0.0)
    neighbors = [_agent(10.0, 0.0, 0.0, 4.0, agent_id=1, group_id=1)]

    steering.cohere(full, 1.0, neighbors, [1.0])
    steering.align(full, 1.0, neighbors, [1.0])
    steering.cohere(faint, 1.0, neighbors, [0.1])
    steering.align(faint, 1.0, neighbors, [0.1])

    assert full.velocity.x == approx(10.0)
    assert full.velocity.y == approx(4.0)
    assert faint.velocity.x == approx(1.0)
    assert faint.velocity.y == approx(0.4)


def test_cohere_ignores_fully_unfriendly_neighbors():
    agent = _agent(0.0, 0.0, 2.0, 2.0)
    neighbors = [_agent(10.0, 0.0, agent_id=1)]

    steering.cohere(agent, 1.0, neighbors, [0.0])
    steering.align(agent, 1.0, neighbors, [0.0])

    assert agent.velocity == Vector2(2.0, 2.0)


def test_separation_is_unit_scaled_at_min_distance():
    agent = _agent(0.0, 0.0)
    neighbors = [_agent(10.0, 0.0, agent_id=1)]

    steering.separate(agent, 1.0, 10.0, neighbors)

    assert agent.velocity.x == approx(-10.0)
    assert agent.velocity.y == approx(0.0)


def test_separation_grows_for_closer_neighbors():
    agent = _agent(0.0, 0.0)
    neighbors = [_agent(5.0, 0.0, agent_id=1)]

    steering.separate(agent, 0.5, 10.0, neighbors)

    # offset (-5, 0) / (25 / 100) = (-20, 0), scaled by 0.5
    assert agent.velocity.x == approx(-10.0)


def test_separation_sums_weighted_contributions():
    agent = _agent(0.0, 0.0)
    neighbors = [_agent(10.0, 0.0, agent_id=1), _agent(0.0, 10.0, agent_id=2)]

    steering.separate(agent, 1.0, 10.0, neighbors, [1.0, 0.5])

    assert agent.velocity.x == approx(-10.0)
    assert agent.velocity.y == approx(-5.0)


def test_separation_skips_coincident_neighbors_and_zero_distance():
    agent = _agent(4.0, 4.0, 1.0, 1.0)
    twin = _agent(4.0, 4.0, agent_id=1)
    other = _agent(14.0, 4.0, agent_id=2)

    steering.separate(agent, 1.0, 10.0, [twin])
    assert agent.velocity == Vector2(1.0, 1.0)

    steering.separate(agent, 1.0, 0.0, [other])
    assert agent.velocity == Vector2(1.0, 1.0)


def test_align_adds_mean_velocity_not_difference():
    agent = _agent(0.0, 0.0, 1.0, 0.0)
    neighbors = [_agent(1.0, 0.0, 2.0, 0.0, agent_id=1), _agent(2.0, 0.0, 4.0, 0.0, agent_id=2)]

    steering.align(agent, 0.5, neighbors)

    assert agent.velocity.x == approx(1.0 + 3.0 * 0.5)
    assert agent.velocity.y == approx(0.0)


@pytest.mark.parametrize(
    "velocity, max_speed",
    [
        ((30.0, 40.0), 10.0),
        ((3.0, 4.0), 5.0),
        ((-120.0, 0.5), 60.0),
    ],
)
def test_constrain_speed_caps_length_and_keeps_direction(velocity, max_speed):
    agent = _agent(0.0, 0.0, *velocity)
    before = Vector2(velocity).normalize()

    steering.constrain_speed(agent, max_speed)

    assert agent.velocity.length() == approx(max_speed)
    after = agent.velocity.normalize()
    assert after.x == approx(before.x)
    assert after.y == approx(before.y)


def test_constrain_speed_leaves_slow_agents_alone():
    agent = _agent(0.0, 0.0, 1.0, -2.0)

    steering.constrain_speed(agent, 5.0)

    assert agent.velocity == Vector2(1.0, -2.0)


def test_constrain_speed_with_zero_limit_and_still_agent():
    agent = _agent(0.0, 0.0)

    steering.constrain_speed(agent, 0.0)

    assert agent.velocity == Vector2()


def test_constrain_bounds_nudges_on_edges_and_outside():
    boundary = Boundary(Vector2(0, 0), Vector2(100, 100))
    repel = (5.0, 7.0)

    at_min = _agent(0.0, 50.0)
    steering.constrain_bounds(at_min, boundary, repel)
    assert at_min.velocity == Vector2(5.0, 0.0)

    at_max = _agent(100.0, 50.0)
    steering.constrain_bounds(at_max, boundary, repel)
    assert at_max.velocity == Vector2(-5.0, 0.0)

    inside = _agent(50.0, 50.0, 1.0, 1.0)
    steering.constrain_bounds(inside, boundary, repel)
    assert inside.velocity == Vector2(1.0, 1.0)

    outside = _agent(-1.0, 101.0)
    steering.constrain_bounds(outside, boundary, repel)
    assert outside.velocity == Vector2(5.0, -7.0)


def test_constrain_bounds_strict_mode_ignores_edges():
    boundary = Boundary(Vector2(0, 0), Vector2(100, 100))

    on_edge = _agent(0.0, 100.0)
    steering.constrain_bounds(on_edge, boundary, (5.0, 5.0), inclusive=False)
    assert on_edge.velocity == Vector2()

    beyond = _agent(-0.5, 100.5)
    steering.constrain_bounds(beyond, boundary, (5.0, 5.0), inclusive=False)
    assert beyond.velocity == Vector2(5.0, -5.0)


def test_constrain_bounds_is_a_nudge_not_a_clamp():
    boundary = Boundary(Vector2(0, 0), Vector2(100, 100))
    agent = _agent(-50.0, 50.0, -100.0, 0.0)

    steering.constrain_bounds(agent, boundary, (10.0, 10.0))
    steering.integrate(agent, 1.0)

    assert agent.position.x == approx(-140.0)
    assert not boundary.contains(agent.position)


def test_integrate_with_zero_dt_keeps_position():
    agent = _agent(1.5, 2.5, 300.0, -400.0)

    steering.integrate(agent, 0.0)

    assert agent.position == Vector2(1.5, 2.5)


def test_integrate_adds_velocity_times_dt():
    agent = _agent(1.5, 2.5, 3.0, -4.0)

    steering.integrate(agent, 0.25)

    assert agent.position.x == 1.5 + 3.0 * 0.25
    assert agent.position.y == 2.5 + -4.0 * 0.25
