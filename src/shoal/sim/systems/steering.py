from __future__ import annotations

import math
from itertools import repeat
from typing import Iterable, List, Sequence

from ..core.agent import Agent
from ..utils.math2d import Boundary

# Every steering function mutates ``agent.velocity`` (or ``agent.position`` for
# ``integrate``) in place. ``weights`` is parallel to ``neighbors``; ``None``
# weighs every neighbor 1.0. Weighted contributions are still averaged over the
# neighbor count, so a friendliness below 1 always attenuates other groups.


def _weights(neighbors: Sequence[Agent], weights: Sequence[float] | None) -> Iterable[float]:
    return repeat(1.0, len(neighbors)) if weights is None else weights


def cohere(agent: Agent, weight: float, neighbors: List[Agent], weights: Sequence[float] | None = None) -> None:
    if not neighbors:
        return
    count = len(neighbors)
    if weights is None:
        sum_x = 0.0
        sum_y = 0.0
        for other in neighbors:
            sum_x += other.position.x
            sum_y += other.position.y
        agent.velocity.x += (sum_x / count - agent.position.x) * weight
        agent.velocity.y += (sum_y / count - agent.position.y) * weight
        return
    pos_x = agent.position.x
    pos_y = agent.position.y
    pull_x = 0.0
    pull_y = 0.0
    for other, w in zip(neighbors, weights):
        pull_x += (other.position.x - pos_x) * w
        pull_y += (other.position.y - pos_y) * w
    agent.velocity.x += pull_x / count * weight
    agent.velocity.y += pull_y / count * weight


def separate(
    agent: Agent,
    weight: float,
    min_separation_distance: float,
    neighbors: List[Agent],
    weights: Sequence[float] | None = None,
) -> None:
    if not neighbors:
        return
    min_sep_sq = min_separation_distance * min_separation_distance
    if min_sep_sq == 0.0:
        # v / (|v|^2 / 0) tends to the zero vector
        return
    pos_x = agent.position.x
    pos_y = agent.position.y
    sep_x = 0.0
    sep_y = 0.0
    for other, w in zip(neighbors, _weights(neighbors, weights)):
        offset_x = pos_x - other.position.x
        offset_y = pos_y - other.position.y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq == 0.0:
            continue
        falloff = dist_sq / min_sep_sq
        sep_x += offset_x * w / falloff
        sep_y += offset_y * w / falloff
    agent.velocity.x += sep_x * weight
    agent.velocity.y += sep_y * weight


def align(agent: Agent, weight: float, neighbors: List[Agent], weights: Sequence[float] | None = None) -> None:
    """Steer toward the neighbors' mean velocity.

    The mean velocity itself is added, not its difference from the agent's
    own velocity, so alignment also accelerates a flock that already agrees
    on a heading until ``constrain_speed`` caps it. With ``weights`` each
    neighbor's velocity is scaled before averaging over the neighbor count.
    """
    if not neighbors:
        return
    sum_x = 0.0
    sum_y = 0.0
    for other, w in zip(neighbors, _weights(neighbors, weights)):
        sum_x += other.velocity.x * w
        sum_y += other.velocity.y * w
    count = len(neighbors)
    agent.velocity.x += sum_x / count * weight
    agent.velocity.y += sum_y / count * weight


def constrain_bounds(
    agent: Agent,
    boundary: Boundary,
    repel: Sequence[float],
    inclusive: bool = True,
) -> None:
    pos = agent.position
    if inclusive:
        below_x, above_x = pos.x <= boundary.min.x, pos.x >= boundary.max.x
        below_y, above_y = pos.y <= boundary.min.y, pos.y >= boundary.max.y
    else:
        below_x, above_x = pos.x < boundary.min.x, pos.x > boundary.max.x
        below_y, above_y = pos.y < boundary.min.y, pos.y > boundary.max.y

    if below_x:
        agent.velocity.x += repel[0]
    elif above_x:
        agent.velocity.x -= repel[0]

    if below_y:
        agent.velocity.y += repel[1]
    elif above_y:
        agent.velocity.y -= repel[1]


def constrain_speed(agent: Agent, max_speed: float) -> None:
    vel = agent.velocity
    speed_sq = vel.x * vel.x + vel.y * vel.y
    if speed_sq < max_speed * max_speed:
        return
    if speed_sq == 0.0:
        vel.update(0.0, 0.0)
        return
    length = math.sqrt(speed_sq)
    vel.update(vel.x / length * max_speed, vel.y / length * max_speed)


def integrate(agent: Agent, dt: float) -> None:
    agent.position.update(
        agent.position.x + agent.velocity.x * dt,
        agent.position.y + agent.velocity.y * dt,
    )
