from __future__ import annotations

from typing import List, Sequence

from ..core.agent import Agent


def neighbor_weights(agent: Agent, neighbors: Sequence[Agent], friendliness: float, out: List[float]) -> bool:
    """Fill ``out`` with per-neighbor weights: 1.0 for own group, ``friendliness`` otherwise.

    Returns ``False`` (leaving ``out`` empty) when every neighbor shares the
    agent's group, so callers can skip weighting altogether.
    """
    out.clear()
    group_id = agent.group_id
    mixed = False
    for other in neighbors:
        if other.group_id != group_id:
            mixed = True
            break
    if not mixed:
        return False
    for other in neighbors:
        out.append(1.0 if other.group_id == group_id else friendliness)
    return True


def group_counts(agents: Sequence[Agent], group_count: int) -> List[int]:
    counts = [0] * group_count
    for agent in agents:
        counts[agent.group_id] += 1
    return counts
