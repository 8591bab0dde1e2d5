from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.flock import Flock
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "neighbor_checks",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "groups",
    "neighbor_checks",
    "avg_speed",
    "tick_ms",
    "neighbors_per_agent",
    "max_speed",
    "out_of_bounds",
    "centroid_x",
    "centroid_y",
    "polarization",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.neighbor_checks,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    neighbors_per_agent = 0.0 if population <= 0 else metrics.neighbor_checks / population
    return [
        metrics.tick,
        population,
        metrics.groups,
        metrics.neighbor_checks,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
        f"{neighbors_per_agent:.4f}",
        f"{metrics.max_speed:.4f}",
        metrics.out_of_bounds,
        f"{metrics.centroid_x:.4f}",
        f"{metrics.centroid_y:.4f}",
        f"{metrics.polarization:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config: Optional[SimulationConfig] = None,
    dt: Optional[float] = None,
) -> Flock:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig() if config is None else config
    if seed is not None:
        config.seed = seed
    step_dt = config.time_step if dt is None else dt
    flock = Flock(config)
    logger.info(
        "running %d steps of %d agents in %d groups (dt=%.4f, mode=%s)",
        steps,
        len(flock.agents),
        len(flock.groups),
        step_dt,
        config.update_mode,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    neighbor_checks_series: list[float] = []
    polarization_series: list[float] = []
    max_tick_ms = (-1.0, -1)

    try:
        for tick in range(steps):
            metrics = flock.tick(step_dt)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                neighbor_checks_series.append(float(metrics.neighbor_checks))
                polarization_series.append(metrics.polarization)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "dt": step_dt,
            "update_mode": config.update_mode,
            "population": len(flock.agents),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "polarization": _summary_stats(polarization_series),
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "neighbor_checks": _summary_stats(neighbor_checks_series[tail_slice]),
                "polarization": _summary_stats(polarization_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("wrote summary to %s", summary_path)
    return flock


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids flock simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--dt", type=float, default=None, help="Fixed tick length in seconds (default: config time_step).")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
        dt=args.dt,
    )


if __name__ == "__main__":
    main()
