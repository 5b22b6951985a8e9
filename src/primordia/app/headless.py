from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.timeline import Timeline
from ..sim.core.world import World
from ..sim.types.metrics import StepMetrics
from ..sim.types.snapshot import step_to_wire

logger = logging.getLogger("primordia.headless")

_HEADER = [
    "tick",
    "population",
    "organisms",
    "nutrients",
    "births",
    "deaths",
    "repaired",
    "dropped",
    "avg_energy",
    "frame_ms",
    "avg_organism_ms",
]


def _format_row(metrics: StepMetrics, frame_ms: float, deterministic: bool = False) -> list[object]:
    times = [] if deterministic else metrics.organism_calculation_times_ms
    avg_organism_ms = sum(times) / len(times) if times else 0.0
    return [
        metrics.tick,
        metrics.population,
        metrics.organisms,
        metrics.nutrients,
        metrics.births,
        metrics.deaths,
        metrics.repaired,
        metrics.dropped,
        f"{metrics.average_energy:.4f}",
        f"{frame_ms:.3f}",
        f"{avg_organism_ms:.4f}",
    ]


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}
    sorted_values = sorted(values)
    count = len(sorted_values)

    def _percentile(percentile: float) -> float:
        pos = (count - 1) * percentile
        low = int(math.floor(pos))
        high = int(math.ceil(pos))
        weight = pos - low
        return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)

    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(sorted_values) / count),
        "p50": _percentile(0.50),
        "p95": _percentile(0.95),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    final_step_path: Optional[Path] = None,
    config: Optional[SimulationConfig] = None,
) -> Timeline:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)
    timeline = Timeline(world, world.initial_step())
    logger.info("Running %d steps (seed=%d)", steps, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    frame_series: list[float] = []
    population_series: list[float] = []
    try:
        for _ in range(steps):
            timeline.step_forward()
            metrics = timeline.last_metrics
            frame_ms = 0.0 if deterministic_log else metrics.frame_duration_ms
            frame_series.append(frame_ms)
            population_series.append(float(metrics.population))
            if writer:
                writer.writerow(_format_row(metrics, frame_ms, deterministic_log))
            if metrics.population == 0:
                logger.info("Population extinct at tick %d", metrics.tick)
                break
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        summary = {
            "steps": len(timeline) - 1,
            "seed": config.seed,
            "deterministic_log": deterministic_log,
            "frame_ms": _summary_stats(frame_series),
            "population": _summary_stats(population_series),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    if final_step_path:
        Path(final_step_path).write_text(json.dumps(step_to_wire(timeline.latest)))
    return timeline


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless primordia simulation")
    parser.add_argument("--steps", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument("--summary", type=Path, default=None, help="JSON file for summary stats")
    parser.add_argument("--final-step", type=Path, default=None, help="JSON file for the last step")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (frame_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        final_step_path=args.final_step,
        config=config,
    )


if __name__ == "__main__":
    main()
