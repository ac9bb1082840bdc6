from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import Simulation
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_HEADER = [
    "tick",
    "time",
    "population",
    "births",
    "deaths",
    "avg_energy",
    "avg_consciousness",
    "max_consciousness",
    "max_generation",
    "species",
    "timeline_events",
    "tick_ms",
]


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        f"{metrics.time:.4f}",
        metrics.population,
        metrics.births,
        metrics.deaths,
        f"{metrics.average_energy:.4f}",
        f"{metrics.average_consciousness:.4f}",
        f"{metrics.max_consciousness:.4f}",
        metrics.max_generation,
        metrics.species_count,
        metrics.timeline_events,
        f"{tick_ms:.3f}",
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
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> Simulation:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    simulation = Simulation(config)
    logger.info("running %d steps with seed %d", steps, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    tick_ms_series: list[float] = []
    population_series: list[float] = []
    consciousness_series: list[float] = []
    births = 0
    deaths = 0

    try:
        for _ in range(steps):
            metrics = simulation.step()
            if metrics is None:
                continue
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            births += metrics.births
            deaths += metrics.deaths
            tick_ms_series.append(tick_ms)
            population_series.append(float(metrics.population))
            consciousness_series.append(metrics.max_consciousness)
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
            if metrics.population == 0:
                logger.info("population extinct at tick %d", metrics.tick)
                break
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        state = simulation.state
        summary = {
            "steps": simulation.tick_count,
            "seed": config.seed,
            "deterministic_log": deterministic_log,
            "final_time": state.time,
            "elapsed_years": state.elapsed_years,
            "births": births,
            "deaths": deaths,
            "final_population": len(state.agents),
            "species": state.statistics.species_count,
            "max_generation": state.statistics.total_generations,
            "timeline_events": len(state.timeline),
            "tick_ms": _summary_stats(tick_ms_series),
            "population": _summary_stats(population_series),
            "max_consciousness": _summary_stats(consciousness_series),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return simulation


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless genesis simulation")
    parser.add_argument("--steps", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file overriding the default config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
