#!/usr/bin/env python3
"""Run a baseline Ecotone simulation and print results."""

import logging
import sys

from ecotone.experiment.presets import get_preset, list_presets
from ecotone.experiment.runner import ExperimentRunner


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    preset = sys.argv[1] if len(sys.argv) > 1 else "baseline"
    if preset not in list_presets():
        print(f"Unknown preset '{preset}'. Available: {', '.join(list_presets())}")
        sys.exit(1)
    config = get_preset(preset).copy(grid_width=60, grid_height=60)
    ticks = 300

    print(f"=== Ecotone Sandbox: {config.experiment_name} ===")
    print(f"Grid: {config.grid_width}x{config.grid_height} ({config.placement_mode} nodes)")
    print(f"Founders: {config.initial_prey_count} prey, {config.initial_predator_count} predators")
    print(f"Ticks: {ticks}")
    print()

    result = ExperimentRunner().run_experiment(config, ticks)

    print(f"{'Tick':>5} {'Prey':>5} {'Pred':>5} {'Births':>6} {'Starve':>6} "
          f"{'Age':>4} {'Eaten':>5} {'Food':>8} {'Temp':>6} {'Size':>5} {'Hunt':>5}")
    print("-" * 74)

    for stats in result.history[::10]:
        prey_means = stats.trait_means["prey"]
        predator_means = stats.trait_means["predator"]
        print(
            f"{stats.tick:5d} {stats.prey_count:5d} {stats.predator_count:5d} "
            f"{sum(stats.births.values()):6d} "
            f"{stats.deaths['starvation']:6d} {stats.deaths['old_age']:4d} "
            f"{stats.deaths['predation']:5d} "
            f"{stats.total_resources:8.1f} {stats.mean_temperature:6.1f} "
            f"{prey_means['size']:5.2f} {predator_means['hunting_efficiency']:5.2f}"
        )

    print()
    print(f"=== Final State (Tick {result.ticks_run}) ===")
    print(f"Prey: {result.final_prey}")
    print(f"Predators: {result.final_predators}")
    print(f"Extinction: {result.extinction}")
    print(f"Total births: {result.total_births}")
    print(f"Total deaths: {result.total_deaths}")
    print(f"Peak prey: {result.peak_prey}, peak predators: {result.peak_predators}")

    if result.history:
        final = result.history[-1]
        print("\nPrey temperature tolerance:")
        for category, freq in final.phenotype_frequencies["prey"]["temperature_tolerance"].items():
            print(f"  {category:8s}: {freq * 100:5.1f}%")


if __name__ == "__main__":
    main()
