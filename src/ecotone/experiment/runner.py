"""
Experiment Runner: A/B testing, parameter sweeps, and batch execution.

Runs the engine headlessly for a fixed number of ticks and collects the
per-tick statistics so different configurations can be compared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from ecotone.core.config import SimulationConfig
from ecotone.core.engine import SimulationEngine
from ecotone.metrics.collector import TickStatistics

logger = logging.getLogger(__name__)


@dataclass
class ExperimentResult:
    """Result of a single experiment run."""
    config: SimulationConfig
    history: list[TickStatistics]
    final_prey: int
    final_predators: int
    ticks_run: int
    extinction: str
    total_births: int
    total_deaths: int

    def series(self, field_name: str) -> np.ndarray:
        """One scalar statistics field as an array over the run's ticks."""
        return np.array([getattr(s, field_name) for s in self.history], dtype=np.float64)

    def peak(self, field_name: str) -> int:
        """Largest value a count field reached; 0 for an empty run."""
        values = self.series(field_name)
        return int(values.max()) if values.size else 0

    @property
    def peak_prey(self) -> int:
        return self.peak("prey_count")

    @property
    def peak_predators(self) -> int:
        return self.peak("predator_count")


@dataclass
class ComparisonResult:
    """Result of comparing two or more experiments."""
    results: dict[str, ExperimentResult]
    config_diffs: dict[str, Any]


class ExperimentRunner:
    """
    Run, compare, and sweep simulation experiments.
    """

    def run_experiment(self, config: SimulationConfig, ticks: int = 500) -> ExperimentResult:
        """Run a single experiment and return results."""
        engine = SimulationEngine(config)
        history = engine.run(ticks)
        logger.info(
            "Experiment '%s' finished after %d ticks: %d prey, %d predators (%s)",
            config.experiment_name, engine.tick, len(engine.prey),
            len(engine.predators), engine.extinction.value,
        )
        return ExperimentResult(
            config=engine.config,
            history=history,
            final_prey=len(engine.prey),
            final_predators=len(engine.predators),
            ticks_run=engine.tick,
            extinction=engine.extinction.value,
            total_births=engine.total_births,
            total_deaths=engine.total_deaths,
        )

    def compare_experiments(
        self,
        configs: dict[str, SimulationConfig],
        ticks: int = 500,
    ) -> ComparisonResult:
        """Run multiple experiments and compare results."""
        results: dict[str, ExperimentResult] = {}
        for name, config in configs.items():
            results[name] = self.run_experiment(config, ticks)

        # Diffs are taken against the first config
        config_names = list(configs.keys())
        diffs: dict[str, Any] = {}
        if len(config_names) >= 2:
            base = configs[config_names[0]]
            for name in config_names[1:]:
                diffs[f"{config_names[0]}_vs_{name}"] = base.diff(configs[name])

        return ComparisonResult(results=results, config_diffs=diffs)

    def run_ab_test(
        self,
        config_a: SimulationConfig,
        config_b: SimulationConfig,
        label_a: str = "A",
        label_b: str = "B",
        ticks: int = 500,
    ) -> ComparisonResult:
        """Run an A/B test between two configurations."""
        return self.compare_experiments({label_a: config_a, label_b: config_b}, ticks)

    def run_parameter_sweep(
        self,
        base_config: SimulationConfig,
        param_name: str,
        values: list[Any],
        ticks: int = 500,
    ) -> dict[str, ExperimentResult]:
        """
        Sweep a single parameter across multiple values.

        Args:
            base_config: Base configuration to modify
            param_name: Name of the parameter to sweep (attribute on SimulationConfig)
            values: List of values to test
            ticks: Ticks to run per value

        Returns:
            Dict mapping value label -> ExperimentResult
        """
        if param_name not in base_config.to_dict():
            raise KeyError(f"Unknown config parameter: {param_name!r}")

        results: dict[str, ExperimentResult] = {}
        for val in values:
            config = base_config.copy(
                **{param_name: val, "experiment_name": f"sweep_{param_name}={val}"}
            )
            results[f"{param_name}={val}"] = self.run_experiment(config, ticks)
        return results

    def run_multi_seed(
        self,
        config: SimulationConfig,
        seeds: list[int],
        ticks: int = 500,
    ) -> list[ExperimentResult]:
        """
        Run the same configuration with multiple random seeds.

        Useful for measuring variance in outcomes.
        """
        results: list[ExperimentResult] = []
        for seed in seeds:
            seed_config = config.copy(
                random_seed=seed,
                experiment_name=f"{config.experiment_name}_seed{seed}",
            )
            results.append(self.run_experiment(seed_config, ticks))
        return results
