"""Tests for ExperimentRunner."""

import numpy as np
import pytest

from ecotone.core.config import SimulationConfig
from ecotone.experiment.runner import (
    ComparisonResult,
    ExperimentResult,
    ExperimentRunner,
)


def _make_config(**overrides) -> SimulationConfig:
    defaults = {
        "random_seed": 42, "grid_width": 15, "grid_height": 15,
        "population_density_pct": 10.0, "predator_ratio": 0.1,
    }
    defaults.update(overrides)
    return SimulationConfig(**defaults)


class TestRunExperiment:
    def test_run_single_experiment(self):
        runner = ExperimentRunner()
        result = runner.run_experiment(_make_config(), ticks=5)

        assert isinstance(result, ExperimentResult)
        assert len(result.history) == 5
        assert result.ticks_run == 5
        assert result.final_prey == result.history[-1].prey_count
        assert result.final_predators == result.history[-1].predator_count
        assert result.extinction == result.history[-1].extinction

    def test_totals_match_history(self):
        result = ExperimentRunner().run_experiment(_make_config(), ticks=10)
        births = sum(sum(s.births.values()) for s in result.history)
        deaths = sum(sum(s.deaths.values()) for s in result.history)
        assert result.total_births == births
        assert result.total_deaths == deaths

    def test_stops_early_on_prey_extinction(self):
        config = _make_config(placement_mode="manual", manual_nodes=[])
        config.resource_config["non_node_initial_resources"] = 0.0
        config.prey_config["initial_energy"] = 1.0
        config.trait_seeds["prey"]["resistance"] = 0.0
        result = ExperimentRunner().run_experiment(config, ticks=50)
        assert result.ticks_run < 50
        assert result.final_prey == 0
        assert result.extinction in ("prey_extinct", "total")

    def test_series(self):
        result = ExperimentRunner().run_experiment(_make_config(), ticks=4)
        series = result.series("prey_count")
        assert isinstance(series, np.ndarray)
        assert series.shape == (4,)
        assert result.peak_prey == int(series.max())

    def test_peak_of_empty_run(self):
        result = ExperimentRunner().run_experiment(_make_config(), ticks=0)
        assert result.history == []
        assert result.peak_prey == 0
        assert result.peak_predators == 0


class TestCompareExperiments:
    def test_compare_two(self):
        runner = ExperimentRunner()
        configs = {
            "low": _make_config(mutation_rate_pct=1.0),
            "high": _make_config(mutation_rate_pct=50.0),
        }
        comparison = runner.compare_experiments(configs, ticks=3)
        assert isinstance(comparison, ComparisonResult)
        assert set(comparison.results) == {"low", "high"}
        assert comparison.config_diffs["low_vs_high"] == {"mutation_rate_pct": (1.0, 50.0)}

    def test_single_config_has_no_diffs(self):
        comparison = ExperimentRunner().compare_experiments({"only": _make_config()}, ticks=2)
        assert comparison.config_diffs == {}

    def test_ab_test(self):
        comparison = ExperimentRunner().run_ab_test(
            _make_config(), _make_config(predator_reproduction=False),
            label_a="with", label_b="without", ticks=3,
        )
        assert set(comparison.results) == {"with", "without"}
        assert "predator_reproduction" in comparison.config_diffs["with_vs_without"]


class TestParameterSweep:
    def test_sweep(self):
        results = ExperimentRunner().run_parameter_sweep(
            _make_config(), "predator_ratio", [0.05, 0.2], ticks=2,
        )
        assert list(results) == ["predator_ratio=0.05", "predator_ratio=0.2"]
        assert results["predator_ratio=0.2"].config.predator_ratio == 0.2
        assert results["predator_ratio=0.2"].config.experiment_name == "sweep_predator_ratio=0.2"

    def test_unknown_parameter(self):
        with pytest.raises(KeyError):
            ExperimentRunner().run_parameter_sweep(_make_config(), "gravity", [1.0], ticks=1)


class TestMultiSeed:
    def test_multi_seed(self):
        config = _make_config(experiment_name="seeds")
        results = ExperimentRunner().run_multi_seed(config, [1, 2, 3], ticks=3)
        assert len(results) == 3
        assert [r.config.random_seed for r in results] == [1, 2, 3]
        assert results[0].config.experiment_name == "seeds_seed1"

    def test_same_seed_same_outcome(self):
        config = _make_config()
        a, b = ExperimentRunner().run_multi_seed(config, [7, 7], ticks=10)
        assert [s.prey_count for s in a.history] == [s.prey_count for s in b.history]
