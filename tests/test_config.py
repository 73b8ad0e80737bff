"""Tests for SimulationConfig."""

import pytest

from ecotone.core.agent import AgentKind
from ecotone.core.config import SimulationConfig
from ecotone.core.errors import ConfigurationError
from ecotone.core.traits import TraitSchema


class TestConfigDefaults:
    def test_default_experiment_name(self):
        c = SimulationConfig()
        assert c.experiment_name == "default"

    def test_defaults_validate(self):
        SimulationConfig().validate()

    def test_default_grid(self):
        c = SimulationConfig()
        assert (c.grid_width, c.grid_height) == (100, 100)
        assert c.placement_mode == "random"

    def test_species_configs(self):
        c = SimulationConfig()
        assert c.species_config(AgentKind.PREY) is c.prey_config
        assert c.species_config(AgentKind.PREDATOR) is c.predator_config
        assert c.predator_config["max_energy"] > c.prey_config["max_energy"]

    def test_seeds_cover_every_trait(self):
        c = SimulationConfig()
        for kind in AgentKind:
            assert set(c.trait_seeds[kind.value]) == set(c.trait_schema(kind).names())


class TestDerived:
    def test_initial_counts(self):
        c = SimulationConfig(grid_width=100, grid_height=100, population_density_pct=1.0,
                             predator_ratio=0.02)
        assert c.initial_prey_count == 100
        assert c.initial_predator_count == 2

    def test_counts_floor_at_one(self):
        c = SimulationConfig(grid_width=5, grid_height=5, population_density_pct=0.0,
                             predator_ratio=0.0)
        assert c.initial_prey_count == 1
        assert c.initial_predator_count == 1

    def test_node_density_fraction(self):
        assert SimulationConfig(node_density_pct=5.0).node_density == pytest.approx(0.05)


class TestTraitSchemaCache:
    def test_lazy_schema(self):
        c = SimulationConfig()
        schema = c.trait_schema(AgentKind.PREY)
        assert isinstance(schema, TraitSchema)
        assert c.trait_schema(AgentKind.PREY) is schema

    def test_schema_per_kind(self):
        c = SimulationConfig()
        assert c.trait_schema(AgentKind.PREY) is not c.trait_schema(AgentKind.PREDATOR)


class TestValidation:
    def test_bad_placement_mode(self):
        with pytest.raises(ConfigurationError, match="placement_mode"):
            SimulationConfig(placement_mode="spiral").validate()

    def test_percent_out_of_range(self):
        with pytest.raises(ConfigurationError, match="mutation_rate_pct"):
            SimulationConfig(mutation_rate_pct=150.0).validate()

    def test_all_problems_reported(self):
        c = SimulationConfig(grid_width=0, max_population=0, symbolic_flip_fraction=2.0)
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert len(exc_info.value.problems) >= 3

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            SimulationConfig(predator_ratio=-1.0).validate()

    def test_manual_node_outside_grid(self):
        c = SimulationConfig(grid_width=10, grid_height=10, placement_mode="manual",
                             manual_nodes=[(10, 3)])
        with pytest.raises(ConfigurationError, match="outside the grid"):
            c.validate()

    def test_additive_seed_out_of_bounds(self):
        c = SimulationConfig()
        c.trait_seeds["predator"]["hunting_efficiency"] = 1.5
        with pytest.raises(ConfigurationError, match="hunting_efficiency"):
            c.validate()

    def test_categorical_seed_is_probability(self):
        c = SimulationConfig()
        c.trait_seeds["prey"]["resistance"] = 1.2
        with pytest.raises(ConfigurationError, match="resistance"):
            c.validate()

    def test_unknown_seed_trait(self):
        c = SimulationConfig()
        c.trait_seeds["prey"]["wingspan"] = 0.5
        with pytest.raises(ConfigurationError, match="unknown trait 'wingspan'"):
            c.validate()

    def test_missing_species_key(self):
        c = SimulationConfig()
        del c.prey_config["reproduction_cost"]
        with pytest.raises(ConfigurationError, match="reproduction_cost"):
            c.validate()

    def test_inverted_climate_thresholds(self):
        c = SimulationConfig()
        c.climate_config["cold_threshold"] = 40.0
        with pytest.raises(ConfigurationError, match="cold_threshold"):
            c.validate()


class TestSerialization:
    def test_to_dict_excludes_cache(self):
        c = SimulationConfig()
        c.trait_schema(AgentKind.PREY)
        d = c.to_dict()
        assert "_schemas" not in d
        assert d["grid_width"] == 100

    def test_json_round_trip(self):
        c = SimulationConfig(experiment_name="rt", random_seed=7, placement_mode="manual",
                             manual_nodes=[(1, 2), (3, 4)])
        restored = SimulationConfig.from_json(c.to_json())
        assert restored.manual_nodes == [(1, 2), (3, 4)]
        assert restored.random_seed == 7
        assert restored.diff(c) == {}

    def test_copy_with_overrides(self):
        c = SimulationConfig(experiment_name="base")
        copy = c.copy(grid_width=50)
        assert copy.grid_width == 50
        assert c.grid_width == 100
        copy.prey_config["max_energy"] = 1.0
        assert c.prey_config["max_energy"] == 120.0

    def test_diff(self):
        a = SimulationConfig()
        b = SimulationConfig(mutation_rate_pct=20.0)
        assert a.diff(b) == {"mutation_rate_pct": (5.0, 20.0)}
