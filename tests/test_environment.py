"""
Tests for the Environment grid: biomes, temperature, resource nodes and
their placement modes.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pytest

from ecotone.core.config import SimulationConfig
from ecotone.core.environment import (
    BIOME_PROFILES,
    Biome,
    Cell,
    Environment,
    PlacementMode,
    quadrant_biome,
)
from ecotone.core.errors import ConfigurationError


def _make_env(width=10, height=10, **kwargs) -> Environment:
    config = SimulationConfig()
    kwargs.setdefault("resource_config", dict(config.resource_config))
    kwargs.setdefault("climate_config", dict(config.climate_config))
    kwargs.setdefault("rng", np.random.default_rng(42))
    return Environment(width, height, **kwargs)


class TestBiomes:
    def test_quadrants(self):
        assert quadrant_biome(0, 0, 10, 10) is Biome.TUNDRA
        assert quadrant_biome(9, 0, 10, 10) is Biome.FOREST
        assert quadrant_biome(0, 9, 10, 10) is Biome.PLAINS
        assert quadrant_biome(9, 9, 10, 10) is Biome.DESERT

    def test_biome_at(self):
        env = _make_env()
        assert env.biome_at(5, 5) is Biome.DESERT
        assert env.biome_at(4, 4) is Biome.TUNDRA

    def test_move_cost_multiplier(self):
        env = _make_env()
        assert env.move_cost_multiplier_at(9, 0) == pytest.approx(1.5)
        assert env.move_cost_multiplier_at(0, 9) == pytest.approx(1.0)

    def test_out_of_bounds_lookups_return_none(self):
        env = _make_env()
        assert env.biome_at(10, 0) is None
        assert env.temperature_at(-1, 0) is None
        assert env.move_cost_multiplier_at(0, 10) is None
        assert env.get_cell(10, 10) is None


class TestTemperature:
    def test_tick_zero_is_base_temperature(self):
        env = _make_env()
        assert env.temperature_at(9, 9) == pytest.approx(35.0)
        assert env.temperature_at(0, 0) == pytest.approx(10.0)
        assert env.season_offset == pytest.approx(0.0)

    def test_update_applies_season_and_fluctuation(self):
        env = _make_env()
        cc = env.cc
        tick = 100
        env.update(tick)
        season = cc["season_amplitude"] * math.sin(tick * cc["season_frequency"])
        expected = (
            BIOME_PROFILES[Biome.DESERT].base_temperature
            + season
            + BIOME_PROFILES[Biome.DESERT].temperature_amplitude
            * math.sin(tick * cc["biome_frequency"])
        )
        assert env.season_offset == pytest.approx(season)
        assert env.temperature_at(9, 9) == pytest.approx(expected)
        assert env.tick == tick

    def test_mean_temperature(self):
        env = _make_env()
        assert env.mean_temperature == pytest.approx((25 + 23 + 35 + 10) / 4)


class TestResources:
    def test_consume_never_negative(self):
        env = _make_env(placement_mode="manual", manual_nodes=[])
        before = env.get_cell(3, 3).resource_amount
        consumed = env.consume_resource_at(3, 3, 5.0)
        assert consumed == pytest.approx(before)
        assert env.get_cell(3, 3).resource_amount == 0.0
        assert env.consume_resource_at(3, 3, 5.0) == 0.0
        assert env.get_cell(3, 3).resource_amount == 0.0

    def test_consume_never_exceeds_request(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(3, 3)])
        consumed = env.consume_resource_at(3, 3, 0.5)
        assert consumed == pytest.approx(0.5)
        assert env.get_cell(3, 3).resource_amount == pytest.approx(6.5)

    def test_consume_out_of_bounds(self):
        env = _make_env()
        assert env.consume_resource_at(20, 20, 1.0) == 0.0

    def test_non_positive_request(self):
        env = _make_env()
        assert env.consume_resource_at(1, 1, 0.0) == 0.0
        assert env.consume_resource_at(1, 1, -3.0) == 0.0

    def test_nodes_replenish(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(2, 2)])
        env.update(1)
        assert env.get_cell(2, 2).resource_amount == pytest.approx(7.25)
        assert env.get_cell(3, 3).resource_amount == pytest.approx(1.0)

    def test_replenish_clamped_to_max(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(2, 2)])
        for tick in range(1, 100):
            env.update(tick)
        assert env.get_cell(2, 2).resource_amount == pytest.approx(env.max_resources)

    def test_total_resources(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(0, 0)])
        assert env.total_resources() == pytest.approx(99 * 1.0 + 7.0)


class TestNodes:
    def test_manual_nodes(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(1, 1), (2, 3)])
        assert env.node_positions() == [(1, 1), (2, 3)]
        assert env.node_count == 2
        assert env.get_cell(2, 3).is_node

    def test_manual_node_outside_grid(self):
        with pytest.raises(ConfigurationError):
            _make_env(placement_mode="manual", manual_nodes=[(10, 0)])

    def test_random_density(self):
        env = _make_env(width=50, height=50, node_density=0.2)
        assert 0.1 * 2500 < env.node_count < 0.3 * 2500

    def test_zero_density(self):
        env = _make_env(node_density=0.0)
        assert env.node_count == 0

    def test_toggle_node_on_and_off(self):
        env = _make_env(placement_mode="manual", manual_nodes=[])
        assert env.toggle_node(4, 4)
        cell = env.get_cell(4, 4)
        assert cell.is_node
        assert cell.resource_amount == pytest.approx(7.0)
        assert env.toggle_node(4, 4)
        cell = env.get_cell(4, 4)
        assert not cell.is_node
        assert cell.resource_amount == pytest.approx(1.0)
        assert env.node_count == 0

    def test_toggled_node_replenishes(self):
        env = _make_env(placement_mode="manual", manual_nodes=[])
        env.toggle_node(4, 4)
        env.update(1)
        assert env.get_cell(4, 4).resource_amount == pytest.approx(7.25)

    def test_toggle_out_of_bounds(self):
        env = _make_env()
        assert env.toggle_node(11, 0) is False

    def test_node_positions_is_copy(self):
        env = _make_env(placement_mode="manual", manual_nodes=[(1, 1)])
        positions = env.node_positions()
        positions.append((5, 5))
        assert env.node_count == 1


class TestClusteredPlacement:
    def test_clustered_nodes_near_centers(self):
        env = _make_env(width=100, height=100, placement_mode=PlacementMode.CLUSTERED)
        assert env.node_count > 0
        radius = env.rc["cluster_radius"]
        centers = env.generate_cluster_centers(4, 35)
        assert centers
        for cx, cy in centers:
            assert radius + 2 <= cx <= 100 - 1 - radius - 2

    def test_centers_respect_min_distance(self):
        env = _make_env(width=100, height=100)
        centers = env.generate_cluster_centers(4, 20)
        for i, (ax, ay) in enumerate(centers):
            for bx, by in centers[i + 1:]:
                assert (ax - bx) ** 2 + (ay - by) ** 2 >= 20 ** 2

    def test_degrades_on_small_grid(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ecotone.core.environment"):
            env = _make_env(width=10, height=10, placement_mode="clustered")
        assert env.node_count > 0
        assert "cluster centers" in caplog.text
        centers = env.generate_cluster_centers(4, 35)
        assert 1 <= len(centers) < 4


class TestCells:
    def test_iter_cells_row_major(self):
        env = _make_env(width=3, height=2)
        cells = list(env.iter_cells())
        assert len(cells) == 6
        assert (cells[0].x, cells[0].y) == (0, 0)
        assert (cells[3].x, cells[3].y) == (0, 1)

    def test_cell_is_frozen(self):
        env = _make_env()
        cell = env.get_cell(0, 0)
        assert isinstance(cell, Cell)
        with pytest.raises(AttributeError):
            cell.resource_amount = 5.0

    def test_cell_color(self):
        env = _make_env()
        assert env.get_cell(9, 9).color == BIOME_PROFILES[Biome.DESERT].color

    def test_grid_must_be_non_empty(self):
        with pytest.raises(ConfigurationError):
            _make_env(width=0, height=5)
