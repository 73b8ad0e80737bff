"""
Shared test fixtures.

Engine tests run on small grids with a fixed seed so a full test session
stays fast and deterministic.
"""

import numpy as np
import pytest

from ecotone.core.config import SimulationConfig


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_config():
    return SimulationConfig(
        experiment_name="test",
        random_seed=42,
        grid_width=20,
        grid_height=20,
        population_density_pct=10.0,
        predator_ratio=0.1,
        tick_interval_ms=0,
    )
