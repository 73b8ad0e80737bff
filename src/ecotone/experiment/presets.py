"""
Experiment presets: pre-configured experiment templates.

Each preset returns a SimulationConfig with specific parameter settings
designed to probe a different question about the ecosystem.
"""

from __future__ import annotations

from typing import Any, Callable

from ecotone.core.config import SimulationConfig


def _merged(field_name: str, **changes: Any) -> dict[str, Any]:
    """Default value of a dict-valued config field with some keys replaced."""
    base = dict(getattr(SimulationConfig(), field_name))
    base.update(changes)
    return base


def baseline() -> SimulationConfig:
    """Standard baseline configuration with default parameters."""
    return SimulationConfig(experiment_name="baseline", random_seed=42)


def clustered_oases() -> SimulationConfig:
    """Resources concentrated in a few large clusters instead of scattered nodes."""
    return SimulationConfig(
        experiment_name="clustered_oases",
        random_seed=42,
        placement_mode="clustered",
        resource_config=_merged(
            "resource_config", num_clusters=3, cluster_radius=10, min_cluster_distance=30,
        ),
    )


def harsh_climate() -> SimulationConfig:
    """Wide seasonal swings with a steep penalty for temperature mismatch."""
    return SimulationConfig(
        experiment_name="harsh_climate",
        random_seed=42,
        climate_config=_merged(
            "climate_config", season_amplitude=25.0, mismatch_multiplier=3.5,
        ),
    )


def predator_heavy() -> SimulationConfig:
    """Ten times the usual predator share at founding."""
    return SimulationConfig(
        experiment_name="predator_heavy",
        random_seed=42,
        predator_ratio=0.2,
    )


def high_mutation() -> SimulationConfig:
    """Fast mutation: traits wander quickly between generations."""
    return SimulationConfig(
        experiment_name="high_mutation",
        random_seed=42,
        mutation_rate_pct=30.0,
        mutation_amount=0.15,
    )


def no_predator_breeding() -> SimulationConfig:
    """Predators never reproduce; the founding cohort eventually dies out."""
    return SimulationConfig(
        experiment_name="no_predator_breeding",
        random_seed=42,
        predator_reproduction=False,
    )


# Registry of all presets
PRESETS: dict[str, Callable[[], SimulationConfig]] = {
    "baseline": baseline,
    "clustered_oases": clustered_oases,
    "harsh_climate": harsh_climate,
    "predator_heavy": predator_heavy,
    "high_mutation": high_mutation,
    "no_predator_breeding": no_predator_breeding,
}


def get_preset(name: str) -> SimulationConfig:
    """Get a preset config by name."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]()


def list_presets() -> list[str]:
    """Return list of available preset names."""
    return list(PRESETS.keys())
