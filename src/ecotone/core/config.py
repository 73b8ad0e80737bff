"""
Master configuration for the Ecotone Sandbox.

ALL tunable parameters live here. The engine owns one ``SimulationConfig``
and hands it down to every component; nothing reads module globals.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ecotone.core.agent import AgentKind
from ecotone.core.errors import ConfigurationError
from ecotone.core.traits import TraitKind, TraitSchema

PLACEMENT_MODES = ("random", "manual", "clustered")

_SPECIES_KEYS = (
    "max_energy",
    "initial_energy",
    "max_lifespan",
    "reproduction_age",
    "reproduction_energy_threshold",
    "reproduction_cost",
    "base_metabolic_cost",
    "movement_cost",
)


@dataclass
class SimulationConfig:
    """
    Master configuration: every threshold, rate, and constant.

    Percent-valued fields (``*_pct``) are on a 0-100 scale, matching the
    control panel sliders. Use ``validate()`` to reject
    out-of-range values before building an engine.
    """

    # === Experiment identity ===
    experiment_name: str = "default"
    random_seed: int | None = None

    # === Grid ===
    grid_width: int = 100
    grid_height: int = 100
    placement_mode: str = "random"  # 'random', 'manual', 'clustered'
    node_density_pct: float = 5.0
    manual_nodes: list[tuple[int, int]] = field(default_factory=list)

    # === Population ===
    population_density_pct: float = 1.0
    predator_ratio: float = 0.02  # Initial predators as a fraction of initial prey
    max_population: int = 5000
    tick_interval_ms: int = 50
    predator_reproduction: bool = True

    # === Genetics ===
    mutation_rate_pct: float = 5.0
    mutation_amount: float = 0.05
    symbolic_flip_fraction: float = 0.2
    trait_seeds: dict[str, dict[str, float]] = field(default_factory=lambda: {
        "prey": {
            "metabolism_efficiency": 1.0,
            "feeding_efficiency": 1.0,
            "size": 1.0,
            "reproductive_rate": 1.0,
            "temperature_tolerance": 0.5,  # P(dominant allele)
            "resistance": 0.3,
        },
        "predator": {
            "metabolism_efficiency": 0.8,
            "detection_range": 7.0,
            "hunting_efficiency": 0.6,
            "reproductive_rate": 1.0,
            "temperature_tolerance": 0.5,
        },
    })

    # === Species constants ===
    prey_config: dict[str, float] = field(default_factory=lambda: {
        "max_energy": 120.0,
        "initial_energy": 60.0,
        "max_lifespan": 400,
        "reproduction_age": 70,
        "reproduction_energy_threshold": 90.0,
        "reproduction_cost": 45.0,
        "base_metabolic_cost": 0.6,
        "movement_cost": 0.15,
        "food_consumption_rate": 0.6,
        "food_energy_value": 30.0,
        "detection_radius": 4,
        "flee_epsilon": 0.1,
        "resistance_survival_chance": 0.1,
        "resistance_energy_floor": 1.0,
    })
    predator_config: dict[str, float] = field(default_factory=lambda: {
        "max_energy": 144.0,
        "initial_energy": 90.0,
        "max_lifespan": 320,
        "reproduction_age": 90,
        "reproduction_energy_threshold": 100.0,
        "reproduction_cost": 50.0,
        "base_metabolic_cost": 0.72,
        "movement_cost": 0.165,
        "energy_gain_fraction": 0.8,
    })
    mating_search_radius: int = 2

    # === Resources ===
    resource_config: dict[str, float] = field(default_factory=lambda: {
        "cell_max_resources": 15.0,
        "node_replenish_rate": 0.25,
        "node_initial_resources": 7.0,
        "non_node_initial_resources": 1.0,
        "num_clusters": 4,
        "cluster_radius": 12,
        "min_cluster_distance": 35,
        "cluster_attempts_factor": 150,
    })

    # === Climate ===
    climate_config: dict[str, float] = field(default_factory=lambda: {
        "season_amplitude": 15.0,
        "season_frequency": 0.005,
        "biome_frequency": 0.05,
        "cold_threshold": 15.0,
        "hot_threshold": 32.0,
        "boundary_margin": 4.0,
        "preferred_multiplier": 0.8,
        "boundary_multiplier": 1.2,
        "mismatch_multiplier": 2.5,
    })

    # ------------------------------------------------------------------
    # Derived / cached
    # ------------------------------------------------------------------
    _schemas: dict[AgentKind, TraitSchema] = field(
        default_factory=dict, repr=False, compare=False,
    )

    def trait_schema(self, kind: AgentKind) -> TraitSchema:
        """Lazily build and cache the trait schema for an agent kind."""
        if kind not in self._schemas:
            self._schemas[kind] = TraitSchema(kind)
        return self._schemas[kind]

    def species_config(self, kind: AgentKind) -> dict[str, float]:
        return self.prey_config if kind is AgentKind.PREY else self.predator_config

    @property
    def node_density(self) -> float:
        return self.node_density_pct / 100.0

    @property
    def total_cells(self) -> int:
        return self.grid_width * self.grid_height

    @property
    def initial_prey_count(self) -> int:
        return max(1, int(self.total_cells * self.population_density_pct / 100.0))

    @property
    def initial_predator_count(self) -> int:
        return max(1, int(self.initial_prey_count * self.predator_ratio))

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self) -> None:
        """Raise ``ConfigurationError`` listing every invalid parameter."""
        problems: list[str] = []

        if self.grid_width < 1 or self.grid_height < 1:
            problems.append(
                f"grid must be at least 1x1 (got {self.grid_width}x{self.grid_height})"
            )
        if self.placement_mode not in PLACEMENT_MODES:
            problems.append(
                f"placement_mode '{self.placement_mode}' not in {list(PLACEMENT_MODES)}"
            )
        for name in ("node_density_pct", "population_density_pct", "mutation_rate_pct"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                problems.append(f"{name} must be within [0, 100] (got {value})")
        if not 0.0 <= self.symbolic_flip_fraction <= 1.0:
            problems.append(
                f"symbolic_flip_fraction must be within [0, 1] (got {self.symbolic_flip_fraction})"
            )
        if self.mutation_amount < 0:
            problems.append(f"mutation_amount must be >= 0 (got {self.mutation_amount})")
        if self.predator_ratio < 0:
            problems.append(f"predator_ratio must be >= 0 (got {self.predator_ratio})")
        if self.max_population < 1:
            problems.append(f"max_population must be >= 1 (got {self.max_population})")
        if self.tick_interval_ms < 0:
            problems.append(f"tick_interval_ms must be >= 0 (got {self.tick_interval_ms})")
        if self.mating_search_radius < 0:
            problems.append(
                f"mating_search_radius must be >= 0 (got {self.mating_search_radius})"
            )

        for x, y in self.manual_nodes:
            if not (0 <= x < self.grid_width and 0 <= y < self.grid_height):
                problems.append(f"manual node ({x}, {y}) outside the grid")

        for kind in AgentKind:
            species = self.species_config(kind)
            for key in _SPECIES_KEYS:
                if key not in species:
                    problems.append(f"{kind.value}_config missing '{key}'")
                elif species[key] < 0:
                    problems.append(f"{kind.value}_config['{key}'] must be >= 0")
            if species.get("max_energy", 1) <= 0:
                problems.append(f"{kind.value}_config['max_energy'] must be > 0")
            problems.extend(self._validate_seeds(kind))

        for key in ("cell_max_resources", "node_replenish_rate",
                    "node_initial_resources", "non_node_initial_resources"):
            value = self.resource_config.get(key)
            if value is None:
                problems.append(f"resource_config missing '{key}'")
            elif value < 0:
                problems.append(f"resource_config['{key}'] must be >= 0")
        cc = self.climate_config
        if cc.get("cold_threshold", 0) > cc.get("hot_threshold", 0):
            problems.append("climate_config cold_threshold must not exceed hot_threshold")

        if problems:
            raise ConfigurationError(problems)

    def _validate_seeds(self, kind: AgentKind) -> list[str]:
        problems: list[str] = []
        seeds = self.trait_seeds.get(kind.value)
        if seeds is None:
            return [f"trait_seeds missing '{kind.value}'"]
        for trait in self.trait_schema(kind):
            if trait.name not in seeds:
                problems.append(f"trait_seeds['{kind.value}'] missing '{trait.name}'")
                continue
            value = seeds[trait.name]
            if trait.kind is TraitKind.ADDITIVE:
                if not trait.low <= value <= trait.high:
                    problems.append(
                        f"seed for {kind.value}.{trait.name} must be within "
                        f"[{trait.low}, {trait.high}] (got {value})"
                    )
            elif not 0.0 <= value <= 1.0:
                problems.append(
                    f"seed for {kind.value}.{trait.name} is an allele frequency "
                    f"and must be within [0, 1] (got {value})"
                )
        known = self.trait_schema(kind).names()
        for name in seeds:
            if name not in known:
                problems.append(f"trait_seeds['{kind.value}'] has unknown trait '{name}'")
        return problems

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (excludes cached objects)."""
        d: dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if k.startswith("_"):
                continue
            d[k] = v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SimulationConfig:
        """Deserialize from a dict."""
        data = {k: v for k, v in d.items() if not k.startswith("_")}
        if "manual_nodes" in data:
            data["manual_nodes"] = [tuple(node) for node in data["manual_nodes"]]
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_json(cls, s: str) -> SimulationConfig:
        return cls.from_dict(json.loads(s))

    def copy(self, **overrides: Any) -> SimulationConfig:
        """Deep-ish copy via dict round trip, with optional overrides."""
        d = json.loads(self.to_json())
        d.update(overrides)
        return SimulationConfig.from_dict(d)

    def diff(self, other: SimulationConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs
