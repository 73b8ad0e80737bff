"""
Statistics Collector: the immutable per-tick snapshot.

Aggregates population counts, additive trait means, categorical
phenotype distributions, allele frequencies and environmental totals.
Charting and history tracking are left to consumers; the engine only
publishes the latest ``TickStatistics``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

import numpy as np

from ecotone.core.agent import Agent, AgentKind
from ecotone.core.behavior import DeathCause
from ecotone.core.config import SimulationConfig
from ecotone.core.genetics import GeneticModel

if TYPE_CHECKING:
    from ecotone.core.engine import TickEvents
    from ecotone.core.environment import Environment


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class TickStatistics:
    """Snapshot of one completed tick."""

    tick: int
    prey_count: int
    predator_count: int

    # Events this tick
    births: Mapping[str, int]        # kind -> newborns
    deaths: Mapping[str, int]        # cause -> count

    # Genetics, keyed by kind then trait
    trait_means: Mapping[str, Mapping[str, float]]
    phenotype_frequencies: Mapping[str, Mapping[str, Mapping[str, float]]]
    allele_frequencies: Mapping[str, Mapping[str, Mapping[str, float]]]

    # Environment
    total_resources: float
    mean_temperature: float
    season_offset: float
    node_count: int

    extinction: str = "none"

    @property
    def total_population(self) -> int:
        return self.prey_count + self.predator_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick": self.tick,
            "prey_count": self.prey_count,
            "predator_count": self.predator_count,
            "births": _thaw(self.births),
            "deaths": _thaw(self.deaths),
            "trait_means": _thaw(self.trait_means),
            "phenotype_frequencies": _thaw(self.phenotype_frequencies),
            "allele_frequencies": _thaw(self.allele_frequencies),
            "total_resources": self.total_resources,
            "mean_temperature": self.mean_temperature,
            "season_offset": self.season_offset,
            "node_count": self.node_count,
            "extinction": self.extinction,
        }


class StatisticsCollector:
    """Computes ``TickStatistics`` from the engine's state."""

    def __init__(self, config: SimulationConfig, genetics: GeneticModel | None = None):
        self.config = config
        self.genetics = genetics or GeneticModel(config)

    def trait_means(self, population: list[Agent], kind: AgentKind) -> dict[str, float]:
        """Mean phenotype of each additive trait; NaN for an empty population."""
        schema = self.config.trait_schema(kind)
        means: dict[str, float] = {}
        for trait in schema.additive():
            if not population:
                means[trait.name] = math.nan
                continue
            values = np.array([a.phenotypes[trait.name] for a in population], dtype=np.float64)
            means[trait.name] = float(values.mean())
        return means

    def phenotype_frequencies(
        self, population: list[Agent], kind: AgentKind,
    ) -> dict[str, dict[str, float]]:
        """Fraction of agents in each category of each dominant/recessive trait."""
        schema = self.config.trait_schema(kind)
        total = len(population)
        freqs: dict[str, dict[str, float]] = {}
        for trait in schema.categorical():
            counts = {category: 0 for category in trait.categories}
            for agent in population:
                counts[agent.phenotypes[trait.name]] += 1
            freqs[trait.name] = {
                category: (count / total if total else 0.0)
                for category, count in counts.items()
            }
        return freqs

    def collect(
        self,
        tick: int,
        prey: list[Agent],
        predators: list[Agent],
        environment: Environment,
        events: TickEvents | None = None,
        extinction: str = "none",
    ) -> TickStatistics:
        populations = {AgentKind.PREY: prey, AgentKind.PREDATOR: predators}
        births = events.births if events is not None else {k.value: 0 for k in AgentKind}
        deaths = events.deaths if events is not None else {c.value: 0 for c in DeathCause}

        return TickStatistics(
            tick=tick,
            prey_count=len(prey),
            predator_count=len(predators),
            births=_freeze(dict(births)),
            deaths=_freeze(dict(deaths)),
            trait_means=_freeze({
                kind.value: self.trait_means(pop, kind) for kind, pop in populations.items()
            }),
            phenotype_frequencies=_freeze({
                kind.value: self.phenotype_frequencies(pop, kind)
                for kind, pop in populations.items()
            }),
            allele_frequencies=_freeze({
                kind.value: self.genetics.allele_frequencies(pop, self.config.trait_schema(kind))
                for kind, pop in populations.items()
            }),
            total_resources=environment.total_resources(),
            mean_temperature=environment.mean_temperature,
            season_offset=environment.season_offset,
            node_count=environment.node_count,
            extinction=extinction,
        )
