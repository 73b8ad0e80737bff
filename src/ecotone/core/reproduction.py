"""
Agent creation and sexual reproduction.

``AgentFactory`` is the single source of agent identities: ids are
assigned from one counter shared by both kinds and are never reused,
not even across resets.

``ReproductionEngine`` pairs eligible agents of one kind through the
spatial index and creates one offspring per pair via the genetic model.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from ecotone.core.agent import Agent, AgentKind
from ecotone.core.genetics import Genome, GeneticModel

if TYPE_CHECKING:
    from ecotone.core.behavior import AgentBehavior
    from ecotone.core.config import SimulationConfig
    from ecotone.core.spatial import SpatialIndex

logger = logging.getLogger(__name__)


class AgentFactory:
    """Builds agents with expressed phenotypes and fresh ids."""

    def __init__(self, config: SimulationConfig, genetics: GeneticModel):
        self.config = config
        self.genetics = genetics
        self._next_id = 0

    @property
    def next_id(self) -> int:
        return self._next_id

    def _new_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    def create(
        self,
        kind: AgentKind,
        genome: Genome,
        x: int,
        y: int,
        generation: int = 0,
        parents: tuple[Agent, Agent] | None = None,
    ) -> Agent:
        species = self.config.species_config(kind)
        schema = self.config.trait_schema(kind)
        return Agent(
            id=self._new_id(),
            kind=kind,
            genome=genome,
            phenotypes=self.genetics.express(genome, schema),
            x=x,
            y=y,
            energy=float(species["initial_energy"]),
            max_energy=float(species["max_energy"]),
            generation=generation,
            parent1_id=parents[0].id if parents else None,
            parent2_id=parents[1].id if parents else None,
        )

    def found(self, kind: AgentKind, rng: np.random.Generator) -> Agent:
        """Create a founder at a random cell with a seeded genome."""
        schema = self.config.trait_schema(kind)
        genome = self.genetics.generate_initial_genome(
            schema, self.config.trait_seeds[kind.value], rng,
        )
        x = int(rng.integers(0, self.config.grid_width))
        y = int(rng.integers(0, self.config.grid_height))
        return self.create(kind, genome, x, y)


class ReproductionEngine:
    """Mate search and offspring creation for one tick."""

    def __init__(
        self, config: SimulationConfig, factory: AgentFactory,
        rng: np.random.Generator,
    ):
        self.config = config
        self.factory = factory
        self.genetics = factory.genetics
        self.rng = rng

    def find_partner(
        self, agent: Agent, index: SpatialIndex, behavior: AgentBehavior,
    ) -> Agent | None:
        """
        First eligible, not-yet-bred partner in an expanding neighbourhood.

        Searches the agent's own cell, then rings out to
        ``mating_search_radius``, wrapping at the grid edges.
        """
        for candidate in index.search_rings(agent.x, agent.y, self.config.mating_search_radius):
            if candidate.id == agent.id or candidate.has_reproduced:
                continue
            if behavior.is_eligible(candidate):
                return candidate
        return None

    def reproduce(
        self, parent_a: Agent, parent_b: Agent, behavior: AgentBehavior,
    ) -> Agent:
        """Create one offspring at ``parent_a``'s cell and charge both parents."""
        schema = self.config.trait_schema(behavior.kind)
        genome = self.genetics.offspring_genome(
            parent_a.genome, parent_b.genome, schema, self.rng,
        )
        child = self.factory.create(
            behavior.kind,
            genome,
            parent_a.x,
            parent_a.y,
            generation=max(parent_a.generation, parent_b.generation) + 1,
            parents=(parent_a, parent_b),
        )
        for parent in (parent_a, parent_b):
            parent.spend_energy(behavior.reproduction_cost(parent))
            parent.has_reproduced = True
        return child

    def run(
        self,
        candidates: list[Agent],
        index: SpatialIndex,
        behavior: AgentBehavior,
        capacity: int,
    ) -> list[Agent]:
        """
        Breed the shuffled candidates; return the newborns.

        ``capacity`` is how many more agents the population cap allows.
        Breeding stops as soon as it is used up.
        """
        newborns: list[Agent] = []
        if capacity <= 0:
            return newborns
        order = list(candidates)
        self.rng.shuffle(order)
        for parent_a in order:
            if not parent_a.is_alive or parent_a.has_reproduced:
                continue
            partner = self.find_partner(parent_a, index, behavior)
            if partner is None:
                continue
            if len(newborns) >= capacity:
                break
            newborns.append(self.reproduce(parent_a, partner, behavior))
            if len(newborns) >= capacity:
                break
        if newborns:
            logger.debug("%d %s born", len(newborns), behavior.kind.value)
        return newborns
