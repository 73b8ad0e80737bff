"""
Genetic model for the Ecotone Sandbox.

Every trait is a locus with two alleles, one inherited from each parent.
Additive traits express the mean of two float alleles; dominant/recessive
traits resolve their two symbols through the trait's dominance table.

Offspring genome = ``mutate(inherit(parent_a, parent_b))``. Mutation is
allele-local: the two alleles of a pair mutate independently.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

import numpy as np

from ecotone.core.errors import MissingTraitError
from ecotone.core.traits import (
    AdditiveTrait,
    AllelePair,
    DominantRecessiveTrait,
    TraitDefinition,
    TraitKind,
    TraitSchema,
)

if TYPE_CHECKING:
    from ecotone.core.agent import Agent
    from ecotone.core.config import SimulationConfig

Genome = dict[str, AllelePair]

_MISSING: Any = object()


class GeneticModel:
    """Handles genome seeding, expression, inheritance and mutation."""

    def __init__(self, config: SimulationConfig):
        self.config = config

    @property
    def mutation_rate(self) -> float:
        return self.config.mutation_rate_pct / 100.0

    @property
    def mutation_amount(self) -> float:
        return self.config.mutation_amount

    @property
    def symbolic_flip_fraction(self) -> float:
        return self.config.symbolic_flip_fraction

    def _rate_for(self, trait: TraitDefinition) -> float:
        if trait.mutation_rate is not None:
            return trait.mutation_rate
        return self.mutation_rate

    # ------------------------------------------------------------------
    # Genome generation
    # ------------------------------------------------------------------
    def generate_initial_genome(
        self, schema: TraitSchema, seeds: dict[str, float],
        rng: np.random.Generator,
    ) -> Genome:
        """
        Seed a founder genome around the configured averages.

        Additive alleles are drawn from ``avg +/- seed_spread`` and clamped
        to the trait bounds. For dominant/recessive traits the seed value
        is the probability that each allele is the dominant symbol.
        """
        genome: Genome = {}
        for trait in schema:
            if trait.name not in seeds:
                raise MissingTraitError(
                    f"No seed value for {schema.kind.value} trait '{trait.name}'"
                )
            seed = float(seeds[trait.name])
            if trait.kind is TraitKind.ADDITIVE:
                genome[trait.name] = (
                    trait.clamp(rng.uniform(seed - trait.seed_spread, seed + trait.seed_spread)),
                    trait.clamp(rng.uniform(seed - trait.seed_spread, seed + trait.seed_spread)),
                )
            else:
                p_dominant = float(np.clip(seed, 0.0, 1.0))
                genome[trait.name] = (
                    trait.dominant if rng.random() < p_dominant else trait.recessive,
                    trait.dominant if rng.random() < p_dominant else trait.recessive,
                )
        return genome

    # ------------------------------------------------------------------
    # Expression
    # ------------------------------------------------------------------
    def phenotype(
        self, genome: Genome, schema: TraitSchema, name: str,
        default: Any = _MISSING,
    ) -> Any:
        """
        Express one trait.

        A trait absent from the genome is a configuration bug: unless a
        ``default`` is supplied, ``MissingTraitError`` is raised.
        """
        trait = schema.trait(name)
        pair = genome.get(name)
        if pair is None:
            if default is not _MISSING:
                return default
            raise MissingTraitError(
                f"Genome lacks required {schema.kind.value} trait '{name}'"
            )
        return trait.express(pair)

    def express(self, genome: Genome, schema: TraitSchema) -> dict[str, Any]:
        """Express every trait in the schema. Missing traits raise."""
        return {trait.name: self.phenotype(genome, schema, trait.name) for trait in schema}

    # ------------------------------------------------------------------
    # Inheritance
    # ------------------------------------------------------------------
    def inherit(
        self, parent_a: Genome, parent_b: Genome, rng: np.random.Generator,
    ) -> Genome:
        """
        Mendelian inheritance: one random allele from each parent per trait.

        A trait present on only one parent is copied from that parent
        verbatim (allele pair duplicated, not recombined).
        """
        child: Genome = {}
        names = list(parent_a)
        names.extend(n for n in parent_b if n not in parent_a)
        for name in names:
            pair_a = parent_a.get(name)
            pair_b = parent_b.get(name)
            if pair_a is None:
                child[name] = (pair_b[0], pair_b[1])
            elif pair_b is None:
                child[name] = (pair_a[0], pair_a[1])
            else:
                child[name] = (pair_a[rng.integers(0, 2)], pair_b[rng.integers(0, 2)])
        return child

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def mutate(
        self, genome: Genome, schema: TraitSchema, rng: np.random.Generator,
    ) -> Genome:
        """
        Return a mutated copy of ``genome``.

        Each trait mutates with its mutation rate. A mutating additive
        trait adds independent uniform noise to both alleles, then clamps.
        A mutating dominant/recessive trait flips each allele independently
        with ``symbolic_flip_fraction`` probability.
        """
        mutated: Genome = dict(genome)
        for name, pair in genome.items():
            if name not in schema:
                continue
            trait = schema.trait(name)
            if rng.random() >= self._rate_for(trait):
                continue
            if trait.kind is TraitKind.ADDITIVE:
                mutated[name] = (
                    self._mutate_additive(trait, pair[0], rng),
                    self._mutate_additive(trait, pair[1], rng),
                )
            else:
                mutated[name] = (
                    self._maybe_flip(trait, pair[0], rng),
                    self._maybe_flip(trait, pair[1], rng),
                )
        return mutated

    def _mutate_additive(
        self, trait: AdditiveTrait, allele: float, rng: np.random.Generator,
    ) -> float:
        amount = trait.mutation_amount if trait.mutation_amount is not None else self.mutation_amount
        return trait.clamp(float(allele) + rng.uniform(-amount, amount))

    def _maybe_flip(
        self, trait: DominantRecessiveTrait, allele: str, rng: np.random.Generator,
    ) -> str:
        if rng.random() < self.symbolic_flip_fraction:
            return trait.flip(allele)
        return allele

    def offspring_genome(
        self, parent_a: Genome, parent_b: Genome, schema: TraitSchema,
        rng: np.random.Generator,
    ) -> Genome:
        return self.mutate(self.inherit(parent_a, parent_b, rng), schema, rng)

    # ------------------------------------------------------------------
    # Analysis helpers
    # ------------------------------------------------------------------
    def allele_frequencies(
        self, population: Iterable[Agent], schema: TraitSchema,
    ) -> dict[str, dict[str, float]]:
        """
        Dominant/recessive allele frequencies for each categorical trait.

        Returns dict[trait_name, {"dominant_freq": float, "recessive_freq": float}].
        """
        agents = [a for a in population if a.is_alive]
        freqs: dict[str, dict[str, float]] = {}
        for trait in schema.categorical():
            total = 0
            dominant_count = 0
            for agent in agents:
                pair = agent.genome.get(trait.name)
                if pair is None:
                    continue
                total += 2
                dominant_count += sum(1 for a in pair if a == trait.dominant)
            if total > 0:
                freqs[trait.name] = {
                    "dominant_freq": dominant_count / total,
                    "recessive_freq": (total - dominant_count) / total,
                }
            else:
                freqs[trait.name] = {"dominant_freq": 0.0, "recessive_freq": 0.0}
        return freqs
