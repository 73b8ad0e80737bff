"""
Trait definitions and per-kind trait schemas for the Ecotone Sandbox.

Each trait is a tagged variant: an ``AdditiveTrait`` carries numeric
bounds and expresses the mean of its two float alleles; a
``DominantRecessiveTrait`` carries its two allele symbols plus a
dominance table. The expression rule is fixed when the schema is built,
so phenotype lookup never branches on trait names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator, Union

from ecotone.core.agent import AgentKind
from ecotone.core.errors import MissingTraitError

Allele = Union[float, str]
AllelePair = tuple[Allele, Allele]


class TraitKind(str, Enum):
    ADDITIVE = "additive"
    DOMINANT_RECESSIVE = "dominant_recessive"


@dataclass(frozen=True)
class AdditiveTrait:
    """Two real-valued alleles; phenotype is their arithmetic mean.

    Attributes:
        name: Trait identifier used as the genome key.
        low: Lowest valid allele value.
        high: Highest valid allele value.
        seed_spread: Half-width of the uniform band used to seed founders
            around the configured average.
        mutation_amount: Max +/- noise per mutated allele. ``None`` uses
            ``SimulationConfig.mutation_amount``.
        mutation_rate: Per-trait mutation probability. ``None`` uses the
            global ``SimulationConfig.mutation_rate_pct``.
    """

    name: str
    low: float
    high: float
    seed_spread: float = 0.2
    mutation_amount: float | None = None
    mutation_rate: float | None = None
    description: str = ""

    kind: ClassVar[TraitKind] = TraitKind.ADDITIVE

    def clamp(self, allele: float) -> float:
        return max(self.low, min(float(allele), self.high))

    def express(self, pair: AllelePair) -> float:
        return (float(pair[0]) + float(pair[1])) / 2.0


@dataclass(frozen=True)
class DominantRecessiveTrait:
    """Two symbolic alleles resolved through a dominance table.

    Heterozygous pairs map to ``heterozygous``, which may be a third,
    intermediate category (temperature tolerance) or equal to the
    dominant category (classic complete dominance).
    """

    name: str
    dominant: str
    recessive: str
    homozygous_dominant: str
    heterozygous: str
    homozygous_recessive: str
    mutation_rate: float | None = None
    description: str = ""

    kind: ClassVar[TraitKind] = TraitKind.DOMINANT_RECESSIVE

    @property
    def alleles(self) -> tuple[str, str]:
        return (self.dominant, self.recessive)

    @property
    def categories(self) -> tuple[str, ...]:
        """Distinct phenotype categories, dominant end first."""
        ordered: list[str] = []
        for cat in (self.homozygous_dominant, self.heterozygous, self.homozygous_recessive):
            if cat not in ordered:
                ordered.append(cat)
        return tuple(ordered)

    def flip(self, allele: str) -> str:
        return self.recessive if allele == self.dominant else self.dominant

    def express(self, pair: AllelePair) -> str:
        dominant_count = sum(1 for a in pair if a == self.dominant)
        if dominant_count == 2:
            return self.homozygous_dominant
        if dominant_count == 1:
            return self.heterozygous
        return self.homozygous_recessive


TraitDefinition = Union[AdditiveTrait, DominantRecessiveTrait]


# ---------------------------------------------------------------------------
# Phenotype categories referenced by behaviour code
# ---------------------------------------------------------------------------
TOLERANCE_HIGH = "High"
TOLERANCE_MEDIUM = "Medium"
TOLERANCE_LOW = "Low"
RESISTANT = "Resistant"
SUSCEPTIBLE = "Susceptible"

TEMPERATURE_TOLERANCE = DominantRecessiveTrait(
    name="temperature_tolerance",
    dominant="H",
    recessive="L",
    homozygous_dominant=TOLERANCE_HIGH,
    heterozygous=TOLERANCE_MEDIUM,
    homozygous_recessive=TOLERANCE_LOW,
    description="Preferred thermal zone: HH hot, LL cold, mixed temperate",
)


# ---------------------------------------------------------------------------
# Per-kind trait presets
# ---------------------------------------------------------------------------
PREY_TRAITS: list[TraitDefinition] = [
    AdditiveTrait("metabolism_efficiency", 0.1, 2.0,
                  description="Divides the base metabolic cost"),
    AdditiveTrait("feeding_efficiency", 0.1, 2.0,
                  description="Energy extracted per unit of resource"),
    AdditiveTrait("size", 0.5, 2.0, seed_spread=0.1,
                  description="Scales movement cost"),
    AdditiveTrait("reproductive_rate", 0.5, 2.0, seed_spread=0.1,
                  description="Earlier maturity at a higher breeding cost"),
    TEMPERATURE_TOLERANCE,
    DominantRecessiveTrait(
        name="resistance",
        dominant="R",
        recessive="r",
        homozygous_dominant=RESISTANT,
        heterozygous=RESISTANT,
        homozygous_recessive=SUSCEPTIBLE,
        description="Chance to survive an otherwise lethal tick",
    ),
]

PREDATOR_TRAITS: list[TraitDefinition] = [
    AdditiveTrait("metabolism_efficiency", 0.1, 2.0,
                  description="Divides the base metabolic cost"),
    AdditiveTrait("detection_range", 3.0, 15.0, seed_spread=1.0, mutation_amount=0.5,
                  description="Radius (cells) within which prey are noticed"),
    AdditiveTrait("hunting_efficiency", 0.1, 0.9, seed_spread=0.1,
                  description="Probability of catching co-located prey"),
    AdditiveTrait("reproductive_rate", 0.5, 2.0, seed_spread=0.1,
                  description="Earlier maturity at a higher breeding cost"),
    TEMPERATURE_TOLERANCE,
]

PRESETS: dict[AgentKind, list[TraitDefinition]] = {
    AgentKind.PREY: PREY_TRAITS,
    AgentKind.PREDATOR: PREDATOR_TRAITS,
}


class TraitSchema:
    """
    Ordered trait definitions for one agent kind.

    Every agent of the kind carries an allele pair for every trait listed
    here. Unknown trait names raise ``MissingTraitError``.
    """

    def __init__(self, kind: AgentKind, traits: list[TraitDefinition] | None = None):
        self.kind = kind
        self.traits: list[TraitDefinition] = list(traits if traits is not None else PRESETS[kind])
        self._by_name: dict[str, TraitDefinition] = {}
        for trait in self.traits:
            if trait.name in self._by_name:
                raise ValueError(f"Duplicate trait '{trait.name}' in {kind.value} schema")
            self._by_name[trait.name] = trait
        self.count = len(self.traits)

    def trait(self, name: str) -> TraitDefinition:
        definition = self._by_name.get(name)
        if definition is None:
            raise MissingTraitError(f"Unknown trait '{name}' for {self.kind.value}")
        return definition

    def names(self) -> list[str]:
        return [t.name for t in self.traits]

    def additive(self) -> list[AdditiveTrait]:
        return [t for t in self.traits if t.kind is TraitKind.ADDITIVE]

    def categorical(self) -> list[DominantRecessiveTrait]:
        return [t for t in self.traits if t.kind is TraitKind.DOMINANT_RECESSIVE]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[TraitDefinition]:
        return iter(self.traits)

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        return f"TraitSchema(kind='{self.kind.value}', count={self.count})"
