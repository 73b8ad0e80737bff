"""
Core agent record for the Ecotone Sandbox.

Agents are plain mutable records: behaviour lives in
``ecotone.core.behavior`` and the engine owns the population lists.
Which list an agent sits in already tells its kind; ``kind`` is kept
on the record for render views and statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class AgentKind(str, Enum):
    PREY = "prey"
    PREDATOR = "predator"


@dataclass
class Agent:
    """A simulated organism."""

    # === Identity ===
    id: int
    kind: AgentKind

    # === Genetics ===
    genome: dict[str, tuple[Any, Any]]
    phenotypes: dict[str, Any]

    # === Position (toroidal grid coordinates) ===
    x: int
    y: int

    # === State ===
    energy: float
    max_energy: float
    age: int = 0
    is_alive: bool = True
    has_reproduced: bool = False

    # === Lineage ===
    generation: int = 0
    parent1_id: int | None = None
    parent2_id: int | None = None

    @property
    def location(self) -> tuple[int, int]:
        return (self.x, self.y)

    def set_energy(self, value: float) -> None:
        """Assign energy, clamped into ``[0, max_energy]``."""
        self.energy = max(0.0, min(float(value), self.max_energy))

    def gain_energy(self, amount: float) -> None:
        self.set_energy(self.energy + amount)

    def spend_energy(self, amount: float) -> None:
        self.set_energy(self.energy - amount)

    def view(self) -> AgentView:
        return AgentView(
            id=self.id,
            kind=self.kind,
            x=self.x,
            y=self.y,
            energy=self.energy,
            age=self.age,
            generation=self.generation,
            phenotypes=MappingProxyType(dict(self.phenotypes)),
        )

    def __repr__(self) -> str:
        status = "alive" if self.is_alive else "dead"
        return (
            f"Agent(id={self.id}, kind={self.kind.value}, at=({self.x}, {self.y}), "
            f"energy={self.energy:.1f}, age={self.age}, {status})"
        )


@dataclass(frozen=True)
class AgentView:
    """Read-only agent state handed to drawing and inspection code."""

    id: int
    kind: AgentKind
    x: int
    y: int
    energy: float
    age: int
    generation: int
    phenotypes: Mapping[str, Any] = field(default_factory=dict)
