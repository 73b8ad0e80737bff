"""
Per-kind agent behaviour: movement, metabolism, feeding, hunting, death.

Prey and predators share one lifecycle shape (age, move, metabolize,
check death) on ``AgentBehavior`` and diverge in how they steer and how
they gain energy. Behaviour objects hold no per-agent state; they mutate
the agent records they are handed.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np

from ecotone.core.agent import Agent, AgentKind
from ecotone.core.traits import (
    RESISTANT,
    TOLERANCE_HIGH,
    TOLERANCE_LOW,
    TOLERANCE_MEDIUM,
)
from ecotone.core.utils import chance, clamp, randint, sign, wrap

if TYPE_CHECKING:
    from ecotone.core.config import SimulationConfig
    from ecotone.core.environment import Environment
    from ecotone.core.spatial import SpatialIndex


class DeathCause(str, Enum):
    STARVATION = "starvation"
    OLD_AGE = "old_age"
    PREDATION = "predation"


class TemperatureZone(str, Enum):
    COLD = "cold"
    TEMPERATE = "temperate"
    HOT = "hot"


PREFERRED_ZONE: dict[str, TemperatureZone] = {
    TOLERANCE_HIGH: TemperatureZone.HOT,
    TOLERANCE_MEDIUM: TemperatureZone.TEMPERATE,
    TOLERANCE_LOW: TemperatureZone.COLD,
}


def classify_zone(temperature: float, climate: dict[str, Any]) -> TemperatureZone:
    if temperature < climate["cold_threshold"]:
        return TemperatureZone.COLD
    if temperature > climate["hot_threshold"]:
        return TemperatureZone.HOT
    return TemperatureZone.TEMPERATE


def temperature_multiplier(
    tolerance: str, temperature: float, climate: dict[str, Any],
) -> float:
    """
    Metabolic cost multiplier for a tolerance phenotype at a temperature.

    Inside the preferred zone the cost is discounted; within
    ``boundary_margin`` degrees outside it a mild penalty applies; any
    further away the full mismatch penalty applies.
    """
    preferred = PREFERRED_ZONE.get(tolerance)
    if preferred is None:
        raise ValueError(f"Unknown temperature tolerance phenotype: {tolerance!r}")
    if classify_zone(temperature, climate) is preferred:
        return float(climate["preferred_multiplier"])

    cold = climate["cold_threshold"]
    hot = climate["hot_threshold"]
    if preferred is TemperatureZone.COLD:
        distance = temperature - cold
    elif preferred is TemperatureZone.HOT:
        distance = hot - temperature
    else:
        distance = cold - temperature if temperature < cold else temperature - hot

    if distance <= climate["boundary_margin"]:
        return float(climate["boundary_multiplier"])
    return float(climate["mismatch_multiplier"])


class AgentBehavior:
    """Lifecycle rules shared by every agent kind."""

    kind: ClassVar[AgentKind]

    def __init__(
        self, config: SimulationConfig, environment: Environment,
        rng: np.random.Generator,
    ):
        self.config = config
        self.env = environment
        self.rng = rng
        self.species = config.species_config(self.kind)
        self.climate = config.climate_config
        self.schema = config.trait_schema(self.kind)
        self._has_resistance = "resistance" in self.schema

    # ------------------------------------------------------------------
    # Movement
    # ------------------------------------------------------------------
    def random_step(self) -> tuple[int, int]:
        return randint(self.rng, -1, 1), randint(self.rng, -1, 1)

    def movement_scale(self, agent: Agent) -> float:
        return 1.0

    def apply_step(self, agent: Agent, dx: int, dy: int) -> bool:
        """
        Move one step with wrap-around and pay the destination's cost.

        A null step is free. Returns whether the agent moved.
        """
        if dx == 0 and dy == 0:
            return False
        nx = wrap(agent.x + dx, self.env.width)
        ny = wrap(agent.y + dy, self.env.height)
        multiplier = self.env.move_cost_multiplier_at(nx, ny)
        if multiplier is None:
            raise IndexError(f"No cell at ({nx}, {ny}) for agent {agent.id}")
        cost = float(self.species["movement_cost"]) * multiplier * self.movement_scale(agent)
        agent.spend_energy(cost)
        agent.x, agent.y = nx, ny
        return True

    # ------------------------------------------------------------------
    # Metabolism
    # ------------------------------------------------------------------
    def metabolic_cost(self, agent: Agent) -> float:
        temperature = self.env.temperature_at(agent.x, agent.y)
        if temperature is None:
            raise IndexError(f"No cell at ({agent.x}, {agent.y}) for agent {agent.id}")
        base = float(self.species["base_metabolic_cost"]) / agent.phenotypes["metabolism_efficiency"]
        return base * temperature_multiplier(
            agent.phenotypes["temperature_tolerance"], temperature, self.climate,
        )

    def metabolize(self, agent: Agent) -> None:
        agent.spend_energy(self.metabolic_cost(agent))

    # ------------------------------------------------------------------
    # Death
    # ------------------------------------------------------------------
    def check_death(self, agent: Agent) -> DeathCause | None:
        """
        Mark the agent dead on starvation or old age.

        Resistant agents get one independent roll to shrug off a lethal
        tick; a survivor with no energy left is put on the energy floor.
        """
        if agent.energy <= 0:
            cause = DeathCause.STARVATION
        elif agent.age > self.species["max_lifespan"]:
            cause = DeathCause.OLD_AGE
        else:
            return None

        if (
            self._has_resistance
            and agent.phenotypes.get("resistance") == RESISTANT
            and chance(self.rng, float(self.species.get("resistance_survival_chance", 0.0)))
        ):
            if agent.energy <= 0:
                agent.set_energy(float(self.species.get("resistance_energy_floor", 1.0)))
            return None

        agent.is_alive = False
        return cause

    # ------------------------------------------------------------------
    # Reproduction eligibility
    # ------------------------------------------------------------------
    def effective_reproduction_age(self, agent: Agent) -> int:
        rate = agent.phenotypes.get("reproductive_rate", 1.0)
        return int(round(self.species["reproduction_age"] / rate))

    def reproduction_cost(self, agent: Agent) -> float:
        return float(self.species["reproduction_cost"]) * agent.phenotypes.get("reproductive_rate", 1.0)

    def is_eligible(self, agent: Agent) -> bool:
        return (
            agent.is_alive
            and agent.age >= self.effective_reproduction_age(agent)
            and agent.energy >= self.species["reproduction_energy_threshold"]
        )


class PreyBehavior(AgentBehavior):
    """Prey flee nearby predators and graze cell resources."""

    kind = AgentKind.PREY

    def movement_scale(self, agent: Agent) -> float:
        return float(agent.phenotypes.get("size", 1.0))

    def flee_step(self, agent: Agent, predators: SpatialIndex) -> tuple[int, int] | None:
        """
        Step away from predators within ``detection_radius``.

        Each threat pushes with weight ``1 / (d^2 + flee_epsilon)``.
        Returns None when no predator is in range.
        """
        radius = self.species["detection_radius"]
        epsilon = self.species["flee_epsilon"]
        fleeing = False
        ex = ey = 0.0
        for _, dx, dy, dist_sq in predators.within(agent.x, agent.y, radius):
            fleeing = True
            weight = 1.0 / (dist_sq + epsilon)
            # dx/dy point at the predator; flee the other way
            ex -= dx * weight
            ey -= dy * weight
        if not fleeing:
            return None

        step_x = step_y = 0
        magnitude = float(np.hypot(ex, ey))
        if magnitude > 0:
            step_x = int(clamp(round(ex / magnitude), -1, 1))
            step_y = int(clamp(round(ey / magnitude), -1, 1))
        if step_x == 0 and step_y == 0:
            return self.random_step()
        return step_x, step_y

    def move(self, agent: Agent, predators: SpatialIndex) -> bool:
        step = self.flee_step(agent, predators)
        if step is None:
            step = self.random_step()
        return self.apply_step(agent, *step)

    def feed(self, agent: Agent) -> float:
        """Graze the current cell. Returns the energy gained."""
        consumed = self.env.consume_resource_at(
            agent.x, agent.y, float(self.species["food_consumption_rate"]),
        )
        if consumed <= 0:
            return 0.0
        gained = consumed * float(self.species["food_energy_value"]) * agent.phenotypes["feeding_efficiency"]
        before = agent.energy
        agent.gain_energy(gained)
        return agent.energy - before

    def update(self, agent: Agent, predators: SpatialIndex) -> DeathCause | None:
        """One tick of prey life: age, move, metabolize, feed, check death."""
        if not agent.is_alive:
            return None
        agent.age += 1
        self.move(agent, predators)
        self.metabolize(agent)
        self.feed(agent)
        return self.check_death(agent)


class PredatorBehavior(AgentBehavior):
    """Predators chase the nearest prey they can detect and hunt on contact."""

    kind = AgentKind.PREDATOR

    def find_target(
        self, agent: Agent, prey: SpatialIndex,
    ) -> tuple[Agent, int, int] | None:
        """Nearest living prey within the detection-range phenotype."""
        best: tuple[Agent, int, int] | None = None
        best_dist = float("inf")
        for candidate, dx, dy, dist_sq in prey.within(
            agent.x, agent.y, agent.phenotypes["detection_range"],
        ):
            if dist_sq < best_dist:
                best_dist = dist_sq
                best = (candidate, dx, dy)
        return best

    def move(self, agent: Agent, prey: SpatialIndex) -> bool:
        target = self.find_target(agent, prey)
        if target is None:
            return self.apply_step(agent, *self.random_step())
        _, dx, dy = target
        return self.apply_step(agent, sign(dx), sign(dy))

    def hunt(self, agent: Agent, prey: SpatialIndex) -> Agent | None:
        """
        Try to catch prey sharing the predator's cell.

        Each living co-located prey gets one roll against
        ``hunting_efficiency``; the first success kills it and ends the hunt.
        """
        if not agent.is_alive:
            return None
        efficiency = agent.phenotypes["hunting_efficiency"]
        for candidate in prey.at(agent.x, agent.y):
            if not candidate.is_alive or candidate.id == agent.id:
                continue
            if chance(self.rng, efficiency):
                agent.gain_energy(candidate.energy * float(self.species["energy_gain_fraction"]))
                candidate.is_alive = False
                return candidate
        return None

    def update(
        self, agent: Agent, prey: SpatialIndex,
    ) -> tuple[Agent | None, DeathCause | None]:
        """One tick of predator life: age, metabolize, move, hunt, check death."""
        if not agent.is_alive:
            return None, None
        agent.age += 1
        self.metabolize(agent)
        self.move(agent, prey)
        caught = self.hunt(agent, prey)
        return caught, self.check_death(agent)
