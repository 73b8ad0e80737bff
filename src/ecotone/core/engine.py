"""
Simulation engine.

Owns the environment and both populations and advances them one tick at
a time. Ticks can be driven synchronously (``step`` / ``run``) or by a
background thread (``start`` / ``stop``). Each tick runs these phases:

0. Clear reproduction flags
1. Environment update (temperature, node regrowth)
2. Build spatial indexes
3. Predators: metabolize, move, hunt, death
4. Prey: hunted prey removed, others move, metabolize, feed, death
5. Reproduction (prey, then predators) under the population cap
6. Statistics snapshot
7. Extinction check
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

import numpy as np

from ecotone.core.agent import Agent, AgentKind, AgentView
from ecotone.core.behavior import DeathCause, PredatorBehavior, PreyBehavior
from ecotone.core.config import SimulationConfig
from ecotone.core.environment import Environment, PlacementMode
from ecotone.core.errors import SimulationStateError, TickError
from ecotone.core.genetics import GeneticModel
from ecotone.core.reproduction import AgentFactory, ReproductionEngine
from ecotone.core.spatial import SpatialIndex
from ecotone.metrics.collector import StatisticsCollector, TickStatistics

logger = logging.getLogger(__name__)

Listener = Callable[[TickStatistics], None]


class SimulationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class ExtinctionStatus(str, Enum):
    NONE = "none"
    PREDATORS_EXTINCT = "predators_extinct"
    PREY_EXTINCT = "prey_extinct"
    TOTAL = "total"

    @property
    def is_terminal(self) -> bool:
        return self in (ExtinctionStatus.PREY_EXTINCT, ExtinctionStatus.TOTAL)


@dataclass
class TickEvents:
    """Births and deaths accumulated during one tick."""

    births: dict[str, int] = field(
        default_factory=lambda: {kind.value: 0 for kind in AgentKind}
    )
    deaths: dict[str, int] = field(
        default_factory=lambda: {cause.value: 0 for cause in DeathCause}
    )

    def record_death(self, cause: DeathCause) -> None:
        self.deaths[cause.value] += 1

    @property
    def total_births(self) -> int:
        return sum(self.births.values())

    @property
    def total_deaths(self) -> int:
        return sum(self.deaths.values())


@dataclass
class _TickCheckpoint:
    """Everything a tick may change, captured before it starts."""

    tick: int
    prey: list[Agent]
    predators: list[Agent]
    agent_state: list[tuple[Agent, int, int, float, int, bool, bool]]
    environment: tuple
    rng_state: dict
    total_births: int
    total_deaths: int
    extinction: ExtinctionStatus


def classify_extinction(prey_count: int, predator_count: int) -> ExtinctionStatus:
    if prey_count == 0 and predator_count == 0:
        return ExtinctionStatus.TOTAL
    if prey_count == 0:
        return ExtinctionStatus.PREY_EXTINCT
    if predator_count == 0:
        return ExtinctionStatus.PREDATORS_EXTINCT
    return ExtinctionStatus.NONE


# ---------------------------------------------------------------------------
# Simulation Engine
# ---------------------------------------------------------------------------
class SimulationEngine:
    """
    Predator-prey ecosystem simulation.

    The engine validates its config on construction and on every reset.
    A lock is held around each tick, reset and node toggle, so listeners
    only ever receive statistics for fully applied ticks.
    """

    def __init__(self, config: SimulationConfig | None = None):
        self.config = config or SimulationConfig()
        self.config.validate()

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._listeners: list[Listener] = []

        self.state = SimulationState.IDLE
        self.tick = 0
        self.extinction = ExtinctionStatus.NONE
        self.last_error: TickError | None = None
        self.latest_statistics: TickStatistics | None = None
        self.total_births = 0
        self.total_deaths = 0

        self.prey: list[Agent] = []
        self.predators: list[Agent] = []

        # The factory outlives resets so agent ids are never reused
        self.genetics = GeneticModel(self.config)
        self.factory = AgentFactory(self.config, self.genetics)

        self.reset()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def reset(
        self, config: SimulationConfig | None = None,
        preserve_manual_nodes: bool = True,
    ) -> None:
        """
        Discard all agents and rebuild the world.

        When the placement mode is manual and ``preserve_manual_nodes`` is
        set, the current node layout is carried into the new environment.
        """
        if self.state is SimulationState.RUNNING:
            self.stop()

        with self._lock:
            preserved: list[tuple[int, int]] | None = None
            if config is not None:
                config.validate()
            new_config = config or self.config
            if (
                preserve_manual_nodes
                and PlacementMode(new_config.placement_mode) is PlacementMode.MANUAL
                and getattr(self, "environment", None) is not None
                and self.environment.width == new_config.grid_width
                and self.environment.height == new_config.grid_height
            ):
                preserved = self.environment.node_positions()
            if preserved is not None:
                new_config = new_config.copy(manual_nodes=preserved)

            self.config = new_config
            self.genetics.config = new_config
            self.factory.config = new_config
            self.rng = np.random.default_rng(new_config.random_seed)

            self.environment = Environment(
                new_config.grid_width,
                new_config.grid_height,
                node_density=new_config.node_density,
                placement_mode=new_config.placement_mode,
                manual_nodes=new_config.manual_nodes,
                resource_config=new_config.resource_config,
                climate_config=new_config.climate_config,
                rng=self.rng,
            )
            self.prey_behavior = PreyBehavior(new_config, self.environment, self.rng)
            self.predator_behavior = PredatorBehavior(new_config, self.environment, self.rng)
            self.reproduction = ReproductionEngine(new_config, self.factory, self.rng)
            self.collector = StatisticsCollector(new_config, self.genetics)

            self.tick = 0
            self.total_births = 0
            self.total_deaths = 0
            self.last_error = None
            self.prey = [
                self.factory.found(AgentKind.PREY, self.rng)
                for _ in range(new_config.initial_prey_count)
            ]
            self.predators = [
                self.factory.found(AgentKind.PREDATOR, self.rng)
                for _ in range(new_config.initial_predator_count)
            ]
            self.extinction = classify_extinction(len(self.prey), len(self.predators))
            self.state = SimulationState.IDLE

            logger.info(
                "Reset '%s': %dx%d grid, %d prey, %d predators, seed=%s",
                new_config.experiment_name, new_config.grid_width,
                new_config.grid_height, len(self.prey), len(self.predators),
                new_config.random_seed,
            )
            stats = self.collector.collect(
                0, self.prey, self.predators, self.environment,
                extinction=self.extinction.value,
            )
        self._publish(stats)

    def start(self) -> None:
        """Run ticks on a background thread until stopped or extinct."""
        if self.state is SimulationState.RUNNING:
            return
        if self.extinction.is_terminal:
            logger.warning("Not starting: population is %s", self.extinction.value)
            return

        self.state = SimulationState.RUNNING
        self._stop_event.clear()
        interval = max(0, self.config.tick_interval_ms) / 1000.0

        def _worker():
            try:
                while not self._stop_event.is_set():
                    self._advance()
                    if self.extinction.is_terminal:
                        break
                    self._stop_event.wait(interval)
            except TickError:
                pass  # _advance already logged and stored it
            finally:
                self.state = SimulationState.IDLE

        self._thread = threading.Thread(target=_worker, daemon=True, name="ecotone-ticker")
        self._thread.start()
        logger.info("Started at tick %d (interval %d ms)", self.tick, self.config.tick_interval_ms)

    def stop(self, timeout: float | None = None) -> None:
        """Stop the background thread; an in-flight tick completes first."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
        if self.state is SimulationState.RUNNING:
            self.state = SimulationState.IDLE
            logger.info("Stopped at tick %d", self.tick)

    @property
    def is_running(self) -> bool:
        return self.state is SimulationState.RUNNING

    def step(self, n: int = 1) -> TickStatistics | None:
        """Run ``n`` ticks synchronously; returns the last published statistics."""
        if self.state is SimulationState.RUNNING:
            raise SimulationStateError("Cannot step while the background loop is running")
        for _ in range(n):
            self._advance()
        return self.latest_statistics

    def run(self, ticks: int) -> list[TickStatistics]:
        """Run up to ``ticks`` ticks, stopping early on prey or total extinction."""
        if self.state is SimulationState.RUNNING:
            raise SimulationStateError("Cannot run while the background loop is running")
        history: list[TickStatistics] = []
        for _ in range(ticks):
            if self.extinction.is_terminal:
                break
            history.append(self._advance())
        return history

    # ------------------------------------------------------------------
    # Observers and render access
    # ------------------------------------------------------------------
    def add_listener(self, callback: Listener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        self._listeners.remove(callback)

    def _publish(self, stats: TickStatistics) -> None:
        self.latest_statistics = stats
        for callback in list(self._listeners):
            callback(stats)

    def iter_agents(self) -> Iterator[AgentView]:
        with self._lock:
            views = [a.view() for a in self.prey] + [a.view() for a in self.predators]
        return iter(views)

    @property
    def population_size(self) -> int:
        return len(self.prey) + len(self.predators)

    def toggle_node(self, x: int, y: int) -> bool:
        """Flip a cell's node status. Only allowed while idle in manual mode."""
        if self.state is SimulationState.RUNNING:
            logger.warning("Rejected node toggle at (%d, %d): simulation running", x, y)
            raise SimulationStateError("Cannot toggle nodes while the simulation is running")
        if PlacementMode(self.config.placement_mode) is not PlacementMode.MANUAL:
            logger.warning("Rejected node toggle at (%d, %d): placement mode is %s",
                           x, y, self.config.placement_mode)
            raise SimulationStateError("Nodes can only be toggled in manual placement mode")
        with self._lock:
            return self.environment.toggle_node(x, y)

    # ------------------------------------------------------------------
    # Tick pipeline
    # ------------------------------------------------------------------
    def _advance(self) -> TickStatistics:
        """
        Run one tick under the lock and publish its statistics.

        A tick that raises is rolled back to its checkpoint, so the
        populations, environment and generator are as they were before it.
        Agent ids handed out during the failed tick stay consumed.
        """
        with self._lock:
            saved = self._checkpoint()
            self.tick += 1
            try:
                stats = self._run_tick(self.tick)
            except Exception as exc:
                logger.exception("Tick %d failed", self.tick)
                self._restore(saved)
                self.state = SimulationState.IDLE
                error = TickError(saved.tick + 1, exc)
                self.last_error = error
                raise error from exc
        self._publish(stats)
        return stats

    def _checkpoint(self) -> _TickCheckpoint:
        return _TickCheckpoint(
            tick=self.tick,
            prey=list(self.prey),
            predators=list(self.predators),
            agent_state=[
                (a, a.x, a.y, a.energy, a.age, a.is_alive, a.has_reproduced)
                for a in self.prey + self.predators
            ],
            environment=self.environment.checkpoint(),
            rng_state=self.rng.bit_generator.state,
            total_births=self.total_births,
            total_deaths=self.total_deaths,
            extinction=self.extinction,
        )

    def _restore(self, saved: _TickCheckpoint) -> None:
        self.tick = saved.tick
        self.prey = saved.prey
        self.predators = saved.predators
        for agent, x, y, energy, age, alive, reproduced in saved.agent_state:
            agent.x, agent.y = x, y
            agent.energy = energy
            agent.age = age
            agent.is_alive = alive
            agent.has_reproduced = reproduced
        self.environment.restore(saved.environment)
        self.rng.bit_generator.state = saved.rng_state
        self.total_births = saved.total_births
        self.total_deaths = saved.total_deaths
        self.extinction = saved.extinction

    def _run_tick(self, tick: int) -> TickStatistics:
        events = TickEvents()
        cfg = self.config
        width, height = cfg.grid_width, cfg.grid_height

        # === Phase 0: Clear reproduction flags ===
        for agent in self.prey:
            agent.has_reproduced = False
        for agent in self.predators:
            agent.has_reproduced = False

        # === Phase 1: Environment ===
        self.environment.update(tick)

        # === Phase 2: Spatial indexes ===
        prey_index = SpatialIndex.build(self.prey, width, height)

        # === Phase 3: Predators ===
        hunted: set[int] = set()
        surviving_predators: list[Agent] = []
        predator_candidates: list[Agent] = []
        for predator in self.predators:
            caught, cause = self.predator_behavior.update(predator, prey_index)
            if caught is not None:
                hunted.add(caught.id)
                events.record_death(DeathCause.PREDATION)
            if cause is not None:
                events.record_death(cause)
                continue
            surviving_predators.append(predator)
            if self.predator_behavior.is_eligible(predator):
                predator_candidates.append(predator)
        self.predators = surviving_predators

        # Prey react to where predators are now
        threat_index = SpatialIndex.build(self.predators, width, height)

        # === Phase 4: Prey ===
        surviving_prey: list[Agent] = []
        prey_candidates: list[Agent] = []
        for prey in self.prey:
            if prey.id in hunted:
                continue
            cause = self.prey_behavior.update(prey, threat_index)
            if cause is not None:
                events.record_death(cause)
                continue
            surviving_prey.append(prey)
            if self.prey_behavior.is_eligible(prey):
                prey_candidates.append(prey)
        self.prey = surviving_prey

        # === Phase 5: Reproduction ===
        capacity = cfg.max_population - self.population_size
        prey_born = self.reproduction.run(
            prey_candidates, prey_index, self.prey_behavior, capacity,
        )
        events.births[AgentKind.PREY.value] = len(prey_born)
        self.prey.extend(prey_born)

        if cfg.predator_reproduction:
            capacity = cfg.max_population - self.population_size
            predators_born = self.reproduction.run(
                predator_candidates, threat_index, self.predator_behavior, capacity,
            )
            events.births[AgentKind.PREDATOR.value] = len(predators_born)
            self.predators.extend(predators_born)

        self.total_births += events.total_births
        self.total_deaths += events.total_deaths

        # === Phase 7 (ahead of the snapshot so it carries the status) ===
        status = classify_extinction(len(self.prey), len(self.predators))
        if status is not self.extinction and status is not ExtinctionStatus.NONE:
            logger.info("Tick %d: %s", tick, status.value)
        self.extinction = status

        # === Phase 6: Statistics ===
        return self.collector.collect(
            tick, self.prey, self.predators, self.environment,
            events=events, extinction=status.value,
        )

    def __repr__(self) -> str:
        return (
            f"SimulationEngine(tick={self.tick}, state={self.state.value}, "
            f"prey={len(self.prey)}, predators={len(self.predators)})"
        )
