"""
Environment grid for the Ecotone Sandbox.

A toroidal 2D lattice of cells. Each cell has a fixed biome, a resource
pool, a node flag and a temperature recomputed every tick from the
biome's base temperature, a global seasonal swing and a biome-specific
fluctuation. Node cells regenerate resources; other cells only deplete.

Cell state is stored column-wise in numpy arrays indexed ``[y, x]``;
``get_cell`` and ``iter_cells`` hand out immutable ``Cell`` views.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator

import numpy as np

from ecotone.core.errors import ConfigurationError
from ecotone.core.utils import randint

logger = logging.getLogger(__name__)


class Biome(str, Enum):
    PLAINS = "plains"
    FOREST = "forest"
    DESERT = "desert"
    TUNDRA = "tundra"


@dataclass(frozen=True)
class BiomeProfile:
    """Static climate and terrain properties of a biome."""

    base_temperature: float
    temperature_amplitude: float
    move_cost_multiplier: float
    color: str


BIOME_PROFILES: dict[Biome, BiomeProfile] = {
    Biome.PLAINS: BiomeProfile(25.0, 3.0, 1.0, "#a1c45a"),
    Biome.FOREST: BiomeProfile(23.0, 2.0, 1.5, "#228B22"),
    Biome.DESERT: BiomeProfile(35.0, 8.0, 1.2, "#f4a460"),
    Biome.TUNDRA: BiomeProfile(10.0, 5.0, 1.3, "#add8e6"),
}

_BIOME_ORDER: list[Biome] = list(Biome)


class PlacementMode(str, Enum):
    RANDOM = "random"
    MANUAL = "manual"
    CLUSTERED = "clustered"


@dataclass(frozen=True)
class Cell:
    """Immutable snapshot of one grid cell."""

    x: int
    y: int
    biome: Biome
    resource_amount: float
    is_node: bool
    temperature: float

    @property
    def move_cost_multiplier(self) -> float:
        return BIOME_PROFILES[self.biome].move_cost_multiplier

    @property
    def color(self) -> str:
        return BIOME_PROFILES[self.biome].color


def quadrant_biome(x: int, y: int, width: int, height: int) -> Biome:
    """Fixed quadrant layout: tundra NW, forest NE, plains SW, desert SE."""
    west = x < width / 2
    north = y < height / 2
    if north:
        return Biome.TUNDRA if west else Biome.FOREST
    return Biome.PLAINS if west else Biome.DESERT


class Environment:
    """
    Grid of cells with biomes, temperature and regenerating resources.

    Args:
        width: Grid width in cells.
        height: Grid height in cells.
        node_density: Probability (0-1) a cell is a node in RANDOM mode.
        placement_mode: How resource nodes are laid out.
        manual_nodes: Node coordinates for MANUAL mode.
        resource_config: Resource constants (see ``SimulationConfig``).
        climate_config: Temperature constants (see ``SimulationConfig``).
        rng: Random generator used for node placement.
    """

    def __init__(
        self,
        width: int,
        height: int,
        node_density: float = 0.05,
        placement_mode: PlacementMode | str = PlacementMode.RANDOM,
        manual_nodes: Iterable[tuple[int, int]] | None = None,
        resource_config: dict[str, Any] | None = None,
        climate_config: dict[str, Any] | None = None,
        rng: np.random.Generator | None = None,
    ):
        if width < 1 or height < 1:
            raise ConfigurationError(f"grid must be at least 1x1 (got {width}x{height})")
        if resource_config is None or climate_config is None:
            from ecotone.core.config import SimulationConfig
            defaults = SimulationConfig()
            resource_config = resource_config or defaults.resource_config
            climate_config = climate_config or defaults.climate_config

        self.width = width
        self.height = height
        self.placement_mode = PlacementMode(placement_mode)
        self.rc = resource_config
        self.cc = climate_config
        self.rng = rng or np.random.default_rng()

        self.tick = 0
        self.season_offset = 0.0

        # Biome layout and per-biome lookup vectors
        self.biome_index = np.zeros((height, width), dtype=np.int8)
        for y in range(height):
            for x in range(width):
                self.biome_index[y, x] = _BIOME_ORDER.index(quadrant_biome(x, y, width, height))
        self._base_temp = np.array(
            [BIOME_PROFILES[b].base_temperature for b in _BIOME_ORDER], dtype=np.float64
        )
        self._temp_amp = np.array(
            [BIOME_PROFILES[b].temperature_amplitude for b in _BIOME_ORDER], dtype=np.float64
        )
        self._move_mult = np.array(
            [BIOME_PROFILES[b].move_cost_multiplier for b in _BIOME_ORDER], dtype=np.float64
        )

        # Resource nodes
        self._nodes: set[tuple[int, int]] = self._place_nodes(
            node_density, list(manual_nodes or []),
        )
        self._node_arrays: tuple[np.ndarray, np.ndarray] | None = None

        self.is_node = np.zeros((height, width), dtype=bool)
        for x, y in self._nodes:
            self.is_node[y, x] = True
        self.resources = np.where(
            self.is_node,
            float(self.rc["node_initial_resources"]),
            float(self.rc["non_node_initial_resources"]),
        ).astype(np.float64)
        np.clip(self.resources, 0.0, self.max_resources, out=self.resources)

        self.temperature = np.zeros((height, width), dtype=np.float64)
        self._recompute_temperature(0)

        logger.info(
            "Initialized %dx%d environment: mode=%s, nodes=%d",
            width, height, self.placement_mode.value, len(self._nodes),
        )

    # ------------------------------------------------------------------
    # Node placement
    # ------------------------------------------------------------------
    def _place_nodes(
        self, density: float, manual_nodes: list[tuple[int, int]],
    ) -> set[tuple[int, int]]:
        if self.placement_mode is PlacementMode.MANUAL:
            nodes: set[tuple[int, int]] = set()
            for x, y in manual_nodes:
                if not self.in_bounds(x, y):
                    raise ConfigurationError(f"manual node ({x}, {y}) outside the grid")
                nodes.add((int(x), int(y)))
            return nodes

        if self.placement_mode is PlacementMode.CLUSTERED:
            centers = self.generate_cluster_centers(
                int(self.rc["num_clusters"]), float(self.rc["min_cluster_distance"]),
            )
            radius_sq = float(self.rc["cluster_radius"]) ** 2
            ys, xs = np.mgrid[0:self.height, 0:self.width]
            mask = np.zeros((self.height, self.width), dtype=bool)
            for cx, cy in centers:
                mask |= (xs - cx) ** 2 + (ys - cy) ** 2 <= radius_sq
            return {(int(x), int(y)) for y, x in zip(*np.nonzero(mask))}

        mask = self.rng.random((self.height, self.width)) < density
        return {(int(x), int(y)) for y, x in zip(*np.nonzero(mask))}

    def generate_cluster_centers(
        self, num_clusters: int, min_distance: float,
    ) -> list[tuple[int, int]]:
        """
        Rejection-sample cluster centers at least ``min_distance`` apart.

        The attempt budget is ``num_clusters * cluster_attempts_factor``;
        when it runs out fewer centers are returned and a warning logged.
        """
        centers: list[tuple[int, int]] = []
        min_distance_sq = min_distance ** 2
        max_attempts = num_clusters * int(self.rc.get("cluster_attempts_factor", 150))
        margin = int(self.rc["cluster_radius"]) + 2

        x_lo, x_hi = margin, self.width - 1 - margin
        if x_hi < x_lo:
            x_lo, x_hi = 0, self.width - 1
        y_lo, y_hi = margin, self.height - 1 - margin
        if y_hi < y_lo:
            y_lo, y_hi = 0, self.height - 1

        attempts = 0
        while len(centers) < num_clusters and attempts < max_attempts:
            attempts += 1
            cx = randint(self.rng, x_lo, x_hi)
            cy = randint(self.rng, y_lo, y_hi)
            too_close = any(
                (cx - ex) ** 2 + (cy - ey) ** 2 < min_distance_sq for ex, ey in centers
            )
            if not too_close:
                centers.append((cx, cy))

        if len(centers) < num_clusters:
            logger.warning(
                "Could only generate %d/%d cluster centers with min distance %.1f",
                len(centers), num_clusters, min_distance,
            )
        return centers

    # ------------------------------------------------------------------
    # Tick update
    # ------------------------------------------------------------------
    def _recompute_temperature(self, tick: int) -> None:
        self.season_offset = float(self.cc["season_amplitude"]) * math.sin(
            tick * float(self.cc["season_frequency"])
        )
        fluctuation = math.sin(tick * float(self.cc["biome_frequency"]))
        self.temperature = (
            self._base_temp[self.biome_index]
            + self.season_offset
            + self._temp_amp[self.biome_index] * fluctuation
        )

    def update(self, tick: int) -> None:
        """Advance temperature to ``tick`` and replenish every node cell."""
        self.tick = tick
        self._recompute_temperature(tick)

        if not self._nodes:
            return
        if self._node_arrays is None:
            xs = np.fromiter((x for x, _ in self._nodes), dtype=np.intp, count=len(self._nodes))
            ys = np.fromiter((y for _, y in self._nodes), dtype=np.intp, count=len(self._nodes))
            self._node_arrays = (xs, ys)
        xs, ys = self._node_arrays
        self.resources[ys, xs] = np.minimum(
            self.resources[ys, xs] + float(self.rc["node_replenish_rate"]),
            self.max_resources,
        )

    def checkpoint(self) -> tuple[int, float, np.ndarray, np.ndarray]:
        """Copy of the state ``update`` and feeding change, for ``restore``."""
        return self.tick, self.season_offset, self.resources.copy(), self.temperature.copy()

    def restore(self, saved: tuple[int, float, np.ndarray, np.ndarray]) -> None:
        self.tick, self.season_offset, resources, temperature = saved
        self.resources = resources.copy()
        self.temperature = temperature.copy()

    # ------------------------------------------------------------------
    # Resource access
    # ------------------------------------------------------------------
    @property
    def max_resources(self) -> float:
        return float(self.rc["cell_max_resources"])

    def consume_resource_at(self, x: int, y: int, amount: float) -> float:
        """
        Remove up to ``amount`` resources from a cell.

        Returns the amount actually consumed, which never exceeds the
        request or the cell's balance. Out-of-bounds lookups consume 0.
        """
        if not self.in_bounds(x, y) or amount <= 0:
            return 0.0
        available = float(self.resources[y, x])
        consumed = min(float(amount), available)
        self.resources[y, x] = max(0.0, available - consumed)
        return consumed

    def toggle_node(self, x: int, y: int) -> bool:
        """
        Flip a cell's node status and reset its resources to the baseline.

        Returns False for out-of-bounds coordinates.
        """
        if not self.in_bounds(x, y):
            return False
        now_node = not bool(self.is_node[y, x])
        self.is_node[y, x] = now_node
        if now_node:
            self._nodes.add((x, y))
            self.resources[y, x] = min(float(self.rc["node_initial_resources"]), self.max_resources)
        else:
            self._nodes.discard((x, y))
            self.resources[y, x] = min(float(self.rc["non_node_initial_resources"]), self.max_resources)
        self._node_arrays = None
        logger.debug(
            "Toggled node at (%d, %d): is_node=%s, total nodes=%d",
            x, y, now_node, len(self._nodes),
        )
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def biome_at(self, x: int, y: int) -> Biome | None:
        if not self.in_bounds(x, y):
            return None
        return _BIOME_ORDER[int(self.biome_index[y, x])]

    def temperature_at(self, x: int, y: int) -> float | None:
        if not self.in_bounds(x, y):
            return None
        return float(self.temperature[y, x])

    def move_cost_multiplier_at(self, x: int, y: int) -> float | None:
        if not self.in_bounds(x, y):
            return None
        return float(self._move_mult[self.biome_index[y, x]])

    def get_cell(self, x: int, y: int) -> Cell | None:
        """Snapshot of the cell at ``(x, y)``, or None when out of bounds."""
        if not self.in_bounds(x, y):
            return None
        return Cell(
            x=x,
            y=y,
            biome=_BIOME_ORDER[int(self.biome_index[y, x])],
            resource_amount=float(self.resources[y, x]),
            is_node=bool(self.is_node[y, x]),
            temperature=float(self.temperature[y, x]),
        )

    def iter_cells(self) -> Iterator[Cell]:
        """Row-major iteration over cell snapshots, for drawing."""
        for y in range(self.height):
            for x in range(self.width):
                yield self.get_cell(x, y)

    def total_resources(self) -> float:
        return float(self.resources.sum())

    @property
    def mean_temperature(self) -> float:
        return float(self.temperature.mean())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def node_positions(self) -> list[tuple[int, int]]:
        """Copy of the node coordinates, e.g. to carry manual nodes over a reset."""
        return sorted(self._nodes)

    def __repr__(self) -> str:
        return (
            f"Environment({self.width}x{self.height}, mode={self.placement_mode.value}, "
            f"nodes={len(self._nodes)}, tick={self.tick})"
        )
