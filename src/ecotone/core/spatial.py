"""
Per-tick spatial index over agent positions.

The index is rebuilt from the authoritative ``Agent.x`` / ``Agent.y``
fields rather than maintained incrementally. Queries wrap toroidally and
skip agents that have died since the index was built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from ecotone.core.utils import wrap, wrapped_delta

if TYPE_CHECKING:
    from ecotone.core.agent import Agent


class SpatialIndex:
    """Maps grid coordinates to the living agents that occupy them."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self._cells: dict[tuple[int, int], list[Agent]] = {}
        self._size = 0

    @classmethod
    def build(cls, agents: Iterable[Agent], width: int, height: int) -> SpatialIndex:
        index = cls(width, height)
        index.rebuild(agents)
        return index

    def rebuild(self, agents: Iterable[Agent]) -> None:
        self._cells = {}
        self._size = 0
        for agent in agents:
            if not agent.is_alive:
                continue
            self._cells.setdefault((agent.x, agent.y), []).append(agent)
            self._size += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def at(self, x: int, y: int) -> list[Agent]:
        """Living agents indexed at ``(x, y)``."""
        return [a for a in self._cells.get((wrap(x, self.width), wrap(y, self.height)), ()) if a.is_alive]

    def ring(self, x: int, y: int, distance: int) -> list[tuple[int, int]]:
        """
        Wrapped coordinates at Chebyshev ``distance`` from ``(x, y)``.

        On small grids the ring can fold onto itself; duplicates are dropped.
        """
        if distance == 0:
            return [(wrap(x, self.width), wrap(y, self.height))]
        coords: list[tuple[int, int]] = []
        seen: set[tuple[int, int]] = set()
        for dx in range(-distance, distance + 1):
            for dy in range(-distance, distance + 1):
                if max(abs(dx), abs(dy)) != distance:
                    continue
                key = (wrap(x + dx, self.width), wrap(y + dy, self.height))
                if key not in seen:
                    seen.add(key)
                    coords.append(key)
        return coords

    def search_rings(self, x: int, y: int, radius: int) -> Iterator[Agent]:
        """
        Living agents ordered by expanding neighbourhood.

        Own cell first, then each Chebyshev ring out to ``radius``. Every
        cell is visited once even when rings wrap onto each other.
        """
        visited: set[tuple[int, int]] = set()
        for distance in range(radius + 1):
            for key in self.ring(x, y, distance):
                if key in visited:
                    continue
                visited.add(key)
                for agent in self._cells.get(key, ()):
                    if agent.is_alive:
                        yield agent

    def within(
        self, x: int, y: int, radius: float,
    ) -> Iterator[tuple[Agent, int, int, int]]:
        """
        Living agents within Euclidean ``radius`` of ``(x, y)`` on the torus.

        Yields ``(agent, dx, dy, dist_sq)`` where ``(dx, dy)`` is the
        shortest wrapped displacement from ``(x, y)`` to the agent.
        """
        if radius < 0:
            return
        radius_sq = radius * radius
        span = int(radius)
        visited: set[tuple[int, int]] = set()
        for ox in range(-span, span + 1):
            for oy in range(-span, span + 1):
                key = (wrap(x + ox, self.width), wrap(y + oy, self.height))
                if key in visited:
                    continue
                visited.add(key)
                occupants = self._cells.get(key)
                if not occupants:
                    continue
                dx = wrapped_delta(x, key[0], self.width)
                dy = wrapped_delta(y, key[1], self.height)
                dist_sq = dx * dx + dy * dy
                if dist_sq > radius_sq:
                    continue
                for agent in occupants:
                    if agent.is_alive:
                        yield agent, dx, dy, dist_sq

    @property
    def occupied_cells(self) -> int:
        return len(self._cells)

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"SpatialIndex({self.width}x{self.height}, agents={self._size}, cells={len(self._cells)})"
