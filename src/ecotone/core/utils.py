"""
Randomness and grid-math helpers shared by every simulation component.

All sampling goes through an explicit ``numpy.random.Generator`` so that
a single seeded generator owned by the engine drives the whole run.
"""

from __future__ import annotations

import numpy as np


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------
def randint(rng: np.random.Generator, low: int, high: int) -> int:
    """Random integer in ``[low, high]`` (both ends inclusive)."""
    return int(rng.integers(low, high + 1))


def chance(rng: np.random.Generator, probability: float) -> bool:
    """Bernoulli trial: True with the given probability."""
    return bool(rng.random() < probability)


# ---------------------------------------------------------------------------
# Math
# ---------------------------------------------------------------------------
def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def wrap(value: int, size: int) -> int:
    """Reduce a coordinate onto a toroidal axis of length ``size``."""
    return value % size


def wrapped_delta(origin: int, target: int, size: int) -> int:
    """
    Shortest signed displacement from ``origin`` to ``target`` on a ring.

    The result lies in ``(-size/2, size/2]`` so that stepping by its sign
    always moves along the short way round.
    """
    delta = (target - origin) % size
    if delta > size / 2:
        delta -= size
    return delta
