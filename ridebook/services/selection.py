"""
Driver selection strategies.

The default policy is a uniform random pick from the pool. There is
deliberately no weighting by rating, proximity or load: the engine attaches
one driver to one booking on demand and does not try to optimise the fleet.
"""
import random
from typing import Protocol, Sequence

from ridebook.errors import NoDriverAvailableError
from ridebook.schemas.schemas import DriverInfo


class DriverSelector(Protocol):
    def select(self, pool: Sequence[DriverInfo]) -> DriverInfo: ...


class RandomDriverSelector:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def select(self, pool: Sequence[DriverInfo]) -> DriverInfo:
        if not pool:
            raise NoDriverAvailableError("No drivers available in the pool")
        return self._rng.choice(list(pool))


class FirstDriverSelector:
    """Deterministic strategy: always the first driver in pool order."""

    def select(self, pool: Sequence[DriverInfo]) -> DriverInfo:
        if not pool:
            raise NoDriverAvailableError("No drivers available in the pool")
        return pool[0]
