"""
Seeded RNG for deterministic, replayable match simulations.
Production passes seed=None (OS entropy); tests pass a fixed seed.
"""
from __future__ import annotations

import random


class SeededRNG:
    """Wrapper around random.Random for reproducible simulations."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def bernoulli(self, p: float) -> bool:
        """One trial that succeeds with probability p."""
        return self._rng.random() < p
