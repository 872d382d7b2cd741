"""
Random Source
=============
A seedable random number handle that is passed explicitly to everything
that needs randomness (noise permutation tables, RMS calibration draws,
advection sampling).

There is no module-level generator: two wind fields built from
two sources with the same seed produce identical output, and tests can run
in any order or in parallel.
"""

from typing import List, MutableSequence, Optional

import numpy as np


class RandomSource:
    """Thin wrapper around ``numpy.random.Generator``."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream from ``seed`` (fresh entropy when None)."""
        self.seed = seed
        self._generator = np.random.default_rng(seed)

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        """Uniform float between ``low`` and ``high``; argument order is free."""
        return float(low + (high - low) * self._generator.random())

    def uniform_int(self, low: int, high: int) -> int:
        """Uniform integer in the closed range [low, high]."""
        return int(self._generator.integers(low, high, endpoint=True))

    def normal(self, mean: float = 0.0, stddev: float = 1.0) -> float:
        return float(self._generator.normal(mean, stddev))

    def shuffle(self, values: MutableSequence) -> None:
        """Shuffle a mutable sequence in place."""
        self._generator.shuffle(values)

    def permutation(self, n: int) -> List[int]:
        return [int(i) for i in self._generator.permutation(n)]

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed!r})"
