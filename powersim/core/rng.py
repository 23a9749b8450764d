"""
Random sources and seed derivation for PowerSim.

Every trial gets its own ``RandomSource`` whose stream is a pure function
of ``(root seed, grid-point index, trial index)``. Results therefore do not
depend on the order trials run in, nor on how many workers run them.
"""

from typing import Optional

import numpy as np


class RandomSource:
    """Thin wrapper around ``numpy.random.Generator`` handed to trial procedures.

    Exposes the primitives the reference procedures need; the full
    generator is available as :attr:`generator` for anything else.
    """

    __slots__ = ("generator",)

    def __init__(self, generator: np.random.Generator):
        self.generator = generator

    def standard_normal(self, k: int) -> np.ndarray:
        """Draw *k* independent N(0, 1) deviates."""
        return self.generator.standard_normal(k)

    def normal(self, loc: float = 0.0, scale: float = 1.0, size: Optional[int] = None) -> np.ndarray:
        """Draw normal deviates with location *loc* and scale *scale*."""
        return self.generator.normal(loc, scale, size)

    def uniform(self, low: float = 0.0, high: float = 1.0, size: Optional[int] = None) -> np.ndarray:
        """Draw uniform deviates on ``[low, high)``."""
        return self.generator.uniform(low, high, size)


def resolve_root_seed(seed: Optional[int]) -> int:
    """Return *seed*, or fresh OS entropy reduced to 32 bits when ``None``.

    The resolved value is recorded on results so an unseeded run can still
    be reproduced afterwards.
    """
    if seed is not None:
        return int(seed)
    return int(np.random.SeedSequence().generate_state(1)[0])


def trial_seed_sequence(root_seed: int, point_index: int, trial_index: int) -> np.random.SeedSequence:
    """Seed sequence for one trial of one grid point."""
    return np.random.SeedSequence([root_seed, point_index, trial_index])


def trial_random_source(root_seed: int, point_index: int, trial_index: int) -> RandomSource:
    """Independent, reproducible ``RandomSource`` for one trial."""
    return RandomSource(np.random.default_rng(trial_seed_sequence(root_seed, point_index, trial_index)))
