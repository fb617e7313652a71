"""
Random number context shared by the sampling routines.
"""

import numpy as np
from typing import List, Optional

# Upper bound (exclusive) for the seeds handed to derived streams
_SEED_UPPER = 2 ** 32


class Context:
    """
    Owns the master random stream of a computation.

    Worker streams are derived from the master stream by drawing one seed per
    worker, in order. For a fixed seed the derived streams depend on how many
    are requested, so results are reproducible for a fixed (seed, number of
    workers) pair only.
    """

    def __init__(self, seed: Optional[int] = None, verbose: bool = False):
        self.rng = np.random.default_rng(seed)
        self._verbose = verbose

    @property
    def verbose(self) -> bool:
        return self._verbose

    def get_verbose(self) -> bool:
        return self._verbose

    def get_auxiliary_rngs(self, num_rngs: int) -> List[np.random.Generator]:
        """
        Derive `num_rngs` independent generators, each seeded by a draw from
        the master stream. The master stream advances on every call.
        """
        if num_rngs < 1:
            raise ValueError(f"num_rngs must be positive, got {num_rngs}")
        seeds = self.rng.integers(0, _SEED_UPPER, size=num_rngs, dtype=np.uint64)
        return [np.random.default_rng(int(s)) for s in seeds]

    derive = get_auxiliary_rngs
