"""
Static fan-out of per-observation work over a fixed pool of threads.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def map_observations(task: Callable[[int, np.random.Generator], T], N: int,
                     rngs: Sequence[np.random.Generator],
                     executor: Optional[Executor] = None) -> List[T]:
    """
    Evaluate `task(i, rng)` for every observation index i in [0, N).

    Observations are split into len(rngs) contiguous chunks; chunk t runs
    sequentially on its own worker with rngs[t]. Results are returned in
    observation order once every chunk has finished.

    `executor` is a pool owned by the caller and reused across calls. Without
    one, a pool of len(rngs) threads lives for this call only.
    """
    chunks = np.array_split(np.arange(N), len(rngs))

    def run_chunk(t: int) -> List[T]:
        rng = rngs[t]
        return [task(int(i), rng) for i in chunks[t]]

    if len(rngs) == 1:
        return run_chunk(0)

    if executor is None:
        with ThreadPoolExecutor(max_workers=len(rngs)) as pool:
            return _gather(pool, run_chunk, len(rngs))
    return _gather(executor, run_chunk, len(rngs))


def _gather(executor: Executor, run_chunk: Callable[[int], List[T]], n_chunks: int) -> List[T]:
    futures = [executor.submit(run_chunk, t) for t in range(n_chunks)]
    results = []
    for future in futures:
        results.extend(future.result())
    return results
