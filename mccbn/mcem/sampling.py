"""
Forward simulation of genotypes from a conjunctive Bayesian network.
"""

from typing import Optional, Tuple, Union

import numpy as np

from ..exceptions import DimensionMismatchError, NotAcyclicError
from ..utils.statistical_utils import StatisticalUtils
from .model import Model


def _sampling_times(N: int, model: Model, rng: np.random.Generator,
                    sampling_times: Optional[Union[float, np.ndarray]]) -> np.ndarray:
    """Use the supplied sampling time(s) if any, otherwise draw T_s ~ Exp(lambda_s)."""
    if sampling_times is None:
        return StatisticalUtils.rexp(N, model.lambda_s, rng)
    T_sampling = np.asarray(sampling_times, dtype=float)
    if T_sampling.ndim == 0:
        return np.full(N, float(T_sampling))
    if T_sampling.shape != (N,):
        raise DimensionMismatchError(
            f"Expected {N} sampling times, got shape {T_sampling.shape}")
    return T_sampling.copy()


def generate_mutation_times(N: int, model: Model, rng: np.random.Generator,
                            sampling_times: Optional[Union[float, np.ndarray]] = None
                            ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Simulate waiting times for every event.

    Returns:
        T_events: (N, p) matrix of waiting times T_j ~ Exp(lambda_j)
        T_sum: (N, p) matrix of absolute occurrence times; an event occurs
            T_j after the last of its direct predecessors
        T_sampling: (N,) vector of sampling times
    """
    if model.cycle:
        raise NotAcyclicError()
    p = model.size()
    if len(model.topo_path) != p:
        model.topological_sort()

    T_events = np.empty((N, p))
    # Generate occurrence times T_events_{j} ~ Exp(lambda_{j})
    for j in range(p):
        T_events[:, j] = StatisticalUtils.rexp(N, model.get_lambda(j), rng)

    T_sampling = _sampling_times(N, model, rng, sampling_times)

    T_sum = np.zeros((N, p))
    for v in model.topo_path:
        parents = model.parents[v]
        if parents:
            T_sum[:, v] = T_events[:, v] + T_sum[:, parents].max(axis=1)
        else:
            T_sum[:, v] = T_events[:, v]
    return T_events, T_sum, T_sampling


def sample_genotypes(N: int, model: Model, rng: np.random.Generator,
                     sampling_times: Optional[Union[float, np.ndarray]] = None
                     ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Draw N true genotypes from the model.

    Parameters:
    -----------
    N: int
        Number of draws
    model: Model
        Acyclic model with rates set
    rng: np.random.Generator
        Random stream owned by the caller
    sampling_times: float, np.ndarray or None
        Known sampling time(s), either one value for all draws or one per
        draw. When None the sampling times are drawn from Exp(lambda_s).

    Returns:
    --------
    genotypes: np.ndarray
        (N, p) boolean matrix; event v is present iff it occurred before the
        sampling time
    T_events: np.ndarray
        (N, p) waiting times, the sufficient statistics of the rate update
    T_sampling: np.ndarray
        (N,) sampling times used
    """
    T_events, T_sum, T_sampling = generate_mutation_times(N, model, rng, sampling_times)
    genotypes = T_sum <= T_sampling[:, np.newaxis]
    return genotypes, T_events, T_sampling
