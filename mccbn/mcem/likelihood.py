"""
Complete-data and observed-data log-likelihoods of the hidden CBN model.
"""

import math
from concurrent.futures import Executor
from typing import Dict, Optional, Sequence

import numpy as np

from ..utils.statistical_utils import StatisticalUtils
from .context import Context
from .importance_sampling import check_sampling, importance_weight
from .model import Model, build_model, check_observations, check_positive_int
from .parallel import map_observations


def complete_log_likelihood(lambda_: np.ndarray, eps: float, Tdiff: np.ndarray,
                            dist: np.ndarray, W: float) -> float:
    """
    Complete-data (hidden) log-likelihood.

    Parameters:
    -----------
    lambda_: np.ndarray
        (p,) rate parameters
    eps: float
        Error rate
    Tdiff: np.ndarray
        (N, p) expected waiting times per observation
    dist: np.ndarray
        (N,) expected Hamming distances per observation
    W: float
        Number of (weighted) observations

    Returns:
    --------
    float
        W * sum(log lambda) - sum(Tdiff @ lambda) + error term
    """
    lambda_ = np.asarray(lambda_, dtype=float)
    Tdiff = np.atleast_2d(np.asarray(Tdiff, dtype=float))
    dist = np.asarray(dist, dtype=float)
    p = lambda_.shape[0]

    llhood = W * np.log(lambda_).sum() - (Tdiff @ lambda_).sum()
    llhood += StatisticalUtils.log_bernoulli_process(dist, eps, p).sum()
    return float(llhood)


def _log_mean_weight(w: np.ndarray) -> float:
    mean_w = w.sum() / w.shape[0]
    return math.log(mean_w) if mean_w > 0 else -math.inf


def expected_statistics(obs: np.ndarray, model: Model, L: int, ctx: Context,
                        times: Optional[np.ndarray] = None, sampling: str = "forward",
                        thrds: int = 1, executor: Optional[Executor] = None
                        ) -> Dict[str, np.ndarray]:
    """
    Run the importance sampler for every observation in parallel.

    Returns a dictionary with the per-observation sum of weights ("w"), the
    expected Hamming distance ("dist") and the expected waiting times ("Tdiff").
    """
    N = obs.shape[0]
    rngs = ctx.get_auxiliary_rngs(thrds)

    def task(i: int, rng: np.random.Generator):
        time = None if times is None else times[i]
        sample = importance_weight(obs[i], L, model, rng, time=time, sampling=sampling)
        return sample.w.sum(), sample.expectations()

    results = map_observations(task, N, rngs, executor)
    w_sum = np.array([w for w, _ in results], dtype=float)
    expected_dist = np.array([dist for _, (dist, _) in results], dtype=float)
    expected_Tdiff = np.zeros((N, model.size()))
    for i, (_, (_, Tdiff)) in enumerate(results):
        expected_Tdiff[i, :] = Tdiff
    return {"w": w_sum, "dist": expected_dist, "Tdiff": expected_Tdiff}


def obs_log_likelihood(obs: np.ndarray, model: Model, L: int, ctx: Context,
                       times: Optional[np.ndarray] = None, sampling: str = "forward",
                       thrds: int = 1, weights: Optional[np.ndarray] = None) -> float:
    """
    Monte Carlo estimate of the observed log-likelihood of a validated model,
    sum_i weight_i * log(mean of the importance weights of observation i).
    """
    N = obs.shape[0]
    rngs = ctx.get_auxiliary_rngs(thrds)

    def task(i: int, rng: np.random.Generator) -> float:
        time = None if times is None else times[i]
        sample = importance_weight(obs[i], L, model, rng, time=time, sampling=sampling)
        return _log_mean_weight(sample.w)

    log_probs = np.array(map_observations(task, N, rngs), dtype=float)
    if weights is None:
        return float(log_probs.sum())
    return float(np.dot(weights, log_probs))


def observed_log_likelihood(obs, poset, lambda_: Sequence[float], epsilon: float,
                            sampling_times=None, L: int = 1000, sampling: str = "forward",
                            lambda_s: float = 1.0, seed: Optional[int] = None,
                            thrds: int = 1, weights=None) -> float:
    """
    Observed log-likelihood of a set of genotypes under a CBN.

    Parameters:
    -----------
    obs: array-like
        (N, p) observed genotypes
    poset: array-like
        Edge list [(u, v), ...] or p x p adjacency matrix of cover relations
    lambda_: array-like
        (p,) rate parameters
    epsilon: float
        Error rate
    sampling_times: array-like or None
        (N,) sampling times, or None when unknown
    L: int
        Number of importance samples per observation
    sampling: str
        "forward" or "rejection"
    lambda_s: float
        Sampling rate
    seed: int or None
        Seed of the master random stream
    thrds: int
        Number of worker threads
    weights: array-like or None
        (N,) observation weights

    Returns:
    --------
    float

    Raises:
    -------
    NotAcyclicError, DimensionMismatchError, ValueError
    """
    check_sampling(sampling)
    check_positive_int("L", L)
    check_positive_int("thrds", thrds)
    model = build_model(poset, lambda_, epsilon=epsilon, lambda_s=lambda_s)
    obs, times, w = check_observations(obs, model.size(), sampling_times, weights)
    ctx = Context(seed)
    return obs_log_likelihood(obs, model, L, ctx, times=times, sampling=sampling,
                              thrds=thrds, weights=None if weights is None else w)
