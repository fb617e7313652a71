"""
Seed-level entry points for sampling and importance weighting.
"""

from typing import Any, Dict, Optional

import numpy as np

from ..exceptions import DimensionMismatchError
from . import importance_sampling
from .context import Context
from .likelihood import expected_statistics
from .model import Model, build_model, check_observations, check_positive_int
from .sampling import sample_genotypes


def _ready(model: Model) -> Model:
    """Validate a model before simulating from it."""
    model.validate()
    lam = model.lambda_
    if np.any(~np.isfinite(lam)) or np.any(lam <= 0):
        raise ValueError("Rate parameters must be positive and finite")
    if model.lambda_s <= 0:
        raise ValueError(f"lambda_s must be positive, got {model.lambda_s}")
    return model


def sample(n: int, model: Model, sampling_times=None, seed: Optional[int] = None) -> Dict[str, Any]:
    """
    Draw `n` true genotypes from a model.

    Returns a dictionary with the (n, p) boolean "samples", the (n, p)
    waiting times "Tdiff" and the (n,) "sampling_time". Sampling times are
    drawn from Exp(lambda_s) unless given.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    _ready(model)
    if sampling_times is not None and np.ndim(sampling_times) > 0 and len(sampling_times) != n:
        raise DimensionMismatchError(f"Got {len(sampling_times)} sampling times for {n} samples")
    ctx = Context(seed)
    samples, Tdiff, T_sampling = sample_genotypes(n, model, ctx.rng, sampling_times)
    return {"samples": samples, "Tdiff": Tdiff, "sampling_time": T_sampling}


def importance_weight(genotype, model: Model, L: int, sampling: str = "forward",
                      time: Optional[float] = None, seed: Optional[int] = None) -> Dict[str, Any]:
    """
    Importance weights and sufficient statistics for a single observed genotype.

    Returns a dictionary with the (L,) weights "w", the (L,) Hamming
    distances "dist", the (L, p) waiting times "Tdiff" and the flag
    "random_fallback".
    """
    importance_sampling.check_sampling(sampling)
    check_positive_int("L", L)
    _ready(model)
    ctx = Context(seed)
    result = importance_sampling.importance_weight(genotype, L, model, ctx.rng, time=time,
                                                   sampling=sampling)
    return {"w": result.w, "dist": result.dist, "Tdiff": result.Tdiff,
            "random_fallback": result.random_fallback}


def importance_weights(obs, poset, lambda_, epsilon: float, sampling_times=None, L: int = 100,
                       sampling: str = "forward", lambda_s: float = 1.0,
                       seed: Optional[int] = None, thrds: int = 1) -> Dict[str, np.ndarray]:
    """
    Per-observation sum of importance weights ("w"), expected Hamming distance
    ("dist") and expected waiting times ("Tdiff") for a set of genotypes.
    """
    importance_sampling.check_sampling(sampling)
    check_positive_int("L", L)
    check_positive_int("thrds", thrds)
    model = build_model(poset, lambda_, epsilon=epsilon, lambda_s=lambda_s)
    obs, times, _ = check_observations(obs, model.size(), sampling_times)
    return expected_statistics(obs, model, L, Context(seed), times=times, sampling=sampling,
                               thrds=thrds)
