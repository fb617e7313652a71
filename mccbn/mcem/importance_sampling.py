"""
Importance sampling of the hidden genotypes behind one noisy observation.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..exceptions import DimensionMismatchError
from ..utils.basic_utils import BasicUtils
from ..utils.statistical_utils import StatisticalUtils
from .model import Model
from .sampling import sample_genotypes

logger = logging.getLogger(__name__)

SAMPLING_SCHEMES = ("forward", "rejection")


@dataclass
class ImportanceSample:
    """
    Weighted draws of the true genotype for one observation.

    Attributes:
        w: (L,) importance weights
        dist: (L,) Hamming distances between the drawn and the observed genotype
        Tdiff: (L, p) waiting times of every event in each draw
        random_fallback: True when every candidate had zero emission
            probability and the draws were resampled uniformly
    """

    w: np.ndarray
    dist: np.ndarray
    Tdiff: np.ndarray
    random_fallback: bool = False

    @property
    def L(self) -> int:
        return self.w.shape[0]

    def normalised_weights(self) -> np.ndarray:
        """
        Weights scaled to sum to one. If every weight vanished the draws are
        weighted uniformly.
        """
        w_sum = self.w.sum()
        if w_sum > 0:
            return self.w / w_sum
        logger.warning("All %d importance weights are zero; using uniform weights", self.L)
        return np.full(self.L, 1.0 / self.L)

    def expected_dist(self) -> float:
        """Weight-normalised expected Hamming distance."""
        return self.expectations()[0]

    def expected_Tdiff(self) -> np.ndarray:
        """Weight-normalised expected waiting time of every event."""
        return self.expectations()[1]

    def expectations(self) -> Tuple[float, np.ndarray]:
        """Expected Hamming distance and waiting times, normalising the weights once."""
        w = self.normalised_weights()
        return float(w @ self.dist.astype(float)), self.Tdiff.T @ w


def check_sampling(sampling: str) -> None:
    if sampling not in SAMPLING_SCHEMES:
        raise ValueError(f"Invalid sampling: {sampling}. Valid options are {list(SAMPLING_SCHEMES)}.")


def importance_weight(genotype: np.ndarray, L: int, model: Model, rng: np.random.Generator,
                      time: Optional[float] = None, sampling: str = "forward") -> ImportanceSample:
    """
    Compute importance weights and sufficient statistics for one observed genotype.

    Parameters:
    -----------
    genotype: np.ndarray
        Observed (noisy) genotype of length p
    L: int
        Number of weighted draws to return
    model: Model
        Acyclic model with rates, sampling rate and error rate set
    rng: np.random.Generator
        Random stream owned by the caller
    time: float or None
        Sampling time of the observation, if known
    sampling: str
        "forward" draws L genotypes from the model and weights them by the
        emission probability. "rejection" draws a pool of p*L genotypes and
        resamples L of them proportionally to the emission probability.

    Returns:
    --------
    ImportanceSample
    """
    check_sampling(sampling)
    genotype = np.asarray(genotype, dtype=bool).reshape(-1)
    p = model.size()
    if genotype.shape[0] != p:
        raise DimensionMismatchError(f"Genotype has {genotype.shape[0]} events, model has {p}")
    eps = model.epsilon

    if sampling == "forward":
        samples, Tdiff, _ = sample_genotypes(L, model, rng, time)
        dist = BasicUtils.hamming_dist_mat(samples, genotype)
        w = StatisticalUtils.bernoulli_process(dist, eps, p)
        return ImportanceSample(w=w, dist=dist, Tdiff=Tdiff)

    # Rejection: importance resampling from a pool of K candidates
    K = p * L
    if K == 0:
        samples, Tdiff, _ = sample_genotypes(L, model, rng, time)
        return ImportanceSample(w=np.ones(L), dist=np.zeros(L, dtype=int), Tdiff=Tdiff)

    genotype_pool, Tdiff_pool, _ = sample_genotypes(K, model, rng, time)
    dist_pool = BasicUtils.hamming_dist_mat(genotype_pool, genotype)
    q_prob = StatisticalUtils.bernoulli_process(dist_pool, eps, p)

    random = False
    if q_prob.sum() == 0:
        # Every candidate is incompatible with the observation: resample uniformly
        q_prob = np.ones(K)
        random = True
        logger.warning(
            "All %d candidate genotypes have zero emission probability (epsilon=%g); "
            "falling back to uniform resampling", K, eps)
    q_prob_sum = q_prob.sum()

    idxs = StatisticalUtils.rdiscrete(L, q_prob, rng)
    dist = dist_pool[idxs]
    Tdiff = Tdiff_pool[idxs, :]

    if random:
        w = np.exp(StatisticalUtils.log_bernoulli_process(dist, eps, p))
    else:
        w = np.full(L, q_prob_sum / K)
    return ImportanceSample(w=w, dist=dist, Tdiff=Tdiff, random_fallback=random)
