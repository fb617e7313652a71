import math
import numpy as np
from typing import Union
from scipy.stats import expon

DBL_EPSILON = np.finfo(float).eps


class StatisticalUtils:
    """
    Utility class for the random draws and probability terms used by the CBN sampler.
    """
    @staticmethod
    def rexp(N: int, rate: float, rng: np.random.Generator) -> np.ndarray:
        """
        Draw N samples from an Exponential distribution with the given rate.

        Parameters:
        -----------
        N: int
            Number of samples
        rate: float
            Rate parameter (inverse of the mean), must be positive
        rng: np.random.Generator
            Random stream owned by the caller

        Returns:
        --------
        np.ndarray
            Vector of shape (N,)
        """
        return expon.rvs(scale=1.0 / rate, size=N, random_state=rng)

    @staticmethod
    def rdiscrete(N: int, weights: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """Draw N indices with replacement, proportionally to `weights`."""
        weights = np.asarray(weights, dtype=float)
        prob = weights / weights.sum()
        return rng.choice(weights.shape[0], size=N, replace=True, p=prob)

    @staticmethod
    def bernoulli_process(dist: Union[np.ndarray, float], eps: float, p: int) -> np.ndarray:
        """
        Probability of observing `dist` flipped bits out of `p` when every bit
        flips independently with probability `eps`.
        """
        d = np.asarray(dist, dtype=float)
        return np.power(eps, d) * np.power(1.0 - eps, p - d)

    @staticmethod
    def log_bernoulli_process(dist: Union[np.ndarray, float], eps: float, p: int) -> np.ndarray:
        """
        Log-probability of `dist` bit flips out of `p` under flip probability `eps`.

        When eps is 0 a zero distance contributes 0, while a non-zero distance
        is evaluated with eps + DBL_EPSILON so the result stays finite.

        Parameters:
        -----------
        dist: np.ndarray or float
            Hamming distance(s) between true and observed genotypes
        eps: float
            Error rate in [0, 1]
        p: int
            Number of events

        Returns:
        --------
        np.ndarray
            Log-probabilities with the same shape as `dist`
        """
        d = np.asarray(dist, dtype=float)
        if eps == 0:
            log_prob = math.log(eps + DBL_EPSILON) * d + math.log(1 - eps - DBL_EPSILON) * (p - d)
            return np.where(d != 0, log_prob, 0.0)
        if eps == 1:
            # Only full flips are possible
            return np.where(d == p, 0.0, math.log(DBL_EPSILON) * (p - d) + math.log(1 - DBL_EPSILON) * d)
        return math.log(eps) * d + math.log(1 - eps) * (p - d)
