"""
Utility functions for generating random posets, rates and noisy observations.
"""

import itertools
from typing import Dict, Optional

import numpy as np
import networkx as nx

from .basic_utils import BasicUtils
from .conversion_utils import ConversionUtils


class GenerationUtils:
    """
    Utility class for generating synthetic CBN benchmarks: random posets,
    random rates, and noisy genotypes.
    """

    @staticmethod
    def generate_random_PO(p: int, rng: np.random.Generator, edge_prob: float = 0.5) -> nx.DiGraph:
        """
        Generates a random poset (directed acyclic graph) with `p` events.
        Each pair (u, v) with u < v is related with probability `edge_prob`,
        so the result is acyclic by construction, and redundant relations are
        removed by a transitive reduction.

        Parameters:
        - p: Number of events.
        - rng: Random stream.
        - edge_prob: Probability of adding each candidate relation.

        Returns:
        - h: A NetworkX DiGraph holding the cover relations.
        """
        h = nx.DiGraph()
        h.add_nodes_from(range(p))
        for u, v in itertools.combinations(range(p), 2):
            if rng.random() < edge_prob:
                h.add_edge(u, v)
        return nx.transitive_reduction(h) if p > 0 else h

    @staticmethod
    def make_random_poset(p: int, rng: np.random.Generator, edge_prob: float = 0.5) -> np.ndarray:
        """
        Random poset as a p x p adjacency matrix of cover relations.
        """
        h = GenerationUtils.generate_random_PO(p, rng, edge_prob)
        return ConversionUtils.adjacency_list2mat(h.edges(), p)

    @staticmethod
    def random_rates(p: int, lambda_s: float, rng: np.random.Generator) -> np.ndarray:
        """Draw rates uniformly from [lambda_s / 3, 3 * lambda_s]."""
        return rng.uniform(lambda_s / 3.0, 3.0 * lambda_s, size=p)

    @staticmethod
    def add_noise(genotypes: np.ndarray, eps: float, rng: np.random.Generator) -> np.ndarray:
        """
        Flip every bit independently with probability `eps`.
        """
        genotypes = np.asarray(genotypes, dtype=bool)
        flips = rng.random(genotypes.shape) < eps
        return genotypes ^ flips

    @staticmethod
    def simulate_observations(N: int, model, eps: float, rng: np.random.Generator,
                              sampling_times: Optional[np.ndarray] = None) -> Dict[str, np.ndarray]:
        """
        Draw N noisy observations from a model.

        Returns:
        - Dictionary with the true genotypes "hidden", the noisy genotypes
          "obs", the waiting times "Tdiff" and the sampling times
          "sampling_time".
        """
        from ..mcem.sampling import sample_genotypes

        hidden, Tdiff, T_sampling = sample_genotypes(N, model, rng, sampling_times)
        obs = GenerationUtils.add_noise(hidden, eps, rng)
        return {
            "hidden": hidden,
            "obs": obs,
            "Tdiff": Tdiff,
            "sampling_time": T_sampling,
        }

    @staticmethod
    def relative_abs_error(estimate: np.ndarray, truth: np.ndarray) -> float:
        """Mean absolute error of the rates relative to the mean true rate."""
        estimate = np.asarray(estimate, dtype=float)
        truth = np.asarray(truth, dtype=float)
        if truth.size == 0:
            return 0.0
        return float(np.mean(np.abs(estimate - truth)) / np.mean(truth))

    @staticmethod
    def fraction_compatible(obs: np.ndarray, model) -> float:
        """Fraction of observations compatible with the poset."""
        obs = np.asarray(obs, dtype=bool)
        if obs.shape[0] == 0:
            return 1.0
        return BasicUtils.num_compatible_observations(obs, model) / obs.shape[0]
