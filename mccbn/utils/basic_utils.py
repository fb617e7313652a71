"""
Basic utility functions for poset and genotype operations.
"""

import yaml
import numpy as np
from typing import Dict, Any


class BasicUtils:
    """
    Utility class for basic operations on posets and genotypes.
    """
    @staticmethod
    def load_config(config_path: str) -> Dict[str, Any]:
        """
        Read a YAML configuration into a dictionary of sections.

        An empty file gives an empty configuration.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid YAML or its top level is not a mapping
        """
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping of sections, "
                             f"got {type(config).__name__}")
        return config

    @staticmethod
    def transitive_closure(adj_matrix: np.ndarray) -> np.ndarray:
        """
        Computes the transitive closure of a relation represented by an adjacency matrix.

        Parameters:
        - adj_matrix: A p x p numpy array, adj_matrix[i, j] == 1 means i precedes j.

        Returns:
        - closure: A p x p numpy array of the same dtype with every implied relation set.
        """
        p = adj_matrix.shape[0]
        closure = adj_matrix.astype(bool)
        for k in range(p):
            # Warshall: i reaches j if i reaches k and k reaches j
            closure = closure | (closure[:, [k]] & closure[[k], :])
        return closure.astype(adj_matrix.dtype)

    @staticmethod
    def transitive_reduction(adj_matrix: np.ndarray) -> np.ndarray:
        """
        Compute the transitive reduction of a poset adjacency matrix.

        Parameters:
        -----------
        adj_matrix : np.ndarray
            Binary matrix of an acyclic relation

        Returns:
        --------
        np.ndarray
            Matrix holding only the cover relations
        """
        closure = BasicUtils.transitive_closure(adj_matrix).astype(bool)
        # An edge i -> j is redundant if some k satisfies i -> k ->+ j
        implied = (closure.astype(int) @ closure.astype(int)) > 0
        tr = closure & ~implied
        return tr.astype(adj_matrix.dtype)

    @staticmethod
    def hamming_dist(x: np.ndarray, y: np.ndarray) -> int:
        """Number of positions at which two genotypes differ."""
        x = np.asarray(x, dtype=bool)
        y = np.asarray(y, dtype=bool)
        if x.shape != y.shape:
            raise ValueError(f"Genotypes differ in length: {x.shape} vs {y.shape}")
        return int(np.count_nonzero(x != y))

    @staticmethod
    def hamming_dist_mat(x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """
        Compute the Hamming distance between every row of `x` and the vector `y`.

        Parameters:
        -----------
        x : np.ndarray
            Boolean matrix of shape (N, p)
        y : np.ndarray
            Boolean vector of length p

        Returns:
        --------
        np.ndarray
            Integer vector of length N
        """
        x = np.asarray(x, dtype=bool)
        y = np.asarray(y, dtype=bool)
        return np.count_nonzero(x != y[np.newaxis, :], axis=1).astype(int)

    @staticmethod
    def is_compatible(genotype: np.ndarray, model) -> bool:
        """
        Check whether a genotype respects the conjunctive constraint of a model,
        i.e. every event that occurred has all of its direct predecessors occurred.
        """
        genotype = np.asarray(genotype, dtype=bool)
        for u, v in model.poset.edges():
            if genotype[v] and not genotype[u]:
                return False
        return True

    @staticmethod
    def num_compatible_observations(obs: np.ndarray, model) -> int:
        """Count the rows of `obs` that are compatible with the poset."""
        obs = np.asarray(obs, dtype=bool)
        compatible = np.ones(obs.shape[0], dtype=bool)
        for u, v in model.poset.edges():
            compatible &= ~(obs[:, v] & ~obs[:, u])
        return int(np.count_nonzero(compatible))

    @staticmethod
    def num_incompatible_events(genotypes: np.ndarray, model) -> int:
        """
        Count the (observation, event) pairs where an event occurred although at
        least one of its direct predecessors did not.
        """
        genotypes = np.atleast_2d(np.asarray(genotypes, dtype=bool))
        count = 0
        for v in range(model.size()):
            parents = model.parents[v]
            if not parents:
                continue
            missing_parent = ~np.all(genotypes[:, parents], axis=1)
            count += int(np.count_nonzero(genotypes[:, v] & missing_parent))
        return count
