"""
Utility functions for converting between different representations of posets.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple


class ConversionUtils:
    """
    Utility class for converting cover relations between adjacency matrices and edge lists.
    """

    @staticmethod
    def adjacency_mat2list(poset: np.ndarray) -> List[Tuple[int, int]]:
        """
        Converts an adjacency matrix to a list of cover relations.

        Parameters:
        - poset: A p x p array, poset[u, v] != 0 means u is a direct predecessor of v.

        Returns:
        - edges: List of (u, v) pairs in row-major order.
        """
        poset = np.asarray(poset)
        if poset.ndim != 2 or poset.shape[0] != poset.shape[1]:
            raise ValueError(f"Adjacency matrix must be square, got shape {poset.shape}")
        rows, cols = np.nonzero(poset)
        return [(int(u), int(v)) for u, v in zip(rows, cols)]

    @staticmethod
    def adjacency_list2mat(edges: Sequence[Tuple[int, int]], p: int) -> np.ndarray:
        """
        Converts a list of cover relations to an adjacency matrix.

        Parameters:
        - edges: Sequence of (u, v) pairs.
        - p: Number of events.

        Returns:
        - adj_matrix: A p x p integer numpy array.
        """
        adj_matrix = np.zeros((p, p), dtype=int)
        for u, v in edges:
            adj_matrix[u, v] = 1
        return adj_matrix

    @staticmethod
    def as_edge_list(poset, p: Optional[int] = None) -> Tuple[List[Tuple[int, int]], int]:
        """
        Normalise a poset given either as an adjacency matrix or as an edge list.

        Returns the edge list and the number of events. A square numpy array is
        read as an adjacency matrix unless `p` disagrees with its size; pass
        plain lists for edge lists. For an edge list without an explicit `p`,
        the number of events is one more than the largest index.
        """
        if isinstance(poset, np.ndarray) and poset.ndim == 2 and poset.shape[0] == poset.shape[1] \
                and (p is None or p == poset.shape[0]):
            return ConversionUtils.adjacency_mat2list(poset), poset.shape[0]
        edges = [(int(u), int(v)) for u, v in poset]
        if p is None:
            p = max((max(u, v) for u, v in edges), default=-1) + 1
        return edges, p
