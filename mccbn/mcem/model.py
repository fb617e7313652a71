"""
Poset model for the hidden conjunctive Bayesian network.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import networkx as nx
import numpy as np

from ..exceptions import DimensionMismatchError, NotAcyclicError
from ..utils.conversion_utils import ConversionUtils

Edge = Tuple[int, int]


@dataclass
class ControlEM:
    """
    Customisable options for the MCEM algorithm.

    Attributes:
        max_iter: Maximum number of EM iterations
        update_step_size: Number of iterations between convergence checks of
            the running averages; the number of importance samples L is
            doubled at every check that fails
        tol: Convergence tolerance for the averaged epsilon and rates
        max_lambda: Upper bound applied to every rate after the M-step
        max_L: Upper bound for the number of importance samples, or None
    """

    max_iter: int = 100
    update_step_size: int = 20
    tol: float = 0.001
    max_lambda: float = 1e6
    max_L: Optional[int] = None

    def __post_init__(self):
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
        if self.update_step_size < 1:
            raise ValueError(f"update_step_size must be positive, got {self.update_step_size}")
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.max_lambda <= 0:
            raise ValueError(f"max_lambda must be positive, got {self.max_lambda}")
        if self.max_L is not None and self.max_L < 1:
            raise ValueError(f"max_L must be positive, got {self.max_L}")

    def next_L(self, L: int) -> int:
        """Number of importance samples after a failed convergence check."""
        if self.max_L is None:
            return 2 * L
        return max(L, min(2 * L, self.max_L))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ControlEM":
        """Build the options from the `mcem` section of a configuration dictionary."""
        defaults = cls()
        max_L = config.get('max_L', defaults.max_L)
        return cls(
            max_iter=int(config.get('max_iter', defaults.max_iter)),
            update_step_size=int(config.get('update_step_size', defaults.update_step_size)),
            tol=float(config.get('tol', defaults.tol)),
            max_lambda=float(config.get('max_lambda', defaults.max_lambda)),
            max_L=None if max_L is None else int(max_L),
        )


class Model:
    """
    Cover relations over `p` events plus the parameters of the generative model.

    The poset is a networkx DiGraph on the dense node set 0..p-1; an edge
    (u, v) means u is a direct predecessor of v. Parent lists and the
    topological order are cached for the sampler and are only valid after
    `topological_sort` has been called on an acyclic poset.
    """

    def __init__(self, p: int, edges: Iterable[Edge] = (), lambda_s: float = 1.0,
                 cycle: bool = False, reduction: bool = False):
        if p < 0:
            raise ValueError(f"Number of events must be non-negative, got {p}")
        self.poset = nx.DiGraph()
        self.poset.add_nodes_from(range(p))
        for u, v in edges:
            if not (0 <= u < p and 0 <= v < p):
                raise DimensionMismatchError(
                    f"Edge ({u}, {v}) refers to an event outside [0, {p})")
            self.poset.add_edge(int(u), int(v))
        self.topo_path: List[int] = []
        self.cycle = cycle
        self.reduction_flag = reduction
        self.parents: List[List[int]] = [[] for _ in range(p)]
        self._children: List[Set[int]] = [set() for _ in range(p)]
        self._size = p
        self._lambda = np.zeros(p)
        self._lambda_s = float(lambda_s)
        self._epsilon = 0.0
        self._llhood = 0.0

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    @classmethod
    def from_edges(cls, edges: Iterable[Edge], p: int, lambda_s: float = 1.0,
                   lambda_: Optional[Sequence[float]] = None,
                   epsilon: Optional[float] = None) -> "Model":
        """
        Build a model, check it for cycles and sort it topologically.

        Raises:
            NotAcyclicError: if the cover relations contain a directed cycle
            DimensionMismatchError: if an edge or `lambda_` disagrees with `p`
        """
        model = cls(p, edges, lambda_s=lambda_s)
        if lambda_ is not None:
            model.set_lambda(lambda_)
        if epsilon is not None:
            model.set_epsilon(epsilon)
        model.validate()
        return model

    @classmethod
    def from_adjacency(cls, poset: np.ndarray, lambda_s: float = 1.0,
                       lambda_: Optional[Sequence[float]] = None,
                       epsilon: Optional[float] = None) -> "Model":
        """Same as `from_edges` for a p x p adjacency matrix."""
        edges = ConversionUtils.adjacency_mat2list(poset)
        return cls.from_edges(edges, np.asarray(poset).shape[0], lambda_s=lambda_s,
                              lambda_=lambda_, epsilon=epsilon)

    def validate(self) -> None:
        """Check for cycles and cache the topological order."""
        self.has_cycles()
        if self.cycle:
            raise NotAcyclicError()
        self.topological_sort()

    def copy(self) -> "Model":
        return copy.deepcopy(self)

    def clear(self) -> None:
        """Remove every cover relation, keeping the events and parameters."""
        self.poset.remove_edges_from(list(self.poset.edges()))
        self.topo_path = []
        self.cycle = False
        self.reduction_flag = False
        self.parents = [[] for _ in range(self._size)]
        self._children = [set() for _ in range(self._size)]

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def size(self) -> int:
        return self._size

    @property
    def lambda_(self) -> np.ndarray:
        return self._lambda.copy()

    @property
    def lambda_s(self) -> float:
        return self._lambda_s

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @property
    def llhood(self) -> float:
        return self._llhood

    def get_lambda(self, idx: Optional[int] = None):
        if idx is None:
            return self._lambda.copy()
        return float(self._lambda[idx])

    def set_lambda(self, lambda_: Sequence[float], max_lambda: Optional[float] = None) -> None:
        """
        Set the rate parameters, optionally capping each one at `max_lambda`.
        """
        lam = np.asarray(lambda_, dtype=float).reshape(-1)
        if lam.shape[0] != self._size:
            raise DimensionMismatchError(
                f"Expected {self._size} rate parameters, got {lam.shape[0]}")
        if max_lambda is not None:
            lam = np.minimum(lam, max_lambda)
        self._lambda = lam

    def set_epsilon(self, eps: float) -> None:
        if not 0.0 <= eps <= 1.0:
            raise ValueError(f"epsilon must lie in [0, 1], got {eps}")
        self._epsilon = float(eps)

    def set_llhood(self, llhood: float) -> None:
        self._llhood = float(llhood)

    # ------------------------------------------------------------------
    # Graph structure
    # ------------------------------------------------------------------
    def has_cycles(self) -> bool:
        """
        Depth-first traversal that marks back edges. Sets and returns `self.cycle`.
        """
        WHITE, GREY, BLACK = 0, 1, 2
        colour = [WHITE] * self._size
        self.cycle = False
        for root in range(self._size):
            if colour[root] != WHITE:
                continue
            colour[root] = GREY
            stack = [(root, iter(sorted(self.poset.successors(root))))]
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    colour[node] = BLACK
                    stack.pop()
                elif colour[child] == GREY:
                    self.cycle = True
                    return True
                elif colour[child] == WHITE:
                    colour[child] = GREY
                    stack.append((child, iter(sorted(self.poset.successors(child)))))
        return False

    cycle_check = has_cycles

    def topological_sort(self) -> List[int]:
        """
        Cache a topological order of the events. Events that are not ordered
        relative to each other appear by increasing index.
        """
        if self.cycle or not nx.is_directed_acyclic_graph(self.poset):
            self.cycle = True
            raise NotAcyclicError()
        self.topo_path = list(nx.lexicographical_topological_sort(self.poset))
        self.parents = [sorted(self.poset.predecessors(v)) for v in range(self._size)]
        self.set_children()
        return self.topo_path

    def set_children(self) -> None:
        self._children = [set(self.poset.successors(v)) for v in range(self._size)]

    def get_children(self) -> List[Set[int]]:
        return self._children

    def get_successors(self, node: int) -> Set[int]:
        """Every event reachable from `node` through a directed path."""
        return set(nx.descendants(self.poset, node))

    successors = get_successors

    def get_direct_successors(self, topo_order: Optional[Sequence[int]] = None) -> List[List[int]]:
        """
        Children of every event, listed in topological order of the events.
        """
        if topo_order is None:
            topo_order = self.topo_path
        position = {v: i for i, v in enumerate(topo_order)}
        return [sorted(self.poset.successors(v), key=position.get) for v in topo_order]

    def transitive_reduction(self) -> None:
        """
        Drop every edge implied by a longer directed path. Idempotent.
        """
        if self.cycle or not nx.is_directed_acyclic_graph(self.poset):
            self.cycle = True
            raise NotAcyclicError()
        reduced = nx.transitive_reduction(self.poset)
        self.poset.remove_edges_from([(u, v) for u, v in self.poset.edges()
                                      if not reduced.has_edge(u, v)])
        self.reduction_flag = True
        self.topological_sort()

    transitive_reduction_dag = transitive_reduction

    def cover_relations(self) -> List[Edge]:
        return sorted(self.poset.edges())

    def adjacency_matrix(self) -> np.ndarray:
        return ConversionUtils.adjacency_list2mat(self.poset.edges(), self._size)

    def print_cover_relations(self) -> None:
        for u, v in self.cover_relations():
            print(f"{u}\t{v}")

    def __repr__(self) -> str:
        return (f"Model(p={self._size}, edges={self.cover_relations()}, "
                f"lambda_s={self._lambda_s}, epsilon={self._epsilon})")


def build_model(poset, lambda_: Sequence[float], epsilon: float = 0.0,
                lambda_s: float = 1.0, p: Optional[int] = None) -> Model:
    """
    Build and validate a model from an edge list or an adjacency matrix.

    The number of events is taken from `p`, the adjacency matrix, or the
    length of `lambda_`, in that order.

    Raises:
        NotAcyclicError: if the poset contains a cycle
        DimensionMismatchError: if the poset and `lambda_` disagree on p
        ValueError: if a rate or `lambda_s` is not positive
    """
    lam = np.asarray(lambda_, dtype=float).reshape(-1)
    if p is None and not (isinstance(poset, np.ndarray) and poset.ndim == 2
                          and poset.shape[0] == poset.shape[1]):
        p = lam.shape[0]
    edges, p = ConversionUtils.as_edge_list(poset, p)
    if lam.shape[0] != p:
        raise DimensionMismatchError(
            f"Poset has {p} events but {lam.shape[0]} rate parameters were given")
    if np.any(~np.isfinite(lam)) or np.any(lam <= 0):
        raise ValueError("Rate parameters must be positive and finite")
    if lambda_s <= 0:
        raise ValueError(f"lambda_s must be positive, got {lambda_s}")
    return Model.from_edges(edges, p, lambda_s=lambda_s, lambda_=lam, epsilon=epsilon)


def check_observations(obs, p: int, times=None, weights=None
                       ) -> Tuple[np.ndarray, Optional[np.ndarray], np.ndarray]:
    """
    Coerce observations, sampling times and weights to arrays and check their shapes.

    Returns:
        obs: (N, p) boolean matrix
        times: (N,) float vector or None when the sampling times are unknown
        weights: (N,) float vector, all ones by default
    """
    obs = np.asarray(obs)
    if obs.ndim == 1 and p == 0:
        obs = obs.reshape(-1, 0)
    if obs.ndim != 2:
        raise DimensionMismatchError(f"Observations must be a matrix, got shape {obs.shape}")
    if obs.shape[1] != p:
        raise DimensionMismatchError(
            f"Observations have {obs.shape[1]} events but the poset has {p}")
    obs = obs.astype(bool)
    N = obs.shape[0]
    if times is not None:
        times = np.asarray(times, dtype=float).reshape(-1)
        if times.shape[0] != N:
            raise DimensionMismatchError(
                f"Got {times.shape[0]} sampling times for {N} observations")
    if weights is None:
        weights = np.ones(N)
    else:
        weights = np.asarray(weights, dtype=float).reshape(-1)
        if weights.shape[0] != N:
            raise DimensionMismatchError(f"Got {weights.shape[0]} weights for {N} observations")
        if np.any(weights < 0):
            raise ValueError("Observation weights must be non-negative")
    return obs, times, weights


def check_positive_int(name: str, value: int) -> None:
    if int(value) != value or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value}")
