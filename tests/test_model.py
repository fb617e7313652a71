"""
Unit tests for mccbn.mcem.model (poset representation and parameters).
"""

import numpy as np
import pytest

from mccbn.exceptions import DimensionMismatchError, NotAcyclicError
from mccbn.mcem.model import ControlEM, Model, build_model, check_observations
from mccbn.utils.generation_utils import GenerationUtils


def _is_topological(order, edges, p):
    position = {v: i for i, v in enumerate(order)}
    return sorted(order) == list(range(p)) and all(position[u] < position[v] for u, v in edges)


class TestCycleCheck:
    """Test cycle detection."""

    def test_acyclic_chain(self):
        model = Model(3, [(0, 1), (1, 2)])
        assert not model.has_cycles()
        assert not model.cycle

    def test_cycle_flagged(self):
        model = Model(3, [(0, 1), (1, 2), (2, 0)])
        assert model.cycle_check()
        assert model.cycle

    def test_self_loop_is_cycle(self):
        model = Model(2, [(1, 1)])
        assert model.has_cycles()

    def test_diamond_is_not_cycle(self):
        """Two paths to the same node are not a cycle."""
        model = Model(4, [(0, 1), (0, 2), (1, 3), (2, 3)])
        assert not model.has_cycles()

    def test_cyclic_poset_rejected_before_sorting(self):
        model = Model(3, [(0, 1), (1, 0)])
        with pytest.raises(NotAcyclicError):
            model.validate()
        assert model.topo_path == []

    def test_from_edges_raises_on_cycle(self):
        with pytest.raises(NotAcyclicError):
            Model.from_edges([(0, 1), (1, 2), (2, 1)], 3)


class TestTopologicalSort:
    """Test topological ordering."""

    def test_chain_order(self):
        model = Model.from_edges([(2, 1), (1, 0)], 3)
        assert model.topo_path == [2, 1, 0]

    def test_ties_broken_by_index(self):
        model = Model.from_edges([], 4)
        assert model.topo_path == [0, 1, 2, 3]
        model = Model.from_edges([(3, 0)], 4)
        assert model.topo_path == [1, 2, 3, 0]

    def test_random_posets(self):
        """Every edge goes forward in the order for random posets."""
        rng = np.random.default_rng(3)
        for p in range(1, 9):
            perm = rng.permutation(p)
            poset = GenerationUtils.make_random_poset(p, rng, edge_prob=0.6)
            edges = [(int(perm[u]), int(perm[v])) for u, v in zip(*np.nonzero(poset))]
            model = Model.from_edges(edges, p)
            assert _is_topological(model.topo_path, edges, p)

    def test_parents_cached(self):
        model = Model.from_edges([(0, 2), (1, 2)], 3)
        assert model.parents == [[], [], [0, 1]]
        assert model.get_children() == [{2}, {2}, set()]

    def test_empty_poset(self):
        model = Model.from_edges([], 0)
        assert model.size() == 0
        assert model.topo_path == []


class TestSuccessorsAndReduction:
    """Test reachability and transitive reduction."""

    def test_successors(self):
        model = Model.from_edges([(0, 1), (1, 2), (3, 2)], 4)
        assert model.get_successors(0) == {1, 2}
        assert model.successors(3) == {2}
        assert model.get_successors(2) == set()

    def test_direct_successors_in_topological_order(self):
        model = Model.from_edges([(0, 2), (0, 1), (1, 2)], 3)
        assert model.get_direct_successors() == [[1, 2], [2], []]

    def test_transitive_reduction(self):
        model = Model.from_edges([(0, 1), (1, 2), (0, 2), (0, 3)], 4)
        model.transitive_reduction()
        assert model.cover_relations() == [(0, 1), (0, 3), (1, 2)]
        assert model.reduction_flag

    def test_transitive_reduction_idempotent(self):
        model = Model.from_edges([(0, 1), (1, 2), (0, 2), (2, 3), (0, 3)], 4)
        model.transitive_reduction()
        first = model.cover_relations()
        model.transitive_reduction()
        assert model.cover_relations() == first == [(0, 1), (1, 2), (2, 3)]

    def test_transitive_reduction_keeps_diamond(self):
        """Parallel paths are covers; only the shortcut across them goes."""
        model = Model.from_edges([(0, 1), (0, 2), (1, 3), (2, 3), (0, 3)], 4)
        model.transitive_reduction()
        assert model.cover_relations() == [(0, 1), (0, 2), (1, 3), (2, 3)]
        assert model.parents[3] == [1, 2]
        assert model.topo_path == [0, 1, 2, 3]

    def test_adjacency_round_trip(self):
        poset = np.array([[0, 1, 0], [0, 0, 1], [0, 0, 0]])
        model = Model.from_adjacency(poset)
        np.testing.assert_array_equal(model.adjacency_matrix(), poset)

    def test_clear(self):
        model = Model.from_edges([(0, 1)], 2)
        model.clear()
        assert model.cover_relations() == []
        assert model.size() == 2


class TestParameters:
    """Test parameter handling."""

    def test_lambda_capped(self):
        model = Model(3)
        model.set_lambda([1.0, 5.0, np.inf], max_lambda=4.0)
        np.testing.assert_array_equal(model.lambda_, [1.0, 4.0, 4.0])

    def test_lambda_wrong_length(self):
        model = Model(3)
        with pytest.raises(DimensionMismatchError):
            model.set_lambda([1.0, 2.0])

    def test_epsilon_range(self):
        model = Model(1)
        with pytest.raises(ValueError):
            model.set_epsilon(1.5)

    def test_edge_outside_range(self):
        with pytest.raises(DimensionMismatchError):
            Model(2, [(0, 2)])

    def test_build_model_from_edges_and_matrix(self):
        a = build_model([(0, 1)], [1.0, 2.0], epsilon=0.1)
        b = build_model(np.array([[0, 1], [0, 0]]), [1.0, 2.0], epsilon=0.1)
        assert a.cover_relations() == b.cover_relations() == [(0, 1)]
        assert a.epsilon == 0.1

    def test_build_model_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            build_model(np.zeros((3, 3)), [1.0, 2.0])

    def test_build_model_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            build_model([], [1.0, 0.0])

    def test_check_observations(self):
        obs, times, weights = check_observations([[1, 0], [0, 0]], 2)
        assert obs.dtype == bool
        assert times is None
        np.testing.assert_array_equal(weights, [1.0, 1.0])
        with pytest.raises(DimensionMismatchError):
            check_observations([[1, 0, 1]], 2)
        with pytest.raises(DimensionMismatchError):
            check_observations([[1, 0]], 2, times=[1.0, 2.0])
        with pytest.raises(ValueError):
            check_observations([[1, 0]], 2, weights=[-1.0])


class TestControlEM:
    """Test EM options."""

    def test_defaults(self):
        control = ControlEM()
        assert control.max_iter == 100
        assert control.update_step_size == 20
        assert control.tol == 0.001
        assert control.max_lambda == 1e6

    def test_from_config(self):
        control = ControlEM.from_config({'max_iter': 10, 'tol': 0.5})
        assert control.max_iter == 10
        assert control.tol == 0.5
        assert control.update_step_size == 20

    def test_invalid(self):
        with pytest.raises(ValueError):
            ControlEM(update_step_size=0)
        with pytest.raises(ValueError):
            ControlEM(max_L=0)

    def test_sample_size_cap_from_config(self):
        assert ControlEM.from_config({}).max_L is None
        assert ControlEM.from_config({'max_L': 800}).max_L == 800
