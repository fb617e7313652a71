"""
Unit tests for the importance sampler and its probability helpers.
"""

import logging

import numpy as np
import pytest

from mccbn.mcem import Model, importance_weight
from mccbn.mcem import importance_sampling
from mccbn.utils.basic_utils import BasicUtils
from mccbn.utils.statistical_utils import StatisticalUtils


def _model(edges, p, eps, lambdas=None):
    if lambdas is None:
        lambdas = np.ones(p)
    return Model.from_edges(edges, p, lambda_=lambdas, epsilon=eps)


class TestHammingDistance:
    """Test Hamming distances."""

    def test_symmetric_and_zero_iff_equal(self):
        rng = np.random.default_rng(0)
        for _ in range(20):
            x = rng.random(6) < 0.5
            y = rng.random(6) < 0.5
            assert BasicUtils.hamming_dist(x, y) == BasicUtils.hamming_dist(y, x)
            assert (BasicUtils.hamming_dist(x, y) == 0) == np.array_equal(x, y)

    def test_rowwise_matches_direct(self):
        rng = np.random.default_rng(1)
        x = rng.random((30, 5)) < 0.5
        y = rng.random(5) < 0.5
        direct = [BasicUtils.hamming_dist(row, y) for row in x]
        np.testing.assert_array_equal(BasicUtils.hamming_dist_mat(x, y), direct)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            BasicUtils.hamming_dist([True], [True, False])


class TestLogBernoulli:
    """Test the log-probability of bit flips."""

    def test_zero_eps_zero_dist(self):
        assert StatisticalUtils.log_bernoulli_process(0, 0.0, 5) == 0.0

    def test_zero_eps_positive_dist_is_finite(self):
        for p in [1, 3, 10, 50]:
            for d in range(1, p + 1):
                value = StatisticalUtils.log_bernoulli_process(d, 0.0, p)
                assert np.isfinite(value)
                assert value < 0

    def test_matches_closed_form(self):
        d = np.array([0, 1, 2, 3])
        expected = np.log(0.1) * d + np.log(0.9) * (3 - d)
        np.testing.assert_allclose(StatisticalUtils.log_bernoulli_process(d, 0.1, 3), expected)
        np.testing.assert_allclose(np.exp(expected), StatisticalUtils.bernoulli_process(d, 0.1, 3))


class TestForwardProposal:
    """Test the forward proposal."""

    def test_weights_are_emission_probabilities(self):
        model = _model([(0, 1), (1, 2)], 3, eps=0.1)
        result = importance_sampling.importance_weight(
            np.array([1, 0, 0], dtype=bool), 200, model, np.random.default_rng(2))
        assert result.w.shape == (200,)
        assert result.dist.shape == (200,)
        assert result.Tdiff.shape == (200, 3)
        np.testing.assert_allclose(result.w, 0.1 ** result.dist * 0.9 ** (3 - result.dist))
        assert np.all(result.w >= 0)
        assert result.w.sum() > 0
        assert not result.random_fallback

    def test_expected_statistics_normalised(self):
        model = _model([], 2, eps=0.2)
        result = importance_sampling.importance_weight(
            np.array([1, 1], dtype=bool), 500, model, np.random.default_rng(3))
        expected_dist = result.expected_dist()
        assert 0.0 <= expected_dist <= 2.0
        manual = (result.w @ result.dist) / result.w.sum()
        assert np.isclose(expected_dist, manual)
        np.testing.assert_allclose(result.expected_Tdiff(), result.Tdiff.T @ result.w / result.w.sum())

    def test_known_sampling_time(self):
        """With the sampling time at zero every draw is the wild type."""
        model = _model([], 3, eps=0.05)
        result = importance_sampling.importance_weight(
            np.zeros(3, dtype=bool), 50, model, np.random.default_rng(4), time=0.0)
        np.testing.assert_array_equal(result.dist, np.zeros(50))

    def test_zero_weights_fall_back_to_uniform(self):
        ws = importance_sampling.ImportanceSample(
            w=np.zeros(4), dist=np.array([1, 2, 3, 4]), Tdiff=np.ones((4, 2)))
        assert ws.expected_dist() == 2.5

    def test_degenerate_weights_warn_once(self, caplog):
        ws = importance_sampling.ImportanceSample(
            w=np.zeros(3), dist=np.array([1, 1, 4]), Tdiff=np.array([[1.0], [2.0], [3.0]]))
        with caplog.at_level(logging.WARNING, logger="mccbn.mcem.importance_sampling"):
            dist, Tdiff = ws.expectations()
        assert np.isclose(dist, 2.0)
        np.testing.assert_allclose(Tdiff, [2.0])
        assert len(caplog.records) == 1


class TestRejectionProposal:
    """Test importance resampling from a genotype pool."""

    def test_weights_constant_and_positive(self):
        model = _model([(0, 1)], 2, eps=0.1)
        result = importance_sampling.importance_weight(
            np.array([1, 1], dtype=bool), 100, model, np.random.default_rng(5), sampling="rejection")
        assert result.w.shape == (100,)
        assert np.all(result.w > 0)
        assert np.allclose(result.w, result.w[0])
        assert not result.random_fallback

    def test_degenerate_pool_falls_back(self, caplog):
        """An observation that no draw can match under eps = 0 triggers the fallback."""
        model = _model([(0, 1)], 2, eps=0.0)
        with caplog.at_level(logging.WARNING, logger="mccbn.mcem.importance_sampling"):
            result = importance_sampling.importance_weight(
                np.array([0, 1], dtype=bool), 50, model, np.random.default_rng(6),
                sampling="rejection")
        assert result.random_fallback
        assert np.all(np.isfinite(result.w))
        assert np.all(result.w >= 0)
        assert np.all(result.dist > 0)
        assert "uniform resampling" in caplog.text

    def test_no_events(self):
        model = _model([], 0, eps=0.0)
        result = importance_sampling.importance_weight(
            np.zeros(0, dtype=bool), 10, model, np.random.default_rng(7), sampling="rejection")
        np.testing.assert_array_equal(result.w, np.ones(10))
        assert result.Tdiff.shape == (10, 0)


class TestImportanceWeightEntryPoint:
    """Test the seed-level importance_weight() function."""

    def test_reproducible(self):
        model = _model([(0, 1)], 2, eps=0.05)
        a = importance_weight([1, 0], model, 100, seed=9)
        b = importance_weight([1, 0], model, 100, seed=9)
        np.testing.assert_array_equal(a['w'], b['w'])
        np.testing.assert_array_equal(a['dist'], b['dist'])
        np.testing.assert_array_equal(a['Tdiff'], b['Tdiff'])

    def test_unknown_proposal(self):
        model = _model([], 2, eps=0.05)
        with pytest.raises(ValueError):
            importance_weight([1, 0], model, 10, sampling="add-remove")

    def test_dimension_mismatch(self):
        from mccbn.exceptions import DimensionMismatchError
        model = _model([], 2, eps=0.05)
        with pytest.raises(DimensionMismatchError):
            importance_weight([1, 0, 1], model, 10)
