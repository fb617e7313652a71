"""
Tests for the synthetic benchmark driver.
"""

import json

import numpy as np

from mccbn.data.data_generator import generate_data, load_config, run_benchmark


def _config():
    return {
        'seed': 3,
        'generation': {'p': 4, 'N': 60, 'lambda_s': 1.0, 'eps': 0.05, 'edge_prob': 0.5},
        'mcem': {'L': 20, 'sampling': 'forward', 'max_iter': 10, 'update_step_size': 5,
                 'tol': 0.01, 'initial_epsilon': 0.05, 'thrds': 2},
        'evaluation': {'L': 50},
    }


class TestDataGenerator:
    """Test data generation and the benchmark summary."""

    def test_generate_data(self):
        data = generate_data(_config(), np.random.default_rng(0))
        assert data['poset'].shape == (4, 4)
        assert data['obs'].shape == (60, 4)
        assert data['lambdas'].shape == (4,)
        assert data['model'].size() == 4

    def test_run_benchmark(self):
        results = run_benchmark(_config())
        assert results['parameters']['p'] == 4
        assert len(results['lambdas_fit']) == 4
        assert results['state'] in ('converged', 'max_iter_reached')
        assert 1 <= results['n_iter'] <= 10
        assert results['L_final'] >= 20
        assert 0 <= results['num_compatible'] <= 60
        assert np.isfinite(results['obs_llhood'])
        json.dumps(results)

    def test_reproducible(self):
        a = run_benchmark(_config())
        b = run_benchmark(_config())
        assert a['lambdas_fit'] == b['lambdas_fit']
        assert a['eps_fit'] == b['eps_fit']

    def test_default_config_loads(self):
        config = load_config('config/mccbn_config.yaml')
        assert {'generation', 'mcem', 'evaluation', 'output'} <= set(config)
