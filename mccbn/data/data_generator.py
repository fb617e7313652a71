"""
Data generator and benchmark driver for MCEM on hidden CBNs.
"""

import os
import json
import time
import numpy as np
from typing import Dict, Any

from mccbn.mcem.model import ControlEM, Model
from mccbn.mcem.mcem_simulation import fit
from mccbn.mcem.likelihood import observed_log_likelihood
from mccbn.utils.basic_utils import BasicUtils
from mccbn.utils.conversion_utils import ConversionUtils
from mccbn.utils.generation_utils import GenerationUtils


def get_project_root() -> str:
    """Get the absolute path to the project root directory."""
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load the benchmark configuration.

    Args:
        config_path: Path to configuration file (relative to project root or absolute)

    Returns:
        Dictionary containing configuration
    """
    if not os.path.isabs(config_path):
        # If relative path, make it relative to project root
        config_path = os.path.join(get_project_root(), config_path)
    return BasicUtils.load_config(config_path)


def generate_data(config: Dict[str, Any], rng: np.random.Generator) -> Dict[str, Any]:
    """Generate a random poset, random rates and noisy observations."""
    gen = config['generation']
    p = int(gen['p'])
    N = int(gen['N'])
    lambda_s = float(gen.get('lambda_s', 1.0))
    eps = float(gen.get('eps', 0.05))

    # 1. Random poset and rates
    poset = GenerationUtils.make_random_poset(p, rng, gen.get('edge_prob', 0.5))
    lambdas = GenerationUtils.random_rates(p, lambda_s, rng)
    model = Model.from_adjacency(poset, lambda_s=lambda_s, lambda_=lambdas, epsilon=eps)

    # 2. Noisy observations at unknown sampling times
    simulated = GenerationUtils.simulate_observations(N, model, eps, rng)

    return {
        'poset': poset,
        'lambdas': lambdas,
        'lambda_s': lambda_s,
        'eps': eps,
        'obs': simulated['obs'],
        'hidden': simulated['hidden'],
        'sampling_time': simulated['sampling_time'],
        'model': model,
    }


def run_benchmark(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Simulate one data set, fit it by MCEM and summarise the fit.
    """
    seed = config.get('seed')
    rng = np.random.default_rng(seed)
    data = generate_data(config, rng)
    mcem_cfg = config.get('mcem', {})
    control = ControlEM.from_config(mcem_cfg)
    p = data['poset'].shape[0]
    verbose = bool(mcem_cfg.get('verbose', False))

    compatible = GenerationUtils.fraction_compatible(data['obs'], data['model'])
    if verbose:
        print(f"Poset cover relations: {ConversionUtils.adjacency_mat2list(data['poset'])}")
        print(f"True rates: {data['lambdas']}")
        print(f"Fraction of observations compatible with the poset: {compatible:.2%}")

    # Initial rates from the same prior range as the simulation
    initial_lambda = GenerationUtils.random_rates(p, data['lambda_s'], rng)

    t0 = time.time()
    ret = fit(
        initial_lambda,
        data['poset'],
        data['obs'],
        lambda_s=data['lambda_s'],
        initial_epsilon=float(mcem_cfg.get('initial_epsilon', 0.05)),
        L=int(mcem_cfg.get('L', 100)),
        sampling=mcem_cfg.get('sampling', 'forward'),
        control=control,
        thrds=int(mcem_cfg.get('thrds', 1)),
        seed=int(rng.integers(0, 2 ** 31 - 1)),
        verbose=verbose,
    )
    runtime = time.time() - t0

    llhood = observed_log_likelihood(
        data['obs'], data['poset'], ret['lambda'], ret['eps'],
        L=int(config.get('evaluation', {}).get('L', 1000)),
        lambda_s=data['lambda_s'],
        seed=int(rng.integers(0, 2 ** 31 - 1)),
    )

    return {
        'parameters': {
            'p': p,
            'N': int(data['obs'].shape[0]),
            'lambda_s': data['lambda_s'],
            'eps_true': data['eps'],
        },
        'poset': data['poset'].tolist(),
        'lambdas_true': data['lambdas'].tolist(),
        'lambdas_fit': ret['lambda'].tolist(),
        'eps_fit': ret['eps'],
        'state': ret['state'].value,
        'n_iter': ret['n_iter'],
        'L_final': ret['L'],
        'relative_abs_error': GenerationUtils.relative_abs_error(ret['lambda'], data['lambdas']),
        'obs_llhood': llhood,
        'num_compatible': BasicUtils.num_compatible_observations(data['obs'], data['model']),
        'runtime': runtime,
    }


def main():
    try:
        # Load configuration
        config = load_config('config/mccbn_config.yaml')

        # Get project root and create output directory
        project_root = get_project_root()
        output_dir = os.path.join(project_root, config['output']['dir'])
        os.makedirs(output_dir, exist_ok=True)

        results = run_benchmark(config)

        # Save results
        output_path = os.path.join(output_dir, config['output']['filename'])
        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)

        print(f"\nResults saved to {output_path}")
        print("\nFit Statistics:")
        print(f"True rates: {np.round(results['lambdas_true'], 3)}")
        print(f"Fitted rates: {np.round(results['lambdas_fit'], 3)}")
        print(f"Fitted error rate: {results['eps_fit']:.4f} (true {results['parameters']['eps_true']})")
        print(f"Relative absolute error of the rates: {results['relative_abs_error']:.4f}")
        print(f"Observed log-likelihood: {results['obs_llhood']:.3f}")
        print(f"Runtime: {results['runtime']:.2f}s ({results['n_iter']} iterations, {results['state']})")
        print(f"Final number of importance samples: {results['L_final']}")

    except Exception as e:
        print(f"Error in main: {e}")
        raise


if __name__ == "__main__":
    main()
