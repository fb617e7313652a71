"""
Monte Carlo EM implementation for conjunctive Bayesian networks.
"""

from .context import Context
from .model import ControlEM, Model, build_model
from .sampling import sample_genotypes, generate_mutation_times
from .importance_sampling import ImportanceSample
from .likelihood import complete_log_likelihood, observed_log_likelihood
from .mcem_simulation import EMState, fit, mcem_hcbn
from .interface import sample, importance_weight, importance_weights

__all__ = [
    'Context', 'ControlEM', 'Model', 'build_model', 'sample_genotypes',
    'generate_mutation_times', 'ImportanceSample', 'complete_log_likelihood',
    'observed_log_likelihood', 'EMState', 'fit', 'mcem_hcbn', 'sample',
    'importance_weight', 'importance_weights',
]
