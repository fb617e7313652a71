"""
mccbn: Monte Carlo EM inference for hidden conjunctive Bayesian networks.
"""

from .exceptions import MCCBNError, NotAcyclicError, DimensionMismatchError
from .mcem import (
    Context,
    ControlEM,
    EMState,
    Model,
    complete_log_likelihood,
    fit,
    importance_weight,
    importance_weights,
    observed_log_likelihood,
    sample,
)

__version__ = "0.1.0"

__all__ = [
    'MCCBNError', 'NotAcyclicError', 'DimensionMismatchError', 'Context', 'ControlEM',
    'EMState', 'Model', 'complete_log_likelihood', 'fit', 'importance_weight',
    'importance_weights', 'observed_log_likelihood', 'sample',
]
