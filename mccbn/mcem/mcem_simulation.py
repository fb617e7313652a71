"""
Monte Carlo EM for the hidden conjunctive Bayesian network.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .context import Context
from .importance_sampling import check_sampling
from .likelihood import complete_log_likelihood, expected_statistics
from .model import ControlEM, Model, build_model, check_observations, check_positive_int

logger = logging.getLogger(__name__)


class EMState(Enum):
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"


def m_step(expected_dist: np.ndarray, expected_Tdiff: np.ndarray,
           weights: np.ndarray) -> Tuple[float, np.ndarray]:
    """
    Closed-form maximisation of the complete-data log-likelihood.

    epsilon is the mean expected Hamming distance per event over the
    (unweighted) observations; every rate is the inverse of the weighted mean
    expected waiting time. Rates of events that never wait come out infinite
    and are left for the caller to cap.
    """
    N, p = expected_Tdiff.shape
    eps = expected_dist.sum() / (N * p) if p > 0 else 0.0
    W = float(weights.sum())
    with np.errstate(divide='ignore'):
        lam = 1.0 / ((weights @ expected_Tdiff) / W)
    return float(eps), lam


def mcem_hcbn(
    model: Model,
    obs: np.ndarray,
    times: Optional[np.ndarray],
    weights: np.ndarray,
    L: int,
    sampling: str,
    control_EM: ControlEM,
    thrds: int,
    ctx: Context,
) -> Dict[str, Any]:
    """
    Fit the rates and the error rate of a validated model by Monte Carlo EM.

    The model is updated in place. Every `update_step_size` iterations the
    running averages of epsilon and the rates are compared with those of the
    previous window; the fit stops once both moved by at most `tol`.
    Otherwise the number of importance samples L is doubled (up to
    `max_L`) for the next window. The reported estimates are the averages
    over the last (possibly partial) window, not the last point estimates.

    Returns a dictionary with the averaged "lambda", "eps" and "llhood", the
    terminal "state", the number of completed iterations "n_iter" and the
    number of importance samples "L" in use at the end.
    """
    if thrds == 1:
        return _mcem_loop(model, obs, times, weights, L, sampling, control_EM, thrds, ctx, None)
    with ThreadPoolExecutor(max_workers=thrds) as executor:
        return _mcem_loop(model, obs, times, weights, L, sampling, control_EM, thrds, ctx,
                          executor)


def _mcem_loop(model: Model, obs: np.ndarray, times: Optional[np.ndarray],
               weights: np.ndarray, L: int, sampling: str, control_EM: ControlEM,
               thrds: int, ctx: Context, executor: Optional[Executor]) -> Dict[str, Any]:

    # ----------------------------------------------------------------
    # 1. Setup
    # ----------------------------------------------------------------
    p = model.size()
    W = float(weights.sum())
    verbose = ctx.get_verbose()

    update_step_size = control_EM.update_step_size
    avg_lambda = np.zeros(p)
    avg_lambda_current = np.zeros(p)
    avg_eps = 0.0
    avg_eps_current = 0.0
    avg_llhood = 0.0
    llhood = 0.0
    n_iter = 0
    cap_reported = False

    state = EMState.INITIALIZED
    if verbose:
        print(f"Initial value of the error rate - epsilon: {model.epsilon}")
        print(f"Initial value of the rate parameters - lambda: {model.lambda_}")

    # ----------------------------------------------------------------
    # 2. Main EM loop
    # ----------------------------------------------------------------
    state = EMState.ITERATING
    for iteration in range(control_EM.max_iter):

        # ---- A) Compare running averages every update_step_size iterations ----
        if iteration == update_step_size:
            avg_lambda_current /= control_EM.update_step_size
            avg_eps_current /= control_EM.update_step_size
            avg_llhood /= control_EM.update_step_size
            if abs(avg_eps - avg_eps_current) <= control_EM.tol and \
                    np.all(np.abs(avg_lambda - avg_lambda_current) <= control_EM.tol):
                state = EMState.CONVERGED
                break
            avg_lambda = avg_lambda_current
            avg_eps = avg_eps_current
            update_step_size += control_EM.update_step_size

            # More samples to reduce the Monte Carlo noise of the next window
            L_next = control_EM.next_L(L)
            if verbose and L_next != L:
                print(f"Not converged after {iteration} iterations; L: {L} -> {L_next}")
            L = L_next

            # Restart averaging
            avg_lambda_current = np.zeros(p)
            avg_eps_current = 0.0
            avg_llhood = 0.0

        # ---- B) E-step: expected sufficient statistics per observation ----
        stats = expected_statistics(obs, model, L, ctx, times=times, sampling=sampling,
                                    thrds=thrds, executor=executor)
        expected_dist = stats["dist"]
        expected_Tdiff = stats["Tdiff"]

        # ---- C) M-step ----
        new_eps, new_lambda = m_step(expected_dist, expected_Tdiff, weights)
        model.set_epsilon(new_eps)
        model.set_lambda(new_lambda, control_EM.max_lambda)
        if not cap_reported and np.any(model.lambda_ >= control_EM.max_lambda):
            logger.warning(
                "Rate(s) of event(s) %s reached max_lambda=%g",
                np.flatnonzero(model.lambda_ >= control_EM.max_lambda).tolist(),
                control_EM.max_lambda)
            cap_reported = True

        llhood = complete_log_likelihood(model.lambda_, model.epsilon, expected_Tdiff,
                                         expected_dist, W)

        avg_lambda_current += model.lambda_
        avg_eps_current += model.epsilon
        avg_llhood += llhood
        n_iter = iteration + 1

        if iteration + 1 == control_EM.max_iter:
            num_iter = control_EM.max_iter - update_step_size + control_EM.update_step_size
            avg_lambda_current /= num_iter
            avg_eps_current /= num_iter
            avg_llhood /= num_iter
            state = EMState.MAX_ITER_REACHED

        if verbose:
            if iteration == 0:
                print("llhood\tepsilon\tlambdas")
            print(f"{llhood}\t{model.epsilon}\t{model.lambda_}")

    # ----------------------------------------------------------------
    # 3. Report the averaged estimates
    # ----------------------------------------------------------------
    model.set_lambda(avg_lambda_current)
    model.set_epsilon(avg_eps_current)
    model.set_llhood(avg_llhood)

    if verbose:
        print(f"\nMCEM finished after {n_iter} iterations ({state.value}), L = {L}")

    return {
        "lambda": model.lambda_,
        "eps": model.epsilon,
        "llhood": model.llhood,
        "state": state,
        "n_iter": n_iter,
        "L": L,
    }


def fit(
    initial_lambda: Sequence[float],
    poset,
    observations,
    sampling_times=None,
    weights=None,
    lambda_s: float = 1.0,
    initial_epsilon: float = 0.05,
    L: int = 100,
    sampling: str = "forward",
    control: Optional[ControlEM] = None,
    thrds: int = 1,
    seed: Optional[int] = None,
    verbose: bool = False,
    p: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Estimate the rates and the error rate of a CBN with a given poset.

    Parameters:
    -----------
    initial_lambda: array-like
        (p,) initial rate parameters
    poset: array-like
        Edge list [(u, v), ...] or p x p adjacency matrix of cover relations
    observations: array-like
        (N, p) observed genotypes
    sampling_times: array-like or None
        (N,) sampling times, or None to treat them as unknown
    weights: array-like or None
        (N,) observation weights, all ones by default
    lambda_s: float
        Sampling rate
    initial_epsilon: float
        Initial error rate
    L: int
        Initial number of importance samples per observation and iteration;
        doubled at every failed convergence check up to `control.max_L`
    sampling: str
        Proposal, "forward" or "rejection"
    control: ControlEM or None
        EM options, defaults to ControlEM()
    thrds: int
        Number of worker threads used in the E-step
    seed: int or None
        Seed of the master random stream; results are reproducible for a
        fixed (seed, thrds) pair
    verbose: bool
        Print the parameters at every iteration
    p: int or None
        Number of events, checked against `initial_lambda` when given

    Returns:
    --------
    dict with "lambda", "eps", "llhood", "state", "n_iter" and the final "L"

    Raises:
    -------
    NotAcyclicError: the poset contains a cycle
    DimensionMismatchError: inputs disagree on the number of events or observations
    ValueError: invalid argument values
    """
    check_sampling(sampling)
    check_positive_int("L", L)
    check_positive_int("thrds", thrds)
    if control is None:
        control = ControlEM()
    model = build_model(poset, initial_lambda, epsilon=initial_epsilon, lambda_s=lambda_s, p=p)
    obs, times, w = check_observations(observations, model.size(), sampling_times, weights)
    if obs.shape[0] == 0:
        raise ValueError("At least one observation is required")
    if w.sum() <= 0:
        raise ValueError("Observation weights must not all be zero")

    ctx = Context(seed, verbose=verbose)
    return mcem_hcbn(model, obs, times, w, L, sampling, control, thrds, ctx)
