# src/sir_inference/estimate/mle.py
"""
Maximum (posterior) likelihood point estimates of (beta, gamma).

The objective is the negative log posterior; with the flat prior this is the
negative log-likelihood inside [0, 0.5]^2. It is minimised with Nelder-Mead.
"""

from typing import Optional, Sequence
import logging

import numpy as np
from scipy.optimize import minimize

from ..posterior.likelihood import log_likelihood, log_likelihood_given_states, log_prior
from ..posterior.observations import EpidemicData

# Start logger
logger = logging.getLogger(__name__)

# Returned instead of +inf / NaN so the simplex stays well defined
PENALTY = 1e10
DEFAULT_START = (0.1, 0.1)


def negative_log_posterior(params, cases, removals, S, I, N) -> float:
    """-(log-likelihood + log-prior), or PENALTY where that is not finite."""
    beta, gamma = float(params[0]), float(params[1])
    lp = log_prior(beta, gamma)
    if not np.isfinite(lp):
        return PENALTY
    ll = log_likelihood_given_states(beta, gamma, cases, removals, S, I, N)
    value = -(ll + lp)
    if not np.isfinite(value):
        return PENALTY
    return float(value)


def fit_mle(
    data: EpidemicData,
    start: Sequence[float] = DEFAULT_START,
    xtol: float = 1e-8,
    ftol: float = 1e-8,
    maxiter: Optional[int] = 2000,
) -> dict:
    """Nelder-Mead estimate of (beta, gamma).

    result : dict with keys:
        - "beta", "gamma"      : float, best point found
        - "neg_log_posterior"  : float, objective at that point
        - "log_likelihood"     : float, log-likelihood at that point
        - "converged"          : bool, False if the optimiser stopped early
        - "n_iter"             : int
        - "message"            : str
    Non-convergence is logged as a warning, not raised.
    """
    traj = data.trajectory()
    if not traj["feasible"]:
        raise ValueError("Observed series gives an infeasible S/I trajectory")
    S, I = traj["S"], traj["I"]

    res = minimize(
        negative_log_posterior,
        x0=np.asarray(start, dtype=float),
        args=(data.new_cases, data.new_removals, S, I, data.N),
        method="Nelder-Mead",
        options={"xatol": xtol, "fatol": ftol, "maxiter": maxiter},
    )

    converged = bool(res.success) and float(res.fun) < PENALTY
    if not converged:
        logger.warning("MLE did not converge from start %s: %s", tuple(start), res.message)

    return {
        "beta": float(res.x[0]),
        "gamma": float(res.x[1]),
        "neg_log_posterior": float(res.fun),
        "log_likelihood": log_likelihood(res.x, data),
        "converged": converged,
        "n_iter": int(res.nit),
        "message": str(res.message),
    }
