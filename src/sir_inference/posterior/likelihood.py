#!/usr/bin/env python3
# src/sir_inference/posterior/likelihood.py
"""
Chain-binomial SIR likelihood and uniform-prior posterior.
"""

# Store type annotations as strings instead of evaluating them immediately.
from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.special import gammaln

from ..simulate.reconstruct_states import reconstruct_trajectory
from .observations import EpidemicData

# Uniform prior support for both beta and gamma
PRIOR_LOW = 0.0
PRIOR_HIGH = 0.5


def binomial_logpmf(k, n, log_p, log_q) -> np.ndarray:
    """Binomial log-pmf; uses gammaln for factorials.

    p and q = 1 - p are passed on the log scale so that small hazards keep
    their precision. Entries with n < 0, k < 0 or k > n give -inf.
    """
    k = np.asarray(k, dtype=float)
    n = np.asarray(n, dtype=float)
    log_p = np.asarray(log_p, dtype=float)
    log_q = np.asarray(log_q, dtype=float)

    valid = (n >= 0) & (k >= 0) & (k <= n)
    n_ok = np.where(valid, n, 0.0)
    k_ok = np.where(valid, k, 0.0)

    log_choose = gammaln(n_ok + 1) - gammaln(k_ok + 1) - gammaln(n_ok - k_ok + 1)
    # 0 * log(0) counts as 0 (p = 0 or q = 0 with no events on that side)
    with np.errstate(invalid="ignore"):
        term_p = np.where(k_ok > 0, k_ok * log_p, 0.0)
        term_q = np.where(n_ok - k_ok > 0, (n_ok - k_ok) * log_q, 0.0)
    out = log_choose + term_p + term_q
    return np.where(valid, out, -np.inf)


def hazard_logs(rate):
    """Return log(1 - exp(-rate)) and log(exp(-rate)) = -rate, elementwise."""
    rate = np.asarray(rate, dtype=float)
    with np.errstate(divide="ignore"):
        log_p = np.log(-np.expm1(-rate))
    return log_p, -rate


def log_likelihood_given_states(beta, gamma, cases, removals, S, I, N) -> float:
    """Sum over days of the log infection and log removal binomial masses.

    S and I are the states at the start of each day (only the first T entries
    are used).
    """
    cases = np.asarray(cases)
    removals = np.asarray(removals)
    T = cases.size
    S_t = np.asarray(S)[:T]
    I_t = np.asarray(I)[:T]

    if np.any(S_t < 0) or np.any(I_t < 0):
        return -np.inf

    log_p_inf, log_q_inf = hazard_logs(beta * I_t / N)
    log_p_rem, log_q_rem = hazard_logs(gamma)

    ll_cases = binomial_logpmf(cases, S_t, log_p_inf, log_q_inf)
    ll_removals = binomial_logpmf(removals, I_t, log_p_rem, log_q_rem)

    total = float(np.sum(ll_cases) + np.sum(ll_removals))
    if math.isnan(total):
        return -np.inf
    return total


def in_prior_support(beta, gamma) -> bool:
    return PRIOR_LOW <= beta <= PRIOR_HIGH and PRIOR_LOW <= gamma <= PRIOR_HIGH


def log_prior(beta, gamma) -> float:
    """Independent Uniform(0, 0.5) priors, up to the constant."""
    if in_prior_support(beta, gamma):
        return 0.0
    return -np.inf


def log_likelihood(params: Sequence[float], data: EpidemicData) -> float:
    beta, gamma = float(params[0]), float(params[1])
    traj = data.trajectory()
    if not traj["feasible"]:
        return -np.inf
    return log_likelihood_given_states(
        beta, gamma, data.new_cases, data.new_removals, traj["S"], traj["I"], data.N
    )


def log_posterior_from_arrays(params, cases, removals, N, I0) -> float:
    """Log posterior for raw (possibly infeasible) series.

    Used by the data-augmented sampler, whose proposed latent counts may be
    negative and so cannot be held in an EpidemicData.
    """
    beta, gamma = float(params[0]), float(params[1])
    if not in_prior_support(beta, gamma):
        return -np.inf
    traj = reconstruct_trajectory(N, I0, cases, removals)
    if not traj["feasible"]:
        return -np.inf
    return log_likelihood_given_states(beta, gamma, cases, removals, traj["S"], traj["I"], N) + log_prior(beta, gamma)


def log_posterior(params: Sequence[float], data: EpidemicData) -> float:
    """Unnormalised log posterior; -inf for any domain violation."""
    return log_posterior_from_arrays(params, data.new_cases, data.new_removals, data.N, data.I0)


def posterior_density(params: Sequence[float], data: EpidemicData) -> float:
    """Unnormalised posterior density (likelihood x prior density 1)."""
    lp = log_posterior(params, data)
    if not np.isfinite(lp):
        return 0.0
    return float(math.exp(lp))
