# ###
# **bootstrap.py**

# Purpose: parametric bootstrap for (beta, gamma). Simulate n_boot new series from the fitted
# model, re-fit each by maximum likelihood, and read percentile intervals off the replicates.

# Functions:
# - bootstrap_replicate()

#   - Input: fitted beta/gamma, N, I0, T and a SeedSequence.
#   - Output: (beta_i, gamma_i, converged).

# - parametric_bootstrap()

#   - Input: fitted beta/gamma, N, I0, T, number of replicates, seed, n_jobs.
#   - Output: dict with samples, mean, median, lower, upper.
# ###

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.random import SeedSequence, default_rng

from ..posterior.observations import EpidemicData
from ..simulate.generate_observations import simulate_observations
from .mle import DEFAULT_START, fit_mle

# Start logger
logger = logging.getLogger(__name__)


@dataclass
class BootstrapConfig:
    n_boot: int = 200
    level: float = 0.95
    seed: Optional[int] = None
    n_jobs: int = 1


def bootstrap_replicate(beta_hat, gamma_hat, N, I0, T, seed_seq, start=DEFAULT_START):
    """One replicate: simulate a fresh series, then re-estimate."""
    rng = default_rng(seed_seq)
    sim = simulate_observations(beta_hat, gamma_hat, N, I0, T, rng=rng)
    data = EpidemicData(sim["new_cases"], sim["new_removals"], N=N, I0=I0)
    fit = fit_mle(data, start=start)
    return fit["beta"], fit["gamma"], fit["converged"]


def parametric_bootstrap(
    beta_hat,
    gamma_hat,
    N,
    I0,
    T,
    n_boot=200,
    seed=None,
    n_jobs=1,
    level=0.95,
    start=DEFAULT_START,
) -> dict:
    """Percentile bootstrap for (beta, gamma).

    Every replicate draws from its own child SeedSequence, so results do not
    depend on n_jobs.

    result : dict with keys:
        - "samples"       : np.ndarray shape (n_boot, 2), replicate (beta_i, gamma_i)
        - "converged"     : np.ndarray shape (n_boot,), optimiser flag per replicate
        - "mean", "median": np.ndarray shape (2,)
        - "lower", "upper": np.ndarray shape (2,), percentile interval bounds
        - "level"         : float
        - "n_unconverged" : int
    """
    if n_boot < 1:
        raise ValueError("n_boot must be >= 1")
    if not 0.0 < level < 1.0:
        raise ValueError("level must lie in (0, 1)")
    if N <= 0 or T < 1:
        raise ValueError("N must be > 0 and T >= 1")

    children = SeedSequence(seed).spawn(int(n_boot))
    logger.info("Bootstrapping %d replicates (n_jobs=%s)", n_boot, n_jobs)

    if n_jobs == 1:
        out = [bootstrap_replicate(beta_hat, gamma_hat, N, I0, T, ss, start) for ss in children]
    else:
        out = Parallel(n_jobs=n_jobs)(
            delayed(bootstrap_replicate)(beta_hat, gamma_hat, N, I0, T, ss, start) for ss in children
        )

    samples = np.array([[b, g] for b, g, _ in out], dtype=float)
    converged = np.array([c for _, _, c in out], dtype=bool)
    n_unconverged = int((~converged).sum())
    if n_unconverged:
        logger.warning("%d of %d bootstrap fits did not converge", n_unconverged, n_boot)

    # sort each parameter's replicates before reading off the percentiles
    ordered = np.sort(samples, axis=0)
    tail = 0.5 * (1.0 - level)
    lower, median, upper = np.quantile(ordered, [tail, 0.5, 1.0 - tail], axis=0)

    return {
        "samples": samples,
        "converged": converged,
        "mean": samples.mean(axis=0),
        "median": median,
        "lower": lower,
        "upper": upper,
        "level": float(level),
        "n_unconverged": n_unconverged,
    }


def run_bootstrap(data: EpidemicData, cfg: BootstrapConfig) -> dict:
    """Fit the observed data by MLE, then bootstrap around the fit."""
    fit = fit_mle(data)
    boot = parametric_bootstrap(
        fit["beta"], fit["gamma"], data.N, data.I0, data.T,
        n_boot=cfg.n_boot, seed=cfg.seed, n_jobs=cfg.n_jobs, level=cfg.level,
    )
    boot["fit"] = fit
    return boot


def bootstrap_summary(boot: dict) -> pd.DataFrame:
    """Table of bootstrap mean / median / percentile interval per parameter."""
    return pd.DataFrame(
        {
            "mean": boot["mean"],
            "median": boot["median"],
            "lower": boot["lower"],
            "upper": boot["upper"],
        },
        index=pd.Index(["beta", "gamma"], name="parameter"),
    )
