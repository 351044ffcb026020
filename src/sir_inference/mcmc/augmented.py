# src/sir_inference/mcmc/augmented.py
"""
Data-augmented Metropolis-Hastings: (beta, gamma) and unobserved daily counts
are sampled jointly.

The latent counts are spliced into copies of the observed series before every
likelihood evaluation. They carry no prior beyond feasibility: any
non-negative integer giving a valid S/I trajectory is allowed (improper
uniform prior).
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple
import logging

import numpy as np
from numpy.random import default_rng

from ..posterior.likelihood import log_posterior_from_arrays
from ..posterior.observations import EpidemicData
from ..simulate.reconstruct_states import splice_missing
from .proposals import RandomWalkNormal, RoundedRandomWalk, log_proposal_ratio
from .sampler import PARAM_NAMES, ChainResult, _finish, _is_cancelled, acceptance_probability, check_run_setup

# Start logger
logger = logging.getLogger(__name__)

SERIES = ("cases", "removals")


@dataclass(frozen=True)
class MissingValue:
    """An unobserved count: which series and which day (0-based)."""
    series: str
    day: int

    @property
    def name(self) -> str:
        return f"missing_{self.series}_{self.day}"


def check_missing(missing: Sequence[MissingValue], T: int) -> List[MissingValue]:
    missing = list(missing)
    if not missing:
        raise ValueError("At least one missing value is required for data augmentation")
    seen = set()
    for m in missing:
        if m.series not in SERIES:
            raise ValueError(f"Unknown series '{m.series}' (expected one of {SERIES})")
        if m.day < 0 or m.day >= T:
            raise ValueError(f"Missing-value day {m.day} out of range for {T} observed days")
        key = (m.series, m.day)
        if key in seen:
            raise ValueError(f"Missing value {m.name} listed twice")
        seen.add(key)
    return missing


def split_fill(missing: Sequence[MissingValue], latent) -> Tuple[Dict[int, int], Dict[int, int]]:
    """Turn latent values into {day: value} maps for the cases and removals series."""
    cases_fill, removals_fill = {}, {}
    for m, value in zip(missing, latent):
        target = cases_fill if m.series == "cases" else removals_fill
        target[m.day] = int(value)
    return cases_fill, removals_fill


def augmented_log_posterior(params, latent, data: EpidemicData, missing: Sequence[MissingValue]) -> float:
    """Log posterior of (beta, gamma) with latent counts written into the series."""
    cases_fill, removals_fill = split_fill(missing, latent)
    cases = splice_missing(data.new_cases, cases_fill)
    removals = splice_missing(data.new_removals, removals_fill)
    return log_posterior_from_arrays(params, cases, removals, data.N, data.I0)


def run_augmented_mh(
    data: EpidemicData,
    missing: Sequence[MissingValue],
    initial,
    initial_latent,
    n_iter,
    param_scale=(0.02, 0.02),
    latent_scale=5.0,
    seed=None,
    rng=None,
    cancel_event=None,
) -> ChainResult:
    """Jointly sample (beta, gamma, latent_1..latent_k).

    `data` holds placeholder values at the missing days (they are overwritten).
    Each iteration proposes all quantities together: a normal random walk for
    (beta, gamma) and a rounded normal random walk for the latent counts; a
    single accept/reject decision covers everything.
    """
    params = check_run_setup(initial, n_iter)
    n_iter = int(n_iter)
    missing = check_missing(missing, data.T)

    latent = np.asarray(initial_latent, dtype=np.int64)
    if latent.shape != (len(missing),):
        raise ValueError(f"Expected {len(missing)} initial latent values, got shape {latent.shape}")
    if np.any(latent < 0):
        raise ValueError("Initial latent counts must be non-negative")

    if rng is None:
        rng = default_rng(seed)

    param_kernel = RandomWalkNormal(param_scale)
    latent_kernel = RoundedRandomWalk(latent_scale)
    names = PARAM_NAMES + tuple(m.name for m in missing)
    dim = len(names)

    logger.debug("initializing: %d latent values %s", len(missing), [m.name for m in missing])
    samples = np.empty((n_iter, dim))
    accepted = np.zeros((n_iter, 1), dtype=bool)
    log_post = np.empty(n_iter)

    current_lp = augmented_log_posterior(params, latent, data, missing)
    samples[0, :2], samples[0, 2:], log_post[0] = params, latent, current_lp
    n_done = 1

    logger.debug("initializing -> sampling")
    for t in range(1, n_iter):
        if _is_cancelled(cancel_event):
            break

        proposed_params = param_kernel.propose(params, rng)
        proposed_latent = latent_kernel.propose(latent, rng)
        proposed_lp = augmented_log_posterior(proposed_params, proposed_latent, data, missing)

        log_ratio_q = (
            log_proposal_ratio(param_kernel, params, proposed_params)
            + log_proposal_ratio(latent_kernel, latent, proposed_latent)
        )
        alpha = acceptance_probability(current_lp, proposed_lp, 0.0, log_ratio_q)

        if rng.random() < alpha:
            params, latent, current_lp = proposed_params, proposed_latent, proposed_lp
            accepted[t, 0] = True

        samples[t, :2], samples[t, 2:], log_post[t] = params, latent, current_lp
        n_done = t + 1

    return _finish(samples, accepted, log_post, n_done, f"{param_kernel!r} + {latent_kernel!r}", names=names)
