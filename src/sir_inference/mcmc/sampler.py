# src/sir_inference/mcmc/sampler.py
"""
Metropolis-Hastings samplers for (beta, gamma).

Two update disciplines:
- block:       both parameters proposed jointly, one accept/reject per iteration
- single-site: beta then gamma (given the new beta), one accept/reject each

A chain goes initializing -> sampling -> terminal. Row 0 of the history is the
supplied initial state; the acceptance rate is accepted / (n - 1).
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import logging
import math

import numpy as np
import pandas as pd
from numpy.random import default_rng

from ..posterior.likelihood import PRIOR_HIGH, PRIOR_LOW, in_prior_support, log_posterior
from ..posterior.observations import EpidemicData
from .proposals import FixedCenterNormal, PriorUniform, RandomWalkNormal, log_proposal_ratio

# Start logger
logger = logging.getLogger(__name__)

PARAM_NAMES = ("beta", "gamma")
METHODS = ("block", "single-site", "independence", "tuned")


@dataclass
class ChainResult:
    """Chain history of one sampler run.

    samples       : (n, d) array, one row per iteration
    accepted      : (n, n_blocks) bool array, row 0 is always False
    log_posterior : (n,) log posterior at each recorded state
    status        : "complete" or "cancelled"
    """
    samples: np.ndarray
    accepted: np.ndarray
    log_posterior: np.ndarray
    names: Tuple[str, ...] = PARAM_NAMES
    status: str = "complete"
    proposal: str = ""

    @property
    def n_iter(self) -> int:
        return int(self.samples.shape[0])

    @property
    def acceptance_rates(self) -> np.ndarray:
        """Per update block acceptance rate, accepted / (n - 1)."""
        if self.n_iter < 2:
            return np.zeros(self.accepted.shape[1])
        return self.accepted[1:].mean(axis=0)

    @property
    def acceptance_rate(self) -> float:
        return float(np.mean(self.acceptance_rates))

    def column(self, name: str) -> np.ndarray:
        return self.samples[:, self.names.index(name)]

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.samples, columns=list(self.names))
        df.insert(0, "iteration", np.arange(1, self.n_iter + 1))
        df["log_posterior"] = self.log_posterior
        for j in range(self.accepted.shape[1]):
            key = "accepted" if self.accepted.shape[1] == 1 else f"accepted_{self.names[j]}"
            df[key] = self.accepted[:, j]
        return df


@dataclass
class SamplerConfig:
    method: str = "block"
    n_iter: int = 10000
    initial: Tuple[float, float] = (0.1, 0.1)
    scale: Tuple[float, float] = (0.02, 0.02)
    center: Optional[Tuple[float, float]] = None
    burn_in: int = 1000
    seed: Optional[int] = None


def acceptance_probability(log_post_current, log_post_proposed, log_q_forward=0.0, log_q_reverse=0.0):
    """MH acceptance probability on the log scale.

    min(1, [pi(y) q(x|y)] / [pi(x) q(y|x)]) with
        log_q_forward = log q(y | x), log_q_reverse = log q(x | y).

    pi(y) == 0 (including the 0/0 case) gives 0; pi(x) == 0 < pi(y) gives 1.
    """
    if log_post_proposed is None or math.isnan(log_post_proposed) or log_post_proposed == -np.inf:
        return 0.0
    if log_post_current == -np.inf:
        return 1.0
    log_alpha = (log_post_proposed - log_post_current) + (log_q_reverse - log_q_forward)
    if math.isnan(log_alpha):
        return 0.0
    if log_alpha >= 0.0:
        return 1.0
    return math.exp(log_alpha)


def check_run_setup(initial, n_iter, dim=2):
    initial = np.asarray(initial, dtype=float)
    if initial.shape != (dim,):
        raise ValueError(f"Initial state must have {dim} components, got shape {initial.shape}")
    if int(n_iter) < 2:
        raise ValueError("Chain length n_iter must be >= 2")
    if not np.all(np.isfinite(initial)):
        raise ValueError("Initial state must be finite")
    if not in_prior_support(initial[0], initial[1]):
        raise ValueError("Initial (beta, gamma) must lie inside the prior support [0, 0.5]^2")
    return initial


def _is_cancelled(cancel_event) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def _finish(samples, accepted, log_post, n_done, proposal, names=PARAM_NAMES):
    status = "complete" if n_done == samples.shape[0] else "cancelled"
    result = ChainResult(
        samples=samples[:n_done],
        accepted=accepted[:n_done],
        log_posterior=log_post[:n_done],
        names=tuple(names),
        status=status,
        proposal=proposal,
    )
    logger.debug("sampling -> terminal (%s after %d iterations)", status, n_done)
    logger.info(
        "Chain %s: %d iterations, acceptance %s",
        status, n_done, np.array2string(result.acceptance_rates, precision=3),
    )
    return result


def run_block_mh(data: EpidemicData, proposal, initial, n_iter, seed=None, rng=None, cancel_event=None) -> ChainResult:
    """Block-update Metropolis-Hastings on (beta, gamma).

    `proposal` is any kernel from .proposals operating on the 2-vector.
    `cancel_event` is anything with is_set(), checked between iterations.
    """
    state = check_run_setup(initial, n_iter)
    n_iter = int(n_iter)
    if rng is None:
        rng = default_rng(seed)

    logger.debug("initializing: %r from %s", proposal, state)
    samples = np.empty((n_iter, 2))
    accepted = np.zeros((n_iter, 1), dtype=bool)
    log_post = np.empty(n_iter)

    current_lp = log_posterior(state, data)
    samples[0], log_post[0] = state, current_lp
    n_done = 1

    logger.debug("initializing -> sampling")
    for t in range(1, n_iter):
        if _is_cancelled(cancel_event):
            break

        proposed = proposal.propose(state, rng)
        proposed_lp = log_posterior(proposed, data)
        log_ratio_q = log_proposal_ratio(proposal, state, proposed)
        alpha = acceptance_probability(current_lp, proposed_lp, 0.0, log_ratio_q)

        if rng.random() < alpha:
            state, current_lp = proposed, proposed_lp
            accepted[t, 0] = True

        samples[t], log_post[t] = state, current_lp
        n_done = t + 1

    return _finish(samples, accepted, log_post, n_done, repr(proposal))


def run_single_site_mh(data: EpidemicData, proposals: Sequence, initial, n_iter, seed=None, rng=None, cancel_event=None) -> ChainResult:
    """Componentwise Metropolis-Hastings: update beta, then gamma given the new beta.

    `proposals` holds one scalar kernel per parameter.
    """
    state = check_run_setup(initial, n_iter)
    n_iter = int(n_iter)
    if len(proposals) != 2:
        raise ValueError("Single-site sampling needs one proposal per parameter (beta, gamma)")
    if rng is None:
        rng = default_rng(seed)

    logger.debug("initializing: %r from %s", list(proposals), state)
    samples = np.empty((n_iter, 2))
    accepted = np.zeros((n_iter, 2), dtype=bool)
    log_post = np.empty(n_iter)

    current_lp = log_posterior(state, data)
    samples[0], log_post[0] = state, current_lp
    n_done = 1

    logger.debug("initializing -> sampling")
    for t in range(1, n_iter):
        if _is_cancelled(cancel_event):
            break

        for j, kernel in enumerate(proposals):
            component = state[j:j + 1]
            proposed_component = kernel.propose(component, rng)
            proposed = state.copy()
            proposed[j] = proposed_component[0]

            proposed_lp = log_posterior(proposed, data)
            log_ratio_q = log_proposal_ratio(kernel, component, proposed_component)
            alpha = acceptance_probability(current_lp, proposed_lp, 0.0, log_ratio_q)

            if rng.random() < alpha:
                state, current_lp = proposed, proposed_lp
                accepted[t, j] = True

        samples[t], log_post[t] = state, current_lp
        n_done = t + 1

    return _finish(samples, accepted, log_post, n_done, repr(list(proposals)))


def build_proposal(cfg: SamplerConfig):
    """Kernel(s) for a SamplerConfig; a list of two kernels for single-site."""
    if cfg.method == "block":
        return RandomWalkNormal(cfg.scale)
    if cfg.method == "single-site":
        return [RandomWalkNormal(cfg.scale[0]), RandomWalkNormal(cfg.scale[1])]
    if cfg.method == "independence":
        return PriorUniform(PRIOR_LOW, PRIOR_HIGH)
    if cfg.method == "tuned":
        if cfg.center is None:
            raise ValueError("The tuned independence sampler needs a proposal center")
        return FixedCenterNormal(cfg.center, cfg.scale)
    raise ValueError(f"Unknown sampling method: {cfg.method} (choose from {', '.join(METHODS)})")


def run_sampler(data: EpidemicData, cfg: SamplerConfig, cancel_event=None) -> ChainResult:
    """Run the sampler described by cfg on data."""
    proposal = build_proposal(cfg)
    logger.info("Running %s sampler for %d iterations (seed=%s)", cfg.method, cfg.n_iter, cfg.seed)
    if cfg.method == "single-site":
        return run_single_site_mh(data, proposal, cfg.initial, cfg.n_iter, seed=cfg.seed, cancel_event=cancel_event)
    return run_block_mh(data, proposal, cfg.initial, cfg.n_iter, seed=cfg.seed, cancel_event=cancel_event)
