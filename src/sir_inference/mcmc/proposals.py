# src/sir_inference/mcmc/proposals.py
"""
Proposal kernels for the Metropolis-Hastings samplers.

Every kernel has
    propose(current, rng) -> proposed value (same shape as current)
    log_density(proposed, current) -> log q(proposed | current)
    symmetric -> True when q(y | x) == q(x | y), so the ratio can be skipped
"""

import numpy as np
from scipy.stats import norm


def _as_scale(scale):
    scale = np.asarray(scale, dtype=float)
    if np.any(~np.isfinite(scale)) or np.any(scale <= 0):
        raise ValueError("Proposal scales must be finite and > 0")
    return scale


class RandomWalkNormal:
    """y = x + N(0, scale), componentwise."""

    symmetric = True

    def __init__(self, scale):
        self.scale = _as_scale(scale)

    def propose(self, current, rng):
        current = np.asarray(current, dtype=float)
        return current + rng.normal(0.0, self.scale, size=current.shape)

    def log_density(self, proposed, current):
        return float(np.sum(norm.logpdf(proposed, loc=current, scale=self.scale)))

    def __repr__(self):
        return f"RandomWalkNormal(scale={self.scale.tolist()})"


class PriorUniform:
    """Independence sampler drawing from the Uniform(low, high) prior.

    The density is the same constant wherever the posterior is positive, so
    it cancels in the acceptance ratio.
    """

    symmetric = False

    def __init__(self, low=0.0, high=0.5):
        if not high > low:
            raise ValueError("PriorUniform needs high > low")
        self.low = float(low)
        self.high = float(high)

    def propose(self, current, rng):
        current = np.asarray(current, dtype=float)
        return rng.uniform(self.low, self.high, size=current.shape)

    def log_density(self, proposed, current):
        proposed = np.asarray(proposed, dtype=float)
        if np.any(proposed < self.low) or np.any(proposed > self.high):
            return -np.inf
        return -proposed.size * np.log(self.high - self.low)

    def __repr__(self):
        return f"PriorUniform(low={self.low}, high={self.high})"


class FixedCenterNormal:
    """Tuned independence sampler: y ~ N(center, scale) whatever the current x."""

    symmetric = False

    def __init__(self, center, scale):
        self.center = np.asarray(center, dtype=float)
        self.scale = _as_scale(scale)

    def propose(self, current, rng):
        current = np.asarray(current, dtype=float)
        return self.center + rng.normal(0.0, self.scale, size=current.shape)

    def log_density(self, proposed, current):
        return float(np.sum(norm.logpdf(proposed, loc=self.center, scale=self.scale)))

    def __repr__(self):
        return f"FixedCenterNormal(center={self.center.tolist()}, scale={self.scale.tolist()})"


class RoundedRandomWalk:
    """Integer random walk: y = x + round(N(0, scale)).

    The increment distribution is symmetric about 0, hence so is the kernel.
    """

    symmetric = True

    def __init__(self, scale):
        self.scale = _as_scale(scale)

    def propose(self, current, rng):
        current = np.asarray(current, dtype=np.int64)
        step = np.rint(rng.normal(0.0, self.scale, size=current.shape)).astype(np.int64)
        return current + step

    def log_density(self, proposed, current):
        step = np.asarray(proposed, dtype=float) - np.asarray(current, dtype=float)
        # P(round(Z) == k) for Z ~ N(0, scale)
        mass = norm.cdf(step + 0.5, scale=self.scale) - norm.cdf(step - 0.5, scale=self.scale)
        with np.errstate(divide="ignore"):
            return float(np.sum(np.log(mass)))

    def __repr__(self):
        return f"RoundedRandomWalk(scale={self.scale.tolist()})"


def log_proposal_ratio(kernel, current, proposed):
    """log q(current | proposed) - log q(proposed | current); 0 for symmetric kernels."""
    if kernel.symmetric:
        return 0.0
    return kernel.log_density(current, proposed) - kernel.log_density(proposed, current)
