# src/sir_inference/mcmc/diagnostics.py
"""
Posterior summaries and efficiency diagnostics for ChainResult objects.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from ..posterior.likelihood import log_posterior
from ..posterior.observations import EpidemicData
from .augmented import MissingValue, augmented_log_posterior
from .sampler import ChainResult

QUANTILES = (0.025, 0.5, 0.975)


def autocorrelation(x, max_lag: Optional[int] = None) -> np.ndarray:
    """Sample autocorrelation for lags 0..max_lag (FFT based)."""
    x = np.asarray(x, dtype=float)
    n = x.size
    if max_lag is None:
        max_lag = n - 1
    max_lag = min(int(max_lag), n - 1)

    centred = x - x.mean()
    var = float(np.dot(centred, centred))
    if n < 2 or var == 0.0:
        # constant chain: no information on mixing
        acf = np.zeros(max_lag + 1)
        acf[0] = 1.0
        return acf

    size = 1 << int(np.ceil(np.log2(2 * n)))
    f = np.fft.rfft(centred, n=size)
    acov = np.fft.irfft(f * np.conjugate(f), n=size)[: max_lag + 1]
    return acov / var


def effective_sample_size(x) -> float:
    """ESS = n / (1 + 2 * sum of autocorrelations).

    The sum runs over pairs of lags while their sum stays positive
    (Geyer's initial positive sequence).
    """
    x = np.asarray(x, dtype=float)
    n = x.size
    if n < 4:
        return float(n)
    if np.var(x) == 0.0:
        return 1.0
    acf = autocorrelation(x)

    tau = -1.0
    for k in range(0, n - 1, 2):
        pair = acf[k] + acf[k + 1]
        if pair <= 0.0:
            break
        tau += 2.0 * pair
    tau = max(tau, 1.0 / n)
    return float(min(n, n / tau))


def posterior_summary(result: ChainResult, burn_in: int = 0, quantiles: Sequence[float] = QUANTILES) -> pd.DataFrame:
    """Mean, sd, quantiles and ESS of every chain column after burn-in."""
    if burn_in < 0 or burn_in >= result.n_iter:
        raise ValueError(f"burn_in must lie in [0, {result.n_iter})")
    kept = result.samples[burn_in:]

    rows = []
    for j, name in enumerate(result.names):
        col = kept[:, j]
        row = {"parameter": name, "mean": float(col.mean()), "sd": float(col.std(ddof=1)) if col.size > 1 else 0.0}
        for q in quantiles:
            row[f"q{q * 100:g}"] = float(np.quantile(col, q))
        row["ess"] = effective_sample_size(col)
        rows.append(row)

    summary = pd.DataFrame(rows).set_index("parameter")
    summary.attrs["acceptance_rate"] = result.acceptance_rate
    summary.attrs["burn_in"] = burn_in
    return summary


def credible_interval(samples, level: float = 0.95):
    """Equal-tailed credible interval."""
    tail = 0.5 * (1.0 - level)
    lo, hi = np.quantile(np.asarray(samples, dtype=float), [tail, 1.0 - tail])
    return float(lo), float(hi)


def log_posterior_at_samples(samples, data: EpidemicData, missing: Optional[Sequence[MissingValue]] = None) -> np.ndarray:
    """Log posterior at each recorded row.

    Rows of an augmented chain carry the latent counts after (beta, gamma);
    pass the chain's `missing` list so they are spliced into the series.
    """
    samples = np.atleast_2d(np.asarray(samples, dtype=float))
    if missing is None:
        if samples.shape[1] != 2:
            raise ValueError("Samples with latent columns need the matching missing values")
        return np.array([log_posterior(row, data) for row in samples])
    if samples.shape[1] != 2 + len(missing):
        raise ValueError(f"Expected {2 + len(missing)} columns, got {samples.shape[1]}")
    return np.array([augmented_log_posterior(row[:2], row[2:], data, missing) for row in samples])


def posterior_density_at_samples(samples, data: EpidemicData, missing: Optional[Sequence[MissingValue]] = None) -> np.ndarray:
    """Unnormalised posterior density at each recorded row; 0 where the log posterior is -inf."""
    lp = log_posterior_at_samples(samples, data, missing)
    out = np.zeros_like(lp)
    finite = np.isfinite(lp)
    out[finite] = np.exp(lp[finite])
    return out

