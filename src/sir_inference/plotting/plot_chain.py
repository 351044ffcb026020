# src/sir_inference/plotting/plot_chain.py
from pathlib import Path
from typing import Dict, Optional, Tuple

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from scipy.stats import gaussian_kde

from ..mcmc.sampler import ChainResult

# ---------- helpers ----------

def _prepare(save_path: str) -> Path:
    out = Path(save_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    return out

# ---------- chain plots ----------

def plot_traces(
    result: ChainResult,
    save_path: str = "figs/traces.png",
    burn_in: int = 0,
    true_values: Optional[Dict[str, float]] = None,
    figsize: Tuple[int, int] = (10, 6),
):
    """One trace panel per chain column, burn-in shaded."""
    out = _prepare(save_path)
    d = len(result.names)
    fig, axes = plt.subplots(d, 1, sharex=True, figsize=(figsize[0], max(figsize[1], 2.2 * d)))
    axes = np.atleast_1d(axes)
    it = np.arange(1, result.n_iter + 1)

    for j, (ax, name) in enumerate(zip(axes, result.names)):
        ax.plot(it, result.samples[:, j], lw=0.6, color="tab:blue")
        if burn_in > 0:
            ax.axvspan(1, burn_in, color="grey", alpha=0.2, lw=0)
        if true_values and name in true_values:
            ax.axhline(true_values[name], color="red", ls="--", lw=1)
        ax.set_ylabel(name)

    axes[0].set_title(f"Acceptance rate {result.acceptance_rate:.2f} ({result.status})")
    axes[-1].set_xlabel("Iteration")
    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)
    return out


def plot_marginals(
    result: ChainResult,
    save_path: str = "figs/marginals.png",
    burn_in: int = 0,
    bins: int = 40,
    true_values: Optional[Dict[str, float]] = None,
    figsize: Tuple[int, int] = (10, 4),
):
    """Histogram plus KDE of each column after burn-in."""
    out = _prepare(save_path)
    kept = result.samples[burn_in:]
    d = len(result.names)
    fig, axes = plt.subplots(1, d, figsize=(max(figsize[0], 4 * d), figsize[1]))
    axes = np.atleast_1d(axes)

    for j, (ax, name) in enumerate(zip(axes, result.names)):
        col = kept[:, j]
        ax.hist(col, bins=bins, density=True, color="lightsteelblue", edgecolor="white")
        if np.ptp(col) > 0:
            grid = np.linspace(col.min(), col.max(), 200)
            ax.plot(grid, gaussian_kde(col)(grid), color="navy", lw=1.5)
        ax.axvline(col.mean(), color="k", lw=1)
        if true_values and name in true_values:
            ax.axvline(true_values[name], color="red", ls="--", lw=1)
        ax.set_xlabel(name)
    axes[0].set_ylabel("Posterior density")

    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)
    return out


def plot_joint(
    result: ChainResult,
    density: Optional[np.ndarray] = None,
    save_path: str = "figs/joint.png",
    burn_in: int = 0,
    figsize: Tuple[int, int] = (6, 5),
):
    """Scatter of (beta, gamma) coloured by the unnormalised posterior.

    `density` defaults to exp(log_posterior - max) along the chain.
    """
    out = _prepare(save_path)
    kept = result.samples[burn_in:, :2]
    if density is None:
        lp = result.log_posterior[burn_in:]
        finite = np.isfinite(lp)
        top = lp[finite].max() if finite.any() else 0.0
        density = np.where(finite, np.exp(lp - top), 0.0)
    else:
        density = np.asarray(density)[burn_in:]

    fig, ax = plt.subplots(figsize=figsize)
    sc = ax.scatter(kept[:, 0], kept[:, 1], c=density, s=4, cmap="viridis", alpha=0.6)
    fig.colorbar(sc, ax=ax, label="Relative posterior density")
    ax.set_xlabel(result.names[0])
    ax.set_ylabel(result.names[1])
    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)
    return out


def plot_bootstrap(boot: dict, save_path: str = "figs/bootstrap.png", bins: int = 30, figsize: Tuple[int, int] = (10, 4)):
    """Histograms of bootstrap replicates with the percentile interval marked."""
    out = _prepare(save_path)
    fig, axes = plt.subplots(1, 2, figsize=figsize)
    for j, (ax, name) in enumerate(zip(axes, ("beta", "gamma"))):
        ax.hist(boot["samples"][:, j], bins=bins, color="wheat", edgecolor="white")
        ax.axvline(boot["mean"][j], color="k", lw=1)
        ax.axvline(boot["lower"][j], color="firebrick", ls="--", lw=1)
        ax.axvline(boot["upper"][j], color="firebrick", ls="--", lw=1)
        ax.set_xlabel(name)
    axes[0].set_ylabel("Replicates")
    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)
    return out
