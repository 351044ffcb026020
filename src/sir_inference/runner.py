#!/usr/bin/env python3
# src/sir_inference/runner.py: command-line runner (simulate, sample, augment, mle, bootstrap)

import argparse
import logging
import re
import time
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from .estimate.bootstrap import BootstrapConfig, bootstrap_summary, run_bootstrap
from .estimate.mle import fit_mle
from .load_data import load_observations
from .mcmc.augmented import MissingValue, check_missing, run_augmented_mh
from .mcmc.diagnostics import credible_interval, posterior_density_at_samples, posterior_summary
from .mcmc.sampler import METHODS, SamplerConfig, run_sampler
from .plotting import plot_chain as plot
from .simulate.generate_observations import simulate_observations, write_observations_csv

# Start logger
logger = logging.getLogger(__name__)

# Parser for pairs like 0.25,0.15
def parse_pair(s: Optional[str]) -> Optional[Tuple[float, float]]:
    if not s:
        return None
    vals = [float(x) for x in re.split(r"[,\s;]+", s.strip()) if x]
    if len(vals) != 2:
        raise argparse.ArgumentTypeError(f"Expected two values, got '{s}'")
    return (vals[0], vals[1])

# Parser for missing values like cases:10,removals:4
def parse_missing(s: Optional[str]) -> List[MissingValue]:
    if not s:
        return []
    out = []
    for tok in [t for t in re.split(r"[,\s;]+", s.strip()) if t]:
        m = re.fullmatch(r"(\w+):(\d+)", tok)
        if m is None:
            raise argparse.ArgumentTypeError(f"Expected series:day, got '{tok}'")
        out.append(MissingValue(m.group(1), int(m.group(2))))
    return out


def add_data_args(p):
    p.add_argument("--csv", default="data/observations.csv", metavar="PATH",
                   help="Observation CSV with new_cases,new_removals columns (default: data/observations.csv)")
    p.add_argument("-N", "--population", dest="N", type=int, default=10000, metavar="N",
                   help="Population size (default: 10000)")
    p.add_argument("--I0", type=int, default=25, help="Initially infected (default: 25)")
    p.add_argument("--days", type=int, default=None, metavar="T",
                   help="Use only the first T days (default: all rows)")
    p.add_argument("--seed", type=int, default=42, metavar="SEED",
                   help="RNG seed for reproducibility (default: 42)")


def add_chain_args(p):
    p.add_argument("--n-iter", type=int, default=10000, help="Chain length (default: 10000)")
    p.add_argument("--burn-in", type=int, default=1000, help="Iterations dropped from summaries (default: 1000)")
    p.add_argument("--initial", type=str, default="0.1,0.1", help="Initial beta,gamma (default: 0.1,0.1)")
    p.add_argument("--scale", type=str, default="0.02,0.02", help="Proposal sd for beta,gamma (default: 0.02,0.02)")
    p.add_argument("--plot-dir", type=str, default=None, help="Write trace/marginal/joint plots here")


def load_or_exit(p, args):
    """Load the observation csv; bad files are reported as usage errors."""
    try:
        return load_observations(args.csv, args.N, args.I0, n_days=args.days)
    except (FileNotFoundError, ValueError) as e:
        p.error(str(e))


def make_plots(result, data, plot_dir, burn_in, prefix, missing=None):
    out = Path(plot_dir)
    plot.plot_traces(result, save_path=str(out / f"{prefix}_traces.png"), burn_in=burn_in)
    plot.plot_marginals(result, save_path=str(out / f"{prefix}_marginals.png"), burn_in=burn_in)
    density = posterior_density_at_samples(result.samples, data, missing)
    plot.plot_joint(result, density=density, save_path=str(out / f"{prefix}_joint.png"), burn_in=burn_in)
    logger.info("Plots written to %s", out)


def main(argv=None):
    p = argparse.ArgumentParser(description="Stochastic SIR inference runner")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ---------- simulate ----------
    sim_p = sub.add_parser("simulate", help="Simulate a synthetic observation series")
    sim_p.add_argument("-N", "--population", dest="N", type=int, default=10000, metavar="N")
    sim_p.add_argument("--I0", type=int, default=25)
    sim_p.add_argument("--days", type=int, default=20, metavar="T")
    sim_p.add_argument("--beta", type=float, default=0.25)
    sim_p.add_argument("--gamma", type=float, default=0.15)
    sim_p.add_argument("--seed", type=int, default=42)
    sim_p.add_argument("--out", default="data/observations.csv", metavar="PATH",
                       help="Output CSV path (default: data/observations.csv)")

    # ---------- sample ----------
    sample_p = sub.add_parser("sample", help="Metropolis-Hastings sampling of beta, gamma")
    add_data_args(sample_p)
    add_chain_args(sample_p)
    sample_p.add_argument("--method", choices=METHODS, default="block",
                          help="block, single-site, independence (prior proposal) or tuned (normal around --center)")
    sample_p.add_argument("--center", type=str, default=None,
                          help="Proposal center for --method tuned (default: the MLE)")
    sample_p.add_argument("--out", type=str, default=None, help="Write the chain to this CSV")

    # ---------- augment ----------
    aug_p = sub.add_parser("augment", help="Data-augmented sampling with missing observations")
    add_data_args(aug_p)
    add_chain_args(aug_p)
    aug_p.add_argument("--missing", type=str, default=None,
                       help="Extra missing values as series:day (0-based), e.g. cases:10,removals:4; blank CSV cells are always missing")
    aug_p.add_argument("--latent-scale", type=float, default=5.0, help="Proposal sd for latent counts (default: 5)")
    aug_p.add_argument("--out", type=str, default=None, help="Write the chain to this CSV")

    # ---------- mle ----------
    mle_p = sub.add_parser("mle", help="Nelder-Mead maximum likelihood estimate")
    add_data_args(mle_p)
    mle_p.add_argument("--start", type=str, default="0.1,0.1")

    # ---------- bootstrap ----------
    boot_p = sub.add_parser("bootstrap", help="Parametric bootstrap around the MLE")
    add_data_args(boot_p)
    boot_p.add_argument("--n-boot", type=int, default=200)
    boot_p.add_argument("--level", type=float, default=0.95)
    boot_p.add_argument("--n-jobs", type=int, default=1, help="joblib workers (-1 = all cores)")
    boot_p.add_argument("--plot-dir", type=str, default=None)

    args = p.parse_args(argv)
    t0 = time.perf_counter()

    if args.cmd in ("sample", "augment"):
        if args.n_iter < 2:
            p.error("--n-iter must be >= 2")
        if not 0 <= args.burn_in < args.n_iter:
            p.error(f"--burn-in must lie in [0, {args.n_iter}) for --n-iter {args.n_iter}")

    if args.cmd == "simulate":
        sim = simulate_observations(args.beta, args.gamma, args.N, args.I0, args.days,
                                    rng=np.random.default_rng(args.seed))
        write_observations_csv(sim, out_path=args.out)
        print("Simulation done ->", args.out)

    elif args.cmd == "sample":
        data, missing = load_or_exit(p, args)
        if missing:
            p.error(f"{len(missing)} blank cells in {args.csv}; use the augment command")
        center = parse_pair(args.center)
        if args.method == "tuned" and center is None:
            fit = fit_mle(data)
            center = (fit["beta"], fit["gamma"])
        cfg = SamplerConfig(
            method=args.method,
            n_iter=args.n_iter,
            initial=parse_pair(args.initial),
            scale=parse_pair(args.scale),
            center=center,
            burn_in=args.burn_in,
            seed=args.seed,
        )
        result = run_sampler(data, cfg)
        print(posterior_summary(result, burn_in=cfg.burn_in).to_string())
        print(f"Acceptance rate(s): {np.array2string(result.acceptance_rates, precision=3)}")
        if args.out:
            result.to_frame().to_csv(args.out, index=False)
            print("Chain ->", args.out)
        if args.plot_dir:
            make_plots(result, data, args.plot_dir, cfg.burn_in, args.method)

    elif args.cmd == "augment":
        data, missing = load_or_exit(p, args)
        try:
            missing += [m for m in parse_missing(args.missing) if m not in missing]
            if not missing:
                p.error("No missing values: leave CSV cells blank or pass --missing")
            missing = check_missing(missing, data.T)
        except (argparse.ArgumentTypeError, ValueError) as e:
            p.error(str(e))
        # start each latent count at the mean of its series' observed days
        observed = {"cases": data.new_cases, "removals": data.new_removals}
        hidden = {(m.series, m.day) for m in missing}
        initial_latent = []
        for m in missing:
            keep = [v for d, v in enumerate(observed[m.series]) if (m.series, d) not in hidden]
            initial_latent.append(int(round(float(np.mean(keep)))) if keep else 0)
        result = run_augmented_mh(
            data, missing,
            initial=parse_pair(args.initial),
            initial_latent=initial_latent,
            n_iter=args.n_iter,
            param_scale=parse_pair(args.scale),
            latent_scale=args.latent_scale,
            seed=args.seed,
        )
        print(posterior_summary(result, burn_in=args.burn_in).to_string())
        print(f"Acceptance rate: {result.acceptance_rate:.3f}")
        for m in missing:
            lo, hi = credible_interval(result.column(m.name)[args.burn_in:])
            print(f"{m.name}: 95% credible interval [{lo:g}, {hi:g}]")
        if args.out:
            result.to_frame().to_csv(args.out, index=False)
            print("Chain ->", args.out)
        if args.plot_dir:
            make_plots(result, data, args.plot_dir, args.burn_in, "augmented", missing=missing)

    elif args.cmd == "mle":
        data, missing = load_or_exit(p, args)
        if missing:
            p.error(f"{len(missing)} blank cells in {args.csv}; the MLE needs a complete series")
        fit = fit_mle(data, start=parse_pair(args.start))
        print(pd.Series(fit).to_string())

    elif args.cmd == "bootstrap":
        data, missing = load_or_exit(p, args)
        if missing:
            p.error(f"{len(missing)} blank cells in {args.csv}; the bootstrap needs a complete series")
        cfg = BootstrapConfig(n_boot=args.n_boot, level=args.level, seed=args.seed, n_jobs=args.n_jobs)
        boot = run_bootstrap(data, cfg)
        print(f"MLE: beta={boot['fit']['beta']:.4f} gamma={boot['fit']['gamma']:.4f}")
        print(bootstrap_summary(boot).to_string())
        if boot["n_unconverged"]:
            print(f"Warning: {boot['n_unconverged']} replicate fits did not converge")
        if args.plot_dir:
            plot.plot_bootstrap(boot, save_path=str(Path(args.plot_dir) / "bootstrap.png"))

    print(f"Done in {time.perf_counter() - t0:.2f}s")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
