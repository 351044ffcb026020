# ###
# **2. generate_observations.py**

# Purpose: forward-simulate a chain-binomial SIR epidemic and return the daily new cases
# and new removals, i.e. a synthetic observation series. Used for test data and by the
# parametric bootstrap.

# Functions:
# - simulate_observations()

#   - Input: beta, gamma, population N, initial infected I0, number of days T, rng.
#   - Output: dict with new_cases, new_removals (length T) and S, I, R (length T+1).

# - write_observations_csv()

#   - Input: the dict above and an output path.
#   - Output: path of a csv with headers day,new_cases,new_removals.
# ###

import csv
import tempfile
from pathlib import Path

import numpy as np
from numpy.random import default_rng


def simulate_observations(beta, gamma, N, I0, T, rng=None):
    """Simulate T days of the stochastic SIR model

    Each day
        new_cases[t]    ~ Binomial(S[t], 1 - exp(-beta * I[t] / N))
        new_removals[t] ~ Binomial(I[t], 1 - exp(-gamma))
    with both draws made from the state at the start of day t.
    """
    if N <= 0:
        raise ValueError("Population size N must be > 0")
    if T < 1:
        raise ValueError("Number of days T must be >= 1")
    if I0 < 0 or I0 > N:
        raise ValueError("I0 must lie in [0, N]")
    if beta < 0 or gamma < 0:
        raise ValueError("beta and gamma must be >= 0")

    if rng is None:
        rng = default_rng()

    S = np.zeros(T + 1, dtype=np.int64)
    I = np.zeros(T + 1, dtype=np.int64)
    R = np.zeros(T + 1, dtype=np.int64)
    new_cases = np.zeros(T, dtype=np.int64)
    new_removals = np.zeros(T, dtype=np.int64)

    S[0], I[0], R[0] = N - I0, I0, 0
    p_remove = -np.expm1(-gamma)

    for t in range(T):
        p_infect = -np.expm1(-beta * I[t] / N)
        new_cases[t] = rng.binomial(S[t], p_infect)
        new_removals[t] = rng.binomial(I[t], p_remove)

        S[t + 1] = S[t] - new_cases[t]
        I[t + 1] = I[t] + new_cases[t] - new_removals[t]
        R[t + 1] = R[t] + new_removals[t]

    return {
        "new_cases": new_cases,
        "new_removals": new_removals,
        "S": S,
        "I": I,
        "R": R,
        "beta": float(beta),
        "gamma": float(gamma),
    }


def default_csv_path(use_tempfile=True):
    """Define the filepath of csv"""
    if use_tempfile:
        tf = tempfile.NamedTemporaryFile(prefix="simulated_sir_", suffix=".csv")
        p = Path(tf.name)
        tf.close()
        return p
    return Path("simulated_sir.csv")


def write_observations_csv(result, out_path=None, use_tempfile=True):
    """Write a simulated series to csv, one row per day"""
    if out_path is None:
        csv_path = default_csv_path(use_tempfile=use_tempfile)
    else:
        csv_path = Path(out_path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    with csv_path.open("w", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(["day", "new_cases", "new_removals"])
        for day, (c, r) in enumerate(zip(result["new_cases"], result["new_removals"]), start=1):
            writer.writerow([day, int(c), int(r)])

    return csv_path
