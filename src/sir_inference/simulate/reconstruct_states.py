# ###
# **1. reconstruct_states.py**

# Purpose: rebuild the susceptible / infected / removed counts S_t, I_t, R_t for t=0...T
# from the daily new-case and new-removal counts of a closed population of size N.

# Functions:
# - reconstruct_trajectory()

#   - Input: population size N, initial infected I0, new cases and new removals (length T).
#   - Output: dict with S, I, R (length T+1) and a `feasible` flag.

# - splice_missing()

#   - Input: a base series and a {day: value} mapping.
#   - Output: a new integer series with the values written at those days.
# ###

from typing import Mapping, Sequence

import numpy as np


def reconstruct_trajectory(N, I0, new_cases, new_removals):
    """Rebuild S, I, R from daily counts

    S[0] = N - I0, I[0] = I0, R[0] = 0 and for each day t
        S[t+1] = S[t] - cases[t]
        I[t+1] = I[t] + cases[t] - removals[t]
        R[t+1] = R[t] + removals[t]

    Infeasible input (negative counts, S or I going negative) does not raise;
    it is reported through result["feasible"] so the caller can give it zero density.

    result : dict with keys:
        - "S", "I", "R" : np.ndarray shape (T+1,), integer counts
        - "feasible"    : bool
    """
    cases = np.asarray(new_cases, dtype=np.int64)
    removals = np.asarray(new_removals, dtype=np.int64)

    if cases.shape != removals.shape or cases.ndim != 1:
        raise ValueError("new_cases and new_removals must be 1D sequences of equal length")

    # Cumulative counts with a leading zero for t=0
    cum_cases = np.concatenate(([0], np.cumsum(cases)))
    cum_removals = np.concatenate(([0], np.cumsum(removals)))

    S = (int(N) - int(I0)) - cum_cases
    I = int(I0) + cum_cases - cum_removals
    R = cum_removals

    feasible = bool(
        np.all(cases >= 0)
        and np.all(removals >= 0)
        and np.all(S >= 0)
        and np.all(I >= 0)
    )

    return {"S": S, "I": I, "R": R, "feasible": feasible}


def splice_missing(values: Sequence, fill: Mapping[int, int]) -> np.ndarray:
    """Return a copy of `values` with fill[day] written at each day.

    The base series is left untouched.
    """
    out = np.array(values, dtype=np.int64, copy=True)
    T = out.size
    for day, value in fill.items():
        day = int(day)
        if day < 0 or day >= T:
            raise ValueError(f"Missing-value day {day} out of range for series of length {T}")
        out[day] = int(value)
    return out
