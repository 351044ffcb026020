# src/sir_inference/posterior/observations.py
"""
Observation series plus population constants, passed explicitly into every
likelihood call.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

import numpy as np

from ..simulate.reconstruct_states import reconstruct_trajectory, splice_missing


@dataclass(frozen=True)
class EpidemicData:
    """Daily new cases / new removals for a closed population of size N.

    I0 is the number infected at the start of day 0.
    """
    new_cases: np.ndarray
    new_removals: np.ndarray
    N: int
    I0: int

    def __post_init__(self):
        cases = np.array(self.new_cases, dtype=np.int64, copy=True)
        removals = np.array(self.new_removals, dtype=np.int64, copy=True)

        if int(self.N) <= 0:
            raise ValueError("Population size N must be > 0")
        if cases.ndim != 1 or removals.ndim != 1:
            raise ValueError("new_cases and new_removals must be 1D")
        if cases.size == 0:
            raise ValueError("Number of observed days T must be > 0")
        if cases.size != removals.size:
            raise ValueError("new_cases and new_removals must have the same length")
        if int(self.I0) < 0 or int(self.I0) > int(self.N):
            raise ValueError("I0 must lie in [0, N]")
        if np.any(cases < 0) or np.any(removals < 0):
            raise ValueError("Observed counts must be non-negative")

        cases.setflags(write=False)
        removals.setflags(write=False)

        # frozen dataclass: bypass __setattr__ for the normalised fields
        object.__setattr__(self, "new_cases", cases)
        object.__setattr__(self, "new_removals", removals)
        object.__setattr__(self, "N", int(self.N))
        object.__setattr__(self, "I0", int(self.I0))

    @property
    def T(self) -> int:
        return int(self.new_cases.size)

    def trajectory(self):
        return reconstruct_trajectory(self.N, self.I0, self.new_cases, self.new_removals)

    def with_values(
        self,
        cases_fill: Optional[Dict[int, int]] = None,
        removals_fill: Optional[Dict[int, int]] = None,
    ):
        """Return a new EpidemicData with the given days overwritten.

        Filled values are not validated here: a negative value would fail
        construction, so callers that may propose negatives should splice
        the raw arrays with splice_missing instead.
        """
        cases = splice_missing(self.new_cases, cases_fill or {})
        removals = splice_missing(self.new_removals, removals_fill or {})
        return replace(self, new_cases=cases, new_removals=removals)
