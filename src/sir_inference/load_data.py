# src/sir_inference/load_data.py

from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from .mcmc.augmented import MissingValue
from .posterior.observations import EpidemicData


def load_observations(
    path: str,
    N: int,
    I0: int,
    cases_col: str = "new_cases",
    removals_col: str = "new_removals",
    n_days: Optional[int] = None,
) -> Tuple[EpidemicData, List[MissingValue]]:
    """
    Read one row per day from a csv.

    Blank cells are treated as unobserved: they come back as MissingValue
    entries and hold a placeholder 0 in the returned EpidemicData.

    Parameters
    ----------
    path :
        CSV file with at least the two count columns.
    N, I0 :
        Population size and initial number infected.
    n_days :
        Use only the first n_days rows (default: all).
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Observation CSV not found: {path}")

    df = pd.read_csv(csv_path)
    missing_cols = [c for c in (cases_col, removals_col) if c not in df.columns]
    if missing_cols:
        raise ValueError(f"CSV missing required columns: {missing_cols}")

    if n_days is not None:
        if n_days < 1 or n_days > len(df):
            raise ValueError(f"n_days must lie in [1, {len(df)}]")
        df = df.iloc[:n_days]

    cases, missing = _parse_counts(df[cases_col], "cases")
    removals, missing_removals = _parse_counts(df[removals_col], "removals")

    data = EpidemicData(new_cases=cases, new_removals=removals, N=N, I0=I0)
    return data, missing + missing_removals


def _parse_counts(column: pd.Series, series: str) -> Tuple[np.ndarray, List[MissingValue]]:
    """Integer counts with 0 at blank cells, plus the blank cells as MissingValues."""
    blank = column.isna().to_numpy()
    values = pd.to_numeric(column, errors="coerce").to_numpy(dtype=float)

    bad = np.flatnonzero(~blank & np.isnan(values))
    if bad.size:
        raise ValueError(f"Non-numeric {series} counts on days {bad.tolist()}: {column.iloc[bad].tolist()}")
    filled = np.where(blank, 0.0, values)
    fractional = np.flatnonzero(~np.isfinite(filled) | (filled != np.round(filled)))
    if fractional.size:
        raise ValueError(f"Non-integer {series} counts on days {fractional.tolist()}: {filled[fractional].tolist()}")

    missing = [MissingValue(series, int(d)) for d in np.flatnonzero(blank)]
    return filled.astype(np.int64), missing
