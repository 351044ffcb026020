import csv

import numpy as np
import pytest

from sir_inference.simulate.generate_observations import simulate_observations, write_observations_csv


def test_shapes_and_seed_reproducibility():
    a = simulate_observations(0.25, 0.15, N=10000, I0=25, T=20, rng=np.random.default_rng(1))
    b = simulate_observations(0.25, 0.15, N=10000, I0=25, T=20, rng=np.random.default_rng(1))

    assert a["new_cases"].shape == (20,)
    assert a["new_removals"].shape == (20,)
    assert a["S"].shape == (21,)
    assert np.array_equal(a["new_cases"], b["new_cases"])
    assert np.array_equal(a["new_removals"], b["new_removals"])


def test_zero_rates_give_no_events():
    """
    beta=0: nobody is infected; gamma=0: nobody is removed.
    """
    sim = simulate_observations(0.0, 0.0, N=100, I0=5, T=10, rng=np.random.default_rng(3))
    assert np.all(sim["new_cases"] == 0)
    assert np.all(sim["new_removals"] == 0)
    assert np.all(sim["I"] == 5)


def test_invalid_inputs_raise():
    with pytest.raises(ValueError):
        simulate_observations(0.2, 0.1, N=0, I0=0, T=5)
    with pytest.raises(ValueError):
        simulate_observations(0.2, 0.1, N=100, I0=5, T=0)
    with pytest.raises(ValueError):
        simulate_observations(0.2, 0.1, N=100, I0=101, T=5)
    with pytest.raises(ValueError):
        simulate_observations(-0.2, 0.1, N=100, I0=5, T=5)


def test_write_observations_csv(tmp_path):
    sim = simulate_observations(0.25, 0.15, N=1000, I0=10, T=6, rng=np.random.default_rng(0))
    out_csv = tmp_path / "sub" / "obs.csv"

    csv_path = write_observations_csv(sim, out_path=str(out_csv))

    assert csv_path == out_csv
    rows = list(csv.DictReader(csv_path.open()))
    assert len(rows) == 6
    assert [int(r["new_cases"]) for r in rows] == sim["new_cases"].tolist()
    assert [int(r["day"]) for r in rows] == list(range(1, 7))
