import numpy as np
import pytest

from sir_inference.simulate.reconstruct_states import reconstruct_trajectory, splice_missing
from sir_inference.simulate.generate_observations import simulate_observations


def test_small_trajectory_by_hand():
    """
    N=10, I0=2, cases=[3,1], removals=[1,2]:
    S = [8,5,4], I = [2,4,3], R = [0,1,3]
    """
    traj = reconstruct_trajectory(10, 2, [3, 1], [1, 2])

    assert np.array_equal(traj["S"], [8, 5, 4])
    assert np.array_equal(traj["I"], [2, 4, 3])
    assert np.array_equal(traj["R"], [0, 1, 3])
    assert traj["feasible"]


def test_closed_population_invariant():
    """S + I + R == N exactly at every time step for simulated series."""
    rng = np.random.default_rng(7)
    for _ in range(20):
        sim = simulate_observations(0.3, 0.1, N=5000, I0=10, T=30, rng=rng)
        traj = reconstruct_trajectory(5000, 10, sim["new_cases"], sim["new_removals"])

        assert traj["feasible"]
        assert traj["S"].shape == (31,)
        assert np.all(traj["S"] + traj["I"] + traj["R"] == 5000)
        # the reconstruction matches the simulator's own bookkeeping
        assert np.array_equal(traj["S"], sim["S"])
        assert np.array_equal(traj["I"], sim["I"])


def test_infeasible_cases_are_flagged_not_raised():
    # more cases than susceptibles
    traj = reconstruct_trajectory(10, 2, [9, 0], [0, 0])
    assert not traj["feasible"]

    # more removals than infected
    traj = reconstruct_trajectory(10, 2, [0, 0], [3, 0])
    assert not traj["feasible"]

    # negative count
    traj = reconstruct_trajectory(10, 2, [-1, 0], [0, 0])
    assert not traj["feasible"]


def test_mismatched_lengths_raise():
    with pytest.raises(ValueError):
        reconstruct_trajectory(10, 2, [1, 2, 3], [1, 2])


def test_splice_missing_returns_new_series():
    base = np.array([4, 5, 6, 7])
    out = splice_missing(base, {1: 50, 3: 70})

    assert np.array_equal(out, [4, 50, 6, 70])
    # base series is untouched
    assert np.array_equal(base, [4, 5, 6, 7])


def test_splice_missing_out_of_range():
    with pytest.raises(ValueError):
        splice_missing([1, 2, 3], {3: 1})
    with pytest.raises(ValueError):
        splice_missing([1, 2, 3], {-1: 1})
