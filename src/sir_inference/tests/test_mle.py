import logging

import numpy as np
import pytest

from sir_inference.estimate.mle import PENALTY, fit_mle, negative_log_posterior
from sir_inference.posterior.likelihood import log_posterior
from sir_inference.posterior.observations import EpidemicData
from sir_inference.simulate.generate_observations import simulate_observations


@pytest.fixture(scope="module")
def data():
    sim = simulate_observations(0.25, 0.15, N=10000, I0=25, T=20, rng=np.random.default_rng(99))
    return EpidemicData(sim["new_cases"], sim["new_removals"], N=10000, I0=25)


def test_objective_is_negative_log_posterior(data):
    traj = data.trajectory()
    value = negative_log_posterior((0.2, 0.1), data.new_cases, data.new_removals, traj["S"], traj["I"], data.N)
    assert value == pytest.approx(-log_posterior((0.2, 0.1), data))


def test_objective_penalises_instead_of_inf(data):
    traj = data.trajectory()
    args = (data.new_cases, data.new_removals, traj["S"], traj["I"], data.N)

    # outside the prior
    assert negative_log_posterior((0.7, 0.1), *args) == PENALTY
    assert negative_log_posterior((0.2, -0.1), *args) == PENALTY
    # beta = 0 with observed cases: log(0) likelihood
    assert negative_log_posterior((0.0, 0.1), *args) == PENALTY


def test_fit_recovers_parameters(data):
    fit = fit_mle(data)

    assert fit["converged"]
    assert fit["beta"] == pytest.approx(0.25, abs=0.05)
    assert fit["gamma"] == pytest.approx(0.15, abs=0.05)

    # no nearby point does better
    best = fit["neg_log_posterior"]
    traj = data.trajectory()
    args = (data.new_cases, data.new_removals, traj["S"], traj["I"], data.N)
    for db in (-0.005, 0.005):
        for dg in (-0.005, 0.005):
            assert negative_log_posterior((fit["beta"] + db, fit["gamma"] + dg), *args) >= best


def test_fit_is_start_independent(data):
    a = fit_mle(data, start=(0.1, 0.1))
    b = fit_mle(data, start=(0.4, 0.3))
    assert a["beta"] == pytest.approx(b["beta"], abs=1e-4)
    assert a["gamma"] == pytest.approx(b["gamma"], abs=1e-4)


def test_non_convergence_is_a_warning_not_an_error(data, caplog):
    with caplog.at_level(logging.WARNING, logger="sir_inference.estimate.mle"):
        fit = fit_mle(data, maxiter=2)

    assert not fit["converged"]
    assert np.isfinite(fit["beta"]) and np.isfinite(fit["gamma"])
    assert any("did not converge" in r.getMessage() for r in caplog.records)


def test_infeasible_observed_series_raises():
    data = EpidemicData([20, 0], [0, 0], N=10, I0=1)
    with pytest.raises(ValueError):
        fit_mle(data)


def test_fit_reports_log_likelihood(data):
    """Inside the flat prior the reported log-likelihood is minus the objective."""
    fit = fit_mle(data)
    assert fit["log_likelihood"] == pytest.approx(-fit["neg_log_posterior"])
