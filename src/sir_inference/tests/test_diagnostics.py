import numpy as np
import pytest

from sir_inference.mcmc.diagnostics import (
    autocorrelation,
    credible_interval,
    effective_sample_size,
    log_posterior_at_samples,
    posterior_density_at_samples,
    posterior_summary,
)
from sir_inference.mcmc.augmented import MissingValue, run_augmented_mh
from sir_inference.mcmc.proposals import RandomWalkNormal
from sir_inference.mcmc.sampler import run_block_mh
from sir_inference.posterior.likelihood import log_posterior, posterior_density
from sir_inference.posterior.observations import EpidemicData
from sir_inference.simulate.generate_observations import simulate_observations


@pytest.fixture(scope="module")
def data():
    sim = simulate_observations(0.3, 0.2, N=500, I0=5, T=10, rng=np.random.default_rng(21))
    return EpidemicData(sim["new_cases"], sim["new_removals"], N=500, I0=5)


def ar1(phi, n, seed):
    rng = np.random.default_rng(seed)
    x = np.zeros(n)
    for t in range(1, n):
        x[t] = phi * x[t - 1] + rng.normal()
    return x


def test_autocorrelation_lag_zero_is_one():
    acf = autocorrelation(np.random.default_rng(0).normal(size=500), max_lag=20)
    assert acf.shape == (21,)
    assert acf[0] == pytest.approx(1.0)
    assert np.all(np.abs(acf[1:]) < 0.2)


def test_ess_iid_versus_correlated():
    iid = np.random.default_rng(1).normal(size=4000)
    sticky = ar1(0.95, 4000, seed=2)

    assert effective_sample_size(iid) == pytest.approx(4000, rel=0.25)
    # AR(1) with phi=0.95 has ESS about n * (1 - phi) / (1 + phi)
    assert effective_sample_size(sticky) < 400
    assert effective_sample_size(np.ones(100)) == 1.0


def test_posterior_summary_table(data):
    res = run_block_mh(data, RandomWalkNormal(0.03), (0.2, 0.1), n_iter=1500, seed=0)
    table = posterior_summary(res, burn_in=200)

    assert list(table.index) == ["beta", "gamma"]
    for col in ("mean", "sd", "q2.5", "q50", "q97.5", "ess"):
        assert col in table.columns
    assert (table["q2.5"] <= table["q50"]).all()
    assert (table["q50"] <= table["q97.5"]).all()
    assert table.attrs["acceptance_rate"] == pytest.approx(res.acceptance_rate)

    with pytest.raises(ValueError):
        posterior_summary(res, burn_in=1500)


def test_density_at_samples(data):
    samples = np.array([[0.3, 0.2], [0.1, 0.4], [0.7, 0.1]])
    dens = posterior_density_at_samples(samples, data)
    logs = log_posterior_at_samples(samples, data)

    assert dens.shape == (3,)
    assert dens[0] == pytest.approx(posterior_density(samples[0], data))
    assert logs[1] == pytest.approx(log_posterior(samples[1], data))
    # outside the prior
    assert dens[2] == 0.0
    assert logs[2] == -np.inf


def test_credible_interval():
    lo, hi = credible_interval(np.arange(1001), level=0.9)
    assert lo == pytest.approx(50.0)
    assert hi == pytest.approx(950.0)


def test_density_at_augmented_samples_uses_latent_values():
    """Each row of an augmented chain is scored with its own latent counts."""
    sim = simulate_observations(0.25, 0.15, N=10000, I0=25, T=20, rng=np.random.default_rng(4))
    missing = [MissingValue("cases", 10)]
    hidden = EpidemicData(sim["new_cases"], sim["new_removals"], N=10000, I0=25).with_values(cases_fill={10: 0})

    res = run_augmented_mh(hidden, missing, initial=(0.2, 0.1), initial_latent=[30], n_iter=300, seed=5)

    logs = log_posterior_at_samples(res.samples, hidden, missing)
    assert np.allclose(logs, res.log_posterior, rtol=1e-10, atol=0.0)
    dens = posterior_density_at_samples(res.samples, hidden, missing)
    assert np.allclose(dens, np.exp(res.log_posterior), rtol=1e-8, atol=0.0)

    # latent columns without their missing values are refused
    with pytest.raises(ValueError):
        posterior_density_at_samples(res.samples, hidden)
