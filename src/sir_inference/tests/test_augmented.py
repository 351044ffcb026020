import numpy as np
import pytest

from sir_inference.mcmc.augmented import MissingValue, augmented_log_posterior, run_augmented_mh
from sir_inference.posterior.likelihood import log_posterior
from sir_inference.posterior.observations import EpidemicData
from sir_inference.simulate.generate_observations import simulate_observations

N, I0, T = 10000, 25, 20
HIDDEN_DAY = 10


def make_data(seed):
    sim = simulate_observations(0.25, 0.15, N=N, I0=I0, T=T, rng=np.random.default_rng(seed))
    return EpidemicData(sim["new_cases"], sim["new_removals"], N=N, I0=I0)


def hide(data, missing):
    """Blank out the missing days with a placeholder 0."""
    cases_fill = {m.day: 0 for m in missing if m.series == "cases"}
    removals_fill = {m.day: 0 for m in missing if m.series == "removals"}
    return data.with_values(cases_fill=cases_fill, removals_fill=removals_fill)


def test_spliced_posterior_matches_full_data():
    """With the latent values set to the truth we get the full-data posterior back."""
    data = make_data(0)
    missing = [MissingValue("cases", 4), MissingValue("removals", 12)]
    hidden = hide(data, missing)
    truth = [data.new_cases[4], data.new_removals[12]]

    params = (0.24, 0.16)
    assert augmented_log_posterior(params, truth, hidden, missing) == pytest.approx(log_posterior(params, data))


def test_negative_latent_has_zero_density():
    data = make_data(0)
    missing = [MissingValue("cases", 4)]
    assert augmented_log_posterior((0.24, 0.16), [-1], hide(data, missing), missing) == -np.inf


def test_chain_layout_and_latent_values():
    data = make_data(1)
    missing = [MissingValue("cases", 5), MissingValue("removals", 8)]
    hidden = hide(data, missing)

    res = run_augmented_mh(hidden, missing, initial=(0.2, 0.1), initial_latent=[20, 10],
                           n_iter=600, seed=3)

    assert res.samples.shape == (600, 4)
    assert res.names == ("beta", "gamma", "missing_cases_5", "missing_removals_8")
    assert tuple(res.samples[0]) == (0.2, 0.1, 20.0, 10.0)
    latent = res.samples[:, 2:]
    # integer valued, never negative
    assert np.all(latent == np.round(latent))
    assert np.all(latent >= 0)
    # one accept/reject decision per iteration
    assert res.accepted.shape == (600, 1)
    assert 0.0 < res.acceptance_rate < 1.0
    # the base series is not modified by sampling
    assert hidden.new_cases[5] == 0


@pytest.mark.parametrize(
    "missing, initial_latent",
    [
        ([MissingValue("cases", T)], [1]),
        ([MissingValue("deaths", 3)], [1]),
        ([MissingValue("cases", 3), MissingValue("cases", 3)], [1, 1]),
        ([MissingValue("cases", 3)], [1, 2]),
        ([MissingValue("cases", 3)], [-1]),
        ([], []),
    ],
)
def test_invalid_missing_setup_raises(missing, initial_latent):
    data = make_data(2)
    with pytest.raises(ValueError):
        run_augmented_mh(data, missing, initial=(0.2, 0.1), initial_latent=initial_latent, n_iter=10)


def test_hidden_value_interval_coverage():
    """
    Hide one new-case count in each of 100 synthetic series; the 95% posterior
    interval for it should contain the true value in at least 90 of them.
    """
    missing = [MissingValue("cases", HIDDEN_DAY)]
    covered = 0
    for trial in range(100):
        data = make_data(1000 + trial)
        true_value = int(data.new_cases[HIDDEN_DAY])
        hidden = hide(data, missing)
        start = int(round(0.5 * (data.new_cases[HIDDEN_DAY - 1] + data.new_cases[HIDDEN_DAY + 1])))

        res = run_augmented_mh(hidden, missing, initial=(0.2, 0.1), initial_latent=[start],
                               n_iter=5000, param_scale=(0.02, 0.015), latent_scale=4.0, seed=trial)
        latent = res.samples[1000:, 2]
        lo, hi = np.quantile(latent, [0.025, 0.975])
        covered += int(lo <= true_value <= hi)

    assert covered >= 90
