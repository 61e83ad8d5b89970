"""Test the SEIRS state layout, right-hand side and trajectory driver."""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import numpy as np
import pytest

from seirs.config import ConfigError, SEIRSConfig
from seirs.model import SEIRSModel, SEIRSState, Scratch, indices, initial_state, simulate
from seirs.ode import RK4Workspace
from seirs.summary import totals

from conftest import total_population


def rhs(model, y, t=0.0):
    dy = np.full_like(y, np.nan)
    model.deriv(t, y, dy)
    return dy


# ---- layout and seeding ----------------------------------------------------

def test_indices_layout():
    cfg = SEIRSConfig(n_age=3, contact=np.ones((3, 3)), pop=[1.0, 1.0, 1.0],
                      beta0=0.1, sigma=0.5, gamma=0.5, k_e=2, k_i=3)
    assert cfg.block_size == 7
    assert indices(cfg, 0) == (0, 1, 3, 6)
    assert indices(cfg, 2) == (14, 15, 17, 20)


def test_seeding_goes_to_first_infectious_stage(two_age_config):
    state = initial_state(two_age_config, [10.0, 5.0])
    cfg = two_age_config
    assert len(state) == cfg.state_size
    for a, seed in enumerate([10.0, 5.0]):
        s, e0, i0, r = indices(cfg, a)
        assert state.y[s] == cfg.pop[a] - seed
        assert state.y[i0] == seed
        assert state.y[r] == 0.0
        np.testing.assert_array_equal(state.y[e0:i0], 0.0)
        np.testing.assert_array_equal(state.y[i0 + 1:r], 0.0)


def test_seeding_is_clamped_to_population():
    cfg = SEIRSConfig(n_age=2, contact=np.ones((2, 2)), pop=[50.0, 0.0],
                      beta0=0.1, sigma=0.5, gamma=0.5)
    with pytest.warns(UserWarning, match="clamped"):
        state = SEIRSState.from_seeding(cfg, [80.0, 3.0])
    _, _, i0, _ = indices(cfg, 0)
    assert state.y[0] == 0.0
    assert state.y[i0] == 50.0
    np.testing.assert_array_equal(state.view(cfg)[1], 0.0)


def test_negative_seeding_is_passed_through():
    cfg = SEIRSConfig(n_age=1, contact=[[1.0]], pop=[100.0], beta0=0.1, sigma=0.5, gamma=0.5)
    state = SEIRSState.from_seeding(cfg, [-5.0])
    assert state.y[0] == 105.0
    assert state.y[2] == -5.0


def test_seeding_length_mismatch(two_age_config):
    with pytest.raises(ValueError, match="n_age"):
        initial_state(two_age_config, [1.0])


# ---- right-hand side -------------------------------------------------------

def test_rhs_single_age_by_hand(one_age_config):
    model = SEIRSModel(one_age_config)
    y = np.array([60.0, 10.0, 20.0, 10.0])
    # lambda = 0.5 * 2 * 20 / 100 = 0.2
    dy = rhs(model, y)
    np.testing.assert_allclose(dy, [-13.1, 9.5, 0.5, 3.1], rtol=1e-12)
    assert dy.sum() == pytest.approx(0.0, abs=1e-12)


def test_rhs_erlang_chain():
    cfg = SEIRSConfig(n_age=1, contact=[[1.0]], pop=[100.0], beta0=0.0,
                      sigma=0.5, gamma=0.25, k_e=2, k_i=3)
    model = SEIRSModel(cfg)
    # S, E1, E2, I1, I2, I3, R
    y = np.array([40.0, 4.0, 8.0, 12.0, 16.0, 20.0, 0.0])
    dy = rhs(model, y)
    ke_sigma, ki_gamma = 1.0, 0.75
    expected = [
        0.0,
        -ke_sigma * 4.0,
        ke_sigma * 4.0 - ke_sigma * 8.0,
        ke_sigma * 8.0 - ki_gamma * 12.0,
        ki_gamma * 12.0 - ki_gamma * 16.0,
        ki_gamma * 16.0 - ki_gamma * 20.0,
        ki_gamma * 20.0,
    ]
    np.testing.assert_allclose(dy, expected, rtol=1e-12)


def test_rhs_uses_schedule(one_age_config):
    cfg = replace(one_age_config, beta_schedule=[(0.0, 1.0), (10.0, 0.0)])
    model = SEIRSModel(cfg)
    y = np.array([60.0, 10.0, 20.0, 10.0])
    assert rhs(model, y, t=5.0)[1] == pytest.approx(9.5)
    # no infection inflow once the multiplier drops to zero
    assert rhs(model, y, t=10.0)[1] == pytest.approx(-2.5)


def test_rhs_zero_population_group_is_skipped():
    cfg = SEIRSConfig(n_age=2, contact=np.ones((2, 2)), pop=[100.0, 0.0],
                      beta0=1.0, sigma=0.5, gamma=0.5)
    model = SEIRSModel(cfg)
    y = np.array([90.0, 0.0, 10.0, 0.0, 0.0, 0.0, 0.0, 0.0])
    dy = rhs(model, y)
    assert np.all(np.isfinite(dy))
    # lambda_0 = 1 * 10 / 100
    assert dy[1] == pytest.approx(0.1 * 90.0)
    np.testing.assert_array_equal(dy[4:], 0.0)


def test_rhs_mortality_removes_mass():
    mu, mu_i_extra = 0.01, 0.05
    cfg = SEIRSConfig(n_age=1, contact=[[1.0]], pop=[100.0], beta0=0.0,
                      sigma=0.25, gamma=0.1, mu=mu, mu_i_extra=mu_i_extra)
    model = SEIRSModel(cfg)
    y = np.array([50.0, 10.0, 20.0, 20.0])
    dy = rhs(model, y)
    assert dy.sum() == pytest.approx(-(mu * 100.0 + mu_i_extra * 20.0))
    assert dy[0] == pytest.approx(-mu * 50.0)
    assert dy[2] == pytest.approx(0.25 * 10.0 - 0.1 * 20.0 - (mu + mu_i_extra) * 20.0)


def test_rhs_aging_moves_mass_to_next_bin():
    cfg = SEIRSConfig(n_age=3, contact=np.ones((3, 3)), pop=[100.0, 50.0, 20.0],
                      beta0=0.0, sigma=0.5, gamma=0.5,
                      aging_rate_per_day=[0.1, 0.2, 0.3])
    model = SEIRSModel(cfg)
    state = initial_state(cfg, [0.0, 0.0, 0.0])
    dy = rhs(model, state.y)
    dS = [dy[indices(cfg, a)[0]] for a in range(3)]
    np.testing.assert_allclose(dS, [-10.0, 0.0, 10.0])
    assert dy.sum() == pytest.approx(0.0)


def test_rhs_aging_applies_to_every_compartment():
    cfg = SEIRSConfig(n_age=2, contact=np.ones((2, 2)), pop=[10.0, 10.0],
                      beta0=0.0, sigma=0.5, gamma=0.5,
                      aging_rate_per_day=[0.5, 0.0])
    model = SEIRSModel(cfg)
    y = np.array([0.0, 0.0, 0.0, 4.0, 0.0, 0.0, 0.0, 0.0])
    dy = rhs(model, y)
    assert dy[3] == pytest.approx(-0.5 * 4.0)
    assert dy[7] == pytest.approx(0.5 * 4.0)


def test_rhs_births_enter_youngest_susceptibles():
    cfg = SEIRSConfig(n_age=3, contact=np.ones((3, 3)), pop=[100.0, 50.0, 20.0],
                      beta0=0.0, sigma=0.5, gamma=0.5,
                      fertility_per_day=[0.0, 0.01, 0.0], female_fraction=0.5)
    model = SEIRSModel(cfg)
    state = initial_state(cfg, [0.0, 0.0, 0.0])
    dy = rhs(model, state.y)
    assert dy[0] == pytest.approx(0.5 * 0.01 * 50.0)
    np.testing.assert_array_equal(dy[1:], 0.0)


def test_rhs_does_not_modify_state(two_age_config):
    model = SEIRSModel(two_age_config)
    y = initial_state(two_age_config, [10.0, 10.0]).y
    before = y.copy()
    rhs(model, y)
    np.testing.assert_array_equal(y, before)


def test_deriv_and_deriv_ws_agree(two_age_config):
    model = SEIRSModel(two_age_config)
    rng = np.random.default_rng(3)
    y = rng.uniform(0.0, 1e5, size=two_age_config.state_size)
    dy1 = np.zeros_like(y)
    dy2 = np.zeros_like(y)
    model.deriv(1.0, y, dy1)
    model.deriv_ws(1.0, y, dy2, Scratch())
    np.testing.assert_array_equal(dy1, dy2)


def test_derivatives_returns_new_array(one_age_config):
    model = SEIRSModel(one_age_config)
    dy = model.derivatives(0.0, [60.0, 10.0, 20.0, 10.0])
    np.testing.assert_allclose(dy, [-13.1, 9.5, 0.5, 3.1], rtol=1e-12)


def test_scratch_resizes_between_configs(two_age_config, one_age_config):
    scratch = Scratch(two_age_config)
    assert scratch.e_sum.shape == (2,)
    SEIRSModel(one_age_config).deriv_ws(0.0, np.array([60.0, 10.0, 20.0, 10.0]), np.zeros(4), scratch)
    assert scratch.e_sum.shape == (1,)
    assert scratch.block.shape == (1, 4)


def test_rhs_rejects_non_contiguous_output(one_age_config):
    model = SEIRSModel(one_age_config)
    y = np.array([60.0, 10.0, 20.0, 10.0])
    strided = np.zeros(8)[::2]
    with pytest.raises(ValueError, match="contiguous"):
        model.deriv(0.0, y, strided)


def test_rhs_reads_non_contiguous_state(one_age_config):
    model = SEIRSModel(one_age_config)
    padded = np.zeros(8)
    padded[::2] = [60.0, 10.0, 20.0, 10.0]
    dy = rhs(model, padded[::2])
    np.testing.assert_allclose(dy, [-13.1, 9.5, 0.5, 3.1], rtol=1e-12)


def test_model_rejects_invalid_config(one_age_config):
    with pytest.raises(ConfigError):
        SEIRSModel(replace(one_age_config, mu=-1.0))


# ---- trajectory driver -----------------------------------------------------

def test_concrete_two_age_scenario(two_age_config):
    assert two_age_config.beta0 > 0.0
    model = SEIRSModel(two_age_config)
    state = initial_state(two_age_config, [10.0, 10.0])
    traj = simulate(model, state, 0.0, 360.0, 0.25)
    assert len(traj) == 1 + int(360 / 0.25)
    t0, y0 = traj[0]
    assert t0 == 0.0
    assert traj[-1][0] == pytest.approx(360.0)
    _, _, i_tot, _ = totals(two_age_config, y0)
    assert i_tot == pytest.approx(20.0)
    assert y0.sum() == pytest.approx(9_000_000.0)


def test_conservation_without_mortality_or_demography(two_age_config):
    cfg = replace(two_age_config, omega=1.0 / 90.0)
    model = SEIRSModel(cfg)
    traj = model.simulate_optimized(initial_state(cfg, [10.0, 10.0]), 0.0, 200.0, 0.5)
    pop = total_population(traj)
    np.testing.assert_allclose(pop, 9_000_000.0, rtol=1e-6)


def test_conservation_with_vaccination_and_waning():
    cfg = SEIRSConfig(n_age=3, contact=[[5.0, 1.0, 0.5], [1.0, 4.0, 1.0], [0.5, 1.0, 3.0]],
                      pop=[1e5, 2e5, 5e4], beta0=0.08, sigma=0.2, gamma=0.1, k_e=3, k_i=2,
                      omega=0.01, vacc_rate=[0.001, 0.002, 0.0])
    traj = SEIRSModel(cfg).simulate(initial_state(cfg, [5.0, 0.0, 1.0]), 0.0, 100.0, 1.0)
    np.testing.assert_allclose(total_population(traj), 3.5e5, rtol=1e-6)


def test_population_declines_with_mortality(two_age_config):
    cfg = replace(two_age_config, mu=0.008 / 365.0, mu_i_extra=0.02 / 365.0)
    traj = SEIRSModel(cfg).simulate_optimized(initial_state(cfg, [10.0, 10.0]), 0.0, 100.0, 0.5)
    pop = total_population(traj)
    assert np.all(np.diff(pop) < 0.0)


def test_demography_changes_population():
    cfg = SEIRSConfig(n_age=2, contact=np.ones((2, 2)), pop=[100.0, 100.0],
                      beta0=0.0, sigma=0.5, gamma=0.5,
                      aging_rate_per_day=[0.01, 0.0], fertility_per_day=[0.0, 0.02])
    traj = SEIRSModel(cfg).simulate(initial_state(cfg, [0.0, 0.0]), 0.0, 10.0, 1.0)
    pop = total_population(traj)
    assert pop[-1] > pop[0]


def test_integrator_variants_are_bit_identical(two_age_config):
    cfg = replace(two_age_config, mu=1e-4, mu_i_extra=1e-3,
                  beta_schedule=[(0.0, 1.0), (30.0, 0.6), (60.0, 1.2)])
    model = SEIRSModel(cfg)
    traj1 = model.simulate(initial_state(cfg, [10.0, 10.0]), 0.0, 90.0, 0.25)
    traj2 = model.simulate_optimized(initial_state(cfg, [10.0, 10.0]), 0.0, 90.0, 0.25)
    assert len(traj1) == len(traj2)
    for (t1, y1), (t2, y2) in zip(traj1, traj2):
        assert t1 == t2
        np.testing.assert_array_equal(y1, y2)


def test_optimized_runs_do_not_share_buffers(two_age_config):
    model = SEIRSModel(two_age_config)
    assert not hasattr(model, "_scratch")

    def run(seed):
        state = initial_state(two_age_config, [seed, seed])
        return model.simulate_optimized(state, 0.0, 60.0, 0.25)

    expected = [run(seed) for seed in (10.0, 500.0)]
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(run, [10.0, 500.0] * 4))
    for i, traj in enumerate(results):
        for (t1, y1), (t2, y2) in zip(traj, expected[i % 2]):
            assert t1 == t2
            np.testing.assert_array_equal(y1, y2)


def test_optimized_run_uses_caller_buffers(two_age_config):
    model = SEIRSModel(two_age_config)
    scratch = Scratch()
    workspace = RK4Workspace()
    traj = model.simulate_optimized(initial_state(two_age_config, [10.0, 10.0]), 0.0, 1.0, 0.5,
                                    scratch=scratch, workspace=workspace)
    assert len(traj) == 3
    assert scratch.shape == (2, 2, 2)
    assert len(workspace) == two_age_config.state_size


def test_snapshots_are_independent_copies(one_age_config):
    model = SEIRSModel(one_age_config)
    state = initial_state(one_age_config, [1.0])
    initial = state.y.copy()
    traj = model.simulate(state, 0.0, 5.0, 1.0)
    last = traj[-1][1].copy()
    state.y[:] = -1.0
    np.testing.assert_array_equal(traj[0][1], initial)
    np.testing.assert_array_equal(traj[-1][1], last)
    assert traj[1][1] is not traj[2][1]


def test_state_is_advanced_in_place(one_age_config):
    model = SEIRSModel(one_age_config)
    state = initial_state(one_age_config, [1.0])
    traj = model.simulate(state, 0.0, 3.0, 1.0)
    np.testing.assert_array_equal(state.y, traj[-1][1])


def test_final_step_not_dropped_or_duplicated(one_age_config):
    model = SEIRSModel(one_age_config)
    traj = model.simulate(initial_state(one_age_config, [1.0]), 0.0, 1.0, 0.1)
    assert len(traj) == 11
    assert traj[-1][0] == pytest.approx(1.0)


@pytest.mark.parametrize("dt", [0.0, -0.5])
def test_non_positive_step_rejected(one_age_config, dt):
    model = SEIRSModel(one_age_config)
    with pytest.raises(ValueError, match="dt"):
        model.simulate(initial_state(one_age_config, [1.0]), 0.0, 1.0, dt)


def test_epidemic_grows_then_peaks(two_age_config):
    cfg = two_age_config
    model = SEIRSModel(cfg)
    traj = model.simulate_optimized(initial_state(cfg, [10.0, 10.0]), 0.0, 360.0, 0.25)
    t = np.array([tt for tt, _ in traj])
    infectious = np.array([totals(cfg, y)[2] for _, y in traj])

    window = (t >= 15.0) & (t <= 40.0)
    assert np.all(np.diff(infectious[window]) > 0.0)

    peak = int(np.argmax(infectious))
    assert t[peak] > 40.0
    assert infectious[peak] > 1000 * infectious[0]
    assert infectious[-1] < infectious[peak]


def _exposed_residence(k_e, sigma=1.0 / 3.0, dt=0.05, t_end=80.0):
    """Mean and variance of time spent in E after 1000 people enter E1 at t = 0."""
    cfg = SEIRSConfig(n_age=1, contact=[[1.0]], pop=[1000.0], beta0=0.0,
                      sigma=sigma, gamma=0.2, k_e=k_e, k_i=1)
    state = SEIRSState.zeros(cfg)
    state.y[indices(cfg, 0)[1]] = 1000.0
    traj = SEIRSModel(cfg).simulate_optimized(state, 0.0, t_end, dt)
    t = np.array([tt for tt, _ in traj])
    surv = np.array([totals(cfg, y)[1] for _, y in traj]) / 1000.0

    def integrate(f):
        return dt * (f.sum() - 0.5 * (f[0] + f[-1]))

    mean = integrate(surv)
    var = 2.0 * integrate(t * surv) - mean ** 2
    return mean, var


def test_exposed_mean_duration_is_independent_of_stage_count():
    stats = {k: _exposed_residence(k) for k in (1, 2, 4)}
    for k, (mean, var) in stats.items():
        assert mean == pytest.approx(3.0, rel=1e-3)
        # Erlang(k, k*sigma): variance 1 / (k sigma^2)
        assert var == pytest.approx(9.0 / k, rel=1e-3)
    assert stats[4][1] < stats[2][1] < stats[1][1]
