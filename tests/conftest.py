import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest

from seirs.calibration import calibrate_beta0
from seirs.config import SEIRSConfig

TWO_AGE_CONTACT = [[8.0, 2.0], [2.0, 6.0]]
TWO_AGE_POP = [5_000_000.0, 4_000_000.0]


@pytest.fixture
def two_age_config():
    """Two age groups, R0 = 2.5, no mortality or demography."""
    gamma = 1.0 / 5.0
    return SEIRSConfig(
        n_age=2,
        contact=TWO_AGE_CONTACT,
        pop=TWO_AGE_POP,
        beta0=calibrate_beta0(TWO_AGE_CONTACT, gamma, 2.5),
        sigma=1.0 / 3.0,
        gamma=gamma,
        k_e=2,
        k_i=2,
        beta_schedule=[(0.0, 1.0)],
    )


@pytest.fixture
def one_age_config():
    """Single group with hand-checkable rates."""
    return SEIRSConfig(
        n_age=1,
        contact=[[2.0]],
        pop=[100.0],
        beta0=0.5,
        sigma=0.25,
        gamma=0.1,
        omega=0.01,
        vacc_rate=[0.02],
    )


def total_population(traj):
    return np.array([y.sum() for _, y in traj])
