"""Age-structured SEIRS simulation engine."""
from .calibration import calibrate_beta0, r0_from_beta0
from .config import ConfigError, SEIRSConfig, validate
from .linalg import spectral_radius_eig, spectral_radius_power_iteration
from .model import SEIRSModel, SEIRSState, Scratch, indices, initial_state, simulate
from .ode import RK4Workspace, rk4_step, rk4_step_ws
from .summary import summary, timelines, to_frame, totals

__version__ = "0.1.0"
