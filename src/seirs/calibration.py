"""
===========================================================
calibration.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Converts a target basic reproduction number into the
    baseline transmission scalar beta0 for an age-contact
    matrix, via the next-generation relationship

        R0 = rho(beta0 * C / gamma)  =>  beta0 = R0 * gamma / rho(C)

Notes:
    - Single-infectious-stage approximation: callers wanting a
      different generation-time distribution adjust gamma first.
    - rho(C) is floored at RHO_FLOOR so a zero contact matrix
      does not divide by zero.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations

from .linalg import spectral_radius_power_iteration

RHO_FLOOR = 1e-12
MAX_ITER = 10_000
TOL = 1e-10


def calibrate_beta0(contact, gamma: float, r0: float) -> float:
    """beta0 such that the spectral radius of beta0 * C / gamma equals r0."""
    rho_c = max(spectral_radius_power_iteration(contact, MAX_ITER, TOL), RHO_FLOOR)
    return r0 * gamma / rho_c


def r0_from_beta0(contact, gamma: float, beta0: float) -> float:
    """Inverse of calibrate_beta0: the R0 implied by beta0."""
    rho_c = spectral_radius_power_iteration(contact, MAX_ITER, TOL)
    return beta0 * rho_c / gamma
