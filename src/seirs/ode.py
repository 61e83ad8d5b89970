"""
===========================================================
ode.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Fixed-step classical Runge-Kutta (RK4) integrator for
    systems of ODEs held in a flat numpy state vector.

API:
    rk4_step(y, t, dt, f, *args)          allocating form
    RK4Workspace(n)                       reusable stage buffers
    rk4_step_ws(y, t, dt, ws, f, *args)   workspace form

    The derivative callback has signature f(t, y, dy, *args)
    and must write the rate of change into dy in place.

Notes:
    - Both forms advance y in place and run the same arithmetic,
      so trajectories are bit-identical.
    - Extra positional args are forwarded to f (as odeint does),
      so callers pass scratch buffers explicitly instead of
      capturing them in closures.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from typing import Callable

Derivative = Callable[..., None]


class RK4Workspace:
    """Four stage buffers plus one temporary, resized on demand."""

    def __init__(self, n: int = 0):
        self.k1 = np.zeros(n)
        self.k2 = np.zeros(n)
        self.k3 = np.zeros(n)
        self.k4 = np.zeros(n)
        self.ytmp = np.zeros(n)

    def __len__(self) -> int:
        return self.k1.shape[0]

    def resize(self, n: int) -> None:
        if len(self) != n:
            self.k1 = np.zeros(n)
            self.k2 = np.zeros(n)
            self.k3 = np.zeros(n)
            self.k4 = np.zeros(n)
            self.ytmp = np.zeros(n)


def rk4_step_ws(y: np.ndarray, t: float, dt: float, ws: RK4Workspace, f: Derivative, *args) -> None:
    """Advance y by one RK4 step of size dt, reusing the buffers in ws."""
    ws.resize(y.shape[0])
    k1, k2, k3, k4, ytmp = ws.k1, ws.k2, ws.k3, ws.k4, ws.ytmp
    half = 0.5 * dt

    f(t, y, k1, *args)

    np.multiply(k1, half, out=ytmp)
    ytmp += y
    f(t + half, ytmp, k2, *args)

    np.multiply(k2, half, out=ytmp)
    ytmp += y
    f(t + half, ytmp, k3, *args)

    np.multiply(k3, dt, out=ytmp)
    ytmp += y
    f(t + dt, ytmp, k4, *args)

    # y += dt/6 * (k1 + 2 k2 + 2 k3 + k4); k2, k3 are spent after this point
    k2 *= 2.0
    k3 *= 2.0
    np.add(k1, k2, out=ytmp)
    ytmp += k3
    ytmp += k4
    ytmp *= dt / 6.0
    y += ytmp


def rk4_step(y: np.ndarray, t: float, dt: float, f: Derivative, *args) -> None:
    """Advance y by one RK4 step of size dt with freshly allocated stage buffers."""
    rk4_step_ws(y, t, dt, RK4Workspace(y.shape[0]), f, *args)
