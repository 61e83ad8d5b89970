"""
===========================================================
model.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Deterministic age-structured SEIRS model with Erlang-staged
    exposed and infectious periods, integrated with fixed-step
    RK4.

    State layout (flat vector, one contiguous block per age a):
        base = a * (2 + k_e + k_i)
        S    = base
        E_j  = base + 1 + j              j = 0..k_e-1
        I_j  = base + 1 + k_e + j        j = 0..k_i-1
        R    = base + 1 + k_e + k_i

API:
    SEIRSState.from_seeding(config, seeding_per_age)
    SEIRSModel(config)
      - deriv(t, y, dy)                  allocating right-hand side
      - deriv_ws(t, y, dy, scratch)      scratch-buffer right-hand side
      - simulate(state, t0, t_end, dt)   -> [(t, y_copy), ...]
      - simulate_optimized(...)          same, reusing buffers
    initial_state(config, seeding_per_age)
    simulate(model, state, t0, t_end, dt)

Notes:
    - Force of infection is frequency dependent:
        lambda_a = beta(t) * sum_b C[a][b] * I_b / N_b
      where N_b is the *current* total of group b; groups with
      N_b == 0 contribute nothing.
    - Mortality removes mass from the system; with mu = 0,
      mu_i_extra = 0 and no aging/births, total population is
      conserved.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import warnings
import numpy as np
from typing import List, Optional, Sequence, Tuple

from .config import SEIRSConfig, validate
from .ode import RK4Workspace, rk4_step, rk4_step_ws

Trajectory = List[Tuple[float, np.ndarray]]

# guards against dropping or duplicating the last step to float accumulation
T_END_EPS = 1e-12


def indices(cfg: SEIRSConfig, a: int) -> Tuple[int, int, int, int]:
    """(S, E1, I1, R) flat indices of age group a."""
    base = a * cfg.block_size
    idx_s = base
    e0 = idx_s + 1
    i0 = e0 + cfg.k_e
    r = i0 + cfg.k_i
    return idx_s, e0, i0, r


class SEIRSState:
    """Flat compartment vector owned by one simulation run."""

    def __init__(self, y: np.ndarray):
        self.y = y

    @classmethod
    def zeros(cls, cfg: SEIRSConfig) -> "SEIRSState":
        return cls(np.zeros(cfg.state_size))

    @classmethod
    def from_seeding(cls, cfg: SEIRSConfig, seeding_per_age: Sequence[float]) -> "SEIRSState":
        """
        Place seeded infections in I1 of each age group and the rest
        of that group's population in S. Seeds are clamped to the
        group's population; negative seeds are passed through.
        """
        seeding = np.asarray(seeding_per_age, dtype=float)
        if seeding.shape != (cfg.n_age,):
            raise ValueError(f"seeding_per_age must have length n_age={cfg.n_age}, got {seeding.shape}")

        ceiling = np.maximum(cfg.pop, 0.0)
        seed = np.minimum(seeding, ceiling)
        if np.any(seed < seeding):
            warnings.warn("seeding exceeds population in some age groups; clamped to population")

        state = cls.zeros(cfg)
        Y = state.view(cfg)
        Y[:, 0] = cfg.pop - seed
        Y[:, 1 + cfg.k_e] = seed
        return state

    def view(self, cfg: SEIRSConfig) -> np.ndarray:
        """(n_age, block_size) view of the state; writes go through to y."""
        return self.y.reshape(cfg.n_age, cfg.block_size)

    def copy(self) -> "SEIRSState":
        return SEIRSState(self.y.copy())

    def __len__(self) -> int:
        return self.y.shape[0]


class Scratch:
    """
    Per-run working memory for the right-hand side. Sized lazily and
    reallocated as a whole when the configuration's dimensions change.
    Not safe to share between concurrent runs.
    """

    def __init__(self, cfg: Optional[SEIRSConfig] = None):
        self.shape: Tuple[int, int, int] = (-1, -1, -1)
        if cfg is not None:
            self.ensure(cfg)

    def ensure(self, cfg: SEIRSConfig) -> "Scratch":
        shape = (cfg.n_age, cfg.k_e, cfg.k_i)
        if shape == self.shape:
            return self
        n_age, k_e, k_i = shape
        self.shape = shape
        self.e_sum = np.zeros(n_age)
        self.i_sum = np.zeros(n_age)
        self.n_tot = np.zeros(n_age)
        self.alive = np.zeros(n_age, dtype=bool)
        self.prevalence = np.zeros(n_age)
        self.foi = np.zeros(n_age)
        self.infection = np.zeros(n_age)
        self.vaccination = np.zeros(n_age)
        self.tmp = np.zeros(n_age)
        self.e_flow = np.zeros((n_age, k_e))
        self.i_flow = np.zeros((n_age, k_i))
        self.i_tmp = np.zeros((n_age, k_i))
        self.block = np.zeros((n_age, cfg.block_size))
        return self


def seirs_rhs(t: float, y: np.ndarray, dy: np.ndarray, cfg: SEIRSConfig, ws: Scratch) -> None:
    """
    Right-hand side of the SEIRS system, written into dy.

    Pure in (t, y, cfg): only dy and the scratch buffers in ws are
    written, so it can be evaluated on trial states inside RK4.
    """
    # a reshaped non-contiguous dy would be a copy and the writes lost
    if not dy.flags.c_contiguous:
        raise ValueError("dy must be a C-contiguous array")
    n_age, k_e, k_i = cfg.n_age, cfg.k_e, cfg.k_i
    Y = y.reshape(n_age, cfg.block_size)
    dY = dy.reshape(n_age, cfg.block_size)
    S, E, I, R = Y[:, 0], Y[:, 1:1 + k_e], Y[:, 1 + k_e:1 + k_e + k_i], Y[:, -1]
    dS, dE, dI, dR = dY[:, 0], dY[:, 1:1 + k_e], dY[:, 1 + k_e:1 + k_e + k_i], dY[:, -1]

    # per-age totals at time t
    np.sum(E, axis=1, out=ws.e_sum)
    np.sum(I, axis=1, out=ws.i_sum)
    np.add(S, ws.e_sum, out=ws.n_tot)
    ws.n_tot += ws.i_sum
    ws.n_tot += R

    # force of infection
    ws.prevalence.fill(0.0)
    np.greater(ws.n_tot, 0.0, out=ws.alive)
    np.divide(ws.i_sum, ws.n_tot, out=ws.prevalence, where=ws.alive)
    np.dot(cfg.contact, ws.prevalence, out=ws.foi)
    ws.foi *= cfg.beta_at(t)

    np.multiply(ws.foi, S, out=ws.infection)
    np.multiply(cfg.vacc, S, out=ws.vaccination)
    np.multiply(E, k_e * cfg.sigma, out=ws.e_flow)
    np.multiply(I, k_i * cfg.gamma, out=ws.i_flow)

    # S: infection, vaccination, waning
    np.add(ws.infection, ws.vaccination, out=dS)
    np.negative(dS, out=dS)
    np.multiply(R, cfg.omega, out=ws.tmp)
    dS += ws.tmp

    # E chain
    np.negative(ws.e_flow, out=dE)
    dE[:, 0] += ws.infection
    dE[:, 1:] += ws.e_flow[:, :-1]

    # I chain, fed by the last exposed stage
    np.negative(ws.i_flow, out=dI)
    dI[:, 0] += ws.e_flow[:, -1]
    dI[:, 1:] += ws.i_flow[:, :-1]

    # R: recovery, vaccination, waning
    np.add(ws.i_flow[:, -1], ws.vaccination, out=dR)
    dR -= ws.tmp

    # mortality leaves the system
    np.multiply(Y, cfg.mu, out=ws.block)
    dY -= ws.block
    np.multiply(I, cfg.mu_i_extra, out=ws.i_tmp)
    dI -= ws.i_tmp

    # aging into the next bin, compartment by compartment
    np.multiply(Y, cfg.aging_outflow, out=ws.block)
    dY -= ws.block
    dY[1:] += ws.block[:-1]

    # births into the youngest susceptibles
    dS[0] += cfg.female_fraction * float(np.dot(cfg.fertility, ws.n_tot))


class SEIRSModel:
    """
    Age-structured SEIRS model.

    Parameters
    ----------
    cfg : SEIRSConfig
        Validated on construction.
    """

    def __init__(self, cfg: SEIRSConfig):
        validate(cfg)
        self.cfg = cfg

    def deriv(self, t: float, y: np.ndarray, dy: np.ndarray) -> None:
        """Right-hand side with locally allocated intermediates."""
        seirs_rhs(t, y, dy, self.cfg, Scratch(self.cfg))

    def deriv_ws(self, t: float, y: np.ndarray, dy: np.ndarray, scratch: Scratch) -> None:
        """Right-hand side using caller-owned scratch buffers."""
        seirs_rhs(t, y, dy, self.cfg, scratch.ensure(self.cfg))

    def derivatives(self, t: float, y: np.ndarray) -> np.ndarray:
        """Return dy/dt as a new array (solve_ivp-style signature)."""
        dy = np.zeros_like(np.asarray(y, dtype=float))
        self.deriv(t, np.asarray(y, dtype=float), dy)
        return dy

    def initial_state(self, seeding_per_age: Sequence[float]) -> SEIRSState:
        return SEIRSState.from_seeding(self.cfg, seeding_per_age)

    def simulate(self, state: SEIRSState, t0: float, t_end: float, dt: float) -> Trajectory:
        """
        Integrate from t0 to t_end with step dt, allocating per step.

        Returns
        -------
        list of (t, y) with y an independent copy of the state at t,
        starting with the initial state at t0.
        """
        _check_step(dt)
        t = float(t0)
        out: Trajectory = [(t, state.y.copy())]
        while t < t_end - T_END_EPS:
            rk4_step(state.y, t, dt, self.deriv)
            t += dt
            out.append((t, state.y.copy()))
        return out

    def simulate_optimized(self, state: SEIRSState, t0: float, t_end: float, dt: float,
                           scratch: Optional[Scratch] = None,
                           workspace: Optional[RK4Workspace] = None) -> Trajectory:
        """
        Same trajectory as simulate(), reusing scratch and RK4 buffers across steps.

        Buffers not passed in are allocated for this run only, so
        concurrent runs on one model are independent. A caller-supplied
        scratch or workspace must not be shared between concurrent runs.
        """
        _check_step(dt)
        scratch = (scratch if scratch is not None else Scratch()).ensure(self.cfg)
        workspace = workspace if workspace is not None else RK4Workspace(len(state))
        t = float(t0)
        out: Trajectory = [(t, state.y.copy())]
        while t < t_end - T_END_EPS:
            rk4_step_ws(state.y, t, dt, workspace, self.deriv_ws, scratch)
            t += dt
            out.append((t, state.y.copy()))
        return out


def _check_step(dt: float) -> None:
    if not dt > 0.0:
        raise ValueError(f"dt must be > 0, got {dt}")


def initial_state(cfg: SEIRSConfig, seeding_per_age: Sequence[float]) -> SEIRSState:
    """Seeded initial state for cfg (see SEIRSState.from_seeding)."""
    return SEIRSState.from_seeding(cfg, seeding_per_age)


def simulate(model: SEIRSModel, state: SEIRSState, t0: float, t_end: float, dt: float,
             optimized: bool = True) -> Trajectory:
    """Run model from t0 to t_end; optimized selects the buffer-reusing integrator."""
    if optimized:
        return model.simulate_optimized(state, t0, t_end, dt)
    return model.simulate(state, t0, t_end, dt)


if __name__ == "__main__":
    # two-age toy run: python -m seirs.model
    import time as _time
    from .calibration import calibrate_beta0
    from .summary import print_summary, summary, to_frame

    contact = [[8.0, 2.0], [2.0, 6.0]]
    cfg = SEIRSConfig(
        n_age=2,
        contact=contact,
        pop=[5_000_000.0, 4_000_000.0],
        beta0=calibrate_beta0(contact, gamma=1.0 / 5.0, r0=2.5),
        sigma=1.0 / 3.0,
        gamma=1.0 / 5.0,
        k_e=2,
        k_i=2,
        mu=0.008 / 365.0,
        mu_i_extra=0.02 / 365.0,
        beta_schedule=[(0.0, 1.0), (60.0, 0.8), (120.0, 1.1)],
    )
    model = SEIRSModel(cfg)

    start = _time.perf_counter()
    traj = model.simulate(model.initial_state([10.0, 10.0]), 0.0, 360.0, 0.25)
    baseline_ms = (_time.perf_counter() - start) * 1000
    start = _time.perf_counter()
    model.simulate_optimized(model.initial_state([10.0, 10.0]), 0.0, 360.0, 0.25)
    optimized_ms = (_time.perf_counter() - start) * 1000

    print_summary(summary(to_frame(cfg, traj)))
    print(f"\nbaseline_ms={baseline_ms:.1f} optimized_ms={optimized_ms:.1f}")
