"""
===========================================================
config.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Parameter bundle for the age-structured SEIRS model with
    Erlang-staged exposed/infectious periods, a step-function
    transmission schedule, vaccination, mortality and optional
    demographic flows (aging, births).

API:
    SEIRSConfig(...)            dataclass, validated on creation
    validate(config)            re-check invariants
    ConfigError                 raised on a violated invariant

Notes:
    - All rates are per day.
    - sigma and gamma are the inverse *total* mean durations of the
      exposed and infectious periods; each of the k stages exits at
      k*sigma (resp. k*gamma).
    - Absent optional vectors (vacc_rate, aging_rate_per_day,
      fertility_per_day) are resolved once to zero vectors so the
      derivative never branches on them.
    - A config is frozen once built. Derive variants with
      dataclasses.replace(cfg, ...), which re-runs normalisation
      and validation.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple


class ConfigError(ValueError):
    """A model configuration violates one of its invariants."""


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def _as_vector(name: str, values, n_age: int) -> np.ndarray:
    try:
        arr = np.array(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a numeric vector of length n_age") from e
    if arr.ndim != 1 or arr.shape[0] != n_age:
        raise ConfigError(f"{name}.len != n_age ({arr.shape} vs {n_age})")
    return arr


def _as_matrix(values, n_age: int) -> np.ndarray:
    try:
        arr = np.array(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise ConfigError("contact must be square n_age x n_age") from e
    if arr.ndim != 2 or arr.shape[0] != n_age:
        raise ConfigError(f"contact rows != n_age ({arr.shape} vs {n_age})")
    if arr.shape[1] != n_age:
        raise ConfigError("contact must be square n_age x n_age")
    return arr


@dataclass(frozen=True, eq=False)
class SEIRSConfig:
    """
    Configuration of an age-structured SEIRS run.

    Parameters
    ----------
    n_age : int
        Number of age groups.
    contact : array-like, shape (n_age, n_age)
        C[a][b], average daily contacts of group a with group b.
    pop : array-like, shape (n_age,)
        Population per age group at the start of the run.
    beta0 : float
        Baseline transmission-rate scalar.
    sigma, gamma : float
        1/mean exposed period and 1/mean infectious period.
    k_e, k_i : int
        Number of Erlang stages in the exposed and infectious periods.
    omega : float
        Waning rate R -> S (0 disables waning).
    mu : float
        Baseline mortality applied to every compartment.
    mu_i_extra : float
        Additional mortality applied to infectious stages.
    beta_schedule : sequence of (time, multiplier)
        Step function for beta(t), sorted by time. Stored as a tuple.
    vacc_rate : array-like, optional
        Per-age daily S -> R vaccination rate.
    aging_rate_per_day : array-like, optional
        Per-age rate of moving into the next older bin.
    fertility_per_day : array-like, optional
        Per-age birth rate per female.
    female_fraction : float
        Fraction of each age group that is female.
    """
    n_age: int
    contact: np.ndarray
    pop: np.ndarray
    beta0: float
    sigma: float
    gamma: float
    k_e: int = 1
    k_i: int = 1
    omega: float = 0.0
    mu: float = 0.0
    mu_i_extra: float = 0.0
    beta_schedule: Sequence[Tuple[float, float]] = field(default_factory=list)
    vacc_rate: Optional[np.ndarray] = None
    aging_rate_per_day: Optional[np.ndarray] = None
    fertility_per_day: Optional[np.ndarray] = None
    female_fraction: float = 0.5

    def __post_init__(self):
        """Normalise inputs to numpy and resolve the optional vectors."""
        # frozen dataclass: normalised values are stored with object.__setattr__
        _set = object.__setattr__
        if int(self.n_age) < 1:
            raise ConfigError("n_age must be >= 1")
        _set(self, "n_age", int(self.n_age))
        _set(self, "k_e", int(self.k_e))
        _set(self, "k_i", int(self.k_i))
        for name in ("beta0", "sigma", "gamma", "omega", "mu", "mu_i_extra", "female_fraction"):
            _set(self, name, float(getattr(self, name)))

        _set(self, "contact", _frozen(_as_matrix(self.contact, self.n_age)))
        _set(self, "pop", _frozen(_as_vector("pop", self.pop, self.n_age)))
        _set(self, "beta_schedule", tuple((float(tt), float(m)) for tt, m in self.beta_schedule))

        zeros = np.zeros(self.n_age)
        optional = {}
        for name in ("vacc_rate", "aging_rate_per_day", "fertility_per_day"):
            values = getattr(self, name)
            if values is not None:
                values = _frozen(_as_vector(name, values, self.n_age))
                _set(self, name, values)
            optional[name] = values if values is not None else zeros

        _set(self, "vacc", _frozen(optional["vacc_rate"].copy()))
        _set(self, "fertility", _frozen(optional["fertility_per_day"].copy()))
        # the oldest bin has nowhere to age into
        aging = optional["aging_rate_per_day"].copy()
        aging[-1] = 0.0
        _set(self, "aging_outflow", _frozen(aging.reshape(self.n_age, 1)))

        self.validate()

    @property
    def block_size(self) -> int:
        """Slots per age group: S, E1..Ek_e, I1..Ik_i, R."""
        return 1 + self.k_e + self.k_i + 1

    @property
    def state_size(self) -> int:
        return self.n_age * self.block_size

    def beta_at(self, t: float) -> float:
        """beta0 times the multiplier of the last schedule entry with time <= t."""
        current = self.beta0
        for tt, m in self.beta_schedule:
            if t >= tt:
                current = self.beta0 * m
            else:
                break
        return current

    def validate(self) -> None:
        """Raise ConfigError naming the first violated invariant."""
        n = self.n_age
        if self.contact.shape != (n, n):
            raise ConfigError("contact must be square n_age x n_age")
        if self.pop.shape != (n,):
            raise ConfigError("pop.len != n_age")
        for name in ("vacc_rate", "aging_rate_per_day", "fertility_per_day"):
            values = getattr(self, name)
            if values is None:
                continue
            if np.shape(values) != (n,):
                raise ConfigError(f"{name}.len != n_age")
            if not np.all(np.isfinite(values)):
                raise ConfigError(f"{name} must be finite")
            if np.any(np.asarray(values) < 0.0):
                raise ConfigError(f"{name} must be non-negative")
        for name in ("contact", "pop"):
            if not np.all(np.isfinite(getattr(self, name))):
                raise ConfigError(f"{name} must be finite")
        for name in ("beta0", "sigma", "gamma", "omega", "mu", "mu_i_extra", "female_fraction"):
            if not np.isfinite(getattr(self, name)):
                raise ConfigError(f"{name} must be finite")
        if not all(np.isfinite(tt) and np.isfinite(m) for tt, m in self.beta_schedule):
            raise ConfigError("beta_schedule entries must be finite")
        if self.k_e < 1 or self.k_i < 1:
            raise ConfigError("k_e and k_i must be >= 1")
        if self.mu < 0.0 or self.mu_i_extra < 0.0:
            raise ConfigError("mu and mu_i_extra must be >= 0")
        if self.sigma <= 0.0 or self.gamma <= 0.0:
            raise ConfigError("sigma and gamma must be > 0")
        if self.omega < 0.0:
            raise ConfigError("omega must be >= 0")
        if self.beta0 < 0.0:
            raise ConfigError("beta0 must be >= 0")
        if np.any(self.contact < 0.0):
            raise ConfigError("contact must be non-negative")
        if np.any(self.pop < 0.0):
            raise ConfigError("pop must be non-negative")
        if not 0.0 <= self.female_fraction <= 1.0:
            raise ConfigError("female_fraction must be in [0, 1]")
        times: List[float] = [tt for tt, _ in self.beta_schedule]
        if any(b < a for a, b in zip(times, times[1:])):
            raise ConfigError("beta_schedule times must be non-decreasing")

    def to_dict(self) -> dict:
        """Scalar parameters for logging and inspection."""
        return {
            'n_age': self.n_age,
            'k_e': self.k_e,
            'k_i': self.k_i,
            'sigma': self.sigma,
            'gamma': self.gamma,
            'omega': self.omega,
            'mu': self.mu,
            'mu_i_extra': self.mu_i_extra,
            'beta0': self.beta0,
            'beta_schedule': list(self.beta_schedule),
            'female_fraction': self.female_fraction,
            'total_population': float(self.pop.sum()),
        }


def validate(config: SEIRSConfig) -> None:
    """Check a configuration before simulating; raises ConfigError."""
    config.validate()
