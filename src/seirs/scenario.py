"""
===========================================================
scenario.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    One-call "run a simulation" use case: take a population
    pyramid (and optionally a contact matrix), calibrate beta0
    from R0, seed infections proportionally to population,
    integrate, and return the population / infected timelines
    with a run id and series keys.

Example Usage:
    from dataio.population import load_population_csv
    from seirs.scenario import ScenarioParameters, run_scenario
    _, pop = load_population_csv("pop.csv")
    result = run_scenario(pop, params=ScenarioParameters(iso3="sur", t_end_days=180))

Notes:
    - Purely synchronous and CPU bound. Callers serving requests
      from an event loop should hand it to a worker thread.
    - Default disease parameters are placeholders for a slow,
      long-infectious-period pathogen (14-day exposed, 180-day
      infectious, R0 = 1.5) with baseline and excess mortality.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import logging
import time
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from dataio.contact import synthetic_contact_matrix
from dataio.debug_log import write_seirs_debug_log

from .calibration import calibrate_beta0
from .config import SEIRSConfig
from .model import SEIRSModel
from .summary import Timeline, timelines

logger = logging.getLogger(__name__)

SERIES_KINDS = ("population", "infected")


@dataclass
class ScenarioParameters:
    """
    Request-level parameters for a scenario run, with defaults.

    Out-of-range values are clamped in __post_init__ rather than
    rejected: negative seeds become 0, t_end_days is at least 1 day
    and dt_days at least 1e-6 days.
    """
    iso3: str = "SUR"
    year: int = 2025
    seed_infections: float = 10.0
    t_end_days: float = 365.0
    dt_days: float = 0.25

    # disease natural history (per day)
    sigma: float = 1.0 / 14.0
    gamma: float = 1.0 / 180.0
    r0: float = 1.5
    k_e: int = 1
    k_i: int = 1
    omega: float = 0.0
    mu: float = 0.008 / 365.0
    mu_i_extra: float = 0.02 / 365.0
    beta_schedule: List[Tuple[float, float]] = field(default_factory=lambda: [(0.0, 1.0)])

    def __post_init__(self):
        self.iso3 = self.iso3.upper()
        self.seed_infections = max(float(self.seed_infections), 0.0)
        self.t_end_days = max(float(self.t_end_days), 1.0)
        self.dt_days = max(float(self.dt_days), 1e-6)


@dataclass
class ScenarioResult:
    run_id: str
    iso3: str
    year: int
    beta0: float
    start_population: float
    end_population: float
    time: float
    seed: float
    population_timeline: Timeline
    infected_timeline: Timeline
    incidence_timeline: Timeline
    log_path: Optional[Path] = None

    @property
    def population_timeline_key(self) -> str:
        return series_key(self.run_id, "population")

    @property
    def infected_timeline_key(self) -> str:
        return series_key(self.run_id, "infected")

    def to_dict(self) -> Dict:
        return {
            'return_code': 0,
            'run_id': self.run_id,
            'iso3': self.iso3,
            'year': self.year,
            'start_population': self.start_population,
            'end_population': self.end_population,
            'time': self.time,
            'seed': self.seed,
            'population_timeline_key': self.population_timeline_key,
            'infected_timeline_key': self.infected_timeline_key,
        }


def series_key(run_id: str, kind: str) -> str:
    if kind not in SERIES_KINDS:
        raise ValueError(f"invalid kind: {kind}")
    return f"seirs:{run_id}:{kind}"


def parse_series_key(key: str) -> Tuple[str, str]:
    """Split 'seirs:<run_id>:<kind>' into (run_id, kind)."""
    parts = key.split(":")
    if len(parts) < 3 or parts[0] != "seirs":
        raise ValueError(f"invalid key: {key}")
    kind = parts[-1]
    if kind not in SERIES_KINDS:
        raise ValueError(f"invalid kind: {kind}")
    return ":".join(parts[1:-1]), kind


def proportional_seeding(pop: Sequence[float], total: float) -> np.ndarray:
    """Distribute `total` seed infections across age groups by population share."""
    pop = np.asarray(pop, dtype=float)
    total_pop = pop.sum()
    if total_pop <= 0.0:
        return np.zeros_like(pop)
    return total * (pop / total_pop)


def make_run_id(iso3: str, year: int) -> str:
    return f"{iso3}-{year}-{int(time.time() * 1000)}"


def build_config(pop: Sequence[float], contact, params: ScenarioParameters) -> SEIRSConfig:
    """Calibrated SEIRS configuration for a scenario."""
    pop = np.asarray(pop, dtype=float)
    n_age = pop.shape[0]
    contact = synthetic_contact_matrix(n_age) if contact is None else np.asarray(contact, dtype=float)
    beta0 = calibrate_beta0(contact, params.gamma, params.r0)
    return SEIRSConfig(
        n_age=n_age,
        contact=contact,
        pop=pop,
        beta0=beta0,
        sigma=params.sigma,
        gamma=params.gamma,
        k_e=params.k_e,
        k_i=params.k_i,
        omega=params.omega,
        mu=params.mu,
        mu_i_extra=params.mu_i_extra,
        beta_schedule=params.beta_schedule,
    )


def run_scenario(
        pop: Sequence[float],
        contact=None,
        params: Optional[ScenarioParameters] = None,
        log_dir: Optional[str | Path] = None,
        run_id: Optional[str] = None,
) -> ScenarioResult:
    """
    Run one scenario end to end.

    Parameters
    ----------
    pop : sequence of float
        Population per age group.
    contact : array-like, optional
        Contact matrix; a synthetic one is generated when omitted.
    params : ScenarioParameters, optional
    log_dir : path, optional
        If given, a seirs_<run_id>.txt debug log is written there.
    run_id : str, optional
        Defaults to '<ISO3>-<year>-<epoch millis>'.

    Returns
    -------
    ScenarioResult
    """
    params = params if params is not None else ScenarioParameters()
    run_id = run_id or make_run_id(params.iso3, params.year)

    cfg = build_config(pop, contact, params)
    model = SEIRSModel(cfg)
    logger.info("scenario %s: n_age=%d beta0=%.6g t_end=%.1f dt=%.4g",
                run_id, cfg.n_age, cfg.beta0, params.t_end_days, params.dt_days)

    state = model.initial_state(proportional_seeding(cfg.pop, params.seed_infections))
    traj = model.simulate_optimized(state, 0.0, params.t_end_days, params.dt_days)
    series = timelines(cfg, traj)

    population = series['population']
    start_population = population[0][1] if population else 0.0
    end_population = population[-1][1] if population else start_population

    log_path = None
    if log_dir is not None:
        log_path = write_seirs_debug_log(
            log_dir, run_id, params.iso3, params.year, params.seed_infections,
            params.t_end_days, params.dt_days,
            population, series['infected'], series['incidence_pct'],
        )
    logger.debug("scenario %s finished with %d points", run_id, len(traj))

    return ScenarioResult(
        run_id=run_id,
        iso3=params.iso3,
        year=params.year,
        beta0=cfg.beta0,
        start_population=start_population,
        end_population=end_population,
        time=params.t_end_days,
        seed=params.seed_infections,
        population_timeline=population,
        infected_timeline=series['infected'],
        incidence_timeline=series['incidence_pct'],
        log_path=log_path,
    )
