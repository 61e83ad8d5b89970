"""
===========================================================
summary.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Post-processing of SEIRS trajectories: compartment totals,
    tidy DataFrames, the population / infected / incidence
    timelines reported for each run, and headline statistics.

Example Usage:
    from seirs.summary import to_frame, summary
    df = to_frame(model.cfg, traj)
    stats = summary(df)

Notes:
    - Timelines round counts up (ceil), matching the series
      persisted for past runs.
    - incidence_pct is the infectious share of the current
      population, in percent.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import math
import numpy as np
import pandas as pd
from typing import Dict, List, Tuple

from .config import SEIRSConfig

COMPARTMENTS = ('S', 'E', 'I', 'R')

Timeline = List[Tuple[float, float]]


def totals_by_age(cfg: SEIRSConfig, y: np.ndarray) -> np.ndarray:
    """Array of shape (n_age, 4) with S, E, I, R per age group."""
    Y = np.asarray(y, dtype=float).reshape(cfg.n_age, cfg.block_size)
    k_e, k_i = cfg.k_e, cfg.k_i
    return np.column_stack([
        Y[:, 0],
        Y[:, 1:1 + k_e].sum(axis=1),
        Y[:, 1 + k_e:1 + k_e + k_i].sum(axis=1),
        Y[:, -1],
    ])


def totals(cfg: SEIRSConfig, y: np.ndarray) -> Tuple[float, float, float, float]:
    """(S, E, I, R) summed over age groups."""
    s, e, i, r = totals_by_age(cfg, y).sum(axis=0)
    return float(s), float(e), float(i), float(r)


def to_frame(cfg: SEIRSConfig, traj, by_age: bool = False, labels=None) -> pd.DataFrame:
    """
    Trajectory as a tidy DataFrame.

    Parameters
    ----------
    cfg : SEIRSConfig
    traj : list of (t, y)
    by_age : bool
        If True, one row per (t, age group) with an 'age' column.
    labels : sequence of str, optional
        Age-group labels used for the 'age' column.

    Returns
    -------
    pd.DataFrame with columns t, [age], S, E, I, R, N
    """
    if not by_age:
        records = []
        for t, y in traj:
            s, e, i, r = totals(cfg, y)
            records.append({'t': t, 'S': s, 'E': e, 'I': i, 'R': r})
        df = pd.DataFrame.from_records(records, columns=['t', *COMPARTMENTS])
    else:
        ages = list(labels) if labels is not None else list(range(cfg.n_age))
        if len(ages) != cfg.n_age:
            raise ValueError("labels must have one entry per age group")
        frames = []
        for t, y in traj:
            part = pd.DataFrame(totals_by_age(cfg, y), columns=list(COMPARTMENTS))
            part.insert(0, 'age', ages)
            part.insert(0, 't', t)
            frames.append(part)
        df = pd.concat(frames, ignore_index=True)
    df['N'] = df[list(COMPARTMENTS)].sum(axis=1)
    return df


def timelines(cfg: SEIRSConfig, traj) -> Dict[str, Timeline]:
    """Population, infected (ceil-rounded) and incidence_pct series as (t, value) pairs."""
    population: Timeline = []
    infected: Timeline = []
    incidence: Timeline = []
    for t, y in traj:
        s, e, i, r = totals(cfg, y)
        total = s + e + i + r
        population.append((t, float(math.ceil(total))))
        infected.append((t, float(math.ceil(i))))
        denom = max(total, 0.0)
        incidence.append((t, max(100.0 * i / denom, 0.0) if denom > 0.0 else 0.0))
    return {'population': population, 'infected': infected, 'incidence_pct': incidence}


def summary(df: pd.DataFrame) -> Dict[str, float]:
    """Peak timing and size, final recovered share, start/end population."""
    t, I, N = df['t'].to_numpy(), df['I'].to_numpy(), df['N'].to_numpy()
    N0 = N[0]
    peak_idx = int(np.argmax(I))
    return {
        "peak_day": float(t[peak_idx]),
        "peak_infectious": float(I[peak_idx]),
        "peak_prevalence": float(I[peak_idx] / N[peak_idx]) if N[peak_idx] > 0 else 0.0,
        "final_recovered_share": float(df['R'].iloc[-1] / N0) if N0 > 0 else 0.0,
        "start_population": float(N0),
        "end_population": float(N[-1]),
    }


def print_summary(stats: Dict[str, float]) -> None:
    """Print a short human-readable summary."""
    print("SEIRS SIMULATION RESULTS:")
    print(f"Start population: {stats['start_population']:,.0f}")
    print(f"End population: {stats['end_population']:,.0f}")
    print(f"Peak infectious: {stats['peak_infectious']:,.0f} on day {stats['peak_day']:.1f}")
    print(f"Peak prevalence: {stats['peak_prevalence'] * 100:.3f}%")
    print(f"Final recovered share: {stats['final_recovered_share'] * 100:.2f}%")
