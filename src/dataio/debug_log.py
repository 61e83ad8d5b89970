"""
===========================================================
debug_log.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Writes a plain-text record of one SEIRS run to
    <out_dir>/seirs_<run_id>.txt:

        run_id=...
        iso3=...
        year=...
        seed_infections=...
        t_end_days=...
        dt_days=...

        t,population,infected,incidence_pct
        0.000000,1000,10,0.100000
        ...
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Sequence, Tuple

logger = logging.getLogger(__name__)

Series = Sequence[Tuple[float, float]]


def write_seirs_debug_log(
        out_dir: str | Path,
        run_id: str,
        iso3: str,
        year: int,
        seed_infections: float,
        t_end: float,
        dt: float,
        population: Series,
        infected: Series,
        incidence: Series,
) -> Path:
    """Write the run header and aligned timelines; returns the file path."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"seirs_{run_id}.txt"

    lines = [
        f"run_id={run_id}",
        f"iso3={iso3}",
        f"year={year}",
        f"seed_infections={seed_infections:.6f}",
        f"t_end_days={t_end:.6f}",
        f"dt_days={dt:.6f}",
        "",
        "t,population,infected,incidence_pct",
    ]
    for (t1, p), (t2, i), (t3, inc) in zip(population, infected, incidence):
        if abs(t1 - t2) >= 1e-9 or abs(t1 - t3) >= 1e-9:
            raise ValueError(f"timeline t mismatch at t={t1}")
        lines.append(f"{t1:.6f},{p:.0f},{i:.0f},{inc:.6f}")

    path.write_text("\n".join(lines) + "\n")
    logger.debug("wrote debug log %s (%d points)", path, len(lines) - 8)
    return path
