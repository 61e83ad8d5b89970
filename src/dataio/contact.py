"""
===========================================================
contact.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Age-contact matrices: a CSV loader and a synthetic
    generator for end-to-end runs while a country-specific
    matrix is sourced.

Notes:
    - The CSV loader skips the header row and any non-numeric
      cells (e.g. a leading label column); every remaining row
      must hold the same number of values as there are rows.
    - The synthetic matrix is symmetric with a strong diagonal:
        C[i][j] = 10 * exp(-0.7 * |i - j|) + 0.5
      It is not meant to be realistic.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import logging
from pathlib import Path
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def load_contact_matrix_csv(path: str | Path) -> np.ndarray:
    """Load a square contact matrix from CSV as an (n, n) float array."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Failed to open contact CSV: {p}")
    df = pd.read_csv(p, dtype=str, keep_default_na=False)

    rows = []
    for _, record in df.iterrows():
        vals = pd.to_numeric(record.str.strip(), errors="coerce").dropna()
        if len(vals) > 0:
            rows.append(vals.to_numpy(dtype=float))

    n = len(rows)
    if n == 0:
        raise ValueError("contact matrix empty or unparsable")
    if any(len(r) != n for r in rows):
        raise ValueError("contact matrix must be square (n x n)")
    logger.debug("loaded %dx%d contact matrix from %s", n, n, p)
    return np.vstack(rows)


def synthetic_contact_matrix(n_age: int) -> np.ndarray:
    """Symmetric synthetic contact matrix with exponential decay off the diagonal."""
    idx = np.arange(n_age)
    d = np.abs(idx[:, None] - idx[None, :]).astype(float)
    return 10.0 * np.exp(-0.7 * d) + 0.5
