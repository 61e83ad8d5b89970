"""
===========================================================
linalg.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Dominant-eigenvalue (spectral radius) estimation for
    non-negative square matrices such as age-contact matrices.

API:
    spectral_radius_power_iteration(A, max_iter, tol) -> float
    spectral_radius_eig(A) -> float

Notes:
    - Power iteration starts from the uniform vector 1/n and uses
      the Rayleigh quotient as the eigenvalue estimate.
    - spectral_radius_eig is a dense reference (scipy) used for
      diagnostics; it is O(n^3) and not used on the hot path.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from scipy import linalg as sla


def _as_square(a) -> np.ndarray:
    try:
        A = np.asarray(a, dtype=float)
    except ValueError as e:
        raise ValueError("matrix must be square (n x n)") from e
    if A.ndim != 2 or A.shape[0] == 0 or A.shape[0] != A.shape[1]:
        raise ValueError(f"matrix must be square and non-empty, got shape {A.shape}")
    return A


def spectral_radius_power_iteration(a, max_iter: int = 10_000, tol: float = 1e-10) -> float:
    """
    Approximate the spectral radius of a non-negative square matrix.

    Parameters
    ----------
    a : array-like, shape (n, n)
        Non-negative square matrix.
    max_iter : int
        Iteration budget.
    tol : float
        Stop once successive eigenvalue estimates differ by less than tol.

    Returns
    -------
    float
        Last Rayleigh-quotient estimate of the dominant eigenvalue.

    Raises
    ------
    ValueError
        If the matrix is empty or not square.
    """
    A = _as_square(a)
    n = A.shape[0]
    x = np.full(n, 1.0 / n)
    lambda_old = 0.0

    for _ in range(max_iter):
        y = A @ x
        den = float(x @ x)
        lam = float(y @ x) / den if den > 0.0 else 0.0

        norm = float(np.sqrt(y @ y))
        if norm > 0.0:
            x = y / norm
        if abs(lam - lambda_old) < tol:
            return lam
        lambda_old = lam
    return lambda_old


def spectral_radius_eig(a) -> float:
    """Exact spectral radius from the full eigen-decomposition (reference only)."""
    A = _as_square(a)
    return float(np.max(np.abs(sla.eigvals(A))))
