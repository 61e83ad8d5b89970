"""
===========================================================
population.py
Author: Veronica Scerra
Last Updated: 2026-10-18
===========================================================

Description:
    Loaders for population-by-age vectors:
      - load_population_csv: a two-column file `age_group,pop`
        in file order.
      - load_age_pyramid_5yr: a long table of 5-year age bins
        (`iso3,year,age_bin,pop`) from a local path or URL,
        returned in AGE_BINS_5YR order for one country/year.

Notes:
    - Negative populations are clipped to 0.
    - A missing bin for the requested country/year is an error,
      never silently zero-filled.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import List, Tuple
import pandas as pd
import requests

logger = logging.getLogger(__name__)

AGE_BINS_5YR = (
    "0-4", "5-9", "10-14", "15-19", "20-24", "25-29", "30-34", "35-39",
    "40-44", "45-49", "50-54", "55-59", "60-64", "65-69", "70-74", "75-79",
    "80+",
)


def load_population_csv(path: str | Path) -> Tuple[List[str], List[float]]:
    """Return (labels, pops) from a CSV with columns age_group, pop."""
    df = _read_csv(path)
    for col in ("age_group", "pop"):
        if col not in df.columns:
            raise ValueError(f"Expected column '{col}' not found. Available: {list(df.columns)}")
    pops = pd.to_numeric(df["pop"], errors="coerce")
    if pops.isna().any():
        raise ValueError(f"Non-numeric population values in {path}")
    labels = df["age_group"].astype(str).str.strip().tolist()
    return labels, pops.clip(lower=0).astype(float).tolist()


def load_age_pyramid_5yr(
        source: str | Path,
        iso3: str,
        year: int,
        timeout_s: int = 30,
) -> Tuple[List[str], List[float]]:
    """
    Load a 5-year-binned age pyramid for one country and year.

    Parameters
    ----------
    source : str | Path
        Local CSV path or http(s) URL of the long table.
    iso3 : str
        Country code; matched case-insensitively.
    year : int

    Returns
    -------
    (labels, pops) ordered as AGE_BINS_5YR.
    """
    df = _read_csv(source, timeout_s=timeout_s)
    for col in ("iso3", "year", "age_bin", "pop"):
        if col not in df.columns:
            raise ValueError(f"Expected column '{col}' not found. Available: {list(df.columns)}")

    iso3 = iso3.upper()
    sub = df.loc[(df["iso3"].astype(str).str.upper() == iso3) & (df["year"] == year)]
    by_bin = dict(zip(sub["age_bin"].astype(str).str.strip(), pd.to_numeric(sub["pop"], errors="coerce")))

    labels, pops = [], []
    for b in AGE_BINS_5YR:
        v = by_bin.get(b)
        if v is None or pd.isna(v):
            raise ValueError(f"Missing age_bin '{b}' for iso3={iso3} year={year}")
        labels.append(b)
        pops.append(max(float(v), 0.0))
    logger.debug("loaded age pyramid iso3=%s year=%s total=%.0f", iso3, year, sum(pops))
    return labels, pops


def _read_csv(source: str | Path, timeout_s: int = 30) -> pd.DataFrame:
    """Read a CSV from a local path or URL; column names are stripped."""
    src = str(source)
    if not src.startswith(("http://", "https://")):
        p = Path(src)
        if not p.exists():
            raise FileNotFoundError(f"Population file not found: {p}")
        try:
            df = pd.read_csv(p)
        except pd.errors.EmptyDataError as e:
            raise ValueError(f"File exists but is empty: {p}") from e
    else:
        try:
            resp = requests.get(src, timeout=timeout_s)
        except requests.RequestException as e:
            raise RuntimeError(f"Failed to fetch URL: {src}\n{e}") from e
        if resp.status_code != 200:
            raise RuntimeError(f"HTTP {resp.status_code} fetching {src}")
        try:
            df = pd.read_csv(io.BytesIO(resp.content or b""))
        except pd.errors.EmptyDataError as e:
            raise RuntimeError("Response contained no CSV data.") from e
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df
