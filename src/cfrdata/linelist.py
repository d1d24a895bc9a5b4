"""
===========================================================
linelist.py
Author: Veronica Scerra
Last Updated: 2026-03-13
===========================================================

Description:
   Read an individual-level line list (one row per fatal case
   with symptom onset and death dates) and turn it into the
   onset-to-death delays used to fit the delay distribution.

Notes:
    - Dates are parsed day-first by default (e.g. 24/01/2020).
    - Rows with a missing or unparseable onset or death date
      are dropped (and counted in a warning).
    - Negative delays are kept unless `drop_negative` is set,
      so the fitter can reject them.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import io
import warnings
from dataclasses import dataclass
from pathlib import Path
import numpy as np
import pandas as pd
import requests

@dataclass
class LineListConfig:
    """
    Configuration for line-list preprocessing
    """
    onset_col: str = "Onset"
    death_col: str = "Death"
    # R's dmy(): day-first dates
    dayfirst: bool = True
    # drop rows where death precedes onset instead of passing them on
    drop_negative: bool = False
    # networking
    timeout_s: int = 30


# Linton et al. (2020), supplementary tables S1/S2
LINTON = LineListConfig(onset_col="Onset", death_col="Death")
# Imperial College London, early deaths in Hubei
IMPERIAL = LineListConfig(onset_col="date_onset", death_col="date_death")

# ---- Public API -----------------------------------------------------------

def load_delay_samples(
    source: str | Path,
    config: LineListConfig = LINTON,
) -> np.ndarray:
    """
    Load a line list and return onset-to-death delays in days.

    Parameters
    ----------
    source : str | Path
        File path or URL of the line-list CSV.
    config : LineListConfig
        Column names and parsing options.

    Returns
    -------
    np.ndarray
        Delays (float, days) for every row with both dates present.
    """
    df = _read_csv_robust(source, config)
    pairs = _extract_date_pairs(df, config)
    delays = (pairs["death"] - pairs["onset"]).dt.days.astype(float)
    if config.drop_negative:
        n_negative = int((delays < 0).sum())
        if n_negative:
            warnings.warn(f"Dropped {n_negative} rows with death before onset in {source}")
        delays = delays[delays >= 0]
    return delays.to_numpy()


def load_linelist(source: str | Path, config: LineListConfig = LINTON) -> pd.DataFrame:
    """Line list reduced to 'onset', 'death' and 'delay' columns"""
    df = _read_csv_robust(source, config)
    pairs = _extract_date_pairs(df, config)
    pairs["delay"] = (pairs["death"] - pairs["onset"]).dt.days.astype(float)
    return pairs.reset_index(drop=True)

# ---------- Robust CSV loader ----------------------------------------------

def _read_csv_robust(source: str | Path, cfg: LineListConfig) -> pd.DataFrame:
    """
    Read CSV from local path or URL.
    """
    src = str(source)

    p = Path(src)
    if p.exists():
        try:
            df = pd.read_csv(p)
            return _standardize_columns(df)
        except pd.errors.EmptyDataError as e:
            raise RuntimeError(f"File exists but is empty: {p}") from e

    if not src.startswith(("http://", "https://")):
        raise FileNotFoundError(f"Line list not found: {src}")

    headers = {"User-Agent": "Mozilla/5.0 (cfr-linelist)"}
    try:
        resp = requests.get(src, headers=headers, timeout=cfg.timeout_s)
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to fetch URL: {src}\n{e}") from e

    if resp.status_code != 200:
        raise RuntimeError(f"HTTP {resp.status_code} fetching {src}")

    try:
        df = pd.read_csv(io.BytesIO(resp.content or b""))
    except pd.errors.EmptyDataError as e:
        raise RuntimeError("Response contained no CSV data.") from e

    return _standardize_columns(df)

# ---- Internal helpers -----------------------------------------------------

def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def _find_col(columns, expected_name: str) -> str:
    """
    Tolerant column lookup (exact, then case/space-insensitive).
    """
    names = [str(c) for c in columns]
    for name in names:
        if name == expected_name:
            return name
    exp = expected_name.strip().lower()
    for name in names:
        if name.strip().lower() == exp:
            return name
    raise KeyError(f"Expected column '{expected_name}' not found. Available: {names}")


def _extract_date_pairs(df: pd.DataFrame, cfg: LineListConfig) -> pd.DataFrame:
    onset_col = _find_col(df.columns, cfg.onset_col)
    death_col = _find_col(df.columns, cfg.death_col)

    pairs = pd.DataFrame({
        "onset": pd.to_datetime(df[onset_col], dayfirst=cfg.dayfirst, errors="coerce"),
        "death": pd.to_datetime(df[death_col], dayfirst=cfg.dayfirst, errors="coerce"),
    })

    # Drop incomplete rows
    n_before = len(pairs)
    pairs = pairs.dropna(subset=["onset", "death"]).copy()
    n_dropped = n_before - len(pairs)
    if n_dropped:
        warnings.warn(f"Dropped {n_dropped} of {n_before} line-list rows with missing dates")
    return pairs
