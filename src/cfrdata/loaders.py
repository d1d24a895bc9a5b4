"""
===========================================================
loaders.py
Author: Veronica Scerra
Last Updated: 2026-03-13
===========================================================

Description:
    Loaders for outbreak snapshots: one CSV per report date
    with daily symptom onsets and deaths among exported cases
    (WHO situation reports, ECDC, media).

Notes:
    - The report date is the 8-digit YYYYMMDD group in the
      file name, e.g. ncov_cases_20200221.csv.
    - begin_date is the first row's date (ISO, year first).
    - Only the deaths column enters the likelihood. Further
      death columns (e.g. by source) are kept for plotting.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence
import pandas as pd

from cfrmodels.snapshots import OutbreakSnapshot

REPORT_DATE_PATTERN = re.compile(r"(?<!\d)(\d{8})(?!\d)")


@dataclass
class SnapshotConfig:
    pattern: str = "ncov_cases"     # substring every snapshot file name contains
    date_col: str = "date"
    cases_col: str = "cases"
    deaths_col: str = "deaths"
    # death columns shown next to deaths_col in the stacked plot; never estimated from.
    # None = numeric columns after cases whose name contains "death"
    extra_death_cols: Optional[Sequence[str]] = None


def parse_report_date(filename: str | Path) -> pd.Timestamp:
    """Report date encoded as YYYYMMDD in a snapshot file name"""
    name = Path(filename).name
    match = REPORT_DATE_PATTERN.search(name)
    if match is None:
        raise ValueError(f"No 8-digit report date in file name: {name}")
    return pd.to_datetime(match.group(1), format="%Y%m%d")


def list_snapshot_files(data_dir: str | Path, config: SnapshotConfig = SnapshotConfig()) -> List[Path]:
    """Snapshot CSVs in data_dir, ascending by report date"""
    data_dir = Path(data_dir)
    files = [
        p for p in data_dir.iterdir()
        if p.is_file() and config.pattern in p.name and p.suffix.lower() == ".csv"
    ]
    return sorted(files, key=parse_report_date)


def _death_columns(df: pd.DataFrame, config: SnapshotConfig) -> List[str]:
    """deaths_col followed by any other death columns kept for plotting"""
    if config.extra_death_cols is not None:
        return [config.deaths_col, *config.extra_death_cols]
    cols = list(df.columns)
    after_cases = cols[cols.index(config.cases_col) + 1:]
    extra = [
        c for c in after_cases
        if c != config.deaths_col and "death" in c.lower() and pd.api.types.is_numeric_dtype(df[c])
    ]
    return [config.deaths_col, *extra]


def load_snapshot(path: str | Path, config: SnapshotConfig = SnapshotConfig()) -> OutbreakSnapshot:
    """
    Read one snapshot CSV into an OutbreakSnapshot.

    Expected columns:
        date        (first row gives begin_date)
        cases       daily cases by onset date
        deaths      daily deaths used for estimation
        *death*     optional further death columns (plotting only)
    """
    path = Path(path)
    try:
        df = pd.read_csv(path)
    except pd.errors.EmptyDataError as e:
        raise RuntimeError(f"File exists but is empty: {path}") from e
    df.columns = pd.Index([str(c).strip() for c in df.columns])

    for col in (config.date_col, config.cases_col, config.deaths_col):
        if col not in df.columns:
            raise KeyError(f"Expected column '{col}' not found in {path.name}. Available: {list(df.columns)}")

    death_cols = _death_columns(df, config)
    counts = df[[config.cases_col, *death_cols]].fillna(0)
    breakdown = {c: counts[c].to_numpy(dtype=float) for c in death_cols}

    return OutbreakSnapshot(
        report_date=parse_report_date(path),
        begin_date=pd.to_datetime(df[config.date_col].iloc[0]) if len(df) else None,
        cases=counts[config.cases_col].to_numpy(dtype=float),
        deaths=counts[config.deaths_col].to_numpy(dtype=float),
        death_breakdown=breakdown if len(death_cols) > 1 else {},
        source=str(path),
    )


def load_snapshots(data_dir: str | Path, config: SnapshotConfig = SnapshotConfig()) -> List[OutbreakSnapshot]:
    """Every snapshot in data_dir, ascending by report date"""
    return [load_snapshot(p, config) for p in list_snapshot_files(data_dir, config)]
