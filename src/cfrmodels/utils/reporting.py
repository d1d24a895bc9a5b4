"""
===========================================================
reporting.py
Author: Veronica Scerra
Last Updated: 2026-03-16
===========================================================
Result tables for the CFR analysis

Turns fitted delay distributions and CFR estimates into
pandas tables and writes them to disk (CSV for reading,
pickle to keep dtypes for later sessions).
"""
import pandas as pd
from pathlib import Path
from typing import Dict, Tuple

from ..delay import DelayDistribution


def delay_fits_table(fits: Dict[str, Tuple[DelayDistribution, Dict]]) -> pd.DataFrame:
    """One row per line list: gamma parameters, mean/median and fit diagnostics"""
    records = []
    for name, (delay, info) in fits.items():
        records.append({
            "source": name,
            **delay.summary(),
            "n_samples": info.get("n_samples"),
            "log_likelihood": info.get("log_likelihood"),
            "AIC": info.get("AIC"),
        })
    return pd.DataFrame.from_records(records)


def save_estimates(estimates: pd.DataFrame, out_dir: str | Path, stem: str = "cfr") -> Dict[str, Path]:
    """Write the estimate table as <stem>.csv and <stem>.pkl; returns the paths"""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {"csv": out_dir / f"{stem}.csv", "pickle": out_dir / f"{stem}.pkl"}
    estimates.to_csv(paths["csv"], index=False, date_format="%Y-%m-%d")
    estimates.to_pickle(paths["pickle"])
    return paths


def load_estimates(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix == ".pkl":
        return pd.read_pickle(path)
    return pd.read_csv(path, parse_dates=["date"])


def format_estimates(estimates: pd.DataFrame) -> str:
    """Plain-text table with the CFR and its interval in percent"""
    rows = []
    for _, r in estimates.iterrows():
        date = pd.Timestamp(r["date"]).strftime("%Y-%m-%d") if pd.notna(r["date"]) else "-"
        if pd.isna(r["mle"]):
            rows.append(f"{date}  failed: {r.get('error')}")
        else:
            rows.append(
                f"{date}  CFR {r['mle'] * 100:5.1f}%  "
                f"({r['lower'] * 100:.1f}% - {r['upper'] * 100:.1f}%)"
            )
    return "\n".join(rows)
