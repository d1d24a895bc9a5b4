"""
===========================================================
snapshots.py
Author: Veronica Scerra
Last Updated: 2026-03-11
===========================================================
Outbreak snapshots and batch CFR estimation

An outbreak snapshot is the table of daily symptom onsets and
deaths published on one report date. The SnapshotProcessor
runs the likelihood estimator on each snapshot in turn, with
the delay distribution held fixed, and collects a time series
of CFR estimates.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from datetime import date as Date
from typing import Dict, List, Literal, Optional, Sequence, Union

from .delay import DelayDistribution
from .errors import CFRError, DomainError, InsufficientDataError
from .expected_deaths import validate_counts
from .likelihood import CfrEstimate, CfrLikelihoodEstimator

OnError = Literal["raise", "record"]


@dataclass(frozen=True, eq=False)
class OutbreakSnapshot:
    """
    Daily onsets and deaths as reported on one date.

    Attributes:
    -----------
    report_date: date
        Date the data set was published
    begin_date: date
        Calendar date of day index 0
    cases: np.ndarray
        Cases by date of symptom onset
    deaths: np.ndarray
        Deaths by date of death (the series the CFR is fitted to)
    death_breakdown: dict
        Death columns as published, including the main one
        (used for stacked bar charts only)
    source: str
        File the snapshot was read from
    """

    report_date: Optional[Date]
    begin_date: Optional[Date]
    cases: np.ndarray
    deaths: np.ndarray
    death_breakdown: Dict[str, np.ndarray] = field(default_factory=dict)
    source: str = ""

    def __post_init__(self):
        cases = validate_counts(self.cases, "cases").copy()
        deaths = validate_counts(self.deaths, "deaths").copy()
        if cases.size != deaths.size:
            raise DomainError(
                f"cases and deaths differ in length ({cases.size} vs {deaths.size})"
            )
        if cases.size == 0:
            raise InsufficientDataError("A snapshot needs at least one day of data")
        cases.setflags(write=False)
        deaths.setflags(write=False)
        # frozen dataclass: bypass __setattr__ to store the validated copies
        object.__setattr__(self, "cases", cases)
        object.__setattr__(self, "deaths", deaths)

    @property
    def n_days(self) -> int:
        return int(self.cases.size)

    @property
    def n_cases(self) -> float:
        return float(self.cases.sum())

    @property
    def n_deaths(self) -> float:
        return float(self.deaths.sum())

    @property
    def crude_cfr(self) -> float:
        """Deaths / cases, without delay adjustment"""
        return self.n_deaths / self.n_cases if self.n_cases > 0 else np.nan

    @property
    def dates(self) -> pd.DatetimeIndex:
        if self.begin_date is None:
            raise ValueError("Snapshot has no begin_date")
        return pd.date_range(pd.Timestamp(self.begin_date), periods=self.n_days, freq="D")

    def onset_expansion(self) -> np.ndarray:
        """Day index of every case, repeated once per case"""
        return np.repeat(np.arange(self.n_days), self.cases.astype(int))

    def to_dataframe(self) -> pd.DataFrame:
        data = {"day": np.arange(self.n_days), "cases": self.cases, "deaths": self.deaths}
        if self.begin_date is not None:
            data = {"date": self.dates, **data}
        return pd.DataFrame(data)

    def summary(self) -> str:
        summary = f"""
            Snapshot: {self.report_date}
            {'='*50}
            Days: {self.n_days} (from {self.begin_date})
            Total cases: {self.n_cases:.0f}
            Total deaths: {self.n_deaths:.0f}
            """
        if self.n_cases > 0:
            summary += f"Crude CFR: {self.crude_cfr * 100:.1f}%\n"
        return summary


@dataclass(frozen=True)
class SnapshotFailure:
    """Marker left in the results when a snapshot could not be estimated"""
    date: Optional[Date]
    error: str


SnapshotResult = Union[CfrEstimate, SnapshotFailure]


class SnapshotProcessor:
    """Estimate the CFR for a sequence of snapshots with one fixed delay distribution.

    Parameters:
        delay: DelayDistribution. Fitted once from the line list, never refit
        on_error: str. 'raise' aborts the batch on the first failure (default);
            'record' stores a SnapshotFailure and carries on
        **estimator_kwargs: passed to CfrLikelihoodEstimator
    """

    def __init__(self, delay: DelayDistribution, on_error: OnError = "raise", **estimator_kwargs):
        if on_error not in ("raise", "record"):
            raise ValueError("on_error must be 'raise' or 'record'")
        self.delay = delay
        self.on_error = on_error
        self.estimator = CfrLikelihoodEstimator(delay, **estimator_kwargs)

    def process(self, snapshot: OutbreakSnapshot) -> CfrEstimate:
        return self.estimator.estimate(
            snapshot.cases, snapshot.deaths, date=snapshot.report_date
        )

    def process_all(self, snapshots: Sequence[OutbreakSnapshot]) -> List[SnapshotResult]:
        results: List[SnapshotResult] = []
        for snapshot in snapshots:
            try:
                results.append(self.process(snapshot))
            except CFRError as e:
                if self.on_error == "raise":
                    raise
                results.append(SnapshotFailure(snapshot.report_date, f"{type(e).__name__}: {e}"))
        return results


def estimates_to_frame(results: Sequence[SnapshotResult]) -> pd.DataFrame:
    """
    Tidy table of estimates, one row per snapshot, ascending by date.
    Failed snapshots have NaN estimates and a message in 'error'.
    """
    records = []
    for r in results:
        if isinstance(r, SnapshotFailure):
            records.append({
                "date": r.date, "mle": np.nan, "lower": np.nan, "upper": np.nan,
                "n_cases": np.nan, "n_deaths": np.nan, "error": r.error,
            })
        else:
            records.append({
                "date": r.date, "mle": r.mle, "lower": r.lower, "upper": r.upper,
                "n_cases": r.n_cases, "n_deaths": r.n_deaths, "error": None,
            })
    columns = ["date", "mle", "lower", "upper", "n_cases", "n_deaths", "error"]
    df = pd.DataFrame.from_records(records, columns=columns)
    if len(df):
        df["date"] = pd.to_datetime(df["date"])
    return df.sort_values("date", kind="stable").reset_index(drop=True)
