"""
===========================================================
expected_deaths.py
Author: Veronica Scerra
Last Updated: 2026-03-04
===========================================================

Description:
    Expected daily deaths given a CFR, a fixed onset-to-death
    delay distribution and the daily counts of symptom onsets.

    Defines:
        - delay_kernel(): Day-binned delay mass (convolution kernel).
        - expected_deaths_per_case(): Onsets convolved with the kernel.
        - expected_deaths(): The same, scaled by a CFR in [0, 1).
        - ExpectedDeathsModel: Class wrapper holding the delay distribution.

Example Usage:
    from cfrmodels.expected_deaths import ExpectedDeathsModel
    model = ExpectedDeathsModel(delay)
    mu = model.expected_deaths(0.05, onset_counts)

Notes:
    - A case with onset on day j dies on day i with probability
      cfr * P(i - j - 0.5 < D <= i - j + 0.5); contributions are
      summed over every onset day j <= i.
    - Output is linear in cfr, so cfr = 0 gives all zeros.
      cfr = 1 is rejected; use expected_deaths_per_case().
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import numpy as np
from typing import Dict, Sequence

from .delay import DelayDistribution
from .errors import DomainError


def _validate_cfr(cfr: float) -> float:
    cfr = float(cfr)
    if not 0.0 <= cfr < 1.0:  # also rejects NaN
        raise DomainError(f"cfr must lie in [0, 1), got {cfr}")
    return cfr


def validate_counts(counts: Sequence[float], name: str = "counts") -> np.ndarray:
    """Return `counts` as a 1-D float array, rejecting negative or non-finite entries"""
    arr = np.asarray(counts, dtype=float)
    if arr.ndim != 1:
        raise DomainError(f"{name} must be one-dimensional, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise DomainError(f"{name} must be finite")
    if np.any(arr < 0):
        raise DomainError(f"{name} must be >= 0, got minimum {arr.min():g}")
    return arr


def delay_kernel(delay: DelayDistribution, n_days: int) -> np.ndarray:
    """Probability of death d = 0..n_days-1 days after onset"""
    return delay.interval_mass(n_days)


def expected_deaths_per_case(delay: DelayDistribution, onset_counts: Sequence[float]) -> np.ndarray:
    """Expected deaths on each day if every case were fatal (the cfr = 1 profile)"""
    onsets = validate_counts(onset_counts, "onset_counts")
    n_days = onsets.size
    if n_days == 0:
        return np.zeros(0)
    return np.convolve(onsets, delay_kernel(delay, n_days))[:n_days]


def expected_deaths(cfr: float, delay: DelayDistribution, onset_counts: Sequence[float]) -> np.ndarray:
    """Expected number of deaths on each day of the onset series"""
    cfr = _validate_cfr(cfr)
    return cfr * expected_deaths_per_case(delay, onset_counts)


class ExpectedDeathsModel:
    def __init__(self, delay: DelayDistribution):
        self.delay = delay

    def kernel(self, n_days: int) -> np.ndarray:
        return delay_kernel(self.delay, n_days)

    def coverage(self, n_days: int) -> float:
        """Share of the delay distribution captured within n_days (0..n_days-1)"""
        return float(self.kernel(n_days).sum())

    def expected_deaths(self, cfr: float, onset_counts: Sequence[float]) -> np.ndarray:
        return expected_deaths(cfr, self.delay, onset_counts)

    @staticmethod
    def summary(expected: np.ndarray, observed: Sequence[float]) -> Dict[str, float]:
        observed = np.asarray(observed, dtype=float)
        residuals = observed - expected
        return {
            "expected_total": float(np.sum(expected)),
            "observed_total": float(np.sum(observed)),
            "max_abs_residual": float(np.max(np.abs(residuals))) if residuals.size else 0.0,
            "rmse": float(np.sqrt(np.mean(residuals**2))) if residuals.size else 0.0,
        }
