"""
===========================================================
likelihood.py
Author: Veronica Scerra
Last Updated: 2026-03-09
===========================================================

Description:
    Maximum-likelihood estimate of the case fatality ratio
    (CFR) for one outbreak snapshot. Observed daily deaths are
    Poisson with mean given by the expected-deaths model; the
    CFR is optimised on the logit scale and its confidence
    interval is mapped back through the logistic transform.

Example Usage:
    from cfrmodels.likelihood import CfrLikelihoodEstimator
    estimator = CfrLikelihoodEstimator(delay)
    est = estimator.estimate(cases, deaths, date=report_date)
    est.mle, est.lower, est.upper

Notes:
    - Search: coarse grid over x in [-100, 100], then bounded
      Brent refinement around the best grid point.
    - Intervals: profile likelihood (default) or Wald.
    - The delay distribution is fixed; nothing is stored on the
      estimator between calls, so one instance can serve every
      snapshot.
-----------------------------------------------------------
License: MIT
===========================================================
"""
from __future__ import annotations
import warnings
import numpy as np
from dataclasses import asdict, dataclass, replace
from datetime import date as Date
from typing import Callable, Dict, Literal, Optional, Sequence, Tuple
from scipy.optimize import brentq, minimize_scalar
from scipy.special import expit, gammaln, xlogy
from scipy.special import logit as _logit
from scipy.stats import chi2, norm

from .delay import DelayDistribution
from .errors import (
    ConfidenceBoundWarning,
    DomainError,
    FitConvergenceError,
    InsufficientDataError,
)
from .expected_deaths import expected_deaths_per_case, validate_counts

CIMethod = Literal["profile", "wald"]

_PENALTY = 1e10


def logistic(x):
    """1 / (1 + exp(-x))"""
    return expit(x)


def logit(p):
    """log(p / (1 - p))"""
    return _logit(p)


@dataclass(frozen=True)
class CfrEstimate:
    date: Optional[Date]
    mle: float
    lower: float
    upper: float
    n_cases: Optional[float] = None
    n_deaths: Optional[float] = None
    neg_log_likelihood: Optional[float] = None
    method: str = "profile"

    def __post_init__(self):
        if not 0.0 <= self.lower <= self.mle <= self.upper <= 1.0:
            raise DomainError(
                f"Estimate must satisfy 0 <= lower <= mle <= upper <= 1, "
                f"got ({self.lower}, {self.mle}, {self.upper})"
            )

    def with_date(self, date: Optional[Date]) -> "CfrEstimate":
        return replace(self, date=date)

    def to_dict(self) -> Dict:
        return asdict(self)


def poisson_negative_log_likelihood(expected: np.ndarray, observed: np.ndarray) -> float:
    """Poisson NLL of `observed` given means `expected`.

    Uses k*log(mu) - mu - lgamma(k + 1), which equals the Poisson log-pmf at
    integer k and extends it smoothly to non-integer counts.
    """
    ll = xlogy(observed, expected) - expected - gammaln(observed + 1.0)
    return -float(np.sum(ll))


class CfrLikelihoodEstimator:
    """Single-parameter Poisson likelihood for the CFR given a fixed delay distribution.

    Parameters:
        delay: DelayDistribution. Onset-to-death distribution (held fixed)
        confidence_level: float. Coverage of the reported interval (default 0.95)
        ci_method: str. 'profile' (likelihood-ratio) or 'wald' (observed information)
        bounds: tuple. Search interval for x = logit(cfr)
        grid_size: int. Number of grid points for the coarse search
        xtol: float. Absolute tolerance on x for Brent refinement and interval roots
    """

    def __init__(
            self,
            delay: DelayDistribution,
            confidence_level: float = 0.95,
            ci_method: CIMethod = "profile",
            bounds: Tuple[float, float] = (-100.0, 100.0),
            grid_size: int = 201,
            xtol: float = 1e-8,
    ):
        if not 0.0 < confidence_level < 1.0:
            raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")
        if ci_method not in ("profile", "wald"):
            raise ValueError("ci_method must be 'profile' or 'wald'")
        if not bounds[0] < bounds[1]:
            raise ValueError(f"bounds must be increasing, got {bounds}")
        if grid_size < 3:
            raise ValueError("grid_size must be >= 3")
        self.delay = delay
        self.confidence_level = confidence_level
        self.ci_method = ci_method
        self.bounds = (float(bounds[0]), float(bounds[1]))
        self.grid_size = grid_size
        self.xtol = xtol

    def _prepare(
            self,
            onset_counts: Sequence[float],
            observed_deaths: Sequence[float],
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Validate inputs; return onsets, deaths and expected deaths per unit CFR"""
        onsets = validate_counts(onset_counts, "onset_counts")
        deaths = validate_counts(observed_deaths, "observed_deaths")
        if onsets.size != deaths.size:
            raise DomainError(
                f"onset_counts and observed_deaths differ in length "
                f"({onsets.size} vs {deaths.size})"
            )
        if onsets.size == 0:
            raise InsufficientDataError("Need at least one day of data")
        # expected deaths are linear in cfr: compute the convolution once
        base = expected_deaths_per_case(self.delay, onsets)
        return onsets, deaths, base

    def negative_log_likelihood(
            self,
            x: float,
            onset_counts: Sequence[float],
            observed_deaths: Sequence[float],
    ) -> float:
        """Poisson NLL at x = logit(cfr); may be +inf"""
        _, deaths, base = self._prepare(onset_counts, observed_deaths)
        return poisson_negative_log_likelihood(logistic(x) * base, deaths)

    @staticmethod
    def _objective(base: np.ndarray, deaths: np.ndarray) -> Callable[[float], float]:
        def nll(x: float) -> float:
            value = poisson_negative_log_likelihood(logistic(x) * base, deaths)
            if not np.isfinite(value):
                return _PENALTY
            return value
        return nll

    def _minimize(self, objective: Callable[[float], float]) -> Tuple[float, float]:
        lo, hi = self.bounds
        grid = np.linspace(lo, hi, self.grid_size)
        values = np.array([objective(x) for x in grid])
        k = int(np.argmin(values))

        # refine within the grid cells either side of the best point
        a = grid[max(k - 1, 0)]
        b = grid[min(k + 1, grid.size - 1)]
        res = minimize_scalar(
            objective,
            bounds=(a, b),
            method="bounded",
            options={"xatol": self.xtol, "maxiter": 500},
        )
        if not res.success:
            raise FitConvergenceError(f"Brent search did not converge: {res.message}")

        x_hat, f_hat = float(res.x), float(res.fun)
        if values[k] < f_hat:
            x_hat, f_hat = float(grid[k]), float(values[k])
        return x_hat, f_hat

    def _profile_bound(self, g: Callable[[float], float], x_hat: float, edge: float) -> float:
        if g(edge) <= 0:
            warnings.warn(
                f"Profile likelihood stays within the {self.confidence_level:.0%} threshold "
                f"up to x = {edge:g}; reporting the search bound",
                ConfidenceBoundWarning,
                stacklevel=4,
            )
            return edge
        a, b = sorted((x_hat, edge))
        return float(brentq(g, a, b, xtol=self.xtol))

    def _profile_interval(
            self,
            objective: Callable[[float], float],
            x_hat: float,
            nll_min: float,
    ) -> Tuple[float, float]:
        threshold = nll_min + chi2.ppf(self.confidence_level, df=1) / 2.0

        def g(x: float) -> float:
            return objective(x) - threshold

        lower = self._profile_bound(g, x_hat, self.bounds[0])
        upper = self._profile_bound(g, x_hat, self.bounds[1])
        return lower, upper

    def _wald_interval(self, objective: Callable[[float], float], x_hat: float) -> Tuple[float, float]:
        lo, hi = self.bounds
        if x_hat - lo <= self.xtol or hi - x_hat <= self.xtol:
            raise FitConvergenceError(
                f"MLE sits on the search bound x = {x_hat:g}; "
                "Wald interval is undefined (use ci_method='profile')"
            )
        h = 1e-4 * max(1.0, abs(x_hat))
        info = (objective(x_hat + h) - 2.0 * objective(x_hat) + objective(x_hat - h)) / h**2
        if not np.isfinite(info) or info <= 0:
            raise FitConvergenceError(
                f"Observed information is not positive at x = {x_hat:g}; "
                "Wald interval is undefined"
            )
        se = 1.0 / np.sqrt(info)
        z = norm.ppf(0.5 + self.confidence_level / 2.0)
        x_lower, x_upper = x_hat - z * se, x_hat + z * se
        if x_lower < lo or x_upper > hi:
            raise FitConvergenceError(
                f"Wald interval ({x_lower:g}, {x_upper:g}) leaves the search bounds {self.bounds}"
            )
        return x_lower, x_upper

    def estimate(
            self,
            onset_counts: Sequence[float],
            observed_deaths: Sequence[float],
            date: Optional[Date] = None,
    ) -> CfrEstimate:
        """Fit the CFR to one snapshot.

        Parameters:
        onset_counts: sequence. Daily number of cases by onset date
        observed_deaths: sequence. Daily number of deaths (same length)
        date: date, optional. Report date stored on the estimate

        Returns:
        estimate: CfrEstimate. MLE and confidence bounds on the probability scale

        Raises:
        DomainError: negative/non-finite counts or mismatched lengths
        InsufficientDataError: empty series
        FitConvergenceError: unidentifiable CFR, failed optimisation, or (Wald)
            an MLE on the search bound
        """
        onsets, deaths, base = self._prepare(onset_counts, observed_deaths)
        if onsets.sum() == 0:
            raise FitConvergenceError("CFR is unidentifiable: the snapshot contains no case onsets")

        objective = self._objective(base, deaths)
        x_hat, nll_min = self._minimize(objective)
        if nll_min >= _PENALTY:
            raise FitConvergenceError(
                "Likelihood is degenerate: deaths are reported on days "
                "with no expected deaths for any CFR"
            )

        if self.ci_method == "profile":
            x_lower, x_upper = self._profile_interval(objective, x_hat, nll_min)
        else:
            x_lower, x_upper = self._wald_interval(objective, x_hat)

        return CfrEstimate(
            date=date,
            mle=float(logistic(x_hat)),
            lower=float(logistic(x_lower)),
            upper=float(logistic(x_upper)),
            n_cases=float(onsets.sum()),
            n_deaths=float(deaths.sum()),
            neg_log_likelihood=nll_min,
            method=self.ci_method,
        )
