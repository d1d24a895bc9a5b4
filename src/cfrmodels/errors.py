"""
===========================================================
errors.py
Author: Veronica Scerra
Last Updated: 2026-03-02
===========================================================

Description:
    Exception and warning types raised by the CFR estimation
    engine.

Notes:
    - DomainError and InsufficientDataError are ValueErrors,
      FitConvergenceError is a RuntimeError, so callers that
      only know the builtin types still catch them.
-----------------------------------------------------------
License: MIT
===========================================================
"""


class CFRError(Exception):
    """Base class for errors raised while estimating the CFR"""


class DomainError(CFRError, ValueError):
    """Invalid numeric input (negative delay or count, CFR outside [0, 1], ...)"""


class InsufficientDataError(CFRError, ValueError):
    """Too few (or degenerate) observations to fit a model"""


class FitConvergenceError(CFRError, RuntimeError):
    """Optimizer did not converge or the likelihood is degenerate"""


class ConfidenceBoundWarning(UserWarning):
    """A confidence bound was reported at the edge of the search interval"""
