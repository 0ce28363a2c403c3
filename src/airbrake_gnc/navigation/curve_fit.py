"""
===============================================================================
AIRBRAKE GNC - Deceleration Curve Fitter
===============================================================================
Nonlinear least-squares fit of the coast-phase deceleration model

    a(t) = A * (1 - B t)^4

to the buffered ``(t, a)`` samples.  Quadratic-drag-dominated ballistic coast
produces a monotonically flattening deceleration curve that this quartic
decay follows closely with only two free parameters, so the fit is cheap
enough to repeat on every physics step.

Algorithm
---------
Levenberg-Marquardt on the 2x2 normal equations:

    (J^T J + lambda I) delta = J^T r

    dF/dA = (1 - B t)^4
    dF/dB = -4 A t (1 - B t)^3

A step is accepted only when it lowers the residual sum of squares (RSS);
lambda shrinks on acceptance and grows on rejection.  After every step the
parameters are projected onto A <= 0 (net deceleration) and B >= 0.  The
loop stops once the projected step falls below a fixed tolerance or after a
fixed number of iterations, so each call has a bounded cost.

Parameter uncertainty
---------------------
    cov = sigma^2 (J^T J)^-1,   sigma^2 = RSS / (n - 2)

The square roots of the diagonal are the 1-sigma uncertainties of A and B.

References:
  Marquardt, D.W. "An Algorithm for Least-Squares Estimation of Nonlinear
  Parameters", SIAM J. Appl. Math. 11(2), 1963.
===============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from airbrake_gnc.core.constants import (
    DECAY_RATE_EPSILON,
    FIT_MAX_ITERATIONS,
    FIT_SINGULAR_DETERMINANT,
    FIT_STEP_TOLERANCE,
    LM_DAMPING_DECREASE,
    LM_DAMPING_INCREASE,
    LM_INITIAL_DAMPING,
    LM_MAX_DAMPING,
    LM_MIN_DAMPING,
)

logger = logging.getLogger(__name__)


class FitStatus(Enum):
    """Outcome of a single fit attempt."""
    CONVERGED = "converged"
    ITERATION_LIMIT = "iteration_limit"
    SINGULAR = "singular"
    NON_FINITE = "non_finite"
    INSUFFICIENT_DATA = "insufficient_data"

    @property
    def succeeded(self) -> bool:
        return self in (FitStatus.CONVERGED, FitStatus.ITERATION_LIMIT)


@dataclass(frozen=True)
class CurveFit:
    """Fitted decay-model parameters and their 1-sigma uncertainties.

    Attributes
    ----------
    a : float
        Amplitude A (m/s^2), always <= 0.
    b : float
        Decay rate B (1/s), always >= 0.
    sigma_a, sigma_b : float
        1-sigma parameter uncertainties.
    sample_count : int
        Number of samples the fit was computed from.
    rss : float
        Residual sum of squares at the solution.
    iterations : int
        LM iterations used.
    """
    a: float
    b: float
    sigma_a: float
    sigma_b: float
    sample_count: int
    rss: float = 0.0
    iterations: int = 0

    def relative_uncertainty(self) -> float:
        """max(sigma_A / |A|, sigma_B / max(B, eps)); inf when A == 0."""
        if self.a == 0.0:
            return float("inf")
        rel_a = self.sigma_a / abs(self.a)
        rel_b = self.sigma_b / max(self.b, DECAY_RATE_EPSILON)
        return max(rel_a, rel_b)

    def acceleration(self, t):
        """Evaluate the fitted model at time(s) ``t``."""
        return decay_model(np.asarray(t, dtype=float), self.a, self.b)


# -----------------------------------------------------------------------------
# Model and partial derivatives
# -----------------------------------------------------------------------------

def decay_model(t: np.ndarray, a: float, b: float) -> np.ndarray:
    """a(t) = A (1 - B t)^4"""
    u = 1.0 - b * t
    u2 = u * u
    return a * u2 * u2


def decay_jacobian(t: np.ndarray, a: float, b: float) -> Tuple[np.ndarray, np.ndarray]:
    """Analytic partials (dF/dA, dF/dB) of the decay model."""
    u = 1.0 - b * t
    u3 = u * u * u
    return u3 * u, -4.0 * a * t * u3


def _project(a: float, b: float) -> Tuple[float, float]:
    return min(a, 0.0), max(b, 0.0)


def _solve_2x2(m11: float, m12: float, m22: float,
               g1: float, g2: float) -> Optional[Tuple[float, float]]:
    """Solve the symmetric system [[m11, m12], [m12, m22]] x = g.

    Returns None when the determinant is negligible relative to the
    diagonal product.
    """
    det = m11 * m22 - m12 * m12
    scale = abs(m11 * m22)
    if not np.isfinite(det) or abs(det) <= FIT_SINGULAR_DETERMINANT * max(scale, 1.0):
        return None
    return (m22 * g1 - m12 * g2) / det, (m11 * g2 - m12 * g1) / det


# -----------------------------------------------------------------------------
# Fitter
# -----------------------------------------------------------------------------

class DecayCurveFitter:
    """
    Damped Gauss-Newton fitter for a(t) = A (1 - B t)^4.

    Parameters
    ----------
    max_iterations : int
        Hard cap on LM iterations per call.
    tolerance : float
        Convergence threshold on |dA| + |dB| of the projected step.
    initial_damping : float
        Starting Levenberg-Marquardt lambda.
    """

    def __init__(self, max_iterations: int = FIT_MAX_ITERATIONS,
                 tolerance: float = FIT_STEP_TOLERANCE,
                 initial_damping: float = LM_INITIAL_DAMPING):
        self.max_iterations = max(1, int(max_iterations))
        self.tolerance = float(tolerance)
        self.initial_damping = float(initial_damping)

    def fit(self, times, accels, a0: float, b0: float
            ) -> Tuple[Optional[CurveFit], FitStatus]:
        """
        Fit the decay model to ``(times, accels)`` starting from (a0, b0).

        Parameters
        ----------
        times : array_like (n,)
            Cumulative coast time of each sample (s).
        accels : array_like (n,)
            Vertical acceleration including gravity (m/s^2).
        a0, b0 : float
            Initial guess; projected onto A <= 0, B >= 0 before iterating.

        Returns
        -------
        fit : CurveFit or None
            The solution, or None when the attempt failed.  Callers keep
            their previous fit on failure.
        status : FitStatus
        """
        t = np.asarray(times, dtype=float)
        y = np.asarray(accels, dtype=float)
        n = t.size
        if n < 3 or y.size != n:
            return None, FitStatus.INSUFFICIENT_DATA

        a, b = _project(float(a0), float(b0))
        lam = self.initial_damping
        status = FitStatus.ITERATION_LIMIT
        iterations = 0

        with np.errstate(over="ignore", invalid="ignore"):
            r = y - decay_model(t, a, b)
            rss = float(r @ r)
            if not np.isfinite(rss):
                logger.debug("Fit aborted: non-finite residual at the initial guess")
                return None, FitStatus.NON_FINITE

            for iterations in range(1, self.max_iterations + 1):
                j_a, j_b = decay_jacobian(t, a, b)
                j11 = float(j_a @ j_a)
                j12 = float(j_a @ j_b)
                j22 = float(j_b @ j_b)
                g1 = float(j_a @ r)
                g2 = float(j_b @ r)

                step = _solve_2x2(j11 + lam, j12, j22 + lam, g1, g2)
                if step is None:
                    logger.debug("Fit aborted: singular normal equations (iter %d)", iterations)
                    return None, FitStatus.SINGULAR

                a_new, b_new = _project(a + step[0], b + step[1])
                r_new = y - decay_model(t, a_new, b_new)
                rss_new = float(r_new @ r_new)
                if not np.isfinite(rss_new):
                    logger.debug("Fit aborted: non-finite residual (iter %d)", iterations)
                    return None, FitStatus.NON_FINITE

                moved = abs(a_new - a) + abs(b_new - b)
                if rss_new < rss:
                    a, b, r, rss = a_new, b_new, r_new, rss_new
                    lam = max(LM_MIN_DAMPING, lam * LM_DAMPING_DECREASE)
                else:
                    lam = min(LM_MAX_DAMPING, lam * LM_DAMPING_INCREASE)

                if moved < self.tolerance:
                    status = FitStatus.CONVERGED
                    break

            sigmas = self._uncertainties(t, a, b, rss)
        if sigmas is None:
            logger.debug("Fit rejected: singular covariance at A=%.4f B=%.6f", a, b)
            return None, FitStatus.SINGULAR

        return CurveFit(a=a, b=b, sigma_a=sigmas[0], sigma_b=sigmas[1],
                        sample_count=n, rss=rss, iterations=iterations), status

    @staticmethod
    def _uncertainties(t: np.ndarray, a: float, b: float,
                       rss: float) -> Optional[Tuple[float, float]]:
        """1-sigma (A, B) from sigma^2 (J^T J)^-1."""
        j_a, j_b = decay_jacobian(t, a, b)
        j11 = float(j_a @ j_a)
        j12 = float(j_a @ j_b)
        j22 = float(j_b @ j_b)
        det = j11 * j22 - j12 * j12
        if not np.isfinite(det) or abs(det) <= FIT_SINGULAR_DETERMINANT * max(abs(j11 * j22), 1.0):
            return None
        sigma2 = rss / max(1, t.size - 2)
        var_a = sigma2 * j22 / det
        var_b = sigma2 * j11 / det
        return float(np.sqrt(max(0.0, var_a))), float(np.sqrt(max(0.0, var_b)))
