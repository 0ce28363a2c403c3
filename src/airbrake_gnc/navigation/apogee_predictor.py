"""
===============================================================================
AIRBRAKE GNC - Apogee Predictor
===============================================================================
Real-time apogee estimator for the coast phase.

Pipeline per update():

    sample gate  ->  CoastSampleBuffer  ->  DecayCurveFitter  ->  LUT
                     (t, a) ring          a(t) = A (1 - B t)^4   v -> dh

Two answers are exposed:

    best effort : h + LUT(v) as soon as any fit produced a usable table
    strict      : the same value, but only once the relative parameter
                  uncertainty max(sA/|A|, sB/max(B, eps)) is within the
                  configured threshold

Before any fit exists the drag-free closed form h + v^2 / (2 g(h)) is
available as an upper bound through ballistic_apogee().

The predictor never raises from update(); numerical trouble leaves the
previous fit in place or the prediction "not ready" (None).
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from airbrake_gnc.config import PredictorConfig
from airbrake_gnc.core.sample_buffer import CoastSampleBuffer
from airbrake_gnc.navigation.curve_fit import CurveFit, DecayCurveFitter, FitStatus
from airbrake_gnc.navigation.trajectory import (
    LookupTable,
    TrajectoryIntegrator,
    ballistic_apogee,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FitUpdate:
    """Snapshot handed to the ``on_fit_update`` observer after each refit."""
    time: float
    sample_count: int
    fit: Optional[CurveFit]
    status: FitStatus
    lut_points: int
    relative_uncertainty: float
    converged: bool


class ApogeePredictor:
    """
    Coast-phase apogee predictor.

    Parameters
    ----------
    config : PredictorConfig, optional
        Buffer size, refit threshold, integration and convergence tuning.
    on_fit_update : callable, optional
        Observer called with a FitUpdate after every refit attempt.
        Exceptions raised by the observer are logged and discarded.
    """

    def __init__(self, config: Optional[PredictorConfig] = None,
                 on_fit_update: Optional[Callable[[FitUpdate], None]] = None):
        self.config = config or PredictorConfig()
        self.on_fit_update = on_fit_update

        self._buffer = CoastSampleBuffer(self.config.buffer_capacity)
        self._fitter = DecayCurveFitter()
        self._integrator = TrajectoryIntegrator(
            integration_dt=self.config.integration_dt_s,
            horizon_s=self.config.horizon_s,
        )

        self._fit: Optional[CurveFit] = None
        self._lut: Optional[LookupTable] = None
        self._lut_pending = False
        self._last_fit_size = 0
        self._pending_dt = 0.0
        self._altitude = float("nan")
        self._velocity = float("nan")

    # ------------------------------------------------------------------
    #  Ingestion
    # ------------------------------------------------------------------

    def update(self, accel: float, dt: float, altitude: float, velocity: float) -> None:
        """
        Feed one coast-phase sample.

        Parameters
        ----------
        accel : float
            Vertical acceleration including gravity (m/s^2).  Positive
            values (still thrusting) are rejected.
        dt : float
            Time since the previous call (s).
        altitude, velocity : float
            Live vertical state (m, m/s).
        """
        if np.isfinite(altitude) and np.isfinite(velocity):
            self._altitude = float(altitude)
            self._velocity = float(velocity)
            if self._lut_pending and self._fit is not None:
                self._rebuild_lut()

        step = float(dt) if np.isfinite(dt) and dt > 0.0 else 0.0
        if not np.isfinite(accel) or accel > 0.0:
            logger.debug("Rejected sample a=%s (not coasting)", accel)
            # Keep the coast clock honest across rejected samples.
            if len(self._buffer) > 0:
                self._pending_dt += step
            return

        self._buffer.append(step + self._pending_dt, float(accel))
        self._pending_dt = 0.0

        size = len(self._buffer)
        if size >= self.config.min_packets and size != self._last_fit_size:
            self._refit()

    def reset(self) -> None:
        """Drop all samples, the fit and the LUT.  Call once per flight."""
        self._buffer.clear()
        self._fit = None
        self._lut = None
        self._lut_pending = False
        self._last_fit_size = 0
        self._pending_dt = 0.0
        self._altitude = float("nan")
        self._velocity = float("nan")
        logger.debug("Predictor reset")

    # ------------------------------------------------------------------
    #  Queries
    # ------------------------------------------------------------------

    def get_apogee_best_effort(self) -> Optional[float]:
        """Apogee from the latest LUT, or None when no usable LUT exists."""
        if self._lut is None or not np.isfinite(self._altitude):
            return None
        remaining = self._lut.interpolate(self._velocity)
        if remaining is None:
            return None
        return self._altitude + remaining

    def get_prediction_if_ready(self) -> Optional[float]:
        """Best-effort apogee, but only once the fit has converged."""
        if not self.has_converged:
            return None
        return self.get_apogee_best_effort()

    def sample_count(self) -> int:
        return len(self._buffer)

    def ballistic_apogee(self) -> Optional[float]:
        """Drag-free upper bound from the latest state; None before any state."""
        if not np.isfinite(self._altitude):
            return None
        return ballistic_apogee(self._altitude, self._velocity, g0=self.config.gravity_m_s2)

    @property
    def has_converged(self) -> bool:
        if self._fit is None:
            return False
        return self._fit.relative_uncertainty() <= self.config.uncertainty_threshold

    @property
    def fit(self) -> Optional[CurveFit]:
        return self._fit

    @property
    def lookup_table(self) -> Optional[LookupTable]:
        return self._lut

    @property
    def fit_a(self) -> Optional[float]:
        return self._fit.a if self._fit else None

    @property
    def fit_b(self) -> Optional[float]:
        return self._fit.b if self._fit else None

    @property
    def sigma_a(self) -> Optional[float]:
        return self._fit.sigma_a if self._fit else None

    @property
    def sigma_b(self) -> Optional[float]:
        return self._fit.sigma_b if self._fit else None

    # ------------------------------------------------------------------
    #  Internals
    # ------------------------------------------------------------------

    def _refit(self) -> None:
        size = len(self._buffer)
        self._last_fit_size = size
        times, accels = self._buffer.to_arrays()

        if self._fit is not None:
            a0, b0 = self._fit.a, self._fit.b
        else:
            a0, b0 = self.config.init_a, self.config.init_b

        try:
            fit, status = self._fitter.fit(times, accels, a0, b0)
        except (ArithmeticError, ValueError) as exc:
            logger.warning("Curve fit raised %s; keeping previous fit", exc)
            fit, status = None, FitStatus.NON_FINITE

        if fit is None:
            logger.debug("Fit failed (%s) at n=%d; keeping previous fit", status.value, size)
        else:
            self._fit = fit
            self._rebuild_lut()
            logger.debug(
                "Fit n=%d A=%.4f B=%.6f sA=%.3e sB=%.3e (%s, %d iters), LUT %d pts",
                size, fit.a, fit.b, fit.sigma_a, fit.sigma_b, status.value,
                fit.iterations, len(self._lut) if self._lut else 0,
            )

        self._notify(status)

    def _rebuild_lut(self) -> None:
        # Without a finite state the table waits for the next finite update.
        self._lut_pending = not np.isfinite(self._velocity)
        if self._lut_pending:
            self._lut = None
            return
        lut = self._integrator.build_lookup_table(
            self._fit.a, self._fit.b, self._buffer.elapsed, self._velocity)
        # An unusable table leaves the prediction "not ready" until the next fit.
        self._lut = lut if lut is not None and lut.is_usable else None

    def _notify(self, status: FitStatus) -> None:
        if self.on_fit_update is None:
            return
        rel = self._fit.relative_uncertainty() if self._fit else float("inf")
        update = FitUpdate(
            time=self._buffer.elapsed,
            sample_count=len(self._buffer),
            fit=self._fit,
            status=status,
            lut_points=len(self._lut) if self._lut else 0,
            relative_uncertainty=rel,
            converged=self.has_converged,
        )
        try:
            self.on_fit_update(update)
        except Exception:
            logger.exception("Fit-update observer raised; ignoring")

    def __repr__(self) -> str:
        return (
            f"ApogeePredictor(samples={len(self._buffer)}, "
            f"fit={'yes' if self._fit else 'no'}, converged={self.has_converged})"
        )
