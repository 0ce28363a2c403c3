"""
===============================================================================
AIRBRAKE GNC - Coast Trajectory Integrator
===============================================================================
Projects the remaining coast forward from the current state using the fitted
deceleration model, and tabulates the result as a velocity -> remaining
height-to-apex lookup table (LUT).

Between refits the predictor answers apogee queries with a single O(log n)
table lookup instead of re-integrating the trajectory every step:

    apogee = h_now + interp(LUT.velocities, LUT.delta_heights, v_now)

Integration (semi-implicit Euler, fixed step dt, from t0 = elapsed coast time):

    a(tau) = A * clip(1 - B (t0 + tau), -5, 5)^4
    v     += a dt
    h     += v dt

The trajectory is truncated at the apex (max h), anchored at the exact live
state (v0, h = 0) and reversed so the velocity keys ascend.

Also provides the closed-form ballistic apogee used as the cold-start answer
before any fit exists.
===============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from airbrake_gnc.core.constants import (
    DEFAULT_HORIZON_S,
    DEFAULT_INTEGRATION_DT,
    EARTH_RADIUS,
    LUT_VELOCITY_EPSILON,
    MODEL_TERM_CLAMP,
    STANDARD_GRAVITY,
)
from airbrake_gnc.dynamics.environment import local_gravity

logger = logging.getLogger(__name__)


@dataclass
class LookupTable:
    """
    Ascending velocity -> remaining height-to-apex table.

    Attributes
    ----------
    velocities : np.ndarray (n,)
        Strictly increasing vertical velocities (m/s).
    delta_heights : np.ndarray (n,)
        Height still to be gained before apex at each velocity (m).
    """
    velocities: np.ndarray = field(default_factory=lambda: np.empty(0))
    delta_heights: np.ndarray = field(default_factory=lambda: np.empty(0))

    def __len__(self) -> int:
        return int(self.velocities.size)

    @property
    def is_usable(self) -> bool:
        return len(self) >= 2

    def interpolate(self, velocity: float) -> Optional[float]:
        """
        Remaining height to apex at ``velocity``.

        Linear interpolation located by binary search; inputs outside the
        table are clamped to the nearest endpoint (no extrapolation).
        Returns None for an unusable table.
        """
        if not self.is_usable:
            return None
        v = self.velocities
        dh = self.delta_heights
        if velocity <= v[0]:
            return float(dh[0])
        if velocity >= v[-1]:
            return float(dh[-1])
        hi = int(np.searchsorted(v, velocity, side="right"))
        lo = hi - 1
        frac = (velocity - v[lo]) / (v[hi] - v[lo])
        return float(dh[lo] + frac * (dh[hi] - dh[lo]))


class TrajectoryIntegrator:
    """
    Forward integrator that turns fitted (A, B) into a LookupTable.

    Parameters
    ----------
    integration_dt : float
        Fixed integration step (s).
    horizon_s : float
        Longest coast projected forward (s).
    """

    def __init__(self, integration_dt: float = DEFAULT_INTEGRATION_DT,
                 horizon_s: float = DEFAULT_HORIZON_S):
        self.integration_dt = float(integration_dt)
        self.horizon_s = float(horizon_s)
        self._n_steps = max(1, int(np.ceil(self.horizon_s / self.integration_dt)))

    def build_lookup_table(self, a: float, b: float, t0: float,
                           v0: float) -> Optional[LookupTable]:
        """
        Integrate from the live state to apex and tabulate it.

        Parameters
        ----------
        a, b : float
            Fitted decay-model parameters.
        t0 : float
            Elapsed coast time of the live state (s); the model is evaluated
            at t0 + tau.
        v0 : float
            Live vertical velocity (m/s).

        Returns
        -------
        LookupTable or None
            None when the trajectory yields fewer than two usable points,
            e.g. the vehicle is already descending.
        """
        dt = self.integration_dt
        taus = t0 + dt * np.arange(self._n_steps)
        with np.errstate(over="ignore", invalid="ignore"):
            u = np.clip(1.0 - b * taus, -MODEL_TERM_CLAMP, MODEL_TERM_CLAMP)
            accel = a * u ** 4
            vel = v0 + dt * np.cumsum(accel)

        if not np.all(np.isfinite(vel)):
            logger.debug("LUT build aborted: non-finite velocity (A=%.4f, B=%.6f)", a, b)
            return None

        # Stop at the first non-positive velocity; height only falls after it.
        non_positive = np.flatnonzero(vel <= 0.0)
        if non_positive.size:
            vel = vel[: non_positive[0] + 1]
        height = dt * np.cumsum(vel)

        # Anchor at the live state so the top key is exactly v0 with h = 0.
        vel = np.concatenate(([v0], vel))
        height = np.concatenate(([0.0], height))

        apex = int(np.argmax(height))
        if apex < 1:
            return None

        vel = vel[: apex + 1]
        delta_h = np.maximum(height[apex] - height[: apex + 1], 0.0)

        # Keys must strictly decrease before the flip; nudge ties downward
        # so the anchor keeps its exact value.
        ramp = LUT_VELOCITY_EPSILON * np.arange(vel.size)
        vel = np.minimum.accumulate(vel + ramp) - ramp

        return LookupTable(velocities=vel[::-1].copy(),
                           delta_heights=delta_h[::-1].copy())


def ballistic_apogee(altitude: float, velocity: float,
                     g0: float = STANDARD_GRAVITY,
                     body_radius: float = EARTH_RADIUS) -> float:
    """
    Drag-free apogee h + v^2 / (2 g(h)) with inverse-square local gravity.

    An upper bound on the true apogee; a descending vehicle returns its
    current altitude.
    """
    v_up = max(0.0, velocity)
    g = local_gravity(altitude, g0=g0, body_radius=body_radius)
    return altitude + v_up * v_up / (2.0 * g)
