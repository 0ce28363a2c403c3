"""
===============================================================================
AIRBRAKE GNC - Airbrake Actuator Model
===============================================================================
Rate-limited airbrake deployment.  The controller issues a setpoint in
[0, 1]; the servo slews the physical deployment fraction toward it at a
bounded rate, so a bang-bang flip takes a finite time to take effect.

Also a command sink: extend_airbrakes() / retract_airbrakes() set the
setpoint to 1 / 0 directly.
===============================================================================
"""

import logging

import numpy as np

from airbrake_gnc.control.bang_bang import AirbrakeCommandSink

logger = logging.getLogger(__name__)


class AirbrakeActuator(AirbrakeCommandSink):
    """
    First-order rate-limited deployment servo.

    State variables:
        setpoint    -- commanded deployment fraction [0, 1]
        deployment  -- actual deployment fraction [0, 1]

    Parameters
    ----------
    max_deployment_rate_per_s : float
        Maximum slew rate (fraction per second).  Zero or negative makes
        the deployment follow the setpoint instantly.
    """

    def __init__(self, max_deployment_rate_per_s: float = 2.0):
        self.max_deployment_rate_per_s = float(max_deployment_rate_per_s)
        self.setpoint = 0.0
        self._deployment = 0.0

    # -----------------------------------------------------------------
    def command(self, setpoint: float) -> None:
        """
        Set a new deployment target.

        Non-finite values are ignored; others are clipped to [0, 1].
        """
        if not np.isfinite(setpoint):
            logger.warning("Ignoring non-finite airbrake setpoint %s", setpoint)
            return
        self.setpoint = float(np.clip(setpoint, 0.0, 1.0))

    def extend_airbrakes(self) -> None:
        self.command(1.0)

    def retract_airbrakes(self) -> None:
        self.command(0.0)

    # -----------------------------------------------------------------
    def update(self, dt: float) -> float:
        """
        Slew the deployment toward the setpoint over ``dt`` seconds.

        Returns
        -------
        float
            Deployment fraction after the step.
        """
        if self.max_deployment_rate_per_s <= 0.0:
            self._deployment = self.setpoint
            return self._deployment

        max_step = self.max_deployment_rate_per_s * max(0.0, dt)
        delta = np.clip(self.setpoint - self._deployment, -max_step, max_step)
        self._deployment = float(np.clip(self._deployment + delta, 0.0, 1.0))
        return self._deployment

    @property
    def deployment(self) -> float:
        return self._deployment

    @property
    def is_settled(self) -> bool:
        return abs(self.setpoint - self._deployment) < 1.0e-9

    def reset(self) -> None:
        """Fully retract, both commanded and actual."""
        self.setpoint = 0.0
        self._deployment = 0.0

    def __repr__(self) -> str:
        return (
            f"AirbrakeActuator(deployment={self._deployment:.3f}, "
            f"setpoint={self.setpoint:.1f})"
        )
