"""
===============================================================================
AIRBRAKE GNC - Flight Computer
===============================================================================
Per-step glue between the host's physics loop and the GNC core, in the fixed
order

    predict  ->  decide  ->  actuate

The host supplies the measured vertical acceleration (including gravity),
altitude, vertical velocity, the step size and the simulation time; the
flight computer returns a StepResult with the command outcome and the
predictor diagnostics.

Deployment is only allowed during coast, while ascending, and below the
configured Mach limit.  Outside those gates the actuator is driven to
retracted regardless of the controller's decision.
===============================================================================
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional

import numpy as np

from airbrake_gnc.config import AirbrakeConfig
from airbrake_gnc.control.actuators import AirbrakeActuator
from airbrake_gnc.control.bang_bang import AirbrakeCommandSink, BangBangController
from airbrake_gnc.dynamics.environment import StandardAtmosphere
from airbrake_gnc.navigation.apogee_predictor import ApogeePredictor, FitUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome and diagnostics of one flight-computer step."""
    did_actuate: bool
    setpoint: float
    apogee_strict: Optional[float]
    apogee_best_effort: Optional[float]
    fit_a: Optional[float]
    fit_b: Optional[float]
    sigma_a: Optional[float]
    sigma_b: Optional[float]
    sample_count: int
    deployment: float = 0.0
    mach: float = 0.0
    coasting: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FlightComputer:
    """
    Owns the predictor, controller and actuator for one flight.

    Parameters
    ----------
    config : AirbrakeConfig
    atmosphere : StandardAtmosphere, optional
        Used for the Mach gate.
    command_sink : AirbrakeCommandSink, optional
        Extra receiver of extend/retract edges (e.g. hardware); the
        actuator is always driven from the controller setpoint.
    on_fit_update : callable, optional
        Forwarded to the predictor.
    """

    def __init__(self, config: Optional[AirbrakeConfig] = None,
                 atmosphere: Optional[StandardAtmosphere] = None,
                 command_sink: Optional[AirbrakeCommandSink] = None,
                 on_fit_update: Optional[Callable[[FitUpdate], None]] = None):
        self.config = config or AirbrakeConfig()
        self.atmosphere = atmosphere or StandardAtmosphere()
        self.max_mach_for_deployment = self.config.vehicle.max_mach_for_deployment

        self.predictor = ApogeePredictor(self.config.predictor, on_fit_update=on_fit_update)
        self.controller = BangBangController.from_config(
            self.predictor, self.config.controller, context=command_sink)
        self.actuator = AirbrakeActuator(self.config.actuator.max_deployment_rate_per_s)

        self._coasting = False
        self._burnout_time: Optional[float] = None

    # ------------------------------------------------------------------
    def step(self, dt: float, accel: float, altitude: float, velocity: float,
             sim_time: float, thrusting: bool = False) -> StepResult:
        """
        Run one predict-decide-actuate cycle.

        Parameters
        ----------
        dt : float
            Step size (s).
        accel : float
            Measured vertical acceleration including gravity (m/s^2).
        altitude, velocity : float
            Vertical state after the physics step (m, m/s).
        sim_time : float
            Simulation time (s).
        thrusting : bool
            True while the motor burns; the coast phase latches on the
            first step with ``thrusting`` False.
        """
        if not thrusting and not self._coasting:
            self._coasting = True
            self._burnout_time = sim_time
            logger.info("Burnout latched at t=%.3f s (h=%.1f m, v=%.1f m/s)",
                        sim_time, altitude, velocity)
            self.controller.notify_coast_latched(sim_time)

        did_actuate = False
        if self._coasting:
            self.predictor.update(accel, dt, altitude, velocity)
            did_actuate = self.controller.update_and_gate_flexible(sim_time)

        mach = self.atmosphere.mach_number(velocity, altitude) if np.isfinite(velocity) else 0.0
        setpoint = self.controller.current_setpoint()
        if self.deployment_allowed(mach, velocity):
            self.actuator.command(setpoint)
        else:
            self.actuator.command(0.0)
        deployment = self.actuator.update(dt)

        return StepResult(
            did_actuate=did_actuate,
            setpoint=setpoint,
            apogee_strict=self.predictor.get_prediction_if_ready(),
            apogee_best_effort=self.predictor.get_apogee_best_effort(),
            fit_a=self.predictor.fit_a,
            fit_b=self.predictor.fit_b,
            sigma_a=self.predictor.sigma_a,
            sigma_b=self.predictor.sigma_b,
            sample_count=self.predictor.sample_count(),
            deployment=deployment,
            mach=mach,
            coasting=self._coasting,
        )

    def deployment_allowed(self, mach: float, velocity: float) -> bool:
        return self._coasting and velocity > 0.0 and mach <= self.max_mach_for_deployment

    def reset(self) -> None:
        """Prepare for a new flight."""
        self.predictor.reset()
        self.controller.reset()
        self.actuator.reset()
        self._coasting = False
        self._burnout_time = None

    @property
    def coasting(self) -> bool:
        return self._coasting

    @property
    def burnout_time(self) -> Optional[float]:
        return self._burnout_time
