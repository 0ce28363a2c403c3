"""
===============================================================================
AIRBRAKE GNC - Coast Simulation Engine
===============================================================================
One-dimensional vertical flight simulation used to exercise the flight
computer end to end.  At every fixed time step:

    1. FORCES    -- thrust (boost only), gravity g(h), body drag
                    q Cd A_ref and airbrake drag at the current deployment
    2. DYNAMICS  -- semi-implicit Euler: v += a dt, h += v dt
    3. SENSING   -- finite-difference vertical acceleration (v - v_prev) / dt
    4. GNC       -- FlightComputer.step(): predict, decide, actuate
    5. LOGGING   -- telemetry record

The run ends at apogee (first non-positive velocity after burnout) or at the
time limit.  Telemetry is returned as a pandas DataFrame indexed by time.
===============================================================================
"""

import logging
import time
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from airbrake_gnc.config import AirbrakeConfig
from airbrake_gnc.dynamics.aerodynamics import AirbrakeAerodynamics, DragSurface
from airbrake_gnc.dynamics.environment import StandardAtmosphere, local_gravity
from airbrake_gnc.navigation.apogee_predictor import FitUpdate
from airbrake_gnc.simulation.flight_computer import FlightComputer

logger = logging.getLogger(__name__)

_OPTIONAL_COLUMNS = ('apogee_ballistic', 'apogee_strict', 'apogee_best_effort',
                     'fit_a', 'fit_b', 'sigma_a', 'sigma_b')


class CoastSimulation:
    """
    Vertical point-mass flight with airbrake control.

    Parameters
    ----------
    config : AirbrakeConfig, optional
        Vehicle, simulation, predictor and controller settings.
    drag_surface : DragSurface, optional
        Airbrake drag table.  When None, ``config.drag_surface.csv_path`` is
        loaded if set; otherwise drag is linear in deployment using the
        vehicle's airbrake area and drag coefficient.

    Attributes
    ----------
    telemetry : list of dict
        Raw per-step records, converted to a DataFrame by get_telemetry().
    fit_updates : list of FitUpdate
        Every refit reported by the predictor.
    """

    def __init__(self, config: Optional[AirbrakeConfig] = None,
                 drag_surface: Optional[DragSurface] = None) -> None:
        self.config = config or AirbrakeConfig()
        self.atmosphere = StandardAtmosphere()

        if drag_surface is None and self.config.drag_surface.csv_path:
            drag_surface = DragSurface.from_csv(
                self.config.drag_surface.csv_path,
                self.config.drag_surface.extrapolation,
            )
        vehicle = self.config.vehicle
        self.aero = AirbrakeAerodynamics(
            drag_surface, self.atmosphere,
            fallback_cd_area=vehicle.airbrake_area_m2 * vehicle.airbrake_drag_coefficient,
        )

        self.fit_updates: List[FitUpdate] = []
        self.flight_computer = FlightComputer(
            self.config, self.atmosphere, on_fit_update=self.fit_updates.append)

        self.telemetry: List[Dict[str, Any]] = []
        self.current_time = 0.0
        self.altitude = 0.0
        self.velocity = 0.0
        self._apogee_reached = False

        logger.info("CoastSimulation created.  dt=%.3f s, target=%.1f m",
                    self.config.simulation.dt_s, self.config.controller.target_apogee_m)

    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Reset the vehicle to its launch (or burnout) state."""
        sim = self.config.simulation
        self.current_time = 0.0
        if sim.starts_in_coast:
            self.altitude = float(sim.burnout_altitude_m)
            self.velocity = float(sim.burnout_velocity_m_s)
        else:
            self.altitude = sim.launch_altitude_m
            self.velocity = 0.0
        self._apogee_reached = False
        self.telemetry.clear()
        self.fit_updates.clear()
        self.flight_computer.reset()
        logger.info("Initial state: h=%.1f m, v=%.1f m/s (%s)", self.altitude, self.velocity,
                    "coast start" if sim.starts_in_coast else "pad")

    def is_thrusting(self, t: float) -> bool:
        if self.config.simulation.starts_in_coast:
            return False
        vehicle = self.config.vehicle
        return vehicle.thrust_n > 0.0 and t < vehicle.burn_time_s

    def net_acceleration(self, t: float, altitude: float, velocity: float,
                         deployment: float) -> float:
        """Vertical acceleration (m/s^2) from thrust, gravity and drag."""
        vehicle = self.config.vehicle
        thrust = vehicle.thrust_n if self.is_thrusting(t) else 0.0

        speed = abs(velocity)
        q = self.atmosphere.dynamic_pressure(speed, altitude)
        drag = q * vehicle.drag_coefficient * vehicle.reference_area_m2
        drag += self.aero.drag_force(deployment, speed, altitude)

        force = thrust - np.sign(velocity) * drag
        return force / vehicle.dry_mass_kg - local_gravity(altitude)

    # ------------------------------------------------------------------
    def step(self) -> None:
        """Advance one fixed time step."""
        dt = self.config.simulation.dt_s
        fc = self.flight_computer
        thrusting = self.is_thrusting(self.current_time)

        accel = self.net_acceleration(self.current_time, self.altitude,
                                      self.velocity, fc.actuator.deployment)
        v_prev = self.velocity
        self.velocity += accel * dt
        self.altitude += self.velocity * dt
        self.current_time += dt

        # Still on the pad: thrust has not yet overcome weight.
        if self.altitude < self.config.simulation.launch_altitude_m and thrusting:
            self.altitude = self.config.simulation.launch_altitude_m
            self.velocity = max(0.0, self.velocity)

        measured_accel = (self.velocity - v_prev) / dt
        result = fc.step(dt, measured_accel, self.altitude, self.velocity,
                         self.current_time, thrusting=thrusting)

        if fc.coasting and self.velocity <= 0.0:
            self._apogee_reached = True

        record = {'time': self.current_time,
                  'phase': 'coast' if result.coasting else 'boost',
                  'altitude_m': self.altitude,
                  'velocity_m_s': self.velocity,
                  'accel_m_s2': measured_accel,
                  'apogee_ballistic': fc.predictor.ballistic_apogee()}
        record.update(result.as_dict())
        self.telemetry.append(record)

    def run(self, max_time: Optional[float] = None) -> pd.DataFrame:
        """
        Run until apogee or the time limit.

        Returns
        -------
        pd.DataFrame
            Complete telemetry record for the run.
        """
        max_time = self.config.simulation.max_time_s if max_time is None else max_time
        self.initialize()
        wall_start = time.time()
        logger.info("Simulation run started.  Max time: %.1f s", max_time)

        while not self._apogee_reached and self.current_time < max_time:
            self.step()

        if not self._apogee_reached:
            logger.warning("Simulation time limit reached before apogee: %.1f s", max_time)
        logger.info("Simulation finished at t=%.2f s (%d steps, %.2f s wall)",
                    self.current_time, len(self.telemetry), time.time() - wall_start)
        return self.get_telemetry()

    # ------------------------------------------------------------------
    def get_telemetry(self) -> pd.DataFrame:
        """
        Telemetry as a DataFrame indexed by time.

        Columns: phase, altitude_m, velocity_m_s, accel_m_s2,
        apogee_ballistic, did_actuate, setpoint, apogee_strict,
        apogee_best_effort, fit_a, fit_b, sigma_a, sigma_b, sample_count,
        deployment, mach, coasting.
        """
        if not self.telemetry:
            logger.warning("No telemetry recorded.")
            return pd.DataFrame()
        df = pd.DataFrame(self.telemetry)
        # Optional estimates are None until available; keep the columns numeric.
        for col in _OPTIONAL_COLUMNS:
            df[col] = pd.to_numeric(df[col], errors='coerce')
        df.set_index('time', inplace=True)
        return df

    def save_telemetry(self, filepath: str) -> None:
        df = self.get_telemetry()
        df.to_csv(filepath)
        logger.info("Telemetry saved to %s  (%d records)", filepath, len(df))

    def summary(self) -> Dict[str, Any]:
        """Apogee, target error, command count and predictor milestones."""
        df = self.get_telemetry()
        target = self.config.controller.target_apogee_m
        if df.empty:
            return {'target_apogee_m': target}

        apogee = float(df['altitude_m'].max())
        first_strict = df['apogee_strict'].first_valid_index()
        converged = [u for u in self.fit_updates if u.converged]
        summary = {
            'apogee_m': apogee,
            'apogee_time_s': float(df['altitude_m'].idxmax()),
            'target_apogee_m': target,
            'apogee_error_m': apogee - target,
            'burnout_time_s': self.flight_computer.burnout_time,
            'commands': int(df['did_actuate'].sum()),
            'refits': len(self.fit_updates),
            'first_converged_fit_s': (converged[0].time if converged else None),
            'first_strict_estimate_s': (float(first_strict) if first_strict is not None
                                        else None),
            'max_deployment': float(df['deployment'].max()),
        }

        logger.info("Flight Summary:")
        for key, value in summary.items():
            if isinstance(value, float):
                logger.info("  %-25s: %.3f", key, value)
            else:
                logger.info("  %-25s: %s", key, value)
        return summary

    def __repr__(self) -> str:
        return (
            f"CoastSimulation(t={self.current_time:.2f} s, h={self.altitude:.1f} m, "
            f"records={len(self.telemetry)})"
        )
