"""
===============================================================================
AIRBRAKE GNC - Actuator and Environment Test Suite
===============================================================================
Tests for the rate-limited airbrake servo, the ISA atmosphere and the
inverse-square gravity model.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest

from airbrake_gnc.control.actuators import AirbrakeActuator
from airbrake_gnc.core.constants import EARTH_RADIUS, STANDARD_GRAVITY
from airbrake_gnc.dynamics.environment import (
    StandardAtmosphere,
    dynamic_pressure_correction,
    local_gravity,
)


# =============================================================================
# Actuator
# =============================================================================

class TestAirbrakeActuator:

    def test_rate_limited_extension(self):
        act = AirbrakeActuator(max_deployment_rate_per_s=2.0)
        act.command(1.0)
        assert act.update(0.1) == pytest.approx(0.2)
        assert act.update(0.1) == pytest.approx(0.4)
        assert act.update(1.0) == pytest.approx(1.0)
        assert act.is_settled

    def test_rate_limited_retraction(self):
        act = AirbrakeActuator(max_deployment_rate_per_s=4.0)
        act.extend_airbrakes()
        act.update(1.0)
        act.retract_airbrakes()
        assert act.update(0.1) == pytest.approx(0.6)

    def test_non_positive_rate_is_instant(self):
        act = AirbrakeActuator(max_deployment_rate_per_s=0.0)
        act.command(0.7)
        assert act.update(0.001) == pytest.approx(0.7)

    def test_setpoint_clipped_and_non_finite_ignored(self):
        act = AirbrakeActuator()
        act.command(1.5)
        assert act.setpoint == 1.0
        act.command(float('nan'))
        assert act.setpoint == 1.0
        act.command(-0.3)
        assert act.setpoint == 0.0

    def test_reset_retracts(self):
        act = AirbrakeActuator(max_deployment_rate_per_s=0.0)
        act.command(1.0)
        act.update(0.01)
        act.reset()
        assert act.deployment == 0.0
        assert act.setpoint == 0.0


# =============================================================================
# Atmosphere
# =============================================================================

class TestStandardAtmosphere:

    @pytest.fixture
    def atm(self):
        return StandardAtmosphere()

    def test_sea_level(self, atm):
        assert atm.temperature(0.0) == pytest.approx(288.15)
        assert atm.pressure(0.0) == pytest.approx(101325.0)
        assert atm.density(0.0) == pytest.approx(1.225, rel=1e-3)
        assert atm.speed_of_sound(0.0) == pytest.approx(340.29, abs=0.1)

    def test_tropopause(self, atm):
        assert atm.temperature(11000.0) == pytest.approx(216.65)
        assert atm.pressure(11000.0) == pytest.approx(22632.0, rel=2e-3)

    def test_isothermal_layer(self, atm):
        assert atm.temperature(15000.0) == pytest.approx(216.65)
        assert atm.pressure(15000.0) < atm.pressure(11000.0)

    def test_density_decreases_with_altitude(self, atm):
        rho = [atm.density(h) for h in (0.0, 1000.0, 3000.0, 9000.0)]
        assert np.all(np.diff(rho) < 0.0)

    def test_negative_altitude_clamped(self, atm):
        assert atm.density(-50.0) == pytest.approx(atm.density(0.0))

    def test_mach_number(self, atm):
        assert atm.mach_number(atm.speed_of_sound(0.0), 0.0) == pytest.approx(1.0)
        assert atm.mach_number(-170.0, 0.0) == pytest.approx(0.5, rel=1e-3)

    def test_incompressible_dynamic_pressure_below_m03(self, atm):
        assert atm.dynamic_pressure(50.0, 0.0) == pytest.approx(0.5 * atm.density(0.0) * 2500.0)

    def test_compressible_dynamic_pressure_exceeds_incompressible(self, atm):
        v = 0.8 * atm.speed_of_sound(0.0)
        incompressible = 0.5 * atm.density(0.0) * v * v
        assert atm.dynamic_pressure(v, 0.0) > incompressible
        assert atm.effective_density(0.0, 0.8) > atm.density(0.0)

    def test_correction_tends_to_one(self):
        assert dynamic_pressure_correction(0.0) == 1.0
        assert dynamic_pressure_correction(0.05) == pytest.approx(1.0, abs=1e-3)


# =============================================================================
# Gravity
# =============================================================================

class TestLocalGravity:

    def test_sea_level(self):
        assert local_gravity(0.0) == pytest.approx(STANDARD_GRAVITY)

    def test_inverse_square(self):
        assert local_gravity(EARTH_RADIUS) == pytest.approx(STANDARD_GRAVITY / 4.0)

    def test_negative_altitude_is_sea_level(self):
        assert local_gravity(-100.0) == pytest.approx(STANDARD_GRAVITY)
