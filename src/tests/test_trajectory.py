"""
===============================================================================
AIRBRAKE GNC - Trajectory Integrator Test Suite
===============================================================================
Tests for the velocity -> remaining-height lookup table: construction from
fitted parameters, ordering of its keys, exact anchoring at the live state,
clamped interpolation, and the ballistic closed form.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from airbrake_gnc.core.constants import STANDARD_GRAVITY
from airbrake_gnc.dynamics.environment import local_gravity
from airbrake_gnc.navigation.trajectory import (
    LookupTable,
    TrajectoryIntegrator,
    ballistic_apogee,
)


g = STANDARD_GRAVITY


@pytest.fixture
def integrator():
    return TrajectoryIntegrator(integration_dt=0.01, horizon_s=120.0)


# =============================================================================
# Interpolation
# =============================================================================

class TestLookupTableInterpolation:

    @pytest.fixture
    def table(self):
        return LookupTable(velocities=np.array([0.0, 10.0, 20.0]),
                           delta_heights=np.array([0.0, 25.0, 100.0]))

    def test_interior_is_linear(self, table):
        assert table.interpolate(5.0) == pytest.approx(12.5)
        assert table.interpolate(15.0) == pytest.approx(62.5)

    def test_exact_keys(self, table):
        assert table.interpolate(10.0) == pytest.approx(25.0)
        assert table.interpolate(20.0) == pytest.approx(100.0)

    def test_clamped_outside(self, table):
        assert table.interpolate(-3.0) == pytest.approx(0.0)
        assert table.interpolate(35.0) == pytest.approx(100.0)

    def test_unusable_table_returns_none(self):
        table = LookupTable(velocities=np.array([5.0]), delta_heights=np.array([1.0]))
        assert not table.is_usable
        assert table.interpolate(5.0) is None
        assert LookupTable().interpolate(1.0) is None


# =============================================================================
# Construction
# =============================================================================

class TestBuildLookupTable:

    def test_ballistic_table_matches_closed_form(self, integrator):
        lut = integrator.build_lookup_table(-g, 0.0, 0.0, 50.0)
        assert lut is not None and lut.is_usable
        # The live velocity still has the full climb ahead; the apex has none.
        assert lut.velocities[-1] == 50.0
        assert lut.delta_heights[-1] == pytest.approx(50.0 ** 2 / (2 * g), abs=1.0)
        assert lut.delta_heights[0] == pytest.approx(0.0)

    def test_velocities_strictly_ascending(self, integrator):
        lut = integrator.build_lookup_table(-22.0, 0.03, 1.5, 80.0)
        assert lut is not None
        assert np.all(np.diff(lut.velocities) > 0.0)
        assert lut.velocities[0] > 0.0

    def test_delta_heights_grow_with_velocity(self, integrator):
        lut = integrator.build_lookup_table(-22.0, 0.03, 1.5, 80.0)
        assert np.all(np.diff(lut.delta_heights) >= 0.0)
        assert np.all(lut.delta_heights >= 0.0)

    def test_ties_are_nudged_below_the_anchor(self):
        # No deceleration: every step repeats v0 until the horizon.
        lut = TrajectoryIntegrator(0.01, 1.0).build_lookup_table(0.0, 0.0, 0.0, 30.0)
        assert lut is not None
        assert np.all(np.diff(lut.velocities) > 0.0)
        assert lut.velocities[-1] == 30.0
        assert_allclose(lut.velocities, 30.0, atol=1e-6)

    def test_descending_vehicle_gives_no_table(self, integrator):
        assert integrator.build_lookup_table(-g, 0.0, 0.0, -5.0) is None
        assert integrator.build_lookup_table(-g, 0.0, 0.0, 0.0) is None

    def test_interpolation_at_live_velocity_is_exact(self, integrator):
        lut = integrator.build_lookup_table(-18.0, 0.02, 0.8, 64.0)
        assert lut.interpolate(64.0) == lut.delta_heights[-1]
        assert lut.interpolate(lut.velocities[0]) == pytest.approx(0.0)

    def test_larger_decay_rate_means_more_climb(self, integrator):
        # A larger B weakens the deceleration sooner, so the vehicle climbs further.
        slow = integrator.build_lookup_table(-20.0, 0.01, 0.0, 60.0)
        fast = integrator.build_lookup_table(-20.0, 0.05, 0.0, 60.0)
        assert fast.delta_heights[-1] > slow.delta_heights[-1]


# =============================================================================
# Ballistic closed form
# =============================================================================

class TestBallisticApogee:

    def test_matches_local_gravity_formula(self):
        expected = 300.0 + 95.0 ** 2 / (2 * local_gravity(300.0))
        assert ballistic_apogee(300.0, 95.0) == pytest.approx(expected)

    def test_close_to_flat_earth_at_low_altitude(self):
        assert ballistic_apogee(300.0, 95.0) == pytest.approx(
            300.0 + 95.0 ** 2 / (2 * g), abs=0.1)

    def test_descending_returns_altitude(self):
        assert ballistic_apogee(812.0, -3.0) == pytest.approx(812.0)
