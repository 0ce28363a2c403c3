"""
===============================================================================
AIRBRAKE GNC - Airbrake Aerodynamics Test Suite
===============================================================================
Tests for the Mach x deployment drag surface: bilinear interpolation, the
three extrapolation policies, tolerant CSV ingestion (header aliases,
percent deployment, delimiter sniffing, IDW gap filling) and the drag-force
wrapper.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest

from airbrake_gnc.dynamics.aerodynamics import (
    AirbrakeAerodynamics,
    DragSurface,
    ExtrapolationType,
)
from airbrake_gnc.dynamics.environment import StandardAtmosphere

DATA_CSV = os.path.join(os.path.dirname(__file__), '..', '..', 'data', 'airbrake_drag.csv')


def planar_surface(extrapolation):
    """f(M, d) = 10 M + 20 d on a 2x2 grid; bilinear interpolation is exact."""
    machs = np.array([0.0, 1.0])
    deps = np.array([0.0, 1.0])
    values = 10.0 * machs[:, None] + 20.0 * deps[None, :]
    return DragSurface.from_grid(machs, deps, values, extrapolation)


# =============================================================================
# Interpolation and extrapolation
# =============================================================================

class TestDragSurfaceInterpolation:

    def test_grid_nodes_exact(self):
        s = planar_surface('constant')
        assert s.value(1.0, 1.0) == pytest.approx(30.0)
        assert s.value(0.0, 0.0) == pytest.approx(0.0)

    def test_bilinear_interior(self):
        s = planar_surface('constant')
        assert s.value(0.5, 0.5) == pytest.approx(15.0)
        assert s.value(0.25, 0.75) == pytest.approx(17.5)

    def test_constant_clamps_to_edges(self):
        s = planar_surface(ExtrapolationType.CONSTANT)
        assert s.value(2.0, 0.5) == pytest.approx(20.0)
        assert s.value(-1.0, 0.5) == pytest.approx(10.0)

    def test_zero_outside_grid(self):
        s = planar_surface(ExtrapolationType.ZERO)
        assert s.value(2.0, 0.5) == 0.0
        assert s.value(0.5, 0.5) == pytest.approx(15.0)

    def test_natural_extrapolates_linearly(self):
        s = planar_surface(ExtrapolationType.NATURAL)
        assert s.value(2.0, 0.5) == pytest.approx(30.0)

    def test_deployment_clamped_to_unit_interval(self):
        s = planar_surface(ExtrapolationType.NATURAL)
        assert s.value(0.5, 1.7) == pytest.approx(s.value(0.5, 1.0))
        assert s.value(0.5, -0.4) == pytest.approx(s.value(0.5, 0.0))

    def test_non_finite_inputs_read_as_zero(self):
        s = planar_surface('constant')
        assert s.value(0.5, float('nan')) == pytest.approx(s.value(0.5, 0.0))
        assert s.value(float('inf'), 0.5) == pytest.approx(s.value(0.0, 0.5))

    def test_unknown_extrapolation_rejected(self):
        with pytest.raises(ValueError):
            ExtrapolationType.parse('cubic')

    def test_bad_grid_rejected(self):
        with pytest.raises(ValueError):
            DragSurface.from_grid([0.5], [0.0, 1.0], [[1.0, 2.0]])
        with pytest.raises(ValueError):
            DragSurface.from_grid([0.5, 0.3], [0.0, 1.0], np.zeros((2, 2)))
        with pytest.raises(ValueError):
            DragSurface.from_grid([0.3, 0.5], [0.0, 1.0], [[0.0, np.nan], [1.0, 2.0]])


# =============================================================================
# CSV ingestion
# =============================================================================

class TestDragSurfaceCsv:

    def test_percent_deployment_and_semicolons(self, tmp_path):
        csv = tmp_path / 'drag.csv'
        csv.write_text(
            "Mach;Deployment %;DeltaDrag_N\n"
            "0.3;0;0.0\n"
            "0.3;100;40.0\n"
            "1.0;0;0.0\n"
            "1.0;100;300.0\n"
        )
        s = DragSurface.from_csv(csv)
        assert s.deployments.tolist() == [0.0, 1.0]
        assert s.value(0.3, 1.0) == pytest.approx(40.0)
        assert s.value(0.3, 0.5) == pytest.approx(20.0)

    def test_coefficient_columns_ignored(self, tmp_path):
        csv = tmp_path / 'drag.csv'
        csv.write_text(
            "Mach,DeploymentPercentage,Cd_increment,Drag_N\n"
            "0.30,0.00,0.000,1.0\n"
            "0.30,1.00,0.100,2.0\n"
            "1.00,0.00,0.200,3.0\n"
            "1.00,1.00,0.300,4.0\n"
        )
        s = DragSurface.from_csv(csv)
        assert s.value(1.0, 1.0) == pytest.approx(4.0)

    def test_only_coefficients_is_an_error(self, tmp_path):
        csv = tmp_path / 'cd.csv'
        csv.write_text(
            "Mach,DeploymentPercentage,Cd_increment,Cm_increment\n"
            "0.30,0.00,0.000,0.000\n"
            "1.00,1.00,0.300,0.080\n"
        )
        with pytest.raises(ValueError):
            DragSurface.from_csv(csv)

    def test_missing_nodes_filled(self, tmp_path):
        csv = tmp_path / 'scattered.csv'
        csv.write_text(
            "mach,deployment,drag\n"
            "0.3,0.0,0.0\n"
            "0.3,0.5,10.0\n"
            "0.3,1.0,20.0\n"
            "1.0,0.0,0.0\n"
            "1.0,1.0,100.0\n"
        )
        s = DragSurface.from_csv(csv)
        filled = s.value(1.0, 0.5)
        assert np.isfinite(filled)
        assert 0.0 <= filled <= 100.0

    def test_single_mach_is_an_error(self, tmp_path):
        csv = tmp_path / 'flat.csv'
        csv.write_text("mach,deployment,drag\n0.3,0.0,0.0\n0.3,1.0,20.0\n")
        with pytest.raises(ValueError):
            DragSurface.from_csv(csv)

    def test_empty_path_is_an_error(self):
        with pytest.raises(ValueError):
            DragSurface.from_csv('  ')

    def test_shipped_table(self):
        s = DragSurface.from_csv(DATA_CSV)
        assert s.machs[0] == pytest.approx(0.1)
        assert s.machs[-1] == pytest.approx(1.0)
        assert s.value(0.5, 1.0) == pytest.approx(85.0)
        assert s.value(0.5, 0.0) == pytest.approx(0.0)


# =============================================================================
# Drag force
# =============================================================================

class TestAirbrakeAerodynamics:

    @pytest.fixture
    def aero(self):
        return AirbrakeAerodynamics(DragSurface.from_csv(DATA_CSV))

    def test_ready_with_surface(self, aero):
        assert aero.is_ready

    def test_zero_for_non_positive_speed(self, aero):
        assert aero.drag_force(1.0, 0.0, 500.0) == 0.0
        assert aero.drag_force(1.0, -20.0, 500.0) == 0.0
        assert aero.drag_force(1.0, float('nan'), 500.0) == 0.0

    def test_uses_mach_from_atmosphere(self, aero):
        atm = StandardAtmosphere()
        speed = 0.5 * atm.speed_of_sound(0.0)
        assert aero.drag_force(1.0, speed, 0.0) == pytest.approx(85.0, rel=1e-6)

    def test_more_deployment_more_drag(self, aero):
        assert aero.drag_force(1.0, 200.0, 1000.0) > aero.drag_force(0.5, 200.0, 1000.0)

    def test_no_surface_no_fallback_is_zero(self):
        aero = AirbrakeAerodynamics()
        assert not aero.is_ready
        assert aero.drag_force(1.0, 100.0, 0.0) == 0.0

    def test_linear_fallback(self):
        aero = AirbrakeAerodynamics(fallback_cd_area=0.01)
        q = 0.5 * StandardAtmosphere().density(0.0) * 50.0 ** 2
        assert aero.drag_force(0.5, 50.0, 0.0) == pytest.approx(q * 0.01 * 0.5)
