"""
===============================================================================
AIRBRAKE GNC - Environment Models
===============================================================================
Atmosphere and gravity models for the low-altitude coast of a sounding
rocket:

    - StandardAtmosphere : Two-layer ISA (0-11 km lapse, 11-20 km isothermal)
                           with speed of sound, Mach number and dynamic
                           pressure (incompressible below M 0.3, isentropic
                           impact pressure above)
    - local_gravity      : Inverse-square gravity with altitude

SI units throughout (m, s, kg, K, Pa).
===============================================================================
"""

import numpy as np

from airbrake_gnc.core.constants import (
    AIR_GAMMA,
    AIR_GAS_CONSTANT,
    EARTH_RADIUS,
    ISA_LAPSE_RATE,
    ISA_SEA_LEVEL_PRESSURE,
    ISA_SEA_LEVEL_TEMPERATURE,
    ISA_TROPOPAUSE_ALTITUDE,
    MACH_COMPRESSIBILITY_THRESHOLD,
    STANDARD_GRAVITY,
)


# ============================================================================
#  GRAVITY
# ============================================================================

def local_gravity(altitude: float, g0: float = STANDARD_GRAVITY,
                  body_radius: float = EARTH_RADIUS) -> float:
    """
    Gravitational acceleration magnitude at ``altitude``.

        g(h) = g0 * (R / (R + h))^2

    Negative altitudes are treated as sea level.
    """
    h = max(0.0, float(altitude))
    ratio = body_radius / (body_radius + h)
    return g0 * ratio * ratio


# ============================================================================
#  COMPRESSIBLE FLOW RELATIONS
# ============================================================================

def impact_pressure(static_pressure: float, mach: float,
                    gamma: float = AIR_GAMMA) -> float:
    """Isentropic impact pressure qc = Pt - p (Pa)."""
    pt_over_p = (1.0 + 0.5 * (gamma - 1.0) * mach * mach) ** (gamma / (gamma - 1.0))
    return static_pressure * (pt_over_p - 1.0)


def dynamic_pressure_correction(mach: float, gamma: float = AIR_GAMMA) -> float:
    """Ratio qc / q_incompressible; 1 as M -> 0."""
    if mach < 1.0e-3:
        return 1.0
    base = 1.0 + 0.5 * (gamma - 1.0) * mach * mach
    incompressible = 0.5 * gamma * mach * mach
    return (base ** (gamma / (gamma - 1.0)) - 1.0) / incompressible


# ============================================================================
#  STANDARD ATMOSPHERE
# ============================================================================

class StandardAtmosphere:
    """
    Two-layer International Standard Atmosphere.

    Troposphere (0 - 11 km), linear lapse:

        T(h) = T0 - L h
        p(h) = p0 (T / T0)^(g0 / (R L))

    Lower stratosphere (11 - 20 km), isothermal:

        p(h) = p11 exp(-g0 (h - 11 km) / (R T11))

    Density follows from the ideal gas law rho = p / (R T).  Altitudes below
    sea level are clamped to zero.

    Parameters
    ----------
    t0 : float, optional
        Sea-level temperature (K).
    p0 : float, optional
        Sea-level pressure (Pa).
    """

    def __init__(self, t0: float = ISA_SEA_LEVEL_TEMPERATURE,
                 p0: float = ISA_SEA_LEVEL_PRESSURE) -> None:
        self.t0 = t0
        self.p0 = p0
        self._exponent = STANDARD_GRAVITY / (AIR_GAS_CONSTANT * ISA_LAPSE_RATE)
        self._t11 = t0 - ISA_LAPSE_RATE * ISA_TROPOPAUSE_ALTITUDE
        self._p11 = p0 * (self._t11 / t0) ** self._exponent

    def temperature(self, altitude: float) -> float:
        h = max(0.0, altitude)
        if h <= ISA_TROPOPAUSE_ALTITUDE:
            return self.t0 - ISA_LAPSE_RATE * h
        return self._t11

    def pressure(self, altitude: float) -> float:
        h = max(0.0, altitude)
        if h <= ISA_TROPOPAUSE_ALTITUDE:
            return self.p0 * (self.temperature(h) / self.t0) ** self._exponent
        dh = h - ISA_TROPOPAUSE_ALTITUDE
        return self._p11 * np.exp(-STANDARD_GRAVITY * dh / (AIR_GAS_CONSTANT * self._t11))

    def density(self, altitude: float) -> float:
        """Air density (kg/m^3)."""
        return self.pressure(altitude) / (AIR_GAS_CONSTANT * self.temperature(altitude))

    def speed_of_sound(self, altitude: float) -> float:
        """a = sqrt(gamma R T) (m/s)."""
        return float(np.sqrt(AIR_GAMMA * AIR_GAS_CONSTANT * self.temperature(altitude)))

    def mach_number(self, speed: float, altitude: float) -> float:
        a = self.speed_of_sound(altitude)
        return abs(speed) / a if a > 1.0e-9 else 0.0

    def dynamic_pressure(self, speed: float, altitude: float) -> float:
        """
        Compressibility-aware dynamic pressure (Pa).

        For M <= 0.3 returns 0.5 rho V^2; above it, the isentropic impact
        pressure Pt - p.
        """
        mach = self.mach_number(speed, altitude)
        if mach <= MACH_COMPRESSIBILITY_THRESHOLD:
            return 0.5 * self.density(altitude) * speed * speed
        return impact_pressure(self.pressure(altitude), mach)

    def effective_density(self, altitude: float, mach: float) -> float:
        """
        Density to use in q = 0.5 rho_eff V^2 so that q equals the
        compressible impact pressure above M 0.3.
        """
        rho = self.density(altitude)
        if not np.isfinite(mach) or mach <= MACH_COMPRESSIBILITY_THRESHOLD:
            return rho
        return rho * dynamic_pressure_correction(mach)
