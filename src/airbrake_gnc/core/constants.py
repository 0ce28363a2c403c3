"""
===============================================================================
AIRBRAKE GNC - Physical Constants
===============================================================================
Central repository for the physical constants and numerical tolerances used
by the predictor, controller and simulation.  SI units throughout (meters,
seconds, kilograms, kelvin, pascals).

Atmosphere values follow the 1976 U.S. Standard / ICAO ISA sea-level
reference.
===============================================================================
"""


# =============================================================================
# EARTH PARAMETERS
# =============================================================================
STANDARD_GRAVITY = 9.80665             # m/s^2
EARTH_RADIUS = 6371000.0               # Mean radius (m)

# =============================================================================
# INTERNATIONAL STANDARD ATMOSPHERE
# =============================================================================
ISA_SEA_LEVEL_TEMPERATURE = 288.15     # K
ISA_SEA_LEVEL_PRESSURE = 101325.0      # Pa
ISA_LAPSE_RATE = 0.0065                # K/m (troposphere)
ISA_TROPOPAUSE_ALTITUDE = 11000.0      # m, start of the isothermal layer
AIR_GAS_CONSTANT = 287.05              # J/(kg*K)
AIR_GAMMA = 1.4                        # ratio of specific heats

# Below this Mach number dynamic pressure is treated as incompressible
MACH_COMPRESSIBILITY_THRESHOLD = 0.30

# =============================================================================
# PREDICTOR DEFAULTS
# =============================================================================
DEFAULT_BUFFER_CAPACITY = 1000         # coast samples retained
DEFAULT_MIN_PACKETS = 8                # samples before the first fit
DEFAULT_HORIZON_S = 120.0              # integration horizon (s)
DEFAULT_INTEGRATION_DT = 0.01          # integration step (s)
DEFAULT_UNCERTAINTY_THRESHOLD = 0.05   # relative 1-sigma on A and B
DEFAULT_INIT_A = -STANDARD_GRAVITY     # m/s^2, initial amplitude guess
DEFAULT_INIT_B = 0.01                  # 1/s, initial decay-rate guess

# =============================================================================
# NUMERICAL TOLERANCES
# =============================================================================
MIN_SAMPLE_DT = 1.0e-6                 # floor on per-sample dt (s)
FIT_MAX_ITERATIONS = 60
FIT_STEP_TOLERANCE = 1.0e-9            # |dA| + |dB| convergence threshold
FIT_SINGULAR_DETERMINANT = 1.0e-16
LM_INITIAL_DAMPING = 1.0e-3
LM_DAMPING_DECREASE = 0.33
LM_DAMPING_INCREASE = 3.0
LM_MIN_DAMPING = 1.0e-12
LM_MAX_DAMPING = 1.0e6
DECAY_RATE_EPSILON = 1.0e-6            # floor on B in relative uncertainty
MODEL_TERM_CLAMP = 5.0                 # |1 - B t| clamp during integration
LUT_VELOCITY_EPSILON = 1.0e-9          # strict-monotonicity nudge (m/s)
