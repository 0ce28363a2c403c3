"""
===============================================================================
AIRBRAKE GNC
===============================================================================
Real-time apogee prediction and bang-bang airbrake control for a coasting
rocket.  The flight computer (or a simulation host) calls the predictor and
the controller once per fixed time step:

    physics loop -> ApogeePredictor.update() -> BangBangController
                 -> AirbrakeActuator -> airbrake drag -> physics loop

Subpackages:
    core          -- Constants and the bounded coast sample buffer
    dynamics      -- ISA atmosphere, local gravity, airbrake drag surface
    navigation    -- Curve fitter, trajectory integrator, apogee predictor
    control       -- Bang-bang controller and actuator model
    simulation    -- 1-D coast simulation harness
    visualization -- Flight plots
===============================================================================
"""

__version__ = "0.1.0"
