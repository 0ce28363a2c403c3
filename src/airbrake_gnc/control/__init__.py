"""
===============================================================================
AIRBRAKE GNC - Control Subsystem
===============================================================================
Modules:
    bang_bang  -- Hysteresis bang-bang controller with coast-window gating
    actuators  -- Rate-limited airbrake deployment model
===============================================================================
"""
