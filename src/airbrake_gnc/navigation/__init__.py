"""
===============================================================================
AIRBRAKE GNC - Navigation Subsystem
===============================================================================
Apogee estimation from streaming coast-phase acceleration samples.

Modules:
    curve_fit         -- Levenberg-Marquardt fit of a(t) = A (1 - B t)^4
    trajectory        -- Forward integration into a velocity -> height LUT
    apogee_predictor  -- Orchestrates buffer, fit and LUT; strict/best-effort
===============================================================================
"""
