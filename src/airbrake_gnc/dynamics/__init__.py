"""
===============================================================================
AIRBRAKE GNC - Dynamics Module
===============================================================================
Models of the environment and aerodynamic collaborators.

Submodules:
    environment   -- ISA atmosphere, Mach number, dynamic pressure, gravity
    aerodynamics  -- Airbrake drag surface (Mach x deployment grid)
===============================================================================
"""
