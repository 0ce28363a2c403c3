"""
===============================================================================
AIRBRAKE GNC - Core
===============================================================================
Shared constants and data structures.

Modules:
    constants      -- Physical constants and numerical tolerances
    sample_buffer  -- Fixed-capacity ring buffer of coast-phase samples
===============================================================================
"""
