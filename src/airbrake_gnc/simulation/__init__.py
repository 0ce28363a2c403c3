"""
===============================================================================
AIRBRAKE GNC - Simulation
===============================================================================
Step-driven 1-D coast simulation that exercises the full
predict -> decide -> actuate -> apply-forces loop.
===============================================================================
"""
