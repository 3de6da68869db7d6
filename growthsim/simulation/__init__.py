"""Bootstrap path simulation, batch orchestration and per-period aggregation.

The pipeline entry point is :func:`growthsim.simulation.monte_carlo.run_simulation`;
interactive callers use :class:`growthsim.simulation.session.SimulationSession`.
"""
