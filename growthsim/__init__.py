"""growthsim: bootstrap Monte Carlo engine for long-horizon portfolio growth.

Resamples historical monthly log-returns to simulate many independent
portfolio trajectories, then reduces them to mean/median paths and a
sorted terminal-value distribution for percentile and probability queries.
"""

__version__ = "0.1.0"
