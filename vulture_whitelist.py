"""Vulture whitelist: references that look unused but are reached dynamically.

Entry points invoked through console_scripts, pytest fixtures consumed by
injection, dataclass and Enum hooks called by the standard library.

Usage:
    vulture growthsim tests scripts vulture_whitelist.py
"""

# Entry point (console_scripts)
from growthsim.main import main  # noqa: F401

# Pytest fixtures
from tests.conftest import reproducible_rng  # noqa: F401
from tests.conftest import sample_csv  # noqa: F401
from tests.conftest import sample_params  # noqa: F401
from tests.conftest import sample_prices  # noqa: F401
from tests.conftest import sample_returns  # noqa: F401

# Dataclass and Enum hooks
from growthsim.analysis.distribution import Comparison
from growthsim.config import EngineConfig
from growthsim.simulation.parameters import SimulationParameters

Comparison._missing_  # noqa: B018
EngineConfig.__post_init__  # noqa: B018
SimulationParameters.__post_init__  # noqa: B018
