"""micromag: finite-difference micromagnetic solver core.

Assembles the effective field from demag, exchange, DMI, anisotropy and
external contributions, converts it into Landau-Lifshitz and spin-transfer
torque, and integrates the magnetization with an adaptive Heun scheme.
"""

from micromag.config import SimulationConfig
from micromag.engine import Simulation
from micromag.errors import (
    ConfigurationError,
    IntegrationError,
    MicromagError,
    PhysicalPreconditionError,
    UninitializedStateError,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "IntegrationError",
    "MicromagError",
    "PhysicalPreconditionError",
    "Simulation",
    "SimulationConfig",
    "UninitializedStateError",
]
