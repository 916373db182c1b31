"""Exception hierarchy for the micromagnetic engine.

Library code raises these instead of terminating the process; the run
loop (``micromag.cli``) decides whether to abort.
"""

from __future__ import annotations


class MicromagError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(MicromagError, ValueError):
    """Invalid setup: mesh set twice, bad sizes, region out of range, ..."""


class PhysicalPreconditionError(MicromagError, RuntimeError):
    """A material parameter has a value a kernel cannot work with."""

    def __init__(self, parameter: str, message: str) -> None:
        super().__init__(f"{parameter}: {message}")
        self.parameter = parameter


class IntegrationError(MicromagError, RuntimeError):
    """The adaptive integrator could not meet its error tolerance."""

    def __init__(self, message: str, dt: float, error: float) -> None:
        super().__init__(message)
        self.dt = dt
        self.error = error


class UninitializedStateError(MicromagError, RuntimeError):
    """Mesh or magnetization used before it was set."""
