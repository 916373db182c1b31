"""Time integrators."""

from micromag.solver.heun import HeunStepper, StepperState

__all__ = ["HeunStepper", "StepperState"]
