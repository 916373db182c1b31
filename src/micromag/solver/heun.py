"""Adaptive Heun (predictor/corrector) integrator.

Solves dy/dt = gamma_0 * torque(y) where ``torque_fn`` evaluates the torque
for the current contents of ``y`` in place:

    k1 = torque(y0)                       (save-worthy evaluation)
    y* = y0 + dt k1
    k2 = torque(y*)                       (trial evaluation)
    err = max |k2 - k1| dt
    y1 = y0 + dt/2 (k1 + k2)              if err <= max_err

On acceptance ``post_step`` renormalizes y, time advances by dt and the
step size adapts as ``dt *= headroom * sqrt(max_err / err)`` (at most 2x
growth). On rejection y is restored and the step retried with a smaller dt;
k1 is reused since y0 and the time are unchanged. Shrinking below
``min_dt`` without meeting the tolerance raises :class:`IntegrationError`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from enum import Enum

import numpy as np

from micromag.constants import gamma_0
from micromag.core.bases import Clock, StepResult
from micromag.errors import IntegrationError
from micromag.kernels.torque import max_vec_diff, max_vec_norm

logger = logging.getLogger(__name__)

MAX_GROWTH = 2.0
MIN_SHRINK = 0.1


class StepperState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class HeunStepper:
    """Second-order adaptive stepper driving ``y`` in place.

    Args:
        y: State array, owned by the stepper between steps.
        torque_fn: ``torque_fn(cansave)`` evaluates the right-hand side for
            the current ``y`` and returns a buffer the caller may overwrite
            on the next call.
        post_step: Called on ``y`` after every accepted step.
        clock: Shared clock; ``clock.time`` is advanced here.
        dt: Initial step size [s].
        max_err: Tolerance on the per-step change of y.
        min_dt: Step size floor [s].
        max_dt: Step size ceiling [s].
        headroom: Safety factor in the step size update.
        dt_mul: Converts torque units to dy/dt (default gamma_0).
    """

    def __init__(
        self,
        y: np.ndarray,
        torque_fn: Callable[[bool], np.ndarray],
        post_step: Callable[[np.ndarray], None],
        clock: Clock,
        dt: float = 1e-15,
        max_err: float = 1e-4,
        min_dt: float = 1e-20,
        max_dt: float = 1e-10,
        headroom: float = 0.8,
        dt_mul: float = gamma_0,
    ) -> None:
        self.y = y
        self.torque_fn = torque_fn
        self.post_step = post_step
        self.clock = clock
        self.dt = dt
        self.max_err = max_err
        self.min_dt = min_dt
        self.max_dt = max_dt
        self.headroom = headroom
        self.dt_mul = dt_mul

        self.state = StepperState.IDLE
        self.step_count = 0
        self.total_rejected = 0
        self._y0 = np.empty_like(y)
        self._k1 = np.empty_like(y)

    def step(self) -> StepResult:
        """Take one accepted step, retrying with smaller dt as needed."""
        y = self.y
        np.copyto(self._y0, y)

        self.state = StepperState.EVALUATING
        np.copyto(self._k1, self.torque_fn(True))
        k1 = self._k1
        max_torque = max_vec_norm(k1)

        rejected = 0
        while True:
            dt_si = self.dt
            dt = dt_si * self.dt_mul

            y += dt * k1
            self.state = StepperState.EVALUATING
            k2 = self.torque_fn(False)
            err = max_vec_diff(k1, k2) * dt

            if err <= self.max_err:
                y[...] = self._y0 + (0.5 * dt) * (k1 + k2)
                self.post_step(y)
                self.clock.time += dt_si
                self.step_count += 1
                self.total_rejected += rejected
                self.state = StepperState.ACCEPTED
                self.dt = self._adapt(dt_si, err)
                logger.debug(
                    "Step %d accepted: t=%.4e s, dt=%.3e s, err=%.3e",
                    self.step_count, self.clock.time, dt_si, err,
                )
                return StepResult(
                    time=self.clock.time,
                    step=self.step_count,
                    dt=dt_si,
                    error=err,
                    rejected=rejected,
                    max_torque=max_torque,
                )

            np.copyto(y, self._y0)
            self.state = StepperState.REJECTED
            if dt_si <= self.min_dt:
                raise IntegrationError(
                    f"step size underflow: error {err:.3e} > {self.max_err:.3e} "
                    f"at minimum dt {dt_si:.3e} s (t={self.clock.time:.4e} s)",
                    dt=dt_si,
                    error=err,
                )
            rejected += 1
            self.dt = self._adapt(dt_si, err)
            logger.debug("Step rejected: dt=%.3e s, err=%.3e, retry dt=%.3e s", dt_si, err, self.dt)

    def _adapt(self, dt: float, err: float) -> float:
        if err == 0.0:
            factor = MAX_GROWTH
        else:
            factor = self.headroom * math.sqrt(self.max_err / err)
            factor = min(max(factor, MIN_SHRINK), MAX_GROWTH)
        return min(max(dt * factor, self.min_dt), self.max_dt)
