"""Core abstract base classes and shared data structures.

Defines the interface contracts the engine is built from:
- ``Clock``: simulation time, tick counter and evaluation guard
- ``StepResult``: summary of one accepted integrator step
- ``Getter``: anything a logging/rendering collaborator can download
- ``Quantity``: named, shaped output with the arm/publish caching protocol
- ``SetterQuantity`` / ``AdderQuantity``: the two ways a quantity writes
  into a caller-owned buffer
- ``DiagnosticsBase``: ABC for table and field output writers
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from micromag.core.mesh import Mesh
from micromag.errors import ConfigurationError


@dataclass
class Clock:
    """Shared time bookkeeping, passed explicitly to every component.

    Attributes:
        time: Simulation time [s].
        tick: Number of torque evaluations so far. Strictly increasing.
        evaluating: True while a torque evaluation is outstanding.
    """

    time: float = 0.0
    tick: int = 0
    evaluating: bool = False

    def check_mutable(self, what: str) -> None:
        """Reject mutation of shared inputs during a torque evaluation."""
        if self.evaluating:
            raise ConfigurationError(f"cannot modify {what} during a torque evaluation")


@dataclass
class StepResult:
    """Result of a single accepted integrator step.

    Attributes:
        time: Simulation time after this step [s].
        step: Number of accepted steps so far.
        dt: Step size used [s].
        error: Local error estimate of the accepted step (change in m).
        rejected: Number of rejected attempts before acceptance.
        max_torque: Largest torque magnitude at the start of the step [T].
    """

    time: float = 0.0
    step: int = 0
    dt: float = 0.0
    error: float = 0.0
    rejected: int = 0
    max_torque: float = 0.0


class Getter(ABC):
    """Something whose current data can be downloaded on demand."""

    name: str
    unit: str
    ncomp: int

    @abstractmethod
    def get(self) -> np.ndarray:
        """Return a freshly computed copy, shape ``(ncomp, nz, ny, nx)``."""

    def average(self) -> np.ndarray:
        """Per-component average in internal component order."""
        return self.get().mean(axis=(1, 2, 3))


class Quantity(Getter):
    """Named output produced by a compute function.

    A quantity never owns the destination buffer it writes into. It keeps
    at most one copy of its own most recent value, published only on a
    save-worthy tick when some consumer armed it beforehand.

    Args:
        ncomp: Number of components (1 or 3).
        mesh: Mesh the output lives on.
        name: Registry name.
        unit: SI unit string.
        clock: Shared clock, used to stamp published values.
    """

    def __init__(self, ncomp: int, mesh: Mesh, name: str, unit: str, clock: Clock) -> None:
        self.ncomp = ncomp
        self.mesh = mesh
        self.name = name
        self.unit = unit
        self.armed = False
        self._clock = clock
        self._saved: np.ndarray | None = None
        self._saved_tick = -1

    def shape(self) -> tuple[int, int, int, int]:
        return self.mesh.shape(self.ncomp)

    def _publish(self, value: np.ndarray, cansave: bool) -> None:
        if not (cansave and self.armed):
            return
        if self._saved is None:
            self._saved = np.empty(self.shape())
        np.copyto(self._saved, value)
        self._saved_tick = self._clock.tick

    def latest(self) -> np.ndarray | None:
        """Value published during the current tick, or None."""
        if self._saved_tick == self._clock.tick:
            return self._saved
        return None

    def average(self) -> np.ndarray:
        data = self.latest()
        if data is None:
            data = self.get()
        return data.mean(axis=(1, 2, 3))


class SetterQuantity(Quantity):
    """Quantity that fully overwrites its destination.

    ``fn(dst, cansave)`` must leave ``dst`` holding exactly this quantity's
    value; ``cansave`` may only be forwarded to sub-quantities.
    """

    def __init__(
        self,
        ncomp: int,
        mesh: Mesh,
        name: str,
        unit: str,
        clock: Clock,
        fn: Callable[[np.ndarray, bool], None],
    ) -> None:
        super().__init__(ncomp, mesh, name, unit, clock)
        self._fn = fn

    def set(self, dst: np.ndarray, cansave: bool) -> None:
        self._fn(dst, cansave)
        self._publish(dst, cansave)

    def get(self) -> np.ndarray:
        buf = np.zeros(self.shape())
        self.set(buf, False)
        return buf


class AdderQuantity(Quantity):
    """Quantity that accumulates its contribution into the destination.

    ``fn(dst)`` adds the contribution with a single in-place addition per
    element (or does nothing when the contribution is zero), so computing
    into a zeroed scratch buffer first and adding that gives bit-identical
    results.
    """

    def __init__(
        self,
        ncomp: int,
        mesh: Mesh,
        name: str,
        unit: str,
        clock: Clock,
        fn: Callable[[np.ndarray], None],
    ) -> None:
        super().__init__(ncomp, mesh, name, unit, clock)
        self._fn = fn
        self._scratch: np.ndarray | None = None

    def add_to(self, dst: np.ndarray, cansave: bool) -> None:
        if cansave and self.armed:
            if self._scratch is None:
                self._scratch = np.zeros(self.shape())
            else:
                self._scratch.fill(0.0)
            self._fn(self._scratch)
            dst += self._scratch
            self._publish(self._scratch, cansave)
        else:
            self._fn(dst)

    def get(self) -> np.ndarray:
        buf = np.zeros(self.shape())
        self._fn(buf)
        return buf


class DiagnosticsBase(ABC):
    """Abstract base for output writers fed by the table and field autosave."""

    @abstractmethod
    def record_row(self, header: list[str], row: list[float]) -> None:
        """Record one table row.

        Args:
            header: Column names, ``"t"`` first.
            row: Values matching ``header``.
        """

    @abstractmethod
    def record_field(self, name: str, time: float, data: np.ndarray) -> None:
        """Record a snapshot of a registered quantity.

        Args:
            name: Registry name.
            time: Simulation time [s].
            data: Array in internal layout ``(ncomp, nz, ny, nx)``.
        """

    def finalize(self) -> None:
        """Clean up resources (close files, flush buffers)."""
