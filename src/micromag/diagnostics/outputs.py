"""Periodic field snapshots of registered quantities.

Takes part in the same per-tick protocol as the data table: a due output
arms its quantity before the pipeline runs and collects the published
value afterwards, so a snapshot of e.g. ``B_eff`` costs no extra
evaluation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from micromag.core.bases import Clock, DiagnosticsBase, Getter, Quantity
from micromag.core.registry import Registry
from micromag.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class FieldOutput:
    getter: Getter
    period: float
    next_save: float = 0.0
    due: bool = False
    count: int = 0


@dataclass
class Snapshot:
    name: str
    time: float
    data: np.ndarray = field(repr=False)


class FieldAutosaver:
    """Schedules snapshots of registered quantities by simulation time.

    Snapshots are handed to ``writer`` when one is attached and otherwise
    kept in :attr:`snapshots`.
    """

    def __init__(self, clock: Clock, registry: Registry, writer: DiagnosticsBase | None = None) -> None:
        self._clock = clock
        self._registry = registry
        self.writer = writer
        self.outputs: dict[str, FieldOutput] = {}
        self.snapshots: list[Snapshot] = []

    def autosave(self, name: str, period: float) -> None:
        """Snapshot quantity ``name`` every ``period`` seconds (0 removes it)."""
        getter = self._registry.lookup(name)
        if getter is None:
            raise ConfigurationError(f"cannot autosave {name!r}: no such quantity")
        if period < 0:
            raise ConfigurationError(f"autosave period must be >= 0, got {period}")
        if period == 0:
            self.outputs.pop(getter.name, None)
            return
        self.outputs[getter.name] = FieldOutput(getter, period, next_save=self._clock.time)
        logger.info("Autosave %s every %.3e s", getter.name, period)

    def arm(self, cansave: bool) -> None:
        """Arm the quantity of every output due this tick."""
        t = self._clock.time
        for out in self.outputs.values():
            out.due = cansave and t >= out.next_save - 1e-9 * out.period
            if out.due and isinstance(out.getter, Quantity):
                out.getter.armed = True

    def collect(self, cansave: bool) -> None:
        """Store a snapshot for every output armed this tick."""
        if not cansave:
            return
        t = self._clock.time
        for out in self.outputs.values():
            if not out.due:
                continue
            data = out.getter.latest() if isinstance(out.getter, Quantity) else None
            data = out.getter.get() if data is None else data.copy()
            self._store(Snapshot(out.getter.name, t, data))
            out.due = False
            out.count += 1
            out.next_save = (math.floor(t / out.period + 1e-9) + 1) * out.period

    def _store(self, snap: Snapshot) -> None:
        if self.writer is not None:
            self.writer.record_field(snap.name, snap.time, snap.data)
        else:
            self.snapshots.append(snap)
        logger.debug("Snapshot %s at t=%.4e", snap.name, snap.time)
