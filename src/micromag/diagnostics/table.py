"""Data table: one row of spatially averaged quantities per save-worthy tick.

Every torque evaluation runs the two-phase protocol

    table.arm(cansave)      before the pipeline: mark wanted columns
    ... Torque.set ...      pipeline publishes armed quantities
    table.sample(cansave)   after the pipeline: append one row

so a column whose quantity is part of the pipeline is read from the value
published this tick instead of being recomputed. Columns outside the
pipeline (``m``, ``regions``) are computed on demand.

Vector averages are written in user order, e.g. ``mx, my, mz``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from micromag.core.bases import Clock, DiagnosticsBase, Getter, Quantity
from micromag.core.registry import Registry
from micromag.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Column:
    """A table column backed by a registered quantity."""

    getter: Getter
    wanted: bool = False

    def header(self) -> list[str]:
        if self.getter.ncomp == 3:
            return [f"{self.getter.name}{c}" for c in ("x", "y", "z")]
        return [self.getter.name]

    def units(self) -> list[str]:
        return [self.getter.unit] * self.getter.ncomp

    def values(self) -> list[float]:
        avg = self.getter.average()
        if self.getter.ncomp == 3:
            avg = avg[::-1]
        return [float(v) for v in avg]


class DataTable:
    """Ordered columns plus a leading time column.

    Args:
        clock: Shared clock (time and tick).
        registry: Where column names are resolved.
        writer: Optional collaborator that persists each row.
    """

    def __init__(self, clock: Clock, registry: Registry, writer: DiagnosticsBase | None = None) -> None:
        self._clock = clock
        self._registry = registry
        self.writer = writer
        self.columns: list[Column] = []
        self.rows: list[list[float]] = []
        self.period = 0.0
        self._next_save = 0.0
        self._armed = False

    def add(self, name: str) -> None:
        """Add a column for the registered quantity ``name``."""
        getter = self._registry.lookup(name)
        if getter is None:
            raise ConfigurationError(
                f"cannot add table column {name!r}: no such quantity, have {self._registry.names()}"
            )
        if any(col.getter is getter for col in self.columns):
            logger.warning("Table column %r already present", name)
            return
        self.columns.append(Column(getter))
        logger.debug("Table column added: %s", name)

    def autosave(self, period: float) -> None:
        """Append a row every ``period`` seconds of simulation time (0 = off)."""
        if period < 0:
            raise ConfigurationError(f"table autosave period must be >= 0, got {period}")
        self.period = period
        self._next_save = self._clock.time
        logger.info("Table autosave every %.3e s", period)

    def header(self) -> list[str]:
        names = ["t"]
        for col in self.columns:
            names.extend(col.header())
        return names

    def units(self) -> list[str]:
        units = ["s"]
        for col in self.columns:
            units.extend(col.units())
        return units

    def needs_save(self) -> bool:
        if self.period <= 0:
            return False
        return self._clock.time >= self._next_save - 1e-9 * self.period

    # --- per-tick protocol ---

    def arm(self, cansave: bool) -> None:
        """Mark every column wanted when this tick will produce a row."""
        self._armed = cansave and self.needs_save()
        for col in self.columns:
            col.wanted = self._armed
            if self._armed and isinstance(col.getter, Quantity):
                col.getter.armed = True

    def sample(self, cansave: bool) -> None:
        """Append a row if this tick was armed; otherwise do nothing."""
        if not (cansave and self._armed):
            return
        self._append_row()
        self._armed = False
        for col in self.columns:
            col.wanted = False
        self._next_save = (math.floor(self._clock.time / self.period + 1e-9) + 1) * self.period

    def save(self) -> None:
        """Append a row now, pulling every column through its getter."""
        self._append_row()

    def _append_row(self) -> None:
        row = [self._clock.time]
        for col in self.columns:
            row.extend(col.values())
        self.rows.append(row)
        if self.writer is not None:
            self.writer.record_row(self.header(), row)
        logger.debug("Table row %d at t=%.4e", len(self.rows), self._clock.time)

    def as_array(self) -> np.ndarray:
        """All rows as a ``(nrows, ncols)`` array."""
        return np.array(self.rows, dtype=np.float64).reshape(len(self.rows), len(self.header()))

    def column(self, name: str) -> np.ndarray:
        """Values of one header column, e.g. ``"mz"`` or ``"t"``."""
        header = self.header()
        if name not in header:
            raise KeyError(f"no table column {name!r}; have {header}")
        return self.as_array()[:, header.index(name)]

    def __len__(self) -> int:
        return len(self.rows)
