"""Magnetization state and the staggered exchange mask.

Both hold bulk arrays in internal layout ``(3, nz, ny, nx)`` with component
0 being the user's Z. Tuple-valued setters take user order ``(x, y, z)``.
"""

from __future__ import annotations

import numpy as np

from micromag.core.bases import Clock, Getter
from micromag.core.mesh import Mesh
from micromag.errors import ConfigurationError, UninitializedStateError
from micromag.kernels.torque import max_vec_norm, normalize

_AXES = {"z": 0, "y": 1, "x": 2}


class Magnetization(Getter):
    """Reduced magnetization, one unit vector per cell.

    Owned by the stepper between steps; pipeline quantities only read it.
    """

    name = "m"
    unit = ""
    ncomp = 3

    def __init__(self, mesh: Mesh, clock: Clock) -> None:
        self.mesh = mesh
        self._clock = clock
        self.buffer = np.zeros(mesh.shape(3))

    def set_uniform(self, mx: float, my: float, mz: float) -> None:
        """Set every cell to the direction ``(mx, my, mz)``."""
        self._clock.check_mutable("m")
        if mx == 0 and my == 0 and mz == 0:
            raise ConfigurationError("magnetization direction must be nonzero")
        self.buffer[...] = np.array([mz, my, mx], dtype=np.float64).reshape(3, 1, 1, 1)
        normalize(self.buffer)

    def set_array(self, m: np.ndarray) -> None:
        """Set from an array in internal layout ``(3, nz, ny, nx)``; normalized on copy."""
        self._clock.check_mutable("m")
        m = np.asarray(m, dtype=np.float64)
        if m.shape != self.buffer.shape:
            raise ConfigurationError(f"magnetization shape {m.shape} does not match {self.buffer.shape}")
        self.buffer[...] = m
        normalize(self.buffer)

    def restore(self, m: np.ndarray) -> None:
        """Replace the state verbatim, e.g. from a checkpoint; no renormalization."""
        self._clock.check_mutable("m")
        m = np.asarray(m, dtype=np.float64)
        if m.shape != self.buffer.shape:
            raise ConfigurationError(f"magnetization shape {m.shape} does not match {self.buffer.shape}")
        np.copyto(self.buffer, m)

    def check(self) -> None:
        """Raise if the magnetization was never initialized."""
        if max_vec_norm(self.buffer) == 0:
            raise UninitializedStateError("need to initialize magnetization first")

    def get(self) -> np.ndarray:
        return self.buffer.copy()


class ExchangeMask(Getter):
    """Per-link weights scaling the exchange coupling, default 1.

    Component ``a`` at cell ``i`` weights the link between ``i`` and its
    +1 neighbour along internal axis ``a``.
    """

    name = "exchangemask"
    unit = ""
    ncomp = 3

    def __init__(self, mesh: Mesh, clock: Clock) -> None:
        self.mesh = mesh
        self._clock = clock
        self.buffer = np.ones(mesh.shape(3))

    def set_axis(self, axis: str, weights: np.ndarray | float) -> None:
        """Set the link weights along user axis ``'x'``, ``'y'`` or ``'z'``."""
        self._clock.check_mutable("exchange mask")
        try:
            a = _AXES[axis.lower()]
        except KeyError:
            raise ConfigurationError(f"axis must be 'x', 'y' or 'z', got {axis!r}") from None
        weights = np.asarray(weights, dtype=np.float64)
        if weights.ndim and weights.shape != self.mesh.size:
            raise ConfigurationError(f"mask shape {weights.shape} does not match mesh {self.mesh.size}")
        self.buffer[a] = weights

    def get(self) -> np.ndarray:
        return self.buffer.copy()
