"""Heisenberg exchange field on the finite-difference grid.

    B_exch = 2 Aex / Msat * lap(m)

using the 6-neighbour Laplacian with free (Neumann) boundaries: a missing
neighbour contributes nothing. Each link between a cell and its +1
neighbour along axis ``a`` is weighted by ``mask[a]`` at the lower cell.
"""

from __future__ import annotations

import numpy as np
from numba import njit


@njit(cache=True)
def exchange_laplacian(m: np.ndarray, mask: np.ndarray, inv_d2: np.ndarray, out: np.ndarray) -> None:
    """Write the mask-weighted Laplacian of ``m`` into ``out``.

    Args:
        m: Reduced magnetization, shape ``(3, n0, n1, n2)``.
        mask: Link weights, shape ``(3, n0, n1, n2)``; component ``a`` scales
            the link to the +1 neighbour along axis ``a``.
        inv_d2: ``1 / cell**2`` per axis.
        out: Destination, same shape as ``m``.
    """
    n0, n1, n2 = m.shape[1], m.shape[2], m.shape[3]
    for i0 in range(n0):
        for i1 in range(n1):
            for i2 in range(n2):
                for c in range(3):
                    m0 = m[c, i0, i1, i2]
                    h = 0.0
                    if i0 > 0:
                        h += mask[0, i0 - 1, i1, i2] * inv_d2[0] * (m[c, i0 - 1, i1, i2] - m0)
                    if i0 < n0 - 1:
                        h += mask[0, i0, i1, i2] * inv_d2[0] * (m[c, i0 + 1, i1, i2] - m0)
                    if i1 > 0:
                        h += mask[1, i0, i1 - 1, i2] * inv_d2[1] * (m[c, i0, i1 - 1, i2] - m0)
                    if i1 < n1 - 1:
                        h += mask[1, i0, i1, i2] * inv_d2[1] * (m[c, i0, i1 + 1, i2] - m0)
                    if i2 > 0:
                        h += mask[2, i0, i1, i2 - 1] * inv_d2[2] * (m[c, i0, i1, i2 - 1] - m0)
                    if i2 < n2 - 1:
                        h += mask[2, i0, i1, i2] * inv_d2[2] * (m[c, i0, i1, i2 + 1] - m0)
                    out[c, i0, i1, i2] = h


def add_exchange(
    dst: np.ndarray,
    m: np.ndarray,
    mask: np.ndarray,
    aex: float | np.ndarray,
    msat: float | np.ndarray,
    cell: tuple[float, float, float],
) -> None:
    """Add the exchange field [T] to ``dst``. Skipped when Aex is zero everywhere.

    Args:
        dst: Destination ``(3, nz, ny, nx)``.
        m: Reduced magnetization.
        mask: Exchange link mask ``(3, nz, ny, nx)``.
        aex: Exchange stiffness [J/m], float or per cell.
        msat: Saturation magnetization [A/m], float or per cell, nonzero.
        cell: Cell size in internal order [m].
    """
    if not np.any(aex):
        return
    inv_d2 = 1.0 / np.asarray(cell, dtype=np.float64) ** 2
    lap = np.empty_like(m)
    exchange_laplacian(m, mask, inv_d2, lap)
    dst += (2.0 * aex / msat) * lap
