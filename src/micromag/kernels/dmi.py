"""Interfacial Dzyaloshinskii-Moriya field.

    B_dmi = 2 D / Msat * (dmz/dx, dmz/dy, -dmx/dx - dmy/dy)

in user coordinates, with central differences and free boundaries
(edge values repeated, so the outward derivative vanishes).
"""

from __future__ import annotations

import numpy as np

from micromag.core.mesh import X, Y, Z


def central_diff(f: np.ndarray, axis: int, d: float) -> np.ndarray:
    """Central difference of a scalar field along ``axis`` with edge padding."""
    pad = [(0, 0)] * f.ndim
    pad[axis] = (1, 1)
    p = np.pad(f, pad, mode="edge")
    hi = [slice(None)] * f.ndim
    lo = [slice(None)] * f.ndim
    hi[axis] = slice(2, None)
    lo[axis] = slice(None, -2)
    return (p[tuple(hi)] - p[tuple(lo)]) / (2.0 * d)


def add_dmi(
    dst: np.ndarray,
    m: np.ndarray,
    dind: float | np.ndarray,
    msat: float | np.ndarray,
    cell: tuple[float, float, float],
) -> None:
    """Add the interfacial DMI field [T] to ``dst``.

    Args:
        dst: Destination ``(3, nz, ny, nx)``, internal component order.
        m: Reduced magnetization, same layout.
        dind: DMI strength [J/m^2], float or per cell; must be nonzero somewhere.
        msat: Saturation magnetization [A/m], float or per cell, nonzero.
        cell: Cell size in internal order [m].
    """
    pre = 2.0 * dind / msat
    # Scalar fields are (nz, ny, nx): axis X of the mesh is array axis 2
    dmz_dx = central_diff(m[Z], X, cell[X])
    dmz_dy = central_diff(m[Z], Y, cell[Y])
    dmx_dx = central_diff(m[X], X, cell[X])
    dmy_dy = central_diff(m[Y], Y, cell[Y])

    term = np.empty_like(dst)
    term[X] = pre * dmz_dx
    term[Y] = pre * dmz_dy
    term[Z] = -pre * (dmx_dx + dmy_dy)
    dst += term
