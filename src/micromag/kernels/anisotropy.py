"""Uniaxial magnetocrystalline anisotropy field.

    B_uni = 2 ku1_red (m . u) u,   ku1_red = Ku1 / Msat  [T]

with ``u`` the (normalized) anisotropy axis of each cell's region.
"""

from __future__ import annotations

import numpy as np


def add_uniaxial_anisotropy(
    dst: np.ndarray,
    m: np.ndarray,
    ku1_red: float | np.ndarray,
    axis: np.ndarray,
) -> None:
    """Add the uniaxial anisotropy field [T] to ``dst``.

    Args:
        dst: Destination ``(3, nz, ny, nx)``.
        m: Reduced magnetization.
        ku1_red: Reduced anisotropy [T], float or per cell ``(nz, ny, nx)``.
        axis: Anisotropy axis per cell, ``(3, nz, ny, nx)`` or ``(3, 1, 1, 1)``.
            Zero axes give no contribution.
    """
    norm = np.sqrt(np.sum(axis * axis, axis=0))
    u = np.divide(axis, norm, out=np.zeros_like(axis), where=norm > 0)
    mu = np.sum(m * u, axis=0)
    dst += (2.0 * ku1_red * mu) * u
