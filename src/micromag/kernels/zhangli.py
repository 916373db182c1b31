"""Zhang-Li spin-transfer torque for in-plane currents.

    u = mu_B P / (e Msat (1 + xi^2)) * J
    tau = 1/(1+alpha^2) [ (1 + xi alpha) m x (m x (u.grad)m)
                          - (xi - alpha) m x (u.grad)m ] / gamma_0

The torque is expressed in Tesla (divided by gamma_0) to be summed with the
Landau-Lifshitz torque.

Reference:
    Zhang S., Li Z., PRL 93, 127204 (2004).
"""

from __future__ import annotations

import numpy as np

from micromag.constants import e, gamma_0, mu_B
from micromag.kernels.dmi import central_diff
from micromag.kernels.torque import cross


def add_zhang_li_torque(
    dst: np.ndarray,
    m: np.ndarray,
    j: np.ndarray,
    pol: float | np.ndarray,
    msat: float | np.ndarray,
    alpha: float | np.ndarray,
    xi: float | np.ndarray,
    cell: tuple[float, float, float],
) -> None:
    """Add the spin-transfer torque [T] to ``dst``.

    Args:
        dst: Destination ``(3, nz, ny, nx)``.
        m: Reduced magnetization.
        j: Current density [A/m^2] in internal component order, so ``j[a]``
            flows along internal axis ``a``.
        pol: Spin polarization, float or per cell.
        msat: Saturation magnetization [A/m], float or per cell, nonzero.
        alpha: Damping, float or per cell.
        xi: Non-adiabaticity, float or per cell.
        cell: Cell size in internal order [m].
    """
    b = mu_B * pol / (e * msat * (1.0 + xi * xi))

    # (u . grad) m, per component
    ugradm = np.zeros_like(m)
    for a in range(3):
        if j[a] == 0.0 or m.shape[a + 1] == 1:
            continue
        for c in range(3):
            ugradm[c] += j[a] * central_diff(m[c], a, cell[a])
    ugradm *= b

    mxu = cross(m, ugradm)
    mxmxu = cross(m, mxu)
    pre = 1.0 / ((1.0 + alpha * alpha) * gamma_0)
    dst += pre * ((1.0 + xi * alpha) * mxmxu - (xi - alpha) * mxu)
