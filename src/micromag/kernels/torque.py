"""Landau-Lifshitz torque and vector-field reductions used by the stepper."""

from __future__ import annotations

import numpy as np


def cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Cross product of vector fields stored in internal ``[z, y, x]`` order.

    Reversing the components is an odd permutation, so the plain cross
    product of the stored arrays has the opposite sign.
    """
    return -np.cross(a, b, axis=0)


def ll_torque(dst: np.ndarray, m: np.ndarray, b: np.ndarray, alpha: float | np.ndarray) -> None:
    """Landau-Lifshitz torque [T], written to ``dst`` (may alias ``b``).

        tau = -1/(1+alpha^2) [ m x B + alpha m x (m x B) ]
    """
    mxb = cross(m, b)
    mxmxb = cross(m, mxb)
    dst[...] = (-1.0 / (1.0 + alpha * alpha)) * (mxb + alpha * mxmxb)


def normalize(m: np.ndarray) -> None:
    """Scale every vector to unit length in place; zero vectors stay zero."""
    norm = np.sqrt(np.sum(m * m, axis=0))
    np.divide(m, norm, out=m, where=norm > 0)


def vec_norm(v: np.ndarray) -> np.ndarray:
    return np.sqrt(np.sum(v * v, axis=0))


def max_vec_norm(v: np.ndarray) -> float:
    return float(np.max(vec_norm(v)))


def max_vec_diff(a: np.ndarray, b: np.ndarray) -> float:
    """Largest per-cell length of ``a - b``."""
    return max_vec_norm(a - b)


def fft_amplitude(m: np.ndarray) -> np.ndarray:
    """Per-component FFT amplitude of a vector field, same shape as ``m``."""
    return np.abs(np.fft.fftn(m, axes=(1, 2, 3)))
