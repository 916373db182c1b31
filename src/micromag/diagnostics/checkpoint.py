"""Checkpoint/restart support for micromagnetic simulations.

Saves and loads the magnetization, region map, time, step count and step
size to HDF5 files for restart capability.

Usage:
    # Save checkpoint
    save_checkpoint("checkpoint.h5", m, regions, time, step_count, dt, config_json)

    # Load checkpoint
    data = load_checkpoint("checkpoint.h5")
    m = data["m"]
    time = data["time"]
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

try:
    import h5py

    HAS_H5PY = True
except ImportError:
    HAS_H5PY = False
    logger.warning("h5py not available; checkpoint/restart disabled")


def save_checkpoint(
    filename: str,
    m: np.ndarray,
    regions: np.ndarray,
    time: float,
    step_count: int,
    dt: float,
    config_json: str | None = None,
) -> None:
    """Save the simulation state to an HDF5 checkpoint file.

    Args:
        filename: Output HDF5 file path.
        m: Magnetization, internal layout ``(3, nz, ny, nx)``.
        regions: Region map ``(nz, ny, nx)``.
        time: Current simulation time [s].
        step_count: Accepted steps so far.
        dt: Current integrator step size [s].
        config_json: JSON string of the simulation config (for reference).
    """
    if not HAS_H5PY:
        logger.warning("Cannot save checkpoint: h5py not installed")
        return

    logger.info("Saving checkpoint to %s at t=%.4e s, step=%d", filename, time, step_count)

    with h5py.File(filename, "w") as f:
        f.attrs["time"] = time
        f.attrs["step_count"] = step_count
        f.attrs["dt"] = dt
        f.attrs["checkpoint_version"] = 1

        if config_json is not None:
            f.attrs["config_json"] = config_json

        f.create_dataset("m", data=m)
        f.create_dataset("regions", data=regions)

    logger.info("Checkpoint saved: %s", filename)


def load_checkpoint(filename: str) -> dict[str, Any]:
    """Load simulation state from an HDF5 checkpoint file.

    Args:
        filename: Input HDF5 file path.

    Returns:
        Dictionary with keys ``m``, ``regions``, ``time``, ``step_count``,
        ``dt`` and ``config_json`` (str or None).
    """
    if not HAS_H5PY:
        raise RuntimeError("Cannot load checkpoint: h5py not installed")

    logger.info("Loading checkpoint from %s", filename)

    with h5py.File(filename, "r") as f:
        time = float(f.attrs["time"])
        step_count = int(f.attrs["step_count"])
        dt = float(f.attrs["dt"])

        config_json = None
        if "config_json" in f.attrs:
            config_json = str(f.attrs["config_json"])

        m = np.array(f["m"])
        regions = np.array(f["regions"])

    logger.info("Checkpoint loaded: t=%.4e s, step=%d, mesh=%s", time, step_count, m.shape[1:])

    return {
        "m": m,
        "regions": regions,
        "time": time,
        "step_count": step_count,
        "dt": dt,
        "config_json": config_json,
    }
