"""Per-cell region map used to index material parameter tables."""

from __future__ import annotations

import logging

import numpy as np

from micromag.constants import MAX_REGIONS
from micromag.core.bases import Clock, Getter
from micromag.core.mesh import Mesh
from micromag.errors import ConfigurationError

logger = logging.getLogger(__name__)


def check_region(region: int) -> int:
    """Validate a region index, returning it as int."""
    r = int(region)
    if r != region or not 0 <= r < MAX_REGIONS:
        raise ConfigurationError(f"region index should be in 0..{MAX_REGIONS - 1}, have: {region}")
    return r


class Regions(Getter):
    """One small integer per cell, default 0.

    Writing the map does not trigger any recomputation; parameter lookups
    and the anisotropy kernel read it on every evaluation.
    """

    name = "regions"
    unit = ""
    ncomp = 1

    def __init__(self, mesh: Mesh, clock: Clock) -> None:
        self.mesh = mesh
        self._clock = clock
        self._map = np.zeros(mesh.size, dtype=np.uint8)

    @property
    def array(self) -> np.ndarray:
        """Read-only view of the region map, shape ``(nz, ny, nx)``."""
        view = self._map.view()
        view.flags.writeable = False
        return view

    def define(self, region: int, mask: np.ndarray) -> None:
        """Assign ``region`` to every cell where ``mask`` is true.

        Args:
            region: Region index in ``0..MAX_REGIONS-1``.
            mask: Boolean array shaped like the mesh, ``(nz, ny, nx)``.
        """
        r = check_region(region)
        self._clock.check_mutable("regions")
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != self.mesh.size:
            raise ConfigurationError(
                f"region mask shape {mask.shape} does not match mesh {self.mesh.size}"
            )
        self._map[mask] = r
        logger.debug("Region %d defined on %d cells", r, int(mask.sum()))

    def _cell_index(self, ix: int, iy: int, iz: int) -> tuple[int, int, int]:
        nz, ny, nx = self.mesh.size
        if not (0 <= ix < nx and 0 <= iy < ny and 0 <= iz < nz):
            raise ConfigurationError(
                f"cell index ({ix}, {iy}, {iz}) outside mesh of {nx} x {ny} x {nz} cells"
            )
        return (iz, iy, ix)

    def set_cell(self, ix: int, iy: int, iz: int, region: int) -> None:
        """Assign a region to the single cell at user index ``(ix, iy, iz)``."""
        r = check_region(region)
        idx = self._cell_index(ix, iy, iz)
        self._clock.check_mutable("regions")
        self._map[idx] = r

    def get_cell(self, ix: int, iy: int, iz: int) -> int:
        return int(self._map[self._cell_index(ix, iy, iz)])

    def in_use(self) -> np.ndarray:
        """Sorted region indices present in the map."""
        return np.unique(self._map)

    def get(self) -> np.ndarray:
        return self._map.astype(np.float64)[np.newaxis]

    def restore(self, regions: np.ndarray) -> None:
        """Replace the whole map, e.g. from a checkpoint."""
        self._clock.check_mutable("regions")
        regions = np.asarray(regions)
        if regions.shape != self.mesh.size:
            raise ConfigurationError(f"region map shape {regions.shape} does not match mesh {self.mesh.size}")
        if regions.size and (regions.min() < 0 or regions.max() >= MAX_REGIONS):
            raise ConfigurationError(f"region indices must be in 0..{MAX_REGIONS - 1}")
        self._map[...] = regions
