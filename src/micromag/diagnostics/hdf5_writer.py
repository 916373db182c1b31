"""HDF5 writer for the data table and field snapshots.

Collects table rows and field snapshots during a run and writes them into
one HDF5 file for post-processing.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from micromag.core.bases import DiagnosticsBase

logger = logging.getLogger(__name__)

try:
    import h5py

    HAS_H5PY = True
except ImportError:
    HAS_H5PY = False
    logger.warning("h5py not available; HDF5 output disabled")


class HDF5Writer(DiagnosticsBase):
    """Write table rows and field snapshots to an HDF5 file.

    Layout:
    - ``table/<column>``: one dataset per table column (``t``, ``mx``, ...)
    - ``fields/<name>/snapshot_NNNN``: one dataset per snapshot, with the
      simulation time in its ``time`` attribute

    Args:
        filename: Output HDF5 file path.
        attrs: Extra file attributes (e.g. the config JSON).
    """

    def __init__(self, filename: str = "micromag.h5", attrs: dict[str, Any] | None = None) -> None:
        self.filename = filename
        self.attrs = dict(attrs or {})
        self._header: list[str] | None = None
        self._rows: list[list[float]] = []
        self._fields: dict[str, list[tuple[float, np.ndarray]]] = {}

    def record_row(self, header: list[str], row: list[float]) -> None:
        if self._header is None:
            self._header = list(header)
        elif header != self._header:
            raise ValueError(f"table header changed from {self._header} to {header}")
        self._rows.append(list(row))

    def record_field(self, name: str, time: float, data: np.ndarray) -> None:
        self._fields.setdefault(name, []).append((time, np.array(data, copy=True)))

    @property
    def num_rows(self) -> int:
        return len(self._rows)

    def finalize(self) -> None:
        """Write all accumulated data to the HDF5 file."""
        if not HAS_H5PY:
            logger.warning("Cannot write HDF5: h5py not installed")
            return

        logger.info("Writing output to %s", self.filename)
        with h5py.File(self.filename, "w") as f:
            for key, val in self.attrs.items():
                f.attrs[key] = val

            if self._header is not None:
                grp = f.create_group("table")
                table = np.array(self._rows, dtype=np.float64)
                for idx, key in enumerate(self._header):
                    grp.create_dataset(key, data=table[:, idx])
                grp.attrs["columns"] = ",".join(self._header)

            if self._fields:
                fields_grp = f.create_group("fields")
                for name, snaps in self._fields.items():
                    grp = fields_grp.create_group(name)
                    for idx, (time, data) in enumerate(snaps):
                        dset = grp.create_dataset(f"snapshot_{idx:04d}", data=data)
                        dset.attrs["time"] = time
                    grp.attrs["num_snapshots"] = len(snaps)
                logger.info(
                    "Wrote %d field snapshots",
                    sum(len(s) for s in self._fields.values()),
                )

            f.attrs["num_records"] = len(self._rows)

        logger.info("Wrote %d table rows to %s", len(self._rows), self.filename)
