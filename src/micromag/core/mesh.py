"""Finite-difference mesh geometry.

Internally every array is stored ``[z, y, x]``-major so that the user's X
axis is the fastest varying one. :class:`Mesh` works purely in that
internal order; the reversal to user order ``[x, y, z]`` happens only in
the simulation's public ``cell_size()`` / ``world_size()`` /
``grid_size()`` accessors.
"""

from __future__ import annotations

from dataclasses import dataclass

from micromag.errors import ConfigurationError

# Internal axis / component indices
Z, Y, X = 0, 1, 2


@dataclass(frozen=True)
class Mesh:
    """Immutable grid of ``n0 x n1 x n2`` cells in internal ``[z, y, x]`` order.

    Attributes:
        size: Cell counts ``(nz, ny, nx)``.
        cell: Cell size ``(cz, cy, cx)`` [m].
    """

    size: tuple[int, int, int]
    cell: tuple[float, float, float]

    def __post_init__(self) -> None:
        if len(self.size) != 3 or len(self.cell) != 3:
            raise ConfigurationError("mesh needs three cell counts and three cell sizes")
        if any(n <= 0 for n in self.size):
            raise ConfigurationError(f"mesh cell counts must be positive, have: {self.size}")
        if any(c <= 0 for c in self.cell):
            raise ConfigurationError(f"mesh cell sizes must be positive, have: {self.cell}")

    @classmethod
    def from_user(
        cls, nx: int, ny: int, nz: int, dx: float, dy: float, dz: float,
    ) -> Mesh:
        """Build a mesh from user-order ``[x, y, z]`` arguments."""
        for n in (nx, ny, nz):
            if int(n) != n:
                raise ConfigurationError(f"mesh cell counts must be integers, have: {(nx, ny, nz)}")
        return cls(size=(int(nz), int(ny), int(nx)), cell=(float(dz), float(dy), float(dx)))

    def world_size(self) -> tuple[float, float, float]:
        return tuple(n * c for n, c in zip(self.size, self.cell))

    def ncell(self) -> int:
        return self.size[0] * self.size[1] * self.size[2]

    def cell_volume(self) -> float:
        return self.cell[0] * self.cell[1] * self.cell[2]

    def shape(self, ncomp: int) -> tuple[int, int, int, int]:
        """Array shape of an ``ncomp``-component field on this mesh."""
        return (ncomp,) + self.size

    def user_string(self) -> str:
        nz, ny, nx = self.size
        cz, cy, cx = self.cell
        return f"{nx} x {ny} x {nz} cells of {cx:.3e} x {cy:.3e} x {cz:.3e} m"
