"""Region-indexed material parameters and uniform excitations.

Every parameter is a dense table of ``MAX_REGIONS`` entries. Kernels read
it through :meth:`ScalarParam.cell_values`, which takes the uniform fast
path (a plain float) when all regions hold the same value.

Derived parameters are explicit dependency edges: a :class:`DerivedParam`
is registered on its source parameters and recomputed synchronously on
every write to either of them, before any subsequent read.

Vector values are given and returned in user order ``[x, y, z]`` and
stored internally reversed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

import numpy as np

from micromag.constants import MAX_REGIONS
from micromag.core.bases import Clock
from micromag.core.regions import check_region
from micromag.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ScalarParam:
    """Region-indexed scalar material constant."""

    def __init__(self, name: str, unit: str, clock: Clock, default: float = 0.0) -> None:
        self.name = name
        self.unit = unit
        self._clock = clock
        self._table = np.full(MAX_REGIONS, float(default))
        self._derived: list[DerivedParam] = []

    @property
    def table(self) -> np.ndarray:
        return self._table

    def get(self, region: int) -> float:
        return float(self._table[check_region(region)])

    def set(self, region: int, value: float) -> None:
        """Write one region and recompute every parameter derived from this one."""
        r = check_region(region)
        self._clock.check_mutable(self.name)
        self._table[r] = float(value)
        for derived in self._derived:
            derived.recompute(r)

    def set_all(self, value: float) -> None:
        """Write the same value to every region."""
        self._clock.check_mutable(self.name)
        self._table[:] = float(value)
        for derived in self._derived:
            derived.recompute_all()

    def is_uniform(self) -> bool:
        return bool(np.all(self._table == self._table[0]))

    def is_zero(self) -> bool:
        return not np.any(self._table)

    def cell_values(self, regions: np.ndarray) -> float | np.ndarray:
        """Per-cell values, shape ``(nz, ny, nx)``, or a float when uniform."""
        if self.is_uniform():
            return float(self._table[0])
        return self._table[regions]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, unit={self.unit!r})"


class DerivedParam(ScalarParam):
    """Scalar parameter computed as ``source / divisor`` region by region.

    Regions where the divisor is zero get 0; kernels that need the divisor
    nonzero check it themselves.
    """

    def __init__(
        self, name: str, unit: str, clock: Clock, source: ScalarParam, divisor: ScalarParam,
    ) -> None:
        super().__init__(name, unit, clock)
        self.source = source
        self.divisor = divisor
        source._derived.append(self)
        divisor._derived.append(self)
        self.recompute_all()

    def set(self, region: int, value: float) -> None:
        raise ConfigurationError(f"{self.name} is derived from {self.source.name}; set that instead")

    def set_all(self, value: float) -> None:
        raise ConfigurationError(f"{self.name} is derived from {self.source.name}; set that instead")

    def recompute(self, region: int) -> None:
        div = self.divisor.table[region]
        self._table[region] = self.source.table[region] / div if div != 0 else 0.0
        logger.debug("%s[%d] = %g", self.name, region, self._table[region])

    def recompute_all(self) -> None:
        div = self.divisor.table
        safe = np.where(div != 0, div, 1.0)
        self._table[:] = np.where(div != 0, self.source.table / safe, 0.0)


class VectorParam:
    """Region-indexed 3-vector material constant (user order in, user order out)."""

    def __init__(self, name: str, unit: str, clock: Clock) -> None:
        self.name = name
        self.unit = unit
        self._clock = clock
        self._table = np.zeros((MAX_REGIONS, 3))

    @property
    def table(self) -> np.ndarray:
        """Dense table in internal component order ``[z, y, x]``."""
        return self._table

    def get(self, region: int) -> tuple[float, float, float]:
        z, y, x = self._table[check_region(region)]
        return (float(x), float(y), float(z))

    def set(self, region: int, value: Sequence[float]) -> None:
        r = check_region(region)
        self._clock.check_mutable(self.name)
        self._table[r] = _to_internal(value)

    def set_all(self, value: Sequence[float]) -> None:
        self._clock.check_mutable(self.name)
        self._table[:] = _to_internal(value)

    def is_uniform(self) -> bool:
        return bool(np.all(self._table == self._table[0]))

    def cell_values(self, regions: np.ndarray) -> np.ndarray:
        """Per-cell vectors, shape ``(3, nz, ny, nx)``, or ``(3, 1, 1, 1)`` when uniform."""
        if self.is_uniform():
            return self._table[0].reshape(3, 1, 1, 1)
        return np.moveaxis(self._table[regions], -1, 0)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, unit={self.unit!r})"


class Excitation:
    """Uniform 3-vector driving term, constant or a function of time.

    Examples:
        B_ext.set((0, 0, 0.1))
        B_ext.set(lambda t: (0.01 * np.sin(2 * np.pi * 1e9 * t), 0, 0))
    """

    def __init__(self, name: str, unit: str, clock: Clock) -> None:
        self.name = name
        self.unit = unit
        self._clock = clock
        self._value: Sequence[float] | Callable[[float], Sequence[float]] = (0.0, 0.0, 0.0)

    def set(self, value: Sequence[float] | Callable[[float], Sequence[float]]) -> None:
        self._clock.check_mutable(self.name)
        if not callable(value):
            _to_internal(value)
            value = tuple(float(v) for v in value)
        self._value = value

    def user_value(self, time: float) -> np.ndarray:
        """Current value in user order ``[x, y, z]``."""
        value = self._value(time) if callable(self._value) else self._value
        arr = np.asarray(value, dtype=np.float64)
        if arr.shape != (3,):
            raise ConfigurationError(f"{self.name} must be a 3-vector, got shape {arr.shape}")
        return arr

    def internal_value(self, time: float) -> np.ndarray:
        """Current value in internal component order ``[z, y, x]``."""
        return self.user_value(time)[::-1].copy()


def _to_internal(value: Sequence[float]) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ConfigurationError(f"expected a 3-vector, got shape {arr.shape}")
    return arr[::-1].copy()
