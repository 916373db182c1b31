"""Name -> quantity directory for logging and rendering collaborators."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import Enum

from micromag.core.bases import Getter, Quantity

logger = logging.getLogger(__name__)


class QuantityName(str, Enum):
    """Every quantity the engine registers."""

    M = "m"
    REGIONS = "regions"
    M_FFT = "mFFT"
    B_DEMAG = "B_demag"
    B_EXCH = "B_exch"
    EXCHANGE_MASK = "exchangemask"
    B_DMI = "B_dmi"
    B_UNI = "B_uni"
    B_EFF = "B_eff"
    LL_TORQUE = "lltorque"
    ST_TORQUE = "sttorque"
    TORQUE = "torque"


class Registry:
    """Fixed mapping from :class:`QuantityName` to a downloadable handle.

    Entries are added once while the simulation initializes and never
    removed.
    """

    def __init__(self) -> None:
        self._entries: dict[QuantityName, Getter] = {}

    def register(self, key: QuantityName, getter: Getter) -> None:
        key = QuantityName(key)
        if key in self._entries:
            raise KeyError(f"quantity {key.value!r} already registered")
        self._entries[key] = getter

    def lookup(self, name: str | QuantityName) -> Getter | None:
        """Return the handle for ``name``, or None if there is no such quantity."""
        try:
            key = QuantityName(name)
        except ValueError:
            return None
        return self._entries.get(key)

    def __getitem__(self, name: str | QuantityName) -> Getter:
        getter = self.lookup(name)
        if getter is None:
            raise KeyError(f"no quantity named {name!r}; have {self.names()}")
        return getter

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[Getter]:
        return iter(self._entries.values())

    def names(self) -> list[str]:
        return [k.value for k in self._entries]

    def disarm_all(self) -> None:
        """Clear every quantity's wanted flag ahead of a new tick."""
        for getter in self._entries.values():
            if isinstance(getter, Quantity):
                getter.armed = False
