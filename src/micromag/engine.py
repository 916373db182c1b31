"""Simulation engine: assembles the torque pipeline and drives the stepper.

The effective field and torque are a fixed composition of quantities:

    B_eff    = B_demag (set) + B_exch + B_dmi + B_uni + B_ext (add, in that order)
    lltorque = LL(B_eff, m, alpha)
    torque   = lltorque + sttorque

Every call of the stepper's right-hand side is one *tick*:

1. increment the tick counter
2. arm the data table and the field autosaver (declare interest)
3. ``torque.set`` into the shared torque buffer
4. collect field snapshots and sample the table (publish)

Only the first Heun stage of a step is save-worthy; the trial stage never
arms anything, so logging costs nothing on ticks that are not persisted.

All state lives on the :class:`Simulation` object; nothing is global. The
mesh can be set exactly once, after which every mesh-sized component is
built.
"""

from __future__ import annotations

import logging
import time as wall_time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from micromag.config import SimulationConfig, SolverConfig
from micromag.core.bases import AdderQuantity, Clock, DiagnosticsBase, Getter, SetterQuantity, StepResult
from micromag.core.magnetization import ExchangeMask, Magnetization
from micromag.core.mesh import Mesh, X, Y, Z
from micromag.core.parameters import DerivedParam, Excitation, ScalarParam, VectorParam
from micromag.core.regions import Regions
from micromag.core.registry import QuantityName, Registry
from micromag.diagnostics.checkpoint import load_checkpoint, save_checkpoint
from micromag.diagnostics.outputs import FieldAutosaver
from micromag.diagnostics.table import DataTable
from micromag.errors import ConfigurationError, PhysicalPreconditionError, UninitializedStateError
from micromag.kernels.anisotropy import add_uniaxial_anisotropy
from micromag.kernels.demag import DemagConvolution
from micromag.kernels.dmi import add_dmi
from micromag.kernels.exchange import add_exchange
from micromag.kernels.torque import fft_amplitude, ll_torque, normalize
from micromag.kernels.zhangli import add_zhang_li_torque
from micromag.solver.heun import HeunStepper

logger = logging.getLogger(__name__)


@dataclass
class ExtField:
    """Space-dependent addition to B_ext: ``mask * multiplier(t)``."""

    mask: np.ndarray
    multiplier: Callable[[float], float]


class FFTAmplitude(Getter):
    """FFT amplitude of the magnetization, for rendering."""

    name = "mFFT"
    unit = ""
    ncomp = 3

    def __init__(self, m: Magnetization) -> None:
        self._m = m

    def get(self) -> np.ndarray:
        return fft_amplitude(self._m.buffer)


class Simulation:
    """Micromagnetic simulation context.

    Material parameters and excitations exist from construction; everything
    sized by the mesh (magnetization, regions, quantities, stepper) is built
    by :meth:`set_mesh`.

    Args:
        solver: Integrator settings (defaults if omitted).
    """

    def __init__(self, solver: SolverConfig | None = None) -> None:
        self.clock = Clock()
        self.solver_config = solver if solver is not None else SolverConfig()
        self.registry = Registry()
        self.writer: DiagnosticsBase | None = None
        self.post_step: list[Callable[[], None]] = []
        self.enable_demag = True

        # Material parameters, region-indexed
        c = self.clock
        self.Msat = ScalarParam("Msat", "A/m", c)
        self.Aex = ScalarParam("Aex", "J/m", c)
        self.alpha = ScalarParam("alpha", "", c)
        self.Dind = ScalarParam("Dind", "J/m2", c)
        self.Ku1 = ScalarParam("Ku1", "J/m3", c)
        self.ku1_red = DerivedParam("ku1_red", "T", c, source=self.Ku1, divisor=self.Msat)
        self.anis_u = VectorParam("anisU", "", c)
        self.xi = ScalarParam("xi", "", c)
        self.spin_pol = ScalarParam("SpinPol", "", c, default=1.0)

        # Uniform excitations, user order
        self.B_ext = Excitation("B_ext", "T", c)
        self.J = Excitation("J", "A/m2", c)

        self.table = DataTable(self.clock, self.registry)
        self.autosaver = FieldAutosaver(self.clock, self.registry)

        self._mesh: Mesh | None = None
        self._grid_size: tuple[int, int, int] | None = None
        self._cell_size: tuple[float, float, float] | None = None
        self._ext_fields: list[ExtField] = []

    # ------------------------------------------------------------------
    # Mesh
    # ------------------------------------------------------------------

    def set_mesh(self, nx: int, ny: int, nz: int, dx: float, dy: float, dz: float) -> None:
        """Set the mesh to ``nx x ny x nz`` cells of size ``dx x dy x dz``.

        Can be called only once per simulation.
        """
        if self._mesh is not None:
            raise ConfigurationError("mesh already set: " + self._mesh.user_string())
        if nx <= 1:
            raise ConfigurationError(f"mesh size X should be > 1, have: {nx}")
        self._mesh = Mesh.from_user(nx, ny, nz, dx, dy, dz)
        logger.info("set mesh: %s", self._mesh.user_string())
        self._initialize()

    def set_grid_size(self, nx: int, ny: int, nz: int) -> None:
        """Set the cell counts; the mesh is built once the cell size is known too."""
        self._grid_size = (nx, ny, nz)
        if self._cell_size is not None:
            self.set_mesh(nx, ny, nz, *self._cell_size)

    def set_cell_size(self, dx: float, dy: float, dz: float) -> None:
        """Set the cell size; the mesh is built once the cell counts are known too."""
        self._cell_size = (dx, dy, dz)
        if self._grid_size is not None:
            self.set_mesh(*self._grid_size, dx, dy, dz)

    @property
    def mesh(self) -> Mesh:
        if self._mesh is None:
            raise UninitializedStateError("need to set mesh first")
        return self._mesh

    def cell_size(self) -> tuple[float, float, float]:
        """Cell size ``(dx, dy, dz)`` [m]."""
        c = self.mesh.cell
        return (c[X], c[Y], c[Z])

    def world_size(self) -> tuple[float, float, float]:
        """Sample size ``(wx, wy, wz)`` [m]."""
        w = self.mesh.world_size()
        return (w[X], w[Y], w[Z])

    def grid_size(self) -> tuple[int, int, int]:
        """Cell counts ``(nx, ny, nz)``."""
        n = self.mesh.size
        return (n[X], n[Y], n[Z])

    def nx(self) -> int:
        return self.grid_size()[0]

    def ny(self) -> int:
        return self.grid_size()[1]

    def nz(self) -> int:
        return self.grid_size()[2]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        mesh = self.mesh
        clock = self.clock
        reg = self.registry

        self._torque_buffer = np.zeros(mesh.shape(3))

        self.m = Magnetization(mesh, clock)
        reg.register(QuantityName.M, self.m)

        self.regions = Regions(mesh, clock)
        reg.register(QuantityName.REGIONS, self.regions)

        reg.register(QuantityName.M_FFT, FFTAmplitude(self.m))

        self._demag = DemagConvolution(mesh)
        self.B_demag = SetterQuantity(3, mesh, "B_demag", "T", clock, self._set_demag)
        reg.register(QuantityName.B_DEMAG, self.B_demag)

        self.exchange_mask = ExchangeMask(mesh, clock)
        self.B_exch = AdderQuantity(3, mesh, "B_exch", "T", clock, self._add_exchange)
        reg.register(QuantityName.B_EXCH, self.B_exch)
        reg.register(QuantityName.EXCHANGE_MASK, self.exchange_mask)

        self.B_dmi = AdderQuantity(3, mesh, "B_dmi", "T", clock, self._add_dmi)
        reg.register(QuantityName.B_DMI, self.B_dmi)

        self.B_uni = AdderQuantity(3, mesh, "B_uni", "T", clock, self._add_anisotropy)
        reg.register(QuantityName.B_UNI, self.B_uni)

        # not registered: B_ext is an input, not an output
        self.b_ext = AdderQuantity(3, mesh, "B_ext", "T", clock, self._add_external)

        self.B_eff = SetterQuantity(3, mesh, "B_eff", "T", clock, self._set_effective_field)
        reg.register(QuantityName.B_EFF, self.B_eff)

        self.LLTorque = SetterQuantity(3, mesh, "lltorque", "T", clock, self._set_ll_torque)
        reg.register(QuantityName.LL_TORQUE, self.LLTorque)

        self.STTorque = AdderQuantity(3, mesh, "sttorque", "T", clock, self._add_stt)
        reg.register(QuantityName.ST_TORQUE, self.STTorque)

        self.Torque = SetterQuantity(3, mesh, "torque", "T", clock, self._set_torque)
        reg.register(QuantityName.TORQUE, self.Torque)

        sc = self.solver_config
        self.stepper = HeunStepper(
            self.m.buffer,
            self.torque_fn,
            self._post_step,
            clock,
            dt=sc.dt_init,
            max_err=sc.max_err,
            min_dt=sc.min_dt,
            max_dt=sc.max_dt,
            headroom=sc.headroom,
        )
        logger.info("Pipeline ready: %s", ", ".join(reg.names()))

    def _regions(self) -> np.ndarray:
        return self.regions.array

    def _msat_checked(self) -> float | np.ndarray:
        msat = self.Msat.cell_values(self._regions())
        if np.any(np.asarray(msat) == 0):
            raise PhysicalPreconditionError("Msat", "should be nonzero")
        return msat

    def _set_demag(self, dst: np.ndarray, cansave: bool) -> None:
        if self.enable_demag:
            self._demag.exec(dst, self.m.buffer, self._msat_checked())
        else:
            dst.fill(0.0)

    def _add_exchange(self, dst: np.ndarray) -> None:
        msat = self._msat_checked()
        add_exchange(
            dst, self.m.buffer, self.exchange_mask.buffer,
            self.Aex.cell_values(self._regions()), msat, self.mesh.cell,
        )

    def _add_dmi(self, dst: np.ndarray) -> None:
        if self.Dind.is_zero():
            return
        msat = self._msat_checked()
        add_dmi(dst, self.m.buffer, self.Dind.cell_values(self._regions()), msat, self.mesh.cell)

    def _add_anisotropy(self, dst: np.ndarray) -> None:
        if self.Ku1.is_zero():
            return
        self._msat_checked()
        r = self._regions()
        add_uniaxial_anisotropy(dst, self.m.buffer, self.ku1_red.cell_values(r), self.anis_u.cell_values(r))

    def _add_external(self, dst: np.ndarray) -> None:
        t = self.clock.time
        bext = self.B_ext.internal_value(t)
        if not np.any(bext) and not self._ext_fields:
            return
        term = np.empty_like(dst)
        term[...] = bext.reshape(3, 1, 1, 1)
        for f in self._ext_fields:
            term += f.mask * float(f.multiplier(t))
        dst += term

    def _set_effective_field(self, dst: np.ndarray, cansave: bool) -> None:
        self.B_demag.set(dst, cansave)
        self.B_exch.add_to(dst, cansave)
        self.B_dmi.add_to(dst, cansave)
        self.B_uni.add_to(dst, cansave)
        self.b_ext.add_to(dst, cansave)

    def _set_ll_torque(self, dst: np.ndarray, cansave: bool) -> None:
        self.B_eff.set(dst, cansave)
        ll_torque(dst, self.m.buffer, dst, self.alpha.cell_values(self._regions()))

    def _add_stt(self, dst: np.ndarray) -> None:
        # J components reversed into internal order, like the mesh axes
        j = self.J.internal_value(self.clock.time)
        if not np.any(j):
            return
        msat = self._msat_checked()
        r = self._regions()
        add_zhang_li_torque(
            dst, self.m.buffer, j,
            self.spin_pol.cell_values(r), msat,
            self.alpha.cell_values(r), self.xi.cell_values(r),
            self.mesh.cell,
        )

    def _set_torque(self, dst: np.ndarray, cansave: bool) -> None:
        self.LLTorque.set(dst, cansave)
        self.STTorque.add_to(dst, cansave)

    def torque_fn(self, cansave: bool) -> np.ndarray:
        """Stepper right-hand side: one tick of the arm/compute/sample protocol."""
        self.clock.tick += 1
        self.registry.disarm_all()
        self.table.arm(cansave)
        self.autosaver.arm(cansave)

        self.clock.evaluating = True
        try:
            self.Torque.set(self._torque_buffer, cansave)
        finally:
            self.clock.evaluating = False

        self.autosaver.collect(cansave)
        self.table.sample(cansave)
        return self._torque_buffer

    def _post_step(self, y: np.ndarray) -> None:
        normalize(y)
        for hook in self.post_step:
            hook()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_m_uniform(self, mx: float, my: float, mz: float) -> None:
        self.m.set_uniform(mx, my, mz)

    def set_m(self, m: np.ndarray) -> None:
        """Set the magnetization from an array in internal layout ``(3, nz, ny, nx)``."""
        self.m.set_array(m)

    def add_ext_field(self, mask: np.ndarray, multiplier: Callable[[float], float]) -> None:
        """Add ``mask * multiplier(t)`` to the external field.

        Args:
            mask: Field pattern [T], internal layout ``(3, nz, ny, nx)``;
                copied at registration.
            multiplier: Called with the simulation time on every tick.
        """
        self.clock.check_mutable("external field")
        mask = np.array(mask, dtype=np.float64, copy=True)
        if mask.shape != self.mesh.shape(3):
            raise ConfigurationError(f"field mask shape {mask.shape} does not match {self.mesh.shape(3)}")
        self._ext_fields.append(ExtField(mask, multiplier))
        logger.info("External field mask added (%d total)", len(self._ext_fields))

    def get_quantity(self, name: str) -> Getter | None:
        """Registry lookup for logging/rendering collaborators."""
        return self.registry.lookup(name)

    def attach_writer(self, writer: DiagnosticsBase) -> None:
        """Send table rows and field snapshots to ``writer``."""
        self.writer = writer
        self.table.writer = writer
        self.autosaver.writer = writer

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        return self.clock.time

    @property
    def step_count(self) -> int:
        return self.stepper.step_count if self._mesh is not None else 0

    def _check_m(self) -> None:
        if self._mesh is None:
            raise UninitializedStateError("need to set mesh first")
        self.m.check()

    def step(self) -> StepResult:
        """Take one accepted step."""
        self._check_m()
        return self.stepper.step()

    def steps(self, n: int) -> dict[str, Any]:
        """Take ``n`` accepted steps."""
        t0 = wall_time.monotonic()
        logger.info("Running %d steps from t=%.4e s", n, self.time)
        for _ in range(n):
            self.step()
        return self._summary(wall_time.monotonic() - t0)

    def run(self, duration: float) -> dict[str, Any]:
        """Advance the simulation time by ``duration`` seconds.

        The last step is shortened to land on the target time.
        """
        self._check_m()
        target = self.time + duration
        t0 = wall_time.monotonic()
        logger.info("Starting run: t=%.4e s -> %.4e s", self.time, target)
        stepper = self.stepper
        while self.time < target:
            remaining = target - self.time
            if remaining < stepper.min_dt:
                break
            if stepper.dt > remaining:
                stepper.dt = remaining
            self.step()
        summary = self._summary(wall_time.monotonic() - t0)
        logger.info(
            "Run finished: %d steps, t=%.4e s, %.2f s wall",
            summary["steps"], summary["time"], summary["wall_time"],
        )
        return summary

    def _summary(self, wall: float) -> dict[str, Any]:
        return {
            "time": self.time,
            "steps": self.stepper.step_count,
            "rejected": self.stepper.total_rejected,
            "dt": self.stepper.dt,
            "ticks": self.clock.tick,
            "table_rows": len(self.table),
            "wall_time": wall,
        }

    def close(self) -> None:
        """Flush the attached writer."""
        if self.writer is not None:
            self.writer.finalize()

    # ------------------------------------------------------------------
    # Checkpoint / restart
    # ------------------------------------------------------------------

    def save_checkpoint(self, filename: str, config_json: str | None = None) -> None:
        save_checkpoint(
            filename,
            self.m.buffer,
            np.asarray(self.regions.array),
            self.time,
            self.step_count,
            self.stepper.dt,
            config_json,
        )

    def load_checkpoint(self, filename: str) -> None:
        """Restore magnetization, regions, time and step size."""
        data = load_checkpoint(filename)
        if data["m"].shape != self.mesh.shape(3):
            raise ConfigurationError(
                f"checkpoint mesh {data['m'].shape[1:]} does not match {self.mesh.size}"
            )
        self.m.restore(data["m"])
        self.regions.restore(data["regions"])
        self.clock.time = data["time"]
        self.stepper.step_count = data["step_count"]
        self.stepper.dt = data["dt"]
        logger.info("Restarted from %s at t=%.4e s", filename, self.time)

    # ------------------------------------------------------------------
    # Construction from config
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: SimulationConfig) -> Simulation:
        """Build a ready-to-run simulation from a validated config."""
        sim = cls(solver=config.solver)
        sim.set_mesh(*config.mesh.grid_size, *config.mesh.cell_size)

        mc = config.material
        sim.Msat.set_all(mc.Msat)
        sim.Aex.set_all(mc.Aex)
        sim.alpha.set_all(mc.alpha)
        sim.Dind.set_all(mc.Dind)
        sim.Ku1.set_all(mc.Ku1)
        sim.anis_u.set_all(mc.anis_u)
        sim.xi.set_all(mc.xi)
        sim.spin_pol.set_all(mc.spin_pol)
        sim.enable_demag = mc.enable_demag

        sim.B_ext.set(config.excitation.B_ext)
        sim.J.set(config.excitation.J)

        sim.set_m_uniform(*config.m_init)

        oc = config.output
        for name in oc.table_columns:
            sim.table.add(name)
        if oc.table_interval > 0:
            sim.table.autosave(oc.table_interval)
        for name, period in oc.autosave.items():
            sim.autosaver.autosave(name, period)
        return sim
