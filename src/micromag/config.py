"""Pydantic v2 configuration system for micromagnetic simulations.

Provides validated, typed configuration with submodels for the mesh,
material, solver and output. Supports JSON I/O and cross-field validation.

All vectors in the configuration are given in user order ``[x, y, z]``.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class MeshConfig(BaseModel):
    """Finite-difference grid."""

    grid_size: list[int] = Field(
        ..., min_length=3, max_length=3, description="Cell counts [nx, ny, nz]"
    )
    cell_size: list[float] = Field(
        ..., min_length=3, max_length=3, description="Cell size [dx, dy, dz] [m]"
    )

    @model_validator(mode="after")
    def validate_sizes(self) -> MeshConfig:
        if any(n <= 0 for n in self.grid_size):
            raise ValueError("grid_size values must be positive integers")
        if self.grid_size[0] <= 1:
            raise ValueError(f"mesh size X should be > 1, have: {self.grid_size[0]}")
        if any(c <= 0 for c in self.cell_size):
            raise ValueError("cell_size values must be positive")
        return self


class MaterialConfig(BaseModel):
    """Uniform material parameters (applied to every region)."""

    Msat: float = Field(0.0, ge=0, description="Saturation magnetization [A/m]")
    Aex: float = Field(0.0, ge=0, description="Exchange stiffness [J/m]")
    alpha: float = Field(0.0, ge=0, description="Gilbert damping constant")
    Dind: float = Field(0.0, description="Interfacial DMI strength [J/m^2]")
    Ku1: float = Field(0.0, description="Uniaxial anisotropy strength [J/m^3]")
    anis_u: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3, max_length=3,
        description="Uniaxial anisotropy axis [x, y, z]",
    )
    xi: float = Field(0.0, description="Non-adiabaticity of spin-transfer torque")
    spin_pol: float = Field(1.0, ge=0, le=1.0, description="Spin polarization of the current")
    enable_demag: bool = Field(True, description="Enable the demagnetizing field")


class ExcitationConfig(BaseModel):
    """Uniform, constant driving terms."""

    B_ext: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3, max_length=3,
        description="Applied field [x, y, z] [T]",
    )
    J: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3, max_length=3,
        description="Electrical current density [x, y, z] [A/m^2]",
    )


class SolverConfig(BaseModel):
    """Adaptive Heun integrator parameters."""

    dt_init: float = Field(1e-15, gt=0, description="Initial step size [s]")
    max_err: float = Field(1e-4, gt=0, description="Maximum error per step (change in m)")
    min_dt: float = Field(1e-20, gt=0, description="Step size floor [s]")
    max_dt: float = Field(1e-10, gt=0, description="Step size ceiling [s]")
    headroom: float = Field(0.8, gt=0, lt=1, description="Safety factor on step adaptation")

    @model_validator(mode="after")
    def validate_bounds(self) -> SolverConfig:
        if self.min_dt > self.max_dt:
            raise ValueError("min_dt must not exceed max_dt")
        if not self.min_dt <= self.dt_init <= self.max_dt:
            raise ValueError("dt_init must lie within [min_dt, max_dt]")
        return self


class OutputConfig(BaseModel):
    """Table and field output parameters."""

    hdf5_filename: str = Field("micromag.h5", description="Output HDF5 file")
    table_interval: float = Field(
        0.0, ge=0, description="Simulation time between table rows [s] (0 = off)"
    )
    table_columns: list[str] = Field(
        default_factory=lambda: ["m"],
        description="Registry names averaged into the table",
    )
    autosave: dict[str, float] = Field(
        default_factory=dict,
        description="Field snapshots: {'m': 1e-11} saves m every 10 ps",
    )

    @model_validator(mode="after")
    def validate_periods(self) -> OutputConfig:
        for name, period in self.autosave.items():
            if period <= 0:
                raise ValueError(f"autosave period for {name!r} must be positive, got {period}")
        return self


class SimulationConfig(BaseModel):
    """Top-level simulation configuration."""

    mesh: MeshConfig
    material: MaterialConfig = Field(default_factory=MaterialConfig)
    excitation: ExcitationConfig = Field(default_factory=ExcitationConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    m_init: list[float] = Field(
        default_factory=lambda: [1.0, 0.0, 0.0],
        min_length=3, max_length=3,
        description="Initial uniform magnetization direction [x, y, z]",
    )
    sim_time: float = Field(1e-9, gt=0, description="Total simulation time [s]")

    @model_validator(mode="after")
    def validate_m_init(self) -> SimulationConfig:
        if all(c == 0 for c in self.m_init):
            raise ValueError("m_init must not be the zero vector")
        return self

    # --- I/O helpers ---

    @classmethod
    def from_file(cls, path: str | Path) -> SimulationConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with path.open() as f:
            data = json.load(f)
        return cls(**data)

    def to_json(self, path: str | Path | None = None) -> str:
        """Serialize to JSON string, optionally writing to file."""
        out = self.model_dump_json(indent=2)
        if path is not None:
            Path(path).write_text(out)
        return out
