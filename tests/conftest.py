"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from micromag.config import SimulationConfig
from micromag.engine import Simulation


@pytest.fixture
def grid_size():
    """Small grid for fast unit tests, user order (nx, ny, nz)."""
    return (8, 4, 1)


@pytest.fixture
def cell_size():
    return (4e-9, 4e-9, 2e-9)


@pytest.fixture
def permalloy():
    """Permalloy-like material parameters."""
    return {
        "Msat": 8e5,
        "Aex": 13e-12,
        "alpha": 0.5,
    }


@pytest.fixture
def sample_config_dict(grid_size, cell_size, permalloy):
    """Minimal valid SimulationConfig as a dictionary."""
    return {
        "mesh": {"grid_size": list(grid_size), "cell_size": list(cell_size)},
        "material": permalloy,
        "m_init": [1.0, 0.1, 0.0],
        "sim_time": 1e-12,
    }


@pytest.fixture
def small_config(sample_config_dict):
    """Small SimulationConfig for fast unit tests."""
    return SimulationConfig(**sample_config_dict)


@pytest.fixture
def sim(grid_size, cell_size, permalloy):
    """Simulation on the small grid with permalloy and a tilted uniform m."""
    s = Simulation()
    s.set_mesh(*grid_size, *cell_size)
    s.Msat.set_all(permalloy["Msat"])
    s.Aex.set_all(permalloy["Aex"])
    s.alpha.set_all(permalloy["alpha"])
    s.set_m_uniform(1.0, 0.1, 0.0)
    return s


@pytest.fixture
def bare_sim(grid_size, cell_size):
    """Simulation with a mesh but all parameters at their defaults."""
    s = Simulation()
    s.set_mesh(*grid_size, *cell_size)
    return s
