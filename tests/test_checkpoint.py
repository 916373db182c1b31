"""Tests for checkpoint save/load and restart.

Test categories:
1. Save checkpoint creates a valid HDF5 file
2. Load checkpoint recovers saved state
3. Simulation restart continues identically
"""

from __future__ import annotations

import h5py
import numpy as np
import pytest

from micromag.diagnostics.checkpoint import load_checkpoint, save_checkpoint
from micromag.engine import Simulation
from micromag.errors import ConfigurationError


class TestCheckpointSaveLoad:
    """Low-level checkpoint save and load."""

    def test_save_creates_file(self, tmp_path):
        """Saving a checkpoint writes the state datasets and attributes."""
        fname = str(tmp_path / "chk.h5")
        m = np.zeros((3, 1, 2, 4))
        m[2] = 1.0
        save_checkpoint(fname, m, np.zeros((1, 2, 4), dtype=np.uint8), 1e-12, 7, 2e-15, '{"a": 1}')

        with h5py.File(fname, "r") as f:
            assert f.attrs["checkpoint_version"] == 1
            assert f["m"].shape == (3, 1, 2, 4)
            assert f["regions"].shape == (1, 2, 4)

    def test_load_recovers_state(self, tmp_path):
        fname = str(tmp_path / "chk.h5")
        rng = np.random.default_rng(3)
        m = rng.normal(size=(3, 1, 2, 4))
        regions = rng.integers(0, 256, size=(1, 2, 4)).astype(np.uint8)
        save_checkpoint(fname, m, regions, 1e-12, 7, 2e-15, '{"a": 1}')

        data = load_checkpoint(fname)
        np.testing.assert_array_equal(data["m"], m)
        np.testing.assert_array_equal(data["regions"], regions)
        assert data["time"] == 1e-12
        assert data["step_count"] == 7
        assert data["dt"] == 2e-15
        assert data["config_json"] == '{"a": 1}'

    def test_config_json_optional(self, tmp_path):
        fname = str(tmp_path / "chk.h5")
        save_checkpoint(fname, np.zeros((3, 1, 1, 2)), np.zeros((1, 1, 2)), 0.0, 0, 1e-15)
        assert load_checkpoint(fname)["config_json"] is None


class TestSimulationRestart:
    """Engine integration of checkpoint/restart."""

    def test_restart_restores_state(self, small_config, tmp_path):
        fname = str(tmp_path / "chk.h5")
        sim = Simulation.from_config(small_config)
        sim.regions.set_cell(1, 1, 0, 5)
        sim.steps(4)
        sim.save_checkpoint(fname, config_json=small_config.to_json())

        other = Simulation.from_config(small_config)
        other.load_checkpoint(fname)
        np.testing.assert_array_equal(other.m.buffer, sim.m.buffer)
        assert other.regions.get_cell(1, 1, 0) == 5
        assert other.time == sim.time
        assert other.step_count == 4
        assert other.stepper.dt == sim.stepper.dt

    def test_restart_continues_identically(self, small_config, tmp_path):
        """Steps after a restart match steps taken without one."""
        fname = str(tmp_path / "chk.h5")
        sim = Simulation.from_config(small_config)
        sim.steps(5)
        sim.save_checkpoint(fname)
        sim.steps(5)

        restarted = Simulation.from_config(small_config)
        restarted.load_checkpoint(fname)
        restarted.steps(5)

        np.testing.assert_allclose(restarted.m.buffer, sim.m.buffer, rtol=1e-12)
        assert restarted.time == pytest.approx(sim.time, rel=1e-12)

    def test_mesh_mismatch(self, small_config, tmp_path):
        fname = str(tmp_path / "chk.h5")
        Simulation.from_config(small_config).save_checkpoint(fname)

        other = Simulation()
        other.set_mesh(4, 4, 1, 1e-9, 1e-9, 1e-9)
        with pytest.raises(ConfigurationError, match="does not match"):
            other.load_checkpoint(fname)


class TestMagnetizationRestore:
    """Restoring m from a checkpoint copies it verbatim."""

    def test_restore_is_bit_identical(self, sim):
        """No renormalization, so a saved state comes back unchanged."""
        rng = np.random.default_rng(11)
        saved = rng.normal(size=sim.mesh.shape(3))
        sim.m.restore(saved)
        np.testing.assert_array_equal(sim.m.buffer, saved)

    def test_set_array_still_normalizes(self, sim):
        arr = np.zeros(sim.mesh.shape(3))
        arr[0] = 2.0
        sim.set_m(arr)
        np.testing.assert_array_equal(sim.m.buffer[0], 1.0)

    def test_restore_shape_mismatch(self, sim):
        with pytest.raises(ConfigurationError, match="does not match"):
            sim.m.restore(np.zeros((3, 1, 2, 2)))

    def test_restore_rejected_during_evaluation(self, sim):
        sim.clock.evaluating = True
        with pytest.raises(ConfigurationError, match="during a torque evaluation"):
            sim.m.restore(sim.m.buffer.copy())
        sim.clock.evaluating = False

    def test_restart_after_many_steps_bit_identical(self, small_config, tmp_path):
        """The magnetization read back equals the one written, element for element."""
        fname = str(tmp_path / "chk.h5")
        sim = Simulation.from_config(small_config)
        sim.steps(12)
        sim.save_checkpoint(fname)

        other = Simulation.from_config(small_config)
        other.load_checkpoint(fname)
        np.testing.assert_array_equal(other.m.buffer, sim.m.buffer)
