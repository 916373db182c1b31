"""Tests for the quantity caching protocol, the registry and the region map."""

from __future__ import annotations

import numpy as np
import pytest

from micromag.core.bases import AdderQuantity, Clock, SetterQuantity
from micromag.core.mesh import Mesh
from micromag.core.regions import Regions
from micromag.core.registry import QuantityName, Registry
from micromag.errors import ConfigurationError


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def mesh():
    return Mesh(size=(1, 2, 3), cell=(1e-9, 1e-9, 1e-9))


def _fill(value):
    def fn(dst, cansave):
        dst.fill(value)
    return fn


def _add(value):
    def fn(dst):
        dst += value
    return fn


class TestSetterQuantity:
    """Setters overwrite the caller's buffer and publish when armed."""

    def test_overwrites(self, mesh, clock):
        q = SetterQuantity(3, mesh, "B_demag", "T", clock, _fill(7.0))
        dst = np.full(mesh.shape(3), -1.0)
        q.set(dst, False)
        np.testing.assert_array_equal(dst, 7.0)

    def test_idempotent(self, mesh, clock):
        """Two set() calls on the same inputs give bit-identical buffers."""
        q = SetterQuantity(3, mesh, "B_demag", "T", clock, _fill(0.1 + 0.2))
        a = np.empty(mesh.shape(3))
        b = np.empty(mesh.shape(3))
        q.set(a, False)
        q.set(b, True)
        np.testing.assert_array_equal(a, b)

    def test_publish_only_when_armed_and_cansave(self, mesh, clock):
        q = SetterQuantity(3, mesh, "B_demag", "T", clock, _fill(2.0))
        dst = np.empty(mesh.shape(3))

        q.set(dst, True)
        assert q.latest() is None

        q.armed = True
        q.set(dst, False)
        assert q.latest() is None

        q.set(dst, True)
        np.testing.assert_array_equal(q.latest(), 2.0)

    def test_published_value_expires_next_tick(self, mesh, clock):
        """A published value is only visible during the tick it was stamped."""
        q = SetterQuantity(3, mesh, "B_demag", "T", clock, _fill(2.0))
        q.armed = True
        q.set(np.empty(mesh.shape(3)), True)
        assert q.latest() is not None
        clock.tick += 1
        assert q.latest() is None

    def test_get_is_fresh_copy(self, mesh, clock):
        q = SetterQuantity(1, mesh, "x", "", clock, _fill(3.0))
        out = q.get()
        assert out.shape == (1, 1, 2, 3)
        np.testing.assert_array_equal(out, 3.0)


class TestAdderQuantity:
    """Adders accumulate; armed adders publish only their own contribution."""

    def test_accumulates(self, mesh, clock):
        q = AdderQuantity(3, mesh, "B_exch", "T", clock, _add(2.0))
        dst = np.ones(mesh.shape(3))
        q.add_to(dst, False)
        np.testing.assert_array_equal(dst, 3.0)

    def test_armed_publishes_contribution(self, mesh, clock):
        q = AdderQuantity(3, mesh, "B_exch", "T", clock, _add(2.0))
        q.armed = True
        dst = np.ones(mesh.shape(3))
        q.add_to(dst, True)
        np.testing.assert_array_equal(dst, 3.0)
        np.testing.assert_array_equal(q.latest(), 2.0)

    def test_cansave_does_not_change_result(self, mesh, clock):
        """Scratch-then-add gives the same bits as adding directly."""
        rng = np.random.default_rng(0)
        base = rng.normal(size=mesh.shape(3))
        contribution = rng.normal(size=mesh.shape(3))
        q = AdderQuantity(3, mesh, "B_exch", "T", clock, _add(contribution))

        direct = base.copy()
        q.add_to(direct, False)

        q.armed = True
        via_scratch = base.copy()
        q.add_to(via_scratch, True)
        np.testing.assert_array_equal(direct, via_scratch)

    def test_get_returns_contribution_only(self, mesh, clock):
        q = AdderQuantity(3, mesh, "B_uni", "T", clock, _add(5.0))
        np.testing.assert_array_equal(q.get(), 5.0)

    def test_average(self, mesh, clock):
        q = AdderQuantity(3, mesh, "B_uni", "T", clock, _add(np.array([1.0, 2.0, 3.0]).reshape(3, 1, 1, 1)))
        np.testing.assert_allclose(q.average(), [1.0, 2.0, 3.0])


class TestRegistry:
    """Name to quantity lookup."""

    def test_lookup(self, mesh, clock):
        reg = Registry()
        q = SetterQuantity(3, mesh, "B_eff", "T", clock, _fill(0.0))
        reg.register(QuantityName.B_EFF, q)
        assert reg.lookup("B_eff") is q
        assert reg["B_eff"] is q
        assert "B_eff" in reg
        assert reg.names() == ["B_eff"]

    def test_unknown_name(self):
        """Unknown names give None from lookup and KeyError from indexing."""
        reg = Registry()
        assert reg.lookup("nonsense") is None
        assert reg.lookup("torque") is None
        assert "nonsense" not in reg
        with pytest.raises(KeyError):
            reg["nonsense"]

    def test_duplicate_rejected(self, mesh, clock):
        reg = Registry()
        reg.register("m", SetterQuantity(3, mesh, "m", "", clock, _fill(0.0)))
        with pytest.raises(KeyError, match="already registered"):
            reg.register(QuantityName.M, SetterQuantity(3, mesh, "m", "", clock, _fill(0.0)))

    def test_disarm_all(self, mesh, clock):
        reg = Registry()
        q = SetterQuantity(3, mesh, "torque", "T", clock, _fill(0.0))
        reg.register(QuantityName.TORQUE, q)
        q.armed = True
        reg.disarm_all()
        assert not q.armed


class TestRegions:
    """Per-cell region map."""

    def test_default_zero(self, mesh, clock):
        regions = Regions(mesh, clock)
        np.testing.assert_array_equal(regions.in_use(), [0])

    def test_define_with_mask(self, mesh, clock):
        regions = Regions(mesh, clock)
        mask = np.zeros(mesh.size, dtype=bool)
        mask[0, :, 0] = True
        regions.define(4, mask)
        assert regions.get_cell(0, 0, 0) == 4
        assert regions.get_cell(1, 0, 0) == 0
        np.testing.assert_array_equal(regions.in_use(), [0, 4])

    def test_set_cell_user_index(self, mesh, clock):
        """set_cell takes user (ix, iy, iz) indices."""
        regions = Regions(mesh, clock)
        regions.set_cell(2, 1, 0, 9)
        assert regions.array[0, 1, 2] == 9

    def test_out_of_range(self, mesh, clock):
        regions = Regions(mesh, clock)
        with pytest.raises(ConfigurationError):
            regions.set_cell(0, 0, 0, 256)

    def test_array_read_only(self, mesh, clock):
        regions = Regions(mesh, clock)
        with pytest.raises(ValueError):
            regions.array[0, 0, 0] = 1

    def test_get_as_scalar_field(self, mesh, clock):
        regions = Regions(mesh, clock)
        regions.set_cell(0, 0, 0, 3)
        out = regions.get()
        assert out.shape == (1, 1, 2, 3)
        assert out[0, 0, 0, 0] == 3.0


class TestRegionCellBounds:
    """Cell indices are checked against the mesh, in user order."""

    @pytest.mark.parametrize("index", [(-1, 0, 0), (3, 0, 0), (0, 2, 0), (0, 0, 1), (0, -1, 0)])
    def test_out_of_mesh(self, mesh, clock, index):
        regions = Regions(mesh, clock)
        with pytest.raises(ConfigurationError, match="outside mesh"):
            regions.set_cell(*index, 1)
        with pytest.raises(ConfigurationError, match="outside mesh"):
            regions.get_cell(*index)
        np.testing.assert_array_equal(regions.in_use(), [0])

    def test_last_cell_in_range(self, mesh, clock):
        regions = Regions(mesh, clock)
        regions.set_cell(2, 1, 0, 7)
        assert regions.get_cell(2, 1, 0) == 7
