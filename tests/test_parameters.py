"""Tests for region-indexed parameters, derived parameters and excitations."""

from __future__ import annotations

import numpy as np
import pytest

from micromag.core.bases import Clock
from micromag.core.parameters import DerivedParam, Excitation, ScalarParam, VectorParam
from micromag.errors import ConfigurationError


@pytest.fixture
def clock():
    return Clock()


class TestScalarParam:
    """Region table reads and writes."""

    def test_default(self, clock):
        p = ScalarParam("SpinPol", "", clock, default=1.0)
        assert p.get(0) == 1.0
        assert p.get(255) == 1.0

    def test_set_get(self, clock):
        p = ScalarParam("Aex", "J/m", clock)
        p.set(3, 1.3e-11)
        assert p.get(3) == 1.3e-11
        assert p.get(0) == 0.0

    @pytest.mark.parametrize("region", [-1, 256, 1000])
    def test_region_out_of_range(self, clock, region):
        """Region indices outside 0..255 raise ConfigurationError."""
        p = ScalarParam("Aex", "J/m", clock)
        with pytest.raises(ConfigurationError, match="region index"):
            p.set(region, 1.0)
        with pytest.raises(ConfigurationError):
            p.get(region)

    def test_uniform_fast_path(self, clock):
        """cell_values returns a float while all regions agree."""
        p = ScalarParam("alpha", "", clock)
        p.set_all(0.02)
        regions = np.zeros((1, 2, 4), dtype=np.uint8)
        assert p.is_uniform()
        assert p.cell_values(regions) == 0.02

    def test_per_cell_lookup(self, clock):
        p = ScalarParam("alpha", "", clock)
        p.set_all(0.02)
        p.set(1, 0.5)
        regions = np.zeros((1, 2, 4), dtype=np.uint8)
        regions[0, 1, :] = 1
        values = p.cell_values(regions)
        assert not p.is_uniform()
        assert values.shape == (1, 2, 4)
        np.testing.assert_array_equal(values[0, 0], 0.02)
        np.testing.assert_array_equal(values[0, 1], 0.5)

    def test_is_zero(self, clock):
        p = ScalarParam("Dind", "J/m2", clock)
        assert p.is_zero()
        p.set(7, 1e-3)
        assert not p.is_zero()

    def test_rejects_mutation_during_evaluation(self, clock):
        """Parameters cannot change while a torque evaluation runs."""
        p = ScalarParam("Msat", "A/m", clock)
        clock.evaluating = True
        with pytest.raises(ConfigurationError, match="during a torque evaluation"):
            p.set(0, 8e5)
        with pytest.raises(ConfigurationError):
            p.set_all(8e5)


class TestDerivedParam:
    """ku1_red = Ku1 / Msat, recomputed on every write to either source."""

    @pytest.fixture
    def params(self, clock):
        msat = ScalarParam("Msat", "A/m", clock)
        ku1 = ScalarParam("Ku1", "J/m3", clock)
        red = DerivedParam("ku1_red", "T", clock, source=ku1, divisor=msat)
        return msat, ku1, red

    def test_per_region_values(self, params):
        """Each region gets its own quotient; other regions stay put."""
        msat, ku1, red = params
        msat.set_all(8e5)
        ku1.set(1, 1e3)
        assert red.get(1) == pytest.approx(1.25e-3)
        ku1.set(2, 2e3)
        assert red.get(1) == pytest.approx(1.25e-3)
        assert red.get(2) == pytest.approx(2.5e-3)

    def test_divisor_change_updates(self, params):
        """Writing Msat is visible in ku1_red before the next read."""
        msat, ku1, red = params
        msat.set_all(8e5)
        ku1.set(1, 1e3)
        msat.set(1, 4e5)
        assert red.get(1) == pytest.approx(2.5e-3)

    def test_set_all_source(self, params):
        msat, ku1, red = params
        msat.set_all(1e6)
        ku1.set_all(5e5)
        assert red.is_uniform()
        assert red.get(42) == pytest.approx(0.5)

    def test_zero_divisor_gives_zero(self, params):
        """Regions with Msat = 0 get ku1_red = 0."""
        _, ku1, red = params
        ku1.set(3, 1e4)
        assert red.get(3) == 0.0

    def test_cannot_set_directly(self, params):
        _, _, red = params
        with pytest.raises(ConfigurationError, match="derived"):
            red.set(0, 1.0)
        with pytest.raises(ConfigurationError):
            red.set_all(1.0)


class TestVectorParam:
    """Vectors are given in user order and stored reversed."""

    def test_storage_reversed(self, clock):
        p = VectorParam("anisU", "", clock)
        p.set_all((1.0, 2.0, 3.0))
        np.testing.assert_array_equal(p.table[0], [3.0, 2.0, 1.0])
        assert p.get(0) == (1.0, 2.0, 3.0)

    def test_uniform_cell_values_shape(self, clock):
        p = VectorParam("anisU", "", clock)
        p.set_all((0.0, 0.0, 1.0))
        regions = np.zeros((1, 2, 2), dtype=np.uint8)
        np.testing.assert_array_equal(p.cell_values(regions).ravel(), [1.0, 0.0, 0.0])

    def test_per_cell_values(self, clock):
        p = VectorParam("anisU", "", clock)
        p.set(1, (1.0, 0.0, 0.0))
        regions = np.zeros((1, 2, 2), dtype=np.uint8)
        regions[0, 0, 0] = 1
        values = p.cell_values(regions)
        assert values.shape == (3, 1, 2, 2)
        np.testing.assert_array_equal(values[:, 0, 0, 0], [0.0, 0.0, 1.0])
        np.testing.assert_array_equal(values[:, 0, 1, 1], [0.0, 0.0, 0.0])

    def test_wrong_length(self, clock):
        p = VectorParam("anisU", "", clock)
        with pytest.raises(ConfigurationError, match="3-vector"):
            p.set_all((1.0, 0.0))


class TestExcitation:
    """Constant and time-dependent uniform inputs."""

    def test_constant(self, clock):
        b = Excitation("B_ext", "T", clock)
        b.set((0.1, 0.2, 0.3))
        np.testing.assert_array_equal(b.user_value(0.0), [0.1, 0.2, 0.3])
        np.testing.assert_array_equal(b.internal_value(0.0), [0.3, 0.2, 0.1])

    def test_callable(self, clock):
        """A callable is evaluated with the time it is asked for."""
        b = Excitation("B_ext", "T", clock)
        b.set(lambda t: (t * 1e9, 0.0, 0.0))
        np.testing.assert_allclose(b.user_value(2e-10), [0.2, 0.0, 0.0])

    def test_callable_bad_shape(self, clock):
        b = Excitation("J", "A/m2", clock)
        b.set(lambda t: (1.0, 2.0))
        with pytest.raises(ConfigurationError):
            b.internal_value(0.0)

    def test_constant_bad_shape(self, clock):
        b = Excitation("J", "A/m2", clock)
        with pytest.raises(ConfigurationError):
            b.set((1.0, 2.0, 3.0, 4.0))
