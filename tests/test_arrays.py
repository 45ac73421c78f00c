"""Tests for the two uncertainty-component storage backends."""

import numpy as np
import pytest

from gaussian_uncertainty import IndexOutOfRange, ScaledArray, SimpleArray

BACKENDS = [SimpleArray, ScaledArray]


def filled(cls, *values, capacity=5):
    array = cls(capacity)
    for i, value in enumerate(values):
        array.set(i, value)
    return array


@pytest.mark.parametrize("cls", BACKENDS)
class TestCommonBehaviour:

    def test_unset_elements_read_zero(self, cls):
        array = filled(cls, 1.0)
        assert len(array) == 1
        assert array.get(3) == 0.0
        assert array[0] == 1.0

    def test_bounds(self, cls):
        array = cls(3)
        with pytest.raises(IndexOutOfRange):
            array.get(3)
        with pytest.raises(IndexOutOfRange):
            array.set(-1, 1.0)

    def test_norm(self, cls):
        assert filled(cls, 3.0, 0.0, 4.0).norm() == pytest.approx(5.0)
        assert cls(5).norm() == 0.0

    def test_add_and_sub_extend(self, cls):
        a = filled(cls, 1.0)
        b = filled(cls, 0.5, 2.0)
        np.testing.assert_allclose((a + b).to_numpy(), [1.5, 2.0])
        np.testing.assert_allclose((a - b).to_numpy(), [0.5, -2.0])
        np.testing.assert_allclose(a.to_numpy(), [1.0])

    def test_scaling(self, cls):
        a = filled(cls, 1.0, -2.0)
        np.testing.assert_allclose((a * 3.0).to_numpy(), [3.0, -6.0])
        np.testing.assert_allclose((a / 4.0).to_numpy(), [0.25, -0.5])
        np.testing.assert_allclose((-a).to_numpy(), [-1.0, 2.0])

    def test_copy_is_independent(self, cls):
        a = filled(cls, 1.0)
        b = a.copy()
        b.set(0, 9.0)
        assert a.get(0) == 1.0

    def test_backends_do_not_mix(self, cls):
        other = ScaledArray if cls is SimpleArray else SimpleArray
        with pytest.raises(TypeError):
            filled(cls, 1.0) + filled(other, 1.0)


class TestScaledArray:

    def test_scaling_touches_only_the_scale(self):
        a = filled(ScaledArray, 1.0, 2.0)
        b = a * 3.0
        assert b.scale == 3.0
        np.testing.assert_array_equal(b._elements, a._elements)

    def test_set_after_scaling(self):
        a = filled(ScaledArray, 1.0) * 2.0
        a.set(1, 5.0)
        assert a.get(1) == 5.0
        assert a.get(0) == 2.0

    def test_zero_scale_ignores_writes(self):
        a = filled(ScaledArray, 1.0) * 0.0
        a.set(0, 5.0)
        assert a.get(0) == 0.0
        assert a.norm() == 0.0

    def test_add_to_zero_scaled(self):
        a = filled(ScaledArray, 1.0) * 0.0
        b = filled(ScaledArray, 0.0, 2.0) * 1.5
        np.testing.assert_allclose((a + b).to_numpy(), [0.0, 3.0])
        np.testing.assert_allclose((a - b).to_numpy(), [0.0, -3.0])

    def test_repr(self):
        assert repr(filled(ScaledArray, 1.0) * 2.0) == "ScaledArray([2.0])"
