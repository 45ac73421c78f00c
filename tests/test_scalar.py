"""Tests for the first-order mean/sigma model."""

import math

import numpy as np
import pytest

from gaussian_uncertainty import (
    NegativeUncertainty,
    UDoubleMS,
    UDoubleMSCorr,
    UDoubleMSUncorr,
    umath,
)

BOTH = [UDoubleMSCorr, UDoubleMSUncorr]


class TestConstruction:

    def test_accessors(self):
        x = UDoubleMSUncorr(3.0, 0.5)
        assert x.mean() == 3.0
        assert x.deviation() == 0.5
        assert isinstance(x.mean(), float)

    def test_negative_uncertainty_uncorrelated(self):
        with pytest.raises(NegativeUncertainty):
            UDoubleMSUncorr(1.0, -0.1)

    def test_negative_uncertainty_correlated_is_signed(self):
        x = UDoubleMSCorr(1.0, -0.1)
        assert x.uncertainty == -0.1
        assert x.deviation() == 0.1

    def test_abstract_base(self):
        with pytest.raises(TypeError):
            UDoubleMS(1.0, 0.1)

    def test_str_and_repr(self):
        x = UDoubleMSUncorr(5.0, 1.118034)
        assert str(x) == "5.0 +/- 1.1"
        assert repr(x) == "UDoubleMSUncorr(5.0, 1.118034)"


class TestArithmetic:

    @pytest.mark.parametrize("cls", BOTH)
    def test_unary(self, cls):
        x = cls(2.0, 0.3)
        assert +x is x
        assert (-(-x)).mean() == 2.0
        assert (-(-x)).deviation() == pytest.approx(0.3)

    def test_uncorrelated_sum_in_quadrature(self):
        a, b = UDoubleMSUncorr(1.0, 0.3), UDoubleMSUncorr(2.0, 0.4)
        assert (a + b).deviation() == pytest.approx(math.hypot(0.3, 0.4))
        assert (a - b).deviation() == pytest.approx(0.5)

    def test_correlated_doubling_and_cancelling(self):
        a = UDoubleMSCorr(1.5, 0.25)
        assert (a + a).deviation() == 2 * a.deviation()
        assert (a - a).deviation() == 0.0

    def test_correlated_negation_flips_sign(self):
        assert (-UDoubleMSCorr(1.0, 0.5)).uncertainty == -0.5
        assert (-UDoubleMSUncorr(1.0, 0.5)).uncertainty == 0.5

    def test_real_operands(self):
        x = UDoubleMSUncorr(2.0, 0.5)
        assert (x + 1).mean() == 3.0
        assert (1 + x).deviation() == 0.5
        assert (5 - x).mean() == 3.0
        assert (x * -3).deviation() == 1.5
        assert (-3 * x).mean() == -6.0
        assert (x / 4).deviation() == 0.125
        y = 8 / x
        assert y.mean() == 4.0
        assert y.deviation() == pytest.approx(1.0)

    def test_in_place_rebinds(self):
        x = UDoubleMSUncorr(2.0, 1.0)
        original = x
        x += 1
        assert x.mean() == 3.0
        assert original.mean() == 2.0

    def test_uncorrelated_product(self):
        z = UDoubleMSUncorr(3.0, 0.3) * UDoubleMSUncorr(2.0, 0.4)
        assert z.mean() == 6.0
        assert z.deviation() == pytest.approx(math.hypot(0.6, 1.2))

    def test_correlated_product_is_linear(self):
        a = UDoubleMSCorr(3.0, 0.3)
        assert (a * a).deviation() == pytest.approx(1.8)

    def test_division(self):
        z = UDoubleMSUncorr(4.0, 2.0) / UDoubleMSUncorr(2.0, 1.0)
        assert z.mean() == 2.0
        assert z.deviation() == pytest.approx(math.hypot(1.0, 1.0))
        a = UDoubleMSCorr(4.0, 2.0)
        assert (a / a).deviation() == pytest.approx(0.0)

    def test_division_by_zero_is_ieee(self):
        z = UDoubleMSUncorr(1.0, 0.1) / 0.0
        assert math.isinf(z.mean())

    def test_mixing_models_rejected(self):
        with pytest.raises(TypeError):
            UDoubleMSCorr(1.0, 0.1) + UDoubleMSUncorr(1.0, 0.1)


class TestElementaryFunctions:

    def test_sqrt(self):
        x = umath.sqrt(UDoubleMSCorr(4.0, 2.0))
        assert x.mean() == 2.0
        assert x.deviation() == 0.5

    def test_pow_correlated(self):
        x = umath.pow(UDoubleMSCorr(4.0, 2.0), UDoubleMSCorr(2.0, 0.1))
        assert x.mean() == 16.0
        assert x.deviation() == pytest.approx(18.218071, abs=1e-6)

    def test_pow_uncorrelated(self):
        x = UDoubleMSUncorr(4.0, 2.0) ** UDoubleMSUncorr(2.0, 0.1)
        assert x.mean() == 16.0
        assert x.deviation() == pytest.approx(16.153013, abs=1e-6)

    def test_ceil_zeroes_uncertainty(self):
        x = umath.ceil(UDoubleMSUncorr(2.5, 1.0))
        assert x.mean() == 3.0
        assert x.deviation() == 0.0

    def test_abs_is_fabs(self):
        x = abs(UDoubleMSCorr(-2.0, 0.5))
        assert x.mean() == 2.0
        assert x.uncertainty == -0.5

    def test_uncorrelated_slope_sign_dropped(self):
        x = umath.cos(UDoubleMSUncorr(1.0, 0.1))
        assert x.uncertainty == pytest.approx(0.1 * math.sin(1.0))

    def test_real_first_argument(self):
        x = umath.atan2(1.0, UDoubleMSUncorr(1.0, 0.1))
        assert x.mean() == pytest.approx(math.pi / 4)
        assert x.deviation() == pytest.approx(0.05)

    def test_fmod(self):
        x = umath.fmod(UDoubleMSUncorr(7.5, 0.3), UDoubleMSUncorr(2.0, 0.1))
        assert x.mean() == 1.5
        assert x.deviation() == pytest.approx(math.hypot(0.3, 0.3))

    def test_plain_floats_fall_through(self):
        assert umath.sqrt(9.0) == 3.0
        assert umath.frexp(6.0) == (0.75, 3)

    def test_ldexp_frexp_modf(self):
        x = UDoubleMSUncorr(6.0, 0.8)
        assert umath.ldexp(x, 2).deviation() == 3.2
        mantissa, exponent = umath.frexp(x)
        assert (mantissa.mean(), mantissa.deviation(), exponent) == (0.75, 0.1, 3)
        frac, intpart = umath.modf(UDoubleMSUncorr(3.75, 0.1))
        assert (frac.mean(), frac.deviation(), intpart) == (0.75, 0.1, 3.0)

    def test_unknown_function(self):
        with pytest.raises(KeyError):
            UDoubleMSUncorr(1.0, 0.1).apply("gamma")


class TestPropagateBySlope:

    def test_linear_function_matches_closed_form(self):
        x = UDoubleMSUncorr(2.0, 0.5)
        z = umath.propagate_by_slope(lambda v: 3.0 * v + 1.0, x)
        assert z.mean() == 7.0
        assert z.deviation() == pytest.approx(1.5)

    def test_two_args_uncorrelated(self):
        a, b = UDoubleMSUncorr(1.0, 0.3), UDoubleMSUncorr(2.0, 0.4)
        z = umath.propagate_by_slope(lambda x, y: x + y, a, b)
        assert z.deviation() == pytest.approx(0.5)

    def test_two_args_correlated_move_together(self):
        a, b = UDoubleMSCorr(1.0, 0.3), UDoubleMSCorr(2.0, 0.4)
        z = umath.propagate_by_slope(lambda x, y: x - y, a, b)
        assert z.uncertainty == pytest.approx(-0.1)

    def test_close_to_sqrt_for_small_sigma(self):
        x = UDoubleMSUncorr(4.0, 1e-3)
        estimate = umath.propagate_by_slope(np.sqrt, x)
        closed = umath.sqrt(x)
        assert estimate.deviation() == pytest.approx(closed.deviation(), rel=1e-6)

    def test_three_args_rejected(self):
        x = UDoubleMSUncorr(1.0, 0.1)
        with pytest.raises(TypeError):
            umath.propagate_by_slope(lambda a, b, c: a, x, x, x)


class TestParse:

    @pytest.mark.parametrize("cls", BOTH)
    def test_parse(self, cls):
        x = cls.parse("5.0 +/- 1.1")
        assert type(x) is cls
        assert (x.mean(), x.deviation()) == (5.0, 1.1)
