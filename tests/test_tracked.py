"""Tests for correlation-tracked values."""

import copy
import io
import math

import numpy as np
import pytest

from gaussian_uncertainty import (
    CapacityExceeded,
    NegativeUncertainty,
    ScaledArray,
    SimpleArray,
    SourceRegistry,
    StaleEpochError,
    UDoubleCT,
    UDoubleCTAA,
    UDoubleCTSA,
    correlation_tracked_type,
    umath,
)

BOTH = [UDoubleCTSA, UDoubleCTAA]


class TestScenarios:

    def test_simple_array_sum(self):
        x = UDoubleCTSA(2.0, 1.0)
        x += UDoubleCTSA(3.0, 0.5)
        assert x.mean() == 5.0
        assert x.deviation() == pytest.approx(1.118034, abs=1e-6)

    def test_scaled_array_quotient(self):
        z = UDoubleCTAA(4.0, 2.0) / UDoubleCTAA(2.0, 1.0)
        assert z.mean() == 2.0
        assert z.deviation() == pytest.approx(1.4142135, abs=1e-7)


@pytest.mark.parametrize("cls", BOTH)
class TestCorrelations:

    def test_self_difference_cancels(self, cls):
        x = cls(3.0, 0.4)
        assert (x - x).deviation() == 0.0
        assert (x + x).deviation() == pytest.approx(0.8)

    def test_shared_source_through_functions(self, cls):
        x = cls(1.0, 0.1)
        z = umath.sin(x) ** 2 + umath.cos(x) ** 2
        assert z.mean() == pytest.approx(1.0)
        assert z.deviation() == pytest.approx(0.0, abs=1e-12)

    def test_independent_sources(self, cls):
        a, b = cls(1.0, 0.3), cls(2.0, 0.4)
        np.testing.assert_allclose((a - b).components(), [0.3, -0.4])
        assert (a * b).deviation() == pytest.approx(math.hypot(0.6, 0.4))

    def test_unary(self, cls):
        x = cls(2.0, 0.3)
        assert +x is x
        assert (-(-x)).mean() == 2.0
        assert (-(-x)).deviation() == pytest.approx(0.3)

    def test_real_operands(self, cls):
        x = cls(2.0, 0.5)
        assert (10 / x).deviation() == pytest.approx(1.25)
        assert (1 - x).mean() == -1.0
        assert (x * 2).deviation() == 1.0

    def test_first_order_only(self, cls):
        z = umath.sqrt(cls(4.0, 2.0))
        assert (z.mean(), z.deviation()) == (2.0, 0.5)

    def test_ceil_zeroes(self, cls):
        z = umath.ceil(cls(2.5, 1.0))
        assert (z.mean(), z.deviation()) == (3.0, 0.0)

    def test_frexp_modf_ldexp(self, cls):
        mantissa, exponent = umath.frexp(cls(6.0, 0.8))
        assert (exponent, mantissa.deviation()) == (3, pytest.approx(0.1))
        frac, intpart = umath.modf(cls(3.75, 0.1))
        assert (intpart, frac.deviation()) == (3.0, pytest.approx(0.1))
        assert umath.ldexp(cls(1.0, 0.5), 3).deviation() == pytest.approx(4.0)

    def test_negative_uncertainty(self, cls):
        with pytest.raises(NegativeUncertainty):
            cls(1.0, -0.5)


class TestSources:

    def test_exact_values_register_nothing(self):
        UDoubleCTSA(1.0)
        UDoubleCTSA(2.0, 0.0)
        assert UDoubleCTSA.sources.get_num_sources() == 0

    def test_naming(self):
        UDoubleCTSA(2.0, 1.0)
        UDoubleCTSA(3.0, 0.5, "length")
        UDoubleCTSA.parse("1.0 +/- 0.2")
        assert UDoubleCTSA.sources.source_names() == [
            "anon: 2.0 +/- 1.0", "length", "input: 1.00 +/- 0.20"]

    def test_non_finite_means(self):
        x = UDoubleCTSA(math.inf, 1.0)
        y = UDoubleCTSA(math.nan, 1.0)
        assert str(x) == "inf +/- 1"
        assert str(y) == "nan +/- 1"
        assert UDoubleCTSA.sources.source_names() == [
            "anon: inf +/- 1", "anon: nan +/- 1"]

    def test_capacity(self):
        for i in range(5):
            UDoubleCTSA(float(i), 1.0)
        with pytest.raises(CapacityExceeded):
            UDoubleCTSA(5.0, 1.0)
        UDoubleCTSA.new_epoch()
        UDoubleCTSA(5.0, 1.0)

    def test_copies_share_the_source(self):
        x = UDoubleCTAA(2.0, 1.0)
        y = copy.copy(x)
        assert UDoubleCTAA.sources.get_num_sources() == 1
        assert (x - y).deviation() == 0.0

    def test_stale_epoch(self):
        old = UDoubleCTSA(1.0, 0.1)
        UDoubleCTSA.new_epoch()
        fresh = UDoubleCTSA(2.0, 0.2)
        with pytest.raises(StaleEpochError):
            old + fresh
        with pytest.raises(StaleEpochError):
            umath.atan2(fresh, old)

    def test_types_keep_separate_registries(self):
        UDoubleCTSA(1.0, 0.1)
        assert UDoubleCTAA.sources.get_num_sources() == 0
        with pytest.raises(TypeError):
            UDoubleCTSA(1.0, 0.1) + UDoubleCTAA(1.0, 0.1)


class TestSourceBudget:

    def test_budget(self):
        a = UDoubleCTSA(2.0, 0.8, "a")
        b = UDoubleCTSA(3.0, 0.6, "b")
        budget = (a + b).source_budget()
        assert [row["source"] for row in budget] == ["a", "b"]
        assert [row["pct_contribution"] for row in budget] == [64, 36]
        assert budget[0]["fraction"] == pytest.approx(0.64)

    def test_print(self):
        a = UDoubleCTAA(2.0, 0.8, "a")
        b = UDoubleCTAA(3.0, 0.6, "b")
        stream = io.StringIO()
        (a - b).print_uncertain_sources(stream)
        assert stream.getvalue() == "a: 64%\nb: 36%\n\n"

    def test_no_uncertainty(self):
        stream = io.StringIO()
        UDoubleCTSA(2.0).print_uncertain_sources(stream)
        assert stream.getvalue() == "No uncertainty\n"
        assert UDoubleCTSA(2.0).source_budget() == []


class TestFactory:

    def test_custom_type(self):
        registry = SourceRegistry(2, "tiny")
        Tiny = correlation_tracked_type("Tiny", ScaledArray, registry)
        assert issubclass(Tiny, UDoubleCT)
        assert Tiny.sources is registry
        Tiny(1.0, 0.1)
        Tiny(2.0, 0.1)
        with pytest.raises(CapacityExceeded, match="'tiny'"):
            Tiny(3.0, 0.1)

    def test_default_registry(self):
        Other = correlation_tracked_type("Other", SimpleArray)
        assert Other.sources.name == "Other"
        assert Other.sources.capacity == 5

    def test_base_is_not_concrete(self):
        with pytest.raises(TypeError):
            UDoubleCT(1.0, 0.1)
