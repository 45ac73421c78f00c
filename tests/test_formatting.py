"""Tests for the '<mean> +/- <sigma>' text form."""

import math

import pytest

from gaussian_uncertainty import FormatError, UDoubleMSCorr, UDoubleMSUncorr, int_percent
from gaussian_uncertainty.formatting import (
    render_source_budget,
    uncertain_print,
    uncertain_read,
)


class TestUncertainPrint:
    """Sigma gets two significant digits; the mean is rounded to match."""

    @pytest.mark.parametrize("mean, sigma, expected", [
        (5.0, 1.118034, "5.0 +/- 1.1"),
        (2.0, 0.5, "2.00 +/- 0.50"),
        (16.0, 18.218071, "16 +/- 18"),
        (123.456, 0.0123, "123.456 +/- 0.012"),
        (0.625, 0.30618623, "0.63 +/- 0.31"),
        (-3.14159, 0.01, "-3.142 +/- 0.010"),
    ])
    def test_rounding(self, mean, sigma, expected):
        assert uncertain_print(mean, sigma) == expected

    def test_sigma_rounding_up_a_decade(self):
        """0.996 rounds to 1.0, which still shows two significant digits."""
        assert uncertain_print(3.0, 0.996) == "3.0 +/- 1.0"
        assert uncertain_print(30.0, 9.96) == "30 +/- 10"

    def test_zero_sigma(self):
        assert uncertain_print(3.0, 0.0) == "3 +/- 0"

    def test_mean_much_smaller_than_sigma(self):
        assert uncertain_print(0.0001, 5.0) == "0.0 +/- 5.0"

    def test_negative_sigma_prints_magnitude(self):
        assert uncertain_print(1.0, -0.25) == "1.00 +/- 0.25"

    @pytest.mark.parametrize("mean, expected", [
        (math.inf, "inf +/- 0.5"),
        (-math.inf, "-inf +/- 0.5"),
        (math.nan, "nan +/- 0.5"),
    ])
    def test_non_finite_mean(self, mean, expected):
        assert uncertain_print(mean, 0.5) == expected

    def test_overflowed_result_prints(self):
        assert str(UDoubleMSCorr(1e308, 1.0) * 10) == "inf +/- 10"


class TestUncertainRead:

    def test_basic(self):
        assert uncertain_read("5.0 +/- 1.1") == (5.0, 1.1)

    def test_spaces_between_tokens(self):
        assert uncertain_read("  -2e3 + / - 4.5e1 ") == (-2000.0, 45.0)

    def test_trailing_moment_block(self):
        assert uncertain_read("5.0 +/- 1.1 [0.0 : -0.010 : 0.0]") == (5.0, 1.1)

    @pytest.mark.parametrize("text", ["5.0 -/+ 1.1", "5.0 1.1", "5.0 +- 1.1", "abc", ""])
    def test_missing_tokens(self, text):
        with pytest.raises(FormatError):
            uncertain_read(text)

    def test_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            uncertain_read("1 2 3")


class TestRoundTrip:
    """Printing, parsing and printing again gives the same text."""

    @pytest.mark.parametrize("mean, sigma", [
        (5.0, 1.118034), (1234.5678, 3.21), (0.000123, 0.0000456),
        (-7.5, 0.996), (42.0, 0.5),
    ])
    def test_idempotent(self, mean, sigma):
        text = str(UDoubleMSUncorr(mean, sigma))
        assert str(UDoubleMSUncorr.parse(text)) == text


class TestSourceBudgetText:

    def test_int_percent(self):
        assert int_percent(0.8) == 80
        assert int_percent(0.125) == 13
        assert int_percent(0.0) == 0

    def test_render_with_other(self):
        budget = [{"source": "a", "pct_contribution": 80},
                  {"source": "b", "pct_contribution": 20}]
        assert render_source_budget(budget, 0.0) == "a: 80%\nb: 20%\nother: 0%\n\n"
