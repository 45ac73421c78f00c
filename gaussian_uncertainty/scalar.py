"""
╔══════════════════════════════════════════════════════════════════════╗
║  Simple mean/sigma model                                           ║
║                                                                    ║
║  A value is a (mean, uncertainty) pair propagated to first order.  ║
║    • UDoubleMSCorr   : every uncertainty is the same random draw   ║
║    • UDoubleMSUncorr : every uncertainty is independent            ║
╚══════════════════════════════════════════════════════════════════════╝

In the correlated mode the uncertainty is signed: its sign records the
direction of the underlying draw so that (a - a) cancels exactly.
"""

import logging
from typing import Callable, Tuple

import numpy as np

from .base import Correlation, UncertainValue, ieee
from .errors import NegativeUncertainty
from .moment_functions import (
    ElementaryFunction,
    frexp_w_moments,
    ldexp_w_moments,
    modf_w_moments,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# §1  MODEL
# ═══════════════════════════════════════════════════════════════════════

class UDoubleMS(UncertainValue):
    """
    Uncertain number modelled by mean and sigma only.

    Use one of the concrete subclasses; the combination rules are selected
    by the class-level :class:`Correlation` policy.

    Parameters
    ----------
    value : float
        Mean.
    uncertainty : float
        Standard deviation. Negative values are rejected in the uncorrelated
        mode and mean "anti-correlated with the source" in the correlated one.
    """

    __slots__ = ("_value", "_uncertainty")

    correlation: Correlation = None

    def __init__(self, value: float = 0.0, uncertainty: float = 0.0):
        if self.correlation is None:
            raise TypeError(f"{type(self).__name__} has no correlation policy; "
                            f"use one of its concrete subclasses")
        uncertainty = np.float64(uncertainty)
        if uncertainty < 0.0 and not self.correlation.is_correlated:
            raise NegativeUncertainty(float(uncertainty))
        self._value = np.float64(value)
        self._uncertainty = uncertainty

    @classmethod
    def _make(cls, value, uncertainty):
        obj = cls.__new__(cls)
        obj._value = np.float64(value)
        obj._uncertainty = np.float64(uncertainty)
        return obj

    @classmethod
    def _exact(cls, value):
        return cls._make(value, 0.0)

    # ── accessors ────────────────────────────────────────────────────────

    def mean(self) -> float:
        return float(self._value)

    def deviation(self) -> float:
        return float(abs(self._uncertainty))

    @property
    def uncertainty(self) -> float:
        """Raw uncertainty; signed in the correlated mode."""
        return float(self._uncertainty)

    # ── arithmetic ───────────────────────────────────────────────────────

    def _negate(self):
        if self.correlation.is_correlated:
            return self._make(-self._value, -self._uncertainty)
        return self._make(-self._value, self._uncertainty)

    def _add(self, other):
        return self._make(self._value + other._value,
                          self.correlation.combine(self._uncertainty, other._uncertainty))

    def _sub(self, other):
        return self._make(self._value - other._value,
                          self.correlation.combine(self._uncertainty, -other._uncertainty))

    def _add_real(self, x):
        return self._make(self._value + x, self._uncertainty)

    @ieee
    def _mul(self, other):
        return self._make(
            self._value * other._value,
            self.correlation.combine(self._uncertainty * other._value,
                                     other._uncertainty * self._value))

    @ieee
    def _mul_real(self, x):
        return self._make(self._value * x, self.correlation.term(self._uncertainty * x))

    @ieee
    def _div(self, other):
        v2 = other._value
        return self._make(
            self._value / v2,
            self.correlation.combine(self._uncertainty / v2,
                                     -other._uncertainty * self._value / (v2 * v2)))

    @ieee
    def _div_real(self, x):
        return self._make(self._value / x, self.correlation.term(self._uncertainty / x))

    @ieee
    def _rdiv_real(self, x):
        v = self._value
        return self._make(x / v, self.correlation.term(-x * self._uncertainty / (v * v)))

    # ── elementary functions ─────────────────────────────────────────────

    def _apply1(self, fn: ElementaryFunction):
        result = fn.moments(self._value)
        return self._make(result.value,
                          self.correlation.term(self._uncertainty * result.arg.slope))

    @ieee
    def _apply2(self, fn: ElementaryFunction, other):
        result = fn.moments(self._value, other._value)
        return self._make(
            result.value,
            self.correlation.combine(self._uncertainty * result.arg1.slope,
                                     other._uncertainty * result.arg2.slope))

    def ldexp(self, exponent: int):
        result = ldexp_w_moments(self._value, exponent)
        return self._make(result.value, self._uncertainty * result.arg.slope)

    def frexp(self) -> Tuple["UDoubleMS", int]:
        """Mantissa as an uncertain value, and the exponent of the mean."""
        result, exponent = frexp_w_moments(self._value)
        return self._make(result.value, self._uncertainty * result.arg.slope), exponent

    def modf(self) -> Tuple["UDoubleMS", float]:
        """Fractional part as an uncertain value, and the integral part of the mean."""
        result, intpart = modf_w_moments(self._value)
        return self._make(result.value, self._uncertainty), float(intpart)

    # ── numerical propagation ────────────────────────────────────────────

    @classmethod
    @ieee
    def propagate_by_slope(cls, func: Callable, *args: "UDoubleMS") -> "UDoubleMS":
        """
        Propagate through an arbitrary real function by sampling it at ±1σ.

        One argument: the uncertainty is half the spread of
        ``func(mean ± sigma)``. Two arguments: the correlated mode moves both
        arguments together; the uncorrelated mode moves them one at a time
        and adds the two spreads in quadrature.
        """
        if len(args) == 1:
            (arg,) = args
            v, u = arg._value, arg._uncertainty
            spread = (np.float64(func(v + u)) - np.float64(func(v - u))) * 0.5
            return cls._make(func(v), cls.correlation.term(spread))

        if len(args) != 2:
            raise TypeError("propagate_by_slope() takes one or two uncertain arguments")
        arg1, arg2 = args
        v1, u1, v2, u2 = arg1._value, arg1._uncertainty, arg2._value, arg2._uncertainty
        value = func(v1, v2)
        if cls.correlation.is_correlated:
            spread = 0.5 * (np.float64(func(v1 + u1, v2 + u2))
                            - np.float64(func(v1 - u1, v2 - u2)))
        else:
            spread = 0.5 * np.hypot(np.float64(func(v1 + u1, v2)) - func(v1 - u1, v2),
                                    np.float64(func(v1, v2 + u2)) - func(v1, v2 - u2))
        return cls._make(value, spread)


# ═══════════════════════════════════════════════════════════════════════
# §2  CONCRETE TYPES
# ═══════════════════════════════════════════════════════════════════════

class UDoubleMSCorr(UDoubleMS):
    """All uncertainties are 100% correlated."""
    __slots__ = ()
    correlation = Correlation.CORRELATED


class UDoubleMSUncorr(UDoubleMS):
    """All uncertainties are independent."""
    __slots__ = ()
    correlation = Correlation.UNCORRELATED
