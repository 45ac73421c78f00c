"""
╔══════════════════════════════════════════════════════════════════════╗
║  Curved mean/sigma model                                           ║
║                                                                    ║
║  Like the simple model, but each function also applies its second  ║
║  derivative and warns when a discontinuity is near:                ║
║    • mean  += ½ · curve · σ²                                       ║
║    • σ     ← σ · slope · √(1 + ½ (curve · σ / slope)²)             ║
╚══════════════════════════════════════════════════════════════════════╝

For simple cases this gives better answers than the simple model, but
after several strongly curved functions in a row it gets much worse.
"""

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from .base import Correlation, UncertainValue, ieee
from .config import get_config
from .errors import NegativeUncertainty
from .moment_functions import (
    K_1_SQRT2,
    K_SQRT2,
    ArgEffect,
    ElementaryFunction,
    estimate_effect,
    frexp_w_moments,
    gauss_loss,
    hypot3,
    ldexp_w_moments,
    modf_w_moments,
    sqr,
)

logger = logging.getLogger(__name__)


def _second_order_sigma(sigma, effect: ArgEffect):
    """First-order term widened by the curve; curve only where the slope vanishes."""
    if effect.slope == 0.0:
        return sqr(sigma) * effect.curve * K_1_SQRT2
    return sigma * effect.slope * np.sqrt(1.0 + 0.5 * sqr(effect.curve * sigma / effect.slope))


# ═══════════════════════════════════════════════════════════════════════
# §1  MODEL
# ═══════════════════════════════════════════════════════════════════════

class UDoubleMSC(UncertainValue):
    """
    Uncertain number modelled by mean and sigma with curvature corrections.

    Parameters
    ----------
    value : float
        Mean.
    uncertainty : float
        Standard deviation; may be negative only in the correlated mode.

    Notes
    -----
    Each concrete type keeps its own discontinuity warning threshold, in
    sigmas. It starts from the configuration and is changed with
    :meth:`set_disc_thresh`.
    """

    __slots__ = ("_value", "_uncertainty")

    correlation: Correlation = None
    _disc_thresh: Optional[float] = None

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

    # ── discontinuity threshold ──────────────────────────────────────────

    @classmethod
    def disc_thresh(cls) -> float:
        if cls._disc_thresh is not None:
            return cls._disc_thresh
        config = get_config()
        if cls.correlation is Correlation.CORRELATED:
            return config.disc_thresh_correlated
        return config.disc_thresh_uncorrelated

    @classmethod
    def set_disc_thresh(cls, new_thresh: Optional[float]) -> None:
        """
        Warn whenever a discontinuity is closer than ``new_thresh`` sigmas.

        ``None`` goes back to the configured threshold.
        """
        if cls.correlation is None:
            raise TypeError("set the threshold on a concrete subclass")
        cls._disc_thresh = None if new_thresh is None else float(new_thresh)
        logger.debug("%s discontinuity threshold set to %r", cls.__name__, new_thresh)

    # ── accessors ────────────────────────────────────────────────────────

    def mean(self) -> float:
        return float(self._value)

    def deviation(self) -> float:
        return float(abs(self._uncertainty))

    @property
    def uncertainty(self) -> float:
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

    @ieee
    def _mul(self, other):
        v, u = self._value, self._uncertainty
        v2, u2 = other._value, other._uncertainty
        if not self.correlation.is_correlated:
            return self._make(v * v2, hypot3(u * v2, u2 * v, u * u2))

        second_order_adjust = u * u2
        linear = u * v2 + u2 * v
        if abs(linear) <= abs(u * u2) * 1e-10:
            unc = u * u2 * K_SQRT2
        else:
            unc = linear * np.sqrt(1.0 + 2.0 * sqr(u * u2 / linear))
        return self._make(v * v2 + second_order_adjust, unc)

    @ieee
    def _div(self, other):
        v, u = self._value, self._uncertainty
        v2, u2 = other._value, other._uncertainty
        if self.correlation.is_correlated:
            second_order_adjust = (u2 / (v2 * v2)) * (v * u2 / v2 - u)
            unc = (u / v2 - (u2 * v) / (v2 * v2)) * np.sqrt(1.0 + 2.0 * sqr(u2 / v2))
            if u2 != 0.0:
                disc_dist = abs(v2 / u2)
                if disc_dist < self.disc_thresh():
                    logger.warning("correlated division by %s is %.2g sigmas "
                                   "from an infinite wrap discontinuity",
                                   other, disc_dist)
        else:
            second_order_adjust = u2 * u2 * v / (v2 * v2 * v2)
            inverted_sigma = -(u2 / sqr(v2)) * np.sqrt(1.0 + 2.0 * sqr(u2 / v2))
            unc = hypot3(u / v2, inverted_sigma * v, u * inverted_sigma)
        return self._make(v / v2 + second_order_adjust, unc)

    # ── elementary functions ─────────────────────────────────────────────

    @ieee
    def _curved(self, value, effect: ArgEffect, func_text: str):
        u = self._uncertainty
        gauss_loss(u, effect, func_text, self.disc_thresh())
        unc = self.correlation.term(_second_order_sigma(u, effect))
        return self._make(value + sqr(u) * effect.curve / 2.0, unc)

    def _apply1(self, fn: ElementaryFunction):
        result = fn.moments(self._value)
        return self._curved(result.value, result.arg, f"{fn.name}({self}) ")

    @ieee
    def _apply2(self, fn: ElementaryFunction, other):
        u1, u2 = self._uncertainty, other._uncertainty
        func_text = f"{fn.name}({self}, {other}) "
        result = fn.moments(self._value, other._value)
        thresh = self.disc_thresh()
        gauss_loss(u1, result.arg1, func_text, thresh, " on 1st argument")
        gauss_loss(u2, result.arg2, func_text, thresh, " on 2nd argument")
        value = result.value + 0.5 * (result.arg1.curve * sqr(u1)
                                      + result.arg2.curve * sqr(u2))
        unc = self.correlation.combine(_second_order_sigma(u1, result.arg1),
                                       _second_order_sigma(u2, result.arg2))
        return self._make(value, unc)

    def ldexp(self, exponent: int):
        result = ldexp_w_moments(self._value, exponent)
        return self._curved(result.value, result.arg, f"ldexp({self}, {exponent}) ")

    def frexp(self) -> Tuple["UDoubleMSC", int]:
        result, exponent = frexp_w_moments(self._value)
        return self._curved(result.value, result.arg, f"frexp({self}) "), exponent

    def modf(self) -> Tuple["UDoubleMSC", float]:
        result, intpart = modf_w_moments(self._value)
        return self._curved(result.value, result.arg, f"modf({self}) "), float(intpart)

    # ── numerical propagation ────────────────────────────────────────────

    @classmethod
    @ieee
    def propagate_by_slope(cls, func: Callable, *args: "UDoubleMSC") -> "UDoubleMSC":
        """
        Propagate through an arbitrary real function, to second order.

        Slope and curve are estimated from ``func`` at ``mean ± sigma`` of
        each argument in turn; no discontinuity check is possible.
        """
        if len(args) == 1:
            (arg,) = args
            u = arg._uncertainty
            result = estimate_effect(func, arg._value, u)
            unc = cls.correlation.term(_second_order_sigma(u, result.arg))
            return cls._make(result.value + sqr(u) * result.arg.curve / 2.0, unc)

        if len(args) != 2:
            raise TypeError("propagate_by_slope() takes one or two uncertain arguments")
        arg1, arg2 = args
        v1, u1, v2, u2 = arg1._value, arg1._uncertainty, arg2._value, arg2._uncertainty
        effect1 = estimate_effect(lambda x: func(x, v2), v1, u1).arg
        effect2 = estimate_effect(lambda y: func(v1, y), v2, u2).arg
        value = func(v1, v2) + 0.5 * (sqr(u1) * effect1.curve + sqr(u2) * effect2.curve)
        unc = cls.correlation.combine(_second_order_sigma(u1, effect1),
                                      _second_order_sigma(u2, effect2))
        return cls._make(value, unc)


# ═══════════════════════════════════════════════════════════════════════
# §2  CONCRETE TYPES
# ═══════════════════════════════════════════════════════════════════════

class UDoubleMSCCorr(UDoubleMSC):
    """All uncertainties are 100% correlated."""
    __slots__ = ()
    correlation = Correlation.CORRELATED


class UDoubleMSCUncorr(UDoubleMSC):
    """All uncertainties are independent."""
    __slots__ = ()
    correlation = Correlation.UNCORRELATED
