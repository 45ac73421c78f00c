"""
╔══════════════════════════════════════════════════════════════════════╗
║  Moment functions: math library calls that also report how their   ║
║  argument affects the result                                       ║
║                                                                    ║
║  For every elementary function this module returns:                ║
║    • the value at the argument                                     ║
║    • the slope (first derivative)                                  ║
║    • the curve (second derivative)                                 ║
║    • the kind of and distance to the nearest discontinuity         ║
╚══════════════════════════════════════════════════════════════════════╝

Two-argument functions report one effect per argument; cross second
partials such as d/dx(d/dy(atan2(x, y))) are not modelled.
"""

import functools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import numpy as np
import sympy as sp

logger = logging.getLogger(__name__)

K_PI = math.pi
K_HALF_PI = math.pi / 2.0
K_SQRT2 = math.sqrt(2.0)
K_1_SQRT2 = 1.0 / math.sqrt(2.0)
K_LOG10E = 1.0 / math.log(10.0)


def sqr(a: float) -> float:
    """Square: just a notational convenience."""
    return a * a


def hypot3(a: float, b: float, c: float) -> float:
    """Length of the vector (a, b, c)."""
    return math.sqrt(a * a + b * b + c * c)


# ═══════════════════════════════════════════════════════════════════════
# §1  RESULT TYPES
# ═══════════════════════════════════════════════════════════════════════

class DiscontinuityType(Enum):
    NONE = "none"                                # sin(x) is continuous everywhere
    STEP = "step"                                # floor(x) as x -> 1.0
    INFINITE_WRAP = "infinite_wrap"              # 1/x as x -> 0.0
    INFINITE_THEN_UNDEF = "infinite_then_undef"  # log(x) as x -> 0.0
    SLOPE_ONLY = "slope_only"                    # fabs(x) as x -> 0.0
    UNDEFINED_BEYOND = "undefined_beyond"        # asin(x) as x -> 1.0

    @property
    def description(self) -> str:
        return _DISCONTINUITY_TEXT[self]


_DISCONTINUITY_TEXT = {
    DiscontinuityType.NONE: "no discontinuity",
    DiscontinuityType.STEP: "a step discontinuity",
    DiscontinuityType.INFINITE_WRAP: "an infinite wrap discontinuity",
    DiscontinuityType.INFINITE_THEN_UNDEF:
        "an infinite discontinuity beyond which it is undefined",
    DiscontinuityType.SLOPE_ONLY: "a discontinuity in slope",
    DiscontinuityType.UNDEFINED_BEYOND: "a point beyond which it is undefined",
}


@dataclass(frozen=True)
class ArgEffect:
    """Everything an argument does to a function's return value."""
    slope: float
    curve: float = 0.0
    disc_dist: float = math.inf
    disc_type: DiscontinuityType = DiscontinuityType.NONE


@dataclass(frozen=True)
class OneArgResult:
    value: float
    arg: ArgEffect


@dataclass(frozen=True)
class TwoArgResult:
    value: float
    arg1: ArgEffect
    arg2: ArgEffect


def _ieee(func):
    """Evaluate with float64 IEEE semantics: NaN/Inf results instead of errors."""
    @functools.wraps(func)
    def wrapper(*args):
        with np.errstate(all="ignore"):
            return func(*(np.float64(a) for a in args))
    return wrapper


def _integer_distance(fraction: float) -> float:
    """Distance to the nearest integer given a fractional part."""
    dist = abs(fraction)
    if dist > 0.5:
        dist = 1.0 - dist
    return dist


# ═══════════════════════════════════════════════════════════════════════
# §2  ONE-ARGUMENT FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def ceil_w_moments(arg: float) -> OneArgResult:
    # discontinuity at each integer
    return OneArgResult(np.ceil(arg), ArgEffect(
        0.0, 0.0, _integer_distance(np.modf(arg)[0]), DiscontinuityType.STEP))


@_ieee
def floor_w_moments(arg: float) -> OneArgResult:
    return OneArgResult(np.floor(arg), ArgEffect(
        0.0, 0.0, _integer_distance(np.modf(arg)[0]), DiscontinuityType.STEP))


@_ieee
def fabs_w_moments(arg: float) -> OneArgResult:
    value = np.fabs(arg)
    slope = 1.0 if arg > 0.0 else -1.0
    # discontinuity at 0.0
    return OneArgResult(value, ArgEffect(slope, 0.0, value, DiscontinuityType.SLOPE_ONLY))


@_ieee
def ldexp_w_moments(arg: float, exponent: float) -> OneArgResult:
    exponent = int(exponent)
    return OneArgResult(np.ldexp(arg, exponent), ArgEffect(np.ldexp(1.0, exponent)))


def modf_w_moments(arg: float) -> Tuple[OneArgResult, float]:
    """Return the fractional part with its effect, and the integral part."""
    with np.errstate(all="ignore"):
        fraction, intpart = np.modf(np.float64(arg))
    effect = ArgEffect(1.0, 0.0, _integer_distance(fraction), DiscontinuityType.STEP)
    return OneArgResult(fraction, effect), intpart


def frexp_w_moments(arg: float) -> Tuple[OneArgResult, int]:
    """Return the mantissa with its effect, and the binary exponent."""
    with np.errstate(all="ignore"):
        arg = np.float64(arg)
        mantissa, exponent = np.frexp(arg)
        exponent = int(exponent)
        slope = np.ldexp(1.0, -exponent)
        # the exponent jumps at each power of two
        disc_loc = np.ldexp(1.0, exponent)
        disc_dist = min(abs(disc_loc - abs(arg)), abs(0.5 * disc_loc - abs(arg)))
    effect = ArgEffect(slope, 0.0, disc_dist, DiscontinuityType.STEP)
    return OneArgResult(mantissa, effect), exponent


@_ieee
def sqrt_w_moments(arg: float) -> OneArgResult:
    value = np.sqrt(arg)
    return OneArgResult(value, ArgEffect(
        1.0 / (2.0 * value),
        -0.25 / (value * value * value),
        arg,  # undefined below 0.0
        DiscontinuityType.UNDEFINED_BEYOND))


@_ieee
def sin_w_moments(arg: float) -> OneArgResult:
    value = np.sin(arg)
    return OneArgResult(value, ArgEffect(np.cos(arg), -value))


@_ieee
def cos_w_moments(arg: float) -> OneArgResult:
    value = np.cos(arg)
    return OneArgResult(value, ArgEffect(-np.sin(arg), -value))


@_ieee
def tan_w_moments(arg: float) -> OneArgResult:
    costemp = np.cos(arg)
    slope = 1.0 / (costemp * costemp)
    # poles at every odd multiple of pi/2
    disc_dist = abs(np.fmod(arg - K_HALF_PI, K_PI))
    if disc_dist > K_HALF_PI:
        disc_dist = K_PI - disc_dist
    return OneArgResult(np.tan(arg), ArgEffect(
        slope, 2.0 * slope * np.tan(arg), disc_dist, DiscontinuityType.INFINITE_WRAP))


@_ieee
def asin_w_moments(arg: float) -> OneArgResult:
    slope = 1.0 / np.sqrt(1.0 - arg * arg)
    disc_dist = 1.0 - arg if arg > 0.0 else arg + 1.0
    return OneArgResult(np.arcsin(arg), ArgEffect(
        slope, arg * slope * slope * slope, disc_dist, DiscontinuityType.UNDEFINED_BEYOND))


@_ieee
def acos_w_moments(arg: float) -> OneArgResult:
    slope = -1.0 / np.sqrt(1.0 - arg * arg)
    disc_dist = 1.0 - arg if arg > 0.0 else arg + 1.0
    return OneArgResult(np.arccos(arg), ArgEffect(
        slope, arg * slope * slope * slope, disc_dist, DiscontinuityType.UNDEFINED_BEYOND))


@_ieee
def atan_w_moments(arg: float) -> OneArgResult:
    slope = 1.0 / (1.0 + arg * arg)
    return OneArgResult(np.arctan(arg), ArgEffect(slope, -2.0 * arg * slope * slope))


@_ieee
def exp_w_moments(arg: float) -> OneArgResult:
    value = np.exp(arg)
    return OneArgResult(value, ArgEffect(value, value))


@_ieee
def log_w_moments(arg: float) -> OneArgResult:
    slope = 1.0 / arg
    return OneArgResult(np.log(arg), ArgEffect(
        slope, -slope * slope, arg, DiscontinuityType.INFINITE_THEN_UNDEF))


@_ieee
def log10_w_moments(arg: float) -> OneArgResult:
    slope = K_LOG10E / arg
    return OneArgResult(np.log10(arg), ArgEffect(
        slope, -slope / arg, arg, DiscontinuityType.INFINITE_THEN_UNDEF))


@_ieee
def sinh_w_moments(arg: float) -> OneArgResult:
    value = np.sinh(arg)
    return OneArgResult(value, ArgEffect(np.cosh(arg), value))


@_ieee
def cosh_w_moments(arg: float) -> OneArgResult:
    value = np.cosh(arg)
    return OneArgResult(value, ArgEffect(np.sinh(arg), value))


@_ieee
def tanh_w_moments(arg: float) -> OneArgResult:
    coshtemp = np.cosh(arg)
    return OneArgResult(np.tanh(arg), ArgEffect(
        1.0 / (coshtemp * coshtemp),
        -2.0 * np.sinh(arg) / (coshtemp * coshtemp * coshtemp)))


# ═══════════════════════════════════════════════════════════════════════
# §3  TWO-ARGUMENT FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════

@_ieee
def fmod_w_moments(arg1: float, arg2: float) -> TwoArgResult:
    value = np.fmod(arg1, arg2)
    slope1 = 1.0
    if arg1 / arg2 > 0.0:
        slope2 = -np.floor(arg1 / arg2)
    else:
        slope2 = np.floor(-arg1 / arg2)

    disc_dist1 = abs(value)
    if disc_dist1 > abs(arg2) * 0.5:
        disc_dist1 = abs(arg2) - disc_dist1

    # the quotient changes at the divisors that make arg1/arg2 an integer
    rat = abs(arg1 / arg2)
    floor_target = abs(arg1) / np.floor(rat)
    ceil_target = abs(arg1) / np.ceil(rat)
    disc_dist2 = min(abs(floor_target - abs(arg2)), abs(ceil_target - abs(arg2)))
    return TwoArgResult(
        value,
        ArgEffect(slope1, 0.0, disc_dist1, DiscontinuityType.STEP),
        ArgEffect(slope2, 0.0, disc_dist2, DiscontinuityType.STEP))


@_ieee
def atan2_w_moments(arg1: float, arg2: float) -> TwoArgResult:
    value = np.arctan2(arg1, arg2)
    sum2 = arg2 * arg2 + arg1 * arg1
    if sum2 == 0.0:
        return TwoArgResult(
            value,
            ArgEffect(1.0),
            ArgEffect(1.0, 0.0, 0.0, DiscontinuityType.STEP))

    curve1 = -2.0 * arg1 * arg2 / (sum2 * sum2)
    if arg2 >= 0.0:
        effect1 = ArgEffect(arg2 / sum2, curve1)
    else:
        # the branch cut along the negative x axis
        effect1 = ArgEffect(arg2 / sum2, curve1, abs(arg1), DiscontinuityType.STEP)
    if arg1 == 0.0:
        effect2 = ArgEffect(-arg1 / sum2, -curve1, abs(arg2), DiscontinuityType.STEP)
    else:
        effect2 = ArgEffect(-arg1 / sum2, -curve1)
    return TwoArgResult(value, effect1, effect2)


@_ieee
def pow_w_moments(arg1: float, arg2: float) -> TwoArgResult:
    value = np.power(arg1, arg2)
    if arg1 == 0.0:
        slope1 = 1.0 if arg2 == 1.0 else 0.0
        curve1 = 2.0 if arg2 == 2.0 else 0.0
        # pow(0.0, arg2) is 0.0 for every positive arg2, undefined for negative
        return TwoArgResult(
            value,
            ArgEffect(slope1, curve1),
            ArgEffect(0.0, 0.0, arg2 if arg2 > 0.0 else 0.0,
                      DiscontinuityType.UNDEFINED_BEYOND))

    slope1 = arg2 * value / arg1
    curve1 = arg2 * (arg2 - 1.0) * value / (arg1 * arg1)
    if arg1 < 0.0:
        # only defined for integer arg2
        return TwoArgResult(
            value,
            ArgEffect(slope1, curve1),
            ArgEffect(0.0, 0.0, 0.0, DiscontinuityType.UNDEFINED_BEYOND))

    if arg2 == np.floor(arg2):
        effect1 = ArgEffect(slope1, curve1)
    else:
        effect1 = ArgEffect(slope1, curve1, arg1, DiscontinuityType.UNDEFINED_BEYOND)
    log_arg1 = np.log(arg1)
    slope2 = log_arg1 * value
    return TwoArgResult(value, effect1, ArgEffect(slope2, log_arg1 * slope2))


# ═══════════════════════════════════════════════════════════════════════
# §4  FUNCTION TABLE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ElementaryFunction:
    """
    One named math function, as every representation needs to see it.

    ``certain`` evaluates on plain floats or numpy arrays. ``moments``
    returns the value with its argument effects, or is None when the
    function has no closed form here and must be propagated numerically.
    """
    name: str
    arity: int
    certain: Callable
    moments: Optional[Callable] = None


ELEMENTARY_FUNCTIONS: Dict[str, ElementaryFunction] = {
    f.name: f for f in (
        ElementaryFunction("sqrt", 1, np.sqrt, sqrt_w_moments),
        ElementaryFunction("sin", 1, np.sin, sin_w_moments),
        ElementaryFunction("cos", 1, np.cos, cos_w_moments),
        ElementaryFunction("tan", 1, np.tan, tan_w_moments),
        ElementaryFunction("asin", 1, np.arcsin, asin_w_moments),
        ElementaryFunction("acos", 1, np.arccos, acos_w_moments),
        ElementaryFunction("atan", 1, np.arctan, atan_w_moments),
        ElementaryFunction("ceil", 1, np.ceil, ceil_w_moments),
        ElementaryFunction("floor", 1, np.floor, floor_w_moments),
        ElementaryFunction("fabs", 1, np.fabs, fabs_w_moments),
        ElementaryFunction("exp", 1, np.exp, exp_w_moments),
        ElementaryFunction("log", 1, np.log, log_w_moments),
        ElementaryFunction("log10", 1, np.log10, log10_w_moments),
        ElementaryFunction("sinh", 1, np.sinh, sinh_w_moments),
        ElementaryFunction("cosh", 1, np.cosh, cosh_w_moments),
        ElementaryFunction("tanh", 1, np.tanh, tanh_w_moments),
        ElementaryFunction("atan2", 2, np.arctan2, atan2_w_moments),
        ElementaryFunction("fmod", 2, np.fmod, fmod_w_moments),
        ElementaryFunction("pow", 2, np.power, pow_w_moments),
    )
}


def lookup(name: str) -> ElementaryFunction:
    try:
        return ELEMENTARY_FUNCTIONS[name]
    except KeyError:
        raise KeyError(f"unknown elementary function '{name}'. "
                       f"Choose from: {sorted(ELEMENTARY_FUNCTIONS)}") from None


# ═══════════════════════════════════════════════════════════════════════
# §5  NUMERICAL AND SYMBOLIC ESTIMATES
# ═══════════════════════════════════════════════════════════════════════

def estimate_effect(func: Callable[[float], float], arg: float,
                    sigma: float) -> OneArgResult:
    """
    Estimate slope and curve from centered differences at ``arg ± sigma``.

    Used when no closed form is known, and as an oracle for the ones that
    are. With zero sigma there is nothing to probe and both come back 0.
    """
    with np.errstate(all="ignore"):
        core_value = np.float64(func(arg))
        if sigma == 0.0:
            return OneArgResult(core_value, ArgEffect(0.0, 0.0))
        up = np.float64(func(arg + sigma))
        down = np.float64(func(arg - sigma))
        slope = (up - down) * 0.5 / sigma
        curve = (up + down - 2.0 * core_value) / (sigma * sigma)
    return OneArgResult(core_value, ArgEffect(slope, curve))


@functools.lru_cache(maxsize=64)
def _symbolic_derivatives(formula: str, names: Tuple[str, ...]):
    symbols = {n: sp.Symbol(n) for n in names}
    expr = sp.sympify(formula, locals=symbols)
    partials = {}
    for n, sym in symbols.items():
        first = sp.diff(expr, sym)
        partials[n] = (first, sp.diff(first, sym))
    return symbols, expr, partials


def symbolic_effects(formula: str, values: Dict[str, float]) -> Tuple[float, Dict[str, ArgEffect]]:
    """
    Differentiate ``formula`` symbolically and evaluate at ``values``.

    Parameters
    ----------
    formula : str
        Sympy-parseable expression, e.g. ``"x**y"`` or ``"atan2(x, y)"``.
    values : dict
        Mapping of symbol name to the point of evaluation.

    Returns
    -------
    (value, effects)
        The formula's value and, per symbol, its slope and curve.
    """
    symbols, expr, partials = _symbolic_derivatives(formula, tuple(values))
    subs = {symbols[n]: v for n, v in values.items()}
    value = float(expr.evalf(subs=subs))
    effects = {
        n: ArgEffect(float(first.evalf(subs=subs)), float(second.evalf(subs=subs)))
        for n, (first, second) in partials.items()
    }
    return value, effects


def symbolic_effect(formula: str, arg: float, symbol: str = "x") -> OneArgResult:
    """One-argument shortcut for :func:`symbolic_effects`."""
    value, effects = symbolic_effects(formula, {symbol: arg})
    return OneArgResult(value, effects[symbol])


# ═══════════════════════════════════════════════════════════════════════
# §6  GAUSSIAN HELPERS
# ═══════════════════════════════════════════════════════════════════════

def inverse_gaussian_density(p: float) -> float:
    """
    Deviate ``t`` with upper-tail probability ``p`` for a unit Gaussian.

    Abramowitz & Stegun formula 26.2.23, accurate to within 4.5e-4 for
    ``0 < p <= 0.5``.
    """
    if p <= 0.0:
        raise ValueError(f"inverse_gaussian_density() called for non-positive value: {p}")
    if p > 0.5:
        raise ValueError(f"inverse_gaussian_density() called for too large value: {p}")

    c0, c1, c2 = 2.515517, 0.802853, 0.010328
    d1, d2, d3 = 1.432788, 0.189269, 0.001308
    t = math.sqrt(math.log(1.0 / (p * p)))
    return t - (c0 + t * (c1 + c2 * t)) / (1.0 + t * (d1 + t * (d2 + t * d3)))


def gauss_loss(uncertainty: float, effect: ArgEffect, func_text: str,
               threshold: float, id_text: str = "") -> Optional[str]:
    """
    Warn when a discontinuity is within ``threshold`` sigmas of the argument.

    Near a discontinuity the propagated distribution stops looking Gaussian,
    so results there deserve less trust.

    Returns
    -------
    str or None
        The warning text when one was logged.
    """
    if effect.disc_type is DiscontinuityType.NONE or uncertainty == 0.0:
        return None
    scaled_disc_dist = abs(effect.disc_dist / uncertainty)
    if not scaled_disc_dist < threshold:
        return None
    message = (f"{func_text}is {scaled_disc_dist:.2g} sigmas{id_text} "
               f"from {effect.disc_type.description}")
    logger.warning(message)
    return message
