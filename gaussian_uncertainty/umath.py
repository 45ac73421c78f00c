"""
Math-library functions that accept uncertain values.

Each function dispatches to the representation of its argument; plain
real arguments fall through to :mod:`math`. For two-argument functions
a plain real on either side is promoted to the other side's type.

>>> from gaussian_uncertainty import UDoubleMSCorr, umath
>>> str(umath.sqrt(UDoubleMSCorr(4.0, 2.0)))
'2.00 +/- 0.50'
"""

import math
from typing import Callable

from .base import UncertainValue
from .ensemble import EnsembleLarge, EnsembleSmall, invoke
from .tracked import UDoubleCTAA, UDoubleCTSA

__all__ = [
    "sqrt", "sin", "cos", "tan", "asin", "acos", "atan", "atan2",
    "ceil", "floor", "fabs", "fmod", "exp", "log", "log10",
    "sinh", "cosh", "tanh", "pow", "ldexp", "frexp", "modf",
    "propagate_by_slope", "invoke", "new_epoch_all",
]


def _one_arg(name: str) -> Callable:
    certain = getattr(math, name)

    def func(x):
        if isinstance(x, UncertainValue):
            return x.apply(name)
        return certain(x)

    func.__name__ = func.__qualname__ = name
    func.__doc__ = f"{name}(x) for uncertain or plain real x."
    return func


def _two_arg(name: str) -> Callable:
    certain = getattr(math, name)

    def func(x, y):
        if isinstance(x, UncertainValue):
            return x.apply(name, y)
        if isinstance(y, UncertainValue):
            return y._coerce(x).apply(name, y)
        return certain(x, y)

    func.__name__ = func.__qualname__ = name
    func.__doc__ = f"{name}(x, y) for uncertain or plain real x and y."
    return func


sqrt = _one_arg("sqrt")
sin = _one_arg("sin")
cos = _one_arg("cos")
tan = _one_arg("tan")
asin = _one_arg("asin")
acos = _one_arg("acos")
atan = _one_arg("atan")
ceil = _one_arg("ceil")
floor = _one_arg("floor")
fabs = _one_arg("fabs")
exp = _one_arg("exp")
log = _one_arg("log")
log10 = _one_arg("log10")
sinh = _one_arg("sinh")
cosh = _one_arg("cosh")
tanh = _one_arg("tanh")

atan2 = _two_arg("atan2")
fmod = _two_arg("fmod")
pow = _two_arg("pow")


def ldexp(x, exponent: int):
    """x · 2**exponent."""
    if isinstance(x, UncertainValue):
        return x.ldexp(exponent)
    return math.ldexp(x, exponent)


def frexp(x):
    """(mantissa, exponent), with the exponent taken from the mean."""
    if isinstance(x, UncertainValue):
        return x.frexp()
    return math.frexp(x)


def modf(x):
    """(fractional part, integral part), with the integral part taken from the mean."""
    if isinstance(x, UncertainValue):
        return x.modf()
    return math.modf(x)


def propagate_by_slope(func: Callable, *args):
    """
    Propagate through a real function with no closed-form derivatives.

    Slopes (and, for the curved model, curves) are estimated from ``func``
    evaluated one sigma either side of each argument's mean. Only the
    simple and curved models support this.
    """
    if not args:
        raise TypeError("propagate_by_slope() needs at least one argument")
    cls = type(args[0])
    if not hasattr(cls, "propagate_by_slope"):
        raise TypeError(f"{cls.__name__} does not support propagate_by_slope()")
    return cls.propagate_by_slope(func, *(args[0]._coerce(a) for a in args))


def new_epoch_all() -> None:
    """Reset the source registries of every built-in tracked and ensemble type."""
    for cls in (UDoubleCTSA, UDoubleCTAA, EnsembleSmall, EnsembleLarge):
        cls.new_epoch()
