"""
Operator plumbing shared by every uncertain-number representation.

Each representation implements a handful of hooks (``_add``, ``_mul``,
``_apply1`` ...) and inherits the Python operator protocol from
:class:`UncertainValue`. Values are immutable: every operation returns a
new instance, so ``a += b`` rebinds ``a``.
"""

import functools
from enum import Enum
from numbers import Real

import numpy as np

from .formatting import uncertain_print, uncertain_read
from .moment_functions import ElementaryFunction, lookup


def ieee(method):
    """Run ``method`` with float64 singularities yielding NaN/Inf silently."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        with np.errstate(all="ignore"):
            return method(*args, **kwargs)
    return wrapper


class Correlation(Enum):
    """How two uncertainties combine when they meet in one operation."""
    CORRELATED = "correlated"
    UNCORRELATED = "uncorrelated"

    @property
    def is_correlated(self) -> bool:
        return self is Correlation.CORRELATED

    def term(self, x):
        """A first-order term: signed when correlated, a magnitude otherwise."""
        return x if self.is_correlated else abs(x)

    def combine(self, a, b):
        """Total of two first-order terms: linear sum, or sum in quadrature."""
        if self.is_correlated:
            return a + b
        return np.hypot(a, b)


class UncertainValue:
    """
    Base for all representations of a value with Gaussian uncertainty.

    Subclasses provide ``mean()``, ``deviation()``, ``_exact()`` and the
    arithmetic and elementary-function hooks. Mixed operands are either
    another instance of the *same* concrete type or a plain real number.
    """

    __slots__ = ()

    # ── hooks ────────────────────────────────────────────────────────────

    def mean(self) -> float:
        raise NotImplementedError

    def deviation(self) -> float:
        raise NotImplementedError

    @classmethod
    def _exact(cls, value):
        """Promote a plain real to a value of this type with no uncertainty."""
        raise NotImplementedError

    def _negate(self):
        raise NotImplementedError

    def _add(self, other):
        raise NotImplementedError

    def _sub(self, other):
        raise NotImplementedError

    def _mul(self, other):
        raise NotImplementedError

    def _div(self, other):
        raise NotImplementedError

    def _apply1(self, fn: ElementaryFunction):
        raise NotImplementedError

    def _apply2(self, fn: ElementaryFunction, other):
        raise NotImplementedError

    def _add_real(self, x):
        return self._add(self._exact(x))

    def _mul_real(self, x):
        return self._mul(self._exact(x))

    def _div_real(self, x):
        return self._div(self._exact(x))

    def _rdiv_real(self, x):
        return self._exact(x)._div(self)

    # ── elementary functions ─────────────────────────────────────────────

    def apply(self, name: str, *args):
        """
        Apply the named elementary function (``"sqrt"``, ``"atan2"`` ...).

        Two-argument functions take ``self`` as their first argument; the
        second may be a value of the same type or a plain real.
        """
        fn = lookup(name)
        if fn.arity == 1:
            if args:
                raise TypeError(f"{name}() takes exactly one argument")
            return self._apply1(fn)
        if len(args) != 1:
            raise TypeError(f"{name}() takes exactly two arguments")
        return self._apply2(fn, self._coerce(args[0]))

    def _coerce(self, other):
        if type(other) is type(self):
            return other
        if isinstance(other, Real):
            return self._exact(other)
        raise TypeError(f"cannot combine {type(self).__name__} "
                        f"with {type(other).__name__}")

    # ── operator protocol ────────────────────────────────────────────────

    def __pos__(self):
        return self

    def __neg__(self):
        return self._negate()

    def __abs__(self):
        return self.apply("fabs")

    def __add__(self, other):
        if type(other) is type(self):
            return self._add(other)
        if isinstance(other, Real):
            return self._add_real(other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, Real):
            return self._add_real(other)
        return NotImplemented

    def __sub__(self, other):
        if type(other) is type(self):
            return self._sub(other)
        if isinstance(other, Real):
            return self._add_real(-other)
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, Real):
            return self._negate()._add_real(other)
        return NotImplemented

    def __mul__(self, other):
        if type(other) is type(self):
            return self._mul(other)
        if isinstance(other, Real):
            return self._mul_real(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, Real):
            return self._mul_real(other)
        return NotImplemented

    def __truediv__(self, other):
        if type(other) is type(self):
            return self._div(other)
        if isinstance(other, Real):
            return self._div_real(other)
        return NotImplemented

    def __rtruediv__(self, other):
        if isinstance(other, Real):
            return self._rdiv_real(other)
        return NotImplemented

    def __pow__(self, other):
        if type(other) is type(self) or isinstance(other, Real):
            return self.apply("pow", other)
        return NotImplemented

    def __rpow__(self, other):
        if isinstance(other, Real):
            return self._exact(other).apply("pow", self)
        return NotImplemented

    # ── text form ────────────────────────────────────────────────────────

    @classmethod
    def parse(cls, text: str):
        """Build a value from ``"<mean> +/- <sigma>"`` text."""
        mean, sigma = uncertain_read(text)
        return cls(mean, sigma)

    def __str__(self):
        return uncertain_print(self.mean(), self.deviation())

    def __repr__(self):
        return f"{type(self).__name__}({self.mean()!r}, {self.deviation()!r})"
