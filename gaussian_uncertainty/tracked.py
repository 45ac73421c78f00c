"""
╔══════════════════════════════════════════════════════════════════════╗
║  Correlation-tracked model                                         ║
║                                                                    ║
║  A value carries one uncertainty component per named source, so    ║
║  correlations between results are exact to first order and each    ║
║  result can report which sources its uncertainty came from.        ║
╚══════════════════════════════════════════════════════════════════════╝
"""

import logging
import sys
from typing import List, Optional, TextIO, Tuple, Type

import numpy as np

from .arrays import ScaledArray, SimpleArray, UncertaintyVector
from .base import UncertainValue, ieee
from .errors import NegativeUncertainty
from .formatting import int_percent, render_source_budget, uncertain_print, uncertain_read
from .moment_functions import (
    ElementaryFunction,
    frexp_w_moments,
    ldexp_w_moments,
    modf_w_moments,
)
from .sources import SourceRegistry

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# §1  MODEL
# ═══════════════════════════════════════════════════════════════════════

class UDoubleCT(UncertainValue):
    """
    Uncertain number with per-source uncertainty components.

    Concrete types come from :func:`correlation_tracked_type`, which binds
    a storage backend and a source registry to the class.

    Parameters
    ----------
    value : float
        Mean.
    uncertainty : float
        Standard deviation; a non-zero value registers a new source.
    name : str, optional
        Source name; defaults to ``"anon: <mean> +/- <sigma>"``.
    """

    __slots__ = ("_value", "_components", "_epoch")

    backend: Type[UncertaintyVector] = None
    sources: SourceRegistry = None

    def __init__(self, value: float = 0.0, uncertainty: float = 0.0, name: str = ""):
        registry = self._registry()
        if uncertainty < 0.0:
            raise NegativeUncertainty(float(uncertainty))
        self._value = np.float64(value)
        self._epoch = registry.get_epoch()
        self._components = self.backend(registry.capacity)
        if uncertainty != 0.0:
            source_name = name or "anon: " + uncertain_print(value, uncertainty)
            index = registry.get_new_source(source_name)
            self._components.set(index, uncertainty)

    @classmethod
    def _registry(cls) -> SourceRegistry:
        if cls.sources is None or cls.backend is None:
            raise TypeError(f"{cls.__name__} has no registry; "
                            f"build a concrete type with correlation_tracked_type()")
        return cls.sources

    @classmethod
    def _make(cls, value, components, epoch):
        obj = cls.__new__(cls)
        obj._value = np.float64(value)
        obj._components = components
        obj._epoch = epoch
        return obj

    @classmethod
    def _exact(cls, value):
        registry = cls._registry()
        return cls._make(value, cls.backend(registry.capacity), registry.get_epoch())

    @classmethod
    def parse(cls, text: str):
        mean, sigma = uncertain_read(text)
        return cls(mean, sigma, "input: " + uncertain_print(mean, sigma))

    @classmethod
    def new_epoch(cls) -> None:
        """Forget every source; values built before this call become unusable."""
        cls._registry().new_epoch()

    def _check_epochs(self, other) -> None:
        self.sources.check_epoch(self._epoch)
        self.sources.check_epoch(other._epoch)

    # ── accessors ────────────────────────────────────────────────────────

    def mean(self) -> float:
        return float(self._value)

    def deviation(self) -> float:
        return self._components.norm()

    @property
    def epoch(self) -> int:
        return self._epoch

    def components(self) -> np.ndarray:
        """Signed uncertainty contributed by each source, in source order."""
        return self._components.to_numpy()

    # ── arithmetic ───────────────────────────────────────────────────────

    def _negate(self):
        return self._make(-self._value, -self._components, self._epoch)

    def _add(self, other):
        self._check_epochs(other)
        return self._make(self._value + other._value,
                          self._components + other._components, self._epoch)

    def _sub(self, other):
        self._check_epochs(other)
        return self._make(self._value - other._value,
                          self._components - other._components, self._epoch)

    def _add_real(self, x):
        return self._make(self._value + x, self._components, self._epoch)

    @ieee
    def _mul(self, other):
        self._check_epochs(other)
        components = self._components * other._value + other._components * self._value
        return self._make(self._value * other._value, components, self._epoch)

    @ieee
    def _mul_real(self, x):
        return self._make(self._value * x, self._components * x, self._epoch)

    @ieee
    def _div(self, other):
        self._check_epochs(other)
        v2 = other._value
        components = (self._components / v2
                      - other._components * (self._value / (v2 * v2)))
        return self._make(self._value / v2, components, self._epoch)

    @ieee
    def _div_real(self, x):
        return self._make(self._value / x, self._components / x, self._epoch)

    @ieee
    def _rdiv_real(self, x):
        v = self._value
        return self._make(x / v, self._components * (-x / (v * v)), self._epoch)

    # ── elementary functions (first order only) ──────────────────────────

    def _apply1(self, fn: ElementaryFunction):
        result = fn.moments(self._value)
        return self._make(result.value, self._components * result.arg.slope, self._epoch)

    @ieee
    def _apply2(self, fn: ElementaryFunction, other):
        self._check_epochs(other)
        result = fn.moments(self._value, other._value)
        components = (self._components * result.arg1.slope
                      + other._components * result.arg2.slope)
        return self._make(result.value, components, self._epoch)

    def ldexp(self, exponent: int):
        result = ldexp_w_moments(self._value, exponent)
        return self._make(result.value, self._components * result.arg.slope, self._epoch)

    def frexp(self) -> Tuple["UDoubleCT", int]:
        result, exponent = frexp_w_moments(self._value)
        return (self._make(result.value, self._components * result.arg.slope, self._epoch),
                exponent)

    def modf(self) -> Tuple["UDoubleCT", float]:
        result, intpart = modf_w_moments(self._value)
        return (self._make(result.value, self._components * result.arg.slope, self._epoch),
                float(intpart))

    # ── source attribution ───────────────────────────────────────────────

    def source_budget(self) -> List[dict]:
        """
        Fraction of the total variance contributed by each source.

        Returns
        -------
        list of dict
            One row per registered source with keys ``index``, ``source``,
            ``fraction`` and ``pct_contribution`` (whole percent). Empty
            when the value has no uncertainty.
        """
        self.sources.check_epoch(self._epoch)
        total = self.deviation()
        if total == 0.0:
            return []
        budget = []
        for i in range(self.sources.get_num_sources()):
            fraction = (self._components.get(i) / total) ** 2
            budget.append({
                "index": i,
                "source": self.sources.get_source_name(i),
                "fraction": fraction,
                "pct_contribution": int_percent(fraction),
            })
        return budget

    def print_uncertain_sources(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        budget = self.source_budget()
        if not budget:
            stream.write("No uncertainty\n")
            return
        stream.write(render_source_budget(budget))


# ═══════════════════════════════════════════════════════════════════════
# §2  CONCRETE TYPES
# ═══════════════════════════════════════════════════════════════════════

def correlation_tracked_type(name: str, backend: Type[UncertaintyVector],
                             registry: Optional[SourceRegistry] = None) -> Type[UDoubleCT]:
    """
    Build a correlation-tracked type with its own registry and backend.

    Types built separately never share sources, so their values cannot
    be combined with each other.
    """
    registry = registry if registry is not None else SourceRegistry(name=name)
    return type(name, (UDoubleCT,), {
        "__slots__": (),
        "__module__": __name__,
        "__doc__": f"Correlation-tracked value stored in a {backend.__name__}.",
        "backend": backend,
        "sources": registry,
    })


UDoubleCTSA = correlation_tracked_type(
    "UDoubleCTSA", SimpleArray, SourceRegistry(name="Simple Array"))
UDoubleCTAA = correlation_tracked_type(
    "UDoubleCTAA", ScaledArray, SourceRegistry(name="Scaled Array"))
