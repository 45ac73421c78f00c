"""
╔══════════════════════════════════════════════════════════════════════╗
║  UDoubleCompare: one logical quantity in every representation     ║
║                                                                    ║
║  Every operation is applied to all eight models side by side, and  ║
║  independent implementations are cross-checked:                    ║
║    • simple and curved uncorrelated vs. numerical propagation      ║
║    • the small ensemble vs. invoking the plain function per sample ║
║  Disagreements are logged as warnings.                             ║
╚══════════════════════════════════════════════════════════════════════╝
"""

import logging
import operator
import sys
from typing import Callable, Dict, Optional, TextIO, Tuple

import numpy as np

from .base import UncertainValue
from .curved import UDoubleMSCCorr, UDoubleMSCUncorr
from .ensemble import EnsembleLarge, EnsembleSmall, invoke
from .moment_functions import ElementaryFunction
from .scalar import UDoubleMSCorr, UDoubleMSUncorr
from .tracked import UDoubleCTAA, UDoubleCTSA
from .umath import new_epoch_all

logger = logging.getLogger(__name__)

# attribute, type, label when printed one per line
_MEMBERS = (
    ("msu", UDoubleMSUncorr, "Uncorrelated:   "),
    ("msc", UDoubleMSCorr, "Correlated:     "),
    ("mscu", UDoubleMSCUncorr, "Better Uncorr:  "),
    ("mscc", UDoubleMSCCorr, "Better Corr:    "),
    ("ctsa", UDoubleCTSA, "Corr Track Simp:"),
    ("ctaa", UDoubleCTAA, "Corr Track Adv: "),
    ("ens_small", EnsembleSmall, f"Ensemble<{EnsembleSmall.size}>: "),
    ("ens_large", EnsembleLarge, f"Ensemble<{EnsembleLarge.size}>: "),
)
_NAMES = tuple(name for name, _, _ in _MEMBERS)


def _cross_check(label: str, result, alternative) -> None:
    text, alt_text = str(result), str(alternative)
    if text != alt_text:
        logger.warning("different values for %s(): %s vs. %s", label, text, alt_text)


class UDoubleCompare(UncertainValue):
    """
    Aggregate of all representations of one uncertain value.

    Parameters
    ----------
    value : float
        Mean.
    uncertainty : float
        Standard deviation.
    name : str, optional
        Source name for the correlation-tracked and ensemble members.
    """

    __slots__ = _NAMES

    def __init__(self, value: float = 0.0, uncertainty: float = 0.0, name: str = ""):
        for attr, kind, _ in _MEMBERS:
            if kind in (UDoubleMSUncorr, UDoubleMSCorr, UDoubleMSCUncorr, UDoubleMSCCorr):
                setattr(self, attr, kind(value, uncertainty))
            else:
                setattr(self, attr, kind(value, uncertainty, name))

    @classmethod
    def _make(cls, members: Dict[str, UncertainValue]):
        obj = cls.__new__(cls)
        for attr in _NAMES:
            setattr(obj, attr, members[attr])
        return obj

    @classmethod
    def _exact(cls, value):
        return cls._make({attr: kind._exact(value) for attr, kind, _ in _MEMBERS})

    @staticmethod
    def new_epoch() -> None:
        """Reset the registries of every tracked and ensemble representation."""
        new_epoch_all()

    def members(self) -> Dict[str, UncertainValue]:
        return {attr: getattr(self, attr) for attr in _NAMES}

    def mean(self) -> float:
        return self.msc.mean()

    def deviation(self) -> float:
        return self.msc.deviation()

    # ── forwarding ───────────────────────────────────────────────────────

    def _each(self, func: Callable):
        return self._make({attr: func(getattr(self, attr)) for attr in _NAMES})

    def _pairwise(self, other, func: Callable):
        return self._make({attr: func(getattr(self, attr), getattr(other, attr))
                           for attr in _NAMES})

    def _negate(self):
        return self._each(operator.neg)

    def _add(self, other):
        return self._pairwise(other, operator.add)

    def _sub(self, other):
        return self._pairwise(other, operator.sub)

    def _mul(self, other):
        return self._pairwise(other, operator.mul)

    def _div(self, other):
        return self._pairwise(other, operator.truediv)

    def _add_real(self, x):
        return self._each(lambda v: v + x)

    def _mul_real(self, x):
        return self._each(lambda v: v * x)

    def _div_real(self, x):
        return self._each(lambda v: v / x)

    def _rdiv_real(self, x):
        return self._each(lambda v: x / v)

    # ── elementary functions, cross-checked ──────────────────────────────

    def _checked(self, label: str, certain: Callable, args: Tuple["UDoubleCompare", ...],
                 apply: Callable) -> "UDoubleCompare":
        """Apply ``apply`` to each member; verify three members independently."""
        members = {attr: apply(*(getattr(a, attr) for a in args)) for attr in _NAMES}

        member_args = [a.msu for a in args]
        _cross_check(label, members["msu"],
                     UDoubleMSUncorr.propagate_by_slope(certain, *member_args))
        member_args = [a.mscu for a in args]
        _cross_check("curved " + label, members["mscu"],
                     UDoubleMSCUncorr.propagate_by_slope(certain, *member_args))
        _cross_check(f"ensemble<{EnsembleSmall.size}> {label}", members["ens_small"],
                     invoke(certain, *(a.ens_small for a in args)))
        return self._make(members)

    def _apply1(self, fn: ElementaryFunction):
        return self._checked(fn.name, fn.certain, (self,), lambda v: v.apply(fn.name))

    def _apply2(self, fn: ElementaryFunction, other):
        return self._checked(fn.name, fn.certain, (self, other),
                             lambda a, b: a.apply(fn.name, b))

    def ldexp(self, exponent: int):
        return self._checked("ldexp", lambda a: np.ldexp(a, exponent), (self,),
                             lambda v: v.ldexp(exponent))

    def frexp(self) -> Tuple["UDoubleCompare", int]:
        exponent = self.msu.frexp()[1]
        result = self._checked("frexp", lambda a: np.frexp(a)[0], (self,),
                               lambda v: v.frexp()[0])
        return result, exponent

    def modf(self) -> Tuple["UDoubleCompare", float]:
        intpart = self.msu.modf()[1]
        result = self._checked("modf", lambda a: np.modf(a)[0], (self,),
                               lambda v: v.modf()[0])
        return result, intpart

    # ── output ───────────────────────────────────────────────────────────

    def __str__(self):
        texts = {attr: str(getattr(self, attr)) for attr in _NAMES}
        reference = texts["msu"]
        # ensembles append higher moments; compare only the leading part
        if all(text[:len(reference)] == reference for text in texts.values()):
            return texts["msc"]
        return "\n".join(label + texts[attr] for attr, _, label in _MEMBERS)

    def print_uncertain_sources(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        stream.write("Sources of uncertainty:\n")
        for attr, header in (("ctsa", "Corr Tracking Simple:"),
                             ("ctaa", "Corr Tracking Advanced:"),
                             ("ens_small", f"Ensemble<{EnsembleSmall.size}>:"),
                             ("ens_large", f"Ensemble<{EnsembleLarge.size}>:")):
            stream.write(header + "\n")
            getattr(self, attr).print_uncertain_sources(stream)
