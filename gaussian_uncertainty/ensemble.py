"""
╔══════════════════════════════════════════════════════════════════════╗
║  Ensemble model                                                    ║
║                                                                    ║
║  A value is N equally likely samples of its distribution:          ║
║    • leaves copy a unit-Gaussian template, scaled and shuffled     ║
║    • arithmetic and functions apply sample by sample               ║
║    • mean, sigma, skew, kurtosis and 5th moment are measured       ║
║  Larger N is more faithful and proportionally more expensive.      ║
╚══════════════════════════════════════════════════════════════════════╝
"""

import logging
import math
import sys
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple, Type

import numpy as np

from .base import UncertainValue, ieee
from .config import get_config
from .errors import EnsembleSizeError, NegativeUncertainty
from .formatting import int_percent, render_source_budget, uncertain_print
from .moment_functions import ElementaryFunction, inverse_gaussian_density
from .sources import SourceRegistry

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# §1  SAMPLE STATISTICS
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EnsembleMoments:
    mean: float
    sigma: float
    skew: float
    kurtosis: float   # excess kurtosis: 0 for a Gaussian
    m5: float


def _sorted_by_magnitude(diffs: np.ndarray) -> np.ndarray:
    # summing small to large loses less to cancellation
    return diffs[np.argsort(np.abs(diffs), kind="stable")]


def sample_mean(samples: np.ndarray) -> float:
    """Mean, refined by a second pass over the residuals."""
    n = len(samples)
    mean = np.sum(samples) / n
    return mean + np.sum(_sorted_by_magnitude(samples - mean)) / n


@ieee
def moments_fixed_mean(samples: np.ndarray, mean: float) -> EnsembleMoments:
    """Sigma, skew, kurtosis and 5th moment about a given mean."""
    n = len(samples)
    diffs = _sorted_by_magnitude(samples - mean)
    d2 = diffs * diffs
    var = np.sum(d2) / n
    sigma = np.sqrt(var)
    return EnsembleMoments(
        mean=float(mean),
        sigma=float(sigma),
        skew=float(np.sum(d2 * diffs) / (var * sigma * n)),
        kurtosis=float(np.sum(d2 * d2) / (var * var * n) - 3.0),
        m5=float(np.sum(d2 * d2 * diffs) / (var * var * sigma * n)),
    )


def moments(samples: np.ndarray) -> EnsembleMoments:
    """
    First five moments of a sample set.

    With zero spread only the mean and sigma are meaningful; the higher
    moments come back NaN.
    """
    return moments_fixed_mean(samples, sample_mean(samples))


# ═══════════════════════════════════════════════════════════════════════
# §2  GAUSSIAN TEMPLATE AND SHUFFLING
# ═══════════════════════════════════════════════════════════════════════

def perfect_ensemble(samples: np.ndarray) -> np.ndarray:
    """
    Nudge samples so mean, sigma, skew and kurtosis are exactly 0, 1, 0, 0.

    Each of 3 passes standardizes the set and then removes the measured
    excess kurtosis with a cubic correction ``e -= k · f · e³``, where the
    factor ``f`` is found by 5 fixed-point refinements. The set is
    standardized once more at the end.
    """
    ens = np.array(samples, dtype=float)
    for _ in range(3):
        m = moments(ens)
        ens = (ens - m.mean) / m.sigma
        kurtosis = m.kurtosis
        if kurtosis == 0.0:
            continue
        kurtfact = 0.045
        for _ in range(5):
            test = ens - kurtfact * kurtosis * ens ** 3
            divisor = 1.0 - moments(test).kurtosis / kurtosis
            if divisor == 0.0:
                break
            kurtfact /= divisor
        ens = ens - kurtosis * kurtfact * ens ** 3
    m = moments(ens)
    return (ens - m.mean) / m.sigma


def build_gaussian_template(size: int) -> np.ndarray:
    """
    Unit-Gaussian sample set of ``size`` points at evenly spaced quantiles.

    Points come in ± pairs; an odd size adds a single 0. For an even size
    each quantile is the average of 100 sub-quantiles, which reduces the
    bias of sampling the tails at one point.
    """
    template = np.zeros(size)
    half = size // 2
    if size % 2:
        for i in range(half):
            deviate = inverse_gaussian_density((2.0 * (i + 1.0)) / (2.0 * size))
            template[2 * i] = deviate
            template[2 * i + 1] = -deviate
    else:
        for i in range(half):
            k = (2.0 * i + 1.0) / (2.0 * size)
            deviate = sum(inverse_gaussian_density(k + (j - 49.5) / (100.0 * size))
                          for j in range(100)) / 100.0
            template[2 * i] = deviate
            template[2 * i + 1] = -deviate
    return perfect_ensemble(template)


_template_lock = threading.Lock()
_templates: Dict[int, np.ndarray] = {}

_rng_lock = threading.Lock()
_rng: Optional[np.random.Generator] = None


def gaussian_template(size: int) -> np.ndarray:
    """The process-wide template for ``size``, built on first use."""
    with _template_lock:
        template = _templates.get(size)
        if template is None:
            template = build_gaussian_template(size)
            template.flags.writeable = False
            _templates[size] = template
            logger.debug("Built %d-point Gaussian template", size)
        return template


def shuffle_rng() -> np.random.Generator:
    """Generator used to shuffle new leaves, seeded once per process."""
    global _rng
    with _rng_lock:
        if _rng is None:
            seed = get_config().shuffle_seed
            _rng = np.random.default_rng(seed)
            logger.debug("Shuffle RNG seeded with %r", seed)
        return _rng


def seed_shuffle_rng(seed: Optional[int]) -> None:
    """Restart the shuffle generator from ``seed`` for reproducible ensembles."""
    global _rng
    with _rng_lock:
        _rng = np.random.default_rng(seed)


# ═══════════════════════════════════════════════════════════════════════
# §3  MODEL
# ═══════════════════════════════════════════════════════════════════════

class UDoubleEnsemble(UncertainValue):
    """
    Uncertain number represented by an ensemble of samples.

    Concrete types come from :func:`ensemble_type`, which fixes the
    ensemble size and gives the type its own source registry.

    Parameters
    ----------
    value : float
        Mean.
    uncertainty : float
        Standard deviation; a non-zero value registers a new source.
    name : str, optional
        Source name; defaults to ``"anon: <mean> +/- <sigma>"``.
    """

    __slots__ = ("_samples", "_epoch")

    size: int = None
    sources: SourceRegistry = None
    _source_samples: List[np.ndarray] = None

    def __init__(self, value: float = 0.0, uncertainty: float = 0.0, name: str = ""):
        registry = self._registry()
        if uncertainty < 0.0:
            raise NegativeUncertainty(float(uncertainty))
        self._epoch = registry.get_epoch()
        if uncertainty == 0.0:
            self._samples = self._frozen(np.full(self.size, value, dtype=float))
            return
        samples = value + gaussian_template(self.size) * uncertainty
        shuffle_rng().shuffle(samples)
        self._samples = self._frozen(samples)
        self._record_source(name or "anon: " + uncertain_print(value, uncertainty))

    @classmethod
    def from_samples(cls, samples: Sequence[float], name: str = "") -> "UDoubleEnsemble":
        """Adopt an explicit sample vector as a new source."""
        samples = np.array(samples, dtype=float)
        if samples.shape != (cls.size,):
            raise EnsembleSizeError(
                f"cannot construct {cls.__name__} from {samples.size} samples; "
                f"expected {cls.size}")
        obj = cls._make(samples, cls._registry().get_epoch())
        obj._record_source(name or f"anon from ensemble: {samples[0]:g}")
        return obj

    def _record_source(self, name: str) -> None:
        index = self.sources.get_new_source(name)
        del self._source_samples[index:]
        self._source_samples.append(self._samples)

    @staticmethod
    def _frozen(samples: np.ndarray) -> np.ndarray:
        samples.flags.writeable = False
        return samples

    @classmethod
    def _registry(cls) -> SourceRegistry:
        if cls.sources is None or cls.size is None:
            raise TypeError(f"{cls.__name__} has no registry; "
                            f"build a concrete type with ensemble_type()")
        return cls.sources

    @classmethod
    def _make(cls, samples, epoch):
        obj = cls.__new__(cls)
        obj._samples = cls._frozen(np.asarray(samples, dtype=float))
        obj._epoch = epoch
        return obj

    @classmethod
    def _exact(cls, value):
        return cls._make(np.full(cls.size, value, dtype=float), cls._registry().get_epoch())

    @classmethod
    def new_epoch(cls) -> None:
        """Forget every source and its recorded samples."""
        cls._registry().new_epoch()
        cls._source_samples.clear()

    def _check_epochs(self, other) -> None:
        self.sources.check_epoch(self._epoch)
        self.sources.check_epoch(other._epoch)

    # ── accessors ────────────────────────────────────────────────────────

    @property
    def samples(self) -> np.ndarray:
        """Read-only view of the samples."""
        return self._samples

    @property
    def epoch(self) -> int:
        return self._epoch

    def mean(self) -> float:
        return float(sample_mean(self._samples))

    def deviation(self) -> float:
        return moments(self._samples).sigma

    def moments(self) -> EnsembleMoments:
        return moments(self._samples)

    def __str__(self):
        m = self.moments()
        text = uncertain_print(m.mean, m.sigma)
        if m.sigma != 0.0:
            text += f" [{m.skew:#.2g} : {m.kurtosis:#.2g} : {m.m5:#.2g}]"
        return text

    # ── arithmetic ───────────────────────────────────────────────────────

    def _negate(self):
        return self._make(-self._samples, self._epoch)

    def _add(self, other):
        self._check_epochs(other)
        return self._make(self._samples + other._samples, self._epoch)

    def _sub(self, other):
        self._check_epochs(other)
        return self._make(self._samples - other._samples, self._epoch)

    def _add_real(self, x):
        return self._make(self._samples + x, self._epoch)

    def _mul(self, other):
        self._check_epochs(other)
        return self._make(self._samples * other._samples, self._epoch)

    def _mul_real(self, x):
        return self._make(self._samples * x, self._epoch)

    @ieee
    def _div(self, other):
        self._check_epochs(other)
        return self._make(self._samples / other._samples, self._epoch)

    @ieee
    def _div_real(self, x):
        return self._make(self._samples / x, self._epoch)

    @ieee
    def _rdiv_real(self, x):
        return self._make(x / self._samples, self._epoch)

    # ── elementary functions ─────────────────────────────────────────────

    @ieee
    def _apply1(self, fn: ElementaryFunction):
        return self._make(fn.certain(self._samples), self._epoch)

    @ieee
    def _apply2(self, fn: ElementaryFunction, other):
        self._check_epochs(other)
        return self._make(fn.certain(self._samples, other._samples), self._epoch)

    def ldexp(self, exponent: int):
        return self._make(np.ldexp(self._samples, int(exponent)), self._epoch)

    def frexp(self) -> Tuple["UDoubleEnsemble", int]:
        """Sample-wise mantissas, and the exponent of the mean."""
        _, exponent = math.frexp(self.mean())
        return self._make(np.frexp(self._samples)[0], self._epoch), exponent

    def modf(self) -> Tuple["UDoubleEnsemble", float]:
        """Sample-wise fractional parts, and the integral part of the mean."""
        _, intpart = math.modf(self.mean())
        return self._make(np.modf(self._samples)[0], self._epoch), intpart

    # ── correlation and attribution ──────────────────────────────────────

    @ieee
    def correlation(self, other, offset: int = 0) -> float:
        """
        Pearson correlation with another ensemble or a raw sample vector.

        ``other``'s samples are rotated by ``offset`` positions first.
        Returns 0 when either side has no spread or the covariance is 0.
        """
        if isinstance(other, UDoubleEnsemble):
            self._check_epochs(other)
            theirs = other._samples
            their_mean = other.mean()
        else:
            theirs = np.asarray(other, dtype=float)
            their_mean = np.sum(theirs) / len(theirs)
        if theirs.shape != self._samples.shape:
            raise EnsembleSizeError(
                f"cannot correlate {self.size} samples with {theirs.size}")
        diff = self._samples - self.mean()
        diff_other = np.roll(theirs, -offset) - their_mean
        sum_2_diff = np.sum(diff * diff)
        sum_2_diff_other = np.sum(diff_other * diff_other)
        sum_prod_diff = np.sum(diff * diff_other)
        if sum_2_diff == 0.0 or sum_2_diff_other == 0.0 or sum_prod_diff == 0.0:
            return 0.0
        return float(sum_prod_diff / np.sqrt(sum_2_diff * sum_2_diff_other))

    def source_budget(self) -> List[dict]:
        """
        Squared correlation with each recorded source.

        For linear combinations of sources this is each source's share of
        the variance; for nonlinear ones it is only an approximation.
        """
        self.sources.check_epoch(self._epoch)
        if self.deviation() == 0.0:
            return []
        budget = []
        for i, source_samples in enumerate(self._source_samples):
            fraction = self.correlation(source_samples) ** 2
            budget.append({
                "index": i,
                "source": self.sources.get_source_name(i),
                "fraction": fraction,
                "pct_contribution": int_percent(fraction),
            })
        return budget

    def print_uncertain_sources(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        if self.deviation() == 0.0:
            stream.write("No uncertainty\n")
            return
        budget = self.source_budget()
        other = 1.0 - sum(row["fraction"] for row in budget)
        stream.write(render_source_budget(budget, other))

    # ── distribution shape ───────────────────────────────────────────────

    def histogram(self) -> np.ndarray:
        """
        Sample counts in 17 half-sigma bins centred on -4σ ... +4σ.

        Samples beyond ±4σ are counted in the outermost bins.
        """
        m = self.moments()
        if m.sigma == 0.0:
            bins = np.zeros(17, dtype=int)
            bins[8] = self.size
            return bins
        normalized = (self._samples - m.mean) / m.sigma
        index = np.clip(np.floor(2.0 * normalized + 0.5).astype(int) + 8, 0, 16)
        return np.bincount(index, minlength=17)

    def print_histogram(self, stream: Optional[TextIO] = None) -> None:
        stream = sys.stdout if stream is None else stream
        if self.deviation() == 0.0:
            stream.write("No histogram when no uncertainty\n")
            return
        bins = self.histogram()
        binmax = max(1, int(bins.max()))
        scale_divisor = 1
        while binmax // scale_divisor > 74:
            scale_divisor += 1
        if scale_divisor == 1:
            lines = ["Histogram:  (each * represents 1 point)"]
        else:
            lines = [f"Histogram:  (each * represents {scale_divisor} points)"]
        display = [int((count + 0.5) / scale_divisor) for count in bins]
        shown = [i for i, width in enumerate(display) if width]
        for i in range(shown[0], shown[-1] + 1):
            label = "    | " if i % 2 else f"{i // 2 - 4:+3d} + "
            lines.append(label + "*" * display[i])
        stream.write("\n".join(lines) + "\n\n")


def invoke(func: Callable[..., float], *args: UDoubleEnsemble) -> UDoubleEnsemble:
    """
    Apply an arbitrary real function sample by sample.

    ``func`` takes one float per argument; all arguments must be ensembles
    of the same type and epoch.
    """
    if not args:
        raise TypeError("invoke() needs at least one ensemble argument")
    cls = type(args[0])
    for arg in args:
        if type(arg) is not cls:
            raise TypeError(f"cannot mix {cls.__name__} with {type(arg).__name__}")
        cls.sources.check_epoch(arg._epoch)
    with np.errstate(all="ignore"):
        samples = np.fromiter((func(*point) for point in zip(*(a._samples for a in args))),
                              dtype=float, count=cls.size)
    return cls._make(samples, cls.sources.get_epoch())


# ═══════════════════════════════════════════════════════════════════════
# §4  CONCRETE TYPES
# ═══════════════════════════════════════════════════════════════════════

def ensemble_type(name: str, size: int,
                  registry: Optional[SourceRegistry] = None) -> Type[UDoubleEnsemble]:
    """Build an ensemble type of ``size`` samples with its own registry."""
    if size < 2:
        raise ValueError(f"ensemble size must be at least 2, got {size}")
    registry = registry if registry is not None else SourceRegistry(name=name)
    return type(name, (UDoubleEnsemble,), {
        "__slots__": (),
        "__module__": __name__,
        "__doc__": f"Ensemble of {size} samples.",
        "size": int(size),
        "sources": registry,
        "_source_samples": [],
    })


EnsembleSmall = ensemble_type(
    "EnsembleSmall", get_config().ensemble_small_size, SourceRegistry(name="Small Ensemble"))
EnsembleLarge = ensemble_type(
    "EnsembleLarge", get_config().ensemble_large_size, SourceRegistry(name="Large Ensemble"))
