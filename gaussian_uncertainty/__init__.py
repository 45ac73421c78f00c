"""
gaussian_uncertainty: values with Gaussian uncertainty, propagated four ways.

    UDoubleMSCorr, UDoubleMSUncorr     first-order mean/sigma
    UDoubleMSCCorr, UDoubleMSCUncorr   second-order mean/sigma with
                                       discontinuity warnings
    UDoubleCTSA, UDoubleCTAA           per-source correlation tracking
    EnsembleSmall, EnsembleLarge       sample ensembles
    UDoubleCompare                     all of the above side by side

Elementary functions live in :mod:`gaussian_uncertainty.umath`.
"""

import logging

from . import umath
from .arrays import ScaledArray, SimpleArray, UncertaintyVector
from .base import Correlation, UncertainValue
from .comparison import UDoubleCompare
from .config import UncertaintyConfig, get_config, load_config, set_config
from .curved import UDoubleMSC, UDoubleMSCCorr, UDoubleMSCUncorr
from .ensemble import (
    EnsembleLarge,
    EnsembleMoments,
    EnsembleSmall,
    UDoubleEnsemble,
    ensemble_type,
    invoke,
    seed_shuffle_rng,
)
from .errors import (
    CapacityExceeded,
    ConfigurationError,
    EnsembleSizeError,
    FormatError,
    IndexOutOfRange,
    NegativeUncertainty,
    StaleEpochError,
    UncertaintyError,
)
from .formatting import int_percent, uncertain_print, uncertain_read
from .moment_functions import DiscontinuityType, hypot3, sqr
from .scalar import UDoubleMS, UDoubleMSCorr, UDoubleMSUncorr
from .sources import SourceRegistry
from .tracked import UDoubleCT, UDoubleCTAA, UDoubleCTSA, correlation_tracked_type

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "umath",
    "Correlation", "UncertainValue",
    "UDoubleMS", "UDoubleMSCorr", "UDoubleMSUncorr",
    "UDoubleMSC", "UDoubleMSCCorr", "UDoubleMSCUncorr",
    "UDoubleCT", "UDoubleCTSA", "UDoubleCTAA", "correlation_tracked_type",
    "UDoubleEnsemble", "EnsembleSmall", "EnsembleLarge", "EnsembleMoments",
    "ensemble_type", "invoke", "seed_shuffle_rng",
    "UDoubleCompare",
    "SourceRegistry", "UncertaintyVector", "SimpleArray", "ScaledArray",
    "UncertaintyConfig", "get_config", "load_config", "set_config",
    "DiscontinuityType", "hypot3", "sqr", "int_percent",
    "uncertain_print", "uncertain_read",
    "UncertaintyError", "NegativeUncertainty", "CapacityExceeded",
    "StaleEpochError", "IndexOutOfRange", "FormatError",
    "ConfigurationError", "EnsembleSizeError",
]
