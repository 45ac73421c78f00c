"""
Process-wide configuration.

Defaults can be overridden from the environment:

    GAUSSIAN_UNCERTAINTY_MAX_ELEMENTS     source capacity per registry
    GAUSSIAN_UNCERTAINTY_ENSEMBLE_SMALL   sample count of EnsembleSmall
    GAUSSIAN_UNCERTAINTY_ENSEMBLE_LARGE   sample count of EnsembleLarge
    GAUSSIAN_UNCERTAINTY_DISC_THRESH_UNCORR
    GAUSSIAN_UNCERTAINTY_DISC_THRESH_CORR
    GAUSSIAN_UNCERTAINTY_SEED             seed for the ensemble shuffle RNG

The concrete types in this package read the configuration once, at import.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GAUSSIAN_UNCERTAINTY_"


@dataclass(frozen=True)
class UncertaintyConfig:
    """Tunable limits and thresholds shared by all representations."""
    max_unc_elements: int = 5
    ensemble_small_size: int = 128
    ensemble_large_size: int = 1024
    # warn when a discontinuity is closer than this many sigmas
    disc_thresh_uncorrelated: float = 3.0
    disc_thresh_correlated: float = 0.0
    shuffle_seed: Optional[int] = None

    def __post_init__(self):
        if self.max_unc_elements < 1:
            raise ConfigurationError(
                f"max_unc_elements must be positive, got {self.max_unc_elements}")
        for name in ("ensemble_small_size", "ensemble_large_size"):
            if getattr(self, name) < 2:
                raise ConfigurationError(f"{name} must be at least 2")


_ENV_KEYS = {
    "MAX_ELEMENTS": ("max_unc_elements", int),
    "ENSEMBLE_SMALL": ("ensemble_small_size", int),
    "ENSEMBLE_LARGE": ("ensemble_large_size", int),
    "DISC_THRESH_UNCORR": ("disc_thresh_uncorrelated", float),
    "DISC_THRESH_CORR": ("disc_thresh_correlated", float),
    "SEED": ("shuffle_seed", int),
}


def load_config(environ: Optional[Mapping[str, str]] = None,
                base: Optional[UncertaintyConfig] = None) -> UncertaintyConfig:
    """
    Build a configuration from defaults plus environment overrides.

    Parameters
    ----------
    environ : mapping, optional
        Variables to read; defaults to ``os.environ``.
    base : UncertaintyConfig, optional
        Starting point; defaults to ``UncertaintyConfig()``.

    Raises
    ------
    ConfigurationError
        If an override cannot be parsed or yields an invalid configuration.
    """
    environ = os.environ if environ is None else environ
    config = base or UncertaintyConfig()
    overrides = {}
    for suffix, (field_name, convert) in _ENV_KEYS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError as exc:
            raise ConfigurationError(
                f"cannot parse {ENV_PREFIX + suffix}={raw!r}") from exc
        logger.info("Config override %s=%r", field_name, overrides[field_name])
    return replace(config, **overrides) if overrides else config


_config: Optional[UncertaintyConfig] = None


def get_config() -> UncertaintyConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: UncertaintyConfig) -> None:
    """Replace the process-wide configuration used by factories called later."""
    global _config
    if not isinstance(config, UncertaintyConfig):
        raise ConfigurationError(f"expected UncertaintyConfig, got {type(config).__name__}")
    _config = config
    logger.debug("Configuration replaced: %s",
                 {f.name: getattr(config, f.name) for f in fields(config)})
