"""
Error taxonomy for uncertain-value bookkeeping.

Bookkeeping errors indicate a logic bug in the caller's computation, so they
are raised at the point of detection and never retried or recovered here.
"""


class UncertaintyError(Exception):
    """Base class for all gaussian_uncertainty errors."""


class NegativeUncertainty(UncertaintyError, ValueError):
    """A standard deviation was given as a negative number."""

    def __init__(self, uncertainty: float):
        super().__init__(f"negative uncertainty: {uncertainty!r}")
        self.uncertainty = uncertainty


class CapacityExceeded(UncertaintyError):
    """A source registry was asked for more sources than it can hold."""

    def __init__(self, capacity: int, registry_name: str = ""):
        super().__init__(
            f"already at maximum number of permissible uncertainty sources "
            f"({capacity}) in registry '{registry_name}'; raise the capacity "
            f"or call new_epoch()"
        )
        self.capacity = capacity
        self.registry_name = registry_name


class StaleEpochError(UncertaintyError):
    """A value captured in an older epoch was used after new_epoch()."""

    def __init__(self, epoch: int, expected: int, registry_name: str = ""):
        super().__init__(
            f"bad epoch: {epoch} expected: {expected} in registry '{registry_name}'"
        )
        self.epoch = epoch
        self.expected = expected
        self.registry_name = registry_name


class IndexOutOfRange(UncertaintyError, IndexError):
    """A source or array element outside the recorded bounds was requested."""


class FormatError(UncertaintyError, ValueError):
    """Text did not have the form '<mean> +/- <sigma>'."""


class ConfigurationError(UncertaintyError):
    """A configuration override could not be applied."""


class EnsembleSizeError(UncertaintyError, ValueError):
    """A sample vector does not match the ensemble size of its type."""
