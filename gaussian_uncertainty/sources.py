"""
Registry of named uncertainty sources.

Every correlation-tracked or ensemble type owns one registry. Constructing
a leaf value with non-zero uncertainty takes the next free source index;
``new_epoch()`` forgets all of them at once and invalidates every value
built before the call.
"""

import logging
from typing import List, Optional

from .config import get_config
from .errors import CapacityExceeded, IndexOutOfRange, StaleEpochError

logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    Epoch-scoped table of uncertainty source names.

    Parameters
    ----------
    capacity : int, optional
        Maximum number of sources per epoch; defaults to the configured
        ``max_unc_elements``.
    name : str
        Shown in error messages, usually the owning type's name.
    """

    def __init__(self, capacity: Optional[int] = None, name: str = ""):
        self.capacity = get_config().max_unc_elements if capacity is None else int(capacity)
        if self.capacity < 1:
            raise ValueError(f"registry capacity must be positive, got {capacity}")
        self.name = name
        self._epoch = 0
        self._names: List[str] = []

    def __repr__(self):
        return (f"SourceRegistry({self.name!r}: {len(self._names)}/{self.capacity} "
                f"sources, epoch {self._epoch})")

    def get_epoch(self) -> int:
        return self._epoch

    def check_epoch(self, epoch: int) -> None:
        """Raise StaleEpochError unless ``epoch`` is the current one."""
        if epoch != self._epoch:
            raise StaleEpochError(epoch, self._epoch, self.name)

    def new_epoch(self) -> None:
        self._names.clear()
        self._epoch += 1
        logger.debug("Registry '%s' advanced to epoch %d", self.name, self._epoch)

    def can_get_new_source(self) -> bool:
        return len(self._names) < self.capacity

    def get_new_source(self, name: str) -> int:
        """Register a source and return its 0-based index."""
        if not self.can_get_new_source():
            raise CapacityExceeded(self.capacity, self.name)
        self._names.append(name)
        index = len(self._names) - 1
        logger.debug("Registry '%s' source %d: %s", self.name, index, name)
        return index

    def get_num_sources(self) -> int:
        return len(self._names)

    def get_source_name(self, index: int) -> str:
        if not 0 <= index < len(self._names):
            raise IndexOutOfRange(
                f"get_source_name called with illegal source number: {index} "
                f"in registry '{self.name}'")
        return self._names[index]

    def source_names(self) -> List[str]:
        return list(self._names)
