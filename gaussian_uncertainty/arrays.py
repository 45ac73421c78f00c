"""
Storage backends for per-source uncertainty components.

Both hold at most ``capacity`` float64 components and share one
interface. ``ScaledArray`` keeps an undistributed factor so that scaling
the whole vector, as every multiply and divide does, costs O(1).
Reading past the populated length gives 0; reading or writing past the
capacity raises IndexOutOfRange.
"""

from abc import ABC, abstractmethod

import numpy as np

from .errors import IndexOutOfRange


class UncertaintyVector(ABC):
    """Fixed-capacity vector of uncertainty components."""

    def __init__(self, capacity: int):
        self.capacity = int(capacity)
        self._elements = np.zeros(0)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.capacity:
            raise IndexOutOfRange(
                f"uncertainty element {index} outside capacity {self.capacity}")

    def _extended(self, length: int) -> np.ndarray:
        if len(self._elements) >= length:
            return self._elements.copy()
        return np.pad(self._elements, (0, length - len(self._elements)))

    def _check_compatible(self, other: "UncertaintyVector") -> None:
        if type(other) is not type(self):
            raise TypeError(f"cannot combine {type(self).__name__} "
                            f"with {type(other).__name__}")

    def __len__(self):
        return len(self._elements)

    def __getitem__(self, index: int) -> float:
        return self.get(index)

    def to_numpy(self) -> np.ndarray:
        """Components with any scale applied."""
        return np.array([self.get(i) for i in range(len(self._elements))])

    def __repr__(self):
        return f"{type(self).__name__}({self.to_numpy().tolist()})"

    @abstractmethod
    def get(self, index: int) -> float:
        ...

    @abstractmethod
    def set(self, index: int, value: float) -> None:
        ...

    @abstractmethod
    def norm(self) -> float:
        """Euclidean length: the total of independent components."""

    @abstractmethod
    def copy(self) -> "UncertaintyVector":
        ...

    @abstractmethod
    def __neg__(self) -> "UncertaintyVector":
        ...

    @abstractmethod
    def __add__(self, other: "UncertaintyVector") -> "UncertaintyVector":
        ...

    @abstractmethod
    def __sub__(self, other: "UncertaintyVector") -> "UncertaintyVector":
        ...

    @abstractmethod
    def __mul__(self, factor: float) -> "UncertaintyVector":
        ...

    @abstractmethod
    def __truediv__(self, divisor: float) -> "UncertaintyVector":
        ...


class SimpleArray(UncertaintyVector):
    """Direct per-element storage."""

    def copy(self):
        result = SimpleArray(self.capacity)
        result._elements = self._elements.copy()
        return result

    def get(self, index: int) -> float:
        self._check_index(index)
        if index >= len(self._elements):
            return 0.0
        return float(self._elements[index])

    def set(self, index: int, value: float) -> None:
        self._check_index(index)
        self._elements = self._extended(index + 1)
        self._elements[index] = value

    def norm(self) -> float:
        return float(np.sqrt(np.sum(self._elements * self._elements)))

    def _combined(self, other, sign):
        self._check_compatible(other)
        result = SimpleArray(self.capacity)
        elements = self._extended(len(other._elements))
        elements[:len(other._elements)] += sign * other._elements
        result._elements = elements
        return result

    def __neg__(self):
        result = SimpleArray(self.capacity)
        result._elements = -self._elements
        return result

    def __add__(self, other):
        return self._combined(other, 1.0)

    def __sub__(self, other):
        return self._combined(other, -1.0)

    def __mul__(self, factor):
        result = SimpleArray(self.capacity)
        with np.errstate(all="ignore"):
            result._elements = self._elements * factor
        return result

    __rmul__ = __mul__

    def __truediv__(self, divisor):
        result = SimpleArray(self.capacity)
        with np.errstate(all="ignore"):
            result._elements = self._elements / divisor
        return result


class ScaledArray(UncertaintyVector):
    """Elements with one shared multiplicative scale."""

    def __init__(self, capacity: int):
        super().__init__(capacity)
        self.scale = 1.0

    def copy(self):
        result = ScaledArray(self.capacity)
        result._elements = self._elements.copy()
        result.scale = self.scale
        return result

    def get(self, index: int) -> float:
        self._check_index(index)
        if index >= len(self._elements):
            return 0.0
        return float(self._elements[index] * self.scale)

    def set(self, index: int, value: float) -> None:
        """Store ``value`` at ``index``; a zero-scaled array ignores writes."""
        self._check_index(index)
        if self.scale == 0.0:
            return
        self._elements = self._extended(index + 1)
        self._elements[index] = value / self.scale

    def norm(self) -> float:
        if self.scale == 0.0:
            return 0.0
        return float(np.sqrt(np.sum(self._elements * self._elements)) * abs(self.scale))

    def _combined(self, other, sign):
        self._check_compatible(other)
        result = ScaledArray(self.capacity)
        if self.scale != 0.0:
            with np.errstate(all="ignore"):
                scale_factor = other.scale / self.scale
                elements = self._extended(len(other._elements))
                elements[:len(other._elements)] += sign * other._elements * scale_factor
            result._elements = elements
            result.scale = self.scale
        else:
            result._elements = other._elements.copy()
            result.scale = sign * other.scale
        return result

    def __neg__(self):
        result = self.copy()
        result.scale = -self.scale
        return result

    def __add__(self, other):
        return self._combined(other, 1.0)

    def __sub__(self, other):
        return self._combined(other, -1.0)

    def __mul__(self, factor):
        result = self.copy()
        with np.errstate(all="ignore"):
            result.scale = float(np.float64(self.scale) * factor)
        return result

    __rmul__ = __mul__

    def __truediv__(self, divisor):
        result = self.copy()
        with np.errstate(all="ignore"):
            result.scale = float(np.float64(self.scale) / divisor)
        return result

