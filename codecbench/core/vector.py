"""
Fixed-length binary vectors.

SparseBinaryVector replaces raw fixed-size arrays: the length is fixed at
construction and every access is bounds-checked.
"""

from typing import Iterable, Iterator, List, Sequence, Union

import numpy as np

from .errors import ShapeError


class SparseBinaryVector:
    """
    Ordered fixed-length sequence of bits.

    Storage is a uint8 numpy array; size never changes after construction.
    """

    __slots__ = ("_bits",)

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ShapeError(f"vector size must be positive, got {size}")
        self._bits = np.zeros(size, dtype=np.uint8)

    @classmethod
    def from_bits(cls, bits: Union[Sequence[int], np.ndarray]) -> "SparseBinaryVector":
        arr = np.asarray(bits)
        if arr.ndim != 1:
            raise ShapeError(f"expected 1-d bits, got shape {arr.shape}")
        if arr.size and not np.isin(arr, (0, 1)).all():
            raise ValueError("bits must be 0 or 1")
        vec = cls(arr.size)
        vec._bits[:] = arr
        return vec

    @classmethod
    def from_active(cls, size: int, active: Iterable[int]) -> "SparseBinaryVector":
        vec = cls(size)
        for i in active:
            vec[i] = 1
        return vec

    @property
    def size(self) -> int:
        return int(self._bits.size)

    @property
    def bits(self) -> np.ndarray:
        """Read-only view of the underlying bits."""
        view = self._bits.view()
        view.flags.writeable = False
        return view

    def active(self) -> List[int]:
        """Indices of set bits, ascending."""
        return [int(i) for i in np.flatnonzero(self._bits)]

    def count(self) -> int:
        return int(np.count_nonzero(self._bits))

    def assign(self, other: Union["SparseBinaryVector", Sequence[int], np.ndarray]) -> None:
        """Overwrite all bits in place; lengths must match."""
        src = other._bits if isinstance(other, SparseBinaryVector) else np.asarray(other)
        if src.shape != self._bits.shape:
            raise ShapeError(f"cannot assign length {src.size} into vector of size {self.size}")
        self._bits[:] = src

    def diff(self, other: "SparseBinaryVector") -> List[int]:
        """Positions where the two vectors differ."""
        if other.size != self.size:
            raise ShapeError(f"cannot compare sizes {self.size} and {other.size}")
        return [int(i) for i in np.flatnonzero(self._bits != other._bits)]

    def copy(self) -> "SparseBinaryVector":
        return SparseBinaryVector.from_bits(self._bits.copy())

    def _check(self, index: int) -> int:
        if not -self.size <= index < self.size:
            raise IndexError(f"index {index} out of range for vector of size {self.size}")
        return index

    def __getitem__(self, index: int) -> int:
        return int(self._bits[self._check(index)])

    def __setitem__(self, index: int, value: int) -> None:
        if value not in (0, 1):
            raise ValueError("bit value must be 0 or 1")
        self._bits[self._check(index)] = value

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[int]:
        return (int(b) for b in self._bits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SparseBinaryVector):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._bits, other._bits))

    def __repr__(self) -> str:
        return f"SparseBinaryVector(size={self.size}, active={self.active()})"


def fixed_weight(size: int, weight: int) -> SparseBinaryVector:
    """Vector with the first `weight` bits set, the input used before shuffling."""
    if not 0 <= weight <= size:
        raise ShapeError(f"weight {weight} outside [0, {size}]")
    return SparseBinaryVector.from_active(size, range(weight))
