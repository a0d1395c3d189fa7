from typing import Iterable, Iterator, Optional
import numpy as np


class BoundedBuffer:
    """
    Fixed-capacity numeric buffer.

    Used both for per-leg residual slots (indexed writes) and for short
    histories (``push`` drops the oldest value once the buffer is full).
    The capacity is fixed at construction; indexing past it raises IndexError.
    """

    def __init__(self, capacity: int, values: Optional[Iterable[float]] = None):
        if capacity <= 0:
            raise ValueError("Capacity must be positive.")
        self._capacity = capacity
        self._data = np.zeros(capacity, dtype=float)
        self._size = 0
        if values is not None:
            self.assign(values)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[float]:
        return iter(self.values().tolist())

    def __getitem__(self, index: int) -> float:
        self._check_index(index)
        return float(self._data[index])

    def __setitem__(self, index: int, value: float) -> None:
        if not 0 <= index < self._capacity:
            raise IndexError(f"Slot {index} out of range for capacity {self._capacity}.")
        self._data[index] = value
        self._size = max(self._size, index + 1)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._size:
            raise IndexError(f"Slot {index} out of range for {self._size} stored values.")

    def assign(self, values: Iterable[float]) -> None:
        """Replace the contents with ``values`` (at most ``capacity`` of them)."""
        arr = np.asarray(list(values), dtype=float)
        if arr.size > self._capacity:
            raise ValueError(
                f"Cannot store {arr.size} values in a buffer of capacity {self._capacity}."
            )
        self._data[:] = 0.0
        self._data[: arr.size] = arr
        self._size = int(arr.size)

    def push(self, value: float) -> None:
        """Append ``value``, discarding the oldest entry when full."""
        if self._size < self._capacity:
            self._data[self._size] = value
            self._size += 1
        else:
            self._data[:-1] = self._data[1:]
            self._data[-1] = value

    def clear(self) -> None:
        self._data[:] = 0.0
        self._size = 0

    def values(self) -> np.ndarray:
        return self._data[: self._size].copy()

    def worst(self) -> tuple[int, float]:
        """Index and value of the largest magnitude entry; (-1, 0.0) when empty."""
        if self._size == 0:
            return -1, 0.0
        idx = int(np.argmax(np.abs(self._data[: self._size])))
        return idx, float(self._data[idx])

    def max_abs(self) -> float:
        if self._size == 0:
            return 0.0
        return float(np.max(np.abs(self._data[: self._size])))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundedBuffer):
            return NotImplemented
        return self._capacity == other._capacity and np.array_equal(
            self.values(), other.values()
        )

    def __repr__(self) -> str:
        return f"BoundedBuffer(capacity={self._capacity}, values={self.values().tolist()})"
