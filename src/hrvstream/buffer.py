"""Fixed-capacity rolling buffers for streamed samples.

One generic container backs every window the ingestion manager keeps
(display, HRV and robust views of ECG, RR intervals, acceleration).
Eviction happens from the front only, and ``extend`` is the only mutator.
Readers never see the live container: ``snapshot`` hands out a copy.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterable, Iterator, TypeVar

import numpy as np

T = TypeVar("T")


def capacity_for(sampling_rate_hz: float, window_seconds: float) -> int:
    """Number of samples that cover *window_seconds* at *sampling_rate_hz*."""
    return max(1, int(sampling_rate_hz * window_seconds))


class RollingBuffer(Generic[T]):
    """FIFO container holding at most *capacity* of the most recent items."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._items: Deque[T] = deque(maxlen=self._capacity)
        self._total = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total_appended(self) -> int:
        """Items appended since creation or the last ``clear``."""
        return self._total

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self._capacity

    @property
    def fill_ratio(self) -> float:
        return min(len(self._items) / self._capacity, 1.0)

    def append(self, item: T) -> None:
        self._items.append(item)
        self._total += 1

    def extend(self, items: Iterable[T]) -> None:
        """Append *items* in order, evicting the oldest beyond capacity."""
        batch = list(items)
        self._items.extend(batch)
        self._total += len(batch)

    def snapshot(self) -> list[T]:
        """Copy of the retained items, oldest first."""
        return list(self._items)

    def tail(self, n: int) -> list[T]:
        """Copy of the last *n* retained items (fewer if not available)."""
        if n <= 0:
            return []
        if n >= len(self._items):
            return list(self._items)
        return list(self._items)[-n:]

    def as_array(self) -> np.ndarray:
        """Snapshot as a float64 array (numeric buffers only)."""
        return np.fromiter(self._items, dtype=np.float64, count=len(self._items))

    def clear(self) -> None:
        self._items.clear()
        self._total = 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"RollingBuffer({len(self._items)}/{self._capacity})"
