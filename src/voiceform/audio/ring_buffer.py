"""Bounded int16 sample store for the utterance being spoken.

Samples are written into a pre-allocated numpy array; once full, the oldest
audio is overwritten so memory stays fixed however long someone talks.
"""

from typing import Self

import numpy as np


class RingBuffer:
    """Circular int16 buffer keeping the most recent ``capacity`` samples."""

    __slots__ = ("_data", "_head", "_size", "_written", "_sample_rate")

    def __init__(self, capacity: int, sample_rate: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._data = np.zeros(capacity, dtype=np.int16)
        self._head = 0
        self._size = 0
        self._written = 0
        self._sample_rate = sample_rate

    @classmethod
    def for_duration(cls, seconds: float, sample_rate: int) -> Self:
        return cls(int(seconds * sample_rate), sample_rate)

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def seconds(self) -> float:
        """Duration of audio currently held."""
        return self._size / self._sample_rate

    @property
    def total_written(self) -> int:
        """Samples appended since the last clear(), including overwritten ones."""
        return self._written

    def extend(self, samples: np.ndarray) -> None:
        n = samples.size
        if n == 0:
            return
        capacity = len(self._data)
        if n >= capacity:
            self._data[:] = samples[-capacity:]
            self._head = 0
        else:
            first = min(n, capacity - self._head)
            self._data[self._head : self._head + first] = samples[:first]
            self._data[: n - first] = samples[first:]
            self._head = (self._head + n) % capacity
        self._size = min(capacity, self._size + n)
        self._written += n

    def snapshot(self) -> np.ndarray:
        """Everything held, oldest first, as a contiguous copy."""
        if self._size == 0:
            return np.empty(0, dtype=np.int16)
        start = (self._head - self._size) % len(self._data)
        return np.roll(self._data, -start)[: self._size].copy()

    def clear(self) -> None:
        self._head = 0
        self._size = 0
        self._written = 0
