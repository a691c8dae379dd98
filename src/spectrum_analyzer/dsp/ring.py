"""Fixed-capacity sliding window over streaming terms."""

from typing import Iterator, Tuple

import numpy as np


class RingBuffer:
    """Fixed-size ring buffer that always holds exactly one full window.

    The buffer starts zero-filled and every write evicts the oldest entries,
    so occupancy always equals capacity. Entries may be scalars or small
    fixed-shape records (e.g. a left/right pair).
    """

    def __init__(
        self,
        size: int,
        dtype: type = np.complex64,
        frame_shape: Tuple[int, ...] = (),
    ):
        if size < 1:
            raise ValueError("size must be >= 1")
        self.size = size
        self.dtype = dtype
        self._data = np.zeros((size,) + tuple(frame_shape), dtype=dtype)
        self._write_idx = 0

    def __len__(self) -> int:
        return self.size

    def push_evict(self, item):
        """Append one entry and return the evicted oldest entry."""
        idx = self._write_idx
        evicted = self._data[idx].copy()
        self._data[idx] = item
        self._write_idx = (idx + 1) % self.size
        return evicted

    def push(self, chunk: np.ndarray) -> None:
        """Append a chunk; the oldest len(chunk) entries are overwritten."""
        n = len(chunk)
        if n == 0:
            return
        if n >= self.size:
            self._data[:] = chunk[-self.size :]
            self._write_idx = 0
            return
        start = self._write_idx
        end = start + n
        if end <= self.size:
            self._data[start:end] = chunk
        else:
            head = self.size - start
            self._data[start:] = chunk[:head]
            self._data[: end - self.size] = chunk[head:]
        self._write_idx = end % self.size

    def get_all(self) -> np.ndarray:
        """Return all buffered entries in chronological order (oldest first)."""
        if self._write_idx == 0:
            return self._data.copy()
        return np.roll(self._data, -self._write_idx, axis=0)

    def iter(self) -> Iterator:
        """Iterate over the current contents, oldest first."""
        return iter(self.get_all())

    def sum(self) -> np.ndarray:
        """Sum of all entries along the window axis, accumulated in double precision."""
        acc = np.complex128 if np.iscomplexobj(self._data) else np.float64
        return self._data.sum(axis=0, dtype=acc)

    def clear(self) -> None:
        """Reset every entry to zero."""
        self._data[:] = 0
        self._write_idx = 0
