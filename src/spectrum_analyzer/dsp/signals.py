"""Test tone generators.

Both generators rotate a float64 phasor and emit its imaginary part truncated
to float32, so the first sample is 0.0 and the sequence is sin(n * omega).
"""

from __future__ import annotations

import math
from typing import Iterator

import numpy as np


def sine_gen(f0: float, fs: float) -> Iterator[np.float32]:
    """Infinite fixed-frequency sine iterator."""
    omega = math.tau * f0 / fs
    cos = math.cos(omega)
    sin = math.sin(omega)
    re, im = 1.0, 0.0
    while True:
        yield np.float32(im)
        re, im = re * cos - im * sin, re * sin + im * cos


def sine_gen_48k(f0: float) -> Iterator[np.float32]:
    """48 kHz sine iterator."""
    return sine_gen(f0, 48_000.0)


class SineSweeper:
    """Sine generator whose frequency can be changed on the fly.

    Use to generate rough chirps and quickly look for changes in filter
    response. Changing frequency never introduces a phase step.
    """

    def __init__(self, f0: float, fs: float):
        self.fs = fs
        self.f0 = f0
        self._re = 1.0
        self._im = 0.0
        self._set_omega(f0)

    def _set_omega(self, f0: float) -> None:
        self.omega = math.tau * f0 / self.fs
        self._cos = math.cos(self.omega)
        self._sin = math.sin(self.omega)

    def set_frequency(self, f0: float) -> None:
        """Update the rotation frequency without resetting phase."""
        self._set_omega(f0)

    @property
    def center(self) -> float:
        """Frequency the sweeper was created with."""
        return self.f0

    def nsamples(self, nwaves: float) -> int:
        """Number of samples required to cover `nwaves` cycles of the initial frequency."""
        return math.ceil(self.fs / self.f0 * nwaves)

    def take(self, n: int) -> np.ndarray:
        """Return the next `n` samples as a float32 array."""
        return np.fromiter((next(self) for _ in range(n)), dtype=np.float32, count=n)

    def __iter__(self) -> SineSweeper:
        return self

    def __next__(self) -> np.float32:
        out = np.float32(self._im)
        re, im = self._re, self._im
        self._re = re * self._cos - im * self._sin
        self._im = re * self._sin + im * self._cos
        return out
