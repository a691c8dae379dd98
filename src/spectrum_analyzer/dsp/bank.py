"""Geometry of log-spaced analysis bins across a frequency range."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from spectrum_analyzer.audio.iso226 import iso226_gain


@dataclass
class Bin:
    """One analysis bin: lower edge, upper edge, center and loudness correction."""

    min: float
    max: float
    center: float
    iso226_gain: float

    @property
    def bandwidth(self) -> float:
        return self.max - self.min

    @property
    def q(self) -> float:
        return self.center / self.bandwidth


def _validate(min_freq: float, max_freq: float, count: int) -> None:
    if not max_freq > min_freq:
        raise ValueError("max must be greater than min")
    if count <= 1:
        raise ValueError("count must be greater than 1")


def bins(min_freq: float, max_freq: float, count: int) -> List[Bin]:
    """Split [min_freq, max_freq] into `count` contiguous log-spaced bins.

    Bin edges are the even points and centers the odd points of a log grid
    of `2 * count + 1` frequencies, so every bin has the same ratio of
    max / center and center / min, and the bins tile the range exactly.
    """
    _validate(min_freq, max_freq, count)
    log_step = math.log2(max_freq / min_freq) / (2 * count)

    def freq(i: int) -> float:
        return min_freq * 2.0 ** (log_step * i)

    out = []
    for i in range(count):
        center = freq(2 * i + 1)
        out.append(
            Bin(
                min=freq(2 * i),
                max=freq(2 * i + 2),
                center=center,
                iso226_gain=iso226_gain(center),
            )
        )
    return out


def bin_lookup(min_freq: float, max_freq: float, count: int, target: float) -> Bin:
    """Return the bin whose center is proportionally closest to `target`."""
    return min(
        bins(min_freq, max_freq, count),
        key=lambda b: abs(1.0 - target / b.center),
    )
