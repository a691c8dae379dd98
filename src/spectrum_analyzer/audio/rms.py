"""Per-channel RMS level of stereo chunks."""

import math
from dataclasses import dataclass

import numpy as np

from spectrum_analyzer.audio.frames import as_stereo_frames


@dataclass
class Rms:
    left: float
    right: float


class RmsMeter:
    """Root mean square of everything consumed since the last reset."""

    def __init__(self):
        self.sum_sq = np.zeros(2, dtype=np.float64)
        self.n = 0

    def reset(self) -> None:
        self.sum_sq[:] = 0.0
        self.n = 0

    def consume(self, frames, accumulate: bool = False) -> None:
        """Add a chunk. Without `accumulate` the previous chunks are forgotten first."""
        frames = as_stereo_frames(frames)
        if not accumulate:
            self.reset()
        self.sum_sq += np.square(frames, dtype=np.float64).sum(axis=0)
        self.n += len(frames)

    def produce(self) -> Rms:
        n = max(self.n, 1)
        return Rms(
            left=math.sqrt(self.sum_sq[0] / n),
            right=math.sqrt(self.sum_sq[1] / n),
        )
