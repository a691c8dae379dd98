"""Single-bin sliding DFT (Goertzel-style) with a window and COLA re-sums."""

from __future__ import annotations

import logging
import math

import numpy as np

from spectrum_analyzer.dsp.filter_args import Filter, FilterArgs
from spectrum_analyzer.dsp.ring import RingBuffer
from spectrum_analyzer.dsp.windows import WindowFunction

logger = logging.getLogger(__name__)


class Dft(Filter):
    """Windowed DFT of one frequency over the most recent `length` samples.

    Each sample is demodulated against a rotating phasor and stored; the window
    is applied to the stored terms only every `repeat` samples, at the spacing
    where overlapping windows add to a constant.
    """

    def __init__(
        self,
        center: float,
        sample_rate: float,
        length: int,
        window_choice: WindowFunction,
    ):
        if length < 2:
            raise ValueError("DFT length must be >= 2")
        if not 0 < center < sample_rate / 2:
            raise ValueError("center must be between 0 and Nyquist")

        window = window_choice.build(length)
        self.center = center
        self.sample_rate = sample_rate
        self.window = window
        self.window_factors = window.weights
        self.window_repeat = window.repeat
        self.window_norm = np.float32(window.norm)

        self.terms = RingBuffer(length, dtype=np.complex64)
        omega = math.tau * center / sample_rate
        self.velocity = np.complex64(complex(math.cos(omega), math.sin(omega)))
        self.phase = np.complex64(1.0)
        self.repeated = 0
        self.last_output = np.float32(0.0)
        logger.debug(
            "Dft %.3f Hz: length=%d repeat=%d window=%s",
            center,
            length,
            self.window_repeat,
            window_choice,
        )

    @classmethod
    def from_args(cls, args: FilterArgs) -> Dft:
        length = math.ceil(args.q * args.fs / args.center)
        return cls(args.center, args.fs, length, args.window_choice)

    @property
    def length(self) -> int:
        """Samples needed to completely saturate the window."""
        return len(self.terms)

    @property
    def repeat(self) -> int:
        return self.window_repeat

    def process(self, sample: float) -> np.float32:
        s = np.float32(sample)
        phase = self.phase
        term = np.complex64(complex(s * phase.real, -s * phase.imag))
        self.terms.push_evict(term)
        self.phase = phase * self.velocity

        if self.repeated == self.window_repeat:
            self.repeated = 0
            windowed = (self.terms.get_all() * self.window_factors).sum()
            self.last_output = np.float32(2.0) * np.abs(windowed) / self.window_norm
            # Keep the phasor on the unit circle.
            self.phase = self.phase / np.abs(self.phase)
        self.repeated += 1
        return self.last_output
