"""Constant-Q transform bank built from independent decimating DFT bins.

Each bin demodulates its own frequency down to DC, keeps the most recent
window of demodulated stereo terms in a ring buffer, and sums them on demand.
Low bins read only every `decimation`-th frame, which keeps their long
windows small without aliasing anything close to the bin itself.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from spectrum_analyzer.audio.frames import as_stereo_frames
from spectrum_analyzer.audio.iso226 import iso226_gain
from spectrum_analyzer.config import (
    CQT_DECIMATION_MARGIN,
    CQT_MIN_EFFECTIVE_LEN,
    CQT_MIN_FREQ,
    DEFAULT_SAMPLE_RATE,
    MIN_MAGNITUDE,
    AnalyzerConfig,
)
from spectrum_analyzer.dsp.ring import RingBuffer

logger = logging.getLogger(__name__)


@dataclass
class Cqt:
    """One bin's output for one update.

    `left` and `right` are the raw complex sums over the window; their angle is
    the phase relative to the demodulator. `norm` scales a sum to an amplitude
    estimate, which the magnitude properties apply.
    """

    left: complex
    right: complex
    left_perceptual: float
    right_perceptual: float
    freq: float
    iso226_factor: float
    norm: float = 1.0

    @property
    def left_magnitude(self) -> float:
        return abs(self.left) * self.norm

    @property
    def right_magnitude(self) -> float:
        return abs(self.right) * self.norm

    @property
    def left_phase(self) -> float:
        return math.atan2(self.left.imag, self.left.real)

    @property
    def right_phase(self) -> float:
        return math.atan2(self.right.imag, self.right.real)


class CqtBin:
    """Decimating sliding DFT for a single frequency on stereo input.

    Args:
        center: Bin frequency in Hz.
        size: Window length in input frames before decimation.
        decimation: Read one frame in every `decimation`.
        sample_rate: Input sample rate in Hz.
    """

    def __init__(
        self,
        center: float,
        size: int,
        decimation: int,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ):
        if decimation < 1:
            raise ValueError("decimation must be >= 1")
        length = math.ceil(size / decimation)
        effective_len = length * decimation
        if effective_len < CQT_MIN_EFFECTIVE_LEN:
            raise ValueError(
                f"Effective window {effective_len} is below the "
                f"{CQT_MIN_EFFECTIVE_LEN} sample minimum"
            )

        self.center = center
        self.decimation = decimation
        self.sample_rate = sample_rate
        self.effective_len = effective_len
        self.ring = RingBuffer(length, dtype=np.complex64, frame_shape=(2,))
        # Phase advance per decimated sample.
        self.velocity = math.tau * center * decimation / sample_rate
        self.phase = 0.0
        self.skip = 0
        self.iso226_offset = iso226_gain(center)
        self._norm = math.sqrt(2.0) / effective_len

    def __len__(self) -> int:
        return len(self.ring)

    def consume(self, frames: np.ndarray) -> None:
        """Demodulate every `decimation`-th frame of an (n, 2) chunk into the ring.

        Decimation stays aligned across calls: frames left over from the end of
        one chunk are skipped at the start of the next.
        """
        if self.skip:
            if len(frames) < self.skip:
                self.skip -= len(frames)
                return
            frames = frames[self.skip :]
            self.skip = 0
            # The dropped decimated sample still advances the demodulator.
            self.phase += self.velocity

        n = len(frames)
        read_len = n // self.decimation
        self.skip = (self.decimation - n % self.decimation) % self.decimation
        if read_len == 0:
            return

        phases = self.phase + self.velocity * np.arange(read_len, dtype=np.float64)
        rotor = np.exp(-1j * phases)
        picked = frames[:: self.decimation][:read_len]
        terms = (picked * rotor[:, None]).astype(np.complex64)

        if read_len > len(self.ring):
            logger.warning(
                "CQT bin %.2f Hz received %d terms for a %d term window; keeping the newest",
                self.center,
                read_len,
                len(self.ring),
            )
            terms = terms[-len(self.ring) :]
        self.ring.push(terms)
        self.phase = (self.phase + self.velocity * read_len) % math.tau

    def produce(self) -> Cqt:
        """Sum the window into a stereo estimate with loudness correction."""
        sums = self.ring.sum()
        left = complex(sums[0])
        right = complex(sums[1])
        offset = self.iso226_offset
        return Cqt(
            left=left,
            right=right,
            left_perceptual=20.0 * math.log10(max(abs(left) * self._norm, MIN_MAGNITUDE))
            + offset,
            right_perceptual=20.0 * math.log10(max(abs(right) * self._norm, MIN_MAGNITUDE))
            + offset,
            freq=self.center,
            iso226_factor=10.0 ** (offset / 10.0),
            norm=self._norm,
        )


class CqtNode:
    """Bank of `resolution` log-spaced CqtBins from 20 Hz to Nyquist.

    Every bin gets at least one update interval of input so that each
    `produce` reflects fresh audio, and long low-frequency windows are
    decimated as far as the bin frequency allows.
    """

    def __init__(
        self,
        resolution: int,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        update_rate: float = 60.0,
    ):
        if resolution < 2:
            raise ValueError("resolution must be >= 2")
        if sample_rate <= 0 or update_rate <= 0:
            raise ValueError("sample_rate and update_rate must be > 0")
        if sample_rate / 2 <= CQT_MIN_FREQ:
            raise ValueError(
                f"Nyquist ({sample_rate / 2} Hz) must be above the {CQT_MIN_FREQ} Hz lowest bin"
            )

        fmin = CQT_MIN_FREQ
        fmax = sample_rate / 2
        log_min = math.log2(fmin)
        log_step = (math.log2(fmax) - log_min) / (resolution - 1)
        octaves = math.log2(fmax / fmin)
        bins_per_octave = resolution / octaves
        q = 1.0 / (2.0 ** (1.0 / bins_per_octave) - 1.0)
        size_min = max(math.ceil(sample_rate / update_rate), CQT_MIN_EFFECTIVE_LEN)

        self.resolution = resolution
        self.sample_rate = sample_rate
        self.update_rate = update_rate
        self.q = q
        self.bins: List[CqtBin] = []
        for n in range(resolution):
            freq = 2.0 ** (log_min + n * log_step)
            decimation = 2 ** max(
                0, math.floor(math.log2(fmax / (CQT_DECIMATION_MARGIN * freq)))
            )
            size = math.ceil(q * sample_rate / freq)
            self.bins.append(CqtBin(freq, max(size, size_min), decimation, sample_rate))

        self._output = [b.produce() for b in self.bins]
        logger.debug(
            "CqtNode: %d bins, q=%.3f, total ring length %d",
            resolution,
            q,
            self.total_len,
        )

    @classmethod
    def from_config(cls, config: AnalyzerConfig) -> CqtNode:
        """Build a bank from the stream configuration."""
        return cls(config.resolution, config.sample_rate, config.update_rate)

    @property
    def total_len(self) -> int:
        """Total number of stored terms across all bins."""
        return sum(len(b) for b in self.bins)

    def consume(self, frames) -> None:
        """Feed a chunk of stereo frames to every bin."""
        frames = as_stereo_frames(frames)
        for b in self.bins:
            b.consume(frames)

    def produce(self) -> List[Cqt]:
        """Return the current output of every bin, in increasing frequency order.

        The same list object is refreshed and returned on every call.
        """
        for i, b in enumerate(self.bins):
            self._output[i] = b.produce()
        return self._output
