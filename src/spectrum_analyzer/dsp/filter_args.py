"""Filter construction arguments and the shared per-sample filter contract."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from spectrum_analyzer.dsp.signals import SineSweeper
from spectrum_analyzer.dsp.windows import WindowFunction


@dataclass
class FilterArgs:
    """Generic arguments for building any single-frequency filter.

    Copy with `dataclasses.replace` to derive variants; filters never keep a
    reference that could be mutated behind their back.
    """

    # Quality factor equal to center / bandwidth.
    q: float = 10.0
    # Frequency where the peak gain is located.
    center: float = 1000.0
    # Sample rate.
    fs: float = 48_000.0
    # Applied to the output of a filter or the final output of a cascade.
    gain_factor: float = 1.0
    # Distribute q across cascade stages with Butterworth ratios.
    butterworth: bool = False
    # Total detune ratio across cascade stages.
    stagger: Optional[float] = None
    # 12 dB per octave per stage.
    stages: int = 4
    # Weights used to sum DFT windows.
    window_choice: WindowFunction = field(default_factory=WindowFunction)

    def __post_init__(self) -> None:
        if self.stages < 1:
            raise ValueError("stages must be >= 1")
        if self.q <= 0:
            raise ValueError("q must be > 0")
        if self.fs <= 0:
            raise ValueError("fs must be > 0")
        if not 0 < self.center < self.fs / 2:
            raise ValueError(
                f"center must be between 0 and Nyquist ({self.fs / 2} Hz), got {self.center}"
            )
        if self.stagger is not None and self.stagger <= 0:
            raise ValueError("stagger must be > 0")

    def sine_gen(self) -> SineSweeper:
        """Return a `SineSweeper` at the center frequency."""
        return SineSweeper(self.center, self.fs)

    def nsamples(self, nwaves: float) -> int:
        """Number of samples required to complete `nwaves` cycles at the center frequency."""
        return math.ceil(self.fs / self.center * nwaves)


class Filter:
    """Base class for single-channel, per-sample filters.

    process(sample) -> filtered amplitude
    from_args(args) -> filter built from generic arguments
    """

    def process(self, sample: float) -> float:
        raise NotImplementedError

    @classmethod
    def from_args(cls, args: FilterArgs) -> Filter:
        raise NotImplementedError
