"""Centralized analysis configuration and tuning constants.

Encoding standards:
- Audio: interleaved stereo float32, 48 kHz
- Filter design: coefficients derived in float64, truncated once to float32
- CQT: 20 Hz to Nyquist, log-spaced, one output per video frame
- Loudness: ISO 226 equal-loudness contour at 70 phons
"""

import math
from dataclasses import dataclass
from typing import Optional

# Audio
DEFAULT_SAMPLE_RATE = 48_000
DEFAULT_UPDATE_RATE = 60.0  # video frames per second
DEFAULT_RESOLUTION = 256

# Window integration
INTEGRATION_SAMPLES_PER_BIN = 512

# COLA repeat divisors
COLA_HALF = 2.0
COLA_WELCH = 0.293
COLA_DOLPH_CHEBYSHEV = 4.0

# CQT
CQT_MIN_FREQ = 20.0
# Shorter windows accumulate energy at frequencies that couple with the chunk size.
CQT_MIN_EFFECTIVE_LEN = 800
# Decimated rate must keep this many times the bin frequency.
CQT_DECIMATION_MARGIN = 4.0

# ISO 226
ISO226_CURVE_PHONS = 70.0
ISO226_REFERENCE_FREQ = 1000.0

# Bank geometry defaults
BANK_MIN_FREQ = 24.0  # little to perceive below this on ordinary drivers
BANK_MAX_FREQ = 12_333.0  # little visually interesting above this
DISPLAY_WIDTH_4K = 3840
DISPLAY_HEIGHT_4K = 2160

# Floor for log-domain conversions
MIN_MAGNITUDE = 1e-12


@dataclass(frozen=True)
class AnalyzerConfig:
    """Stream and CQT bank configuration."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    update_rate: float = DEFAULT_UPDATE_RATE
    resolution: int = DEFAULT_RESOLUTION
    channels: int = 2  # stereo
    dtype: str = "float32"

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if self.update_rate <= 0:
            raise ValueError("update_rate must be > 0")
        if self.resolution < 2:
            raise ValueError("resolution must be >= 2")
        if self.nyquist <= CQT_MIN_FREQ:
            raise ValueError(f"sample_rate must put Nyquist above {CQT_MIN_FREQ} Hz")

    @property
    def nyquist(self) -> float:
        """Highest representable frequency in Hz."""
        return self.sample_rate / 2

    @property
    def frame_length(self) -> int:
        """Input frames consumed per output update."""
        return math.ceil(self.sample_rate / self.update_rate)


@dataclass(frozen=True)
class WorkbenchConfig:
    """Defaults used by the engineering workbench to build filters."""

    q: float = 8.0
    center: float = 1000.0
    sample_rate: float = 48_000.0
    gain_factor: float = 1.0
    cascade_stages: int = 1
    cascade_butterworth: bool = False
    cascade_detune: Optional[float] = 1.01
    dft_window: str = "dolph-chebyshev:22.5"
    bandwidth_db_threshold: float = -10.0

    def args(self, **overrides):
        """Return `FilterArgs` built from these defaults.

        Args:
            **overrides: Field overrides passed through to `FilterArgs`.
        """
        from spectrum_analyzer.dsp.filter_args import FilterArgs
        from spectrum_analyzer.dsp.windows import WindowFunction

        fields = dict(
            q=self.q,
            center=self.center,
            fs=self.sample_rate,
            gain_factor=self.gain_factor,
            butterworth=self.cascade_butterworth,
            stagger=self.cascade_detune,
            stages=self.cascade_stages,
            window_choice=WindowFunction.parse(self.dft_window),
        )
        fields.update(overrides)
        return FilterArgs(**fields)
