"""ITU-R BS.1770 K-weighting pre-filter for stereo frames.

Two biquads in series: a high shelf modelling the acoustic effect of the head,
then the RLB high-pass. Coefficients are the published 48 kHz values.
"""

import numpy as np
from scipy.signal import lfilter

from spectrum_analyzer.audio.frames import as_stereo_frames

# Stage 1: high shelf.
SHELF_B = (1.53512485958697, -2.69169618940638, 1.19839281085285)
SHELF_A = (1.0, -1.69065929318241, 0.73248077421585)

# Stage 2: RLB high-pass.
HIGHPASS_B = (1.0, -2.0, 1.0)
HIGHPASS_A = (1.0, -1.99004745483398, 0.99007225036621)


class _Stage:
    """One biquad applied along the frame axis, with per-channel state."""

    def __init__(self, b, a, channels: int = 2):
        self.b = np.asarray(b, dtype=np.float64)
        self.a = np.asarray(a, dtype=np.float64)
        self.zi = np.zeros((2, channels), dtype=np.float64)

    def process(self, frames: np.ndarray) -> np.ndarray:
        out, self.zi = lfilter(self.b, self.a, frames, axis=0, zi=self.zi)
        return out


class KWeighting:
    """Stateful K-weighting filter; state carries across `process` calls."""

    def __init__(self):
        self.shelf = _Stage(SHELF_B, SHELF_A)
        self.highpass = _Stage(HIGHPASS_B, HIGHPASS_A)

    def reset(self) -> None:
        self.shelf.zi[:] = 0.0
        self.highpass.zi[:] = 0.0

    def process(self, frames) -> np.ndarray:
        """Filter an (n, 2) chunk and return it as float32."""
        frames = as_stereo_frames(frames).astype(np.float64)
        if len(frames) == 0:
            return frames.astype(np.float32)
        return self.highpass.process(self.shelf.process(frames)).astype(np.float32)
