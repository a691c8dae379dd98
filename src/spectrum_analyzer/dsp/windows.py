"""Window functions for DFT bins: weights, COLA repeat intervals, Dolph-Chebyshev synthesis.

Windows like Hamming or Bartlett do not peak until a tone reaches the middle of
the window, which looks slower than the BoxCar. It is not: a BoxCar only
saturates once the tone reaches its tail, and its -13 dB side lobes let noise
from other pitches through the whole time. Dolph-Chebyshev is the default
because its side lobes are equiripple at a chosen attenuation, which makes the
noise floor, main lobe width and window length directly tradeable.

COLA repeat values follow https://holometer.fnal.gov/GH_FFT.pdf
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from spectrum_analyzer.config import (
    COLA_DOLPH_CHEBYSHEV,
    COLA_HALF,
    COLA_WELCH,
    INTEGRATION_SAMPLES_PER_BIN,
)


class WindowKind(enum.Enum):
    BOXCAR = "boxcar"
    BARTLETT = "bartlett"
    WELCH = "welch"
    HAMMING = "hamming"
    DOLPH_CHEBYSHEV = "dolph-chebyshev"


@dataclass(frozen=True, eq=False)
class Window:
    """Immutable weights normalized to a peak of 1.0, with their COLA repeat and sum."""

    weights: np.ndarray
    repeat: int
    norm: float

    def __len__(self) -> int:
        return len(self.weights)


@dataclass(frozen=True)
class WindowFunction:
    """Choice of window shape.

    Only Dolph-Chebyshev is tunable, via `attenuation_db` (side lobe level).
    """

    kind: WindowKind = WindowKind.DOLPH_CHEBYSHEV
    attenuation_db: Optional[float] = 40.0

    def __post_init__(self) -> None:
        if self.kind is WindowKind.DOLPH_CHEBYSHEV:
            if self.attenuation_db is None or self.attenuation_db <= 0:
                raise ValueError("Valid attenuation levels must be positive.")
        elif self.attenuation_db is not None:
            # Fixed shapes carry no parameter.
            object.__setattr__(self, "attenuation_db", None)

    @classmethod
    def boxcar(cls) -> WindowFunction:
        """Rectangle. -13.3 dB first side lobe; smears everything."""
        return cls(WindowKind.BOXCAR, None)

    @classmethod
    def bartlett(cls) -> WindowFunction:
        """Triangle. -26.5 dB peak side lobe."""
        return cls(WindowKind.BARTLETT, None)

    @classmethod
    def welch(cls) -> WindowFunction:
        """Parabola. -21.3 dB first side lobe."""
        return cls(WindowKind.WELCH, None)

    @classmethod
    def hamming(cls) -> WindowFunction:
        """Cancels its first side lobe to -42.7 dB."""
        return cls(WindowKind.HAMMING, None)

    @classmethod
    def dolph_chebyshev(cls, attenuation_db: float = 40.0) -> WindowFunction:
        """Equiripple side lobes at `attenuation_db` below the main lobe."""
        return cls(WindowKind.DOLPH_CHEBYSHEV, float(attenuation_db))

    @classmethod
    def parse(cls, text: str) -> WindowFunction:
        """Parse `"hamming"`, `"dolph-chebyshev"` or `"dolph-chebyshev:60"`."""
        name, _, param = text.strip().lower().partition(":")
        try:
            kind = WindowKind(name)
        except ValueError:
            names = ", ".join(k.value for k in WindowKind)
            raise ValueError(f"Unknown window '{text}'. Available: {names}") from None
        if kind is WindowKind.DOLPH_CHEBYSHEV:
            return cls.dolph_chebyshev(float(param) if param else 40.0)
        if param:
            raise ValueError(f"Window '{name}' takes no parameter")
        return cls(kind, None)

    def __str__(self) -> str:
        if self.kind is WindowKind.DOLPH_CHEBYSHEV:
            return f"{self.kind.value}:{self.attenuation_db:g}"
        return self.kind.value

    def make_window(self, size: int) -> np.ndarray:
        """Weights of length `size` in float64, peak normalized to 1.0."""
        if self.kind is WindowKind.DOLPH_CHEBYSHEV:
            return dolph_chebyshev_window(size, self.attenuation_db)
        return bin_weights(_SHAPES[self.kind], size)

    def make_window_32(self, size: int) -> np.ndarray:
        """Weights truncated to float32, as used on the hot path."""
        return self.make_window(size).astype(np.float32)

    def repeat(self, length: int) -> int:
        """Samples between re-sums that still satisfy COLA.

        The lower the repeat, the more often the window is applied and the more
        windows overlap.
        """
        if self.kind is WindowKind.WELCH:
            return math.ceil(length * COLA_WELCH)
        if self.kind is WindowKind.DOLPH_CHEBYSHEV:
            # Higher attenuation may want more overlap; not yet tuned.
            return math.ceil(length / COLA_DOLPH_CHEBYSHEV)
        return math.ceil(length / COLA_HALF)

    def build(self, length: int) -> Window:
        """Build the float32 weights, repeat and weight sum for `length` samples."""
        weights = self.make_window_32(length)
        weights.setflags(write=False)
        return Window(
            weights=weights,
            repeat=self.repeat(length),
            norm=float(weights.sum(dtype=np.float32)),
        )

    def bandwidth_norm_factor(self) -> float:
        """Bandwidth normalization factor; 1.0 until calibrated per window."""
        return 1.0

    def amplitude_norm_factor(self) -> float:
        """Gain normalization factor; 1.0 until calibrated per window."""
        return 1.0


def boxcar(x: np.ndarray) -> np.ndarray:
    return np.ones_like(x)


def welch(x: np.ndarray) -> np.ndarray:
    t = 2.0 * x - 1.0
    return 1.0 - t * t


def bartlett(x: np.ndarray) -> np.ndarray:
    return np.where(x < 0.5, 2.0 * x, 2.0 - 2.0 * x)


def hamming(x: np.ndarray) -> np.ndarray:
    # Sub-samples get close to both endpoints but never reach the toe value.
    a0 = 25.0 / 46.0
    return a0 - (1.0 - a0) * np.cos(2.0 * math.pi * x)


_SHAPES = {
    WindowKind.BOXCAR: boxcar,
    WindowKind.BARTLETT: bartlett,
    WindowKind.WELCH: welch,
    WindowKind.HAMMING: hamming,
}


def bin_weights(
    window_fn: Callable[[np.ndarray], np.ndarray],
    bins: int,
    samples_per_bin: int = INTEGRATION_SAMPLES_PER_BIN,
) -> np.ndarray:
    """Integrate a continuous shape on [0, 1] over `bins` discrete bins.

    Weights are normalized by their maximum unless one of them is already
    exactly 1.0.
    """
    if bins < 1:
        raise ValueError("bins must be >= 1")
    edges = np.arange(bins + 1, dtype=np.float64) / bins
    bin_start = edges[:-1]
    step = (edges[1:] - bin_start) / samples_per_bin
    offsets = np.arange(samples_per_bin, dtype=np.float64) + 0.5
    t = bin_start[:, None] + offsets[None, :] * step[:, None]
    weights = window_fn(t).sum(axis=1) / samples_per_bin

    if np.any(weights == 1.0):
        return weights
    peak = weights.max()
    if peak <= 0.0:
        return weights
    return weights / peak


# Dolph-Chebyshev
#
# Evaluating the closed form pointwise and integrating is unstable at the
# lengths used here: side lobes curl upward or the first side lobe comes out
# too high. Instead the window is solved exactly by sampling the Chebyshev
# spectrum and taking an inverse DFT. The first and last samples are a real
# "pedestal" and are kept as computed; the IDFT route does not have the
# asymmetry that the cosine-summation route corrects by halving them.


def _chebyshev_t_clenshaw(n: int, x: np.ndarray) -> np.ndarray:
    """T_n(x) by Clenshaw recurrence, stable on [-1, 1]."""
    if n == 0:
        return np.ones_like(x)
    b_kplus1 = np.zeros_like(x)
    b_kplus2 = np.zeros_like(x)
    two_x = 2.0 * x
    for k in range(n, 0, -1):
        b_k = two_x * b_kplus1 - b_kplus2
        if k == n:
            b_k = b_k + 1.0
        b_kplus2 = b_kplus1
        b_kplus1 = b_k
    return x * b_kplus1 - b_kplus2


def chebyshev_t(n: int, x):
    """Chebyshev polynomial T_n(x), choosing the stable form for each domain.

    Accepts a scalar or an array; returns the same kind.
    """
    scalar = np.ndim(x) == 0
    x = np.atleast_1d(np.asarray(x, dtype=np.float64))
    out = np.empty_like(x)

    inside = np.abs(x) <= 1.0
    above = x > 1.0
    below = x < -1.0
    if inside.any():
        out[inside] = _chebyshev_t_clenshaw(n, x[inside])
    if above.any():
        out[above] = np.cosh(n * np.arccosh(x[above]))
    if below.any():
        sign = 1.0 if n % 2 == 0 else -1.0
        out[below] = sign * np.cosh(n * np.arccosh(-x[below]))
    return float(out[0]) if scalar else out


def dolph_chebyshev_spectrum(n: int, attenuation_db: float) -> np.ndarray:
    """Frequency-domain samples of the Dolph-Chebyshev window, ready for an IDFT."""
    m = n - 1
    tg = 10.0 ** (attenuation_db / 20.0)
    beta = math.cosh(math.acosh(tg) / m)
    denom = chebyshev_t(m, beta)

    k = np.arange(n, dtype=np.float64)
    # Sample the circle at 2*pi*k/n and halve to get the cosine argument, which
    # keeps the samples symmetric around Nyquist.
    theta = (2.0 * math.pi * k) / (2 * n)
    weight = chebyshev_t(m, beta * np.cos(theta)) / denom

    # Centering phase shift over (n - 1) so the window spans all n samples.
    shift = (n - 1) / 2.0
    angle = -2.0 * math.pi * k * shift / n
    return weight * np.exp(1j * angle)


def dolph_chebyshev_window(n: int, attenuation_db: float) -> np.ndarray:
    """Dolph-Chebyshev window of length `n` with side lobes at `-attenuation_db`.

    Everything between the expected peak level and the attenuation is usable
    signal. Less attenuation gives a narrower main lobe.

    Args:
        n: Window length, at least 2.
        attenuation_db: Side lobe attenuation in dB, positive.

    Returns:
        float64 weights, symmetric, peak normalized to 1.0.
    """
    if n < 2:
        raise ValueError("Window lengths below 2 cannot suppress side lobes")
    if attenuation_db is None or attenuation_db <= 0:
        raise ValueError("Valid attenuation levels must be positive.")

    spectrum = dolph_chebyshev_spectrum(n, attenuation_db)
    out = np.fft.ifft(spectrum).real

    # Remove numerical IDFT asymmetry before normalizing.
    out = 0.5 * (out + out[::-1])

    peak = out.max()
    if peak <= 0.0:
        return out
    return out / peak
