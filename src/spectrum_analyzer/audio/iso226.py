"""ISO 226:2003 equal-loudness contours.

`iso226_gain` is the dB correction that brings a frequency in line with how
loud 1 kHz sounds on the 70 phon contour. Frequencies outside the tabulated
20 Hz to 12.5 kHz range are clamped to the nearest table entry.
"""

import math

import numpy as np

from spectrum_analyzer.config import ISO226_CURVE_PHONS, ISO226_REFERENCE_FREQ, MIN_MAGNITUDE

FREQ = np.array(
    [
        20, 25, 31.5, 40, 50, 63, 80, 100, 125, 160, 200, 250, 315, 400, 500,
        630, 800, 1000, 1250, 1600, 2000, 2500, 3150, 4000, 5000, 6300, 8000,
        10000, 12500,
    ],
    dtype=np.float64,
)

# Exponent for loudness perception.
AF = np.array(
    [
        0.635, 0.602, 0.569, 0.537, 0.509, 0.482, 0.456, 0.433, 0.412, 0.391,
        0.373, 0.357, 0.343, 0.330, 0.320, 0.311, 0.303, 0.300, 0.295, 0.292,
        0.290, 0.290, 0.289, 0.289, 0.289, 0.293, 0.303, 0.323, 0.354,
    ],
    dtype=np.float64,
)

# Magnitude of the linear transfer function normalized at 1 kHz.
LU = np.array(
    [
        -31.5, -27.2, -23.1, -19.3, -16.1, -13.1, -10.4, -8.2, -6.3, -4.6,
        -3.2, -2.1, -1.2, -0.5, 0.0, 0.4, 0.5, 0.0, -2.7, -4.2, -1.2, 1.4,
        2.3, 1.0, -2.3, -7.2, -11.2, -10.9, -3.5,
    ],
    dtype=np.float64,
)

# Threshold of hearing.
TF = np.array(
    [
        78.1, 68.7, 59.5, 51.1, 44.0, 37.5, 31.5, 26.5, 22.1, 17.9, 14.4,
        11.4, 8.6, 6.2, 4.4, 3.0, 2.2, 2.4, 3.5, 1.7, -1.3, -4.2, -6.0, -5.4,
        -1.5, 6.0, 12.6, 13.9, 12.3,
    ],
    dtype=np.float64,
)


def iso226_phon2spl(freq: float, phons: float = ISO226_CURVE_PHONS) -> float:
    """Sound pressure level (dB SPL) that is perceived at `phons` at `freq`."""
    af = float(np.interp(freq, FREQ, AF))
    lu = float(np.interp(freq, FREQ, LU))
    tf = float(np.interp(freq, FREQ, TF))

    af_part = (0.4 * 10.0 ** ((tf + lu) / 10.0 - 9.0)) ** af
    total = 4.47e-3 * (10.0 ** (0.025 * phons) - 1.15) + af_part
    return (10.0 / af) * math.log10(max(total, MIN_MAGNITUDE)) - lu + 94.0


def iso226_gain(freq: float) -> float:
    """Loudness correction in dB relative to 1 kHz on the 70 phon contour.

    Negative where the ear is less sensitive than at 1 kHz.
    """
    return iso226_phon2spl(ISO226_REFERENCE_FREQ) - iso226_phon2spl(freq)
