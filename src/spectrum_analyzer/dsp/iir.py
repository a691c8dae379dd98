"""Second-order band-pass sections and cascades of them.

Every section designs its coefficients in float64 and truncates them once to
float32; the per-sample state and arithmetic stay in float32.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Type

import numpy as np

from spectrum_analyzer.dsp.filter_args import Filter, FilterArgs

logger = logging.getLogger(__name__)

_ZERO = np.float32(0.0)
_TWO = np.float32(2.0)


class Biquad(Filter):
    """Constant 0 dB peak gain band-pass, direct form II transposed.

    Coefficients from the RBJ Audio EQ Cookbook.
    """

    def __init__(self, f0: float, fs: float, q: float):
        self.center = f0
        self.q = q
        w0 = math.tau * f0 / fs
        alpha = math.sin(w0) / (2.0 * q)
        a0 = 1.0 + alpha

        self.b0 = np.float32(alpha / a0)
        self.b1 = np.float32(0.0)
        self.b2 = np.float32(-alpha / a0)
        self.a1 = np.float32(-2.0 * math.cos(w0) / a0)
        self.a2 = np.float32((1.0 - alpha) / a0)
        self.s1 = _ZERO
        self.s2 = _ZERO

    @classmethod
    def from_args(cls, args: FilterArgs) -> Biquad:
        return cls(args.center, args.fs, args.q)

    def process(self, sample: float) -> np.float32:
        x = np.float32(sample)
        y = self.b0 * x + self.s1
        self.s1 = self.b1 * x - self.a1 * y + self.s2
        self.s2 = self.b2 * x - self.a2 * y
        return y


class Svf(Filter):
    """Topology-preserving state variable filter, band-pass output.

    See Zavalishin, "The Art of VA Filter Design".
    """

    def __init__(self, f0: float, fs: float, q: float):
        self.center = f0
        self.q = q
        g = math.tan(math.pi * f0 / fs)
        r = 1.0 / q
        h = 1.0 / (1.0 + r * g + g * g)

        self.g = np.float32(g)
        self.r = np.float32(r)
        self.h = np.float32(h)
        self.s1 = _ZERO
        self.s2 = _ZERO

    @classmethod
    def from_args(cls, args: FilterArgs) -> Svf:
        return cls(args.center, args.fs, args.q)

    def process(self, sample: float) -> np.float32:
        x = np.float32(sample)
        g = self.g
        hp = (x - (self.r + g) * self.s1 - self.s2) * self.h

        v1 = g * hp
        bp = v1 + self.s1
        self.s1 = bp + v1

        v2 = g * bp
        lp = v2 + self.s2
        self.s2 = lp + v2

        # Normalize the peak to unity gain.
        return bp * self.r


class CytomicSvf(Filter):
    """Cytomic (Andrew Simper) trapezoidal SVF, band-pass output.

    See https://cytomic.com/files/dsp/SvfLinearTrapOptimised2.pdf
    """

    def __init__(self, f0: float, fs: float, q: float):
        self.center = f0
        self.q = q
        g = math.tan(math.pi * f0 / fs)
        k = 1.0 / q
        denom = 1.0 + g * (g + k)
        a1 = 1.0 / denom
        a2 = g * a1
        a3 = g * a2

        self.a1 = np.float32(a1)
        self.a2 = np.float32(a2)
        self.a3 = np.float32(a3)
        self.norm = np.float32(1.0 / q)
        self.ic1eq = _ZERO
        self.ic2eq = _ZERO

    @classmethod
    def from_args(cls, args: FilterArgs) -> CytomicSvf:
        return cls(args.center, args.fs, args.q)

    def process(self, sample: float) -> np.float32:
        x = np.float32(sample)
        a2_ic1 = self.a2 * self.ic1eq
        tmp = a2_ic1 + self.ic2eq
        v3 = x - tmp + a2_ic1
        v1 = self.a1 * self.ic1eq + self.a2 * v3
        v2 = self.a3 * v3 + tmp
        self.ic1eq = _TWO * v1 - self.ic1eq
        self.ic2eq = _TWO * v2 - self.ic2eq
        return v1 * self.norm


SECTION_TYPES: Dict[str, Type[Filter]] = {
    "biquad": Biquad,
    "svf": Svf,
    "cytomic": CytomicSvf,
}


def section_type(name: str) -> Type[Filter]:
    """Look up a second-order section class by name."""
    try:
        return SECTION_TYPES[name.lower()]
    except KeyError:
        names = ", ".join(sorted(SECTION_TYPES))
        raise ValueError(f"Unknown section '{name}'. Available: {names}") from None


def butterworth_q_factors(order: int) -> List[float]:
    """Q of each second-order section of an even-order Butterworth filter.

    Ordered from the lowest to the highest Q.
    """
    if order < 2 or order % 2 != 0:
        raise ValueError("Butterworth order must be a positive even number")
    n = order // 2
    return [
        1.0 / (2.0 * math.sin((2 * k + 1) * math.pi / (2 * order)))
        for k in range(n - 1, -1, -1)
    ]


def stagger_factors(stages: int, scale: float) -> List[float]:
    """Detune ratios for all but the last cascade stage.

    Stages alternate above and below the center so that together they span a
    total ratio of `scale`, weighted by Butterworth proportions.
    """
    if stages < 1:
        raise ValueError("stages must be >= 1")
    if stages == 1:
        return []

    butters = butterworth_q_factors((stages - 1) * 2)
    total = sum(butters)
    butters = [b / total for b in butters]
    even = len(butters) % 2 == 0
    log_scale = math.log2(scale)

    factors = []
    for i, b in enumerate(butters):
        i_even = i % 2 == 0
        if (i_even and even) or (not i_even and not even):
            factors.append(2.0 ** (-b * log_scale))
        else:
            factors.append(2.0 ** (b * log_scale))
    factors.reverse()
    return factors


class Cascade(Filter):
    """Series of second-order sections with a final gain.

    Each extra stage steepens the skirt by 12 dB per octave.
    """

    def __init__(self, sections: List[Filter], post_gain: float = 1.0):
        if not sections:
            raise ValueError("A cascade needs at least one stage")
        self.sections = sections
        self.post_gain = np.float32(post_gain)

    @classmethod
    def from_args(
        cls, args: FilterArgs, section: Optional[Type[Filter]] = None
    ) -> Cascade:
        """Build `args.stages` sections of type `section` (CytomicSvf by default).

        Args:
            args: Filter parameters. `stagger` spreads stage centers around
                `center`; `butterworth` spreads q with Butterworth ratios.
            section: Second-order section class.

        Returns:
            A cascade whose last stage sits exactly on `args.center`.
        """
        section = section or CytomicSvf
        stages = args.stages
        if stages < 1:
            raise ValueError("A cascade needs at least one stage")

        factors = stagger_factors(stages, args.stagger) if args.stagger else []
        butters = butterworth_q_factors(2 * stages) if args.butterworth else None
        # Stages multiply gain, so q is spread across them.
        q_norm = math.sqrt(1.0 / stages)

        sections = []
        for i in range(stages):
            center = args.center * factors.pop() if factors else args.center
            q = args.q * q_norm
            if butters is not None:
                q *= butters[i]
            sections.append(section(center, args.fs, q))
            logger.debug(
                "%s stage %d: center=%.3f Hz q=%.4f", section.__name__, i, center, q
            )
        return cls(sections, args.gain_factor)

    def __len__(self) -> int:
        return len(self.sections)

    def process(self, sample: float) -> np.float32:
        x = np.float32(sample)
        for stage in self.sections:
            x = stage.process(x)
        return x * self.post_gain
