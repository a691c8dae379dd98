"""Filter building blocks: IIR sections, sliding DFT, windows and bin geometry."""

from spectrum_analyzer.dsp.bank import Bin, bin_lookup, bins
from spectrum_analyzer.dsp.dft import Dft
from spectrum_analyzer.dsp.filter_args import Filter, FilterArgs
from spectrum_analyzer.dsp.iir import (
    SECTION_TYPES,
    Biquad,
    Cascade,
    CytomicSvf,
    Svf,
    butterworth_q_factors,
    section_type,
    stagger_factors,
)
from spectrum_analyzer.dsp.ring import RingBuffer
from spectrum_analyzer.dsp.signals import SineSweeper, sine_gen, sine_gen_48k
from spectrum_analyzer.dsp.windows import Window, WindowFunction, WindowKind

__all__ = [
    "SECTION_TYPES",
    "Bin",
    "Biquad",
    "Cascade",
    "CytomicSvf",
    "Dft",
    "Filter",
    "FilterArgs",
    "RingBuffer",
    "SineSweeper",
    "Svf",
    "Window",
    "WindowFunction",
    "WindowKind",
    "bin_lookup",
    "bins",
    "butterworth_q_factors",
    "section_type",
    "sine_gen",
    "sine_gen_48k",
    "stagger_factors",
]
