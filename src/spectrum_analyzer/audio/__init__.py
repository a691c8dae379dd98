"""Stereo analysis: CQT bank, ISO 226 loudness, RMS and K-weighting."""

from spectrum_analyzer.audio.cqt import Cqt, CqtBin, CqtNode
from spectrum_analyzer.audio.frames import as_stereo_frames, mono_to_stereo
from spectrum_analyzer.audio.iso226 import iso226_gain, iso226_phon2spl
from spectrum_analyzer.audio.kweight import KWeighting
from spectrum_analyzer.audio.rms import Rms, RmsMeter

__all__ = [
    "Cqt",
    "CqtBin",
    "CqtNode",
    "KWeighting",
    "Rms",
    "RmsMeter",
    "as_stereo_frames",
    "iso226_gain",
    "iso226_phon2spl",
    "mono_to_stereo",
]
