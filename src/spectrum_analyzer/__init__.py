"""Spectrum analyzer - IIR cascades, windowed DFT bins, CQT bank, ISO 226 loudness."""

from spectrum_analyzer.config import AnalyzerConfig, WorkbenchConfig

__all__ = ["AnalyzerConfig", "WorkbenchConfig"]
