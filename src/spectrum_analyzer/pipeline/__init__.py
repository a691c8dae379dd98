"""Streaming spectrum pipeline."""

from spectrum_analyzer.pipeline.streaming_loop import StreamingSpectrumPipeline

__all__ = ["StreamingSpectrumPipeline"]
