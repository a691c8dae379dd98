"""Streaming loop: audio chunks -> CQT bank -> one spectrum per video frame.

Glue that feeds an arbitrary audio iterator into a `CqtNode` and hands a
snapshot of every bin to a callback once per update interval. Chunk sizes from
the source do not need to line up with the update interval.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional

import numpy as np

from spectrum_analyzer.audio.cqt import Cqt, CqtNode
from spectrum_analyzer.audio.frames import as_stereo_frames
from spectrum_analyzer.config import AnalyzerConfig

logger = logging.getLogger(__name__)


FrameCallback = Callable[[List[Cqt]], None]


class StreamingSpectrumPipeline:
    """Runs audio through a CQT bank and emits one spectrum per update interval.

    Interface:
      pipeline = StreamingSpectrumPipeline(
          config=AnalyzerConfig(update_rate=60),
          on_frame=render,
      )
      pipeline.run(chunks)  # returns when the iterator is exhausted or stop() is called
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        node: Optional[CqtNode] = None,
        on_frame: Optional[FrameCallback] = None,
    ):
        self.config = config or AnalyzerConfig()
        self.node = node
        self.on_frame = on_frame or (lambda spectrum: None)
        self._pending = 0
        self._stopped = False

    def stop(self) -> None:
        """Signal the run loop to exit (checked for each chunk)."""
        self._stopped = True

    def _ensure_node(self) -> CqtNode:
        if self.node is None:
            self.node = CqtNode.from_config(self.config)
        return self.node

    def _feed(self, chunk) -> Optional[List[Cqt]]:
        """Consume one chunk; return a snapshot if an update interval completed."""
        frames = as_stereo_frames(chunk)
        if len(frames) == 0:
            return None
        node = self._ensure_node()
        node.consume(frames)
        self._pending += len(frames)

        chunk_frames = self.config.frame_length
        if self._pending < chunk_frames:
            return None
        if self._pending >= 2 * chunk_frames:
            logger.debug(
                "Chunk of %d frames spans %d updates; emitting one",
                len(frames),
                self._pending // chunk_frames,
            )
        self._pending %= chunk_frames
        return list(node.produce())

    def run(self, audio_iterator: Iterator[np.ndarray]) -> None:
        """Run the streaming loop until stopped or the iterator is exhausted.

        Args:
            audio_iterator: Source of audio chunks, interleaved or (n, 2).
        """
        self._stopped = False
        for chunk in audio_iterator:
            if self._stopped:
                break
            spectrum = self._feed(chunk)
            if spectrum is not None:
                self.on_frame(spectrum)

    def run_for_n_updates(
        self,
        n: int,
        audio_iterator: Iterator[np.ndarray],
    ) -> List[List[Cqt]]:
        """Run for exactly n spectrum updates; returns the snapshots."""
        self._stopped = False
        spectra: List[List[Cqt]] = []
        for chunk in audio_iterator:
            if len(spectra) >= n or self._stopped:
                break
            spectrum = self._feed(chunk)
            if spectrum is not None:
                spectra.append(spectrum)
                self.on_frame(spectrum)
        return spectra
