# File: captioner/features/segmentation/service/engine.py
import logging
from typing import List, Optional

from captioner.core.errors import ExportFailed
from captioner.core.tempfiles.arena import TempFileArena
from captioner.features.audio_analysis.domain.models import AudioAnalysis
from captioner.features.audio_export.domain.interfaces import IContainerNormalizer
from captioner.features.audio_export.domain.models import MIN_TAIL_SECONDS, AudioSlice
from ..domain.models import SegmentationConfig

logger = logging.getLogger(__name__)

# Float slack when checking that chunk offsets line up
_EPSILON = 1e-3


class SegmentationEngine:
    def __init__(self, normalizer: IContainerNormalizer, config: Optional[SegmentationConfig] = None):
        self.normalizer = normalizer
        self.config = config or SegmentationConfig()

    async def segment(self, analysis: AudioAnalysis, arena: TempFileArena) -> List[AudioSlice]:
        """
        Slices the analysed (normalized) audio into ordered, overlapping chunks.

        Raises:
            ExportFailed: If slicing fails or the chunks do not cover the whole duration.
        """
        slices = await self.normalizer.slice_segments(
            analysis.normalized_audio_path,
            self.config.chunk_seconds,
            self.config.overlap_seconds,
            arena,
            total_duration=analysis.duration
        )
        self._check_coverage(slices, analysis.duration)
        logger.debug(
            f"Segmentation: {len(slices)} chunks of {self.config.chunk_seconds:.0f}s "
            f"(+{self.config.overlap_seconds:.2f}s overlap) for {analysis.duration:.1f}s"
        )
        return slices

    def _check_coverage(self, slices: List[AudioSlice], duration: float):
        if duration <= 0:
            return
        if not slices:
            raise ExportFailed(f"Segmentation produced no chunks for {duration:.1f}s of audio")

        offsets = [s.start_offset for s in slices]
        if offsets != sorted(offsets) or offsets[0] > _EPSILON:
            raise ExportFailed(f"Segmentation chunks are out of order or start late: {offsets}")

        for previous, current in zip(offsets, offsets[1:]):
            if current - previous > self.config.chunk_seconds + _EPSILON:
                raise ExportFailed(f"Segmentation gap between {previous:.2f}s and {current:.2f}s")

        # The last chunk may also carry a folded tail
        if duration - offsets[-1] > self.config.chunk_seconds + MIN_TAIL_SECONDS + _EPSILON:
            raise ExportFailed(f"Segmentation stops at {offsets[-1]:.2f}s, media is {duration:.2f}s")
