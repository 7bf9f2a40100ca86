import logging
from pathlib import Path
from typing import List, Optional

from captioner.core.errors import ExportFailed
from captioner.core.media.ffmpeg import FFmpegError, run_ffmpeg, probe_duration
from captioner.core.tempfiles.arena import TempFileArena
from ..domain.interfaces import IContainerNormalizer
from ..domain.models import ExportConfig, AudioSlice, plan_slices

logger = logging.getLogger(__name__)

class FFmpegNormalizer(IContainerNormalizer):
    """
    Concrete implementation of IContainerNormalizer using FFmpeg.
    Re-encodes to mono AAC so cuts are sample accurate regardless of the source codec.
    """

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()

    def _encode_args(self) -> List[str]:
        # -vn: Drop video
        # -ac/-ar: Mono at the recognizer's rate
        # -c:a aac -b:a: Small compressed track
        return [
            "-vn",
            "-ac", str(self.config.channels),
            "-ar", str(self.config.sample_rate_hz),
            "-c:a", "aac",
            "-b:a", f"{self.config.bitrate_kbps}k",
        ]

    async def to_normalized_container(self, source: Path, arena: TempFileArena) -> Path:
        self._require_source(source)
        output_path = arena.new_path(self.config.normalized_suffix, hint="normalized")

        logger.info(f"Normalizing container: {source.name} -> {output_path.name}")
        await self._export(["-i", str(source), *self._encode_args(), str(output_path)], "normalized export")
        return output_path

    async def slice_segments(self,
                             source: Path,
                             chunk_seconds: float,
                             overlap_seconds: float,
                             arena: TempFileArena,
                             total_duration: Optional[float] = None) -> List[AudioSlice]:
        self._require_source(source)

        if total_duration is None:
            try:
                total_duration = await probe_duration(source)
            except FFmpegError as e:
                raise ExportFailed(f"Could not determine duration for slicing {source.name}: {e}") from e

        ranges = plan_slices(total_duration, chunk_seconds, overlap_seconds)
        logger.debug(f"Slicing {source.name}: duration={total_duration:.1f}s chunks={len(ranges)}")

        slices: List[AudioSlice] = []
        for time_range in ranges:
            output_path = arena.new_path(self.config.normalized_suffix, hint=f"{time_range.start_seconds:.0f}s")
            # -ss before -i seeks the input; -t bounds the exported length
            await self._export([
                "-ss", f"{time_range.start_seconds:.3f}",
                "-i", str(source),
                "-t", f"{time_range.duration:.3f}",
                *self._encode_args(),
                str(output_path)
            ], f"slice at {time_range.start_seconds:.2f}s")
            slices.append(AudioSlice(path=output_path, start_offset=time_range.start_seconds))

        return slices

    async def trim(self, source: Path, start_seconds: float, arena: TempFileArena) -> Path:
        self._require_source(source)
        output_path = arena.new_path(self.config.trimmed_suffix, hint="trim")

        await self._export([
            "-ss", f"{max(0.0, start_seconds):.3f}",
            "-i", str(source),
            "-vn",
            "-ac", str(self.config.channels),
            "-ar", str(self.config.sample_rate_hz),
            "-c:a", "pcm_s16le",
            str(output_path)
        ], f"trim from {start_seconds:.2f}s")
        return output_path

    @staticmethod
    def _require_source(source: Path):
        if not source.exists():
            raise ExportFailed(f"Export source not found: {source}")

    @staticmethod
    async def _export(args: List[str], what: str):
        try:
            await run_ffmpeg(args)
        except FFmpegError as e:
            raise ExportFailed(f"Audio {what} failed: {e.stderr or e}") from e
