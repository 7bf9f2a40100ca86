from pathlib import Path
from typing import List

from captioner.core.tempfiles.arena import TempFileArena
from ..domain.models import AudioSlice
from ..data.ffmpeg_adapter import FFmpegNormalizer

async def normalize_container(source_path: str, arena: TempFileArena) -> Path:
    """
    Standalone API: re-encode any media file into the recognizer-friendly container.
    The result lives in (and is deleted with) the given arena.
    """
    return await FFmpegNormalizer().to_normalized_container(Path(source_path), arena)

async def slice_audio(source_path: str, chunk_seconds: float, overlap_seconds: float,
                      arena: TempFileArena) -> List[AudioSlice]:
    """
    Standalone API: cut a media file into overlapping chunks.
    """
    return await FFmpegNormalizer().slice_segments(Path(source_path), chunk_seconds, overlap_seconds, arena)
