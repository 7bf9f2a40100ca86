# File: captioner/features/audio_export/domain/models.py
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List

from captioner.core.shared_types import TimeRange

# Floating point slack when deciding whether any audio is left to slice
_COVERAGE_EPSILON = 1e-6

# Remainders shorter than this are folded into the previous chunk
MIN_TAIL_SECONDS = 1.0


@dataclass(frozen=True)
class ExportConfig:
    """
    Encoding parameters for recognizer-friendly exports.
    Small mono AAC is enough for speech and keeps chunk exports cheap.
    """
    sample_rate_hz: int = 16000
    channels: int = 1
    bitrate_kbps: int = 64
    normalized_suffix: str = ".m4a"
    trimmed_suffix: str = ".wav"
    friendly_extensions: FrozenSet[str] = field(
        default_factory=lambda: frozenset({"m4a", "caf", "wav", "aif", "aiff"})
    )

    def is_friendly(self, path: Path) -> bool:
        return path.suffix.lower().lstrip(".") in self.friendly_extensions


@dataclass(frozen=True)
class AudioSlice:
    """
    One exported chunk and where it starts on the source timeline.
    """
    path: Path
    start_offset: float


def plan_slices(total_seconds: float, chunk_seconds: float, overlap_seconds: float,
                min_tail_seconds: float = MIN_TAIL_SECONDS) -> List[TimeRange]:
    """
    Consecutive ranges of `chunk_seconds` covering [0, total_seconds).
    Every range except the last is extended by `overlap_seconds` at its tail;
    the last one ends exactly at total_seconds. A remainder shorter than
    `min_tail_seconds` is absorbed by the last range instead of becoming its own.
    """
    if chunk_seconds <= 0:
        raise ValueError(f"Chunk length must be positive: {chunk_seconds}")
    if overlap_seconds < 0 or overlap_seconds >= chunk_seconds:
        raise ValueError(f"Overlap must be in [0, chunk length): {overlap_seconds}")

    ranges: List[TimeRange] = []
    start = 0.0
    while total_seconds - start > _COVERAGE_EPSILON:
        remaining = total_seconds - start
        base = remaining if remaining - chunk_seconds < min_tail_seconds else chunk_seconds
        is_last = start + base >= total_seconds - _COVERAGE_EPSILON
        extra = 0.0 if is_last else overlap_seconds
        ranges.append(TimeRange(start_seconds=start, end_seconds=start + base + extra))
        start += base
    return ranges
