from dataclasses import dataclass


@dataclass(frozen=True)
class SegmentationConfig:
    """
    Chunk geometry for the segmentation tier.
    Every chunk except the last is extended by `overlap_seconds` at its tail
    so neighbours share audio; merge-time coalescing removes the duplicates.
    """
    chunk_seconds: float = 300.0
    overlap_seconds: float = 0.5

    def __post_init__(self):
        if self.chunk_seconds <= 0:
            raise ValueError(f"chunk_seconds must be positive, got {self.chunk_seconds}")
        if self.overlap_seconds < 0 or self.overlap_seconds >= self.chunk_seconds:
            raise ValueError(
                f"overlap_seconds must be in [0, chunk_seconds), got {self.overlap_seconds}"
            )
