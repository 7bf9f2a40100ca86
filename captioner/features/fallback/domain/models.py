# File: captioner/features/fallback/domain/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from captioner.core.shared_types import CaptionSegment


class AttemptStage(str, Enum):
    ORIGINAL = "original"
    NORMALIZED = "normalized"
    TRIMMED = "trimmed"
    CONTAINER_EXPORT = "container_export"
    SEGMENTED = "segmented"


@dataclass(frozen=True)
class FallbackPolicy:
    """
    Thresholds that decide which recognition tiers run for a locale.
    All durations are in seconds.
    """
    # Trimmed retry: only after an empty result on audio with a real silent lead-in
    trim_min_leading_silence: float = 0.5
    trim_min_duration: float = 15.0
    # Keep a little audio before the first loud window
    trim_lead_in: float = 0.2

    # Empty whole-file result on media longer than this forces segmentation
    segment_after_empty_duration: float = 120.0

    # Long media with suspiciously few segments was probably truncated
    long_audio_duration: float = 600.0
    long_audio_min_segments: int = 40

    # At or above this, whole-file recognition is not attempted at all
    force_segmentation_duration: float = 900.0

    # Gap under which identical neighbouring chunk segments are joined
    coalesce_tolerance: float = 0.15


@dataclass(frozen=True)
class LocaleTranscript:
    locale: str
    segments: List[CaptionSegment] = field(default_factory=list)
    # Tier that produced `segments`; None when nothing was recognized
    stage: Optional[AttemptStage] = None
