from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class TimeRange:
    """
    Value Object representing a valid span of media time.
    Enforces that start_seconds is strictly before end_seconds.
    """
    start_seconds: float
    end_seconds: float

    def __post_init__(self):
        if self.start_seconds < 0 or self.end_seconds < 0:
            raise ValueError("Timestamps cannot be negative.")
        if self.start_seconds >= self.end_seconds:
            raise ValueError(f"Start time ({self.start_seconds}) must be before end time ({self.end_seconds}).")

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds


@dataclass(frozen=True)
class CaptionSegment:
    """
    One time-aligned caption. Never mutated; operations return new instances.
    """
    text: str
    start: float
    duration: float

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Caption start cannot be negative: {self.start}")
        if self.duration < 0:
            raise ValueError(f"Caption duration cannot be negative: {self.duration}")

    @property
    def end(self) -> float:
        return self.start + self.duration

    def shifted(self, offset: float) -> "CaptionSegment":
        return CaptionSegment(text=self.text, start=max(0.0, self.start + offset), duration=self.duration)

    def extended_to(self, end: float) -> "CaptionSegment":
        """Same text and start, duration stretched so the segment ends no earlier than `end`."""
        return CaptionSegment(text=self.text, start=self.start, duration=max(self.duration, end - self.start))


@dataclass(frozen=True)
class MediaFile:
    """
    Entity representing a media file on the filesystem.
    """
    path: Path

    def __post_init__(self):
        if str(self.path).strip() == "." or str(self.path).strip() == "":
            raise ValueError("File path cannot be empty.")

    def exists(self) -> bool:
        return self.path.exists()

    def size_bytes(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0
