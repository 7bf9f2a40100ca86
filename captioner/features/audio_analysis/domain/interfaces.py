from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

from .models import AudioAnalysis, MediaFingerprint

@dataclass(frozen=True)
class ProbeResult:
    duration: float
    sample_rate_hz: Optional[int]  # None when the container has no audio track

class IPcmSource(ABC):
    """
    Contract for reading raw audio out of an arbitrary media container.
    """
    @abstractmethod
    async def probe(self, path: Path) -> ProbeResult:
        """
        Raises:
            FileUnreadable: If the container cannot be opened.
        """
        pass

    @abstractmethod
    async def decode(self, path: Path, max_seconds: float, sample_rate_hz: int) -> np.ndarray:
        """
        Decodes at most `max_seconds` of the first audio track to mono
        float samples in [-1, 1] (from 16-bit PCM).
        """
        pass

class IAudioAnalyzer(ABC):
    @abstractmethod
    async def analyze(self, path: Path) -> AudioAnalysis:
        """
        Computes duration, loudness and leading silence of the file at `path`.

        Raises:
            FileUnreadable: If the file cannot be opened or decoded.
            NoAudioTrack: If the container holds no audio stream.
        """
        pass

class IAnalysisStore(ABC):
    """
    Optional persistence for analysis statistics across pipeline invocations.
    """
    @abstractmethod
    def load(self, fingerprint: MediaFingerprint) -> Optional[AudioAnalysis]:
        pass

    @abstractmethod
    def save(self, fingerprint: MediaFingerprint, analysis: AudioAnalysis) -> None:
        pass
