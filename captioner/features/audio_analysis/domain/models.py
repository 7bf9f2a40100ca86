# File: captioner/features/audio_analysis/domain/models.py
import math
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Parameters for the bounded PCM analysis pass.
    Only the first `max_analysis_seconds` are decoded so multi-hour files stay cheap.
    """
    max_analysis_seconds: float = 120.0
    sample_rate_hz: int = 16000
    window_seconds: float = 0.02
    silence_threshold_dbfs: float = -45.0
    silence_floor_dbfs: float = -160.0


@dataclass(frozen=True)
class PcmStats:
    average_rms_dbfs: float
    leading_silence: float
    analyzed_seconds: float


@dataclass(frozen=True)
class AudioAnalysis:
    """
    Everything the fallback logic needs to know about one media file.
    `normalized_audio_path` is the file that was analysed and that later
    stages (trim, slicing) operate on.
    """
    duration: float
    file_size_bytes: int
    average_rms_dbfs: float
    leading_silence: float
    normalized_audio_path: Path


@dataclass(frozen=True)
class MediaFingerprint:
    """
    Identity of a media file for the persistent analysis cache.
    """
    path: str
    size_bytes: int
    modified_ns: int

    @classmethod
    def of(cls, path: Path) -> "MediaFingerprint":
        stat = path.stat()
        return cls(path=str(path.resolve()), size_bytes=stat.st_size, modified_ns=stat.st_mtime_ns)


def db_to_linear(db: float) -> float:
    return math.pow(10.0, db / 20.0)


def linear_to_db(linear: float, floor_db: float = -160.0) -> float:
    return 20.0 * math.log10(linear) if linear > 0 else floor_db
