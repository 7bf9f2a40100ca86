# File: captioner/features/recognition/domain/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from captioner.core.errors import CaptionPipelineError, TranscriptionCancelled
from captioner.core.shared_types import CaptionSegment


class RecognizerErrorKind(str, Enum):
    TOO_SHORT = "too_short"
    UNSUPPORTED_LOCALE = "unsupported_locale"
    FILE_OPEN = "file_open"
    NO_SPEECH = "no_speech"
    AUTHORIZATION_DENIED = "authorization_denied"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RecognitionConfig:
    timeout_seconds: float = 180.0
    # Anything smaller is container overhead, not speech
    min_file_bytes: int = 4000


# --- Outcomes of a single attempt ---

@dataclass(frozen=True)
class Success:
    segments: List[CaptionSegment]


@dataclass(frozen=True)
class EmptyResult:
    pass


@dataclass(frozen=True)
class Timeout:
    seconds: float


@dataclass(frozen=True)
class RecognizerError:
    kind: RecognizerErrorKind
    message: str = ""
    # Pre-built pipeline error when the attempt already knows the precise type
    error: Optional[CaptionPipelineError] = field(default=None, compare=False)


@dataclass(frozen=True)
class Cancelled:
    pass


RecognitionOutcome = Union[Success, EmptyResult, Timeout, RecognizerError, Cancelled]


class CancellationToken:
    """
    Cooperative cancellation flag shared by every stage of one invocation.
    Checked between stages and between chunks.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise TranscriptionCancelled("Transcription was cancelled")


def base_language(locale: str) -> str:
    """'zh-Hant' -> 'zh', 'en_US' -> 'en'."""
    return locale.replace("_", "-").split("-")[0].lower()
