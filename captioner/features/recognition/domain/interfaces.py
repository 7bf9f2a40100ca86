from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from captioner.core.shared_types import CaptionSegment
from .models import RecognizerErrorKind


class RecognizerFailure(Exception):
    """
    Raised by recognizer adapters. Library specific errors are translated
    into one of the RecognizerErrorKind values before leaving the adapter.
    """
    def __init__(self, kind: RecognizerErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message


class ISpeechRecognizer(ABC):
    """
    Contract for a per-locale speech recognizer.
    """

    @abstractmethod
    async def recognize(self, audio_path: Path, locale: str, on_device_only: bool) -> List[CaptionSegment]:
        """
        Recognizes speech in one file. Returns segments in the order the engine
        emits them (an empty list means no speech was found).

        Raises:
            RecognizerFailure
        """
        pass

    @abstractmethod
    def supports_locale(self, locale: str) -> bool:
        pass

    @abstractmethod
    def supports_on_device(self, locale: str) -> bool:
        pass
