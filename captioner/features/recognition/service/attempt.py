# File: captioner/features/recognition/service/attempt.py
import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from captioner.core.errors import (
    CaptionPipelineError, FileUnreadable, RecognizerFailed, RecognizerFailureReason,
    TooShortAudio, TranscriptionCancelled, UnsupportedLocale
)
from captioner.core.shared_types import MediaFile
from ..domain.interfaces import ISpeechRecognizer, RecognizerFailure
from ..domain.models import (
    CancellationToken, Cancelled, EmptyResult, RecognitionConfig, RecognitionOutcome,
    RecognizerError, RecognizerErrorKind, Success, Timeout
)

logger = logging.getLogger(__name__)


class RecognitionAttempt:
    """
    Exactly one recognizer call on one file for one locale, raced against a timer.
    Never raises for recognizer problems; everything is folded into an outcome.
    """

    def __init__(self, recognizer: ISpeechRecognizer, config: Optional[RecognitionConfig] = None):
        self.recognizer = recognizer
        self.config = config or RecognitionConfig()

    async def attempt(self,
                      audio_path: Path,
                      locale: str,
                      timeout: Optional[float] = None,
                      on_device_only: bool = False,
                      token: Optional[CancellationToken] = None) -> RecognitionOutcome:
        timeout = self.config.timeout_seconds if timeout is None else timeout

        if token is not None and token.is_cancelled:
            return Cancelled()

        gate = self._check_locale(locale, on_device_only)
        if gate is not None:
            return gate

        media = MediaFile(audio_path)
        if not media.exists():
            return RecognizerError(
                RecognizerErrorKind.FILE_OPEN,
                f"File not found: {audio_path}",
                error=FileUnreadable(f"File not found: {audio_path}")
            )
        size = media.size_bytes()
        if size < self.config.min_file_bytes:
            logger.debug(f"Skipping recognition of {audio_path.name}: {size}B is below {self.config.min_file_bytes}B")
            return RecognizerError(
                RecognizerErrorKind.TOO_SHORT,
                f"{size}B",
                error=TooShortAudio(audio_path, size, self.config.min_file_bytes)
            )

        started = time.monotonic()
        logger.info(f"Recognition start: {audio_path.name} [{locale}] timeout={timeout:.0f}s")
        outcome = await self._race(audio_path, locale, timeout, on_device_only)
        logger.info(
            f"Recognition finished: {audio_path.name} [{locale}] -> {type(outcome).__name__} "
            f"in {time.monotonic() - started:.2f}s"
        )
        return outcome

    def _check_locale(self, locale: str, on_device_only: bool) -> Optional[RecognizerError]:
        if not self.recognizer.supports_locale(locale):
            return RecognizerError(
                RecognizerErrorKind.UNSUPPORTED_LOCALE, locale,
                error=UnsupportedLocale(locale)
            )
        if on_device_only and not self.recognizer.supports_on_device(locale):
            return RecognizerError(
                RecognizerErrorKind.UNSUPPORTED_LOCALE, locale,
                error=UnsupportedLocale(locale, "no on-device support and cloud fallback is disabled")
            )
        return None

    async def _race(self, audio_path: Path, locale: str, timeout: float, on_device_only: bool) -> RecognitionOutcome:
        recognition = asyncio.create_task(self.recognizer.recognize(audio_path, locale, on_device_only))
        timer = asyncio.create_task(asyncio.sleep(timeout))

        try:
            done, _ = await asyncio.wait({recognition, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            # The loser is always cancelled, including when we are cancelled ourselves
            for task in (recognition, timer):
                if not task.done():
                    task.cancel()

        if recognition not in done:
            logger.warning(f"Recognition timed out after {timeout:.0f}s: {audio_path.name} [{locale}]")
            return Timeout(seconds=timeout)

        if recognition.cancelled():
            return Cancelled()

        try:
            segments = recognition.result()
        except RecognizerFailure as e:
            if e.kind == RecognizerErrorKind.NO_SPEECH:
                return EmptyResult()
            logger.warning(f"Recognizer error ({e.kind.value}) on {audio_path.name}: {e.message}")
            return RecognizerError(e.kind, e.message)
        except Exception as e:
            logger.warning(f"Recognizer crashed on {audio_path.name}: {e}")
            return RecognizerError(RecognizerErrorKind.UNKNOWN, str(e))

        if not segments:
            return EmptyResult()
        return Success(segments=list(segments))


def is_hard_failure(outcome: RecognitionOutcome) -> bool:
    """Timeouts and recognizer errors count against a locale; empty results do not."""
    return isinstance(outcome, (Timeout, RecognizerError))


def outcome_to_error(outcome: RecognitionOutcome) -> Optional[CaptionPipelineError]:
    """
    Maps a failed outcome onto the public error taxonomy. Returns None for Success.
    """
    if isinstance(outcome, Success):
        return None
    if isinstance(outcome, Cancelled):
        return TranscriptionCancelled("Recognition was cancelled")
    if isinstance(outcome, EmptyResult):
        return RecognizerFailed(RecognizerFailureReason.EMPTY_RESULT)
    if isinstance(outcome, Timeout):
        return RecognizerFailed(RecognizerFailureReason.TIMEOUT, f"no result within {outcome.seconds:.0f}s")

    if outcome.error is not None:
        return outcome.error
    if outcome.kind == RecognizerErrorKind.FILE_OPEN:
        return FileUnreadable(outcome.message)
    if outcome.kind == RecognizerErrorKind.AUTHORIZATION_DENIED:
        return RecognizerFailed(RecognizerFailureReason.AUTHORIZATION_DENIED, outcome.message)
    if outcome.kind == RecognizerErrorKind.NO_SPEECH:
        return RecognizerFailed(RecognizerFailureReason.EMPTY_RESULT, outcome.message)
    if outcome.kind == RecognizerErrorKind.UNSUPPORTED_LOCALE:
        return UnsupportedLocale(outcome.message)
    return RecognizerFailed(RecognizerFailureReason.UNKNOWN, outcome.message)
