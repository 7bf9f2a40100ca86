from enum import Enum
from typing import Dict, Optional


class RecognizerFailureReason(str, Enum):
    TIMEOUT = "timeout"
    EMPTY_RESULT = "empty_result"
    AUTHORIZATION_DENIED = "authorization_denied"
    UNKNOWN = "unknown"


class CaptionPipelineError(Exception):
    """
    Base class for every failure the caption pipeline reports.
    Callers are expected to show "no captions available" rather than the detail.
    """


class UnsupportedLocale(CaptionPipelineError):
    def __init__(self, locale: str, reason: str = "locale is not supported"):
        super().__init__(f"{locale}: {reason}")
        self.locale = locale


class NoCapableLocales(CaptionPipelineError):
    def __init__(self, requested, allow_cloud_fallback: bool):
        if allow_cloud_fallback:
            message = f"None of the requested locales are supported: {list(requested)}"
        else:
            message = f"None of the requested locales support on-device recognition and cloud fallback is disabled: {list(requested)}"
        super().__init__(message)
        self.requested = list(requested)
        self.allow_cloud_fallback = allow_cloud_fallback


class TooShortAudio(CaptionPipelineError):
    def __init__(self, path, size_bytes: int, minimum_bytes: int):
        super().__init__(f"Audio file too short or empty ({size_bytes}B < {minimum_bytes}B): {path}")
        self.size_bytes = size_bytes


class FileUnreadable(CaptionPipelineError):
    pass


class NoAudioTrack(CaptionPipelineError):
    pass


class ExportFailed(CaptionPipelineError):
    pass


class RecognizerFailed(CaptionPipelineError):
    def __init__(self, reason: RecognizerFailureReason, message: str = ""):
        super().__init__(f"Recognition failed ({reason.value}): {message}" if message else f"Recognition failed ({reason.value})")
        self.reason = reason


class TranscriptionCancelled(CaptionPipelineError):
    pass


class LocaleTranscriptionFailed(CaptionPipelineError):
    """
    Every tier for one locale came back empty and at least one of them hit a hard error.
    """
    def __init__(self, locale: str, cause: CaptionPipelineError):
        super().__init__(f"Locale {locale} failed: {cause}")
        self.locale = locale
        self.cause = cause


class AllLocalesFailed(CaptionPipelineError):
    def __init__(self, failures: Dict[str, CaptionPipelineError]):
        summary = "; ".join(f"{loc}: {err}" for loc, err in failures.items())
        super().__init__(f"All requested locales failed. {summary}")
        self.failures = dict(failures)

    def first_cause(self) -> Optional[CaptionPipelineError]:
        for err in self.failures.values():
            return err
        return None
