import logging
from pathlib import Path
from typing import Iterable, List, Optional

from captioner.core.config.settings import settings
from captioner.core.shared_types import CaptionSegment
from captioner.features.audio_analysis.service.analyzer import PcmAudioAnalyzer
from captioner.features.audio_export.data.ffmpeg_adapter import FFmpegNormalizer
from captioner.features.recognition.data.whisper_adapter import WhisperRecognizer
from .pipeline import TranscriptionPipeline

logger = logging.getLogger(__name__)

_pipeline: Optional[TranscriptionPipeline] = None


def _build_store():
    if not settings.ANALYSIS_CACHE_ENABLED:
        return None
    from captioner.core.database.connection import init_db
    from captioner.features.audio_analysis.data.repository import SqlAnalysisStore

    init_db()
    logger.info("Persistent audio analysis cache enabled")
    return SqlAnalysisStore()


def get_pipeline() -> TranscriptionPipeline:
    """
    Process-wide pipeline wired to Whisper and ffmpeg.
    """
    global _pipeline
    if _pipeline is None:
        _pipeline = TranscriptionPipeline(
            recognizer=WhisperRecognizer(),
            normalizer=FFmpegNormalizer(),
            analyzer=PcmAudioAnalyzer(),
            store=_build_store()
        )
    return _pipeline


async def transcribe_media(media_path: str, locales: Optional[Iterable[str]] = None) -> List[CaptionSegment]:
    """
    Standalone API: captions for one media file in the requested locales.
    Starting a new call cancels the one in flight (which then returns []).
    """
    return await get_pipeline().transcribe(Path(media_path), locales)


def cancel_transcription():
    get_pipeline().cancel()


def set_allow_cloud_fallback(allowed: bool):
    get_pipeline().set_allow_cloud_fallback(allowed)
